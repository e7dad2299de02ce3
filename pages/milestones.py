# pages/milestones.py
from __future__ import annotations

from typing import Any, Optional

from nicegui import run, ui
from loguru import logger

from auth.session import get_user
from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.app_style import button_props
from pages.utils.cards import stat_card, status_chip
from pages.utils.confirm import confirm
from pages.utils.list_table import Column, ListTable, live_list, text_cell
from services.aggregates import milestone_summary
from services.app_config import get_app_config
from services.applications import user_applications_query
from services.document_store import StoreError
from services.list_view import ListViewState
from services.live_query import LiveQuery
from services.milestones import (
    MILESTONE_STATUSES,
    MilestoneValidationError,
    can_delete,
    create_milestone,
    default_milestone_form,
    milestones_collection,
    milestones_query,
    set_milestone_status,
    update_milestone,
)
from services.row_mutations import RowMutationHandler


def render(container: ui.element, ctx: PageContext) -> None:
    user = get_user()
    uid = user.uid if user else ""
    data: dict[str, Any] = {"applications": [], "selected_id": None, "apps_loading": True}

    view = ListViewState(search_fields=("title", "description"), page_size=get_app_config().lists.page_size)
    mutations = RowMutationHandler(
        ctx.store,
        "",
        view,
        notify=ui.notify,
        confirm=confirm,
        run_io=run.io_bound,
        item_label="milestone",
    )

    def select_application(app_id: Optional[str]) -> None:
        """Switch the watched milestones collection (old listener is dropped first)."""
        data["selected_id"] = app_id
        view.clear_selection()
        if app_id:
            mutations.collection = milestones_collection(app_id)
            table.set_loading(True)
            milestones.subscribe(milestones_query(app_id))
        else:
            milestones.subscribe(None)
            table.set_loading(False)
        header.refresh()

    def on_applications(records: list[dict]) -> None:
        data["applications"] = records
        data["apps_loading"] = False
        ids = [r.get("id") for r in records]
        if data["selected_id"] not in ids:
            select_application(ids[0] if ids else None)
        else:
            header.refresh()

    def on_error(message: str) -> None:
        ui.notify(message, type="negative")

    apps_query = ctx.own(LiveQuery(ctx.store, on_records=on_applications, on_error=on_error, dispatch=ctx.dispatch, label="applications"))

    # ----- milestone actions -----

    def open_form(milestone: Optional[dict] = None) -> None:
        app_id = data["selected_id"]
        if not app_id:
            return
        form = dict(milestone) if milestone else default_milestone_form()
        d = ui.dialog()
        with d:
            with ui.card().classes("w-[min(520px,95vw)] gap-3"):
                ui.label("Edit milestone" if milestone else "Add milestone").classes("text-lg font-semibold")
                title = ui.input("Title", value=form.get("title", "")).classes("w-full")
                description = ui.textarea("Description", value=form.get("description", "")).classes("w-full")
                ui.label("Progress").classes("text-sm text-gray-500")
                progress = ui.slider(min=0, max=100, step=5, value=int(form.get("progress") or 0)).props("label-always")

                async def save() -> None:
                    values = {"title": title.value, "description": description.value, "progress": progress.value}
                    try:
                        if milestone:
                            await run.io_bound(update_milestone, ctx.store, app_id, milestone["id"], values)
                        else:
                            await run.io_bound(create_milestone, ctx.store, app_id, values)
                    except MilestoneValidationError as ex:
                        ui.notify(str(ex), type="negative")
                        return
                    except StoreError as ex:
                        logger.warning(f"[save] - milestone_save_failed - application_id={app_id} error={ex}")
                        ui.notify("An error occurred. Please try again.", type="negative")
                        return
                    ui.notify("Milestone updated." if milestone else "Milestone added.", type="positive")
                    d.close()

                with ui.row().classes("w-full justify-end gap-2"):
                    ui.button("Cancel", on_click=d.close).props("flat")
                    ui.button("Save", on_click=save).props(button_props("primary"))
        d.open()

    async def change_status(milestone: dict, status: str) -> None:
        if status == milestone.get("status"):
            return
        try:
            await run.io_bound(set_milestone_status, ctx.store, data["selected_id"], milestone["id"], status)
        except (StoreError, MilestoneValidationError) as ex:
            logger.warning(f"[change_status] - status_change_failed - milestone_id={milestone['id']} error={ex}")
            ui.notify("Could not change the milestone status.", type="negative")

    async def delete_milestone(milestone: dict) -> None:
        await mutations.delete([milestone["id"]])
        table.refresh()

    def status_cell(milestone: dict) -> None:
        with ui.button().props("flat dense no-caps"):
            status_chip(milestone.get("status"))
            with ui.menu():
                for status in MILESTONE_STATUSES:
                    ui.menu_item(status, on_click=lambda s=status, m=milestone: change_status(m, s))

    def progress_cell(milestone: dict) -> None:
        value = int(milestone.get("progress") or 0)
        with ui.row().classes("items-center gap-2 no-wrap w-full"):
            ui.linear_progress(value=value / 100, show_value=False).classes("flex-1")
            ui.label(f"{value}%").classes("text-xs text-gray-500")

    def row_actions(milestone: dict) -> None:
        ui.button(icon="edit", on_click=lambda m=milestone: open_form(m)).props("flat round dense").tooltip("Edit")
        if can_delete(milestone):
            ui.button(icon="delete", on_click=lambda m=milestone: delete_milestone(m)).props(
                "flat round dense color=negative"
            ).tooltip("Delete")

    table = ListTable(
        view,
        [
            Column("Milestone", text_cell("title", classes="font-medium"), "flex-[2]"),
            Column("Description", text_cell("description", classes="text-gray-600"), "flex-[3]"),
            Column("Progress", progress_cell),
            Column("Status", status_cell),
        ],
        show_search=False,
        show_sort=False,
        row_actions=row_actions,
        empty_text="No milestones for this grant yet.",
        item_label="milestones",
        on_refresh=lambda: summary.refresh(),
    )
    milestones = live_list(ctx, view, table, label="milestones")

    @ui.refreshable
    def header() -> None:
        if data["apps_loading"]:
            ui.label("Loading your grants...").classes("text-sm text-gray-500")
            return
        if not data["applications"]:
            ui.label("You have no applications. Apply for a grant to set milestones.").classes("text-sm text-gray-500")
            return
        options = {a["id"]: str(a.get("grantName") or "Untitled Grant") for a in data["applications"]}
        with ui.row().classes("w-full items-center gap-3"):
            ui.select(
                options,
                value=data["selected_id"],
                label="Grant application",
                on_change=lambda e: select_application(e.value) if e.value != data["selected_id"] else None,
            ).props("outlined dense").classes("min-w-[320px]")
            ui.space()
            ui.button("Add milestone", icon="add", on_click=lambda: open_form()).props(button_props("primary"))

    @ui.refreshable
    def summary() -> None:
        if not data["selected_id"]:
            return
        s = milestone_summary(view.source)
        with ui.row().classes("w-full gap-4"):
            stat_card("Milestones", s.total, icon="flag")
            stat_card("Completed", s.completed, icon="check_circle", icon_color="text-positive")
            stat_card("In Progress", s.in_progress, icon="autorenew", icon_color="text-info")
            stat_card("Average progress", f"{s.average_progress}%", icon="percent")

    def build_content(_parent: ui.element) -> None:
        with ui.column().classes("w-full gap-4"):
            header()
            summary()
            table.render()

    build_page(
        ctx,
        container,
        title="Milestones",
        subtitle="Set business milestones for your grant applications.",
        content=build_content,
    )

    if uid:
        apps_query.subscribe(user_applications_query(uid))
    else:
        data["apps_loading"] = False
        header.refresh()
