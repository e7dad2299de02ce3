# pages/my_grants.py
from __future__ import annotations

from nicegui import run, ui

from auth.session import get_user
from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.router import navigate
from layout.app_style import button_props
from pages.utils.cards import status_chip
from pages.utils.confirm import confirm
from pages.utils.list_table import Column, ListTable, one_shot_list, text_cell
from services.app_config import get_app_config
from services.applications import (
    ACTION_DELETE,
    ACTION_VIEW,
    ACTION_WITHDRAW,
    APPLICATIONS_COLLECTION,
    SEARCH_FIELDS,
    SORT_MOST_RECENT,
    available_actions,
    my_grants_sort_options,
    status_label,
    user_applications_query,
    withdraw_fields,
)
from services.grants import format_date
from services.list_view import ListViewState
from services.row_mutations import RowMutationHandler


ACTION_LABELS = {
    ACTION_VIEW: ("View Details", "visibility"),
    ACTION_WITHDRAW: ("Withdraw", "block"),
    ACTION_DELETE: ("Delete", "delete"),
}


def _open_details(application: dict) -> None:
    form = application.get("applicationForm") or {}
    d = ui.dialog()
    with d:
        with ui.card().classes("w-[min(620px,95vw)] gap-3"):
            ui.label(application.get("grantName") or "Application").classes("text-lg font-semibold")
            with ui.row().classes("gap-2 items-center"):
                status_chip(application.get("status"), status_label(application.get("status")))
                ui.label(f"Submitted {format_date(application.get('submittedAt'))}").classes("text-sm text-gray-500")
            for label, key in (
                ("Company", "companyName"),
                ("Business email", "businessEmail"),
                ("Company size", "companySize"),
                ("Industry", "industry"),
                ("Purpose", "grantPurpose"),
            ):
                with ui.row().classes("w-full gap-2 no-wrap"):
                    ui.label(label).classes("w-36 text-sm text-gray-500")
                    ui.label(str(form.get(key) or "-")).classes("text-sm flex-1")
            with ui.row().classes("w-full justify-end"):
                ui.button("Close", on_click=d.close).props("flat")
    d.open()


def render(container: ui.element, ctx: PageContext) -> None:
    user = get_user()
    uid = user.uid if user else ""

    view = ListViewState(
        search_fields=SEARCH_FIELDS,
        sort_options=my_grants_sort_options(),
        default_sort=SORT_MOST_RECENT,
        page_size=get_app_config().lists.page_size,
    )
    mutations = RowMutationHandler(
        ctx.store,
        APPLICATIONS_COLLECTION,
        view,
        notify=ui.notify,
        confirm=confirm,
        run_io=run.io_bound,
        item_label="application",
    )

    async def on_action(action: str, application: dict) -> None:
        if action == ACTION_VIEW:
            _open_details(application)
            return
        if action == ACTION_WITHDRAW:
            if not await confirm("Withdraw this application? This cannot be undone.", ok_label="Withdraw", ok_color="warning"):
                return
            await mutations.update(application["id"], withdraw_fields(), success_message="Application withdrawn.")
        elif action == ACTION_DELETE:
            await mutations.delete([application["id"]])
        table.refresh()

    def row_actions(application: dict) -> None:
        with ui.button(icon="more_horiz").props("flat round dense"):
            with ui.menu():
                for action in available_actions(application.get("status")):
                    label, icon = ACTION_LABELS[action]
                    with ui.menu_item(on_click=lambda a=action, app=application: on_action(a, app)):
                        with ui.row().classes("items-center gap-2 no-wrap"):
                            ui.icon(icon).classes("text-gray-600")
                            ui.label(label)

    async def delete_selected() -> None:
        await mutations.delete_selected()
        table.refresh()

    def bulk_actions(_selected: list[str]) -> None:
        ui.button("Delete selected", icon="delete", on_click=delete_selected).props(button_props("danger"))

    table = ListTable(
        view,
        [
            Column("Grant name", text_cell("grantName", classes="font-medium"), "flex-[2]"),
            Column("Organization", text_cell("organization", fallback="N/A")),
            Column("Status", lambda r: status_chip(r.get("status"), status_label(r.get("status")))),
            Column("Submitted", lambda r: ui.label(format_date(r.get("submittedAt"))).classes("text-sm")),
        ],
        search_placeholder="Search grants...",
        selectable=True,
        bulk_actions=bulk_actions,
        row_actions=row_actions,
        empty_text="You haven't applied for any grants yet.",
        item_label="applications",
    )
    applications = one_shot_list(ctx, view, table, label="applications")

    build_page(
        ctx,
        container,
        title="My Grants",
        subtitle="Track the grants you applied for",
        content=lambda _parent: table.render(),
        header_actions=lambda: ui.button(
            "Find grants", icon="travel_explore", on_click=lambda: navigate(ctx, "opportunities")
        ).props(button_props("primary")),
    )

    async def load() -> None:
        if uid:
            await applications.load(user_applications_query(uid))

    ui.timer(0, load, once=True)
