# pages/opportunities.py
from __future__ import annotations

from typing import Any

from nicegui import run, ui
from loguru import logger

from auth.session import get_user
from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.app_style import button_props
from pages.utils.cards import status_chip
from services.app_config import get_app_config
from services.applications import (
    APPLICATION_FORM_FIELDS,
    COMPANY_SIZES,
    default_application_form,
    submit_application,
    validate_application_form,
)
from services.document_store import StoreError
from services.grants import CATEGORIES, open_grants_query, to_opportunity
from services.list_view import ALL, ListViewState, by_number, by_timestamp
from services.live_query import LiveQuery, OneShotQuery
from services.saved_grants import saved_grants_query, saved_ids, toggle_saved


SEARCH_FIELDS = ("title", "description", "organization")

TAB_ALL = "all"
TAB_SAVED = "saved"

FORM_LABELS = {
    "companyName": "Company Name",
    "businessEmail": "Business Email",
    "companySize": "Company Size",
    "industry": "Industry",
    "grantPurpose": "What do you intend to do with the grant?",
}


def sort_options():
    return [
        by_timestamp("createdAt", descending=True, label="Most recent"),
        by_timestamp("applicationDeadline", descending=False, label="Deadline"),
        by_number("amount", descending=True, label="Grant Size"),
    ]


def open_apply_dialog(ctx: PageContext, opportunity: dict[str, Any]) -> None:
    """Apply form for one opportunity, prefilled from the selected business profile."""
    user = get_user()
    if user is None:
        ui.notify("You must be logged in to apply.", type="negative")
        return

    profile = ctx.profiles.selected if ctx.profiles else None
    form = default_application_form(profile, user.email)
    inputs: dict[str, ui.element] = {}
    state = {"busy": False}

    d = ui.dialog()
    with d:
        with ui.card().classes("w-[min(760px,95vw)] gap-3 p-0 overflow-hidden"):
            with ui.row().classes("w-full h-12 items-center px-4 bg-primary text-white"):
                ui.label("Apply").classes("text-lg font-semibold")
                ui.space()
                ui.button(icon="close", on_click=d.close).props("flat round dense color=white")

            with ui.column().classes("w-full p-4 gap-3"):
                ui.label(opportunity.get("title") or "").classes("text-lg font-semibold")
                ui.label(opportunity.get("description") or "").classes("text-sm text-gray-600")
                with ui.row().classes("gap-6 text-sm"):
                    ui.label(f"Grant size: {opportunity.get('grantSize') or 'N/A'}")
                    ui.label(f"Deadline: {opportunity.get('deadline') or 'N/A'}").classes("text-negative")

                with ui.grid(columns=2).classes("w-full gap-3"):
                    for name in ("companyName", "businessEmail", "industry"):
                        inputs[name] = ui.input(FORM_LABELS[name], value=form[name]).classes("w-full")
                    inputs["companySize"] = ui.select(
                        list(COMPANY_SIZES), label=FORM_LABELS["companySize"], value=form["companySize"] or None
                    ).classes("w-full")
                inputs["grantPurpose"] = ui.textarea(FORM_LABELS["grantPurpose"], value=form["grantPurpose"]).classes("w-full")

                async def submit() -> None:
                    if state["busy"]:
                        return
                    values = {name: str(inputs[name].value or "") for name in APPLICATION_FORM_FIELDS}
                    errors = validate_application_form(values)
                    for name, element in inputs.items():
                        element.props(remove="error error-message")
                        if name in errors:
                            element.props(f'error error-message="{errors[name]}"')
                    if errors:
                        return

                    state["busy"] = True
                    submit_btn.disable()
                    try:
                        await run.io_bound(
                            lambda: submit_application(
                                ctx.store,
                                uid=user.uid,
                                applicant_name=user.display_name,
                                applicant_email=user.email,
                                opportunity=opportunity,
                                form=values,
                            )
                        )
                    except (StoreError, ValueError) as ex:
                        logger.warning(f"[submit] - application_failed - grant_id={opportunity.get('id')} error={ex}")
                        ui.notify("Failed to submit application.", type="negative")
                        return
                    finally:
                        state["busy"] = False
                        submit_btn.enable()
                    ui.notify("Application submitted successfully!", type="positive")
                    d.close()

                with ui.row().classes("w-full justify-end gap-2"):
                    ui.button("Cancel", on_click=d.close).props("flat")
                    submit_btn = ui.button("Submit application", on_click=submit).props(button_props("primary"))
    d.open()


def render(container: ui.element, ctx: PageContext) -> None:
    user = get_user()
    uid = user.uid if user else ""
    data: dict[str, Any] = {"opportunities": [], "saved": set(), "tab": TAB_ALL, "loading": True}

    view = ListViewState(
        search_fields=SEARCH_FIELDS,
        sort_options=sort_options(),
        page_size=get_app_config().lists.page_size,
    )

    def apply_source() -> None:
        records = data["opportunities"]
        if data["tab"] == TAB_SAVED:
            records = [r for r in records if str(r.get("id")) in data["saved"]]
        view.set_source(records)
        results.refresh()
        tabs_row.refresh()

    def on_grants(records: list[dict]) -> None:
        data["opportunities"] = [to_opportunity(r) for r in records]
        data["loading"] = False
        apply_source()

    def on_saved(records: list[dict]) -> None:
        data["saved"] = saved_ids(records)
        apply_source()

    def on_error(message: str) -> None:
        ui.notify(message, type="negative")

    grants_query = ctx.own(OneShotQuery(ctx.store, on_records=on_grants, on_error=on_error, run_io=run.io_bound, label="opportunities"))
    saved_query = ctx.own(LiveQuery(ctx.store, on_records=on_saved, on_error=on_error, dispatch=ctx.dispatch, label="saved grants"))

    async def on_toggle_saved(opportunity: dict) -> None:
        if not uid:
            ui.notify("You must be logged in to save grants.", type="negative")
            return
        currently = str(opportunity.get("id")) in data["saved"]
        try:
            now_saved = await run.io_bound(toggle_saved, ctx.store, uid, opportunity, currently)
        except StoreError as ex:
            logger.warning(f"[on_toggle_saved] - toggle_failed - grant_id={opportunity.get('id')} error={ex}")
            ui.notify("Could not update saved grants.", type="negative")
            return
        ui.notify("Grant saved." if now_saved else "Grant removed from saved.", type="positive")

    def set_tab(tab: str) -> None:
        data["tab"] = tab
        apply_source()

    @ui.refreshable
    def tabs_row() -> None:
        with ui.row().classes("items-center gap-2"):
            for key, label in ((TAB_ALL, "Browse all"), (TAB_SAVED, f"Saved {len(data['saved'])}")):
                active = data["tab"] == key
                ui.button(label, on_click=lambda k=key: set_tab(k)).props(
                    "unelevated no-caps color=primary" if active else "flat no-caps color=grey-8"
                )

    def render_card(opportunity: dict) -> None:
        is_saved = str(opportunity.get("id")) in data["saved"]
        with ui.card().classes("w-full p-4"):
            with ui.row().classes("w-full items-start no-wrap"):
                with ui.column().classes("flex-1 gap-1"):
                    ui.label(opportunity["title"]).classes("text-lg font-semibold")
                    if opportunity.get("organization"):
                        ui.label(opportunity["organization"]).classes("text-sm text-gray-500")
                ui.button(
                    icon="bookmark" if is_saved else "bookmark_border",
                    on_click=lambda o=opportunity: on_toggle_saved(o),
                ).props("flat round dense color=primary" if is_saved else "flat round dense color=grey-6")
            ui.label(opportunity.get("description") or "").classes("text-sm text-gray-600")
            with ui.row().classes("gap-2"):
                status_chip(opportunity.get("status"))
                ui.badge(opportunity.get("region") or "Global", color="orange-2", text_color="orange-10")
                if opportunity.get("category"):
                    ui.badge(opportunity["category"], color="blue-2", text_color="blue-10")
            with ui.row().classes("w-full items-center gap-6 text-sm"):
                ui.label(f"Grant size: {opportunity.get('grantSize') or 'N/A'}")
                ui.label(f"Closes {opportunity.get('deadline') or 'N/A'}").classes("text-negative")
                ui.space()
                ui.link("Details", f"/grants/{opportunity['id']}").classes("text-sm")
                ui.button("Apply", on_click=lambda o=opportunity: open_apply_dialog(ctx, o)).props(button_props("primary"))

    @ui.refreshable
    def results() -> None:
        if data["loading"]:
            with ui.row().classes("w-full justify-center py-8"):
                ui.spinner(size="lg")
            return
        page = view.view
        if not page.rows:
            with ui.column().classes("w-full items-center py-12 gap-2"):
                ui.icon("search_off").classes("text-5xl text-gray-400")
                ui.label("No matching grants found").classes("text-xl font-semibold")
                ui.label(
                    "We couldn't find any grants that match your search right now. "
                    "Try adjusting your filters or check back soon."
                ).classes("text-sm text-gray-500 text-center max-w-md")
            return
        for opportunity in page.rows:
            render_card(opportunity)
        with ui.row().classes("w-full items-center gap-2"):
            ui.label(f"Showing {page.first_index} to {page.last_index} of {page.total_count} grants").classes("text-sm text-gray-500")
            ui.space()
            ui.button(icon="chevron_left", on_click=lambda: (view.prev_page(), results.refresh())).props(
                "flat round dense"
            ).set_enabled(page.has_prev)
            ui.label(f"Page {page.page} of {page.total_pages}").classes("text-sm")
            ui.button(icon="chevron_right", on_click=lambda: (view.next_page(), results.refresh())).props(
                "flat round dense"
            ).set_enabled(page.has_next)

    def build_content(_parent: ui.element) -> None:
        with ui.column().classes("w-full gap-4"):
            tabs_row()

            def on_search(e: Any) -> None:
                view.set_query(e.value)
                results.refresh()

            def on_sort(e: Any) -> None:
                if e.value:
                    view.set_sort(e.value)
                    results.refresh()

            def on_category(e: Any) -> None:
                view.set_filter("category", e.value or ALL)
                results.refresh()

            with ui.row().classes("w-full items-center gap-3"):
                ui.input(
                    placeholder="Search for opportunities and grants that fit your business goals",
                    on_change=on_search,
                ).props("dense outlined clearable").classes("flex-1 min-w-[260px]")
                ui.select(view.sort_labels, value=view.sort_label, label="Sort by", on_change=on_sort).props(
                    "dense outlined"
                ).classes("w-44")
                ui.select(
                    {ALL: "All industries", **{c: c for c in CATEGORIES}},
                    value=ALL,
                    label="Filter",
                    on_change=on_category,
                ).props("dense outlined").classes("w-44")
            results()

    build_page(
        ctx,
        container,
        title="Opportunities",
        subtitle="Search for opportunities that fit your business",
        content=build_content,
    )

    async def load() -> None:
        if uid:
            saved_query.subscribe(saved_grants_query(uid))
        await grants_query.load(open_grants_query())

    ui.timer(0, load, once=True)
