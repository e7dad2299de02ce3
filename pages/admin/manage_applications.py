# pages/admin/manage_applications.py
from __future__ import annotations

from nicegui import run, ui

from layout.context import PageContext
from layout.page_scaffold import build_page
from pages.utils.cards import status_chip
from pages.utils.confirm import confirm
from pages.utils.list_table import Column, ListTable, live_list, text_cell
from services.app_config import get_app_config
from services.applications import (
    ADMIN_SEARCH_FIELDS,
    APPLICATIONS_COLLECTION,
    REVIEW_STATUSES,
    SORT_MOST_RECENT,
    all_applications_query,
    my_grants_sort_options,
    status_label,
)
from services.grants import format_date
from services.list_view import ALL, ListViewState
from services.row_mutations import RowMutationHandler


def render(container: ui.element, ctx: PageContext) -> None:
    view = ListViewState(
        search_fields=ADMIN_SEARCH_FIELDS,
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

    async def change_status(application: dict, status: str) -> None:
        if status == application.get("status"):
            return
        await mutations.update(application["id"], {"status": status}, success_message="Status updated successfully!")
        table.refresh()

    def status_cell(application: dict) -> None:
        current = application.get("status")
        options = list(REVIEW_STATUSES)
        # statuses outside the review flow (withdrawn, won, ...) stay selectable as they are
        if current and current not in options:
            options.insert(0, current)
        ui.select(
            {s: status_label(s) for s in options},
            value=current or None,
            on_change=lambda e, a=application: change_status(a, e.value) if e.value else None,
        ).props("dense outlined options-dense").classes("w-40")

    table = ListTable(
        view,
        [
            Column("Applicant", lambda r: _applicant_cell(r), "flex-[2]"),
            Column("Grant", text_cell("grantName", classes="font-medium"), "flex-[2]"),
            Column("Submitted", lambda r: ui.label(format_date(r.get("submittedAt"))).classes("text-sm")),
            Column("Current", lambda r: status_chip(r.get("status"), status_label(r.get("status")))),
            Column("Change status", status_cell),
        ],
        search_placeholder="Search by applicant or grant...",
        filters={"status": {ALL: "All statuses", **{s: status_label(s) for s in REVIEW_STATUSES}}},
        empty_text="No applications found.",
        item_label="applications",
    )
    applications = live_list(ctx, view, table, label="applications")

    build_page(
        ctx,
        container,
        title="Manage Applications",
        subtitle="Review and update the status of user applications.",
        content=lambda _parent: table.render(),
    )

    applications.subscribe(all_applications_query())


def _applicant_cell(application: dict) -> None:
    with ui.column().classes("gap-0"):
        ui.label(application.get("applicantName") or "Unnamed User").classes("text-sm font-medium")
        ui.label(application.get("applicantEmail") or "").classes("text-xs text-gray-500")
