# pages/admin/manage_grants.py
from __future__ import annotations

from nicegui import run, ui

from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.router import navigate
from layout.app_style import button_props
from pages.utils.cards import status_chip
from pages.utils.confirm import confirm
from pages.utils.list_table import Column, ListTable, live_list, text_cell
from services.app_config import get_app_config
from services.grants import GRANT_STATUSES, GRANTS_COLLECTION, all_grants_query, format_amount, status_label
from services.list_view import ALL, ListViewState, by_text, by_timestamp
from services.row_mutations import RowMutationHandler


SEARCH_FIELDS = ("grantName", "organization")


def render(container: ui.element, ctx: PageContext) -> None:
    view = ListViewState(
        search_fields=SEARCH_FIELDS,
        sort_options=[
            by_timestamp("createdAt", descending=True, label="Newest"),
            by_timestamp("applicationDeadline", descending=False, label="Deadline"),
            by_text("grantName", label="Name"),
        ],
        page_size=get_app_config().lists.page_size,
    )
    mutations = RowMutationHandler(
        ctx.store,
        GRANTS_COLLECTION,
        view,
        notify=ui.notify,
        confirm=confirm,
        run_io=run.io_bound,
        item_label="grant",
    )

    async def set_status(grant: dict, status: str) -> None:
        if status == grant.get("status"):
            return
        await mutations.update(grant["id"], {"status": status}, success_message=f"Grant marked {status_label(status)}.")
        table.refresh()

    async def delete_grant(grant: dict) -> None:
        await mutations.delete([grant["id"]])
        table.refresh()

    async def delete_selected() -> None:
        await mutations.delete_selected()
        table.refresh()

    def status_cell(grant: dict) -> None:
        with ui.button().props("flat dense no-caps"):
            status_chip(grant.get("status"), status_label(grant.get("status")))
            with ui.menu():
                for status in GRANT_STATUSES:
                    ui.menu_item(status_label(status), on_click=lambda s=status, g=grant: set_status(g, s))

    def row_actions(grant: dict) -> None:
        with ui.button(icon="more_vert").props("flat round dense"):
            with ui.menu():
                ui.menu_item("View", on_click=lambda g=grant: ui.navigate.to(f"/grants/{g['id']}", new_tab=True))
                ui.menu_item("Edit", on_click=lambda g=grant: navigate(ctx, "edit_grant", id=g["id"]))
                ui.menu_item("Delete", on_click=lambda g=grant: delete_grant(g)).classes("text-negative")

    table = ListTable(
        view,
        [
            Column("Grant name", text_cell("grantName", classes="font-medium"), "flex-[2]"),
            Column("Organization", text_cell("organization")),
            Column("Amount", lambda r: ui.label(format_amount(r.get("amount"), r.get("currency"))).classes("text-sm")),
            Column("Status", status_cell),
        ],
        search_placeholder="Search for grants...",
        filters={"status": {ALL: "All statuses", **{s: status_label(s) for s in GRANT_STATUSES}}},
        selectable=True,
        bulk_actions=lambda _selected: ui.button(
            "Delete selected", icon="delete", on_click=delete_selected
        ).props(button_props("danger")),
        row_actions=row_actions,
        empty_text="No grants yet.",
        item_label="grants",
    )
    grants = live_list(ctx, view, table, label="grants")

    build_page(
        ctx,
        container,
        title="Grants",
        subtitle="Manage all grants on AutoGrant",
        content=lambda _parent: table.render(),
        header_actions=lambda: ui.button(
            "Add Grant", icon="add", on_click=lambda: navigate(ctx, "create_grant")
        ).props(button_props("primary")),
    )

    grants.subscribe(all_grants_query())
