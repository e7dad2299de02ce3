# pages/admin/dashboard.py
from __future__ import annotations

from nicegui import run, ui
from loguru import logger

from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.router import navigate
from layout.app_style import button_props, section_title_classes
from pages.utils.cards import stat_card, status_chip
from pages.utils.list_table import Column, ListTable, one_shot_list, text_cell
from services.accounts import USERS_COLLECTION
from services.app_config import get_app_config
from services.applications import APPLICATIONS_COLLECTION
from services.document_store import DocumentStore, StoreError
from services.grants import GRANTS_COLLECTION, format_amount, recent_grants_query, status_label
from services.list_view import ListViewState


def platform_counts(store: DocumentStore) -> dict[str, int]:
    return {
        "users": store.count(USERS_COLLECTION),
        "grants": store.count(GRANTS_COLLECTION),
        "applications": store.count(APPLICATIONS_COLLECTION),
    }


def render(container: ui.element, ctx: PageContext) -> None:
    counts: dict[str, object] = {"users": "...", "grants": "...", "applications": "..."}

    limit = get_app_config().lists.recent_limit
    view = ListViewState(search_fields=(), page_size=limit)
    table = ListTable(
        view,
        [
            Column("Grant name", text_cell("grantName", classes="font-medium"), "flex-[2]"),
            Column("Organization", text_cell("organization")),
            Column("Amount", lambda r: ui.label(format_amount(r.get("amount"), r.get("currency"))).classes("text-sm")),
            Column("Status", lambda r: status_chip(r.get("status"), status_label(r.get("status")))),
        ],
        show_search=False,
        show_sort=False,
        empty_text="No recent grants found.",
        item_label="grants",
    )
    recent = one_shot_list(ctx, view, table, label="recent grants")

    @ui.refreshable
    def stats() -> None:
        with ui.row().classes("w-full gap-4"):
            stat_card("Total Users", counts["users"], caption="All registered users", icon="group")
            stat_card("Total Grants", counts["grants"], caption="All created grants", icon="emoji_events", icon_color="text-info")
            stat_card("Total Applications", counts["applications"], caption="All submitted applications", icon="description")

    def build_content(_parent: ui.element) -> None:
        with ui.column().classes("w-full gap-4"):
            stats()
            ui.label("Recent Grants").classes(section_title_classes() + " mt-2")
            table.render()

    build_page(
        ctx,
        container,
        title="Admin Dashboard",
        subtitle="Here is a live overview of platform activity.",
        content=build_content,
        header_actions=lambda: ui.button(
            "Create Grant", icon="add", on_click=lambda: navigate(ctx, "create_grant")
        ).props(button_props("primary")),
    )

    async def load() -> None:
        try:
            counts.update(await run.io_bound(platform_counts, ctx.store))
        except StoreError as ex:
            logger.warning(f"[admin.load] - counts_failed - error={ex}")
            counts.update(users="-", grants="-", applications="-")
            ui.notify("Failed to load platform statistics.", type="negative")
        stats.refresh()
        await recent.load(recent_grants_query(limit))

    ui.timer(0, load, once=True)
