# pages/dashboard.py
from nicegui import run, ui
from loguru import logger

from auth.session import get_user
from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.router import navigate
from layout.app_style import button_props, section_title_classes
from pages.utils.cards import profile_completion_card, stat_card, status_chip
from pages.utils.list_table import Column, ListTable, one_shot_list, text_cell
from services.accounts import get_user_document
from services.aggregates import application_stats, missing_profile_fields, profile_completion
from services.app_config import get_app_config
from services.applications import status_label, user_applications_query
from services.document_store import StoreError
from services.list_view import ListViewState, by_timestamp


PROFILE_FIELD_LABELS = {
    "firstName": "first name",
    "lastName": "last name",
    "businessName": "business name",
    "businessNumber": "business phone",
    "businessEmail": "business email",
    "website": "website",
    "industry": "industry",
    "roleInCompany": "role in company",
    "businessDescription": "business description",
}


def render(container: ui.element, ctx: PageContext) -> None:
    user = get_user()
    uid = user.uid if user else ""
    data = {"user_doc": None}

    view = ListViewState(
        search_fields=(),
        sort_options=[by_timestamp("submittedAt", descending=True, label="Most recent")],
        page_size=get_app_config().lists.recent_limit,
    )
    table = ListTable(
        view,
        [
            Column("Grant name", text_cell("grantName", classes="font-medium"), "flex-[2]"),
            Column("Organization", text_cell("organization", fallback="N/A")),
            Column("Amount", text_cell("amount", fallback="N/A")),
            Column("Status", lambda r: status_chip(r.get("status"), status_label(r.get("status")))),
            Column("Deadline", text_cell("deadline", fallback="N/A")),
        ],
        show_search=False,
        show_sort=False,
        empty_text="You haven't applied for any grants yet.",
        item_label="applications",
    )
    applications = one_shot_list(ctx, view, table, label="applications")

    def completion_source() -> dict:
        # name lives on the user document, business fields on the selected profile
        selected = ctx.profiles.selected if ctx.profiles else None
        return {**(selected or {}), **(data["user_doc"] or {})}

    @ui.refreshable
    def summary() -> None:
        source = completion_source()
        profile_completion_card(
            profile_completion(source),
            [PROFILE_FIELD_LABELS.get(f, f) for f in missing_profile_fields(source)],
            on_complete=lambda: navigate(ctx, "business"),
        )
        stats = application_stats(view.source)
        with ui.row().classes("w-full gap-4"):
            stat_card("Total Applications", stats.total, caption="All time", icon="description")
            stat_card("Active Applications", stats.active, caption="Submitted or in review", icon="schedule")
            stat_card("Won", stats.won, caption="Approved grants", icon="emoji_events", icon_color="text-positive")
            stat_card("Missed", stats.missed, caption="Past application deadlines", icon="warning", icon_color="text-negative")

    def build_content(_parent: ui.element) -> None:
        with ui.column().classes("w-full gap-4"):
            summary()
            ui.label("Recent Applications").classes(section_title_classes() + " mt-2")
            table.render()

    def header_actions() -> None:
        ui.button("View Grants", on_click=lambda: navigate(ctx, "opportunities")).props(button_props("primary"))
        ui.button("Check Progress", on_click=lambda: navigate(ctx, "milestones")).props(button_props("neutral"))

    first_name = user.name.split(" ")[0] if user and user.display_name else "User"
    build_page(
        ctx,
        container,
        title=f"Welcome, {first_name}!",
        subtitle="Here is an overview of your progress",
        content=build_content,
        header_actions=header_actions,
    )

    async def load() -> None:
        if not uid:
            return
        try:
            data["user_doc"] = await run.io_bound(get_user_document, ctx.store, uid)
        except StoreError as ex:
            logger.warning(f"[dashboard.load] - user_document_failed - uid={uid} error={ex}")
            ui.notify("Failed to load your dashboard data.", type="negative")
        await applications.load(user_applications_query(uid))
        summary.refresh()

    if ctx.profiles is not None:
        ctx.own(ctx.profiles.add_listener(lambda _selected: summary.refresh()))
    ui.timer(0, load, once=True)
