# pages/wallet.py
from __future__ import annotations

from typing import Any

from nicegui import run, ui
from loguru import logger

from auth.session import get_user
from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.router import navigate
from layout.app_style import button_props, panel_classes, section_title_classes
from pages.utils.cards import stat_card, status_chip
from pages.utils.list_table import Column, ListTable, live_list, text_cell
from services.accounts import USERS_COLLECTION
from services.aggregates import transaction_totals, wallet_verification
from services.app_config import get_app_config
from services.applications import user_applications_query
from services.document_store import StoreError
from services.grants import format_date
from services.list_view import ListViewState
from services.live_query import error_message
from services.milestones import has_milestones
from services.wallet import WithdrawalError, request_withdrawal, transactions_query, wallet_balance


def _money(amount: float, currency: str) -> str:
    return f"{currency} {amount:,.2f}"


def render(container: ui.element, ctx: PageContext) -> None:
    user = get_user()
    uid = user.uid if user else ""
    currency = get_app_config().wallet.currency
    data: dict[str, Any] = {"profile": None, "milestones_added": False, "busy": False}

    view = ListViewState(search_fields=("description", "type"), page_size=get_app_config().lists.page_size)
    table = ListTable(
        view,
        [
            Column("Date", lambda r: ui.label(format_date(r.get("date"))).classes("text-sm")),
            Column("Description", text_cell("description"), "flex-[2]"),
            Column("Type", text_cell("type")),
            Column("Amount", lambda r: ui.label(_money(float(r.get("amount") or 0), currency)).classes("text-sm")),
            Column("Status", lambda r: status_chip(r.get("status"))),
        ],
        show_sort=False,
        search_placeholder="Search transactions...",
        empty_text="No transactions yet.",
        item_label="transactions",
        on_refresh=lambda: overview.refresh(),
    )
    transactions = live_list(ctx, view, table, label="transactions")

    def on_profile(record: Any) -> None:
        data["profile"] = record
        overview.refresh()

    def on_profile_error(exc: Exception) -> None:
        ctx.bridge.emit_notify(error_message(exc, "your wallet"), "negative")

    async def withdraw() -> None:
        if data["busy"]:
            return
        data["busy"] = True
        try:
            amount = await run.io_bound(request_withdrawal, ctx.store, uid, data["profile"], data["milestones_added"])
        except WithdrawalError as ex:
            ui.notify(str(ex), type="warning")
            return
        except StoreError as ex:
            logger.warning(f"[withdraw] - withdrawal_failed - uid={uid} error={ex}")
            ui.notify("Failed to submit withdrawal request.", type="negative")
            return
        finally:
            data["busy"] = False
        ui.notify(f"Withdrawal request for {_money(amount, currency)} submitted.", type="positive")

    def check_row(done: bool, label: str, action_label: str, route: str) -> None:
        with ui.row().classes("w-full items-center gap-3 no-wrap"):
            ui.icon("check_circle" if done else "cancel").classes("text-positive" if done else "text-negative")
            ui.label(label).classes("flex-1 text-sm")
            if not done:
                ui.button(action_label, on_click=lambda: navigate(ctx, route)).props("flat dense no-caps")

    @ui.refreshable
    def overview() -> None:
        verification = wallet_verification(data["profile"], data["milestones_added"])
        totals = transaction_totals(view.source)
        balance = wallet_balance(data["profile"])
        with ui.row().classes("w-full gap-4 items-stretch"):
            with ui.card().classes(panel_classes() + " flex-1 min-w-[280px]"):
                ui.label("Available balance").classes("text-sm text-gray-500")
                ui.label(_money(balance, currency)).classes("text-3xl font-bold")
                withdraw_btn = ui.button("Withdraw", icon="payments", on_click=withdraw).props(button_props("primary"))
                withdraw_btn.set_enabled(verification.fully_verified and balance > 0)
                if not verification.fully_verified:
                    ui.label("Complete all verification steps to withdraw.").classes("text-xs text-gray-500")
            with ui.card().classes(panel_classes() + " flex-1 min-w-[280px]"):
                ui.label("Verification").classes(section_title_classes())
                check_row(verification.account_verified, "Bank account verified", "Add bank details", "settings")
                check_row(verification.milestones_added, "Milestones added", "Add milestones", "milestones")
                check_row(verification.tin_added, "Tax ID (TIN) added", "Add TIN", "settings")
        with ui.row().classes("w-full gap-4"):
            stat_card("Deposits", _money(totals.deposits, currency), icon="south_west", icon_color="text-positive")
            stat_card("Withdrawals", _money(totals.withdrawals, currency), icon="north_east")
            stat_card("Pending withdrawals", _money(totals.pending_withdrawals, currency), icon="hourglass_top", icon_color="text-warning")

    def build_content(_parent: ui.element) -> None:
        with ui.column().classes("w-full gap-4"):
            overview()
            ui.label("Transactions").classes(section_title_classes() + " mt-2")
            table.render()

    build_page(ctx, container, title="Wallet", subtitle="Your grant funds and withdrawals", content=build_content)

    async def load() -> None:
        if not uid:
            return
        transactions.subscribe(transactions_query(uid))
        ctx.own(
            ctx.store.listen_document(
                USERS_COLLECTION,
                uid,
                lambda record: ctx.dispatch(lambda: on_profile(record)),
                on_profile_error,
            )
        )
        try:
            apps = await run.io_bound(ctx.store.query, user_applications_query(uid))
            data["milestones_added"] = await run.io_bound(has_milestones, ctx.store, [a["id"] for a in apps])
        except StoreError as ex:
            logger.warning(f"[load] - milestone_check_failed - uid={uid} error={ex}")
        overview.refresh()

    ui.timer(0, load, once=True)
