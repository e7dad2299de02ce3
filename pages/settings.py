# pages/settings.py
from __future__ import annotations

from typing import Any

from nicegui import run, ui
from loguru import logger

from auth.auth_service import update_display_name
from auth.session import get_user, set_display_name
from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.app_style import button_props, panel_classes, section_subtitle_classes, section_title_classes
from pages.utils.confirm import confirm
from services.accounts import (
    SESSION_TIMEOUTS,
    AccountError,
    bank_info_form,
    display_name_for,
    get_user_document,
    mask_account_number,
    personal_info_form,
    preferences_from,
    request_deactivation,
    save_bank_info,
    save_personal_info,
    save_preferences,
)
from services.document_store import StoreError


NOTIFICATION_LABELS = {
    "emailNotifications": ("Email notifications", "Application updates and deadlines by email"),
    "pushNotifications": ("Push notifications", "Browser notifications while signed in"),
    "smsNotifications": ("SMS notifications", "Text messages for urgent updates"),
    "marketingEmails": ("Marketing emails", "News about new grant programs"),
}

TABS = ("Personal", "Bank details", "Preferences", "Account")


def render(container: ui.element, ctx: PageContext) -> None:
    user = get_user()
    uid = user.uid if user else ""
    data: dict[str, Any] = {"user_doc": None, "loading": True, "tab": TABS[0]}

    async def run_save(label: str, fn, *args) -> bool:
        try:
            await run.io_bound(fn, ctx.store, uid, *args)
        except AccountError as ex:
            ui.notify(str(ex), type="warning")
            return False
        except StoreError as ex:
            logger.warning(f"[run_save] - save_failed - section={label} uid={uid} error={ex}")
            ui.notify(f"Failed to save {label}.", type="negative")
            return False
        ui.notify(f"{label.capitalize()} saved.", type="positive")
        return True

    # ----- sections -----

    def personal_section() -> None:
        form = personal_info_form(data["user_doc"], user.email if user else "")
        with ui.card().classes(panel_classes() + " w-full"):
            ui.label("Personal information").classes(section_title_classes())
            with ui.grid(columns=2).classes("w-full gap-3"):
                first = ui.input("First name", value=form["firstName"]).classes("w-full")
                last = ui.input("Last name", value=form["lastName"]).classes("w-full")
                phone = ui.input("Phone", value=form["phone"]).classes("w-full")
                role = ui.input("Role / title", value=form["roleTitle"]).classes("w-full")
            ui.input("Email", value=form["email"]).props("readonly").classes("w-full")

            async def save() -> None:
                values = {"firstName": first.value, "lastName": last.value, "phone": phone.value, "roleTitle": role.value}
                if not await run_save("personal information", save_personal_info, values):
                    return
                name = display_name_for(first.value.strip(), last.value.strip())
                if not await run.io_bound(update_display_name, ctx.store, user, name):
                    logger.warning(f"[save] - display_name_not_propagated - uid={uid}")
                set_display_name(name)
                ctx.state.user_name = name

            with ui.row().classes("w-full justify-end"):
                ui.button("Save changes", on_click=save).props(button_props("primary"))

    def bank_section() -> None:
        form = bank_info_form(data["user_doc"])
        with ui.card().classes(panel_classes() + " w-full"):
            ui.label("Bank details").classes(section_title_classes())
            ui.label("Needed to verify your wallet before withdrawing grant funds.").classes(section_subtitle_classes())
            if form["bankAccountNumber"]:
                ui.label(f"Account on file: {mask_account_number(form['bankAccountNumber'])}").classes("text-sm")
            with ui.grid(columns=2).classes("w-full gap-3"):
                account_name = ui.input("Account name", value=form["bankAccountName"]).classes("w-full")
                account_number = ui.input("Account number", value=form["bankAccountNumber"]).classes("w-full")
                bank_name = ui.input("Bank name", value=form["bankName"]).classes("w-full")
                tin = ui.input("Tax ID number (TIN)", value=form["taxIdNumber"]).classes("w-full")

            async def save() -> None:
                values = {
                    "bankAccountName": account_name.value,
                    "bankAccountNumber": account_number.value,
                    "bankName": bank_name.value,
                    "taxIdNumber": tin.value,
                }
                if await run_save("bank details", save_bank_info, values):
                    await reload()

            with ui.row().classes("w-full justify-end"):
                ui.button("Save bank details", on_click=save).props(button_props("primary"))

    def preferences_section() -> None:
        notifications, security = preferences_from(data["user_doc"])
        with ui.card().classes(panel_classes() + " w-full"):
            ui.label("Notifications").classes(section_title_classes())
            for key, (label, caption) in NOTIFICATION_LABELS.items():
                with ui.row().classes("w-full items-center no-wrap"):
                    with ui.column().classes("gap-0 flex-1"):
                        ui.label(label).classes("text-sm font-medium")
                        ui.label(caption).classes("text-xs text-gray-500")
                    ui.switch(value=bool(notifications[key])).bind_value(notifications, key)

            ui.separator()
            ui.label("Security").classes(section_title_classes())
            ui.switch("Two-factor authentication").bind_value(security, "twoFactorAuth")
            ui.switch("Login alerts").bind_value(security, "loginAlerts")
            ui.select(
                {t: f"{t} minutes" for t in SESSION_TIMEOUTS}, label="Session timeout"
            ).bind_value(security, "sessionTimeout").classes("w-48")

            async def save() -> None:
                await run_save("preferences", save_preferences, notifications, security)

            with ui.row().classes("w-full justify-end"):
                ui.button("Save preferences", on_click=save).props(button_props("primary"))

    def account_section() -> None:
        requested = bool((data["user_doc"] or {}).get("deactivationRequested"))
        with ui.card().classes(panel_classes() + " w-full"):
            ui.label("Deactivate account").classes(section_title_classes())
            if requested:
                ui.label("A deactivation request is pending. An administrator will contact you.").classes("text-sm")
                return
            ui.label(
                "Your applications and business profiles will be removed once an administrator processes the request."
            ).classes(section_subtitle_classes())
            reason = ui.textarea("Reason (optional)").classes("w-full")

            async def deactivate() -> None:
                if not await confirm("Request deactivation of your account?", ok_label="Request", ok_color="negative"):
                    return
                try:
                    await run.io_bound(request_deactivation, ctx.store, uid, user.email, reason.value or "")
                except StoreError as ex:
                    logger.warning(f"[deactivate] - request_failed - uid={uid} error={ex}")
                    ui.notify("Failed to submit the request.", type="negative")
                    return
                ui.notify("Deactivation request submitted.", type="positive")
                await reload()

            with ui.row().classes("w-full justify-end"):
                ui.button("Request deactivation", on_click=deactivate).props(button_props("danger"))

    @ui.refreshable
    def sections() -> None:
        if data["loading"]:
            with ui.row().classes("w-full justify-center py-8"):
                ui.spinner(size="lg")
            return
        with ui.tabs().classes("w-full") as tabs:
            tab_items = {name: ui.tab(name) for name in TABS}
        with ui.tab_panels(
            tabs, value=tab_items[data["tab"]], on_change=lambda e: data.update(tab=e.value)
        ).classes("w-full bg-transparent"):
            for name, builder in zip(TABS, (personal_section, bank_section, preferences_section, account_section)):
                with ui.tab_panel(tab_items[name]):
                    builder()

    build_page(
        ctx,
        container,
        title="Settings",
        subtitle="Manage your account",
        content=lambda _parent: sections(),
    )

    async def reload() -> None:
        if uid:
            try:
                data["user_doc"] = await run.io_bound(get_user_document, ctx.store, uid)
            except StoreError as ex:
                logger.warning(f"[reload] - user_document_failed - uid={uid} error={ex}")
                ui.notify("Failed to load your settings.", type="negative")
        data["loading"] = False
        sections.refresh()

    ui.timer(0, reload, once=True)
