from nicegui import ui

from layout.context import PageContext
from auth.session import get_user, is_admin, logout
from services.app_config import get_app_config, save_app_config
from layout.router import navigate
from layout.app_style import button_classes, button_props
from loguru import logger


def build_header(ctx: PageContext) -> ui.header:
    cfg = get_app_config()
    is_dark = bool(getattr(cfg.ui.navigation, "dark_mode", False))
    header = ui.header().classes("h-16 w-full border-b bg-white text-gray-800" if not is_dark else "h-16 w-full")

    with header:
        with ui.row().classes("h-full items-center w-full px-4 gap-2 no-wrap"):
            ui.button(icon="menu", on_click=lambda: ctx.drawer.toggle() if ctx.drawer else None).props(
                "flat round dense"
            ).tooltip("Toggle navigation menu")

            ui.icon("volunteer_activism").classes("text-primary text-2xl")
            ui.label("AutoGrant").classes("text-lg font-bold")
            ui.space()

            _build_profile_switcher(ctx)

            def on_toggle_theme() -> None:
                cfg_local = get_app_config()
                current = bool(getattr(cfg_local.ui.navigation, "dark_mode", False))
                cfg_local.ui.navigation.dark_mode = not current
                logger.info(
                    f"[on_toggle_theme] - theme_mode_changed - old={current} new={cfg_local.ui.navigation.dark_mode}"
                )
                save_app_config(cfg_local)
                ui.run_javascript("location.reload()")

            ui.button(icon="dark_mode" if is_dark else "light_mode", on_click=on_toggle_theme).props(
                "flat round dense"
            ).tooltip("Switch between light and dark mode")

            user = get_user()
            email = user.email if user else "unknown"

            with ui.row().classes("ml-3 items-center gap-2 no-wrap"):
                ui.icon("account_circle").classes("text-2xl")
                with ui.column().classes("gap-0"):
                    name_label = ui.label(user.name if user else "-").classes("text-sm cursor-pointer")
                    name_label.bind_text_from(ctx.state, "user_name", backward=lambda n: n or (user.name if user else "-"))
                    name_label.on("click", lambda: navigate(ctx, "settings"))
                    ui.label("Administrator" if is_admin() else email).classes("text-xs text-gray-500")

            def do_logout() -> None:
                logger.info(f"[do_logout] - logout_clicked - email={email}")
                if ctx.profiles is not None:
                    ctx.profiles.close()
                ctx.close_page_resources()
                logout()
                ui.navigate.to("/login?reason=signed_out")

            ui.button("Logout", icon="logout", on_click=do_logout).props(
                button_props("danger")
            ).classes(button_classes()).tooltip("Sign out from current session")

    return header


def _build_profile_switcher(ctx: PageContext) -> None:
    """Select for the business profile every user screen works against."""
    if ctx.profiles is None:
        return

    select = ui.select(options={}, label="Business profile").props("dense outlined").classes("min-w-[200px]")
    select.set_visibility(False)

    def sync(_selected=None) -> None:
        profiles = ctx.profiles.profiles
        options = {p["id"]: str(p.get("businessName") or "Untitled business") for p in profiles}
        select.set_options(options, value=ctx.profiles.selected_id if ctx.profiles.selected_id in options else None)
        select.set_visibility(len(options) > 0)

    def on_change(e) -> None:
        if e.value and e.value != ctx.profiles.selected_id:
            ctx.profiles.switch_profile(e.value)

    select.on_value_change(on_change)
    ctx.profiles.add_listener(sync)
    sync()
