import asyncio

from nicegui import ui, app, run

from auth.auth_service import AuthResult, authenticate_user, register_user
from auth.middleware import safe_next_path
from auth.session import login
from loguru import logger
from services.accounts import get_user_document, is_onboarded
from services.app_config import get_app_config
from services.document_store import DocumentStore, StoreError


REASON_MESSAGES = {
    "auth_required": "Please sign in to continue.",
    "signed_out": "You have been signed out.",
}


def _landing_path(store: DocumentStore, result: AuthResult, next_path: str = "") -> str:
    """Onboarding for accounts without a completed user document, else `next_path` or the app."""
    try:
        user_doc = get_user_document(store, result.user.uid)
    except StoreError as ex:
        logger.warning("Login page: user document lookup failed for uid='{}': {}", result.user.uid, ex)
        return next_path or "/"
    if not is_onboarded(user_doc):
        return "/onboarding"
    return next_path or "/"


def register_login_page(store: DocumentStore) -> None:
    @ui.page("/login")
    def login_view(reason: str = "", next: str = ""):
        ui.add_head_html(
            """
            <style>
            @keyframes login-spin {
                from { transform: rotate(0deg); }
                to { transform: rotate(360deg); }
            }
            .login-spin {
                animation: login-spin 1s linear infinite;
            }
            </style>
            """
        )
        cfg = get_app_config()
        next_path = safe_next_path(next)
        if reason in REASON_MESSAGES:
            ui.notify(REASON_MESSAGES[reason], type="info")

        with ui.card().classes("w-96 mx-auto mt-24"):
            ui.label("AutoGrant").classes("text-2xl font-bold text-primary")
            mode_label = ui.label("Sign in to your account").classes("text-sm text-gray-500")

            submit_state = {"busy": False, "sign_up": False}

            name_input = ui.input("Full name").classes("w-full")
            name_input.set_visibility(False)
            email = ui.input("Email").props("type=email").classes("w-full")
            password = ui.input("Password", password=True, password_toggle_button=True).classes("w-full")

            with ui.dialog().props("persistent") as progress_dialog:
                with ui.card().classes("w-72 items-center gap-3 py-6"):
                    ui.icon("login").classes("text-primary text-4xl login-spin")
                    progress_label = ui.label("Signing in ...").classes("text-base font-medium")

            def set_sign_up(enabled: bool) -> None:
                submit_state["sign_up"] = enabled
                name_input.set_visibility(enabled)
                mode_label.set_text("Create a new account" if enabled else "Sign in to your account")
                submit_button.set_text("Sign up" if enabled else "Sign in")
                switch_button.set_text("Already have an account? Sign in" if enabled else "No account yet? Sign up")

            async def do_submit():
                if submit_state["busy"]:
                    return
                submit_state["busy"] = True
                submit_button.disable()
                sign_up = bool(submit_state["sign_up"])
                progress_label.set_text("Creating account ..." if sign_up else "Signing in ...")
                progress_dialog.open()
                success = False

                entered_email = str(email.value or "").strip()
                logger.info(
                    "Login page submit: email='{}' sign_up={} mode='{}'",
                    entered_email,
                    sign_up,
                    str(cfg.auth.validation_mode or "local"),
                )

                try:
                    await asyncio.sleep(0)
                    if sign_up:
                        result = await run.io_bound(
                            register_user,
                            store,
                            entered_email,
                            str(password.value or ""),
                            str(name_input.value or ""),
                        )
                    else:
                        result = await run.io_bound(
                            authenticate_user,
                            store,
                            entered_email,
                            str(password.value or ""),
                        )
                    if not result.ok:
                        logger.warning("Login page rejected: email='{}' reason='{}'", entered_email, result.message)
                        ui.notify(result.message or "Login failed", type="negative")
                        return

                    login(result.user)
                    target = "/onboarding" if sign_up else await run.io_bound(_landing_path, store, result, next_path)
                    logger.success(
                        "Login page success: email='{}' uid='{}' roles={} target='{}'",
                        entered_email,
                        result.user.uid,
                        list(result.user.roles),
                        target,
                    )
                    app.storage.user.pop("current_route", None)
                    success = True
                    ui.navigate.to(target)
                except Exception:
                    logger.exception("Login page error while authenticating email='{}'", entered_email)
                    ui.notify("Login failed", type="negative")
                finally:
                    if not success:
                        progress_dialog.close()
                        submit_state["busy"] = False
                        submit_button.enable()

            async def on_password_enter(_event) -> None:
                await do_submit()

            submit_button = ui.button("Sign in", on_click=do_submit).props("color=primary").classes("w-full mt-2")
            switch_button = ui.button(
                "No account yet? Sign up",
                on_click=lambda: set_sign_up(not submit_state["sign_up"]),
            ).props("flat no-caps dense").classes("w-full")
            switch_button.set_visibility(bool(cfg.auth.allow_sign_up))
            password.on("keydown.enter", on_password_enter)
