import os
from typing import Optional

from nicegui import ui, app

from auth.middleware import AuthMiddleware
from auth.login_page import register_login_page
from auth.session import get_user, is_admin

from layout.context import PageContext
from layout.main_area import build_main_area
from layout.router import navigate, get_initial_route_from_url, main_route
from layout.header import build_header
from layout.drawer import build_drawer

from pages.onboarding import register_onboarding_page
from pages.grant_detail import register_grant_detail_page

from services.ui_bridge import UiBridge
from services.app_config import load_app_config
from services.app_state import AppState
from services.document_store import Record, create_store
from services.profile_context import ProfileContext
from services.logging_setup import setup_logging
from loguru import logger


# ------------------------------------------------------------------
# GLOBAL BACKEND (PROCESS LIFETIME)
# ------------------------------------------------------------------

setup_logging(app_name="autogrant")
logger.info("Starting AutoGrant")

APP_CONFIG = load_app_config()
STORE = create_store(APP_CONFIG.store)
app.on_shutdown(STORE.close)


# ------------------------------------------------------------------
# UI
# ------------------------------------------------------------------

HEADER_PX = 64

register_login_page(STORE)
register_onboarding_page(STORE)
register_grant_detail_page(STORE)
if APP_CONFIG.auth.login_required:
	app.add_middleware(AuthMiddleware)


@ui.page("/")
def index():
	ui.colors(primary="#059669")

	ui.add_head_html("""
	<style>
		html, body { height: 100%; margin: 0; overflow: hidden; }
	</style>
	""")

	user = get_user()

	# --------- PER CLIENT CONTEXT ---------
	# Each browser tab gets its own bridge, state and profile subscription;
	# snapshot threads only ever talk to this client's bridge.
	ctx = PageContext()
	ctx.state = AppState(user_name=user.name if user else "", is_admin=is_admin())
	ctx.bridge = UiBridge()
	ctx.store = STORE
	ctx.profiles = ProfileContext(
		STORE,
		dispatch=ctx.bridge.emit_call,
		on_error=lambda message: ctx.bridge.emit_notify(message, "negative"),
		selected_id=app.storage.user.get("selected_profile_id"),
	)

	def on_profile_changed(selected: Optional[Record]) -> None:
		profile_id = str((selected or {}).get("id") or "")
		ctx.set_state_many(
			selected_profile_id=profile_id,
			selected_profile_name=str((selected or {}).get("businessName") or ""),
			profile_count=len(ctx.profiles.profiles),
		)
		if profile_id:
			app.storage.user["selected_profile_id"] = profile_id
		else:
			app.storage.user.pop("selected_profile_id", None)

	ctx.profiles.add_listener(on_profile_changed)
	ctx.profiles.start(user.uid if user else None)

	# UI flush loop
	ui.timer(0.2, ctx.bridge.flush)

	def _cleanup() -> None:
		logger.debug(f"[_cleanup] - client_disconnected - uid={user.uid if user else '-'}")
		ctx.bridge.stop()
		ctx.close_page_resources()
		ctx.profiles.close()

	ui.context.client.on_disconnect(_cleanup)

	# --------- LAYOUT ---------
	build_header(ctx)
	build_drawer(ctx)

	with ui.row().classes("w-full").style(f"height: calc(100vh - {HEADER_PX}px);"):
		with ui.column().classes("w-full h-full min-h-0 min-w-0 overflow-hidden p-4 pb-6 gap-2"):
			build_main_area(ctx)

	default_route = app.storage.user.get("current_route") or main_route()
	initial, params = get_initial_route_from_url(default_route)
	navigate(ctx, initial, **params)


ui.run(
	title="AutoGrant",
	reload=False,
	storage_secret=os.environ["NICEGUI_STORAGE_SECRET"],
)
