from __future__ import annotations

from dataclasses import dataclass
import importlib
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode
from nicegui import ui, app
from loguru import logger

from auth.session import get_user, is_admin
from layout.context import PageContext

from services.app_config import get_app_config


# All pages get (container, ctx); ctx.route_params carries ids for detail/edit routes.
RenderFn = Callable[[ui.element, PageContext], None]


@dataclass(frozen=True)
class Route:
    label: str
    icon: str
    module: str  # "pages.dashboard" -> module with render(container, ctx)
    in_drawer: bool = True
    section: str = "user"  # "user" | "admin"


BASE_ROUTES: Dict[str, Route] = {
    "dashboard": Route("Dashboard", "dashboard", "pages.dashboard"),
    "opportunities": Route("Opportunities", "travel_explore", "pages.opportunities"),
    "my_grants": Route("My Grants", "assignment", "pages.my_grants"),
    "milestones": Route("Milestones", "flag", "pages.milestones"),
    "wallet": Route("Wallet", "account_balance_wallet", "pages.wallet"),
    "business": Route("Business Profile", "business", "pages.business"),
    "settings": Route("Settings", "settings", "pages.settings"),
    "support": Route("Support", "help_outline", "pages.support"),
    "admin": Route("Admin Dashboard", "admin_panel_settings", "pages.admin.dashboard", section="admin"),
    "manage_grants": Route("Manage Grants", "inventory_2", "pages.admin.manage_grants", section="admin"),
    "manage_applications": Route("Applications", "fact_check", "pages.admin.manage_applications", section="admin"),
    "create_grant": Route("Create Grant", "add_circle", "pages.admin.grant_form", section="admin"),
    "edit_grant": Route("Edit Grant", "edit", "pages.admin.grant_form", in_drawer=False, section="admin"),
}


def _render_module(module_name: str) -> RenderFn:
    module = importlib.import_module(module_name)
    render_fn = getattr(module, "render", None)
    if not callable(render_fn):
        raise RuntimeError(f"Route module missing render(): {module_name}")
    return render_fn


def get_routes() -> Dict[str, Route]:
    return dict(BASE_ROUTES)


def _is_route_allowed_for_user(route_key: str) -> bool:
    config = get_app_config()
    allowed_roles = config.ui.navigation.route_roles.get(route_key, [])
    if not allowed_roles:
        return True
    user = get_user()
    if not user:
        return False
    return any(role in user.roles for role in allowed_roles)


def _is_configured_visible(route_key: str) -> bool:
    visible = get_app_config().ui.navigation.visible_routes
    return not visible or route_key in visible


def get_visible_routes() -> Dict[str, Route]:
    """Routes the current user may open (drawer shows the in_drawer subset)."""
    return {
        key: route
        for key, route in get_routes().items()
        if _is_configured_visible(key) and _is_route_allowed_for_user(key)
    }


def is_route_visible(key: str) -> bool:
    return key in get_visible_routes()


def main_route() -> str:
    nav = get_app_config().ui.navigation
    preferred = nav.admin_main_route if is_admin() else nav.main_route
    if is_route_visible(preferred):
        return preferred
    return next(iter(get_visible_routes()), "dashboard")


def _apply_drawer_highlight(ctx: PageContext, active_key: str) -> None:
    """Update drawer button styles so the active one looks selected."""
    for key, btn in ctx.nav_buttons.items():
        if key == active_key:
            # Selected look:
            btn.props("unelevated")
            btn.props("color=primary")
        else:
            # Normal look:
            btn.props("flat")
            btn.props("color=grey-8")


# supports visiting: http://localhost:8080/?page=edit_grant&id=abc
def get_initial_route_from_url(default: str = "") -> tuple[str, dict[str, Any]]:
    """Read ?page=...&id=... from the current request (deep link)."""
    params: dict[str, Any] = {}
    try:
        query = ui.context.client.request.query_params
        page = query.get("page")
        if query.get("id"):
            params["id"] = query.get("id")
    except AttributeError:
        page = None
    if page and page in get_routes():
        return page, params
    return default or main_route(), {}


def navigate(ctx: PageContext, route_key: str, **params: Any) -> None:
    route = get_routes().get(route_key)
    if not route:
        ui.notify(f"Unknown route: {route_key}", type="negative")
        return

    if not is_route_visible(route_key):
        fallback = main_route()
        logger.warning(f"[navigate] - route_denied - route={route_key} fallback={fallback}")
        ui.notify("You do not have access to that page.", type="warning")
        if fallback == route_key or fallback not in get_routes():
            return
        route_key, route, params = fallback, get_routes()[fallback], {}

    # page-scoped live queries of the previous page go first
    ctx.close_page_resources()
    ctx.route_params = dict(params)

    # per-user state (persists if storage_secret stays the same)
    app.storage.user["current_route"] = route_key
    if ctx.state is not None:
        ctx.state.current_route = route_key

    # update the URL (deep-link) without reloading
    query = urlencode({"page": route_key, **{k: v for k, v in params.items() if v}})
    ui.run_javascript(f"history.replaceState(null, '', '?{query}')")

    _apply_drawer_highlight(ctx, route_key)

    if ctx.breadcrumb:
        ctx.breadcrumb.set_text(route.label)

    if ctx.main_area:
        ctx.main_area.clear()
        try:
            render = _render_module(route.module)
            with ctx.main_area:
                render(ctx.main_area, ctx)
        except Exception as e:
            logger.exception(f"[navigate] - render_failed - route={route_key} error={e}")
            with ctx.main_area:
                ui.label(f"Failed to load page: {route.label}").classes("text-red-600")
