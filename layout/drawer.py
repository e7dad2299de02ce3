from nicegui import ui, app
from layout.context import PageContext
from layout.router import get_visible_routes, navigate, Route
from services.app_config import get_app_config


def _render_drawer_content(ctx: PageContext) -> None:
	"""Rebuild the drawer buttons from current visible routes."""
	# Clear old buttons + content
	ctx.nav_buttons.clear()
	ctx.drawer_content.clear()
	active_key = app.storage.user.get("current_route", "")
	is_dark = bool(getattr(get_app_config().ui.navigation, "dark_mode", False))
	inactive_color = "grey-3" if is_dark else "grey-8"

	routes = {key: route for key, route in get_visible_routes().items() if route.in_drawer}
	with ctx.drawer_content:
		for section, title in (("user", ""), ("admin", "Administration")):
			entries = [(key, route) for key, route in routes.items() if route.section == section]
			if not entries:
				continue
			if title:
				ui.separator().classes("my-2")
				ui.label(title).classes("px-4 text-xs uppercase text-gray-500")
			for key, route in entries:
				btn = _add_standard_button(ctx, route, key)
				if key == active_key:
					# Selected look:
					btn.props("unelevated")
					btn.props("color=primary")
				else:
					# Normal look:
					btn.props("flat")
					btn.props(f"color={inactive_color}")


def build_drawer(ctx: PageContext) -> ui.left_drawer:
	is_dark = bool(getattr(get_app_config().ui.navigation, "dark_mode", False))
	drawer_classes = "bg-slate-900 text-gray-100" if is_dark else "bg-gray-50"
	drawer = ui.left_drawer(value=True, bordered=True).props("width=220").classes(drawer_classes)
	ctx.drawer = drawer

	with drawer:
		# All dynamic content goes into this column (so we can clear/rebuild it)
		ctx.drawer_content = ui.column().classes("w-full gap-1")

		# Initial render
		_render_drawer_content(ctx)

	return drawer


def _add_standard_button(ctx: PageContext, route: Route, key: str):
	btn = ui.button(
		route.label,
		icon=route.icon,
		on_click=lambda k=key: navigate(ctx, k),
	).props("flat no-caps").classes(
		"w-full justify-start px-4")  # w-full justify-start makes the icon/text stay left, even with full width.
	ctx.nav_buttons[key] = btn
	return btn
