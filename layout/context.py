from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Any, Callable, TypeVar
from nicegui import ui
from loguru import logger

from services.app_state import AppState
from services.document_store import DocumentStore
from services.profile_context import ProfileContext
from services.ui_bridge import UiBridge


T = TypeVar("T")


@dataclass
class PageContext:
	# -----------------------------
	# Layout UI references
	# -----------------------------

	# Reference to the left navigation drawer element (so header can toggle it)
	drawer: Optional[ui.left_drawer] = None

	# Dynamic container inside the drawer. Only this element should be cleared and rebuilt when routes change.
	drawer_content: Optional[ui.element] = None

	# Label shown above the page (breadcrumb like "/dashboard")
	breadcrumb: Optional[ui.label] = None

	# The container where the current page content is rendered
	# (router clears it and renders the selected page inside)
	main_area: Optional[ui.column] = None

	# Drawer navigation buttons indexed by route key (e.g. "dashboard", "wallet").
	nav_buttons: dict[str, ui.button] = field(default_factory=dict)

	# -------- Application state (per client) --------
	# UI-bound fields shared by header, drawer and pages.
	state: AppState = None

	# -------- Store -> UI communication --------
	# Thread-safe bridge; snapshot listeners hand their deliveries to emit_call.
	bridge: Optional[UiBridge] = None

	# -------- Data --------
	store: Optional[DocumentStore] = None

	# Business profiles of the signed-in user + the selected one.
	profiles: Optional[ProfileContext] = None

	# Parameters of the current route (e.g. {"grant_id": "..."} for edit_grant)
	route_params: dict[str, Any] = field(default_factory=dict)

	# Page-scoped resources (live queries, listener removers). Closed by the router
	# before the next page renders and when the client disconnects.
	_resources: list[Any] = field(default_factory=list)

	# -----------------------------
	# helpers
	# -----------------------------

	@property
	def dispatch(self) -> Callable[[Callable[[], None]], None]:
		return self.bridge.emit_call

	def own(self, resource: T) -> T:
		"""Register something with close() (or a plain callable) for teardown on navigation."""
		self._resources.append(resource)
		return resource

	def close_page_resources(self) -> None:
		resources, self._resources = self._resources, []
		for resource in reversed(resources):
			try:
				if callable(getattr(resource, "close", None)):
					resource.close()
				elif callable(resource):
					resource()
			except Exception:
				logger.exception(f"[close_page_resources] - resource_close_failed - resource={resource!r}")

	def set_state_many(self, **values: Any) -> None:
		for key, value in values.items():
			setattr(self.state, key, value)
