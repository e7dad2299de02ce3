from __future__ import annotations

from typing import Callable, Optional, Literal
from nicegui import ui

from layout.app_style import section_subtitle_classes
from layout.context import PageContext


ContentBuilder = Callable[[ui.element], None]
HeaderActionsBuilder = Callable[[], None]
ScrollMode = Literal["scaffold", "none"]


def build_page(
	ctx: PageContext,
	container: ui.element,
	*,
	title: str | None = None,
	subtitle: str | None = None,
	content: ContentBuilder,
	header_actions: Optional[HeaderActionsBuilder] = None,
	content_padding_classes: str = "",  # e.g. "pr-1"
	scroll_mode: ScrollMode = "scaffold",
) -> None:
	"""
	Standard page layout:

	- Fills available height (h-full + min-h-0)
	- Title row with optional right-aligned actions (e.g. "Create Grant")
	- Scroll behavior selectable:
		- scroll_mode="scaffold": the scaffold content area scrolls (default)
		- scroll_mode="none": scaffold does NOT scroll; page content must manage its own scroll
	"""

	with container:
		# Outer column must be full height and allow inner flex child to shrink
		with ui.column().classes("w-full h-full min-h-0 min-w-0"):
			if title or header_actions:
				with ui.row().classes("w-full items-center"):
					with ui.column().classes("gap-0"):
						if title:
							ui.label(title).classes("text-2xl font-bold")
						if subtitle:
							ui.label(subtitle).classes(section_subtitle_classes())
					ui.space()
					if header_actions is not None:
						with ui.row().classes("items-center gap-2"):
							header_actions()

			overflow = "overflow-auto" if scroll_mode == "scaffold" else "overflow-hidden"
			with ui.column().classes(
				"w-full flex-1 min-h-0 min-w-0 %s %s" % (overflow, content_padding_classes or "")
			) as content_area:
				content(content_area)
