from __future__ import annotations

from typing import Any, Callable, Optional

from nicegui import ui

from layout.app_style import panel_classes, stat_value_classes, status_color


def stat_card(title: str, value: Any, *, caption: str = "", icon: str = "insights", icon_color: str = "text-primary") -> ui.label:
    """Small KPI card; returns the value label so callers can update it."""
    with ui.card().classes(panel_classes() + " flex-1 min-w-[200px]"):
        with ui.row().classes("w-full items-center no-wrap"):
            ui.label(title).classes("text-sm text-gray-500")
            ui.space()
            ui.icon(icon).classes(f"text-2xl {icon_color}")
        value_label = ui.label(str(value)).classes(stat_value_classes())
        if caption:
            ui.label(caption).classes("text-xs text-gray-500")
    return value_label


def status_chip(status: Any, label: Optional[str] = None) -> None:
    ui.badge(label or str(status or "N/A"), color=status_color(status)).props("rounded").classes("px-2 py-1")


def profile_completion_card(percentage: int, missing: list[str], *, on_complete: Callable[[], None]) -> None:
    """Hidden once the profile is complete."""
    if percentage >= 100:
        return
    with ui.card().classes(panel_classes() + " border-t-4 border-primary"):
        with ui.row().classes("w-full items-center gap-4 no-wrap"):
            ui.icon("person").classes("text-3xl text-gray-500")
            with ui.column().classes("flex-1 gap-1"):
                ui.label(
                    "Your profile is not yet complete. You need a complete profile to get full access to AutoGrant."
                ).classes("text-base font-medium")
                if missing:
                    ui.label("Missing: " + ", ".join(missing)).classes("text-xs text-gray-500")
                ui.button("Complete your profile", icon="arrow_forward", on_click=on_complete).props("flat no-caps dense")
            with ui.column().classes("items-center gap-1"):
                ui.circular_progress(value=percentage, max=100, show_value=False, size="64px").props("color=primary")
                ui.label(f"{percentage}% complete").classes("text-xs text-gray-500")
