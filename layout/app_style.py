from __future__ import annotations

from typing import Any


BUTTON_VARIANTS: dict[str, str] = {
    "primary": "color=primary text-color=white unelevated no-caps",
    "secondary": "color=secondary text-color=white unelevated no-caps",
    "success": "color=positive text-color=white unelevated no-caps",
    "warning": "color=warning text-color=black unelevated no-caps",
    "danger": "color=negative text-color=white unelevated no-caps",
    "neutral": "outline color=secondary no-caps",
    "flat": "flat no-caps",
}

# Quasar colors for status chips (grants, applications, milestones, transactions)
STATUS_COLORS: dict[str, str] = {
    # grants
    "Open": "positive",
    "Draft": "grey-7",
    "Closed": "negative",
    "Review": "warning",
    # applications
    "submitted": "info",
    "in-review": "warning",
    "approved": "positive",
    "won": "positive",
    "rejected": "negative",
    "missed": "negative",
    "withdrawn": "grey-7",
    "draft": "grey-7",
    # milestones
    "Pending": "grey-7",
    "In Progress": "info",
    "Completed": "positive",
    # transactions
    "Cancelled": "negative",
}


def button_props(variant: str = "primary") -> str:
    return BUTTON_VARIANTS.get(variant, BUTTON_VARIANTS["primary"])


def button_classes(full: bool = False) -> str:
    base = "h-[40px] px-4 rounded-xl font-semibold"
    return f"{base} w-full" if full else base


def status_color(status: Any) -> str:
    return STATUS_COLORS.get(str(status or ""), "grey-6")


def panel_classes(padded: bool = True) -> str:
    base = "w-full rounded-xl shadow-sm"
    return f"{base} p-4" if padded else base


def section_title_classes() -> str:
    return "text-base font-semibold text-gray-800"


def section_subtitle_classes() -> str:
    return "text-sm text-gray-500"


def stat_value_classes() -> str:
    return "text-3xl font-bold text-primary"
