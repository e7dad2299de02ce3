# pages/grant_detail.py
from __future__ import annotations

from typing import Any, Optional

from nicegui import run, ui
from loguru import logger

from auth.session import is_admin, is_logged_in
from layout.app_style import button_props, panel_classes, section_title_classes
from pages.utils.cards import status_chip
from services.document_store import DocumentStore, StoreError
from services.grants import GRANTS_COLLECTION, STATUS_DRAFT, format_amount, format_date, status_label


def _fetch(store: DocumentStore, grant_id: str, include_drafts: bool) -> Optional[dict]:
    record = store.get(GRANTS_COLLECTION, grant_id)
    if record is None or (record.get("status") == STATUS_DRAFT and not include_drafts):
        return None
    return record


def _fact(label: str, value: Any) -> None:
    with ui.column().classes("gap-0"):
        ui.label(label).classes("text-xs text-gray-500")
        ui.label(str(value or "N/A")).classes("text-sm font-medium")


def _bullets(title: str, items: Any) -> None:
    values = [str(v) for v in (items or []) if str(v or "").strip()]
    if not values:
        return
    ui.label(title).classes(section_title_classes())
    for value in values:
        with ui.row().classes("items-start gap-2 no-wrap"):
            ui.icon("check").classes("text-positive")
            ui.label(value).classes("text-sm")


def _render_grant(grant: dict) -> None:
    with ui.card().classes(panel_classes() + " w-full gap-3"):
        with ui.row().classes("w-full items-start"):
            with ui.column().classes("gap-1 flex-1"):
                ui.label(grant.get("grantName") or "Untitled Grant").classes("text-2xl font-bold")
                if grant.get("organization"):
                    ui.label(grant["organization"]).classes("text-sm text-gray-500")
            status_chip(grant.get("status"), status_label(grant.get("status")))

        ui.label(grant.get("shortDescription") or "").classes("text-base")
        with ui.row().classes("w-full gap-8"):
            _fact("Grant size", format_amount(grant.get("amount"), grant.get("currency")))
            _fact("Apply by", format_date(grant.get("applicationDeadline")))
            _fact("Deadline", format_date(grant.get("deadline")))
            _fact("Funding type", grant.get("fundingType"))
            _fact("Region", grant.get("geographicScope") or "Global")
            _fact("Category", grant.get("category"))

        if grant.get("fullDescription"):
            ui.label("About").classes(section_title_classes())
            ui.markdown(str(grant["fullDescription"]))
        if grant.get("eligibility"):
            ui.label("Eligibility").classes(section_title_classes())
            ui.label(str(grant["eligibility"])).classes("text-sm")
        _bullets("Requirements", grant.get("requirements"))
        _bullets("Benefits", grant.get("benefits"))
        if grant.get("applicationProcess"):
            ui.label("How to apply").classes(section_title_classes())
            ui.label(str(grant["applicationProcess"])).classes("text-sm")
        for custom in grant.get("customFields") or []:
            if str(custom.get("value") or "").strip():
                _fact(custom.get("name"), custom.get("value"))

        tags = [t for t in grant.get("tags") or [] if str(t or "").strip()]
        if tags:
            with ui.row().classes("gap-2"):
                for tag in tags:
                    ui.badge(str(tag), color="grey-3", text_color="grey-9")

        with ui.row().classes("w-full items-center gap-4 text-sm"):
            if grant.get("contactEmail"):
                ui.link(grant["contactEmail"], f"mailto:{grant['contactEmail']}")
            if grant.get("website"):
                ui.link("Website", grant["website"], new_tab=True)
            ui.space()
            if is_logged_in():
                ui.button("Apply in AutoGrant", on_click=lambda: ui.navigate.to("/?page=opportunities")).props(
                    button_props("primary")
                )
            else:
                ui.button("Sign in to apply", on_click=lambda: ui.navigate.to("/login")).props(button_props("primary"))


def register_grant_detail_page(store: DocumentStore) -> None:
    @ui.page("/grants/{grant_id}")
    def grant_detail_view(grant_id: str):
        # drafts are only visible to administrators
        admin = is_admin()
        with ui.column().classes("w-[min(900px,95vw)] mx-auto mt-8 gap-4") as body:
            ui.link("AutoGrant", "/").classes("text-xl font-bold text-primary no-underline")
            spinner = ui.spinner(size="lg")

        async def load() -> None:
            try:
                grant = await run.io_bound(_fetch, store, grant_id, admin)
            except StoreError as ex:
                logger.warning(f"[grant_detail.load] - grant_load_failed - grant_id={grant_id} error={ex}")
                grant = None
                ui.notify("Failed to load grant.", type="negative")
            spinner.delete()
            with body:
                if grant is None:
                    with ui.column().classes("w-full items-center py-12 gap-2"):
                        ui.icon("search_off").classes("text-5xl text-gray-400")
                        ui.label("Grant not found").classes("text-xl font-semibold")
                    return
                _render_grant(grant)

        ui.timer(0, load, once=True)
