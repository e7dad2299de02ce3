# pages/support.py
from __future__ import annotations

from typing import Any

from nicegui import run, ui
from loguru import logger

from auth.session import get_user
from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.app_style import button_props, panel_classes, section_subtitle_classes, section_title_classes
from services.document_store import StoreError
from services.list_view import ALL
from services.support import (
    FAQ_CATEGORIES,
    TICKET_CATEGORIES,
    TICKET_PRIORITIES,
    category_counts,
    default_ticket_form,
    search_faqs,
    submit_ticket,
    validate_ticket,
)


def render(container: ui.element, ctx: PageContext) -> None:
    user = get_user()
    filters: dict[str, Any] = {"query": "", "category": ALL}
    counts = category_counts()

    def set_category(category: str) -> None:
        filters["category"] = category
        categories.refresh()
        faq_list.refresh()

    def on_search(e: Any) -> None:
        filters["query"] = e.value or ""
        faq_list.refresh()

    @ui.refreshable
    def categories() -> None:
        with ui.row().classes("gap-2 flex-wrap"):
            for key, label in FAQ_CATEGORIES.items():
                active = filters["category"] == key
                ui.button(f"{label} ({counts.get(key, 0)})", on_click=lambda k=key: set_category(k)).props(
                    "unelevated no-caps color=primary" if active else "outline no-caps color=grey-8"
                )

    @ui.refreshable
    def faq_list() -> None:
        faqs = search_faqs(filters["query"], filters["category"])
        if not faqs:
            ui.label("No questions match your search. Send us a ticket below.").classes("text-sm text-gray-500")
            return
        for faq in faqs:
            with ui.expansion(faq["question"], icon="star" if faq.get("popular") else "help_outline").classes(
                "w-full border rounded"
            ):
                ui.label(faq["answer"]).classes("text-sm text-gray-700")

    def ticket_form() -> None:
        # selects hold None until a choice is made
        form = {**default_ticket_form(), "category": None, "priority": None}
        state = {"busy": False}
        with ui.card().classes(panel_classes() + " w-full"):
            ui.label("Still need help?").classes(section_title_classes())
            ui.label("Send a ticket and our team will get back to you by email.").classes(section_subtitle_classes())
            inputs: dict[str, ui.element] = {
                "subject": ui.input("Subject").bind_value(form, "subject").classes("w-full"),
            }
            with ui.row().classes("w-full gap-3 no-wrap"):
                inputs["category"] = ui.select(TICKET_CATEGORIES, label="Category").bind_value(form, "category").classes("flex-1")
                inputs["priority"] = ui.select(
                    {p: p.capitalize() for p in TICKET_PRIORITIES}, label="Priority"
                ).bind_value(form, "priority").classes("flex-1")
            inputs["message"] = ui.textarea("Message").bind_value(form, "message").classes("w-full")

            async def send() -> None:
                if state["busy"]:
                    return
                errors = validate_ticket(form)
                for name, element in inputs.items():
                    element.props(remove="error error-message")
                    if name in errors:
                        element.props(f'error error-message="{errors[name]}"')
                if errors:
                    return
                if user is None:
                    ui.notify("You must be logged in to send a ticket.", type="negative")
                    return
                state["busy"] = True
                try:
                    await run.io_bound(lambda: submit_ticket(ctx.store, uid=user.uid, email=user.email, form=dict(form)))
                except (StoreError, ValueError) as ex:
                    logger.warning(f"[send] - ticket_failed - uid={user.uid} error={ex}")
                    ui.notify("Failed to send your ticket.", type="negative")
                    return
                finally:
                    state["busy"] = False
                form.update({**default_ticket_form(), "category": None, "priority": None})
                ui.notify("Ticket sent. We will reply by email.", type="positive")

            with ui.row().classes("w-full justify-end"):
                ui.button("Send ticket", icon="send", on_click=send).props(button_props("primary"))

    def build_content(_parent: ui.element) -> None:
        with ui.column().classes("w-full gap-4"):
            ui.input(placeholder="Search help articles", on_change=on_search).props(
                "dense outlined clearable"
            ).classes("w-full")
            categories()
            faq_list()
            ticket_form()

    build_page(ctx, container, title="Support", subtitle="Answers to common questions", content=build_content)
