# pages/business.py
from __future__ import annotations

from typing import Any, Optional

from nicegui import run, ui
from loguru import logger

from auth.session import get_user
from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.app_style import button_props, panel_classes, section_subtitle_classes
from services.business_profiles import (
    STEP_DOCUMENTS,
    WIZARD_STEPS,
    BusinessField,
    BusinessWizard,
    add_business_profile,
    complete_business_data,
    load_business_profile,
    missing_required,
    save_business_profile,
)
from services.document_store import StoreError


def _field_input(field_def: BusinessField, form: dict[str, Any]) -> ui.element:
    def on_change(e: Any) -> None:
        form[field_def.name] = e.value if e.value is not None else ""

    label = field_def.label + (" *" if field_def.required else "")
    value = form.get(field_def.name, "")
    if field_def.kind == "select":
        options = list(field_def.options)
        if value and value not in options:
            options.append(value)
        return ui.select(options, label=label, value=value or None, on_change=on_change).classes("w-full")
    if field_def.kind == "textarea":
        return ui.textarea(label, value=str(value or ""), on_change=on_change).classes("w-full")
    if field_def.kind == "number":
        return ui.input(label, value=str(value or ""), on_change=on_change).props("type=number").classes("w-full")
    el = ui.input(label, value=str(value or ""), on_change=on_change).classes("w-full")
    if field_def.kind in ("url", "email", "tel"):
        el.props(f"type={field_def.kind}")
    return el


def open_add_profile_dialog(ctx: PageContext) -> None:
    user = get_user()
    if user is None:
        return
    d = ui.dialog()
    with d:
        with ui.card().classes("w-[min(440px,95vw)] gap-3"):
            ui.label("Add business").classes("text-lg font-semibold")
            name = ui.input("Business name").classes("w-full")

            async def create() -> None:
                if not (name.value or "").strip():
                    name.props('error error-message="Business name is required"')
                    return
                try:
                    profile_id = await run.io_bound(add_business_profile, ctx.store, user.uid, name.value)
                except StoreError as ex:
                    logger.warning(f"[create] - add_profile_failed - uid={user.uid} error={ex}")
                    ui.notify("Failed to add business.", type="negative")
                    return
                ctx.profiles.selected_id = profile_id
                ui.notify("Business added.", type="positive")
                d.close()

            with ui.row().classes("w-full justify-end gap-2"):
                ui.button("Cancel", on_click=d.close).props("flat")
                ui.button("Add", on_click=create).props(button_props("primary"))
    d.open()


def render(container: ui.element, ctx: PageContext) -> None:
    user = get_user()
    uid = user.uid if user else ""
    wizard = BusinessWizard()
    data: dict[str, Any] = {"profile_id": None, "form": complete_business_data(None), "loading": True, "saving": False}
    inputs: dict[str, ui.element] = {}

    async def load_selected(profile_id: Optional[str]) -> None:
        if profile_id == data["profile_id"] and not data["loading"]:
            return
        data["profile_id"] = profile_id
        data["loading"] = True
        wizard_view.refresh()
        record = None
        if uid and profile_id:
            try:
                record = await run.io_bound(load_business_profile, ctx.store, uid, profile_id)
            except StoreError as ex:
                logger.warning(f"[load_selected] - profile_load_failed - uid={uid} profile_id={profile_id} error={ex}")
                ui.notify("Failed to load business profile.", type="negative")
        data["form"] = complete_business_data(record)
        data["loading"] = False
        wizard.go_to(wizard.steps[0])
        wizard_view.refresh()

    def mark_missing(step: str) -> list[str]:
        missing = missing_required(data["form"], step)
        for name, element in inputs.items():
            element.props(remove="error error-message")
            if name in missing:
                element.props('error error-message="This field is required"')
        return missing

    def go_next() -> None:
        if mark_missing(wizard.step):
            ui.notify("Please fill in the required fields.", type="warning")
            return
        wizard.next()
        wizard_view.refresh()

    def go_prev() -> None:
        wizard.prev()
        wizard_view.refresh()

    def go_to(step: str) -> None:
        wizard.go_to(step)
        wizard_view.refresh()

    async def save() -> None:
        if data["saving"] or not data["profile_id"]:
            return
        missing = missing_required(data["form"])
        if missing:
            first_step = next(s for s, fields in WIZARD_STEPS.items() if any(f.name in missing for f in fields))
            go_to(first_step)
            mark_missing(first_step)
            ui.notify("Please fill in the required fields.", type="warning")
            return
        data["saving"] = True
        try:
            await run.io_bound(save_business_profile, ctx.store, uid, data["profile_id"], dict(data["form"]))
        except StoreError as ex:
            logger.warning(f"[save] - profile_save_failed - uid={uid} profile_id={data['profile_id']} error={ex}")
            ui.notify("Failed to save business profile.", type="negative")
            return
        finally:
            data["saving"] = False
        ui.notify("Business profile saved.", type="positive")

    @ui.refreshable
    def wizard_view() -> None:
        inputs.clear()
        if data["loading"]:
            with ui.row().classes("w-full justify-center py-8"):
                ui.spinner(size="lg")
            return
        if not data["profile_id"]:
            with ui.column().classes("w-full items-center py-12 gap-2"):
                ui.icon("store").classes("text-5xl text-gray-400")
                ui.label("No business yet").classes("text-xl font-semibold")
                ui.button("Add business", icon="add", on_click=lambda: open_add_profile_dialog(ctx)).props(
                    button_props("primary")
                )
            return

        with ui.row().classes("w-full gap-4 items-start no-wrap"):
            with ui.column().classes("w-56 gap-1 shrink-0"):
                for index, step in enumerate(wizard.steps):
                    active = step == wizard.step
                    ui.button(f"{index + 1}. {step}", on_click=lambda s=step: go_to(s)).props(
                        "unelevated no-caps align=left color=primary" if active else "flat no-caps align=left color=grey-8"
                    ).classes("w-full")

            with ui.card().classes(panel_classes() + " flex-1 min-w-0"):
                ui.label(wizard.step).classes("text-lg font-semibold")
                if wizard.step == STEP_DOCUMENTS:
                    ui.label(
                        "Document uploads are not available yet. Keep your registration certificate "
                        "and financial statements at hand for grant applications."
                    ).classes(section_subtitle_classes())
                else:
                    with ui.grid(columns=2).classes("w-full gap-3"):
                        for field_def in WIZARD_STEPS[wizard.step]:
                            inputs[field_def.name] = _field_input(field_def, data["form"])

                with ui.row().classes("w-full items-center gap-2 mt-2"):
                    ui.button("Back", on_click=go_prev).props("flat no-caps").set_enabled(not wizard.is_first)
                    ui.space()
                    if wizard.is_last:
                        ui.button("Save", icon="save", on_click=save).props(button_props("primary"))
                    else:
                        ui.button("Save draft", on_click=save).props(button_props("neutral"))
                        ui.button("Next", icon="chevron_right", on_click=go_next).props(button_props("primary"))

    build_page(
        ctx,
        container,
        title="Business",
        subtitle="Your business profile is used to prefill grant applications",
        content=lambda _parent: wizard_view(),
        header_actions=lambda: ui.button(
            "Add business", icon="add_business", on_click=lambda: open_add_profile_dialog(ctx)
        ).props(button_props("neutral")),
    )

    def on_profile(selected: Optional[dict]) -> None:
        with container:
            ui.timer(0, lambda: load_selected((selected or {}).get("id")), once=True)

    if ctx.profiles is not None:
        ctx.own(ctx.profiles.add_listener(on_profile))
    ui.timer(0, lambda: load_selected(ctx.profiles.selected_id if ctx.profiles else None), once=True)
