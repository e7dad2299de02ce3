# pages/admin/grant_form.py
from __future__ import annotations

from typing import Any, Optional

from nicegui import run, ui
from loguru import logger

from auth.session import get_user
from layout.context import PageContext
from layout.page_scaffold import build_page
from layout.router import navigate
from layout.app_style import button_props, panel_classes, section_title_classes
from services.document_store import StoreError
from services.grants import (
    CATEGORIES,
    CURRENCIES,
    CUSTOM_FIELD_TYPES,
    FUNDING_TYPES,
    GRANT_STATUSES,
    RENEWABILITY_OPTIONS,
    REQUIRED_FIELDS,
    STATUS_DRAFT,
    GrantValidationError,
    add_array_item,
    add_custom_field,
    create_grant,
    default_grant_form,
    load_grant_form,
    remove_array_item,
    remove_custom_field,
    set_array_item,
    status_label,
    update_custom_field,
    update_grant,
    validate_grant_form,
)


ARRAY_LABELS = {
    "requirements": ("Application Requirements", "Enter requirement", "Add Requirement"),
    "benefits": ("Benefits/What's Offered", "Enter benefit", "Add Benefit"),
    "tags": ("Tags", "Enter tag", "Add Tag"),
}


def render(container: ui.element, ctx: PageContext) -> None:
    grant_id: Optional[str] = ctx.route_params.get("id") or None
    editing = grant_id is not None
    data: dict[str, Any] = {"form": default_grant_form(), "loading": editing, "busy": False}
    inputs: dict[str, ui.element] = {}

    # ----- field helpers -----

    def label_for(name: str, label: str) -> str:
        return f"{label} *" if name in REQUIRED_FIELDS else label

    def text(name: str, label: str, *, kind: str = "", placeholder: str = "") -> None:
        el = ui.input(label_for(name, label), placeholder=placeholder).bind_value(data["form"], name).classes("w-full")
        if kind:
            el.props(f"type={kind}")
        inputs[name] = el

    def area(name: str, label: str, *, placeholder: str = "") -> None:
        inputs[name] = ui.textarea(label_for(name, label), placeholder=placeholder).bind_value(
            data["form"], name
        ).classes("w-full")

    def choice(name: str, label: str, options: Any) -> None:
        if data["form"].get(name) not in options:
            data["form"][name] = None
        inputs[name] = ui.select(options, label=label_for(name, label)).bind_value(data["form"], name).classes("w-full")

    def show_errors(errors: dict[str, str]) -> None:
        for name, element in inputs.items():
            element.props(remove="error error-message")
            if name in errors:
                element.props(f'error error-message="{errors[name]}"')

    # ----- array / custom fields -----

    def array_editor(name: str) -> None:
        title, placeholder, add_label = ARRAY_LABELS[name]

        @ui.refreshable
        def editor() -> None:
            ui.label(title).classes("text-sm font-medium")
            items = data["form"][name]
            for index, value in enumerate(items):
                with ui.row().classes("w-full items-center gap-2 no-wrap"):
                    ui.input(
                        placeholder=placeholder,
                        value=value,
                        on_change=lambda e, i=index: set_array_item(data["form"], name, i, e.value or ""),
                    ).classes("flex-1")
                    if len(items) > 1:
                        ui.button(
                            icon="close",
                            on_click=lambda i=index: (remove_array_item(data["form"], name, i), editor.refresh()),
                        ).props("flat round dense color=negative")
            ui.button(
                add_label, icon="add", on_click=lambda: (add_array_item(data["form"], name), editor.refresh())
            ).props("flat dense no-caps color=primary")

        editor()

    @ui.refreshable
    def custom_fields() -> None:
        fields = data["form"]["customFields"]
        if not fields:
            ui.label("No custom fields yet.").classes("text-sm text-gray-500")
        for index, custom in enumerate(fields):
            with ui.row().classes("w-full items-center gap-2 no-wrap"):
                ui.input(
                    custom.get("name") or "Field",
                    value=str(custom.get("value") or ""),
                    on_change=lambda e, i=index: update_custom_field(data["form"], i, e.value or ""),
                ).props(f"type={custom.get('type') or 'text'}").classes("flex-1")
                ui.button(
                    icon="delete",
                    on_click=lambda i=index: (remove_custom_field(data["form"], i), custom_fields.refresh()),
                ).props("flat round dense color=negative")

        with ui.row().classes("w-full items-end gap-2 no-wrap"):
            new_name = ui.input("New field name").classes("flex-1")
            new_type = ui.select(list(CUSTOM_FIELD_TYPES), value="text", label="Type").classes("w-32")

            def add() -> None:
                try:
                    add_custom_field(data["form"], new_name.value, new_type.value)
                except GrantValidationError as ex:
                    ui.notify(str(ex), type="warning")
                    return
                custom_fields.refresh()

            ui.button("Add Field", icon="add", on_click=add).props("flat dense no-caps color=primary")

    # ----- save -----

    async def save(status: Optional[str] = None) -> None:
        if data["busy"]:
            return
        form = data["form"]
        if status is not None:
            form["status"] = status
        errors = validate_grant_form(form)
        show_errors(errors)
        if errors:
            ui.notify("Please fix the highlighted fields.", type="warning")
            return

        user = get_user()
        data["busy"] = True
        try:
            if editing:
                await run.io_bound(update_grant, ctx.store, grant_id, form)
            else:
                await run.io_bound(
                    lambda: create_grant(
                        ctx.store,
                        form,
                        created_by=user.uid if user else "",
                        author_name=user.name if user else None,
                    )
                )
        except GrantValidationError as ex:
            show_errors(ex.errors)
            ui.notify(str(ex), type="warning")
            return
        except StoreError as ex:
            logger.warning(f"[save] - grant_save_failed - grant_id={grant_id} error={ex}")
            ui.notify("Failed to save grant. Please try again.", type="negative")
            return
        finally:
            data["busy"] = False
        ui.notify("Grant updated successfully!" if editing else "Grant created successfully!", type="positive")
        navigate(ctx, "manage_grants")

    # ----- layout -----

    @ui.refreshable
    def form_view() -> None:
        inputs.clear()
        if data["loading"]:
            with ui.row().classes("w-full justify-center py-8"):
                ui.spinner(size="lg")
            return
        if data["form"] is None:
            ui.label("Grant not found.").classes("text-lg text-gray-500")
            return

        def section(title: str) -> ui.card:
            card = ui.card().classes(panel_classes() + " w-full gap-3")
            with card:
                ui.label(title).classes(section_title_classes())
            return card

        with ui.column().classes("w-full gap-4"):
            with section("Basic Information"):
                with ui.grid(columns=2).classes("w-full gap-3"):
                    text("grantName", "Grant Name")
                    text("organization", "Organization")
                    choice("category", "Category", list(CATEGORIES))
                    text("website", "Website", kind="url")
                text("shortDescription", "Short Description", placeholder="One or two sentences for the grant card")
                area("fullDescription", "Full Description")

            with section("Financial Information"):
                with ui.grid(columns=3).classes("w-full gap-3"):
                    text("amount", "Amount", kind="number", placeholder="Grant amount")
                    choice("currency", "Currency", list(CURRENCIES))
                    choice("fundingType", "Funding Type", list(FUNDING_TYPES))

            with section("Timeline"):
                with ui.grid(columns=3).classes("w-full gap-3"):
                    text("applicationDeadline", "Application Deadline", kind="date")
                    text("deadline", "Program Deadline", kind="date")
                    text("duration", "Program Duration", placeholder="e.g., 12 months")
                    choice("renewability", "Renewability", list(RENEWABILITY_OPTIONS))

            with section("Eligibility & Requirements"):
                text("targetAudience", "Target Audience", placeholder="e.g., Small businesses, Startups, Non-profits")
                text("geographicScope", "Geographic Scope", placeholder="e.g., National, Regional, Global")
                area("eligibility", "Eligibility Criteria")
                array_editor("requirements")

            with section("Benefits & Application Process"):
                array_editor("benefits")
                area("applicationProcess", "Application Process")
                text("maxApplications", "Maximum Applications", kind="number", placeholder="Leave blank for unlimited")

            with section("Contact Information"):
                with ui.grid(columns=2).classes("w-full gap-3"):
                    text("contactEmail", "Contact Email", kind="email", placeholder="contact@organization.com")
                    text("contactPhone", "Contact Phone", kind="tel")

            with section("Publishing"):
                choice("status", "Status", {s: status_label(s) for s in GRANT_STATUSES})
                array_editor("tags")

            with section("Custom Fields"):
                custom_fields()

            with ui.row().classes("w-full justify-end gap-2"):
                ui.button("Cancel", on_click=lambda: navigate(ctx, "manage_grants")).props("flat")
                if not editing:
                    ui.button("Save as Draft", on_click=lambda: save(STATUS_DRAFT)).props(button_props("neutral"))
                ui.button("Save Changes" if editing else "Create Grant", on_click=lambda: save()).props(
                    button_props("primary")
                )

    build_page(
        ctx,
        container,
        title="Edit Grant" if editing else "Create Grant",
        subtitle="Update the grant details" if editing else "Publish a new funding opportunity",
        content=lambda _parent: form_view(),
    )

    async def load() -> None:
        try:
            data["form"] = await run.io_bound(load_grant_form, ctx.store, grant_id)
        except StoreError as ex:
            logger.warning(f"[grant_form.load] - grant_load_failed - grant_id={grant_id} error={ex}")
            ui.notify("Failed to load grant.", type="negative")
            data["form"] = None
        data["loading"] = False
        form_view.refresh()

    if editing:
        ui.timer(0, load, once=True)
