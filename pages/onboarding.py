# pages/onboarding.py
from __future__ import annotations

from nicegui import run, ui
from loguru import logger

from auth.auth_service import update_display_name
from auth.session import get_user, set_display_name
from layout.app_style import button_props
from services.accounts import (
    ONBOARDING_REQUIRED,
    OnboardingError,
    complete_onboarding,
    default_onboarding_form,
    validate_onboarding_form,
)
from services.document_store import DocumentStore, StoreError


FIELD_LABELS = {
    "firstName": "First name",
    "lastName": "Last name",
    "businessName": "Business name",
    "businessNumber": "Business phone",
    "businessEmail": "Business email",
    "website": "Website",
    "industry": "Industry",
    "roleInCompany": "Your role in the company",
    "businessDescription": "Describe your business",
}


def register_onboarding_page(store: DocumentStore) -> None:
    @ui.page("/onboarding")
    def onboarding_view():
        user = get_user()
        if user is None:
            ui.navigate.to("/login?reason=auth_required")
            return

        form = default_onboarding_form(user.display_name, user.email)
        inputs: dict[str, ui.element] = {}
        state = {"busy": False}

        with ui.card().classes("w-[min(720px,95vw)] mx-auto mt-12 gap-3"):
            ui.label("Tell us about you and your business").classes("text-2xl font-bold")
            ui.label("We use this to prefill your grant applications.").classes("text-sm text-gray-500")

            with ui.grid(columns=2).classes("w-full gap-3"):
                for name in ("firstName", "lastName", "businessName", "businessEmail", "businessNumber", "website", "industry", "roleInCompany"):
                    label = FIELD_LABELS[name] + (" *" if name in ONBOARDING_REQUIRED else "")
                    inputs[name] = ui.input(label).bind_value(form, name).classes("w-full")
            inputs["businessDescription"] = ui.textarea(FIELD_LABELS["businessDescription"]).bind_value(
                form, "businessDescription"
            ).classes("w-full")

            async def finish() -> None:
                if state["busy"]:
                    return
                errors = validate_onboarding_form(form)
                for name, element in inputs.items():
                    element.props(remove="error error-message")
                    if name in errors:
                        element.props(f'error error-message="{errors[name]}"')
                if errors:
                    return
                state["busy"] = True
                submit_btn.disable()
                try:
                    display_name = await run.io_bound(
                        lambda: complete_onboarding(store, uid=user.uid, email=user.email, form=dict(form))
                    )
                except (OnboardingError, StoreError) as ex:
                    logger.warning(f"[finish] - onboarding_failed - uid={user.uid} error={ex}")
                    ui.notify("Could not save your details. Please try again.", type="negative")
                    return
                finally:
                    state["busy"] = False
                    submit_btn.enable()

                if not await run.io_bound(update_display_name, store, user, display_name):
                    logger.warning(f"[finish] - display_name_not_propagated - uid={user.uid}")
                set_display_name(display_name)
                ui.navigate.to("/")

            with ui.row().classes("w-full justify-end"):
                submit_btn = ui.button("Continue", icon="arrow_forward", on_click=finish).props(button_props("primary"))
