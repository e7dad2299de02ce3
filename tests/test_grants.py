from __future__ import annotations

import unittest
from datetime import datetime, timezone

from services.document_store import SERVER_TIMESTAMP, LocalDocumentStore
from services.grants import (
    STATUS_OPEN,
    GrantValidationError,
    add_array_item,
    add_custom_field,
    build_grant_payload,
    create_grant,
    default_grant_form,
    format_amount,
    format_date,
    load_grant_form,
    remove_array_item,
    remove_custom_field,
    set_array_item,
    status_label,
    to_opportunity,
    update_custom_field,
    update_grant,
    validate_grant_form,
)


def _valid_form(**overrides) -> dict:
    form = default_grant_form()
    form.update(
        grantName="  Green Energy Fund ",
        organization="Climate Trust",
        shortDescription="Funding for clean energy pilots",
        amount="25,000",
        applicationDeadline="2025-03-31",
    )
    form.update(overrides)
    return form


class ValidationTests(unittest.TestCase):
    def test_default_form_reports_required_fields(self) -> None:
        errors = validate_grant_form(default_grant_form())
        self.assertEqual(
            set(errors), {"grantName", "organization", "shortDescription", "amount", "applicationDeadline"}
        )

    def test_amount_must_be_positive(self) -> None:
        self.assertIn("amount", validate_grant_form(_valid_form(amount="0")))
        self.assertIn("amount", validate_grant_form(_valid_form(amount="lots")))

    def test_bad_email_and_date(self) -> None:
        errors = validate_grant_form(_valid_form(contactEmail="nope", applicationDeadline="31/03/2025"))
        self.assertEqual(set(errors), {"contactEmail", "applicationDeadline"})

    def test_valid_form_has_no_errors(self) -> None:
        self.assertEqual(validate_grant_form(_valid_form()), {})


class PayloadTests(unittest.TestCase):
    def test_payload_cleans_arrays_and_numbers(self) -> None:
        form = _valid_form(requirements=["Registered business", " ", ""], tags=["", "energy "], maxApplications="")
        form["customFields"] = [{"name": "Region", "value": "West", "type": "text"}, {"name": " ", "value": "x"}]
        payload = build_grant_payload(form)
        self.assertEqual(payload["grantName"], "Green Energy Fund")
        self.assertEqual(payload["amount"], 25000)
        self.assertEqual(payload["requirements"], ["Registered business"])
        self.assertEqual(payload["tags"], ["energy"])
        self.assertEqual(payload["customFields"], [{"name": "Region", "value": "West", "type": "text"}])
        self.assertEqual(payload["maxApplications"], "")
        self.assertIs(payload["updatedAt"], SERVER_TIMESTAMP)
        self.assertNotIn("createdBy", payload)

    def test_creation_fields(self) -> None:
        payload = build_grant_payload(_valid_form(), created_by="admin-1", author_name=None)
        self.assertEqual(payload["createdBy"], "admin-1")
        self.assertEqual(payload["authorName"], "Admin")
        self.assertIs(payload["createdAt"], SERVER_TIMESTAMP)

    def test_invalid_form_raises_with_errors(self) -> None:
        with self.assertRaises(GrantValidationError) as ctx:
            build_grant_payload(default_grant_form())
        self.assertIn("grantName", ctx.exception.errors)


class StoreRoundTripTests(unittest.TestCase):
    def test_create_load_and_update(self) -> None:
        store = LocalDocumentStore()
        grant_id = create_grant(store, _valid_form(), created_by="admin-1", author_name="Ada")
        form = load_grant_form(store, grant_id)
        self.assertEqual(form["amount"], "25000")
        self.assertEqual(form["requirements"], [""])

        form["status"] = STATUS_OPEN
        update_grant(store, grant_id, form)
        stored = store.get("grants", grant_id)
        self.assertEqual(stored["status"], STATUS_OPEN)
        self.assertEqual(stored["authorName"], "Ada")

    def test_missing_grant_loads_as_none(self) -> None:
        self.assertIsNone(load_grant_form(LocalDocumentStore(), "missing"))


class FormHelperTests(unittest.TestCase):
    def test_array_editing_keeps_one_slot(self) -> None:
        form = default_grant_form()
        set_array_item(form, "benefits", 0, "Mentoring")
        add_array_item(form, "benefits")
        self.assertEqual(form["benefits"], ["Mentoring", ""])
        remove_array_item(form, "benefits", 0)
        remove_array_item(form, "benefits", 0)
        self.assertEqual(form["benefits"], [""])

    def test_unknown_array_field(self) -> None:
        with self.assertRaises(KeyError):
            add_array_item(default_grant_form(), "grantName")

    def test_custom_fields(self) -> None:
        form = default_grant_form()
        add_custom_field(form, " Sector ", "text")
        update_custom_field(form, 0, "Agriculture")
        self.assertEqual(form["customFields"], [{"name": "Sector", "value": "Agriculture", "type": "text"}])
        remove_custom_field(form, 0)
        self.assertEqual(form["customFields"], [])
        with self.assertRaises(GrantValidationError):
            add_custom_field(form, "", "text")
        with self.assertRaises(GrantValidationError):
            add_custom_field(form, "Size", "colour")


class ViewMappingTests(unittest.TestCase):
    def test_format_helpers(self) -> None:
        self.assertEqual(format_amount(25000, "USD"), "25,000 USD")
        self.assertEqual(format_amount("1234.5", "EUR"), "1,234.50 EUR")
        self.assertEqual(format_date("2025-03-31"), "Mar 31, 2025")
        self.assertEqual(format_date(datetime(2025, 1, 2, tzinfo=timezone.utc)), "Jan 02, 2025")
        self.assertEqual(format_date(""), "N/A")
        self.assertEqual(status_label("Review"), "Under Review")

    def test_to_opportunity_defaults(self) -> None:
        card = to_opportunity({"id": "g1", "amount": 500, "currency": "USD"})
        self.assertEqual(card["title"], "Untitled Grant")
        self.assertEqual(card["region"], "Global")
        self.assertEqual(card["grantSize"], "500 USD")
        self.assertEqual(card["deadline"], "N/A")


if __name__ == "__main__":
    unittest.main()
