from __future__ import annotations

import unittest

from services.applications import (
    ACTION_DELETE,
    ACTION_VIEW,
    ACTION_WITHDRAW,
    STATUS_SUBMITTED,
    STATUS_WITHDRAWN,
    available_actions,
    default_application_form,
    status_label,
    submit_application,
    user_applications_query,
    validate_application_form,
    withdraw_fields,
)
from services.document_store import SERVER_TIMESTAMP, LocalDocumentStore


OPPORTUNITY = {
    "id": "g1",
    "title": "Green Energy Fund",
    "organization": "Climate Trust",
    "grantSize": "25,000 USD",
    "deadline": "Mar 31, 2025",
}


class ActionTests(unittest.TestCase):
    def test_actions_follow_status(self) -> None:
        self.assertEqual(available_actions("submitted"), [ACTION_VIEW, ACTION_WITHDRAW])
        self.assertEqual(available_actions("in-review"), [ACTION_VIEW, ACTION_WITHDRAW])
        self.assertEqual(available_actions("withdrawn"), [ACTION_VIEW, ACTION_DELETE])
        self.assertEqual(available_actions("draft"), [ACTION_VIEW, ACTION_DELETE])
        self.assertEqual(available_actions("won"), [ACTION_VIEW])

    def test_withdraw_is_a_status_change(self) -> None:
        fields = withdraw_fields()
        self.assertEqual(fields["status"], STATUS_WITHDRAWN)
        self.assertIs(fields["withdrawnAt"], SERVER_TIMESTAMP)

    def test_status_label(self) -> None:
        self.assertEqual(status_label("in-review"), "In review")
        self.assertEqual(status_label(None), "Unknown")


class ApplyFormTests(unittest.TestCase):
    def test_form_is_prefilled_from_profile(self) -> None:
        form = default_application_form({"businessName": "Acme", "industry": "Retail"}, email="me@acme.co")
        self.assertEqual(form["companyName"], "Acme")
        self.assertEqual(form["businessEmail"], "me@acme.co")
        self.assertEqual(form["industry"], "Retail")

    def test_required_fields(self) -> None:
        self.assertEqual(
            set(validate_application_form(default_application_form())),
            {"companyName", "businessEmail", "grantPurpose"},
        )


class SubmitTests(unittest.TestCase):
    def test_submitted_application_is_visible_to_its_owner(self) -> None:
        store = LocalDocumentStore()
        form = default_application_form({"businessName": "Acme", "businessEmail": "hi@acme.co"})
        form["grantPurpose"] = "Solar roof"
        app_id = submit_application(
            store,
            uid="u1",
            applicant_name=None,
            applicant_email="hi@acme.co",
            opportunity=OPPORTUNITY,
            form=form,
        )
        stored = store.get("applications", app_id)
        self.assertEqual(stored["status"], STATUS_SUBMITTED)
        self.assertEqual(stored["applicantName"], "Unnamed User")
        self.assertEqual(stored["grantName"], "Green Energy Fund")
        self.assertEqual(stored["amount"], "25,000 USD")
        self.assertEqual(stored["applicationForm"]["grantPurpose"], "Solar roof")

        self.assertEqual([r["id"] for r in store.query(user_applications_query("u1"))], [app_id])
        self.assertEqual(store.query(user_applications_query("u2")), [])

    def test_invalid_form_is_not_stored(self) -> None:
        store = LocalDocumentStore()
        with self.assertRaises(ValueError):
            submit_application(
                store,
                uid="u1",
                applicant_name="A",
                applicant_email="a@b.co",
                opportunity=OPPORTUNITY,
                form=default_application_form(),
            )
        self.assertEqual(store.count("applications"), 0)


if __name__ == "__main__":
    unittest.main()
