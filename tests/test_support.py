from __future__ import annotations

import unittest

from services.document_store import LocalDocumentStore
from services.list_view import ALL
from services.saved_grants import saved_grants_query, saved_ids, toggle_saved
from services.support import (
    FAQS,
    category_counts,
    default_ticket_form,
    search_faqs,
    submit_ticket,
    validate_ticket,
)


class FaqTests(unittest.TestCase):
    def test_search_matches_question_and_answer(self) -> None:
        ids = [faq["id"] for faq in search_faqs("milestone")]
        self.assertEqual(ids, ["1", "2", "5"])

    def test_category_and_query_combine(self) -> None:
        self.assertEqual([faq["id"] for faq in search_faqs("funds", "grants")], ["1", "5"])
        self.assertEqual(search_faqs("funds", "technical"), [])

    def test_all_category_keeps_everything(self) -> None:
        self.assertEqual(len(search_faqs("", ALL)), len(FAQS))

    def test_category_counts(self) -> None:
        counts = category_counts()
        self.assertEqual(counts[ALL], 5)
        self.assertEqual(counts["grants"], 2)
        self.assertEqual(counts["account"], 1)


class TicketTests(unittest.TestCase):
    def test_default_form_is_invalid(self) -> None:
        self.assertEqual(set(validate_ticket(default_ticket_form())), {"subject", "category", "priority", "message"})

    def test_submit_stores_open_ticket(self) -> None:
        store = LocalDocumentStore()
        form = {"subject": " Login ", "category": "technical", "priority": "high", "message": "Cannot sign in"}
        ticket_id = submit_ticket(store, uid="u1", email="a@b.co", form=form)
        ticket = store.get("supportTickets", ticket_id)
        self.assertEqual(ticket["subject"], "Login")
        self.assertEqual(ticket["status"], "open")

    def test_invalid_ticket_is_rejected(self) -> None:
        store = LocalDocumentStore()
        with self.assertRaises(ValueError):
            submit_ticket(store, uid="u1", email="a@b.co", form={**default_ticket_form(), "subject": "x"})
        self.assertEqual(store.count("supportTickets"), 0)


class SavedGrantTests(unittest.TestCase):
    def test_toggle_saves_and_unsaves(self) -> None:
        store = LocalDocumentStore()
        opportunity = {"id": "g1", "title": "Green Energy Fund"}
        self.assertTrue(toggle_saved(store, "u1", opportunity, currently_saved=False))
        self.assertEqual(saved_ids(store.query(saved_grants_query("u1"))), {"g1"})
        self.assertFalse(toggle_saved(store, "u1", opportunity, currently_saved=True))
        self.assertEqual(saved_ids(store.query(saved_grants_query("u1"))), set())

    def test_grant_id_is_required(self) -> None:
        with self.assertRaises(ValueError):
            toggle_saved(LocalDocumentStore(), "u1", {"title": "x"}, currently_saved=False)


if __name__ == "__main__":
    unittest.main()
