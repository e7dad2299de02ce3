from __future__ import annotations

import unittest

from services.aggregates import MILESTONE_COMPLETED, MILESTONE_IN_PROGRESS, MILESTONE_PENDING
from services.document_store import LocalDocumentStore
from services.milestones import (
    MilestoneValidationError,
    can_delete,
    create_milestone,
    has_milestones,
    milestones_collection,
    milestones_query,
    set_milestone_status,
    update_milestone,
    validate_milestone_form,
)


class MilestoneTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = LocalDocumentStore()

    def test_collection_is_nested_under_application(self) -> None:
        self.assertEqual(milestones_collection("a1"), "applications/a1/milestones")

    def test_title_and_description_required(self) -> None:
        with self.assertRaises(MilestoneValidationError):
            validate_milestone_form({"title": "  ", "description": "x"})
        self.assertEqual(
            validate_milestone_form({"title": " Build ", "description": "MVP", "progress": 250}),
            {"title": "Build", "description": "MVP", "progress": 100},
        )

    def test_status_is_derived_on_create(self) -> None:
        pending = create_milestone(self.store, "a1", {"title": "Plan", "description": "Write plan", "progress": 0})
        started = create_milestone(self.store, "a1", {"title": "Build", "description": "MVP", "progress": 40})
        done = create_milestone(self.store, "a1", {"title": "Ship", "description": "Launch", "progress": 100})
        collection = milestones_collection("a1")
        self.assertEqual(self.store.get(collection, pending)["status"], MILESTONE_PENDING)
        self.assertEqual(self.store.get(collection, started)["status"], MILESTONE_IN_PROGRESS)
        self.assertEqual(self.store.get(collection, done)["status"], MILESTONE_COMPLETED)
        self.assertEqual(len(self.store.query(milestones_query("a1"))), 3)

    def test_update_keeps_status(self) -> None:
        milestone_id = create_milestone(self.store, "a1", {"title": "Plan", "description": "d", "progress": 10})
        update_milestone(self.store, "a1", milestone_id, {"title": "Plan v2", "description": "d", "progress": 100})
        stored = self.store.get(milestones_collection("a1"), milestone_id)
        self.assertEqual(stored["title"], "Plan v2")
        self.assertEqual(stored["progress"], 100)
        self.assertEqual(stored["status"], MILESTONE_IN_PROGRESS)

    def test_set_status_rejects_unknown(self) -> None:
        milestone_id = create_milestone(self.store, "a1", {"title": "Plan", "description": "d"})
        with self.assertRaises(MilestoneValidationError):
            set_milestone_status(self.store, "a1", milestone_id, "Done")
        set_milestone_status(self.store, "a1", milestone_id, MILESTONE_COMPLETED)
        self.assertEqual(self.store.get(milestones_collection("a1"), milestone_id)["status"], MILESTONE_COMPLETED)

    def test_completed_milestones_cannot_be_deleted(self) -> None:
        self.assertTrue(can_delete({}))
        self.assertTrue(can_delete({"status": MILESTONE_IN_PROGRESS}))
        self.assertFalse(can_delete({"status": MILESTONE_COMPLETED}))

    def test_has_milestones(self) -> None:
        self.assertFalse(has_milestones(self.store, ["a1", "a2"]))
        create_milestone(self.store, "a2", {"title": "Plan", "description": "d"})
        self.assertTrue(has_milestones(self.store, ["a1", "a2"]))
        self.assertFalse(has_milestones(self.store, []))


if __name__ == "__main__":
    unittest.main()
