from __future__ import annotations

import asyncio
import unittest

from services.document_store import LocalDocumentStore, QuerySpec, StoreError
from services.list_view import ListViewState, by_text
from services.row_mutations import STATE_ERROR, STATE_IDLE, STATE_SUBMITTING, RowMutationHandler


class FailingWriteStore(LocalDocumentStore):
    def _commit_batch(self, ops):
        raise StoreError("write rejected")


class BrokenTransportStore(LocalDocumentStore):
    def _commit_batch(self, ops):
        raise RuntimeError("transport closed")


def _answer(value: bool):
    async def confirm(message: str) -> bool:
        confirm.messages.append(message)
        return value

    confirm.messages = []
    return confirm


class RowMutationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = LocalDocumentStore()
        for doc_id in ("a", "b", "c"):
            self.store.set("applications", doc_id, {"name": doc_id, "status": "submitted"})
        self.view = ListViewState(search_fields=("name",), sort_options=[by_text("name", label="Name")], page_size=10)
        self.view.set_source(self._rows())
        self.notes: list[tuple[str, str]] = []

    def _rows(self) -> list[dict]:
        return self.store.query(QuerySpec("applications"))

    def _notify(self, message: str, type: str = "info") -> None:
        self.notes.append((message, type))

    def _handler(self, store=None, confirm=None) -> RowMutationHandler:
        return RowMutationHandler(
            store or self.store,
            "applications",
            self.view,
            notify=self._notify,
            confirm=confirm or _answer(True),
            item_label="application",
        )

    def test_cancelled_delete_writes_nothing(self) -> None:
        confirm = _answer(False)
        handler = self._handler(confirm=confirm)
        self.assertFalse(asyncio.run(handler.delete(["a"])))
        self.assertIsNotNone(self.store.get("applications", "a"))
        self.assertEqual(confirm.messages, ["Are you sure you want to delete this application?"])
        self.assertEqual(self.notes, [])

    def test_confirmed_delete_removes_remote_and_local(self) -> None:
        handler = self._handler()
        self.assertTrue(asyncio.run(handler.delete(["a"])))
        self.assertIsNone(self.store.get("applications", "a"))
        self.assertIsNone(self.view.get("a"))
        self.assertEqual(self.notes[-1], ("Application deleted.", "positive"))
        self.assertEqual(handler.state, STATE_IDLE)

    def test_bulk_delete_uses_selection(self) -> None:
        self.view.toggle("a", True)
        self.view.toggle("c", True)
        confirm = _answer(True)
        handler = self._handler(confirm=confirm)
        self.assertTrue(asyncio.run(handler.delete_selected()))
        self.assertEqual(confirm.messages, ["Are you sure you want to delete 2 applications?"])
        self.assertEqual([r["id"] for r in self._rows()], ["b"])
        self.assertEqual(self.view.selected_ids, [])

    def test_bulk_delete_without_selection_warns(self) -> None:
        handler = self._handler()
        self.assertFalse(asyncio.run(handler.delete_selected()))
        self.assertEqual(self.notes, [("Please select applications first.", "warning")])

    def test_failed_delete_keeps_rows(self) -> None:
        self.view.toggle("a", True)
        self.view.toggle("b", True)
        handler = self._handler(store=FailingWriteStore())
        self.assertFalse(asyncio.run(handler.delete_selected()))
        self.assertIsNotNone(self.view.get("a"))
        self.assertEqual(self.view.selected_ids, ["a", "b"])
        self.assertEqual(self.notes[-1], ("Failed to delete applications. Please try again.", "negative"))
        self.assertEqual(handler.state, STATE_ERROR)

    def test_update_patches_view_after_write(self) -> None:
        handler = self._handler()
        ok = asyncio.run(handler.update("b", {"status": "withdrawn"}, success_message="Withdrawn."))
        self.assertTrue(ok)
        self.assertEqual(self.store.get("applications", "b")["status"], "withdrawn")
        self.assertEqual(self.view.get("b")["status"], "withdrawn")
        self.assertEqual(self.notes, [("Withdrawn.", "positive")])

    def test_failed_update_leaves_view_unchanged(self) -> None:
        handler = self._handler(store=FailingWriteStore())
        self.assertFalse(asyncio.run(handler.update("b", {"status": "withdrawn"})))
        self.assertEqual(self.view.get("b")["status"], "submitted")

    def test_unexpected_write_error_does_not_leave_handler_busy(self) -> None:
        handler = self._handler(store=BrokenTransportStore())
        self.view.toggle("a", True)
        self.view.toggle("b", True)
        self.assertFalse(asyncio.run(handler.delete_selected()))
        self.assertEqual(handler.state, STATE_ERROR)
        self.assertFalse(handler.busy)
        self.assertEqual(self.notes[-1], ("Failed to delete applications. Please try again.", "negative"))

        self.assertFalse(asyncio.run(handler.update("b", {"status": "withdrawn"})))
        self.assertEqual(self.notes[-1], ("Failed to update application. Please try again.", "negative"))
        self.assertNotIn(("Please wait for the current action to finish.", "warning"), self.notes)
        self.assertEqual(self.view.get("b")["status"], "submitted")

    def test_busy_handler_rejects_new_actions(self) -> None:
        handler = self._handler()
        handler.state = STATE_SUBMITTING
        self.assertFalse(asyncio.run(handler.update("b", {"status": "withdrawn"})))
        self.assertEqual(self.notes, [("Please wait for the current action to finish.", "warning")])
        self.assertEqual(self.store.get("applications", "b")["status"], "submitted")


if __name__ == "__main__":
    unittest.main()
