from __future__ import annotations

import threading
import unittest

from google.api_core import exceptions as gexc

from services.document_store import MissingIndexError, PermissionDeniedError, QuerySpec, StoreError
from services.firestore_store import FirestoreDocumentStore, translate_error
from services.live_query import STATE_ERROR, LiveQuery


class FakeWatch:
    """Fails like firestore's Watch: close(reason) raises the reason on its own thread."""

    def __init__(self) -> None:
        self.unsubscribe_calls = 0
        self._closed = False

    def close(self, reason=None) -> None:
        if self._closed:
            return
        self._closed = True
        if reason is not None:
            raise reason

    def unsubscribe(self) -> None:
        self.unsubscribe_calls += 1
        self.close()

    def fail(self, exc: Exception) -> None:
        thread = threading.Thread(target=self.close, kwargs={"reason": exc}, daemon=True)
        thread.start()
        thread.join()


class FakeRef:
    """Stands in for both a collection query and a document reference."""

    def __init__(self, client: "FakeClient") -> None:
        self._client = client

    def document(self, _doc_id: str) -> "FakeRef":
        return self

    def where(self, filter=None) -> "FakeRef":
        return self

    def order_by(self, _field: str, direction=None) -> "FakeRef":
        return self

    def limit(self, _count: int) -> "FakeRef":
        return self

    def get(self):
        if self._client.read_error is not None:
            raise self._client.read_error
        return []

    def on_snapshot(self, _callback) -> FakeWatch:
        watch = FakeWatch()
        self._client.watches.append(watch)
        return watch


class FakeClient:
    def __init__(self, read_error: Exception | None = None) -> None:
        self.read_error = read_error
        self.watches: list[FakeWatch] = []

    def collection(self, _name: str) -> FakeRef:
        return FakeRef(self)

    def close(self) -> None:
        pass


class TranslateErrorTests(unittest.TestCase):
    def test_google_errors_map_to_store_errors(self) -> None:
        self.assertIsInstance(translate_error(gexc.PermissionDenied("nope")), PermissionDeniedError)
        self.assertIsInstance(translate_error(gexc.FailedPrecondition("The query requires an index")), MissingIndexError)
        self.assertIs(type(translate_error(RuntimeError("boom"))), StoreError)


class FirestoreListenTests(unittest.TestCase):
    def setUp(self) -> None:
        self.delivered: list[list] = []
        self.errors: list[str] = []
        self.failed = threading.Event()

    def _on_error(self, message: str) -> None:
        self.errors.append(message)
        self.failed.set()

    def _live(self, client: FakeClient) -> LiveQuery:
        store = FirestoreDocumentStore(client=client)
        return LiveQuery(store, on_records=self.delivered.append, on_error=self._on_error, label="grants")

    def test_permission_denied_reaches_the_subscriber(self) -> None:
        client = FakeClient(read_error=gexc.PermissionDenied("Missing or insufficient permissions."))
        live = self._live(client)
        live.subscribe(QuerySpec("grants"))
        self.assertTrue(self.failed.wait(2))
        self.assertEqual(self.errors, ["You do not have permission to view grants."])
        self.assertEqual(self.delivered, [[]])
        self.assertEqual(live.state, STATE_ERROR)
        self.assertEqual(client.watches[0].unsubscribe_calls, 1)

    def test_stream_closed_with_reason_reaches_the_subscriber(self) -> None:
        client = FakeClient()
        live = self._live(client)
        live.subscribe(QuerySpec("grants"))
        client.watches[0].fail(gexc.FailedPrecondition("The query requires an index."))
        self.assertTrue(self.failed.wait(2))
        self.assertEqual(
            self.errors,
            ["Loading grants needs a database index that is still being built. Please try again later."],
        )
        self.assertEqual(live.state, STATE_ERROR)

    def test_failure_of_a_replaced_listener_is_ignored(self) -> None:
        client = FakeClient()
        live = self._live(client)
        live.subscribe(QuerySpec("grants"))
        live.subscribe(QuerySpec("grants").where_eq("status", "Open"))
        client.watches[0].fail(gexc.PermissionDenied("gone"))
        self.assertEqual(self.errors, [])
        self.assertNotEqual(live.state, STATE_ERROR)

    def test_document_listener_reports_read_failure(self) -> None:
        client = FakeClient(read_error=gexc.PermissionDenied("Missing or insufficient permissions."))
        store = FirestoreDocumentStore(client=client)
        errors: list[Exception] = []
        done = threading.Event()

        def on_error(exc: Exception) -> None:
            errors.append(exc)
            done.set()

        store.listen_document("users", "u1", lambda record: None, on_error)
        self.assertTrue(done.wait(2))
        self.assertEqual(len(errors), 1)
        self.assertIsInstance(errors[0], PermissionDeniedError)


if __name__ == "__main__":
    unittest.main()
