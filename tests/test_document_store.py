from __future__ import annotations

import os
import tempfile
import unittest
from datetime import datetime, timezone

from services.app_config import StoreConfig
from services.document_store import (
    SERVER_TIMESTAMP,
    LocalDocumentStore,
    NotFoundError,
    OrderBy,
    QuerySpec,
    StoreError,
    collection_path,
    create_store,
)


FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class LocalDocumentStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = LocalDocumentStore(clock=lambda: FIXED_NOW)

    def test_add_and_get_round_trip_with_id(self) -> None:
        doc_id = self.store.add("grants", {"grantName": "Seed"})
        record = self.store.get("grants", doc_id)
        self.assertEqual(record["id"], doc_id)
        self.assertEqual(record["grantName"], "Seed")

    def test_get_returns_a_copy(self) -> None:
        self.store.set("grants", "g1", {"tags": ["a"]})
        self.store.get("grants", "g1")["tags"].append("b")
        self.assertEqual(self.store.get("grants", "g1")["tags"], ["a"])

    def test_server_timestamp_is_resolved_on_write(self) -> None:
        self.store.set("grants", "g1", {"createdAt": SERVER_TIMESTAMP, "nested": {"at": SERVER_TIMESTAMP}})
        record = self.store.get("grants", "g1")
        self.assertEqual(record["createdAt"], FIXED_NOW)
        self.assertEqual(record["nested"]["at"], FIXED_NOW)

    def test_set_merge_keeps_other_fields(self) -> None:
        self.store.set("users", "u1", {"email": "a@b.co", "role": "user"})
        self.store.set("users", "u1", {"role": "admin"}, merge=True)
        self.assertEqual(self.store.get("users", "u1")["email"], "a@b.co")
        self.store.set("users", "u1", {"role": "user"})
        self.assertNotIn("email", self.store.get("users", "u1"))

    def test_update_of_missing_document_fails(self) -> None:
        with self.assertRaises(NotFoundError):
            self.store.update("users", "nobody", {"role": "admin"})

    def test_where_order_and_limit(self) -> None:
        self.store.set("grants", "a", {"status": "Open", "createdAt": 1})
        self.store.set("grants", "b", {"status": "Open", "createdAt": 3})
        self.store.set("grants", "c", {"status": "Draft", "createdAt": 2})
        self.store.set("grants", "d", {"status": "Open"})
        spec = QuerySpec("grants", order_by=OrderBy("createdAt", descending=True)).where_eq("status", "Open")
        self.assertEqual([r["id"] for r in self.store.query(spec)], ["b", "a"])
        limited = QuerySpec("grants", order_by=OrderBy("createdAt"), limit=2)
        self.assertEqual([r["id"] for r in self.store.query(limited)], ["a", "c"])

    def test_unordered_query_keeps_insertion_order(self) -> None:
        for doc_id in ("z", "a", "m"):
            self.store.set("grants", doc_id, {"n": doc_id})
        self.assertEqual([r["id"] for r in self.store.query(QuerySpec("grants"))], ["z", "a", "m"])

    def test_batch_is_all_or_nothing(self) -> None:
        self.store.set("grants", "a", {"n": 1})
        batch = self.store.batch().delete("grants", "a").update("grants", "missing", {"n": 2})
        with self.assertRaises(NotFoundError):
            batch.commit()
        self.assertIsNotNone(self.store.get("grants", "a"))

    def test_batch_cannot_commit_twice(self) -> None:
        batch = self.store.batch().set("grants", "a", {"n": 1})
        batch.commit()
        with self.assertRaises(StoreError):
            batch.commit()

    def test_listener_gets_initial_and_changed_results(self) -> None:
        seen: list[list[str]] = []
        handle = self.store.listen(QuerySpec("grants"), lambda records: seen.append([r["id"] for r in records]))
        self.store.set("grants", "a", {"n": 1})
        self.store.set("other", "x", {"n": 1})
        handle.close()
        self.store.set("grants", "b", {"n": 2})
        self.assertEqual(seen, [[], ["a"]])
        self.assertTrue(handle.closed)

    def test_document_listener_sees_deletion(self) -> None:
        seen: list = []
        self.store.set("users", "u1", {"role": "user"})
        self.store.listen_document("users", "u1", lambda record: seen.append(record and record["role"]))
        self.store.delete("users", "u1")
        self.assertEqual(seen, ["user", None])

    def test_count(self) -> None:
        self.store.add("users", {"n": 1})
        self.store.add("users", {"n": 2})
        self.assertEqual(self.store.count("users"), 2)
        self.assertEqual(self.store.count("empty"), 0)

    def test_persists_to_json_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "data", "store.json")
            first = LocalDocumentStore(path, clock=lambda: FIXED_NOW)
            first.set("grants", "g1", {"createdAt": SERVER_TIMESTAMP, "grantName": "Seed"})
            second = LocalDocumentStore(path)
            record = second.get("grants", "g1")
            self.assertEqual(record["grantName"], "Seed")
            self.assertEqual(record["createdAt"], FIXED_NOW)


class HelperTests(unittest.TestCase):
    def test_collection_path_skips_empty_parts(self) -> None:
        self.assertEqual(collection_path("users", "u1", "/savedGrants/"), "users/u1/savedGrants")
        self.assertEqual(collection_path("users", "", "x"), "users/x")

    def test_create_store_defaults_to_local(self) -> None:
        store = create_store(StoreConfig(backend="local", json_path=""))
        self.assertIsInstance(store, LocalDocumentStore)

    def test_unknown_backend_falls_back_to_local(self) -> None:
        store = create_store(StoreConfig(backend="mystery", json_path=""))
        self.assertIsInstance(store, LocalDocumentStore)


if __name__ == "__main__":
    unittest.main()
