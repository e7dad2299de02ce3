from __future__ import annotations

import copy
import json
import os
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from loguru import logger

from services.app_config import STORE_FIRESTORE, STORE_LOCAL, StoreConfig


Record = dict[str, Any]
SnapshotFn = Callable[[list[Record]], None]
DocumentFn = Callable[[Optional[Record]], None]
ErrorFn = Callable[[Exception], None]


# ------------------------------------------------------------------ errors

class StoreError(Exception):
	"""Base class for failures reported by a document store backend."""


class PermissionDeniedError(StoreError):
	pass


class MissingIndexError(StoreError):
	"""The backend needs a composite index for this query."""


class NotFoundError(StoreError):
	pass


class StoreUnavailableError(StoreError):
	pass


# ------------------------------------------------------------------ query model

class _ServerTimestamp:
	"""Placeholder resolved to the commit time by the backend."""

	def __repr__(self) -> str:
		return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class Where:
	field: str
	value: Any


@dataclass(frozen=True)
class OrderBy:
	field: str
	descending: bool = False


@dataclass(frozen=True)
class QuerySpec:
	collection: str
	where: tuple[Where, ...] = ()
	order_by: Optional[OrderBy] = None
	limit: Optional[int] = None

	def where_eq(self, field_name: str, value: Any) -> "QuerySpec":
		return replace(self, where=self.where + (Where(field_name, value),))

	def describe(self) -> str:
		parts = [self.collection]
		parts += [f"{w.field}=={w.value!r}" for w in self.where]
		if self.order_by:
			parts.append(f"order_by={self.order_by.field}{' desc' if self.order_by.descending else ''}")
		if self.limit:
			parts.append(f"limit={self.limit}")
		return " ".join(parts)


def collection_path(*parts: Any) -> str:
	"""collection_path("users", uid, "businessProfiles") -> "users/<uid>/businessProfiles"."""
	return "/".join(str(p).strip("/") for p in parts if str(p).strip("/"))


class ListenerHandle:
	"""Returned by DocumentStore.listen(); call close() to stop receiving snapshots."""

	def __init__(self, unsubscribe: Callable[[], None]) -> None:
		self._unsubscribe = unsubscribe
		self._closed = False

	@property
	def closed(self) -> bool:
		return self._closed

	def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		self._unsubscribe()


# ------------------------------------------------------------------ batches

@dataclass(frozen=True)
class WriteOp:
	kind: str  # "set" | "update" | "delete"
	collection: str
	doc_id: str
	data: Optional[Record] = None
	merge: bool = False


class WriteBatch:
	"""Collects writes and applies them all-or-nothing on commit()."""

	def __init__(self, store: "DocumentStore") -> None:
		self._store = store
		self._ops: list[WriteOp] = []
		self._committed = False

	def set(self, collection: str, doc_id: str, data: Record, *, merge: bool = False) -> "WriteBatch":
		self._ops.append(WriteOp("set", collection, str(doc_id), dict(data), merge))
		return self

	def update(self, collection: str, doc_id: str, fields: Record) -> "WriteBatch":
		self._ops.append(WriteOp("update", collection, str(doc_id), dict(fields)))
		return self

	def delete(self, collection: str, doc_id: str) -> "WriteBatch":
		self._ops.append(WriteOp("delete", collection, str(doc_id)))
		return self

	def __len__(self) -> int:
		return len(self._ops)

	def commit(self) -> None:
		if self._committed:
			raise StoreError("batch already committed")
		self._committed = True
		if not self._ops:
			return
		self._store._commit_batch(list(self._ops))


# ------------------------------------------------------------------ interface

class DocumentStore(ABC):
	"""
	Collection/document CRUD, equality + order-by queries, live listeners and
	batched writes. Records are plain dicts carrying their document id under "id".
	"""

	@abstractmethod
	def get(self, collection: str, doc_id: str) -> Optional[Record]:
		...

	@abstractmethod
	def query(self, spec: QuerySpec) -> list[Record]:
		...

	@abstractmethod
	def add(self, collection: str, data: Record) -> str:
		...

	@abstractmethod
	def set(self, collection: str, doc_id: str, data: Record, *, merge: bool = False) -> None:
		...

	@abstractmethod
	def update(self, collection: str, doc_id: str, fields: Record) -> None:
		...

	@abstractmethod
	def delete(self, collection: str, doc_id: str) -> None:
		...

	@abstractmethod
	def listen(self, spec: QuerySpec, on_snapshot: SnapshotFn, on_error: Optional[ErrorFn] = None) -> ListenerHandle:
		...

	@abstractmethod
	def listen_document(
		self,
		collection: str,
		doc_id: str,
		on_snapshot: DocumentFn,
		on_error: Optional[ErrorFn] = None,
	) -> ListenerHandle:
		...

	@abstractmethod
	def _commit_batch(self, ops: list[WriteOp]) -> None:
		...

	def batch(self) -> WriteBatch:
		return WriteBatch(self)

	def count(self, collection: str) -> int:
		return len(self.query(QuerySpec(collection)))

	def close(self) -> None:
		pass


# ------------------------------------------------------------------ local backend

_TYPE_RANK_NONE = 0
_TYPE_RANK_BOOL = 1
_TYPE_RANK_NUMBER = 2
_TYPE_RANK_TIMESTAMP = 3
_TYPE_RANK_STRING = 4
_TYPE_RANK_OTHER = 5


def _sort_value(value: Any) -> tuple[int, Any]:
	# mixed-type ordering: null < bool < number < timestamp < string < anything else
	if value is None:
		return (_TYPE_RANK_NONE, 0)
	if isinstance(value, bool):
		return (_TYPE_RANK_BOOL, value)
	if isinstance(value, (int, float)):
		return (_TYPE_RANK_NUMBER, value)
	if isinstance(value, datetime):
		return (_TYPE_RANK_TIMESTAMP, value.timestamp())
	if isinstance(value, str):
		return (_TYPE_RANK_STRING, value)
	return (_TYPE_RANK_OTHER, str(value))


@dataclass
class _Listener:
	spec: Optional[QuerySpec]
	collection: str
	doc_id: Optional[str]
	on_snapshot: Callable[[Any], None]
	on_error: Optional[ErrorFn]


class LocalDocumentStore(DocumentStore):
	"""
	In-process document store with the hosted store's query semantics.

	- equality filters, a single order-by and limit
	- ordered queries skip documents that lack the order-by field
	- unordered queries return documents in insertion order
	- listeners get the complete current result immediately and after every
	  committed write touching their collection
	- batches are validated before anything is applied

	Optionally persisted to a JSON file after each commit.
	"""

	def __init__(self, json_path: str | None = None, *, clock: Callable[[], datetime] | None = None) -> None:
		self._lock = threading.RLock()
		self._collections: dict[str, dict[str, Record]] = {}
		self._listeners: dict[int, _Listener] = {}
		self._next_listener_id = 0
		self._json_path = json_path or None
		self._clock = clock or (lambda: datetime.now(timezone.utc))

		if self._json_path and os.path.exists(self._json_path):
			self._load()

	# ----- reads -----

	def get(self, collection: str, doc_id: str) -> Optional[Record]:
		with self._lock:
			data = self._collections.get(collection, {}).get(str(doc_id))
			return self._to_record(str(doc_id), data) if data is not None else None

	def query(self, spec: QuerySpec) -> list[Record]:
		with self._lock:
			return self._run_query(spec)

	def _run_query(self, spec: QuerySpec) -> list[Record]:
		docs = list(self._collections.get(spec.collection, {}).items())

		for cond in spec.where:
			docs = [(doc_id, data) for doc_id, data in docs if data.get(cond.field) == cond.value]

		if spec.order_by is not None:
			field_name = spec.order_by.field
			docs = [(doc_id, data) for doc_id, data in docs if field_name in data]
			docs.sort(key=lambda item: _sort_value(item[1][field_name]), reverse=spec.order_by.descending)

		if spec.limit is not None:
			docs = docs[: max(0, int(spec.limit))]

		return [self._to_record(doc_id, data) for doc_id, data in docs]

	@staticmethod
	def _to_record(doc_id: str, data: Record) -> Record:
		record = copy.deepcopy(data)
		record["id"] = doc_id
		return record

	# ----- writes -----

	def add(self, collection: str, data: Record) -> str:
		doc_id = uuid.uuid4().hex[:20]
		self._commit_batch([WriteOp("set", collection, doc_id, dict(data))])
		return doc_id

	def set(self, collection: str, doc_id: str, data: Record, *, merge: bool = False) -> None:
		self._commit_batch([WriteOp("set", collection, str(doc_id), dict(data), merge)])

	def update(self, collection: str, doc_id: str, fields: Record) -> None:
		self._commit_batch([WriteOp("update", collection, str(doc_id), dict(fields))])

	def delete(self, collection: str, doc_id: str) -> None:
		self._commit_batch([WriteOp("delete", collection, str(doc_id))])

	def _commit_batch(self, ops: list[WriteOp]) -> None:
		with self._lock:
			now = self._clock()
			touched = {op.collection for op in ops}
			staged = {name: dict(self._collections.get(name, {})) for name in touched}

			for op in ops:
				docs = staged[op.collection]
				if op.kind == "delete":
					docs.pop(op.doc_id, None)
					continue

				payload = self._resolve(op.data or {}, now)
				payload.pop("id", None)
				if op.kind == "update":
					if op.doc_id not in docs:
						raise NotFoundError(f"No document to update: {op.collection}/{op.doc_id}")
					merged = dict(docs[op.doc_id])
					merged.update(payload)
					docs[op.doc_id] = merged
				elif op.kind == "set":
					if op.merge and op.doc_id in docs:
						merged = dict(docs[op.doc_id])
						merged.update(payload)
						docs[op.doc_id] = merged
					else:
						docs[op.doc_id] = payload
				else:
					raise StoreError(f"Unknown write kind: {op.kind}")

			for name, docs in staged.items():
				self._collections[name] = docs

			self._persist()
			deliveries = self._collect_deliveries(touched)

		logger.trace(f"[_commit_batch] - committed - ops={len(ops)} collections={sorted(touched)}")
		self._deliver(deliveries)

	def _resolve(self, data: Record, now: datetime) -> Record:
		out: Record = {}
		for key, value in data.items():
			if value is SERVER_TIMESTAMP:
				out[key] = now
			elif isinstance(value, dict):
				out[key] = self._resolve(value, now)
			else:
				out[key] = copy.deepcopy(value)
		return out

	# ----- listeners -----

	def listen(self, spec: QuerySpec, on_snapshot: SnapshotFn, on_error: Optional[ErrorFn] = None) -> ListenerHandle:
		listener = _Listener(spec, spec.collection, None, on_snapshot, on_error)
		return self._register(listener)

	def listen_document(
		self,
		collection: str,
		doc_id: str,
		on_snapshot: DocumentFn,
		on_error: Optional[ErrorFn] = None,
	) -> ListenerHandle:
		listener = _Listener(None, collection, str(doc_id), on_snapshot, on_error)
		return self._register(listener)

	def _register(self, listener: _Listener) -> ListenerHandle:
		with self._lock:
			listener_id = self._next_listener_id
			self._next_listener_id += 1
			self._listeners[listener_id] = listener
			initial = [(listener_id, listener, self._snapshot_for(listener))]

		self._deliver(initial)
		return ListenerHandle(lambda: self._unregister(listener_id))

	def _unregister(self, listener_id: int) -> None:
		with self._lock:
			self._listeners.pop(listener_id, None)

	def _snapshot_for(self, listener: _Listener) -> Any:
		if listener.spec is not None:
			return self._run_query(listener.spec)
		data = self._collections.get(listener.collection, {}).get(listener.doc_id or "")
		return self._to_record(listener.doc_id or "", data) if data is not None else None

	def _collect_deliveries(self, touched: set[str]) -> list[tuple[int, _Listener, Any]]:
		return [
			(listener_id, listener, self._snapshot_for(listener))
			for listener_id, listener in self._listeners.items()
			if listener.collection in touched
		]

	def _deliver(self, deliveries: list[tuple[int, _Listener, Any]]) -> None:
		for listener_id, listener, snapshot in deliveries:
			with self._lock:
				if listener_id not in self._listeners:
					continue
			try:
				listener.on_snapshot(snapshot)
			except Exception:
				logger.exception(f"[_deliver] - listener_callback_failed - collection={listener.collection}")

	# ----- persistence -----

	def _persist(self) -> None:
		if not self._json_path:
			return
		directory = os.path.dirname(self._json_path)
		if directory:
			os.makedirs(directory, exist_ok=True)
		tmp_path = f"{self._json_path}.tmp"
		with open(tmp_path, "w", encoding="utf-8") as f:
			json.dump(self._collections, f, indent=2, sort_keys=True, default=_encode_value)
		os.replace(tmp_path, self._json_path)

	def _load(self) -> None:
		with open(self._json_path, "r", encoding="utf-8") as f:
			raw = json.load(f, object_hook=_decode_value)
		if not isinstance(raw, dict):
			logger.warning(f"[_load] - store_file_ignored - path={self._json_path} reason=not_an_object")
			return
		self._collections = {
			str(name): {str(doc_id): dict(data) for doc_id, data in docs.items() if isinstance(data, dict)}
			for name, docs in raw.items()
			if isinstance(docs, dict)
		}
		logger.info(f"[_load] - store_loaded - path={self._json_path} collections={len(self._collections)}")


def _encode_value(value: Any) -> Any:
	if isinstance(value, datetime):
		return {"__datetime__": value.isoformat()}
	raise TypeError(f"Cannot store value of type {type(value).__name__}")


def _decode_value(obj: dict[str, Any]) -> Any:
	if set(obj.keys()) == {"__datetime__"}:
		return datetime.fromisoformat(obj["__datetime__"])
	return obj


# ------------------------------------------------------------------ factory

def create_store(cfg: StoreConfig) -> DocumentStore:
	backend = str(cfg.backend or STORE_LOCAL).strip().lower()
	if backend == STORE_FIRESTORE:
		# Local import: only Firestore deployments pay for the client library import.
		from services.firestore_store import FirestoreDocumentStore

		logger.info(f"[create_store] - backend=firestore project_id={cfg.project_id or '(default)'}")
		return FirestoreDocumentStore(project_id=cfg.project_id, credentials_path=cfg.credentials_path)

	if backend != STORE_LOCAL:
		logger.warning(f"[create_store] - unknown_backend - backend={backend} fallback=local")
	logger.info(f"[create_store] - backend=local json_path={cfg.json_path or '(memory)'}")
	return LocalDocumentStore(cfg.json_path or None)
