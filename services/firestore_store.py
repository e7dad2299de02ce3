from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Callable, Optional

from google.api_core import exceptions as gexc
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from loguru import logger

from services.document_store import (
	SERVER_TIMESTAMP,
	DocumentFn,
	DocumentStore,
	ErrorFn,
	ListenerHandle,
	MissingIndexError,
	NotFoundError,
	PermissionDeniedError,
	QuerySpec,
	Record,
	SnapshotFn,
	StoreError,
	StoreUnavailableError,
	WriteOp,
)
from services.logging_setup import log_timing


def translate_error(exc: Exception) -> StoreError:
	"""Map google-api-core exceptions onto the store's error classes."""
	if isinstance(exc, StoreError):
		return exc
	if isinstance(exc, gexc.PermissionDenied):
		return PermissionDeniedError(str(exc))
	if isinstance(exc, gexc.NotFound):
		return NotFoundError(str(exc))
	if isinstance(exc, gexc.FailedPrecondition) and "index" in str(exc).lower():
		return MissingIndexError(str(exc))
	if isinstance(exc, (gexc.ServiceUnavailable, gexc.DeadlineExceeded)):
		return StoreUnavailableError(str(exc))
	return StoreError(str(exc))


class FirestoreDocumentStore(DocumentStore):
	"""DocumentStore backed by google-cloud-firestore."""

	def __init__(self, *, project_id: str = "", credentials_path: str = "", client: Any = None) -> None:
		if client is None:
			if credentials_path:
				client = firestore.Client.from_service_account_json(credentials_path, project=project_id or None)
			else:
				client = firestore.Client(project=project_id or None)
		self._client = client

	@contextmanager
	def _translated(self, method_name: str, **context: Any):
		with log_timing(method_name, **context):
			try:
				yield
			except gexc.GoogleAPIError as exc:
				raise translate_error(exc) from exc

	# ----- helpers -----

	def _build_query(self, spec: QuerySpec):
		q = self._client.collection(spec.collection)
		for cond in spec.where:
			q = q.where(filter=FieldFilter(cond.field, "==", cond.value))
		if spec.order_by is not None:
			direction = firestore.Query.DESCENDING if spec.order_by.descending else firestore.Query.ASCENDING
			q = q.order_by(spec.order_by.field, direction=direction)
		if spec.limit is not None:
			q = q.limit(int(spec.limit))
		return q

	@staticmethod
	def _to_record(snapshot) -> Record:
		data = snapshot.to_dict() or {}
		data["id"] = snapshot.id
		return data

	def _prepare(self, data: Record) -> Record:
		out: Record = {}
		for key, value in data.items():
			if key == "id":
				continue
			if value is SERVER_TIMESTAMP:
				out[key] = firestore.SERVER_TIMESTAMP
			elif isinstance(value, dict):
				out[key] = self._prepare(value)
			else:
				out[key] = value
		return out

	# ----- reads -----

	def get(self, collection: str, doc_id: str) -> Optional[Record]:
		with self._translated("get", collection=collection, doc_id=doc_id):
			snapshot = self._client.collection(collection).document(str(doc_id)).get()
		return self._to_record(snapshot) if snapshot.exists else None

	def query(self, spec: QuerySpec) -> list[Record]:
		with self._translated("query", spec=spec.describe()):
			return [self._to_record(s) for s in self._build_query(spec).stream()]

	# ----- writes -----

	def add(self, collection: str, data: Record) -> str:
		with self._translated("add", collection=collection):
			_update_time, doc_ref = self._client.collection(collection).add(self._prepare(data))
		return doc_ref.id

	def set(self, collection: str, doc_id: str, data: Record, *, merge: bool = False) -> None:
		with self._translated("set", collection=collection, doc_id=doc_id, merge=merge):
			self._client.collection(collection).document(str(doc_id)).set(self._prepare(data), merge=merge)

	def update(self, collection: str, doc_id: str, fields: Record) -> None:
		with self._translated("update", collection=collection, doc_id=doc_id):
			self._client.collection(collection).document(str(doc_id)).update(self._prepare(fields))

	def delete(self, collection: str, doc_id: str) -> None:
		with self._translated("delete", collection=collection, doc_id=doc_id):
			self._client.collection(collection).document(str(doc_id)).delete()

	def _commit_batch(self, ops: list[WriteOp]) -> None:
		with self._translated("commit_batch", ops=len(ops)):
			batch = self._client.batch()
			for op in ops:
				ref = self._client.collection(op.collection).document(op.doc_id)
				if op.kind == "delete":
					batch.delete(ref)
				elif op.kind == "update":
					batch.update(ref, self._prepare(op.data or {}))
				elif op.kind == "set":
					batch.set(ref, self._prepare(op.data or {}), merge=op.merge)
				else:
					raise StoreError(f"Unknown write kind: {op.kind}")
			batch.commit()

	# ----- listeners -----

	def listen(self, spec: QuerySpec, on_snapshot: SnapshotFn, on_error: Optional[ErrorFn] = None) -> ListenerHandle:
		def _on_snapshot(docs, _changes, _read_time) -> None:
			# Runs on the client library's watch thread.
			try:
				on_snapshot([self._to_record(d) for d in docs])
			except Exception:
				logger.exception(f"[listen] - listener_callback_failed - spec={spec.describe()}")

		query = self._build_query(spec)
		failure = _ListenFailure(f"listen spec={spec.describe()}", on_error)
		try:
			watch = query.on_snapshot(_on_snapshot)
		except gexc.GoogleAPIError as exc:
			failure.report(exc)
			return ListenerHandle(lambda: None)
		return self._guard(watch, failure, lambda: query.limit(1).get())

	def listen_document(
		self,
		collection: str,
		doc_id: str,
		on_snapshot: DocumentFn,
		on_error: Optional[ErrorFn] = None,
	) -> ListenerHandle:
		def _on_snapshot(docs, _changes, _read_time) -> None:
			try:
				snapshot = docs[0] if docs else None
				on_snapshot(self._to_record(snapshot) if snapshot is not None and snapshot.exists else None)
			except Exception:
				logger.exception(f"[listen_document] - listener_callback_failed - doc={collection}/{doc_id}")

		ref = self._client.collection(collection).document(str(doc_id))
		failure = _ListenFailure(f"listen_document doc={collection}/{doc_id}", on_error)
		try:
			watch = ref.on_snapshot(_on_snapshot)
		except gexc.GoogleAPIError as exc:
			failure.report(exc)
			return ListenerHandle(lambda: None)
		return self._guard(watch, failure, ref.get)

	@staticmethod
	def _guard(watch, failure: "_ListenFailure", read: Callable[[], Any]) -> ListenerHandle:
		"""
		A watch never raises into the caller: a dead stream ends in Watch.close(reason)
		raising on a private thread. Both that close reason and a one-shot read of the
		same target are routed into failure.report().
		"""
		failure.handle = ListenerHandle(watch.unsubscribe)
		close = watch.close

		def close_and_report(reason=None) -> None:
			try:
				close(reason=reason)
			except Exception as exc:
				failure.report(exc)

		watch.close = close_and_report

		def check_readable() -> None:
			try:
				read()
			except Exception as exc:
				failure.report(exc)

		threading.Thread(target=check_readable, name="store-listen-check", daemon=True).start()
		return failure.handle

	def close(self) -> None:
		self._client.close()


class _ListenFailure:
	"""Reports the first fatal error of one listener and stops it; later ones are dropped."""

	def __init__(self, where: str, on_error: Optional[ErrorFn]) -> None:
		self.where = where
		self.handle: Optional[ListenerHandle] = None
		self._on_error = on_error
		self._lock = threading.Lock()
		self._reported = False

	def report(self, exc: Exception) -> None:
		with self._lock:
			if self._reported or (self.handle is not None and self.handle.closed):
				return
			self._reported = True
		err = translate_error(exc)
		logger.warning(f"[listen] - listen_failed - {self.where} error={err}")
		if self.handle is not None:
			self.handle.close()
		if self._on_error is not None:
			self._on_error(err)
