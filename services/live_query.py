from __future__ import annotations

import asyncio
import threading
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from services.document_store import (
	DocumentStore,
	ListenerHandle,
	MissingIndexError,
	PermissionDeniedError,
	QuerySpec,
	Record,
	StoreError,
)


STATE_IDLE = "idle"
STATE_FETCHING = "fetching"
STATE_READY = "ready"
STATE_ERROR = "error"

RecordsFn = Callable[[list[Record]], None]
MessageFn = Callable[[str], None]
DispatchFn = Callable[[Callable[[], None]], None]
RunIoFn = Callable[..., Awaitable[Any]]


def _dispatch_now(fn: Callable[[], None]) -> None:
	fn()


def error_message(exc: Exception, label: str) -> str:
	"""User-facing text for a failed read."""
	if isinstance(exc, MissingIndexError):
		return f"Loading {label} needs a database index that is still being built. Please try again later."
	if isinstance(exc, PermissionDeniedError):
		return f"You do not have permission to view {label}."
	return f"Failed to load {label}. Please try again."


class LiveQuery:
	"""
	Keeps one live query open and delivers the complete result on every change.

	subscribe() switches to a new query: the previous listener is closed and any
	snapshot it still delivers is ignored (generation check at apply time, after
	dispatch). On failure the consumer receives an empty list plus an error message.

	dispatch moves delivery onto the UI thread (UiBridge.emit_call in pages).
	"""

	def __init__(
		self,
		store: DocumentStore,
		*,
		on_records: RecordsFn,
		on_error: Optional[MessageFn] = None,
		dispatch: Optional[DispatchFn] = None,
		label: str = "records",
	) -> None:
		self._store = store
		self._on_records = on_records
		self._on_error = on_error
		self._dispatch = dispatch or _dispatch_now
		self.label = label

		self._lock = threading.Lock()
		self._generation = 0
		self._handle: Optional[ListenerHandle] = None
		self._closed = False
		self.state = STATE_IDLE
		self.spec: Optional[QuerySpec] = None

	@property
	def generation(self) -> int:
		return self._generation

	@property
	def closed(self) -> bool:
		return self._closed

	def subscribe(self, spec: Optional[QuerySpec]) -> None:
		"""Open `spec` (None: stop listening and deliver an empty result)."""
		if self._closed:
			raise RuntimeError(f"LiveQuery '{self.label}' is closed")

		generation = self._advance()
		self.spec = spec
		if spec is None:
			self.state = STATE_IDLE
			self._on_records([])
			return

		self.state = STATE_FETCHING
		logger.debug(f"[subscribe] - open - label={self.label} generation={generation} spec={spec.describe()}")
		handle = self._store.listen(
			spec,
			lambda records: self._dispatch(lambda: self._apply(generation, records)),
			lambda exc: self._dispatch(lambda: self._fail(generation, exc)),
		)

		with self._lock:
			if generation == self._generation:
				self._handle = handle
				handle = None
		if handle is not None:
			# switched again while the listener was being opened
			handle.close()

	def stop(self) -> None:
		self._advance()
		self.state = STATE_IDLE

	def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		self._advance()
		self.state = STATE_IDLE
		logger.debug(f"[close] - closed - label={self.label}")

	# ----- internals -----

	def _advance(self) -> int:
		with self._lock:
			self._generation += 1
			generation = self._generation
			old, self._handle = self._handle, None
		if old is not None:
			old.close()
		return generation

	def _is_current(self, generation: int) -> bool:
		with self._lock:
			return not self._closed and generation == self._generation

	def _apply(self, generation: int, records: list[Record]) -> None:
		if not self._is_current(generation):
			logger.trace(f"[_apply] - stale_snapshot_dropped - label={self.label} generation={generation}")
			return
		self.state = STATE_READY
		self._on_records(records)

	def _fail(self, generation: int, exc: Exception) -> None:
		if not self._is_current(generation):
			return
		logger.warning(f"[_fail] - live_query_failed - label={self.label} error={exc}")
		self.state = STATE_ERROR
		self._on_records([])
		if self._on_error is not None:
			self._on_error(error_message(exc, self.label))


class OneShotQuery:
	"""Same contract as LiveQuery for screens that read once on mount."""

	def __init__(
		self,
		store: DocumentStore,
		*,
		on_records: RecordsFn,
		on_error: Optional[MessageFn] = None,
		run_io: Optional[RunIoFn] = None,
		label: str = "records",
	) -> None:
		self._store = store
		self._on_records = on_records
		self._on_error = on_error
		self._run_io = run_io or asyncio.to_thread
		self.label = label
		self._generation = 0
		self._closed = False
		self.state = STATE_IDLE

	async def load(self, spec: QuerySpec) -> Optional[list[Record]]:
		"""Fetch `spec`. Returns the delivered records, or None when a newer load superseded this one."""
		if self._closed:
			return None
		self._generation += 1
		generation = self._generation
		self.state = STATE_FETCHING

		try:
			records = await self._run_io(self._store.query, spec)
		except StoreError as exc:
			if generation != self._generation or self._closed:
				return None
			logger.warning(f"[load] - one_shot_query_failed - label={self.label} spec={spec.describe()} error={exc}")
			self.state = STATE_ERROR
			self._on_records([])
			if self._on_error is not None:
				self._on_error(error_message(exc, self.label))
			return []

		if generation != self._generation or self._closed:
			logger.trace(f"[load] - stale_result_dropped - label={self.label} generation={generation}")
			return None
		self.state = STATE_READY
		self._on_records(records)
		return records

	def close(self) -> None:
		self._closed = True
		self._generation += 1
		self.state = STATE_IDLE
