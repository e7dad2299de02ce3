from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Iterable, Optional

from loguru import logger

from services.document_store import SERVER_TIMESTAMP, DocumentStore, Record, StoreError
from services.list_view import ListViewState


STATE_IDLE = "idle"
STATE_SUBMITTING = "submitting"
STATE_ERROR = "error"

NotifyFn = Callable[..., Any]
ConfirmFn = Callable[[str], Awaitable[bool]]
RunIoFn = Callable[..., Awaitable[Any]]


class RowMutationHandler:
	"""
	Deletes and field updates for the rows of one list screen.

	The remote write happens first; the local view is only changed after it
	succeeded. Deleting several rows is a single batched write, so either all
	rows go or none do. Deletes always ask `confirm` before writing.
	"""

	def __init__(
		self,
		store: DocumentStore,
		collection: str,
		view: ListViewState,
		*,
		notify: NotifyFn,
		confirm: ConfirmFn,
		run_io: Optional[RunIoFn] = None,
		item_label: str = "item",
		plural_label: str | None = None,
	) -> None:
		self._store = store
		self.collection = collection
		self.view = view
		self._notify = notify
		self._confirm = confirm
		self._run_io = run_io or asyncio.to_thread
		self.item_label = item_label
		self.plural_label = plural_label or f"{item_label}s"
		self.state = STATE_IDLE

	@property
	def busy(self) -> bool:
		return self.state == STATE_SUBMITTING

	def _label(self, count: int) -> str:
		return self.item_label if count == 1 else self.plural_label

	def _reject_if_busy(self) -> bool:
		if self.busy:
			self._notify("Please wait for the current action to finish.", type="warning")
			return True
		return False

	# ----- delete -----

	async def delete(self, ids: Iterable[str], *, confirm_message: str | None = None) -> bool:
		doomed = list(dict.fromkeys(str(i) for i in ids if i))
		if not doomed or self._reject_if_busy():
			return False

		label = self._label(len(doomed))
		message = confirm_message or (
			f"Are you sure you want to delete this {label}?"
			if len(doomed) == 1
			else f"Are you sure you want to delete {len(doomed)} {label}?"
		)
		if not await self._confirm(message):
			logger.debug(f"[delete] - cancelled - collection={self.collection} ids={len(doomed)}")
			return False
		if self._reject_if_busy():
			return False

		self.state = STATE_SUBMITTING
		try:
			await self._run_io(self._delete_remote, doomed)
		except StoreError as exc:
			self.state = STATE_ERROR
			logger.warning(f"[delete] - delete_failed - collection={self.collection} ids={doomed} error={exc}")
			self._notify(f"Failed to delete {label}. Please try again.", type="negative")
			return False
		except Exception as exc:
			self.state = STATE_ERROR
			logger.exception(f"[delete] - delete_error - collection={self.collection} ids={doomed} error={exc}")
			self._notify(f"Failed to delete {label}. Please try again.", type="negative")
			return False

		self.view.remove_ids(doomed)
		self.state = STATE_IDLE
		logger.info(f"[delete] - deleted - collection={self.collection} count={len(doomed)}")
		self._notify(
			f"{label.capitalize()} deleted." if len(doomed) == 1 else f"{len(doomed)} {label} deleted.",
			type="positive",
		)
		return True

	async def delete_selected(self, *, confirm_message: str | None = None) -> bool:
		selected = self.view.selected_ids
		if not selected:
			self._notify(f"Please select {self.plural_label} first.", type="warning")
			return False
		return await self.delete(selected, confirm_message=confirm_message)

	def _delete_remote(self, ids: list[str]) -> None:
		if len(ids) == 1:
			self._store.delete(self.collection, ids[0])
			return
		batch = self._store.batch()
		for doc_id in ids:
			batch.delete(self.collection, doc_id)
		batch.commit()

	# ----- update -----

	async def update(self, doc_id: str, fields: Record, *, success_message: str | None = None) -> bool:
		if self._reject_if_busy():
			return False

		self.state = STATE_SUBMITTING
		try:
			await self._run_io(self._store.update, self.collection, str(doc_id), dict(fields))
		except StoreError as exc:
			self.state = STATE_ERROR
			logger.warning(f"[update] - update_failed - collection={self.collection} doc_id={doc_id} error={exc}")
			self._notify(f"Failed to update {self.item_label}. Please try again.", type="negative")
			return False
		except Exception as exc:
			self.state = STATE_ERROR
			logger.exception(f"[update] - update_error - collection={self.collection} doc_id={doc_id} error={exc}")
			self._notify(f"Failed to update {self.item_label}. Please try again.", type="negative")
			return False

		# server timestamps arrive with the next snapshot
		self.view.patch_record(str(doc_id), {k: v for k, v in fields.items() if v is not SERVER_TIMESTAMP})
		self.state = STATE_IDLE
		logger.info(f"[update] - updated - collection={self.collection} doc_id={doc_id} fields={sorted(fields)}")
		if success_message:
			self._notify(success_message, type="positive")
		return True
