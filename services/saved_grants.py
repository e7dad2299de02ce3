from __future__ import annotations

from typing import Any, Iterable, Mapping

from loguru import logger

from services.accounts import USERS_COLLECTION
from services.document_store import SERVER_TIMESTAMP, DocumentStore, QuerySpec, Record, collection_path


def saved_grants_collection(uid: str) -> str:
	return collection_path(USERS_COLLECTION, uid, "savedGrants")


def saved_grants_query(uid: str) -> QuerySpec:
	return QuerySpec(saved_grants_collection(uid))


def saved_ids(records: Iterable[Record]) -> set[str]:
	return {str(r.get("id")) for r in records}


def toggle_saved(store: DocumentStore, uid: str, opportunity: Mapping[str, Any], currently_saved: bool) -> bool:
	"""Bookmark or un-bookmark a grant (document id = grant id). Returns the new saved state."""
	grant_id = str(opportunity.get("id") or "")
	if not grant_id:
		raise ValueError("Grant id is required")
	collection = saved_grants_collection(uid)
	if currently_saved:
		store.delete(collection, grant_id)
		logger.info(f"[toggle_saved] - unsaved - uid={uid} grant_id={grant_id}")
		return False
	store.set(
		collection,
		grant_id,
		{"grantId": grant_id, "title": opportunity.get("title") or "", "savedAt": SERVER_TIMESTAMP},
	)
	logger.info(f"[toggle_saved] - saved - uid={uid} grant_id={grant_id}")
	return True
