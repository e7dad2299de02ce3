from __future__ import annotations

from typing import Any, Mapping

from loguru import logger

from services.aggregates import (
	MILESTONE_COMPLETED,
	MILESTONE_IN_PROGRESS,
	MILESTONE_PENDING,
	clamp_progress,
	milestone_status_for_progress,
)
from services.applications import APPLICATIONS_COLLECTION
from services.document_store import SERVER_TIMESTAMP, DocumentStore, OrderBy, QuerySpec, Record, collection_path


MILESTONE_STATUSES = (MILESTONE_PENDING, MILESTONE_IN_PROGRESS, MILESTONE_COMPLETED)

# completed milestones stay for the record
DELETABLE_STATUSES = (MILESTONE_PENDING, MILESTONE_IN_PROGRESS)


class MilestoneValidationError(ValueError):
	pass


def milestones_collection(application_id: str) -> str:
	return collection_path(APPLICATIONS_COLLECTION, application_id, "milestones")


def milestones_query(application_id: str) -> QuerySpec:
	return QuerySpec(milestones_collection(application_id), order_by=OrderBy("createdAt"))


def default_milestone_form() -> Record:
	return {"title": "", "description": "", "progress": 0}


def can_delete(milestone: Mapping[str, Any]) -> bool:
	return milestone.get("status", MILESTONE_PENDING) in DELETABLE_STATUSES


def validate_milestone_form(form: Mapping[str, Any]) -> Record:
	title = str(form.get("title") or "").strip()
	description = str(form.get("description") or "").strip()
	if not title or not description:
		raise MilestoneValidationError("Title and description are required.")
	return {"title": title, "description": description, "progress": clamp_progress(form.get("progress"))}


def create_milestone(store: DocumentStore, application_id: str, form: Mapping[str, Any]) -> str:
	data = validate_milestone_form(form)
	data["status"] = milestone_status_for_progress(data["progress"])
	data["createdAt"] = SERVER_TIMESTAMP
	milestone_id = store.add(milestones_collection(application_id), data)
	logger.info(
		f"[create_milestone] - milestone_created - application_id={application_id} "
		f"milestone_id={milestone_id} status={data['status']}"
	)
	return milestone_id


def update_milestone(store: DocumentStore, application_id: str, milestone_id: str, form: Mapping[str, Any]) -> None:
	"""Edits title/description/progress; the status is left as the user set it."""
	data = validate_milestone_form(form)
	data["updatedAt"] = SERVER_TIMESTAMP
	store.update(milestones_collection(application_id), milestone_id, data)
	logger.info(f"[update_milestone] - milestone_updated - application_id={application_id} milestone_id={milestone_id}")


def set_milestone_status(store: DocumentStore, application_id: str, milestone_id: str, status: str) -> None:
	if status not in MILESTONE_STATUSES:
		raise MilestoneValidationError(f"Unknown milestone status: {status}")
	store.update(milestones_collection(application_id), milestone_id, {"status": status})
	logger.info(
		f"[set_milestone_status] - status_changed - application_id={application_id} "
		f"milestone_id={milestone_id} status={status}"
	)


def has_milestones(store: DocumentStore, application_ids: list[str]) -> bool:
	"""True once any of the user's applications has at least one milestone."""
	for application_id in application_ids:
		if store.query(QuerySpec(milestones_collection(application_id), limit=1)):
			return True
	return False
