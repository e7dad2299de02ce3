from __future__ import annotations

from typing import Any, Mapping, Optional

from loguru import logger

from services.document_store import SERVER_TIMESTAMP, DocumentStore, OrderBy, QuerySpec, Record
from services.list_view import SortKey, by_text, by_timestamp


APPLICATIONS_COLLECTION = "applications"

STATUS_SUBMITTED = "submitted"
STATUS_IN_REVIEW = "in-review"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"
STATUS_WON = "won"
STATUS_MISSED = "missed"
STATUS_WITHDRAWN = "withdrawn"
STATUS_DRAFT = "draft"

APPLICATION_STATUSES = (
	STATUS_SUBMITTED,
	STATUS_IN_REVIEW,
	STATUS_APPROVED,
	STATUS_REJECTED,
	STATUS_WON,
	STATUS_MISSED,
	STATUS_WITHDRAWN,
	STATUS_DRAFT,
)

# statuses an admin can assign on the review screen
REVIEW_STATUSES = (STATUS_SUBMITTED, STATUS_IN_REVIEW, STATUS_APPROVED, STATUS_REJECTED)

WITHDRAWABLE_STATUSES = (STATUS_SUBMITTED, STATUS_IN_REVIEW)
DELETABLE_STATUSES = (STATUS_DRAFT, STATUS_WITHDRAWN)

ACTION_VIEW = "view"
ACTION_WITHDRAW = "withdraw"
ACTION_DELETE = "delete"

COMPANY_SIZES = ("1-10 employees", "10-50 employees", "50-100 employees", "100-500 employees", "500+ employees")

APPLICATION_FORM_FIELDS = ("companyName", "businessEmail", "companySize", "industry", "grantPurpose")

SEARCH_FIELDS = ("grantName", "organization")
ADMIN_SEARCH_FIELDS = ("grantName", "applicantName", "applicantEmail")

SORT_MOST_RECENT = "Most recent"
SORT_OLDEST_FIRST = "Oldest first"
SORT_STATUS = "Status"


def my_grants_sort_options() -> list[SortKey]:
	return [
		by_timestamp("submittedAt", descending=True, label=SORT_MOST_RECENT),
		by_timestamp("submittedAt", descending=False, label=SORT_OLDEST_FIRST),
		by_text("status", label=SORT_STATUS),
	]


def status_label(status: Any) -> str:
	return str(status or "").replace("-", " ").capitalize() or "Unknown"


def available_actions(status: Any) -> list[str]:
	actions = [ACTION_VIEW]
	if status in WITHDRAWABLE_STATUSES:
		actions.append(ACTION_WITHDRAW)
	if status in DELETABLE_STATUSES:
		actions.append(ACTION_DELETE)
	return actions


def user_applications_query(uid: str) -> QuerySpec:
	return QuerySpec(APPLICATIONS_COLLECTION, order_by=OrderBy("submittedAt", descending=True)).where_eq("userId", uid)


def all_applications_query() -> QuerySpec:
	return QuerySpec(APPLICATIONS_COLLECTION, order_by=OrderBy("submittedAt", descending=True))


def default_application_form(profile: Mapping[str, Any] | None = None, email: str = "") -> Record:
	"""Apply-form defaults prefilled from the selected business profile."""
	data = profile or {}
	return {
		"companyName": str(data.get("businessName") or ""),
		"businessEmail": str(data.get("businessEmail") or email or ""),
		"companySize": "",
		"industry": str(data.get("industry") or ""),
		"grantPurpose": "",
	}


def validate_application_form(form: Mapping[str, Any]) -> dict[str, str]:
	errors: dict[str, str] = {}
	if not str(form.get("companyName") or "").strip():
		errors["companyName"] = "Company name is required"
	if not str(form.get("businessEmail") or "").strip():
		errors["businessEmail"] = "Business email is required"
	if not str(form.get("grantPurpose") or "").strip():
		errors["grantPurpose"] = "Tell us what you intend to do with the grant"
	return errors


def submit_application(
	store: DocumentStore,
	*,
	uid: str,
	applicant_name: Optional[str],
	applicant_email: Optional[str],
	opportunity: Mapping[str, Any],
	form: Mapping[str, Any],
) -> str:
	errors = validate_application_form(form)
	if errors:
		raise ValueError("; ".join(errors.values()))

	payload = {
		"userId": uid,
		"applicantName": applicant_name or "Unnamed User",
		"applicantEmail": applicant_email or "",
		"grantId": opportunity.get("id"),
		"grantName": opportunity.get("title") or opportunity.get("grantName") or "Untitled Grant",
		"organization": opportunity.get("organization") or "",
		"amount": opportunity.get("grantSize") or "",
		"deadline": opportunity.get("deadline") or "",
		"status": STATUS_SUBMITTED,
		"submittedAt": SERVER_TIMESTAMP,
		"applicationForm": {name: str(form.get(name) or "") for name in APPLICATION_FORM_FIELDS},
	}
	app_id = store.add(APPLICATIONS_COLLECTION, payload)
	logger.info(f"[submit_application] - application_submitted - app_id={app_id} grant_id={payload['grantId']} uid={uid}")
	return app_id


def withdraw_fields() -> Record:
	return {"status": STATUS_WITHDRAWN, "withdrawnAt": SERVER_TIMESTAMP}
