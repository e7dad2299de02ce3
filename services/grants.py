from __future__ import annotations

import copy
import re
from datetime import date, datetime
from typing import Any, Optional

from loguru import logger

from services.document_store import SERVER_TIMESTAMP, DocumentStore, OrderBy, QuerySpec, Record


GRANTS_COLLECTION = "grants"

STATUS_DRAFT = "Draft"
STATUS_OPEN = "Open"
STATUS_CLOSED = "Closed"
STATUS_REVIEW = "Review"
GRANT_STATUSES = (STATUS_DRAFT, STATUS_OPEN, STATUS_CLOSED, STATUS_REVIEW)
STATUS_LABELS = {STATUS_REVIEW: "Under Review"}

CURRENCIES = ("USD", "EUR", "GBP", "NGN")
FUNDING_TYPES = ("Grant", "Loan", "Investment", "Scholarship")
RENEWABILITY_OPTIONS = ("Non-renewable", "Renewable", "Multi-year")
CATEGORIES = ("Technology", "Education", "Healthcare", "Environment", "Arts", "Business", "Research")
CUSTOM_FIELD_TYPES = ("text", "number", "date", "email", "url", "tel")

ARRAY_FIELDS = ("requirements", "benefits", "tags")

REQUIRED_FIELDS = {
	"grantName": "Grant name",
	"organization": "Organization",
	"shortDescription": "Short description",
	"amount": "Amount",
	"applicationDeadline": "Application deadline",
}

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class GrantValidationError(ValueError):
	"""Raised with a field -> message mapping when a grant form is incomplete."""

	def __init__(self, errors: dict[str, str]) -> None:
		self.errors = dict(errors)
		super().__init__("; ".join(self.errors.values()) or "Invalid grant")


# ------------------------------------------------------------------ form model

def default_grant_form() -> Record:
	return {
		"grantName": "",
		"organization": "",
		"shortDescription": "",
		"fullDescription": "",
		"amount": "",
		"currency": "USD",
		"deadline": "",
		"applicationDeadline": "",
		"category": "",
		"eligibility": "",
		"requirements": [""],
		"benefits": [""],
		"applicationProcess": "",
		"contactEmail": "",
		"contactPhone": "",
		"website": "",
		"tags": [""],
		"status": STATUS_DRAFT,
		"maxApplications": "",
		"targetAudience": "",
		"geographicScope": "",
		"fundingType": "Grant",
		"duration": "",
		"renewability": "Non-renewable",
		"customFields": [],
	}


def _array(form: Record, field_name: str) -> list[str]:
	if field_name not in ARRAY_FIELDS:
		raise KeyError(f"Not an array field: {field_name}")
	items = form.get(field_name)
	if not isinstance(items, list):
		items = []
		form[field_name] = items
	return items


def set_array_item(form: Record, field_name: str, index: int, value: str) -> None:
	items = _array(form, field_name)
	if 0 <= index < len(items):
		items[index] = value


def add_array_item(form: Record, field_name: str) -> None:
	_array(form, field_name).append("")


def remove_array_item(form: Record, field_name: str, index: int) -> None:
	items = _array(form, field_name)
	if 0 <= index < len(items):
		del items[index]
	if not items:
		items.append("")


def add_custom_field(form: Record, name: str, field_type: str = "text") -> None:
	name = (name or "").strip()
	if not name:
		raise GrantValidationError({"customFields": "Field name is required"})
	if field_type not in CUSTOM_FIELD_TYPES:
		raise GrantValidationError({"customFields": f"Unknown field type: {field_type}"})
	form.setdefault("customFields", []).append({"name": name, "value": "", "type": field_type})


def update_custom_field(form: Record, index: int, value: Any) -> None:
	fields = form.setdefault("customFields", [])
	if 0 <= index < len(fields):
		fields[index] = {**fields[index], "value": value}


def remove_custom_field(form: Record, index: int) -> None:
	fields = form.setdefault("customFields", [])
	if 0 <= index < len(fields):
		del fields[index]


# ------------------------------------------------------------------ validation / payload

def parse_amount(value: Any) -> Optional[float]:
	if value is None or isinstance(value, bool):
		return None
	try:
		amount = float(str(value).replace(",", "").strip())
	except ValueError:
		return None
	return amount


def _parse_date(value: Any) -> Optional[date]:
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	text = str(value or "").strip()
	if not text:
		return None
	try:
		return date.fromisoformat(text[:10])
	except ValueError:
		return None


def validate_grant_form(form: Record) -> dict[str, str]:
	errors: dict[str, str] = {}
	for name, label in REQUIRED_FIELDS.items():
		if not str(form.get(name) or "").strip():
			errors[name] = f"{label} is required"

	if "amount" not in errors:
		amount = parse_amount(form.get("amount"))
		if amount is None or amount <= 0:
			errors["amount"] = "Amount must be a positive number"

	if "applicationDeadline" not in errors and _parse_date(form.get("applicationDeadline")) is None:
		errors["applicationDeadline"] = "Application deadline must be a date (YYYY-MM-DD)"

	email = str(form.get("contactEmail") or "").strip()
	if email and not _EMAIL_RE.match(email):
		errors["contactEmail"] = "Contact email is not a valid email address"

	if form.get("status") not in GRANT_STATUSES:
		errors["status"] = "Unknown status"
	return errors


def _number(value: float) -> float | int:
	return int(value) if float(value).is_integer() else value


def build_grant_payload(form: Record, *, created_by: str | None = None, author_name: str | None = None) -> Record:
	"""
	Turn a validated form into the stored document.
	Blank array entries and unnamed custom fields are dropped. created_by/author_name
	are set only on creation.
	"""
	errors = validate_grant_form(form)
	if errors:
		raise GrantValidationError(errors)

	payload = copy.deepcopy({k: v for k, v in form.items() if k != "id"})
	for name in ARRAY_FIELDS:
		payload[name] = [str(item).strip() for item in form.get(name) or [] if str(item).strip()]
	payload["customFields"] = [
		dict(f) for f in form.get("customFields") or [] if str(f.get("name") or "").strip()
	]
	payload["amount"] = _number(parse_amount(form.get("amount")) or 0)
	max_apps = parse_amount(form.get("maxApplications"))
	payload["maxApplications"] = _number(max_apps) if max_apps is not None else ""
	for name in ("grantName", "organization", "shortDescription", "contactEmail", "website"):
		payload[name] = str(payload.get(name) or "").strip()

	payload["updatedAt"] = SERVER_TIMESTAMP
	if created_by is not None:
		payload["createdBy"] = created_by
		payload["authorName"] = author_name or "Admin"
		payload["createdAt"] = SERVER_TIMESTAMP
	return payload


def create_grant(store: DocumentStore, form: Record, *, created_by: str, author_name: str | None) -> str:
	payload = build_grant_payload(form, created_by=created_by, author_name=author_name)
	grant_id = store.add(GRANTS_COLLECTION, payload)
	logger.info(f"[create_grant] - grant_created - grant_id={grant_id} status={payload['status']} by={created_by}")
	return grant_id


def update_grant(store: DocumentStore, grant_id: str, form: Record) -> None:
	payload = build_grant_payload(form)
	store.update(GRANTS_COLLECTION, grant_id, payload)
	logger.info(f"[update_grant] - grant_updated - grant_id={grant_id} status={payload['status']}")


def load_grant_form(store: DocumentStore, grant_id: str) -> Optional[Record]:
	"""Stored grant merged over the form defaults (None if the grant does not exist)."""
	record = store.get(GRANTS_COLLECTION, grant_id)
	if record is None:
		return None
	form = default_grant_form()
	for key in form:
		if key in record and record[key] is not None:
			form[key] = copy.deepcopy(record[key])
	for name in ARRAY_FIELDS:
		if not isinstance(form[name], list) or not form[name]:
			form[name] = [""]
	if form["amount"] != "":
		form["amount"] = str(form["amount"])
	if form["maxApplications"] != "":
		form["maxApplications"] = str(form["maxApplications"])
	return form


# ------------------------------------------------------------------ queries

def all_grants_query() -> QuerySpec:
	return QuerySpec(GRANTS_COLLECTION, order_by=OrderBy("createdAt", descending=True))


def open_grants_query() -> QuerySpec:
	return QuerySpec(GRANTS_COLLECTION, order_by=OrderBy("createdAt", descending=True)).where_eq("status", STATUS_OPEN)


def recent_grants_query(limit: int = 5) -> QuerySpec:
	return QuerySpec(GRANTS_COLLECTION, order_by=OrderBy("createdAt", descending=True), limit=limit)


# ------------------------------------------------------------------ view mapping

def status_label(status: Any) -> str:
	return STATUS_LABELS.get(str(status), str(status or "N/A"))


def format_amount(amount: Any, currency: Any = "") -> str:
	value = parse_amount(amount)
	if value is None:
		return f"{amount or 0} {currency or ''}".strip()
	text = f"{value:,.0f}" if value.is_integer() else f"{value:,.2f}"
	return f"{text} {currency or ''}".strip()


def format_date(value: Any) -> str:
	parsed = _parse_date(value)
	return parsed.strftime("%b %d, %Y") if parsed else "N/A"


def to_opportunity(record: Record) -> Record:
	"""Card fields for the opportunities browser."""
	return {
		"id": record.get("id"),
		"title": record.get("grantName") or "Untitled Grant",
		"description": record.get("shortDescription") or "",
		"organization": record.get("organization") or "",
		"status": record.get("status") or "N/A",
		"category": record.get("category") or "",
		"grantSize": format_amount(record.get("amount"), record.get("currency")),
		"deadline": format_date(record.get("applicationDeadline")),
		"region": record.get("geographicScope") or "Global",
		"createdAt": record.get("createdAt"),
		"applicationDeadline": record.get("applicationDeadline"),
		"amount": parse_amount(record.get("amount")),
	}
