from __future__ import annotations

import re
import uuid
from typing import Any, Mapping, Optional

from loguru import logger

from services.document_store import SERVER_TIMESTAMP, DocumentStore, Record, collection_path


USERS_COLLECTION = "users"
DEACTIVATION_REQUESTS_COLLECTION = "deactivationRequests"

ROLE_USER = "user"
ROLE_ADMIN = "admin"

ONBOARDING_FIELDS = (
	"firstName",
	"lastName",
	"businessName",
	"businessNumber",
	"businessEmail",
	"website",
	"industry",
	"roleInCompany",
	"businessDescription",
)
ONBOARDING_REQUIRED = ("firstName", "lastName", "businessName", "businessEmail")

BUSINESS_ONBOARDING_FIELDS = (
	"businessName",
	"businessNumber",
	"businessEmail",
	"website",
	"industry",
	"roleInCompany",
	"businessDescription",
)

NOTIFICATION_PREFERENCES = {
	"emailNotifications": True,
	"pushNotifications": True,
	"smsNotifications": False,
	"marketingEmails": False,
}
SECURITY_PREFERENCES = {
	"twoFactorAuth": False,
	"loginAlerts": True,
	"sessionTimeout": "30",
}
SESSION_TIMEOUTS = ("15", "30", "60", "120")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AccountError(ValueError):
	pass


class OnboardingError(AccountError):
	pass


def business_profiles_collection(uid: str) -> str:
	return collection_path(USERS_COLLECTION, uid, "businessProfiles")


def get_user_document(store: DocumentStore, uid: str) -> Optional[Record]:
	return store.get(USERS_COLLECTION, uid)


def user_role(user_doc: Mapping[str, Any] | None, default: str = ROLE_USER) -> str:
	role = str((user_doc or {}).get("role") or "").strip()
	return role or default


def is_onboarded(user_doc: Mapping[str, Any] | None) -> bool:
	return bool(str((user_doc or {}).get("firstName") or "").strip())


def split_display_name(display_name: str | None) -> tuple[str, str]:
	parts = str(display_name or "").strip().split(None, 1)
	if not parts:
		return "", ""
	return parts[0], parts[1] if len(parts) > 1 else ""


def display_name_for(first_name: str, last_name: str) -> str:
	return " ".join(p for p in (first_name.strip(), last_name.strip()) if p)


def default_onboarding_form(display_name: str | None = None, email: str = "") -> Record:
	first, last = split_display_name(display_name)
	form = {name: "" for name in ONBOARDING_FIELDS}
	form.update({"firstName": first, "lastName": last, "businessEmail": email or ""})
	return form


def validate_onboarding_form(form: Mapping[str, Any]) -> dict[str, str]:
	errors = {
		name: "This field is required"
		for name in ONBOARDING_REQUIRED
		if not str(form.get(name) or "").strip()
	}
	email = str(form.get("businessEmail") or "").strip()
	if email and not _EMAIL_RE.match(email):
		errors["businessEmail"] = "Enter a valid email address"
	return errors


def complete_onboarding(store: DocumentStore, *, uid: str, email: str, form: Mapping[str, Any]) -> str:
	"""
	Writes the user document (role 'user') and the first business profile.
	Returns the display name ("first last") for the identity provider.
	"""
	errors = validate_onboarding_form(form)
	if errors:
		raise OnboardingError("Please fill in all required fields.")

	clean = {name: str(form.get(name) or "").strip() for name in ONBOARDING_FIELDS}
	existing = store.get(USERS_COLLECTION, uid) or {}

	user_data = {
		"uid": uid,
		"email": email,
		"role": user_role(existing),
		"firstName": clean["firstName"],
		"lastName": clean["lastName"],
		"createdAt": existing.get("createdAt") or SERVER_TIMESTAMP,
	}
	profile_data = {name: clean[name] for name in BUSINESS_ONBOARDING_FIELDS}
	profile_data["createdAt"] = SERVER_TIMESTAMP

	batch = store.batch()
	batch.set(USERS_COLLECTION, uid, user_data, merge=True)
	batch.set(business_profiles_collection(uid), _new_id(), profile_data)
	batch.commit()

	logger.info(f"[complete_onboarding] - onboarding_completed - uid={uid} business={clean['businessName']!r}")
	return display_name_for(clean["firstName"], clean["lastName"])


def _new_id() -> str:
	return uuid.uuid4().hex[:20]


# ------------------------------------------------------------------ settings

def personal_info_form(user_doc: Mapping[str, Any] | None, email: str = "") -> Record:
	data = user_doc or {}
	return {
		"firstName": str(data.get("firstName") or ""),
		"lastName": str(data.get("lastName") or ""),
		"phone": str(data.get("phone") or ""),
		"roleTitle": str(data.get("roleTitle") or ""),
		"email": str(data.get("email") or email or ""),
	}


def save_personal_info(store: DocumentStore, uid: str, form: Mapping[str, Any]) -> None:
	first = str(form.get("firstName") or "").strip()
	last = str(form.get("lastName") or "").strip()
	if not first or not last:
		raise AccountError("First and last name are required.")
	store.set(
		USERS_COLLECTION,
		uid,
		{
			"firstName": first,
			"lastName": last,
			"phone": str(form.get("phone") or "").strip(),
			"roleTitle": str(form.get("roleTitle") or "").strip(),
			"updatedAt": SERVER_TIMESTAMP,
		},
		merge=True,
	)
	logger.info(f"[save_personal_info] - saved - uid={uid}")


def bank_info_form(user_doc: Mapping[str, Any] | None) -> Record:
	data = user_doc or {}
	return {
		"bankAccountName": str(data.get("bankAccountName") or ""),
		"bankAccountNumber": str(data.get("bankAccountNumber") or ""),
		"bankName": str(data.get("bankName") or ""),
		"taxIdNumber": str(data.get("taxIdNumber") or ""),
	}


def mask_account_number(number: Any) -> str:
	text = str(number or "")
	return "*" * max(0, len(text) - 4) + text[-4:]


def save_bank_info(store: DocumentStore, uid: str, form: Mapping[str, Any]) -> None:
	number = re.sub(r"\s+", "", str(form.get("bankAccountNumber") or ""))
	if number and not number.isdigit():
		raise AccountError("Account number may only contain digits.")
	store.set(
		USERS_COLLECTION,
		uid,
		{
			"bankAccountName": str(form.get("bankAccountName") or "").strip(),
			"bankAccountNumber": number,
			"bankName": str(form.get("bankName") or "").strip(),
			"taxIdNumber": str(form.get("taxIdNumber") or "").strip(),
			"updatedAt": SERVER_TIMESTAMP,
		},
		merge=True,
	)
	logger.info(f"[save_bank_info] - saved - uid={uid} account={mask_account_number(number)}")


def preferences_from(user_doc: Mapping[str, Any] | None) -> tuple[Record, Record]:
	data = user_doc or {}
	notifications = {**NOTIFICATION_PREFERENCES, **(data.get("notifications") or {})}
	security = {**SECURITY_PREFERENCES, **(data.get("security") or {})}
	return notifications, security


def save_preferences(store: DocumentStore, uid: str, notifications: Mapping[str, Any], security: Mapping[str, Any]) -> None:
	clean_notifications = {k: bool(notifications.get(k, v)) for k, v in NOTIFICATION_PREFERENCES.items()}
	clean_security = {
		"twoFactorAuth": bool(security.get("twoFactorAuth", False)),
		"loginAlerts": bool(security.get("loginAlerts", True)),
		"sessionTimeout": str(security.get("sessionTimeout") or SECURITY_PREFERENCES["sessionTimeout"]),
	}
	if clean_security["sessionTimeout"] not in SESSION_TIMEOUTS:
		raise AccountError(f"Unsupported session timeout: {clean_security['sessionTimeout']}")
	store.set(
		USERS_COLLECTION,
		uid,
		{"notifications": clean_notifications, "security": clean_security, "updatedAt": SERVER_TIMESTAMP},
		merge=True,
	)
	logger.info(f"[save_preferences] - saved - uid={uid}")


def request_deactivation(store: DocumentStore, uid: str, email: str, reason: str = "") -> str:
	"""Records the request; an administrator performs the actual removal."""
	request_id = store.add(
		DEACTIVATION_REQUESTS_COLLECTION,
		{"uid": uid, "email": email, "reason": reason.strip(), "status": "pending", "requestedAt": SERVER_TIMESTAMP},
	)
	store.set(USERS_COLLECTION, uid, {"deactivationRequested": True}, merge=True)
	logger.warning(f"[request_deactivation] - deactivation_requested - uid={uid} request_id={request_id}")
	return request_id
