from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from loguru import logger

from services.accounts import business_profiles_collection
from services.document_store import SERVER_TIMESTAMP, DocumentStore, OrderBy, QuerySpec, Record


@dataclass(frozen=True)
class BusinessField:
	name: str
	label: str
	kind: str = "text"  # text | textarea | select | url | email | tel | number
	options: tuple[str, ...] = ()
	required: bool = False


_COUNTRIES = ("Nigeria", "Ghana", "Kenya", "South Africa")
_ROUNDS = ("Haven't raised yet", "Pre-seed", "Seed", "Series A", "Series B")
_YES_NO = ("Yes", "No")

STEP_OVERVIEW = "Business Overview"
STEP_DETAILS = "Business Details"
STEP_OWNERSHIP = "Ownership Details"
STEP_FINANCIALS = "Financials"
STEP_NEEDS = "Business Needs"
STEP_DOCUMENTS = "Documents"

WIZARD_STEPS: dict[str, tuple[BusinessField, ...]] = {
	STEP_OVERVIEW: (
		BusinessField("businessName", "Business Name", required=True),
		BusinessField("legalBusinessName", "Legal Business Name (if different/registered)"),
		BusinessField(
			"businessType", "Business Type", "select",
			("LLC", "Corporation", "Partnership", "Sole Proprietorship", "Non-Profit"), required=True,
		),
		BusinessField(
			"industry", "Industry", "select",
			("Fintech", "Healthcare", "Education", "Technology", "Manufacturing", "Retail", "Agriculture", "Energy"),
			required=True,
		),
		BusinessField("businessWebsite", "Business Website", "url"),
		BusinessField("yearFounded", "Year Founded", "number", required=True),
		BusinessField("businessDescription", "Business Description", "textarea", required=True),
	),
	STEP_DETAILS: (
		BusinessField("businessEmail", "Business Email", "email", required=True),
		BusinessField("businessNumber", "Business Phone Number", "tel", required=True),
		BusinessField("countryOfOperation", "Country of Operation", "select", _COUNTRIES, required=True),
		BusinessField("cityRegion", "City/Region", "select", ("Lagos", "Abuja", "Kano", "Port Harcourt"), required=True),
		BusinessField("businessAddress", "Business Address"),
		BusinessField("socialEnvironmentalImpact", "Social/Environmental Impact", "textarea"),
		BusinessField("targetAudience", "Target Audience"),
		BusinessField("keyAchievements", "Key Achievements", "textarea"),
		BusinessField("missionStatement", "Mission Statement", "textarea"),
	),
	STEP_OWNERSHIP: (
		BusinessField("businessOwnerName", "Business Owner Name", required=True),
		BusinessField("ownerPhoneNumber", "Owner Phone Number", "tel"),
		BusinessField("ownerNationality", "Owner Nationality", "select", _COUNTRIES),
		BusinessField("roleTitle", "Role/Title", "select", ("CEO", "CTO", "COO", "Founder"), required=True),
		BusinessField("gender", "Gender", "select", ("Male", "Female", "Other", "Prefer not to say"), required=True),
		BusinessField("numberOfFounders", "Number of Founders", "number"),
		BusinessField("ownershipPercentage", "% Ownership by Founder(s)", "textarea"),
	),
	STEP_FINANCIALS: (
		BusinessField("totalRevenue", "Total Revenue"),
		BusinessField("monthlyRevenue", "Monthly Revenue"),
		BusinessField("numberOfEmployees", "Number of Employees", "select", ("1-5", "6-10", "11-25", "26-50", "50+"), required=True),
		BusinessField("fundingRaised", "Funding Raised (if any)", "select", _YES_NO, required=True),
		BusinessField("fundingRound", "Funding round", "select", _ROUNDS, required=True),
		BusinessField("usersCustomers", "Users/Customers"),
		BusinessField("partnerships", "Partnerships", "textarea"),
	),
	STEP_NEEDS: (
		BusinessField("registeredBusiness", "Registered Business?", "select", _YES_NO),
		BusinessField("registrationNumber", "Registration Number"),
		BusinessField("grantAmountNeeded", "Grant Amount Needed"),
		BusinessField("businessStage", "Business stage", "select", _ROUNDS),
		BusinessField("primaryFundingGoal", "Primary Funding Goal", "textarea"),
	),
	# uploads are not stored yet; the step only explains that
	STEP_DOCUMENTS: (),
}

BUSINESS_FIELDS: tuple[BusinessField, ...] = tuple(f for fields in WIZARD_STEPS.values() for f in fields)
BUSINESS_FIELD_NAMES: tuple[str, ...] = tuple(f.name for f in BUSINESS_FIELDS)


class BusinessWizard:
	"""Linear multi-step form position."""

	def __init__(self, steps: tuple[str, ...] = tuple(WIZARD_STEPS)) -> None:
		if not steps:
			raise ValueError("A wizard needs at least one step")
		self.steps = steps
		self.index = 0

	@property
	def step(self) -> str:
		return self.steps[self.index]

	@property
	def is_first(self) -> bool:
		return self.index == 0

	@property
	def is_last(self) -> bool:
		return self.index == len(self.steps) - 1

	def next(self) -> str:
		if not self.is_last:
			self.index += 1
		return self.step

	def prev(self) -> str:
		if not self.is_first:
			self.index -= 1
		return self.step

	def go_to(self, step: str) -> str:
		if step not in self.steps:
			raise ValueError(f"Unknown step: {step}")
		self.index = self.steps.index(step)
		return self.step


def complete_business_data(raw: Mapping[str, Any] | None) -> Record:
	"""Every business field present, missing ones as empty strings."""
	data = raw or {}
	return {name: "" if data.get(name) is None else data.get(name) for name in BUSINESS_FIELD_NAMES}


def missing_required(data: Mapping[str, Any], step: Optional[str] = None) -> list[str]:
	fields = WIZARD_STEPS.get(step, ()) if step else BUSINESS_FIELDS
	return [f.name for f in fields if f.required and not str(data.get(f.name) or "").strip()]


def business_profiles_query(uid: str) -> QuerySpec:
	return QuerySpec(business_profiles_collection(uid), order_by=OrderBy("createdAt"))


def load_business_profile(store: DocumentStore, uid: str, profile_id: str) -> Optional[Record]:
	record = store.get(business_profiles_collection(uid), profile_id)
	if record is None:
		logger.warning(f"[load_business_profile] - profile_not_found - uid={uid} profile_id={profile_id}")
		return None
	return complete_business_data(record)


def save_business_profile(store: DocumentStore, uid: str, profile_id: str, data: Mapping[str, Any]) -> None:
	payload = {name: data.get(name, "") for name in BUSINESS_FIELD_NAMES}
	payload["updatedAt"] = SERVER_TIMESTAMP
	store.set(business_profiles_collection(uid), profile_id, payload, merge=True)
	logger.info(f"[save_business_profile] - profile_saved - uid={uid} profile_id={profile_id}")


def add_business_profile(store: DocumentStore, uid: str, business_name: str) -> str:
	name = (business_name or "").strip()
	if not name:
		raise ValueError("Business name is required")
	profile_id = store.add(
		business_profiles_collection(uid),
		{"businessName": name, "createdAt": SERVER_TIMESTAMP},
	)
	logger.info(f"[add_business_profile] - profile_added - uid={uid} profile_id={profile_id}")
	return profile_id
