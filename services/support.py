from __future__ import annotations

from typing import Any, Mapping

from loguru import logger

from services.document_store import SERVER_TIMESTAMP, DocumentStore, Record
from services.list_view import ALL, filter_by_fields, filter_records


SUPPORT_TICKETS_COLLECTION = "supportTickets"

FAQ_CATEGORIES = {
	ALL: "All",
	"account": "Account & Billing",
	"grants": "Grant Management",
	"verification": "Business Verification",
	"technical": "Technical Issues",
}
TICKET_CATEGORIES = {**{k: v for k, v in FAQ_CATEGORIES.items() if k != ALL}, "other": "Other"}
TICKET_PRIORITIES = ("low", "medium", "high", "urgent")

FAQS: tuple[Record, ...] = (
	{
		"id": "1",
		"category": "grants",
		"question": "How do I access my grant funds?",
		"answer": (
			"To access your grant funds, you need to complete the business verification process including "
			"adding your business account number, milestones, and tax identification number."
		),
		"popular": True,
	},
	{
		"id": "2",
		"category": "verification",
		"question": "What documents do I need for business verification?",
		"answer": (
			"You'll need your business registration documents, tax identification number, bank account "
			"details, and proof of business milestones."
		),
		"popular": True,
	},
	{
		"id": "3",
		"category": "account",
		"question": "How do I update my payment information?",
		"answer": (
			"Go to Settings, open the bank details section and update your banking information. "
			"Changes may take 1-2 business days to verify."
		),
		"popular": False,
	},
	{
		"id": "4",
		"category": "technical",
		"question": "Why can't I see my transaction history?",
		"answer": (
			"Transaction history may take up to 24 hours to appear. If you still don't see recent "
			"transactions, please contact our support team."
		),
		"popular": True,
	},
	{
		"id": "5",
		"category": "grants",
		"question": "When will my grant funds be released?",
		"answer": (
			"Grant funds are released based on milestone completion. Each milestone must be verified and "
			"approved before the associated funds are released."
		),
		"popular": False,
	},
)


def search_faqs(query: str = "", category: str = ALL, faqs: tuple[Record, ...] = FAQS) -> list[Record]:
	return filter_records(filter_by_fields(faqs, {"category": category}), query, ("question", "answer"))


def category_counts(faqs: tuple[Record, ...] = FAQS) -> dict[str, int]:
	counts = {key: 0 for key in FAQ_CATEGORIES}
	counts[ALL] = len(faqs)
	for faq in faqs:
		if faq.get("category") in counts:
			counts[faq["category"]] += 1
	return counts


def default_ticket_form() -> Record:
	return {"subject": "", "category": "", "priority": "", "message": ""}


def validate_ticket(form: Mapping[str, Any]) -> dict[str, str]:
	errors: dict[str, str] = {}
	if not str(form.get("subject") or "").strip():
		errors["subject"] = "Subject is required"
	if form.get("category") not in TICKET_CATEGORIES:
		errors["category"] = "Select a category"
	if form.get("priority") not in TICKET_PRIORITIES:
		errors["priority"] = "Select a priority"
	if not str(form.get("message") or "").strip():
		errors["message"] = "Message is required"
	return errors


def submit_ticket(store: DocumentStore, *, uid: str, email: str, form: Mapping[str, Any]) -> str:
	errors = validate_ticket(form)
	if errors:
		raise ValueError("; ".join(errors.values()))
	ticket_id = store.add(
		SUPPORT_TICKETS_COLLECTION,
		{
			"userId": uid,
			"email": email,
			"subject": str(form["subject"]).strip(),
			"category": form["category"],
			"priority": form["priority"],
			"message": str(form["message"]).strip(),
			"status": "open",
			"createdAt": SERVER_TIMESTAMP,
		},
	)
	logger.info(f"[submit_ticket] - ticket_submitted - ticket_id={ticket_id} uid={uid} priority={form['priority']}")
	return ticket_id
