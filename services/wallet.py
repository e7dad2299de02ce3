from __future__ import annotations

import uuid
from typing import Any, Mapping

from loguru import logger

from services.accounts import USERS_COLLECTION
from services.aggregates import wallet_verification
from services.document_store import SERVER_TIMESTAMP, DocumentStore, OrderBy, QuerySpec, collection_path


TX_WITHDRAWAL = "Withdrawal"
TX_DEPOSIT = "Deposit"

TX_COMPLETED = "Completed"
TX_CANCELLED = "Cancelled"
TX_PENDING = "Pending"

WITHDRAWAL_DESCRIPTION = "Grant fund withdrawal"


class WithdrawalError(ValueError):
	pass


def transactions_collection(uid: str) -> str:
	return collection_path(USERS_COLLECTION, uid, "transactions")


def transactions_query(uid: str) -> QuerySpec:
	return QuerySpec(transactions_collection(uid), order_by=OrderBy("date", descending=True))


def wallet_balance(profile: Mapping[str, Any] | None) -> float:
	try:
		return float((profile or {}).get("walletBalance") or 0)
	except (TypeError, ValueError):
		return 0.0


def request_withdrawal(store: DocumentStore, uid: str, profile: Mapping[str, Any] | None, milestones_added: bool) -> float:
	"""
	Withdraw the whole balance: writes a pending Withdrawal transaction and zeroes
	walletBalance in one batch. Returns the amount requested.
	"""
	if not wallet_verification(profile, milestones_added).fully_verified:
		raise WithdrawalError("Please complete all verification steps to withdraw.")

	# the balance shown on screen can be stale
	current = store.get(USERS_COLLECTION, uid)
	amount = wallet_balance(current)
	if amount <= 0:
		raise WithdrawalError("You have no balance to withdraw.")

	tx_id = uuid.uuid4().hex[:20]
	batch = store.batch()
	batch.set(
		transactions_collection(uid),
		tx_id,
		{
			"date": SERVER_TIMESTAMP,
			"type": TX_WITHDRAWAL,
			"amount": amount,
			"status": TX_PENDING,
			"description": WITHDRAWAL_DESCRIPTION,
		},
	)
	batch.update(USERS_COLLECTION, uid, {"walletBalance": 0})
	batch.commit()

	logger.info(f"[request_withdrawal] - withdrawal_requested - uid={uid} tx_id={tx_id} amount={amount:.2f}")
	return amount
