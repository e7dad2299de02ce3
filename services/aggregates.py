"""Summary values computed from already-fetched records."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Mapping

Record = dict[str, Any]

PROFILE_COMPLETION_FIELDS = (
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

ACTIVE_APPLICATION_STATUSES = ("submitted", "in-review")

MILESTONE_PENDING = "Pending"
MILESTONE_IN_PROGRESS = "In Progress"
MILESTONE_COMPLETED = "Completed"


def _filled(value: Any) -> bool:
	if value is None:
		return False
	if isinstance(value, str):
		return bool(value.strip())
	return True


def round_half_up(value: float) -> int:
	return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def profile_completion(profile: Mapping[str, Any] | None, fields: Iterable[str] = PROFILE_COMPLETION_FIELDS) -> int:
	"""Percentage (0..100) of `fields` that are non-empty in `profile`."""
	names = list(fields)
	if not names:
		return 100
	data = profile or {}
	filled = sum(1 for name in names if _filled(data.get(name)))
	return round_half_up(filled * 100 / len(names))


def missing_profile_fields(profile: Mapping[str, Any] | None, fields: Iterable[str] = PROFILE_COMPLETION_FIELDS) -> list[str]:
	data = profile or {}
	return [name for name in fields if not _filled(data.get(name))]


@dataclass(frozen=True)
class ApplicationStats:
	total: int = 0
	active: int = 0
	missed: int = 0
	won: int = 0


def application_stats(applications: Iterable[Record]) -> ApplicationStats:
	counts = Counter(str(a.get("status") or "") for a in applications)
	return ApplicationStats(
		total=sum(counts.values()),
		active=sum(counts[s] for s in ACTIVE_APPLICATION_STATUSES),
		missed=counts["missed"],
		won=counts["won"],
	)


def status_counts(records: Iterable[Record], field_name: str = "status") -> dict[str, int]:
	return dict(Counter(str(r.get(field_name) or "") for r in records))


def clamp_progress(progress: Any) -> int:
	try:
		value = int(float(progress))
	except (TypeError, ValueError):
		return 0
	return max(0, min(100, value))


def milestone_status_for_progress(progress: Any) -> str:
	value = clamp_progress(progress)
	if value >= 100:
		return MILESTONE_COMPLETED
	if value > 0:
		return MILESTONE_IN_PROGRESS
	return MILESTONE_PENDING


@dataclass(frozen=True)
class MilestoneSummary:
	total: int = 0
	completed: int = 0
	in_progress: int = 0
	pending: int = 0
	average_progress: int = 0


def milestone_summary(milestones: Iterable[Record]) -> MilestoneSummary:
	items = list(milestones)
	if not items:
		return MilestoneSummary()
	counts = Counter(str(m.get("status") or MILESTONE_PENDING) for m in items)
	progress = [clamp_progress(m.get("progress")) for m in items]
	return MilestoneSummary(
		total=len(items),
		completed=counts[MILESTONE_COMPLETED],
		in_progress=counts[MILESTONE_IN_PROGRESS],
		pending=counts[MILESTONE_PENDING],
		average_progress=round_half_up(sum(progress) / len(progress)),
	)


@dataclass(frozen=True)
class WalletVerification:
	account_verified: bool
	tin_added: bool
	milestones_added: bool

	@property
	def fully_verified(self) -> bool:
		return self.account_verified and self.tin_added and self.milestones_added


def wallet_verification(profile: Mapping[str, Any] | None, milestones_added: bool) -> WalletVerification:
	data = profile or {}
	return WalletVerification(
		account_verified=_filled(data.get("bankAccountNumber")),
		tin_added=_filled(data.get("taxIdNumber")),
		milestones_added=bool(milestones_added),
	)


@dataclass(frozen=True)
class TransactionTotals:
	deposits: float = 0.0
	withdrawals: float = 0.0
	pending_withdrawals: float = 0.0


def _amount(value: Any) -> float:
	try:
		return float(value)
	except (TypeError, ValueError):
		return 0.0


def transaction_totals(transactions: Iterable[Record]) -> TransactionTotals:
	"""Sums of completed deposits/withdrawals; pending withdrawals are reported separately."""
	deposits = withdrawals = pending = 0.0
	for tx in transactions:
		kind = str(tx.get("type") or "")
		status = str(tx.get("status") or "")
		amount = _amount(tx.get("amount"))
		if kind == "Deposit" and status == "Completed":
			deposits += amount
		elif kind == "Withdrawal" and status == "Completed":
			withdrawals += amount
		elif kind == "Withdrawal" and status == "Pending":
			pending += amount
	return TransactionTotals(deposits=deposits, withdrawals=withdrawals, pending_withdrawals=pending)
