from __future__ import annotations

import unittest

from services.aggregates import (
    MILESTONE_COMPLETED,
    MILESTONE_IN_PROGRESS,
    MILESTONE_PENDING,
    application_stats,
    clamp_progress,
    milestone_status_for_progress,
    milestone_summary,
    missing_profile_fields,
    profile_completion,
    round_half_up,
    status_counts,
    transaction_totals,
    wallet_verification,
)


class ProfileCompletionTests(unittest.TestCase):
    def test_empty_profile_is_zero(self) -> None:
        self.assertEqual(profile_completion(None), 0)
        self.assertEqual(profile_completion({}), 0)

    def test_whitespace_does_not_count(self) -> None:
        self.assertEqual(profile_completion({"a": " ", "b": "x"}, ("a", "b")), 50)

    def test_rounds_half_up(self) -> None:
        # 1 of 8 = 12.5%
        fields = tuple("abcdefgh")
        self.assertEqual(profile_completion({"a": "x"}, fields), 13)
        self.assertEqual(round_half_up(2.5), 3)

    def test_no_fields_means_complete(self) -> None:
        self.assertEqual(profile_completion({}, ()), 100)

    def test_missing_fields_keep_order(self) -> None:
        self.assertEqual(missing_profile_fields({"b": "x"}, ("a", "b", "c")), ["a", "c"])


class ApplicationStatsTests(unittest.TestCase):
    def test_counts_by_status(self) -> None:
        stats = application_stats(
            [
                {"status": "submitted"},
                {"status": "in-review"},
                {"status": "won"},
                {"status": "missed"},
                {"status": "withdrawn"},
            ]
        )
        self.assertEqual((stats.total, stats.active, stats.won, stats.missed), (5, 2, 1, 1))

    def test_status_counts(self) -> None:
        self.assertEqual(status_counts([{"status": "a"}, {"status": "a"}, {}]), {"a": 2, "": 1})


class MilestoneTests(unittest.TestCase):
    def test_progress_is_clamped(self) -> None:
        self.assertEqual(clamp_progress(150), 100)
        self.assertEqual(clamp_progress(-5), 0)
        self.assertEqual(clamp_progress("40"), 40)
        self.assertEqual(clamp_progress("abc"), 0)

    def test_status_follows_progress(self) -> None:
        self.assertEqual(milestone_status_for_progress(0), MILESTONE_PENDING)
        self.assertEqual(milestone_status_for_progress(30), MILESTONE_IN_PROGRESS)
        self.assertEqual(milestone_status_for_progress(100), MILESTONE_COMPLETED)

    def test_summary(self) -> None:
        summary = milestone_summary(
            [
                {"status": MILESTONE_COMPLETED, "progress": 100},
                {"status": MILESTONE_IN_PROGRESS, "progress": 45},
                {"progress": 0},
            ]
        )
        self.assertEqual((summary.total, summary.completed, summary.in_progress, summary.pending), (3, 1, 1, 1))
        self.assertEqual(summary.average_progress, 48)

    def test_empty_summary(self) -> None:
        self.assertEqual(milestone_summary([]).average_progress, 0)


class WalletTests(unittest.TestCase):
    def test_verification_needs_all_three(self) -> None:
        profile = {"bankAccountNumber": "123", "taxIdNumber": "TIN"}
        self.assertTrue(wallet_verification(profile, True).fully_verified)
        self.assertFalse(wallet_verification(profile, False).fully_verified)
        self.assertFalse(wallet_verification({"taxIdNumber": "TIN"}, True).account_verified)

    def test_transaction_totals(self) -> None:
        totals = transaction_totals(
            [
                {"type": "Deposit", "status": "Completed", "amount": 1000},
                {"type": "Deposit", "status": "Pending", "amount": 99},
                {"type": "Withdrawal", "status": "Completed", "amount": "250.5"},
                {"type": "Withdrawal", "status": "Pending", "amount": 100},
                {"type": "Withdrawal", "status": "Cancelled", "amount": 40},
            ]
        )
        self.assertEqual(totals.deposits, 1000.0)
        self.assertEqual(totals.withdrawals, 250.5)
        self.assertEqual(totals.pending_withdrawals, 100.0)


if __name__ == "__main__":
    unittest.main()
