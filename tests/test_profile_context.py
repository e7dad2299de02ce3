from __future__ import annotations

import unittest

from services.business_profiles import add_business_profile
from services.document_store import LocalDocumentStore
from services.profile_context import ProfileContext


class ProfileContextTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = LocalDocumentStore()
        self.first = add_business_profile(self.store, "u1", "First Co")
        self.second = add_business_profile(self.store, "u1", "Second Co")
        self.seen: list = []

    def _context(self, selected_id=None) -> ProfileContext:
        ctx = ProfileContext(self.store, selected_id=selected_id)
        ctx.add_listener(lambda profile: self.seen.append(profile and profile["id"]))
        return ctx

    def test_first_profile_is_selected_by_default(self) -> None:
        ctx = self._context()
        ctx.start("u1")
        self.assertEqual(ctx.selected_id, self.first)
        self.assertEqual(self.seen, [self.first])
        self.assertFalse(ctx.loading)

    def test_stored_selection_is_kept(self) -> None:
        ctx = self._context(selected_id=self.second)
        ctx.start("u1")
        self.assertEqual(ctx.selected["businessName"], "Second Co")

    def test_switch_profile(self) -> None:
        ctx = self._context()
        ctx.start("u1")
        self.assertTrue(ctx.switch_profile(self.second))
        self.assertFalse(ctx.switch_profile("missing"))
        self.assertEqual(ctx.selected_id, self.second)
        self.assertEqual(self.seen, [self.first, self.second])

    def test_deleted_selection_falls_back_to_first(self) -> None:
        ctx = self._context(selected_id=self.second)
        ctx.start("u1")
        self.store.delete("users/u1/businessProfiles", self.second)
        self.assertEqual(ctx.selected_id, self.first)

    def test_new_profile_notifies_listeners(self) -> None:
        ctx = self._context()
        ctx.start("u1")
        add_business_profile(self.store, "u1", "Third Co")
        self.assertEqual(len(ctx.profiles), 3)
        self.assertEqual(self.seen, [self.first, self.first])

    def test_sign_out_clears_profiles(self) -> None:
        ctx = self._context()
        ctx.start("u1")
        ctx.start(None)
        self.assertEqual(ctx.profiles, [])
        self.assertIsNone(ctx.selected)

    def test_removed_listener_is_not_called(self) -> None:
        ctx = ProfileContext(self.store)
        calls: list = []
        remove = ctx.add_listener(calls.append)
        remove()
        ctx.start("u1")
        self.assertEqual(calls, [])

    def test_closed_context_stops_following(self) -> None:
        ctx = self._context()
        ctx.start("u1")
        ctx.close()
        add_business_profile(self.store, "u1", "Late Co")
        self.assertEqual(len(ctx.profiles), 2)


if __name__ == "__main__":
    unittest.main()
