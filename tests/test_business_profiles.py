from __future__ import annotations

import unittest

from services.business_profiles import (
    BUSINESS_FIELD_NAMES,
    STEP_DOCUMENTS,
    STEP_OVERVIEW,
    WIZARD_STEPS,
    BusinessWizard,
    add_business_profile,
    business_profiles_query,
    complete_business_data,
    load_business_profile,
    missing_required,
    save_business_profile,
)
from services.document_store import LocalDocumentStore


class WizardTests(unittest.TestCase):
    def test_moves_stop_at_the_ends(self) -> None:
        wizard = BusinessWizard()
        self.assertEqual(wizard.prev(), STEP_OVERVIEW)
        self.assertTrue(wizard.is_first)
        for _ in range(20):
            wizard.next()
        self.assertEqual(wizard.step, STEP_DOCUMENTS)
        self.assertTrue(wizard.is_last)

    def test_go_to(self) -> None:
        wizard = BusinessWizard()
        steps = list(WIZARD_STEPS)
        self.assertEqual(wizard.go_to(steps[2]), steps[2])
        self.assertEqual(wizard.index, 2)
        with self.assertRaises(ValueError):
            wizard.go_to("Nope")

    def test_empty_wizard_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            BusinessWizard(())


class FieldTests(unittest.TestCase):
    def test_complete_data_fills_every_field(self) -> None:
        data = complete_business_data({"businessName": "Acme", "yearFounded": None, "unrelated": 1})
        self.assertEqual(set(data), set(BUSINESS_FIELD_NAMES))
        self.assertEqual(data["businessName"], "Acme")
        self.assertEqual(data["yearFounded"], "")

    def test_missing_required_per_step(self) -> None:
        data = complete_business_data({"businessName": "Acme", "industry": "Retail"})
        self.assertEqual(
            missing_required(data, STEP_OVERVIEW), ["businessType", "yearFounded", "businessDescription"]
        )
        self.assertEqual(missing_required(data, STEP_DOCUMENTS), [])
        self.assertIn("businessEmail", missing_required(data))


class StoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = LocalDocumentStore()

    def test_add_then_save_and_load(self) -> None:
        profile_id = add_business_profile(self.store, "u1", "  Acme Ltd ")
        data = load_business_profile(self.store, "u1", profile_id)
        self.assertEqual(data["businessName"], "Acme Ltd")

        data["industry"] = "Retail"
        save_business_profile(self.store, "u1", profile_id, data)
        reloaded = load_business_profile(self.store, "u1", profile_id)
        self.assertEqual(reloaded["industry"], "Retail")
        self.assertEqual(reloaded["businessName"], "Acme Ltd")

    def test_profiles_are_listed_per_user(self) -> None:
        first = add_business_profile(self.store, "u1", "One")
        second = add_business_profile(self.store, "u1", "Two")
        add_business_profile(self.store, "u2", "Other")
        ids = [r["id"] for r in self.store.query(business_profiles_query("u1"))]
        self.assertEqual(sorted(ids), sorted([first, second]))

    def test_blank_name_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            add_business_profile(self.store, "u1", "   ")

    def test_missing_profile_loads_as_none(self) -> None:
        self.assertIsNone(load_business_profile(self.store, "u1", "missing"))


if __name__ == "__main__":
    unittest.main()
