from __future__ import annotations

import unittest

from services.accounts import (
    ROLE_ADMIN,
    ROLE_USER,
    AccountError,
    OnboardingError,
    bank_info_form,
    business_profiles_collection,
    complete_onboarding,
    default_onboarding_form,
    is_onboarded,
    mask_account_number,
    personal_info_form,
    preferences_from,
    request_deactivation,
    save_bank_info,
    save_personal_info,
    save_preferences,
    split_display_name,
    user_role,
    validate_onboarding_form,
)
from services.document_store import LocalDocumentStore, QuerySpec


def _onboarding_form() -> dict:
    form = default_onboarding_form("Ada Lovelace", "ada@example.com")
    form["businessName"] = "Analytical Engines"
    return form


class OnboardingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = LocalDocumentStore()

    def test_form_is_prefilled_from_identity(self) -> None:
        form = default_onboarding_form("Ada King Lovelace", "ada@example.com")
        self.assertEqual((form["firstName"], form["lastName"]), ("Ada", "King Lovelace"))
        self.assertEqual(form["businessEmail"], "ada@example.com")
        self.assertEqual(split_display_name(None), ("", ""))

    def test_validation(self) -> None:
        errors = validate_onboarding_form({"firstName": "Ada", "businessEmail": "not-an-email"})
        self.assertEqual(set(errors), {"lastName", "businessName", "businessEmail"})

    def test_complete_onboarding_writes_user_and_profile(self) -> None:
        name = complete_onboarding(self.store, uid="u1", email="ada@example.com", form=_onboarding_form())
        self.assertEqual(name, "Ada Lovelace")
        user = self.store.get("users", "u1")
        self.assertEqual(user["role"], ROLE_USER)
        self.assertTrue(is_onboarded(user))
        profiles = self.store.query(QuerySpec(business_profiles_collection("u1")))
        self.assertEqual([p["businessName"] for p in profiles], ["Analytical Engines"])

    def test_existing_role_is_kept(self) -> None:
        self.store.set("users", "u1", {"role": ROLE_ADMIN})
        complete_onboarding(self.store, uid="u1", email="ada@example.com", form=_onboarding_form())
        self.assertEqual(user_role(self.store.get("users", "u1")), ROLE_ADMIN)

    def test_incomplete_form_writes_nothing(self) -> None:
        with self.assertRaises(OnboardingError):
            complete_onboarding(self.store, uid="u1", email="a@b.co", form=default_onboarding_form())
        self.assertIsNone(self.store.get("users", "u1"))

    def test_role_defaults(self) -> None:
        self.assertEqual(user_role(None), ROLE_USER)
        self.assertEqual(user_role({"role": " "}), ROLE_USER)


class SettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = LocalDocumentStore()
        self.store.set("users", "u1", {"email": "ada@example.com", "firstName": "Ada", "lastName": "L"})

    def test_personal_info(self) -> None:
        form = personal_info_form(self.store.get("users", "u1"))
        form["phone"] = " 555 "
        save_personal_info(self.store, "u1", form)
        user = self.store.get("users", "u1")
        self.assertEqual(user["phone"], "555")
        self.assertEqual(user["email"], "ada@example.com")
        with self.assertRaises(AccountError):
            save_personal_info(self.store, "u1", {"firstName": "Ada", "lastName": ""})

    def test_bank_info(self) -> None:
        save_bank_info(self.store, "u1", {"bankAccountNumber": "0123 4567 89", "taxIdNumber": " TIN "})
        form = bank_info_form(self.store.get("users", "u1"))
        self.assertEqual(form["bankAccountNumber"], "0123456789")
        self.assertEqual(form["taxIdNumber"], "TIN")
        with self.assertRaises(AccountError):
            save_bank_info(self.store, "u1", {"bankAccountNumber": "12ab"})

    def test_mask_account_number(self) -> None:
        self.assertEqual(mask_account_number("0123456789"), "******6789")
        self.assertEqual(mask_account_number("12"), "12")
        self.assertEqual(mask_account_number(None), "")

    def test_preferences_round_trip(self) -> None:
        notifications, security = preferences_from(self.store.get("users", "u1"))
        self.assertTrue(notifications["emailNotifications"])
        notifications["smsNotifications"] = True
        security["sessionTimeout"] = "60"
        save_preferences(self.store, "u1", notifications, security)
        notifications, security = preferences_from(self.store.get("users", "u1"))
        self.assertTrue(notifications["smsNotifications"])
        self.assertEqual(security["sessionTimeout"], "60")

    def test_unsupported_timeout(self) -> None:
        with self.assertRaises(AccountError):
            save_preferences(self.store, "u1", {}, {"sessionTimeout": "5"})

    def test_deactivation_is_a_request(self) -> None:
        request_id = request_deactivation(self.store, "u1", "ada@example.com", " moving on ")
        request = self.store.get("deactivationRequests", request_id)
        self.assertEqual(request["status"], "pending")
        self.assertEqual(request["reason"], "moving on")
        self.assertTrue(self.store.get("users", "u1")["deactivationRequested"])


if __name__ == "__main__":
    unittest.main()
