from __future__ import annotations

import importlib
import unittest
from unittest import mock

from auth.session import User
from layout import router
from services.app_config import AppConfig


def _patch_user(test: unittest.TestCase, roles) -> None:
    user = User(uid="u1", email="a@b.co", roles=tuple(roles)) if roles is not None else None
    for target, value in (("get_user", user), ("is_admin", "admin" in (roles or ()))):
        patcher = mock.patch.object(router, target, return_value=value)
        patcher.start()
        test.addCleanup(patcher.stop)


class RouteVisibilityTests(unittest.TestCase):
    def setUp(self) -> None:
        self.cfg = AppConfig()
        patcher = mock.patch.object(router, "get_app_config", return_value=self.cfg)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_admin_routes_need_admin_role(self) -> None:
        _patch_user(self, ["user"])
        visible = router.get_visible_routes()
        self.assertIn("dashboard", visible)
        self.assertNotIn("manage_grants", visible)
        self.assertEqual(router.main_route(), "dashboard")

    def test_admin_lands_on_admin_dashboard(self) -> None:
        _patch_user(self, ["admin"])
        self.assertTrue(router.is_route_visible("edit_grant"))
        self.assertEqual(router.main_route(), "admin")

    def test_signed_out_user_sees_only_open_routes(self) -> None:
        _patch_user(self, None)
        self.assertNotIn("admin", router.get_visible_routes())

    def test_configured_visibility_hides_routes(self) -> None:
        self.cfg.ui.navigation.visible_routes = ["opportunities", "support"]
        self.cfg.ui.navigation.main_route = "dashboard"
        _patch_user(self, ["user"])
        self.assertEqual(list(router.get_visible_routes()), ["opportunities", "support"])
        self.assertEqual(router.main_route(), "opportunities")


class RouteModuleTests(unittest.TestCase):
    def test_every_route_module_has_render(self) -> None:
        for key, route in router.get_routes().items():
            with self.subTest(route=key):
                module = importlib.import_module(route.module)
                self.assertTrue(callable(getattr(module, "render", None)))


if __name__ == "__main__":
    unittest.main()
