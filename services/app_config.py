from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, asdict
from typing import Any

from services.logging_setup import get_logger


# If you set APP_CONFIG_PATH, it overrides the default location (useful for production/testing).
DEFAULT_CONFIG_PATH = "config/app_config.json"


def get_config_path() -> str:
	return os.environ.get("APP_CONFIG_PATH") or DEFAULT_CONFIG_PATH


# ------------------------------------------------------------------ Auth / store modes (authoritative)

AUTH_LOCAL = "local"
AUTH_IDENTITY_PROVIDER = "identity_provider"
AUTH_LOCAL_OR_IDENTITY_PROVIDER = "local_or_identity_provider"

STORE_LOCAL = "local"
STORE_FIRESTORE = "firestore"


# ------------------------------------------------------------------ Config models

@dataclass
class AuthConfig:
	login_required: bool = True
	validation_mode: str = AUTH_LOCAL
	default_roles: list[str] = field(default_factory=lambda: ["user"])
	admin_role: str = "admin"
	allow_sign_up: bool = True


@dataclass
class IdentityProviderConfig:
	# Identity Toolkit REST API (accounts:signInWithPassword / accounts:signUp / accounts:update)
	api_key: str = ""
	base_url: str = "https://identitytoolkit.googleapis.com/v1"
	timeout_s: float = 8.0
	verify_ssl: bool = True


@dataclass
class StoreConfig:
	backend: str = STORE_LOCAL
	json_path: str = "data/store.json"
	project_id: str = ""
	credentials_path: str = ""


@dataclass
class NavigationConfig:
	visible_routes: list[str] = field(
		default_factory=lambda: [
			"dashboard", "opportunities", "my_grants", "milestones", "wallet",
			"business", "settings", "support",
			"admin", "manage_grants", "manage_applications", "create_grant", "edit_grant",
		]
	)
	main_route: str = "dashboard"
	admin_main_route: str = "admin"
	dark_mode: bool = False
	route_roles: dict[str, list[str]] = field(
		default_factory=lambda: {
			"admin": ["admin"],
			"manage_grants": ["admin"],
			"manage_applications": ["admin"],
			"create_grant": ["admin"],
			"edit_grant": ["admin"],
		}
	)


@dataclass
class UiConfig:
	navigation: NavigationConfig = field(default_factory=NavigationConfig)


@dataclass
class ListConfig:
	page_size: int = 5
	recent_limit: int = 5


@dataclass
class WalletConfig:
	currency: str = "USD"


@dataclass
class AppConfig:
	auth: AuthConfig = field(default_factory=AuthConfig)
	identity: IdentityProviderConfig = field(default_factory=IdentityProviderConfig)
	store: StoreConfig = field(default_factory=StoreConfig)
	ui: UiConfig = field(default_factory=UiConfig)
	lists: ListConfig = field(default_factory=ListConfig)
	wallet: WalletConfig = field(default_factory=WalletConfig)


_APP_CONFIG: AppConfig | None = None


def clear_app_config_cache() -> None:
	global _APP_CONFIG
	_APP_CONFIG = None


def get_app_config() -> AppConfig:
	global _APP_CONFIG
	if _APP_CONFIG is None:
		_APP_CONFIG = load_app_config()
	return _APP_CONFIG


def load_app_config(path: str | None = None) -> AppConfig:
	config_path = path or get_config_path()
	log = get_logger("AppConfig").bind(path=config_path)

	if not os.path.exists(config_path):
		log.warning("Config not found. Writing defaults.")
		cfg = AppConfig()
		save_app_config(cfg, config_path)
		return cfg

	with open(config_path, "r", encoding="utf-8") as f:
		raw = json.load(f)
	if not isinstance(raw, dict):
		log.warning("Config root is not an object. Using defaults.")
		raw = {}
	return _from_dict(raw)


def save_app_config(cfg: AppConfig, path: str | None = None) -> None:
	global _APP_CONFIG
	config_path = path or get_config_path()
	directory = os.path.dirname(config_path)
	if directory:
		os.makedirs(directory, exist_ok=True)
	with open(config_path, "w", encoding="utf-8") as f:
		json.dump(asdict(cfg), f, indent=2, sort_keys=True)

	# Keep cache in sync
	_APP_CONFIG = cfg


# ------------------------------------------------------------------ Parsing

def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
	value = data.get(key, {})
	return value if isinstance(value, dict) else {}


def _known(cls, raw: dict[str, Any]) -> dict[str, Any]:
	"""Drop keys the dataclass does not declare (old or hand-edited config files)."""
	names = cls.__dataclass_fields__.keys()
	return {k: v for k, v in raw.items() if k in names}


def _from_dict(data: dict[str, Any]) -> AppConfig:
	auth = AuthConfig(**_known(AuthConfig, _section(data, "auth")))
	identity = IdentityProviderConfig(**_known(IdentityProviderConfig, _section(data, "identity")))
	store = StoreConfig(**_known(StoreConfig, _section(data, "store")))

	nav_data = _section(_section(data, "ui"), "navigation")
	defaults = NavigationConfig()
	navigation = NavigationConfig(
		visible_routes=nav_data.get("visible_routes", defaults.visible_routes),
		main_route=nav_data.get("main_route", defaults.main_route),
		admin_main_route=nav_data.get("admin_main_route", defaults.admin_main_route),
		dark_mode=bool(nav_data.get("dark_mode", False)),
		route_roles=nav_data.get("route_roles", defaults.route_roles),
	)

	lists = ListConfig(**_known(ListConfig, _section(data, "lists")))
	if lists.page_size < 1:
		lists.page_size = ListConfig().page_size

	wallet = WalletConfig(**_known(WalletConfig, _section(data, "wallet")))

	return AppConfig(
		auth=auth,
		identity=identity,
		store=store,
		ui=UiConfig(navigation=navigation),
		lists=lists,
		wallet=wallet,
	)
