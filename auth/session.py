from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional
from nicegui import app

from services.app_config import get_app_config


@dataclass(frozen=True)
class User:
    uid: str
    email: str
    display_name: str = ""
    roles: tuple[str, ...] = ("user",)  # e.g. ("admin",) or ("user",)
    id_token: str = field(default="", repr=False)  # identity-provider token, empty for local accounts

    @property
    def name(self) -> str:
        return self.display_name or self.email


def get_user() -> Optional[User]:
    data = app.storage.user.get("user")
    if not data:
        return None
    return User(
        uid=str(data.get("uid", "") or ""),
        email=str(data.get("email", "") or ""),
        display_name=str(data.get("display_name", "") or ""),
        roles=tuple(data.get("roles", ())),
        id_token=str(data.get("id_token", "") or ""),
    )


def is_logged_in() -> bool:
    return get_user() is not None


def login(user: User) -> None:
    app.storage.user["user"] = {
        "uid": user.uid,
        "email": user.email,
        "display_name": user.display_name,
        "roles": list(user.roles),
        "id_token": user.id_token,
    }


def set_display_name(display_name: str) -> None:
    data = app.storage.user.get("user")
    if data:
        app.storage.user["user"] = {**data, "display_name": str(display_name or "")}


def logout() -> None:
    app.storage.user.pop("user", None)
    app.storage.user.pop("selected_profile_id", None)


def has_role(role: str) -> bool:
    u = get_user()
    return bool(u and role in u.roles)


def is_admin() -> bool:
    return has_role(get_app_config().auth.admin_role or "admin")
