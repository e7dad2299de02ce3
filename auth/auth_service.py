from __future__ import annotations

import re
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import requests
from loguru import logger

from auth.passwords import hash_password, password_problem, verify_password
from auth.session import User
from services.accounts import USERS_COLLECTION, user_role
from services.app_config import (
    AUTH_IDENTITY_PROVIDER,
    AUTH_LOCAL,
    AUTH_LOCAL_OR_IDENTITY_PROVIDER,
    get_app_config,
)
from services.document_store import SERVER_TIMESTAMP, DocumentStore, StoreError


VALIDATION_MODES = {AUTH_LOCAL, AUTH_IDENTITY_PROVIDER, AUTH_LOCAL_OR_IDENTITY_PROVIDER}

CREDENTIALS_COLLECTION = "credentials"

INVALID_CREDENTIALS = "Invalid email or password."

# Identity Toolkit error codes -> user-facing text
_IDENTITY_ERRORS = {
    "EMAIL_NOT_FOUND": INVALID_CREDENTIALS,
    "INVALID_PASSWORD": INVALID_CREDENTIALS,
    "INVALID_LOGIN_CREDENTIALS": INVALID_CREDENTIALS,
    "USER_DISABLED": "This account has been disabled.",
    "EMAIL_EXISTS": "An account with this email already exists.",
    "OPERATION_NOT_ALLOWED": "Password sign-in is disabled for this project.",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later.",
    "INVALID_EMAIL": "Enter a valid email address.",
}

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True)
class AuthResult:
    ok: bool
    user: Optional[User] = None
    message: str = ""


@dataclass(frozen=True)
class _Identity:
    uid: str
    email: str
    display_name: str = ""
    id_token: str = ""


def _normalize_mode(raw: Any) -> str:
    value = str(raw or AUTH_LOCAL).strip().lower()
    return value if value in VALIDATION_MODES else AUTH_LOCAL


def _normalize_email(email: Any) -> str:
    return str(email or "").strip().lower()


def _normalize_roles(raw: Any, fallback: tuple[str, ...] = ("user",)) -> tuple[str, ...]:
    if not isinstance(raw, list):
        return fallback
    out = tuple(str(r).strip() for r in raw if str(r).strip())
    return out or fallback


def roles_for(store: DocumentStore, uid: str) -> tuple[str, ...]:
    """Role from users/{uid}.role, falling back to auth.default_roles."""
    default_roles = _normalize_roles(get_app_config().auth.default_roles)
    try:
        user_doc = store.get(USERS_COLLECTION, uid)
    except StoreError as ex:
        logger.warning("Role lookup failed for uid='{}': {}", uid, ex)
        return default_roles
    if user_doc is None or not user_doc.get("role"):
        return default_roles
    return (user_role(user_doc),)


# ------------------------------------------------------------------ local accounts

def _validate_local(store: DocumentStore, email: str, password: str) -> tuple[Optional[_Identity], str]:
    record = store.get(CREDENTIALS_COLLECTION, email)
    if record is None:
        return None, INVALID_CREDENTIALS
    if not bool(record.get("enabled", True)):
        return None, "This account has been disabled."
    if not verify_password(password, str(record.get("password_hash", "") or "")):
        return None, INVALID_CREDENTIALS
    return _Identity(
        uid=str(record.get("uid") or ""),
        email=email,
        display_name=str(record.get("display_name", "") or ""),
    ), ""


def _register_local(store: DocumentStore, email: str, password: str, display_name: str) -> tuple[Optional[_Identity], str]:
    if store.get(CREDENTIALS_COLLECTION, email) is not None:
        return None, _IDENTITY_ERRORS["EMAIL_EXISTS"]
    uid = uuid.uuid4().hex[:28]
    store.set(
        CREDENTIALS_COLLECTION,
        email,
        {
            "uid": uid,
            "email": email,
            "display_name": display_name,
            "password_hash": hash_password(password),
            "enabled": True,
            "createdAt": SERVER_TIMESTAMP,
        },
    )
    return _Identity(uid=uid, email=email, display_name=display_name), ""


# ------------------------------------------------------------------ identity provider (REST)

def _identity_url(action: str) -> str:
    base = str(get_app_config().identity.base_url or "").strip().rstrip("/")
    return f"{base}/accounts:{action}"


def _identity_error(payload: Any, status_code: int) -> str:
    code = ""
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        code = str(payload["error"].get("message", "") or "")
    # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
    head, _, detail = code.partition(" : ")
    if head == "WEAK_PASSWORD":
        return detail or "Password is too weak."
    return _IDENTITY_ERRORS.get(head, f"Identity provider rejected the request (HTTP {status_code}).")


def _identity_post(action: str, body: dict[str, Any]) -> tuple[dict[str, Any], str]:
    cfg = get_app_config().identity
    if not cfg.api_key:
        return {}, "Identity provider is not configured (identity.api_key is empty)."

    url = _identity_url(action)
    try:
        resp = requests.post(
            url,
            params={"key": cfg.api_key},
            json=body,
            timeout=float(cfg.timeout_s or 8.0),
            verify=bool(cfg.verify_ssl),
        )
    except requests.RequestException as ex:
        logger.warning("Identity provider request '{}' failed: {}", action, ex)
        return {}, "Could not reach the sign-in service. Please try again."

    try:
        parsed: Any = resp.json()
    except ValueError:
        parsed = {}

    if not (200 <= int(resp.status_code) < 300):
        message = _identity_error(parsed, resp.status_code)
        logger.warning("Identity provider '{}' rejected: status={} message='{}'", action, resp.status_code, message)
        return {}, message
    return parsed if isinstance(parsed, dict) else {}, ""


def _validate_identity_provider(email: str, password: str) -> tuple[Optional[_Identity], str]:
    data, err = _identity_post("signInWithPassword", {"email": email, "password": password, "returnSecureToken": True})
    if err:
        return None, err
    return _Identity(
        uid=str(data.get("localId", "") or ""),
        email=str(data.get("email", email) or email),
        display_name=str(data.get("displayName", "") or ""),
        id_token=str(data.get("idToken", "") or ""),
    ), ""


def _register_identity_provider(email: str, password: str, display_name: str) -> tuple[Optional[_Identity], str]:
    data, err = _identity_post("signUp", {"email": email, "password": password, "returnSecureToken": True})
    if err:
        return None, err
    identity = _Identity(
        uid=str(data.get("localId", "") or ""),
        email=str(data.get("email", email) or email),
        display_name=display_name,
        id_token=str(data.get("idToken", "") or ""),
    )
    if display_name and identity.id_token:
        _, name_err = _identity_post("update", {"idToken": identity.id_token, "displayName": display_name, "returnSecureToken": False})
        if name_err:
            logger.warning("Identity provider display name update failed for uid='{}': {}", identity.uid, name_err)
    return identity, ""


# ------------------------------------------------------------------ public API

def _user_from(store: DocumentStore, identity: _Identity) -> User:
    return User(
        uid=identity.uid,
        email=identity.email,
        display_name=identity.display_name,
        roles=roles_for(store, identity.uid),
        id_token=identity.id_token,
    )


def _check_input(email: str, password: str) -> str:
    if not email:
        return "Enter your email address."
    if not _EMAIL_RE.match(email):
        return "Enter a valid email address."
    if not password:
        return "Enter a password."
    return ""


def authenticate_user(store: DocumentStore, email: str, password: str) -> AuthResult:
    email = _normalize_email(email)
    password = str(password or "")
    problem = _check_input(email, password)
    if problem:
        return AuthResult(False, message=problem)

    mode = _normalize_mode(get_app_config().auth.validation_mode)
    logger.info("Auth attempt: email='{}' mode='{}'", email, mode)

    if mode in (AUTH_LOCAL, AUTH_LOCAL_OR_IDENTITY_PROVIDER):
        identity, err_local = _validate_local(store, email, password)
        if identity is not None:
            logger.success("Auth local success: email='{}'", email)
            return AuthResult(True, _user_from(store, identity))
        if mode == AUTH_LOCAL:
            logger.warning("Auth local failed: email='{}' reason='{}'", email, err_local)
            return AuthResult(False, message=err_local)

    identity, err_remote = _validate_identity_provider(email, password)
    if identity is not None:
        logger.success("Auth identity provider success: email='{}'", email)
        return AuthResult(True, _user_from(store, identity))

    logger.warning("Auth failed: email='{}' mode='{}' reason='{}'", email, mode, err_remote)
    return AuthResult(False, message=err_remote or INVALID_CREDENTIALS)


def register_user(store: DocumentStore, email: str, password: str, display_name: str = "") -> AuthResult:
    """Create an account and its users/{uid} document (role from auth.default_roles)."""
    cfg = get_app_config().auth
    if not cfg.allow_sign_up:
        return AuthResult(False, message="Sign-up is disabled.")

    email = _normalize_email(email)
    password = str(password or "")
    display_name = str(display_name or "").strip()
    problem = _check_input(email, password) or password_problem(password)
    if problem:
        return AuthResult(False, message=problem)

    mode = _normalize_mode(cfg.validation_mode)
    if mode == AUTH_IDENTITY_PROVIDER:
        identity, err = _register_identity_provider(email, password, display_name)
    else:
        identity, err = _register_local(store, email, password, display_name)
    if identity is None:
        logger.warning("Sign-up failed: email='{}' mode='{}' reason='{}'", email, mode, err)
        return AuthResult(False, message=err)

    role = _normalize_roles(cfg.default_roles)[0]
    store.set(USERS_COLLECTION, identity.uid, {"uid": identity.uid, "email": identity.email, "role": role}, merge=True)
    logger.success("Sign-up success: email='{}' uid='{}' mode='{}'", email, identity.uid, mode)
    return AuthResult(True, _user_from(store, identity))


def update_display_name(store: DocumentStore, user: User, display_name: str) -> bool:
    """Propagate a new display name to wherever the account lives."""
    display_name = str(display_name or "").strip()
    if user.id_token:
        _, err = _identity_post("update", {"idToken": user.id_token, "displayName": display_name, "returnSecureToken": False})
        if err:
            logger.warning("Display name update failed: uid='{}' reason='{}'", user.uid, err)
            return False
        return True

    email = _normalize_email(user.email)
    if store.get(CREDENTIALS_COLLECTION, email) is None:
        return False
    store.update(CREDENTIALS_COLLECTION, email, {"display_name": display_name})
    return True
