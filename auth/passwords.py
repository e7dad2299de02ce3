from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets


SCHEME = "pbkdf2_sha256"
ITERATIONS = 210_000
SALT_BYTES = 16
MIN_PASSWORD_LENGTH = 6


def _encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def password_problem(password: str) -> str | None:
    """Reason the password cannot be used, or None. Same rule as the hosted identity provider."""
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return f"Password should be at least {MIN_PASSWORD_LENGTH} characters."
    return None


def hash_password(password: str, *, iterations: int = ITERATIONS) -> str:
    """Returns "pbkdf2_sha256$<iterations>$<salt>$<digest>"."""
    if not password:
        raise ValueError("password must not be empty")
    salt = secrets.token_bytes(SALT_BYTES)
    return "$".join((SCHEME, str(int(iterations)), _encode(salt), _encode(_derive(password, salt, int(iterations)))))


def verify_password(password: str, stored_hash: str) -> bool:
    parts = str(stored_hash or "").split("$")
    if len(parts) != 4 or parts[0] != SCHEME:
        return False
    try:
        iterations = int(parts[1])
        salt = _decode(parts[2])
        expected = _decode(parts[3])
    except (ValueError, binascii.Error):
        return False
    return hmac.compare_digest(_derive(str(password or ""), salt, iterations), expected)
