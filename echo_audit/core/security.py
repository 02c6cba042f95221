"""
Security utilities: password hashing, input sanitization, identifiers.
"""

import secrets
import time
from datetime import datetime, timezone
from uuid import uuid4

from passlib.crypto.digest import pbkdf2_hmac
from passlib.utils import consteq

PBKDF2_DIGEST = "sha256"
PBKDF2_KEY_LENGTH = 32

_SANITIZE_MAP = str.maketrans({
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
})


def hash_password(password: str, salt: str, iterations: int) -> str:
    """
    Derive a hex PBKDF2-SHA256 hash of ``password``.

    The salt is application-wide rather than per user, so equal passwords
    produce equal hashes across accounts. Stored hashes depend on this
    format; see DESIGN.md before changing it.
    """
    derived = pbkdf2_hmac(
        PBKDF2_DIGEST,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
        PBKDF2_KEY_LENGTH,
    )
    return derived.hex()


def verify_password(password: str, password_hash: str, salt: str, iterations: int) -> bool:
    """Re-hash ``password`` and compare in constant time."""
    return consteq(hash_password(password, salt, iterations), password_hash)


def sanitize_input(value: str) -> str:
    """Entity-escape characters that could open markup in rendered text."""
    return value.translate(_SANITIZE_MAP)


def normalize_email(email: str) -> str:
    """Strip and lowercase an e-mail address for index lookups."""
    return email.strip().lower()


def generate_csrf_token() -> str:
    """Return 32 random bytes as 64 hex characters."""
    return secrets.token_hex(32)


def generate_id(prefix: str) -> str:
    """Return an identifier like ``proj_1718000000000_3f9a1c2b7``."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
