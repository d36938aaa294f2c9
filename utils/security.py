"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JTI generation for token identifiers
- duration parsing for token lifetimes ("15m", "24h", "30d")
- password-reset token generation/hashing
- coarse user-agent parsing for session records
"""
from __future__ import annotations

import hashlib
import re
import secrets
import uuid
from datetime import timedelta
from typing import Dict, Optional

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

from utils.errors import AuthUnavailable

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$", re.IGNORECASE)
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}

_BROWSER_RE = re.compile(r"(Edg|OPR|Opera|Firefox|Chrome|Safari|MSIE)[/\s](\d+)", re.IGNORECASE)
_OS_RE = re.compile(r"Windows|Mac|Linux|Android|iOS|iPhone|iPad", re.IGNORECASE)


class PasswordService:
    """Adaptive one-way password hashing.

    The work factor is tunable through the argon2 time/memory/parallelism
    parameters; the salt and parameters are embedded in the encoded hash so
    verify() needs nothing else.
    """

    def __init__(self, time_cost: int = 3, memory_cost: int = 65536, parallelism: int = 4):
        self._ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    def hash(self, password: str) -> str:
        """Hash a plaintext password using Argon2id
        """
        if not password:
            raise ValueError("password must not be empty")
        try:
            return self._ph.hash(password)
        except UnicodeError as exc:
            raise ValueError("password must be valid UTF-8 text") from exc
        except HashingError as exc:
            raise AuthUnavailable() from exc

    def verify(self, password: str, password_hash: Optional[str]) -> bool:
        """Verify a plaintext password; never raises.
        """
        if not isinstance(password, str) or not isinstance(password_hash, str):
            return False
        if not password or not password_hash:
            return False
        # text argon2 cannot encode (lone surrogates, non-ASCII hashes) is a mismatch
        try:
            return self._ph.verify(password_hash, password)
        except (VerificationError, InvalidHashError, UnicodeError):
            return False

    def needs_rehash(self, password_hash: str) -> bool:
        if not isinstance(password_hash, str):
            return False
        try:
            return self._ph.check_needs_rehash(password_hash)
        except (InvalidHashError, ValueError):
            return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def parse_duration(value) -> timedelta:
    """
    Turn "90", "15m", "24h", "30d", "2w" (or a timedelta / int seconds) into a timedelta.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(str(value or ""))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit.lower()]: int(amount)})


def generate_reset_token() -> str:
    return secrets.token_hex(32)


def hash_reset_token(token: str) -> str:
    """Reset tokens are stored as SHA-256 digests; the raw value only leaves in the reply."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def parse_user_agent(user_agent: Optional[str]) -> Dict[str, str]:
    ua = user_agent or ""
    browser = _BROWSER_RE.search(ua)
    os_match = _OS_RE.search(ua)
    return {
        "user_agent": ua[:512],
        "browser": f"{browser.group(1)} {browser.group(2)}" if browser else "Unknown",
        "os": os_match.group(0) if os_match else "Unknown",
    }
