"""
JWT codec (PyJWT).

Access and refresh tokens are signed with two independent secrets and carry a
`type` claim; a token is only ever checked against the secret of its own kind.
Claims are decoded into frozen dataclasses with a closed field set, so a token
with missing or unexpected claims is rejected instead of drifting silently.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, ClassVar, Dict, Optional, Union

import jwt

from utils.errors import ConfigurationError, InvalidToken, TokenExpired
from utils.security import generate_jti, parse_duration

ACCESS = "access"
REFRESH = "refresh"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _require_secret(secret: Optional[str]) -> str:
    if not secret:
        raise ConfigurationError("JWT signing secret is not configured")
    return secret


def sign(claims: Dict[str, Any], secret: str, ttl: timedelta, algorithm: str = "HS256") -> str:
    """
    Sign `claims` and embed absolute iat/exp computed from `ttl` now.
    """
    secret = _require_secret(secret)
    now = _now()
    payload = dict(claims)
    payload["iat"] = int(now.timestamp())
    payload["exp"] = int((now + ttl).timestamp())
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode(token: str, secret: str, algorithm: str = "HS256") -> Dict[str, Any]:
    """
    Verify signature and expiry. Raises TokenExpired / InvalidToken,
    or ConfigurationError when the secret is missing.
    """
    secret = _require_secret(secret)
    if not token or not isinstance(token, str):
        raise InvalidToken()
    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpired() from exc
    except jwt.InvalidTokenError as exc:
        raise InvalidToken() from exc


def verify(token: str, secret: str, algorithm: str = "HS256") -> Optional[Dict[str, Any]]:
    """Boolean-gate flavour of decode(): claims or None."""
    try:
        return decode(token, secret, algorithm)
    except InvalidToken:
        return None


def decode_without_verify(token: str) -> Dict[str, Any]:
    """Read claims of a token we already trust (e.g. one we just signed)."""
    try:
        return jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as exc:
        raise InvalidToken() from exc


@dataclass(frozen=True)
class AccessClaims:
    kind: ClassVar[str] = ACCESS

    type: str
    sub: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    role: str
    iat: int
    exp: int
    jti: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]):
        names = {f.name for f in dataclasses.fields(cls)}
        if set(payload) != names or payload.get("type") != cls.kind:
            raise InvalidToken()
        return cls(**payload)


@dataclass(frozen=True)
class RefreshClaims:
    kind: ClassVar[str] = REFRESH

    type: str
    sub: str
    iat: int
    exp: int
    jti: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]):
        names = {f.name for f in dataclasses.fields(cls)}
        if set(payload) != names or payload.get("type") != cls.kind:
            raise InvalidToken()
        return cls(**payload)


Claims = Union[AccessClaims, RefreshClaims]


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime
    claims: Claims

    @property
    def expires_in(self) -> int:
        return max(0, int((self.expires_at - _now()).total_seconds()))


@dataclass(frozen=True)
class TokenPair:
    access: IssuedToken
    refresh: IssuedToken


class TokenCodec:
    """Issues and reads access/refresh tokens with their own secrets and lifetimes."""

    def __init__(
        self,
        access_secret: Optional[str],
        refresh_secret: Optional[str],
        access_ttl="24h",
        refresh_ttl="30d",
        algorithm: str = "HS256",
    ):
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._ttls = {ACCESS: parse_duration(access_ttl), REFRESH: parse_duration(refresh_ttl)}
        self.algorithm = algorithm

    @property
    def configured(self) -> bool:
        return all(self._secrets.values())

    def _issue(self, kind: str, claims: Dict[str, Any], claims_cls, ttl: Optional[timedelta]) -> IssuedToken:
        payload = dict(claims, type=kind, jti=generate_jti())
        token = sign(payload, self._secrets[kind], ttl if ttl is not None else self._ttls[kind], self.algorithm)
        decoded = decode_without_verify(token)
        expires_at = datetime.fromtimestamp(decoded["exp"], tz=timezone.utc)
        return IssuedToken(token=token, expires_at=expires_at, claims=claims_cls.from_payload(decoded))

    def issue_access(self, identity, ttl: Optional[timedelta] = None) -> IssuedToken:
        """`identity` is anything exposing id, email, first_name, last_name and role."""
        claims = {
            "sub": str(identity.id),
            "email": identity.email,
            "first_name": identity.first_name,
            "last_name": identity.last_name,
            "role": identity.role,
        }
        return self._issue(ACCESS, claims, AccessClaims, ttl)

    def issue_refresh(self, identity_id: str, ttl: Optional[timedelta] = None) -> IssuedToken:
        return self._issue(REFRESH, {"sub": str(identity_id)}, RefreshClaims, ttl)

    def decode_access(self, token: str) -> AccessClaims:
        return AccessClaims.from_payload(decode(token, self._secrets[ACCESS], self.algorithm))

    def decode_refresh(self, token: str) -> RefreshClaims:
        return RefreshClaims.from_payload(decode(token, self._secrets[REFRESH], self.algorithm))

    def verify_access(self, token: str) -> Optional[AccessClaims]:
        try:
            return self.decode_access(token)
        except InvalidToken:
            return None

    def verify_refresh(self, token: str) -> Optional[RefreshClaims]:
        try:
            return self.decode_refresh(token)
        except InvalidToken:
            return None
