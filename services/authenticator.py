"""
Per-request authentication and role checks.

authenticate() is the single entry point every protected handler goes
through. Access tokens are trusted on signature + expiry alone; the only
store lookup confirms the account still exists and is active.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from models.credential_store import CredentialStore, IdentitySummary
from utils.errors import AuthUnavailable, Forbidden, InvalidToken, MissingOrMalformedToken
from utils.tokens import TokenCodec

logger = logging.getLogger(__name__)


def extract_bearer(authorization: Optional[str]) -> str:
    """Return the token from 'Bearer <token>' or raise MissingOrMalformedToken."""
    if not authorization or not authorization.startswith("Bearer "):
        raise MissingOrMalformedToken()
    token = authorization.split(" ", 1)[1].strip()
    if not token or " " in token:
        raise MissingOrMalformedToken()
    return token


def authorize(identity: IdentitySummary, allowed_roles: Iterable[str]) -> None:
    """Role gate: an empty allow-list lets any authenticated identity through."""
    allowed = set(allowed_roles or ())
    if allowed and identity.role not in allowed:
        raise Forbidden()


class RequestAuthenticator:
    def __init__(self, store: CredentialStore, codec: TokenCodec):
        self.store = store
        self.codec = codec

    def authenticate(self, authorization: Optional[str]) -> IdentitySummary:
        token = extract_bearer(authorization)
        # TokenExpired / InvalidToken / ConfigurationError propagate as-is
        claims = self.codec.decode_access(token)
        try:
            user = self.store.get_user(claims.sub)
        except SQLAlchemyError as exc:
            logger.exception("Credential store failure during authentication")
            self.store.storage.rollback()
            raise AuthUnavailable() from exc
        if user is None or not user.is_active:
            logger.info("Access token for unknown or inactive user %s", claims.sub)
            raise InvalidToken()
        return IdentitySummary.from_user(user)
