"""
Session manager: login, refresh, revoke, password change/reset.

State per identity is the set of RefreshToken rows in the credential store.
A refresh token is honored only while its signature and expiry check out
*and* an exact copy of it is still stored, which is what makes revocation
stick even though the token itself stays cryptographically valid.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models.base_model import utcnow
from models.credential_store import CredentialStore, IdentitySummary, normalize_email
from models.refresh_token import RefreshToken
from models.user import User
from services.activity_log import ActivityLog
from utils.errors import (
    AuthUnavailable,
    EmailAlreadyRegistered,
    InvalidCredentials,
    InvalidToken,
    SamePassword,
)
from utils.security import (
    PasswordService,
    generate_reset_token,
    hash_reset_token,
    parse_duration,
    parse_user_agent,
)
from utils.tokens import IssuedToken, TokenCodec, TokenPair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoginResult:
    identity: IdentitySummary
    tokens: TokenPair


@dataclass(frozen=True)
class RefreshResult:
    identity: IdentitySummary
    access: IssuedToken
    # only set when refresh-token rotation is enabled
    refresh: Optional[IssuedToken] = None


class SessionManager:
    def __init__(
        self,
        store: CredentialStore,
        codec: TokenCodec,
        hasher: PasswordService,
        activity: Optional[ActivityLog] = None,
        rotate_refresh_tokens: bool = False,
        reset_ttl="30m",
    ):
        self.store = store
        self.codec = codec
        self.hasher = hasher
        self.activity = activity
        self.rotate_refresh_tokens = rotate_refresh_tokens
        self.reset_ttl: timedelta = parse_duration(reset_ttl)
        self._dummy_hash: Optional[str] = None

    @contextmanager
    def _guard(self, action: str):
        """Turn store failures into AuthUnavailable."""
        try:
            yield
        except SQLAlchemyError as exc:
            logger.exception("Credential store failure during %s", action)
            self.store.storage.rollback()
            raise AuthUnavailable() from exc

    def _best_effort(self, action: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except (SQLAlchemyError, AuthUnavailable):
            logger.warning("%s failed; continuing", action, exc_info=True)
            self.store.storage.rollback()
            return None

    def _audit(self, user: User, action: str, description: str, details: Optional[dict] = None) -> None:
        if self.activity is not None:
            self.activity.record(user.id, user.company_id, action, "user", user.id, description, details)

    def _burn_hash_time(self, password: str) -> None:
        # unknown accounts still pay for one verify so response time does not reveal them
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash("not-a-real-password")
        self.hasher.verify(password or "x", self._dummy_hash)

    # registration

    def register(self, email: str, password: str, first_name: str, last_name: str, company_name: str) -> IdentitySummary:
        """Create a company and its first (admin) user."""
        with self._guard("registration"):
            exists = self.store.email_exists(email)
        if exists:
            raise EmailAlreadyRegistered()

        password_hash = self.hasher.hash(password)
        try:
            user = self.store.create_tenant_admin(email, password_hash, first_name, last_name, company_name)
        except IntegrityError as exc:
            raise EmailAlreadyRegistered() from exc
        except SQLAlchemyError as exc:
            logger.exception("Credential store failure during registration")
            raise AuthUnavailable() from exc

        logger.info("Registered user %s for company %s", user.id, user.company_id)
        self._audit(user, "created", "Registered account and company")
        return IdentitySummary.from_user(user)

    def create_member(
        self, company_id: str, email: str, password: str, first_name: str, last_name: str, role: str, **profile
    ) -> IdentitySummary:
        """Admin-side creation of another user inside an existing tenant."""
        with self._guard("member creation"):
            exists = self.store.email_exists(email)
        if exists:
            raise EmailAlreadyRegistered()
        password_hash = self.hasher.hash(password)
        try:
            user = self.store.create_member(company_id, email, password_hash, first_name, last_name, role, **profile)
        except IntegrityError as exc:
            raise EmailAlreadyRegistered() from exc
        except SQLAlchemyError as exc:
            logger.exception("Credential store failure during member creation")
            raise AuthUnavailable() from exc
        return IdentitySummary.from_user(user)

    def _rehash(self, user_id: str, password: str) -> None:
        self.store.upgrade_password_hash(user_id, self.hasher.hash(password))

    # sessions

    def _open_session(self, user: User, ip_address: str = "", user_agent: str = "") -> TokenPair:
        access = self.codec.issue_access(user)
        refresh = self.codec.issue_refresh(user.id)
        with self._guard("session creation"):
            self.store.prune_expired_sessions(user.id)
            self.store.add_session(
                user.id, refresh.token, refresh.expires_at, ip_address, parse_user_agent(user_agent)
            )
        return TokenPair(access=access, refresh=refresh)

    def open_session(self, user_id: str, ip_address: str = "", user_agent: str = "") -> TokenPair:
        """Issue a token pair for an identity that was just authenticated some other way (registration)."""
        with self._guard("session creation"):
            user = self.store.get_user(user_id)
        if user is None or not user.is_active:
            raise InvalidCredentials()
        return self._open_session(user, ip_address, user_agent)

    def login(self, email: str, password: str, ip_address: str = "", user_agent: str = "") -> LoginResult:
        with self._guard("login"):
            user = self.store.find_by_email(email, with_password=True)

        if user is None or not user.is_active:
            self._burn_hash_time(password)
            logger.info("Login failed for %s", normalize_email(email))
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed for %s", normalize_email(email))
            raise InvalidCredentials()

        self._best_effort("last login update", self.store.touch_last_login, user.id)
        if self.hasher.needs_rehash(user.password_hash):
            self._best_effort("password rehash", self._rehash, user.id, password)

        tokens = self._open_session(user, ip_address, user_agent)
        logger.info("User %s logged in", user.id)
        self._audit(user, "other", "User logged in", {"ip": ip_address})
        return LoginResult(identity=IdentitySummary.from_user(user), tokens=tokens)

    def refresh(self, refresh_token: str, ip_address: str = "", user_agent: str = "") -> RefreshResult:
        try:
            claims = self.codec.decode_refresh(refresh_token)
        except InvalidToken as exc:
            raise InvalidToken() from exc

        with self._guard("token refresh"):
            user = self.store.find_user_by_session(claims.sub, refresh_token)
        if user is None or not user.is_active:
            # signature fine but the session is gone: revoked or password changed
            logger.info("Refresh rejected for %s: no live session", claims.sub)
            raise InvalidToken()

        access = self.codec.issue_access(user)
        new_refresh = None
        if self.rotate_refresh_tokens:
            new_refresh = self.codec.issue_refresh(user.id)
            with self._guard("token rotation"):
                replaced = self.store.replace_session(
                    user.id, refresh_token, new_refresh.token, new_refresh.expires_at,
                    ip_address, parse_user_agent(user_agent),
                )
            if not replaced:
                raise InvalidToken()
        return RefreshResult(identity=IdentitySummary.from_user(user), access=access, refresh=new_refresh)

    def revoke(self, refresh_token: str) -> None:
        """Drop the session holding this token. Idempotent once the token verifies."""
        try:
            claims = self.codec.decode_refresh(refresh_token)
        except InvalidToken as exc:
            raise InvalidToken() from exc
        with self._guard("token revocation"):
            removed = self.store.remove_session(claims.sub, refresh_token)
        logger.info("Revoked %d session(s) for %s", removed, claims.sub)

    def list_sessions(self, user_id: str) -> List[RefreshToken]:
        with self._guard("session listing"):
            return self.store.list_sessions(user_id)

    # passwords

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        """Every session of the identity dies with the old password."""
        with self._guard("password change"):
            user = self.store.get_user(user_id, with_password=True)
        if user is None or not self.hasher.verify(current_password, user.password_hash):
            raise InvalidCredentials("Current password is incorrect")
        if current_password == new_password:
            raise SamePassword()

        new_hash = self.hasher.hash(new_password)
        with self._guard("password change"):
            self.store.set_password_hash(user.id, new_hash, revoke_sessions=True)
        logger.info("Password changed for %s; all sessions revoked", user.id)
        self._audit(user, "updated", "Changed password")

    def request_password_reset(self, email: str) -> Optional[str]:
        """
        Store a hashed one-time reset token and return the raw one,
        or None when there is no such active account.
        """
        with self._guard("password reset request"):
            user = self.store.find_by_email(email)
        if user is None or not user.is_active:
            return None
        raw = generate_reset_token()
        with self._guard("password reset request"):
            self.store.set_reset_token(user.id, hash_reset_token(raw), utcnow() + self.reset_ttl)
        return raw

    def reset_password(self, token: str, new_password: str) -> None:
        if not token:
            raise InvalidToken()
        with self._guard("password reset"):
            user = self.store.find_by_reset_token(hash_reset_token(token))
        if user is None:
            raise InvalidToken()
        new_hash = self.hasher.hash(new_password)
        with self._guard("password reset"):
            self.store.set_password_hash(user.id, new_hash, revoke_sessions=True)
        logger.info("Password reset for %s; all sessions revoked", user.id)
        self._audit(user, "updated", "Reset password")
