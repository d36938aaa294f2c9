"""
Credential store: identities, their password hashes and their refresh-token sessions.

Session rows are only ever touched with targeted statements (one INSERT,
DELETE ... WHERE token = ?), never by rewriting a user's whole session list,
so two devices logging in or out at the same time cannot lose each other's
writes. The password hash is a deferred column and is only loaded by callers
that pass with_password=True.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, update
from sqlalchemy.orm import undefer

from models.base_model import utcnow
from models.company import Company
from models.db_storage import DBStorage
from models.refresh_token import RefreshToken
from models.user import User


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


@dataclass(frozen=True)
class IdentitySummary:
    """What downstream handlers get to know about the caller."""
    id: str
    email: str
    first_name: str
    last_name: str
    role: str
    company_id: Optional[str]

    @classmethod
    def from_user(cls, user: User) -> "IdentitySummary":
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            company_id=user.company_id,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class CredentialStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    @property
    def session(self):
        return self.storage.get_session()

    def _user_query(self, with_password: bool):
        query = self.session.query(User)
        if with_password:
            query = query.options(undefer(User.password_hash))
        return query

    # identities

    def get_user(self, user_id: str, with_password: bool = False) -> Optional[User]:
        if not user_id:
            return None
        return self._user_query(with_password).filter(User.id == user_id).first()

    def find_by_email(self, email: str, with_password: bool = False) -> Optional[User]:
        email = normalize_email(email)
        if not email:
            return None
        return self._user_query(with_password).filter(User.email == email).first()

    def email_exists(self, email: str) -> bool:
        return self.find_by_email(email) is not None

    def create_tenant_admin(
        self, email: str, password_hash: str, first_name: str, last_name: str, company_name: str
    ) -> User:
        """Create a company and its first user (role admin) in one transaction."""
        company = Company(name=company_name.strip())
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role="admin",
            company_id=company.id,
        )
        self.storage.new(company)
        self.storage.new(user)
        self.storage.save()
        return user

    def create_member(
        self, company_id: str, email: str, password_hash: str, first_name: str, last_name: str,
        role: str, **profile
    ) -> User:
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            role=role,
            company_id=company_id,
            **profile,
        )
        self.storage.new(user)
        self.storage.save()
        return user

    def touch_last_login(self, user_id: str, when: Optional[datetime] = None) -> None:
        self.session.execute(
            update(User).where(User.id == user_id).values(last_login=when or utcnow())
        )
        self.storage.save()

    def upgrade_password_hash(self, user_id: str, password_hash: str) -> None:
        """Swap in a stronger hash of the same password; reset state and sessions stay as they are."""
        self.session.execute(update(User).where(User.id == user_id).values(password_hash=password_hash))
        self.storage.save()

    def set_password_hash(self, user_id: str, password_hash: str, revoke_sessions: bool = False) -> None:
        """Store a new hash; optionally drop every session in the same transaction."""
        self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                password_hash=password_hash,
                reset_password_token=None,
                reset_password_expires=None,
                updated_at=utcnow(),
            )
        )
        if revoke_sessions:
            self.session.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
        self.storage.save()

    # sessions

    def add_session(
        self, user_id: str, token: str, expires_at: datetime, ip_address: str = "", device: Optional[dict] = None
    ) -> RefreshToken:
        device = device or {}
        row = RefreshToken(
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            ip_address=ip_address or "",
            user_agent=device.get("user_agent", ""),
            browser=device.get("browser", "Unknown"),
            os=device.get("os", "Unknown"),
        )
        self.storage.new(row)
        self.storage.save()
        return row

    def find_user_by_session(self, user_id: str, token: str) -> Optional[User]:
        return (
            self.session.query(User)
            .join(RefreshToken, RefreshToken.user_id == User.id)
            .filter(User.id == user_id, RefreshToken.token == token)
            .first()
        )

    def remove_session(self, user_id: str, token: str) -> int:
        result = self.session.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user_id, RefreshToken.token == token)
        )
        self.storage.save()
        return result.rowcount or 0

    def replace_session(
        self, user_id: str, old_token: str, new_token: str, expires_at: datetime,
        ip_address: str = "", device: Optional[dict] = None
    ) -> bool:
        """Swap one session token for another; False (and nothing written) if the old one is gone."""
        result = self.session.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user_id, RefreshToken.token == old_token)
        )
        if not result.rowcount:
            self.storage.rollback()
            return False
        device = device or {}
        self.storage.new(
            RefreshToken(
                user_id=user_id,
                token=new_token,
                expires_at=expires_at,
                ip_address=ip_address or "",
                user_agent=device.get("user_agent", ""),
                browser=device.get("browser", "Unknown"),
                os=device.get("os", "Unknown"),
            )
        )
        self.storage.save()
        return True

    def clear_sessions(self, user_id: str) -> int:
        result = self.session.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
        self.storage.save()
        return result.rowcount or 0

    def prune_expired_sessions(self, user_id: str, now: Optional[datetime] = None) -> int:
        result = self.session.execute(
            delete(RefreshToken).where(
                RefreshToken.user_id == user_id, RefreshToken.expires_at <= (now or utcnow())
            )
        )
        self.storage.save()
        return result.rowcount or 0

    def list_sessions(self, user_id: str, now: Optional[datetime] = None) -> List[RefreshToken]:
        return (
            self.session.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id, RefreshToken.expires_at > (now or utcnow()))
            .order_by(RefreshToken.created_at.desc())
            .all()
        )

    # password reset

    def set_reset_token(self, user_id: str, token_hash: str, expires_at: datetime) -> None:
        self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(reset_password_token=token_hash, reset_password_expires=expires_at)
        )
        self.storage.save()

    def find_by_reset_token(self, token_hash: str, now: Optional[datetime] = None) -> Optional[User]:
        return (
            self.session.query(User)
            .filter(
                User.reset_password_token == token_hash,
                User.reset_password_expires > (now or utcnow()),
            )
            .first()
        )
