#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the ATS API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps (UTC)
- to_dict() that formats timestamps, removes SA internals and secrets

Notes:
- Timestamps are produced in Python (timezone-aware UTC) so the same code
  behaves identically on SQLite and PostgreSQL.
- Comparisons against stored timestamps are done in SQL, never on loaded
  values, because SQLite hands back naive datetimes.
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base

TIME_FMT = "%Y-%m-%dT%H:%M:%S.%f"

# Columns that must never leave the model through to_dict()
PRIVATE_FIELDS = {"password_hash", "reset_password_token", "reset_password_expires"}

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at, to_dict().
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if caller passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id})"

    def to_dict(self) -> dict:
        """
        Plain dict of loaded columns, timestamps as TIME_FMT strings,
        private fields removed.
        """
        d = {
            k: v for k, v in self.__dict__.items()
            if k != "_sa_instance_state" and k not in PRIVATE_FIELDS
        }
        for key, value in d.items():
            if isinstance(value, datetime):
                d[key] = value.strftime(TIME_FMT)
        d["__class__"] = self.__class__.__name__
        return d
