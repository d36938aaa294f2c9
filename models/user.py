from models.base_model import Base, BaseModel
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, JSON, String, Text
from sqlalchemy.orm import deferred, relationship, validates

ROLES = ("admin", "recruiter", "interviewer", "hiring_manager")
THEMES = ("light", "dark", "system")


def default_preferences() -> dict:
    return {"notifications": {"email": True, "in_app": True}, "theme": "system"}


class User(BaseModel, Base):
    __tablename__ = "users"
    email = Column(String(255), nullable=False, unique=True, index=True)
    # Only loaded when a query asks for it explicitly (undefer)
    password_hash = deferred(Column(String(255), nullable=False))
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="admin")
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=True, index=True)

    position = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)
    avatar = Column(String(1024), nullable=True)
    phone_number = Column(String(64), nullable=True, default="")
    location = Column(String(255), nullable=True, default="")
    bio = Column(Text, nullable=True, default="")
    preferences = Column(JSON, nullable=True, default=default_preferences)

    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    reset_password_token = deferred(Column(String(64), nullable=True, index=True))
    reset_password_expires = deferred(Column(DateTime(timezone=True), nullable=True))

    company = relationship("Company", back_populates="users")
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if isinstance(value, str) else value

    @validates("role")
    def _check_role(self, key, value):
        if value not in ROLES:
            raise ValueError(f"role must be one of {ROLES}")
        return value

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
