from sqlalchemy import Column, ForeignKey, Index, JSON, String, Text

from models.base_model import BaseModel, Base

ACTIONS = ("created", "updated", "deleted", "viewed", "status_change", "other")
ENTITY_TYPES = ("job", "candidate", "interview", "report", "user", "company", "settings")


class Activity(BaseModel, Base):
    """Audit trail entry, always scoped to a company."""
    __tablename__ = "activities"
    __table_args__ = (
        Index("ix_activities_user_created", "user_id", "created_at"),
        Index("ix_activities_company_created", "company_id", "created_at"),
        Index("ix_activities_entity", "entity_type", "entity_id"),
    )

    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    company_id = Column(String(36), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(32), nullable=False)
    entity_type = Column(String(32), nullable=False)
    entity_id = Column(String(36), nullable=False)
    description = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)
