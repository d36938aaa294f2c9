from copy import deepcopy

from sqlalchemy import Column, JSON, String, Text
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

COMPANY_SIZES = ("1-10", "11-50", "51-200", "201-500", "501-1000", "1001-5000", "5000+")

DEFAULT_SETTINGS = {
    "notification_preferences": {
        "email": {
            "new_applicant": True,
            "interview_scheduled": True,
            "interview_completed": True,
        }
    },
    "interview_preferences": {
        "default_duration": 60,  # minutes
        "default_location": "Virtual",
    },
}


def default_settings() -> dict:
    return deepcopy(DEFAULT_SETTINGS)


class Company(BaseModel, Base):
    """Tenant: every user and business record belongs to exactly one company."""
    __tablename__ = "companies"

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    logo = Column(String(1024), nullable=True)
    website = Column(String(1024), nullable=True)
    industry = Column(String(255), nullable=True)
    size = Column(String(16), nullable=True)
    location = Column(String(255), nullable=True)
    settings = Column(JSON, nullable=False, default=default_settings)

    users = relationship("User", back_populates="company", passive_deletes=True)

    def get_settings(self) -> dict:
        """Stored settings laid over the defaults, so older rows gain new keys."""
        merged = default_settings()
        for section, values in (self.settings or {}).items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(deepcopy(values))
            else:
                merged[section] = deepcopy(values)
        return merged
