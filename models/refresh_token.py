"""
RefreshToken model: one row per logged-in device (a "session").
Fields:
- token: the signed refresh token, stored verbatim; a refresh is honored only
  while an exact match exists here
- user_id (String(36)) - FK to users.id
- expires_at, ip_address, user agent / browser / os descriptor
- created_at (BaseModel)
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(Text, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    ip_address = Column(String(64), nullable=True, default="")
    user_agent = Column(String(512), nullable=True, default="")
    browser = Column(String(64), nullable=True, default="Unknown")
    os = Column(String(64), nullable=True, default="Unknown")

    user = relationship("User", back_populates="refresh_tokens")

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} expires_at={self.expires_at}>"
