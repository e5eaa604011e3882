"""AdminSession model - server-side record of issued admin step-up sessions"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from pacportal.database import Base


class AdminSession(Base):
    """Issued admin session.

    Only the SHA256 of the session token is stored. A descriptor cookie is
    honored while its row exists, ``revoked_at`` is null and ``expires_at`` is
    in the future. Expired rows are never swept; they are simply ignored.
    """

    __tablename__ = "admin_sessions"

    id = Column(Integer, primary_key=True, index=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    token_prefix = Column(String(20), nullable=False)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    issued_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("Profile", back_populates="admin_sessions")
