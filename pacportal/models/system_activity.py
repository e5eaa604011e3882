"""System activity model - append-only audit trail"""
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship

from pacportal.database import Base


class SystemActivity(Base):
    """One audited action (logins, admin step-up, member management)"""

    __tablename__ = "system_activities"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    action_type = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    resource_type = Column(String(100), nullable=True)
    resource_id = Column(String(100), nullable=True)
    activity_metadata = Column("metadata", JSON, nullable=True)  # Column name is 'metadata'
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    # Relationships
    user = relationship("Profile", back_populates="activities")
