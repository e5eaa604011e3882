"""Profile model - member identity plus the optional admin credential"""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import relationship

from pacportal.database import Base

ROLE_MEMBER = "member"
ROLE_ADMIN = "admin"
VALID_ROLES = {ROLE_MEMBER, ROLE_ADMIN}


def generate_uuid_string():
    """Generate UUID as string for SQLite compatibility"""
    return str(uuid.uuid4())


class Profile(Base):
    """A member account.

    The ``admin_*`` columns hold the secondary admin credential. They stay null
    (and ``admin_2fa_enabled`` false) until the setup flow runs for an admin.
    ``admin_secret_hash`` and ``admin_secret_salt`` are always written together.
    """

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid_string)
    matricula = Column(String(20), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    role = Column(String(20), default=ROLE_MEMBER, nullable=False, index=True)  # member | admin
    active = Column("status", Boolean, default=True, nullable=False)  # Column name is 'status'

    admin_secret_hash = Column(String(64), nullable=True)
    admin_secret_salt = Column(String(64), nullable=True)
    admin_2fa_enabled = Column(Boolean, default=False, nullable=False)
    admin_last_auth = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    activities = relationship("SystemActivity", back_populates="user")
    admin_sessions = relationship("AdminSession", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def has_admin_credential(self) -> bool:
        return bool(self.admin_2fa_enabled and self.admin_secret_hash and self.admin_secret_salt)
