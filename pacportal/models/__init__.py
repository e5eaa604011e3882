"""Database models"""
from pacportal.models.admin_session import AdminSession
from pacportal.models.profile import Profile
from pacportal.models.revoked_token import RevokedToken
from pacportal.models.system_activity import SystemActivity

__all__ = ["AdminSession", "Profile", "RevokedToken", "SystemActivity"]
