"""Authentication schemas: requests, result objects and the error taxonomy"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from pacportal.config import settings


class AdminAuthError(str, Enum):
    """Failure kinds reported by the admin authentication operations"""

    PROFILE_NOT_FOUND = "profile_not_found"
    IDENTITY_NOT_FOUND = "identity_not_found"
    NOT_AUTHORIZED = "not_authorized"
    NOT_AN_ADMIN_ROLE = "not_an_admin_role"
    ACCOUNT_INACTIVE = "account_inactive"
    NOT_CONFIGURED = "not_configured"
    INVALID_PASSWORD = "invalid_password"
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    SESSION_ABSENT = "session_absent"
    SESSION_EXPIRED = "session_expired"


ERROR_MESSAGES: Dict[AdminAuthError, str] = {
    AdminAuthError.PROFILE_NOT_FOUND: "Admin profile not found",
    AdminAuthError.IDENTITY_NOT_FOUND: "Admin profile not found",
    AdminAuthError.NOT_AUTHORIZED: "User does not have admin permissions",
    AdminAuthError.NOT_AN_ADMIN_ROLE: "User does not have admin permissions",
    AdminAuthError.ACCOUNT_INACTIVE: "Admin account is inactive",
    AdminAuthError.NOT_CONFIGURED: "Admin password is not set up for this user",
    AdminAuthError.INVALID_PASSWORD: "Incorrect admin password",
    AdminAuthError.VALIDATION_FAILED: "Invalid data",
    AdminAuthError.PERSISTENCE_FAILED: "Something went wrong, please try again",
    AdminAuthError.SESSION_ABSENT: "Not authorized",
    AdminAuthError.SESSION_EXPIRED: "Not authorized",
}


class OperationResult(BaseModel):
    """Discriminated result returned by every public auth operation"""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    code: Optional[AdminAuthError] = None
    details: Optional[Dict[str, List[str]]] = None

    @classmethod
    def ok(cls, message: str, **extra) -> "OperationResult":
        return cls(success=True, message=message, **extra)

    @classmethod
    def fail(cls, code: AdminAuthError, details: Optional[Dict[str, List[str]]] = None, **extra) -> "OperationResult":
        return cls(success=False, error=ERROR_MESSAGES[code], code=code, details=details, **extra)


class AdminSessionResult(OperationResult):
    """Result of the verify + issue composition"""

    session_token: Optional[str] = None
    expires_at: Optional[datetime] = None


class SetupStatus(BaseModel):
    success: bool
    needs_setup: bool = False
    error: Optional[str] = None
    code: Optional[AdminAuthError] = None


class IdentityRef(BaseModel):
    id: str
    email: str


class AccessDecision(BaseModel):
    """Outcome of the access gate"""

    authorized: bool
    identity: Optional[IdentityRef] = None
    via: Optional[str] = Field(None, description="admin_session | primary_session")
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Forms
# ---------------------------------------------------------------------------

PASSWORD_MISMATCH = "Passwords do not match"


class AdminPasswordForm(BaseModel):
    """Setup/rotation form. Validated inside the setup flow, not by FastAPI."""

    admin_password: str
    confirm_password: str

    @field_validator("admin_password")
    @classmethod
    def check_length(cls, v: str) -> str:
        if len(v) < settings.ADMIN_PASSWORD_MIN_LENGTH:
            raise ValueError(f"Password must be at least {settings.ADMIN_PASSWORD_MIN_LENGTH} characters")
        return v

    @field_validator("confirm_password")
    @classmethod
    def check_match(cls, v: str, info: ValidationInfo) -> str:
        if "admin_password" in info.data and v != info.data["admin_password"]:
            raise ValueError(PASSWORD_MISMATCH)
        return v


class SetupAdminPasswordRequest(BaseModel):
    user_id: str = Field(..., description="Profile id of the admin")
    admin_password: str
    confirm_password: str


class VerifyAdminRequest(BaseModel):
    user_id: str
    admin_password: str = Field(..., min_length=1)


class AdminSessionRequest(BaseModel):
    user_id: str
    user_email: str
    admin_password: str = Field(..., min_length=1)


class MemberLoginRequest(BaseModel):
    matricula: str = Field(..., description="Registration number; non-digits are ignored")


class MemberResponse(BaseModel):
    id: str
    matricula: str
    email: str
    full_name: Optional[str]
    role: str
    active: bool

    class Config:
        from_attributes = True


class MemberLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until expiry
    user: MemberResponse
