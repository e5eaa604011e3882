"""Agent (member profile) management schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from pacportal.models.profile import VALID_ROLES


class AgentCreate(BaseModel):
    matricula: str = Field(..., min_length=1, description="Registration number (digits)")
    email: str = Field(..., description="Contact e-mail, unique")
    full_name: Optional[str] = None
    role: str = Field("member", description="member | admin")

    @field_validator("matricula")
    @classmethod
    def digits_only(cls, v: str) -> str:
        digits = "".join(ch for ch in v if ch.isdigit())
        if not digits:
            raise ValueError("matricula must contain digits")
        return digits

    @field_validator("role")
    @classmethod
    def known_role(cls, v: str) -> str:
        if v not in VALID_ROLES:
            raise ValueError("role must be one of: member, admin")
        return v


class AgentStatusUpdate(BaseModel):
    active: bool


class AgentRoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def known_role(cls, v: str) -> str:
        if v not in VALID_ROLES:
            raise ValueError("role must be one of: member, admin")
        return v


class AgentResponse(BaseModel):
    id: str
    matricula: str
    email: str
    full_name: Optional[str]
    role: str
    active: bool
    admin_2fa_enabled: bool
    admin_last_auth: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True
