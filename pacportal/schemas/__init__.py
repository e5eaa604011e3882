"""Pydantic schemas for request/response validation"""
from pacportal.schemas.activity import ActivityPage, ActivityResponse, ActivityStats
from pacportal.schemas.agent import AgentCreate, AgentResponse, AgentRoleUpdate, AgentStatusUpdate
from pacportal.schemas.auth import (
    AccessDecision,
    AdminAuthError,
    AdminSessionResult,
    OperationResult,
    SetupStatus,
)

__all__ = [
    "AccessDecision",
    "ActivityPage",
    "ActivityResponse",
    "ActivityStats",
    "AdminAuthError",
    "AdminSessionResult",
    "AgentCreate",
    "AgentResponse",
    "AgentRoleUpdate",
    "AgentStatusUpdate",
    "OperationResult",
    "SetupStatus",
]
