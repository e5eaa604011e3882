"""System activity schemas"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator


class ActivityUser(BaseModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    matricula: Optional[str] = None
    role: Optional[str] = None

    class Config:
        from_attributes = True


def _profile_summary(profile) -> Optional[Dict[str, Any]]:
    if profile is None:
        return None
    return {
        "full_name": profile.full_name,
        "email": profile.email,
        "matricula": profile.matricula,
        "role": profile.role,
    }


class ActivityResponse(BaseModel):
    """Schema for one activity row, joined with its author profile"""

    id: int
    user_id: Optional[str]
    action_type: str
    description: str
    resource_type: Optional[str]
    resource_id: Optional[str]
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    user_profile: Optional[ActivityUser] = None

    class Config:
        from_attributes = True

    @model_validator(mode='before')
    @classmethod
    def map_activity_metadata(cls, data):
        """Map activity_metadata attribute to metadata field and attach the profile"""
        # Handle SQLAlchemy model objects
        if hasattr(data, '__dict__') and hasattr(data, 'activity_metadata'):
            return {
                'id': data.id,
                'user_id': data.user_id,
                'action_type': data.action_type,
                'description': data.description,
                'resource_type': data.resource_type,
                'resource_id': data.resource_id,
                'metadata': data.activity_metadata,
                'created_at': data.created_at,
                'user_profile': _profile_summary(data.user),
            }
        return data


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ActivityPage(BaseModel):
    data: List[ActivityResponse]
    pagination: Pagination


class ActivityStats(BaseModel):
    total: int
    today: int
    week: int
    month: int
    by_type: Dict[str, int] = Field(default_factory=dict)
