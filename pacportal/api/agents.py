"""Agent (member profile) management endpoints - admin only"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from pacportal.api.deps import require_admin_access
from pacportal.database import get_db
from pacportal.models.profile import Profile
from pacportal.schemas.agent import AgentCreate, AgentResponse, AgentRoleUpdate, AgentStatusUpdate
from pacportal.schemas.auth import IdentityRef
from pacportal.services import audit
from pacportal.utils.logger import logger

router = APIRouter(prefix="/admin/agents", tags=["agents"])


def _get_profile_or_404(db: Session, agent_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == agent_id).first()
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Agent {agent_id} not found")
    return profile


@router.post("", response_model=AgentResponse, status_code=status.HTTP_201_CREATED)
def create_agent(
    data: AgentCreate,
    db: Session = Depends(get_db),
    admin: IdentityRef = Depends(require_admin_access),
):
    """
    Register a new agent (Admin).

    The admin credential starts empty; an admin has to run the setup flow
    before the step-up login works.
    """
    existing = db.query(Profile).filter(
        (Profile.matricula == data.matricula) | (Profile.email == data.email)
    ).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An agent with this matricula or email already exists",
        )

    profile = Profile(
        matricula=data.matricula,
        email=data.email,
        full_name=data.full_name,
        role=data.role,
        active=True,
    )
    db.add(profile)
    db.commit()
    db.refresh(profile)

    audit.record_activity(
        db,
        user_id=admin.id,
        action_type=audit.AGENT_CREATED,
        description=f"Agent {profile.matricula} created",
        resource_type="profile",
        resource_id=profile.id,
    )
    logger.info(f"Created agent: {profile.id}", extra={"user_id": admin.id, "action": "agent_create"})
    return profile


@router.get("", response_model=List[AgentResponse])
def list_agents(
    role: Optional[str] = Query(None, description="Filter by role"),
    active: Optional[bool] = Query(None, description="Filter by status"),
    db: Session = Depends(get_db),
    _: IdentityRef = Depends(require_admin_access),
):
    """List agents, newest first (Admin)."""
    query = db.query(Profile)
    if role:
        query = query.filter(Profile.role == role)
    if active is not None:
        query = query.filter(Profile.active == active)
    return query.order_by(Profile.created_at.desc()).all()


@router.get("/{agent_id}", response_model=AgentResponse)
def get_agent(
    agent_id: str,
    db: Session = Depends(get_db),
    _: IdentityRef = Depends(require_admin_access),
):
    """Get one agent (Admin)."""
    return _get_profile_or_404(db, agent_id)


@router.patch("/{agent_id}/status", response_model=AgentResponse)
def update_agent_status(
    agent_id: str,
    data: AgentStatusUpdate,
    db: Session = Depends(get_db),
    admin: IdentityRef = Depends(require_admin_access),
):
    """Activate or deactivate an agent (Admin). Takes effect on the agent's next access check."""
    profile = _get_profile_or_404(db, agent_id)
    profile.active = data.active
    db.commit()
    db.refresh(profile)

    audit.record_activity(
        db,
        user_id=admin.id,
        action_type=audit.AGENT_STATUS_CHANGED,
        description=f"Agent {profile.matricula} {'activated' if data.active else 'deactivated'}",
        resource_type="profile",
        resource_id=profile.id,
        metadata={"active": data.active},
    )
    logger.info(f"Agent status changed: {agent_id}", extra={"user_id": admin.id, "action": "agent_status"})
    return profile


@router.patch("/{agent_id}/role", response_model=AgentResponse)
def update_agent_role(
    agent_id: str,
    data: AgentRoleUpdate,
    db: Session = Depends(get_db),
    admin: IdentityRef = Depends(require_admin_access),
):
    """Promote or demote an agent (Admin). Demotion revokes admin access on the next check."""
    profile = _get_profile_or_404(db, agent_id)
    previous = profile.role
    profile.role = data.role
    db.commit()
    db.refresh(profile)

    audit.record_activity(
        db,
        user_id=admin.id,
        action_type=audit.AGENT_ROLE_CHANGED,
        description=f"Agent {profile.matricula} role changed from {previous} to {data.role}",
        resource_type="profile",
        resource_id=profile.id,
        metadata={"from": previous, "to": data.role},
    )
    logger.info(f"Agent role changed: {agent_id}", extra={"user_id": admin.id, "action": "agent_role"})
    return profile
