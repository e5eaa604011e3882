"""Audit log sink - fire-and-forget writes to system_activities"""
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pacportal.models.system_activity import SystemActivity
from pacportal.utils.logger import logger

# Action types written by the auth core
ADMIN_PASSWORD_SETUP = "admin_password_setup"
ADMIN_DASHBOARD_ACCESS = "admin_dashboard_access"
ADMIN_SESSION_CREATED = "admin_session_created"
ADMIN_SESSION_DESTROYED = "admin_session_destroyed"
MEMBER_LOGIN = "member_login"
MEMBER_LOGOUT = "member_logout"
AGENT_CREATED = "agent_created"
AGENT_STATUS_CHANGED = "agent_status_changed"
AGENT_ROLE_CHANGED = "agent_role_changed"


def record_activity(
    db: Session,
    user_id: Optional[str],
    action_type: str,
    description: str,
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[SystemActivity]:
    """Append an activity row.

    Failures are logged and swallowed: losing an audit row must never fail the
    operation being audited. Returns the row, or None when the write failed.
    """
    activity = SystemActivity(
        user_id=user_id,
        action_type=action_type,
        description=description,
        resource_type=resource_type,
        resource_id=resource_id,
        activity_metadata=metadata,
    )
    try:
        db.add(activity)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Failed to record activity",
            extra={"user_id": user_id, "action": action_type, "outcome": str(exc)},
        )
        return None

    logger.debug(f"Activity recorded: {action_type}", extra={"user_id": user_id, "action": action_type})
    return activity
