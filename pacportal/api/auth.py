"""Member (primary) session endpoints: login, logout, current identity"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from pacportal.api.cookies import (
    clear_admin_session_cookies,
    clear_member_cookie,
    read_admin_session_cookies,
    set_member_cookie,
)
from pacportal.api.deps import get_member_token, get_primary_identity_id, get_store, require_member
from pacportal.config import settings
from pacportal.database import get_db
from pacportal.middleware.monitoring import record_auth_failure
from pacportal.middleware.rate_limit import get_rate_limit, limiter
from pacportal.schemas.auth import MemberLoginRequest, MemberLoginResponse, MemberResponse
from pacportal.services import audit
from pacportal.services.admin_session import destroy_session
from pacportal.services.credentials import CredentialStore, PersistenceError
from pacportal.utils.jwt_utils import create_member_token, revoke_member_token
from pacportal.utils.logger import logger

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post("/login", response_model=MemberLoginResponse)
@limiter.limit(get_rate_limit("member_login"))
def login(
    request: Request,
    response: Response,
    data: MemberLoginRequest,
    store: CredentialStore = Depends(get_store),
) -> MemberLoginResponse:
    """Start a member session from a registration number.

    The token is set as the ``member_session`` cookie and also returned for
    clients that prefer ``Authorization: Bearer``.
    """
    matricula = "".join(ch for ch in data.matricula if ch.isdigit())
    if not matricula:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid matricula")

    try:
        profile = store.get_by_matricula(matricula)
    except PersistenceError:
        logger.error("Member lookup failed", exc_info=True)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Please try again")

    if profile is None:
        record_auth_failure("member")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Matricula not found")
    if not profile.active:
        record_auth_failure("member")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")

    token = create_member_token(profile.id, profile.email)
    set_member_cookie(response, token)

    audit.record_activity(
        store.db,
        user_id=profile.id,
        action_type=audit.MEMBER_LOGIN,
        description=f"Member login: {profile.matricula}",
        resource_type="auth",
    )
    logger.info("Member logged in", extra={"user_id": profile.id, "action": "member_login"})

    return MemberLoginResponse(
        access_token=token,
        expires_in=settings.JWT_MEMBER_EXPIRE_SECONDS,
        user=MemberResponse.model_validate(profile),
    )


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    token: Optional[str] = Depends(get_member_token),
    primary_identity_id: Optional[str] = Depends(get_primary_identity_id),
    db: Session = Depends(get_db),
):
    """End both layers: the admin step-up session and the member session"""
    descriptor_value, _ = read_admin_session_cookies(request)
    destroy_session(db, descriptor_value)
    clear_admin_session_cookies(response)

    if token:
        revoke_member_token(token, db)
    clear_member_cookie(response)

    if primary_identity_id:
        audit.record_activity(
            db,
            user_id=primary_identity_id,
            action_type=audit.MEMBER_LOGOUT,
            description="Member logout",
            resource_type="auth",
        )

    return {"success": True, "message": "Logged out"}


@router.get("/me", response_model=MemberResponse)
def me(
    identity_id: str = Depends(require_member),
    store: CredentialStore = Depends(get_store),
):
    """Current member profile"""
    profile = store.get(identity_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return profile
