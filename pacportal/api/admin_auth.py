"""Admin step-up endpoints: setup, verify, session create/destroy, access check"""
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from pacportal.api.cookies import clear_admin_session_cookies, read_admin_session_cookies, set_admin_session_cookies
from pacportal.api.deps import get_access_decision, get_store, require_member
from pacportal.database import get_db
from pacportal.schemas.auth import (
    AccessDecision,
    AdminAuthError,
    AdminSessionRequest,
    AdminSessionResult,
    OperationResult,
    SetupAdminPasswordRequest,
    SetupStatus,
    VerifyAdminRequest,
)
from pacportal.services.admin_auth import check_admin_password_setup, setup_admin_credential, verify_admin_credential
from pacportal.services.admin_session import create_admin_session, destroy_session
from pacportal.services.credentials import CredentialStore

router = APIRouter(prefix="/admin/auth", tags=["admin-auth"])

_STATUS_BY_ERROR = {
    AdminAuthError.PROFILE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AdminAuthError.IDENTITY_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AdminAuthError.NOT_AUTHORIZED: status.HTTP_403_FORBIDDEN,
    AdminAuthError.NOT_AN_ADMIN_ROLE: status.HTTP_403_FORBIDDEN,
    AdminAuthError.ACCOUNT_INACTIVE: status.HTTP_403_FORBIDDEN,
    AdminAuthError.NOT_CONFIGURED: status.HTTP_409_CONFLICT,
    AdminAuthError.INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    AdminAuthError.VALIDATION_FAILED: status.HTTP_422_UNPROCESSABLE_ENTITY,
    AdminAuthError.PERSISTENCE_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _apply_status(response: Response, result: OperationResult) -> None:
    if not result.success and result.code is not None:
        response.status_code = _STATUS_BY_ERROR.get(result.code, status.HTTP_400_BAD_REQUEST)


@router.post("/setup", response_model=OperationResult)
def setup_admin_password(
    data: SetupAdminPasswordRequest,
    response: Response,
    identity_id: str = Depends(require_member),
    store: CredentialStore = Depends(get_store),
):
    """Create or rotate the caller's own admin password (member session required)."""
    if identity_id != data.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin password can only be set for your own profile",
        )

    result = setup_admin_credential(store, data.user_id, data.admin_password, data.confirm_password)
    _apply_status(response, result)
    return result


@router.get("/setup-status/{user_id}", response_model=SetupStatus)
def setup_status(
    user_id: str,
    response: Response,
    store: CredentialStore = Depends(get_store),
):
    """Whether the admin still has to configure an admin password."""
    result = check_admin_password_setup(store, user_id)
    if not result.success and result.code is not None:
        response.status_code = _STATUS_BY_ERROR[result.code]
    return result


@router.post("/verify", response_model=OperationResult)
def verify_admin_password(
    data: VerifyAdminRequest,
    response: Response,
    store: CredentialStore = Depends(get_store),
):
    """Check an admin password without starting a session."""
    result = verify_admin_credential(store, data.user_id, data.admin_password)
    _apply_status(response, result)
    return result


@router.post("/session", response_model=AdminSessionResult)
def create_session(
    data: AdminSessionRequest,
    response: Response,
    store: CredentialStore = Depends(get_store),
):
    """Verify the admin password and start a 2 hour admin session.

    On success the ``admin_session`` and ``is_admin`` cookies are set.
    """
    result, descriptor = create_admin_session(store, data.user_id, data.user_email, data.admin_password)
    if descriptor is not None:
        set_admin_session_cookies(response, descriptor)
    _apply_status(response, result)
    return result


@router.get("/access", response_model=AccessDecision)
def access(decision: AccessDecision = Depends(get_access_decision)):
    """Report whether the caller is currently an authorized admin."""
    return decision


@router.delete("/session", response_model=OperationResult)
def end_session(request: Request, response: Response, db: Session = Depends(get_db)):
    """End the admin session. Safe to call when none exists."""
    descriptor_value, _ = read_admin_session_cookies(request)
    result = destroy_session(db, descriptor_value)
    clear_admin_session_cookies(response)
    return result
