"""API dependencies for authentication and authorization.

Two layers of evidence:
  - member (primary) session: ``Authorization: Bearer <JWT>`` or the
    ``member_session`` cookie
  - admin step-up session: the ``admin_session`` + ``is_admin`` cookies

:func:`require_admin_access` is the guard used by every admin-only endpoint.
It consults the access gate, which tries the admin session first and falls
back to the member session.
"""
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from pacportal.api.cookies import read_admin_session_cookies
from pacportal.config import settings
from pacportal.database import get_db
from pacportal.middleware.monitoring import record_auth_failure
from pacportal.schemas.auth import AccessDecision, IdentityRef
from pacportal.services.access_gate import check_admin_access
from pacportal.services.admin_session import SessionDescriptor, read_session
from pacportal.services.credentials import CredentialStore
from pacportal.utils.jwt_utils import decode_member_token

_bearer_scheme = HTTPBearer(auto_error=False)


def get_store(db: Session = Depends(get_db)) -> CredentialStore:
    return CredentialStore(db)


def get_member_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[str]:
    """Raw member token: Bearer header first, then the session cookie"""
    if credentials:
        return credentials.credentials
    return request.cookies.get(settings.MEMBER_SESSION_COOKIE)


def get_primary_identity_id(
    token: Optional[str] = Depends(get_member_token),
    db: Session = Depends(get_db),
) -> Optional[str]:
    """Identity id of the member session, or None when absent or invalid"""
    if not token:
        return None
    payload = decode_member_token(token, db)
    if payload is None:
        return None
    return payload["sub"]


def get_admin_session(request: Request, db: Session = Depends(get_db)) -> Optional[SessionDescriptor]:
    descriptor_value, flag_value = read_admin_session_cookies(request)
    return read_session(descriptor_value, flag_value, db=db)


def get_access_decision(
    store: CredentialStore = Depends(get_store),
    admin_session: Optional[SessionDescriptor] = Depends(get_admin_session),
    primary_identity_id: Optional[str] = Depends(get_primary_identity_id),
) -> AccessDecision:
    return check_admin_access(store, admin_session, primary_identity_id)


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def require_member(primary_identity_id: Optional[str] = Depends(get_primary_identity_id)) -> str:
    """Require a valid member session. Returns the identity id."""
    if not primary_identity_id:
        record_auth_failure("member")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return primary_identity_id


def require_admin_access(
    decision: AccessDecision = Depends(get_access_decision),
    admin_session: Optional[SessionDescriptor] = Depends(get_admin_session),
    primary_identity_id: Optional[str] = Depends(get_primary_identity_id),
) -> IdentityRef:
    """Require an authorized admin (admin session or admin member session).

    Raises 401 when no session evidence is present, 403 otherwise.
    """
    if decision.authorized:
        return decision.identity

    record_auth_failure("admin")
    if admin_session is None and primary_identity_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=decision.error or "Authentication required",
        )
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=decision.error or "Not authorized",
    )
