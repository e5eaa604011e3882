"""Access gate - the single "is this caller an admin right now?" decision.

Two kinds of evidence may be present on a request: an admin step-up session
and the ordinary member (primary) session. They are classified into an
:class:`AccessState`, turned into an ordered list of candidate identities,
and each candidate is re-read from the credential store. Role and status are
never trusted from the session itself, so a demotion or deactivation takes
effect on the next check.
"""
from enum import Enum
from typing import List, Optional, Tuple

from pacportal.middleware.monitoring import record_access_check
from pacportal.models.profile import Profile
from pacportal.schemas.auth import AccessDecision, IdentityRef
from pacportal.services.admin_session import SessionDescriptor
from pacportal.services.credentials import CredentialStore, PersistenceError
from pacportal.utils.logger import logger

VIA_ADMIN_SESSION = "admin_session"
VIA_PRIMARY_SESSION = "primary_session"


class AccessState(str, Enum):
    NO_SESSION = "no_session"
    PRIMARY_ONLY = "primary_only"
    PRIMARY_PLUS_ADMIN = "primary_plus_admin"


def classify(admin_session: Optional[SessionDescriptor], primary_identity_id: Optional[str]) -> AccessState:
    """Map the evidence present on a request to an access state.

    A live admin session always implies a step-up on top of a member login,
    even when the member session itself is no longer presented.
    """
    if admin_session is not None:
        return AccessState.PRIMARY_PLUS_ADMIN
    if primary_identity_id:
        return AccessState.PRIMARY_ONLY
    return AccessState.NO_SESSION


def candidates(
    state: AccessState,
    admin_session: Optional[SessionDescriptor],
    primary_identity_id: Optional[str],
) -> List[Tuple[str, str]]:
    """Ordered ``(identity_id, via)`` pairs to try for the given state"""
    ordered: List[Tuple[str, str]] = []
    if state is AccessState.PRIMARY_PLUS_ADMIN:
        ordered.append((admin_session.user_id, VIA_ADMIN_SESSION))
    if state is not AccessState.NO_SESSION and primary_identity_id:
        if not ordered or ordered[0][0] != primary_identity_id:
            ordered.append((primary_identity_id, VIA_PRIMARY_SESSION))
    return ordered


def qualifies(profile: Optional[Profile]) -> bool:
    return profile is not None and profile.is_admin and bool(profile.active)


def check_admin_access(
    store: CredentialStore,
    admin_session: Optional[SessionDescriptor],
    primary_identity_id: Optional[str],
) -> AccessDecision:
    """Decide whether the caller is an authorized admin.

    ``admin_session`` must already have passed ``read_session`` (unexpired,
    well formed). Store errors are reported as not authorized.
    """
    state = classify(admin_session, primary_identity_id)
    if state is AccessState.NO_SESSION:
        record_access_check("denied_no_session")
        return AccessDecision(authorized=False, error="Not authenticated")

    for identity_id, via in candidates(state, admin_session, primary_identity_id):
        try:
            profile = store.get(identity_id)
        except PersistenceError:
            logger.error("Access check lookup failed", extra={"user_id": identity_id}, exc_info=True)
            record_access_check("error")
            return AccessDecision(authorized=False, error="Could not verify access")

        if not qualifies(profile):
            logger.info(
                "Access candidate rejected",
                extra={"user_id": identity_id, "via": via, "action": "check_admin_access"},
            )
            continue

        if via == VIA_ADMIN_SESSION:
            email = admin_session.user_email
        else:
            email = profile.email
        record_access_check(f"authorized_{via}")
        return AccessDecision(authorized=True, identity=IdentityRef(id=profile.id, email=email), via=via)

    record_access_check("denied_not_admin")
    return AccessDecision(authorized=False, error="User is not an administrator")
