"""Tests for the access gate and its fallback between admin and member sessions"""
from datetime import datetime, timedelta

from pacportal.models.profile import ROLE_MEMBER
from pacportal.services.access_gate import (
    VIA_ADMIN_SESSION,
    VIA_PRIMARY_SESSION,
    AccessState,
    candidates,
    check_admin_access,
    classify,
)
from pacportal.services.admin_auth import setup_admin_credential
from pacportal.services.admin_session import SessionDescriptor, create_admin_session, issue_session, read_session
from pacportal.services.credentials import PersistenceError


def _descriptor(user_id: str, email: str = "x@pac.test") -> SessionDescriptor:
    now = datetime.utcnow()
    return SessionDescriptor(user_id, email, "t" * 64, now + timedelta(hours=1), now)


def test_classify_states():
    session = _descriptor("a")
    assert classify(None, None) is AccessState.NO_SESSION
    assert classify(None, "m") is AccessState.PRIMARY_ONLY
    assert classify(session, "m") is AccessState.PRIMARY_PLUS_ADMIN
    assert classify(session, None) is AccessState.PRIMARY_PLUS_ADMIN


def test_candidates_order_and_dedup():
    session = _descriptor("a")
    assert candidates(AccessState.NO_SESSION, None, None) == []
    assert candidates(AccessState.PRIMARY_ONLY, None, "m") == [("m", VIA_PRIMARY_SESSION)]
    assert candidates(AccessState.PRIMARY_PLUS_ADMIN, session, "m") == [
        ("a", VIA_ADMIN_SESSION),
        ("m", VIA_PRIMARY_SESSION),
    ]
    assert candidates(AccessState.PRIMARY_PLUS_ADMIN, session, "a") == [("a", VIA_ADMIN_SESSION)]


def test_no_evidence_is_not_authorized(store):
    decision = check_admin_access(store, None, None)
    assert decision.authorized is False
    assert decision.identity is None
    assert decision.error == "Not authenticated"


def test_admin_session_authorizes(store, configured_admin):
    decision = check_admin_access(store, _descriptor(configured_admin.id, configured_admin.email), None)

    assert decision.authorized is True
    assert decision.via == VIA_ADMIN_SESSION
    assert decision.identity.id == configured_admin.id
    assert decision.identity.email == configured_admin.email


def test_primary_admin_session_authorizes(store, admin_profile):
    decision = check_admin_access(store, None, admin_profile.id)

    assert decision.authorized is True
    assert decision.via == VIA_PRIMARY_SESSION
    assert decision.identity.email == admin_profile.email


def test_primary_member_is_not_authorized(store, member_profile):
    decision = check_admin_access(store, None, member_profile.id)
    assert decision.authorized is False
    assert decision.error == "User is not an administrator"


def test_unknown_identity_is_not_authorized(store):
    assert check_admin_access(store, _descriptor("ghost"), "ghost-2").authorized is False


def test_mid_session_demotion_revokes_access(db, store, configured_admin):
    """Role is re-read on every check, not trusted from the session"""
    session = _descriptor(configured_admin.id, configured_admin.email)
    assert check_admin_access(store, session, None).authorized is True

    configured_admin.role = ROLE_MEMBER
    db.commit()

    assert check_admin_access(store, session, None).authorized is False


def test_mid_session_deactivation_revokes_access(db, store, configured_admin):
    session = _descriptor(configured_admin.id, configured_admin.email)
    configured_admin.active = False
    db.commit()

    assert check_admin_access(store, session, configured_admin.id).authorized is False


def test_stale_admin_session_falls_back_to_primary(db, store, configured_admin, make_profile):
    """A demoted admin-session identity does not block another valid admin member session"""
    other_admin = make_profile(role="admin")
    session = _descriptor(configured_admin.id, configured_admin.email)
    configured_admin.role = ROLE_MEMBER
    db.commit()

    decision = check_admin_access(store, session, other_admin.id)
    assert decision.authorized is True
    assert decision.via == VIA_PRIMARY_SESSION
    assert decision.identity.id == other_admin.id


def test_expired_session_falls_back_to_primary(db, store, configured_admin, member_profile):
    now = datetime(2030, 1, 1, 12, 0, 0)
    expired = issue_session(db, configured_admin.id, configured_admin.email, now=now - timedelta(hours=3))
    session = read_session(expired.to_cookie_value(), "true", db=db, now=now)
    assert session is None

    # fallback to an admin member session
    decision = check_admin_access(store, session, configured_admin.id)
    assert decision.authorized is True
    assert decision.via == VIA_PRIMARY_SESSION

    # fallback to a non-admin member session
    assert check_admin_access(store, session, member_profile.id).authorized is False


def test_store_failure_is_not_authorized(store, configured_admin, monkeypatch):
    def broken_get(identity_id):
        raise PersistenceError("connection reset")

    monkeypatch.setattr(store, "get", broken_get)
    decision = check_admin_access(store, _descriptor(configured_admin.id), None)
    assert decision.authorized is False
    assert decision.error == "Could not verify access"


def test_end_to_end_setup_login_and_access(db, store, admin_profile):
    """Never-configured admin: denied, set up password, step up, then authorized"""
    assert check_admin_access(store, None, None).authorized is False

    assert setup_admin_credential(store, admin_profile.id, "Aa123456", "Aa123456").success

    result, descriptor = create_admin_session(store, admin_profile.id, admin_profile.email, "Aa123456")
    assert result.success

    session = read_session(descriptor.to_cookie_value(), "true", db=db)
    decision = check_admin_access(store, session, None)
    assert decision.authorized is True
    assert decision.identity.id == admin_profile.id
    assert decision.identity.email == admin_profile.email
