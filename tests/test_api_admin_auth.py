"""Tests for admin step-up endpoints and cookies"""
from datetime import datetime, timedelta
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from pacportal.models.profile import ROLE_MEMBER
from pacportal.services.admin_session import issue_session


def _start_admin_session(client: TestClient, profile, password: str = "Secret123"):
    return client.post("/admin/auth/session", json={
        "user_id": profile.id,
        "user_email": profile.email,
        "admin_password": password,
    })


def test_setup_requires_member_session(client: TestClient, admin_profile):
    response = client.post("/admin/auth/setup", json={
        "user_id": admin_profile.id,
        "admin_password": "Aa123456",
        "confirm_password": "Aa123456",
    })
    assert response.status_code == 401


def test_setup_only_for_own_profile(client: TestClient, admin_profile, make_profile, login):
    other_admin = make_profile(role="admin")
    login(admin_profile)

    response = client.post("/admin/auth/setup", json={
        "user_id": other_admin.id,
        "admin_password": "Aa123456",
        "confirm_password": "Aa123456",
    })
    assert response.status_code == 403


def test_setup_and_status(client: TestClient, admin_profile, login):
    login(admin_profile)
    assert client.get(f"/admin/auth/setup-status/{admin_profile.id}").json()["needs_setup"] is True

    response = client.post("/admin/auth/setup", json={
        "user_id": admin_profile.id,
        "admin_password": "Aa123456",
        "confirm_password": "Aa123456",
    })
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get(f"/admin/auth/setup-status/{admin_profile.id}").json()["needs_setup"] is False


def test_setup_validation_failure(client: TestClient, admin_profile, login):
    login(admin_profile)
    response = client.post("/admin/auth/setup", json={
        "user_id": admin_profile.id,
        "admin_password": "Aa123456",
        "confirm_password": "Aa123457",
    })
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "validation_failed"
    assert body["details"] == {"confirm_password": ["Passwords do not match"]}


def test_setup_for_member_role(client: TestClient, member_profile, login):
    login(member_profile)
    response = client.post("/admin/auth/setup", json={
        "user_id": member_profile.id,
        "admin_password": "Aa123456",
        "confirm_password": "Aa123456",
    })
    assert response.status_code == 403
    assert response.json()["code"] == "not_an_admin_role"


def test_setup_status_unknown_profile(client: TestClient):
    assert client.get("/admin/auth/setup-status/nope").status_code == 404


def test_verify_endpoint(client: TestClient, configured_admin):
    ok = client.post("/admin/auth/verify", json={"user_id": configured_admin.id, "admin_password": "Secret123"})
    assert ok.status_code == 200
    assert ok.json()["success"] is True

    bad = client.post("/admin/auth/verify", json={"user_id": configured_admin.id, "admin_password": "WrongPass"})
    assert bad.status_code == 401
    assert bad.json()["code"] == "invalid_password"


def test_verify_not_configured(client: TestClient, admin_profile):
    response = client.post("/admin/auth/verify", json={"user_id": admin_profile.id, "admin_password": "x"})
    assert response.status_code == 409
    assert response.json()["error"] == "Admin password is not set up for this user"


def test_session_sets_both_cookies(client: TestClient, configured_admin):
    response = _start_admin_session(client, configured_admin)
    assert response.status_code == 200

    body = response.json()
    assert body["success"] is True
    assert len(body["session_token"]) == 64

    assert client.cookies.get("is_admin") == "true"
    assert "admin_session" in client.cookies

    set_cookies = response.headers.get_list("set-cookie")
    descriptor_header = next(c for c in set_cookies if c.startswith("admin_session="))
    flag_header = next(c for c in set_cookies if c.startswith("is_admin="))
    assert descriptor_header.startswith("admin_session=%7B%22userId%22%3A")
    assert "HttpOnly" in descriptor_header
    assert "samesite=lax" in descriptor_header.lower()
    assert "expires=" in descriptor_header.lower()
    assert "HttpOnly" not in flag_header


def test_session_wrong_password_sets_no_cookies(client: TestClient, configured_admin):
    response = _start_admin_session(client, configured_admin, password="WrongPass")
    assert response.status_code == 401
    assert response.json()["session_token"] is None
    assert "admin_session" not in client.cookies
    assert "is_admin" not in client.cookies


def test_session_email_mismatch(client: TestClient, configured_admin):
    response = client.post("/admin/auth/session", json={
        "user_id": configured_admin.id,
        "user_email": "other@pac.test",
        "admin_password": "Secret123",
    })
    assert response.status_code == 404


def test_end_to_end_access(client: TestClient, admin_profile, login):
    """Denied, then set up, step up, and authorized through the admin session alone"""
    assert client.get("/admin/auth/access").json()["authorized"] is False

    login(admin_profile)
    client.post("/admin/auth/setup", json={
        "user_id": admin_profile.id,
        "admin_password": "Aa123456",
        "confirm_password": "Aa123456",
    })
    client.post("/auth/logout")

    assert _start_admin_session(client, admin_profile, password="Aa123456").json()["success"] is True
    assert "member_session" not in client.cookies

    decision = client.get("/admin/auth/access").json()
    assert decision["authorized"] is True
    assert decision["via"] == "admin_session"
    assert decision["identity"] == {"id": admin_profile.id, "email": admin_profile.email}


def test_primary_admin_session_is_accepted(client: TestClient, admin_profile, login):
    login(admin_profile)
    decision = client.get("/admin/auth/access").json()
    assert decision["authorized"] is True
    assert decision["via"] == "primary_session"


def test_primary_member_session_is_denied(client: TestClient, member_profile, login):
    login(member_profile)
    assert client.get("/admin/auth/access").json()["authorized"] is False


def test_demotion_mid_session(client: TestClient, db, configured_admin):
    _start_admin_session(client, configured_admin)
    assert client.get("/admin/auth/access").json()["authorized"] is True

    configured_admin.role = ROLE_MEMBER
    db.commit()

    assert client.get("/admin/auth/access").json()["authorized"] is False


def test_expired_cookie_falls_back_to_member_session(client: TestClient, db, configured_admin, login):
    expired = issue_session(
        db, configured_admin.id, configured_admin.email, now=datetime.utcnow() - timedelta(hours=2, seconds=1)
    )
    cookie_header = f"admin_session={expired.to_cookie_value()}; is_admin=true"

    assert client.get("/admin/auth/access", headers={"Cookie": cookie_header}).json()["authorized"] is False

    token = login(configured_admin)["access_token"]
    client.cookies.clear()
    decision = client.get(
        "/admin/auth/access",
        headers={"Cookie": cookie_header, "Authorization": f"Bearer {token}"},
    ).json()
    assert decision["authorized"] is True
    assert decision["via"] == "primary_session"


def test_forged_cookie_is_ignored(client: TestClient, configured_admin):
    now = datetime.utcnow()
    forged = (
        '{"userId":"%s","userEmail":"%s","sessionToken":"%s","expiresAt":"%s","timestamp":"%s"}'
        % (
            configured_admin.id,
            configured_admin.email,
            "a" * 64,
            (now + timedelta(hours=1)).isoformat() + "Z",
            now.isoformat() + "Z",
        )
    )
    response = client.get("/admin/auth/access", headers={"Cookie": f"admin_session={forged}; is_admin=true"})
    assert response.json()["authorized"] is False


def test_logout_is_idempotent(client: TestClient, configured_admin):
    _start_admin_session(client, configured_admin)

    first = client.delete("/admin/auth/session")
    assert first.status_code == 200
    assert first.json()["success"] is True
    assert "admin_session" not in client.cookies
    assert "is_admin" not in client.cookies

    second = client.delete("/admin/auth/session")
    assert second.status_code == 200
    assert second.json()["success"] is True
    assert "admin_session" not in client.cookies
    assert "is_admin" not in client.cookies

    assert client.get("/admin/auth/access").json()["authorized"] is False



_UNPARSEABLE_DESCRIPTORS = [
    '{"userId":"u","userEmail":"e","sessionToken":"t",'
    '"expiresAt":"0001-01-01T00:00:00+01:00","timestamp":"0001-01-01T00:00:00+01:00"}',
    "[" * 3000,
]


@pytest.mark.parametrize("value", _UNPARSEABLE_DESCRIPTORS)
def test_unparseable_cookie_is_treated_as_absent(client: TestClient, value):
    cookie_header = f"admin_session={quote(value, safe='')}; is_admin=true"

    response = client.get("/admin/auth/access", headers={"Cookie": cookie_header})
    assert response.status_code == 200
    assert response.json()["authorized"] is False

    assert client.get("/admin/activities", headers={"Cookie": cookie_header}).status_code == 401


@pytest.mark.parametrize("value", _UNPARSEABLE_DESCRIPTORS)
def test_logout_clears_unparseable_cookie(client: TestClient, value):
    cookie_header = f"admin_session={quote(value, safe='')}; is_admin=true"

    for path, method in (("/admin/auth/session", "DELETE"), ("/auth/logout", "POST")):
        response = client.request(method, path, headers={"Cookie": cookie_header})
        assert response.status_code == 200
        assert response.json()["success"] is True

        cleared = [c for c in response.headers.get_list("set-cookie") if "Max-Age=0" in c]
        assert any(c.startswith("admin_session=") for c in cleared)
        assert any(c.startswith("is_admin=") for c in cleared)
