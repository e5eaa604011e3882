"""Cookie adapter between HTTP and the session values used by the auth core"""
from datetime import timezone
from typing import Optional
from urllib.parse import quote, unquote

from fastapi import Request, Response

from pacportal.config import settings
from pacportal.services.admin_session import ADMIN_FLAG_VALUE, SessionDescriptor


def set_admin_session_cookies(response: Response, descriptor: SessionDescriptor) -> None:
    """Write the descriptor cookie and the ``is_admin`` flag, both expiring with the session"""
    expires = descriptor.expires_at.replace(tzinfo=timezone.utc)

    response.set_cookie(
        key=settings.ADMIN_SESSION_COOKIE,
        value=quote(descriptor.to_cookie_value(), safe=""),
        expires=expires,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )
    # Flag stays readable by the browser so the UI can show admin navigation
    response.set_cookie(
        key=settings.ADMIN_FLAG_COOKIE,
        value=ADMIN_FLAG_VALUE,
        expires=expires,
        path="/",
        secure=settings.is_production,
        httponly=False,
        samesite="lax",
    )


def clear_admin_session_cookies(response: Response) -> None:
    for key, httponly in ((settings.ADMIN_SESSION_COOKIE, True), (settings.ADMIN_FLAG_COOKIE, False)):
        response.delete_cookie(
            key=key,
            path="/",
            secure=settings.is_production,
            httponly=httponly,
            samesite="lax",
        )


def read_admin_session_cookies(request: Request) -> tuple[Optional[str], Optional[str]]:
    """Return ``(descriptor_value, flag_value)`` with the descriptor URI-decoded"""
    descriptor_value = request.cookies.get(settings.ADMIN_SESSION_COOKIE)
    return (
        unquote(descriptor_value) if descriptor_value else descriptor_value,
        request.cookies.get(settings.ADMIN_FLAG_COOKIE),
    )


def set_member_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.MEMBER_SESSION_COOKIE,
        value=token,
        max_age=settings.JWT_MEMBER_EXPIRE_SECONDS,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )


def clear_member_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.MEMBER_SESSION_COOKIE,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="lax",
    )
