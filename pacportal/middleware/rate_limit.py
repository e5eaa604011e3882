"""Rate limiting for unauthenticated entry points"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from pacportal.config import settings


def get_identifier(request: Request) -> str:
    """
    Get identifier for rate limiting

    Priority:
    1. Member session cookie (already logged in)
    2. IP address
    """
    member_token = request.cookies.get(settings.MEMBER_SESSION_COOKIE)
    if member_token:
        return f"member:{member_token[-16:]}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_identifier,
    default_limits=settings.RATE_LIMIT_DEFAULT,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


# Rate limit configurations for different endpoints
RATE_LIMITS = {
    "member_login": "10/minute",
}


def get_rate_limit(endpoint: str) -> str:
    """Get rate limit for specific endpoint"""
    return RATE_LIMITS.get(endpoint, settings.RATE_LIMIT_DEFAULT[0])
