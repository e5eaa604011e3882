"""Admin step-up sessions.

A session is an explicit :class:`SessionDescriptor` value. The HTTP layer
(``pacportal.api.cookies``) is the only place that knows it travels as two
cookies: the JSON descriptor and an ``is_admin=true`` flag used as a cheap
pre-check before the descriptor is parsed.

Descriptor cookie format::

    {"userId": ..., "userEmail": ..., "sessionToken": ...,
     "expiresAt": "<ISO-8601>", "timestamp": "<ISO-8601>"}

Expiry is a fixed window from issuance and is evaluated lazily on read.
"""
import json
from datetime import datetime, timedelta, timezone
from typing import NamedTuple, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pacportal.config import settings
from pacportal.models.admin_session import AdminSession
from pacportal.schemas.auth import AdminAuthError, AdminSessionResult, OperationResult
from pacportal.services import audit
from pacportal.services.admin_auth import verify_admin_credential
from pacportal.services.credentials import CredentialStore, PersistenceError
from pacportal.utils.hashing import generate_session_token, hash_session_token, token_prefix
from pacportal.utils.logger import logger

ADMIN_FLAG_VALUE = "true"

# json.loads recurses on nested input; astimezone overflows near datetime.min/max
_DESCRIPTOR_ERRORS = (KeyError, TypeError, AttributeError, ValueError, OverflowError, RecursionError)


def format_timestamp(value: datetime) -> str:
    """Naive UTC datetime -> ISO-8601 with millisecond precision and ``Z``"""
    return value.isoformat(timespec="milliseconds") + "Z"


def parse_timestamp(value: str) -> datetime:
    """ISO-8601 string -> naive UTC datetime"""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class SessionDescriptor(NamedTuple):
    """Admin session bound to one identity at creation time"""
    user_id: str
    user_email: str
    session_token: str
    expires_at: datetime     # naive UTC
    issued_at: datetime      # naive UTC

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.utcnow()) >= self.expires_at

    def to_cookie_value(self) -> str:
        return json.dumps(
            {
                "userId": self.user_id,
                "userEmail": self.user_email,
                "sessionToken": self.session_token,
                "expiresAt": format_timestamp(self.expires_at),
                "timestamp": format_timestamp(self.issued_at),
            },
            separators=(",", ":"),
        )

    @classmethod
    def from_cookie_value(cls, value: str) -> "SessionDescriptor":
        """Parse a descriptor cookie. Raises ValueError on any malformed input."""
        try:
            data = json.loads(value)
            if not isinstance(data, dict):
                raise ValueError("descriptor is not an object")
            descriptor = cls(
                user_id=str(data["userId"]),
                user_email=str(data["userEmail"]),
                session_token=str(data["sessionToken"]),
                expires_at=parse_timestamp(data["expiresAt"]),
                issued_at=parse_timestamp(data["timestamp"]),
            )
        except _DESCRIPTOR_ERRORS as exc:
            raise ValueError(f"malformed admin session descriptor: {type(exc).__name__}") from exc
        if not descriptor.user_id or not descriptor.session_token:
            raise ValueError("admin session descriptor is missing identity or token")
        return descriptor


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def issue_session(db: Session, user_id: str, email: str, now: Optional[datetime] = None) -> SessionDescriptor:
    """Mint a session for an identity that has just been verified.

    Raises:
        PersistenceError: when the server-side session row cannot be written.
    """
    now = now or datetime.utcnow()
    token = generate_session_token()
    descriptor = SessionDescriptor(
        user_id=user_id,
        user_email=email,
        session_token=token,
        expires_at=now + timedelta(seconds=settings.ADMIN_SESSION_TTL_SECONDS),
        issued_at=now,
    )

    try:
        db.add(AdminSession(
            token_hash=hash_session_token(token),
            token_prefix=token[:16],
            user_id=user_id,
            issued_at=descriptor.issued_at,
            expires_at=descriptor.expires_at,
        ))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise PersistenceError(f"admin session insert failed: {exc}") from exc

    audit.record_activity(
        db,
        user_id=user_id,
        action_type=audit.ADMIN_SESSION_CREATED,
        description=f"Admin session started by {email}",
        resource_type="auth",
        resource_id=user_id,
        metadata={
            "session_token": token_prefix(token),
            "expires_at": format_timestamp(descriptor.expires_at),
        },
    )
    logger.info(
        "Admin session created",
        extra={"user_id": user_id, "action": "admin_session_create", "token_prefix": token_prefix(token)},
    )
    return descriptor


def create_admin_session(
    store: CredentialStore,
    identity_id: str,
    email: str,
    password: str,
    now: Optional[datetime] = None,
) -> Tuple[AdminSessionResult, Optional[SessionDescriptor]]:
    """Verify the admin password, then issue a session.

    Returns the result object and, on success, the descriptor the caller must
    hand to the cookie adapter.
    """
    verification = verify_admin_credential(store, identity_id, password, email=email, now=now)
    if not verification.success:
        return AdminSessionResult(**verification.model_dump()), None

    try:
        descriptor = issue_session(store.db, identity_id, email, now=now)
    except PersistenceError:
        logger.error("Admin session creation failed", extra={"user_id": identity_id}, exc_info=True)
        return AdminSessionResult(**OperationResult.fail(AdminAuthError.PERSISTENCE_FAILED).model_dump()), None

    result = AdminSessionResult(
        success=True,
        message="Admin authentication succeeded",
        session_token=descriptor.session_token,
        expires_at=descriptor.expires_at,
    )
    return result, descriptor


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

def read_session(
    descriptor_value: Optional[str],
    flag_value: Optional[str],
    db: Optional[Session] = None,
    now: Optional[datetime] = None,
) -> Optional[SessionDescriptor]:
    """Return the presented session, or None when it is absent or unusable.

    When ``db`` is given and ``ADMIN_SESSION_SERVER_CHECK`` is on, the token
    must also match a live, unrevoked ``admin_sessions`` row. Never raises.
    """
    if flag_value != ADMIN_FLAG_VALUE or not descriptor_value:
        return None

    try:
        descriptor = SessionDescriptor.from_cookie_value(descriptor_value)
    except ValueError as exc:
        logger.debug(f"Ignoring admin session cookie: {exc}")
        return None

    now = now or datetime.utcnow()
    if descriptor.is_expired(now):
        logger.debug("Admin session expired", extra={"user_id": descriptor.user_id})
        return None

    if db is not None and settings.ADMIN_SESSION_SERVER_CHECK:
        try:
            row = db.query(AdminSession).filter(
                AdminSession.token_hash == hash_session_token(descriptor.session_token),
            ).first()
        except SQLAlchemyError:
            logger.warning("Admin session lookup failed", extra={"user_id": descriptor.user_id}, exc_info=True)
            return None
        if row is None or row.user_id != descriptor.user_id or row.revoked_at is not None or row.expires_at <= now:
            logger.debug("Admin session not live on server", extra={"user_id": descriptor.user_id})
            return None

    return descriptor


# ---------------------------------------------------------------------------
# Destroy
# ---------------------------------------------------------------------------

def destroy_session(db: Session, descriptor_value: Optional[str], now: Optional[datetime] = None) -> OperationResult:
    """Revoke the presented session, if any. Idempotent.

    The caller clears both cookies whatever this returns.
    """
    if not descriptor_value:
        return OperationResult.ok("Admin session ended")

    try:
        descriptor = SessionDescriptor.from_cookie_value(descriptor_value)
    except ValueError:
        return OperationResult.ok("Admin session ended")

    try:
        row = db.query(AdminSession).filter(
            AdminSession.token_hash == hash_session_token(descriptor.session_token),
            AdminSession.revoked_at.is_(None),
        ).first()
        if row is None:
            return OperationResult.ok("Admin session ended")
        row.revoked_at = now or datetime.utcnow()
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not revoke admin session", extra={"user_id": descriptor.user_id}, exc_info=True)
        return OperationResult.ok("Admin session ended")

    audit.record_activity(
        db,
        user_id=row.user_id,
        action_type=audit.ADMIN_SESSION_DESTROYED,
        description="Admin session ended",
        resource_type="auth",
        resource_id=row.user_id,
        metadata={"session_token": token_prefix(descriptor.session_token)},
    )
    logger.info("Admin session destroyed", extra={"user_id": row.user_id, "action": "admin_session_destroy"})
    return OperationResult.ok("Admin session ended")
