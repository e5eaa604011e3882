"""JWT utilities - RS256 keypair management and member session tokens"""
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pacportal.config import settings
from pacportal.utils.logger import logger

MEMBER_TOKEN_TYPE = "member"

# ---------------------------------------------------------------------------
# Keypair management
# ---------------------------------------------------------------------------

_private_key: Any = None   # cryptography RSAPrivateKey object
_public_key: Any = None    # cryptography RSAPublicKey object


def _load_keypair() -> None:
    """Load or auto-generate the RSA keypair.

    Reads JWT_PRIVATE_KEY from settings (PEM string).
    If absent, generates a fresh RSA-2048 keypair; member sessions then do not
    survive a restart.
    """
    global _private_key, _public_key

    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    if settings.JWT_PRIVATE_KEY:
        pem = settings.JWT_PRIVATE_KEY.encode()
        _private_key = serialization.load_pem_private_key(pem, password=None)
        _public_key = _private_key.public_key()
        logger.info("JWT keypair loaded from JWT_PRIVATE_KEY setting")
    else:
        _private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        _public_key = _private_key.public_key()
        logger.warning(
            "JWT_PRIVATE_KEY not set - auto-generated RSA-2048 keypair for this process. "
            "Member sessions will be invalidated on restart."
        )


def get_private_key() -> Any:
    """Return the loaded private key, initialising on first call."""
    if _private_key is None:
        _load_keypair()
    return _private_key


def get_public_key() -> Any:
    """Return the loaded public key, initialising on first call."""
    if _public_key is None:
        _load_keypair()
    return _public_key


# ---------------------------------------------------------------------------
# Token creation
# ---------------------------------------------------------------------------

def create_member_token(user_id: str, email: str) -> str:
    """Sign and return a member session token.

    The token carries identity only. Role and status are read from the
    database whenever they matter.
    """
    now = int(datetime.now(timezone.utc).timestamp())

    payload: Dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + settings.JWT_MEMBER_EXPIRE_SECONDS,
        "type": MEMBER_TOKEN_TYPE,
    }

    return jwt.encode(payload, get_private_key(), algorithm=settings.JWT_ALGORITHM)


# ---------------------------------------------------------------------------
# Token verification
# ---------------------------------------------------------------------------

def decode_member_token(token: str, db: Session) -> Optional[Dict[str, Any]]:
    """Verify a member token and return its payload, or None.

    Checks:
    1. Signature validity
    2. Token not expired (jose handles 'exp')
    3. type claim is 'member'
    4. jti not in the revoked_tokens table
    """
    from pacportal.models.revoked_token import RevokedToken

    try:
        payload = jwt.decode(token, get_public_key(), algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        logger.debug(f"JWT decode failed: {exc}")
        return None

    jti = payload.get("jti")
    if not jti or payload.get("type") != MEMBER_TOKEN_TYPE or not payload.get("sub"):
        return None

    try:
        revoked = db.query(RevokedToken).filter(RevokedToken.jti == jti).first()
    except SQLAlchemyError:
        logger.warning("Revocation lookup failed", exc_info=True)
        return None
    if revoked:
        return None

    return payload


def revoke_member_token(token: str, db: Session) -> bool:
    """Add a member token's jti to the blocklist. Returns False if the token is unusable."""
    from pacportal.models.revoked_token import RevokedToken

    payload = decode_member_token(token, db)
    if payload is None:
        return False

    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc).replace(tzinfo=None)
    try:
        db.add(RevokedToken(jti=payload["jti"], expires_at=expires_at))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Could not revoke member token", extra={"user_id": payload["sub"]}, exc_info=True)
        return False

    logger.info("Revoked member token", extra={"user_id": payload["sub"], "action": "revoke_token"})
    return True
