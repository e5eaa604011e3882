"""Credential hashing and random token helpers"""
import hashlib
import hmac
import secrets

SALT_BYTES = 16
SESSION_TOKEN_BYTES = 32
TOKEN_PREFIX_LENGTH = 16


def hash_password(password: str, salt: str) -> str:
    """Hash an admin password with its salt using SHA256.

    The digest covers ``password + salt`` so existing stored credentials keep
    verifying. Returns a 64-character lowercase hex string.
    """
    if not isinstance(password, str) or not isinstance(salt, str):
        raise TypeError("password and salt must be strings")
    return hashlib.sha256((password + salt).encode("utf-8")).hexdigest()


def digests_match(computed: str, stored: str) -> bool:
    """Compare two hex digests in constant time"""
    return hmac.compare_digest(computed.encode("utf-8"), stored.encode("utf-8"))


def generate_salt() -> str:
    """Generate a fresh random salt (hex)"""
    return secrets.token_hex(SALT_BYTES)


def generate_session_token() -> str:
    """Generate a random admin session token (hex)"""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def hash_session_token(token: str) -> str:
    """Hash a session token for server-side lookup"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_prefix(token: str) -> str:
    """Truncated token safe to write to logs and the activity trail"""
    return f"{token[:TOKEN_PREFIX_LENGTH]}..."
