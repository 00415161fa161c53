"""
Security utilities for authentication

Passwords are hashed with bcrypt directly. The session cookie holds a signed
token that only wraps the opaque session id; the identity itself lives in the
``sessions`` table.
"""
import logging
from datetime import datetime
from typing import Optional

import bcrypt
from jose import JWTError, jwt

from app.core.config import settings

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72

# Verified against when the username is unknown so both failure paths cost the same
_DUMMY_HASH = bcrypt.hashpw(b"timing-equaliser", bcrypt.gensalt()).decode("utf-8")


def hash_password(password: str) -> str:
    """Hash a password with bcrypt"""
    # Bcrypt has a 72-byte limit
    password_bytes = password.encode("utf-8")[:MAX_PASSWORD_BYTES]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify a password against its hash (constant-time comparison inside bcrypt)"""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:MAX_PASSWORD_BYTES],
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def burn_password_check(plain_password: str) -> None:
    """Spend the same work as a real verification when no user matched"""
    verify_password(plain_password, _DUMMY_HASH)


def validate_password(password: Optional[str]) -> str:
    """
    Validate a new password

    Args:
        password: Raw password string

    Returns:
        The password unchanged

    Raises:
        ValueError: If password is invalid with specific error message
    """
    if password is None or not password.strip():
        raise ValueError("Password is required")

    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError("Password cannot be longer than 72 bytes when encoded as UTF-8")

    return password


def create_session_token(session_id: str, expires_at: datetime) -> str:
    """Sign the opaque session id for the session cookie"""
    return jwt.encode(
        {"sid": session_id, "exp": expires_at},
        settings.SESSION_SECRET_KEY,
        algorithm=settings.SESSION_ALGORITHM,
    )


def decode_session_token(token: Optional[str]) -> Optional[str]:
    """Return the session id from a cookie value, or None if it is missing, tampered or expired"""
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.SESSION_SECRET_KEY,
            algorithms=[settings.SESSION_ALGORITHM],
        )
    except JWTError:
        return None
    sid = payload.get("sid")
    return sid if isinstance(sid, str) else None
