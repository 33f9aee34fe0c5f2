"""
X Tracking API — Password Hashing and Access Tokens
=====================================================

What:  bcrypt password hashing and PyJWT access-token issue/verify.
Who:   AuthService (register, login, password change) and the auth gate.

Token format:
    HS256 JWT with claims {"id": "<user uuid>", "iat", "exp"}.
    Any signature, format or expiry problem surfaces as
    AuthenticationRequiredError; callers never see PyJWT exceptions.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from app.config import settings
from app.exceptions import AuthenticationRequiredError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of the secret
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a plaintext password with a fresh salt. CPU-bound: run in a threadpool."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison of a plaintext password against a stored hash."""
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        logger.warning("Stored password hash has an unexpected format")
        return False


def create_access_token(user_id: uuid.UUID, expires_in: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expires_at = now + (expires_in or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {"id": str(user_id), "iat": now, "exp": expires_at}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify a token and return the user id it was issued for.

    Raises:
        AuthenticationRequiredError: bad signature, malformed token, expired
            token, or a payload without a valid user id.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "id"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationRequiredError(
            message="Session expired. Please log in again",
            context={"reason": "expired"},
        )
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected access token: %s", e)
        raise AuthenticationRequiredError(context={"reason": "invalid_token"})

    try:
        return uuid.UUID(str(payload["id"]))
    except ValueError:
        raise AuthenticationRequiredError(context={"reason": "invalid_subject"})
