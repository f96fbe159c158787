"""
Security utilities for authentication.

This module provides:
- Password hashing and verification (bcrypt)
- Access / refresh JWT creation and validation (python-jose)

References:
-----------
- FastAPI Security: https://fastapi.tiangolo.com/tutorial/security/oauth2-jwt/
- JWT Standard: https://jwt.io/introduction
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from vidtube.core.config import settings

# bcrypt only looks at the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


# ================================
# Password Hashing
# ================================

def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    """
    Hash a plaintext password.

    bcrypt generates a fresh salt per call, so hashing the same password
    twice yields two different strings. Both verify.

    Hash Format:
    ------------
    $2b$12$R9h/cIPz0gi.URNNX3kh2OPST9/PgBkqquzi.Ss7KIUgO2t0jWMUW
    algorithm, cost factor, 22-char salt, 31-char hash
    """
    hashed = bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored bcrypt hash.

    bcrypt.checkpw re-hashes with the salt embedded in the stored hash and
    compares in constant time.
    """
    try:
        return bcrypt.checkpw(
            _password_bytes(plain_password),
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


# ================================
# JWT Tokens
# ================================

def _encode(claims: dict[str, Any], secret: str, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = claims.copy()
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=settings.JWT_ALGORITHM)


def _decode(token: str, secret: str, expected_type: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        # Expired, tampered or malformed
        return None
    if payload.get("type") != expected_type or not payload.get("sub"):
        return None
    return payload


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a short-lived access token.

    The payload identifies the user and carries the display claims the
    frontend needs without another round trip:

        {"sub": "<user id>", "email": ..., "username": ..., "display_name": ...,
         "type": "access", "iat": ..., "exp": ...}

    Signed with ACCESS_TOKEN_SECRET. Token is signed, not encrypted: never put
    secrets in it.
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "type": ACCESS_TOKEN_TYPE}
    return _encode(claims, settings.ACCESS_TOKEN_SECRET, expires_delta)


def create_refresh_token(
    subject: str,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a long-lived refresh token.

    Only the user id is embedded. The random ``jti`` makes every issued token
    unique, so a token rotated away can never collide with its replacement
    even when both are minted within the same second.
    """
    if expires_delta is None:
        expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    claims = {"sub": subject, "type": REFRESH_TOKEN_TYPE, "jti": uuid.uuid4().hex}
    return _encode(claims, settings.REFRESH_TOKEN_SECRET, expires_delta)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Return the claims of a valid access token, or None."""
    return _decode(token, settings.ACCESS_TOKEN_SECRET, ACCESS_TOKEN_TYPE)


def decode_refresh_token(token: str) -> dict[str, Any] | None:
    """Return the claims of a valid refresh token, or None."""
    return _decode(token, settings.REFRESH_TOKEN_SECRET, REFRESH_TOKEN_TYPE)
