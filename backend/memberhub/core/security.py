"""
Security utilities.

Password hashing, JWT tokens, Redis key helpers and random tokens for
invitations, password resets and domain verification.
"""

from __future__ import annotations

import secrets
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt as _bcrypt
from jose import JWTError, jwt

from memberhub.core.config import settings


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt (cost=12)."""
    password_bytes = password.encode("utf-8")[:72]
    salt = _bcrypt.gensalt(rounds=12)
    return _bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash."""
    password_bytes = plain_password.encode("utf-8")[:72]
    return _bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


# ---------------------------------------------------------------------------
# JWT tokens
# ---------------------------------------------------------------------------

def _encode(user_id: str, token_type: str, jti: str, lifetime: timedelta) -> str:
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": user_id,
        "jti": jti,
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: str, jti: str | None = None) -> str:
    """Create a short-lived access token for ``user_id``."""
    return _encode(
        user_id,
        "access",
        jti or str(uuid.uuid4()),
        timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(user_id: str) -> tuple[str, str]:
    """
    Create a long-lived refresh token.

    Returns:
        Tuple of (encoded_token, jti) so the jti can be stored in Redis.
    """
    jti = str(uuid.uuid4())
    token = _encode(
        user_id,
        "refresh",
        jti,
        timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS),
    )
    return token, jti


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If the token is invalid, expired, or tampered.
    """
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def decode_access_token(token: str) -> dict[str, Any]:
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    return payload


def decode_refresh_token(token: str) -> dict[str, Any]:
    payload = decode_token(token)
    if payload.get("type") != "refresh":
        raise JWTError("Not a refresh token")
    return payload


# ---------------------------------------------------------------------------
# Redis key helpers
# ---------------------------------------------------------------------------

def refresh_token_redis_key(user_id: str, jti: str) -> str:
    """Redis key for storing a refresh token. Format: refresh:{user_id}:{jti}"""
    return f"refresh:{user_id}:{jti}"


def blacklist_redis_key(jti: str) -> str:
    """Redis key for a blacklisted access token JTI. Format: blacklist:{jti}"""
    return f"blacklist:{jti}"


def password_reset_redis_key(token: str) -> str:
    """Redis key for a password reset token. Format: pwd_reset:{token}"""
    return f"pwd_reset:{token}"


def rate_limit_redis_key(scope: str, client_id: str, window: int) -> str:
    """Redis key for a fixed-window counter. Format: ratelimit:{scope}:{client}:{window}"""
    return f"ratelimit:{scope}:{client_id}:{window}"


# ---------------------------------------------------------------------------
# Random tokens
# ---------------------------------------------------------------------------

def create_password_reset_token() -> str:
    """Generate a secure random password reset token."""
    return str(uuid.uuid4())


def create_invitation_token() -> str:
    return secrets.token_urlsafe(32)


def create_domain_verification_token() -> str:
    """64 hex characters, published by the domain owner as a TXT record."""
    return secrets.token_hex(32)
