"""
FastAPI dependency injection functions.

Provides Redis connections, current user, tenant profile resolution, role
enforcement and rate limiting.
"""

from __future__ import annotations

import time
from typing import Any
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.config import settings
from memberhub.core.database import get_db
from memberhub.core.security import blacklist_redis_key, decode_access_token, rate_limit_redis_key
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile, ProfileRole, ProfileStatus
from memberhub.models.user import User

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False so we can return custom 401)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)

# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """
    Return a shared async Redis client.

    Uses a module-level pool so connections are reused across requests.
    """
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            str(settings.REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_pool


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    redis: aioredis.Redis = Depends(get_redis),
) -> dict[str, Any]:
    """Claims of the bearer access token, once it is known to be valid and not revoked."""
    if credentials is None:
        raise _unauthorized("MISSING_TOKEN", "Authorization header required")

    try:
        claims = decode_access_token(credentials.credentials)
    except JWTError:
        raise _unauthorized("INVALID_TOKEN", "Token is invalid or expired")

    if await redis.exists(blacklist_redis_key(claims.get("jti", ""))):
        raise _unauthorized("TOKEN_REVOKED", "Token has been revoked")
    return claims


async def get_current_user(
    claims: dict[str, Any] = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> User:
    """The active user the access token was issued to."""
    try:
        user_id = UUID(claims.get("sub", ""))
    except ValueError:
        raise _unauthorized("INVALID_TOKEN", "Token is invalid or expired")

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("USER_NOT_FOUND", "User not found or inactive")
    return user


async def require_super_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """Only platform super admins may manage organizations directly."""
    if not current_user.is_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "SUPER_ADMIN_REQUIRED", "message": "Super admin access required"},
        )
    return current_user


# ---------------------------------------------------------------------------
# Organization + profile resolution
# ---------------------------------------------------------------------------

async def get_public_org(
    slug: str,
    db: AsyncSession = Depends(get_db),
) -> Organization:
    """Resolve an active organization by slug for unauthenticated endpoints."""
    result = await db.execute(
        select(Organization).where(Organization.slug == slug)
    )
    org = result.scalar_one_or_none()

    if org is None or not org.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "ORG_NOT_FOUND", "message": "Organization not found"},
        )
    return org


async def get_org_profile(
    org: Organization = Depends(get_public_org),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> tuple[Organization, Profile]:
    """
    Resolve org by slug and the current user's profile in it.

    Returns (organization, profile) whatever the profile's status.
    Raises 404 if org not found, 403 if user has no profile.
    """
    result = await db.execute(
        select(Profile).where(
            Profile.org_id == org.id,
            Profile.user_id == current_user.id,
        )
    )
    profile = result.scalar_one_or_none()

    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "NOT_A_MEMBER", "message": "You are not a member of this organization"},
        )

    return org, profile


async def get_active_profile(
    org_and_profile: tuple[Organization, Profile] = Depends(get_org_profile),
) -> tuple[Organization, Profile]:
    """Like get_org_profile, but the profile must be approved and enabled."""
    _, profile = org_and_profile
    if profile.status != ProfileStatus.active or not profile.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "PROFILE_NOT_ACTIVE",
                "message": "Your membership has not been approved or is disabled",
            },
        )
    return org_and_profile


def require_role(*roles: ProfileRole):
    """
    Dependency factory that enforces a profile role.

    Usage:
        @router.post("/...")
        async def endpoint(
            org_and_profile: tuple = Depends(require_role(ProfileRole.admin)),
        ):
            org, profile = org_and_profile
    """
    async def role_checker(
        org_and_profile: tuple[Organization, Profile] = Depends(get_active_profile),
    ) -> tuple[Organization, Profile]:
        _, profile = org_and_profile
        if profile.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "INSUFFICIENT_ROLE",
                    "message": f"Required role: {[r.value for r in roles]}",
                },
            )
        return org_and_profile

    return role_checker


require_admin = require_role(ProfileRole.admin)


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

def rate_limit(scope: str, per_minute: int | None = None):
    """
    Dependency factory for a fixed one-minute window per client IP.

    Raises 429 once the window's counter passes the limit.
    """
    async def limiter(
        request: Request,
        redis: aioredis.Redis = Depends(get_redis),
    ) -> None:
        limit = per_minute or settings.RATE_LIMIT_PER_MINUTE
        window = int(time.time() // 60)
        client_id = request.client.host if request.client else "unknown"
        key = rate_limit_redis_key(scope, client_id, window)

        count = await redis.incr(key)
        if count == 1:
            await redis.expire(key, 60)
        if count > limit:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={"code": "RATE_LIMITED", "message": "Too many requests, try again shortly"},
                headers={"Retry-After": str(60 - int(time.time()) % 60)},
            )

    return limiter
