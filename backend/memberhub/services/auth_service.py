"""
Account and session business logic.

Users are global: one login can hold a profile in several organizations.
Sessions are JWT pairs; refresh JTIs live in Redis so a refresh token
works once, and logout blacklists the access JTI until it would have
expired anyway.
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.config import settings
from memberhub.core.security import (
    blacklist_redis_key,
    create_access_token,
    create_password_reset_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    password_reset_redis_key,
    refresh_token_redis_key,
    verify_password,
)
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile
from memberhub.models.user import User
from memberhub.schemas.auth import (
    AccountUpdateRequest,
    ChangePasswordRequest,
    MeOrganization,
    MeResponse,
    RegisterRequest,
    TokenResponse,
)

logger = logging.getLogger(__name__)

PASSWORD_RESET_TTL_SECONDS = 3600

INVALID_CREDENTIALS = {"code": "INVALID_CREDENTIALS", "message": "Invalid email or password"}


class AuthService:
    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Accounts
    # -----------------------------------------------------------------------

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def create_user(self, email: str, password: str, display_name: str) -> User:
        if await self.get_user_by_email(email) is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "EMAIL_TAKEN", "message": "Email is already registered"},
            )

        user = User(
            email=email.lower(),
            password_hash=hash_password(password),
            display_name=display_name,
            email_verified=False,
        )
        self.db.add(user)
        await self.db.flush()
        logger.info("Registered user %s", user.id)
        return user

    async def register(self, data: RegisterRequest) -> TokenResponse:
        user = await self.create_user(data.email, data.password, data.display_name)
        return await self.issue_tokens(user)

    async def update_account(self, user: User, data: AccountUpdateRequest) -> MeResponse:
        user.display_name = data.display_name
        await self.db.flush()
        return await self.get_me(user)

    async def change_password(self, user: User, data: ChangePasswordRequest) -> None:
        if user.password_hash is None or not verify_password(data.current_password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_PASSWORD", "message": "Current password is incorrect"},
            )
        user.password_hash = hash_password(data.new_password)
        await self.db.flush()
        logger.info("Password changed for user %s", user.id)

    async def get_me(self, user: User) -> MeResponse:
        result = await self.db.execute(
            select(Profile, Organization)
            .join(Organization, Profile.org_id == Organization.id)
            .where(Profile.user_id == user.id)
            .order_by(Organization.name)
        )
        return MeResponse(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            email_verified=user.email_verified,
            is_super_admin=user.is_super_admin,
            created_at=user.created_at,
            organizations=[
                MeOrganization(
                    org_id=org.id,
                    slug=org.slug,
                    name=org.name,
                    profile_id=profile.id,
                    role=profile.role.value,
                    status=profile.status.value,
                    is_active=profile.is_active,
                )
                for profile, org in result.all()
            ],
        )

    # -----------------------------------------------------------------------
    # Sessions
    # -----------------------------------------------------------------------

    async def authenticate(self, email: str, password: str) -> User:
        """
        Check an email and password pair.

        Unknown emails and wrong passwords give the same 401; disabled
        accounts get 403 only after the password checks out.
        """
        user = await self.get_user_by_email(email)
        if user is None or user.password_hash is None or not verify_password(password, user.password_hash):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "ACCOUNT_DISABLED", "message": "Account is disabled"},
            )
        return user

    async def login(self, email: str, password: str) -> TokenResponse:
        return await self.issue_tokens(await self.authenticate(email, password))

    async def refresh(self, refresh_token: str) -> TokenResponse:
        try:
            claims = decode_refresh_token(refresh_token)
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"code": "INVALID_TOKEN", "message": "Refresh token is invalid or expired"},
            )

        redis_key = refresh_token_redis_key(claims.get("sub", ""), claims.get("jti", ""))
        if not await self.redis.exists(redis_key):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"code": "TOKEN_REVOKED", "message": "Refresh token has been revoked"},
            )

        user = await self.db.get(User, UUID(claims["sub"]))
        if user is None or not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail={"code": "USER_NOT_FOUND", "message": "User not found or inactive"},
            )

        # Rotate: the presented token is spent
        await self.redis.delete(redis_key)
        return await self.issue_tokens(user)

    async def logout(self, access_claims: dict[str, Any], refresh_token: str) -> None:
        await self.redis.setex(
            blacklist_redis_key(access_claims.get("jti", "")),
            settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            "1",
        )

        try:
            claims = decode_refresh_token(refresh_token)
        except JWTError:
            return
        await self.redis.delete(refresh_token_redis_key(claims.get("sub", ""), claims.get("jti", "")))

    async def issue_tokens(self, user: User) -> TokenResponse:
        """Create an access and refresh pair and remember the refresh JTI."""
        user_id = str(user.id)
        refresh_token, refresh_jti = create_refresh_token(user_id)

        await self.redis.setex(
            refresh_token_redis_key(user_id, refresh_jti),
            settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
            "1",
        )
        return TokenResponse(
            access_token=create_access_token(user_id),
            refresh_token=refresh_token,
            expires_in=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    # -----------------------------------------------------------------------
    # Password reset
    # -----------------------------------------------------------------------

    async def forgot_password(self, email: str) -> None:
        """Mail a reset link; unknown emails are ignored so callers learn nothing."""
        user = await self.get_user_by_email(email)
        if user is None:
            return

        token = create_password_reset_token()
        await self.redis.setex(password_reset_redis_key(token), PASSWORD_RESET_TTL_SECONDS, str(user.id))

        from memberhub.workers.email_tasks import send_password_reset_email
        send_password_reset_email.delay(
            to_email=user.email,
            reset_token=token,
            frontend_url=settings.FRONTEND_URL,
        )

    async def reset_password(self, token: str, new_password: str) -> None:
        redis_key = password_reset_redis_key(token)
        user_id = await self.redis.get(redis_key)
        user = await self.db.get(User, UUID(user_id)) if user_id else None
        if user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_TOKEN", "message": "Reset token is invalid or expired"},
            )

        user.password_hash = hash_password(new_password)
        await self.db.flush()
        await self.redis.delete(redis_key)
        logger.info("Password reset for user %s", user.id)
