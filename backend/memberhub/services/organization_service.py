"""
Organization business logic.

Handles super admin org management, org settings, stats and invitations.
All queries scoped by org_id.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.config import settings
from memberhub.core.security import create_invitation_token
from memberhub.models.base import ensure_aware, utcnow
from memberhub.models.form import FormSchemaVersion
from memberhub.models.invitation import Invitation
from memberhub.models.membership import Membership, MembershipStatus
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile, ProfileRole, ProfileStatus
from memberhub.models.user import User
from memberhub.schemas.organization import (
    InvitationAcceptRequest,
    InvitationInfoResponse,
    InvitationResponse,
    InvitationsListResponse,
    InviteRequest,
    OrganizationAdminUpdateRequest,
    OrganizationCreateRequest,
    OrganizationCreateResponse,
    OrganizationListResponse,
    OrganizationResponse,
    OrganizationSettingsUpdate,
    OrganizationStatsResponse,
)
from memberhub.schemas.profile import ProfileResponse
from memberhub.services.form_service import FormService

logger = logging.getLogger(__name__)

INVITATION_LIFETIME = timedelta(hours=48)


def _invitation_response(invitation: Invitation) -> InvitationResponse:
    expires_at = ensure_aware(invitation.expires_at)
    return InvitationResponse(
        id=invitation.id,
        org_id=invitation.org_id,
        email=invitation.email,
        role=invitation.role.value,
        token=invitation.token,
        expires_at=expires_at,
        created_at=ensure_aware(invitation.created_at),
        is_expired=expires_at < utcnow(),
    )


class OrganizationService:
    """Handles all organization operations."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Super admin: create / list / update / delete
    # -----------------------------------------------------------------------

    async def create_organization(
        self, data: OrganizationCreateRequest, creator: User
    ) -> OrganizationCreateResponse:
        """
        Create a new organization.

        - Validates slug uniqueness
        - Seeds the default signup form as version 1
        - Optionally invites the first organization admin
        """
        await self._ensure_slug_free(data.slug)

        org = Organization(
            name=data.name,
            slug=data.slug,
            contact_email=data.contact_email,
            membership_year_start_month=data.membership_year_start_month,
            settings={},
        )
        self.db.add(org)
        await self.db.flush()

        await FormService(self.db, self.redis).seed_default_form(org.id, creator)

        admin_invitation = None
        if data.admin_email:
            admin_invitation = await self.invite_member(
                org, InviteRequest(email=data.admin_email, role="admin"), creator
            )

        await self.db.refresh(org)
        logger.info("Created organization %s (%s)", org.slug, org.id)
        return OrganizationCreateResponse(
            organization=OrganizationResponse.model_validate(org),
            admin_invitation=admin_invitation,
        )

    async def list_organizations(self) -> OrganizationListResponse:
        result = await self.db.execute(select(Organization).order_by(Organization.name))
        orgs = [OrganizationResponse.model_validate(o) for o in result.scalars().all()]
        return OrganizationListResponse(organizations=orgs, total=len(orgs))

    async def get_org_model(self, org_id: UUID) -> Organization:
        result = await self.db.execute(select(Organization).where(Organization.id == org_id))
        org = result.scalar_one_or_none()
        if org is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "ORG_NOT_FOUND", "message": "Organization not found"},
            )
        return org

    async def get_organization(self, org_id: UUID) -> OrganizationResponse:
        return OrganizationResponse.model_validate(await self.get_org_model(org_id))

    async def admin_update_organization(
        self, org_id: UUID, data: OrganizationAdminUpdateRequest
    ) -> OrganizationResponse:
        org = await self.get_org_model(org_id)
        if data.slug is not None and data.slug != org.slug:
            await self._ensure_slug_free(data.slug)
            org.slug = data.slug
        if data.is_active is not None:
            org.is_active = data.is_active
        return await self.update_settings(
            org, OrganizationSettingsUpdate(**data.model_dump(exclude={"slug", "is_active"}, exclude_unset=True))
        )

    async def delete_organization(self, org_id: UUID) -> None:
        org = await self.get_org_model(org_id)
        await self.db.delete(org)
        await self.db.flush()
        logger.info("Deleted organization %s", org_id)

    # -----------------------------------------------------------------------
    # Org admin: settings
    # -----------------------------------------------------------------------

    async def update_settings(
        self, org: Organization, data: OrganizationSettingsUpdate
    ) -> OrganizationResponse:
        """Apply only the fields the caller actually sent."""
        changes = data.model_dump(exclude_unset=True)

        form_id = changes.get("renewal_form_schema_id")
        if form_id is not None:
            result = await self.db.execute(
                select(FormSchemaVersion.id).where(
                    FormSchemaVersion.id == form_id,
                    FormSchemaVersion.org_id == org.id,
                )
            )
            if result.scalar_one_or_none() is None:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail={"code": "FORM_NOT_FOUND", "message": "Renewal form not found"},
                )

        for key, value in changes.items():
            if key in ("name", "primary_color", "secondary_color") and value is None:
                continue
            setattr(org, key, value)

        await self.db.flush()
        await self.db.refresh(org)
        return OrganizationResponse.model_validate(org)

    # -----------------------------------------------------------------------
    # Stats
    # -----------------------------------------------------------------------

    async def get_stats(self, org_id: UUID) -> OrganizationStatsResponse:
        member_count = await self.db.scalar(
            select(func.count(Profile.id)).where(
                Profile.org_id == org_id,
                Profile.status == ProfileStatus.active,
            )
        )
        active_memberships = await self.db.scalar(
            select(func.count(Membership.id)).where(
                Membership.org_id == org_id,
                Membership.status == MembershipStatus.active,
            )
        )
        revenue = await self.db.scalar(
            select(func.coalesce(func.sum(Membership.amount_paid), 0)).where(
                Membership.org_id == org_id
            )
        )
        return OrganizationStatsResponse(
            member_count=member_count or 0,
            active_memberships=active_memberships or 0,
            total_revenue=Decimal(str(revenue or 0)).quantize(Decimal("0.01")),
        )

    # -----------------------------------------------------------------------
    # Invitations
    # -----------------------------------------------------------------------

    async def invite_member(
        self, org: Organization, data: InviteRequest, inviter: User
    ) -> InvitationResponse:
        """
        Create an invitation and queue the invitation email.

        Rejects addresses with a pending invitation or an active profile.
        """
        email = data.email.lower()

        existing_invite = await self.db.execute(
            select(Invitation).where(
                Invitation.org_id == org.id,
                Invitation.email == email,
                Invitation.accepted_at.is_(None),
                Invitation.expires_at > utcnow(),
            )
        )
        if existing_invite.scalars().first() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "INVITE_EXISTS", "message": "A pending invitation already exists for this email"},
            )

        existing_profile = await self.db.execute(
            select(Profile).where(
                Profile.org_id == org.id,
                Profile.email == email,
                Profile.status == ProfileStatus.active,
            )
        )
        if existing_profile.scalars().first() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "ALREADY_MEMBER", "message": "This email already belongs to a member"},
            )

        now = utcnow()
        invitation = Invitation(
            org_id=org.id,
            email=email,
            role=ProfileRole(data.role),
            token=create_invitation_token(),
            expires_at=now + INVITATION_LIFETIME,
            created_by=inviter.id,
            created_at=now,
        )
        self.db.add(invitation)
        await self.db.flush()

        from memberhub.workers.email_tasks import send_invitation_email
        send_invitation_email.delay(
            to_email=email,
            org_name=org.name,
            inviter_name=inviter.display_name,
            role=data.role,
            invitation_token=invitation.token,
            frontend_url=settings.FRONTEND_URL,
        )

        return _invitation_response(invitation)

    async def list_invitations(self, org_id: UUID) -> InvitationsListResponse:
        """Pending (not accepted) invitations, newest first."""
        result = await self.db.execute(
            select(Invitation)
            .where(Invitation.org_id == org_id, Invitation.accepted_at.is_(None))
            .order_by(Invitation.created_at.desc())
        )
        invitations = [_invitation_response(i) for i in result.scalars().all()]
        return InvitationsListResponse(invitations=invitations, total=len(invitations))

    async def revoke_invitation(self, org_id: UUID, invitation_id: UUID) -> None:
        result = await self.db.execute(
            select(Invitation).where(
                Invitation.id == invitation_id,
                Invitation.org_id == org_id,
            )
        )
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "INVITE_NOT_FOUND", "message": "Invitation not found"},
            )

        await self.db.delete(invitation)
        await self.db.flush()

    async def get_invitation_info(self, token: str) -> InvitationInfoResponse:
        invitation, org = await self._load_invitation(token)
        expires_at = ensure_aware(invitation.expires_at)
        return InvitationInfoResponse(
            email=invitation.email,
            org_name=org.name,
            org_slug=org.slug,
            role=invitation.role.value,
            expires_at=expires_at,
            is_expired=expires_at < utcnow(),
        )

    async def accept_invitation(
        self, token: str, current_user: User, data: InvitationAcceptRequest
    ) -> ProfileResponse:
        """
        Accept an invitation.

        Creates an active profile with the invited role, or promotes an
        existing pending profile of the same user.
        """
        invitation, org = await self._load_invitation(token)

        if invitation.accepted_at is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVITE_USED", "message": "Invitation has already been accepted"},
            )

        if ensure_aware(invitation.expires_at) < utcnow():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVITE_EXPIRED", "message": "Invitation has expired"},
            )

        if invitation.email != current_user.email.lower():
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "EMAIL_MISMATCH", "message": "Invitation was sent to a different email address"},
            )

        result = await self.db.execute(
            select(Profile).where(
                Profile.org_id == org.id,
                Profile.user_id == current_user.id,
            )
        )
        profile = result.scalar_one_or_none()

        if profile is not None and profile.status == ProfileStatus.active:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "ALREADY_MEMBER", "message": "You are already a member of this organization"},
            )

        now = utcnow()
        if profile is None:
            first_name, _, last_name = current_user.display_name.partition(" ")
            profile = Profile(
                org_id=org.id,
                user_id=current_user.id,
                email=current_user.email,
                first_name=data.first_name or first_name,
                last_name=data.last_name or last_name,
            )
            self.db.add(profile)

        profile.role = invitation.role
        profile.status = ProfileStatus.active
        profile.is_active = True
        profile.status_updated_at = now
        invitation.accepted_at = now

        await self.db.flush()
        await self.db.refresh(profile)
        logger.info("Invitation %s accepted by user %s", invitation.id, current_user.id)
        return ProfileResponse.model_validate(profile)

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _ensure_slug_free(self, slug: str) -> None:
        existing = await self.db.execute(select(Organization.id).where(Organization.slug == slug))
        if existing.scalar_one_or_none() is not None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "SLUG_TAKEN", "message": "Organization slug is already taken"},
            )

    async def _load_invitation(self, token: str) -> tuple[Invitation, Organization]:
        result = await self.db.execute(
            select(Invitation, Organization)
            .join(Organization, Invitation.org_id == Organization.id)
            .where(Invitation.token == token)
        )
        row = result.one_or_none()
        if row is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "INVITE_NOT_FOUND", "message": "Invitation not found"},
            )
        return row[0], row[1]
