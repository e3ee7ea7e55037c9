"""
Public signup and member renewal.

Signup creates (or reuses) the login, a pending profile and the stored
form response in one transaction, so the caller gets the profile back
immediately. Renewal creates pending memberships for the current
membership year.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.base import utcnow
from memberhub.models.form import FormResponse, FormSchemaVersion, FormType
from memberhub.models.membership import Membership, MembershipStatus, MembershipType
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile, ProfileRole, ProfileStatus
from memberhub.models.workflow import WorkflowTrigger
from memberhub.schemas.form import FormSchemaResponse
from memberhub.schemas.membership import MembershipTypeResponse
from memberhub.schemas.organization import PublicOrganizationResponse
from memberhub.schemas.profile import ProfileResponse
from memberhub.schemas.signup import (
    RenewalFormResponse,
    RenewalRequest,
    RenewalResponse,
    SignupFormResponse,
    SignupRequest,
    SignupResponse,
)
from memberhub.services.auth_service import AuthService
from memberhub.services.form_service import (
    FormService,
    form_invalid,
    load_priced_types,
    parse_schema,
)
from memberhub.services.form_validation import (
    PricedType,
    calculate_total,
    selected_membership_type_ids,
    validate_submission,
)
from memberhub.services.membership_service import (
    MembershipService,
    current_membership_year,
    membership_response,
)
from memberhub.services.workflow_service import trigger_workflows

logger = logging.getLogger(__name__)

SIGNUP_FORM_TYPES = (FormType.signup, FormType.both)


def split_name(data: SignupRequest, response_data: dict[str, Any]) -> tuple[str, str]:
    """
    Names from the explicit fields, then the form's first/last name
    answers, then a split ``full_name``.
    """
    first = data.first_name or response_data.get("first_name") or ""
    last = data.last_name or response_data.get("last_name") or ""
    if not first and not last:
        full = str(response_data.get("full_name") or "").strip()
        first, _, last = full.partition(" ")
    return str(first).strip(), str(last).strip()


def _chosen_types(selected_ids: list[str], priced: list[PricedType]) -> list[PricedType]:
    by_id = {t.id: t for t in priced}
    return [by_id[type_id] for type_id in selected_ids if type_id in by_id]


class SignupService:
    """Handles public signup and member renewal."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis
        self.forms = FormService(db, redis)

    # -----------------------------------------------------------------------
    # Signup
    # -----------------------------------------------------------------------

    async def get_signup_form(self, org: Organization) -> SignupFormResponse:
        form = await self.forms.get_active_form(org.id, SIGNUP_FORM_TYPES)
        types = await MembershipService(self.db, self.redis).list_types(org.id)
        return SignupFormResponse(
            organization=PublicOrganizationResponse.model_validate(org),
            form=FormSchemaResponse.model_validate(form) if form else None,
            membership_types=types.membership_types,
        )

    async def signup(self, org: Organization, data: SignupRequest) -> SignupResponse:
        """
        Register a member of ``org``.

        - Validates the answers against the active signup form
        - Creates the user, or checks the password of an existing one
        - Creates a pending, inactive profile and stores the answers
        - Queues signup workflow emails (failures are only logged)
        """
        form = await self.forms.get_active_form(org.id, SIGNUP_FORM_TYPES)
        if form is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={
                    "code": "SIGNUP_UNAVAILABLE",
                    "message": "This organization has not configured their signup form yet",
                },
            )

        schema = parse_schema(form.schema_data)
        priced = await load_priced_types(self.db, org.id)
        response_data = dict(data.response_data)
        response_data.setdefault("email", str(data.email))

        errors = validate_submission(schema, response_data, priced)
        if errors:
            raise form_invalid(errors)

        selected_ids = selected_membership_type_ids(schema, response_data)
        total = calculate_total(selected_ids, priced, response_data)
        first_name, last_name = split_name(data, response_data)

        auth = AuthService(self.db, self.redis)
        user = await auth.get_user_by_email(str(data.email))
        if user is None:
            display_name = f"{first_name} {last_name}".strip() or str(data.email).split("@")[0]
            user = await auth.create_user(str(data.email), data.password, display_name)
        else:
            user = await auth.authenticate(str(data.email), data.password)
            existing = await self.db.scalar(
                select(Profile.id).where(Profile.org_id == org.id, Profile.user_id == user.id)
            )
            if existing is not None:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail={
                        "code": "ALREADY_REGISTERED",
                        "message": "You have already signed up to this organization",
                    },
                )

        address = response_data.get("address")
        profile = Profile(
            org_id=org.id,
            user_id=user.id,
            email=user.email,
            first_name=first_name,
            last_name=last_name,
            phone=response_data.get("phone") or None,
            address=address if isinstance(address, dict) else None,
            role=ProfileRole.member,
            status=ProfileStatus.pending,
            is_active=False,
        )
        self.db.add(profile)
        await self.db.flush()

        self.db.add(
            FormResponse(
                org_id=org.id,
                profile_id=profile.id,
                schema_id=form.id,
                schema_version=form.schema_version,
                response_data=response_data,
                selected_membership_types=selected_ids,
                total_amount=total,
                submitted_at=utcnow(),
            )
        )
        await self.db.flush()
        await self.db.refresh(profile)
        logger.info("Signup for org %s created profile %s", org.slug, profile.id)

        await trigger_workflows(
            self.db,
            org,
            profile,
            WorkflowTrigger.signup,
            response_data,
            _chosen_types(selected_ids, priced),
        )

        tokens = await auth.issue_tokens(user)
        return SignupResponse(
            profile=ProfileResponse.model_validate(profile),
            total_amount=total,
            selected_membership_types=selected_ids,
            tokens=tokens,
        )

    # -----------------------------------------------------------------------
    # Renewal
    # -----------------------------------------------------------------------

    async def get_renewal_form(self, org: Organization, profile: Profile) -> RenewalFormResponse:
        self._ensure_renewal_enabled(org)
        year = current_membership_year(org.membership_year_start_month)
        form = await self.forms.get_renewal_form(org)
        types = await MembershipService(self.db, self.redis).list_types(org.id)
        current = await MembershipService(self.db, self.redis).list_memberships(
            org.id, year=year, profile_id=profile.id
        )
        previous = await self.db.scalar(
            select(FormResponse.response_data).where(FormResponse.profile_id == profile.id)
        )
        return RenewalFormResponse(
            membership_year=year,
            form=FormSchemaResponse.model_validate(form) if form else None,
            membership_types=types.membership_types,
            current_memberships=current.memberships,
            previous_response=previous,
        )

    async def renew(
        self, org: Organization, profile: Profile, data: RenewalRequest
    ) -> RenewalResponse:
        """
        Renew for the current membership year.

        One pending membership per selected type; types the member already
        holds for the year are skipped. The stored answers are replaced.
        """
        self._ensure_renewal_enabled(org)
        form = await self.forms.get_renewal_form(org)
        if form is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "FORM_NOT_FOUND", "message": "No renewal form is configured"},
            )

        schema = parse_schema(form.schema_data)
        priced = await load_priced_types(self.db, org.id)
        response_data = dict(data.response_data)

        errors = validate_submission(schema, response_data, priced)
        if errors:
            raise form_invalid(errors)

        selected_ids = selected_membership_type_ids(schema, response_data)
        if not selected_ids:
            raise form_invalid({"membership_selection": "Please select at least one membership type"})
        total = calculate_total(selected_ids, priced, response_data)
        year = current_membership_year(org.membership_year_start_month)

        result = await self.db.execute(
            select(Membership.membership_type_id).where(
                Membership.profile_id == profile.id,
                Membership.membership_year == year,
            )
        )
        already_held = {str(type_id) for type_id in result.scalars().all()}

        created: list[Membership] = []
        for type_id in selected_ids:
            if type_id in already_held:
                continue
            membership = Membership(
                org_id=org.id,
                profile_id=profile.id,
                membership_type_id=UUID(type_id),
                membership_year=year,
                status=MembershipStatus.pending,
                amount_paid=Decimal("0"),
            )
            self.db.add(membership)
            created.append(membership)

        await self._upsert_response(org, profile, form, response_data, selected_ids, total)
        await self.db.flush()

        type_rows = await self.db.execute(
            select(MembershipType).where(MembershipType.org_id == org.id)
        )
        types = {t.id: t for t in type_rows.scalars().all()}
        memberships = []
        for membership in created:
            await self.db.refresh(membership)
            memberships.append(membership_response(membership, types.get(membership.membership_type_id)))

        logger.info(
            "Profile %s renewed for %s with %d new memberships", profile.id, year, len(created)
        )

        await trigger_workflows(
            self.db,
            org,
            profile,
            WorkflowTrigger.renewal,
            response_data,
            _chosen_types(selected_ids, priced),
        )

        return RenewalResponse(
            membership_year=year,
            memberships=memberships,
            total_amount=total,
            selected_membership_types=[UUID(type_id) for type_id in selected_ids],
        )

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def _ensure_renewal_enabled(org: Organization) -> None:
        if not org.renewal_enabled:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "RENEWAL_DISABLED", "message": "Renewals are not open for this organization"},
            )

    async def _upsert_response(
        self,
        org: Organization,
        profile: Profile,
        form: FormSchemaVersion,
        response_data: dict[str, Any],
        selected_ids: list[str],
        total: Decimal,
    ) -> None:
        result = await self.db.execute(
            select(FormResponse).where(FormResponse.profile_id == profile.id)
        )
        stored = result.scalar_one_or_none()
        if stored is None:
            stored = FormResponse(org_id=org.id, profile_id=profile.id)
            self.db.add(stored)

        stored.schema_id = form.id
        stored.schema_version = form.schema_version
        stored.response_data = response_data
        stored.selected_membership_types = selected_ids
        stored.total_amount = total
        stored.submitted_at = utcnow()
