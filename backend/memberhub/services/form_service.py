"""
Form schema version business logic.

Admins publish new versions of the signup/renewal form. One version is
active per organization at a time.
"""

from __future__ import annotations

import logging
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.models.form import FormSchemaVersion, FormType
from memberhub.models.membership import MembershipType
from memberhub.models.organization import Organization
from memberhub.models.user import User
from memberhub.schemas.form import (
    FormSchema,
    FormSchemaCreateRequest,
    FormSchemaListResponse,
    FormSchemaResponse,
    FormValidateResponse,
)
from memberhub.services.form_validation import (
    PricedType,
    build_default_schema,
    calculate_total,
    selected_membership_type_ids,
    validate_submission,
)

logger = logging.getLogger(__name__)


def form_invalid(errors: dict[str, str]) -> HTTPException:
    """422 carrying the per-field error map."""
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={
            "code": "FORM_INVALID",
            "message": "Please correct the highlighted fields",
            "errors": errors,
        },
    )


def parse_schema(schema_data: dict) -> FormSchema:
    """Load a stored schema document, failing loudly if it was corrupted."""
    try:
        return FormSchema.model_validate(schema_data)
    except ValidationError as exc:
        logger.error("Stored form schema is invalid: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": "FORM_SCHEMA_CORRUPT", "message": "Stored form schema is invalid"},
        )


async def load_priced_types(db: AsyncSession, org_id: UUID) -> list[PricedType]:
    """Every membership type of the org in the shape the form engine prices."""
    result = await db.execute(
        select(MembershipType)
        .where(MembershipType.org_id == org_id)
        .order_by(MembershipType.display_order, MembershipType.name)
    )
    return [
        PricedType(
            id=str(t.id),
            code=t.code,
            name=t.name,
            price=t.price,
            is_active=t.is_active,
        )
        for t in result.scalars().all()
    ]


class FormService:
    """Handles form schema versions."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    async def list_forms(self, org_id: UUID) -> FormSchemaListResponse:
        result = await self.db.execute(
            select(FormSchemaVersion)
            .where(FormSchemaVersion.org_id == org_id)
            .order_by(FormSchemaVersion.schema_version.desc())
        )
        forms = [FormSchemaResponse.model_validate(f) for f in result.scalars().all()]
        return FormSchemaListResponse(forms=forms, total=len(forms))

    async def get_form_model(self, org_id: UUID, form_id: UUID) -> FormSchemaVersion:
        result = await self.db.execute(
            select(FormSchemaVersion).where(
                FormSchemaVersion.id == form_id,
                FormSchemaVersion.org_id == org_id,
            )
        )
        form = result.scalar_one_or_none()
        if form is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "FORM_NOT_FOUND", "message": "Form schema not found"},
            )
        return form

    async def get_form(self, org_id: UUID, form_id: UUID) -> FormSchemaResponse:
        return FormSchemaResponse.model_validate(await self.get_form_model(org_id, form_id))

    async def get_active_form(
        self, org_id: UUID, form_types: tuple[FormType, ...]
    ) -> FormSchemaVersion | None:
        """The active version if its type is one of ``form_types``."""
        result = await self.db.execute(
            select(FormSchemaVersion).where(
                FormSchemaVersion.org_id == org_id,
                FormSchemaVersion.is_active.is_(True),
                FormSchemaVersion.form_type.in_(form_types),
            )
        )
        return result.scalars().first()

    async def get_renewal_form(self, org: Organization) -> FormSchemaVersion | None:
        """
        Form used for renewals.

        The org's configured renewal form wins, then the active renewal or
        both form, then whatever version is active.
        """
        if org.renewal_form_schema_id is not None:
            result = await self.db.execute(
                select(FormSchemaVersion).where(
                    FormSchemaVersion.id == org.renewal_form_schema_id,
                    FormSchemaVersion.org_id == org.id,
                )
            )
            form = result.scalar_one_or_none()
            if form is not None:
                return form

        form = await self.get_active_form(org.id, (FormType.renewal, FormType.both))
        if form is not None:
            return form
        return await self.get_active_form(org.id, tuple(FormType))

    # -----------------------------------------------------------------------
    # Create / activate
    # -----------------------------------------------------------------------

    async def create_form(
        self,
        org_id: UUID,
        data: FormSchemaCreateRequest,
        created_by: User | None = None,
    ) -> FormSchemaResponse:
        """Store a new version numbered one past the latest."""
        next_version = await self._next_version(org_id)

        if data.activate:
            await self._deactivate_all(org_id)

        schema_data = data.schema_data.model_copy(update={"version": next_version})
        form = FormSchemaVersion(
            org_id=org_id,
            schema_version=next_version,
            title=data.title,
            description=data.description,
            schema_data=schema_data.model_dump(mode="json"),
            form_type=FormType(data.form_type),
            is_active=data.activate,
            created_by=created_by.id if created_by else None,
        )
        self.db.add(form)
        await self.db.flush()
        await self.db.refresh(form)
        logger.info("Created form v%s for org %s", next_version, org_id)
        return FormSchemaResponse.model_validate(form)

    async def seed_default_form(self, org_id: UUID, created_by: User | None = None) -> None:
        """Give a new organization the default signup form as version 1."""
        await self.create_form(
            org_id,
            FormSchemaCreateRequest(
                title="Membership Application",
                form_type="signup",
                schema_data=build_default_schema(),
                activate=True,
            ),
            created_by,
        )

    async def activate_form(self, org_id: UUID, form_id: UUID) -> FormSchemaResponse:
        form = await self.get_form_model(org_id, form_id)
        await self._deactivate_all(org_id)
        form.is_active = True
        await self.db.flush()
        await self.db.refresh(form)
        return FormSchemaResponse.model_validate(form)

    # -----------------------------------------------------------------------
    # Validate
    # -----------------------------------------------------------------------

    async def validate_response(
        self, org_id: UUID, form_id: UUID, response_data: dict
    ) -> FormValidateResponse:
        """Dry-run a submission against a stored version."""
        form = await self.get_form_model(org_id, form_id)
        schema = parse_schema(form.schema_data)
        priced = await load_priced_types(self.db, org_id)

        errors = validate_submission(schema, response_data, priced)
        selected = selected_membership_type_ids(schema, response_data)
        return FormValidateResponse(
            valid=not errors,
            errors=errors,
            selected_membership_types=selected,
            total_amount=calculate_total(selected, priced, response_data),
        )

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _next_version(self, org_id: UUID) -> int:
        result = await self.db.execute(
            select(func.max(FormSchemaVersion.schema_version)).where(
                FormSchemaVersion.org_id == org_id
            )
        )
        return (result.scalar() or 0) + 1

    async def _deactivate_all(self, org_id: UUID) -> None:
        await self.db.execute(
            update(FormSchemaVersion)
            .where(
                FormSchemaVersion.org_id == org_id,
                FormSchemaVersion.is_active.is_(True),
            )
            .values(is_active=False)
            .execution_options(synchronize_session="fetch")
        )
