"""
Email workflow business logic.

Workflows notify a fixed recipient (usually an officer of the
organization) when someone signs up or renews. Sending them is a side
effect: a failing workflow never fails the signup or renewal itself.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from memberhub.core.email import is_valid_email
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile, ProfileRole, ProfileStatus
from memberhub.models.user import User
from memberhub.models.workflow import EmailWorkflow, WorkflowTrigger
from memberhub.schemas.workflow import (
    SendEmailRequest,
    SendEmailResponse,
    WorkflowCreateRequest,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowTestRequest,
    WorkflowTestResponse,
    WorkflowUpdateRequest,
)
from memberhub.services.form_validation import PricedType

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_.\-]+)\s*\}\}")


# ---------------------------------------------------------------------------
# Rendering and conditions
# ---------------------------------------------------------------------------

def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple)):
        return ", ".join(_format_value(v) for v in value)
    return str(value)


def render_template(template: str, context: Mapping[str, Any]) -> str:
    """Replace ``{{key}}`` placeholders; unknown keys stay as written."""

    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key not in context:
            return match.group(0)
        return _format_value(context[key])

    return PLACEHOLDER_RE.sub(replace, template)


def build_context(
    org: Organization,
    profile: Profile,
    response_data: Mapping[str, Any],
    selected_types: Iterable[PricedType],
) -> dict[str, Any]:
    """Placeholder values: every form answer plus the fixed member fields."""
    context: dict[str, Any] = dict(response_data)
    context.update(
        first_name=profile.first_name,
        last_name=profile.last_name,
        full_name=profile.full_name,
        email=profile.email,
        membership_type=", ".join(t.name for t in selected_types),
        organization_name=org.name,
    )
    return context


def conditions_match(
    conditions: Mapping[str, Any] | None,
    response_data: Mapping[str, Any],
    selected_codes: Iterable[str],
) -> bool:
    """
    Check a workflow's conditions against a submission.

    ``membership_types`` lists codes of which at least one must be
    selected. Any other key must equal the submitted value.
    """
    if not conditions:
        return True

    codes = set(selected_codes)
    for key, expected in conditions.items():
        if key == "membership_types":
            wanted = expected if isinstance(expected, list) else [expected]
            if wanted and not codes.intersection(str(c) for c in wanted):
                return False
            continue
        if str(response_data.get(key, "")) != str(expected):
            return False
    return True


def _trigger_matches(trigger: WorkflowTrigger, event: WorkflowTrigger) -> bool:
    return trigger == event or trigger == WorkflowTrigger.both


async def trigger_workflows(
    db: AsyncSession,
    org: Organization,
    profile: Profile,
    event: WorkflowTrigger,
    response_data: Mapping[str, Any],
    selected_types: list[PricedType],
) -> int:
    """
    Queue every matching workflow email for a signup or renewal.

    Returns how many were queued. Errors are logged and swallowed.
    """
    try:
        result = await db.execute(
            select(EmailWorkflow).where(
                EmailWorkflow.org_id == org.id,
                EmailWorkflow.is_active.is_(True),
            )
        )
        workflows = result.scalars().all()
    except Exception:
        logger.exception("Could not load workflows for org %s", org.id)
        return 0

    from memberhub.workers.email_tasks import send_workflow_email

    context = build_context(org, profile, response_data, selected_types)
    codes = [t.code for t in selected_types]
    queued = 0

    for workflow in workflows:
        if not _trigger_matches(workflow.trigger_event, event):
            continue
        if not conditions_match(workflow.conditions, response_data, codes):
            continue
        try:
            send_workflow_email.delay(
                to=workflow.recipient_email,
                subject=render_template(workflow.email_subject, context),
                html_body=None,
                text_body=render_template(workflow.email_template, context),
                workflow_id=str(workflow.id),
                organization_id=str(org.id),
                recipient_name=workflow.recipient_name,
            )
            queued += 1
        except Exception:
            logger.exception("Workflow %s failed for profile %s", workflow.id, profile.id)

    if queued:
        logger.info("Queued %d %s workflow emails for org %s", queued, event.value, org.id)
    return queued


class WorkflowService:
    """Handles email workflow configuration and the templated send endpoint."""

    def __init__(self, db: AsyncSession, redis: aioredis.Redis) -> None:
        self.db = db
        self.redis = redis

    # -----------------------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------------------

    async def list_workflows(self, org_id: UUID) -> WorkflowListResponse:
        result = await self.db.execute(
            select(EmailWorkflow)
            .where(EmailWorkflow.org_id == org_id)
            .order_by(EmailWorkflow.created_at.desc())
        )
        workflows = [WorkflowResponse.model_validate(w) for w in result.scalars().all()]
        return WorkflowListResponse(workflows=workflows, total=len(workflows))

    async def get_workflow_model(self, org_id: UUID, workflow_id: UUID) -> EmailWorkflow:
        result = await self.db.execute(
            select(EmailWorkflow).where(
                EmailWorkflow.id == workflow_id,
                EmailWorkflow.org_id == org_id,
            )
        )
        workflow = result.scalar_one_or_none()
        if workflow is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"code": "WORKFLOW_NOT_FOUND", "message": "Workflow not found"},
            )
        return workflow

    async def get_workflow(self, org_id: UUID, workflow_id: UUID) -> WorkflowResponse:
        return WorkflowResponse.model_validate(await self.get_workflow_model(org_id, workflow_id))

    async def create_workflow(self, org_id: UUID, data: WorkflowCreateRequest) -> WorkflowResponse:
        values = data.model_dump()
        values["trigger_event"] = WorkflowTrigger(data.trigger_event)
        values["recipient_email"] = str(data.recipient_email).lower()
        workflow = EmailWorkflow(org_id=org_id, **values)
        self.db.add(workflow)
        await self.db.flush()
        await self.db.refresh(workflow)
        return WorkflowResponse.model_validate(workflow)

    async def update_workflow(
        self, org_id: UUID, workflow_id: UUID, data: WorkflowUpdateRequest
    ) -> WorkflowResponse:
        workflow = await self.get_workflow_model(org_id, workflow_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is None and key not in ("description", "recipient_name"):
                continue
            if key == "trigger_event":
                value = WorkflowTrigger(value)
            elif key == "recipient_email":
                value = str(value).lower()
            setattr(workflow, key, value)
        await self.db.flush()
        await self.db.refresh(workflow)
        return WorkflowResponse.model_validate(workflow)

    async def delete_workflow(self, org_id: UUID, workflow_id: UUID) -> None:
        workflow = await self.get_workflow_model(org_id, workflow_id)
        await self.db.delete(workflow)
        await self.db.flush()

    async def test_workflow(
        self, org: Organization, workflow_id: UUID, data: WorkflowTestRequest, acting: Profile
    ) -> WorkflowTestResponse:
        """Render with sample values and queue it to the caller or ``to``."""
        workflow = await self.get_workflow_model(org.id, workflow_id)
        context: dict[str, Any] = {
            "first_name": "Sample",
            "last_name": "Member",
            "full_name": "Sample Member",
            "email": "sample.member@example.com",
            "membership_type": "Full Member",
            "organization_name": org.name,
        }
        context.update(data.sample_data)

        to = str(data.to) if data.to else acting.email
        subject = f"[TEST] {render_template(workflow.email_subject, context)}"
        body = render_template(workflow.email_template, context)

        from memberhub.workers.email_tasks import send_workflow_email
        send_workflow_email.delay(
            to=to,
            subject=subject,
            html_body=None,
            text_body=body,
            workflow_id=str(workflow.id),
            organization_id=str(org.id),
            recipient_name=workflow.recipient_name,
        )
        return WorkflowTestResponse(to=to, subject=subject, body=body, queued=True)

    # -----------------------------------------------------------------------
    # Templated email send
    # -----------------------------------------------------------------------

    async def send_templated_email(self, data: SendEmailRequest, user: User) -> SendEmailResponse:
        """
        Queue an already rendered workflow email.

        The caller must be an active admin of ``organization_id`` and the
        workflow must belong to that organization.
        """
        if not is_valid_email(data.to):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "INVALID_EMAIL", "message": "Invalid email address format"},
            )

        admin = await self.db.scalar(
            select(Profile.id).where(
                Profile.org_id == data.organization_id,
                Profile.user_id == user.id,
                Profile.role == ProfileRole.admin,
                Profile.status == ProfileStatus.active,
                Profile.is_active.is_(True),
            )
        )
        if admin is None:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "INSUFFICIENT_ROLE", "message": "Organization admin access required"},
            )

        await self.get_workflow_model(data.organization_id, data.workflow_id)

        logger.info(
            "Email send request workflow=%s org=%s to=%s",
            data.workflow_id,
            data.organization_id,
            data.to,
        )

        from memberhub.workers.email_tasks import send_workflow_email
        send_workflow_email.delay(
            to=data.to,
            subject=data.subject,
            html_body=data.html_body,
            text_body=data.text_body,
            workflow_id=str(data.workflow_id),
            organization_id=str(data.organization_id),
            recipient_name=data.recipient_name,
        )
        return SendEmailResponse(to=data.to)
