"""
Email workflow schemas, including the templated email send endpoint.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

TRIGGER_PATTERN = "^(signup|renewal|both)$"


class WorkflowCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    trigger_event: str = Field(pattern=TRIGGER_PATTERN)
    conditions: dict[str, Any] = Field(default_factory=dict)
    recipient_email: EmailStr
    recipient_name: str | None = Field(default=None, max_length=100)
    email_subject: str = Field(min_length=1, max_length=255)
    email_template: str = Field(min_length=1)
    is_active: bool = True


class WorkflowUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    trigger_event: str | None = Field(default=None, pattern=TRIGGER_PATTERN)
    conditions: dict[str, Any] | None = None
    recipient_email: EmailStr | None = None
    recipient_name: str | None = Field(default=None, max_length=100)
    email_subject: str | None = Field(default=None, min_length=1, max_length=255)
    email_template: str | None = Field(default=None, min_length=1)
    is_active: bool | None = None


class WorkflowResponse(BaseModel):
    id: UUID
    org_id: UUID
    name: str
    description: str | None
    trigger_event: str
    conditions: dict[str, Any]
    recipient_email: str
    recipient_name: str | None
    email_subject: str
    email_template: str
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class WorkflowListResponse(BaseModel):
    workflows: list[WorkflowResponse]
    total: int


class WorkflowTestRequest(BaseModel):
    """Sample values used to render a test email."""

    to: EmailStr | None = None
    sample_data: dict[str, Any] = Field(default_factory=dict)


class WorkflowTestResponse(BaseModel):
    to: str
    subject: str
    body: str
    queued: bool


# ---------------------------------------------------------------------------
# Templated email send
# ---------------------------------------------------------------------------

class SendEmailRequest(BaseModel):
    """Request body for POST /email/send."""

    to: str = Field(min_length=1, max_length=255)
    recipient_name: str | None = Field(default=None, max_length=100)
    subject: str = Field(min_length=1, max_length=255)
    html_body: str | None = None
    text_body: str | None = None
    workflow_id: UUID
    organization_id: UUID

    @model_validator(mode="after")
    def body_required(self) -> SendEmailRequest:
        if not self.html_body and not self.text_body:
            raise ValueError("Either html_body or text_body is required")
        return self


class SendEmailResponse(BaseModel):
    success: bool = True
    queued: bool = True
    to: str
