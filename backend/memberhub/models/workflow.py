"""
Email workflow ORM model.
"""

from __future__ import annotations

import enum
from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from memberhub.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class WorkflowTrigger(str, enum.Enum):
    signup = "signup"
    renewal = "renewal"
    both = "both"


class EmailWorkflow(Base, UUIDMixin, TimestampMixin):
    """Sends a templated notification when members sign up or renew."""

    __tablename__ = "email_workflows"

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    trigger_event: Mapped[WorkflowTrigger] = mapped_column(
        Enum(WorkflowTrigger, name="workflow_trigger", native_enum=False, length=20),
        nullable=False,
    )
    conditions: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    recipient_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email_subject: Mapped[str] = mapped_column(String(255), nullable=False)
    email_template: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<EmailWorkflow id={self.id} trigger={self.trigger_event}>"
