"""
Automated reminder and reminder log ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from memberhub.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class ReminderType(str, enum.Enum):
    membership_renewal = "membership_renewal"
    membership_expiry = "membership_expiry"
    event_upcoming = "event_upcoming"
    event_followup = "event_followup"
    custom = "custom"


class ReminderLogStatus(str, enum.Enum):
    sent = "sent"
    failed = "failed"
    bounced = "bounced"
    opened = "opened"
    clicked = "clicked"


class AutomatedReminder(Base, UUIDMixin, TimestampMixin):
    """
    A reminder email sent relative to a membership end date or event start.

    ``trigger_days`` is negative for "before" and positive for "after".
    """

    __tablename__ = "automated_reminders"

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    reminder_type: Mapped[ReminderType] = mapped_column(
        Enum(ReminderType, name="reminder_type", native_enum=False, length=30),
        nullable=False,
    )
    trigger_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    email_subject: Mapped[str] = mapped_column(String(255), nullable=False)
    email_body: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    target_audience: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )

    def __repr__(self) -> str:
        return f"<AutomatedReminder id={self.id} type={self.reminder_type}>"


class ReminderLog(Base, UUIDMixin):
    __tablename__ = "reminder_logs"

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reminder_id: Mapped[UUID] = mapped_column(
        ForeignKey("automated_reminders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    profile_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    # Membership or event the reminder was about
    reference_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    recipient_email: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[ReminderLogStatus] = mapped_column(
        Enum(ReminderLogStatus, name="reminder_log_status", native_enum=False, length=20),
        nullable=False,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONType, nullable=True)
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
