"""
Profile ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from memberhub.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class ProfileRole(str, enum.Enum):
    """Role of a profile inside its organization."""

    admin = "admin"
    member = "member"


class ProfileStatus(str, enum.Enum):
    """Approval state of a profile."""

    pending = "pending"
    active = "active"
    rejected = "rejected"


class Profile(Base, UUIDMixin, TimestampMixin):
    """A user's membership record within one organization."""

    __tablename__ = "profiles"
    __table_args__ = (
        UniqueConstraint("org_id", "user_id", name="uq_profiles_org_user"),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)

    role: Mapped[ProfileRole] = mapped_column(
        Enum(ProfileRole, name="profile_role", native_enum=False, length=20),
        nullable=False,
        default=ProfileRole.member,
    )
    status: Mapped[ProfileStatus] = mapped_column(
        Enum(ProfileStatus, name="profile_status", native_enum=False, length=20),
        nullable=False,
        default=ProfileStatus.pending,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    rejection_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    status_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Profile org_id={self.org_id} user_id={self.user_id} status={self.status}>"
