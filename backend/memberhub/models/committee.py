"""
Committee ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from memberhub.models.base import Base, TimestampMixin, UUIDMixin


class CommitteeRole(str, enum.Enum):
    chair = "chair"
    vice_chair = "vice_chair"
    secretary = "secretary"
    treasurer = "treasurer"
    member = "member"


class Committee(Base, UUIDMixin, TimestampMixin):
    """A named group of profiles, optionally mirrored to a mailing list."""

    __tablename__ = "committees"
    __table_args__ = (
        UniqueConstraint("org_id", "slug", name="uq_committees_org_slug"),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    mailing_list_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("mailing_lists.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    member_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Committee org_id={self.org_id} slug={self.slug!r}>"


class CommitteeMember(Base, UUIDMixin):
    __tablename__ = "committee_members"
    __table_args__ = (
        UniqueConstraint("committee_id", "profile_id", name="uq_committee_members_committee_profile"),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    committee_id: Mapped[UUID] = mapped_column(
        ForeignKey("committees.id", ondelete="CASCADE"), nullable=False, index=True
    )
    profile_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[CommitteeRole] = mapped_column(
        Enum(CommitteeRole, name="committee_role", native_enum=False, length=20),
        nullable=False,
        default=CommitteeRole.member,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
