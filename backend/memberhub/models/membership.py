"""
Membership type and membership ORM models.
"""

from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from memberhub.models.base import Base, TimestampMixin, UUIDMixin


class MembershipStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    expired = "expired"
    cancelled = "cancelled"


class MembershipType(Base, UUIDMixin, TimestampMixin):
    """A priced membership tier offered by an organization."""

    __tablename__ = "membership_types"
    __table_args__ = (
        UniqueConstraint("org_id", "code", name="uq_membership_types_org_code"),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<MembershipType org_id={self.org_id} code={self.code!r}>"


class Membership(Base, UUIDMixin, TimestampMixin):
    """One profile's membership of one type for one membership year."""

    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint(
            "profile_id",
            "membership_type_id",
            "membership_year",
            name="uq_memberships_profile_type_year",
        ),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    profile_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    membership_type_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("membership_types.id", ondelete="SET NULL"), nullable=True
    )
    membership_year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    status: Mapped[MembershipStatus] = mapped_column(
        Enum(MembershipStatus, name="membership_status", native_enum=False, length=20),
        nullable=False,
        default=MembershipStatus.pending,
    )
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Membership profile_id={self.profile_id} year={self.membership_year} "
            f"status={self.status}>"
        )
