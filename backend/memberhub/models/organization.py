"""
Organization ORM model.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from memberhub.models.base import Base, JSONType, TimestampMixin, UUIDMixin

DEFAULT_PRIMARY_COLOR = "#3B82F6"
DEFAULT_SECONDARY_COLOR = "#1E40AF"


class Organization(Base, UUIDMixin, TimestampMixin):
    """Represents a tenant organization."""

    __tablename__ = "organizations"
    __table_args__ = (
        CheckConstraint(
            "membership_year_start_month BETWEEN 1 AND 12",
            name="ck_organizations_year_start_month",
        ),
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Branding
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    primary_color: Mapped[str] = mapped_column(
        String(7), nullable=False, default=DEFAULT_PRIMARY_COLOR
    )
    secondary_color: Mapped[str] = mapped_column(
        String(7), nullable=False, default=DEFAULT_SECONDARY_COLOR
    )

    # Contact
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

    settings: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    # Membership year
    membership_year_start_month: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    membership_year_end_month: Mapped[int] = mapped_column(Integer, nullable=False, default=12)
    renewal_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # Not a foreign key: form_schemas references organizations already
    renewal_form_schema_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Organization id={self.id} slug={self.slug!r}>"
