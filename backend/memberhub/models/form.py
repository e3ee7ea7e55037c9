"""
Form schema and form response ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from memberhub.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class FormType(str, enum.Enum):
    signup = "signup"
    renewal = "renewal"
    both = "both"


class FormSchemaVersion(Base, UUIDMixin, TimestampMixin):
    """A versioned signup/renewal form definition."""

    __tablename__ = "form_schemas"
    __table_args__ = (
        UniqueConstraint("org_id", "schema_version", name="uq_form_schemas_org_version"),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(
        String(200), nullable=False, default="Membership Application"
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    schema_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    form_type: Mapped[FormType] = mapped_column(
        Enum(FormType, name="form_type", native_enum=False, length=20),
        nullable=False,
        default=FormType.signup,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    def __repr__(self) -> str:
        return f"<FormSchemaVersion org_id={self.org_id} v={self.schema_version}>"


class FormResponse(Base, UUIDMixin, TimestampMixin):
    """The latest signup or renewal answers a profile submitted."""

    __tablename__ = "form_responses"

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    profile_id: Mapped[UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    schema_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("form_schemas.id", ondelete="SET NULL"), nullable=True
    )
    schema_version: Mapped[int] = mapped_column(Integer, nullable=False)
    response_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    selected_membership_types: Mapped[list[str]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0")
    )
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
