"""
Custom domain ORM model.
"""

from __future__ import annotations

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from memberhub.models.base import Base, TimestampMixin, UUIDMixin


class VerificationStatus(str, enum.Enum):
    pending = "pending"
    verified = "verified"
    failed = "failed"


class SslStatus(str, enum.Enum):
    pending = "pending"
    issued = "issued"
    failed = "failed"
    expired = "expired"


class OrganizationDomain(Base, UUIDMixin, TimestampMixin):
    """A custom hostname that serves an organization's portal."""

    __tablename__ = "organization_domains"

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    domain: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus, name="verification_status", native_enum=False, length=20),
        nullable=False,
        default=VerificationStatus.pending,
    )
    verification_token: Mapped[str] = mapped_column(String(64), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ssl_status: Mapped[SslStatus] = mapped_column(
        Enum(SslStatus, name="ssl_status", native_enum=False, length=20),
        nullable=False,
        default=SslStatus.pending,
    )
    ssl_issued_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_checked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<OrganizationDomain domain={self.domain!r} status={self.verification_status}>"
