"""
Mailing list, subscriber and list subscription ORM models.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any
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

from memberhub.models.base import Base, JSONType, TimestampMixin, UUIDMixin


class SubscriberStatus(str, enum.Enum):
    subscribed = "subscribed"
    unsubscribed = "unsubscribed"
    bounced = "bounced"


class ListSubscriptionStatus(str, enum.Enum):
    subscribed = "subscribed"
    unsubscribed = "unsubscribed"
    pending = "pending"


class MailingList(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "mailing_lists"
    __table_args__ = (
        UniqueConstraint("org_id", "slug", name="uq_mailing_lists_org_slug"),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    subscriber_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<MailingList org_id={self.org_id} slug={self.slug!r}>"


class Subscriber(Base, UUIDMixin, TimestampMixin):
    """An email address that receives an organization's mailings."""

    __tablename__ = "subscribers"
    __table_args__ = (
        UniqueConstraint("org_id", "email", name="uq_subscribers_org_email"),
    )

    org_id: Mapped[UUID] = mapped_column(
        ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[SubscriberStatus] = mapped_column(
        Enum(SubscriberStatus, name="subscriber_status", native_enum=False, length=20),
        nullable=False,
        default=SubscriberStatus.subscribed,
    )
    subscribed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    unsubscribed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    subscription_source: Mapped[str | None] = mapped_column(String(50), nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSONType, nullable=True)

    def __repr__(self) -> str:
        return f"<Subscriber org_id={self.org_id} email={self.email!r}>"


class SubscriberList(Base, UUIDMixin):
    """Subscription of one subscriber to one mailing list."""

    __tablename__ = "subscriber_lists"
    __table_args__ = (
        UniqueConstraint("subscriber_id", "list_id", name="uq_subscriber_lists_subscriber_list"),
    )

    subscriber_id: Mapped[UUID] = mapped_column(
        ForeignKey("subscribers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    list_id: Mapped[UUID] = mapped_column(
        ForeignKey("mailing_lists.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[ListSubscriptionStatus] = mapped_column(
        Enum(ListSubscriptionStatus, name="list_subscription_status", native_enum=False, length=20),
        nullable=False,
        default=ListSubscriptionStatus.subscribed,
    )
    subscribed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    unsubscribed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
