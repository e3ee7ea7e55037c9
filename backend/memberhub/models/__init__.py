"""
SQLAlchemy ORM models.

All models imported here to ensure they are registered with Base.metadata.
Import order matters: base models before dependent models.
"""

from memberhub.models.base import Base, TimestampMixin, UUIDMixin
from memberhub.models.user import User
from memberhub.models.organization import Organization
from memberhub.models.profile import Profile, ProfileRole, ProfileStatus
from memberhub.models.invitation import Invitation
from memberhub.models.membership import Membership, MembershipStatus, MembershipType
from memberhub.models.form import FormResponse, FormSchemaVersion, FormType
from memberhub.models.event import Event, EventRegistration, EventType, RegistrationStatus
from memberhub.models.mailing import (
    ListSubscriptionStatus,
    MailingList,
    Subscriber,
    SubscriberList,
    SubscriberStatus,
)
from memberhub.models.committee import Committee, CommitteeMember, CommitteeRole
from memberhub.models.badge import Badge, BadgeType, MemberBadge
from memberhub.models.campaign import CampaignStatus, EmailCampaign
from memberhub.models.workflow import EmailWorkflow, WorkflowTrigger
from memberhub.models.reminder import (
    AutomatedReminder,
    ReminderLog,
    ReminderLogStatus,
    ReminderType,
)
from memberhub.models.domain import OrganizationDomain, SslStatus, VerificationStatus

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "User",
    "Organization",
    "Profile",
    "ProfileRole",
    "ProfileStatus",
    "Invitation",
    "MembershipType",
    "Membership",
    "MembershipStatus",
    "FormSchemaVersion",
    "FormResponse",
    "FormType",
    "Event",
    "EventRegistration",
    "EventType",
    "RegistrationStatus",
    "MailingList",
    "Subscriber",
    "SubscriberList",
    "SubscriberStatus",
    "ListSubscriptionStatus",
    "Committee",
    "CommitteeMember",
    "CommitteeRole",
    "Badge",
    "BadgeType",
    "MemberBadge",
    "EmailCampaign",
    "CampaignStatus",
    "EmailWorkflow",
    "WorkflowTrigger",
    "AutomatedReminder",
    "ReminderLog",
    "ReminderLogStatus",
    "ReminderType",
    "OrganizationDomain",
    "SslStatus",
    "VerificationStatus",
]
