"""create_communication_tables

Revision ID: 5e6f7a8b9c05
Revises: 4d5e6f7a8b04
Create Date: 2026-10-12 09:40:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = '5e6f7a8b9c05'
down_revision: Union[str, None] = '4d5e6f7a8b04'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create campaigns, workflows and automated reminders."""
    op.create_table(
        'email_campaigns',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('org_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('mailing_list_id', UUID(as_uuid=True), sa.ForeignKey('mailing_lists.id', ondelete='SET NULL'), nullable=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('recipient_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('delivered_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('opened_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('clicked_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bounced_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', UUID(as_uuid=True), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_email_campaigns_org_id', 'email_campaigns', ['org_id'])
    op.create_index('idx_email_campaigns_status_scheduled', 'email_campaigns', ['status', 'scheduled_at'])

    op.create_table(
        'email_workflows',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('org_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('trigger_event', sa.String(length=20), nullable=False),
        sa.Column('conditions', JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('recipient_email', sa.String(length=255), nullable=False),
        sa.Column('recipient_name', sa.String(length=100), nullable=True),
        sa.Column('email_subject', sa.String(length=255), nullable=False),
        sa.Column('email_template', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "trigger_event IN ('signup', 'renewal', 'both')",
            name='ck_email_workflows_trigger_event',
        ),
    )
    op.create_index('ix_email_workflows_org_id', 'email_workflows', ['org_id'])

    op.create_table(
        'automated_reminders',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('org_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('reminder_type', sa.String(length=30), nullable=False),
        sa.Column('trigger_days', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('email_subject', sa.String(length=255), nullable=False),
        sa.Column('email_body', sa.Text(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('target_audience', JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_automated_reminders_org_id', 'automated_reminders', ['org_id'])

    op.create_table(
        'reminder_logs',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('org_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('reminder_id', UUID(as_uuid=True), sa.ForeignKey('automated_reminders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('profile_id', UUID(as_uuid=True), sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('reference_id', UUID(as_uuid=True), nullable=True),
        sa.Column('recipient_email', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('metadata', JSONB(), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_reminder_logs_org_id', 'reminder_logs', ['org_id'])
    op.create_index('ix_reminder_logs_reminder_id', 'reminder_logs', ['reminder_id'])
    op.create_index('ix_reminder_logs_sent_at', 'reminder_logs', ['sent_at'])


def downgrade() -> None:
    op.drop_table('reminder_logs')
    op.drop_table('automated_reminders')
    op.drop_table('email_workflows')
    op.drop_index('idx_email_campaigns_status_scheduled', table_name='email_campaigns')
    op.drop_table('email_campaigns')
