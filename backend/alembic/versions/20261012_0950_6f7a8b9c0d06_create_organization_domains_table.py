"""create_organization_domains_table

Revision ID: 6f7a8b9c0d06
Revises: 5e6f7a8b9c05
Create Date: 2026-10-12 09:50:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = '6f7a8b9c0d06'
down_revision: Union[str, None] = '5e6f7a8b9c05'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create organization_domains table."""
    op.create_table(
        'organization_domains',
        sa.Column('id', UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('org_id', UUID(as_uuid=True), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False),
        sa.Column('domain', sa.String(length=255), nullable=False),
        sa.Column('verification_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('verification_token', sa.String(length=64), nullable=False),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('ssl_status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('ssl_issued_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_checked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_organization_domains_org_id', 'organization_domains', ['org_id'])
    op.create_index('ix_organization_domains_domain', 'organization_domains', ['domain'], unique=True)

    # At most one primary domain per organization
    op.create_index(
        'uq_organization_domains_primary',
        'organization_domains',
        ['org_id'],
        unique=True,
        postgresql_where=sa.text('is_primary'),
    )


def downgrade() -> None:
    op.drop_index('uq_organization_domains_primary', table_name='organization_domains')
    op.drop_index('ix_organization_domains_domain', table_name='organization_domains')
    op.drop_index('ix_organization_domains_org_id', table_name='organization_domains')
    op.drop_table('organization_domains')
