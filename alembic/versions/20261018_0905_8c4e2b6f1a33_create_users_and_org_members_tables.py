"""create_users_and_org_members_tables

Revision ID: 8c4e2b6f1a33
Revises: 3f1a9c2d7b10
Create Date: 2026-10-18 09:05:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = '8c4e2b6f1a33'
down_revision: Union[str, None] = '3f1a9c2d7b10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users (profiles keyed by identity subject) and org_members."""
    op.create_table(
        'users',
        sa.Column('uid', sa.String(length=128), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=100), nullable=False),
        sa.Column('organization_id', UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['organization_id'], ['organizations.id'], name='users_organization_id_fkey'),
    )
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_email_lower', 'users', [sa.text('lower(email)')])
    op.create_index('ix_users_organization_id', 'users', ['organization_id'])
    op.create_index('ix_users_created_at', 'users', ['created_at'])

    # Role stored as its value (non-native enum)
    op.create_table(
        'org_members',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('org_id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', sa.String(length=128), nullable=False),
        sa.Column('role', sa.String(length=6), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], name='org_members_org_id_fkey', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.uid'], name='org_members_user_id_fkey', ondelete='CASCADE'),
        sa.UniqueConstraint('org_id', 'user_id', name='uq_org_members_org_user'),
    )
    op.create_index('ix_org_members_org_id', 'org_members', ['org_id'])
    op.create_index('ix_org_members_user_id', 'org_members', ['user_id'])


def downgrade() -> None:
    """Drop org_members and users."""
    op.drop_index('ix_org_members_user_id', table_name='org_members')
    op.drop_index('ix_org_members_org_id', table_name='org_members')
    op.drop_table('org_members')
    op.drop_index('ix_users_created_at', table_name='users')
    op.drop_index('ix_users_organization_id', table_name='users')
    op.drop_index('ix_users_email_lower', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
