"""create_services_and_incidents_tables

Revision ID: d27b5e90c4a8
Revises: 8c4e2b6f1a33
Create Date: 2026-10-18 09:10:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = 'd27b5e90c4a8'
down_revision: Union[str, None] = '8c4e2b6f1a33'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create services, incidents and incident_updates."""
    op.create_table(
        'services',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('org_id', UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], name='services_org_id_fkey', ondelete='CASCADE'),
    )
    op.create_index('ix_services_org_id', 'services', ['org_id'])
    op.create_index('ix_services_created_at', 'services', ['created_at'])

    op.create_table(
        'incidents',
        sa.Column('id', UUID(as_uuid=True), primary_key=True),
        sa.Column('org_id', UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('status', sa.String(length=13), nullable=False),
        sa.Column('impact', sa.String(length=8), nullable=False),
        sa.Column('affected_services', sa.JSON(), nullable=False),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['org_id'], ['organizations.id'], name='incidents_org_id_fkey', ondelete='CASCADE'),
        sa.CheckConstraint(
            "(status = 'Resolved') = (resolved_at IS NOT NULL)",
            name='ck_incidents_resolved_at_matches_status',
        ),
    )
    op.create_index('ix_incidents_org_id', 'incidents', ['org_id'])
    op.create_index('ix_incidents_status', 'incidents', ['status'])
    op.create_index('ix_incidents_created_at', 'incidents', ['created_at'])

    # Append-only log; seq is the storage order
    op.create_table(
        'incident_updates',
        sa.Column('seq', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('incident_id', UUID(as_uuid=True), nullable=False),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=13), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['incident_id'], ['incidents.id'], name='incident_updates_incident_id_fkey', ondelete='CASCADE'),
        sa.UniqueConstraint('incident_id', 'token', name='uq_incident_updates_incident_token'),
    )
    op.create_index('ix_incident_updates_incident_id', 'incident_updates', ['incident_id'])


def downgrade() -> None:
    """Drop incident_updates, incidents and services."""
    op.drop_index('ix_incident_updates_incident_id', table_name='incident_updates')
    op.drop_table('incident_updates')
    op.drop_index('ix_incidents_created_at', table_name='incidents')
    op.drop_index('ix_incidents_status', table_name='incidents')
    op.drop_index('ix_incidents_org_id', table_name='incidents')
    op.drop_table('incidents')
    op.drop_index('ix_services_created_at', table_name='services')
    op.drop_index('ix_services_org_id', table_name='services')
    op.drop_table('services')
