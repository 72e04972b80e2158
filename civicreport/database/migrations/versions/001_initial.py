"""
Initial migration - Create users, OTP codes, reports and audit logs

Revision ID: 001_initial
Create Date: 2024-01-01
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from geoalchemy2 import Geography

# Revision identifiers
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create all tables."""

    # Enable PostGIS extension
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(120), nullable=False),
        sa.Column('phone', sa.String(30), nullable=False, unique=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('reputation_score', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )

    op.create_table(
        'otp_codes',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('phone', sa.String(30), nullable=False),
        sa.Column('otp_hash', sa.String(200), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used_at', sa.DateTime(timezone=True)),
    )

    op.create_index('idx_otp_codes_phone', 'otp_codes', ['phone'])

    op.create_table(
        'reports',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category', sa.String(30), nullable=False),
        sa.Column('description', sa.String(280), nullable=False),
        sa.Column('location', Geography('POINT', srid=4326, spatial_index=False), nullable=False),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('accuracy_meters', sa.Float(), nullable=False),
        sa.Column('file_key', sa.String(200), nullable=False),
        sa.Column('public_photo_url', sa.String(400), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='PENDING_MODERATION'),
        sa.Column('moderation_score', sa.Float()),
        sa.Column('moderation_reason', sa.Text()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column('validated_at', sa.DateTime(timezone=True)),
    )

    op.create_index('idx_reports_location', 'reports', ['location'], postgresql_using='gist')
    op.create_index('idx_reports_status', 'reports', ['status'])
    op.create_index('idx_reports_category', 'reports', ['category'])
    op.create_index('idx_reports_user_id', 'reports', ['user_id'])
    op.create_index('idx_reports_created_at', 'reports', ['created_at'])

    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('entity', sa.String(100), nullable=False),
        sa.Column('entity_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('actor_user_id', postgresql.UUID(as_uuid=True)),
        sa.Column('metadata_json', postgresql.JSONB(), nullable=False, server_default='{}'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    op.create_index('idx_audit_logs_entity', 'audit_logs', ['entity', 'entity_id'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('audit_logs')
    op.drop_table('reports')
    op.drop_table('otp_codes')
    op.drop_table('users')
