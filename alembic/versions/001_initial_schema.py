"""Initial schema - consents, work locations, guard locations, audit trail

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the location engine schema:
- location_consents: Consent records keyed {subject_id}_{purpose}
- location_consent_requests: Pending consent requests
- work_locations: Organization geofences
- guard_profiles: Guard display names
- guard_locations: Proximity-only guard state (no coordinate columns)
- location_tracking_audit: Append-only tracking audit trail
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create location_consents table
    op.create_table(
        'location_consents',
        sa.Column('key', sa.String(160), nullable=False),
        sa.Column('subject_id', sa.String(64), nullable=False),
        sa.Column('purpose', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=True),
        sa.Column('granted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('key'),
    )
    op.create_index('ix_location_consents_subject_id', 'location_consents', ['subject_id'])
    op.create_index('ix_location_consents_organization_id', 'location_consents', ['organization_id'])

    # Create location_consent_requests table
    op.create_table(
        'location_consent_requests',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('subject_id', sa.String(64), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('purpose', sa.String(50), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('purpose_description', sa.Text(), nullable=False),
        sa.Column('data_usage', sa.Text(), nullable=False),
        sa.Column('retention_period', sa.String(100), nullable=False),
        sa.Column('legal_basis', sa.String(200), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_location_consent_requests_subject_id', 'location_consent_requests', ['subject_id'])
    op.create_index(
        'ix_location_consent_requests_organization_id',
        'location_consent_requests',
        ['organization_id'],
    )

    # Create work_locations table
    op.create_table(
        'work_locations',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('name', sa.String(200), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('geofence_radius_m', sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_work_locations_organization_id', 'work_locations', ['organization_id'])

    # Create guard_profiles table
    op.create_table(
        'guard_profiles',
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('display_name', sa.String(200), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    # Create guard_locations table (PRIVACY: no latitude/longitude columns)
    op.create_table(
        'guard_locations',
        sa.Column('subject_id', sa.String(64), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=False),
        sa.Column('guard_name', sa.String(200), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('last_update', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_location_enabled', sa.Boolean(), nullable=False),
        sa.Column('current_assignment', sa.String(64), nullable=True),
        sa.Column('current_assignment_title', sa.String(200), nullable=True),
        sa.Column('proximity_status', sa.String(30), nullable=True),
        sa.Column('nearest_work_area_name', sa.String(200), nullable=True),
        sa.Column('approximate_distance_m', sa.Integer(), nullable=True),
        sa.Column('auto_delete_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('privacy_compliant', sa.Boolean(), nullable=False),
        sa.Column('coordinates_obfuscated', sa.Boolean(), nullable=False),
        sa.Column('proximity_only', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('subject_id'),
    )
    op.create_index('ix_guard_locations_organization_id', 'guard_locations', ['organization_id'])
    op.create_index('ix_guard_locations_auto_delete_at', 'guard_locations', ['auto_delete_at'])

    # Create location_tracking_audit table
    op.create_table(
        'location_tracking_audit',
        sa.Column('seq', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('id', sa.String(64), nullable=False),
        sa.Column('subject_id', sa.String(64), nullable=False),
        sa.Column('organization_id', sa.String(64), nullable=True),
        sa.Column('event_type', sa.String(40), nullable=False),
        sa.Column('timestamp', sa.DateTime(timezone=True), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('legal_basis', sa.String(200), nullable=False),
        sa.Column('privacy_compliant', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('seq'),
        sa.UniqueConstraint('id'),
    )
    op.create_index('ix_location_tracking_audit_subject_id', 'location_tracking_audit', ['subject_id'])
    op.create_index('ix_location_tracking_audit_organization_id', 'location_tracking_audit', ['organization_id'])
    op.create_index('ix_location_tracking_audit_timestamp', 'location_tracking_audit', ['timestamp'])


def downgrade() -> None:
    op.drop_table('location_tracking_audit')
    op.drop_table('guard_locations')
    op.drop_table('guard_profiles')
    op.drop_table('work_locations')
    op.drop_table('location_consent_requests')
    op.drop_table('location_consents')
