"""planner_schema_baseline

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00.000000

Baseline for the shop planner: customers, vehicles, technicians, bays,
resources with their availability windows and time off, and appointments.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '20261018_0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the planner tables."""
    # Skip tables that already exist (databases bootstrapped with create_all)
    conn = op.get_bind()
    inspector = sa.inspect(conn)
    existing_tables = inspector.get_table_names()

    if 'customers' not in existing_tables:
        op.create_table('customers',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_customers_org_id'), 'customers', ['org_id'], unique=False)

    if 'vehicles' not in existing_tables:
        op.create_table('vehicles',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('customer_id', sa.String(length=36), nullable=True),
        sa.Column('make', sa.String(length=100), nullable=True),
        sa.Column('model', sa.String(length=100), nullable=True),
        sa.Column('license_plate', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_vehicles_org_id'), 'vehicles', ['org_id'], unique=False)
        op.create_index(op.f('ix_vehicles_customer_id'), 'vehicles', ['customer_id'], unique=False)

    if 'technicians' not in existing_tables:
        op.create_table('technicians',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('skills', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_technicians_org_id'), 'technicians', ['org_id'], unique=False)

    if 'bays' not in existing_tables:
        op.create_table('bays',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('org_id', 'name', name='uq_bay_org_name')
        )
        op.create_index(op.f('ix_bays_org_id'), 'bays', ['org_id'], unique=False)

    if 'resources' not in existing_tables:
        op.create_table('resources',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('resource_type', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('technician_id', sa.String(length=36), nullable=True),
        sa.Column('bay_id', sa.String(length=36), nullable=True),
        sa.Column('color', sa.String(length=20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint("resource_type IN ('technician', 'bay')", name='ck_resources_type'),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['bay_id'], ['bays.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_resources_org_id'), 'resources', ['org_id'], unique=False)
        op.create_index(op.f('ix_resources_technician_id'), 'resources', ['technician_id'], unique=False)
        op.create_index(op.f('ix_resources_bay_id'), 'resources', ['bay_id'], unique=False)

    if 'resource_availability' not in existing_tables:
        op.create_table('resource_availability',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('resource_id', sa.String(length=36), nullable=False),
        sa.Column('weekday', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint('weekday >= 0 AND weekday <= 6', name='ck_resource_availability_weekday'),
        sa.CheckConstraint('start_time < end_time', name='ck_resource_availability_time_order'),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_resource_availability_org_id'), 'resource_availability', ['org_id'], unique=False)
        op.create_index(
            'idx_resource_availability_resource_day', 'resource_availability', ['resource_id', 'weekday'], unique=False
        )

    if 'resource_time_off' not in existing_tables:
        op.create_table('resource_time_off',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('resource_id', sa.String(length=36), nullable=False),
        sa.Column('starts_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('ends_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint('starts_at < ends_at', name='ck_resource_time_off_time_order'),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_resource_time_off_org_id'), 'resource_time_off', ['org_id'], unique=False)
        op.create_index(
            'idx_resource_time_off_resource_time', 'resource_time_off', ['resource_id', 'starts_at', 'ends_at'],
            unique=False
        )

    if 'appointments' not in existing_tables:
        op.create_table('appointments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('org_id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('technician_id', sa.String(length=36), nullable=True),
        sa.Column('bay_id', sa.String(length=36), nullable=True),
        sa.Column('customer_id', sa.String(length=36), nullable=True),
        sa.Column('vehicle_id', sa.String(length=36), nullable=True),
        sa.Column('starts_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('ends_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint('starts_at < ends_at', name='ck_appointments_time_order'),
        sa.CheckConstraint(
            "status IN ('scheduled', 'in_progress', 'waiting_parts', 'completed')", name='ck_appointments_status'
        ),
        sa.CheckConstraint('notes IS NULL OR length(notes) <= 2000', name='ck_appointments_notes_length'),
        sa.ForeignKeyConstraint(['technician_id'], ['technicians.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['bay_id'], ['bays.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['vehicle_id'], ['vehicles.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
        )
        op.create_index(op.f('ix_appointments_org_id'), 'appointments', ['org_id'], unique=False)
        op.create_index('idx_appointments_org_starts', 'appointments', ['org_id', 'starts_at'], unique=False)
        op.create_index(
            'idx_appointments_technician_time', 'appointments', ['technician_id', 'starts_at', 'ends_at'], unique=False
        )
        op.create_index('idx_appointments_bay_time', 'appointments', ['bay_id', 'starts_at', 'ends_at'], unique=False)


def downgrade() -> None:
    """Drop the planner tables in reverse dependency order."""
    op.drop_table('appointments')
    op.drop_table('resource_time_off')
    op.drop_table('resource_availability')
    op.drop_table('resources')
    op.drop_table('bays')
    op.drop_table('technicians')
    op.drop_table('vehicles')
    op.drop_table('customers')
