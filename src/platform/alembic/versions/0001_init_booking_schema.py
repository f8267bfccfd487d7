"""init_booking_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-16

Schema:
- tenants, resources: tenant with its time zone, bookable employees
- services, service_offers: catalog and pricing
- shifts, slots: weekly templates and materialized capacity counters
- package_subscriptions, package_usages, package_exhaustion_notices: prepaid quota
- booking_locks, booking_lock_units: provisional reservations with a TTL
- bookings: one row per committed ticket unit
- otp_sessions: guest phone verification
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text('now()'),
        nullable=False,
    )


def upgrade() -> None:
    """Create all tables with final schema."""

    # ========== Catalog ==========

    op.create_table(
        'tenants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('time_zone', sa.String(length=64), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'resources',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_resources_tenant_id'), 'resources', ['tenant_id'])

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('base_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('discounted_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('child_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('capacity_per_slot', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_services_tenant_id'), 'services', ['tenant_id'])

    op.create_table(
        'service_offers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_service_offers_tenant_id'), 'service_offers', ['tenant_id'])
    op.create_index(op.f('ix_service_offers_service_id'), 'service_offers', ['service_id'])

    # ========== Capacity ==========

    op.create_table(
        'shifts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('days_of_week', sa.JSON(), nullable=False),
        sa.Column('start_time_utc', sa.String(length=8), nullable=True),
        sa.Column('end_time_utc', sa.String(length=8), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_shifts_tenant_id'), 'shifts', ['tenant_id'])
    op.create_index(op.f('ix_shifts_service_id'), 'shifts', ['service_id'])

    op.create_table(
        'slots',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('shift_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('slot_date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=8), nullable=True),
        sa.Column('end_time', sa.String(length=8), nullable=True),
        sa.Column('original_capacity', sa.Integer(), nullable=False),
        sa.Column('available_capacity', sa.Integer(), nullable=False),
        sa.Column('locked_capacity', sa.Integer(), nullable=False),
        sa.Column('booked_count', sa.Integer(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('available_capacity >= 0', name='ck_slots_available_non_negative'),
        sa.CheckConstraint('locked_capacity >= 0', name='ck_slots_locked_non_negative'),
        sa.CheckConstraint(
            'available_capacity <= original_capacity', name='ck_slots_available_le_original'
        ),
        sa.CheckConstraint(
            'locked_capacity <= available_capacity', name='ck_slots_locked_le_available'
        ),
    )
    op.create_index(op.f('ix_slots_shift_id'), 'slots', ['shift_id'])
    op.create_index(op.f('ix_slots_resource_id'), 'slots', ['resource_id'])
    op.create_index(
        'ix_slots_tenant_service_date', 'slots', ['tenant_id', 'service_id', 'slot_date']
    )

    # ========== Packages ==========

    op.create_table(
        'package_subscriptions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('package_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        op.f('ix_package_subscriptions_tenant_id'), 'package_subscriptions', ['tenant_id']
    )
    op.create_index(
        op.f('ix_package_subscriptions_customer_id'), 'package_subscriptions', ['customer_id']
    )

    op.create_table(
        'package_usages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subscription_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('original_quantity', sa.Integer(), nullable=False),
        sa.Column('remaining_quantity', sa.Integer(), nullable=False),
        sa.Column('used_quantity', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('subscription_id', 'service_id', name='uq_package_usages_service'),
        sa.CheckConstraint(
            'remaining_quantity >= 0', name='ck_package_usages_remaining_non_negative'
        ),
        sa.CheckConstraint(
            'remaining_quantity <= original_quantity',
            name='ck_package_usages_remaining_le_original',
        ),
        sa.CheckConstraint(
            'used_quantity = original_quantity - remaining_quantity',
            name='ck_package_usages_used_consistent',
        ),
    )
    op.create_index(op.f('ix_package_usages_subscription_id'), 'package_usages', ['subscription_id'])

    op.create_table(
        'package_exhaustion_notices',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('subscription_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint(
            'subscription_id', 'service_id', name='uq_package_exhaustion_notices_usage'
        ),
    )

    # ========== Locks and bookings ==========

    op.create_table(
        'booking_locks',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.String(length=64), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('offer_id', sa.Integer(), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('state', sa.String(length=20), nullable=False),
        sa.Column('total_units', sa.Integer(), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_booking_locks_state_expires_at', 'booking_locks', ['state', 'expires_at']
    )
    op.create_index(
        'ix_booking_locks_tenant_session', 'booking_locks', ['tenant_id', 'session_id']
    )

    op.create_table(
        'booking_lock_units',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('lock_id', sa.Uuid(), nullable=False),
        sa.Column('unit_index', sa.Integer(), nullable=False),
        sa.Column('slot_id', sa.Integer(), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('ticket_kind', sa.String(length=10), nullable=False),
        sa.Column('list_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('package_subscription_id', sa.Integer(), nullable=True),
        sa.Column('is_extension', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['lock_id'], ['booking_locks.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_booking_lock_units_lock_id'), 'booking_lock_units', ['lock_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('booking_group_id', sa.Uuid(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=False),
        sa.Column('slot_id', sa.Integer(), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=32), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('adult_count', sa.Integer(), nullable=False),
        sa.Column('child_count', sa.Integer(), nullable=False),
        sa.Column('visitor_count', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('payment_status', sa.String(length=20), nullable=False),
        sa.Column('payment_method', sa.String(length=20), nullable=True),
        sa.Column('transaction_reference', sa.String(length=255), nullable=True),
        sa.Column('package_subscription_id', sa.Integer(), nullable=True),
        sa.Column('offer_id', sa.Integer(), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_bookings_tenant_id'), 'bookings', ['tenant_id'])
    op.create_index(op.f('ix_bookings_booking_group_id'), 'bookings', ['booking_group_id'])
    op.create_index(op.f('ix_bookings_slot_id'), 'bookings', ['slot_id'])
    op.create_index(op.f('ix_bookings_customer_id'), 'bookings', ['customer_id'])

    # ========== Guest verification ==========

    op.create_table(
        'otp_sessions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=False),
        sa.Column('state', sa.String(length=20), nullable=False),
        sa.Column('code_hash', sa.String(length=64), nullable=True),
        sa.Column('code_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resend_available_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('session_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('attempts', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'phone', name='uq_otp_sessions_tenant_phone'),
    )


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        'otp_sessions',
        'bookings',
        'booking_lock_units',
        'booking_locks',
        'package_exhaustion_notices',
        'package_usages',
        'package_subscriptions',
        'slots',
        'shifts',
        'service_offers',
        'services',
        'resources',
        'tenants',
    ):
        op.drop_table(table)
