"""Initial booking schema: users, horses, connections, appointments, messaging, records, reviews, notifications, discount codes

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


ENUMS: dict[str, tuple[str, ...]] = {
    'user_type': ('client', 'vet', 'farrier', 'dentist', 'physio', 'trainer', 'cleaner', 'food', 'events'),
    'subscription_type': ('basic', 'premium'),
    'service_type': ('vet_visit', 'farrier', 'dental', 'physio', 'training', 'cleaning'),
    'appointment_status': ('pending', 'confirmed', 'cancelled', 'completed'),
    'payment_status': ('pending', 'paid_advance', 'paid_complete', 'unpaid'),
    'payment_method': ('card', 'google_pay', 'apple_pay', 'samsung_pay'),
    'appointment_frequency': ('weekly', 'biweekly', 'monthly'),
    'appointment_created_by': ('client', 'professional'),
    'connection_status': ('pending', 'accepted', 'rejected'),
    'notification_type': (
        'appointment_created', 'appointment_confirmed', 'appointment_cancelled',
        'appointment_completed', 'alternative_proposed', 'reminder', 'payment_received',
        'connection_requested', 'connection_responded', 'review_received',
    ),
    'discount_type': ('percentage', 'fixed', 'free_months'),
    'discount_audience': ('all', 'client', 'professional'),
    'discount_restriction': ('new_users', 'referral'),
}


def enum(name: str) -> postgresql.ENUM:
    # Types are created once up front; service_type is shared by two tables
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.TIMESTAMP(timezone=True), nullable=nullable)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=150), nullable=False),
        sa.Column('phone', sa.String(length=30), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('bio', sa.Text(), nullable=True),
        sa.Column('profile_image_url', sa.String(length=500), nullable=True),
        sa.Column('user_type', enum('user_type'), nullable=False),
        sa.Column('is_professional', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('subscription_type', enum('subscription_type'), nullable=True),
        timestamp('subscription_expiry', nullable=True),
        sa.Column('stripe_customer_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_account_id', sa.String(length=255), nullable=True),
        sa.Column('stripe_account_verified', sa.Boolean(), server_default='false', nullable=False),
        timestamp('created_at'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_user_type', 'users', ['user_type'], unique=False)

    op.create_table('horses',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('owner_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('breed', sa.String(length=100), nullable=True),
        sa.Column('age', sa.Integer(), nullable=True),
        sa.Column('gender', sa.String(length=20), nullable=True),
        sa.Column('color', sa.String(length=50), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('weight', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        timestamp('created_at'),
        sa.CheckConstraint('age IS NULL OR age >= 0', name='check_horse_age_non_negative'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_horses_owner_id', 'horses', ['owner_id'], unique=False)

    op.create_table('connections',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('status', enum('connection_status'), nullable=False),
        timestamp('request_date'),
        timestamp('response_date', nullable=True),
        sa.CheckConstraint('client_id <> professional_id', name='check_connection_distinct_users'),
        sa.ForeignKeyConstraint(['client_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['professional_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('client_id', 'professional_id', name='uq_connection_pair')
    )
    op.create_index('ix_connections_client_id', 'connections', ['client_id'], unique=False)
    op.create_index('ix_connections_professional_id', 'connections', ['professional_id'], unique=False)

    op.create_table('appointments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('horse_ids', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('service_type', enum('service_type'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        timestamp('date'),
        sa.Column('duration', sa.Integer(), nullable=False),
        sa.Column('is_periodic', sa.Boolean(), nullable=False),
        sa.Column('frequency', enum('appointment_frequency'), nullable=True),
        timestamp('end_date', nullable=True),
        sa.Column('status', enum('appointment_status'), nullable=False),
        sa.Column('created_by', enum('appointment_created_by'), nullable=False),
        sa.Column('price', sa.Integer(), nullable=True),
        sa.Column('payment_status', enum('payment_status'), nullable=False),
        sa.Column('payment_method', enum('payment_method'), nullable=True),
        sa.Column('payment_id', sa.String(length=255), nullable=True),
        sa.Column('commission', sa.Integer(), nullable=False),
        sa.Column('fee_collected', sa.Boolean(), nullable=False),
        sa.Column('transferred_to_professional', sa.Boolean(), nullable=False),
        sa.Column('invoice_url', sa.String(length=500), nullable=True),
        sa.Column('has_alternative', sa.Boolean(), nullable=False),
        sa.Column('original_appointment_id', sa.Integer(), nullable=True),
        sa.Column('reminder_sent', sa.Boolean(), nullable=False),
        timestamp('created_at'),
        timestamp('updated_at'),
        sa.CheckConstraint('duration > 0', name='check_appointment_duration_positive'),
        sa.CheckConstraint('price IS NULL OR price >= 0', name='check_appointment_price_non_negative'),
        sa.CheckConstraint(
            'NOT is_periodic OR (frequency IS NOT NULL AND end_date IS NOT NULL AND end_date > date)',
            name='check_appointment_periodic_fields',
        ),
        sa.ForeignKeyConstraint(['client_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['professional_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['original_appointment_id'], ['appointments.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_appointments_client_id', 'appointments', ['client_id'], unique=False)
    op.create_index('ix_appointments_professional_id', 'appointments', ['professional_id'], unique=False)
    op.create_index('ix_appointments_date', 'appointments', ['date'], unique=False)
    op.create_index('ix_appointments_status', 'appointments', ['status'], unique=False)
    op.create_index('ix_appointments_payment_id', 'appointments', ['payment_id'], unique=False)
    op.create_index('idx_appointments_horse_ids', 'appointments', ['horse_ids'], unique=False, postgresql_using='gin')
    op.create_index('idx_appointments_professional_date', 'appointments', ['professional_id', 'date'], unique=False)
    op.create_index('idx_appointments_client_date', 'appointments', ['client_id', 'date'], unique=False)

    op.create_table('messages',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sender_id', sa.Integer(), nullable=False),
        sa.Column('receiver_id', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        timestamp('created_at'),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_messages_sender_id', 'messages', ['sender_id'], unique=False)
    op.create_index('ix_messages_receiver_id', 'messages', ['receiver_id'], unique=False)
    op.create_index('ix_messages_created_at', 'messages', ['created_at'], unique=False)
    op.create_index('idx_messages_receiver_unread', 'messages', ['receiver_id', 'is_read'], unique=False)

    op.create_table('medical_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('horse_id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('record_type', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('diagnosis', sa.Text(), nullable=True),
        sa.Column('treatment', sa.Text(), nullable=True),
        timestamp('date'),
        timestamp('created_at'),
        sa.ForeignKeyConstraint(['horse_id'], ['horses.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['professional_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_medical_records_horse_id', 'medical_records', ['horse_id'], unique=False)
    op.create_index('ix_medical_records_professional_id', 'medical_records', ['professional_id'], unique=False)

    op.create_table('service_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('horse_id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('service_type', enum('service_type'), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        timestamp('date'),
        timestamp('created_at'),
        sa.ForeignKeyConstraint(['horse_id'], ['horses.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['professional_id'], ['users.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_service_records_horse_id', 'service_records', ['horse_id'], unique=False)
    op.create_index('ix_service_records_professional_id', 'service_records', ['professional_id'], unique=False)

    op.create_table('reviews',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('client_id', sa.Integer(), nullable=False),
        sa.Column('professional_id', sa.Integer(), nullable=False),
        sa.Column('appointment_id', sa.Integer(), nullable=True),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        timestamp('created_at'),
        timestamp('updated_at'),
        sa.CheckConstraint('rating BETWEEN 1 AND 5', name='check_review_rating_range'),
        sa.ForeignKeyConstraint(['client_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['professional_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['appointment_id'], ['appointments.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('client_id', 'professional_id', name='uq_review_client_professional')
    )
    op.create_index('ix_reviews_client_id', 'reviews', ['client_id'], unique=False)
    op.create_index('ix_reviews_professional_id', 'reviews', ['professional_id'], unique=False)

    op.create_table('notifications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('type', enum('notification_type'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        timestamp('created_at'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'], unique=False)
    op.create_index('idx_notifications_user_unread', 'notifications', ['user_id', 'is_read'], unique=False)

    op.create_table('discount_codes',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('discount_type', enum('discount_type'), nullable=False),
        sa.Column('value', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=False),
        timestamp('valid_until', nullable=True),
        sa.Column('max_uses', sa.Integer(), nullable=True),
        sa.Column('used_count', sa.Integer(), nullable=False),
        sa.Column('min_amount', sa.Integer(), nullable=True),
        sa.Column('applicable_to', enum('discount_audience'), nullable=False),
        sa.Column('user_restriction', enum('discount_restriction'), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_discount_codes_code', 'discount_codes', ['code'], unique=True)


def downgrade() -> None:
    for table in (
        'discount_codes', 'notifications', 'reviews', 'service_records', 'medical_records',
        'messages', 'appointments', 'connections', 'horses', 'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
