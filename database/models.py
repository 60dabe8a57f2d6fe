"""
SQLAlchemy ORM models for the booking CRM.

This module defines the tables:
- users: clients (horse owners) and professionals, with Stripe identifiers
- horses: horse profiles owned by one user
- connections: client <-> professional relationships
- appointments: bookings with lifecycle and payment state
- messages: direct messages between two users
- medical_records / service_records: append-only horse history
- reviews: client ratings of professionals
- notifications: in-app notifications emitted by service side effects
- discount_codes: subscription checkout discount codes

All models use:
- Integer primary keys
- TIMESTAMP WITH TIME ZONE for datetime fields
- JSONB for list storage
- PostgreSQL enums stored by value
"""

from datetime import UTC, datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy import (
    Enum as SQLEnum,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Timezone-aware default for timestamp columns."""
    return datetime.now(UTC)


def _enum(enum_cls: type[PyEnum], name: str) -> SQLEnum:
    # values_callable stores enum .value ("pending") instead of .name ("PENDING")
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda x: [e.value for e in x],
    )


# ============================================================================
# Base Class
# ============================================================================


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# ============================================================================
# Enums
# ============================================================================


class UserType(str, PyEnum):
    """Account type. Everything except CLIENT is a professional specialty."""

    CLIENT = "client"
    VET = "vet"
    FARRIER = "farrier"
    DENTIST = "dentist"
    PHYSIO = "physio"
    TRAINER = "trainer"
    CLEANER = "cleaner"
    FOOD = "food"
    EVENTS = "events"

    @property
    def is_professional(self) -> bool:
        return self is not UserType.CLIENT


class SubscriptionType(str, PyEnum):
    BASIC = "basic"
    PREMIUM = "premium"


class ServiceType(str, PyEnum):
    """Kind of service booked in an appointment."""

    VET_VISIT = "vet_visit"
    FARRIER = "farrier"
    DENTAL = "dental"
    PHYSIO = "physio"
    TRAINING = "training"
    CLEANING = "cleaning"


class AppointmentStatus(str, PyEnum):
    """Appointment lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    def __str__(self):
        return self.value


class PaymentStatus(str, PyEnum):
    PENDING = "pending"
    PAID_ADVANCE = "paid_advance"
    PAID_COMPLETE = "paid_complete"
    UNPAID = "unpaid"


class PaymentMethod(str, PyEnum):
    CARD = "card"
    GOOGLE_PAY = "google_pay"
    APPLE_PAY = "apple_pay"
    SAMSUNG_PAY = "samsung_pay"


class Frequency(str, PyEnum):
    """Repeat frequency of a periodic appointment."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class CreatedBy(str, PyEnum):
    """Which side of the appointment made the request."""

    CLIENT = "client"
    PROFESSIONAL = "professional"


class ConnectionStatus(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class NotificationType(str, PyEnum):
    """Type of in-app notification."""

    # Appointment lifecycle
    APPOINTMENT_CREATED = "appointment_created"
    APPOINTMENT_CONFIRMED = "appointment_confirmed"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_COMPLETED = "appointment_completed"
    ALTERNATIVE_PROPOSED = "alternative_proposed"
    REMINDER = "reminder"
    PAYMENT_RECEIVED = "payment_received"

    # Relationships
    CONNECTION_REQUESTED = "connection_requested"
    CONNECTION_RESPONDED = "connection_responded"
    REVIEW_RECEIVED = "review_received"


class DiscountType(str, PyEnum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    FREE_MONTHS = "free_months"


class DiscountAudience(str, PyEnum):
    ALL = "all"
    CLIENT = "client"
    PROFESSIONAL = "professional"


class DiscountRestriction(str, PyEnum):
    NEW_USERS = "new_users"
    REFERRAL = "referral"


# ============================================================================
# Core Models
# ============================================================================


class User(Base):
    """
    User model - Horse owners (clients) and equestrian professionals.

    user_type decides the role; is_professional is kept in sync with it so
    professional listings can be filtered in SQL.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Credentials
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    user_type: Mapped[UserType] = mapped_column(
        _enum(UserType, "user_type"), nullable=False, index=True
    )
    is_professional: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Subscription
    subscription_type: Mapped[SubscriptionType | None] = mapped_column(
        _enum(SubscriptionType, "subscription_type"), nullable=True
    )
    subscription_expiry: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # Stripe identifiers
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_account_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_account_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    horses: Mapped[list["Horse"]] = relationship(
        "Horse", back_populates="owner", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username='{self.username}', type='{self.user_type.value}')>"


class Horse(Base):
    """Horse profile owned by exactly one user."""

    __tablename__ = "horses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    breed: Mapped[str | None] = mapped_column(String(100), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    height: Mapped[int | None] = mapped_column(Integer, nullable=True)  # cm
    weight: Mapped[int | None] = mapped_column(Integer, nullable=True)  # kg
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    owner: Mapped["User"] = relationship("User", back_populates="horses")

    __table_args__ = (
        CheckConstraint("age IS NULL OR age >= 0", name="check_horse_age_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Horse(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"


class Connection(Base):
    """
    Connection model - Relationship authorizing a client to book a professional.

    One row per (client, professional) pair. A rejected request is reopened
    in place rather than duplicated.
    """

    __tablename__ = "connections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    professional_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[ConnectionStatus] = mapped_column(
        _enum(ConnectionStatus, "connection_status"),
        default=ConnectionStatus.PENDING,
        nullable=False,
    )
    request_date: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    response_date: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    client: Mapped["User"] = relationship("User", foreign_keys=[client_id])
    professional: Mapped["User"] = relationship("User", foreign_keys=[professional_id])

    __table_args__ = (
        UniqueConstraint("client_id", "professional_id", name="uq_connection_pair"),
        CheckConstraint("client_id <> professional_id", name="check_connection_distinct_users"),
    )

    def __repr__(self) -> str:
        return (
            f"<Connection(id={self.id}, client_id={self.client_id}, "
            f"professional_id={self.professional_id}, status='{self.status.value}')>"
        )


# ============================================================================
# Transactional Models
# ============================================================================


class Appointment(Base):
    """
    Appointment model - Booking with lifecycle and payment state.

    horse_ids is an ordered list; the primary horse is horse_ids[0].
    price and commission are integer cents. Periodic appointments keep a
    single row and are expanded when listed.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Parties
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    professional_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    horse_ids: Mapped[list[int]] = mapped_column(JSONB, nullable=False)

    # Description
    service_type: Mapped[ServiceType] = mapped_column(
        _enum(ServiceType, "service_type"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Scheduling
    date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    is_periodic: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    frequency: Mapped[Frequency | None] = mapped_column(
        _enum(Frequency, "appointment_frequency"), nullable=True
    )
    end_date: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)

    # Lifecycle
    status: Mapped[AppointmentStatus] = mapped_column(
        _enum(AppointmentStatus, "appointment_status"),
        default=AppointmentStatus.PENDING,
        nullable=False,
        index=True,
    )
    created_by: Mapped[CreatedBy] = mapped_column(
        _enum(CreatedBy, "appointment_created_by"), nullable=False
    )

    # Commercial
    price: Mapped[int | None] = mapped_column(Integer, nullable=True)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus, "payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    payment_method: Mapped[PaymentMethod | None] = mapped_column(
        _enum(PaymentMethod, "payment_method"), nullable=True
    )
    payment_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    commission: Mapped[int] = mapped_column(Integer, default=99, nullable=False)
    fee_collected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    transferred_to_professional: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    invoice_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Alternative proposal linkage
    has_alternative: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    original_appointment_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True
    )

    reminder_sent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    client: Mapped["User"] = relationship("User", foreign_keys=[client_id])
    professional: Mapped["User"] = relationship("User", foreign_keys=[professional_id])
    original_appointment: Mapped[Optional["Appointment"]] = relationship(
        "Appointment", remote_side=[id]
    )

    __table_args__ = (
        CheckConstraint("duration > 0", name="check_appointment_duration_positive"),
        CheckConstraint("price IS NULL OR price >= 0", name="check_appointment_price_non_negative"),
        CheckConstraint(
            "NOT is_periodic OR (frequency IS NOT NULL AND end_date IS NOT NULL AND end_date > date)",
            name="check_appointment_periodic_fields",
        ),
        Index("idx_appointments_horse_ids", "horse_ids", postgresql_using="gin"),
        Index("idx_appointments_professional_date", "professional_id", "date"),
        Index("idx_appointments_client_date", "client_id", "date"),
    )

    @property
    def primary_horse_id(self) -> int | None:
        return self.horse_ids[0] if self.horse_ids else None

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, client_id={self.client_id}, "
            f"professional_id={self.professional_id}, status='{self.status.value}')>"
        )


class Message(Base):
    """Direct message between two users. Never deleted."""

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    receiver_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False, index=True
    )

    __table_args__ = (
        Index("idx_messages_receiver_unread", "receiver_id", "is_read"),
    )

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, sender_id={self.sender_id}, receiver_id={self.receiver_id})>"


class MedicalRecord(Base):
    """Append-only medical history entry written by a professional."""

    __tablename__ = "medical_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    horse_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("horses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    professional_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    record_type: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    diagnosis: Mapped[str | None] = mapped_column(Text, nullable=True)
    treatment: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )


class ServiceRecord(Base):
    """Append-only service history entry (shoeing, dental work, training...)."""

    __tablename__ = "service_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    horse_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("horses.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    professional_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    service_type: Mapped[ServiceType] = mapped_column(
        _enum(ServiceType, "service_type"), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )


class Review(Base):
    """Client rating of a professional. One per (client, professional)."""

    __tablename__ = "reviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    professional_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    appointment_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("appointments.id", ondelete="SET NULL"), nullable=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    client: Mapped["User"] = relationship("User", foreign_keys=[client_id])

    __table_args__ = (
        UniqueConstraint("client_id", "professional_id", name="uq_review_client_professional"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="check_review_rating_range"),
    )


class Notification(Base):
    """In-app notification for a single user."""

    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type: Mapped[NotificationType] = mapped_column(
        _enum(NotificationType, "notification_type"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    entity_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    entity_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("idx_notifications_user_unread", "user_id", "is_read"),
    )


class DiscountCode(Base):
    """Discount code applicable to subscription checkout."""

    __tablename__ = "discount_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    discount_type: Mapped[DiscountType] = mapped_column(
        _enum(DiscountType, "discount_type"), nullable=False
    )
    value: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    valid_until: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_amount: Mapped[int | None] = mapped_column(Integer, nullable=True)  # cents
    applicable_to: Mapped[DiscountAudience] = mapped_column(
        _enum(DiscountAudience, "discount_audience"),
        default=DiscountAudience.ALL,
        nullable=False,
    )
    user_restriction: Mapped[DiscountRestriction | None] = mapped_column(
        _enum(DiscountRestriction, "discount_restriction"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
