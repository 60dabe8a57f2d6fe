"""
Conversion of ORM rows to JSON-ready dicts returned by the API.

Money stays in integer cents; ``*_display`` fields carry the formatted
string and ``*_label`` fields the display label of enum values.
"""

from datetime import datetime
from typing import Any

from booking.labels import label_for
from booking.utils.money import format_price
from database.models import (
    Appointment,
    Connection,
    Horse,
    MedicalRecord,
    Message,
    Notification,
    Review,
    ServiceRecord,
    User,
)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _value(enum_value) -> str | None:
    return getattr(enum_value, "value", enum_value)


def user_public(user: User) -> dict[str, Any]:
    """Profile fields visible to other users."""
    return {
        "id": user.id,
        "username": user.username,
        "full_name": user.full_name,
        "user_type": _value(user.user_type),
        "user_type_label": label_for(user.user_type),
        "is_professional": user.is_professional,
        "location": user.location,
        "bio": user.bio,
        "profile_image_url": user.profile_image_url,
    }


def user_private(user: User) -> dict[str, Any]:
    """Full profile for the user themselves."""
    data = user_public(user)
    data.update(
        {
            "email": user.email,
            "phone": user.phone,
            "subscription_type": _value(user.subscription_type),
            "subscription_expiry": _iso(user.subscription_expiry),
            "stripe_account_verified": user.stripe_account_verified,
            "created_at": _iso(user.created_at),
        }
    )
    return data


def horse_to_dict(horse: Horse) -> dict[str, Any]:
    return {
        "id": horse.id,
        "owner_id": horse.owner_id,
        "name": horse.name,
        "breed": horse.breed,
        "age": horse.age,
        "gender": horse.gender,
        "color": horse.color,
        "height": horse.height,
        "weight": horse.weight,
        "notes": horse.notes,
        "image_url": horse.image_url,
        "created_at": _iso(horse.created_at),
    }


def appointment_to_dict(appointment: Appointment) -> dict[str, Any]:
    horse_ids = list(appointment.horse_ids or [])
    return {
        "id": appointment.id,
        "client_id": appointment.client_id,
        "professional_id": appointment.professional_id,
        "horse_ids": horse_ids,
        "primary_horse_id": horse_ids[0] if horse_ids else None,
        "service_type": _value(appointment.service_type),
        "service_type_label": label_for(appointment.service_type),
        "title": appointment.title,
        "location": appointment.location,
        "notes": appointment.notes,
        "date": _iso(appointment.date),
        "duration": appointment.duration,
        "is_periodic": appointment.is_periodic,
        "frequency": _value(appointment.frequency),
        "end_date": _iso(appointment.end_date),
        "status": _value(appointment.status),
        "status_label": label_for(appointment.status),
        "created_by": _value(appointment.created_by),
        "price": appointment.price,
        "price_display": format_price(appointment.price),
        "payment_status": _value(appointment.payment_status),
        "payment_status_label": label_for(appointment.payment_status),
        "payment_method": _value(appointment.payment_method),
        "payment_id": appointment.payment_id,
        "commission": appointment.commission,
        "fee_collected": appointment.fee_collected,
        "transferred_to_professional": appointment.transferred_to_professional,
        "invoice_url": appointment.invoice_url,
        "has_alternative": appointment.has_alternative,
        "original_appointment_id": appointment.original_appointment_id,
        "reminder_sent": appointment.reminder_sent,
        "created_at": _iso(appointment.created_at),
        "updated_at": _iso(appointment.updated_at),
    }


def connection_to_dict(connection: Connection, counterpart: User | None = None) -> dict[str, Any]:
    data = {
        "id": connection.id,
        "client_id": connection.client_id,
        "professional_id": connection.professional_id,
        "status": _value(connection.status),
        "status_label": label_for(connection.status),
        "request_date": _iso(connection.request_date),
        "response_date": _iso(connection.response_date),
    }
    if counterpart is not None:
        data["counterpart"] = user_public(counterpart)
    return data


def message_to_dict(message: Message) -> dict[str, Any]:
    return {
        "id": message.id,
        "sender_id": message.sender_id,
        "receiver_id": message.receiver_id,
        "content": message.content,
        "is_read": message.is_read,
        "created_at": _iso(message.created_at),
    }


def review_to_dict(review: Review, author: User | None = None) -> dict[str, Any]:
    data = {
        "id": review.id,
        "client_id": review.client_id,
        "professional_id": review.professional_id,
        "appointment_id": review.appointment_id,
        "rating": review.rating,
        "comment": review.comment,
        "created_at": _iso(review.created_at),
        "updated_at": _iso(review.updated_at),
    }
    if author is not None:
        data["client_name"] = author.full_name
    return data


def medical_record_to_dict(record: MedicalRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "horse_id": record.horse_id,
        "professional_id": record.professional_id,
        "record_type": record.record_type,
        "description": record.description,
        "diagnosis": record.diagnosis,
        "treatment": record.treatment,
        "date": _iso(record.date),
        "created_at": _iso(record.created_at),
    }


def service_record_to_dict(record: ServiceRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "horse_id": record.horse_id,
        "professional_id": record.professional_id,
        "service_type": _value(record.service_type),
        "service_type_label": label_for(record.service_type),
        "description": record.description,
        "notes": record.notes,
        "date": _iso(record.date),
        "created_at": _iso(record.created_at),
    }


def notification_to_dict(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "type": _value(notification.type),
        "title": notification.title,
        "message": notification.message,
        "entity_type": notification.entity_type,
        "entity_id": notification.entity_id,
        "is_read": notification.is_read,
        "created_at": _iso(notification.created_at),
    }
