"""
Appointment payments through Stripe PaymentIntents.

Flow:
1. Client calls initiate_payment -> PaymentIntent created, client_secret returned
2. Frontend confirms the card with Stripe.js
3. Either the redirect return (confirm_payment) or the webhook
   (payment_intent.succeeded) calls mark_paid

mark_paid is idempotent: recording the same payment twice leaves the
appointment unchanged.
"""

import logging
from typing import Any

from booking.errors import BookingValidationError, NotFoundError
from booking.fsm import AppointmentFSM
from booking.roles import require_client, role_for
from booking.serializers import appointment_to_dict
from booking.services.notification_service import add_notification
from booking.utils.money import format_price
from database.connection import get_async_session
from database.models import (
    Appointment,
    AppointmentStatus,
    NotificationType,
    PaymentMethod,
    PaymentStatus,
    User,
)
from shared import stripe_client

logger = logging.getLogger(__name__)

PAYMENT_TYPES = {
    "advance": PaymentStatus.PAID_ADVANCE,
    "complete": PaymentStatus.PAID_COMPLETE,
}

# Stripe payment method types -> stored payment method
WALLET_METHODS = {
    "google_pay": PaymentMethod.GOOGLE_PAY,
    "apple_pay": PaymentMethod.APPLE_PAY,
    "samsung_pay": PaymentMethod.SAMSUNG_PAY,
}


def resolve_payment_status(payment_type: str | None) -> PaymentStatus:
    try:
        return PAYMENT_TYPES[payment_type or "complete"]
    except KeyError as e:
        raise BookingValidationError(f"Invalid payment type: {payment_type}") from e


def resolve_payment_method(method_types: list[str] | None) -> PaymentMethod:
    for method_type in method_types or []:
        if method_type in WALLET_METHODS:
            return WALLET_METHODS[method_type]
    return PaymentMethod.CARD


async def initiate_payment(
    actor: User,
    appointment_id: int,
    payment_type: str = "complete",
) -> dict[str, Any]:
    """
    Create a PaymentIntent for a confirmed appointment.

    Raises:
        AuthorizationError: Actor is not the client of the appointment
        NotFoundError: Appointment missing
        BookingValidationError: Not confirmed, no price, or already paid
        PaymentProviderError: Stripe failure
    """
    require_client(role_for(actor), "pay for appointments")
    target_status = resolve_payment_status(payment_type)

    async with get_async_session() as session:
        appointment = await session.get(Appointment, appointment_id)
        if appointment is None or appointment.client_id != actor.id:
            raise NotFoundError("Appointment", appointment_id)
        if appointment.status != AppointmentStatus.CONFIRMED:
            raise BookingValidationError("Only confirmed appointments can be paid")
        if not appointment.price or appointment.price <= 0:
            raise BookingValidationError("Appointment has no price set")
        if appointment.payment_status == PaymentStatus.PAID_COMPLETE:
            raise BookingValidationError("Appointment is already paid")
        AppointmentFSM.check_payment_progress(appointment, target_status)

        professional = await session.get(User, appointment.professional_id)
        using_connect = bool(
            professional
            and professional.stripe_account_id
            and professional.stripe_account_verified
        )

        metadata = {
            "appointment_id": str(appointment.id),
            "payment_type": payment_type,
            "client_id": str(appointment.client_id),
            "professional_id": str(appointment.professional_id),
            "using_connect": "true" if using_connect else "false",
        }
        intent = await stripe_client.create_payment_intent(
            amount_cents=appointment.price,
            metadata=metadata,
            destination_account=professional.stripe_account_id if using_connect else None,
            application_fee_cents=appointment.commission if using_connect else None,
            description=appointment.title,
        )

        appointment.payment_id = intent["id"]
        await session.commit()

    return {
        "client_secret": intent["client_secret"],
        "payment_intent_id": intent["id"],
        "amount": intent["amount"],
        "currency": intent["currency"],
        "using_connect": using_connect,
    }


async def mark_paid(
    appointment_id: int,
    payment_intent_id: str,
    payment_type: str | None = None,
    using_connect: bool = False,
    payment_method: PaymentMethod = PaymentMethod.CARD,
) -> dict[str, Any]:
    """
    Record a successful payment on a confirmed appointment.

    Raises:
        NotFoundError: Appointment missing
        BookingValidationError: Not confirmed, or the step would go backwards
    """
    target_status = resolve_payment_status(payment_type)

    async with get_async_session() as session:
        appointment = await session.get(Appointment, appointment_id, with_for_update=True)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)

        if appointment.payment_status == target_status and appointment.payment_id == payment_intent_id:
            logger.info(
                f"Payment {payment_intent_id} already recorded",
                extra={"appointment_id": appointment_id},
            )
            return appointment_to_dict(appointment)

        AppointmentFSM.check_payment_progress(appointment, target_status)

        appointment.payment_status = target_status
        appointment.payment_id = payment_intent_id
        appointment.payment_method = payment_method
        if using_connect:
            appointment.fee_collected = True
            appointment.transferred_to_professional = True

        add_notification(
            session,
            user_id=appointment.professional_id,
            notification_type=NotificationType.PAYMENT_RECEIVED,
            title="Pago recibido",
            message=f"Pago de {format_price(appointment.price)} recibido para {appointment.title}",
            entity_type="appointment",
            entity_id=appointment.id,
        )
        await session.commit()

        logger.info(
            f"Appointment {appointment_id} marked {target_status.value} (intent {payment_intent_id})",
            extra={"appointment_id": appointment_id},
        )
        return appointment_to_dict(appointment)


async def confirm_payment(actor: User, appointment_id: int, payment_intent_id: str) -> dict[str, Any]:
    """
    Redirect-return confirmation: verify the intent with Stripe, then mark paid.

    Raises:
        NotFoundError: Appointment missing or not the actor's
        BookingValidationError: Intent not succeeded or for another appointment
        PaymentProviderError: Stripe failure
    """
    async with get_async_session() as session:
        appointment = await session.get(Appointment, appointment_id)
        if appointment is None or appointment.client_id != actor.id:
            raise NotFoundError("Appointment", appointment_id)

    intent = await stripe_client.retrieve_payment_intent(payment_intent_id)
    if intent["status"] != "succeeded":
        raise BookingValidationError(f"Payment has not succeeded (status: {intent['status']})")
    if intent["metadata"].get("appointment_id") != str(appointment_id):
        raise BookingValidationError("Payment does not belong to this appointment")

    return await mark_paid(
        appointment_id,
        payment_intent_id,
        payment_type=intent["metadata"].get("payment_type"),
        using_connect=intent["metadata"].get("using_connect") == "true",
        payment_method=resolve_payment_method(intent["payment_method_types"]),
    )


async def handle_payment_succeeded(intent: dict[str, Any], event_id: str | None = None) -> bool:
    """
    Webhook handler for payment_intent.succeeded.

    Returns:
        True when the appointment was updated, False when the event was
        ignored (no appointment metadata, appointment missing or not confirmed)
    """
    metadata = intent.get("metadata") or {}
    appointment_id = metadata.get("appointment_id")
    if not appointment_id:
        logger.info(f"PaymentIntent {intent.get('id')} has no appointment metadata, ignoring")
        return False

    try:
        await mark_paid(
            int(appointment_id),
            intent["id"],
            payment_type=metadata.get("payment_type"),
            using_connect=metadata.get("using_connect") == "true",
            payment_method=resolve_payment_method(intent.get("payment_method_types")),
        )
    except (NotFoundError, BookingValidationError) as e:
        logger.warning(
            f"Ignoring payment_intent.succeeded for appointment {appointment_id}: {e.message}",
            extra={"appointment_id": appointment_id, "stripe_event_id": event_id},
        )
        return False
    return True


def handle_payment_failed(intent: dict[str, Any], event_id: str | None = None) -> None:
    """Webhook handler for payment_intent.payment_failed. Log only."""
    error = (intent.get("last_payment_error") or {}).get("message")
    logger.warning(
        f"PaymentIntent {intent.get('id')} failed: {error}",
        extra={
            "appointment_id": (intent.get("metadata") or {}).get("appointment_id"),
            "stripe_event_id": event_id,
        },
    )
