"""
Appointment lifecycle service.

Creates appointments, applies status transitions through AppointmentFSM,
handles responses to pending requests (accept / reject / propose an
alternative), edits of descriptive fields and reminders.

Every operation is one unit of work: the appointment row is loaded with
SELECT ... FOR UPDATE, changed, the counterpart notification is staged on
the same session, and everything is committed together. Concurrent
transitions on the same appointment therefore serialize; the second one
sees the new status and fails validation instead of overwriting it.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, assert_never

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking.errors import AuthorizationError, BookingValidationError, NotFoundError
from booking.fsm import AppointmentFSM
from booking.labels import label_for
from booking.roles import ClientRole, ProfessionalRole, created_by_for, party_for, role_for
from booking.serializers import appointment_to_dict
from booking.services.connection_service import require_accepted_connection
from booking.services.notification_service import add_notification
from booking.services.recurrence_service import next_occurrence
from booking.services.user_service import get_user
from booking.utils.dates import format_date_spanish, now_utc
from booking.validators import validate_horse_ids, validate_price, validate_schedule
from database.connection import get_async_session
from database.models import (
    Appointment,
    AppointmentStatus,
    CreatedBy,
    Horse,
    NotificationType,
    PaymentStatus,
    ServiceType,
    User,
)
from shared.config import get_settings

logger = logging.getLogger(__name__)


class RespondAction(str, Enum):
    """Ways the invited party can answer a pending appointment request."""

    ACCEPT = "accept"
    REJECT = "reject"
    PROPOSE_ALTERNATIVE = "propose_alternative"


# Notification emitted to the counterpart when an appointment enters a status
STATUS_NOTIFICATIONS = {
    AppointmentStatus.CONFIRMED: (NotificationType.APPOINTMENT_CONFIRMED, "Cita confirmada"),
    AppointmentStatus.CANCELLED: (NotificationType.APPOINTMENT_CANCELLED, "Cita cancelada"),
    AppointmentStatus.COMPLETED: (NotificationType.APPOINTMENT_COMPLETED, "Cita completada"),
}

# Fields editable while the appointment is open
ALWAYS_EDITABLE = ("title", "notes", "location")
# Fields editable only while pending
PENDING_EDITABLE = ("date", "duration")


# =============================================================================
# Helpers
# =============================================================================


def _parse_service_type(service_type: ServiceType | str) -> ServiceType:
    try:
        return ServiceType(service_type)
    except ValueError as e:
        raise BookingValidationError(f"Invalid service type: {service_type}") from e


def _counterpart_id(appointment: Appointment, actor: CreatedBy) -> int:
    if actor == CreatedBy.CLIENT:
        return appointment.professional_id
    return appointment.client_id


def _append_note(appointment: Appointment, line: str) -> None:
    appointment.notes = f"{appointment.notes}\n{line}" if appointment.notes else line


async def _load_for_update(session: AsyncSession, appointment_id: int) -> Appointment:
    appointment = await session.get(Appointment, appointment_id, with_for_update=True)
    if appointment is None:
        raise NotFoundError("Appointment", appointment_id)
    return appointment


async def _validate_horses(session: AsyncSession, horse_ids: list[int], client_id: int) -> None:
    """All horses must exist and belong to the client."""
    result = await session.execute(
        select(Horse.id, Horse.owner_id).where(Horse.id.in_(horse_ids))
    )
    owners = {horse_id: owner_id for horse_id, owner_id in result.all()}

    for horse_id in horse_ids:
        if horse_id not in owners:
            raise NotFoundError("Horse", horse_id)
        if owners[horse_id] != client_id:
            raise BookingValidationError(f"Horse {horse_id} does not belong to the client")


def _notify_status_change(
    session: AsyncSession,
    appointment: Appointment,
    actor: CreatedBy,
    actor_name: str,
) -> None:
    status = AppointmentStatus(appointment.status)
    if status not in STATUS_NOTIFICATIONS:
        return
    notification_type, title = STATUS_NOTIFICATIONS[status]
    add_notification(
        session,
        user_id=_counterpart_id(appointment, actor),
        notification_type=notification_type,
        title=title,
        message=(
            f"{actor_name}: {appointment.title} ({format_date_spanish(appointment.date)}) "
            f"ahora está {label_for(status).lower()}"
        ),
        entity_type="appointment",
        entity_id=appointment.id,
    )


# =============================================================================
# Create
# =============================================================================


async def create_appointment(
    actor: User,
    client_id: int,
    professional_id: int,
    horse_ids: list[int],
    service_type: ServiceType | str,
    title: str,
    date: datetime | str,
    duration: int,
    location: str | None = None,
    price: int | None = None,
    notes: str | None = None,
    is_periodic: bool = False,
    frequency: str | None = None,
    end_date: datetime | str | None = None,
    commission: int | None = None,
) -> dict[str, Any]:
    """
    Create a pending appointment between a client and a professional.

    The actor must be one of the two parties; its role decides created_by,
    which in turn decides who may confirm.

    Raises:
        AuthorizationError: Actor is not the party matching its role, or the
            pair has no accepted connection
        NotFoundError: Professional, client or a horse does not exist
        BookingValidationError: Invalid schedule, price, horses or service type
    """
    role = role_for(actor)
    match role:
        case ClientRole():
            if client_id != actor.id:
                raise AuthorizationError("Clients can only book appointments for themselves")
        case ProfessionalRole():
            if professional_id != actor.id:
                raise AuthorizationError("Professionals can only create their own appointments")
        case _:
            assert_never(role)
    created_by = created_by_for(role)

    start, duration, freq, until = validate_schedule(
        date, duration, is_periodic, frequency, end_date
    )
    horse_ids = validate_horse_ids(horse_ids)
    price = validate_price(price)
    parsed_service = _parse_service_type(service_type)
    if not (title or "").strip():
        raise BookingValidationError("title is required")

    async with get_async_session() as session:
        professional = await get_user(session, professional_id)
        if not professional.is_professional:
            raise BookingValidationError("Selected user is not a professional")
        client = await get_user(session, client_id)
        if client.is_professional:
            raise BookingValidationError("Selected client is not a horse owner")

        await require_accepted_connection(session, client_id, professional_id)
        await _validate_horses(session, horse_ids, client_id)

        appointment = Appointment(
            client_id=client_id,
            professional_id=professional_id,
            horse_ids=horse_ids,
            service_type=parsed_service,
            title=title.strip(),
            location=location,
            notes=notes,
            date=start,
            duration=duration,
            is_periodic=bool(freq),
            frequency=freq,
            end_date=until,
            status=AppointmentStatus.PENDING,
            created_by=created_by,
            price=price,
            payment_status=PaymentStatus.PENDING,
            commission=(
                commission if commission is not None else get_settings().DEFAULT_COMMISSION_CENTS
            ),
            fee_collected=False,
            transferred_to_professional=False,
            has_alternative=False,
            reminder_sent=False,
        )
        session.add(appointment)
        await session.flush()

        add_notification(
            session,
            user_id=_counterpart_id(appointment, created_by),
            notification_type=NotificationType.APPOINTMENT_CREATED,
            title="Nueva solicitud de cita",
            message=f"{actor.full_name} solicita {appointment.title} el {format_date_spanish(start)}",
            entity_type="appointment",
            entity_id=appointment.id,
        )
        await session.commit()

        logger.info(
            f"Appointment created by {created_by.value}: client={client_id}, "
            f"professional={professional_id}, horses={horse_ids}",
            extra={"appointment_id": appointment.id, "user_id": actor.id},
        )
        return appointment_to_dict(appointment)


# =============================================================================
# Read
# =============================================================================


async def get_appointment(actor: User, appointment_id: int) -> dict[str, Any]:
    """
    Appointment detail with the statuses the actor may move it to.

    Raises:
        NotFoundError: Missing, or the actor is not a party
    """
    async with get_async_session() as session:
        appointment = await session.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFoundError("Appointment", appointment_id)
        try:
            actor_party = party_for(appointment, actor.id)
        except AuthorizationError:
            raise NotFoundError("Appointment", appointment_id) from None

        data = appointment_to_dict(appointment)
        data["allowed_transitions"] = [
            status.value
            for status in AppointmentFSM.allowed_transitions(
                appointment.status, actor_party, appointment.created_by
            )
        ]
        return data


# =============================================================================
# Transitions
# =============================================================================


async def transition_appointment(
    actor: User,
    appointment_id: int,
    new_status: AppointmentStatus | str,
    reason: str | None = None,
) -> dict[str, Any]:
    """
    Move an appointment to a new status.

    Raises:
        NotFoundError: Appointment does not exist
        AuthorizationError: Actor is not a party, or is the wrong party for the edge
        InvalidTransitionError: Edge not allowed from the current status
    """
    try:
        requested = AppointmentStatus(new_status)
    except ValueError as e:
        raise BookingValidationError(f"Invalid status: {new_status}") from e

    async with get_async_session() as session:
        appointment = await _load_for_update(session, appointment_id)
        result = AppointmentFSM.apply(appointment, requested, actor.id)

        if requested == AppointmentStatus.CANCELLED and reason:
            _append_note(appointment, f"Cancelled: {reason}")

        _notify_status_change(session, appointment, result.actor, actor.full_name)
        await session.commit()
        return appointment_to_dict(appointment)


async def respond_to_appointment(
    actor: User,
    appointment_id: int,
    action: RespondAction | str,
    price: int | None = None,
    duration: int | None = None,
    alternative_date: datetime | str | None = None,
    notes: str | None = None,
) -> dict[str, Any]:
    """
    Invited party answers a pending request.

    accept: confirms; a professional may set price and duration at the same time.
    reject: cancels, with notes recorded as the reason.
    propose_alternative: cancels the original (has_alternative=True) and
        creates a new pending request at alternative_date created by the
        responder, linked through original_appointment_id.

    Returns:
        {"appointment": <original>, "alternative": <new appointment or None>}

    Raises:
        NotFoundError: Appointment does not exist
        AuthorizationError: Actor is not a party, is the creator, or a client
            tries to set the price
        InvalidTransitionError: Appointment is not pending
        BookingValidationError: Invalid action, price, duration or date
    """
    try:
        action = RespondAction(action)
    except ValueError as e:
        raise BookingValidationError(f"Invalid action: {action}") from e

    async with get_async_session() as session:
        appointment = await _load_for_update(session, appointment_id)
        responder = party_for(appointment, actor.id)
        if responder == appointment.created_by:
            raise AuthorizationError("Only the invited party can respond to this request")

        if (price is not None or duration is not None) and responder != CreatedBy.PROFESSIONAL:
            raise AuthorizationError("Only the professional can set price or duration")
        price = validate_price(price)

        alternative: Appointment | None = None

        if action == RespondAction.ACCEPT:
            AppointmentFSM.check_transition(
                appointment.status, AppointmentStatus.CONFIRMED, responder, appointment.created_by
            )
            if duration is not None:
                _, appointment.duration, _, _ = validate_schedule(appointment.date, duration)
            if price is not None:
                appointment.price = price
            result = AppointmentFSM.apply(appointment, AppointmentStatus.CONFIRMED, actor.id)
            _notify_status_change(session, appointment, result.actor, actor.full_name)

        elif action == RespondAction.REJECT:
            result = AppointmentFSM.apply(appointment, AppointmentStatus.CANCELLED, actor.id)
            if notes:
                _append_note(appointment, f"Cancelled: {notes}")
            _notify_status_change(session, appointment, result.actor, actor.full_name)

        elif action == RespondAction.PROPOSE_ALTERNATIVE:
            if alternative_date is None:
                raise BookingValidationError("alternative_date is required to propose an alternative")
            start, new_duration, freq, until = validate_schedule(
                alternative_date,
                duration if duration is not None else appointment.duration,
                appointment.is_periodic,
                appointment.frequency,
                appointment.end_date,
            )
            AppointmentFSM.apply(appointment, AppointmentStatus.CANCELLED, actor.id)
            appointment.has_alternative = True

            alternative = Appointment(
                client_id=appointment.client_id,
                professional_id=appointment.professional_id,
                horse_ids=list(appointment.horse_ids),
                service_type=appointment.service_type,
                title=appointment.title,
                location=appointment.location,
                notes=notes if notes is not None else appointment.notes,
                date=start,
                duration=new_duration,
                is_periodic=bool(freq),
                frequency=freq,
                end_date=until,
                status=AppointmentStatus.PENDING,
                created_by=responder,
                price=price if price is not None else appointment.price,
                payment_status=PaymentStatus.PENDING,
                commission=appointment.commission,
                fee_collected=False,
                transferred_to_professional=False,
                has_alternative=False,
                original_appointment_id=appointment.id,
                reminder_sent=False,
            )
            session.add(alternative)
            await session.flush()

            add_notification(
                session,
                user_id=_counterpart_id(appointment, responder),
                notification_type=NotificationType.ALTERNATIVE_PROPOSED,
                title="Nueva fecha propuesta",
                message=(
                    f"{actor.full_name} propone {format_date_spanish(start)} "
                    f"para {appointment.title}"
                ),
                entity_type="appointment",
                entity_id=alternative.id,
            )

        else:
            assert_never(action)

        await session.commit()

        logger.info(
            f"Appointment {appointment.id} response '{action.value}' by {responder.value}",
            extra={"appointment_id": appointment.id, "user_id": actor.id},
        )
        return {
            "appointment": appointment_to_dict(appointment),
            "alternative": appointment_to_dict(alternative) if alternative else None,
        }


# =============================================================================
# Edits and reminders
# =============================================================================


async def update_appointment(
    actor: User,
    appointment_id: int,
    changes: dict[str, Any],
) -> dict[str, Any]:
    """
    Edit descriptive fields, optionally followed by a status transition.

    title/notes/location: any open appointment.
    date/duration: pending only.
    price: professional only, while payment is still pending.
    status: routed through the state machine after the field edits.
    commission is never recomputed.

    Raises:
        NotFoundError, AuthorizationError, BookingValidationError, InvalidTransitionError
    """
    async with get_async_session() as session:
        appointment = await _load_for_update(session, appointment_id)
        actor_party = party_for(appointment, actor.id)
        status = AppointmentStatus(appointment.status)

        field_changes = {k: v for k, v in changes.items() if k != "status"}
        if field_changes and AppointmentFSM.is_terminal(status):
            raise BookingValidationError(f"A {status.value} appointment cannot be edited")

        for field in ALWAYS_EDITABLE:
            if field in field_changes:
                setattr(appointment, field, field_changes[field])
        if "title" in field_changes and not (appointment.title or "").strip():
            raise BookingValidationError("title is required")

        if any(field in field_changes for field in PENDING_EDITABLE):
            if status != AppointmentStatus.PENDING:
                raise BookingValidationError("Date and duration can only change while pending")
            start, duration, _, _ = validate_schedule(
                field_changes.get("date", appointment.date),
                field_changes.get("duration", appointment.duration),
                appointment.is_periodic,
                appointment.frequency,
                appointment.end_date,
            )
            appointment.date = start
            appointment.duration = duration

        if "price" in field_changes:
            if actor_party != CreatedBy.PROFESSIONAL:
                raise AuthorizationError("Only the professional can set the price")
            if appointment.payment_status != PaymentStatus.PENDING:
                raise BookingValidationError("Price cannot change after payment started")
            appointment.price = validate_price(field_changes["price"])

        new_status = changes.get("status")
        if new_status is not None and AppointmentStatus(new_status) != status:
            result = AppointmentFSM.apply(appointment, AppointmentStatus(new_status), actor.id)
            _notify_status_change(session, appointment, result.actor, actor.full_name)

        await session.commit()
        return appointment_to_dict(appointment)


async def send_reminder(actor: User, appointment_id: int) -> dict[str, Any]:
    """
    Notify the counterpart about an upcoming confirmed appointment.

    Raises:
        NotFoundError, AuthorizationError
        BookingValidationError: Not confirmed, or no future occurrence left
    """
    async with get_async_session() as session:
        appointment = await _load_for_update(session, appointment_id)
        actor_party = party_for(appointment, actor.id)

        if appointment.status != AppointmentStatus.CONFIRMED:
            raise BookingValidationError("Reminders can only be sent for confirmed appointments")
        upcoming = next_occurrence(appointment, now_utc())
        if upcoming is None:
            raise BookingValidationError("Appointment has no upcoming date")

        add_notification(
            session,
            user_id=_counterpart_id(appointment, actor_party),
            notification_type=NotificationType.REMINDER,
            title="Recordatorio de cita",
            message=f"Recuerda: {appointment.title} el {format_date_spanish(upcoming)}",
            entity_type="appointment",
            entity_id=appointment.id,
        )
        appointment.reminder_sent = True
        await session.commit()

        logger.info(
            f"Reminder sent for appointment {appointment.id}",
            extra={"appointment_id": appointment.id, "user_id": actor.id},
        )
        return appointment_to_dict(appointment)
