"""
Appointment lifecycle state machine.

States:
    pending (initial) -> confirmed | cancelled
    confirmed         -> cancelled | completed
    cancelled, completed: terminal

Actor rules:
    pending -> confirmed    only the party that did NOT create the appointment
    confirmed -> completed  only the professional
    every other legal edge  either party

The FSM is pure: it validates and applies changes to an Appointment instance
and leaves persistence and notifications to the caller.
"""

import logging
from dataclasses import dataclass
from typing import ClassVar

from booking.errors import AuthorizationError, BookingValidationError, InvalidTransitionError
from booking.roles import party_for
from database.models import Appointment, AppointmentStatus, CreatedBy, PaymentStatus

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    """
    Outcome of an applied transition.

    Attributes:
        appointment_id: Appointment that changed
        previous_status: Status before the change
        new_status: Status after the change
        actor: Which party performed it
        payment_status_changed: True when a side effect touched payment_status
    """

    appointment_id: int
    previous_status: AppointmentStatus
    new_status: AppointmentStatus
    actor: CreatedBy
    payment_status_changed: bool = False


class AppointmentFSM:
    """Transition table and actor rules for appointments."""

    TRANSITIONS: ClassVar[dict[AppointmentStatus, frozenset[AppointmentStatus]]] = {
        AppointmentStatus.PENDING: frozenset(
            {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}
        ),
        AppointmentStatus.CONFIRMED: frozenset(
            {AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}
        ),
        AppointmentStatus.CANCELLED: frozenset(),
        AppointmentStatus.COMPLETED: frozenset(),
    }

    TERMINAL_STATES: ClassVar[frozenset[AppointmentStatus]] = frozenset(
        {AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}
    )

    # Edges restricted to the party that did not create the appointment
    NON_CREATOR_EDGES: ClassVar[frozenset[tuple[AppointmentStatus, AppointmentStatus]]] = frozenset(
        {(AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)}
    )

    # Edges restricted to the professional
    PROFESSIONAL_EDGES: ClassVar[frozenset[tuple[AppointmentStatus, AppointmentStatus]]] = frozenset(
        {(AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED)}
    )

    # payment_status -> statuses it may move to (only while confirmed)
    PAYMENT_PROGRESS: ClassVar[dict[PaymentStatus, frozenset[PaymentStatus]]] = {
        PaymentStatus.PENDING: frozenset({PaymentStatus.PAID_ADVANCE, PaymentStatus.PAID_COMPLETE}),
        PaymentStatus.UNPAID: frozenset({PaymentStatus.PAID_ADVANCE, PaymentStatus.PAID_COMPLETE}),
        PaymentStatus.PAID_ADVANCE: frozenset({PaymentStatus.PAID_COMPLETE}),
        PaymentStatus.PAID_COMPLETE: frozenset(),
    }

    @classmethod
    def is_terminal(cls, status: AppointmentStatus) -> bool:
        return status in cls.TERMINAL_STATES

    @classmethod
    def check_transition(
        cls,
        current: AppointmentStatus,
        requested: AppointmentStatus,
        actor: CreatedBy,
        created_by: CreatedBy,
    ) -> None:
        """
        Validate a status change for the acting party.

        Raises:
            InvalidTransitionError: Terminal state or edge not in the table
            AuthorizationError: Legal edge, wrong party
        """
        current = AppointmentStatus(current)
        requested = AppointmentStatus(requested)

        if cls.is_terminal(current):
            raise InvalidTransitionError(current.value, requested.value, "appointment is closed")

        if requested not in cls.TRANSITIONS[current]:
            raise InvalidTransitionError(current.value, requested.value)

        edge = (current, requested)
        if edge in cls.NON_CREATOR_EDGES and actor == created_by:
            raise AuthorizationError(
                "The party that requested the appointment cannot confirm it"
            )
        if edge in cls.PROFESSIONAL_EDGES and actor != CreatedBy.PROFESSIONAL:
            raise AuthorizationError("Only the professional can complete an appointment")

    @classmethod
    def can_transition(
        cls,
        current: AppointmentStatus,
        requested: AppointmentStatus,
        actor: CreatedBy,
        created_by: CreatedBy,
    ) -> bool:
        try:
            cls.check_transition(current, requested, actor, created_by)
        except (InvalidTransitionError, AuthorizationError):
            return False
        return True

    @classmethod
    def allowed_transitions(
        cls,
        current: AppointmentStatus,
        actor: CreatedBy,
        created_by: CreatedBy,
    ) -> list[AppointmentStatus]:
        """Statuses the actor may move the appointment to, in stable order."""
        return [
            status
            for status in AppointmentStatus
            if status in cls.TRANSITIONS[AppointmentStatus(current)]
            and cls.can_transition(current, status, actor, created_by)
        ]

    @classmethod
    def apply(
        cls,
        appointment: Appointment,
        requested: AppointmentStatus,
        actor_id: int,
    ) -> TransitionResult:
        """
        Check and apply a transition on a loaded appointment.

        Side effects:
            confirmed -> completed turns a pending payment into unpaid.
            Entering confirmed never touches payment fields.

        Raises:
            AuthorizationError: actor_id is not a party, or wrong party for the edge
            InvalidTransitionError: edge not allowed from the current status
        """
        actor = party_for(appointment, actor_id)
        previous = AppointmentStatus(appointment.status)
        requested = AppointmentStatus(requested)

        cls.check_transition(previous, requested, actor, CreatedBy(appointment.created_by))

        appointment.status = requested
        payment_changed = False
        if (
            requested == AppointmentStatus.COMPLETED
            and appointment.payment_status == PaymentStatus.PENDING
        ):
            appointment.payment_status = PaymentStatus.UNPAID
            payment_changed = True

        logger.info(
            f"Appointment {appointment.id} {previous.value} -> {requested.value} by {actor.value}",
            extra={"appointment_id": appointment.id, "user_id": actor_id},
        )

        return TransitionResult(
            appointment_id=appointment.id,
            previous_status=previous,
            new_status=requested,
            actor=actor,
            payment_status_changed=payment_changed,
        )

    @classmethod
    def check_payment_progress(
        cls,
        appointment: Appointment,
        new_payment_status: PaymentStatus,
    ) -> None:
        """
        Payment may only advance while the appointment is confirmed.

        Raises:
            BookingValidationError: Appointment not confirmed or the step goes backwards
        """
        status = AppointmentStatus(appointment.status)
        if status != AppointmentStatus.CONFIRMED:
            raise BookingValidationError(
                f"Payment can only be recorded for confirmed appointments (status: {status.value})"
            )

        current = PaymentStatus(appointment.payment_status)
        if PaymentStatus(new_payment_status) not in cls.PAYMENT_PROGRESS[current]:
            raise BookingValidationError(
                f"Payment status cannot change from {current.value} to {PaymentStatus(new_payment_status).value}"
            )
