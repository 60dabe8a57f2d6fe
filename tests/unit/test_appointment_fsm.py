"""
Unit tests for AppointmentFSM.

Tests cover:
- Transition table (legal and illegal edges, terminal states)
- Actor rules (non-creator confirms, professional completes)
- apply(): side effects on payment_status, non-party rejection
- Payment progression while confirmed
"""

import pytest

from booking.errors import AuthorizationError, BookingValidationError, InvalidTransitionError
from booking.fsm import AppointmentFSM
from database.models import AppointmentStatus, CreatedBy, PaymentStatus

PENDING = AppointmentStatus.PENDING
CONFIRMED = AppointmentStatus.CONFIRMED
CANCELLED = AppointmentStatus.CANCELLED
COMPLETED = AppointmentStatus.COMPLETED
CLIENT = CreatedBy.CLIENT
PROFESSIONAL = CreatedBy.PROFESSIONAL


class TestTransitionTable:
    def test_terminal_states(self):
        assert AppointmentFSM.is_terminal(CANCELLED)
        assert AppointmentFSM.is_terminal(COMPLETED)
        assert not AppointmentFSM.is_terminal(PENDING)
        assert not AppointmentFSM.is_terminal(CONFIRMED)

    @pytest.mark.parametrize("target", [PENDING, CONFIRMED, CANCELLED, COMPLETED])
    @pytest.mark.parametrize("terminal", [CANCELLED, COMPLETED])
    def test_terminal_states_have_no_exits(self, terminal, target):
        with pytest.raises(InvalidTransitionError) as exc_info:
            AppointmentFSM.check_transition(terminal, target, PROFESSIONAL, CLIENT)
        assert "closed" in exc_info.value.message

    def test_pending_cannot_jump_to_completed(self):
        with pytest.raises(InvalidTransitionError):
            AppointmentFSM.check_transition(PENDING, COMPLETED, PROFESSIONAL, CLIENT)

    def test_confirmed_cannot_go_back_to_pending(self):
        with pytest.raises(InvalidTransitionError):
            AppointmentFSM.check_transition(CONFIRMED, PENDING, CLIENT, CLIENT)

    def test_invalid_transition_is_a_validation_error(self):
        """API maps both to 400."""
        assert issubclass(InvalidTransitionError, BookingValidationError)


class TestActorRules:
    def test_creator_cannot_confirm_own_request(self):
        with pytest.raises(AuthorizationError):
            AppointmentFSM.check_transition(PENDING, CONFIRMED, CLIENT, CLIENT)

    def test_invited_party_confirms(self):
        AppointmentFSM.check_transition(PENDING, CONFIRMED, PROFESSIONAL, CLIENT)
        AppointmentFSM.check_transition(PENDING, CONFIRMED, CLIENT, PROFESSIONAL)

    def test_only_professional_completes(self):
        with pytest.raises(AuthorizationError):
            AppointmentFSM.check_transition(CONFIRMED, COMPLETED, CLIENT, PROFESSIONAL)
        AppointmentFSM.check_transition(CONFIRMED, COMPLETED, PROFESSIONAL, CLIENT)

    @pytest.mark.parametrize("actor", [CLIENT, PROFESSIONAL])
    @pytest.mark.parametrize("current", [PENDING, CONFIRMED])
    def test_either_party_cancels(self, current, actor):
        assert AppointmentFSM.can_transition(current, CANCELLED, actor, CLIENT)

    def test_allowed_transitions_for_creator_of_pending(self):
        assert AppointmentFSM.allowed_transitions(PENDING, CLIENT, CLIENT) == [CANCELLED]

    def test_allowed_transitions_for_professional_of_confirmed(self):
        assert AppointmentFSM.allowed_transitions(CONFIRMED, PROFESSIONAL, CLIENT) == [
            CANCELLED,
            COMPLETED,
        ]

    def test_allowed_transitions_empty_when_terminal(self):
        assert AppointmentFSM.allowed_transitions(COMPLETED, PROFESSIONAL, CLIENT) == []


class TestApply:
    def test_apply_confirms_and_reports_actor(self, make_appointment):
        appointment = make_appointment()

        result = AppointmentFSM.apply(appointment, CONFIRMED, actor_id=2)

        assert appointment.status == CONFIRMED
        assert result.previous_status == PENDING
        assert result.new_status == CONFIRMED
        assert result.actor == PROFESSIONAL
        assert result.payment_status_changed is False

    def test_confirming_leaves_payment_untouched(self, make_appointment):
        appointment = make_appointment(price=5000)

        AppointmentFSM.apply(appointment, CONFIRMED, actor_id=2)

        assert appointment.payment_status == PaymentStatus.PENDING
        assert appointment.payment_id is None

    def test_completing_marks_pending_payment_unpaid(self, make_appointment):
        appointment = make_appointment(status=CONFIRMED)

        result = AppointmentFSM.apply(appointment, COMPLETED, actor_id=2)

        assert appointment.status == COMPLETED
        assert appointment.payment_status == PaymentStatus.UNPAID
        assert result.payment_status_changed is True

    def test_completing_keeps_paid_status(self, make_appointment):
        appointment = make_appointment(status=CONFIRMED, payment_status=PaymentStatus.PAID_COMPLETE)

        AppointmentFSM.apply(appointment, COMPLETED, actor_id=2)

        assert appointment.payment_status == PaymentStatus.PAID_COMPLETE

    def test_non_party_is_rejected_without_change(self, make_appointment):
        appointment = make_appointment()

        with pytest.raises(AuthorizationError):
            AppointmentFSM.apply(appointment, CANCELLED, actor_id=99)

        assert appointment.status == PENDING

    def test_failed_transition_leaves_state(self, make_appointment):
        appointment = make_appointment(status=CANCELLED)

        with pytest.raises(InvalidTransitionError):
            AppointmentFSM.apply(appointment, CONFIRMED, actor_id=2)

        assert appointment.status == CANCELLED


class TestPaymentProgress:
    def test_payment_requires_confirmed(self, make_appointment):
        with pytest.raises(BookingValidationError):
            AppointmentFSM.check_payment_progress(make_appointment(), PaymentStatus.PAID_COMPLETE)

    def test_advance_then_complete(self, make_appointment):
        appointment = make_appointment(status=CONFIRMED)
        AppointmentFSM.check_payment_progress(appointment, PaymentStatus.PAID_ADVANCE)

        appointment.payment_status = PaymentStatus.PAID_ADVANCE
        AppointmentFSM.check_payment_progress(appointment, PaymentStatus.PAID_COMPLETE)

    def test_payment_never_goes_backwards(self, make_appointment):
        appointment = make_appointment(status=CONFIRMED, payment_status=PaymentStatus.PAID_COMPLETE)

        with pytest.raises(BookingValidationError):
            AppointmentFSM.check_payment_progress(appointment, PaymentStatus.PAID_ADVANCE)
