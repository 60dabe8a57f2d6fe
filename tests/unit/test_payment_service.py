"""
Unit tests for appointment payments.

Stripe is never called: shared.stripe_client functions are replaced with
AsyncMocks returning the plain dicts the real wrappers return.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
import stripe

from booking.errors import AuthorizationError, BookingValidationError, NotFoundError, PaymentProviderError
from booking.services import payment_service
from database.models import (
    Appointment,
    AppointmentStatus,
    Notification,
    NotificationType,
    PaymentMethod,
    PaymentStatus,
    User,
)
from shared import stripe_client

MODULE = "booking.services.payment_service"


def confirmed(make_appointment, **overrides):
    fields = {"status": AppointmentStatus.CONFIRMED, "price": 6000}
    fields.update(overrides)
    return make_appointment(**fields)


def lookup(rows: dict):
    def _get(model, key, **kwargs):
        return rows.get((model, key))

    return _get


@pytest.fixture
def fake_intent(monkeypatch):
    create = AsyncMock(
        return_value={
            "id": "pi_123",
            "client_secret": "pi_123_secret",
            "amount": 6000,
            "currency": "eur",
            "status": "requires_payment_method",
        }
    )
    monkeypatch.setattr(stripe_client, "create_payment_intent", create)
    return create


class TestResolvers:
    def test_payment_status(self):
        assert payment_service.resolve_payment_status(None) == PaymentStatus.PAID_COMPLETE
        assert payment_service.resolve_payment_status("advance") == PaymentStatus.PAID_ADVANCE
        with pytest.raises(BookingValidationError):
            payment_service.resolve_payment_status("half")

    def test_payment_method(self):
        assert payment_service.resolve_payment_method(["card", "apple_pay"]) == PaymentMethod.APPLE_PAY
        assert payment_service.resolve_payment_method(["card"]) == PaymentMethod.CARD
        assert payment_service.resolve_payment_method(None) == PaymentMethod.CARD


class TestInitiatePayment:
    @pytest.mark.asyncio
    async def test_direct_charge(
        self, patch_session, fake_intent, client_user, professional_user, make_appointment
    ):
        session = patch_session(MODULE)
        appointment = confirmed(make_appointment)
        session.get.side_effect = lookup({(Appointment, 1): appointment, (User, 2): professional_user})

        data = await payment_service.initiate_payment(client_user, 1, "complete")

        assert data == {
            "client_secret": "pi_123_secret",
            "payment_intent_id": "pi_123",
            "amount": 6000,
            "currency": "eur",
            "using_connect": False,
        }
        kwargs = fake_intent.await_args.kwargs
        assert kwargs["amount_cents"] == 6000
        assert kwargs["destination_account"] is None
        assert kwargs["metadata"]["appointment_id"] == "1"
        assert appointment.payment_id == "pi_123"
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_destination_and_fee(
        self, patch_session, fake_intent, client_user, professional_user, make_appointment
    ):
        session = patch_session(MODULE)
        professional_user.stripe_account_id = "acct_1"
        professional_user.stripe_account_verified = True
        session.get.side_effect = lookup(
            {(Appointment, 1): confirmed(make_appointment), (User, 2): professional_user}
        )

        data = await payment_service.initiate_payment(client_user, 1, "advance")

        assert data["using_connect"] is True
        kwargs = fake_intent.await_args.kwargs
        assert kwargs["destination_account"] == "acct_1"
        assert kwargs["application_fee_cents"] == 99
        assert kwargs["metadata"]["using_connect"] == "true"

    @pytest.mark.asyncio
    async def test_unverified_account_is_not_used(
        self, patch_session, fake_intent, client_user, professional_user, make_appointment
    ):
        session = patch_session(MODULE)
        professional_user.stripe_account_id = "acct_1"
        session.get.side_effect = lookup(
            {(Appointment, 1): confirmed(make_appointment), (User, 2): professional_user}
        )

        data = await payment_service.initiate_payment(client_user, 1)

        assert data["using_connect"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides,match",
        [
            ({"status": AppointmentStatus.PENDING}, "confirmed"),
            ({"price": None}, "no price"),
            ({"price": 0}, "no price"),
            ({"payment_status": PaymentStatus.PAID_COMPLETE}, "already paid"),
        ],
    )
    async def test_rejected(
        self, patch_session, fake_intent, client_user, make_appointment, overrides, match
    ):
        session = patch_session(MODULE)
        session.get.return_value = confirmed(make_appointment, **overrides)

        with pytest.raises(BookingValidationError, match=match):
            await payment_service.initiate_payment(client_user, 1)
        fake_intent.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_other_clients_appointment(self, patch_session, make_user, make_appointment):
        session = patch_session(MODULE)
        session.get.return_value = confirmed(make_appointment)

        with pytest.raises(NotFoundError):
            await payment_service.initiate_payment(make_user(3), 1)

    @pytest.mark.asyncio
    async def test_professional_cannot_pay(self, professional_user):
        with pytest.raises(AuthorizationError):
            await payment_service.initiate_payment(professional_user, 1)


class TestMarkPaid:
    @pytest.mark.asyncio
    async def test_records_payment(self, patch_session, make_appointment):
        session = patch_session(MODULE)
        appointment = confirmed(make_appointment)
        session.get.return_value = appointment

        data = await payment_service.mark_paid(
            1, "pi_123", "complete", using_connect=True, payment_method=PaymentMethod.GOOGLE_PAY
        )

        assert data["payment_status"] == "paid_complete"
        assert appointment.payment_method == PaymentMethod.GOOGLE_PAY
        assert appointment.fee_collected is True
        assert appointment.transferred_to_professional is True
        notification = session.add.call_args.args[0]
        assert isinstance(notification, Notification)
        assert notification.type == NotificationType.PAYMENT_RECEIVED
        assert notification.user_id == 2
        assert "60,00 €" in notification.message

    @pytest.mark.asyncio
    async def test_idempotent(self, patch_session, make_appointment):
        session = patch_session(MODULE)
        session.get.return_value = confirmed(
            make_appointment, payment_status=PaymentStatus.PAID_COMPLETE, payment_id="pi_123"
        )

        data = await payment_service.mark_paid(1, "pi_123", "complete")

        assert data["payment_status"] == "paid_complete"
        session.add.assert_not_called()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_advance_then_complete(self, patch_session, make_appointment):
        session = patch_session(MODULE)
        appointment = confirmed(make_appointment, payment_status=PaymentStatus.PAID_ADVANCE)
        session.get.return_value = appointment

        await payment_service.mark_paid(1, "pi_456", "complete")

        assert appointment.payment_status == PaymentStatus.PAID_COMPLETE

    @pytest.mark.asyncio
    async def test_never_goes_backwards(self, patch_session, make_appointment):
        session = patch_session(MODULE)
        session.get.return_value = confirmed(
            make_appointment, payment_status=PaymentStatus.PAID_COMPLETE, payment_id="pi_1"
        )

        with pytest.raises(BookingValidationError):
            await payment_service.mark_paid(1, "pi_2", "advance")


class TestConfirmPayment:
    @pytest.mark.asyncio
    async def test_intent_not_succeeded(self, patch_session, monkeypatch, client_user, make_appointment):
        session = patch_session(MODULE)
        session.get.return_value = confirmed(make_appointment)
        monkeypatch.setattr(
            stripe_client,
            "retrieve_payment_intent",
            AsyncMock(
                return_value={
                    "id": "pi_1",
                    "status": "processing",
                    "amount": 6000,
                    "metadata": {"appointment_id": "1"},
                    "payment_method_types": ["card"],
                }
            ),
        )

        with pytest.raises(BookingValidationError, match="processing"):
            await payment_service.confirm_payment(client_user, 1, "pi_1")

    @pytest.mark.asyncio
    async def test_intent_for_other_appointment(
        self, patch_session, monkeypatch, client_user, make_appointment
    ):
        session = patch_session(MODULE)
        session.get.return_value = confirmed(make_appointment)
        monkeypatch.setattr(
            stripe_client,
            "retrieve_payment_intent",
            AsyncMock(
                return_value={
                    "id": "pi_1",
                    "status": "succeeded",
                    "amount": 6000,
                    "metadata": {"appointment_id": "42"},
                    "payment_method_types": ["card"],
                }
            ),
        )

        with pytest.raises(BookingValidationError, match="does not belong"):
            await payment_service.confirm_payment(client_user, 1, "pi_1")


class TestWebhookHandlers:
    @pytest.mark.asyncio
    async def test_succeeded_marks_paid(self, monkeypatch):
        mark_paid = AsyncMock(return_value={})
        monkeypatch.setattr(f"{MODULE}.mark_paid", mark_paid)
        intent = {
            "id": "pi_9",
            "metadata": {"appointment_id": "7", "payment_type": "advance", "using_connect": "true"},
            "payment_method_types": ["card", "samsung_pay"],
        }

        assert await payment_service.handle_payment_succeeded(intent, "evt_1") is True
        mark_paid.assert_awaited_once_with(
            7,
            "pi_9",
            payment_type="advance",
            using_connect=True,
            payment_method=PaymentMethod.SAMSUNG_PAY,
        )

    @pytest.mark.asyncio
    async def test_succeeded_without_metadata_is_ignored(self, monkeypatch):
        mark_paid = AsyncMock()
        monkeypatch.setattr(f"{MODULE}.mark_paid", mark_paid)

        assert await payment_service.handle_payment_succeeded({"id": "pi_9", "metadata": {}}) is False
        mark_paid.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_succeeded_for_cancelled_appointment_is_ignored(self, monkeypatch):
        monkeypatch.setattr(
            f"{MODULE}.mark_paid",
            AsyncMock(side_effect=BookingValidationError("not confirmed")),
        )
        intent = {"id": "pi_9", "metadata": {"appointment_id": "7"}}

        assert await payment_service.handle_payment_succeeded(intent, "evt_1") is False

    def test_failed_only_logs(self, caplog):
        intent = {
            "id": "pi_9",
            "metadata": {"appointment_id": "7"},
            "last_payment_error": {"message": "Your card was declined."},
        }

        with caplog.at_level("WARNING"):
            payment_service.handle_payment_failed(intent, "evt_2")

        assert "card was declined" in caplog.text


class TestStripeClientErrors:
    @pytest.mark.asyncio
    async def test_stripe_error_becomes_provider_error(self, monkeypatch):
        monkeypatch.setattr(
            stripe.PaymentIntent,
            "retrieve",
            MagicMock(side_effect=stripe.InvalidRequestError("No such payment_intent", "id")),
        )

        with pytest.raises(PaymentProviderError):
            await stripe_client.retrieve_payment_intent("pi_missing")
