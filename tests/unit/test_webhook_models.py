"""Unit tests for the Stripe webhook event model."""

import pytest
from pydantic import ValidationError

from api.models.stripe_webhook import StripeWebhookEvent


class TestStripeWebhookEvent:
    def test_valid_event_parses(self) -> None:
        event = StripeWebhookEvent(
            id="evt_1",
            type="checkout.session.completed",
            created=1717000000,
            data={"object": {"id": "cs_1", "mode": "subscription"}},
        )

        assert event.type == "checkout.session.completed"
        assert event.payload == {"id": "cs_1", "mode": "subscription"}

    def test_payload_defaults_to_empty_dict(self) -> None:
        event = StripeWebhookEvent(id="evt_1", type="ping", created=0, data={})
        assert event.payload == {}

    @pytest.mark.parametrize("missing", ["id", "type", "created", "data"])
    def test_required_fields(self, missing: str) -> None:
        fields = {"id": "evt_1", "type": "ping", "created": 0, "data": {}}
        fields.pop(missing)

        with pytest.raises(ValidationError):
            StripeWebhookEvent(**fields)
