"""Unit tests for Stripe webhook signature validation."""

import hashlib
import hmac
import json
import time
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException, Request

from api.middleware.signature_validation import validate_stripe_signature

SECRET = "whsec_test_secret"


def sign(body: bytes, secret: str = SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    timestamp = timestamp or int(time.time())
    signed_payload = f"{timestamp}.".encode() + body
    signature = hmac.new(secret.encode(), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def mock_request(body: bytes, headers: dict) -> AsyncMock:
    request = AsyncMock(spec=Request)
    request.body = AsyncMock(return_value=body)
    request.headers = headers
    return request


@pytest.fixture
def webhook_secret():
    with patch("api.middleware.signature_validation.get_settings") as mock_settings:
        mock_settings.return_value.STRIPE_WEBHOOK_SECRET = SECRET
        yield


class TestStripeSignatureValidation:
    @pytest.mark.asyncio
    async def test_valid_signature_returns_plain_dict(self, webhook_secret):
        event = {
            "id": "evt_1",
            "type": "payment_intent.succeeded",
            "created": 1717000000,
            "data": {"object": {"id": "pi_1", "metadata": {"appointment_id": "3"}}},
        }
        body = json.dumps(event).encode()

        result = await validate_stripe_signature(mock_request(body, {"Stripe-Signature": sign(body)}))

        assert result == event
        assert type(result["data"]["object"]) is dict

    @pytest.mark.asyncio
    async def test_wrong_secret_returns_400(self, webhook_secret):
        body = b'{"id":"evt_1","type":"payment_intent.succeeded"}'
        header = sign(body, secret="whsec_other")

        with pytest.raises(HTTPException) as exc_info:
            await validate_stripe_signature(mock_request(body, {"Stripe-Signature": header}))

        assert exc_info.value.status_code == 400
        assert "Invalid Stripe signature" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_tampered_body_returns_400(self, webhook_secret):
        body = b'{"id":"evt_1","type":"payment_intent.succeeded"}'
        header = sign(body)

        with pytest.raises(HTTPException) as exc_info:
            await validate_stripe_signature(
                mock_request(body.replace(b"evt_1", b"evt_2"), {"Stripe-Signature": header})
            )

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_expired_timestamp_returns_400(self, webhook_secret):
        body = b'{"id":"evt_1","type":"payment_intent.succeeded"}'
        header = sign(body, timestamp=int(time.time()) - 3600)

        with pytest.raises(HTTPException) as exc_info:
            await validate_stripe_signature(mock_request(body, {"Stripe-Signature": header}))

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_header_returns_400(self, webhook_secret):
        with pytest.raises(HTTPException) as exc_info:
            await validate_stripe_signature(mock_request(b"{}", {}))

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Missing Stripe signature"

    @pytest.mark.asyncio
    async def test_non_json_payload_returns_400(self, webhook_secret):
        body = b"not json"

        with pytest.raises(HTTPException) as exc_info:
            await validate_stripe_signature(mock_request(body, {"Stripe-Signature": sign(body)}))

        assert exc_info.value.status_code == 400
