"""Stripe webhook signature validation dependency."""

import json
import logging
from typing import Any

import stripe
from fastapi import HTTPException, Request
from stripe import SignatureVerificationError

from shared.config import get_settings

logger = logging.getLogger(__name__)


async def validate_stripe_signature(request: Request) -> dict[str, Any]:
    """
    Verify the Stripe-Signature header and return the event as a plain dict.

    Raises:
        HTTPException: 400 if the header is missing, the signature does not
            match or the payload is not a valid event
    """
    settings = get_settings()
    body = await request.body()

    signature_header: str | None = request.headers.get("Stripe-Signature")
    if not signature_header:
        logger.warning("Stripe webhook received without signature header")
        raise HTTPException(status_code=400, detail="Missing Stripe signature")

    try:
        stripe.Webhook.construct_event(
            payload=body,
            sig_header=signature_header,
            secret=settings.STRIPE_WEBHOOK_SECRET,
        )
    except SignatureVerificationError as e:
        logger.warning(f"Stripe signature verification failed: {e}")
        raise HTTPException(status_code=400, detail="Invalid Stripe signature") from e
    except ValueError as e:
        logger.warning(f"Stripe webhook payload is not valid JSON: {e}")
        raise HTTPException(status_code=400, detail="Invalid payload") from e

    # Parsed again from the raw body so handlers get plain dicts, not StripeObjects
    event = json.loads(body)
    logger.debug(f"Stripe signature validated: event_type={event.get('type')}")
    return event
