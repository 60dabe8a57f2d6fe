"""Stripe webhook route handler."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.middleware.signature_validation import validate_stripe_signature
from api.models.stripe_webhook import StripeWebhookEvent
from booking.services import payment_service, subscription_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhooks"])

PROCESSED_EVENT_TYPES = {
    "payment_intent.succeeded",
    "payment_intent.payment_failed",
    "checkout.session.completed",
    "invoice.payment_succeeded",
    "customer.subscription.deleted",
}


@router.post("/stripe")
async def receive_stripe_webhook(
    raw_event: dict[str, Any] = Depends(validate_stripe_signature),
) -> JSONResponse:
    """
    Receive signature-verified Stripe events and apply them.

    Unhandled event types and events that reference unknown records are
    acknowledged with 200 so Stripe does not retry them.

    Raises:
        HTTPException: 400 if the event envelope is malformed
    """
    try:
        event = StripeWebhookEvent.model_validate(raw_event)
    except ValidationError as e:
        logger.error(f"Malformed Stripe event: {e}")
        raise HTTPException(status_code=400, detail="Malformed event") from e

    if event.type not in PROCESSED_EVENT_TYPES:
        logger.debug(f"Ignoring Stripe event type: {event.type}")
        return JSONResponse(status_code=200, content={"status": "ignored"})

    payload = event.payload
    match event.type:
        case "payment_intent.succeeded":
            handled = await payment_service.handle_payment_succeeded(payload, event.id)
        case "payment_intent.payment_failed":
            payment_service.handle_payment_failed(payload, event.id)
            handled = True
        case "checkout.session.completed":
            handled = await subscription_service.handle_checkout_completed(payload)
        case "invoice.payment_succeeded":
            handled = await subscription_service.handle_invoice_paid(payload)
        case "customer.subscription.deleted":
            handled = await subscription_service.handle_subscription_deleted(payload)
        case _:
            handled = False

    logger.info(
        f"Stripe event processed: type={event.type}, handled={handled}",
        extra={"stripe_event_id": event.id},
    )
    return JSONResponse(
        status_code=200,
        content={"status": "processed" if handled else "ignored"},
    )
