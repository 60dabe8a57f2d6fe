"""Pydantic models for Stripe webhook payloads."""

from typing import Any

from pydantic import BaseModel


class StripeWebhookEvent(BaseModel):
    """Stripe webhook event envelope."""

    type: str
    data: dict[str, Any]
    id: str
    created: int

    @property
    def payload(self) -> dict[str, Any]:
        """The event's data.object."""
        return self.data.get("object") or {}
