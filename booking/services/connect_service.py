"""
Stripe Connect onboarding for professionals.

A professional needs a verified express account to receive appointment
payments directly (see payment_service.initiate_payment).
"""

import logging
from typing import Any

from booking.errors import BookingValidationError
from booking.roles import require_professional, role_for
from booking.services.user_service import get_user
from database.connection import get_async_session
from database.models import User
from shared import stripe_client

logger = logging.getLogger(__name__)


def is_account_verified(account: dict[str, Any]) -> bool:
    return bool(
        account.get("charges_enabled")
        and account.get("details_submitted")
        and account.get("payouts_enabled")
    )


async def create_account(actor: User) -> dict[str, Any]:
    """
    Create the express account if missing and return an onboarding link.

    Raises:
        AuthorizationError: Actor is not a professional
        PaymentProviderError: Stripe failure
    """
    require_professional(role_for(actor), "create payout accounts")

    async with get_async_session() as session:
        user = await get_user(session, actor.id)
        if not user.stripe_account_id:
            user.stripe_account_id = await stripe_client.create_express_account(
                email=user.email, user_id=user.id
            )
            user.stripe_account_verified = False
            await session.commit()
        account_id = user.stripe_account_id

    url = await stripe_client.create_account_link(account_id)
    return {"account_id": account_id, "url": url}


async def get_account_status(actor: User) -> dict[str, Any]:
    """Refresh and persist the verification flag from Stripe."""
    require_professional(role_for(actor), "check payout accounts")

    async with get_async_session() as session:
        user = await get_user(session, actor.id)
        if not user.stripe_account_id:
            return {"has_account": False, "verified": False}

        account = await stripe_client.retrieve_account(user.stripe_account_id)
        verified = is_account_verified(account)
        if verified != user.stripe_account_verified:
            user.stripe_account_verified = verified
            await session.commit()
            logger.info(
                f"Connect account {account['id']} verified={verified}",
                extra={"user_id": user.id},
            )

    return {
        "has_account": True,
        "account_id": account["id"],
        "verified": verified,
        "charges_enabled": account["charges_enabled"],
        "payouts_enabled": account["payouts_enabled"],
        "details_submitted": account["details_submitted"],
        "requirements": account["currently_due"],
    }


async def create_onboarding_link(actor: User) -> dict[str, Any]:
    """
    Raises:
        BookingValidationError: No account yet
    """
    require_professional(role_for(actor), "manage payout accounts")
    if not actor.stripe_account_id:
        raise BookingValidationError("Create a payout account first")
    return {"url": await stripe_client.create_account_link(actor.stripe_account_id)}


def check_requirement(actor: User) -> dict[str, Any]:
    """Whether the professional still needs Connect onboarding."""
    require_professional(role_for(actor), "manage payout accounts")
    return {
        "requires_onboarding": not (actor.stripe_account_id and actor.stripe_account_verified),
        "has_account": bool(actor.stripe_account_id),
        "verified": bool(actor.stripe_account_verified),
    }
