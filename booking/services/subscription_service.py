"""
Subscription plans and Stripe subscription lifecycle.

Plans (monthly, cents):
    client:        basic 0,    premium 1500
    professional:  basic 2500, premium 4999

The free plan is activated directly; paid plans go through Stripe Checkout
and are activated by the checkout.session.completed webhook. Expiry is kept
on the user row and renewed by invoice.payment_succeeded.
"""

import logging
from datetime import datetime
from typing import Any

from dateutil.relativedelta import relativedelta
from sqlalchemy import select

from booking.errors import BookingValidationError
from booking.labels import label_for
from booking.services.discount_service import (
    apply_discount,
    get_valid_discount,
    record_discount_use,
)
from booking.services.user_service import get_user
from booking.utils.dates import now_utc
from database.connection import get_async_session
from database.models import DiscountType, SubscriptionType, User
from shared import stripe_client
from shared.config import get_settings

logger = logging.getLogger(__name__)

# (is_professional, plan) -> monthly price in cents
PLAN_PRICES = {
    (False, SubscriptionType.BASIC): 0,
    (False, SubscriptionType.PREMIUM): 1500,
    (True, SubscriptionType.BASIC): 2500,
    (True, SubscriptionType.PREMIUM): 4999,
}

FREE_PLAN_SESSION_ID = "free_plan"


def parse_plan(plan: SubscriptionType | str) -> SubscriptionType:
    try:
        return SubscriptionType(plan)
    except ValueError as e:
        raise BookingValidationError(f"Invalid plan: {plan}") from e


def plan_price(is_professional: bool, plan: SubscriptionType | str) -> int:
    return PLAN_PRICES[(is_professional, parse_plan(plan))]


def has_active_subscription(user: User, now: datetime) -> bool:
    """Clients always pass; professionals need an unexpired subscription."""
    if not user.is_professional:
        return True
    return (
        user.subscription_type is not None
        and user.subscription_expiry is not None
        and user.subscription_expiry > now
    )


def _next_expiry() -> datetime:
    return now_utc() + relativedelta(months=1)


async def create_checkout_session(
    actor: User,
    plan: SubscriptionType | str,
    return_url: str | None = None,
    discount_code: str | None = None,
) -> dict[str, Any]:
    """
    Start a subscription purchase.

    Returns:
        {"session_id": "free_plan", "url": None} for a free plan, otherwise the
        Stripe Checkout session id and url

    Raises:
        BookingValidationError: Invalid plan or discount code
        PaymentProviderError: Stripe failure
    """
    plan = parse_plan(plan)
    amount = plan_price(actor.is_professional, plan)
    settings = get_settings()
    return_path = return_url or "/profile?tab=subscription"

    async with get_async_session() as session:
        user = await get_user(session, actor.id)

        if amount == 0:
            user.subscription_type = plan
            user.subscription_expiry = None
            await session.commit()
            logger.info(f"Free plan activated for user {user.id}", extra={"user_id": user.id})
            return {"session_id": FREE_PLAN_SESSION_ID, "url": None}

        coupon_id = None
        if discount_code:
            discount = await get_valid_discount(session, discount_code, amount, user)
            if discount.discount_type == DiscountType.FREE_MONTHS:
                coupon_id = await stripe_client.create_coupon(
                    percent_off=100, duration_in_months=discount.value, name=discount.code
                )
            elif discount.discount_type == DiscountType.FIXED:
                coupon_id = await stripe_client.create_coupon(
                    amount_off_cents=amount - apply_discount(discount.discount_type, discount.value, amount),
                    name=discount.code,
                )
            else:
                coupon_id = await stripe_client.create_coupon(
                    percent_off=discount.value, name=discount.code
                )
            record_discount_use(discount)

        if not user.stripe_customer_id:
            user.stripe_customer_id = await stripe_client.create_customer(
                email=user.email, name=user.full_name, user_id=user.id
            )

        checkout = await stripe_client.create_subscription_checkout(
            customer_id=user.stripe_customer_id,
            amount_cents=amount,
            product_name=f"Plan {label_for(plan)}",
            metadata={"user_id": str(user.id), "plan": plan.value},
            success_url=f"{settings.PUBLIC_URL}{return_path}",
            cancel_url=f"{settings.PUBLIC_URL}{return_path}",
            coupon_id=coupon_id,
        )
        await session.commit()

    return {"session_id": checkout["id"], "url": checkout["url"]}


async def downgrade_to_basic(actor: User, plan: SubscriptionType | str) -> dict[str, Any]:
    """
    Direct plan change; only basic is allowed without payment.

    Raises:
        BookingValidationError: Requested plan requires payment
    """
    if parse_plan(plan) != SubscriptionType.BASIC:
        raise BookingValidationError("Upgrading to this plan requires payment")

    async with get_async_session() as session:
        user = await get_user(session, actor.id)
        if user.stripe_customer_id:
            for subscription_id in await stripe_client.list_active_subscriptions(user.stripe_customer_id):
                await stripe_client.cancel_subscription_at_period_end(subscription_id)
        user.subscription_type = SubscriptionType.BASIC
        user.subscription_expiry = None
        await session.commit()

    logger.info(f"User {actor.id} moved to basic plan", extra={"user_id": actor.id})
    return {"success": True, "plan": SubscriptionType.BASIC.value}


async def cancel_subscription(actor: User) -> dict[str, Any]:
    """
    Cancel the most recent active Stripe subscription at period end.

    Raises:
        BookingValidationError: No paid subscription to cancel
        PaymentProviderError: Stripe failure
    """
    if actor.subscription_type in (None, SubscriptionType.BASIC) or not actor.stripe_customer_id:
        raise BookingValidationError("No active subscription to cancel")

    subscription_ids = await stripe_client.list_active_subscriptions(actor.stripe_customer_id)
    if not subscription_ids:
        raise BookingValidationError("No active subscription to cancel")

    result = await stripe_client.cancel_subscription_at_period_end(subscription_ids[0])
    return {"success": True, "cancel_at_period_end": result["cancel_at_period_end"]}


# =============================================================================
# Webhook handlers
# =============================================================================


async def handle_checkout_completed(checkout: dict[str, Any]) -> bool:
    """checkout.session.completed: activate the purchased plan for one month."""
    if checkout.get("mode") != "subscription":
        return False
    metadata = checkout.get("metadata") or {}
    if not metadata.get("user_id") or not metadata.get("plan"):
        logger.error(f"Checkout session {checkout.get('id')} is missing user_id/plan metadata")
        return False

    user_id = int(metadata["user_id"])
    async with get_async_session() as session:
        user = await session.get(User, user_id)
        if user is None:
            logger.error(f"Checkout session {checkout.get('id')} references unknown user {user_id}")
            return False
        user.subscription_type = parse_plan(metadata["plan"])
        user.subscription_expiry = _next_expiry()
        if checkout.get("customer") and not user.stripe_customer_id:
            user.stripe_customer_id = checkout["customer"]
        await session.commit()

    logger.info(f"Subscription {metadata['plan']} activated for user {user_id}", extra={"user_id": user_id})
    return True


async def _user_by_customer(session, customer_id: str | None) -> User | None:
    if not customer_id:
        return None
    result = await session.execute(select(User).where(User.stripe_customer_id == customer_id))
    return result.scalar_one_or_none()


async def handle_invoice_paid(invoice: dict[str, Any]) -> bool:
    """invoice.payment_succeeded: renew the expiry one month from now."""
    async with get_async_session() as session:
        user = await _user_by_customer(session, invoice.get("customer"))
        if user is None:
            logger.error(f"No user for Stripe customer {invoice.get('customer')}")
            return False
        user.subscription_expiry = _next_expiry()
        await session.commit()

    logger.info(f"Subscription renewed for user {user.id}", extra={"user_id": user.id})
    return True


async def handle_subscription_deleted(subscription: dict[str, Any]) -> bool:
    """customer.subscription.deleted: downgrade to basic."""
    async with get_async_session() as session:
        user = await _user_by_customer(session, subscription.get("customer"))
        if user is None:
            logger.error(f"No user for Stripe customer {subscription.get('customer')}")
            return False
        user.subscription_type = SubscriptionType.BASIC
        user.subscription_expiry = None
        await session.commit()

    logger.info(f"Subscription ended for user {user.id}, plan set to basic", extra={"user_id": user.id})
    return True
