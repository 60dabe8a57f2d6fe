"""
Stripe API client for payment processing.

Thin wrappers over the Stripe SDK used by the payment, subscription and
Connect services:
- PaymentIntents for appointment payments (optionally routed to a Connect account)
- Customers, Coupons and Checkout Sessions for subscriptions
- Express accounts and onboarding links for Stripe Connect

Every call goes through the ``stripe`` circuit breaker. Stripe failures and an
open circuit are logged and re-raised as PaymentProviderError so routes map
them to 502.
"""

import logging
from typing import Any, Callable

import pybreaker
import stripe

from booking.errors import PaymentProviderError
from shared.circuit_breaker import stripe_breaker
from shared.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Initialize Stripe with API key (use secret key for server-side operations)
stripe.api_key = settings.STRIPE_SECRET_KEY


def _call(operation: str, func: Callable[..., Any], *args, **kwargs) -> Any:
    try:
        return stripe_breaker.call(func, *args, **kwargs)
    except pybreaker.CircuitBreakerError as e:
        logger.error(f"Stripe circuit open, skipping {operation}")
        raise PaymentProviderError("Payment provider temporarily unavailable") from e
    except stripe.StripeError as e:
        logger.error(f"Stripe API error during {operation}: {e.user_message or str(e)}")
        raise PaymentProviderError(e.user_message or f"Payment provider error during {operation}") from e


# =============================================================================
# Payment Intents
# =============================================================================


async def create_payment_intent(
    amount_cents: int,
    metadata: dict[str, str],
    destination_account: str | None = None,
    application_fee_cents: int | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    """
    Create a PaymentIntent for an appointment.

    When destination_account is given the funds are transferred to that
    Connect account and application_fee_cents stays with the platform.

    Returns:
        dict with id, client_secret, amount, currency, status
    """
    params: dict[str, Any] = {
        "amount": amount_cents,
        "currency": settings.CURRENCY,
        "metadata": metadata,
        "automatic_payment_methods": {"enabled": True},
    }
    if description:
        params["description"] = description
    if destination_account:
        params["transfer_data"] = {"destination": destination_account}
        if application_fee_cents:
            params["application_fee_amount"] = application_fee_cents

    intent = _call("create_payment_intent", stripe.PaymentIntent.create, **params)
    logger.info(
        f"PaymentIntent created: {intent.id}, amount: {amount_cents} cents, "
        f"connect={'yes' if destination_account else 'no'}",
        extra={"appointment_id": metadata.get("appointment_id")},
    )
    return {
        "id": intent.id,
        "client_secret": intent.client_secret,
        "amount": intent.amount,
        "currency": intent.currency,
        "status": intent.status,
    }


async def retrieve_payment_intent(payment_intent_id: str) -> dict[str, Any]:
    """
    Returns:
        dict with id, status, amount, metadata (plain dict), payment_method_types
    """
    intent = _call("retrieve_payment_intent", stripe.PaymentIntent.retrieve, payment_intent_id)
    return {
        "id": intent.id,
        "status": intent.status,
        "amount": intent.amount,
        "metadata": dict(intent.metadata or {}),
        "payment_method_types": list(intent.payment_method_types or []),
    }


# =============================================================================
# Customers, Coupons and Checkout (subscriptions)
# =============================================================================


async def create_customer(email: str, name: str, user_id: int) -> str:
    """Create a Stripe customer and return its id."""
    customer = _call(
        "create_customer",
        stripe.Customer.create,
        email=email,
        name=name,
        metadata={"user_id": str(user_id)},
    )
    logger.info(f"Stripe customer created: {customer.id}", extra={"user_id": user_id})
    return customer.id


async def create_coupon(
    percent_off: float | None = None,
    amount_off_cents: int | None = None,
    duration_in_months: int | None = None,
    name: str | None = None,
) -> str:
    """
    Create a coupon for a single checkout.

    duration_in_months makes it a repeating coupon (free months); otherwise it
    applies once.
    """
    params: dict[str, Any] = {"name": name} if name else {}
    if amount_off_cents is not None:
        params.update({"amount_off": amount_off_cents, "currency": settings.CURRENCY})
    else:
        params["percent_off"] = percent_off
    if duration_in_months:
        params.update({"duration": "repeating", "duration_in_months": duration_in_months})
    else:
        params["duration"] = "once"

    coupon = _call("create_coupon", stripe.Coupon.create, **params)
    return coupon.id


async def create_subscription_checkout(
    customer_id: str,
    amount_cents: int,
    product_name: str,
    metadata: dict[str, str],
    success_url: str,
    cancel_url: str,
    coupon_id: str | None = None,
) -> dict[str, Any]:
    """
    Create a monthly subscription Checkout Session with an ad-hoc price.

    Returns:
        dict with id and url
    """
    params: dict[str, Any] = {
        "customer": customer_id,
        "mode": "subscription",
        "line_items": [
            {
                "price_data": {
                    "currency": settings.CURRENCY,
                    "unit_amount": amount_cents,
                    "recurring": {"interval": "month"},
                    "product_data": {"name": product_name},
                },
                "quantity": 1,
            }
        ],
        "metadata": metadata,
        "success_url": success_url,
        "cancel_url": cancel_url,
    }
    if coupon_id:
        params["discounts"] = [{"coupon": coupon_id}]

    session = _call("create_subscription_checkout", stripe.checkout.Session.create, **params)
    logger.info(
        f"Checkout session created: {session.id} for customer {customer_id}",
        extra={"user_id": metadata.get("user_id")},
    )
    return {"id": session.id, "url": session.url}


async def list_active_subscriptions(customer_id: str) -> list[str]:
    """Ids of the customer's active subscriptions, most recent first."""
    subscriptions = _call(
        "list_subscriptions",
        stripe.Subscription.list,
        customer=customer_id,
        status="active",
        limit=10,
    )
    items = sorted(subscriptions.data, key=lambda s: s.created, reverse=True)
    return [s.id for s in items]


async def cancel_subscription_at_period_end(subscription_id: str) -> dict[str, Any]:
    subscription = _call(
        "cancel_subscription",
        stripe.Subscription.modify,
        subscription_id,
        cancel_at_period_end=True,
    )
    logger.info(f"Subscription {subscription_id} set to cancel at period end")
    return {
        "id": subscription.id,
        "cancel_at_period_end": subscription.cancel_at_period_end,
        "current_period_end": subscription.current_period_end,
    }


# =============================================================================
# Connect (professional payouts)
# =============================================================================


async def create_express_account(email: str, user_id: int) -> str:
    account = _call(
        "create_express_account",
        stripe.Account.create,
        type="express",
        country=settings.STRIPE_CONNECT_COUNTRY,
        email=email,
        capabilities={
            "card_payments": {"requested": True},
            "transfers": {"requested": True},
        },
        metadata={"user_id": str(user_id)},
    )
    logger.info(f"Connect account created: {account.id}", extra={"user_id": user_id})
    return account.id


async def create_account_link(account_id: str) -> str:
    """Onboarding link; refresh/return URLs point back to the frontend."""
    link = _call(
        "create_account_link",
        stripe.AccountLink.create,
        account=account_id,
        refresh_url=f"{settings.PUBLIC_URL}/professional/payments?refresh=true",
        return_url=f"{settings.PUBLIC_URL}/professional/payments?success=true",
        type="account_onboarding",
    )
    return link.url


async def retrieve_account(account_id: str) -> dict[str, Any]:
    account = _call("retrieve_account", stripe.Account.retrieve, account_id)
    requirements = getattr(account, "requirements", None)
    return {
        "id": account.id,
        "charges_enabled": bool(account.charges_enabled),
        "payouts_enabled": bool(account.payouts_enabled),
        "details_submitted": bool(account.details_submitted),
        "currently_due": list(getattr(requirements, "currently_due", None) or []),
    }
