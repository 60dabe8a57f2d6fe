"""
Discount codes for subscription checkout.

Codes live in the discount_codes table (seeded by database/seeds). The rule
check and the price computation are pure functions; the async helpers load
the code and record its use inside the caller's unit of work.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking.errors import BookingValidationError
from booking.utils.dates import now_utc
from booking.utils.money import format_price
from database.connection import get_async_session
from database.models import (
    DiscountAudience,
    DiscountCode,
    DiscountRestriction,
    DiscountType,
    User,
)

logger = logging.getLogger(__name__)

# Accounts younger than this count as new users
NEW_USER_WINDOW = timedelta(days=30)


def apply_discount(discount_type: DiscountType, value: int, amount: int) -> int:
    """
    Final amount in cents after the discount.

    Examples:
        apply_discount(DiscountType.PERCENTAGE, 10, 2500)  # 2250
        apply_discount(DiscountType.FIXED, 3000, 2500)     # 0
    """
    match DiscountType(discount_type):
        case DiscountType.PERCENTAGE:
            return round(amount * (1 - value / 100))
        case DiscountType.FIXED:
            return max(0, amount - value)
        case DiscountType.FREE_MONTHS:
            return 0


def discount_rejection_reason(
    discount: DiscountCode,
    amount: int,
    is_professional: bool,
    user_created_at: datetime | None,
    now: datetime,
) -> str | None:
    """Why the code cannot be used, or None when it applies."""
    if not discount.is_active:
        return "Discount code is not active"
    if discount.valid_until is not None and now > discount.valid_until:
        return "Discount code has expired"
    if discount.max_uses is not None and discount.used_count >= discount.max_uses:
        return "Discount code has reached its usage limit"
    if discount.min_amount is not None and amount < discount.min_amount:
        return f"Minimum amount for this code is {format_price(discount.min_amount)}"

    audience = DiscountAudience(discount.applicable_to)
    if audience == DiscountAudience.CLIENT and is_professional:
        return "Discount code is only valid for clients"
    if audience == DiscountAudience.PROFESSIONAL and not is_professional:
        return "Discount code is only valid for professionals"

    if discount.user_restriction == DiscountRestriction.NEW_USERS:
        if user_created_at is None or now - user_created_at > NEW_USER_WINDOW:
            return "Discount code is only valid for new users"
    return None


async def get_valid_discount(
    session: AsyncSession,
    code: str,
    amount: int,
    user: User,
) -> DiscountCode:
    """
    Raises:
        BookingValidationError: Unknown code or a rule fails
    """
    result = await session.execute(
        select(DiscountCode).where(func.upper(DiscountCode.code) == code.strip().upper())
    )
    discount = result.scalar_one_or_none()
    if discount is None:
        raise BookingValidationError("Invalid discount code")

    reason = discount_rejection_reason(
        discount, amount, user.is_professional, user.created_at, now_utc()
    )
    if reason:
        raise BookingValidationError(reason)
    return discount


def record_discount_use(discount: DiscountCode) -> None:
    """Increment used_count on the caller's session."""
    discount.used_count = (discount.used_count or 0) + 1
    logger.info(f"Discount code {discount.code} used ({discount.used_count} uses)")


async def validate_discount(user: User, code: str, amount: int) -> dict[str, Any]:
    """
    Preview a discount for the given amount without consuming it.

    Raises:
        BookingValidationError: Invalid code, amount or rule violation
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise BookingValidationError("amount must be a non-negative integer in cents")

    async with get_async_session() as session:
        discount = await get_valid_discount(session, code, amount, user)

    final_amount = apply_discount(discount.discount_type, discount.value, amount)
    return {
        "valid": True,
        "code": discount.code,
        "description": discount.description,
        "discount_type": discount.discount_type.value,
        "value": discount.value,
        "original_amount": amount,
        "final_amount": final_amount,
        "discount_amount": amount - final_amount,
        "final_amount_display": format_price(final_amount),
    }
