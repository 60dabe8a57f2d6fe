"""
Seed data script for discount codes.

Populates the launch discount codes for subscription checkout.
Can be run standalone: python -m database.seeds.discount_codes
"""

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.dialects.postgresql import insert

from database.connection import get_async_session
from database.models import DiscountAudience, DiscountCode, DiscountRestriction, DiscountType

logger = logging.getLogger(__name__)

DISCOUNT_CODES: list[dict[str, Any]] = [
    {
        "code": "WELCOME10",
        "discount_type": DiscountType.PERCENTAGE,
        "value": 10,
        "description": "10% de descuento para nuevos usuarios",
        "valid_until": datetime(2026, 12, 31, 23, 59, 59, tzinfo=UTC),
        "max_uses": None,
        "min_amount": None,
        "applicable_to": DiscountAudience.ALL,
        "user_restriction": DiscountRestriction.NEW_USERS,
    },
    {
        "code": "FREEMONTH",
        "discount_type": DiscountType.FREE_MONTHS,
        "value": 1,
        "description": "Primer mes gratis",
        "valid_until": None,
        "max_uses": None,
        "min_amount": None,
        "applicable_to": DiscountAudience.ALL,
        "user_restriction": None,
    },
    {
        "code": "REFER20",
        "discount_type": DiscountType.PERCENTAGE,
        "value": 20,
        "description": "20% de descuento por referido",
        "valid_until": None,
        "max_uses": None,
        "min_amount": None,
        "applicable_to": DiscountAudience.ALL,
        "user_restriction": DiscountRestriction.REFERRAL,
    },
    {
        "code": "PREMIUM50",
        "discount_type": DiscountType.PERCENTAGE,
        "value": 50,
        "description": "50% en planes premium",
        "valid_until": None,
        "max_uses": None,
        "min_amount": 4000,
        "applicable_to": DiscountAudience.ALL,
        "user_restriction": None,
    },
]


async def seed_discount_codes() -> int:
    """
    Upsert the launch discount codes keyed by code.

    used_count and is_active are left untouched on conflict so re-seeding
    does not reset usage or re-enable a disabled code.

    Returns:
        Number of codes written
    """
    async with get_async_session() as session:
        for data in DISCOUNT_CODES:
            stmt = insert(DiscountCode).values(**data, used_count=0, is_active=True)
            stmt = stmt.on_conflict_do_update(
                index_elements=["code"],
                set_={
                    "discount_type": stmt.excluded.discount_type,
                    "value": stmt.excluded.value,
                    "description": stmt.excluded.description,
                    "valid_until": stmt.excluded.valid_until,
                    "max_uses": stmt.excluded.max_uses,
                    "min_amount": stmt.excluded.min_amount,
                    "applicable_to": stmt.excluded.applicable_to,
                    "user_restriction": stmt.excluded.user_restriction,
                },
            )
            await session.execute(stmt)
            logger.info(f"Seeded discount code {data['code']}")

        await session.commit()

    return len(DISCOUNT_CODES)


if __name__ == "__main__":
    asyncio.run(seed_discount_codes())
