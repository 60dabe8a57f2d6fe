"""
Seed data orchestration module.

Provides seed_all() to execute all seed scripts.
Can be run standalone: python -m database.seeds
"""

import logging

from database.seeds.discount_codes import seed_discount_codes

logger = logging.getLogger(__name__)


async def seed_all() -> None:
    """Execute all seed scripts in dependency order."""
    logger.info("Starting database seeding...")
    count = await seed_discount_codes()
    logger.info(f"Database seeding complete: {count} discount codes")
