"""
Startup configuration validation module.

Catches misconfiguration at boot (fail-fast) instead of on the first request
that needs the missing secret.

Usage:
    from shared.startup_validator import validate_startup_config, StartupValidationError

    @app.on_event("startup")
    async def startup():
        await validate_startup_config()
"""

import logging

from sqlalchemy import text

from shared.config import get_settings

logger = logging.getLogger(__name__)

MIN_JWT_SECRET_LENGTH = 32


class StartupValidationError(Exception):
    """Raised when critical startup validation fails."""

    pass


async def validate_startup_config() -> dict[str, bool]:
    """
    Validate configuration at startup.

    Tiers:
    - TIER 1 (CRITICAL): session signing secret and database URL; block startup
    - TIER 2 (IMPORTANT): Stripe and OpenAI keys, Redis reachability; warn only

    Returns:
        dict of {check_name: passed}

    Raises:
        StartupValidationError: If any CRITICAL check fails
    """
    settings = get_settings()
    results: dict[str, bool] = {}
    critical_failures: list[str] = []

    # =========================================================================
    # TIER 1: CRITICAL
    # =========================================================================

    if len(settings.JWT_SECRET) < MIN_JWT_SECRET_LENGTH:
        critical_failures.append(
            f"JWT_SECRET must be at least {MIN_JWT_SECRET_LENGTH} characters - "
            "generate one with: openssl rand -hex 32"
        )
        results["jwt_secret"] = False
    else:
        results["jwt_secret"] = True
        logger.info("  [OK] JWT secret configured")

    if not settings.DATABASE_URL.startswith("postgresql+asyncpg://"):
        critical_failures.append(
            "DATABASE_URL must use the asyncpg driver: postgresql+asyncpg://..."
        )
        results["database_url_format"] = False
    else:
        results["database_url_format"] = True

    # =========================================================================
    # TIER 2: IMPORTANT (warn but allow startup)
    # =========================================================================

    if settings.STRIPE_SECRET_KEY == "sk_test_placeholder":
        logger.warning("  [WARN] STRIPE_SECRET_KEY is placeholder - payments will fail")
        results["stripe_secret_key"] = False
    else:
        results["stripe_secret_key"] = True
        logger.info("  [OK] Stripe secret key configured")

    if settings.STRIPE_WEBHOOK_SECRET == "whsec_placeholder":
        logger.warning("  [WARN] STRIPE_WEBHOOK_SECRET is placeholder - webhooks will be rejected")
        results["stripe_webhook_secret"] = False
    else:
        results["stripe_webhook_secret"] = True

    if settings.OPENAI_API_KEY == "sk-placeholder":
        logger.warning("  [WARN] OPENAI_API_KEY is placeholder - AI assistant will use fallback")
        results["openai_api_key"] = False
    else:
        results["openai_api_key"] = True
        logger.info("  [OK] OpenAI API key configured")

    try:
        from shared.redis_client import get_redis_client

        await get_redis_client().ping()
        results["redis"] = True
        logger.info("  [OK] Redis reachable")
    except Exception as e:
        logger.warning(f"  [WARN] Redis unreachable ({e}) - rate limiting and logout revocation degraded")
        results["redis"] = False

    # =========================================================================
    # Summary and result
    # =========================================================================

    passed = sum(1 for v in results.values() if v)
    logger.info(f"Startup validation: {passed}/{len(results)} checks passed")

    if critical_failures:
        logger.critical("=" * 60)
        logger.critical("STARTUP BLOCKED - Critical configuration errors:")
        for i, failure in enumerate(critical_failures, 1):
            logger.critical(f"  {i}. {failure}")
        logger.critical("=" * 60)
        raise StartupValidationError(
            f"Critical startup validation failed ({len(critical_failures)} errors): "
            f"{'; '.join(critical_failures)}"
        )

    return results


async def validate_database_connection() -> bool:
    """
    Check the database answers a trivial query.

    Returns:
        True if database connection successful, False otherwise
    """
    try:
        from database.connection import get_async_session

        async with get_async_session() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()

        logger.info("  [OK] Database connection successful")
        return True

    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
