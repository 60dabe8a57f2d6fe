"""
Redis client singleton for session-token revocation and rate limiting.

Key patterns:
    - token_blacklist:{jti}          revoked session tokens (TTL = token lifetime left)
    - rate_limit:{ip}:{minute}       request counters per IP
    - login_attempts:{ip}:{window}   login attempt counters per IP
"""

import logging
import time
from functools import lru_cache

import redis.asyncio as redis
from redis import ConnectionError as RedisConnectionError

from shared.config import get_settings

logger = logging.getLogger(__name__)

TOKEN_BLACKLIST_PREFIX = "token_blacklist"


@lru_cache
def get_redis_client() -> "redis.Redis[str]":
    """
    Get cached Redis client instance.

    Connection pooling with retry on timeout and periodic health checks.
    The client connects lazily, so creating it never touches the network.
    """
    settings = get_settings()

    try:
        client = redis.from_url(
            settings.REDIS_URL,
            max_connections=20,
            decode_responses=True,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        logger.info(f"Redis client initialized: {settings.REDIS_URL}")
        return client

    except RedisConnectionError as e:
        logger.error(f"Redis connection failed: {e}", exc_info=True)
        raise


async def is_token_blacklisted(jti: str) -> bool:
    """Check if a session token id has been revoked."""
    try:
        client = get_redis_client()
        result = await client.get(f"{TOKEN_BLACKLIST_PREFIX}:{jti}")
        return result is not None
    except Exception as e:
        logger.error(f"Error checking token blacklist: {e}")
        # Fail open on Redis errors to avoid blocking all requests
        return False


async def blacklist_token(jti: str, exp: int) -> bool:
    """
    Revoke a session token until it would have expired anyway.

    Returns:
        True if stored, False when the token is already expired or Redis failed
    """
    try:
        client = get_redis_client()
        ttl = max(0, exp - int(time.time()))
        if ttl > 0:
            await client.setex(f"{TOKEN_BLACKLIST_PREFIX}:{jti}", ttl, "1")
            logger.info(f"Token {jti[:8]}... added to blacklist (TTL: {ttl}s)")
            return True
        return False
    except Exception as e:
        logger.error(f"Error adding token to blacklist: {e}")
        return False


async def close_redis_client() -> None:
    """Close Redis connection gracefully on shutdown."""
    try:
        client = get_redis_client()
        await client.aclose()
        logger.info("Redis client closed")
    except Exception as e:
        logger.warning(f"Error closing Redis client: {e}")
