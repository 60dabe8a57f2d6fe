"""Rate limiting middleware using Redis."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware

from shared.config import get_settings
from shared.redis_client import get_redis_client

logger = logging.getLogger(__name__)

RATE_LIMIT_WINDOW_SECONDS = 60

# Login is stricter: brute force protection
LOGIN_PATH = "/api/auth/login"
LOGIN_RATE_LIMIT_MAX_ATTEMPTS = 5
LOGIN_RATE_LIMIT_WINDOW_SECONDS = 300

EXEMPT_PATHS = {"/health", "/"}
EXEMPT_PREFIXES = ("/webhook/",)


def client_ip_for(request: Request, trust_proxy_headers: bool = False) -> str:
    """Socket peer, or the first X-Forwarded-For hop when proxy headers are trusted."""
    forwarded_for = request.headers.get("x-forwarded-for") if trust_proxy_headers else None
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Per-IP fixed-window rate limiting backed by Redis counters (one bucket
    per minute, five minutes for login).

    Returns 429 when a window's budget is spent. Redis failures fail open.
    Webhooks are exempt because Stripe retries on 429.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        path = request.url.path
        if (
            not settings.RATE_LIMIT_ENABLED
            or request.method == "OPTIONS"
            or path in EXEMPT_PATHS
            or path.startswith(EXEMPT_PREFIXES)
        ):
            return await call_next(request)

        client_ip = client_ip_for(request, settings.TRUST_PROXY_HEADERS)

        try:
            redis_client = get_redis_client()
            if path == LOGIN_PATH:
                limit, window, key = self._login_window(client_ip)
            else:
                limit, window, key = self._general_window(client_ip, settings.RATE_LIMIT_MAX_REQUESTS)

            count = await redis_client.incr(key)
            if count == 1:
                await redis_client.expire(key, window)
        except RedisError as e:
            logger.error(f"Rate limit check failed for IP {client_ip}: {e}")
            return await call_next(request)

        if count > limit:
            logger.warning(
                f"Rate limit exceeded for IP {client_ip}: {count} requests in {window}s window",
                extra={"request_path": path},
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "detail": f"Too many requests, try again in {window} seconds",
                },
                headers={"X-RateLimit-Remaining": "0", "Retry-After": str(window)},
            )

        response: Response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - count))
        return response

    @staticmethod
    def _login_window(client_ip: str) -> tuple[int, int, str]:
        now = datetime.now(UTC)
        bucket = f"{now:%Y-%m-%d:%H}:{now.minute // 5}"
        return (
            LOGIN_RATE_LIMIT_MAX_ATTEMPTS,
            LOGIN_RATE_LIMIT_WINDOW_SECONDS,
            f"login_attempts:{client_ip}:{bucket}",
        )

    @staticmethod
    def _general_window(client_ip: str, limit: int) -> tuple[int, int, str]:
        bucket = datetime.now(UTC).strftime("%Y-%m-%d:%H:%M")
        return limit, RATE_LIMIT_WINDOW_SECONDS, f"rate_limit:{client_ip}:{bucket}"
