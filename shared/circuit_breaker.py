"""
Circuit breakers for calls to the LLM provider and Stripe.

Circuit breaker states:
- CLOSED: Normal operation, requests pass through
- OPEN: Service is down, requests fail fast without calling the service
- HALF_OPEN: Testing if service recovered, one request allowed

Usage:
    from shared.circuit_breaker import llm_breaker, call_with_breaker
    import pybreaker

    try:
        result = await call_with_breaker(llm_breaker, llm.ainvoke, messages)
    except pybreaker.CircuitBreakerError:
        return fallback_response()

    # Synchronous SDK calls go through pybreaker directly
    intent = stripe_breaker.call(stripe.PaymentIntent.create, **params)
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Awaitable, Callable

import pybreaker
import stripe

logger = logging.getLogger(__name__)


class CircuitBreakerLogger(pybreaker.CircuitBreakerListener):
    """Log circuit breaker state changes and counted failures."""

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state, new_state) -> None:
        if new_state.name == "open":
            logger.warning(
                f"Circuit breaker '{cb.name}' OPENED, failing fast for {cb.reset_timeout}s"
            )
        else:
            logger.info(
                f"Circuit breaker '{cb.name}' state: {old_state.name} -> {new_state.name}"
            )

    def failure(self, cb: pybreaker.CircuitBreaker, exc: Exception) -> None:
        logger.warning(
            f"Circuit breaker '{cb.name}' recorded failure: {type(exc).__name__}: {exc}"
        )


# Singleton registry of circuit breakers
_breakers: dict[str, pybreaker.CircuitBreaker] = {}
_logger_instance = CircuitBreakerLogger()

# Consecutive failures seen by call_with_breaker, per breaker name
_async_failures: dict[str, int] = {}


def get_circuit_breaker(
    name: str,
    fail_max: int = 5,
    reset_timeout: int = 30,
    exclude: list[type] | None = None,
) -> pybreaker.CircuitBreaker:
    """
    Get or create a circuit breaker for a service.

    Args:
        name: Unique identifier for the circuit breaker
        fail_max: Number of consecutive failures before opening circuit
        reset_timeout: Seconds before attempting recovery (half-open)
        exclude: Exception types that should NOT count as failures

    Returns:
        CircuitBreaker instance (singleton per name)
    """
    if name not in _breakers:
        _breakers[name] = pybreaker.CircuitBreaker(
            name=name,
            fail_max=fail_max,
            reset_timeout=reset_timeout,
            exclude=exclude or [],
            listeners=[_logger_instance],
        )
        logger.info(
            f"Created circuit breaker '{name}' | "
            f"fail_max={fail_max} | reset_timeout={reset_timeout}s"
        )
    return _breakers[name]


# =============================================================================
# PRE-CONFIGURED CIRCUIT BREAKERS FOR EXTERNAL SERVICES
# =============================================================================

# LLM provider (AI assistant) - a fallback answer is returned while open
llm_breaker = get_circuit_breaker(
    name="llm",
    fail_max=5,
    reset_timeout=30,
)

# Stripe API - card declines and bad requests are caller errors, not outages
stripe_breaker = get_circuit_breaker(
    name="stripe",
    fail_max=5,
    reset_timeout=60,
    exclude=[stripe.CardError, stripe.InvalidRequestError],
)


def _reset_timeout_elapsed(breaker: pybreaker.CircuitBreaker) -> bool:
    opened_at = breaker._state_storage.opened_at
    if opened_at is None:
        return True
    return datetime.now(UTC) >= opened_at + timedelta(seconds=breaker.reset_timeout)


async def call_with_breaker(
    breaker: pybreaker.CircuitBreaker,
    func: Callable[..., Awaitable[Any]],
    *args,
    **kwargs,
) -> Any:
    """
    Call async function with circuit breaker protection (native asyncio).

    pybreaker's call_async() requires Tornado which we don't use.
    Consecutive failures are counted here and the circuit is opened
    once they reach the breaker's fail_max. An open circuit lets one
    trial call through (half-open) after reset_timeout.

    Raises:
        pybreaker.CircuitBreakerError: If circuit is open
        Exception: Any exception raised by func
    """
    if breaker.current_state == pybreaker.STATE_OPEN:
        if not _reset_timeout_elapsed(breaker):
            logger.warning(f"Circuit breaker '{breaker.name}' is OPEN, failing fast")
            raise pybreaker.CircuitBreakerError(breaker)
        # Same move pybreaker makes in CircuitOpenState.before_call
        breaker.half_open()

    try:
        result = await func(*args, **kwargs)

    except Exception as e:
        if not breaker.is_system_error(e):
            raise

        failures = _async_failures.get(breaker.name, 0) + 1
        _async_failures[breaker.name] = failures
        logger.warning(
            f"Circuit breaker '{breaker.name}' recorded failure {failures}/{breaker.fail_max}: "
            f"{type(e).__name__}: {e}"
        )

        if breaker.current_state == pybreaker.STATE_HALF_OPEN or failures >= breaker.fail_max:
            breaker.open()
            _async_failures[breaker.name] = 0
        raise

    _async_failures[breaker.name] = 0
    if breaker.current_state == pybreaker.STATE_HALF_OPEN:
        breaker.close()
        logger.info(f"Circuit breaker '{breaker.name}' recovered, closing circuit")
    return result


def get_breaker_status() -> dict[str, dict[str, Any]]:
    """
    Get status of all circuit breakers for monitoring/health checks.

    Returns:
        Dict of {name: {state, fail_counter, reset_timeout}}
    """
    return {
        name: {
            "state": breaker.current_state,
            "fail_counter": max(breaker.fail_counter, _async_failures.get(name, 0)),
            "reset_timeout": breaker.reset_timeout,
        }
        for name, breaker in _breakers.items()
    }
