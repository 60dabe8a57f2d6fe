"""Unit tests for asyncio calls through pybreaker circuit breakers."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pybreaker
import pytest

from shared.circuit_breaker import call_with_breaker, get_breaker_status, llm_breaker


def make_breaker(name: str, reset_timeout: int) -> pybreaker.CircuitBreaker:
    return pybreaker.CircuitBreaker(name=name, fail_max=2, reset_timeout=reset_timeout)


async def trip(breaker: pybreaker.CircuitBreaker) -> None:
    failing = AsyncMock(side_effect=TimeoutError("slow provider"))
    for _ in range(breaker.fail_max):
        with pytest.raises(TimeoutError):
            await call_with_breaker(breaker, failing)


class TestCallWithBreaker:
    @pytest.mark.asyncio
    async def test_opens_after_fail_max(self):
        breaker = make_breaker("test_opens", reset_timeout=60)

        await trip(breaker)

        assert breaker.current_state == pybreaker.STATE_OPEN

    @pytest.mark.asyncio
    async def test_fails_fast_while_open(self):
        breaker = make_breaker("test_fails_fast", reset_timeout=60)
        await trip(breaker)
        func = AsyncMock(return_value="ok")

        with pytest.raises(pybreaker.CircuitBreakerError):
            await call_with_breaker(breaker, func)
        func.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_recovers_after_reset_timeout(self):
        breaker = make_breaker("test_recovers", reset_timeout=30)
        await trip(breaker)
        breaker._state_storage.opened_at = datetime.now(UTC) - timedelta(seconds=31)

        result = await call_with_breaker(breaker, AsyncMock(return_value="ok"))

        assert result == "ok"
        assert breaker.current_state == pybreaker.STATE_CLOSED

    @pytest.mark.asyncio
    async def test_failed_trial_call_reopens(self):
        breaker = make_breaker("test_reopens", reset_timeout=30)
        await trip(breaker)
        breaker._state_storage.opened_at = datetime.now(UTC) - timedelta(seconds=31)

        with pytest.raises(TimeoutError):
            await call_with_breaker(breaker, AsyncMock(side_effect=TimeoutError("still down")))

        assert breaker.current_state == pybreaker.STATE_OPEN
        with pytest.raises(pybreaker.CircuitBreakerError):
            await call_with_breaker(breaker, AsyncMock(return_value="ok"))

    @pytest.mark.asyncio
    async def test_excluded_errors_not_counted(self):
        breaker = pybreaker.CircuitBreaker(
            name="test_excluded", fail_max=1, reset_timeout=60, exclude=[ValueError]
        )

        with pytest.raises(ValueError):
            await call_with_breaker(breaker, AsyncMock(side_effect=ValueError("bad input")))

        assert breaker.current_state == pybreaker.STATE_CLOSED


def test_status_lists_registered_breakers():
    status = get_breaker_status()

    assert status["llm"]["reset_timeout"] == llm_breaker.reset_timeout
    assert "stripe" in status
