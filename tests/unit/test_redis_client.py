"""Unit tests for the Redis client singleton and token revocation helpers."""

import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis import ConnectionError as RedisConnectionError

from shared.redis_client import (
    TOKEN_BLACKLIST_PREFIX,
    blacklist_token,
    close_redis_client,
    get_redis_client,
    is_token_blacklisted,
)


@pytest.fixture
def mock_redis():
    client = MagicMock()
    client.get = AsyncMock(return_value=None)
    client.setex = AsyncMock()
    client.aclose = AsyncMock()
    with patch("shared.redis_client.get_redis_client", return_value=client):
        yield client


class TestRedisClient:
    """Tests for Redis client singleton."""

    def test_get_redis_client_is_singleton(self):
        with patch("shared.redis_client.redis.from_url") as mock_from_url:
            mock_from_url.return_value = MagicMock()
            get_redis_client.cache_clear()

            result1 = get_redis_client()
            result2 = get_redis_client()

            assert result1 is result2
            assert mock_from_url.call_count == 1
        get_redis_client.cache_clear()

    def test_redis_client_configured_with_pool(self):
        with patch("shared.redis_client.redis.from_url") as mock_from_url:
            with patch("shared.redis_client.get_settings") as mock_settings:
                mock_settings.return_value.REDIS_URL = "redis://test:6379/0"

                get_redis_client.cache_clear()
                get_redis_client()

                mock_from_url.assert_called_once_with(
                    "redis://test:6379/0",
                    max_connections=20,
                    decode_responses=True,
                    retry_on_timeout=True,
                    health_check_interval=30,
                )
        get_redis_client.cache_clear()


class TestTokenBlacklist:
    @pytest.mark.asyncio
    async def test_blacklist_with_remaining_lifetime(self, mock_redis):
        exp = int(time.time()) + 600

        assert await blacklist_token("abcdef123456", exp) is True

        key, ttl, value = mock_redis.setex.await_args.args
        assert key == f"{TOKEN_BLACKLIST_PREFIX}:abcdef123456"
        assert 0 < ttl <= 600
        assert value == "1"

    @pytest.mark.asyncio
    async def test_expired_token_not_stored(self, mock_redis):
        assert await blacklist_token("abcdef123456", int(time.time()) - 1) is False
        mock_redis.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_is_blacklisted(self, mock_redis):
        mock_redis.get.return_value = "1"
        assert await is_token_blacklisted("abc") is True

        mock_redis.get.return_value = None
        assert await is_token_blacklisted("abc") is False

    @pytest.mark.asyncio
    async def test_redis_down_fails_open(self, mock_redis):
        mock_redis.get.side_effect = RedisConnectionError("down")
        mock_redis.setex.side_effect = RedisConnectionError("down")

        assert await is_token_blacklisted("abc") is False
        assert await blacklist_token("abc", int(time.time()) + 60) is False

    @pytest.mark.asyncio
    async def test_close(self, mock_redis):
        await close_redis_client()
        mock_redis.aclose.assert_awaited_once()
