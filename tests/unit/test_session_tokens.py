"""Unit tests for session JWT creation, verification and revocation checks."""

import time
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from api.routes.auth import (
    JWT_ALGORITHM,
    create_access_token,
    get_current_user,
    get_token_payload,
    verify_token,
)
from shared.config import get_settings


def encode(payload: dict, secret: str | None = None) -> str:
    return jwt.encode(payload, secret or get_settings().JWT_SECRET, algorithm=JWT_ALGORITHM)


class TestTokens:
    def test_round_trip_claims(self):
        token, jti = create_access_token(42)

        payload = verify_token(token)

        assert payload["sub"] == "42"
        assert payload["jti"] == jti
        assert payload["type"] == "session"
        assert payload["exp"] - payload["iat"] == get_settings().JWT_EXPIRATION_HOURS * 3600

    def test_unique_jti(self):
        assert create_access_token(1)[1] != create_access_token(1)[1]

    def test_expired(self):
        token = encode({"sub": "1", "type": "session", "exp": int(time.time()) - 10})

        with pytest.raises(HTTPException) as exc_info:
            verify_token(token)
        assert exc_info.value.status_code == 401

    def test_wrong_secret(self):
        token = encode(
            {"sub": "1", "type": "session", "exp": int(time.time()) + 60},
            secret="another-secret-with-at-least-thirty-two-chars",
        )

        with pytest.raises(HTTPException):
            verify_token(token)

    def test_wrong_type(self):
        token = encode({"sub": "1", "type": "refresh", "exp": int(time.time()) + 60})

        with pytest.raises(HTTPException) as exc_info:
            verify_token(token)
        assert exc_info.value.detail == "Invalid token type"


class TestTokenPayloadDependency:
    @pytest.mark.asyncio
    async def test_cookie_preferred_over_header(self):
        cookie_token, _ = create_access_token(1)
        header_token, _ = create_access_token(2)
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=header_token)

        with patch("api.routes.auth.is_token_blacklisted", AsyncMock(return_value=False)):
            payload = await get_token_payload(credentials, cookie_token)

        assert payload["sub"] == "1"

    @pytest.mark.asyncio
    async def test_bearer_fallback(self):
        token, _ = create_access_token(2)
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        with patch("api.routes.auth.is_token_blacklisted", AsyncMock(return_value=False)):
            payload = await get_token_payload(credentials, None)

        assert payload["sub"] == "2"

    @pytest.mark.asyncio
    async def test_missing_token(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_token_payload(None, None)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_revoked_token(self):
        token, _ = create_access_token(1)

        with patch("api.routes.auth.is_token_blacklisted", AsyncMock(return_value=True)):
            with pytest.raises(HTTPException) as exc_info:
                await get_token_payload(None, token)

        assert exc_info.value.detail == "Token has been revoked"


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_active_user(self, client_user):
        with patch("api.routes.auth.get_user_by_id", AsyncMock(return_value=client_user)):
            assert await get_current_user({"sub": "1"}) is client_user

    @pytest.mark.asyncio
    async def test_deleted_user(self):
        with patch("api.routes.auth.get_user_by_id", AsyncMock(return_value=None)):
            with pytest.raises(HTTPException) as exc_info:
                await get_current_user({"sub": "1"})
        assert exc_info.value.status_code == 401
