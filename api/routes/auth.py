"""
Authentication endpoints and the current-user dependency.

Session tokens are HS256 JWTs (python-jose) carried in the HttpOnly cookie
``session_token``, with an Authorization: Bearer fallback for API clients.
Logout revokes the token's jti in Redis until it would have expired.
"""

import logging
import time
from typing import Annotated, Any
from uuid import uuid4

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel, EmailStr, Field

from booking.serializers import user_private
from booking.services.user_service import authenticate_user, get_user_by_id, register_user
from database.models import User, UserType
from shared.config import get_settings
from shared.redis_client import blacklist_token, is_token_blacklisted

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

# =============================================================================
# Security
# =============================================================================

security = HTTPBearer(auto_error=False)  # auto_error=False allows cookie fallback

JWT_ALGORITHM = "HS256"
SESSION_COOKIE_NAME = "session_token"
SESSION_COOKIE_SAMESITE = "lax"
TOKEN_TYPE = "session"


def create_access_token(user_id: int) -> tuple[str, str]:
    """
    Create a session JWT.

    Returns:
        Tuple of (encoded_token, jti)
    """
    settings = get_settings()
    now = int(time.time())
    jti = str(uuid4())
    payload = {
        "sub": str(user_id),
        "exp": now + settings.JWT_EXPIRATION_HOURS * 3600,
        "iat": now,
        "jti": jti,
        "type": TOKEN_TYPE,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=JWT_ALGORITHM), jti


def verify_token(token: str) -> dict[str, Any]:
    """
    Decode and check a session token.

    Raises:
        HTTPException: 401 on bad signature, expiry or token type
    """
    try:
        payload = jwt.decode(token, get_settings().JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token",
        ) from e
    if payload.get("type") != TOKEN_TYPE or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
        )
    return payload


def _token_from(
    credentials: HTTPAuthorizationCredentials | None, session_token: str | None
) -> str | None:
    if session_token:
        return session_token
    return credentials.credentials if credentials else None


async def get_token_payload(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
    session_token: Annotated[str | None, Cookie()] = None,
) -> dict[str, Any]:
    """
    Verified, non-revoked token payload.

    Cookie first (XSS-safe), then Authorization header.
    """
    token = _token_from(credentials, session_token)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(token)

    jti = payload.get("jti")
    if jti and await is_token_blacklisted(jti):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has been revoked",
        )
    return payload


async def get_current_user(
    payload: Annotated[dict[str, Any], Depends(get_token_payload)],
) -> User:
    """Dependency returning the authenticated, active user."""
    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError) as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session") from e

    user = await get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User no longer exists")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite=SESSION_COOKIE_SAMESITE,
        max_age=settings.JWT_EXPIRATION_HOURS * 3600,
        path="/",
    )


# =============================================================================
# Request/Response Models
# =============================================================================


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=150)
    user_type: UserType
    phone: str | None = None
    location: str | None = None
    bio: str | None = None


class LoginRequest(BaseModel):
    username: str = Field(..., description="Username or email")
    password: str


class SessionResponse(BaseModel):
    user: dict[str, Any]
    access_token: str | None = None
    token_type: str = "bearer"


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(request: RegisterRequest, response: Response):
    """Create an account and start a session."""
    user = await register_user(
        username=request.username,
        email=request.email,
        password=request.password,
        full_name=request.full_name,
        user_type=request.user_type,
        phone=request.phone,
        location=request.location,
        bio=request.bio,
    )
    token, _jti = create_access_token(user.id)
    _set_session_cookie(response, token)
    return SessionResponse(user=user_private(user), access_token=token)


@router.post("/login", response_model=SessionResponse)
async def login(request: LoginRequest, response: Response):
    """
    Authenticate with username (or email) and password.

    Sets the HttpOnly session cookie and also returns the token for API clients.
    """
    user = await authenticate_user(request.username, request.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    token, _jti = create_access_token(user.id)
    _set_session_cookie(response, token)
    logger.info(f"User {user.id} logged in", extra={"user_id": user.id})
    return SessionResponse(user=user_private(user), access_token=token)


@router.post("/logout")
async def logout(
    response: Response,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
    session_token: Annotated[str | None, Cookie()] = None,
):
    """
    Clear the cookie and revoke the token when it still decodes.

    Always succeeds: an expired, malformed or already revoked token only skips
    the revocation. Blacklist failures are logged by the Redis helper.
    """
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        secure=get_settings().SESSION_COOKIE_SECURE,
        samesite=SESSION_COOKIE_SAMESITE,
    )

    token = _token_from(credentials, session_token)
    if not token:
        return {"message": "Logged out"}

    try:
        payload = verify_token(token)
    except HTTPException:
        logger.info("Logout with an invalid or expired token, cookie cleared")
        return {"message": "Logged out"}

    jti = payload.get("jti")
    exp = payload.get("exp")
    if jti and exp:
        await blacklist_token(jti, exp)
    else:
        logger.warning("Logout with token missing jti/exp claims")

    return {"message": "Logged out"}


@router.get("/session")
async def get_session(current_user: CurrentUser) -> dict[str, Any]:
    """Current user profile."""
    return {"user": user_private(current_user)}
