"""
User accounts: registration, credential checks and profiles.

Passwords are stored as bcrypt hashes (passlib). Session tokens are issued by
the API layer (api/routes/auth.py) once ``authenticate_user`` succeeds.
"""

import logging
from typing import Any

from passlib.hash import bcrypt
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from booking.errors import BookingValidationError, NotFoundError
from booking.serializers import user_private, user_public
from database.connection import get_async_session
from database.models import User, UserType

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# Fields a user may change on their own profile
EDITABLE_PROFILE_FIELDS = ("full_name", "phone", "location", "bio", "profile_image_url")


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.verify(password, password_hash)
    except ValueError as e:
        logger.error(f"Error verifying password hash: {e}")
        return False


async def get_user(session: AsyncSession, user_id: int) -> User:
    """
    Load a user by id on the caller's session.

    Raises:
        NotFoundError: If the user does not exist or is deactivated
    """
    user = await session.get(User, user_id)
    if user is None or not user.is_active:
        raise NotFoundError("User", user_id)
    return user


async def get_user_by_id(user_id: int) -> User | None:
    async with get_async_session() as session:
        user = await session.get(User, user_id)
        if user is None or not user.is_active:
            return None
        return user


async def register_user(
    username: str,
    email: str,
    password: str,
    full_name: str,
    user_type: UserType | str,
    phone: str | None = None,
    location: str | None = None,
    bio: str | None = None,
) -> User:
    """
    Create an account.

    Raises:
        BookingValidationError: Weak password, unknown user type, or
            username/email already registered
    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise BookingValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
        )
    try:
        resolved_type = UserType(user_type)
    except ValueError as e:
        raise BookingValidationError(f"Invalid user type: {user_type}") from e

    username = username.strip()
    email = email.strip().lower()

    async with get_async_session() as session:
        result = await session.execute(
            select(User).where(
                or_(User.username == username, func.lower(User.email) == email)
            )
        )
        existing = result.scalars().first()
        if existing is not None:
            if existing.username == username:
                raise BookingValidationError("Username already exists")
            raise BookingValidationError("Email already registered")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            full_name=full_name.strip(),
            user_type=resolved_type,
            is_professional=resolved_type.is_professional,
            phone=phone,
            location=location,
            bio=bio,
            is_active=True,
            stripe_account_verified=False,
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)

    logger.info(
        f"User registered: {user.username} ({resolved_type.value})",
        extra={"user_id": user.id},
    )
    return user


async def authenticate_user(identifier: str, password: str) -> User | None:
    """Return the user for a username/email + password pair, or None."""
    identifier = identifier.strip()
    async with get_async_session() as session:
        result = await session.execute(
            select(User).where(
                or_(User.username == identifier, func.lower(User.email) == identifier.lower())
            )
        )
        user = result.scalars().first()

    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        logger.warning(f"Failed login attempt for '{identifier}'")
        return None
    return user


async def list_professionals(
    user_type: UserType | str | None = None,
    search: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[dict[str, Any]]:
    async with get_async_session() as session:
        query = select(User).where(User.is_professional.is_(True), User.is_active.is_(True))
        if user_type:
            try:
                query = query.where(User.user_type == UserType(user_type))
            except ValueError as e:
                raise BookingValidationError(f"Invalid user type: {user_type}") from e
        if search:
            pattern = f"%{search.strip()}%"
            query = query.where(
                or_(User.full_name.ilike(pattern), User.location.ilike(pattern))
            )
        query = query.order_by(User.full_name).limit(limit).offset(offset)

        result = await session.execute(query)
        return [user_public(u) for u in result.scalars().all()]


async def get_public_profile(user_id: int) -> dict[str, Any]:
    async with get_async_session() as session:
        user = await get_user(session, user_id)
        return user_public(user)


async def update_profile(user_id: int, changes: dict[str, Any]) -> dict[str, Any]:
    """
    Update editable profile fields. Unknown keys are ignored.

    Raises:
        BookingValidationError: full_name set to blank
    """
    async with get_async_session() as session:
        user = await get_user(session, user_id)
        for field in EDITABLE_PROFILE_FIELDS:
            if field in changes:
                setattr(user, field, changes[field])
        if not (user.full_name or "").strip():
            raise BookingValidationError("full_name cannot be empty")
        await session.commit()
        return user_private(user)
