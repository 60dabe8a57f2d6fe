"""Horse profiles: owner CRUD and read access for connected professionals."""

import logging
from typing import Any

from sqlalchemy import exists, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking.errors import AuthorizationError, BookingValidationError, NotFoundError
from booking.serializers import horse_to_dict
from booking.services.connection_service import are_connected
from database.connection import get_async_session
from database.models import Horse, MedicalRecord, ServiceRecord, User

logger = logging.getLogger(__name__)

HORSE_FIELDS = ("name", "breed", "age", "gender", "color", "height", "weight", "notes", "image_url")


def _validate_horse_fields(fields: dict[str, Any]) -> None:
    if "name" in fields and not (fields["name"] or "").strip():
        raise BookingValidationError("Horse name is required")
    for numeric in ("age", "height", "weight"):
        value = fields.get(numeric)
        if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 0):
            raise BookingValidationError(f"{numeric} must be a non-negative integer")


async def get_readable_horse(session: AsyncSession, horse_id: int, user_id: int) -> Horse:
    """
    Horse visible to the owner or to a professional connected with the owner.

    Raises:
        NotFoundError: Horse does not exist
        AuthorizationError: User has no access
    """
    horse = await session.get(Horse, horse_id)
    if horse is None:
        raise NotFoundError("Horse", horse_id)
    if horse.owner_id != user_id and not await are_connected(session, horse.owner_id, user_id):
        raise AuthorizationError("You do not have access to this horse")
    return horse


async def _get_owned_horse(session: AsyncSession, horse_id: int, user_id: int) -> Horse:
    horse = await session.get(Horse, horse_id)
    if horse is None:
        raise NotFoundError("Horse", horse_id)
    if horse.owner_id != user_id:
        raise AuthorizationError("Only the owner can modify this horse")
    return horse


async def create_horse(owner: User, fields: dict[str, Any]) -> dict[str, Any]:
    data = {k: v for k, v in fields.items() if k in HORSE_FIELDS}
    if "name" not in data:
        raise BookingValidationError("Horse name is required")
    _validate_horse_fields(data)

    async with get_async_session() as session:
        horse = Horse(owner_id=owner.id, **data)
        session.add(horse)
        await session.commit()
        await session.refresh(horse)

    logger.info(f"Horse {horse.id} created for user {owner.id}", extra={"user_id": owner.id})
    return horse_to_dict(horse)


async def list_own_horses(owner: User) -> list[dict[str, Any]]:
    async with get_async_session() as session:
        result = await session.execute(
            select(Horse).where(Horse.owner_id == owner.id).order_by(Horse.name)
        )
        return [horse_to_dict(h) for h in result.scalars().all()]


async def list_owner_horses(actor: User, owner_id: int) -> list[dict[str, Any]]:
    """Horses of another user, for the owner or a connected professional."""
    async with get_async_session() as session:
        if owner_id != actor.id and not await are_connected(session, owner_id, actor.id):
            raise AuthorizationError("You do not have access to this user's horses")
        result = await session.execute(
            select(Horse).where(Horse.owner_id == owner_id).order_by(Horse.name)
        )
        return [horse_to_dict(h) for h in result.scalars().all()]


async def get_horse(actor: User, horse_id: int) -> dict[str, Any]:
    async with get_async_session() as session:
        horse = await get_readable_horse(session, horse_id, actor.id)
        return horse_to_dict(horse)


async def update_horse(actor: User, horse_id: int, changes: dict[str, Any]) -> dict[str, Any]:
    data = {k: v for k, v in changes.items() if k in HORSE_FIELDS}
    _validate_horse_fields(data)

    async with get_async_session() as session:
        horse = await _get_owned_horse(session, horse_id, actor.id)
        for field, value in data.items():
            setattr(horse, field, value)
        await session.commit()
        return horse_to_dict(horse)


async def delete_horse(actor: User, horse_id: int) -> None:
    """
    Delete a horse profile without history.

    Medical and service records are never deleted, so a horse that has any
    cannot be removed (the foreign keys are RESTRICT as well).
    """
    async with get_async_session() as session:
        horse = await _get_owned_horse(session, horse_id, actor.id)
        result = await session.execute(
            select(
                or_(
                    exists().where(MedicalRecord.horse_id == horse_id),
                    exists().where(ServiceRecord.horse_id == horse_id),
                )
            )
        )
        if result.scalar():
            raise BookingValidationError("A horse with medical or service records cannot be deleted")

        await session.delete(horse)
        try:
            await session.commit()
        except IntegrityError as e:
            # Record written between the check and the delete
            raise BookingValidationError(
                "A horse with medical or service records cannot be deleted"
            ) from e
    logger.info(f"Horse {horse_id} deleted by user {actor.id}", extra={"user_id": actor.id})
