"""
Horse history: medical and service records.

Records are append-only. Professionals connected with the owner write them;
the owner and connected professionals read them.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import select

from booking.errors import BookingValidationError
from booking.roles import require_professional, role_for
from booking.serializers import medical_record_to_dict, service_record_to_dict
from booking.services.connection_service import require_accepted_connection
from booking.services.horse_service import get_readable_horse
from booking.utils.dates import ensure_aware, now_utc
from database.connection import get_async_session
from database.models import Horse, MedicalRecord, ServiceRecord, ServiceType, User

logger = logging.getLogger(__name__)


def _required_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise BookingValidationError(f"{field} is required")
    return text


async def create_medical_record(
    actor: User,
    horse_id: int,
    record_type: str,
    description: str,
    diagnosis: str | None = None,
    treatment: str | None = None,
    date: datetime | str | None = None,
) -> dict[str, Any]:
    """
    Raises:
        AuthorizationError: Actor is not a professional connected with the owner
        NotFoundError: Horse does not exist
        BookingValidationError: Missing type or description
    """
    require_professional(role_for(actor), "add medical records")
    record_type = _required_text(record_type, "record_type")
    description = _required_text(description, "description")
    record_date = ensure_aware(date, "date") if date is not None else now_utc()

    async with get_async_session() as session:
        horse = await get_readable_horse(session, horse_id, actor.id)
        await require_accepted_connection(session, horse.owner_id, actor.id)

        record = MedicalRecord(
            horse_id=horse.id,
            professional_id=actor.id,
            record_type=record_type,
            description=description,
            diagnosis=diagnosis,
            treatment=treatment,
            date=record_date,
        )
        session.add(record)
        await session.commit()

        logger.info(
            f"Medical record {record.id} added to horse {horse_id}",
            extra={"user_id": actor.id},
        )
        return medical_record_to_dict(record)


async def create_service_record(
    actor: User,
    horse_id: int,
    service_type: ServiceType | str,
    description: str,
    notes: str | None = None,
    date: datetime | str | None = None,
) -> dict[str, Any]:
    require_professional(role_for(actor), "add service records")
    try:
        parsed_type = ServiceType(service_type)
    except ValueError as e:
        raise BookingValidationError(f"Invalid service type: {service_type}") from e
    description = _required_text(description, "description")
    record_date = ensure_aware(date, "date") if date is not None else now_utc()

    async with get_async_session() as session:
        horse = await get_readable_horse(session, horse_id, actor.id)
        await require_accepted_connection(session, horse.owner_id, actor.id)

        record = ServiceRecord(
            horse_id=horse.id,
            professional_id=actor.id,
            service_type=parsed_type,
            description=description,
            notes=notes,
            date=record_date,
        )
        session.add(record)
        await session.commit()

        logger.info(
            f"Service record {record.id} added to horse {horse_id}",
            extra={"user_id": actor.id},
        )
        return service_record_to_dict(record)


async def list_medical_records(actor: User, horse_id: int) -> list[dict[str, Any]]:
    async with get_async_session() as session:
        await get_readable_horse(session, horse_id, actor.id)
        result = await session.execute(
            select(MedicalRecord)
            .where(MedicalRecord.horse_id == horse_id)
            .order_by(MedicalRecord.date.desc())
        )
        return [medical_record_to_dict(r) for r in result.scalars().all()]


async def list_service_records(actor: User, horse_id: int) -> list[dict[str, Any]]:
    async with get_async_session() as session:
        await get_readable_horse(session, horse_id, actor.id)
        result = await session.execute(
            select(ServiceRecord)
            .where(ServiceRecord.horse_id == horse_id)
            .order_by(ServiceRecord.date.desc())
        )
        return [service_record_to_dict(r) for r in result.scalars().all()]


async def list_owner_records(owner: User) -> dict[str, list[dict[str, Any]]]:
    """Medical and service records across all horses of the owner."""
    async with get_async_session() as session:
        horse_ids = select(Horse.id).where(Horse.owner_id == owner.id)

        medical = await session.execute(
            select(MedicalRecord)
            .where(MedicalRecord.horse_id.in_(horse_ids))
            .order_by(MedicalRecord.date.desc())
        )
        service = await session.execute(
            select(ServiceRecord)
            .where(ServiceRecord.horse_id.in_(horse_ids))
            .order_by(ServiceRecord.date.desc())
        )
        return {
            "medical_records": [medical_record_to_dict(r) for r in medical.scalars().all()],
            "service_records": [service_record_to_dict(r) for r in service.scalars().all()],
        }
