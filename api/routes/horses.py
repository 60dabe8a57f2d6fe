"""Horse profiles and their medical/service history."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from api.routes.auth import CurrentUser
from booking.services import horse_service, record_service
from database.models import ServiceType

router = APIRouter(tags=["horses"])


class HorseRequest(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    breed: str | None = None
    age: int | None = Field(None, ge=0)
    gender: str | None = None
    color: str | None = None
    height: int | None = Field(None, ge=0)
    weight: int | None = Field(None, ge=0)
    notes: str | None = None
    image_url: str | None = None


class MedicalRecordRequest(BaseModel):
    record_type: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    diagnosis: str | None = None
    treatment: str | None = None
    date: datetime | None = None


class ServiceRecordRequest(BaseModel):
    service_type: ServiceType
    description: str = Field(..., min_length=1)
    notes: str | None = None
    date: datetime | None = None


# =============================================================================
# Horses
# =============================================================================


@router.get("/api/horses")
async def list_my_horses(current_user: CurrentUser) -> list[dict[str, Any]]:
    return await horse_service.list_own_horses(current_user)


@router.post("/api/horses", status_code=status.HTTP_201_CREATED)
async def create_horse(request: HorseRequest, current_user: CurrentUser) -> dict[str, Any]:
    return await horse_service.create_horse(current_user, request.model_dump(exclude_unset=True))


@router.get("/api/horses/owner/{owner_id}")
async def list_owner_horses(owner_id: int, current_user: CurrentUser) -> list[dict[str, Any]]:
    return await horse_service.list_owner_horses(current_user, owner_id)


@router.get("/api/horses/{horse_id}")
async def get_horse(horse_id: int, current_user: CurrentUser) -> dict[str, Any]:
    return await horse_service.get_horse(current_user, horse_id)


@router.put("/api/horses/{horse_id}")
async def update_horse(
    horse_id: int,
    request: HorseRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await horse_service.update_horse(
        current_user, horse_id, request.model_dump(exclude_unset=True)
    )


@router.delete("/api/horses/{horse_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_horse(horse_id: int, current_user: CurrentUser) -> Response:
    await horse_service.delete_horse(current_user, horse_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Records
# =============================================================================


@router.get("/api/horses/{horse_id}/medical-records")
async def list_medical_records(horse_id: int, current_user: CurrentUser) -> list[dict[str, Any]]:
    return await record_service.list_medical_records(current_user, horse_id)


@router.post("/api/horses/{horse_id}/medical-records", status_code=status.HTTP_201_CREATED)
async def create_medical_record(
    horse_id: int,
    request: MedicalRecordRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await record_service.create_medical_record(
        current_user,
        horse_id,
        record_type=request.record_type,
        description=request.description,
        diagnosis=request.diagnosis,
        treatment=request.treatment,
        date=request.date,
    )


@router.get("/api/horses/{horse_id}/service-records")
async def list_service_records(horse_id: int, current_user: CurrentUser) -> list[dict[str, Any]]:
    return await record_service.list_service_records(current_user, horse_id)


@router.post("/api/horses/{horse_id}/service-records", status_code=status.HTTP_201_CREATED)
async def create_service_record(
    horse_id: int,
    request: ServiceRecordRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await record_service.create_service_record(
        current_user,
        horse_id,
        service_type=request.service_type,
        description=request.description,
        notes=request.notes,
        date=request.date,
    )


@router.get("/api/records/mine")
async def list_my_records(current_user: CurrentUser) -> dict[str, list[dict[str, Any]]]:
    return await record_service.list_owner_records(current_user)
