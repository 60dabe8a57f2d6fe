"""
Appointment endpoints: booking, lifecycle, listings and payment.

All money fields are integer cents.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from api.routes.auth import CurrentUser
from booking.services import appointment_query_service, appointment_service, payment_service
from booking.services.appointment_query_service import AppointmentView
from booking.services.appointment_service import RespondAction
from database.models import AppointmentStatus, Frequency, ServiceType

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


# =============================================================================
# Request Models
# =============================================================================


class CreateAppointmentRequest(BaseModel):
    client_id: int
    professional_id: int
    horse_ids: list[int] = Field(..., min_length=1, description="Primary horse first")
    service_type: ServiceType
    title: str = Field(..., min_length=1, max_length=200)
    date: datetime
    duration: int = Field(..., gt=0, description="Minutes")
    location: str | None = None
    price: int | None = Field(None, ge=0, description="Cents")
    notes: str | None = None
    is_periodic: bool = False
    frequency: Frequency | None = None
    end_date: datetime | None = None


class UpdateAppointmentRequest(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    notes: str | None = None
    location: str | None = None
    date: datetime | None = None
    duration: int | None = Field(None, gt=0)
    price: int | None = Field(None, ge=0)
    status: AppointmentStatus | None = None


class StatusRequest(BaseModel):
    status: AppointmentStatus
    reason: str | None = Field(None, max_length=500)


class RespondRequest(BaseModel):
    action: RespondAction
    price: int | None = Field(None, ge=0)
    duration: int | None = Field(None, gt=0)
    alternative_date: datetime | None = None
    notes: str | None = None


class PaymentIntentRequest(BaseModel):
    payment_type: str = Field("complete", pattern="^(advance|complete)$")


class ConfirmPaymentRequest(BaseModel):
    payment_intent_id: str = Field(..., min_length=1)


# =============================================================================
# Listings
# =============================================================================


@router.get("")
async def list_appointments(
    current_user: CurrentUser,
    view: AppointmentView = AppointmentView.ALL,
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    horse_id: int | None = None,
) -> list[dict[str, Any]]:
    return await appointment_query_service.list_appointments(
        current_user,
        view=view,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        horse_id=horse_id,
    )


@router.get("/calendar")
async def get_calendar(
    current_user: CurrentUser,
    start: datetime,
    end: datetime,
    include_cancelled: bool = False,
) -> list[dict[str, Any]]:
    return await appointment_query_service.get_calendar(
        current_user, start, end, include_cancelled=include_cancelled
    )


@router.get("/horse/{horse_id}")
async def list_horse_appointments(horse_id: int, current_user: CurrentUser) -> list[dict[str, Any]]:
    return await appointment_query_service.list_by_horse(current_user, horse_id)


# =============================================================================
# Lifecycle
# =============================================================================


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(
    request: CreateAppointmentRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await appointment_service.create_appointment(
        current_user,
        client_id=request.client_id,
        professional_id=request.professional_id,
        horse_ids=request.horse_ids,
        service_type=request.service_type,
        title=request.title,
        date=request.date,
        duration=request.duration,
        location=request.location,
        price=request.price,
        notes=request.notes,
        is_periodic=request.is_periodic,
        frequency=request.frequency,
        end_date=request.end_date,
    )


@router.get("/{appointment_id}")
async def get_appointment(appointment_id: int, current_user: CurrentUser) -> dict[str, Any]:
    return await appointment_service.get_appointment(current_user, appointment_id)


@router.put("/{appointment_id}")
async def update_appointment(
    appointment_id: int,
    request: UpdateAppointmentRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await appointment_service.update_appointment(
        current_user, appointment_id, request.model_dump(exclude_unset=True)
    )


@router.delete("/{appointment_id}")
async def withdraw_appointment(
    appointment_id: int,
    current_user: CurrentUser,
    reason: str | None = None,
) -> dict[str, Any]:
    """Appointments are never removed; withdrawing cancels them."""
    return await appointment_service.transition_appointment(
        current_user, appointment_id, AppointmentStatus.CANCELLED, reason=reason
    )


@router.post("/{appointment_id}/status")
async def change_status(
    appointment_id: int,
    request: StatusRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await appointment_service.transition_appointment(
        current_user, appointment_id, request.status, reason=request.reason
    )


@router.post("/{appointment_id}/respond")
async def respond(
    appointment_id: int,
    request: RespondRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await appointment_service.respond_to_appointment(
        current_user,
        appointment_id,
        action=request.action,
        price=request.price,
        duration=request.duration,
        alternative_date=request.alternative_date,
        notes=request.notes,
    )


@router.post("/{appointment_id}/reminder")
async def send_reminder(appointment_id: int, current_user: CurrentUser) -> dict[str, Any]:
    return await appointment_service.send_reminder(current_user, appointment_id)


# =============================================================================
# Payment
# =============================================================================


@router.post("/{appointment_id}/payment-intent")
async def create_payment_intent(
    appointment_id: int,
    current_user: CurrentUser,
    request: PaymentIntentRequest | None = None,
) -> dict[str, Any]:
    payment_type = request.payment_type if request else "complete"
    return await payment_service.initiate_payment(current_user, appointment_id, payment_type)


@router.post("/{appointment_id}/confirm-payment")
async def confirm_payment(
    appointment_id: int,
    request: ConfirmPaymentRequest,
    current_user: CurrentUser,
) -> dict[str, Any]:
    return await payment_service.confirm_payment(
        current_user, appointment_id, request.payment_intent_id
    )
