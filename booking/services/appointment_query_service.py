"""
Appointment listings: tabs, filters, per-horse history and calendar.

``select_view`` is pure so the tab semantics can be tested without a
database; the async functions only build the SQL filters and delegate.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, assert_never

from sqlalchemy import or_, select

from booking.errors import AuthorizationError, BookingValidationError, NotFoundError
from booking.roles import ClientRole, ProfessionalRole, role_for
from booking.serializers import appointment_to_dict
from booking.services.connection_service import are_connected
from booking.services.recurrence_service import expand_occurrences
from booking.utils.dates import ensure_aware, now_utc
from database.connection import get_async_session
from database.models import Appointment, AppointmentStatus, Horse, User

logger = logging.getLogger(__name__)

OPEN_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)

# Calendar ranges longer than this are rejected
MAX_CALENDAR_DAYS = 366

# Longest single sitting accepted by validate_schedule
MAX_DURATION = timedelta(days=1)


class AppointmentView(str, Enum):
    UPCOMING = "upcoming"
    PAST = "past"
    CANCELLED = "cancelled"
    ALL = "all"


def select_view(
    appointments: list[Appointment],
    view: AppointmentView | str,
    now: datetime,
) -> list[Appointment]:
    """
    Filter and order appointments for a listing tab.

    upcoming: pending/confirmed with a future date, soonest first
    past: not cancelled, and completed or already started, latest first
    cancelled: cancelled, latest first
    all: everything, latest first
    """
    view = AppointmentView(view)
    match view:
        case AppointmentView.UPCOMING:
            selected = [a for a in appointments if a.status in OPEN_STATUSES and a.date > now]
            return sorted(selected, key=lambda a: a.date)
        case AppointmentView.PAST:
            selected = [
                a
                for a in appointments
                if a.status != AppointmentStatus.CANCELLED
                and (a.status == AppointmentStatus.COMPLETED or a.date <= now)
            ]
        case AppointmentView.CANCELLED:
            selected = [a for a in appointments if a.status == AppointmentStatus.CANCELLED]
        case AppointmentView.ALL:
            selected = list(appointments)
        case _:
            assert_never(view)
    return sorted(selected, key=lambda a: a.date, reverse=True)


def _own_column(actor: User):
    role = role_for(actor)
    match role:
        case ClientRole():
            return Appointment.client_id
        case ProfessionalRole():
            return Appointment.professional_id
        case _:
            assert_never(role)


async def list_appointments(
    actor: User,
    view: AppointmentView | str = AppointmentView.ALL,
    status: AppointmentStatus | str | None = None,
    date_from: datetime | str | None = None,
    date_to: datetime | str | None = None,
    horse_id: int | None = None,
) -> list[dict[str, Any]]:
    """
    Appointments where the actor is the client or the professional, by role.

    Raises:
        BookingValidationError: Unknown view or status, bad dates
    """
    try:
        view = AppointmentView(view)
    except ValueError as e:
        raise BookingValidationError(f"Invalid view: {view}") from e

    query = select(Appointment).where(_own_column(actor) == actor.id)
    if status:
        try:
            query = query.where(Appointment.status == AppointmentStatus(status))
        except ValueError as e:
            raise BookingValidationError(f"Invalid status: {status}") from e
    if date_from is not None:
        query = query.where(Appointment.date >= ensure_aware(date_from, "date_from"))
    if date_to is not None:
        query = query.where(Appointment.date <= ensure_aware(date_to, "date_to"))
    if horse_id is not None:
        query = query.where(Appointment.horse_ids.contains([horse_id]))

    async with get_async_session() as session:
        result = await session.execute(query)
        appointments = list(result.scalars().all())

    return [appointment_to_dict(a) for a in select_view(appointments, view, now_utc())]


async def list_by_horse(actor: User, horse_id: int) -> list[dict[str, Any]]:
    """
    Appointment history of one horse, latest first.

    Visible to the owner and to professionals connected with the owner; the
    latter only see their own appointments.

    Raises:
        NotFoundError: Horse does not exist
        AuthorizationError: Actor is neither the owner nor connected to them
    """
    async with get_async_session() as session:
        horse = await session.get(Horse, horse_id)
        if horse is None:
            raise NotFoundError("Horse", horse_id)

        query = select(Appointment).where(Appointment.horse_ids.contains([horse_id]))
        if horse.owner_id != actor.id:
            if not await are_connected(session, horse.owner_id, actor.id):
                raise AuthorizationError("You do not have access to this horse")
            query = query.where(Appointment.professional_id == actor.id)

        result = await session.execute(query.order_by(Appointment.date.desc()))
        return [appointment_to_dict(a) for a in result.scalars().all()]


async def get_calendar(
    actor: User,
    range_start: datetime | str,
    range_end: datetime | str,
    include_cancelled: bool = False,
) -> list[dict[str, Any]]:
    """
    Occurrences of the actor's appointments within [range_start, range_end).

    Periodic appointments are expanded in memory; each entry carries the
    appointment plus occurrence_index, start and end.

    Raises:
        BookingValidationError: Bad or too long range
    """
    start = ensure_aware(range_start, "start")
    end = ensure_aware(range_end, "end")
    if end <= start:
        raise BookingValidationError("end must be after start")
    if (end - start).days > MAX_CALENDAR_DAYS:
        raise BookingValidationError(f"Calendar range cannot exceed {MAX_CALENDAR_DAYS} days")

    query = select(Appointment).where(
        _own_column(actor) == actor.id,
        Appointment.date < end,
        # Periodic series may have started before the range
        or_(Appointment.is_periodic.is_(True), Appointment.date >= start - MAX_DURATION),
    )
    if not include_cancelled:
        query = query.where(Appointment.status != AppointmentStatus.CANCELLED)

    async with get_async_session() as session:
        result = await session.execute(query)
        appointments = list(result.scalars().all())

    entries = []
    for appointment in appointments:
        for occurrence in expand_occurrences(appointment, start, end):
            data = appointment_to_dict(appointment)
            data.update(
                {
                    "occurrence_index": occurrence.index,
                    "start": occurrence.start.isoformat(),
                    "end": occurrence.end.isoformat(),
                }
            )
            entries.append((occurrence.start, data))

    entries.sort(key=lambda entry: entry[0])
    return [data for _, data in entries]
