"""Professional dashboard statistics."""

import logging
from collections import Counter
from datetime import datetime
from typing import Any

from sqlalchemy import select

from booking.labels import label_for
from booking.roles import require_professional, role_for
from booking.services.review_service import average_rating
from booking.utils.dates import business_tz, now_utc
from booking.utils.money import format_price
from database.connection import get_async_session
from database.models import Appointment, AppointmentStatus, PaymentStatus, Review, User

logger = logging.getLogger(__name__)

PAID_STATUSES = (PaymentStatus.PAID_ADVANCE, PaymentStatus.PAID_COMPLETE)


def compute_statistics(
    appointments: list[Appointment],
    ratings: list[int],
    now: datetime,
) -> dict[str, Any]:
    """
    Aggregate a professional's appointments and ratings.

    Revenue counts only paid appointments; months are bucketed in business time.
    """
    tz = business_tz()
    local_now = now.astimezone(tz)

    by_status = Counter(AppointmentStatus(a.status).value for a in appointments)
    by_service = Counter(a.service_type for a in appointments)
    by_month = Counter(a.date.astimezone(tz).strftime("%Y-%m") for a in appointments)
    by_location = Counter(a.location for a in appointments if a.location)

    completed_this_month = sum(
        1
        for a in appointments
        if a.status == AppointmentStatus.COMPLETED
        and (a.date.astimezone(tz).year, a.date.astimezone(tz).month)
        == (local_now.year, local_now.month)
    )
    revenue = sum(a.price or 0 for a in appointments if a.payment_status in PAID_STATUSES)

    return {
        "total_appointments": len(appointments),
        "by_status": {status.value: by_status.get(status.value, 0) for status in AppointmentStatus},
        "completed_this_month": completed_this_month,
        "revenue": revenue,
        "revenue_display": format_price(revenue),
        "distinct_clients": len({a.client_id for a in appointments}),
        "distinct_horses": len({h for a in appointments for h in (a.horse_ids or [])}),
        "by_service_type": [
            {"service_type": s.value, "label": label_for(s), "count": n}
            for s, n in by_service.most_common()
        ],
        "by_month": dict(sorted(by_month.items())),
        "top_locations": [{"location": loc, "count": n} for loc, n in by_location.most_common(5)],
        "average_rating": average_rating(ratings),
        "review_count": len(ratings),
    }


async def get_professional_statistics(actor: User) -> dict[str, Any]:
    """
    Raises:
        AuthorizationError: Actor is not a professional
    """
    require_professional(role_for(actor), "view statistics")

    async with get_async_session() as session:
        result = await session.execute(
            select(Appointment).where(Appointment.professional_id == actor.id)
        )
        appointments = list(result.scalars().all())

        result = await session.execute(
            select(Review.rating).where(Review.professional_id == actor.id)
        )
        ratings = list(result.scalars().all())

    return compute_statistics(appointments, ratings, now_utc())
