"""
Input validators for booking operations.

Validators are pure: they normalize values or raise BookingValidationError
with a message the API returns as-is. Checks that need the database
(ownership, connections) live in the services.
"""

from datetime import datetime

from booking.errors import BookingValidationError
from booking.utils.dates import ensure_aware
from database.models import Frequency

# Longest single sitting accepted (minutes)
MAX_DURATION_MINUTES = 24 * 60

MAX_MESSAGE_LENGTH = 5000


def validate_schedule(
    date: datetime | str | None,
    duration: int | None,
    is_periodic: bool = False,
    frequency: Frequency | str | None = None,
    end_date: datetime | str | None = None,
) -> tuple[datetime, int, Frequency | None, datetime | None]:
    """
    Validate the temporal fields of an appointment.

    Returns:
        (date, duration, frequency, end_date) with timezone-aware datetimes.
        frequency and end_date are None for one-off appointments.

    Raises:
        BookingValidationError: Unresolvable date, non-positive duration, or
            incomplete/invalid periodic parameters
    """
    start = ensure_aware(date, "date")
    if start is None:
        raise BookingValidationError("date is required")

    if duration is None or isinstance(duration, bool) or not isinstance(duration, int):
        raise BookingValidationError("duration must be an integer number of minutes")
    if duration <= 0:
        raise BookingValidationError("duration must be greater than 0")
    if duration > MAX_DURATION_MINUTES:
        raise BookingValidationError(f"duration cannot exceed {MAX_DURATION_MINUTES} minutes")

    if not is_periodic:
        return start, duration, None, None

    if frequency is None:
        raise BookingValidationError("frequency is required for periodic appointments")
    try:
        freq = Frequency(frequency)
    except ValueError as e:
        raise BookingValidationError(f"Invalid frequency: {frequency}") from e

    until = ensure_aware(end_date, "end_date")
    if until is None:
        raise BookingValidationError("end_date is required for periodic appointments")
    if until <= start:
        raise BookingValidationError("end_date must be after date")

    return start, duration, freq, until


def validate_horse_ids(horse_ids: list[int] | None) -> list[int]:
    """Non-empty, duplicate-free ordered list. The first entry is the primary horse."""
    if not horse_ids:
        raise BookingValidationError("At least one horse is required")
    if len(set(horse_ids)) != len(horse_ids):
        raise BookingValidationError("horse_ids contains duplicates")
    return list(horse_ids)


def validate_price(price: int | None) -> int | None:
    """Prices are integer cents, zero or more."""
    if price is None:
        return None
    if isinstance(price, bool) or not isinstance(price, int):
        raise BookingValidationError("price must be an integer amount in cents")
    if price < 0:
        raise BookingValidationError("price cannot be negative")
    return price


def validate_rating(rating: int) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise BookingValidationError("rating must be an integer between 1 and 5")
    return rating


def validate_message_content(content: str | None) -> str:
    text = (content or "").strip()
    if not text:
        raise BookingValidationError("Message content cannot be empty")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise BookingValidationError(f"Message cannot exceed {MAX_MESSAGE_LENGTH} characters")
    return text
