"""
Date helpers shared by booking services.

Naive datetimes coming from clients are interpreted in the configured
business timezone (settings.TIMEZONE, Europe/Madrid by default).
"""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from booking.errors import BookingValidationError
from shared.config import get_settings

WEEKDAYS_ES = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]
MONTHS_ES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre"
]


def business_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def now_utc() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime | str | None, field: str = "date") -> datetime | None:
    """
    Resolve a datetime or ISO string to a timezone-aware datetime.

    Raises:
        BookingValidationError: If the value cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise BookingValidationError(f"Invalid {field}: {value}") from e
    if not isinstance(value, datetime):
        raise BookingValidationError(f"Invalid {field}: {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=business_tz())
    return value


def format_date_spanish(dt: datetime) -> str:
    """Format datetime like 'lunes 15 de diciembre a las 10:30' in business time."""
    local = dt.astimezone(business_tz())
    return (
        f"{WEEKDAYS_ES[local.weekday()]} {local.day} de {MONTHS_ES[local.month - 1]} "
        f"a las {local.strftime('%H:%M')}"
    )
