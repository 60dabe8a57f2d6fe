"""
Recurrence Expansion Service.

Periodic appointments are stored as a single row (date, frequency, end_date).
Occurrences are generated on demand with python-dateutil rrule when a
calendar range is requested; nothing is materialized in the database.

Expansion happens in the business timezone so an appointment at 10:00 stays
at 10:00 local time across DST changes. Monthly series on the 29th-31st skip
months that do not have that day (RFC 5545 behaviour).
"""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timedelta

from dateutil.rrule import MONTHLY, WEEKLY, rrule

from booking.utils.dates import business_tz
from database.models import Appointment, Frequency

# frequency -> (rrule freq, interval)
FREQUENCY_RULES = {
    Frequency.WEEKLY: (WEEKLY, 1),
    Frequency.BIWEEKLY: (WEEKLY, 2),
    Frequency.MONTHLY: (MONTHLY, 1),
}


@dataclass
class Occurrence:
    """One concrete sitting of an appointment."""

    appointment_id: int
    index: int
    start: datetime
    end: datetime

    @property
    def is_original(self) -> bool:
        return self.index == 0


def _series_rule(start: datetime, frequency: Frequency, until: datetime) -> rrule:
    tz = business_tz()
    freq, interval = FREQUENCY_RULES[Frequency(frequency)]
    return rrule(
        freq=freq,
        interval=interval,
        dtstart=start.astimezone(tz),
        until=until.astimezone(tz),
    )


def _appointment_starts(appointment: Appointment) -> Iterator[datetime]:
    if appointment.is_periodic and appointment.frequency and appointment.end_date:
        return iter(_series_rule(appointment.date, appointment.frequency, appointment.end_date))
    return iter([appointment.date])


def expand_dates(
    start: datetime,
    frequency: Frequency,
    until: datetime,
    before: datetime | None = None,
) -> list[datetime]:
    """
    Expand a periodic series to its start times.

    The rule is iterated lazily, so a long series is only walked as far as
    ``before`` when it is given.

    Args:
        start: First occurrence (timezone-aware)
        frequency: weekly, biweekly or monthly
        until: Last allowed start time (inclusive)
        before: Stop at the first start time at or after this instant

    Returns:
        Start times in business timezone, chronological

    Examples:
        # Every other week from Jan 6 until Feb 3 -> Jan 6, Jan 20, Feb 3
        expand_dates(datetime(2025, 1, 6, 10, tzinfo=tz), Frequency.BIWEEKLY,
                     datetime(2025, 2, 3, 10, tzinfo=tz))
    """
    dates = []
    for dt in _series_rule(start, frequency, until):
        if before is not None and dt >= before:
            break
        dates.append(dt)
    return dates


def expand_occurrences(
    appointment: Appointment,
    range_start: datetime,
    range_end: datetime,
) -> list[Occurrence]:
    """
    Occurrences of an appointment overlapping [range_start, range_end).

    Non-periodic appointments yield at most one occurrence (index 0). Indexes
    count from the first occurrence of the series, not from range_start.
    """
    duration = timedelta(minutes=appointment.duration)

    occurrences = []
    for index, start in enumerate(_appointment_starts(appointment)):
        if start >= range_end:
            break
        end = start + duration
        if end > range_start:
            occurrences.append(
                Occurrence(appointment_id=appointment.id, index=index, start=start, end=end)
            )
    return occurrences


def next_occurrence(appointment: Appointment, after: datetime) -> datetime | None:
    """First occurrence start strictly after ``after``, or None when the series is over."""
    for start in _appointment_starts(appointment):
        if start > after:
            return start
    return None
