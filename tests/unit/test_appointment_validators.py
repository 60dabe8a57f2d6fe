"""Unit tests for booking input validators."""

from datetime import UTC, datetime

import pytest

from booking.errors import BookingValidationError
from booking.validators import (
    validate_horse_ids,
    validate_message_content,
    validate_price,
    validate_rating,
    validate_schedule,
)
from database.models import Frequency

START = datetime(2025, 3, 3, 9, 0, tzinfo=UTC)


class TestValidateSchedule:
    def test_one_off_drops_periodic_fields(self):
        start, duration, freq, until = validate_schedule(
            START, 45, is_periodic=False, frequency="weekly", end_date=START
        )
        assert (start, duration, freq, until) == (START, 45, None, None)

    def test_periodic(self):
        end = datetime(2025, 6, 3, 9, 0, tzinfo=UTC)
        _, _, freq, until = validate_schedule(START, 60, True, "biweekly", end)
        assert freq == Frequency.BIWEEKLY
        assert until == end

    @pytest.mark.parametrize("duration", [0, -15, None, 30.5, True, 24 * 60 + 1])
    def test_bad_duration(self, duration):
        with pytest.raises(BookingValidationError):
            validate_schedule(START, duration)

    def test_max_duration_accepted(self):
        assert validate_schedule(START, 24 * 60)[1] == 24 * 60

    def test_missing_date(self):
        with pytest.raises(BookingValidationError, match="date is required"):
            validate_schedule(None, 30)

    def test_periodic_requires_frequency(self):
        with pytest.raises(BookingValidationError, match="frequency"):
            validate_schedule(START, 30, True, None, datetime(2025, 4, 1, tzinfo=UTC))

    def test_periodic_rejects_unknown_frequency(self):
        with pytest.raises(BookingValidationError, match="Invalid frequency"):
            validate_schedule(START, 30, True, "daily", datetime(2025, 4, 1, tzinfo=UTC))

    def test_periodic_requires_end_after_start(self):
        with pytest.raises(BookingValidationError, match="end_date must be after"):
            validate_schedule(START, 30, True, "weekly", START)


class TestOtherValidators:
    def test_horse_ids_keep_order(self):
        assert validate_horse_ids([7, 3, 5]) == [7, 3, 5]

    @pytest.mark.parametrize("horse_ids", [[], None, [1, 1]])
    def test_horse_ids_invalid(self, horse_ids):
        with pytest.raises(BookingValidationError):
            validate_horse_ids(horse_ids)

    def test_price(self):
        assert validate_price(None) is None
        assert validate_price(0) == 0
        with pytest.raises(BookingValidationError):
            validate_price(-1)
        with pytest.raises(BookingValidationError):
            validate_price(10.5)

    @pytest.mark.parametrize("rating", [0, 6, 3.5, True])
    def test_rating_invalid(self, rating):
        with pytest.raises(BookingValidationError):
            validate_rating(rating)

    def test_message_is_stripped(self):
        assert validate_message_content("  hola  ") == "hola"

    @pytest.mark.parametrize("content", ["", "   ", None, "x" * 5001])
    def test_message_invalid(self, content):
        with pytest.raises(BookingValidationError):
            validate_message_content(content)
