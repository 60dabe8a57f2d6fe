"""Unit tests for money and date helpers."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest

from booking.errors import BookingValidationError
from booking.utils import (
    cents_to_euros,
    ensure_aware,
    euros_to_cents,
    format_date_spanish,
    format_price,
)


class TestFormatPrice:
    @pytest.mark.parametrize(
        "cents,expected",
        [
            (10000, "100,00 €"),
            (123456, "1.234,56 €"),
            (0, "0,00 €"),
            (99, "0,99 €"),
            (100000000, "1.000.000,00 €"),
            (-2550, "-25,50 €"),
        ],
    )
    def test_format(self, cents, expected):
        assert format_price(cents) == expected

    def test_none(self):
        assert format_price(None) is None

    def test_rejects_floats(self):
        with pytest.raises(TypeError):
            format_price(100.5)


class TestConversion:
    def test_euros_to_cents_rounds_half_up(self):
        assert euros_to_cents("12.345") == 1235
        assert euros_to_cents(Decimal("49.99")) == 4999
        assert euros_to_cents(0.1) == 10

    def test_cents_to_euros(self):
        assert cents_to_euros(4999) == Decimal("49.99")


class TestDates:
    def test_naive_is_business_time(self):
        value = ensure_aware(datetime(2025, 7, 1, 10, 0))
        assert value.utcoffset().total_seconds() == 2 * 3600  # CEST

    def test_iso_string_with_z(self):
        value = ensure_aware("2025-01-15T09:30:00Z")
        assert value == datetime(2025, 1, 15, 9, 30, tzinfo=UTC)

    def test_invalid_string(self):
        with pytest.raises(BookingValidationError) as exc_info:
            ensure_aware("mañana", "end_date")
        assert "end_date" in exc_info.value.message

    def test_none_passthrough(self):
        assert ensure_aware(None) is None

    def test_spanish_format(self):
        # 09:30 UTC in December is 10:30 in Madrid
        assert (
            format_date_spanish(datetime(2025, 12, 15, 9, 30, tzinfo=UTC))
            == "lunes 15 de diciembre a las 10:30"
        )
