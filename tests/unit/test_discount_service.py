"""Unit tests for discount code rules and previews."""

from datetime import UTC, datetime, timedelta

import pytest

from booking.errors import BookingValidationError
from booking.services import discount_service
from booking.services.discount_service import apply_discount, discount_rejection_reason
from database.models import DiscountAudience, DiscountCode, DiscountRestriction, DiscountType

NOW = datetime(2025, 6, 15, tzinfo=UTC)
MODULE = "booking.services.discount_service"


def code(**overrides) -> DiscountCode:
    fields = {
        "id": 1,
        "code": "WELCOME10",
        "discount_type": DiscountType.PERCENTAGE,
        "value": 10,
        "description": "10% de descuento para nuevos usuarios",
        "valid_until": None,
        "max_uses": None,
        "used_count": 0,
        "min_amount": None,
        "applicable_to": DiscountAudience.ALL,
        "user_restriction": None,
        "is_active": True,
    }
    fields.update(overrides)
    return DiscountCode(**fields)


class TestApplyDiscount:
    @pytest.mark.parametrize(
        "discount_type,value,amount,expected",
        [
            (DiscountType.PERCENTAGE, 10, 2500, 2250),
            (DiscountType.PERCENTAGE, 50, 4999, 2500),
            (DiscountType.PERCENTAGE, 100, 1500, 0),
            (DiscountType.FIXED, 1000, 2500, 1500),
            (DiscountType.FIXED, 3000, 2500, 0),
            (DiscountType.FREE_MONTHS, 1, 4999, 0),
        ],
    )
    def test_final_amount(self, discount_type, value, amount, expected):
        assert apply_discount(discount_type, value, amount) == expected


class TestRejectionReason:
    def test_valid(self):
        assert discount_rejection_reason(code(), 2500, False, NOW, NOW) is None

    def test_inactive(self):
        assert "not active" in discount_rejection_reason(code(is_active=False), 2500, False, NOW, NOW)

    def test_expired(self):
        expired = code(valid_until=NOW - timedelta(seconds=1))
        assert "expired" in discount_rejection_reason(expired, 2500, False, NOW, NOW)

    def test_usage_limit(self):
        used_up = code(max_uses=3, used_count=3)
        assert "usage limit" in discount_rejection_reason(used_up, 2500, False, NOW, NOW)

    def test_minimum_amount(self):
        premium50 = code(code="PREMIUM50", value=50, min_amount=4000)
        reason = discount_rejection_reason(premium50, 2500, True, NOW, NOW)
        assert reason == "Minimum amount for this code is 40,00 €"
        assert discount_rejection_reason(premium50, 4999, True, NOW, NOW) is None

    def test_audience(self):
        clients_only = code(applicable_to=DiscountAudience.CLIENT)
        pros_only = code(applicable_to=DiscountAudience.PROFESSIONAL)

        assert discount_rejection_reason(clients_only, 2500, True, NOW, NOW) is not None
        assert discount_rejection_reason(pros_only, 2500, False, NOW, NOW) is not None
        assert discount_rejection_reason(pros_only, 2500, True, NOW, NOW) is None

    def test_new_users_window(self):
        new_users = code(user_restriction=DiscountRestriction.NEW_USERS)

        assert discount_rejection_reason(new_users, 2500, False, NOW - timedelta(days=29), NOW) is None
        assert "new users" in discount_rejection_reason(
            new_users, 2500, False, NOW - timedelta(days=31), NOW
        )


class TestValidateDiscount:
    @pytest.mark.asyncio
    async def test_preview(self, patch_session, results, make_user, monkeypatch):
        session = patch_session(MODULE)
        session.execute.return_value = results.scalar(
            code(user_restriction=DiscountRestriction.NEW_USERS)
        )
        monkeypatch.setattr(f"{MODULE}.now_utc", lambda: NOW)
        user = make_user(1, created_at=NOW - timedelta(days=2))

        preview = await discount_service.validate_discount(user, "welcome10", 2500)

        assert preview == {
            "valid": True,
            "code": "WELCOME10",
            "description": "10% de descuento para nuevos usuarios",
            "discount_type": "percentage",
            "value": 10,
            "original_amount": 2500,
            "final_amount": 2250,
            "discount_amount": 250,
            "final_amount_display": "22,50 €",
        }
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_code(self, patch_session, results, client_user):
        session = patch_session(MODULE)
        session.execute.return_value = results.scalar(None)

        with pytest.raises(BookingValidationError, match="Invalid discount code"):
            await discount_service.validate_discount(client_user, "NOPE", 2500)

    @pytest.mark.asyncio
    async def test_negative_amount(self, client_user):
        with pytest.raises(BookingValidationError):
            await discount_service.validate_discount(client_user, "WELCOME10", -5)

    def test_record_use(self):
        discount = code(used_count=4)
        discount_service.record_discount_use(discount)
        assert discount.used_count == 5
