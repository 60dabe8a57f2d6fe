"""Input validators for booking operations."""

from booking.validators.appointment_validators import (
    validate_horse_ids,
    validate_message_content,
    validate_price,
    validate_rating,
    validate_schedule,
)

__all__ = [
    "validate_horse_ids",
    "validate_message_content",
    "validate_price",
    "validate_rating",
    "validate_schedule",
]
