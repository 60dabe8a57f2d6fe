"""
Utility functions shared by booking services.

- money: integer-cent formatting and conversion
- dates: timezone resolution and Spanish date formatting
"""

from booking.utils.dates import ensure_aware, format_date_spanish, now_utc
from booking.utils.money import cents_to_euros, euros_to_cents, format_price

__all__ = [
    "cents_to_euros",
    "ensure_aware",
    "euros_to_cents",
    "format_date_spanish",
    "format_price",
    "now_utc",
]
