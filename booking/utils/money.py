"""
Money helpers. All amounts are integer cents.

Display follows the es-ES euro format: "1.234,56 €".
"""

from decimal import ROUND_HALF_UP, Decimal


def format_price(cents: int | None) -> str | None:
    """
    Format an amount in cents for display.

    >>> format_price(10000)
    '100,00 €'
    >>> format_price(123456)
    '1.234,56 €'
    """
    if cents is None:
        return None
    if isinstance(cents, bool) or not isinstance(cents, int):
        raise TypeError(f"Amount must be integer cents, got {type(cents).__name__}")

    sign = "-" if cents < 0 else ""
    euros, remainder = divmod(abs(cents), 100)
    grouped = f"{euros:,}".replace(",", ".")
    return f"{sign}{grouped},{remainder:02d} €"


def euros_to_cents(amount: Decimal | float | str) -> int:
    """Convert a euro amount to cents, rounding half up."""
    value = Decimal(str(amount)) * 100
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_euros(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))
