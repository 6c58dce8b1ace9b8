# Overview: Integer-cent money helpers shared by services and exports.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

# $9,999,999.99
MAX_PRICE_CENTS = 999_999_999

CURRENCY_SYMBOLS = {"USD": "$", "CAD": "$", "AUD": "$", "EUR": "€", "GBP": "£", "AZN": "₼"}


def format_cents(cents: int | None, currency: str = "USD") -> str:
    """Render integer cents as a display amount ("$12.50")."""
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    cents = cents or 0
    sign = "-" if cents < 0 else ""
    return f"{sign}{symbol}{abs(cents) / 100:,.2f}"


def percent_to_bps(value) -> int:
    """
    Convert a percentage ("8.25", 8.25, "10") to basis points (825, 1000).

    Raises ValueError for anything that is not a number.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return 0
    try:
        pct = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Invalid percentage: {value!r}")
    return int((pct * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def bps_to_percent(bps: int) -> str:
    """Basis points back to a compact percentage string (825 -> "8.25")."""
    pct = Decimal(bps) / Decimal(100)
    text = format(pct.normalize(), "f")
    return text


def apply_bps(amount_cents: int, bps: int) -> int:
    """amount x bps / 10000, rounded half up to the cent."""
    if amount_cents <= 0 or bps <= 0:
        return 0
    return (amount_cents * bps + 5000) // 10000
