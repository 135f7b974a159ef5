from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")
FOURPLACES = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
THOUSAND = Decimal("1000")


def d(val) -> Decimal:
    """Coerce incoming values to Decimal safely."""
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


def q2(amount) -> Decimal:
    return d(amount).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def q4(amount) -> Decimal:
    return d(amount).quantize(FOURPLACES, rounding=ROUND_HALF_UP)


def format_gbp(amount) -> str:
    """Render an amount the way quotes show it, e.g. 1234.5 -> '£1,234.50'."""
    value = q2(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}£{abs(value):,.2f}"
