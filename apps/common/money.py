"""Decimal helpers shared by the ledgers. All amounts are stored with 2 dp."""

from decimal import Decimal, ROUND_HALF_UP

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def d(val) -> Decimal:
    """Coerce to Decimal without going through float."""
    if isinstance(val, Decimal):
        return val
    if val is None or val == "":
        return Decimal("0")
    return Decimal(str(val))


def cents(amount) -> Decimal:
    return d(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def percent_of(amount, percent) -> Decimal:
    """``amount × percent / 100`` rounded once to cents."""
    return cents(d(amount) * d(percent) / Decimal("100"))


def percent_label(percent) -> str:
    """70.00 → "70", 62.50 → "62.5"."""
    return f"{d(percent).normalize():f}"
