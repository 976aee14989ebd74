from decimal import (Context, Decimal, InvalidOperation, MAX_PREC,
                     ROUND_HALF_UP)
from typing import Union

from config import CURRENCY_EXPONENT, MINOR_UNITS_PER_UNIT

Amount = Union[Decimal, int, str, float]

# Shifting the exponent never needs rounding under this context, so minor
# and major amounts convert exactly at any magnitude.
_EXACT = Context(prec=MAX_PREC)


def to_minor(amount: Amount) -> int:
    """Convert a currency amount to integer minor units.

    Rounds half away from zero. Floats are routed through ``str`` so the
    shortest decimal representation is used instead of the binary value.
    """
    if isinstance(amount, float):
        amount = str(amount)
    try:
        value = Decimal(amount)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Amount must be finite: {amount!r}")
    return int(value.scaleb(CURRENCY_EXPONENT, _EXACT).to_integral_value(
        rounding=ROUND_HALF_UP, context=_EXACT))


def to_major(amount_minor: int) -> Decimal:
    return Decimal(amount_minor).scaleb(-CURRENCY_EXPONENT, _EXACT)


def format_currency(amount_minor: int) -> str:
    sign = "-" if amount_minor < 0 else ""
    units, cents = divmod(abs(amount_minor), MINOR_UNITS_PER_UNIT)
    return f"{sign}{units}.{cents:02d}"


def parse_currency(amount_str: str) -> int:
    cleaned = amount_str.replace(',', '.').strip()

    try:
        return to_minor(Decimal(cleaned))
    except (InvalidOperation, ValueError):
        raise ValueError("Invalid amount format")
