"""Exact decimal parsing for monetary and quantity fields.

Broker exports carry numbers as strings such as "-$15,050.00" or
"0.05252". These helpers strip the currency symbol and thousands
separators and build a Decimal directly from the cleaned text, so no
value ever passes through a binary float.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, getcontext

ZERO = Decimal("0")


def clean_number(raw: str | None) -> str:
    """Strip whitespace, '$' and ',' from a numeric string."""
    if raw is None:
        return ""
    return raw.strip().replace("$", "").replace(",", "").strip()


def try_parse_decimal(raw: str | None) -> Decimal | None:
    """Parse a broker numeric string.

    Returns ZERO for blank input and None when the text is not a number or
    its exponent is outside what the decimal context can do arithmetic on.
    """
    cleaned = clean_number(raw)
    if not cleaned:
        return ZERO
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    context = getcontext()
    if value and not context.Emin <= value.adjusted() <= context.Emax:
        return None
    return value


def parse_decimal(raw: str | None) -> Decimal:
    """Parse a broker numeric string, falling back to zero when malformed."""
    value = try_parse_decimal(raw)
    return ZERO if value is None else value
