"""Fixed-precision monetary helpers shared by every GP calculation.

All amounts travel as ``Decimal`` quantized to cents.  Inputs arrive from
forms, legacy documents and JSON payloads, so :func:`to_money` accepts
anything and degrades unparsable values (``None``, ``""``, ``"abc"``,
``NaN``, infinities, numbers too large to hold in cents) to zero instead
of raising.

Stored amounts are bounded by the ``DecimalField(max_digits=10)`` columns;
:func:`within_limit` tells callers whether a parsed value fits.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
SALES_TAX_RATE = Decimal("0.05")
MAX_AMOUNT = Decimal("99999999.99")


def quantize(value: Decimal) -> Decimal:
    """Round *value* to cents (half-up, as accountants expect)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_money(value: Any) -> Decimal:
    """Coerce *value* to a cent-precision ``Decimal``; unparsable -> ``0.00``."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        candidate = value
    else:
        text = str(value).strip().replace(",", "").lstrip("$")
        if not text:
            return ZERO
        try:
            candidate = Decimal(text)
        except (InvalidOperation, ValueError):
            return ZERO
    if not candidate.is_finite():
        return ZERO
    try:
        return quantize(candidate)
    except InvalidOperation:
        # Too many digits to represent in cents.
        return ZERO


def parse_money(value: Any) -> Decimal | None:
    """Strict variant of :func:`to_money` used to validate user input.

    Returns ``None`` when *value* is absent or not a finite number, so
    callers can distinguish "missing" from "zero".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        candidate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not candidate.is_finite():
        return None
    try:
        return quantize(candidate)
    except InvalidOperation:
        return None


def sales_tax(quoted: Any, rate: Decimal = SALES_TAX_RATE) -> Decimal:
    """Sales tax charged on the quoted price (flat rate)."""
    return quantize(to_money(quoted) * rate)


def within_limit(amount: Decimal) -> bool:
    """True when *amount* fits the stored money columns."""
    return abs(amount) <= MAX_AMOUNT
