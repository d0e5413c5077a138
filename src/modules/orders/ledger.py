"""Yard ledger parsing.

Shipping cost used to be stored inside a free-text field such as
``"Own shipping: 42.50"`` or ``"Yard shipping: 20"``.  New yard entries store
it as a structured ``(shipping_type, shipping_cost)`` pair; the string form is
kept only as a rendering of that pair and as a legacy import path.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from django.db import models

from modules.orders.money import ZERO, to_money

SHIPPING_PATTERN = re.compile(
    r"(own shipping|yard shipping)\s*:\s*([-+]?(?:\d+(?:\.\d*)?|\.\d+))",
    re.IGNORECASE,
)

YARD_COST_FIELDS = (
    "part_price",
    "others",
    "cust_own_shipping_return",
    "cust_own_ship_replacement",
    "yard_own_shipping",
    "refunded_amount",
)


class ShippingType(models.TextChoices):
    OWN = "OWN", "Own shipping"
    YARD = "YARD", "Yard shipping"


def parse_shipping_value(details: Any) -> Decimal:
    """Extract the shipping charge from a shipping-detail string.

    Never raises and never mutates its input: anything that does not match
    ``(Own shipping|Yard shipping): <number>`` yields ``0``.
    """
    parsed = parse_shipping_details(details)
    if parsed is None:
        return ZERO
    return parsed[1]


def parse_shipping_details(details: Any) -> Optional[Tuple[ShippingType, Decimal]]:
    """Return ``(shipping_type, amount)`` for a legacy string, or ``None``."""
    if not isinstance(details, str) or not details:
        return None
    match = SHIPPING_PATTERN.search(details)
    if match is None:
        return None
    label = match.group(1).lower()
    shipping_type = ShippingType.OWN if label.startswith("own") else ShippingType.YARD
    return shipping_type, to_money(match.group(2))


def format_shipping_details(shipping_type: Optional[str], amount: Any) -> str:
    """Render the structured pair back to its legacy string form."""
    if not shipping_type:
        return ""
    label = ShippingType(shipping_type).label
    return f"{label}: {_plain(to_money(amount))}"


def normalize_yard_costs(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Normalize the cost fields of a yard payload.

    Every known cost field becomes a cent ``Decimal`` (unparsable -> 0).
    Shipping may be given as ``own_shipping`` / ``yard_shipping`` amounts or
    as a legacy ``shipping_details`` string; both are folded into
    ``shipping_type`` + ``shipping_cost``.  Keys not present in *fields* are
    not added, so the result can be used as a partial update.
    """
    normalized: Dict[str, Any] = {}
    for name in YARD_COST_FIELDS:
        if name in fields:
            normalized[name] = to_money(fields[name])

    own = fields.get("own_shipping")
    yard = fields.get("yard_shipping")
    if _is_set(own):
        normalized["shipping_type"] = ShippingType.OWN
        normalized["shipping_cost"] = to_money(own)
    elif _is_set(yard):
        normalized["shipping_type"] = ShippingType.YARD
        normalized["shipping_cost"] = to_money(yard)
    elif "shipping_details" in fields:
        parsed = parse_shipping_details(fields["shipping_details"])
        if parsed is None:
            normalized["shipping_type"] = ""
            normalized["shipping_cost"] = ZERO
        else:
            normalized["shipping_type"], normalized["shipping_cost"] = parsed
    return normalized


def _is_set(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def _plain(amount: Decimal) -> str:
    text = format(amount.normalize(), "f")
    return text if text != "-0" else "0"
