"""Gross-profit aggregation.

Two figures share one cost-summation core:

- **Estimated GP**, fixed at order creation from the operator's estimates:
  ``quoted - yard_cost_estimate - shipping_estimate - sales_tax``.
- **Current GP**, recomputed after every ledger or refund mutation:
  ``(quoted - sales_tax - cust_refunded_amount) - total_yard_spend``.

Every function here is pure: it reads an immutable snapshot and returns a
``Decimal``.  Persisting the result is the caller's decision.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable, Optional, Tuple

from modules.orders.constants import CANCELLED_YARD_STATUSES, CHARGED_PAYMENT_STATUSES
from modules.orders.ledger import YARD_COST_FIELDS, parse_shipping_value
from modules.orders.money import ZERO, quantize, sales_tax, to_money

if TYPE_CHECKING:
    from modules.orders.models import Order, YardEntry


@dataclass(frozen=True)
class YardLedgerEntry:
    """Immutable cost view of one yard leg."""

    part_price: Decimal = ZERO
    shipping_details: str = ""
    others: Decimal = ZERO
    cust_own_shipping_return: Decimal = ZERO
    cust_own_ship_replacement: Decimal = ZERO
    yard_own_shipping: Decimal = ZERO
    refunded_amount: Decimal = ZERO
    status: str = ""
    payment_status: str = ""
    escalation: bool = False

    @classmethod
    def from_values(cls, **values: Any) -> YardLedgerEntry:
        """Build an entry from loosely-typed values (strings, floats, None)."""
        kwargs: dict[str, Any] = {}
        for name, value in values.items():
            if name in YARD_COST_FIELDS:
                kwargs[name] = to_money(value)
            elif name == "escalation":
                kwargs[name] = bool(value)
            else:
                kwargs[name] = "" if value is None else str(value)
        return cls(**kwargs)

    @classmethod
    def from_model(cls, yard: YardEntry) -> YardLedgerEntry:
        return cls(
            part_price=to_money(yard.part_price),
            shipping_details=yard.shipping_details,
            others=to_money(yard.others),
            cust_own_shipping_return=to_money(yard.cust_own_shipping_return),
            cust_own_ship_replacement=to_money(yard.cust_own_ship_replacement),
            yard_own_shipping=to_money(yard.yard_own_shipping),
            refunded_amount=to_money(yard.refunded_amount),
            status=yard.status or "",
            payment_status=yard.payment_status or "",
            escalation=bool(yard.escalation),
        )


@dataclass(frozen=True)
class OrderFinancials:
    """Immutable order-level inputs to Current GP."""

    quoted_price: Decimal = ZERO
    sales_tax: Decimal = ZERO
    cust_refunded_amount: Decimal = ZERO
    yards: Tuple[YardLedgerEntry, ...] = field(default_factory=tuple)

    @classmethod
    def from_order(
        cls, order: Order, yards: Optional[Iterable[YardEntry]] = None
    ) -> OrderFinancials:
        entries = yards if yards is not None else order.yard_entries.all()
        return cls(
            quoted_price=to_money(order.quoted_price),
            sales_tax=to_money(order.sales_tax),
            cust_refunded_amount=to_money(order.cust_refunded_amount),
            yards=tuple(YardLedgerEntry.from_model(y) for y in entries),
        )


def estimated_gp(
    quoted: Any,
    yard_cost_estimate: Any,
    shipping_estimate: Any,
    tax: Any = None,
) -> Decimal:
    """Estimated GP at order creation.  ``tax`` defaults to 5% of ``quoted``."""
    tax_amount = sales_tax(quoted) if tax is None else to_money(tax)
    return quantize(
        to_money(quoted)
        - to_money(yard_cost_estimate)
        - to_money(shipping_estimate)
        - tax_amount
    )


def counts_toward_spend(entry: YardLedgerEntry) -> bool:
    """A cancelled PO only costs money if the card was actually charged."""
    status = entry.status.strip().casefold()
    if status not in CANCELLED_YARD_STATUSES:
        return True
    return entry.payment_status.strip().casefold() in CHARGED_PAYMENT_STATUSES


def yard_spend(entry: YardLedgerEntry) -> Decimal:
    """Net spend of a single yard leg, ignoring the cancellation rule."""
    return quantize(
        entry.part_price
        + parse_shipping_value(entry.shipping_details)
        + entry.others
        + entry.cust_own_shipping_return
        + entry.cust_own_ship_replacement
        + entry.yard_own_shipping
        - entry.refunded_amount
    )


def total_yard_spend(entries: Iterable[YardLedgerEntry]) -> Decimal:
    total = ZERO
    for entry in entries:
        if counts_toward_spend(entry):
            total += yard_spend(entry)
    return quantize(total)


def current_gp(financials: OrderFinancials) -> Decimal:
    revenue = (
        financials.quoted_price
        - financials.sales_tax
        - financials.cust_refunded_amount
    )
    return quantize(revenue - total_yard_spend(financials.yards))
