"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``) and
reject unknown fields (``extra="forbid"``), so records of an
unexpected shape never reach the engine.

- ``CreateOrderDTO``: input for order creation.
- ``AddYardDTO``: input for appending a yard entry.
- ``UpdateYardDTO``: partial update of a yard entry (only set fields apply).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.orders.constants import OrderStatus, YardStatus
from modules.orders.money import MAX_AMOUNT, within_limit

# Yard cost inputs are deliberately loose: unparsable values degrade to 0.
MoneyInput = Optional[Union[Decimal, int, float, str]]


def _is_set(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    ``yard_cost_estimate`` and ``shipping_estimate`` are the operator's
    initial estimates; they only feed Estimated GP.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    order_number: str
    quoted_price: Decimal
    yard_cost_estimate: Decimal = Decimal("0")
    shipping_estimate: Decimal = Decimal("0")
    order_date: Optional[datetime] = None
    customer_name: str = ""
    email: str = ""
    phone: str = ""
    sales_agent: str = ""
    part_requested: str = ""
    part_number: str = ""
    vehicle_make: str = ""
    vehicle_model: str = ""
    year: Optional[int] = None

    @field_validator("order_number")
    @classmethod
    def order_number_must_not_be_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Order number is required.")
        return v

    @field_validator("quoted_price", "yard_cost_estimate", "shipping_estimate")
    @classmethod
    def amounts_must_not_be_negative(cls, v: Decimal) -> Decimal:
        if not v.is_finite() or v < 0:
            raise ValueError("Amounts must be non-negative numbers.")
        if not within_limit(v):
            raise ValueError(f"Amounts cannot exceed {MAX_AMOUNT}.")
        return v


# ---------------------------------------------------------------------------
# Yard entries
# ---------------------------------------------------------------------------


class _YardFields(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    yard_name: Optional[str] = None
    part_price: MoneyInput = None
    own_shipping: MoneyInput = None
    yard_shipping: MoneyInput = None
    shipping_details: Optional[str] = None
    others: MoneyInput = None
    cust_own_shipping_return: MoneyInput = None
    cust_own_ship_replacement: MoneyInput = None
    yard_own_shipping: MoneyInput = None
    refunded_amount: MoneyInput = None
    payment_status: Optional[str] = None
    card_charged_date: Optional[datetime] = None
    refund_status: Optional[str] = None
    escalation: Optional[bool] = None
    escalation_cause: Optional[str] = None
    tracking_no: Optional[str] = None
    eta: Optional[str] = None
    shipper_name: Optional[str] = None
    tracking_link: Optional[str] = None
    order_status: Optional[OrderStatus] = None

    @model_validator(mode="after")
    def one_shipping_kind(self):
        """Own and yard shipping are mutually exclusive."""
        if _is_set(self.own_shipping) and _is_set(self.yard_shipping):
            raise ValueError("Provide either own_shipping or yard_shipping, not both.")
        return self

    def changes(self) -> Dict[str, Any]:
        """Fields explicitly provided by the caller."""
        return self.model_dump(exclude_unset=True)


class AddYardDTO(_YardFields):
    """Immutable DTO for a new yard entry.

    ``order_status`` optionally moves the order in the same call; when it
    is omitted the yard status decides (``Yard located`` -> Yard Processing).
    """

    status: str = YardStatus.YARD_LOCATED


class UpdateYardDTO(_YardFields):
    """Immutable DTO for a partial yard update."""

    status: Optional[str] = None
