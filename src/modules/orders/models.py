"""Order, YardEntry and OrderHistoryEntry models.

Business rules implemented:
- ``order_number`` is assigned by the caller and never changes.
- ``current_gp`` and ``escalation_bucket`` are derived from the yard ledger
  and rewritten by the service layer on every mutation; they are stored
  only so listing pages can filter and sort on them.
- ``version`` is bumped on every committed mutation (optimistic locking).
- History lives in an append-only side table; entries are never edited.
- Yard entries are appended with a stable 1-based ``index``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import (
    TERMINAL_STATES,
    EscalationBucket,
    OrderStatus,
)
from modules.orders.ledger import ShippingType, format_shipping_details
from modules.orders.state_machine import can_transition
from shared.domain.events import DomainEventMixin


def _money_field(**kwargs: Any) -> models.DecimalField:
    kwargs.setdefault("default", Decimal("0.00"))
    return models.DecimalField(max_digits=10, decimal_places=2, **kwargs)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    The UUIDv7 ``id`` is used for internal references; collaborators address
    orders by their human-readable ``order_number``.
    """

    order_number: models.CharField = models.CharField(max_length=40, unique=True)
    order_date: models.DateTimeField = models.DateTimeField()

    # Customer / part (search surface)
    customer_name: models.CharField = models.CharField(max_length=200, blank=True, default="")
    email: models.CharField = models.CharField(max_length=254, blank=True, default="")
    phone: models.CharField = models.CharField(max_length=40, blank=True, default="")
    sales_agent: models.CharField = models.CharField(max_length=100, blank=True, default="")
    part_requested: models.CharField = models.CharField(max_length=200, blank=True, default="")
    part_number: models.CharField = models.CharField(max_length=100, blank=True, default="")
    vehicle_make: models.CharField = models.CharField(max_length=100, blank=True, default="")
    vehicle_model: models.CharField = models.CharField(max_length=100, blank=True, default="")
    year: models.PositiveIntegerField = models.PositiveIntegerField(null=True, blank=True)

    # Commercial
    quoted_price: models.DecimalField = _money_field()
    sales_tax: models.DecimalField = _money_field()
    yard_cost_estimate: models.DecimalField = _money_field()
    shipping_estimate: models.DecimalField = _money_field()
    estimated_gp: models.DecimalField = _money_field()
    current_gp: models.DecimalField = _money_field()

    # Refund / cancellation / dispute
    cust_refunded_amount: models.DecimalField = _money_field(null=True, blank=True)
    refund_date: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    cancelled_date: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    cancellation_reason: models.TextField = models.TextField(blank=True, default="")
    disputed_date: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    dispute_reason: models.TextField = models.TextField(blank=True, default="")

    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PLACED,
    )
    escalation_bucket: models.CharField = models.CharField(
        max_length=20,
        choices=EscalationBucket.choices,
        default=EscalationBucket.NONE,
    )
    support_notes: models.JSONField = models.JSONField(default=list, blank=True)
    version: models.PositiveIntegerField = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "orders"
        ordering = ["-order_date"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["escalation_bucket"], name="orders_escalation_idx"),
            models.Index(fields=["-order_date"], name="orders_order_date_idx"),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order reached a terminal outcome."""
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        return can_transition(self.status, new_status)

    @property
    def history(self) -> list[str]:
        """History lines in append order."""
        return list(self.history_entries.order_by("sequence").values_list("text", flat=True))

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class YardEntry(BaseModel):
    """One supplier-side sub-transaction of an order.

    Shipping is stored as ``shipping_type`` + ``shipping_cost``;
    ``shipping_details`` renders the legacy ``"Own shipping: 20"`` form.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="yard_entries",
    )
    index: models.PositiveIntegerField = models.PositiveIntegerField()
    yard_name: models.CharField = models.CharField(max_length=200, blank=True, default="")

    part_price: models.DecimalField = _money_field()
    shipping_type: models.CharField = models.CharField(
        max_length=10, choices=ShippingType.choices, blank=True, default=""
    )
    shipping_cost: models.DecimalField = _money_field()
    others: models.DecimalField = _money_field()
    cust_own_shipping_return: models.DecimalField = _money_field()
    cust_own_ship_replacement: models.DecimalField = _money_field()
    yard_own_shipping: models.DecimalField = _money_field()
    refunded_amount: models.DecimalField = _money_field()

    status: models.CharField = models.CharField(max_length=40, blank=True, default="")
    payment_status: models.CharField = models.CharField(max_length=40, blank=True, default="")
    card_charged_date: models.DateTimeField = models.DateTimeField(null=True, blank=True)
    refund_status: models.CharField = models.CharField(max_length=40, blank=True, default="")

    escalation: models.BooleanField = models.BooleanField(default=False)
    escalation_cause: models.TextField = models.TextField(blank=True, default="")

    tracking_no: models.CharField = models.CharField(max_length=100, blank=True, default="")
    eta: models.CharField = models.CharField(max_length=40, blank=True, default="")
    shipper_name: models.CharField = models.CharField(max_length=100, blank=True, default="")
    tracking_link: models.CharField = models.CharField(max_length=500, blank=True, default="")

    notes: models.JSONField = models.JSONField(default=list, blank=True)

    class Meta:
        db_table = "order_yard_entries"
        ordering = ["index"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "index"], name="yard_entries_order_index_uniq"
            ),
        ]

    @property
    def shipping_details(self) -> str:
        return format_shipping_details(self.shipping_type, self.shipping_cost)

    def __str__(self) -> str:
        return f"Yard {self.index} of {self.order_id} ({self.status or '-'})"


class OrderHistoryEntry(BaseModel):
    """Append-only audit line.

    ``sequence`` is 1-based and gapless per order; the unique constraint
    rejects two writers appending at the same position.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="history_entries",
    )
    sequence: models.PositiveIntegerField = models.PositiveIntegerField()
    text: models.TextField = models.TextField()

    class Meta:
        db_table = "order_history"
        ordering = ["sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "sequence"], name="order_history_order_seq_uniq"
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise RuntimeError("History entries are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any):
        raise RuntimeError("History entries are immutable.")

    def __str__(self) -> str:
        return f"#{self.sequence} {self.text}"
