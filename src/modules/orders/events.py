"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""

    order_number: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order status changes."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled with a customer refund."""

    amount: str = ""
    reason: str = ""


@dataclass(frozen=True)
class OrderRefunded(DomainEvent):
    """Raised when an order is refunded."""

    amount: str = ""
    reason: str = ""


@dataclass(frozen=True)
class YardLedgerChanged(DomainEvent):
    """Raised when a yard entry is added or its fields change."""

    yard_index: int = 0
    change: str = ""


@dataclass(frozen=True)
class GrossProfitRecalculated(DomainEvent):
    """Raised when Current GP moves."""

    previous: str = ""
    current: str = ""
