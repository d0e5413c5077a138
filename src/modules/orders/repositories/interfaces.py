"""Order repository interface.

Extends ``IRepository[Order]`` with the methods the Order aggregate needs:
look-up by order number, row locking, version-checked commits, the yard
ledger and the append-only history.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderHistoryEntry, YardEntry


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes its YardEntry children and OrderHistoryEntry
    records.  Mutations run inside the caller's transaction.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Insert a new order.

        Raises:
            OrderAlreadyExists: ``order_number`` is taken.
        """

    @abstractmethod
    def get_by_number(self, order_number: str) -> Optional[Order]:
        """Retrieve an order with prefetched yard entries."""

    @abstractmethod
    def get_for_update(self, order_number: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock until commit."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List orders with optional ORM filters."""

    @abstractmethod
    def commit(self, entity: Order) -> Order:
        """Persist a mutation, bumping ``version`` by one.

        Raises:
            ConcurrencyConflict: the stored version moved since *entity* was read.
        """

    @abstractmethod
    def yards(self, entity: Order) -> List[YardEntry]:
        """Yard entries of *entity* ordered by index."""

    @abstractmethod
    def get_yard(self, entity: Order, index: int) -> Optional[YardEntry]:
        """Yard entry at the 1-based *index*, if any."""

    @abstractmethod
    def add_yard(self, entity: Order, data: Dict[str, Any]) -> YardEntry:
        """Append a yard entry at the next index."""

    @abstractmethod
    def save_yard(self, yard: YardEntry) -> YardEntry:
        """Persist changes to an existing yard entry."""

    @abstractmethod
    def add_history(self, entity: Order, text: str) -> OrderHistoryEntry:
        """Append one line to the order's audit trail."""
