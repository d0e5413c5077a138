"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Writes do not
open their own transaction: the service's ``transaction.atomic()`` block
is the unit of work, so the order row, its yards, its history and its
outbox events commit or roll back together.

Concurrency control combines ``select_for_update()`` with a ``version``
column: :meth:`commit` only succeeds when the stored version still equals
the one read, which also guards backends where row locks are no-ops.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F, Max, QuerySet

from modules.core.models import OutboxEvent
from modules.orders.exceptions import ConcurrencyConflict, OrderAlreadyExists
from modules.orders.models import Order, OrderHistoryEntry, YardEntry
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(**data)
        try:
            with transaction.atomic():
                order.save(force_insert=True)
        except IntegrityError as exc:
            raise OrderAlreadyExists(
                f"Order {data.get('order_number')} already exists."
            ) from exc

        logger.info("order.inserted", order_number=order.order_number)
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return Order.objects.prefetch_related("yard_entries").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_number(self, order_number: str) -> Optional[Order]:
        return (
            Order.objects.prefetch_related("yard_entries")
            .filter(order_number=order_number)
            .first()
        )

    def get_for_update(self, order_number: str) -> Optional[Order]:
        return Order.objects.select_for_update().filter(order_number=order_number).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """List orders with eager-loaded yard entries.

        ``filters`` are passed straight to ``QuerySet.filter``; filters that
        span yard entries may produce duplicates, hence ``distinct()``.
        """
        queryset = Order.objects.prefetch_related("yard_entries")
        if filters:
            queryset = queryset.filter(**filters).distinct()
        return queryset

    # ------------------------------------------------------------------
    # Save / commit
    # ------------------------------------------------------------------

    def save(self, entity: Order) -> Order:
        """Persist *entity* as-is and flush its domain events to the outbox."""
        entity.save()
        self._flush_events(entity)
        return entity

    def commit(self, entity: Order) -> Order:
        read_version = entity.version
        bumped = Order.objects.filter(pk=entity.pk, version=read_version).update(
            version=F("version") + 1
        )
        if not bumped:
            stored = (
                Order.objects.filter(pk=entity.pk)
                .values_list("version", flat=True)
                .first()
            )
            logger.warning(
                "order.version_conflict",
                order_number=entity.order_number,
                expected=read_version,
                actual=stored,
            )
            raise ConcurrencyConflict(entity.order_number, read_version, stored or 0)

        entity.version = read_version + 1
        return self.save(entity)

    def _flush_events(self, entity: Order) -> None:
        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=entity.order_number,
                payload=event.to_payload(),
                topic=OUTBOX_TOPIC,
            )
        entity.clear_domain_events()
        if events:
            logger.info(
                "order.events_recorded",
                order_number=entity.order_number,
                event_count=len(events),
            )

    # ------------------------------------------------------------------
    # Yard ledger
    # ------------------------------------------------------------------

    def yards(self, entity: Order) -> List[YardEntry]:
        return list(YardEntry.objects.filter(order=entity).order_by("index"))

    def get_yard(self, entity: Order, index: int) -> Optional[YardEntry]:
        return YardEntry.objects.filter(order=entity, index=index).first()

    def add_yard(self, entity: Order, data: Dict[str, Any]) -> YardEntry:
        last = YardEntry.objects.filter(order=entity).aggregate(last=Max("index"))["last"]
        yard = YardEntry(order=entity, index=(last or 0) + 1, **data)
        yard.save(force_insert=True)
        return yard

    def save_yard(self, yard: YardEntry) -> YardEntry:
        yard.save()
        return yard

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_history(self, entity: Order, text: str) -> OrderHistoryEntry:
        last = OrderHistoryEntry.objects.filter(order=entity).aggregate(
            last=Max("sequence")
        )["last"]
        entry = OrderHistoryEntry(order=entity, sequence=(last or 0) + 1, text=text)
        entry.save(force_insert=True)
        logger.info(
            "order.history_added",
            order_number=entity.order_number,
            sequence=entry.sequence,
        )
        return entry
