"""Unit tests for the OutboxEvent model.

Covers:
- Event creation with all required fields.
- Default status is PENDING.
- JSON payload persistence and retrieval.
- Events recorded by order mutations.
- __str__ representation.
"""

from __future__ import annotations

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.orders.exceptions import InvalidTransition

pytestmark = pytest.mark.unit


def _make_event(**overrides) -> OutboxEvent:
    defaults = {
        "event_type": "OrderCreated",
        "payload": {"order_number": "50STARS4956"},
        "aggregate_id": "50STARS4956",
        "topic": "orders",
    }
    defaults.update(overrides)
    return OutboxEvent.objects.create(**defaults)


class TestOutboxEventCreation:
    def test_create_event_with_defaults(self):
        event = _make_event()
        event.refresh_from_db()
        assert event.event_type == "OrderCreated"
        assert event.aggregate_id == "50STARS4956"
        assert event.topic == "orders"
        assert event.status == EventStatus.PENDING

    def test_payload_persisted_and_retrieved(self):
        payload = {"previous": "475.00", "current": "255.00", "nested": {"k": [1, 2]}}
        event = _make_event(payload=payload)
        event.refresh_from_db()
        assert event.payload == payload


class TestOutboxEventsFromOrders:
    def test_order_lifecycle_records_events(self, service, order_in_processing):
        types = list(
            OutboxEvent.objects.filter(aggregate_id="50STARS4956").values_list(
                "event_type", flat=True
            )
        )
        assert "OrderCreated" in types
        assert "OrderStatusChanged" in types
        assert "YardLedgerChanged" in types
        assert "GrossProfitRecalculated" in types

    def test_rejected_mutation_records_nothing(self, service, make_order):
        make_order()
        count = OutboxEvent.objects.count()
        with pytest.raises(InvalidTransition):
            service.transition("50STARS4956", "Order Fulfilled", actor="Mark")
        assert OutboxEvent.objects.count() == count


class TestOutboxEventDisplay:
    def test_str_representation(self):
        result = str(_make_event(event_type="OrderCancelled", aggregate_id="50STARS1"))
        assert "OrderCancelled" in result
        assert "PENDING" in result
        assert "50STARS1" in result
