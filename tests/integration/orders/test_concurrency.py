"""Optimistic concurrency integration tests.

Two writers that read the same snapshot cannot both commit: the second
``commit`` finds the stored version moved on and raises
``ConcurrencyConflict``.  Over HTTP a stale ``expected_version`` maps to
409 with the current version in the body.
"""

from __future__ import annotations

import pytest

from modules.orders.exceptions import ConcurrencyConflict
from modules.orders.models import Order, OrderHistoryEntry
from modules.orders.repositories.django_repository import OrderDjangoRepository

pytestmark = pytest.mark.integration

DETAIL = "/api/v1/orders/50STARS4956/"


class TestStaleSnapshot:
    def test_second_writer_loses(self, make_order):
        make_order()
        repo = OrderDjangoRepository()
        first = repo.get_for_update("50STARS4956")
        second = repo.get_for_update("50STARS4956")

        first.status = "Customer Approved"
        repo.commit(first)

        second.status = "Voided"
        with pytest.raises(ConcurrencyConflict) as exc_info:
            repo.commit(second)

        assert exc_info.value.expected == 1
        assert exc_info.value.actual == 2
        order = Order.objects.get()
        assert order.status == "Customer Approved"
        assert order.version == 2

    def test_service_rejects_stale_expected_version(self, service, make_order):
        make_order()
        service.transition("50STARS4956", "Customer Approved", actor="Tony", expected_version=1)
        history_count = OrderHistoryEntry.objects.count()

        with pytest.raises(ConcurrencyConflict):
            service.transition("50STARS4956", "Voided", actor="Mark", expected_version=1)

        assert OrderHistoryEntry.objects.count() == history_count
        assert Order.objects.get().status == "Customer Approved"


class TestConcurrentPatches:
    def test_two_dashboards_same_version(self, auth_client, make_order):
        make_order()

        first = auth_client.patch(
            DETAIL, {"status": "Customer Approved", "expected_version": 1}, format="json"
        )
        second = auth_client.patch(
            DETAIL, {"status": "Voided", "expected_version": 1}, format="json"
        )

        assert first.status_code == 200
        assert first.data["version"] == 2
        assert second.status_code == 409
        assert second.data["current_version"] == 2

    def test_retry_with_fresh_version_succeeds(self, auth_client, make_order):
        make_order()
        auth_client.patch(DETAIL, {"status": "Customer Approved"}, format="json")

        current = auth_client.get(DETAIL).data["version"]
        response = auth_client.patch(
            DETAIL, {"status": "Voided", "expected_version": current}, format="json"
        )

        assert response.status_code == 200
        assert response.data["status"] == "Voided"
        assert response.data["version"] == current + 1
