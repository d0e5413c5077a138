"""Integration tests for standardized pagination."""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from modules.orders.models import Order

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def order_batch():
    """Create a batch of orders, one day apart, for pagination tests."""
    start = timezone.now()
    orders = [
        Order(
            order_number=f"50STARS{idx:04d}",
            order_date=start - timedelta(days=idx),
            quoted_price=Decimal("100.00"),
        )
        for idx in range(1, 121)
    ]
    Order.objects.bulk_create(orders)
    return orders


class TestPagination:
    def test_default_page_size(self, auth_client, order_batch):
        response = auth_client.get(URL)
        assert response.status_code == 200
        assert response.data["count"] == 120
        assert len(response.data["results"]) == 20
        assert response.data["next"] is not None
        assert response.data["previous"] is None

    def test_newest_first(self, auth_client, order_batch):
        response = auth_client.get(URL)
        numbers = [row["order_number"] for row in response.data["results"]]
        assert numbers[:2] == ["50STARS0001", "50STARS0002"]

    def test_custom_page_size(self, auth_client, order_batch):
        response = auth_client.get(f"{URL}?page_size=50")
        assert response.status_code == 200
        assert len(response.data["results"]) == 50
        assert response.data["next"] is not None

    def test_max_page_size(self, auth_client, order_batch):
        response = auth_client.get(f"{URL}?page_size=1000")
        assert response.status_code == 200
        assert len(response.data["results"]) == 100
        assert response.data["next"] is not None

    def test_last_page(self, auth_client, order_batch):
        response = auth_client.get(f"{URL}?page=6")
        assert response.status_code == 200
        assert len(response.data["results"]) == 20
        assert response.data["next"] is None

    def test_page_out_of_range(self, auth_client, order_batch):
        response = auth_client.get(f"{URL}?page=99")
        assert response.status_code == 404

    def test_escalation_queues_are_paginated(self, auth_client, order_batch):
        Order.objects.update(escalation_bucket="Ongoing")
        response = auth_client.get(f"{URL}ongoing-escalations/?page_size=10")
        assert response.data["count"] == 120
        assert len(response.data["results"]) == 10
