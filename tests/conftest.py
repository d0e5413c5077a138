from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.orders.dtos import AddYardDTO, CreateOrderDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from shared.infrastructure.notifier import InMemoryChangeNotifier


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _local_cache(settings):
    """Tests never need a Redis server."""
    settings.CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "tests",
        }
    }


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def agent():
    return get_user_model().objects.create_user(
        username="mark", password="testpass123", first_name="Mark"
    )


@pytest.fixture()
def auth_client(agent):
    client = APIClient()
    client.force_authenticate(user=agent)
    return client


@pytest.fixture()
def notifier():
    return InMemoryChangeNotifier()


@pytest.fixture()
def service(notifier):
    return OrderService(order_repository=OrderDjangoRepository(), notifier=notifier)


@pytest.fixture()
def make_order(service):
    """Create an order through the service: ``make_order("50STARS1", quoted="500")``."""

    def _make(order_number="50STARS4956", quoted="500.00", actor="Mark", **fields):
        dto = CreateOrderDTO(
            order_number=order_number,
            quoted_price=Decimal(quoted),
            **fields,
        )
        return service.create_order(dto, actor=actor)

    return _make


@pytest.fixture()
def order_in_processing(service, make_order):
    """Order with one charged yard, in Yard Processing."""
    order = make_order()
    service.transition(order.order_number, "Customer Approved", actor="Mark")
    return service.add_yard(
        order.order_number,
        AddYardDTO(
            yard_name="LKQ Houston",
            part_price="200",
            yard_shipping="20",
            payment_status="Card charged",
        ),
        actor="Mark",
    )
