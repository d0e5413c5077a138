"""Integration tests for change notifications.

Covers:
- One message per committed mutation, published after commit.
- ``actorId`` echoes the ``X-Actor-Id`` header of the request.
- Rejected mutations publish nothing.
- A failing subscriber never fails the mutation.
"""

from __future__ import annotations

import pytest

from modules.orders.dtos import AddYardDTO
from modules.orders.models import Order
from shared.domain.notifier import order_topic
from shared.infrastructure.notifier import QueueSubscriber, change_notifier

pytestmark = pytest.mark.integration

DETAIL = "/api/v1/orders/50STARS4956/"


class _BrokenSubscriber:
    is_open = True

    def send(self, message):
        raise ConnectionResetError("socket gone")

    def on_close(self, callback):
        pass


@pytest.fixture()
def listener():
    sub = QueueSubscriber()
    change_notifier.subscribe(order_topic("50STARS4956"), sub)
    yield sub
    sub.close()


# ---------------------------------------------------------------------------
# Service-level
# ---------------------------------------------------------------------------


class TestServiceNotifications:
    def test_published_after_commit(
        self, service, notifier, make_order, django_capture_on_commit_callbacks
    ):
        sub = QueueSubscriber()
        notifier.subscribe(order_topic("50STARS4956"), sub)

        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            make_order()
        assert sub.drain() == []

        for callback in callbacks:
            callback()
        message = sub.get(timeout=1)
        assert message["orderNo"] == "50STARS4956"
        assert message["type"] == "ORDER_CREATED"
        assert message["version"] == 1
        assert message["estimatedGP"] == "475.00"

    def test_yard_add_message(
        self, service, notifier, make_order, django_capture_on_commit_callbacks
    ):
        make_order()
        service.transition("50STARS4956", "Customer Approved", actor="Mark")
        sub = QueueSubscriber()
        notifier.subscribe(order_topic("50STARS4956"), sub)

        with django_capture_on_commit_callbacks(execute=True):
            service.add_yard(
                "50STARS4956",
                AddYardDTO(yard_name="LKQ", part_price="100", payment_status="Card charged"),
                actor="Mark",
            )

        (message,) = sub.drain()
        assert message["type"] == "YARD_ADDED"
        assert message["yardIndex"] == 1
        assert message["status"] == "Yard Processing"
        assert message["actualGP"] == "375.00"
        assert message["version"] == 3


# ---------------------------------------------------------------------------
# API-level
# ---------------------------------------------------------------------------


class TestApiNotifications:
    def test_actor_id_is_echoed(
        self, auth_client, make_order, listener, django_capture_on_commit_callbacks
    ):
        make_order()
        with django_capture_on_commit_callbacks(execute=True):
            response = auth_client.patch(
                DETAIL,
                {"status": "Customer Approved"},
                format="json",
                HTTP_X_ACTOR_ID="tab-7f3a",
            )

        assert response.status_code == 200
        (message,) = listener.drain()
        assert message["actorId"] == "tab-7f3a"
        assert message["type"] == "STATUS_CHANGED"
        assert message["status"] == "Customer Approved"
        assert message["version"] == 2

    def test_rejected_mutation_publishes_nothing(
        self, auth_client, make_order, listener, django_capture_on_commit_callbacks
    ):
        make_order()
        with django_capture_on_commit_callbacks(execute=True):
            response = auth_client.patch(DETAIL, {"status": "In Transit"}, format="json")

        assert response.status_code == 400
        assert listener.drain() == []

    def test_failing_subscriber_does_not_fail_mutation(
        self, auth_client, make_order, listener, django_capture_on_commit_callbacks
    ):
        make_order()
        broken = _BrokenSubscriber()
        change_notifier.subscribe(order_topic("50STARS4956"), broken)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                response = auth_client.post(
                    f"{DETAIL}support-notes/", {"note": "Called customer"}, format="json"
                )
        finally:
            change_notifier.unsubscribe(order_topic("50STARS4956"), broken)

        assert response.status_code == 201
        assert Order.objects.get().version == 2
        assert [m["type"] for m in listener.drain()] == ["SUPPORT_NOTE_ADDED"]
