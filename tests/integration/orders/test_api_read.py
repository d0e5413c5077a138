"""Integration tests for order read endpoints.

Covers:
- Retrieve by order number (nested yards, history, version).
- 404 on unknown orders.
- Escalation report and escalation queues.
- Live event stream endpoint.
"""

from __future__ import annotations

import pytest

from modules.orders.dtos import AddYardDTO, UpdateYardDTO

pytestmark = pytest.mark.integration

URL = "/api/v1/orders/"


@pytest.fixture()
def escalated(service, make_order, order_in_processing):
    """50STARS4956 ongoing, 50STARS5000 resolved, 50STARS6000 without escalation."""
    service.update_yard("50STARS4956", 1, UpdateYardDTO(escalation=True), actor="Mark")

    make_order("50STARS5000")
    service.transition("50STARS5000", "Customer Approved", actor="Mark")
    service.add_yard("50STARS5000", AddYardDTO(escalation=True), actor="Mark")
    service.update_yard("50STARS5000", 1, UpdateYardDTO(status="Part shipped"), actor="Mark")
    service.update_yard("50STARS5000", 1, UpdateYardDTO(status="Part delivered"), actor="Mark")

    make_order("50STARS6000")


class TestRetrieve:
    def test_retrieve(self, auth_client, order_in_processing):
        response = auth_client.get(f"{URL}50STARS4956/")

        assert response.status_code == 200
        data = response.data
        assert data["status"] == "Yard Processing"
        assert data["current_gp"] == "255.00"
        assert data["version"] == 3
        assert len(data["yard_entries"]) == 1
        assert data["yard_entries"][0]["yard_name"] == "LKQ Houston"
        assert data["history"][-1].startswith("Actual GP updated to 255.00 by Mark on ")

    def test_unknown_order_returns_404(self, auth_client):
        response = auth_client.get(f"{URL}NOPE/")
        assert response.status_code == 404


class TestEscalation:
    def test_report(self, auth_client, escalated):
        response = auth_client.get(f"{URL}50STARS4956/escalation/")
        assert response.status_code == 200
        assert response.data == {
            "bucket": "Ongoing",
            "primary_flag": True,
            "yard_flags": [True],
            "escalated_yards": [1],
        }

    def test_report_unknown_order(self, auth_client):
        assert auth_client.get(f"{URL}NOPE/escalation/").status_code == 404

    def test_ongoing_queue(self, auth_client, escalated):
        response = auth_client.get(f"{URL}ongoing-escalations/")
        assert response.status_code == 200
        assert [o["order_number"] for o in response.data["results"]] == ["50STARS4956"]

    def test_overall_queue(self, auth_client, escalated):
        response = auth_client.get(f"{URL}overall-escalations/")
        numbers = {o["order_number"] for o in response.data["results"]}
        assert numbers == {"50STARS4956", "50STARS5000"}

    def test_queue_accepts_filters(self, auth_client, escalated):
        response = auth_client.get(f"{URL}overall-escalations/", {"escalation": "OverallResolved"})
        assert [o["order_number"] for o in response.data["results"]] == ["50STARS5000"]


class TestEventStream:
    def test_stream_response(self, auth_client, make_order):
        make_order()
        response = auth_client.get(f"{URL}50STARS4956/events/", HTTP_ACCEPT="text/event-stream")

        assert response.status_code == 200
        assert response.streaming
        assert response["Content-Type"].startswith("text/event-stream")
        assert response["Cache-Control"] == "no-cache"
        assert response["X-Accel-Buffering"] == "no"

    def test_unknown_order_returns_404(self, auth_client):
        response = auth_client.get(f"{URL}NOPE/events/", HTTP_ACCEPT="application/json")
        assert response.status_code == 404
        assert "not found" in response.json()["detail"]

    def test_error_rendered_as_event_for_stream_clients(self, auth_client):
        response = auth_client.get(f"{URL}NOPE/events/", HTTP_ACCEPT="text/event-stream")
        assert response.status_code == 404
        assert response.content.startswith(b"event: error\ndata: ")
