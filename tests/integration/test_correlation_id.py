"""Correlation and actor identifiers on the order API."""

import logging

import pytest

pytestmark = pytest.mark.integration


class TestCorrelationIdOnApi:
    def test_request_id_echoed_on_api_response(self, auth_client, make_order):
        make_order()
        response = auth_client.get("/api/v1/orders/50STARS4956/", HTTP_X_REQUEST_ID="req-42")
        assert response["X-Request-ID"] == "req-42"

    def test_request_id_echoed_on_error(self, auth_client):
        response = auth_client.get("/api/v1/orders/NOPE/", HTTP_X_REQUEST_ID="req-404")
        assert response.status_code == 404
        assert response["X-Request-ID"] == "req-404"

    def test_service_logs_carry_request_and_actor(self, auth_client, make_order, caplog):
        make_order()
        with caplog.at_level(logging.INFO):
            auth_client.patch(
                "/api/v1/orders/50STARS4956/",
                {"status": "Customer Approved"},
                format="json",
                HTTP_X_REQUEST_ID="req-patch-1",
                HTTP_X_ACTOR_ID="tab-7f3a",
            )

        status_logs = [r.getMessage() for r in caplog.records if "order.status_updated" in r.getMessage()]
        assert status_logs
        assert "req-patch-1" in status_logs[0]
        assert "tab-7f3a" in status_logs[0]
