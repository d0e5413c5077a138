import logging
import uuid

import structlog


class TestCorrelationIdMiddleware:
    def test_returns_provided_request_id(self, client):
        custom_id = "my-custom-request-id-123"
        response = client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        assert response["X-Request-ID"] == custom_id

    def test_generates_uuid_when_no_request_id(self, client):
        response = client.get("/health")
        request_id = response["X-Request-ID"]
        parsed = uuid.UUID(request_id, version=4)
        assert str(parsed) == request_id

    def test_correlation_id_in_logs(self, client, caplog):
        custom_id = "log-test-correlation-456"
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID=custom_id)
        found = any(custom_id in record.getMessage() for record in caplog.records)
        assert found, (
            f"correlation_id '{custom_id}' not found in log records: "
            f"{[r.getMessage() for r in caplog.records]}"
        )

    def test_actor_id_bound_into_context(self, client, caplog):
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_ACTOR_ID="tab-7f3a")
        assert any("tab-7f3a" in record.getMessage() for record in caplog.records)

    def test_context_is_reset_between_requests(self, client):
        client.get("/health", HTTP_X_ACTOR_ID="tab-7f3a")
        client.get("/health")
        assert "actor_id" not in structlog.contextvars.get_contextvars()
