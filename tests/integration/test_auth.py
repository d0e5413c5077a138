"""Integration tests for JWT authentication.

Validates:
  - /health is public (plain Django view, no DRF).
  - Order endpoints return 401 without a token, with an invalid token,
    or with a malformed Authorization header.
  - A token issued by /api/v1/auth/token/ opens the order API.
"""

import pytest
from django.contrib.auth import get_user_model

pytestmark = pytest.mark.integration

ORDERS = "/api/v1/orders/"


class TestPublicEndpoints:
    """Health check must remain accessible without credentials."""

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestProtectedEndpoints:
    """All DRF endpoints require a valid JWT by default (Fail Closed)."""

    def test_no_token_returns_401(self, api_client):
        assert api_client.get(ORDERS).status_code == 401

    def test_no_token_on_mutation_returns_401(self, api_client):
        response = api_client.patch(f"{ORDERS}50STARS1/", {"status": "Voided"}, format="json")
        assert response.status_code == 401

    def test_invalid_token_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer invalid.token.here")
        assert api_client.get(ORDERS).status_code == 401

    def test_malformed_auth_header_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Token some-token")
        assert api_client.get(ORDERS).status_code == 401

    def test_401_includes_www_authenticate_header(self, api_client):
        response = api_client.get(ORDERS)
        assert response.status_code == 401
        assert "Bearer" in response.get("WWW-Authenticate", "")


class TestTokenFlow:
    def test_obtained_token_grants_access(self, api_client):
        get_user_model().objects.create_user(username="tony", password="testpass123")

        token = api_client.post(
            "/api/v1/auth/token/",
            {"username": "tony", "password": "testpass123"},
            format="json",
        )
        assert token.status_code == 200

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {token.data['access']}")
        assert api_client.get(ORDERS).status_code == 200

    def test_wrong_password(self, api_client):
        get_user_model().objects.create_user(username="tony", password="testpass123")
        response = api_client.post(
            "/api/v1/auth/token/", {"username": "tony", "password": "nope"}, format="json"
        )
        assert response.status_code == 401
