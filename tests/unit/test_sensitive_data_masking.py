import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    @pytest.mark.parametrize(
        "card",
        ["4111111111111111", "4111 1111 1111 1111", "5500-0000-0000-0004"],
    )
    def test_card_number_masked(self, card):
        event_dict = {"event": "test", "payment": f"charged card {card} today"}
        result = mask_sensitive_data(None, None, event_dict)
        assert card not in result["payment"]
        assert "***MASKED***" in result["payment"]

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    @pytest.mark.parametrize(
        "key, value",
        [
            ("order_number", "50STARS4956"),
            ("phone", "713-555-0100"),
            ("current_gp", "255.00"),
            ("timestamp", "2026-10-19T19:05:00.123456Z"),
        ],
    )
    def test_non_sensitive_data_unchanged(self, key, value):
        result = mask_sensitive_data(None, None, {"event": "order.created", key: value})
        assert result[key] == value
        assert result["event"] == "order.created"
