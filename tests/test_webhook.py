"""
Tests for the Flask SMS webhook.
"""
from unittest.mock import AsyncMock, patch

import pytest

from book_sms.app import BookSmsApp
from book_sms.config import BookSmsConfig
from book_sms.webhook import INVALID_REQUEST_MESSAGE, RATE_LIMITED_MESSAGE, create_app

SENDER = "+15551234567"


@pytest.fixture
def make_client(storage, today):
    """Factory for a test client over the sample library."""
    def _make(**overrides):
        config = BookSmsConfig(enable_ai_classifier=False, **overrides)
        book_app = BookSmsApp(config, storage=storage, today=today)
        app = create_app(book_app, config)
        app.config["TESTING"] = True
        return app.test_client(), book_app
    return _make


@pytest.fixture
def client(make_client):
    test_client, _ = make_client()
    return test_client


class TestSmsWebhook:
    """Test POST /sms/webhook."""

    def test_reply_is_twiml(self, client):
        response = client.post("/sms/webhook", data={"From": SENDER, "Body": "page 150"})

        assert response.status_code == 200
        assert response.mimetype == "text/xml"
        body = response.get_data(as_text=True)
        assert "<Message>Updated &quot;Project Hail Mary&quot; to page 150/476 (32%)</Message>" in body

    def test_conversation_state_kept_per_sender(self, client):
        """Test a follow-up from the same sender sees the earlier list."""
        client.post("/sms/webhook", data={"From": SENDER, "Body": "search fantasy"})

        same = client.post("/sms/webhook", data={"From": SENDER, "Body": "2"})
        other = client.post("/sms/webhook", data={"From": "+15550000000", "Body": "2"})

        assert "The Name of the Wind" in same.get_data(as_text=True)
        assert "Project Hail Mary" in other.get_data(as_text=True)

    @pytest.mark.parametrize("data", [
        {"Body": "hello"},
        {"From": "   ", "Body": "hello"},
        {"From": SENDER},
    ])
    def test_missing_fields(self, client, data):
        response = client.post("/sms/webhook", data=data)

        assert response.status_code == 400
        assert f"<Message>{INVALID_REQUEST_MESSAGE}</Message>" in response.get_data(as_text=True)

    def test_sender_is_trimmed(self, make_client):
        """Test that the From value reaches the pipeline without surrounding whitespace."""
        test_client, book_app = make_client()

        with patch.object(book_app, "handle_inbound", AsyncMock(return_value="<Response/>")) as handle:
            response = test_client.post("/sms/webhook", data={"From": f"  {SENDER} ", "Body": "stats"})

        assert response.status_code == 200
        handle.assert_awaited_once_with(SENDER, "stats")

    def test_empty_body_gets_prompt(self, client):
        response = client.post("/sms/webhook", data={"From": SENDER, "Body": ""})

        assert response.status_code == 200
        assert "Please send a message." in response.get_data(as_text=True)

    def test_unexpected_failure_still_replies(self, make_client):
        """Test that the route never raises."""
        test_client, book_app = make_client()

        with patch.object(book_app, "handle_inbound", AsyncMock(side_effect=RuntimeError("boom"))):
            response = test_client.post("/sms/webhook", data={"From": SENDER, "Body": "stats"})

        assert response.status_code == 200
        assert "Sorry, something went wrong." in response.get_data(as_text=True)

    def test_rate_limit_per_sender(self, make_client):
        test_client, _ = make_client(rate_limit="1 per minute")

        first = test_client.post("/sms/webhook", data={"From": SENDER, "Body": "stats"})
        second = test_client.post("/sms/webhook", data={"From": SENDER, "Body": "stats"})
        other = test_client.post("/sms/webhook", data={"From": "+15550000000", "Body": "stats"})

        assert first.status_code == 200
        assert second.status_code == 429
        assert f"<Message>{RATE_LIMITED_MESSAGE}</Message>" in second.get_data(as_text=True)
        assert other.status_code == 200


class TestStatusEndpoints:

    def test_webhook_get(self, client):
        response = client.get("/sms/webhook")

        assert response.status_code == 200
        assert response.get_data(as_text=True) == "SMS webhook is active"

    def test_health(self, client):
        """Test health check endpoint."""
        response = client.get("/health")

        assert response.status_code == 200
        payload = response.get_json()
        assert payload["status"] == "healthy"
        assert payload["service"] == "book-sms"
        assert "timestamp" in payload

    def test_status_endpoints_not_rate_limited(self, make_client):
        test_client, _ = make_client(rate_limit="1 per minute")

        responses = [test_client.get("/health") for _ in range(3)]

        assert all(r.status_code == 200 for r in responses)
