"""
Huggy client tests: transport retry policy and paginated listing.

Run with: pytest tests/test_huggy_client.py -v
"""

import pytest
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from unittest.mock import Mock, patch

import requests

from chat_analysis.huggy_client import HuggyClient
from chat_analysis.models import Chat, Message
from tests.helpers import make_message


def make_mock_response(status_code, json_data=None, headers=None):
    """Create a mock response with properly configured headers.get()."""
    mock = Mock()
    mock.status_code = status_code
    mock.json.return_value = json_data

    headers = headers or {}
    mock_headers = Mock()
    mock_headers.get = lambda key, default=None: headers.get(key, default)
    mock.headers = mock_headers

    if status_code >= 400:
        mock.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")

    return mock


@pytest.fixture
def client(no_sleep):
    return HuggyClient(
        api_key="test_token",
        max_retries=3,
        chat_page_delay=3,
        message_page_delay=2,
        sleep=no_sleep,
    )


class TestClientSetup:

    def test_requires_api_key(self):
        with pytest.raises(ValueError, match="HUGGY_API_KEY"):
            HuggyClient(api_key="")

    def test_bearer_header(self, client):
        assert client.session.headers["X-Authorization"] == "Bearer test_token"

    def test_base_url_gets_trailing_slash(self, no_sleep):
        c = HuggyClient(api_key="t", base_url="https://api.huggy.io/v2", sleep=no_sleep)
        assert c.base_url == "https://api.huggy.io/v2/"


class TestRetryLogic:
    """Tests for _get's retry on transient errors."""

    def test_successful_request_no_retry(self, client):
        ok = make_mock_response(200, json_data=[{"id": 1}])

        with patch.object(client.session, "get", return_value=ok) as mock_get:
            result = client._get("chats", params={"page": 0})

        assert result == [{"id": 1}]
        assert mock_get.call_count == 1
        assert mock_get.call_args.args[0] == "https://api.huggy.io/v2/chats"
        assert mock_get.call_args.kwargs["params"] == {"page": 0}

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_retries_on_5xx(self, client, status):
        fail = make_mock_response(status)
        ok = make_mock_response(200, json_data=[])

        with patch.object(client.session, "get", side_effect=[fail, ok]) as mock_get:
            assert client._get("chats") == []

        assert mock_get.call_count == 2

    def test_no_retry_on_401(self, client):
        unauthorized = make_mock_response(401)

        with patch.object(client.session, "get", return_value=unauthorized) as mock_get:
            with pytest.raises(requests.HTTPError):
                client._get("chats")

        assert mock_get.call_count == 1

    def test_exhausts_retries_then_raises(self, client):
        fail = make_mock_response(500)

        with patch.object(client.session, "get", return_value=fail) as mock_get:
            with pytest.raises(requests.HTTPError):
                client._get("chats")

        # 1 initial + 3 retries
        assert mock_get.call_count == 4

    def test_retries_on_connection_error(self, client):
        ok = make_mock_response(200, json_data=[])

        with patch.object(
            client.session,
            "get",
            side_effect=[requests.exceptions.ConnectionError("refused"), ok],
        ) as mock_get:
            assert client._get("chats") == []

        assert mock_get.call_count == 2

    def test_timeout_exhaustion_raises(self, client):
        with patch.object(
            client.session, "get", side_effect=requests.exceptions.Timeout("slow")
        ) as mock_get:
            with pytest.raises(requests.exceptions.Timeout):
                client._get("chats")

        assert mock_get.call_count == 4

    def test_exponential_backoff_delays(self, client, no_sleep):
        fail = make_mock_response(503)
        ok = make_mock_response(200, json_data=[])

        with patch.object(client.session, "get", side_effect=[fail, fail, fail, ok]):
            client._get("chats")

        assert [c.args[0] for c in no_sleep.call_args_list] == [2, 4, 8]

    def test_429_uses_retry_after_seconds(self, client, no_sleep):
        limited = make_mock_response(429, headers={"Retry-After": "30"})
        ok = make_mock_response(200, json_data=[])

        with patch.object(client.session, "get", side_effect=[limited, ok]):
            client._get("chats")

        assert [c.args[0] for c in no_sleep.call_args_list] == [30]

    def test_retry_after_http_date(self):
        future = datetime.now(timezone.utc) + timedelta(seconds=45)

        delay = HuggyClient._parse_retry_after(format_datetime(future, usegmt=True))

        assert 40 <= delay <= 46

    def test_retry_after_garbage_defaults(self):
        assert HuggyClient._parse_retry_after("soon") == 10


class TestChatListing:

    def test_fetch_chats_pages_until_empty(self, client, no_sleep):
        responses = [
            make_mock_response(200, json_data=[{"id": 1, "createdAt": "2024-03-01 09:00:00"}]),
            make_mock_response(200, json_data=[{"id": 2}, {"id": 3}]),
            make_mock_response(200, json_data=[]),
        ]

        with patch.object(client.session, "get", side_effect=responses) as mock_get:
            chats = client.fetch_chats()

        assert [c.id for c in chats] == ["1", "2", "3"]
        assert all(isinstance(c, Chat) for c in chats)
        assert chats[0].created_at == "2024-03-01 09:00:00"
        assert [c.kwargs["params"] for c in mock_get.call_args_list] == [
            {"page": 0}, {"page": 1}, {"page": 2}
        ]
        # 3s after every chat page request
        assert [c.args[0] for c in no_sleep.call_args_list] == [3, 3, 3]

    def test_malformed_chat_skipped(self, client):
        responses = [
            make_mock_response(200, json_data=[{"createdAt": "no id"}, {"id": 7}]),
            make_mock_response(200, json_data=[]),
        ]

        with patch.object(client.session, "get", side_effect=responses):
            chats = client.fetch_chats()

        assert [c.id for c in chats] == ["7"]

    def test_non_array_page_rejected(self, client):
        with patch.object(
            client.session, "get", return_value=make_mock_response(200, json_data={"error": "x"})
        ):
            with pytest.raises(ValueError, match="JSON array"):
                client.list_chats_page(0)


class TestMessageListing:

    def test_fetch_messages_uses_chat_endpoint(self, client, no_sleep):
        responses = [
            make_mock_response(200, json_data=[make_message(body="oi")]),
            make_mock_response(200, json_data=[]),
        ]

        with patch.object(client.session, "get", side_effect=responses) as mock_get:
            messages = client.fetch_messages("c1")

        assert len(messages) == 1
        assert isinstance(messages[0], Message)
        assert messages[0].body == "oi"
        assert mock_get.call_args_list[0].args[0] == "https://api.huggy.io/v2/chats/c1/messages"
        # 2s after every message page request
        assert [c.args[0] for c in no_sleep.call_args_list] == [2, 2]

    def test_transport_failure_propagates(self, client):
        with patch.object(client.session, "get", return_value=make_mock_response(502)):
            with pytest.raises(requests.HTTPError):
                client.fetch_messages("c1")

    def test_loosely_typed_fields_keep_message(self, client):
        raw = {
            "send_at": {"unexpected": True},
            "body": 404,
            "senderType": None,
            "sender": {"id": 1, "name": 999},
            "customer": {"id": 1, "name": 12345, "email": 0, "custom_fields": "n/a"},
        }
        responses = [
            make_mock_response(200, json_data=[raw]),
            make_mock_response(200, json_data=[]),
        ]

        with patch.object(client.session, "get", side_effect=responses):
            messages = client.fetch_messages("c1")

        assert len(messages) == 1
        message = messages[0]
        assert message.body == "404"
        assert message.send_at is None
        assert message.sender.name == "999"
        assert message.customer.name == "12345"
        assert message.customer.email == "0"
        assert message.customer.custom_fields is None

    def test_non_object_sender_dropped_not_message(self, client):
        raw = make_message(body="oi")
        raw["sender"] = "agent-1"
        raw["customer"] = ["cust-1"]
        responses = [
            make_mock_response(200, json_data=[raw]),
            make_mock_response(200, json_data=[]),
        ]

        with patch.object(client.session, "get", side_effect=responses):
            messages = client.fetch_messages("c1")

        assert [(m.body, m.sender, m.customer) for m in messages] == [("oi", None, None)]
