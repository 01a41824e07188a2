"""
Unit tests for HttpEmailAdapter.

The requests session is replaced with a MagicMock so no network is used.
"""

from unittest.mock import MagicMock

import pytest
import requests

from src.adapters.http_email import HttpEmailAdapter
from src.core.ports.email import EmailStatus


def make_response(status_code: int, json_body=None, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if json_body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = json_body
    return response


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def adapter(session: MagicMock) -> HttpEmailAdapter:
    return HttpEmailAdapter(
        base_url="https://email.example.com/",
        sender="newsletter@example.com",
        authorization_token="server-token",
        timeout_seconds=2.5,
        session=session,
    )


class TestRequestShape:
    def test_posts_json_payload_to_email_endpoint(
        self, adapter: HttpEmailAdapter, session: MagicMock
    ) -> None:
        session.post.return_value = make_response(200, {"MessageID": "abc"})

        adapter.send_email(
            "reader@example.com", "Subject", "<p>Body</p>", "Body"
        )

        session.post.assert_called_once()
        args, kwargs = session.post.call_args
        assert args[0] == "https://email.example.com/email"
        assert kwargs["json"] == {
            "From": "newsletter@example.com",
            "To": "reader@example.com",
            "Subject": "Subject",
            "HtmlBody": "<p>Body</p>",
            "TextBody": "Body",
        }
        assert kwargs["headers"]["X-Postmark-Server-Token"] == "server-token"
        assert kwargs["timeout"] == 2.5

    def test_missing_text_body_sent_as_empty_string(
        self, adapter: HttpEmailAdapter, session: MagicMock
    ) -> None:
        session.post.return_value = make_response(200, {})

        adapter.send_email("reader@example.com", "Subject", "<p>Body</p>")

        assert session.post.call_args.kwargs["json"]["TextBody"] == ""


class TestOutcomes:
    def test_2xx_is_sent_with_message_id(
        self, adapter: HttpEmailAdapter, session: MagicMock
    ) -> None:
        session.post.return_value = make_response(200, {"MessageID": "abc"})

        result = adapter.send_email("reader@example.com", "Subject", "<p>Body</p>")

        assert result.status == EmailStatus.SENT
        assert result.message_id == "abc"

    def test_2xx_without_json_is_still_sent(
        self, adapter: HttpEmailAdapter, session: MagicMock
    ) -> None:
        session.post.return_value = make_response(202)

        result = adapter.send_email("reader@example.com", "Subject", "<p>Body</p>")

        assert result.status == EmailStatus.SENT
        assert result.message_id is None

    @pytest.mark.parametrize("status_code", [400, 401, 422, 500, 503])
    def test_non_2xx_is_failed(
        self, adapter: HttpEmailAdapter, session: MagicMock, status_code: int
    ) -> None:
        session.post.return_value = make_response(status_code, text="provider said no")

        result = adapter.send_email("reader@example.com", "Subject", "<p>Body</p>")

        assert result.status == EmailStatus.FAILED
        assert str(status_code) in result.error

    @pytest.mark.parametrize(
        "error",
        [requests.Timeout("too slow"), requests.ConnectionError("refused")],
    )
    def test_transport_errors_are_failed_not_raised(
        self, adapter: HttpEmailAdapter, session: MagicMock, error: Exception
    ) -> None:
        session.post.side_effect = error

        result = adapter.send_email("reader@example.com", "Subject", "<p>Body</p>")

        assert result.status == EmailStatus.FAILED
        assert "request failed" in result.error

    def test_single_attempt_per_call(
        self, adapter: HttpEmailAdapter, session: MagicMock
    ) -> None:
        session.post.return_value = make_response(500)

        adapter.send_email("reader@example.com", "Subject", "<p>Body</p>")

        assert session.post.call_count == 1


class TestClose:
    def test_injected_session_is_left_open(
        self, adapter: HttpEmailAdapter, session: MagicMock
    ) -> None:
        adapter.close()

        session.close.assert_not_called()

    def test_own_session_is_closed(self, monkeypatch) -> None:
        closed = []
        monkeypatch.setattr(requests.Session, "close", lambda self: closed.append(self))
        adapter = HttpEmailAdapter("https://email.example.com", "a@b.io", "token")

        adapter.close()

        assert len(closed) == 1
