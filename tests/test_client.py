"""Tests for the BGG HTTP client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from bgg_library.api.client import BGGClient, RequestThrottle
from bgg_library.error_handling import BGGHTTPError, CollectionNotReady, NetworkError, NotFound, RateLimited

from tests.helpers import thing_xml

COLLECTION_XML = b"""<items totalitems="1">
    <item objecttype="thing" objectid="13" subtype="boardgame">
        <name sortindex="1">CATAN</name><status own="1"/>
    </item>
</items>"""


def _response(status_code: int = 200, content: bytes = b"<items/>", headers=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.content = content
    response.headers = headers or {}
    return response


def _client(*responses, **kwargs) -> BGGClient:
    session = MagicMock()
    session.headers = {}
    session.get.side_effect = list(responses)
    kwargs.setdefault("request_interval", 0)
    kwargs.setdefault("poll_delay", 0)
    return BGGClient(session=session, **kwargs)


class TestBGGClientInit:
    def test_user_agent_and_token_headers(self) -> None:
        client = _client(api_token="secret")
        assert "User-Agent" in client.session.headers
        assert client.session.headers["Authorization"] == "Bearer secret"

    def test_no_token_no_authorization_header(self) -> None:
        client = _client(api_token=None)
        assert "Authorization" not in client.session.headers


class TestSearch:
    def test_search_truncates_to_ten(self) -> None:
        items = "".join(f'<item type="boardgame" id="{i}"><name type="primary" value="G{i}"/></item>'
                        for i in range(1, 21))
        client = _client(_response(content=f"<items>{items}</items>".encode()))
        results = client.search("G")
        assert len(results) == 10
        _, kwargs = client.session.get.call_args
        assert kwargs["params"] == {'query': 'G', 'type': 'boardgame'}

    def test_blank_term_makes_no_request(self) -> None:
        client = _client()
        assert client.search("   ") == []
        client.session.get.assert_not_called()


class TestFetchDetails:
    def test_fetch_details_parses_item(self) -> None:
        client = _client(_response(content=thing_xml(13, "CATAN", year=1995)))
        details = client.fetch_details(13)
        assert details.name == "CATAN"
        _, kwargs = client.session.get.call_args
        assert kwargs["params"] == {'id': 13, 'stats': 1}

    def test_unknown_item_raises_not_found(self) -> None:
        client = _client(_response(content=b'<items termsofuse="x"></items>'))
        with pytest.raises(NotFound):
            client.fetch_details(1)


class TestErrorMapping:
    """HTTP and transport failures map onto the error taxonomy."""

    def test_429_is_rate_limited_with_retry_after(self) -> None:
        client = _client(_response(status_code=429, headers={"Retry-After": "7"}))
        with pytest.raises(RateLimited) as exc_info:
            client.fetch_details(1)
        assert exc_info.value.retry_after == 7.0
        assert exc_info.value.retryable

    def test_rate_limit_body_is_rate_limited(self) -> None:
        client = _client(_response(content=b"<error><message>Rate limit exceeded.</message></error>"))
        with pytest.raises(RateLimited):
            client.fetch_details(1)

    def test_5xx_is_retryable_network_error(self) -> None:
        client = _client(_response(status_code=503))
        with pytest.raises(NetworkError) as exc_info:
            client.fetch_details(1)
        assert exc_info.value.retryable

    def test_4xx_is_not_retryable(self) -> None:
        client = _client(_response(status_code=400))
        with pytest.raises(BGGHTTPError) as exc_info:
            client.fetch_details(1)
        assert exc_info.value.status_code == 400
        assert not exc_info.value.retryable

    @pytest.mark.parametrize("error", [requests.exceptions.ConnectionError("down"),
                                       requests.exceptions.Timeout("slow")])
    def test_transport_errors_become_network_error(self, error) -> None:
        client = _client(error)
        with pytest.raises(NetworkError):
            client.fetch_details(1)


class TestFetchCollection:
    @patch("bgg_library.api.client.time.sleep")
    def test_polls_while_queued(self, mock_sleep: MagicMock) -> None:
        queued = _response(status_code=202, content=b"<message>Your request for this collection has been accepted</message>")
        client = _client(queued, queued, _response(content=COLLECTION_XML), poll_attempts=5)
        items = client.fetch_collection("alice")
        assert [i.bgg_id for i in items] == [13]
        assert client.session.get.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("bgg_library.api.client.time.sleep")
    def test_still_queued_raises_collection_not_ready(self, mock_sleep: MagicMock) -> None:
        queued = _response(status_code=202, content=b"")
        client = _client(queued, queued, queued, poll_attempts=3)
        with pytest.raises(CollectionNotReady):
            client.fetch_collection("alice")
        assert client.session.get.call_count == 3

    def test_owned_only_adds_own_filter(self) -> None:
        client = _client(_response(content=COLLECTION_XML), _response(content=COLLECTION_XML))
        client.fetch_collection("alice")
        _, kwargs = client.session.get.call_args
        assert kwargs["params"] == {'username': 'alice', 'stats': 1, 'own': 1}
        client.fetch_collection("alice", owned_only=False)
        _, kwargs = client.session.get.call_args
        assert 'own' not in kwargs["params"]


class TestRequestThrottle:
    def test_spaces_out_requests(self) -> None:
        now = [100.0]
        delays = []
        throttle = RequestThrottle(2.0, clock=lambda: now[0], sleep=delays.append)
        throttle.wait()
        throttle.wait()
        throttle.wait()
        assert delays == [2.0, 4.0]

    def test_no_wait_once_interval_has_passed(self) -> None:
        now = [100.0]
        delays = []
        throttle = RequestThrottle(1.0, clock=lambda: now[0], sleep=delays.append)
        throttle.wait()
        now[0] = 105.0
        throttle.wait()
        assert delays == []

    def test_zero_interval_never_sleeps(self) -> None:
        delays = []
        throttle = RequestThrottle(0, sleep=delays.append)
        throttle.wait()
        throttle.wait()
        assert delays == []
