"""
Tests for jyhnet.client GET/POST handling.

Tests the request pipeline including:
- Reachability pre-flight
- URL validation
- Status classification
- Decoding and parsing failures
- Callback and future delivery
- Timeout configuration
- Cancellation
"""

from __future__ import annotations

import http.client
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
import requests_mock
import urllib3

from jyhnet.client import (
    CancellationToken,
    NetworkClient,
    classify_transport_error,
    get_shared_client,
    set_shared_client,
)
from jyhnet.exceptions import ConfigError, JYHNetError, NetErrorKind
from jyhnet.models import Back, Category
from jyhnet.results import Failure, Success

API = "https://muutr.com/back"


class TestPreflight:
    """Tests for checks that run before any transport call."""

    def test_no_network_short_circuits(self, make_client, offline):
        """Test that an offline client fails without calling the transport."""
        client = make_client(reachability=offline)

        with requests_mock.Mocker() as m:
            m.get(API, json={"Status": 0, "Data": []})
            result = client.request("GET", API)

        assert isinstance(result, Failure)
        assert result.error.kind is NetErrorKind.NO_NETWORK
        assert m.call_count == 0
        assert offline.calls == 1

    def test_no_network_checked_before_url(self, make_client, offline):
        """Test that reachability is checked before the address is parsed."""
        client = make_client(reachability=offline)

        result = client.request("GET", "not a url")

        assert result.error.kind is NetErrorKind.NO_NETWORK

    @pytest.mark.parametrize(
        "address",
        ["", "not a url", "ftp://example.com/file", "http://", "https://exa mple.com"],
    )
    def test_invalid_url(self, client, address):
        """Test that unusable addresses fail with INVALID_URL."""
        with requests_mock.Mocker() as m:
            result = client.request("GET", address)

        assert result.error.kind is NetErrorKind.INVALID_URL
        assert m.call_count == 0

    def test_cancelled_before_send(self, client):
        """Test that a cancelled token stops the request before transport."""
        token = CancellationToken()
        token.cancel()

        with requests_mock.Mocker() as m:
            m.get(API, json={})
            result = client.request("GET", API, cancel=token)

        assert result.error.kind is NetErrorKind.CANCELLED
        assert m.call_count == 0


class TestResponses:
    """Tests for status and payload classification."""

    def test_decodes_category_envelope(self, client, category_envelope):
        """Test that a 2xx envelope decodes into Back[Category]."""
        with requests_mock.Mocker() as m:
            m.get(API, json=category_envelope)
            result = client.request("GET", API, decoder=Back.decoder(Category))

        assert isinstance(result, Success)
        back = result.value
        assert back.status == 0
        assert back.ok
        assert len(back.data) == 1
        assert back.data[0].name == "Math"
        assert back.data[0] == Category(id="1", name="Math", info="desc")

    def test_nonzero_envelope_status_is_transport_success(self, client):
        """Test that an application error still arrives as Success."""
        with requests_mock.Mocker() as m:
            m.get(API, json={"Status": 1, "Data": []})
            result = client.request("GET", API, decoder=Back.decoder(Category))

        assert result.is_success
        assert result.value.status == 1
        assert not result.value.ok
        assert result.value.data == []

    def test_without_decoder_returns_parsed_json(self, client):
        """Test that no decoder means the raw parsed JSON is returned."""
        with requests_mock.Mocker() as m:
            m.get(API, json={"a": [1, 2]})
            result = client.request("GET", API)

        assert result.value == {"a": [1, 2]}

    @pytest.mark.parametrize("status", [400, 401, 404, 500, 503])
    def test_non_2xx_is_response_error(self, client, category_envelope, status):
        """Test that the exact status code is reported, whatever the body."""
        with requests_mock.Mocker() as m:
            m.get(API, status_code=status, json=category_envelope)
            result = client.request("GET", API, decoder=Back.decoder(Category))

        assert result.error.kind is NetErrorKind.RESPONSE_ERROR
        assert result.error.status_code == status

    def test_2xx_other_than_200_succeeds(self, client):
        """Test that the whole 200-299 range counts as success."""
        with requests_mock.Mocker() as m:
            m.get(API, status_code=201, json={"ok": True})
            result = client.request("GET", API)

        assert result.value == {"ok": True}

    def test_empty_body_is_empty_data(self, client):
        """Test that a 2xx response without a body fails with EMPTY_DATA."""
        with requests_mock.Mocker() as m:
            m.get(API, content=b"")
            result = client.request("GET", API)

        assert result.error.kind is NetErrorKind.EMPTY_DATA

    def test_malformed_json_is_parsing_failed(self, client):
        """Test that a non-JSON body fails with PARSING_FAILED."""
        with requests_mock.Mocker() as m:
            m.get(API, text="<html>oops</html>")
            result = client.request("GET", API)

        assert result.error.kind is NetErrorKind.PARSING_FAILED
        assert isinstance(result.error.cause, ValueError)

    @pytest.mark.parametrize(
        "payload",
        [
            {"Status": "0", "Data": []},
            {"Data": []},
            {"Status": 0, "Data": {"id": "1"}},
            {"Status": 0, "Data": [{"id": 1}]},
            [1, 2, 3],
        ],
    )
    def test_schema_mismatch_is_parsing_failed(self, client, payload):
        """Test that well-formed JSON of the wrong shape fails to decode."""
        with requests_mock.Mocker() as m:
            m.get(API, json=payload)
            result = client.request("GET", API, decoder=Back.decoder(Category))

        assert result.error.kind is NetErrorKind.PARSING_FAILED

    def test_transport_error_is_request_error(self, client):
        """Test that a transport exception fails with REQUEST_ERROR."""
        with requests_mock.Mocker() as m:
            m.get(API, exc=requests.exceptions.ConnectTimeout)
            result = client.request("GET", API)

        assert result.error.kind is NetErrorKind.REQUEST_ERROR
        assert isinstance(result.error.cause, requests.exceptions.ConnectTimeout)


class TestTransportErrorClassification:
    """Tests for classify_transport_error."""

    def test_bad_status_line_is_invalid_response(self):
        err = requests.exceptions.ConnectionError(
            urllib3.exceptions.ProtocolError(
                "Connection aborted.", http.client.BadStatusLine("garbage")
            )
        )

        assert classify_transport_error(err, API).kind is NetErrorKind.INVALID_RESPONSE

    def test_remote_disconnect_is_request_error(self):
        err = requests.exceptions.ConnectionError(
            urllib3.exceptions.ProtocolError(
                "Connection aborted.", http.client.RemoteDisconnected("closed")
            )
        )

        assert classify_transport_error(err, API).kind is NetErrorKind.REQUEST_ERROR

    def test_chunked_encoding_error_is_invalid_response(self):
        err = requests.exceptions.ChunkedEncodingError("broken chunk")

        assert classify_transport_error(err, API).kind is NetErrorKind.INVALID_RESPONSE

    def test_invalid_schema_is_invalid_url(self):
        err = requests.exceptions.InvalidSchema("no adapter")

        assert classify_transport_error(err, API).kind is NetErrorKind.INVALID_URL

    def test_read_timeout_is_request_error(self):
        err = requests.exceptions.ReadTimeout("slow")

        assert classify_transport_error(err, API).kind is NetErrorKind.REQUEST_ERROR


class TestRequestConstruction:
    """Tests for what actually goes over the wire."""

    def test_get_appends_params_as_query(self, client):
        """Test that GET params become query items next to existing ones."""
        with requests_mock.Mocker() as m:
            m.get(API, json={})
            client.request(
                "GET", API + "?lang=zh", {"table": "category", "handle": "get", "all": True}
            )

        query = parse_qs(urlsplit(m.last_request.url).query)
        assert query == {
            "lang": ["zh"],
            "table": ["category"],
            "handle": ["get"],
            "all": ["true"],
        }
        assert m.last_request.method == "GET"

    def test_post_sends_json_body(self, client):
        """Test that POST params are serialized as a JSON body."""
        with requests_mock.Mocker() as m:
            m.post(API, json={"Status": 0, "Data": []})
            result = client.request("POST", API, {"table": "category", "page": 2})

        assert result.is_success
        assert m.last_request.method == "POST"
        assert m.last_request.json() == {"table": "category", "page": 2}
        assert m.last_request.headers["Content-Type"] == "application/json"
        assert urlsplit(m.last_request.url).query == ""

    def test_post_unserializable_params_is_invalid_url(self, client):
        """Test that params that cannot become JSON never reach the transport."""
        with requests_mock.Mocker() as m:
            result = client.request("POST", API, {"when": object()})

        assert result.error.kind is NetErrorKind.INVALID_URL
        assert m.call_count == 0

    def test_sends_user_agent_and_config_headers(self, make_client):
        client = make_client(user_agent="demo/1.0", headers={"X-App": "jyh"})

        with requests_mock.Mocker() as m:
            m.get(API, json={})
            client.request("GET", API)

        assert m.last_request.headers["User-Agent"] == "demo/1.0"
        assert m.last_request.headers["X-App"] == "jyh"

    def test_unknown_method_raises(self, client):
        with pytest.raises(ValueError, match="Invalid method"):
            client.request("DELETE", API)


class TestTimeout:
    """Tests for timeout configuration."""

    def test_default_timeout_is_sixty_seconds(self, client):
        assert client.timeout == 60.0

    def test_set_timeout_chains_and_applies(self, client):
        """Test that set_timeout returns the client and affects new requests."""
        with requests_mock.Mocker() as m:
            m.get(API, json={})
            same = client.set_timeout(15)
            client.request("GET", API)

        assert same is client
        assert m.last_request.timeout == 15.0

    @pytest.mark.parametrize("value", [0, -1, "10"])
    def test_set_timeout_rejects_invalid(self, client, value):
        with pytest.raises(ConfigError):
            client.set_timeout(value)


class TestAsync:
    """Tests for callback and future delivery."""

    def test_get_invokes_callback_once(self, client, category_envelope):
        """Test that the callback fires exactly once with the future's result."""
        received = []

        with requests_mock.Mocker() as m:
            m.get(API, json=category_envelope)
            future = client.get(
                API,
                {"table": "category"},
                received.append,
                decoder=Back.decoder(Category),
            )
            result = future.result(timeout=5)

        assert received == [result]
        assert result.value.data[0].name == "Math"

    def test_post_failure_goes_through_callback(self, client):
        """Test that failures use the same callback channel as success."""
        received = []

        with requests_mock.Mocker() as m:
            m.post(API, status_code=500)
            result = client.post(API, {"a": 1}, received.append).result(timeout=5)

        assert len(received) == 1
        assert received[0].error.kind is NetErrorKind.RESPONSE_ERROR
        assert result.error.status_code == 500

    @pytest.mark.parametrize(
        "decoder",
        [
            lambda payload: payload.get("Data"),
            lambda payload: payload[5],
        ],
        ids=["attribute-error", "index-error"],
    )
    def test_decoder_crash_goes_through_callback(self, client, decoder):
        """Test that any exception from a decoder is reported as PARSING_FAILED."""
        received = []

        with requests_mock.Mocker() as m:
            m.get(API, json=[1, 2])
            result = client.get(API, None, received.append, decoder=decoder).result(
                timeout=5
            )

        assert received == [result]
        assert result.error.kind is NetErrorKind.PARSING_FAILED
        assert isinstance(result.error.cause, (AttributeError, IndexError))

    def test_callback_is_optional(self, client):
        with requests_mock.Mocker() as m:
            m.get(API, json=[1])
            result = client.get(API).result(timeout=5)

        assert result.value == [1]

    def test_closed_client_rejects_requests(self, client):
        client.close()

        with pytest.raises(JYHNetError, match="closed"):
            client.get(API)

    def test_context_manager_closes(self, make_client):
        with make_client() as client:
            pass

        with pytest.raises(JYHNetError):
            client.post(API, {})


class TestSharedClient:
    """Tests for the process-wide client accessors."""

    def test_shared_client_is_reused(self):
        assert get_shared_client() is get_shared_client()

    def test_set_shared_client_replaces(self, client):
        set_shared_client(client)

        assert get_shared_client() is client

    def test_shared_client_timeout_is_chainable(self):
        client = get_shared_client().set_timeout(5)

        assert client is get_shared_client()
        assert get_shared_client().timeout == 5.0


def test_logs_requests_through_injected_logger(online):
    """Test that request tracing goes to the injected logger."""

    class RecordingLogger:
        def __init__(self):
            self.lines = []

        def verbose(self, prefix, message):
            self.lines.append((prefix, message))

        def debug(self, prefix, message):
            self.lines.append((prefix, message))

        def warning(self, prefix, message):
            self.lines.append((prefix, message))

    logger = RecordingLogger()
    client = NetworkClient(reachability=online, logger=logger)

    with requests_mock.Mocker() as m:
        m.get(API, json={"x": 1})
        client.request("GET", API)
    client.close()

    prefixes = [prefix for prefix, _ in logger.lines]
    assert "HTTP" in prefixes
    assert any(message.startswith("GET ") for _, message in logger.lines)
    assert any(message.startswith("Response: 200") for _, message in logger.lines)
