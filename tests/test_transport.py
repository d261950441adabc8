"""Unit tests for the transport adapter."""

import httpx
import pytest

from filebin.exceptions import MalformedResponseError, TransportError
from filebin.transport import Transport
from tests.conftest import BASE_URL


def make_transport(temp_config, handler):
    client = httpx.Client(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return Transport(temp_config, client=client)


def test_request_returns_raw_status(temp_config):
    """Non-2xx responses are returned, not raised."""
    transport = make_transport(temp_config, lambda request: httpx.Response(418, json={"x": 1}))

    response = transport.request("GET", "/anything")

    assert response.status_code == 418
    assert response.reason == "I'm a teapot"
    assert not response.is_success
    assert response.json() == {"x": 1}


def test_request_passes_headers_and_body(temp_config):
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        seen["body"] = request.read()
        return httpx.Response(201)

    transport = make_transport(temp_config, handler)
    response = transport.request("POST", "/bin/f", headers={"X-Test": "1"}, content=iter([b"ab", b"cd"]))

    assert response.is_success
    assert seen["headers"]["X-Test"] == "1"
    assert seen["body"] == b"abcd"


def test_non_json_body(temp_config):
    transport = make_transport(temp_config, lambda request: httpx.Response(200, content=b"not json"))

    with pytest.raises(MalformedResponseError):
        transport.request("GET", "/bin").json()


@pytest.mark.parametrize("error_class", [httpx.ConnectError, httpx.ReadTimeout])
def test_network_errors_become_transport_error(temp_config, error_class):
    def handler(request):
        raise error_class("boom", request=request)

    transport = make_transport(temp_config, handler)

    with pytest.raises(TransportError) as exc_info:
        transport.request("GET", "/bin")
    assert exc_info.value.status_code is None
    assert isinstance(exc_info.value.__cause__, error_class)


def test_no_retry_on_server_error(temp_config):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503)

    transport = make_transport(temp_config, handler)
    transport.request("GET", "/bin")

    assert len(calls) == 1


def test_stream_yields_body_in_pieces(temp_config):
    transport = make_transport(temp_config, lambda request: httpx.Response(200, content=b"x" * 10))

    with transport.stream("GET", "/bin/f") as response:
        assert response.is_success
        pieces = list(response.iter_bytes(4))

    assert b"".join(pieces) == b"x" * 10
    assert all(len(p) <= 4 for p in pieces)


def test_stream_network_error(temp_config):
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    transport = make_transport(temp_config, handler)

    with pytest.raises(TransportError):
        with transport.stream("GET", "/bin/f"):
            pass


def test_stream_follows_redirects(temp_config):
    def handler(request):
        if request.url.path == "/bin/f":
            return httpx.Response(302, headers={"Location": f"{BASE_URL}/storage/f"})
        return httpx.Response(200, content=b"payload")

    transport = make_transport(temp_config, handler)

    with transport.stream("GET", "/bin/f") as response:
        assert response.status_code == 200
        assert b"".join(response.iter_bytes(1024)) == b"payload"


def test_default_client_uses_config(temp_config):
    with Transport(temp_config) as transport:
        assert str(transport.client.base_url).rstrip("/") == BASE_URL
        assert transport.client.timeout.read == temp_config.get_timeout()
