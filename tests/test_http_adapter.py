"""Tests for the JSON-over-HTTP service adapter."""

import json

import httpx
import pytest

from memeforge import __version__
from memeforge.errors import NetworkFailure, ServiceFailure
from memeforge.services._retry import NO_RETRY
from memeforge.services.http import ServiceAdapter
from tests.conftest import FAST_RETRY


def _adapter(handler, *, retry=FAST_RETRY, **kwargs):
    return ServiceAdapter(
        "https://svc.test/api/",
        name="Widgets",
        timeout=1.0,
        retry=retry,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class _Counter:
    def __init__(self, responder):
        self.responder = responder
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        return self.responder(request)


class TestSuccess:
    @pytest.mark.anyio
    async def test_returns_decoded_json(self):
        handler = _Counter(lambda r: httpx.Response(200, json={"ok": True}))
        assert await _adapter(handler).call("GET", "/things") == {"ok": True}
        [request] = handler.requests
        assert str(request.url) == "https://svc.test/api/things"
        assert request.headers["user-agent"] == f"memeforge/{__version__}"

    @pytest.mark.anyio
    async def test_sends_params_form_and_json(self):
        handler = _Counter(lambda r: httpx.Response(200, json={}))
        adapter = _adapter(handler)
        await adapter.call("get", "things", params={"q": "drake"})
        await adapter.call("POST", "things", data={"a": "1"})
        await adapter.call("POST", "things", json_body={"b": 2})
        get, form, body = handler.requests
        assert get.method == "GET"
        assert get.url.params["q"] == "drake"
        assert form.content == b"a=1"
        assert json.loads(body.content) == {"b": 2}

    @pytest.mark.anyio
    async def test_extra_headers(self):
        handler = _Counter(lambda r: httpx.Response(200, json={}))
        await _adapter(handler, headers={"X-Token": "abc"}).call("GET", "x")
        assert handler.requests[0].headers["x-token"] == "abc"

    def test_name(self):
        assert _adapter(lambda r: httpx.Response(200)).name == "Widgets"


class TestNetworkFailures:
    @pytest.mark.anyio
    async def test_timeout_is_retried_then_reported(self):
        def timeout(request):
            raise httpx.ReadTimeout("slow", request=request)

        handler = _Counter(timeout)
        with pytest.raises(NetworkFailure, match="^network timeout$"):
            await _adapter(handler).call("GET", "x")
        assert len(handler.requests) == 3

    @pytest.mark.anyio
    async def test_connect_error_is_unreachable(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        handler = _Counter(refuse)
        with pytest.raises(NetworkFailure, match="Widgets is unreachable"):
            await _adapter(handler, retry=NO_RETRY).call("GET", "x")
        assert len(handler.requests) == 1

    @pytest.mark.anyio
    @pytest.mark.parametrize("status", [429, 502, 503, 504])
    async def test_transient_status_is_retried(self, status):
        responses = iter([httpx.Response(status), httpx.Response(200, json={"ok": 1})])
        handler = _Counter(lambda r: next(responses))
        assert await _adapter(handler).call("GET", "x") == {"ok": 1}
        assert len(handler.requests) == 2

    @pytest.mark.anyio
    async def test_malformed_json(self):
        handler = _Counter(lambda r: httpx.Response(200, content=b"<html>oops</html>"))
        with pytest.raises(NetworkFailure, match="malformed response"):
            await _adapter(handler).call("GET", "x")
        assert len(handler.requests) == 3


class TestServiceFailures:
    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("status", "message"),
        [
            (400, "Widgets rejected the request"),
            (401, "Widgets rejected the credentials"),
            (403, "Widgets rejected the credentials"),
            (404, "Widgets does not know the requested resource"),
            (500, "Widgets reported an internal error"),
        ],
    )
    async def test_rejections_are_not_retried(self, status, message):
        handler = _Counter(lambda r: httpx.Response(status, text="secret details"))
        with pytest.raises(ServiceFailure) as exc_info:
            await _adapter(handler).call("GET", "x")
        assert str(exc_info.value) == message
        assert str(status) not in str(exc_info.value)
        assert len(handler.requests) == 1
