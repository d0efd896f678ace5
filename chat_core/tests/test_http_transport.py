import asyncio
import json

import httpx
import pytest

from chat_core.domain.exceptions import ConfigError, HttpError, NetworkError, RequestTimeoutError
from chat_core.domain.models import HttpRequest
from chat_core.transport.http_transport import HttpTransport


def _request(url="https://api.example.com/chat"):
    return HttpRequest(
        method="POST",
        url=url,
        headers={"Content-Type": "application/json", "Authorization": "Bearer abc"},
        body={"message": "hi"},
    )


async def test_open_sends_json_and_yields_response():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"response": "ok"})

    transport = HttpTransport(httpx.MockTransport(handler))
    async with transport.open(_request(), timeout=5) as resp:
        await resp.aread()
        assert resp.json() == {"response": "ok"}

    assert seen == {"method": "POST", "body": {"message": "hi"}, "auth": "Bearer abc"}
    assert transport.calls == 1


async def test_non_2xx_raises_http_error_with_body():
    def handler(request):
        return httpx.Response(500, text="boom")

    transport = HttpTransport(httpx.MockTransport(handler))
    with pytest.raises(HttpError) as exc_info:
        async with transport.open(_request(), timeout=5):
            pass
    err = exc_info.value
    assert err.status == 500
    assert err.status_text == "Internal Server Error"
    assert err.body == "boom"
    assert "(500)" in err.message


async def test_connect_error_maps_to_network_error():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    transport = HttpTransport(httpx.MockTransport(handler))
    with pytest.raises(NetworkError) as exc_info:
        async with transport.open(_request(), timeout=5):
            pass
    assert "Connection refused" in exc_info.value.message


async def test_deadline_aborts_request():
    async def handler(request):
        await asyncio.sleep(1)
        return httpx.Response(200)

    transport = HttpTransport(httpx.MockTransport(handler))
    with pytest.raises(RequestTimeoutError):
        async with transport.open(_request(), timeout=0.05):
            pass


async def test_httpx_timeout_maps_to_timeout_error():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    transport = HttpTransport(httpx.MockTransport(handler))
    with pytest.raises(RequestTimeoutError):
        async with transport.open(_request(), timeout=5):
            pass


async def test_redirects_are_followed():
    def handler(request):
        if request.url.path == "/old":
            return httpx.Response(307, headers={"location": "https://api.example.com/new"})
        return httpx.Response(200, text="moved")

    transport = HttpTransport(httpx.MockTransport(handler))
    async with transport.open(_request("https://api.example.com/old"), timeout=5) as resp:
        await resp.aread()
        assert resp.text == "moved"
        assert resp.url.path == "/new"


class _BrokenStream(httpx.AsyncByteStream):
    async def __aiter__(self):
        yield b'data: {"content":"partial "}\n\n'
        raise httpx.ReadError("connection reset by peer")


async def test_read_error_while_consuming_body_maps_to_network_error():
    def handler(request):
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, stream=_BrokenStream())

    transport = HttpTransport(httpx.MockTransport(handler))
    received = []
    with pytest.raises(NetworkError) as exc_info:
        async with transport.open(_request(), timeout=5) as resp:
            async for chunk in resp.aiter_bytes():
                received.append(chunk)
    assert received == [b'data: {"content":"partial "}\n\n']
    assert "connection reset" in exc_info.value.message


async def test_unbuildable_request_maps_to_config_error():
    def handler(request):
        return httpx.Response(200)

    transport = HttpTransport(httpx.MockTransport(handler))
    with pytest.raises(ConfigError):
        async with transport.open(_request("http://[::1"), timeout=5):
            pass

    bad_header = _request()
    bad_header.headers["Authorization"] = "Bearer 密钥"
    with pytest.raises(ConfigError):
        async with transport.open(bad_header, timeout=5):
            pass
