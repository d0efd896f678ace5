from datetime import datetime, timezone

import pytest

from chat_core.domain.exceptions import ConfigError
from chat_core.domain.models import ApiConfig, AuthMode
from chat_core.transport.request_builder import auth_headers, build_request

URL = "https://api.example.com/prod/chat"


def test_bearer_header():
    cfg = ApiConfig(api_url=URL, api_key="abc", auth_type=AuthMode.BEARER)
    req = build_request("hi", cfg)
    assert req.headers["Authorization"] == "Bearer abc"
    assert "X-API-Key" not in req.headers


def test_api_key_header():
    cfg = ApiConfig(api_url=URL, api_key="abc", auth_type=AuthMode.API_KEY)
    req = build_request("hi", cfg)
    assert req.headers["X-API-Key"] == "abc"
    assert "Authorization" not in req.headers


def test_none_mode_ignores_credential():
    cfg = ApiConfig(api_url=URL, api_key="abc", auth_type=AuthMode.NONE)
    req = build_request("hi", cfg)
    assert "Authorization" not in req.headers
    assert "X-API-Key" not in req.headers


@pytest.mark.parametrize("mode", [AuthMode.BEARER, AuthMode.API_KEY])
def test_empty_credential_is_sent_unauthenticated(mode):
    cfg = ApiConfig(api_url=URL, api_key="", auth_type=mode)
    assert auth_headers(cfg) == {}
    req = build_request("hi", cfg)
    assert req.url == URL


def test_streaming_request_shape():
    cfg = ApiConfig(api_url=URL, auth_type=AuthMode.NONE)
    now = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
    req = build_request("hello", cfg, now=now)
    assert req.method == "POST"
    assert req.stream is True
    assert req.headers["Content-Type"] == "application/json"
    assert "text/event-stream" in req.headers["Accept"]
    assert "application/json" in req.headers["Accept"]
    assert req.body == {"message": "hello", "timestamp": "2024-05-01T12:00:00.000Z", "stream": True}


def test_non_streaming_variant_omits_stream_flag():
    cfg = ApiConfig(api_url=URL)
    req = build_request("hello", cfg, stream=False)
    assert "stream" not in req.body
    assert req.stream is False


@pytest.mark.parametrize("url", ["", "   "])
def test_missing_url_raises_config_error(url):
    with pytest.raises(ConfigError) as exc_info:
        build_request("hi", ApiConfig(api_url=url))
    assert exc_info.value.code == "MISSING_API_URL"
    assert exc_info.value.kind == "config"


@pytest.mark.parametrize("url", ["http://[::1", "ftp://files.example.com/chat", "/relative/chat"])
def test_malformed_url_raises_config_error(url):
    with pytest.raises(ConfigError) as exc_info:
        build_request("hi", ApiConfig(api_url=url))
    assert exc_info.value.code == "INVALID_API_URL"


def test_url_is_stripped():
    req = build_request("hi", ApiConfig(api_url=f"  {URL} "))
    assert req.url == URL


@pytest.mark.parametrize("mode", [AuthMode.BEARER, AuthMode.API_KEY])
@pytest.mark.parametrize("key", ["密钥", "abc\ndef", "tab\there"])
def test_unencodable_credential_raises_config_error(mode, key):
    with pytest.raises(ConfigError) as exc_info:
        build_request("hi", ApiConfig(api_url=URL, api_key=key, auth_type=mode))
    assert exc_info.value.code == "INVALID_API_KEY"
    assert key not in exc_info.value.message


def test_unencodable_credential_ignored_without_auth():
    req = build_request("hi", ApiConfig(api_url=URL, api_key="密钥", auth_type=AuthMode.NONE))
    assert "Authorization" not in req.headers
