import pytest

from chat_core.domain.models import ApiConfig, AuthMode, ChatExchange


def test_from_host_defaults():
    cfg = ApiConfig.from_host({})
    assert cfg.api_url == ""
    assert cfg.api_key == ""
    assert cfg.auth_type is AuthMode.BEARER
    assert cfg.to_host() == {"apiUrl": "", "apiKey": "", "authType": "Bearer"}


def test_from_host_reads_camel_and_snake_keys():
    cfg = ApiConfig.from_host({"apiUrl": " https://x.test/chat ", "api_key": "k", "authType": "apikey"})
    assert cfg.api_url == "https://x.test/chat"
    assert cfg.api_key == "k"
    assert cfg.auth_type is AuthMode.API_KEY


def test_from_host_empty_auth_type_defaults_to_bearer():
    cfg = ApiConfig.from_host({"apiUrl": "https://x.test", "authType": ""})
    assert cfg.auth_type is AuthMode.BEARER


def test_unknown_auth_type_degrades_to_none():
    with pytest.warns(UserWarning):
        cfg = ApiConfig.from_host({"authType": "Digest"})
    assert cfg.auth_type is AuthMode.NONE


def test_host_snapshot_is_independent_copy():
    source = {"apiUrl": "https://x.test", "apiKey": "k", "authType": "None"}
    cfg = ApiConfig.from_host(source)
    source["apiUrl"] = "https://changed.test"
    assert cfg.api_url == "https://x.test"
    assert cfg.to_host() == {"apiUrl": "https://x.test", "apiKey": "k", "authType": "None"}


def test_from_settings():
    class SettingsStub:
        api_url = "https://x.test"
        api_key = "secret"
        auth_type = "ApiKey"

    cfg = ApiConfig.from_settings(SettingsStub())
    assert cfg.auth_type is AuthMode.API_KEY
    assert cfg.has_credential


def test_exchange_outcome():
    ex = ChatExchange(message="hi")
    assert not ex.finished
    ex.fail("network", "down")
    assert ex.finished
    assert not ex.outcome.ok
    ex.succeed("ok")
    assert ex.outcome.ok
    assert ex.outcome.text == "ok"
