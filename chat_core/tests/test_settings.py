import json
import logging

import pytest
from pydantic import ValidationError

from chat_core.config.settings import ChatSettings
from chat_core.infrastructure.logging.logger import JsonFormatter


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ("CHAT_MAX_ATTEMPTS", "CHAT_API_URL", "CHAT_HTTP_TIMEOUT", "CHAT_CONFIG_FILE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_defaults(clean_env):
    cfg = ChatSettings()
    assert cfg.http_timeout == 60.0
    assert cfg.probe_timeout == 15.0
    assert cfg.max_attempts == 3
    assert (cfg.retry_base_delay, cfg.retry_max_delay) == (1.0, 5.0)
    assert (cfg.typing_min_delay, cfg.typing_max_delay) == (0.05, 0.15)


def test_yaml_file_is_loaded(clean_env, monkeypatch):
    path = clean_env / "chat.yaml"
    path.write_text("api_url: https://yaml.example.com/chat\nmax_attempts: 4\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_CONFIG_FILE", str(path))

    cfg = ChatSettings()
    assert cfg.api_url == "https://yaml.example.com/chat"
    assert cfg.max_attempts == 4


def test_env_overrides_yaml(clean_env, monkeypatch):
    path = clean_env / "config.yaml"
    path.write_text("max_attempts: 4\n", encoding="utf-8")
    monkeypatch.setenv("CHAT_MAX_ATTEMPTS", "6")

    assert ChatSettings().max_attempts == 6


@pytest.mark.parametrize(
    "overrides",
    [
        {"typing_min_delay": 0.3, "typing_max_delay": 0.1},
        {"retry_base_delay": 3.0, "retry_max_delay": 1.0},
        {"max_attempts": 0},
        {"http_timeout": 0},
    ],
)
def test_invalid_values_rejected(clean_env, overrides):
    with pytest.raises(ValidationError):
        ChatSettings(**overrides)


def test_json_formatter_merges_extra():
    record = logging.LogRecord("chat_core", logging.INFO, __file__, 1, "Chat exchange completed", None, None)
    record.extra = {"attempts": 2, "kind": "stream"}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["msg"] == "Chat exchange completed"
    assert payload["level"] == "INFO"
    assert payload["attempts"] == 2
    assert payload["ts"].endswith("Z")


def test_json_formatter_redacts_long_messages():
    record = logging.LogRecord("chat_core", logging.INFO, __file__, 1, "x" * 200, None, None)
    payload = json.loads(JsonFormatter(redact=True).format(record))
    assert len(payload["msg"]) == 64
