"""请求构造器。

把一条用户消息和当前 ApiConfig 转换为完整的 HttpRequest：

- URL: ApiConfig.api_url（POST），必须是带主机名的 http/https 地址
- 认证: Bearer -> Authorization: Bearer <key>；ApiKey -> X-API-Key: <key>
- 请求体: {message, timestamp, stream}

每次调用都是无状态的，不携带历史消息。
"""

from datetime import datetime, timezone
from typing import Dict, Optional

import httpx

from chat_core.domain.exceptions import ConfigError
from chat_core.domain.models import ApiConfig, AuthMode, HttpRequest

ACCEPT = "text/event-stream, application/json"
SCHEMES = ("http", "https")


def auth_headers(config: ApiConfig) -> Dict[str, str]:
    """按认证方式生成认证头。凭据为空时不带认证头，也不报错。"""

    if not config.api_key:
        return {}
    if config.auth_type is AuthMode.BEARER:
        return {"Authorization": f"Bearer {config.api_key}"}
    if config.auth_type is AuthMode.API_KEY:
        return {"X-API-Key": config.api_key}
    return {}


def iso_timestamp(now: Optional[datetime] = None) -> str:
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def validate_url(url: str) -> str:
    """检查 API URL，返回去掉首尾空白后的地址。"""

    value = url.strip()
    if not value:
        raise ConfigError(code="MISSING_API_URL", message="API URL is not configured")
    try:
        parsed = httpx.URL(value)
    except httpx.InvalidURL as exc:
        raise ConfigError(code="INVALID_API_URL", message=f"Invalid API URL {value!r}: {exc}") from exc
    if parsed.scheme not in SCHEMES or not parsed.host:
        raise ConfigError(
            code="INVALID_API_URL",
            message=f"Invalid API URL {value!r}: expected an http(s) address with a host",
        )
    return value


def _check_header_values(headers: Dict[str, str]) -> None:
    # 请求头只能是可见 ASCII，控制字符与非 ASCII 字符会在编码时失败
    for name, value in headers.items():
        if not value.isascii() or any(ord(ch) < 32 or ord(ch) == 127 for ch in value):
            raise ConfigError(
                code="INVALID_API_KEY",
                message=f"API key contains characters that cannot be sent in the {name} header",
            )


def build_request(
    message: str,
    config: ApiConfig,
    *,
    stream: bool = True,
    now: Optional[datetime] = None,
) -> HttpRequest:
    """构造一次聊天请求。

    api_url 为空或格式错误、凭据无法放进请求头时直接抛出 ConfigError，
    保证不会发起任何网络调用。stream=False 为非流式变体，请求体中不带 stream 字段。
    """

    url = validate_url(config.api_url)

    credentials = auth_headers(config)
    _check_header_values(credentials)

    headers = {
        "Content-Type": "application/json",
        "Accept": ACCEPT,
        "Cache-Control": "no-cache",
    }
    headers.update(credentials)

    body = {"message": message, "timestamp": iso_timestamp(now)}
    if stream:
        body["stream"] = True
    return HttpRequest(method="POST", url=url, headers=headers, body=body, stream=stream)
