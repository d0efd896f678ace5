"""统一的配置、请求与交换数据模型。

本模块定义了客户端各层之间共享的标准数据结构：

- ApiConfig: 宿主下发的后端地址、凭据与认证方式（只读快照）。
- HttpRequest: 请求构造器产出的完整 HTTP 请求描述。
- ChatExchange: 一次“用户消息 -> 助手回复”的交换及其最终结果。
- RetryState / StreamAccumulator: 重试与流式解码过程中的状态。
- ClassifiedResponse / Reply / ProbeResult: 各阶段的结果对象。
"""

import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class AuthMode(str, Enum):
    """认证方式，取值与宿主设置面板中的下拉选项一致。"""

    NONE = "None"
    BEARER = "Bearer"
    API_KEY = "ApiKey"

    @classmethod
    def parse(cls, value: Any) -> "AuthMode":
        if isinstance(value, AuthMode):
            return value
        text = str(value or "").strip().lower()
        for mode in cls:
            if mode.value.lower() == text:
                return mode
        raise ValueError(f"Unknown auth type: {value!r}")


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


@dataclass(frozen=True)
class ApiConfig:
    """宿主配置的只读快照。

    - api_url: 目标端点，为空时任何交换都会以 ConfigError 失败。
    - api_key: 凭据；认证方式不是 None 但凭据为空时，请求照常发出但不带认证头。
    - auth_type: 认证方式。
    """

    api_url: str = ""
    api_key: str = ""
    auth_type: AuthMode = AuthMode.BEARER

    @classmethod
    def from_host(cls, data: Optional[Mapping[str, Any]]) -> "ApiConfig":
        """从宿主下发的 {apiUrl, apiKey, authType} 构造快照（同时接受 snake_case 键）。"""

        values = dict(data or {})
        raw_auth = _first(values, "authType", "auth_type") or AuthMode.BEARER.value
        try:
            auth = AuthMode.parse(raw_auth)
        except ValueError:
            warnings.warn(f"Unknown auth type {raw_auth!r}, requests will be sent without authentication")
            auth = AuthMode.NONE
        return cls(
            api_url=str(_first(values, "apiUrl", "api_url") or "").strip(),
            api_key=str(_first(values, "apiKey", "api_key") or "").strip(),
            auth_type=auth,
        )

    @classmethod
    def from_settings(cls, cfg: Any) -> "ApiConfig":
        return cls.from_host(
            {
                "apiUrl": getattr(cfg, "api_url", ""),
                "apiKey": getattr(cfg, "api_key", ""),
                "authType": getattr(cfg, "auth_type", None),
            }
        )

    def to_host(self) -> Dict[str, str]:
        return {"apiUrl": self.api_url, "apiKey": self.api_key, "authType": self.auth_type.value}

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)


@dataclass
class HttpRequest:
    """一次待发送的 HTTP 请求。body 以 JSON 形式发送。"""

    method: str
    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]
    stream: bool = True


@dataclass
class ExchangeOutcome:
    """交换的最终结果：成功文本或错误，二者只会有一个。"""

    text: Optional[str] = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    empty: bool = False

    @property
    def ok(self) -> bool:
        return self.error_kind is None


@dataclass
class ChatExchange:
    """一次请求/响应周期。结果交给界面回调后即可丢弃。"""

    message: str
    attempts: int = 0
    outcome: Optional[ExchangeOutcome] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def succeed(self, text: str, *, empty: bool = False) -> None:
        self.outcome = ExchangeOutcome(text=text, empty=empty)

    def fail(self, kind: str, message: str) -> None:
        self.outcome = ExchangeOutcome(error_kind=kind, error_message=message)

    @property
    def finished(self) -> bool:
        return self.outcome is not None


@dataclass
class RetryState:
    attempt: int = 1
    max_attempts: int = 1
    last_error: Optional[Exception] = None


@dataclass
class StreamAccumulator:
    """流式解码状态：未完成的行、已拼接的全文以及是否已收到 [DONE]。"""

    buffer: str = ""
    full_text: str = ""
    fragments: int = 0
    done: bool = False


class ResponseKind(str, Enum):
    STREAM = "stream"
    JSON = "json"
    TEXT = "text"


@dataclass
class ClassifiedResponse:
    """响应分类结果。STREAM 类型的 text 为空，正文交给流式解码器读取。"""

    kind: ResponseKind
    text: str = ""
    raw: Any = None


@dataclass
class Reply:
    """一次成功交换拿到的回复。text 为 None 表示什么内容都没有收到。"""

    kind: ResponseKind
    text: Optional[str]
    attempts: int = 1

    @property
    def streamed(self) -> bool:
        return self.kind is ResponseKind.STREAM


@dataclass
class ProbeResult:
    """连通性探测结果。"""

    ok: bool
    status: Optional[int] = None
    elapsed: float = 0.0
    error: Optional[str] = None
    diagnostics: str = ""
