"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在 UI 层统一捕获并渲染成可读的错误消息。

kind 是给界面回调 on_error(kind, message) 使用的简短分类名。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NETWORK_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 attempts、url 等）。
    """

    kind = "error"

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigError(BusinessError):
    """配置缺失或无效，例如未设置 API URL。不会发起任何网络请求。"""

    kind = "config"


class NetworkError(BusinessError):
    """网络层错误：DNS 失败、连接被拒绝、跨域拦截等。唯一会被重试的错误。"""

    kind = "network"


class RequestTimeoutError(BusinessError):
    """请求超过硬超时后被中止。不重试。"""

    kind = "timeout"


class HttpError(BusinessError):
    """服务端返回非 2xx 状态码。"""

    kind = "http"

    def __init__(self, status: int, status_text: str = "", body: str = "", **extra):
        self.status = status
        self.status_text = status_text
        self.body = body
        message = f"API call failed ({status}): {status_text}. {body}".strip()
        super().__init__(code="HTTP_ERROR", message=message, http_status=status, **extra)


class ApiError(BusinessError):
    """2xx 响应的 JSON 中携带了应用层错误。"""

    kind = "api"


class DecodeError(BusinessError):
    """流式响应体缺失或无法解码。"""

    kind = "decode"


class ExchangeInProgressError(BusinessError):
    """同一客户端上已有一次交换尚未结束。"""

    kind = "busy"
