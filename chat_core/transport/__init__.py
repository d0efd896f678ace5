"""请求与传输层。

该包下的模块负责：
- 构造带认证头的 HTTP 请求 (request_builder)。
- 在硬超时内完成一次 HTTP 交换并归类错误 (http_transport)。
- 对网络错误做指数退避重试 (retry)。
"""

from chat_core.transport.http_transport import HttpTransport
from chat_core.transport.request_builder import auth_headers, build_request
from chat_core.transport.retry import RetryPolicy

__all__ = ["HttpTransport", "RetryPolicy", "auth_headers", "build_request"]
