"""HTTP 传输层。

负责一次 HTTP 交换：发送请求、在硬超时内等待响应头与响应体、
把 httpx 的各类异常归类为统一的业务异常：

- 超时（asyncio 截止时间或 httpx 超时） -> RequestTimeoutError
- DNS 失败、连接被拒绝、读取中断等 -> NetworkError
- 非 2xx 状态码 -> HttpError（尽量附带响应体）
- URL 或请求头无法编码 -> ConfigError（不重试）

open() 是一个异步上下文管理器，退出时无论成功、超时还是异常都会释放连接。
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

from chat_core.domain.exceptions import ConfigError, HttpError, NetworkError, RequestTimeoutError
from chat_core.domain.models import HttpRequest
from chat_core.infrastructure.logging.logger import logger


class HttpTransport:
    """基于 httpx.AsyncClient 的传输实现。

    - transport: 可选的 httpx 传输对象，测试中注入 httpx.MockTransport。
    - calls: 已发起的交换次数，便于观察重试行为。
    """

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport
        self.calls = 0

    def _client(self, timeout: float) -> httpx.AsyncClient:
        # 不读取代理等环境变量，不复用缓存，自动跟随重定向
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=timeout,
            trust_env=False,
            follow_redirects=True,
        )

    @asynccontextmanager
    async def open(self, request: HttpRequest, timeout: float) -> AsyncIterator[httpx.Response]:
        """发起请求并产出尚未读取正文的响应。截止时间覆盖整个上下文。"""

        self.calls += 1
        logger.info(
            "Dispatching chat request",
            extra={"extra": {"url": request.url, "stream": request.stream, "timeout": timeout}},
        )
        try:
            async with asyncio.timeout(timeout):
                async with self._client(timeout) as client:
                    async with client.stream(
                        request.method,
                        request.url,
                        json=request.body,
                        headers=request.headers,
                    ) as resp:
                        if not resp.is_success:
                            body = await self._read_error_body(resp)
                            logger.warning(
                                "Chat backend returned an error status",
                                extra={"extra": {"url": request.url, "status": resp.status_code}},
                            )
                            raise HttpError(resp.status_code, resp.reason_phrase, body)
                        yield resp
        except TimeoutError as e:
            raise RequestTimeoutError(
                code="TIMEOUT",
                message=f"Request timed out after {timeout:g}s",
                http_status=504,
            ) from e
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                code="TIMEOUT",
                message=f"Request timed out: {e}",
                http_status=504,
            ) from e
        except (httpx.InvalidURL, UnicodeEncodeError) as e:
            raise ConfigError(
                code="INVALID_REQUEST",
                message=f"Request could not be built from the API settings: {e}",
            ) from e
        except (httpx.RequestError, httpx.StreamError) as e:
            raise NetworkError(
                code="NETWORK_ERROR",
                message=str(e) or type(e).__name__,
                http_status=503,
            ) from e

    @staticmethod
    async def _read_error_body(resp: httpx.Response) -> str:
        try:
            await resp.aread()
            return resp.text
        except (httpx.HTTPError, httpx.StreamError, UnicodeDecodeError):
            return "unknown error"
