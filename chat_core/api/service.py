"""对外 API 服务模块。

ChatClient 把各层串起来完成一次交换：

    build_request -> RetryPolicy(HttpTransport) -> classify
        -> {decode_stream | 完整文本} -> PlaybackEngine -> RenderTarget

宿主通过 update_config / config_snapshot 下发与回读配置，
通过 send() 发起一次带界面回调的交换。
"""

import math
import time
from functools import partial
from typing import Any, Callable, Dict, Mapping, Optional, Union

from chat_core.api.diagnostics import diagnose, format_error
from chat_core.config.settings import settings
from chat_core.domain.exceptions import BusinessError, ExchangeInProgressError
from chat_core.domain.models import ApiConfig, ChatExchange, ProbeResult, Reply, ResponseKind
from chat_core.infrastructure.logging.logger import logger
from chat_core.playback.engine import PlaybackEngine
from chat_core.playback.targets import RenderTarget
from chat_core.response.classifier import classify
from chat_core.response.stream_decoder import decode_stream
from chat_core.transport.http_transport import HttpTransport
from chat_core.transport.request_builder import build_request
from chat_core.transport.retry import ProgressCallback, RetryPolicy

STATUS_CONNECTING = "正在连接..."
EMPTY_REPLY_NOTICE = "抱歉，没有收到有效回复，请重试。"
PROBE_MESSAGE = "ping"


def retry_status(attempt: int, max_attempts: int, delay: float) -> str:
    return f"连接失败，{math.ceil(delay)}秒后重试... ({attempt}/{max_attempts})"


class ChatClient:
    """单会话聊天客户端。

    - 每次交换都是无状态的，不携带历史消息。
    - 同一时间只允许一个交换；进行中再次 send 会以 busy 错误结束新交换。
    """

    def __init__(
        self,
        config: Union[ApiConfig, Mapping[str, Any], None] = None,
        *,
        cfg=settings,
        transport: Optional[HttpTransport] = None,
        retry: Optional[RetryPolicy] = None,
        playback: Optional[PlaybackEngine] = None,
    ):
        self._settings = cfg
        if config is None:
            self._config = ApiConfig.from_settings(cfg)
        elif isinstance(config, ApiConfig):
            self._config = config
        else:
            self._config = ApiConfig.from_host(config)
        self._transport = transport or HttpTransport()
        self._retry = retry or RetryPolicy.from_settings(cfg)
        self._playback = playback or PlaybackEngine.from_settings(cfg)
        self._active: Optional[ChatExchange] = None

    # ---- 配置 ----

    @property
    def config(self) -> ApiConfig:
        return self._config

    def update_config(self, data: Optional[Mapping[str, Any]]) -> ApiConfig:
        """接收宿主的设置变更，保存一份独立的快照。"""

        self._config = ApiConfig.from_host(data)
        logger.info(
            "API settings updated",
            extra={"extra": {
                "url": self._config.api_url,
                "auth_type": self._config.auth_type.value,
                "has_key": self._config.has_credential,
            }},
        )
        return self._config

    def config_snapshot(self) -> Dict[str, str]:
        return self._config.to_host()

    @property
    def busy(self) -> bool:
        return self._active is not None

    # ---- 交换 ----

    async def request_reply(
        self,
        message: str,
        *,
        on_fragment: Optional[Callable[[str], None]] = None,
        on_progress: Optional[ProgressCallback] = None,
        max_attempts: Optional[int] = None,
    ) -> Reply:
        """获取一条回复，不负责界面渲染。

        配置错误在任何网络调用之前抛出；网络错误按重试策略重试，
        其余错误直接抛出。
        """

        request = build_request(message, self._config)
        retry = self._retry if max_attempts is None else self._retry.with_attempts(max_attempts)

        async def attempt(number: int) -> Reply:
            async with self._transport.open(request, self._settings.http_timeout) as response:
                classified = await classify(response)
                if classified.kind is ResponseKind.STREAM:
                    text = await decode_stream(response, on_fragment)
                else:
                    text = classified.text or None
            return Reply(kind=classified.kind, text=text, attempts=number)

        return await retry.execute(attempt, on_progress)

    async def send(self, message: str, target: RenderTarget) -> Optional[ChatExchange]:
        """发起一次完整交换，把进度、回复或错误写入 target。空消息直接忽略。"""

        text = (message or "").strip()
        if not text:
            return None

        exchange = ChatExchange(message=text)
        config = self._config
        if self._active is not None:
            exc = ExchangeInProgressError(
                code="EXCHANGE_IN_PROGRESS",
                message="Another message is still being answered",
                http_status=409,
            )
            exchange.fail(exc.kind, exc.message)
            target.on_error(exc.kind, format_error(exc, config))
            return exchange

        self._active = exchange
        try:
            target.on_status(STATUS_CONNECTING)
            live = self._playback.incremental(target)
            try:
                reply = await self.request_reply(
                    text,
                    on_fragment=live.update,
                    on_progress=partial(self._report_retry, target),
                )
            except BusinessError as exc:
                exchange.attempts = exc.extra.get("attempts", exchange.attempts)
                rendered = format_error(exc, config)
                exchange.fail(exc.kind, rendered)
                logger.error(
                    f"Chat exchange failed: {exc.message}",
                    extra={"extra": {"code": exc.code, "kind": exc.kind, "attempts": exchange.attempts}},
                )
                target.on_error(exc.kind, rendered)
                return exchange

            exchange.attempts = reply.attempts
            if reply.text is None:
                exchange.succeed(EMPTY_REPLY_NOTICE, empty=True)
                target.on_final(EMPTY_REPLY_NOTICE)
            elif reply.streamed:
                live.finish(reply.text)
                exchange.succeed(reply.text)
            else:
                await self._playback.simulate(target, reply.text)
                exchange.succeed(reply.text)
            logger.info(
                "Chat exchange completed",
                extra={"extra": {"kind": reply.kind.value, "attempts": reply.attempts, "empty": reply.text is None}},
            )
            return exchange
        finally:
            self._active = None

    @staticmethod
    def _report_retry(target: RenderTarget, attempt: int, max_attempts: int, delay: float) -> None:
        target.on_status(retry_status(attempt, max_attempts, delay))

    # ---- 连通性探测 ----

    async def probe(self, timeout: Optional[float] = None) -> ProbeResult:
        """用非流式请求探测后端是否可达，不重试。"""

        config = self._config
        started = time.monotonic()
        try:
            request = build_request(PROBE_MESSAGE, config, stream=False)
            async with self._transport.open(request, timeout or self._settings.probe_timeout) as response:
                status = response.status_code
        except BusinessError as exc:
            logger.warning(
                f"Connectivity probe failed: {exc.message}",
                extra={"extra": {"code": exc.code, "url": config.api_url}},
            )
            return ProbeResult(
                ok=False,
                status=getattr(exc, "status", None),
                elapsed=time.monotonic() - started,
                error=format_error(exc, config),
                diagnostics=diagnose(config),
            )
        return ProbeResult(
            ok=True,
            status=status,
            elapsed=time.monotonic() - started,
            diagnostics=diagnose(config),
        )
