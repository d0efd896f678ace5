"""重试控制器：对瞬时网络故障做有上限的指数退避。

只有 NetworkError 会触发下一次尝试；超时、HTTP 错误、配置错误、
应用层错误都直接向上抛出。第 k 次尝试（k >= 2）之前等待
min(base * 2^(k-2), max) 秒，默认即 1s、2s、4s，上限 5s。

退避与重试循环由 tenacity.AsyncRetrying 驱动。
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from chat_core.config.settings import settings
from chat_core.domain.exceptions import BusinessError, NetworkError
from chat_core.domain.models import RetryState
from chat_core.infrastructure.logging.logger import logger

T = TypeVar("T")

# on_progress(即将进行的尝试序号, 最大尝试次数, 等待时长)
# 等待时长的单位是秒（float），不是毫秒
ProgressCallback = Callable[[int, int, float], None]


class RetryPolicy:
    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._sleep = sleep

    @classmethod
    def from_settings(cls, cfg=settings, **overrides) -> "RetryPolicy":
        params = {
            "max_attempts": cfg.max_attempts,
            "base_delay": cfg.retry_base_delay,
            "max_delay": cfg.retry_max_delay,
        }
        params.update(overrides)
        return cls(**params)

    def with_attempts(self, max_attempts: int) -> "RetryPolicy":
        return RetryPolicy(max_attempts, self.base_delay, self.max_delay, self._sleep)

    def delay_before(self, attempt: int) -> float:
        """第 attempt 次尝试之前的等待秒数，首次尝试不等待。"""

        if attempt < 2:
            return 0.0
        return min(self.base_delay * 2 ** (attempt - 2), self.max_delay)

    def _wait(self):
        # tenacity 按刚失败的尝试序号 n 计算 multiplier * 2^(n-1)
        return wait_exponential(multiplier=self.base_delay, min=self.base_delay, max=self.max_delay)

    def _retrying(self, state: RetryState, on_progress: Optional[ProgressCallback]) -> AsyncRetrying:
        def before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception()
            next_attempt = retry_state.attempt_number + 1
            delay = retry_state.next_action.sleep
            logger.warning(
                "Network error, scheduling retry",
                extra={"extra": {
                    "attempt": next_attempt,
                    "max_attempts": state.max_attempts,
                    "delay": delay,
                    "error": getattr(exc, "message", str(exc)),
                }},
            )
            if on_progress is not None:
                on_progress(next_attempt, state.max_attempts, delay)

        return AsyncRetrying(
            sleep=self._sleep,
            stop=stop_after_attempt(self.max_attempts),
            wait=self._wait(),
            retry=retry_if_exception_type(NetworkError),
            before_sleep=before_sleep,
            reraise=True,
        )

    async def execute(
        self,
        operation: Callable[[int], Awaitable[T]],
        on_progress: Optional[ProgressCallback] = None,
    ) -> T:
        """执行 operation(attempt)，网络错误时按退避策略重试。

        重试耗尽后抛出最后一次的 NetworkError；抛出的异常 extra["attempts"]
        记录实际尝试次数。
        """

        state = RetryState(attempt=1, max_attempts=self.max_attempts)
        try:
            async for attempt in self._retrying(state, on_progress):
                with attempt:
                    state.attempt = attempt.retry_state.attempt_number
                    try:
                        return await operation(state.attempt)
                    except BusinessError as exc:
                        state.last_error = exc
                        exc.extra["attempts"] = state.attempt
                        raise
        except NetworkError as exc:
            logger.error(
                "Network retries exhausted",
                extra={"extra": {"attempts": state.attempt, "error": exc.message}},
            )
            raise
