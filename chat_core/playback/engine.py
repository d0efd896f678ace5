"""打字效果播放引擎。

两种模式给界面统一的“逐字出现”体验：

- INCREMENTAL: 流式回复每到一个片段就覆盖一次槽位内容（带光标），
  收到最终全文时清除光标。可按 render_interval 节流。
- SIMULATED: JSON/纯文本回复一次性到达，按空白切词逐词显示，
  词间随机等待 min_delay..max_delay 秒。

引擎本身不记录跨交换的状态，也不负责取消上一次播放；
同一时间只有一个交换在进行由调用方保证。
"""

import asyncio
import random
import re
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from chat_core.config.settings import settings
from chat_core.playback.targets import RenderTarget

_WORD = re.compile(r"\S+")


class PlaybackMode(str, Enum):
    INCREMENTAL = "incremental"
    SIMULATED = "simulated"


class IncrementalPlayback:
    """一次流式回复的播放句柄，节流状态只属于这一个槽位。"""

    def __init__(self, target: RenderTarget, interval: float = 0.0, clock: Callable[[], float] = time.monotonic):
        self._target = target
        self._interval = interval
        self._clock = clock
        self._last: Optional[float] = None
        self.renders = 0

    def update(self, text: str) -> bool:
        now = self._clock()
        if self._interval and self._last is not None and now - self._last < self._interval:
            return False
        self._last = now
        self.renders += 1
        self._target.on_fragment(text)
        return True

    def finish(self, text: str) -> None:
        self._target.on_final(text)


class PlaybackEngine:
    def __init__(
        self,
        min_delay: float = 0.05,
        max_delay: float = 0.15,
        render_interval: float = 0.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_delay < min_delay:
            raise ValueError("max_delay must not be smaller than min_delay")
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.render_interval = render_interval
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._clock = clock

    @classmethod
    def from_settings(cls, cfg=settings, **overrides) -> "PlaybackEngine":
        params = {
            "min_delay": cfg.typing_min_delay,
            "max_delay": cfg.typing_max_delay,
            "render_interval": cfg.stream_render_interval,
        }
        params.update(overrides)
        return cls(**params)

    def next_delay(self) -> float:
        return self._rng.uniform(self.min_delay, self.max_delay)

    def incremental(self, target: RenderTarget) -> IncrementalPlayback:
        return IncrementalPlayback(target, self.render_interval, self._clock)

    async def simulate(self, target: RenderTarget, text: str) -> None:
        """逐词显示完整文本。每次回调的值都是原文的前缀，保留原有空白与换行。"""

        ends = [m.end() for m in _WORD.finditer(text)]
        for index, end in enumerate(ends):
            if index:
                await self._sleep(self.next_delay())
            target.on_fragment(text[:end])
        target.on_final(text)

    async def play(
        self,
        target: RenderTarget,
        text: str,
        mode: PlaybackMode = PlaybackMode.SIMULATED,
        *,
        final: bool = False,
    ) -> None:
        if mode is PlaybackMode.SIMULATED:
            await self.simulate(target, text)
        elif final:
            target.on_final(text)
        else:
            target.on_fragment(text)
