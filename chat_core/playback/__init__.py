"""回复渲染层：渲染目标协议与打字效果播放。"""

from chat_core.playback.engine import IncrementalPlayback, PlaybackEngine, PlaybackMode
from chat_core.playback.targets import CURSOR, BufferTarget, CallbackTarget, RenderTarget

__all__ = [
    "CURSOR",
    "BufferTarget",
    "CallbackTarget",
    "IncrementalPlayback",
    "PlaybackEngine",
    "PlaybackMode",
    "RenderTarget",
]
