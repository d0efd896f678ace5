"""Chat Core 顶层包。

该包提供一个可配置 HTTP 聊天后端的客户端核心实现，
包括配置加载、请求构造与认证、带退避的重试、响应格式识别、
SSE 流式解码、打字效果播放以及失败诊断。
"""

from chat_core.api.service import ChatClient
from chat_core.domain.models import ApiConfig, AuthMode
from chat_core.playback.targets import BufferTarget, CallbackTarget

__all__ = ["ApiConfig", "AuthMode", "BufferTarget", "CallbackTarget", "ChatClient"]
