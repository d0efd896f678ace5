"""Server-Sent Events 流式解码器。

响应体按任意大小的块到达。解码器：

1. 以增量方式做 UTF-8 解码（多字节字符可以跨块）；
2. 按换行切分，不完整的最后一行留在缓冲区等待下一块；
3. 只处理 `data:` 行，`[DONE]` 之后的行全部忽略（但正文仍会读完）；
4. 从每个事件中取出文本片段并追加到全文；
5. 每次追加都把“截至目前的全文”交给回调，而不是本次增量。
"""

import codecs
import json
from typing import AsyncIterable, Callable, List, Optional, Union

import httpx

from chat_core.domain.exceptions import DecodeError
from chat_core.domain.models import StreamAccumulator
from chat_core.infrastructure.logging.logger import logger

DONE_MARKER = "[DONE]"

FragmentCallback = Callable[[str], None]


def _delta_content(data: dict) -> object:
    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        delta = choices[0].get("delta")
        if isinstance(delta, dict):
            return delta.get("content")
    return None


def extract_fragment(payload: str) -> str:
    """从单个事件负载中取出文本。

    JSON 对象依次尝试 choices[0].delta.content、content、text、message；
    无法解析为 JSON 时，负载本身就是文本。
    """

    try:
        data = json.loads(payload)
    except ValueError:
        return payload if payload.strip() else ""
    if not isinstance(data, dict):
        return ""
    for candidate in (_delta_content(data), data.get("content"), data.get("text"), data.get("message")):
        if isinstance(candidate, str) and candidate:
            return candidate
    return ""


class StreamDecoder:
    """单个响应体的解码状态机，不可复用。"""

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")()
        self.state = StreamAccumulator()

    @property
    def full_text(self) -> str:
        return self.state.full_text

    @property
    def done(self) -> bool:
        return self.state.done

    def feed(self, chunk: Union[bytes, str]) -> List[str]:
        """喂入一块数据，返回本块产生的累计全文（每个片段一项）。"""

        text = chunk if isinstance(chunk, str) else self._utf8.decode(chunk)
        return self._consume(text, final=False)

    def close(self) -> List[str]:
        """正文结束：冲刷解码器并处理没有换行结尾的最后一行。"""

        return self._consume(self._utf8.decode(b"", final=True), final=True)

    def _consume(self, text: str, final: bool) -> List[str]:
        acc = self.state
        if acc.done:
            return []
        acc.buffer += text
        lines = acc.buffer.split("\n")
        acc.buffer = "" if final else lines.pop()

        updates: List[str] = []
        for line in lines:
            if self._handle_line(line):
                updates.append(acc.full_text)
            if acc.done:
                acc.buffer = ""
                break
        return updates

    def _handle_line(self, raw: str) -> bool:
        line = raw.rstrip("\r")
        if not line.strip() or not line.startswith("data:"):
            return False
        payload = line[5:]
        if payload.startswith(" "):
            payload = payload[1:]
        if payload.strip() == DONE_MARKER:
            self.state.done = True
            return False
        fragment = extract_fragment(payload)
        if not fragment:
            return False
        self.state.full_text += fragment
        self.state.fragments += 1
        return True

    async def decode(
        self,
        chunks: Optional[AsyncIterable[bytes]],
        on_fragment: Optional[FragmentCallback] = None,
    ) -> Optional[str]:
        """读完整个正文并返回全文；什么都没收到时返回 None。"""

        if chunks is None:
            raise DecodeError(code="EMPTY_BODY", message="Unable to read streaming response body", http_status=502)
        try:
            async for chunk in chunks:
                for text in self.feed(chunk):
                    if on_fragment is not None:
                        on_fragment(text)
            for text in self.close():
                if on_fragment is not None:
                    on_fragment(text)
        except UnicodeDecodeError as exc:
            raise DecodeError(
                code="DECODE_ERROR",
                message=f"Stream body is not valid UTF-8: {exc.reason}",
                http_status=502,
            ) from exc

        logger.info(
            "Stream finished",
            extra={"extra": {
                "fragments": self.state.fragments,
                "chars": len(self.state.full_text),
                "done_marker": self.state.done,
            }},
        )
        return self.state.full_text or None


async def decode_stream(response: httpx.Response, on_fragment: Optional[FragmentCallback] = None) -> Optional[str]:
    return await StreamDecoder().decode(response.aiter_bytes(), on_fragment)
