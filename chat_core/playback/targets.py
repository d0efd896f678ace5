"""渲染目标协议及两个通用实现。

核心逻辑从不直接操作界面元素，只通过 RenderTarget 的四个回调写入
一个消息槽位。消息列表的增删、Markdown 渲染等都由宿主界面负责。
"""

from typing import Callable, List, Optional, Protocol, Tuple

CURSOR = "▋"


class RenderTarget(Protocol):
    """界面上的一个消息槽位。

    - on_status: 连接中、重试中等状态提示。
    - on_fragment: 截至目前的全文，正在输出中（显示光标）。
    - on_final: 最终全文，清除光标。
    - on_error: 终止性错误，kind 为错误分类，message 为可读文本。
    """

    def on_status(self, text: str) -> None:
        ...

    def on_fragment(self, text: str) -> None:
        ...

    def on_final(self, text: str) -> None:
        ...

    def on_error(self, kind: str, message: str) -> None:
        ...


class CallbackTarget:
    """把普通回调函数适配成 RenderTarget，未提供的回调直接忽略。"""

    def __init__(
        self,
        on_fragment: Optional[Callable[[str], None]] = None,
        on_final: Optional[Callable[[str], None]] = None,
        on_error: Optional[Callable[[str, str], None]] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ):
        self._fragment = on_fragment
        self._final = on_final
        self._error = on_error
        self._status = on_status

    def on_status(self, text: str) -> None:
        if self._status:
            self._status(text)

    def on_fragment(self, text: str) -> None:
        if self._fragment:
            self._fragment(text)

    def on_final(self, text: str) -> None:
        if self._final:
            self._final(text)

    def on_error(self, kind: str, message: str) -> None:
        if self._error:
            self._error(kind, message)


class BufferTarget:
    """在内存中保存槽位当前内容的渲染目标，适用于终端输出与测试。"""

    def __init__(self):
        self.text = ""
        self.typing = False
        self.status: Optional[str] = None
        self.error: Optional[Tuple[str, str]] = None
        self.history: List[Tuple[str, str]] = []

    @property
    def display(self) -> str:
        return self.text + CURSOR if self.typing else self.text

    @property
    def fragments(self) -> List[str]:
        return [value for event, value in self.history if event == "fragment"]

    def on_status(self, text: str) -> None:
        self.status = text
        self.history.append(("status", text))

    def on_fragment(self, text: str) -> None:
        self.text = text
        self.typing = True
        self.history.append(("fragment", text))

    def on_final(self, text: str) -> None:
        self.text = text
        self.typing = False
        self.history.append(("final", text))

    def on_error(self, kind: str, message: str) -> None:
        self.text = message
        self.typing = False
        self.error = (kind, message)
        self.history.append(("error", message))
