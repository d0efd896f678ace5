"""响应分类器。

根据 content-type 决定正文走哪条解码路径：

- text/event-stream -> STREAM，正文交给 stream_decoder 逐块读取
- application/json、text/plain -> 尝试按 JSON 解析，失败则按纯文本处理
- 其他 -> TEXT

JSON 回复的文本按固定的候选字段顺序提取；成功/失败的判定见 interpret_json。
"""

import json
from typing import Any, Mapping, Optional, Sequence

import httpx

from chat_core.domain.exceptions import ApiError
from chat_core.domain.models import ClassifiedResponse, ResponseKind
from chat_core.infrastructure.logging.logger import logger

REPLY_FIELDS = ("response", "message", "reply", "content", "text")
STATUS_FIELDS = ("statusCode", "status")


def detect_kind(content_type: Optional[str]) -> ResponseKind:
    value = (content_type or "").lower()
    if "text/event-stream" in value:
        return ResponseKind.STREAM
    if "application/json" in value or "text/plain" in value:
        return ResponseKind.JSON
    return ResponseKind.TEXT


def pick_field(data: Mapping[str, Any], candidates: Sequence[str]) -> Optional[str]:
    """按优先级返回第一个存在且非空的字段值（统一转为字符串）。"""

    for name in candidates:
        value = data.get(name)
        if value is None or value == "":
            continue
        if isinstance(value, str):
            return value
        if isinstance(value, (dict, list)):
            return json.dumps(value, ensure_ascii=False)
        return str(value)
    return None


def _is_status(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _has_success_marker(data: Mapping[str, Any]) -> bool:
    return any(data.get(name) == 200 for name in STATUS_FIELDS) or data.get("success") is True


def _error_status(data: Mapping[str, Any]) -> Optional[int]:
    for name in STATUS_FIELDS:
        value = data.get(name)
        if _is_status(value) and value != 200:
            return value
    return None


def _has_error(data: Mapping[str, Any]) -> bool:
    err = data.get("error")
    return err not in (None, "", False) or _error_status(data) is not None or data.get("success") is False


def _error_message(data: Mapping[str, Any]) -> str:
    err = data.get("error")
    if isinstance(err, str) and err:
        return err
    if isinstance(err, Mapping) and err.get("message"):
        return str(err["message"])
    message = data.get("message")
    if isinstance(message, str) and message:
        return message
    status = _error_status(data)
    return f"API returned error status: {status if status is not None else 'unknown'}"


def interpret_json(data: Any) -> ClassifiedResponse:
    """把解析后的 JSON 转成回复文本，应用层错误抛出 ApiError。"""

    if isinstance(data, str):
        return ClassifiedResponse(kind=ResponseKind.JSON, text=data, raw=data)
    if not isinstance(data, Mapping):
        return ClassifiedResponse(kind=ResponseKind.JSON, text=json.dumps(data, ensure_ascii=False), raw=data)

    if not _has_success_marker(data) and _has_error(data):
        raise ApiError(
            code="API_ERROR",
            message=_error_message(data),
            http_status=502,
            status=_error_status(data),
        )

    text = pick_field(data, REPLY_FIELDS)
    if text is None:
        text = json.dumps(data, ensure_ascii=False)
    return ClassifiedResponse(kind=ResponseKind.JSON, text=text, raw=data)


def interpret_body(content_type: Optional[str], body: str) -> ClassifiedResponse:
    """处理非流式正文。"""

    kind = detect_kind(content_type)
    if kind is ResponseKind.JSON:
        try:
            data = json.loads(body)
        except ValueError:
            return ClassifiedResponse(kind=ResponseKind.TEXT, text=body)
        return interpret_json(data)
    return ClassifiedResponse(kind=ResponseKind.TEXT, text=body)


async def classify(response: httpx.Response) -> ClassifiedResponse:
    """按响应头分类；STREAM 不读取正文，其余类型读取完整正文后解析。"""

    content_type = response.headers.get("content-type", "")
    kind = detect_kind(content_type)
    logger.info(
        "Chat response received",
        extra={"extra": {"status": response.status_code, "content_type": content_type, "kind": kind.value}},
    )
    if kind is ResponseKind.STREAM:
        return ClassifiedResponse(kind=kind)
    await response.aread()
    return interpret_body(content_type, response.text)
