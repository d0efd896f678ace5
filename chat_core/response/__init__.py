"""响应解析层：按 content-type 分类，并解码 SSE 流。"""

from chat_core.response.classifier import classify, detect_kind, interpret_body, interpret_json
from chat_core.response.stream_decoder import StreamDecoder, decode_stream, extract_fragment

__all__ = [
    "StreamDecoder",
    "classify",
    "decode_stream",
    "detect_kind",
    "extract_fragment",
    "interpret_body",
    "interpret_json",
]
