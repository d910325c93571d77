from __future__ import annotations

import json
import time
import uuid
from typing import Any, Dict, List, Optional, Sequence


DONE_FRAME = "data: [DONE]\n\n"


def new_id() -> str:
    return uuid.uuid4().hex


def unix_timestamp() -> int:
    return int(time.time())


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_message_text(messages: Sequence[Any]) -> str:
    """Text of the last message: a string as-is, or its text parts joined by newlines."""
    if not messages:
        return ""
    content = _field(messages[-1], "content")
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: List[str] = []
        for block in content:
            if _field(block, "type") == "text":
                text = _field(block, "text")
                parts.append(text if isinstance(text, str) else "")
        return "\n".join(parts)
    return ""


def completion_response(
    *,
    model: str,
    prompt: str,
    text: str,
    completion_id: Optional[str] = None,
) -> Dict[str, Any]:
    # usage is measured in characters, not tokens
    return {
        "id": completion_id or new_id(),
        "model": model,
        "object": "chat.completion",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": len(prompt),
            "completion_tokens": len(text),
            "total_tokens": len(prompt) + len(text),
        },
        "created": unix_timestamp(),
    }


def completion_chunk(model: str, content: Optional[str] = None, finish_reason: Optional[str] = None) -> Dict[str, Any]:
    delta: Dict[str, Any] = {}
    if content is not None:
        delta["content"] = content
    return {
        "id": new_id(),
        "object": "chat.completion.chunk",
        "created": unix_timestamp(),
        "model": model,
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def sse_frame(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"
