"""Translation of non-streaming upstream answers into the caller's shape."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional
from uuid import uuid4

from ..types.responses import (
    FunctionCallItem,
    MessageItem,
    OutputItem,
    ResponseObject,
    ResponseUsage,
)

logger = logging.getLogger("copilot-gateway")


def generate_response_id() -> str:
    return f"resp_{uuid4().hex[:32]}"


def generate_message_id() -> str:
    return f"msg_{uuid4().hex[:24]}"


def generate_call_id() -> str:
    return f"call_{uuid4().hex[:24]}"


def generate_chat_id() -> str:
    return f"chatcmpl-{uuid4()}"


def generate_completion_id() -> str:
    return f"cmpl-{uuid4()}"


def convert_usage(usage: Optional[dict[str, Any]]) -> Optional[ResponseUsage]:
    """Chat-style usage counters -> Responses usage counters."""
    if not isinstance(usage, dict) or not usage:
        return None
    result: ResponseUsage = {}
    if "prompt_tokens" in usage:
        result["input_tokens"] = usage["prompt_tokens"]
    if "completion_tokens" in usage:
        result["output_tokens"] = usage["completion_tokens"]
    if "total_tokens" in usage:
        result["total_tokens"] = usage["total_tokens"]
    return result or None


def usage_total_tokens(usage: Any) -> int:
    if not isinstance(usage, dict):
        return 0
    total = usage.get("total_tokens")
    if isinstance(total, int):
        return total
    counts = [usage.get("prompt_tokens"), usage.get("completion_tokens")]
    return sum(count for count in counts if isinstance(count, int))


def _choice_text(choice: dict[str, Any]) -> str:
    message = choice.get("message")
    if isinstance(message, dict):
        content = message.get("content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return "".join(
                part.get("text", "") for part in content
                if isinstance(part, dict) and isinstance(part.get("text"), str)
            )
    text = choice.get("text")
    return text if isinstance(text, str) else ""


def _choice_tool_calls(choice: dict[str, Any]) -> list[dict[str, Any]]:
    message = choice.get("message")
    if not isinstance(message, dict):
        return []
    calls = message.get("tool_calls")
    return [call for call in calls if isinstance(call, dict)] if isinstance(calls, list) else []


def _choices(upstream: dict[str, Any]) -> list[dict[str, Any]]:
    choices = upstream.get("choices")
    if not isinstance(choices, list):
        return []
    return [choice for choice in choices if isinstance(choice, dict)]


def to_chat_completion(upstream: dict[str, Any], model: str) -> dict[str, Any]:
    """Upstream chat answer -> ``chat.completion`` object."""
    choices = []
    for index, choice in enumerate(_choices(upstream)):
        message: dict[str, Any] = {"role": "assistant", "content": _choice_text(choice)}
        tool_calls = _choice_tool_calls(choice)
        if tool_calls:
            message["tool_calls"] = tool_calls
        choices.append({
            "index": index,
            "message": message,
            "finish_reason": choice.get("finish_reason") or "stop",
        })

    result: dict[str, Any] = {
        "id": upstream.get("id") or generate_chat_id(),
        "object": "chat.completion",
        "created": upstream.get("created") or int(time.time()),
        "model": upstream.get("model") or model,
        "choices": choices,
    }
    if isinstance(upstream.get("usage"), dict):
        result["usage"] = upstream["usage"]
    return result


def to_text_completion(upstream: dict[str, Any], model: str) -> dict[str, Any]:
    """Upstream completions answer -> ``text_completion`` object."""
    result: dict[str, Any] = {
        "id": generate_completion_id(),
        "object": "text_completion",
        "created": int(time.time()),
        "model": model,
        "choices": [
            {
                "text": _choice_text(choice),
                "index": index,
                "logprobs": None,
                "finish_reason": choice.get("finish_reason") or "stop",
            }
            for index, choice in enumerate(_choices(upstream))
        ],
    }
    if isinstance(upstream.get("usage"), dict):
        result["usage"] = upstream["usage"]
    return result


def to_responses_object(
    upstream: dict[str, Any],
    model: str,
    response_id: Optional[str] = None,
) -> ResponseObject:
    """Upstream chat answer -> completed Responses object."""
    output: list[OutputItem] = []
    for choice in _choices(upstream):
        text = _choice_text(choice)
        if text:
            message_item: MessageItem = {
                "id": generate_message_id(),
                "type": "message",
                "role": "assistant",
                "status": "completed",
                "content": [{"type": "output_text", "text": text, "annotations": []}],
            }
            output.append(message_item)
        for call in _choice_tool_calls(choice):
            function = call.get("function") if isinstance(call.get("function"), dict) else {}
            call_id = call.get("id") or generate_call_id()
            function_item: FunctionCallItem = {
                "id": generate_call_id(),
                "type": "function_call",
                "call_id": call_id,
                "name": function.get("name", ""),
                "arguments": function.get("arguments", "{}"),
                "status": "completed",
            }
            output.append(function_item)

    return {
        "id": response_id or generate_response_id(),
        "object": "response",
        "created_at": int(time.time()),
        "status": "completed",
        "model": upstream.get("model") or model,
        "output": output,
        "usage": convert_usage(upstream.get("usage")),
        "error": None,
    }
