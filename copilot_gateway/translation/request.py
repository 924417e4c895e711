"""Translation of caller requests into upstream request bodies.

Three caller surfaces end up at the upstream:

- chat completions: forwarded with defaults filled in
- responses: ``input``/``instructions`` flattened into chat messages first
- legacy completions: sent to the separate completions endpoint
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from ..core.exceptions import InvalidRequestError
from ..types.chat import ChatCompletionBody, ChatMessage, CompletionBody
from .history import repair_tool_pairing
from .tools import ToolDefinition, normalize_tools, tools_to_dicts

logger = logging.getLogger("copilot-gateway")

CHAT_DEFAULT_MAX_TOKENS = 4096
CHAT_DEFAULT_TEMPERATURE = 0.7
CHAT_DEFAULT_TOP_P = 1
CHAT_DEFAULT_N = 1

COMPLETION_DEFAULT_MAX_TOKENS = 500
COMPLETION_DEFAULT_TEMPERATURE = 0.1
COMPLETION_DEFAULT_STOP = ["\n\n"]
COMPLETION_DEFAULT_LANGUAGE = "typescript"

TEXT_PART_TYPES = ("input_text", "output_text", "text")

_ROLE_MAP = {
    "user": "user",
    "assistant": "assistant",
    "system": "system",
    "developer": "system",
}


def estimate_tokens(text: str) -> int:
    """Rough token estimate used for accounting: one token per four characters."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def estimate_message_tokens(messages: Any) -> int:
    if not isinstance(messages, list):
        return 0
    total = 0
    for message in messages:
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            total += estimate_tokens(message["content"])
    return total


def _join_text_parts(content: Any) -> str:
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""
    texts = []
    for part in content:
        if isinstance(part, str):
            texts.append(part)
        elif isinstance(part, dict) and part.get("type") in TEXT_PART_TYPES:
            text = part.get("text")
            if isinstance(text, str):
                texts.append(text)
    return "".join(texts)


# =============================================================================
# Responses input items
# =============================================================================


@dataclass(frozen=True)
class MessageInput:
    role: str
    text: str


@dataclass(frozen=True)
class FunctionCallInput:
    call_id: str
    name: str
    arguments: str


@dataclass(frozen=True)
class FunctionCallOutputInput:
    call_id: str
    output: str


@dataclass(frozen=True)
class UnknownInput:
    item_type: Any


InputVariant = Union[MessageInput, FunctionCallInput, FunctionCallOutputInput, UnknownInput]


def classify_input_item(item: Any) -> InputVariant:
    if isinstance(item, str):
        return MessageInput("user", item)
    if not isinstance(item, dict):
        return UnknownInput(type(item).__name__)

    item_type = item.get("type")
    if item_type == "function_call_output":
        output = item.get("output")
        if not isinstance(output, str):
            output = _join_text_parts(output)
        return FunctionCallOutputInput(str(item.get("call_id") or ""), output or "")
    if item_type == "function_call":
        arguments = item.get("arguments")
        if not isinstance(arguments, str):
            arguments = "{}"
        return FunctionCallInput(
            call_id=str(item.get("call_id") or item.get("id") or ""),
            name=str(item.get("name") or ""),
            arguments=arguments,
        )
    if item_type == "message" or (item_type is None and "role" in item):
        role = _ROLE_MAP.get(str(item.get("role") or "user"), "user")
        return MessageInput(role, _join_text_parts(item.get("content")))
    return UnknownInput(item_type)


def responses_input_to_messages(
    input_: Any, instructions: Optional[str] = None
) -> list[ChatMessage]:
    """Flatten Responses ``input`` (and ``instructions``) into chat messages."""
    messages: list[ChatMessage] = []
    if isinstance(instructions, str) and instructions:
        messages.append({"role": "system", "content": instructions})

    if isinstance(input_, str):
        messages.append({"role": "user", "content": input_})
        return messages
    if not isinstance(input_, list):
        return messages

    for item in input_:
        variant = classify_input_item(item)
        if isinstance(variant, MessageInput):
            messages.append({"role": variant.role, "content": variant.text})  # type: ignore[typeddict-item]
        elif isinstance(variant, FunctionCallInput):
            messages.append({
                "role": "assistant",
                "content": None,
                "tool_calls": [{
                    "id": variant.call_id,
                    "type": "function",
                    "function": {"name": variant.name, "arguments": variant.arguments},
                }],
            })
        elif isinstance(variant, FunctionCallOutputInput):
            messages.append({
                "role": "tool",
                "content": variant.output,
                "tool_call_id": variant.call_id,
            })
        else:
            logger.warning("Skipping unsupported input item type: %s", variant.item_type)
    return messages


# =============================================================================
# Upstream bodies
# =============================================================================


def _number_or_default(value: Any, default: Union[int, float]) -> Union[int, float]:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def build_chat_body(
    *,
    model: str,
    messages: list[ChatMessage],
    stream: bool,
    max_tokens: Any = None,
    temperature: Any = None,
    top_p: Any = None,
    n: Any = None,
    tools: Optional[list[ToolDefinition]] = None,
    tool_choice: Any = None,
    parallel_tool_calls: Any = None,
) -> ChatCompletionBody:
    """Assemble the upstream chat body.

    ``model`` must already be resolved and ``messages`` already repaired.
    A zero ``max_tokens`` is treated as omitted.
    """
    body: dict[str, Any] = {
        "model": model,
        "messages": messages,
        "max_tokens": max_tokens if _number_or_default(max_tokens, 0) else CHAT_DEFAULT_MAX_TOKENS,
        "temperature": _number_or_default(temperature, CHAT_DEFAULT_TEMPERATURE),
        "top_p": _number_or_default(top_p, CHAT_DEFAULT_TOP_P),
        "n": _number_or_default(n, CHAT_DEFAULT_N) or CHAT_DEFAULT_N,
        "stream": bool(stream),
    }
    tool_dicts = tools_to_dicts(tools)
    if tool_dicts:
        body["tools"] = tool_dicts
    if tool_choice is not None and tool_choice != "":
        body["tool_choice"] = tool_choice
    if parallel_tool_calls is not None:
        body["parallel_tool_calls"] = bool(parallel_tool_calls)
    return body  # type: ignore[return-value]


def chat_body_from_payload(
    payload: dict[str, Any], model: str, *, stream: bool
) -> ChatCompletionBody:
    """Chat-completions caller payload -> upstream body."""
    messages = payload.get("messages")
    if not isinstance(messages, list) or not messages:
        raise InvalidRequestError("Messages array is required", param="messages")
    for index, message in enumerate(messages):
        if not isinstance(message, dict) or "role" not in message:
            raise InvalidRequestError(
                f"messages[{index}] must be an object with a role", param="messages"
            )
    return build_chat_body(
        model=model,
        messages=repair_tool_pairing(messages),
        stream=stream,
        max_tokens=payload.get("max_tokens"),
        temperature=payload.get("temperature"),
        top_p=payload.get("top_p"),
        n=payload.get("n"),
        tools=normalize_tools(payload.get("tools")),
        tool_choice=payload.get("tool_choice"),
        parallel_tool_calls=payload.get("parallel_tool_calls"),
    )


def responses_body_from_payload(
    payload: dict[str, Any], model: str, *, stream: bool
) -> ChatCompletionBody:
    """Responses caller payload -> upstream chat body."""
    input_ = payload.get("input")
    if input_ is None or input_ == "" or input_ == []:
        raise InvalidRequestError("You must provide an input parameter", param="input")
    if not isinstance(input_, (str, list)):
        raise InvalidRequestError("input must be a string or an array", param="input")

    messages = responses_input_to_messages(input_, payload.get("instructions"))
    if not messages:
        raise InvalidRequestError("input did not contain any usable items", param="input")
    return build_chat_body(
        model=model,
        messages=repair_tool_pairing(messages),
        stream=stream,
        max_tokens=payload.get("max_output_tokens", payload.get("max_tokens")),
        temperature=payload.get("temperature"),
        top_p=payload.get("top_p"),
        tools=normalize_tools(payload.get("tools")),
        tool_choice=payload.get("tool_choice"),
        parallel_tool_calls=payload.get("parallel_tool_calls"),
    )


_FENCE_RE = re.compile(r"```(\w+)")
_EXTENSION_RE = re.compile(r"\.([a-zA-Z0-9]+)(?:\s|\"|'|$|\?)")
_EXTENSION_LANGUAGES = {
    "js": "javascript",
    "ts": "typescript",
    "py": "python",
    "java": "java",
    "c": "c",
    "cpp": "cpp",
    "cs": "csharp",
    "go": "go",
    "rb": "ruby",
    "php": "php",
    "html": "html",
    "css": "css",
    "json": "json",
    "md": "markdown",
}


def detect_language(prompt: str, default: str = COMPLETION_DEFAULT_LANGUAGE) -> str:
    """Guess the source language of a completion prompt."""
    fence = _FENCE_RE.search(prompt)
    if fence:
        return fence.group(1).lower()
    extension = _EXTENSION_RE.search(prompt)
    if extension:
        return _EXTENSION_LANGUAGES.get(extension.group(1).lower(), default)
    return default


def build_completion_body(payload: dict[str, Any], *, stream: bool) -> CompletionBody:
    """Legacy completions caller payload -> upstream completions body."""
    prompt = payload.get("prompt")
    if isinstance(prompt, list):
        prompt = "\n".join(str(part) for part in prompt)
    if not isinstance(prompt, str) or not prompt:
        raise InvalidRequestError("Prompt is required", param="prompt")

    stop = payload.get("stop")
    if isinstance(stop, str):
        stop = [stop]
    if not isinstance(stop, list) or not stop:
        stop = list(COMPLETION_DEFAULT_STOP)

    language = payload.get("language")
    if not isinstance(language, str) or not language:
        language = detect_language(prompt)

    suffix = payload.get("suffix")
    max_tokens = payload.get("max_tokens")
    return {
        "prompt": prompt,
        "suffix": suffix if isinstance(suffix, str) else "",
        "max_tokens": max_tokens if _number_or_default(max_tokens, 0) else COMPLETION_DEFAULT_MAX_TOKENS,
        "temperature": _number_or_default(payload.get("temperature"), COMPLETION_DEFAULT_TEMPERATURE),
        "top_p": _number_or_default(payload.get("top_p"), CHAT_DEFAULT_TOP_P),
        "n": _number_or_default(payload.get("n"), CHAT_DEFAULT_N) or CHAT_DEFAULT_N,
        "stream": bool(stream),
        "stop": stop,
        "extra": {
            "language": language,
            "next_indent": 0,
            "trim_by_indentation": True,
        },
    }
