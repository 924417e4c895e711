"""Request-side normalization and non-streaming response translation."""

from .history import repair_tool_pairing
from .request import (
    build_chat_body,
    build_completion_body,
    chat_body_from_payload,
    estimate_tokens,
    responses_body_from_payload,
    responses_input_to_messages,
)
from .response import (
    convert_usage,
    generate_response_id,
    to_chat_completion,
    to_responses_object,
    to_text_completion,
)
from .tools import ToolDefinition, normalize_tools

__all__ = [
    "ToolDefinition",
    "build_chat_body",
    "build_completion_body",
    "chat_body_from_payload",
    "convert_usage",
    "estimate_tokens",
    "generate_response_id",
    "normalize_tools",
    "repair_tool_pairing",
    "responses_body_from_payload",
    "responses_input_to_messages",
    "to_chat_completion",
    "to_responses_object",
    "to_text_completion",
]
