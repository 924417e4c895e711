"""Wire types for the chat and responses surfaces."""

from .chat import ChatMessage, FunctionCall, ToolCall
from .responses import FunctionCallItem, MessageItem, ResponseObject, ResponseUsage

__all__ = [
    "ChatMessage",
    "FunctionCall",
    "FunctionCallItem",
    "MessageItem",
    "ResponseObject",
    "ResponseUsage",
    "ToolCall",
]
