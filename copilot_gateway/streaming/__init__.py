"""Streaming protocol translation."""

from .consumer import StreamDelta, StreamEvent, ToolCallFragment, UpstreamStreamConsumer
from .emitters import ChatChunkEmitter, LegacyCompletionEmitter, StreamEmitter
from .pipeline import OutboundStream, run_stream
from .responses_emitter import ResponsesEmitter
from .state import StreamState

__all__ = [
    "ChatChunkEmitter",
    "LegacyCompletionEmitter",
    "OutboundStream",
    "ResponsesEmitter",
    "StreamDelta",
    "StreamEmitter",
    "StreamEvent",
    "StreamState",
    "ToolCallFragment",
    "UpstreamStreamConsumer",
    "run_stream",
]
