"""Emitters turn neutral stream events into caller-facing SSE frames.

One consumer feeds any emitter; the emitter decides the outbound grammar.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..core.exceptions import GatewayError
from ..core.sse import DONE_FRAME, encode_data_frame
from ..translation.response import (
    generate_call_id,
    generate_chat_id,
    generate_completion_id,
)
from .consumer import StreamDelta, StreamEvent, ToolCallFragment
from .state import StreamState

logger = logging.getLogger("copilot-gateway")


class StreamEmitter(ABC):
    """Base class for outbound stream grammars.

    ``finished`` becomes True once the emitter has written its terminal
    frame(s); later events are ignored.
    """

    def __init__(self, model: str, state: Optional[StreamState] = None) -> None:
        self.model = model
        self.state = state or StreamState()
        self.finished = False

    def start(self) -> list[bytes]:
        """Frames to send before any upstream byte is read."""
        return []

    def handle(self, event: StreamEvent) -> list[bytes]:
        if self.finished:
            return []
        if event.kind == "delta" and event.delta is not None:
            self.state.chunk_count += 1
            if event.delta.usage:
                self.state.usage = event.delta.usage
            if event.delta.finish_reason:
                self.state.finish_reason = event.delta.finish_reason
            return self.on_delta(event.delta)
        if event.kind == "done":
            return self.on_done()
        if event.kind == "error" and event.error is not None:
            return self.on_error(event.error)
        if event.kind == "closed":
            return self.on_close()
        return []

    @abstractmethod
    def on_delta(self, delta: StreamDelta) -> list[bytes]:
        ...

    @abstractmethod
    def on_done(self) -> list[bytes]:
        ...

    def on_close(self) -> list[bytes]:
        # end of body without a sentinel completes the stream the same way
        return self.on_done()

    def on_error(self, error: GatewayError) -> list[bytes]:
        """Inline error for a bad frame; the stream carries on."""
        return [encode_data_frame(error.error_body())]

    def on_transport_error(self, error: GatewayError) -> list[bytes]:
        """Inline error after the upstream connection broke; the stream ends."""
        if self.finished:
            return []
        self.finished = True
        return [encode_data_frame(error.error_body())]

    def record_tool_fragment(
        self, fragment: ToolCallFragment
    ) -> tuple[Optional[dict[str, Any]], bool]:
        """Track a tool-call fragment in the stream state.

        Returns the accumulated call and whether this fragment opened it.
        A fragment opens a call when it carries an unseen id and a name; any
        other fragment extends the call known for its id or index.
        """
        state = self.state
        if fragment.id and fragment.name and fragment.id not in state.tool_calls_seen:
            state.tool_calls_seen.add(fragment.id)
            state.tool_call_ids_by_index[fragment.index] = fragment.id
            call = {
                "id": generate_call_id(),
                "call_id": fragment.id,
                "name": fragment.name,
                "arguments": fragment.arguments or "",
            }
            state.function_calls[fragment.id] = call
            return call, True

        call_key = fragment.id if fragment.id in state.function_calls else None
        if call_key is None:
            call_key = state.tool_call_ids_by_index.get(fragment.index)
        if call_key is None:
            logger.warning(
                "Dropping tool-call fragment for unknown call (index=%s)", fragment.index
            )
            return None, False
        call = state.function_calls[call_key]
        if fragment.arguments:
            call["arguments"] += fragment.arguments
        return call, False


class ChatChunkEmitter(StreamEmitter):
    """Re-wraps upstream deltas as ``chat.completion.chunk`` frames."""

    def __init__(self, model: str, state: Optional[StreamState] = None) -> None:
        super().__init__(model, state)
        self.fallback_id = generate_chat_id()

    def on_delta(self, delta: StreamDelta) -> list[bytes]:
        if delta.text:
            self.state.append_text(delta.text)
        for fragment in delta.tool_calls:
            self.record_tool_fragment(fragment)

        chunk: dict[str, Any] = {
            "id": delta.id or self.fallback_id,
            "object": "chat.completion.chunk",
            "created": delta.created or int(time.time()),
            "model": delta.model or self.model,
            "choices": [],
        }
        if delta.has_choice:
            chunk_delta: dict[str, Any] = {
                "content": delta.text if delta.has_content else None,
            }
            if delta.role:
                chunk_delta["role"] = delta.role
            if delta.raw_tool_calls:
                chunk_delta["tool_calls"] = delta.raw_tool_calls
            chunk["choices"].append({
                "index": 0,
                "delta": chunk_delta,
                "finish_reason": delta.finish_reason,
            })
        if delta.usage:
            chunk["usage"] = delta.usage
        return [encode_data_frame(chunk)]

    def on_done(self) -> list[bytes]:
        self.finished = True
        if self.state.latch_completion():
            return [DONE_FRAME]
        return []


class LegacyCompletionEmitter(ChatChunkEmitter):
    """Re-wraps upstream frames as ``text_completion`` chunks."""

    def __init__(self, model: str, state: Optional[StreamState] = None) -> None:
        super().__init__(model, state)
        self.fallback_id = generate_completion_id()

    def on_delta(self, delta: StreamDelta) -> list[bytes]:
        if delta.text:
            self.state.append_text(delta.text)
        chunk = {
            "id": self.fallback_id,
            "object": "text_completion",
            "created": int(time.time()),
            "model": self.model,
            "choices": [
                {
                    "text": delta.text,
                    "index": 0,
                    "logprobs": None,
                    "finish_reason": delta.finish_reason,
                }
            ],
        }
        return [encode_data_frame(chunk)]
