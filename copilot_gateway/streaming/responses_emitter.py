"""Emitter for the Responses streaming grammar.

Event order for a plain text answer::

    response.created
    response.output_item.added        (first non-empty text, or at close)
    response.content_part.added       (first non-empty text, or at close)
    response.output_text.delta        (one per text fragment)
    response.output_text.done         \\
    response.output_item.done          | exactly once, on [DONE] or on
    response.completed                 | end of body without a sentinel
    response.done                     /

Tool calls add ``response.output_item.added`` (function_call) and
``response.function_call_arguments.delta`` events alongside the text.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from ..core.exceptions import GatewayError
from ..core.sse import encode_named_event
from ..translation.response import convert_usage
from ..types.responses import (
    EVENT_CONTENT_PART_ADDED,
    EVENT_ERROR,
    EVENT_FUNCTION_CALL_ARGS_DELTA,
    EVENT_OUTPUT_ITEM_ADDED,
    EVENT_OUTPUT_ITEM_DONE,
    EVENT_OUTPUT_TEXT_DELTA,
    EVENT_OUTPUT_TEXT_DONE,
    EVENT_RESPONSE_COMPLETED,
    EVENT_RESPONSE_CREATED,
    EVENT_RESPONSE_DONE,
    FunctionCallItem,
    MessageItem,
    OutputItem,
    ResponseObject,
)
from .consumer import StreamDelta
from .emitters import StreamEmitter
from .state import StreamState

logger = logging.getLogger("copilot-gateway")


class ResponsesEmitter(StreamEmitter):
    """Synthesizes Responses lifecycle events from upstream chat deltas."""

    def __init__(self, model: str, state: Optional[StreamState] = None) -> None:
        super().__init__(model, state)
        self.created_at = int(time.time())
        self.sequence_number = 0
        self._next_output_index = 0
        self.message_output_index: Optional[int] = None
        # call id -> output index
        self._call_output_index: dict[str, int] = {}

    def _reserve_output_index(self) -> int:
        index = self._next_output_index
        self._next_output_index += 1
        return index

    def _emit_event(self, event_type: str, data: dict[str, Any]) -> bytes:
        payload = {"type": event_type, "sequence_number": self.sequence_number}
        payload.update(data)
        self.sequence_number += 1
        return encode_named_event(event_type, payload)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    def start(self) -> list[bytes]:
        return [
            self._emit_event(
                EVENT_RESPONSE_CREATED,
                {"response": self._build_response_object("in_progress")},
            )
        ]

    def on_delta(self, delta: StreamDelta) -> list[bytes]:
        frames: list[bytes] = []
        if delta.text:
            frames.extend(self._on_text(delta.text))
        for fragment in delta.tool_calls:
            call, opened = self.record_tool_fragment(fragment)
            if call is None:
                continue
            if opened:
                frames.append(self._function_call_added(call))
            if fragment.arguments:
                frames.append(
                    self._emit_event(EVENT_FUNCTION_CALL_ARGS_DELTA, {
                        "item_id": call["id"],
                        "output_index": self._call_output_index[call["call_id"]],
                        "call_id": call["call_id"],
                        "delta": fragment.arguments,
                    })
                )
        return frames

    def _on_text(self, text: str) -> list[bytes]:
        state = self.state
        frames = self._open_message_item()
        state.append_text(text)
        frames.append(
            self._emit_event(EVENT_OUTPUT_TEXT_DELTA, {
                "item_id": state.output_item_id,
                "output_index": self.message_output_index,
                "content_index": 0,
                "delta": text,
            })
        )
        return frames

    def _open_message_item(self) -> list[bytes]:
        """Announce the assistant message item, at most once per stream."""
        state = self.state
        frames: list[bytes] = []
        if state.latch_first_chunk():
            self.message_output_index = self._reserve_output_index()
            frames.append(
                self._emit_event(EVENT_OUTPUT_ITEM_ADDED, {
                    "output_index": self.message_output_index,
                    "item": {
                        "type": "message",
                        "id": state.output_item_id,
                        "role": "assistant",
                        "status": "in_progress",
                        "content": [],
                    },
                })
            )
            frames.append(
                self._emit_event(EVENT_CONTENT_PART_ADDED, {
                    "item_id": state.output_item_id,
                    "output_index": self.message_output_index,
                    "content_index": 0,
                    "part": {"type": "output_text", "text": "", "annotations": []},
                })
            )
        return frames

    def _function_call_added(self, call: dict[str, Any]) -> bytes:
        output_index = self._reserve_output_index()
        self._call_output_index[call["call_id"]] = output_index
        return self._emit_event(EVENT_OUTPUT_ITEM_ADDED, {
            "output_index": output_index,
            "item": {
                "type": "function_call",
                "id": call["id"],
                "call_id": call["call_id"],
                "name": call["name"],
                "arguments": "",
                "status": "in_progress",
            },
        })

    def on_done(self) -> list[bytes]:
        self.finished = True
        if not self.state.latch_completion():
            return []

        state = self.state
        frames: list[bytes] = []
        for call_id, index in self._call_output_index.items():
            frames.append(
                self._emit_event(EVENT_OUTPUT_ITEM_DONE, {
                    "output_index": index,
                    "item": self._function_call_item(call_id),
                })
            )
        # a tool-only answer still closes an (empty) message item
        frames.extend(self._open_message_item())
        message_index = self.message_output_index
        frames.append(
            self._emit_event(EVENT_OUTPUT_TEXT_DONE, {
                "item_id": state.output_item_id,
                "output_index": message_index,
                "content_index": 0,
                "text": state.accumulated_text,
            })
        )
        frames.append(
            self._emit_event(EVENT_OUTPUT_ITEM_DONE, {
                "output_index": message_index,
                "item": self._message_item(),
            })
        )
        final = self._build_response_object("completed")
        frames.append(self._emit_event(EVENT_RESPONSE_COMPLETED, {"response": final}))
        frames.append(self._emit_event(EVENT_RESPONSE_DONE, {"response": final}))
        return frames

    def on_error(self, error: GatewayError) -> list[bytes]:
        return [
            self._emit_event(EVENT_ERROR, {
                "error": {
                    "type": error.error_type,
                    "code": error.code,
                    "message": error.message,
                },
            })
        ]

    def on_transport_error(self, error: GatewayError) -> list[bytes]:
        if self.finished:
            return []
        self.finished = True
        return self.on_error(error)

    # ------------------------------------------------------------------
    # objects
    # ------------------------------------------------------------------

    def _message_item(self) -> MessageItem:
        return {
            "type": "message",
            "id": self.state.output_item_id,
            "role": "assistant",
            "status": "completed",
            "content": [
                {
                    "type": "output_text",
                    "text": self.state.accumulated_text,
                    "annotations": [],
                }
            ],
        }

    def _function_call_item(self, call_id: str) -> FunctionCallItem:
        call = self.state.function_calls[call_id]
        return {
            "type": "function_call",
            "id": call["id"],
            "call_id": call["call_id"],
            "name": call["name"],
            "arguments": call["arguments"],
            "status": "completed",
        }

    def _build_output(self) -> list[OutputItem]:
        indexed: list[tuple[int, OutputItem]] = [
            (index, self._function_call_item(call_id))
            for call_id, index in self._call_output_index.items()
        ]
        if self.message_output_index is not None:
            indexed.append((self.message_output_index, self._message_item()))
        indexed.sort(key=lambda pair: pair[0])
        return [item for _, item in indexed]

    def _build_response_object(self, status: str) -> ResponseObject:
        response: ResponseObject = {
            "id": self.state.response_id,
            "object": "response",
            "created_at": self.created_at,
            "status": status,  # type: ignore[typeddict-item]
            "model": self.model,
            "output": [],
            "usage": None,
            "error": None,
        }
        if status == "completed":
            response["output"] = self._build_output()
            response["usage"] = convert_usage(self.state.usage)
        return response
