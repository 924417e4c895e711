"""Upstream SSE consumer.

Turns the raw upstream byte stream into neutral events that every emitter
understands. Frames are handled strictly in arrival order.

Upstream chat frames look like::

    data: {"id":"...","choices":[{"index":0,"delta":{"content":"Hel"}}]}

    data: [DONE]

Legacy completion frames carry ``choices[0].text`` instead of a delta.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from ..core.exceptions import FrameParseError, GatewayError, UpstreamError
from ..core.sse import SSEDecoder, SSEEvent

logger = logging.getLogger("copilot-gateway")

EventKind = Literal["delta", "done", "error", "closed"]


@dataclass
class ToolCallFragment:
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: Optional[str] = None


@dataclass
class StreamDelta:
    text: str = ""
    role: Optional[str] = None
    tool_calls: list[ToolCallFragment] = field(default_factory=list)
    # tool_calls exactly as the upstream sent them, for pass-through
    raw_tool_calls: Optional[list[Any]] = None
    finish_reason: Optional[str] = None
    id: Optional[str] = None
    created: Optional[int] = None
    model: Optional[str] = None
    usage: Optional[dict[str, Any]] = None
    # False for frames without choices (e.g. a leading prompt-filter frame)
    has_choice: bool = True
    # False when the upstream delta carried no content or a null one
    has_content: bool = True


@dataclass
class StreamEvent:
    kind: EventKind
    delta: Optional[StreamDelta] = None
    error: Optional[GatewayError] = None


def _text_from_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for part in content:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                texts.append(part["text"])
        return "".join(texts)
    return ""


def _tool_fragments(raw_calls: Any) -> list[ToolCallFragment]:
    if not isinstance(raw_calls, list):
        return []
    fragments = []
    for position, call in enumerate(raw_calls):
        if not isinstance(call, dict):
            continue
        function = call.get("function") if isinstance(call.get("function"), dict) else {}
        index = call.get("index")
        arguments = function.get("arguments")
        fragments.append(
            ToolCallFragment(
                index=index if isinstance(index, int) else position,
                id=call.get("id") or None,
                name=function.get("name") or None,
                arguments=arguments if isinstance(arguments, str) else None,
            )
        )
    return fragments


def delta_from_frame(frame: dict[str, Any]) -> StreamDelta:
    """Extract the first choice of a parsed upstream frame."""
    delta = StreamDelta(
        id=frame.get("id") or None,
        created=frame.get("created") if isinstance(frame.get("created"), int) else None,
        model=frame.get("model") or None,
        usage=frame.get("usage") if isinstance(frame.get("usage"), dict) else None,
    )
    choices = frame.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        delta.has_choice = False
        delta.has_content = False
        return delta

    choice = choices[0]
    delta.finish_reason = choice.get("finish_reason") or None
    chat_delta = choice.get("delta")
    if isinstance(chat_delta, dict):
        delta.has_content = chat_delta.get("content") is not None
        delta.text = _text_from_content(chat_delta.get("content"))
        delta.role = chat_delta.get("role") or None
        if chat_delta.get("tool_calls"):
            delta.raw_tool_calls = chat_delta["tool_calls"]
            delta.tool_calls = _tool_fragments(chat_delta["tool_calls"])
    elif isinstance(choice.get("text"), str):
        delta.text = choice["text"]
    else:
        delta.has_content = False
    return delta


def _inline_upstream_error(frame: dict[str, Any]) -> Optional[UpstreamError]:
    """Return an error if the frame is an upstream error report."""
    error_obj = frame.get("error")
    if frame.get("type") == "error" or (isinstance(error_obj, dict) and "choices" not in frame):
        if isinstance(error_obj, dict):
            message = error_obj.get("message") or str(error_obj)
        else:
            message = str(error_obj or "unknown upstream error")
        return UpstreamError(f"Upstream stream error: {message}")
    return None


class UpstreamStreamConsumer:
    """Feeds raw upstream bytes and yields StreamEvents.

    Frames arriving after the ``[DONE]`` sentinel are dropped.
    """

    def __init__(self) -> None:
        self._decoder = SSEDecoder()
        self.saw_done = False
        self.frame_count = 0

    def feed(self, chunk: bytes) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for sse_event in self._decoder.feed(chunk):
            events.extend(self._handle(sse_event))
        return events

    def finish(self) -> list[StreamEvent]:
        """Flush any trailing partial record, then report the close."""
        events: list[StreamEvent] = []
        for sse_event in self._decoder.flush():
            events.extend(self._handle(sse_event))
        events.append(StreamEvent("closed"))
        return events

    def _handle(self, sse_event: SSEEvent) -> list[StreamEvent]:
        if self.saw_done:
            return []
        data = sse_event.data
        if data is None or not data.strip():
            return []
        self.frame_count += 1
        if sse_event.is_done:
            self.saw_done = True
            return [StreamEvent("done")]

        try:
            frame = json.loads(data)
        except json.JSONDecodeError as exc:
            logger.warning("Unparseable upstream frame: %s", data[:200])
            error = FrameParseError(f"Invalid JSON in upstream frame: {exc}", data)
            return [StreamEvent("error", error=error)]
        if not isinstance(frame, dict):
            error = FrameParseError("Upstream frame is not a JSON object", data)
            return [StreamEvent("error", error=error)]

        upstream_error = _inline_upstream_error(frame)
        if upstream_error is not None:
            logger.warning("%s", upstream_error.message)
            return [StreamEvent("error", error=upstream_error)]
        return [StreamEvent("delta", delta=delta_from_frame(frame))]
