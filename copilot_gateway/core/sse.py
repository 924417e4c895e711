"""SSE (Server-Sent Events) framing shared by the consumer and emitters."""

from __future__ import annotations

import codecs
import json
from dataclasses import dataclass, field
from typing import Any, Optional

DONE_SENTINEL = "[DONE]"
DONE_FRAME = b"data: [DONE]\n\n"


@dataclass
class SSEEvent:
    data: Optional[str]
    other_lines: list[str] = field(default_factory=list)

    @property
    def event(self) -> Optional[str]:
        for line in self.other_lines:
            if line.startswith("event:"):
                return line[6:].strip()
        return None

    @property
    def is_done(self) -> bool:
        return self.data is not None and self.data.strip() == DONE_SENTINEL

    def encode(self) -> bytes:
        lines: list[str] = []
        lines.extend(self.other_lines)
        if self.data is not None:
            for item in self.data.split("\n"):
                if item:
                    lines.append(f"data: {item}")
                else:
                    lines.append("data:")
        text = "\n".join(lines) + "\n\n"
        return text.encode("utf-8")


class SSEDecoder:
    """Incremental SSE decoder.

    Bytes can arrive split at any point, including inside a UTF-8 sequence or
    between the two newlines that end a record, so undecoded bytes and
    partial records are carried over to the next ``feed`` call.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> list[SSEEvent]:
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        # a trailing "\r" may be the first half of "\r\n"
        held = ""
        if self._buffer.endswith("\r"):
            self._buffer, held = self._buffer[:-1], "\r"
        self._buffer = self._buffer.replace("\r\n", "\n").replace("\r", "\n")
        events = self._drain()
        self._buffer += held
        return events

    def flush(self) -> list[SSEEvent]:
        """Return the trailing partial record, if any, once the body ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        leftover = self._buffer.replace("\r\n", "\n").replace("\r", "\n")
        self._buffer = ""
        if not leftover.strip():
            return []
        events: list[SSEEvent] = []
        for raw_event in leftover.split("\n\n"):
            self._append_parsed(events, raw_event)
        return events

    def _drain(self) -> list[SSEEvent]:
        events: list[SSEEvent] = []
        while True:
            sep_index = self._buffer.find("\n\n")
            if sep_index == -1:
                break
            raw_event = self._buffer[:sep_index]
            self._buffer = self._buffer[sep_index + 2:]
            self._append_parsed(events, raw_event)
        return events

    def _append_parsed(self, events: list[SSEEvent], raw_event: str) -> None:
        if not raw_event.strip():
            return
        event = self._parse_event(raw_event)
        # comment-only records carry nothing
        if event.data is None and not event.other_lines:
            return
        events.append(event)

    @staticmethod
    def _parse_event(raw: str) -> SSEEvent:
        data_lines: list[str] = []
        other_lines: list[str] = []
        for line in raw.split("\n"):
            if line.startswith("data:"):
                value = line[5:]
                if value.startswith(" "):
                    value = value[1:]
                data_lines.append(value)
            elif line.startswith(":"):
                # comment / keep-alive
                continue
            elif line:
                other_lines.append(line)
        data = "\n".join(data_lines) if data_lines else None
        return SSEEvent(data=data, other_lines=other_lines)


def encode_data_frame(payload: Any) -> bytes:
    """Encode an unnamed ``data:`` frame carrying JSON."""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


def encode_named_event(event_type: str, payload: Any) -> bytes:
    """Encode a named event frame (``event:`` line followed by JSON data)."""
    json_str = json.dumps(payload, ensure_ascii=False)
    return f"event: {event_type}\ndata: {json_str}\n\n".encode("utf-8")
