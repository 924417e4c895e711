"""Per-stream mutable state.

A StreamState is created when a stream starts, owned by that stream's task
only, and dropped when the stream ends.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..translation.response import generate_message_id, generate_response_id


@dataclass
class StreamState:
    response_id: str = field(default_factory=generate_response_id)
    output_item_id: str = field(default_factory=generate_message_id)
    accumulated_text: str = ""
    first_chunk_sent: bool = False
    completion_sent: bool = False
    tool_calls_seen: set[str] = field(default_factory=set)
    chunk_count: int = 0
    # upstream tool-call index -> id of the function_call item opened for it
    tool_call_ids_by_index: dict[int, str] = field(default_factory=dict)
    # call id -> accumulated function_call item
    function_calls: dict[str, dict[str, Any]] = field(default_factory=dict)
    usage: Optional[dict[str, Any]] = None
    finish_reason: Optional[str] = None

    def latch_first_chunk(self) -> bool:
        """Flip ``first_chunk_sent``; True only for the call that flipped it."""
        if self.first_chunk_sent:
            return False
        self.first_chunk_sent = True
        return True

    def latch_completion(self) -> bool:
        """Flip ``completion_sent``; True only for the call that flipped it."""
        if self.completion_sent:
            return False
        self.completion_sent = True
        return True

    def append_text(self, fragment: str) -> None:
        self.accumulated_text += fragment

    @property
    def tool_names(self) -> list[str]:
        return [call.get("name", "") for call in self.function_calls.values()]
