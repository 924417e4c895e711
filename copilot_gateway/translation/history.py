"""Repair of tool-call / tool-result pairing in chat histories."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from ..types.chat import ChatMessage

logger = logging.getLogger("copilot-gateway")

ORPHAN_PREVIEW_CHARS = 200


def _content_as_text(content: Any) -> str:
    if content is None:
        return ""
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
    return str(content)


def _orphan_as_user_message(message: ChatMessage) -> ChatMessage:
    call_id = message.get("tool_call_id") or "unknown"
    text = _content_as_text(message.get("content"))
    if len(text) > ORPHAN_PREVIEW_CHARS:
        text = text[:ORPHAN_PREVIEW_CHARS] + "..."
    return {"role": "user", "content": f"[Tool result for {call_id}]: {text}"}


def repair_tool_pairing(messages: Iterable[ChatMessage]) -> list[ChatMessage]:
    """Rewrite tool results that no earlier assistant message asked for.

    The upstream rejects a tool-role message whose ``tool_call_id`` was not
    emitted by a preceding assistant ``tool_calls`` entry. Those orphans are
    turned into user messages carrying a preview of the result, in place.
    Every other message is passed through untouched and the input list is not
    modified. Applying the repair twice gives the same result as once.
    """
    seen_ids: set[str] = set()
    orphaned: list[str] = []
    repaired: list[ChatMessage] = []

    for message in messages:
        role = message.get("role")
        if role == "assistant":
            for call in message.get("tool_calls") or []:
                call_id = call.get("id") if isinstance(call, dict) else None
                if call_id:
                    seen_ids.add(call_id)
            repaired.append(message)
        elif role == "tool":
            call_id = message.get("tool_call_id")
            if call_id and call_id in seen_ids:
                repaired.append(message)
            else:
                orphaned.append(str(call_id))
                repaired.append(_orphan_as_user_message(message))
        else:
            repaired.append(message)

    if orphaned:
        logger.warning(
            "Rewrote %d orphaned tool result(s) as user messages: %s",
            len(orphaned),
            ", ".join(orphaned),
        )
    return repaired
