"""Drives one upstream stream through the consumer and an emitter."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, AsyncGenerator, Awaitable, Callable, Optional

import httpx

from ..core.exceptions import StreamTransportError
from ..core.upstream import UpstreamStream, format_httpx_error
from ..translation.request import estimate_tokens
from .consumer import StreamEvent, UpstreamStreamConsumer
from .emitters import StreamEmitter

if TYPE_CHECKING:
    from ..services.usage import UsageTracker

logger = logging.getLogger("copilot-gateway")

DisconnectChecker = Callable[[], Awaitable[bool]]


async def run_stream(
    upstream: UpstreamStream,
    emitter: StreamEmitter,
    *,
    session_id: str,
    usage_tracker: Optional["UsageTracker"] = None,
    disconnect_checker: Optional[DisconnectChecker] = None,
    label: str = "stream",
) -> AsyncGenerator[bytes, None]:
    """Yield outbound frames for an already-opened upstream stream.

    The emitter's opening frames go out before the upstream body is read.
    Every synthesized frame is yielded as soon as it exists. The upstream
    response is closed on every exit path, including caller disconnects and
    the generator being closed early.
    """
    consumer = UpstreamStreamConsumer()
    state = emitter.state
    started = time.monotonic()
    estimated_tokens = 0
    outcome = "completed"

    def dispatch(event: StreamEvent) -> list[bytes]:
        nonlocal estimated_tokens
        if event.kind == "delta" and event.delta is not None and event.delta.text:
            tokens = estimate_tokens(event.delta.text)
            estimated_tokens += tokens
            if usage_tracker is not None:
                usage_tracker.track_usage(session_id, tokens)
        return emitter.handle(event)

    try:
        for frame in emitter.start():
            yield frame

        try:
            async for chunk in upstream.aiter_bytes():
                if disconnect_checker is not None and await disconnect_checker():
                    outcome = "client_disconnected"
                    logger.info(
                        "%s %s: client disconnected, aborting upstream",
                        label,
                        state.response_id,
                    )
                    return
                for event in consumer.feed(chunk):
                    for frame in dispatch(event):
                        yield frame
                if emitter.finished:
                    break
            if not emitter.finished:
                for event in consumer.finish():
                    for frame in dispatch(event):
                        yield frame
        except httpx.HTTPError as exc:
            outcome = "transport_error"
            message = format_httpx_error(exc)
            logger.error("%s %s: upstream transport failed: %s", label, state.response_id, message)
            for frame in emitter.on_transport_error(StreamTransportError(message)):
                yield frame
    finally:
        await upstream.aclose()
        tool_names = state.tool_names
        logger.info(
            "%s %s finished (%s): model=%s duration=%.2fs text_chars=%d "
            "est_tokens=%d chunks=%d tools=%s",
            label,
            state.response_id,
            outcome,
            emitter.model,
            time.monotonic() - started,
            len(state.accumulated_text),
            estimated_tokens,
            state.chunk_count,
            ",".join(tool_names) if tool_names else "-",
        )


class OutboundStream:
    """Outbound frame iterator that owns its upstream response.

    ``aclose`` releases the upstream even when iteration never started, e.g.
    when the response is cancelled before its first body chunk is pulled.
    """

    def __init__(self, upstream: UpstreamStream, frames: AsyncGenerator[bytes, None]) -> None:
        self.upstream = upstream
        self._frames = frames

    def __aiter__(self) -> "OutboundStream":
        return self

    async def __anext__(self) -> bytes:
        return await self._frames.__anext__()

    async def aclose(self) -> None:
        try:
            await self._frames.aclose()
        finally:
            await self.upstream.aclose()
