"""Request helpers shared by the API routes."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Optional

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.requests import ClientDisconnect

from ..core.exceptions import GatewayError, RateLimitExceededError
from ..core.registry import get_gateway
from ..gateway import SURFACE_CHAT, CopilotGateway, GatewayRequest
from ..translation.request import estimate_message_tokens

logger = logging.getLogger("copilot-gateway")

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class ClientClosed(Exception):
    """The caller went away before its request body was read."""


async def read_json_payload(request: Request) -> dict[str, Any]:
    """Parse the request body as a JSON object or raise a 400."""
    try:
        body = await request.body()
    except ClientDisconnect as exc:
        logger.warning("Client disconnected before request body was fully read")
        raise ClientClosed() from exc
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError as exc:
        logger.error("Invalid JSON payload: %s", exc)
        raise HTTPException(
            status_code=400,
            detail={
                "error": {
                    "message": "Invalid JSON payload",
                    "type": "invalid_request_error",
                    "code": "invalid_json",
                }
            },
        ) from exc
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=400,
            detail={
                "error": {
                    "message": "Request body must be a JSON object",
                    "type": "invalid_request_error",
                    "code": "invalid_request_body",
                }
            },
        )
    return payload


def session_id_for(request: Request) -> str:
    """Hash of the caller's bearer token, or of its address when it sent none."""
    authorization = request.headers.get("authorization") or ""
    token = ""
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if token:
        source = token
    else:
        source = request.client.host if request.client else ""
    return hashlib.sha256(source.encode("utf-8")).hexdigest()


def enforce_rate_limits(
    gateway: CopilotGateway,
    session_id: str,
    surface: str,
    payload: Optional[dict[str, Any]] = None,
    route: str = "",
) -> None:
    """Raise RateLimitExceededError if the session may not proceed."""
    limits = gateway.settings.rate_limits
    if not limits.enabled:
        return

    status = gateway.usage.check_rate_limit(session_id, limits.limit_for(route))
    if status.limited:
        logger.warning("Rate limit exceeded for session %s...", session_id[:8])
        raise RateLimitExceededError(
            f"Rate limit exceeded. Try again in {status.retry_after_seconds} seconds.",
            retry_after=status.retry_after_seconds,
        )

    # token limits only apply to chat sessions that already have history
    if surface != SURFACE_CHAT or not gateway.usage.has_usage(session_id):
        return

    used = gateway.usage.get_token_usage_in_window(session_id)
    if used > limits.tokens_per_minute:
        logger.warning("Token rate limit exceeded for session %s...", session_id[:8])
        raise RateLimitExceededError(
            "Token usage rate limit exceeded. Try again in 60 seconds.",
            code="token_rate_limit_exceeded",
            retry_after=60,
        )

    estimated = estimate_message_tokens((payload or {}).get("messages"))
    if estimated > limits.max_request_tokens:
        logger.warning(
            "Request exceeds max tokens (est. %d) for session %s...",
            estimated,
            session_id[:8],
        )
        raise RateLimitExceededError(
            "Request exceeds maximum token limit. Please reduce the size of your messages.",
            code="max_tokens_exceeded",
            retry_after=60,
        )


async def handle_surface(request: Request, surface: str) -> Response:
    """Common flow for the three translated endpoints."""
    logger.info("Handling %s request to %s", request.method, request.url.path)
    try:
        payload = await read_json_payload(request)
    except ClientClosed:
        return Response(status_code=499)

    gateway = get_gateway()
    session_id = session_id_for(request)
    gateway_request = GatewayRequest(
        surface=surface,
        payload=payload,
        session_id=session_id,
        disconnect_checker=request.is_disconnected,
    )

    try:
        enforce_rate_limits(gateway, session_id, surface, payload, request.url.path)
        gateway.usage.record_request(session_id)
        if gateway_request.stream:
            frames = await gateway.translate_streaming(gateway_request)
            try:
                # releases the upstream even if the body is never iterated
                return StreamingResponse(
                    frames,
                    media_type="text/event-stream",
                    headers=SSE_HEADERS,
                    background=BackgroundTask(frames.aclose),
                )
            except Exception:
                await frames.aclose()
                raise
        result = await gateway.translate_non_streaming(gateway_request)
    except GatewayError as exc:
        logger.warning("%s request failed (%s): %s", surface, exc.code, exc.message)
        raise exc.to_http_exception() from exc

    return JSONResponse(result)
