"""The gateway service: caller request in, upstream call, caller-shaped answer out."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .core.exceptions import InvalidRequestError
from .core.models import ModelAliasResolver, build_alias_table
from .core.upstream import (
    INTENT_CHAT,
    INTENT_COMPLETION,
    CopilotClient,
    build_upstream_headers,
)
from .services.auth import CopilotTokenManager, TokenProvider, ensure_upstream_token
from .services.usage import UsageTracker
from .settings import GatewaySettings
from .streaming.emitters import ChatChunkEmitter, LegacyCompletionEmitter, StreamEmitter
from .streaming.pipeline import DisconnectChecker, OutboundStream, run_stream
from .streaming.responses_emitter import ResponsesEmitter
from .translation.request import (
    build_completion_body,
    chat_body_from_payload,
    responses_body_from_payload,
)
from .translation.response import (
    to_chat_completion,
    to_responses_object,
    to_text_completion,
    usage_total_tokens,
)

logger = logging.getLogger("copilot-gateway")

SURFACE_CHAT = "chat"
SURFACE_RESPONSES = "responses"
SURFACE_COMPLETIONS = "completions"


@dataclass
class GatewayRequest:
    """A caller request on one of the three surfaces."""

    surface: str
    payload: dict[str, Any]
    session_id: str
    disconnect_checker: Optional[DisconnectChecker] = None

    @property
    def stream(self) -> bool:
        return bool(self.payload.get("stream"))


@dataclass
class PreparedCall:
    surface: str
    url: str
    body: dict[str, Any]
    intent: str
    requested_model: str
    upstream_model: str
    stream: bool


class CopilotGateway:
    """Translates the three caller surfaces onto the upstream chat API."""

    def __init__(
        self,
        settings: GatewaySettings,
        *,
        token_provider: Optional[TokenProvider] = None,
        usage_tracker: Optional[UsageTracker] = None,
        client: Optional[CopilotClient] = None,
        resolver: Optional[ModelAliasResolver] = None,
    ) -> None:
        self.settings = settings
        self.client = client or CopilotClient(settings.upstream)
        self.tokens: TokenProvider = token_provider or CopilotTokenManager(
            settings.auth, settings.upstream, client=self.client
        )
        self.usage = usage_tracker or UsageTracker()
        self.resolver = resolver or ModelAliasResolver(
            build_alias_table(settings.model_aliases)
        )

    # ------------------------------------------------------------------
    # request side
    # ------------------------------------------------------------------

    def prepare(self, request: GatewayRequest) -> PreparedCall:
        """Validate the caller payload and build the upstream call."""
        payload = request.payload
        if not isinstance(payload, dict):
            raise InvalidRequestError(
                "Request body must be a JSON object", code="invalid_request_body"
            )

        raw_model = payload.get("model")
        if raw_model is not None and not isinstance(raw_model, str):
            raise InvalidRequestError("model must be a string", param="model")
        requested_model = raw_model or self.resolver.resolve(None)
        stream = request.stream
        upstream = self.settings.upstream

        if request.surface == SURFACE_COMPLETIONS:
            body = build_completion_body(payload, stream=stream)
            return PreparedCall(
                surface=request.surface,
                url=upstream.completions_url,
                body=dict(body),
                intent=INTENT_COMPLETION,
                requested_model=requested_model,
                upstream_model=requested_model,
                stream=stream,
            )

        upstream_model = self.resolver.resolve(requested_model)
        if request.surface == SURFACE_CHAT:
            body = chat_body_from_payload(payload, upstream_model, stream=stream)
        elif request.surface == SURFACE_RESPONSES:
            body = responses_body_from_payload(payload, upstream_model, stream=stream)
        else:
            raise InvalidRequestError(f"Unknown surface '{request.surface}'")
        return PreparedCall(
            surface=request.surface,
            url=upstream.chat_url,
            body=dict(body),
            intent=INTENT_CHAT,
            requested_model=requested_model,
            upstream_model=upstream_model,
            stream=stream,
        )

    async def _headers(self, call: PreparedCall, session_id: str) -> dict[str, str]:
        token = await ensure_upstream_token(self.tokens)
        return build_upstream_headers(
            token,
            self.settings.upstream.identity,
            intent=call.intent,
            session_id=session_id,
        )

    # ------------------------------------------------------------------
    # non-streaming
    # ------------------------------------------------------------------

    async def translate_non_streaming(self, request: GatewayRequest) -> dict[str, Any]:
        call = self.prepare(request)
        headers = await self._headers(call, request.session_id)
        logger.info(
            "%s request: model=%s upstream_model=%s stream=false",
            call.surface,
            call.requested_model,
            call.upstream_model,
        )
        answer = await self.client.post_json(call.url, call.body, headers)
        self.usage.track_usage(request.session_id, usage_total_tokens(answer.get("usage")))

        if call.surface == SURFACE_COMPLETIONS:
            return to_text_completion(answer, call.requested_model)
        if call.surface == SURFACE_RESPONSES:
            return dict(to_responses_object(answer, call.upstream_model))
        return to_chat_completion(answer, call.requested_model)

    # ------------------------------------------------------------------
    # streaming
    # ------------------------------------------------------------------

    def _emitter_for(self, call: PreparedCall) -> StreamEmitter:
        if call.surface == SURFACE_RESPONSES:
            return ResponsesEmitter(call.upstream_model)
        if call.surface == SURFACE_COMPLETIONS:
            return LegacyCompletionEmitter(call.requested_model)
        return ChatChunkEmitter(call.requested_model)

    async def translate_streaming(self, request: GatewayRequest) -> OutboundStream:
        """Open the upstream stream and return the outbound frame iterator.

        Validation, auth and upstream status errors raise here, before any
        frame exists, so callers can still answer with a plain HTTP error.
        The caller owns the returned stream and must ``aclose`` it.
        """
        call = self.prepare(request)
        headers = await self._headers(call, request.session_id)
        logger.info(
            "%s request: model=%s upstream_model=%s stream=true",
            call.surface,
            call.requested_model,
            call.upstream_model,
        )
        upstream = await self.client.open_stream(call.url, call.body, headers)
        frames = run_stream(
            upstream,
            self._emitter_for(call),
            session_id=request.session_id,
            usage_tracker=self.usage,
            disconnect_checker=request.disconnect_checker,
            label=call.surface,
        )
        return OutboundStream(upstream, frames)
