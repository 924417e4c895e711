"""Core module initialization."""

from .exceptions import (
    AuthenticationFailedError,
    AuthenticationRequiredError,
    ConfigurationError,
    FrameParseError,
    GatewayError,
    InvalidRequestError,
    RateLimitExceededError,
    StreamTransportError,
    UpstreamError,
)
from .models import MODEL_CATALOG, ModelAliasResolver, build_alias_table
from .registry import get_gateway, set_gateway
from .sse import DONE_FRAME, DONE_SENTINEL, SSEDecoder, SSEEvent
from .upstream import CopilotClient, UpstreamStream, build_upstream_headers

__all__ = [
    "AuthenticationFailedError",
    "AuthenticationRequiredError",
    "ConfigurationError",
    "CopilotClient",
    "DONE_FRAME",
    "DONE_SENTINEL",
    "FrameParseError",
    "GatewayError",
    "InvalidRequestError",
    "MODEL_CATALOG",
    "ModelAliasResolver",
    "RateLimitExceededError",
    "SSEDecoder",
    "SSEEvent",
    "StreamTransportError",
    "UpstreamError",
    "UpstreamStream",
    "build_alias_table",
    "build_upstream_headers",
    "get_gateway",
    "set_gateway",
]
