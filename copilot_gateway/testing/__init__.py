"""Testing utilities for in-process gateway simulations."""

from .assertions import (
    assert_chat_stream_valid,
    assert_responses_sse_valid,
    chat_stream_text,
    parse_sse,
    responses_events,
    responses_output_text,
    sse_payloads,
)
from .fake_upstream import (
    FakeUpstream,
    UpstreamResponse,
    chat_chunk,
    completion_chunk,
)
from .harness import GatewayHarness, build_test_config

__all__ = [
    "FakeUpstream",
    "GatewayHarness",
    "UpstreamResponse",
    "assert_chat_stream_valid",
    "assert_responses_sse_valid",
    "build_test_config",
    "chat_chunk",
    "chat_stream_text",
    "completion_chunk",
    "parse_sse",
    "responses_events",
    "responses_output_text",
    "sse_payloads",
]
