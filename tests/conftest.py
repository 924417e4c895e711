"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

from typing import Any, Callable, Generator

import pytest

from copilot_gateway.core.registry import peek_gateway, set_gateway
from copilot_gateway.core.upstream_transport import clear_transports
from copilot_gateway.testing import FakeUpstream, GatewayHarness, build_test_config


@pytest.fixture(autouse=True)
def clear_transport_registry() -> Generator[None, None, None]:
    """Drop any fake upstream transports a test mounted."""
    yield
    clear_transports()


@pytest.fixture(autouse=True)
def restore_gateway() -> Generator[None, None, None]:
    previous = peek_gateway()
    yield
    set_gateway(previous)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def make_harness(
    upstream: FakeUpstream,
) -> Generator[Callable[..., GatewayHarness], None, None]:
    """Factory for harnesses wired to the ``upstream`` fixture.

    Usage:
        def test_chat(upstream, make_harness):
            upstream.enqueue_chat_response("Hello")
            harness = make_harness(rate_limits={"enabled": True})
    """
    created: list[GatewayHarness] = []

    def factory(**config_overrides: Any) -> GatewayHarness:
        harness = GatewayHarness(build_test_config(**config_overrides), upstream)
        created.append(harness)
        return harness

    try:
        yield factory
    finally:
        for harness in reversed(created):
            harness.close()


@pytest.fixture
def harness(make_harness: Callable[..., GatewayHarness]) -> GatewayHarness:
    """Harness with a static upstream token and rate limits off."""
    return make_harness()
