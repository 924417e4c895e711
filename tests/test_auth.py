"""Tests for upstream token management."""

from __future__ import annotations

import httpx
import pytest

from copilot_gateway.core.exceptions import (
    AuthenticationFailedError,
    AuthenticationRequiredError,
)
from copilot_gateway.core.upstream_transport import mount_transport
from copilot_gateway.services.auth import CopilotTokenManager, ensure_upstream_token
from copilot_gateway.settings import AuthSettings, UpstreamSettings
from copilot_gateway.testing import FakeUpstream, UpstreamResponse

UPSTREAM = UpstreamSettings(
    chat_url="http://upstream.local/chat/completions",
    completions_url="http://upstream.local/v1/engines/copilot-codex/completions",
    token_url="http://upstream.local/copilot_internal/v2/token",
)


class FakeClock:
    def __init__(self, now: float = 10_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def token_upstream() -> FakeUpstream:
    upstream = FakeUpstream()
    mount_transport("upstream.local", httpx.ASGITransport(app=upstream.app))
    return upstream


class TestTokenValidity:
    def test_static_token_is_valid(self):
        manager = CopilotTokenManager(AuthSettings(copilot_token="static"), UPSTREAM)
        assert manager.get_upstream_token() == "static"
        assert not manager.can_refresh()

    def test_no_token(self):
        manager = CopilotTokenManager(AuthSettings(), UPSTREAM)
        assert manager.get_upstream_token() is None
        assert not manager.is_token_valid()

    def test_expiry_buffer(self):
        clock = FakeClock()
        manager = CopilotTokenManager(AuthSettings(), UPSTREAM, clock=clock)
        manager.set_token("t", expires_at=clock.now + 61)
        assert manager.get_upstream_token() == "t"
        clock.now += 2
        assert manager.get_upstream_token() is None

    def test_clear(self):
        manager = CopilotTokenManager(AuthSettings(copilot_token="static"), UPSTREAM)
        manager.clear()
        assert manager.get_upstream_token() is None


class TestRefresh:
    @pytest.mark.asyncio
    async def test_refresh_from_token_endpoint(self, token_upstream):
        manager = CopilotTokenManager(AuthSettings(github_token="gh-secret"), UPSTREAM)
        token = await ensure_upstream_token(manager)
        assert token == "fake-copilot-token"
        assert token_upstream.token_requests[0]["headers"]["authorization"] == "token gh-secret"
        # cached until expiry
        assert await ensure_upstream_token(manager) == "fake-copilot-token"
        assert len(token_upstream.token_requests) == 1

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed(self, token_upstream):
        clock = FakeClock()
        manager = CopilotTokenManager(
            AuthSettings(github_token="gh"), UPSTREAM, clock=clock
        )
        manager.set_token("old", expires_at=clock.now - 1)
        token_upstream.token_response = UpstreamResponse(
            json_body={"token": "new", "expires_at": clock.now + 1800}
        )
        assert await ensure_upstream_token(manager) == "new"

    @pytest.mark.asyncio
    async def test_refresh_failure(self, token_upstream):
        token_upstream.token_response = UpstreamResponse(
            status_code=401, json_body={"message": "Bad credentials"}
        )
        manager = CopilotTokenManager(AuthSettings(github_token="gh"), UPSTREAM)
        with pytest.raises(AuthenticationFailedError) as exc_info:
            await ensure_upstream_token(manager)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_token_endpoint_without_token(self, token_upstream):
        token_upstream.token_response = UpstreamResponse(json_body={"expires_at": 1})
        manager = CopilotTokenManager(AuthSettings(github_token="gh"), UPSTREAM)
        with pytest.raises(AuthenticationFailedError):
            await ensure_upstream_token(manager)

    @pytest.mark.asyncio
    async def test_nothing_to_refresh_with(self):
        manager = CopilotTokenManager(AuthSettings(), UPSTREAM)
        with pytest.raises(AuthenticationRequiredError):
            await ensure_upstream_token(manager)
        with pytest.raises(AuthenticationRequiredError):
            await manager.refresh_upstream_token()
