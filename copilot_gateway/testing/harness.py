"""In-process gateway for simulation tests."""

from __future__ import annotations

from typing import Any, Mapping, Optional

import httpx
from fastapi import FastAPI

from ..core.registry import peek_gateway, set_gateway
from ..core.upstream_transport import mount_transport, unmount_transport
from ..gateway import CopilotGateway
from ..api import register_routes
from ..settings import settings_from_config
from .fake_upstream import FakeUpstream

UPSTREAM_BASE = "http://upstream.local"


def build_test_config(
    base_url: str = UPSTREAM_BASE,
    *,
    copilot_token: Optional[str] = "test-copilot-token",
    github_token: Optional[str] = None,
    rate_limits: Optional[dict[str, Any]] = None,
    model_aliases: Optional[dict[str, str]] = None,
) -> dict[str, Any]:
    """A gateway config pointing every upstream URL at ``base_url``."""
    config: dict[str, Any] = {
        "server": {"host": "127.0.0.1", "port": 3000},
        "auth": {"copilot_token": copilot_token, "github_token": github_token},
        "upstream": {
            "chat_url": f"{base_url}/chat/completions",
            "completions_url": f"{base_url}/v1/engines/copilot-codex/completions",
            "token_url": f"{base_url}/copilot_internal/v2/token",
            "connect_timeout": 5,
        },
        "rate_limits": rate_limits if rate_limits is not None else {"enabled": False},
    }
    if model_aliases:
        config["model_aliases"] = model_aliases
    return config


class GatewayHarness:
    """Gateway app wired to a FakeUpstream through an ASGI transport.

    Usage:
        upstream = FakeUpstream()
        with GatewayHarness(build_test_config(), upstream) as harness:
            async with harness.make_async_client() as client:
                response = await client.post("/v1/chat/completions", json={...})
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        upstream: Optional[FakeUpstream] = None,
        *,
        upstream_base: str = UPSTREAM_BASE,
    ) -> None:
        self._previous = peek_gateway()
        self.upstream = upstream
        self._upstream_base = upstream_base
        if upstream is not None:
            mount_transport(upstream_base, httpx.ASGITransport(app=upstream.app))
        self.gateway = CopilotGateway(settings_from_config(config))
        set_gateway(self.gateway)
        self.app = FastAPI(title="Copilot Gateway (test)")
        register_routes(self.app)

    def close(self) -> None:
        set_gateway(self._previous)
        if self.upstream is not None:
            unmount_transport(self._upstream_base)

    def __enter__(self) -> "GatewayHarness":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def make_async_client(self, base_url: str = "http://gateway.local") -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.app),
            base_url=base_url,
        )
