"""Upstream token management.

The upstream accepts short-lived tokens that are exchanged for a long-lived
GitHub token. Tokens live in memory only.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from typing_extensions import Protocol

from ..core.exceptions import (
    AuthenticationFailedError,
    AuthenticationRequiredError,
    UpstreamError,
)
from ..core.upstream import CopilotClient
from ..settings import AuthSettings, UpstreamSettings

logger = logging.getLogger("copilot-gateway")

# tokens this close to expiry are treated as expired
EXPIRY_BUFFER_SECONDS = 60


class TokenProvider(Protocol):
    def get_upstream_token(self) -> Optional[str]:
        ...

    def can_refresh(self) -> bool:
        ...

    async def refresh_upstream_token(self) -> str:
        ...


@dataclass(frozen=True)
class UpstreamToken:
    token: str
    # epoch seconds; None means the expiry is unknown and the token is trusted
    expires_at: Optional[float] = None


class CopilotTokenManager:
    """In-memory token provider with refresh through the token endpoint."""

    def __init__(
        self,
        auth: AuthSettings,
        upstream: UpstreamSettings,
        *,
        client: Optional[CopilotClient] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._github_token = auth.github_token
        self._upstream = upstream
        self._client = client or CopilotClient(upstream)
        self._clock = clock
        self._refresh_lock = asyncio.Lock()
        self._token: Optional[UpstreamToken] = None
        if auth.copilot_token:
            self._token = UpstreamToken(auth.copilot_token)

    def is_token_valid(self) -> bool:
        token = self._token
        if token is None or not token.token:
            return False
        if token.expires_at is None:
            return True
        return self._clock() < token.expires_at - EXPIRY_BUFFER_SECONDS

    def get_upstream_token(self) -> Optional[str]:
        return self._token.token if self.is_token_valid() else None

    def can_refresh(self) -> bool:
        return bool(self._github_token)

    def set_token(self, token: str, expires_at: Optional[float] = None) -> None:
        self._token = UpstreamToken(token, expires_at)

    def clear(self) -> None:
        self._token = None
        logger.info("Upstream token cleared")

    async def refresh_upstream_token(self) -> str:
        if not self._github_token:
            raise AuthenticationRequiredError("GitHub token is required for refresh")

        async with self._refresh_lock:
            # another request may have refreshed while we waited
            if self.is_token_valid():
                return self._token.token  # type: ignore[union-attr]

            identity = self._upstream.identity
            headers = {
                "Authorization": f"token {self._github_token}",
                "Editor-Version": identity.editor_version,
                "Editor-Plugin-Version": identity.editor_plugin_version,
                "User-Agent": identity.user_agent,
            }
            try:
                payload = await self._client.get_json(self._upstream.token_url, headers)
            except UpstreamError as exc:
                logger.error("Upstream token refresh failed: %s", exc.message)
                raise AuthenticationFailedError(
                    f"Failed to get upstream token: {exc.message}"
                ) from exc

            token = payload.get("token")
            if not isinstance(token, str) or not token:
                raise AuthenticationFailedError("Token endpoint returned no token")
            expires_at = payload.get("expires_at")
            if not isinstance(expires_at, (int, float)):
                expires_at = None
            self._token = UpstreamToken(token, expires_at)
            logger.info("Upstream token refreshed (expires_at=%s)", expires_at)
            return token


async def ensure_upstream_token(provider: TokenProvider) -> str:
    """Return a usable upstream token, refreshing it if the provider can.

    Raises AuthenticationFailedError when a refresh was attempted and failed,
    and AuthenticationRequiredError when there is nothing to refresh with.
    """
    token = provider.get_upstream_token()
    if token:
        return token
    if provider.can_refresh():
        logger.debug("Upstream token missing or expired, refreshing")
        try:
            return await provider.refresh_upstream_token()
        except AuthenticationRequiredError as exc:
            raise AuthenticationFailedError(exc.message) from exc
    raise AuthenticationRequiredError("Authentication required")
