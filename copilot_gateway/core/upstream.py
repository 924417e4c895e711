"""HTTP access to the upstream chat and completions endpoints."""

from __future__ import annotations

import hashlib
import json
import logging
import uuid
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, AsyncIterator, Optional

import httpx

from ..settings import ClientIdentity, UpstreamSettings
from .exceptions import UpstreamError
from .upstream_transport import transport_for

logger = logging.getLogger("copilot-gateway")

INTENT_CHAT = "conversation-agent"
INTENT_COMPLETION = "copilot-ghost"

# upstream error bodies are truncated to this many characters in messages
MAX_ERROR_TEXT = 500


@lru_cache(maxsize=1)
def machine_id() -> str:
    """Stable per-process machine identifier."""
    return hashlib.sha256(str(uuid.getnode()).encode("utf-8")).hexdigest()


def build_upstream_headers(
    token: str,
    identity: ClientIdentity,
    *,
    intent: str = INTENT_CHAT,
    session_id: Optional[str] = None,
) -> dict[str, str]:
    """Headers for one upstream call. X-Request-Id is fresh every time."""
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
        "X-Request-Id": str(uuid.uuid4()),
        "Vscode-Machineid": machine_id(),
        "Vscode-Sessionid": session_id or str(uuid.uuid4()),
        "User-Agent": identity.user_agent,
        "Editor-Version": identity.editor_version,
        "Editor-Plugin-Version": identity.editor_plugin_version,
        "Copilot-Integration-Id": identity.integration_id,
        "Openai-Intent": intent,
    }


def format_httpx_error(exc: httpx.HTTPError, url: Optional[str] = None) -> str:
    """Produce a short description of an httpx error for logs and callers."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)
    try:
        request = exc.request
    except RuntimeError:
        request = None
    if request is not None:
        parts.append(f"request={request.method} {request.url}")
    elif url:
        parts.append(f"url={url}")
    return " | ".join(parts)


def _error_from_response(status: int, text: str) -> UpstreamError:
    message = f"Upstream returned HTTP {status}"
    snippet = text[:MAX_ERROR_TEXT].strip()
    if snippet:
        message = f"{message}: {snippet}"
    return UpstreamError(
        message,
        upstream_status=status,
        body=text,
    )


@dataclass
class UpstreamStream:
    """An open upstream streaming response; the caller must ``aclose`` it."""

    response: httpx.Response
    client: httpx.AsyncClient
    closed: bool = False

    @property
    def status_code(self) -> int:
        return self.response.status_code

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self.response.aiter_bytes()

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            await self.response.aclose()
        finally:
            await self.client.aclose()


class CopilotClient:
    """Thin async client for the upstream endpoints.

    A fresh ``httpx.AsyncClient`` is created per call so a stream owns its
    connection for its whole lifetime. Only the connect phase is bounded;
    reads are not, since a model may pause for a long time between deltas.
    """

    def __init__(self, settings: UpstreamSettings) -> None:
        self.settings = settings

    def _timeout(self) -> httpx.Timeout:
        t = self.settings.connect_timeout
        return httpx.Timeout(connect=t, read=None, write=t, pool=t)

    def _client_for(self, url: str) -> httpx.AsyncClient:
        transport = transport_for(url)
        if transport is not None:
            return httpx.AsyncClient(transport=transport, timeout=self._timeout())
        return httpx.AsyncClient(timeout=self._timeout())

    async def post_json(
        self, url: str, body: dict[str, Any], headers: dict[str, str]
    ) -> dict[str, Any]:
        """POST a JSON body and return the parsed JSON answer."""
        async with self._client_for(url) as client:
            try:
                response = await client.post(url, json=body, headers=headers)
            except httpx.HTTPError as exc:
                logger.error("Upstream request failed: %s", format_httpx_error(exc, url))
                raise UpstreamError(format_httpx_error(exc, url)) from exc

        if response.status_code >= 400:
            logger.warning(
                "Upstream %s returned HTTP %s", url, response.status_code
            )
            raise _error_from_response(response.status_code, response.text)
        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise UpstreamError(
                "Upstream returned a non-JSON body",
                upstream_status=response.status_code,
                body=response.text,
            ) from exc
        if not isinstance(payload, dict):
            raise UpstreamError("Upstream returned an unexpected JSON shape")
        return payload

    async def get_json(self, url: str, headers: dict[str, str]) -> dict[str, Any]:
        async with self._client_for(url) as client:
            try:
                response = await client.get(url, headers=headers)
            except httpx.HTTPError as exc:
                raise UpstreamError(format_httpx_error(exc, url)) from exc
        if response.status_code >= 400:
            raise _error_from_response(response.status_code, response.text)
        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise UpstreamError("Upstream returned a non-JSON body") from exc
        if not isinstance(payload, dict):
            raise UpstreamError("Upstream returned an unexpected JSON shape")
        return payload

    async def open_stream(
        self, url: str, body: dict[str, Any], headers: dict[str, str]
    ) -> UpstreamStream:
        """Open a streaming POST and check its status before returning it.

        Raises UpstreamError for connect failures and non-success statuses, so
        nothing has been sent to the caller yet when those happen.
        """
        client = self._client_for(url)
        stream_headers = dict(headers)
        stream_headers["Accept"] = "text/event-stream"
        request = client.build_request("POST", url, json=body, headers=stream_headers)
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.error("Upstream stream failed to open: %s", format_httpx_error(exc, url))
            raise UpstreamError(format_httpx_error(exc, url)) from exc

        if response.status_code >= 400:
            try:
                raw = await response.aread()
            except httpx.HTTPError:
                raw = b""
            finally:
                await response.aclose()
                await client.aclose()
            text = raw.decode("utf-8", errors="replace")
            logger.warning(
                "Upstream stream %s returned HTTP %s", url, response.status_code
            )
            raise _error_from_response(response.status_code, text)

        return UpstreamStream(response=response, client=client)
