"""Per-host HTTPX transport overrides.

Tests mount in-process fake upstreams here so the gateway talks to them
through ``httpx.ASGITransport`` instead of the network.
"""

from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("copilot-gateway")

_OVERRIDES: dict[str, httpx.AsyncBaseTransport] = {}


def _host_key(url_or_host: str) -> str:
    netloc = urlparse(url_or_host).netloc if "://" in url_or_host else url_or_host
    return netloc.strip().lower()


def mount_transport(url_or_host: str, transport: httpx.AsyncBaseTransport) -> None:
    """Route every request for the given host (or URL's host) to ``transport``."""
    key = _host_key(url_or_host or "")
    if not key:
        raise ValueError("a host or absolute URL is required")
    _OVERRIDES[key] = transport
    logger.debug("Mounted upstream transport for '%s'", key)


def unmount_transport(url_or_host: str) -> None:
    if url_or_host:
        _OVERRIDES.pop(_host_key(url_or_host), None)


def clear_transports() -> None:
    _OVERRIDES.clear()


def transport_for(url: str) -> Optional[httpx.AsyncBaseTransport]:
    """Return the mounted transport for a URL's host, or None for the network."""
    if not url:
        return None
    key = _host_key(url)
    return _OVERRIDES.get(key) if key else None
