"""Holds the active gateway so route modules can reach it without importing main."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..gateway import CopilotGateway

_gateway: Optional["CopilotGateway"] = None


def set_gateway(gateway: Optional["CopilotGateway"]) -> None:
    global _gateway
    _gateway = gateway


def get_gateway() -> "CopilotGateway":
    if _gateway is None:
        raise RuntimeError("Gateway not initialized. Did you call set_gateway?")
    return _gateway


def peek_gateway() -> Optional["CopilotGateway"]:
    """Return the active gateway or None, without raising."""
    return _gateway
