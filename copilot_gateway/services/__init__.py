"""Collaborators used by the gateway: upstream tokens and usage accounting."""

from .auth import CopilotTokenManager, TokenProvider, ensure_upstream_token
from .usage import RateLimitStatus, UsageTracker

__all__ = [
    "CopilotTokenManager",
    "RateLimitStatus",
    "TokenProvider",
    "UsageTracker",
    "ensure_upstream_token",
]
