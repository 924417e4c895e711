"""In-memory per-session usage tracking and sliding-window rate limiting."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Callable, Optional

logger = logging.getLogger("copilot-gateway")

WINDOW_SECONDS = 60.0
RETENTION_SECONDS = 300.0


@dataclass
class SessionUsage:
    request_count: int = 0
    token_count: int = 0
    started_at: float = 0.0
    last_request_at: float = 0.0
    request_times: list[float] = field(default_factory=list)
    # (timestamp, tokens)
    token_events: list[tuple[float, int]] = field(default_factory=list)

    def prune(self, now: float) -> None:
        cutoff = now - RETENTION_SECONDS
        self.request_times = [ts for ts in self.request_times if ts >= cutoff]
        self.token_events = [entry for entry in self.token_events if entry[0] >= cutoff]

    def as_dict(self) -> dict[str, Any]:
        return {
            "request_count": self.request_count,
            "token_count": self.token_count,
            "started_at": self.started_at,
            "last_request_at": self.last_request_at,
        }


@dataclass(frozen=True)
class RateLimitStatus:
    limited: bool
    retry_after_seconds: int = 0


def _short(session_id: str) -> str:
    return f"{session_id[:8]}..."


class UsageTracker:
    """Thread-safe usage maps shared by every request.

    Requests and tokens are tracked separately so streamed token accounting
    does not count against the request rate.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._lock = Lock()
        self._clock = clock
        self._sessions: dict[str, SessionUsage] = {}

    def _session(self, session_id: str, now: float) -> SessionUsage:
        usage = self._sessions.get(session_id)
        if usage is None:
            usage = SessionUsage(started_at=now, last_request_at=now)
            self._sessions[session_id] = usage
            logger.debug("Tracking usage for session %s", _short(session_id))
        return usage

    def record_request(self, session_id: str) -> None:
        now = self._clock()
        with self._lock:
            usage = self._session(session_id, now)
            usage.request_count += 1
            usage.last_request_at = now
            usage.request_times.append(now)
            usage.prune(now)

    def track_usage(self, session_id: str, token_delta: int) -> None:
        if token_delta <= 0:
            return
        now = self._clock()
        with self._lock:
            usage = self._session(session_id, now)
            usage.token_count += token_delta
            usage.token_events.append((now, token_delta))
            usage.prune(now)

    def get_usage(self, session_id: str) -> Optional[dict[str, Any]]:
        with self._lock:
            usage = self._sessions.get(session_id)
            return usage.as_dict() if usage is not None else None

    def has_usage(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def get_token_usage_in_window(
        self, session_id: str, window_seconds: float = WINDOW_SECONDS
    ) -> int:
        now = self._clock()
        with self._lock:
            usage = self._sessions.get(session_id)
            if usage is None:
                return 0
            start = now - window_seconds
            return sum(tokens for ts, tokens in usage.token_events if ts >= start)

    def check_rate_limit(self, session_id: str, max_per_minute: int) -> RateLimitStatus:
        if max_per_minute <= 0:
            return RateLimitStatus(False)
        now = self._clock()
        with self._lock:
            usage = self._sessions.get(session_id)
            if usage is None:
                return RateLimitStatus(False)
            window_start = now - WINDOW_SECONDS
            recent = sorted(ts for ts in usage.request_times if ts >= window_start)
            if len(recent) < max_per_minute:
                return RateLimitStatus(False)
            retry_after = math.ceil(recent[0] + WINDOW_SECONDS - now)
            return RateLimitStatus(True, max(1, retry_after))

    def reset(self, session_id: str) -> None:
        now = self._clock()
        with self._lock:
            if session_id in self._sessions:
                self._sessions[session_id] = SessionUsage(started_at=now, last_request_at=now)
                logger.info("Reset usage metrics for session %s", _short(session_id))

    def summary(self) -> dict[str, Any]:
        with self._lock:
            total_requests = sum(u.request_count for u in self._sessions.values())
            total_tokens = sum(u.token_count for u in self._sessions.values())
            sessions = len(self._sessions)
        return {
            "total_requests": total_requests,
            "total_tokens": total_tokens,
            "active_sessions": sessions,
            "average_tokens_per_request": (
                total_tokens / total_requests if total_requests else 0
            ),
        }
