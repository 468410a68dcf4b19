"""
Rate Limiter — per-user fixed-window request counter.

Default: 50 requests per user per 60 second window. The first request (or
the first after a window expires) opens a new window with count 1; later
requests increment the count and are allowed while count <= ceiling.

Expired windows are swept from allow() at most once per window length, so
memory tracks recently active users only.

In-memory only: state is lost on restart, so every user's window silently
resets when the process restarts. This is abuse mitigation, not a security
boundary.

Thread-safe; usable from asyncio handlers since no call blocks.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from superclaw.config import settings


@dataclass
class RateLimitWindow:
    count: int
    reset_at: float  # clock() value after which the window is expired


class RateLimiter:
    """Fixed-window limiter keyed by user id. Inject `clock` for tests."""

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests if max_requests is not None else settings.rate_limit_max_requests
        self.window_seconds = window_seconds if window_seconds is not None else settings.rate_limit_window_seconds
        self._clock = clock
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = threading.Lock()
        self._next_prune = clock() + self.window_seconds

    def allow(self, user_id: str) -> bool:
        """Count one request for `user_id`; return False when over the ceiling."""
        with self._lock:
            now = self._clock()
            if now > self._next_prune:
                # At most one sweep per window keeps memory bounded by recent users
                self._prune_expired(now)
                self._next_prune = now + self.window_seconds

            window = self._windows.get(user_id)

            if window is None or now > window.reset_at:
                self._windows[user_id] = RateLimitWindow(count=1, reset_at=now + self.window_seconds)
                return True

            window.count += 1
            return window.count <= self.max_requests

    def remaining(self, user_id: str) -> int:
        """Requests left in the current window (without counting one)."""
        with self._lock:
            window = self._windows.get(user_id)
            if window is None or self._clock() > window.reset_at:
                return self.max_requests
            return max(0, self.max_requests - window.count)

    def reset(self, user_id: str) -> None:
        with self._lock:
            self._windows.pop(user_id, None)

    def prune(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        with self._lock:
            return self._prune_expired(self._clock())

    def _prune_expired(self, now: float) -> int:
        expired = [uid for uid, w in self._windows.items() if now > w.reset_at]
        for uid in expired:
            del self._windows[uid]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    @property
    def tracked_users(self) -> int:
        return len(self._windows)


# ── Singleton ────────────────────────────────────────────────
_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter
