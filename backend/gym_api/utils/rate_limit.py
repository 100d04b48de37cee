"""In-memory fixed-window rate limiter for the API."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass


@dataclass
class _Window:
    started: float
    count: int = 0


class FixedWindowRateLimiter:
    """Count requests per key inside consecutive windows of `window_seconds`.

    A key's window starts with its first request; once `max_requests` is
    reached every further request is refused until the window ends.
    """

    def __init__(self, max_requests: int, window_seconds: int, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> tuple[bool, int, int]:
        """Record a request for `key`.

        Returns `(allowed, remaining, retry_after_seconds)`.
        """
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now - window.started >= self.window_seconds:
                window = _Window(started=now)
                self._windows[key] = window
            if window.count >= self.max_requests:
                retry_after = max(1, int(window.started + self.window_seconds - now))
                return False, 0, retry_after
            window.count += 1
            return True, self.max_requests - window.count, 0

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
