"""In-memory throttle for failed login attempts."""

from __future__ import annotations

import threading
import time
from collections import deque


class LoginThrottle:
    """Sliding-window counter of failed attempts per key.

    A key is typically `client-ip:email`. Only failures are recorded; a
    successful login clears the key. Keys whose failures have all aged out
    of the window are dropped, so memory is bounded by recent failures.
    """

    def __init__(self, max_failures: int, window_seconds: int):
        self.max_failures = max_failures
        self.window_seconds = window_seconds
        self._failures: dict[str, deque] = {}
        self._lock = threading.Lock()
        self._last_sweep = time.monotonic()

    def __len__(self) -> int:
        """Number of keys currently tracked."""
        with self._lock:
            return len(self._failures)

    def _prune(self, key: str, now: float) -> deque | None:
        """Drop expired failures for `key`; forget the key when none remain."""
        q = self._failures.get(key)
        if q is None:
            return None
        cutoff = now - self.window_seconds
        while q and q[0] <= cutoff:
            q.popleft()
        if not q:
            del self._failures[key]
            return None
        return q

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in list(self._failures):
            self._prune(key, now)

    def check(self, key: str) -> tuple[bool, int]:
        """Return `(allowed, retry_after_seconds)` for `key`."""
        now = time.monotonic()
        with self._lock:
            q = self._prune(key, now)
            if q is not None and len(q) >= self.max_failures:
                return False, max(1, int(self.window_seconds - (now - q[0])))
        return True, 0

    def record_failure(self, key: str) -> None:
        now = time.monotonic()
        with self._lock:
            self._sweep(now)
            q = self._prune(key, now)
            if q is None:
                q = self._failures[key] = deque()
            q.append(now)

    def reset(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)
