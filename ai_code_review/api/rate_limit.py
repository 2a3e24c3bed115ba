"""
Fixed-window, per-client request rate limiting.
"""

import threading
import time
from typing import Callable, Dict, Tuple


class RateLimiter:
    """
    Allow at most `max_requests` per client in each window.

    Windows start at a client's first request and reset once
    `window_seconds` have passed.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._windows: Dict[str, Tuple[float, int]] = {}

    def allow(self, client_id: str) -> bool:
        """Count a request for the client; False once over the limit."""
        now = self._clock()
        with self._lock:
            window_start, count = self._windows.get(client_id, (now, 0))
            if now - window_start >= self.window_seconds:
                window_start, count = now, 0
            count += 1
            self._windows[client_id] = (window_start, count)
            self._evict_expired(now)
            return count <= self.max_requests

    def _evict_expired(self, now: float) -> None:
        expired = [
            client for client, (start, _) in self._windows.items()
            if now - start >= self.window_seconds
        ]
        for client in expired:
            del self._windows[client]
