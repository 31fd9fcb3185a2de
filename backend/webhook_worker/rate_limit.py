"""
In-memory sliding-window rate limiter.

State lives in the process; a restart or a second replica starts with
an empty window.
"""

import threading
import time
from typing import Callable, Dict, List


class RateLimit:
    """
    Allow at most ``limit`` hits per key within the trailing ``window`` seconds.

    Args:
        window: Window length in seconds
        limit: Hits allowed per window
        clock: Monotonic time source, replaceable in tests
    """

    def __init__(
        self,
        window: float = 60.0,
        limit: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.window = window
        self.limit = limit
        self._clock = clock
        self._hits: Dict[str, List[float]] = {}
        self._lock = threading.Lock()

    def is_allowed(self, key: str) -> bool:
        """Record a hit for ``key`` and report whether it is within the limit."""
        now = self._clock()
        with self._lock:
            recent = [t for t in self._hits.get(key, []) if now - t < self.window]
            if len(recent) >= self.limit:
                self._hits[key] = recent
                return False
            recent.append(now)
            self._hits[key] = recent
            return True

    def cleanup(self) -> None:
        """Drop expired hits and keys with none left."""
        now = self._clock()
        with self._lock:
            for key in list(self._hits):
                recent = [t for t in self._hits[key] if now - t < self.window]
                if recent:
                    self._hits[key] = recent
                else:
                    del self._hits[key]

    def __len__(self) -> int:
        return len(self._hits)
