import logging
import threading
import time
from collections import defaultdict, deque

from errors import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Sliding-window request counter keyed by client identity."""

    def __init__(self, limit: int, window_seconds: float, message: str = None, clock=time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._hits = defaultdict(deque)
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def _prune(self, hits, now):
        while hits and hits[0] <= now - self.window_seconds:
            hits.popleft()

    def _sweep(self, now):
        # drop clients with nothing left in the window; caller holds the lock
        for key in list(self._hits):
            self._prune(self._hits[key], now)
            if not self._hits[key]:
                del self._hits[key]
        self._last_sweep = now

    def hit(self, key: str) -> int:
        """Record one attempt for ``key``; returns how many attempts remain."""
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            hits = self._hits[key]
            self._prune(hits, now)
            if len(hits) >= self.limit:
                retry_after = max(1, int(hits[0] + self.window_seconds - now))
                logger.warning("Rate limit exceeded for %s (%d per %ds)", key, self.limit, self.window_seconds)
                raise RateLimitError(self.message, retry_after=retry_after)
            hits.append(now)
            return self.limit - len(hits)

    def reset(self, key: str = None):
        with self._lock:
            if key is None:
                self._hits.clear()
            else:
                self._hits.pop(key, None)

    def __len__(self):
        return len(self._hits)
