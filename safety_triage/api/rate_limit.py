"""
In-process fixed-window rate limiting keyed by client address.
"""

import time
from typing import Callable, Dict, Tuple

from safety_triage.exceptions import RateLimitExceeded


class RateLimiter:
    """
    Fixed-window request counter.

    Example:
        limiter = RateLimiter(max_requests=10, window_seconds=300)
        limiter.check("triage:203.0.113.7")   # raises RateLimitExceeded when over
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        # key -> (count, window reset time)
        self._windows: Dict[str, Tuple[int, float]] = {}

    def check(self, key: str) -> None:
        """
        Count one request for ``key``.

        Raises:
            RateLimitExceeded: If the key is over its limit for the current window
        """
        now = self._clock()
        count, reset_at = self._windows.get(key, (0, 0.0))

        if now >= reset_at:
            self._prune(now)
            self._windows[key] = (1, now + self.window_seconds)
            return

        if count >= self.max_requests:
            raise RateLimitExceeded(key, retry_after=reset_at - now)

        self._windows[key] = (count + 1, reset_at)

    def reset(self) -> None:
        self._windows.clear()

    def _prune(self, now: float) -> None:
        expired = [k for k, (_, reset_at) in self._windows.items() if reset_at <= now]
        for k in expired:
            del self._windows[k]
