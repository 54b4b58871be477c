"""Token-bucket pacing for calls to WordPress hosts."""

from __future__ import annotations

import threading
import time
from typing import Callable
from urllib.parse import urlsplit


class RateLimiter:
    """Thread-safe token-bucket rate limiter.

    Args:
        requests_per_minute: Maximum requests allowed per minute.
        sleep: Injected for tests.
    """

    def __init__(
        self,
        requests_per_minute: int = 20,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._interval = 60.0 / max(requests_per_minute, 1)
        self._last_request_time: float | None = None
        self._lock = threading.Lock()
        self._sleep = sleep

    @property
    def interval(self) -> float:
        return self._interval

    def wait(self) -> None:
        """Block until the next request is allowed."""
        with self._lock:
            now = time.monotonic()
            if self._last_request_time is not None:
                elapsed = now - self._last_request_time
                if elapsed < self._interval:
                    self._sleep(self._interval - elapsed)
            self._last_request_time = time.monotonic()


class HostRateLimiter:
    """One ``RateLimiter`` per URL host, created on first use.

    Pacing is keyed on ``netloc`` so two WordPress sites never slow each
    other down.
    """

    def __init__(
        self,
        requests_per_minute: int,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.requests_per_minute = requests_per_minute
        self._sleep = sleep
        self._limiters: dict[str, RateLimiter] = {}
        self._lock = threading.Lock()

    def for_host(self, host: str) -> RateLimiter:
        with self._lock:
            limiter = self._limiters.get(host)
            if limiter is None:
                limiter = RateLimiter(self.requests_per_minute, sleep=self._sleep)
                self._limiters[host] = limiter
            return limiter

    def wait(self, url: str) -> None:
        """Block until ``url``'s host may be called again."""
        self.for_host(urlsplit(url).netloc).wait()
