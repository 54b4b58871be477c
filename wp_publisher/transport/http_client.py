"""Resilient HTTP transport: per-attempt timeout, transient retry, backoff."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests

from wp_publisher.common.config import TransportConfig

from .rate_limiter import HostRateLimiter

logger = logging.getLogger(__name__)

TRANSIENT_EXCEPTIONS = (requests.ConnectionError, requests.Timeout)


def is_transient_exception(exc: BaseException) -> bool:
    """Connection reset/refused, DNS failure, or timeout."""
    return isinstance(exc, TRANSIENT_EXCEPTIONS)


class ResilientTransport:
    """requests wrapper that retries transient failures with capped backoff.

    Transient failures are connection errors, timeouts and the configured
    retryable status codes. Anything else is returned (responses) or raised
    (exceptions) on the first attempt. After ``max_retries`` retries the last
    retryable response is returned, or the last exception re-raised.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config or TransportConfig()
        if session is None:
            # requests.Session ships its own python-requests User-Agent
            session = requests.Session()
            session.headers["User-Agent"] = self.config.user_agent
        else:
            session.headers.setdefault("User-Agent", self.config.user_agent)
        self._session = session
        self._sleep = sleep
        self._pacer = (
            HostRateLimiter(self.config.rate_limit_rpm, sleep=sleep)
            if self.config.rate_limit_rpm > 0
            else None
        )

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in self.config.retry_statuses

    def request(
        self,
        method: str,
        url: str,
        *,
        timeout: float | None = None,
        max_retries: int | None = None,
        label: str = "",
        **kwargs: Any,
    ) -> requests.Response:
        """Send a request, retrying transient failures.

        Args:
            method: HTTP method.
            url: Absolute URL.
            timeout: Per-attempt timeout in seconds (defaults to the
                metadata timeout).
            max_retries: Retries after the first attempt.
            label: Operation name for retry log lines.
            **kwargs: Passed through to ``requests.Session.request``.

        Returns:
            The first non-retryable response, or the last retryable one.

        Raises:
            requests.RequestException: Terminal transport errors immediately,
                transient ones after all retries are exhausted.
        """
        timeout = timeout if timeout is not None else self.config.request_timeout
        max_retries = max_retries if max_retries is not None else self.config.max_retries
        label = label or f"{method.upper()} {url}"

        attempt = 0
        while True:
            self._pace(url)
            try:
                response = self._session.request(method, url, timeout=timeout, **kwargs)
            except requests.RequestException as exc:
                if not is_transient_exception(exc) or attempt >= max_retries:
                    raise
                reason = type(exc).__name__
            else:
                if not self.is_retryable_status(response.status_code) or attempt >= max_retries:
                    return response
                reason = f"HTTP {response.status_code}"
                response.close()

            wait_seconds = self.config.backoff_seconds(attempt)
            logger.warning(
                "retry label=%s attempt=%d/%d reason=%s wait_ms=%d",
                label,
                attempt + 1,
                max_retries + 1,
                reason,
                int(wait_seconds * 1000),
            )
            self._sleep(wait_seconds)
            attempt += 1

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self.request("POST", url, **kwargs)

    def _pace(self, url: str) -> None:
        """Apply per-host pacing when a rate limit is configured."""
        if self._pacer is not None:
            self._pacer.wait(url)

    def close(self) -> None:
        """Close the underlying session."""
        self._session.close()

    def __enter__(self) -> ResilientTransport:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
