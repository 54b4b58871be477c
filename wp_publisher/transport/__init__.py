"""Outbound HTTP for the publishing layer."""

from .http_client import ResilientTransport, is_transient_exception
from .rate_limiter import HostRateLimiter, RateLimiter

__all__ = ["HostRateLimiter", "RateLimiter", "ResilientTransport", "is_transient_exception"]
