"""
Retry with exponential backoff for rate-limited inference calls.

Only rate limits are retried. Every other failure is assumed to be
deterministic (bad task data, auth, unparseable output) and goes straight
to the fallback path.
"""

import re
from dataclasses import dataclass


class RateLimitedError(Exception):
    """The inference provider rejected a call with a rate limit."""


# 429 only counts next to an HTTP status marker; bare numbers may be ids
_STATUS_429_PATTERN = re.compile(
    r"\b(?:http|status(?:[ _]code)?)\W{0,3}429\b"
)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 3
    base_delay: float = 2.0  # seconds; attempt n sleeps 2**n * base_delay

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")


def is_rate_limited(exc: BaseException) -> bool:
    """
    Check whether an exception is a provider rate limit.

    Matches RateLimitedError, errors carrying an HTTP status_code of 429
    (pydantic-ai's ModelHTTPError, openai's RateLimitError), and messages
    carrying "Too Many Requests" or a 429 HTTP status ("HTTP 429",
    "status code: 429"). Causes are followed so a wrapped rate limit is
    still recognised.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, RateLimitedError):
            return True
        if getattr(current, "status_code", None) == 429:
            return True
        msg = str(current).lower()
        if "too many requests" in msg or _STATUS_429_PATTERN.search(msg):
            return True
        current = current.__cause__
    return False


def backoff_delay(attempt: int, config: RetryConfig | None = None) -> float:
    """
    Seconds to wait after a rate-limited attempt.

    Args:
        attempt: 1-based number of the attempt that just failed.
        config: Retry configuration.

    Example:
        >>> [backoff_delay(n) for n in (1, 2, 3)]
        [4.0, 8.0, 16.0]
    """
    cfg = config or RetryConfig()
    return float(2**attempt) * cfg.base_delay
