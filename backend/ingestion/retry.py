"""Retry policy and a transport-agnostic request-with-retry helper."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
from loguru import logger

from .errors import RateLimitExceededError


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Exponential backoff applied to responses with a retryable status."""

    max_retries: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    retry_on_status: frozenset[int] = field(default_factory=lambda: frozenset({429}))

    def should_retry(self, status_code: int) -> bool:
        return status_code in self.retry_on_status

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before retry number ``attempt`` (zero based)."""
        return self.base_delay * (self.multiplier ** attempt)

    def schedule(self) -> tuple[float, ...]:
        return tuple(self.delay_for(attempt) for attempt in range(self.max_retries))


def fetch_with_retry(
    send: Callable[[], httpx.Response],
    policy: RetryPolicy,
    *,
    source: str,
    sleep: Callable[[float], None] = time.sleep,
) -> httpx.Response:
    """Call ``send`` until it returns a non-retryable response.

    Retryable responses are retried up to ``policy.max_retries`` times; once
    exhausted a :class:`RateLimitExceededError` is raised. Transport errors and
    every other status are returned or raised to the caller untouched.
    """

    attempt = 0
    while True:
        response = send()
        if not policy.should_retry(response.status_code):
            return response
        if attempt >= policy.max_retries:
            logger.error(
                "{} still rate limited after {} retries; giving up", source, attempt
            )
            raise RateLimitExceededError(source, attempts=attempt + 1)
        delay = policy.delay_for(attempt)
        logger.warning(
            "{} rate limited (status={}). Retrying in {:.1f}s (retry {}/{})",
            source,
            response.status_code,
            delay,
            attempt + 1,
            policy.max_retries,
        )
        sleep(delay)
        attempt += 1
