"""Exceptions raised by upstream source adapters."""

from __future__ import annotations


class IngestionError(RuntimeError):
    """Base class for failures talking to an upstream market source."""


class UpstreamAPIError(IngestionError):
    """An upstream responded with a non-success status or could not be reached."""

    def __init__(
        self,
        source: str,
        status_code: int | None = None,
        reason: str | None = None,
        *,
        message: str | None = None,
    ) -> None:
        self.source = source
        self.status_code = status_code
        self.reason = reason or ""
        if message is None:
            if status_code is None:
                message = f"{source} API error: {self.reason or 'request failed'}"
            else:
                message = f"{source} API error: {status_code} {self.reason}".rstrip()
        super().__init__(message)


class RateLimitExceededError(UpstreamAPIError):
    """Retries for a rate limited request ran out."""

    def __init__(self, source: str, attempts: int) -> None:
        super().__init__(
            source,
            429,
            "Too Many Requests",
            message="Max retries exceeded due to rate limiting",
        )
        self.attempts = attempts


class UpstreamPayloadError(IngestionError):
    """An upstream payload did not match the expected shape."""
