from __future__ import annotations

import httpx
import pytest

from ingestion.errors import RateLimitExceededError
from ingestion.retry import RetryPolicy, fetch_with_retry


def _responder(statuses):
    calls = {"count": 0}
    remaining = list(statuses)

    def send() -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(remaining.pop(0))

    return send, calls


def test_default_policy_schedule():
    policy = RetryPolicy()
    assert policy.schedule() == (1.0, 2.0, 4.0)
    assert policy.should_retry(429)
    assert not policy.should_retry(500)


def test_returns_first_non_retryable_response():
    delays: list[float] = []
    send, calls = _responder([429, 429, 200])

    response = fetch_with_retry(send, RetryPolicy(), source="Test", sleep=delays.append)

    assert response.status_code == 200
    assert calls["count"] == 3
    assert delays == [1.0, 2.0]


def test_non_retryable_errors_are_returned_untouched():
    delays: list[float] = []
    send, calls = _responder([500])

    response = fetch_with_retry(send, RetryPolicy(), source="Test", sleep=delays.append)

    assert response.status_code == 500
    assert calls["count"] == 1
    assert delays == []


def test_gives_up_after_max_retries():
    delays: list[float] = []
    send, calls = _responder([429] * 10)

    with pytest.raises(RateLimitExceededError) as excinfo:
        fetch_with_retry(send, RetryPolicy(max_retries=3), source="Test", sleep=delays.append)

    assert str(excinfo.value) == "Max retries exceeded due to rate limiting"
    assert excinfo.value.attempts == 4
    assert calls["count"] == 4
    assert delays == [1.0, 2.0, 4.0]


def test_custom_policy_controls_backoff_and_statuses():
    delays: list[float] = []
    policy = RetryPolicy(max_retries=2, base_delay=0.5, multiplier=3.0, retry_on_status=frozenset({503}))
    send, _ = _responder([503, 503, 200])

    response = fetch_with_retry(send, policy, source="Test", sleep=delays.append)

    assert response.status_code == 200
    assert delays == [0.5, 1.5]
