"""Tests for the exponential backoff policy."""

from __future__ import annotations

import asyncio

import pytest

from bumpwise.errors import AIAnalysisError, ProviderError, RetryExhaustedError
from bumpwise.llm.retry import RetryPolicy, is_retryable


class Flaky:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _recorder(delays: list[float]):
    async def sleep(delay: float) -> None:
        delays.append(delay)

    return sleep


def test_delays_grow_exponentially_and_cap() -> None:
    policy = RetryPolicy(max_attempts=6, base_delay=1.0, max_delay=8.0)
    assert [policy.delay_for(attempt) for attempt in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 8.0]


def test_run_retries_until_success() -> None:
    delays: list[float] = []
    operation = Flaky(ProviderError("busy", status=503), ProviderError("busy", status=429), "done")
    policy = RetryPolicy(max_attempts=3, base_delay=0.5, max_delay=4.0)

    assert asyncio.run(policy.run(operation, sleep=_recorder(delays))) == "done"
    assert operation.calls == 3
    assert delays == [0.5, 1.0]


def test_run_raises_exhausted_after_last_attempt() -> None:
    delays: list[float] = []
    last = ProviderError("still down", status=500)
    operation = Flaky(ProviderError("down", status=500), last)
    policy = RetryPolicy(max_attempts=2, base_delay=1.0)

    with pytest.raises(RetryExhaustedError) as excinfo:
        asyncio.run(policy.run(operation, sleep=_recorder(delays)))

    assert excinfo.value.attempts == 2
    assert excinfo.value.last_error is last
    assert excinfo.value.__cause__ is last
    assert delays == [1.0]


def test_single_attempt_policy_never_sleeps() -> None:
    delays: list[float] = []
    error = ProviderError("down", status=502)

    with pytest.raises(RetryExhaustedError) as excinfo:
        asyncio.run(RetryPolicy(max_attempts=1).run(Flaky(error), sleep=_recorder(delays)))

    assert excinfo.value.last_error is error
    assert delays == []


def test_run_stops_on_non_retryable_error() -> None:
    delays: list[float] = []
    error = ProviderError("bad key", status=401)
    operation = Flaky(error, "never reached")

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(RetryPolicy().run(operation, sleep=_recorder(delays)))

    assert excinfo.value is error
    assert operation.calls == 1
    assert delays == []


def test_run_logs_each_retry(caplog: pytest.LogCaptureFixture) -> None:
    operation = Flaky(ProviderError("busy", status=503), "ok")
    with caplog.at_level("WARNING", logger="bumpwise.llm.retry"):
        asyncio.run(RetryPolicy(base_delay=0.0).run(operation, sleep=_recorder([])))

    assert "Attempt 1 failed, retrying in 0.00s: busy" in caplog.text


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (ProviderError("rate", status=429), True),
        (ProviderError("server", status=502), True),
        (ProviderError("network"), True),
        (ProviderError("auth", status=401), False),
        (ProviderError("bad request", status=400), False),
        (ProviderError("empty", retryable=False), False),
        (AIAnalysisError("schema", retryable=False), False),
        (AIAnalysisError("transient"), True),
        (TimeoutError("slow"), True),
    ],
)
def test_is_retryable(error: BaseException, expected: bool) -> None:
    assert is_retryable(error) is expected


def test_policy_rejects_invalid_settings() -> None:
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(base_delay=-1.0)
