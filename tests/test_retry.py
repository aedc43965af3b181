"""
Tests for the retry policy.
"""

from __future__ import annotations

import pytest

from sitechat.errors import UpstreamError
from sitechat.retry import RetryPolicy


class Flaky:
    def __init__(self, failures: int, exc: Exception = RuntimeError("transient")):
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return value


@pytest.mark.anyio
async def test_retries_until_success():
    fn = Flaky(failures=2)
    policy = RetryPolicy(max_attempts=3, base_delay=0.0)
    assert await policy.run(fn, "ok") == "ok"
    assert fn.calls == 3


@pytest.mark.anyio
async def test_exhausted_attempts_raise_upstream_error():
    fn = Flaky(failures=5)
    policy = RetryPolicy(max_attempts=2, base_delay=0.0)
    with pytest.raises(UpstreamError) as info:
        await policy.run(fn, "ok", description="embed batch")
    assert "embed batch" in str(info.value)
    assert isinstance(info.value.__cause__, RuntimeError)
    assert fn.calls == 2


@pytest.mark.anyio
async def test_non_retryable_errors_propagate_immediately():
    fn = Flaky(failures=5, exc=KeyError("bad"))
    policy = RetryPolicy(
        max_attempts=3,
        base_delay=0.0,
        retryable=lambda e: not isinstance(e, KeyError),
    )
    with pytest.raises(KeyError):
        await policy.run(fn, "ok")
    assert fn.calls == 1


def test_backoff_is_capped_exponential():
    policy = RetryPolicy(base_delay=1.0, max_delay=3.0)
    assert [policy.backoff(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 3.0, 3.0]
