"""
Retry policy applied to every upstream call (models, vector index, fetches).
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, TypeVar

from .errors import UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _always_retry(exc: BaseException) -> bool:
    return True


@dataclass
class RetryPolicy:
    """
    Bounded retries with capped exponential backoff.

    Delay before attempt n+1 is ``min(max_delay, base_delay * 2 ** (n - 1))``
    plus up to ``jitter`` seconds. Errors rejected by ``retryable`` are
    re-raised immediately; when attempts run out, UpstreamError is raised
    from the last failure.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 8.0
    jitter: float = 0.0
    retryable: Callable[[BaseException], bool] = field(default=_always_retry)

    def backoff(self, attempt: int) -> float:
        delay = min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))
        if self.jitter:
            delay += random.uniform(0, self.jitter)
        return max(0.0, delay)

    async def run(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        description: Optional[str] = None,
        **kwargs: Any,
    ) -> T:
        """Await ``fn(*args, **kwargs)``, retrying transient failures."""
        name = description or getattr(fn, "__qualname__", repr(fn))
        attempts = max(1, self.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return await fn(*args, **kwargs)
            except Exception as e:
                if not self.retryable(e):
                    raise
                if attempt >= attempts:
                    raise UpstreamError(f"{name} failed after {attempts} attempts: {e}") from e
                delay = self.backoff(attempt)
                logger.warning(
                    "%s failed (attempt %s/%s): %s; retrying in %.1fs",
                    name,
                    attempt,
                    attempts,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)
        raise AssertionError("unreachable")


NO_RETRY = RetryPolicy(max_attempts=1, base_delay=0.0)
