from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass
class RetryOutcome:
    ok: bool
    attempts: int
    error: BaseException | None = None


def backoff_delay_ms(backoff_ms: int, attempt: int) -> int:
    """Delay after failed attempt ``attempt`` (1-based): linear in the attempt number."""
    return backoff_ms * attempt


async def run_with_retries(
    attempt: Callable[[], Awaitable[Any]],
    retries: int,
    backoff_ms: int,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    label: str = "step",
) -> RetryOutcome:
    """Run ``attempt`` up to ``retries + 1`` times.

    Stops at the first success. Between a failed attempt k and attempt k+1 it
    sleeps ``backoff_ms * k`` milliseconds. The last error is returned on the
    outcome instead of being raised; cancellation is not retried.
    """
    max_attempts = max(0, retries) + 1
    last_error: BaseException | None = None
    for n in range(1, max_attempts + 1):
        try:
            await attempt()
            return RetryOutcome(ok=True, attempts=n)
        except Exception as e:
            last_error = e
            if n < max_attempts:
                delay = backoff_delay_ms(backoff_ms, n)
                logger.warning(
                    f"{label} attempt {n}/{max_attempts} failed: {e}; retrying in {delay}ms"
                )
                await sleep(delay / 1000)
    return RetryOutcome(ok=False, attempts=max_attempts, error=last_error)
