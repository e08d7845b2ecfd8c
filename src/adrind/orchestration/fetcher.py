"""Fetch executor: one `get_logs` call per window with retry and backoff.

Retryable failures (`RateLimited`, `TransportError`) are retried up to
`max_attempts` times with exponential backoff (`base_delay_s * 2**(n-1)`, or
the server's Retry-After when it asks for longer). A window that still fails
is reported as failed with no logs; what happens next is the orchestrator's
`FailurePolicy`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from adrind.core.errors import RetryableError
from adrind.core.interfaces import IChainClient
from adrind.core.models import RawLog, Window

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass
class Attempted(Generic[T]):
    value: T | None
    attempts: int
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(slots=True)
class FetchResult:
    window: Window
    logs: list[RawLog] = field(default_factory=list)
    failed: bool = False
    attempts: int = 0
    error: str | None = None


def backoff_delay(attempt: int, base_delay_s: float, retry_after: float | None = None) -> float:
    """Delay before retry number `attempt` (1-based)."""
    delay = base_delay_s * (2 ** (attempt - 1))
    if retry_after is not None:
        delay = max(delay, retry_after)
    return delay


class WindowFetcher:
    """Upstream calls with bounded retries."""

    def __init__(
        self,
        client: IChainClient,
        *,
        max_attempts: int = 5,
        base_delay_s: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._client = client
        self.max_attempts = max_attempts
        self.base_delay_s = base_delay_s
        self._sleep = sleep

    async def _with_retries(self, call: Callable[[], Awaitable[T]], label: str) -> Attempted[T]:
        last_error: str | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return Attempted(value=await call(), attempts=attempt)
            except RetryableError as e:
                last_error = f"{type(e).__name__}: {e}"
                if attempt >= self.max_attempts:
                    break
                delay = backoff_delay(attempt, self.base_delay_s, e.retry_after)
                logger.warning(
                    "%s attempt %d/%d failed (%s); retrying in %.2fs",
                    label,
                    attempt,
                    self.max_attempts,
                    last_error,
                    delay,
                )
                await self._sleep(delay)
            except Exception as e:
                # not retryable: give up right away
                last_error = f"{type(e).__name__}: {e}"
                logger.error("%s failed with a non-retryable error: %s", label, last_error)
                return Attempted(value=None, attempts=attempt, error=last_error)

        logger.error("%s failed after %d attempts: %s", label, self.max_attempts, last_error)
        return Attempted(value=None, attempts=self.max_attempts, error=last_error)

    async def fetch_window(self, addresses: Sequence[str], window: Window) -> FetchResult:
        """Logs of `addresses` in `window`, sorted by (block_number, log_index)."""
        attempted = await self._with_retries(
            lambda: self._client.get_logs(
                addresses=list(addresses),
                from_block=window.from_block,
                to_block=window.to_block,
            ),
            f"Window {window}",
        )
        if attempted.failed or attempted.value is None:
            return FetchResult(window=window, failed=True, attempts=attempted.attempts, error=attempted.error)
        logs = sorted(attempted.value, key=lambda log: log.position)
        logger.debug("Window %s: %d logs", window, len(logs))
        return FetchResult(window=window, logs=logs, attempts=attempted.attempts)

    async def fetch_head(self) -> int | None:
        """Current chain head, or None when it cannot be read."""
        attempted = await self._with_retries(self._client.latest_block, "Head block")
        return attempted.value
