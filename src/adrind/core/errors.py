"""Error taxonomy for the synchronization engine.

Retryable upstream failures (`RateLimited`, `TransportError`) are handled by the
fetch executor; decode and persistence errors are caught per log / per event.
A topic signature that matches no known event is not an error: the decoder
returns ``None`` for it.
"""

from __future__ import annotations


class AdrindError(Exception):
    """Base class for all engine errors."""


# ---------------------------------------------------------------------------
# Upstream
# ---------------------------------------------------------------------------


class RetryableError(AdrindError):
    """Upstream failure that may succeed when retried after a delay."""

    def __init__(self, message: str, *, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class RateLimited(RetryableError):
    """Upstream rejected the request because of rate limiting (HTTP 429 and friends)."""


class TransportError(RetryableError):
    """Network, HTTP or JSON-RPC level failure."""


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


class DecodeError(AdrindError):
    """Base for decoding failures."""


class MalformedLog(DecodeError):
    """Log matched a known topic0 but its topics/data do not fit the event schema."""


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class PersistenceError(AdrindError):
    """Base for persistence failures."""


class PersistenceConflict(PersistenceError):
    """Duplicate idempotency key; treated as success by callers."""


class PersistenceFailure(PersistenceError):
    """Store rejected a write or a query for any other reason."""


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


class InvalidRange(AdrindError, ValueError):
    """Requested block range is empty (from_block > to_block)."""

    def __init__(self, from_block: int, to_block: int) -> None:
        super().__init__(f"invalid range: from_block={from_block} > to_block={to_block}")
        self.from_block = from_block
        self.to_block = to_block
