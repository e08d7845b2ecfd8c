from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from adrind.core.models import Checkpoint, FlushResult, RawLog

Record = Mapping[str, Any]


# ---------------------------------------------------------------------------
# IChainClient
# ---------------------------------------------------------------------------

@runtime_checkable
class IChainClient(Protocol):
    """
    Abstract provider of chain data.

    Domain expectations:
    - It returns RawLog objects already mapped into internal domain models.
    - It hides the underlying RPC technology.
    - Failures surface as `RateLimited` or `TransportError`, both retryable.
    """

    async def get_logs(
        self,
        *,
        addresses: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> list[RawLog]:
        """
        Return all logs emitted by any of `addresses` over the inclusive block range.

        Implementations:
        - RPC-based (`adrind.clients.rpc.RPC`)
        - In-memory provider for testing
        """
        ...

    async def latest_block(self) -> int:
        """Return the current chain head height."""
        ...


# ---------------------------------------------------------------------------
# IRecordSink
# ---------------------------------------------------------------------------

@runtime_checkable
class IRecordSink(Protocol):
    """
    Destination of the records produced by event handlers.

    Domain expectations:
    - `insert_if_absent` is idempotent on `unique_key`; a duplicate is not an error.
    - `upsert` applies last-writer-wins ordered by `order_by` columns, so an
      older event never overwrites newer derived state.
    - `flush` makes every accepted record durable; checkpoints are only saved
      after it returns.
    """

    async def insert_if_absent(
        self,
        table: str,
        record: Record,
        *,
        unique_key: Sequence[str] = ("tx_hash", "log_index"),
    ) -> bool:
        """
        Insert `record` unless a row with the same unique key exists.

        Returns
        -------
        bool
            True when the record was accepted, False for a duplicate.
        """
        ...

    async def upsert(
        self,
        table: str,
        record: Record,
        *,
        conflict_key: Sequence[str],
        order_by: Sequence[str] = (),
    ) -> bool:
        """
        Insert or replace the row identified by `conflict_key`.

        Returns
        -------
        bool
            False when the stored row is newer by `order_by` and was kept.
        """
        ...

    async def flush(self) -> FlushResult:
        """Persist any buffered records."""
        ...


# ---------------------------------------------------------------------------
# IWatermarkStore
# ---------------------------------------------------------------------------

@runtime_checkable
class IWatermarkStore(Protocol):
    """Raw per-source watermark persistence (no monotonicity rules)."""

    async def get_watermark(self, source_id: str) -> Checkpoint | None:
        ...

    async def set_watermark(self, checkpoint: Checkpoint) -> None:
        ...

    async def list_watermarks(self) -> list[Checkpoint]:
        ...


# ---------------------------------------------------------------------------
# IEventStore
# ---------------------------------------------------------------------------

@runtime_checkable
class IEventStore(IRecordSink, IWatermarkStore, Protocol):
    """
    Relational store for event tables, derived state and watermarks.

    Implementations:
    - DuckDB (`adrind.storage.duckdb_store.DuckDBEventStore`)
    """

    async def insert_many(
        self,
        table: str,
        records: Sequence[Record],
        *,
        unique_key: Sequence[str] = ("tx_hash", "log_index"),
    ) -> int:
        """Batch insert ignoring duplicates; return the number of new rows."""
        ...

    async def count(self, table: str) -> int:
        ...

    async def close(self) -> None:
        ...
