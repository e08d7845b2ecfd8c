"""Write-behind buffer.

Accumulates append-only records in memory, keyed by table, and drains them
with one batched `insert_many` per table:

- on `flush()` (the orchestrator calls it before every checkpoint save),
- periodically from a background task started with `start()`,
- on `stop()` during graceful shutdown.

Derived-state upserts are written through immediately; they are ordered by
position in the store and do not depend on the buffered rows.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from adrind.core.interfaces import IEventStore
from adrind.core.models import FlushResult

logger = logging.getLogger(__name__)

Record = Mapping[str, Any]


@dataclass(slots=True)
class BufferStats:
    tables: int
    total_events: int


class WriteBehindBuffer:
    """In-memory record sink that batches inserts into an `IEventStore`."""

    def __init__(self, store: IEventStore, *, flush_interval_s: float = 30 * 60) -> None:
        self._store = store
        self.flush_interval_s = flush_interval_s
        # table -> unique key value -> record
        self._pending: dict[str, dict[tuple[Any, ...], Record]] = {}
        self._keys: dict[str, tuple[str, ...]] = {}
        self._flush_lock = asyncio.Lock()
        self._task: asyncio.Task[None] | None = None

    # ------------------------------------------------------------------
    # record sink
    # ------------------------------------------------------------------

    def add(self, table: str, record: Record, *, unique_key: Sequence[str] = ("tx_hash", "log_index")) -> bool:
        """Queue `record`; False if a record with the same key is already queued."""
        key_cols = tuple(unique_key)
        known = self._keys.setdefault(table, key_cols)
        if known != key_cols:
            raise ValueError(f"{table}: unique key {key_cols} differs from {known}")
        bucket = self._pending.setdefault(table, {})
        key = tuple(record[c] for c in key_cols)
        if key in bucket:
            return False
        bucket[key] = dict(record)
        return True

    async def insert_if_absent(
        self,
        table: str,
        record: Record,
        *,
        unique_key: Sequence[str] = ("tx_hash", "log_index"),
    ) -> bool:
        return self.add(table, record, unique_key=unique_key)

    async def upsert(
        self,
        table: str,
        record: Record,
        *,
        conflict_key: Sequence[str],
        order_by: Sequence[str] = (),
    ) -> bool:
        return await self._store.upsert(table, record, conflict_key=conflict_key, order_by=order_by)

    # ------------------------------------------------------------------
    # flushing
    # ------------------------------------------------------------------

    async def flush(self) -> FlushResult:
        """Drain every table; a failing table keeps its records for the next flush."""
        async with self._flush_lock:
            result = FlushResult()
            for table in list(self._pending):
                batch = self._pending.pop(table)
                if not batch:
                    continue
                records = list(batch.values())
                try:
                    inserted = await self._store.insert_many(table, records, unique_key=self._keys[table])
                except Exception as e:
                    logger.error("Flush of %d records into %s failed, re-queued: %s", len(records), table, e)
                    requeue = self._pending.setdefault(table, {})
                    for key, record in batch.items():
                        requeue.setdefault(key, record)
                    result.failed += len(records)
                    continue
                result.inserted += inserted
                result.duplicates += len(records) - inserted
            if result.inserted or result.duplicates or result.failed:
                logger.info(
                    "Flushed buffer: %d inserted, %d duplicates, %d failed",
                    result.inserted,
                    result.duplicates,
                    result.failed,
                )
            return result

    def stats(self) -> BufferStats:
        return BufferStats(
            tables=sum(1 for b in self._pending.values() if b),
            total_events=sum(len(b) for b in self._pending.values()),
        )

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def _auto_flush(self) -> None:
        while True:
            await asyncio.sleep(self.flush_interval_s)
            try:
                # shielded: cancelling the loop must not drop a batch mid-insert
                await asyncio.shield(self.flush())
            except Exception:
                logger.exception("Periodic buffer flush failed")

    def start(self) -> None:
        """Start the periodic flush task (idempotent)."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._auto_flush(), name="adrind-buffer-flush")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def stop(self) -> FlushResult:
        """Cancel the periodic task and flush what is left."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        return await self.flush()
