"""DuckDB-backed event store.

Implements `IEventStore`: idempotent event inserts, ordered derived-state
upserts and per-source watermarks in one database file.

DuckDB calls are blocking; they run in a worker thread via `asyncio.to_thread`
and are serialized by an `asyncio.Lock` (one writer, one connection).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any, TypeVar

import duckdb

from adrind.core.errors import PersistenceConflict, PersistenceFailure
from adrind.core.models import Checkpoint, FlushResult
from adrind.storage.schema import TABLES, TableSpec, all_ddl

logger = logging.getLogger(__name__)

T = TypeVar("T")

Record = Mapping[str, Any]

SYNC_STATE_TABLE = "sync_state"


def _q(name: str) -> str:
    return f'"{name}"'


def _where(columns: Sequence[str]) -> str:
    return " AND ".join(f"{_q(c)} = ?" for c in columns)


class DuckDBEventStore:
    """Relational store on a DuckDB database file (or ``":memory:"``)."""

    def __init__(self, path: str | Path = ":memory:", *, tables: tuple[TableSpec, ...] = TABLES) -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._tables = {t.name: t for t in tables}
        self._lock = asyncio.Lock()
        self._closed = False
        self._con = duckdb.connect(self.path)
        for ddl in all_ddl(tables):
            self._con.execute(ddl)
        logger.debug("Opened DuckDB store at %s (%d tables)", self.path, len(self._tables))

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        async with self._lock:
            if self._closed:
                raise PersistenceFailure("store is closed")
            try:
                return await asyncio.to_thread(fn, *args)
            except duckdb.Error as e:
                raise PersistenceFailure(str(e)) from e

    def _spec(self, table: str) -> TableSpec:
        spec = self._tables.get(table)
        if spec is None:
            raise PersistenceFailure(f"unknown table {table!r}")
        return spec

    def _columns(self, spec: TableSpec, names: Sequence[str]) -> list[str]:
        unknown = [n for n in names if n not in spec.column_names]
        if unknown:
            raise PersistenceFailure(f"{spec.name}: unknown columns {unknown}")
        return list(names)

    def _count(self, table: str) -> int:
        row = self._con.execute(f"SELECT count(*) FROM {table}").fetchone()
        return int(row[0]) if row else 0

    # ------------------------------------------------------------------
    # event tables
    # ------------------------------------------------------------------

    def _insert_if_absent(self, table: str, record: Record, unique_key: Sequence[str]) -> bool:
        spec = self._spec(table)
        cols = self._columns(spec, list(record))
        exists = self._con.execute(
            f"SELECT 1 FROM {table} WHERE {_where(unique_key)} LIMIT 1",
            [record[k] for k in unique_key],
        ).fetchone()
        if exists:
            raise PersistenceConflict(f"{table}: duplicate key {tuple(record[k] for k in unique_key)}")
        self._con.execute(
            f"INSERT INTO {table} ({', '.join(map(_q, cols))}) "
            f"VALUES ({', '.join('?' for _ in cols)}) ON CONFLICT DO NOTHING",
            [record[c] for c in cols],
        )
        return True

    def _insert_many(self, table: str, records: Sequence[Record], unique_key: Sequence[str]) -> int:
        spec = self._spec(table)

        # keep the first record of each key; columns are the union in first-seen order
        unique: dict[tuple[Any, ...], Record] = {}
        names: dict[str, None] = {}
        for r in records:
            unique.setdefault(tuple(r[k] for k in unique_key), r)
            names.update(dict.fromkeys(r))
        if not unique:
            return 0
        cols = self._columns(spec, list(names))

        rows = [[r.get(c) for c in cols] for r in unique.values()]
        before = self._count(table)
        self._con.begin()
        try:
            self._con.executemany(
                f"INSERT INTO {table} ({', '.join(map(_q, cols))}) "
                f"VALUES ({', '.join('?' for _ in cols)}) ON CONFLICT DO NOTHING",
                rows,
            )
            self._con.commit()
        except Exception:
            self._con.rollback()
            raise
        return self._count(table) - before

    def _upsert(self, table: str, record: Record, conflict_key: Sequence[str], order_by: Sequence[str]) -> bool:
        spec = self._spec(table)
        cols = self._columns(spec, list(record))
        if order_by:
            current = self._con.execute(
                f"SELECT {', '.join(map(_q, order_by))} FROM {table} WHERE {_where(conflict_key)}",
                [record[k] for k in conflict_key],
            ).fetchone()
            if current is not None and tuple(current) > tuple(record[c] for c in order_by):
                return False
        self._con.execute(
            f"INSERT OR REPLACE INTO {table} ({', '.join(map(_q, cols))}) "
            f"VALUES ({', '.join('?' for _ in cols)})",
            [record[c] for c in cols],
        )
        return True

    def _fetch_all(self, table: str, order_by: Sequence[str]) -> list[dict[str, Any]]:
        if table != SYNC_STATE_TABLE:
            self._spec(table)
        order = f" ORDER BY {', '.join(map(_q, order_by))}" if order_by else ""
        cur = self._con.execute(f"SELECT * FROM {table}{order}")
        names = [d[0] for d in cur.description]
        return [dict(zip(names, row)) for row in cur.fetchall()]

    async def insert_if_absent(
        self,
        table: str,
        record: Record,
        *,
        unique_key: Sequence[str] = ("tx_hash", "log_index"),
    ) -> bool:
        try:
            return await self._run(self._insert_if_absent, table, record, tuple(unique_key))
        except PersistenceConflict:
            return False

    async def insert_many(
        self,
        table: str,
        records: Sequence[Record],
        *,
        unique_key: Sequence[str] = ("tx_hash", "log_index"),
    ) -> int:
        if not records:
            return 0
        return await self._run(self._insert_many, table, list(records), tuple(unique_key))

    async def upsert(
        self,
        table: str,
        record: Record,
        *,
        conflict_key: Sequence[str],
        order_by: Sequence[str] = (),
    ) -> bool:
        return await self._run(self._upsert, table, record, tuple(conflict_key), tuple(order_by))

    async def flush(self) -> FlushResult:
        """Writes are immediate; nothing to flush."""
        return FlushResult()

    async def count(self, table: str) -> int:
        if table != SYNC_STATE_TABLE:
            self._spec(table)
        return await self._run(self._count, table)

    async def fetch_all(self, table: str, *, order_by: Sequence[str] = ()) -> list[dict[str, Any]]:
        """Return every row of `table` as dicts (small tables / inspection only)."""
        return await self._run(self._fetch_all, table, tuple(order_by))

    # ------------------------------------------------------------------
    # watermarks
    # ------------------------------------------------------------------

    @staticmethod
    def _to_checkpoint(row: Sequence[Any]) -> Checkpoint:
        return Checkpoint(
            source_id=row[0],
            last_synced_block=int(row[1]),
            last_backfill_block=None if row[2] is None else int(row[2]),
            updated_at=float(row[3]),
        )

    def _get_watermark(self, source_id: str) -> Checkpoint | None:
        row = self._con.execute(
            "SELECT source_id, last_synced_block, last_backfill_block, updated_at "
            "FROM sync_state WHERE source_id = ?",
            [source_id],
        ).fetchone()
        return None if row is None else self._to_checkpoint(row)

    def _set_watermark(self, checkpoint: Checkpoint) -> None:
        self._con.execute(
            "INSERT OR REPLACE INTO sync_state (source_id, last_synced_block, last_backfill_block, updated_at) "
            "VALUES (?, ?, ?, ?)",
            [
                checkpoint.source_id,
                checkpoint.last_synced_block,
                checkpoint.last_backfill_block,
                checkpoint.updated_at,
            ],
        )

    def _list_watermarks(self) -> list[Checkpoint]:
        rows = self._con.execute(
            "SELECT source_id, last_synced_block, last_backfill_block, updated_at FROM sync_state ORDER BY source_id"
        ).fetchall()
        return [self._to_checkpoint(r) for r in rows]

    async def get_watermark(self, source_id: str) -> Checkpoint | None:
        return await self._run(self._get_watermark, source_id)

    async def set_watermark(self, checkpoint: Checkpoint) -> None:
        await self._run(self._set_watermark, checkpoint)

    async def list_watermarks(self) -> list[Checkpoint]:
        return await self._run(self._list_watermarks)

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        async with self._lock:
            if self._closed:
                return
            self._closed = True
            await asyncio.to_thread(self._con.close)
        logger.debug("Closed DuckDB store at %s", self.path)
