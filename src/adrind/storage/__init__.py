"""Storage components for event rows, derived state and checkpoints.

This package provides:
- DuckDBEventStore: idempotent inserts, ordered upserts and watermarks
- CheckpointStore: monotonic per-source sync heights
- WriteBehindBuffer: batches event rows and flushes them periodically
"""

from adrind.storage.buffer import WriteBehindBuffer
from adrind.storage.checkpoints import CheckpointStore
from adrind.storage.duckdb_store import DuckDBEventStore

__all__ = [
    "CheckpointStore",
    "DuckDBEventStore",
    "WriteBehindBuffer",
]
