"""Checkpoint store: per-source watermarks with a never-rewind guarantee."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from adrind.core.interfaces import IWatermarkStore
from adrind.core.models import Checkpoint

logger = logging.getLogger(__name__)


class CheckpointStore:
    """Monotonic checkpoint persistence on top of a watermark store.

    - Rows are created lazily the first time a source is loaded.
    - `last_synced_block` never decreases: an advance to a lower height is ignored.
    - The backfill watermark is tracked independently and never touches the
      primary one.
    """

    def __init__(self, store: IWatermarkStore) -> None:
        self._store = store

    async def load(self, source_id: str) -> Checkpoint:
        cp = await self._store.get_watermark(source_id)
        if cp is None:
            cp = Checkpoint(source_id=source_id)
            await self._store.set_watermark(cp)
            logger.info("Created checkpoint for %s", source_id)
        return cp

    async def advance(self, source_id: str, height: int) -> Checkpoint:
        """Move `last_synced_block` up to `height` (no-op if already there or beyond)."""
        cp = await self.load(source_id)
        if height <= cp.last_synced_block:
            if height < cp.last_synced_block:
                logger.warning(
                    "Ignoring checkpoint rewind for %s: %d -> %d", source_id, cp.last_synced_block, height
                )
            return cp
        cp = Checkpoint(
            source_id=source_id,
            last_synced_block=height,
            last_backfill_block=cp.last_backfill_block,
            updated_at=time.time(),
        )
        await self._store.set_watermark(cp)
        return cp

    async def save(self, checkpoint: Checkpoint) -> Checkpoint:
        """Store `checkpoint`, keeping the stored `last_synced_block` if it is higher."""
        current = await self._store.get_watermark(checkpoint.source_id)
        if current is not None and current.last_synced_block > checkpoint.last_synced_block:
            checkpoint = Checkpoint(
                source_id=checkpoint.source_id,
                last_synced_block=current.last_synced_block,
                last_backfill_block=checkpoint.last_backfill_block,
                updated_at=checkpoint.updated_at,
            )
        await self._store.set_watermark(checkpoint)
        return checkpoint

    async def advance_many(self, heights: dict[str, int]) -> list[Checkpoint]:
        return [await self.advance(source_id, height) for source_id, height in heights.items()]

    async def set_backfill(self, source_id: str, height: int | None) -> Checkpoint:
        cp = await self.load(source_id)
        cp = Checkpoint(
            source_id=source_id,
            last_synced_block=cp.last_synced_block,
            last_backfill_block=height,
            updated_at=time.time(),
        )
        await self._store.set_watermark(cp)
        return cp

    async def all(self, source_ids: Iterable[str] | None = None) -> list[Checkpoint]:
        """Stored checkpoints, optionally including zero rows for `source_ids` never seen."""
        stored = {cp.source_id: cp for cp in await self._store.list_watermarks()}
        if source_ids is None:
            return list(stored.values())
        return [stored.get(sid) or Checkpoint(source_id=sid, updated_at=0.0) for sid in source_ids]
