from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from adrind.core.config import FailurePolicy, SyncConfig
from adrind.core.errors import InvalidRange, PersistenceError
from adrind.core.interfaces import IChainClient, IRecordSink
from adrind.core.models import Window
from adrind.decoding.router import LogRouter
from adrind.orchestration.fetcher import FetchResult, Sleep, WindowFetcher
from adrind.orchestration.planning import group_windows, plan_windows
from adrind.processors.dispatch import EventDispatcher
from adrind.sources import Source, SourceRegistry
from adrind.storage.checkpoints import CheckpointStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Run summary
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class SyncSummary:
    """
    Outcome of one synchronization run.

    Partial failures never fail a run; they only show up in these counters:
    - `failed_windows`: windows whose fetch exhausted its retries
    - `malformed_logs`: logs dropped because they did not fit their schema
    - `persistence_failures`: events whose handler could not persist them
    """

    processed: int = 0
    from_block: int | None = None
    to_block: int | None = None
    has_more: bool = False
    groups: int = 0
    windows: int = 0
    failed_windows: int = 0
    logs_fetched: int = 0
    unrouted_logs: int = 0
    unknown_logs: int = 0
    malformed_logs: int = 0
    persistence_failures: int = 0
    processed_by_source: dict[str, int] = field(default_factory=dict)
    checkpoints: dict[str, int] = field(default_factory=dict)
    head_unavailable: bool = False
    stopped_early: bool = False
    duration_s: float = 0.0

    @property
    def caught_up(self) -> bool:
        return not self.has_more


# ---------------------------------------------------------------------------
# Per-source progress
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class SourceProgress:
    """In-memory progress marker for one source during a run."""

    source: Source
    start_block: int  # first block this run must process for the source
    marker: int  # highest block known processed
    saved: int  # highest block persisted as a checkpoint
    dirty: bool = False  # marker moved since the last saved checkpoint

    def covers(self, window: Window) -> bool:
        return self.start_block <= window.to_block

    def behind(self, head: int) -> bool:
        return max(self.saved, self.start_block - 1) < head


# ---------------------------------------------------------------------------
# Domain service – SyncService
# ---------------------------------------------------------------------------


class SyncService:
    """
    Multi-source block-range synchronization.

    One `run()` walks every registered source from its checkpoint up to the
    chain head captured at the start of the run:

    1. read checkpoints and compute per-source start heights
    2. plan windows over [min(start), head]
    3. fetch windows in fan-out groups (concurrently within a group)
    4. route + dispatch logs sequentially, in window order
    5. advance in-memory markers after each group
    6. every `checkpoint_every` groups and after the last one: flush the sink,
       then persist checkpoints

    Dependencies are injected; the service owns no connections.
    """

    def __init__(
        self,
        client: IChainClient,
        sources: SourceRegistry,
        checkpoints: CheckpointStore,
        sink: IRecordSink,
        *,
        config: SyncConfig | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._sources = sources
        self._checkpoints = checkpoints
        self._sink = sink
        self.config = config or SyncConfig()
        self._sleep = sleep

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _load_progress(self) -> dict[str, SourceProgress]:
        progress: dict[str, SourceProgress] = {}
        for source in self._sources:
            cp = await self._checkpoints.load(source.id)
            progress[source.id] = SourceProgress(
                source=source,
                start_block=cp.start_block(source.cold_start_block),
                marker=cp.last_synced_block,
                saved=cp.last_synced_block,
            )
        return progress

    @staticmethod
    def _addresses_for(progress: dict[str, SourceProgress], window: Window) -> list[str]:
        return [p.source.address for p in progress.values() if p.covers(window)]

    async def _save_checkpoints(self, progress: dict[str, SourceProgress], summary: SyncSummary) -> None:
        dirty = {sid: p.marker for sid, p in progress.items() if p.dirty}
        if not dirty:
            return

        # checkpoints must never cover records that are still buffered
        try:
            flushed = await self._sink.flush()
        except Exception:
            logger.exception("Flush before checkpoint failed; checkpoints not saved")
            return
        if flushed.failed:
            logger.error("%d buffered records failed to flush; checkpoints not saved", flushed.failed)
            return

        for source_id, height in dirty.items():
            try:
                cp = await self._checkpoints.advance(source_id, height)
            except PersistenceError as e:
                logger.error("Could not save checkpoint %s -> %d: %s", source_id, height, e)
                continue
            progress[source_id].dirty = False
            progress[source_id].saved = cp.last_synced_block
            summary.checkpoints[source_id] = cp.last_synced_block
        logger.info("Checkpoints saved: %s", ", ".join(f"{k}={v}" for k, v in dirty.items()))

    async def _process_results(
        self,
        results: Sequence[FetchResult],
        progress: dict[str, SourceProgress],
        router: LogRouter,
        dispatcher: EventDispatcher,
        summary: SyncSummary,
    ) -> None:
        # results are in window order; logs inside a window are position-sorted
        for result in results:
            summary.logs_fetched += len(result.logs)
            for log in result.logs:
                routed = router.route(log)
                if routed is None:
                    continue
                if log.block_number < progress[routed.source.id].start_block:
                    continue  # already covered by this source's checkpoint
                if await dispatcher.dispatch(routed.source, routed.event):
                    summary.processed += 1

    # ------------------------------------------------------------------
    # run
    # ------------------------------------------------------------------

    async def run(self) -> SyncSummary:
        """
        Execute one synchronization run.

        Returns
        -------
        SyncSummary
            Always returned; per-window and per-event failures are counted,
            never raised.
        """
        t0 = time.monotonic()
        cfg = self.config
        summary = SyncSummary()
        router = LogRouter(self._sources)
        dispatcher = EventDispatcher(self._sink)
        fetcher = WindowFetcher(
            self._client,
            max_attempts=cfg.max_attempts,
            base_delay_s=cfg.base_backoff_s,
            sleep=self._sleep,
        )

        def finish() -> SyncSummary:
            summary.unrouted_logs = router.stats.unrouted
            summary.unknown_logs = router.stats.unknown
            summary.malformed_logs = router.stats.malformed
            summary.persistence_failures = dispatcher.stats.failures
            summary.processed_by_source = dict(dispatcher.stats.by_source)
            summary.duration_s = time.monotonic() - t0
            return summary

        # 1) Range
        try:
            progress = await self._load_progress()
        except PersistenceError as e:
            logger.error("Cannot read checkpoints (%s); nothing synced this run", e)
            summary.has_more = True
            return finish()
        global_start = min(p.start_block for p in progress.values())
        summary.from_block = global_start

        head = await fetcher.fetch_head()
        if head is None:
            logger.error("Chain head unavailable; nothing synced this run")
            summary.head_unavailable = True
            summary.has_more = True
            return finish()
        summary.to_block = head

        try:
            windows = plan_windows(global_start, head, cfg.window_size)
        except InvalidRange:
            logger.info("Already caught up (start=%d > head=%d)", global_start, head)
            return finish()

        groups = group_windows(windows, cfg.fan_out)
        logger.info(
            "Syncing %d sources over [%d, %d]: %d windows in %d groups",
            len(progress),
            global_start,
            head,
            len(windows),
            len(groups),
        )

        # 2) Groups
        for gi, group in enumerate(groups, start=1):
            results = await asyncio.gather(
                *(fetcher.fetch_window(self._addresses_for(progress, w), w) for w in group)
            )
            summary.groups += 1
            summary.windows += len(results)
            summary.failed_windows += sum(1 for r in results if r.failed)

            usable: Sequence[FetchResult] = results
            halted = False
            if cfg.failure_policy is FailurePolicy.FAIL_CLOSED:
                first_failed = next((i for i, r in enumerate(results) if r.failed), None)
                if first_failed is not None:
                    usable = results[:first_failed]
                    halted = True
                    logger.warning(
                        "Window %s failed under %s; stopping the run",
                        results[first_failed].window,
                        cfg.failure_policy.value,
                    )

            await self._process_results(usable, progress, router, dispatcher, summary)

            if usable:
                group_end = min(usable[-1].window.to_block, head)
                for p in progress.values():
                    if p.start_block <= group_end and group_end > p.marker:
                        p.marker = group_end
                        p.dirty = True

            last_group = gi == len(groups)
            limit_hit = cfg.max_groups is not None and gi >= cfg.max_groups
            if halted or last_group or limit_hit or gi % cfg.checkpoint_every == 0:
                await self._save_checkpoints(progress, summary)
            if halted:
                summary.stopped_early = True
                break
            if last_group:
                break
            if limit_hit:
                summary.stopped_early = True
                break
            if cfg.inter_group_delay_s > 0:
                await self._sleep(cfg.inter_group_delay_s)

        # 3) hasMore against a fresh head
        try:
            latest = await self._client.latest_block()
        except Exception as e:
            logger.warning("Could not refresh head (%s); using %d", e, head)
            latest = head
        summary.has_more = any(p.behind(latest) for p in progress.values())

        logger.info(
            "Run done: %d events, %d/%d windows failed, has_more=%s",
            summary.processed,
            summary.failed_windows,
            summary.windows,
            summary.has_more,
        )
        return finish()
