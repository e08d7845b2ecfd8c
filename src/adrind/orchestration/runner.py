"""Process wiring: build concrete collaborators, run once or in a loop, shut down.

This module provides two layers:

1) `build_components(...)`: instantiates RPC, DuckDB store, optional
   write-behind buffer and the `SyncService` from a `RunnerConfig`.
2) `sync_once(...)` / `SyncRunner.run_forever(...)`: drive the service and
   always finish with `shutdown(...)`: flush the buffer, then close the store,
   bounded by `shutdown_timeout_s`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import Callable
from dataclasses import dataclass

from adrind.clients.rpc import RPC
from adrind.core.config import RunnerConfig
from adrind.core.interfaces import IRecordSink
from adrind.core.use_cases.sync import SyncService, SyncSummary
from adrind.sources import SourceRegistry
from adrind.sources.catalog import default_sources
from adrind.storage.buffer import WriteBehindBuffer
from adrind.storage.checkpoints import CheckpointStore
from adrind.storage.duckdb_store import DuckDBEventStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class SyncComponents:
    client: RPC
    store: DuckDBEventStore
    buffer: WriteBehindBuffer | None
    service: SyncService


def build_components(config: RunnerConfig, *, sources: SourceRegistry | None = None) -> SyncComponents:
    """Instantiate every collaborator once; they are passed down explicitly."""
    sources = sources or default_sources(config.cold_start_overrides)
    client = RPC(config.rpc_url, timeout_s=config.timeout_s, max_connections=config.max_connections)
    store = DuckDBEventStore(config.db_path)
    buffer = (
        WriteBehindBuffer(store, flush_interval_s=config.buffer.flush_interval_s) if config.buffer.enabled else None
    )
    sink: IRecordSink = buffer if buffer is not None else store
    service = SyncService(client, sources, CheckpointStore(store), sink, config=config.sync)
    return SyncComponents(client=client, store=store, buffer=buffer, service=service)


async def shutdown(components: SyncComponents, *, timeout_s: float) -> None:
    """Flush the buffer, close the store and the RPC client within `timeout_s`."""

    async def _close() -> None:
        if components.buffer is not None:
            result = await components.buffer.stop()
            logger.info("Final flush: %d inserted, %d failed", result.inserted, result.failed)
        await components.store.close()
        await components.client.aclose()

    try:
        await asyncio.wait_for(_close(), timeout=timeout_s)
    except asyncio.TimeoutError:
        logger.error("Graceful shutdown did not finish within %.1fs; exiting anyway", timeout_s)


# ---------------------------------------------------------------------------
# Drivers
# ---------------------------------------------------------------------------


async def sync_once(config: RunnerConfig, *, sources: SourceRegistry | None = None) -> SyncSummary:
    """Run a single synchronization and release every resource afterwards."""
    components = build_components(config, sources=sources)
    try:
        if components.buffer is not None:
            components.buffer.start()
        return await components.service.run()
    finally:
        await shutdown(components, timeout_s=config.shutdown_timeout_s)


def install_signal_handlers(stop: asyncio.Event) -> None:
    """Set `stop` on SIGINT/SIGTERM (where the event loop supports it)."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(sig, stop.set)


class SyncRunner:
    """Repeat sync runs until stopped.

    The current run always completes before the loop notices `stop`; then the
    shutdown sequence runs.
    """

    def __init__(
        self,
        components: SyncComponents,
        config: RunnerConfig,
        *,
        on_summary: Callable[[SyncSummary], None] | None = None,
    ) -> None:
        self.components = components
        self.config = config
        self._on_summary = on_summary
        self.last_summary: SyncSummary | None = None

    async def run_forever(self, stop: asyncio.Event, *, max_runs: int | None = None) -> int:
        """Loop until `stop` is set (or `max_runs` runs happened); return the number of runs."""
        runs = 0
        if self.components.buffer is not None:
            self.components.buffer.start()
        try:
            while not stop.is_set():
                try:
                    summary = await self.components.service.run()
                except Exception:
                    logger.exception("Sync run crashed; retrying on the next iteration")
                    summary = None
                runs += 1
                if summary is not None:
                    self.last_summary = summary
                    if self._on_summary is not None:
                        self._on_summary(summary)
                if max_runs is not None and runs >= max_runs:
                    break

                busy = summary is not None and summary.has_more
                delay = self.config.busy_poll_interval_s if busy else self.config.poll_interval_s
                logger.info("Next sync in %.1fs", delay)
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(stop.wait(), timeout=delay)
        finally:
            await shutdown(self.components, timeout_s=self.config.shutdown_timeout_s)
        return runs
