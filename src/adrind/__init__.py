"""adrind: keep local tables in sync with the event logs of a set of contracts."""

from __future__ import annotations

from .core.config import BufferConfig, FailurePolicy, RunnerConfig, SyncConfig
from .core.use_cases.sync import SyncService, SyncSummary
from .sources import Source, SourceRegistry
from .sources.catalog import default_sources

__all__ = [
    "BufferConfig",
    "FailurePolicy",
    "RunnerConfig",
    "SyncConfig",
    "SyncService",
    "SyncSummary",
    "Source",
    "SourceRegistry",
    "default_sources",
]
