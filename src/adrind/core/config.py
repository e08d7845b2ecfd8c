from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class FailurePolicy(str, Enum):
    """What the orchestrator does with a window whose fetch exhausted its retries."""

    FAIL_OPEN = "fail-open"  # skip the window, keep advancing
    FAIL_CLOSED = "fail-closed"  # stop the run before the window


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for one synchronization run."""

    window_size: int = 10  # blocks per eth_getLogs call
    fan_out: int = 3  # windows fetched concurrently
    checkpoint_every: int = 100  # groups between persisted checkpoints
    inter_group_delay_s: float = 0.5
    max_attempts: int = 5
    base_backoff_s: float = 1.0
    failure_policy: FailurePolicy = FailurePolicy.FAIL_OPEN
    max_groups: int | None = None  # bound a single run; None = up to the head

    def __post_init__(self) -> None:
        if self.window_size < 1:
            raise ValueError("window_size must be >= 1")
        if self.fan_out < 1:
            raise ValueError("fan_out must be >= 1")
        if self.checkpoint_every < 1:
            raise ValueError("checkpoint_every must be >= 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.inter_group_delay_s < 0 or self.base_backoff_s < 0:
            raise ValueError("delays must be >= 0")
        if self.max_groups is not None and self.max_groups < 1:
            raise ValueError("max_groups must be >= 1 when set")


@dataclass(frozen=True)
class BufferConfig:
    """Write-behind buffer settings."""

    enabled: bool = False
    flush_interval_s: float = 30 * 60

    def __post_init__(self) -> None:
        if self.flush_interval_s <= 0:
            raise ValueError("flush_interval_s must be > 0")


@dataclass(frozen=True)
class RunnerConfig:
    """Process-level configuration (CLI / long-running loop)."""

    rpc_url: str
    db_path: str = "adrind.duckdb"
    timeout_s: int = 20
    max_connections: int = 16
    poll_interval_s: float = 5 * 60
    busy_poll_interval_s: float = 5.0  # used while the last run reported has_more
    shutdown_timeout_s: float = 10.0
    cold_start_overrides: dict[str, int] = field(default_factory=dict)
    sync: SyncConfig = field(default_factory=SyncConfig)
    buffer: BufferConfig = field(default_factory=BufferConfig)
