"""Core data models.

This module defines:
- `RawLog`: log record as returned by the chain client, minimally normalized.
- `Meta`: per-log metadata carried by every decoded event.
- `Window`: inclusive block range fetched in one upstream call.
- `Checkpoint`: per-source progress row.

Design notes
------------
- Addresses, topics and tx hashes are lowercased 0x-hex strings.
- Block heights and log indexes are plain ints.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

# === Upstream record ===


@dataclass(slots=True, frozen=True)
class RawLog:
    """Raw log as fetched from the chain client."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x...
    log_index: int
    block_timestamp: int | None = None

    @property
    def position(self) -> tuple[int, int]:
        """Ordering key within the chain: (block_number, log_index)."""
        return (self.block_number, self.log_index)

    def data_bytes(self) -> bytes:
        """Return the data section as bytes (raises ValueError on bad hex)."""
        h = self.data_hex[2:] if self.data_hex.lower().startswith("0x") else self.data_hex
        return bytes.fromhex(h) if h else b""

    def meta(self) -> Meta:
        return Meta(
            block_number=self.block_number,
            block_timestamp=self.block_timestamp,
            tx_hash=self.tx_hash,
            log_index=self.log_index,
            address=self.address,
        )


@dataclass(slots=True)
class Meta:
    """Lightweight metadata for a single log used during decoding."""

    block_number: int
    block_timestamp: int | None
    tx_hash: str
    log_index: int
    address: str


# === Planning ===


@dataclass(slots=True, frozen=True)
class Window:
    """Inclusive [from_block, to_block] range."""

    from_block: int
    to_block: int

    @property
    def size(self) -> int:
        return self.to_block - self.from_block + 1

    def __str__(self) -> str:
        return f"[{self.from_block}, {self.to_block}]"


# === Progress ===


@dataclass(slots=True)
class Checkpoint:
    """Per-source progress.

    `last_synced_block == 0` means the source was never synced and starts at
    its cold-start height.
    """

    source_id: str
    last_synced_block: int = 0
    last_backfill_block: int | None = None
    updated_at: float = field(default_factory=time.time)

    def start_block(self, cold_start_block: int) -> int:
        """First block the next run must fetch for this source."""
        if self.last_synced_block == 0:
            return cold_start_block
        return self.last_synced_block + 1


# === Persistence ===


@dataclass(slots=True)
class FlushResult:
    """Outcome of draining buffered records into the store."""

    inserted: int = 0
    duplicates: int = 0
    failed: int = 0  # records re-queued because their batch failed
