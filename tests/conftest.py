from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from eth_abi import encode
from eth_utils import keccak

from adrind.core.errors import TransportError
from adrind.core.models import RawLog
from adrind.decoding.specs import EventRegistry, find_event_spec
from adrind.storage.duckdb_store import DuckDBEventStore

TOKEN = "0x" + "aa" * 20
SHOP = "0x" + "bb" * 20
ENGINE = "0x" + "cc" * 20
ALICE = "0x" + "11" * 20
BOB = "0x" + "22" * 20


def _topic(value: Any, typ: str, hashed: bool) -> str:
    if hashed:
        raw = keccak(text=value) if isinstance(value, str) else keccak(primitive=value)
        return "0x" + raw.hex()
    return "0x" + encode([typ], [value]).hex()


def make_log(
    registry: EventRegistry,
    name: str,
    args: Mapping[str, Any],
    *,
    address: str,
    block: int,
    log_index: int = 0,
    tx_hash: str | None = None,
    block_timestamp: int | None = None,
) -> RawLog:
    """ABI-encode `args` into a RawLog for event `name` of `registry`."""
    spec = find_event_spec(registry, name)
    topics = [spec.topic0] + [_topic(args[tf.name], tf.type, tf.hashed) for tf in spec.topic_fields]
    data = encode([df.type for df in spec.data_fields], [args[df.name] for df in spec.data_fields])
    return RawLog(
        address=address.lower(),
        topics=tuple(topics),
        data_hex="0x" + data.hex(),
        block_number=block,
        tx_hash=tx_hash or f"0x{block:032x}{log_index:032x}",
        log_index=log_index,
        block_timestamp=block_timestamp,
    )


class FakeChain:
    """In-memory chain client: serves `logs` filtered like eth_getLogs."""

    def __init__(self, logs: Sequence[RawLog] = (), head: int = 100) -> None:
        self.logs = list(logs)
        self.head = head
        self.heads: list[int] = []  # successive latest_block() answers, then `head`
        self.failing: set[int] = set()  # window from_blocks that always fail
        self.flaky: dict[int, list[Exception]] = {}  # from_block -> errors raised before success
        self.head_error: Exception | None = None
        self.calls: list[tuple[tuple[str, ...], int, int]] = []
        self.closed = False

    async def get_logs(self, *, addresses: Sequence[str], from_block: int, to_block: int) -> list[RawLog]:
        self.calls.append((tuple(addresses), from_block, to_block))
        if from_block in self.failing:
            raise TransportError(f"boom at {from_block}")
        pending = self.flaky.get(from_block)
        if pending:
            raise pending.pop(0)
        wanted = {a.lower() for a in addresses}
        return [
            log for log in self.logs if log.address in wanted and from_block <= log.block_number <= to_block
        ]

    async def latest_block(self) -> int:
        if self.head_error is not None:
            raise self.head_error
        if self.heads:
            return self.heads.pop(0)
        return self.head

    def windows(self) -> list[tuple[int, int]]:
        return [(a, b) for _, a, b in self.calls]

    def addresses_for(self, from_block: int) -> tuple[str, ...]:
        return next(addrs for addrs, a, _ in self.calls if a == from_block)

    async def aclose(self) -> None:
        self.closed = True


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.get_logs = AsyncMock(return_value=[])
    rpc.latest_block = AsyncMock(return_value=100)
    rpc.aclose = AsyncMock()
    return rpc


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest_asyncio.fixture
async def store():
    s = DuckDBEventStore(":memory:")
    yield s
    await s.close()
