import asyncio
from dataclasses import replace
from unittest.mock import patch

import pytest
from conftest import ALICE, BOB, SHOP, TOKEN, FakeChain, RecordingSleep, make_log

from adrind.core.config import BufferConfig, FailurePolicy, RunnerConfig, SyncConfig
from adrind.core.errors import PersistenceFailure, TransportError
from adrind.core.models import Checkpoint
from adrind.core.use_cases.sync import SyncService
from adrind.orchestration.runner import SyncComponents, SyncRunner, sync_once
from adrind.sources import SourceRegistry
from adrind.sources.catalog import adrian_shop_source, adrian_token_source
from adrind.storage.buffer import WriteBehindBuffer
from adrind.storage.checkpoints import CheckpointStore
from adrind.storage.duckdb_store import DuckDBEventStore


def _shop(cold_start_block: int = 100):
    return adrian_shop_source(address=SHOP, cold_start_block=cold_start_block)


def _status_log(block: int, log_index: int = 0):
    return make_log(
        _shop().registry,
        "ShopGlobalStatusChanged",
        {"active": True},
        address=SHOP,
        block=block,
        log_index=log_index,
    )


def _transfer_log(block: int):
    return make_log(
        adrian_token_source().registry,
        "Transfer",
        {"from": ALICE, "to": BOB, "value": block},
        address=TOKEN,
        block=block,
    )


def _service(chain, store, sources, *, sink=None, sleep=None, **config) -> SyncService:
    config.setdefault("inter_group_delay_s", 0)
    return SyncService(
        chain,
        sources,
        CheckpointStore(store),
        sink or store,
        config=SyncConfig(**config),
        sleep=sleep or RecordingSleep(),
    )


async def _checkpoint(store: DuckDBEventStore, source_id: str) -> int:
    return (await CheckpointStore(store).load(source_id)).last_synced_block


# ---------------------------------------------------------------------------
# end-to-end scenarios
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_single_source_cold_start(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100), _status_log(103), _status_log(105)], head=105)
    service = _service(chain, store, SourceRegistry([_shop()]), window_size=2)

    summary = await service.run()

    assert chain.windows() == [(100, 101), (102, 103), (104, 105)]
    assert summary.processed == 3
    assert await store.count("shop_events") == 3
    assert await _checkpoint(store, "adrian_shop") == 105
    assert summary.checkpoints == {"adrian_shop": 105}
    assert (summary.from_block, summary.to_block) == (100, 105)
    assert not summary.has_more


@pytest.mark.asyncio
async def test_failed_window_is_skipped_and_counted(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100), _status_log(103), _status_log(105)], head=105)
    chain.failing.add(102)
    sleep = RecordingSleep()
    service = _service(chain, store, SourceRegistry([_shop()]), sleep=sleep, window_size=2, max_attempts=3)

    summary = await service.run()

    assert summary.failed_windows == 1
    assert summary.processed == 2
    assert await store.count("shop_events") == 2
    # fail-open: the failed window is lost and the checkpoint moves past it
    assert await _checkpoint(store, "adrian_shop") == 105
    assert not summary.has_more
    assert sleep.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_warm_source_excluded_from_earlier_windows(store: DuckDBEventStore):
    sources = SourceRegistry([adrian_token_source(address=TOKEN, cold_start_block=0), _shop(cold_start_block=0)])
    await CheckpointStore(store).advance("adrian_shop", 50)
    chain = FakeChain([_transfer_log(5), _status_log(50), _status_log(55), _transfer_log(60)], head=60)
    service = _service(chain, store, sources, window_size=10, fan_out=3)

    summary = await service.run()

    assert summary.from_block == 0
    assert chain.windows()[0] == (0, 9)
    for addresses, _, to_block in chain.calls:
        assert (SHOP in addresses) == (to_block >= 51)
        assert TOKEN in addresses
    assert SHOP not in chain.addresses_for(40)
    assert SHOP in chain.addresses_for(50)
    # block 50 was already covered by the warm checkpoint
    assert await store.count("shop_events") == 1
    assert await store.count("erc20_transfers") == 2
    assert summary.processed_by_source == {"adrian_token": 2, "adrian_shop": 1}
    assert await _checkpoint(store, "adrian_shop") == 60
    assert await _checkpoint(store, "adrian_token") == 60


@pytest.mark.asyncio
async def test_replay_after_checkpoint_loss_is_idempotent(store: DuckDBEventStore):
    logs = [_status_log(100), _status_log(103), _status_log(105)]
    sources = SourceRegistry([_shop()])
    await _service(FakeChain(logs, head=105), store, sources, window_size=2).run()

    await store.set_watermark(Checkpoint(source_id="adrian_shop", last_synced_block=0))
    summary = await _service(FakeChain(logs, head=105), store, sources, window_size=2).run()

    assert summary.processed == 3
    assert await store.count("shop_events") == 3


@pytest.mark.asyncio
async def test_caught_up_run_does_not_fetch(store: DuckDBEventStore):
    sources = SourceRegistry([_shop()])
    await CheckpointStore(store).advance("adrian_shop", 105)
    chain = FakeChain(head=105)

    summary = await _service(chain, store, sources).run()

    assert chain.calls == []
    assert summary.windows == 0
    assert summary.caught_up


@pytest.mark.asyncio
async def test_has_more_uses_fresh_head(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100)], head=110)
    chain.heads = [105]
    summary = await _service(chain, store, SourceRegistry([_shop()]), window_size=2).run()

    assert summary.to_block == 105
    assert summary.has_more


@pytest.mark.asyncio
async def test_future_cold_start_does_not_report_more(store: DuckDBEventStore):
    sources = SourceRegistry([adrian_token_source(address=TOKEN, cold_start_block=0), _shop(cold_start_block=1000)])
    chain = FakeChain([_transfer_log(3)], head=20)

    summary = await _service(chain, store, sources, window_size=10).run()

    assert all(SHOP not in addresses for addresses, _, _ in chain.calls)
    assert await _checkpoint(store, "adrian_shop") == 0
    assert await _checkpoint(store, "adrian_token") == 20
    assert not summary.has_more


# ---------------------------------------------------------------------------
# policies and limits
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fail_closed_stops_before_failed_window(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100), _status_log(103), _status_log(105)], head=105)
    chain.failing.add(102)
    service = _service(
        chain,
        store,
        SourceRegistry([_shop()]),
        window_size=2,
        fan_out=3,
        max_attempts=1,
        failure_policy=FailurePolicy.FAIL_CLOSED,
    )

    summary = await service.run()

    assert summary.stopped_early
    assert summary.processed == 1
    assert await _checkpoint(store, "adrian_shop") == 101
    assert summary.has_more


@pytest.mark.asyncio
async def test_max_groups_bounds_a_run(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100), _status_log(103)], head=105)
    service = _service(chain, store, SourceRegistry([_shop()]), window_size=2, fan_out=1, max_groups=1)

    summary = await service.run()

    assert chain.windows() == [(100, 101)]
    assert summary.stopped_early
    assert summary.has_more
    assert await _checkpoint(store, "adrian_shop") == 101


@pytest.mark.asyncio
async def test_max_groups_reached_on_last_group_is_a_normal_finish(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100), _status_log(103)], head=105)
    service = _service(chain, store, SourceRegistry([_shop()]), window_size=2, fan_out=3, max_groups=1)

    summary = await service.run()

    assert summary.groups == 1
    assert not summary.stopped_early
    assert not summary.has_more
    assert await _checkpoint(store, "adrian_shop") == 105


@pytest.mark.asyncio
async def test_inter_group_delay(store: DuckDBEventStore):
    sleep = RecordingSleep()
    chain = FakeChain(head=105)
    service = _service(
        chain, store, SourceRegistry([_shop()]), sleep=sleep, window_size=2, fan_out=1, inter_group_delay_s=0.25
    )
    await service.run()
    # no pause after the last group
    assert sleep.delays == [0.25, 0.25]


@pytest.mark.asyncio
async def test_head_unavailable(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100)], head=105)
    chain.head_error = TransportError("down")
    summary = await _service(chain, store, SourceRegistry([_shop()]), max_attempts=2).run()

    assert summary.head_unavailable
    assert summary.has_more
    assert chain.calls == []
    assert await _checkpoint(store, "adrian_shop") == 0


@pytest.mark.asyncio
async def test_malformed_and_unknown_logs_are_counted(store: DuckDBEventStore):
    good = _status_log(100)
    bad = make_log(
        _shop().registry, "ShopItemStatusChanged", {"assetId": 1, "active": True}, address=SHOP, block=101
    )
    bad = replace(bad, data_hex="0x01")
    unknown = make_log(
        adrian_token_source().registry,
        "Staked",
        {"staker": ALICE, "amount": 1},
        address=SHOP,
        block=102,
    )
    chain = FakeChain([good, bad, unknown], head=105)

    summary = await _service(chain, store, SourceRegistry([_shop()]), window_size=10).run()

    assert summary.processed == 1
    assert summary.malformed_logs == 1
    assert summary.unknown_logs == 1
    assert await _checkpoint(store, "adrian_shop") == 105


# ---------------------------------------------------------------------------
# write-behind buffer
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_buffer_is_flushed_before_checkpoint(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100), _status_log(105)], head=105)
    buffer = WriteBehindBuffer(store)
    summary = await _service(chain, store, SourceRegistry([_shop()]), sink=buffer, window_size=2).run()

    assert summary.processed == 2
    assert await store.count("shop_events") == 2
    assert buffer.stats().total_events == 0
    assert await _checkpoint(store, "adrian_shop") == 105


class BrokenInsertStore:
    def __init__(self, store: DuckDBEventStore) -> None:
        self.store = store

    async def insert_many(self, table, records, *, unique_key=("tx_hash", "log_index")):
        raise PersistenceFailure("disk full")

    async def upsert(self, table, record, *, conflict_key, order_by=()):
        return await self.store.upsert(table, record, conflict_key=conflict_key, order_by=order_by)


@pytest.mark.asyncio
async def test_checkpoint_held_back_when_flush_fails(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100), _status_log(105)], head=105)
    buffer = WriteBehindBuffer(BrokenInsertStore(store))
    summary = await _service(chain, store, SourceRegistry([_shop()]), sink=buffer, window_size=2).run()

    assert summary.processed == 2
    assert await _checkpoint(store, "adrian_shop") == 0
    assert summary.checkpoints == {}
    assert buffer.stats().total_events == 2
    # the stored watermark is still behind the head
    assert summary.has_more


# ---------------------------------------------------------------------------
# runner
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_runner_loops_then_shuts_down(store: DuckDBEventStore):
    chain = FakeChain([_status_log(100)], head=105)
    sources = SourceRegistry([_shop()])
    config = RunnerConfig(
        rpc_url="http://localhost:8545",
        poll_interval_s=0,
        busy_poll_interval_s=0,
        sync=SyncConfig(inter_group_delay_s=0),
    )
    buffer = WriteBehindBuffer(store)
    service = SyncService(chain, sources, CheckpointStore(store), buffer, config=config.sync)
    seen = []
    runner = SyncRunner(
        SyncComponents(client=chain, store=store, buffer=buffer, service=service),
        config,
        on_summary=seen.append,
    )

    runs = await runner.run_forever(asyncio.Event(), max_runs=2)

    assert runs == 2
    assert [s.processed for s in seen] == [1, 0]
    assert chain.closed
    assert not buffer.running


@pytest.mark.asyncio
async def test_sync_once_with_file_store(tmp_path):
    chain = FakeChain([_status_log(100), _status_log(103)], head=105)
    config = RunnerConfig(
        rpc_url="http://localhost:8545",
        db_path=str(tmp_path / "adrind.duckdb"),
        buffer=BufferConfig(enabled=True),
        sync=SyncConfig(window_size=2, inter_group_delay_s=0),
    )
    with patch("adrind.orchestration.runner.RPC", return_value=chain):
        summary = await sync_once(config, sources=SourceRegistry([_shop()]))

    assert summary.processed == 2
    assert chain.closed

    reopened = DuckDBEventStore(config.db_path)
    try:
        assert await reopened.count("shop_events") == 2
        assert (await reopened.get_watermark("adrian_shop")).last_synced_block == 105
    finally:
        await reopened.close()
