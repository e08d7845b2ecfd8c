import pytest

from adrind.core.errors import PersistenceFailure
from adrind.core.models import Checkpoint
from adrind.storage.duckdb_store import DuckDBEventStore


def _transfer(tx: str, log_index: int, value: str = "1") -> dict:
    return {
        "contract_address": "0x" + "aa" * 20,
        "tx_hash": tx,
        "log_index": log_index,
        "block_number": 10,
        "block_timestamp": None,
        "from_address": "0x" + "11" * 20,
        "to_address": "0x" + "22" * 20,
        "value_wei": value,
    }


def _listing(token_id: str, block: int, log_index: int, seller: str) -> dict:
    return {
        "token_id": token_id,
        "seller": seller,
        "price_wei": "100",
        "is_contract_owned": False,
        "is_listed": True,
        "last_event": "Listed",
        "last_tx_hash": "0xt",
        "last_block_number": block,
        "last_log_index": log_index,
    }


@pytest.mark.asyncio
async def test_insert_if_absent_is_idempotent(store: DuckDBEventStore):
    assert await store.insert_if_absent("erc20_transfers", _transfer("0x01", 0))
    assert not await store.insert_if_absent("erc20_transfers", _transfer("0x01", 0, value="999"))
    assert await store.insert_if_absent("erc20_transfers", _transfer("0x01", 1))

    rows = await store.fetch_all("erc20_transfers", order_by=("log_index",))
    assert [(r["tx_hash"], r["log_index"], r["value_wei"]) for r in rows] == [("0x01", 0, "1"), ("0x01", 1, "1")]


@pytest.mark.asyncio
async def test_insert_many_counts_only_new_rows(store: DuckDBEventStore):
    await store.insert_if_absent("erc20_transfers", _transfer("0x01", 0))
    batch = [_transfer("0x01", 0), _transfer("0x02", 0), _transfer("0x02", 0), _transfer("0x03", 5)]

    inserted = await store.insert_many("erc20_transfers", batch)

    assert inserted == 2
    assert await store.count("erc20_transfers") == 3


@pytest.mark.asyncio
async def test_insert_many_list_columns(store: DuckDBEventStore):
    row = {
        "contract_address": "0x" + "aa" * 20,
        "tx_hash": "0x01",
        "log_index": 0,
        "block_number": 1,
        "block_timestamp": None,
        "operator": "0x" + "11" * 20,
        "from_address": "0x" + "11" * 20,
        "to_address": "0x" + "22" * 20,
        "token_ids": ["1", "2"],
        "values": ["10", "20"],
    }
    assert await store.insert_many("erc1155_transfers_batch", [row]) == 1
    (stored,) = await store.fetch_all("erc1155_transfers_batch")
    assert stored["token_ids"] == ["1", "2"]
    assert stored["values"] == ["10", "20"]


@pytest.mark.asyncio
async def test_upsert_keeps_newest_position(store: DuckDBEventStore):
    key = ("token_id",)
    order = ("last_block_number", "last_log_index")

    assert await store.upsert("punk_listings", _listing("7", 10, 2, "0xnew"), conflict_key=key, order_by=order)
    # an older event replayed later must not win
    assert not await store.upsert("punk_listings", _listing("7", 10, 1, "0xold"), conflict_key=key, order_by=order)
    assert not await store.upsert("punk_listings", _listing("7", 9, 50, "0xold"), conflict_key=key, order_by=order)

    (row,) = await store.fetch_all("punk_listings")
    assert row["seller"] == "0xnew"

    assert await store.upsert("punk_listings", _listing("7", 11, 0, "0xnewer"), conflict_key=key, order_by=order)
    (row,) = await store.fetch_all("punk_listings")
    assert row["seller"] == "0xnewer"
    assert row["last_block_number"] == 11


@pytest.mark.asyncio
async def test_unknown_table_and_column(store: DuckDBEventStore):
    with pytest.raises(PersistenceFailure, match="unknown table"):
        await store.insert_if_absent("nope", _transfer("0x01", 0))
    with pytest.raises(PersistenceFailure, match="unknown columns"):
        await store.insert_if_absent("erc20_transfers", {**_transfer("0x01", 0), "bogus": 1})


@pytest.mark.asyncio
async def test_watermarks_roundtrip(store: DuckDBEventStore):
    assert await store.get_watermark("a") is None
    await store.set_watermark(Checkpoint(source_id="a", last_synced_block=5, updated_at=1.0))
    await store.set_watermark(Checkpoint(source_id="a", last_synced_block=8, last_backfill_block=3, updated_at=2.0))

    cp = await store.get_watermark("a")
    assert cp == Checkpoint(source_id="a", last_synced_block=8, last_backfill_block=3, updated_at=2.0)
    assert [c.source_id for c in await store.list_watermarks()] == ["a"]


@pytest.mark.asyncio
async def test_closed_store_raises():
    store = DuckDBEventStore(":memory:")
    await store.close()
    await store.close()
    with pytest.raises(PersistenceFailure, match="closed"):
        await store.count("erc20_transfers")


@pytest.mark.asyncio
async def test_file_store_persists(tmp_path):
    path = tmp_path / "db" / "adrind.duckdb"
    store = DuckDBEventStore(path)
    await store.insert_if_absent("erc20_transfers", _transfer("0x01", 0))
    await store.close()

    reopened = DuckDBEventStore(path)
    try:
        assert await reopened.count("erc20_transfers") == 1
    finally:
        await reopened.close()


@pytest.mark.asyncio
async def test_protocol_conformance(store: DuckDBEventStore):
    from adrind.clients.rpc import RPC
    from adrind.core.interfaces import IChainClient, IEventStore, IRecordSink
    from adrind.storage.buffer import WriteBehindBuffer

    rpc = RPC("http://localhost:8545")
    try:
        assert isinstance(rpc, IChainClient)
    finally:
        await rpc.aclose()
    assert isinstance(store, IEventStore)
    assert isinstance(WriteBehindBuffer(store), IRecordSink)
