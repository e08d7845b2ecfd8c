import asyncio
from pathlib import Path

import duckdb

from adrind.core.config import RunnerConfig, SyncConfig
from adrind.log_setup import configure_logging
from adrind.orchestration.runner import sync_once
from adrind.sources.catalog import default_sources

EXAMPLES_ROOT = Path(__file__).parent
assert EXAMPLES_ROOT.name == "examples"
OUT_ROOT = EXAMPLES_ROOT.parent / "data_examples"

config = RunnerConfig(
    rpc_url="https://base-rpc.publicnode.com",
    db_path=str(OUT_ROOT / "adrind.duckdb"),
    sync=SyncConfig(
        window_size=500,
        fan_out=3,
        checkpoint_every=10,
        max_groups=20,  # keep the demo short; rerun to continue from the checkpoint
    ),
)

# FloorEngine and the ADRIAN token only, starting recently
sources = default_sources(
    {"floor_engine": 33_500_000, "adrian_token": 33_500_000},
    only=["floor_engine", "adrian_token"],
)


async def main():
    summary = await sync_once(config, sources=sources)
    print(f"synced [{summary.from_block}, {summary.to_block}]: {summary.processed} events, has_more={summary.has_more}")
    print(summary.processed_by_source)

    con = duckdb.connect(config.db_path, read_only=True)
    print(con.execute("SELECT source_id, last_synced_block FROM sync_state ORDER BY source_id").fetchall())

    q = """
    SELECT token_id, seller, price_wei, last_event, last_block_number
    FROM punk_listings
    WHERE is_listed
    ORDER BY CAST(price_wei AS HUGEINT)
    LIMIT 10
    """
    for row in con.execute(q).fetchall():
        print(row)

    q = """
    SELECT count(*), count(DISTINCT from_address)
    FROM erc20_transfers
    """
    print(con.execute(q).fetchone())
    con.close()


configure_logging("INFO")
asyncio.run(main())
