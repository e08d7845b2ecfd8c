"""Relational schema for event tables, derived state and watermarks (DuckDB DDL).

Every append-only table is keyed by (tx_hash, log_index); big integers are
VARCHAR, arrays are VARCHAR[].
"""

from __future__ import annotations

from dataclasses import dataclass

EVENT_COLUMNS: tuple[tuple[str, str], ...] = (
    ("contract_address", "VARCHAR NOT NULL"),
    ("tx_hash", "VARCHAR NOT NULL"),
    ("log_index", "BIGINT NOT NULL"),
    ("block_number", "BIGINT NOT NULL"),
    ("block_timestamp", "BIGINT"),
)

CUSTOM_COLUMNS: tuple[tuple[str, str], ...] = (
    ("event_name", "VARCHAR NOT NULL"),
    ("event_data", "VARCHAR"),  # JSON document
)


@dataclass(frozen=True)
class TableSpec:
    name: str
    columns: tuple[tuple[str, str], ...]
    primary_key: tuple[str, ...] = ("tx_hash", "log_index")
    append_only: bool = True

    @property
    def column_names(self) -> list[str]:
        return [c for c, _ in self.columns]

    def ddl(self) -> str:
        cols = [f'"{name}" {typ}' for name, typ in self.columns]
        pk = ", ".join(f'"{c}"' for c in self.primary_key)
        body = ",\n  ".join([*cols, f"PRIMARY KEY ({pk})"])
        return f"CREATE TABLE IF NOT EXISTS {self.name} (\n  {body}\n)"


def event_table(name: str, *columns: tuple[str, str]) -> TableSpec:
    return TableSpec(name=name, columns=EVENT_COLUMNS + tuple(columns))


def custom_table(name: str) -> TableSpec:
    return event_table(name, *CUSTOM_COLUMNS)


TABLES: tuple[TableSpec, ...] = (
    # FloorEngine
    event_table(
        "listing_events",
        ("event_type", "VARCHAR NOT NULL"),
        ("token_id", "VARCHAR NOT NULL"),
        ("seller", "VARCHAR"),
        ("price_wei", "VARCHAR"),
        ("is_contract_owned", "BOOLEAN"),
    ),
    event_table(
        "trade_events",
        ("token_id", "VARCHAR NOT NULL"),
        ("buyer", "VARCHAR"),
        ("seller", "VARCHAR"),
        ("price_wei", "VARCHAR"),
        ("is_contract_owned", "BOOLEAN"),
    ),
    event_table(
        "sweep_events",
        ("token_id", "VARCHAR NOT NULL"),
        ("buy_price_wei", "VARCHAR"),
        ("relist_price_wei", "VARCHAR"),
        ("caller", "VARCHAR"),
        ("caller_reward_wei", "VARCHAR"),
    ),
    event_table(
        "engine_config_events",
        ("event_type", "VARCHAR NOT NULL"),
        ("old_value", "VARCHAR"),
        ("new_value", "VARCHAR"),
    ),
    TableSpec(
        name="punk_listings",
        columns=(
            ("token_id", "VARCHAR NOT NULL"),
            ("seller", "VARCHAR"),
            ("price_wei", "VARCHAR"),
            ("is_contract_owned", "BOOLEAN"),
            ("is_listed", "BOOLEAN"),
            ("last_event", "VARCHAR"),
            ("last_tx_hash", "VARCHAR"),
            ("last_block_number", "BIGINT"),
            ("last_log_index", "BIGINT"),
        ),
        primary_key=("token_id",),
        append_only=False,
    ),
    # ERC-20
    event_table(
        "erc20_transfers",
        ("from_address", "VARCHAR"),
        ("to_address", "VARCHAR"),
        ("value_wei", "VARCHAR"),
    ),
    event_table(
        "erc20_approvals",
        ("owner", "VARCHAR"),
        ("spender", "VARCHAR"),
        ("value_wei", "VARCHAR"),
    ),
    custom_table("erc20_custom_events"),
    # ERC-721
    event_table(
        "erc721_transfers",
        ("from_address", "VARCHAR"),
        ("to_address", "VARCHAR"),
        ("token_id", "VARCHAR"),
    ),
    event_table(
        "erc721_approvals",
        ("owner", "VARCHAR"),
        ("approved", "VARCHAR"),
        ("token_id", "VARCHAR"),
    ),
    event_table(
        "erc721_approvals_for_all",
        ("owner", "VARCHAR"),
        ("operator", "VARCHAR"),
        ("approved", "BOOLEAN"),
    ),
    custom_table("erc721_custom_events"),
    # ERC-1155
    event_table(
        "erc1155_transfers_single",
        ("operator", "VARCHAR"),
        ("from_address", "VARCHAR"),
        ("to_address", "VARCHAR"),
        ("token_id", "VARCHAR"),
        ("value", "VARCHAR"),
    ),
    event_table(
        "erc1155_transfers_batch",
        ("operator", "VARCHAR"),
        ("from_address", "VARCHAR"),
        ("to_address", "VARCHAR"),
        ("token_ids", "VARCHAR[]"),
        ("values", "VARCHAR[]"),
    ),
    event_table(
        "erc1155_approvals_for_all",
        ("account", "VARCHAR"),
        ("operator", "VARCHAR"),
        ("approved", "BOOLEAN"),
    ),
    event_table(
        "erc1155_uri_updates",
        ("token_id", "VARCHAR"),
        ("uri", "VARCHAR"),
    ),
    custom_table("erc1155_custom_events"),
    # Custom contracts
    custom_table("traits_extensions_events"),
    custom_table("shop_events"),
)

SYNC_STATE_DDL = """
CREATE TABLE IF NOT EXISTS sync_state (
  source_id VARCHAR PRIMARY KEY,
  last_synced_block BIGINT NOT NULL DEFAULT 0,
  last_backfill_block BIGINT,
  updated_at DOUBLE NOT NULL
)
"""


def all_ddl(tables: tuple[TableSpec, ...] = TABLES) -> list[str]:
    return [t.ddl() for t in tables] + [SYNC_STATE_DDL]
