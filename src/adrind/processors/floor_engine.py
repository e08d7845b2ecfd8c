"""FloorEngine marketplace handlers.

Every marketplace event is appended to its event table and also folded into
the `punk_listings` derived-state table (one row per token). The upsert is
ordered by (last_block_number, last_log_index), so replaying an older event
never overwrites newer listing state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from adrind.core.interfaces import IRecordSink
from adrind.decoding.decoder import DecodedEvent
from adrind.decoding.specs import EventRegistry
from adrind.processors.custom import handlers_for, insert_handler
from adrind.processors.records import EVENT_KEY, event_record, to_db_str

if TYPE_CHECKING:
    from adrind.sources import Handler, Source

LISTING_EVENTS_TABLE = "listing_events"
TRADE_EVENTS_TABLE = "trade_events"
SWEEP_EVENTS_TABLE = "sweep_events"
CONFIG_EVENTS_TABLE = "engine_config_events"
LISTINGS_TABLE = "punk_listings"

LISTING_KEY = ("token_id",)
LISTING_ORDER = ("last_block_number", "last_log_index")

# event name -> (old value arg, new value arg)
CONFIG_EVENT_FIELDS: dict[str, tuple[str | None, str]] = {
    "PremiumUpdated": ("oldPremiumBps", "newPremiumBps"),
    "MaxBuyPriceUpdated": ("oldMaxBuyPrice", "newMaxBuyPrice"),
    "CallerRewardModeUpdated": (None, "isPercentage"),
    "CallerRewardBpsUpdated": ("oldBps", "newBps"),
    "CallerRewardFixedUpdated": ("oldFixed", "newFixed"),
    "OwnershipTransferred": ("previousOwner", "newOwner"),
}


# ---------------------------------------------------------------------------
# Derived listing state
# ---------------------------------------------------------------------------


def listing_state(
    event: DecodedEvent,
    *,
    seller: str,
    price_wei: str,
    is_contract_owned: bool,
    is_listed: bool,
) -> dict[str, Any]:
    return {
        "token_id": to_db_str(event["tokenId"]),
        "seller": seller,
        "price_wei": price_wei,
        "is_contract_owned": is_contract_owned,
        "is_listed": is_listed,
        "last_event": event.name,
        "last_tx_hash": event.tx_hash,
        "last_block_number": event.block_number,
        "last_log_index": event.log_index,
    }


async def _record_and_upsert(
    sink: IRecordSink,
    table: str,
    record: dict[str, Any],
    state: dict[str, Any],
) -> None:
    await sink.insert_if_absent(table, record, unique_key=EVENT_KEY)
    await sink.upsert(LISTINGS_TABLE, state, conflict_key=LISTING_KEY, order_by=LISTING_ORDER)


# ---------------------------------------------------------------------------
# Marketplace events
# ---------------------------------------------------------------------------


async def handle_listed(event: DecodedEvent, source: Source, sink: IRecordSink) -> None:
    price = to_db_str(event["price"])
    record = event_record(
        event,
        source,
        event_type="Listed",
        token_id=to_db_str(event["tokenId"]),
        seller=event["seller"],
        price_wei=price,
        is_contract_owned=event["isContractOwned"],
    )
    state = listing_state(
        event,
        seller=event["seller"],
        price_wei=price,
        is_contract_owned=event["isContractOwned"],
        is_listed=True,
    )
    await _record_and_upsert(sink, LISTING_EVENTS_TABLE, record, state)


async def handle_cancelled(event: DecodedEvent, source: Source, sink: IRecordSink) -> None:
    record = event_record(
        event,
        source,
        event_type="Cancelled",
        token_id=to_db_str(event["tokenId"]),
        seller=event["seller"],
        price_wei=None,
        is_contract_owned=None,
    )
    state = listing_state(event, seller=event["seller"], price_wei="0", is_contract_owned=False, is_listed=False)
    await _record_and_upsert(sink, LISTING_EVENTS_TABLE, record, state)


async def handle_bought(event: DecodedEvent, source: Source, sink: IRecordSink) -> None:
    record = event_record(
        event,
        source,
        token_id=to_db_str(event["tokenId"]),
        buyer=event["buyer"],
        seller=event["seller"],
        price_wei=to_db_str(event["price"]),
        is_contract_owned=event["isContractOwned"],
    )
    # the buyer is the new holder of the token
    state = listing_state(event, seller=event["buyer"], price_wei="0", is_contract_owned=False, is_listed=False)
    await _record_and_upsert(sink, TRADE_EVENTS_TABLE, record, state)


async def handle_floor_sweep(event: DecodedEvent, source: Source, sink: IRecordSink) -> None:
    relist_price = to_db_str(event["relistPrice"])
    record = event_record(
        event,
        source,
        token_id=to_db_str(event["tokenId"]),
        buy_price_wei=to_db_str(event["buyPrice"]),
        relist_price_wei=relist_price,
        caller=event["caller"],
        caller_reward_wei=to_db_str(event["callerReward"]),
    )
    # swept tokens are relisted by the engine itself
    state = listing_state(
        event,
        seller=source.address,
        price_wei=relist_price,
        is_contract_owned=True,
        is_listed=True,
    )
    await _record_and_upsert(sink, SWEEP_EVENTS_TABLE, record, state)


# ---------------------------------------------------------------------------
# Configuration events
# ---------------------------------------------------------------------------


def config_event_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    old_arg, new_arg = CONFIG_EVENT_FIELDS[event.name]
    return event_record(
        event,
        source,
        event_type=event.name,
        old_value=to_db_str(event[old_arg]) if old_arg else None,
        new_value=to_db_str(event[new_arg]),
    )


def floor_engine_handlers(registry: EventRegistry) -> dict[str, Handler]:
    config_handler = insert_handler(CONFIG_EVENTS_TABLE, config_event_record)
    return handlers_for(
        registry,
        {
            "Listed": handle_listed,
            "Cancelled": handle_cancelled,
            "Bought": handle_bought,
            "FloorSweep": handle_floor_sweep,
            **{name: config_handler for name in CONFIG_EVENT_FIELDS},
        },
    )
