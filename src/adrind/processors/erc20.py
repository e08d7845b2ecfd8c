"""ERC-20 handlers (transfers, approvals, contract-specific events)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from adrind.decoding.decoder import DecodedEvent
from adrind.decoding.specs import EventRegistry
from adrind.processors.custom import custom_events_handler, handlers_for, insert_handler
from adrind.processors.records import event_record, to_db_str

if TYPE_CHECKING:
    from adrind.sources import Handler, Source

TRANSFERS_TABLE = "erc20_transfers"
APPROVALS_TABLE = "erc20_approvals"
CUSTOM_TABLE = "erc20_custom_events"


def transfer_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    return event_record(
        event,
        source,
        from_address=event["from"],
        to_address=event["to"],
        value_wei=to_db_str(event["value"]),
    )


def approval_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    return event_record(
        event,
        source,
        owner=event["owner"],
        spender=event["spender"],
        value_wei=to_db_str(event["value"]),
    )


def erc20_handlers(registry: EventRegistry) -> dict[str, Handler]:
    return handlers_for(
        registry,
        {
            "Transfer": insert_handler(TRANSFERS_TABLE, transfer_record),
            "Approval": insert_handler(APPROVALS_TABLE, approval_record),
        },
        default=custom_events_handler(CUSTOM_TABLE),
    )
