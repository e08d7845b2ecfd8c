"""ERC-1155 handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from adrind.decoding.decoder import DecodedEvent
from adrind.decoding.specs import EventRegistry
from adrind.processors.custom import custom_events_handler, handlers_for, insert_handler
from adrind.processors.records import event_record, to_db_str, to_db_strs

if TYPE_CHECKING:
    from adrind.sources import Handler, Source

TRANSFERS_SINGLE_TABLE = "erc1155_transfers_single"
TRANSFERS_BATCH_TABLE = "erc1155_transfers_batch"
APPROVALS_FOR_ALL_TABLE = "erc1155_approvals_for_all"
URI_TABLE = "erc1155_uri_updates"
CUSTOM_TABLE = "erc1155_custom_events"


def transfer_single_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    return event_record(
        event,
        source,
        operator=event["operator"],
        from_address=event["from"],
        to_address=event["to"],
        token_id=to_db_str(event["id"]),
        value=to_db_str(event["value"]),
    )


def transfer_batch_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    return event_record(
        event,
        source,
        operator=event["operator"],
        from_address=event["from"],
        to_address=event["to"],
        token_ids=to_db_strs(event["ids"]),
        values=to_db_strs(event["values"]),
    )


def approval_for_all_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    return event_record(
        event,
        source,
        account=event["account"],
        operator=event["operator"],
        approved=event["approved"],
    )


def uri_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    return event_record(event, source, token_id=to_db_str(event["id"]), uri=event["value"])


def erc1155_handlers(registry: EventRegistry) -> dict[str, Handler]:
    return handlers_for(
        registry,
        {
            "TransferSingle": insert_handler(TRANSFERS_SINGLE_TABLE, transfer_single_record),
            "TransferBatch": insert_handler(TRANSFERS_BATCH_TABLE, transfer_batch_record),
            "ApprovalForAll": insert_handler(APPROVALS_FOR_ALL_TABLE, approval_for_all_record),
            "URI": insert_handler(URI_TABLE, uri_record),
        },
        default=custom_events_handler(CUSTOM_TABLE),
    )
