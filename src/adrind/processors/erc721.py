"""ERC-721 handlers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from adrind.decoding.decoder import DecodedEvent
from adrind.decoding.specs import EventRegistry
from adrind.processors.custom import custom_events_handler, handlers_for, insert_handler
from adrind.processors.records import event_record, to_db_str

if TYPE_CHECKING:
    from adrind.sources import Handler, Source

TRANSFERS_TABLE = "erc721_transfers"
APPROVALS_TABLE = "erc721_approvals"
APPROVALS_FOR_ALL_TABLE = "erc721_approvals_for_all"
CUSTOM_TABLE = "erc721_custom_events"


def transfer_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    return event_record(
        event,
        source,
        from_address=event["from"],
        to_address=event["to"],
        token_id=to_db_str(event["tokenId"]),
    )


def approval_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    return event_record(
        event,
        source,
        owner=event["owner"],
        approved=event["approved"],
        token_id=to_db_str(event["tokenId"]),
    )


def approval_for_all_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    return event_record(
        event,
        source,
        owner=event["owner"],
        operator=event["operator"],
        approved=event["approved"],
    )


def erc721_handlers(registry: EventRegistry) -> dict[str, Handler]:
    return handlers_for(
        registry,
        {
            "Transfer": insert_handler(TRANSFERS_TABLE, transfer_record),
            "Approval": insert_handler(APPROVALS_TABLE, approval_record),
            "ApprovalForAll": insert_handler(APPROVALS_FOR_ALL_TABLE, approval_for_all_record),
        },
        default=custom_events_handler(CUSTOM_TABLE),
    )
