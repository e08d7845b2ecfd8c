"""Record builders shared by event handlers.

Storage conventions:
- addresses are lowercased
- uint256 and other big integers are decimal strings (exact, no overflow)
- arrays are lists of strings
- custom events keep their arguments as a JSON document
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from adrind.decoding.decoder import DecodedEvent

if TYPE_CHECKING:
    from adrind.sources import Source

EVENT_KEY = ("tx_hash", "log_index")


def to_db_str(value: Any) -> str | None:
    """Big integer (or anything) → string, keeping None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_db_strs(values: list[Any]) -> list[str]:
    return [str(v) for v in values]


def jsonable(value: Any) -> Any:
    """Convert decoded values to JSON-safe ones (ints become strings)."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, list):
        return [jsonable(v) for v in value]
    return value


def base_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    """Columns present on every append-only event row."""
    return {
        "contract_address": source.address,
        "tx_hash": event.tx_hash,
        "log_index": event.log_index,
        "block_number": event.block_number,
        "block_timestamp": event.meta.block_timestamp,
    }


def event_record(event: DecodedEvent, source: Source, **fields: Any) -> dict[str, Any]:
    return {**base_record(event, source), **fields}


def custom_event_record(event: DecodedEvent, source: Source) -> dict[str, Any]:
    """Generic row: event name plus all arguments serialized as JSON."""
    payload = {name: jsonable(value) for name, value in event.args.items()}
    return event_record(
        event,
        source,
        event_name=event.name,
        event_data=json.dumps(payload, separators=(",", ":")),
    )
