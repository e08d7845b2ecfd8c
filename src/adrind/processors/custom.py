"""Generic handler factories.

Most events need no bespoke logic: they land in an append-only table, either
with explicit columns or as `event_name` + JSON `event_data`. These factories
turn a record builder into a `Handler` and assemble capability maps.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from adrind.core.interfaces import IRecordSink
from adrind.decoding.decoder import DecodedEvent
from adrind.decoding.specs import EventRegistry, get_event_registry_names
from adrind.processors.records import EVENT_KEY, custom_event_record

if TYPE_CHECKING:
    from adrind.sources import Handler, Source

RecordBuilder = Callable[[DecodedEvent, "Source"], dict[str, Any]]


def insert_handler(table: str, build: RecordBuilder) -> Handler:
    """Handler that appends one row built by `build` to `table`."""

    async def handle(event: DecodedEvent, source: Source, sink: IRecordSink) -> None:
        await sink.insert_if_absent(table, build(event, source), unique_key=EVENT_KEY)

    handle.__name__ = f"insert_{table}"
    handle.__qualname__ = handle.__name__
    return handle


def custom_events_handler(table: str) -> Handler:
    """Handler storing the event as `event_name` + JSON `event_data`."""
    return insert_handler(table, custom_event_record)


def handlers_for(
    registry: EventRegistry,
    explicit: Mapping[str, Handler],
    *,
    default: Handler | None = None,
) -> dict[str, Handler]:
    """Capability map covering `registry`: explicit handlers first, `default` for the rest.

    Explicit handlers for events the registry does not know are rejected, since
    they could never fire.
    """
    names = get_event_registry_names(registry)
    unknown = sorted(set(explicit) - set(names))
    if unknown:
        raise ValueError(f"handlers given for events not in the registry: {unknown}")

    handlers: dict[str, Handler] = {}
    for name in names:
        if name in explicit:
            handlers[name] = explicit[name]
        elif default is not None:
            handlers[name] = default
    return handlers
