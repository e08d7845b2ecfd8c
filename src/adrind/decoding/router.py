"""Decode & route: map a raw log to its owning source and decoded event."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

from adrind.core.errors import MalformedLog
from adrind.core.models import RawLog
from adrind.decoding.decoder import DecodedEvent, decode_event

if TYPE_CHECKING:
    from adrind.sources import Source, SourceRegistry

logger = logging.getLogger(__name__)


class RoutedEvent(NamedTuple):
    source: Source
    event: DecodedEvent


@dataclass(kw_only=True)
class RouteStats:
    """Counters for logs that did not produce an event."""

    routed: int = 0
    unrouted: int = 0  # no source owns the address
    unknown: int = 0  # topic0 not in the source's registry
    malformed: int = 0


class LogRouter:
    """Route raw logs to sources by address (case-insensitive) and decode them."""

    def __init__(self, sources: SourceRegistry) -> None:
        self._sources = sources
        self.stats = RouteStats()

    def route(self, log: RawLog) -> RoutedEvent | None:
        source = self._sources.by_address(log.address)
        if source is None:
            self.stats.unrouted += 1
            return None

        try:
            event = decode_event(
                topics=log.topics,
                data=log.data_bytes(),
                meta=log.meta(),
                registry=source.registry,
            )
        except (MalformedLog, ValueError) as e:
            self.stats.malformed += 1
            logger.warning("Dropping malformed log for %s: %s", source.id, e)
            return None

        if event is None:
            self.stats.unknown += 1
            return None

        self.stats.routed += 1
        return RoutedEvent(source, event)
