"""Event processor dispatch: decoded event → the source's handler → sink."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field

from adrind.core.errors import PersistenceError
from adrind.core.interfaces import IRecordSink
from adrind.decoding.decoder import DecodedEvent
from adrind.sources import Source

logger = logging.getLogger(__name__)


@dataclass(kw_only=True)
class DispatchStats:
    dispatched: int = 0
    failures: int = 0
    by_source: dict[str, int] = field(default_factory=lambda: defaultdict(int))


class EventDispatcher:
    """Invoke `source.handlers[event.name]` and isolate its failures.

    A failing handler never propagates: the event is logged and dropped, the
    caller moves on to the next one.
    """

    def __init__(self, sink: IRecordSink) -> None:
        self._sink = sink
        self.stats = DispatchStats()

    async def dispatch(self, source: Source, event: DecodedEvent) -> bool:
        handler = source.handlers.get(event.name)
        if handler is None:
            # sources are validated to cover their registry; this is a wiring bug
            logger.error("No handler for %s.%s", source.id, event.name)
            self.stats.failures += 1
            return False

        try:
            await handler(event, source, self._sink)
        except PersistenceError as e:
            self.stats.failures += 1
            logger.error(
                "Failed to persist %s.%s (tx=%s log_index=%s): %s",
                source.id,
                event.name,
                event.tx_hash,
                event.log_index,
                e,
            )
            return False
        except Exception:
            self.stats.failures += 1
            logger.exception(
                "Handler crashed for %s.%s (tx=%s log_index=%s)",
                source.id,
                event.name,
                event.tx_hash,
                event.log_index,
            )
            return False

        self.stats.dispatched += 1
        self.stats.by_source[source.id] += 1
        return True
