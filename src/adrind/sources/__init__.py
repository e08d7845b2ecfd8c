"""Source registry: the static set of contracts whose logs are ingested.

Each `Source` binds an address, a cold-start height, an `EventRegistry` used
by the decoder, and a capability map `{event_name -> handler}`. Every event of
the registry must have a handler; this is checked when the source is built.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from adrind.core.interfaces import IRecordSink
from adrind.decoding.decoder import DecodedEvent
from adrind.decoding.specs import EventRegistry, get_event_registry_names

Handler = Callable[[DecodedEvent, "Source", IRecordSink], Awaitable[None]]


@dataclass(frozen=True)
class Source:
    """One ingested contract."""

    id: str
    display_name: str
    address: str
    cold_start_block: int
    registry: EventRegistry = field(repr=False, compare=False)
    handlers: Mapping[str, Handler] = field(repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("source id must not be empty")
        if self.cold_start_block < 0:
            raise ValueError(f"{self.id}: cold_start_block must be >= 0")
        object.__setattr__(self, "address", self.address.lower())
        object.__setattr__(self, "handlers", MappingProxyType(dict(self.handlers)))

        missing = [name for name in get_event_registry_names(self.registry) if name not in self.handlers]
        if missing:
            raise ValueError(f"{self.id}: no handler for events {missing}")

    @property
    def event_names(self) -> list[str]:
        return get_event_registry_names(self.registry)


class SourceRegistry:
    """Ordered, immutable collection of sources with case-insensitive address lookup."""

    def __init__(self, sources: Iterable[Source]) -> None:
        self._by_id: dict[str, Source] = {}
        self._by_address: dict[str, Source] = {}
        for source in sources:
            if source.id in self._by_id:
                raise ValueError(f"duplicate source id {source.id!r}")
            if source.address in self._by_address:
                other = self._by_address[source.address]
                raise ValueError(f"{source.id} and {other.id} share address {source.address}")
            self._by_id[source.id] = source
            self._by_address[source.address] = source
        if not self._by_id:
            raise ValueError("at least one source is required")

    def __iter__(self) -> Iterator[Source]:
        return iter(self._by_id.values())

    def __len__(self) -> int:
        return len(self._by_id)

    def get(self, source_id: str) -> Source:
        return self._by_id[source_id]

    def by_address(self, address: str) -> Source | None:
        return self._by_address.get(address.lower())

    @property
    def addresses(self) -> list[str]:
        return list(self._by_address)


__all__ = ["Handler", "Source", "SourceRegistry"]
