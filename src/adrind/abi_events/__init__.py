"""Build event registries from ABI JSON using pydantic models."""

import json
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Any, Literal

from eth_utils import keccak
from pydantic import BaseModel

from adrind.decoding.registry import add_event_spec
from adrind.decoding.specs import DataFieldSpec, EventRegistry, EventSpec, TopicFieldSpec


class AbiInput(BaseModel):
    indexed: bool = False
    internalType: str | None = None
    name: str
    type: str
    components: Sequence["AbiInput"] | None = None

    def canonical_type(self) -> str:
        """ABI type as used in signatures; tuples expand to their component types."""
        if self.type.startswith("tuple"):
            inner = ",".join(c.canonical_type() for c in self.components or ())
            return f"({inner}){self.type[len('tuple'):]}"
        return self.type


AbiInput.model_rebuild()


class AbiEvent(BaseModel):
    anonymous: bool = False
    inputs: Sequence[AbiInput]
    name: str
    type: Literal["event"]


def get_event_signature(event: AbiEvent) -> str:
    return f"{event.name}({','.join(event_input.canonical_type() for event_input in event.inputs)})"


def get_event_topic0(event: AbiEvent) -> str:
    return "0x" + keccak(text=get_event_signature(event)).hex()


def get_event_topic_field_specs(event: AbiEvent) -> tuple[TopicFieldSpec, ...]:
    return tuple(
        TopicFieldSpec(event_input.name, event_input_idx + 1, event_input.canonical_type())
        for event_input_idx, event_input in enumerate(
            [event_input for event_input in event.inputs if event_input.indexed]
        )
    )


def get_event_data_field_specs(event: AbiEvent) -> tuple[DataFieldSpec, ...]:
    return tuple(
        DataFieldSpec(event_input.name, event_input_idx, event_input.canonical_type())
        for event_input_idx, event_input in enumerate(
            [event_input for event_input in event.inputs if not event_input.indexed]
        )
    )


def get_event_spec(event: AbiEvent) -> EventSpec:
    return EventSpec(
        topic0=get_event_topic0(event),
        name=event.name,
        topic_fields=get_event_topic_field_specs(event),
        data_fields=get_event_data_field_specs(event),
        field_order=tuple(event_input.name for event_input in event.inputs),
    )


AbiJson = Iterable[dict[str, Any]]
AbiSpec = AbiJson | Path


def _load_abi(abi: AbiSpec) -> AbiJson:
    if isinstance(abi, Path):
        return json.loads(abi.read_text())
    return abi


def get_events_from_abi(abi: AbiSpec) -> dict[str, AbiEvent]:
    """Parse the non-anonymous events of an ABI, keyed by event name."""
    abi = _load_abi(abi)
    events = (AbiEvent.model_validate(entry) for entry in abi if entry.get("type") == "event")
    return {event.name: event for event in events if not event.anonymous}


def make_event_registry_from_events(events: Iterable[AbiEvent]) -> EventRegistry:
    reg: EventRegistry = {}

    for event in events:
        add_event_spec(
            reg,
            get_event_spec(event),
        )

    return reg


def make_event_registry_from_abi(abi: AbiSpec) -> EventRegistry:
    return make_event_registry_from_events(get_events_from_abi(abi).values())
