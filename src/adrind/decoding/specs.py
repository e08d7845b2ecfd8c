"""Event specification primitives and registry typing.

Defines lightweight dataclasses to describe how to decode events:
- `TopicFieldSpec` / `DataFieldSpec`: typed sources for indexed topics / data fields
- `EventSpec`: one event rule (topic0, name, fields in ABI order)
- `EventRegistry`: mapping from topic0 → EventSpec
"""

from __future__ import annotations

from dataclasses import dataclass

# ABI base types that are hashed when indexed (their topic holds keccak(value)).
_DYNAMIC_BASES = ("string", "bytes")


def is_dynamic_type(typ: str) -> bool:
    """True for ABI types that cannot be recovered from an indexed topic."""
    if typ.endswith("]") or typ.startswith("("):
        return True
    return typ in _DYNAMIC_BASES


@dataclass(frozen=True)
class TopicFieldSpec:
    """Describe one indexed topic field (by topic index and ABI type)."""

    name: str
    index: int  # 1-based, topic 0 is the signature
    type: str  # e.g., "address", "uint256", "bytes4", "string"

    @property
    def hashed(self) -> bool:
        return is_dynamic_type(self.type)


@dataclass(frozen=True)
class DataFieldSpec:
    """Describe one non-indexed field (position within the ABI-encoded data tuple)."""

    name: str
    position: int
    type: str  # e.g., "uint256", "string", "uint256[]"


@dataclass(frozen=True)
class EventSpec:
    """One event decoding rule."""

    topic0: str
    name: str
    topic_fields: tuple[TopicFieldSpec, ...]
    data_fields: tuple[DataFieldSpec, ...]
    field_order: tuple[str, ...] = ()  # ABI argument order, used for stable output

    def __post_init__(self):
        names = [f.name for f in self.topic_fields] + [f.name for f in self.data_fields]
        if len(set(names)) != len(names):
            raise ValueError(f"{self.name}: duplicate argument names {names}")
        for i, tf in enumerate(self.topic_fields, start=1):
            if tf.index != i:
                raise ValueError(f"{self.name}: topic field {tf.name} has index {tf.index}, expected {i}")
        if len(self.topic_fields) > 3:
            raise ValueError(f"{self.name}: at most 3 indexed arguments are allowed")

    @property
    def topic_count(self) -> int:
        return 1 + len(self.topic_fields)


# The full registry keyed by topic0 (lowercased 0x-hex).
EventRegistry = dict[str, EventSpec]


def get_event_registry_names(registry: EventRegistry) -> list[str]:
    return sorted({spec.name for spec in registry.values()})


def find_event_spec(registry: EventRegistry, name: str) -> EventSpec:
    """Return the spec registered under event `name` (KeyError if absent)."""
    for spec in registry.values():
        if spec.name == name:
            return spec
    raise KeyError(name)
