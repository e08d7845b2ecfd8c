"""Generic ABI-driven event decoder.

This module translates raw logs into `DecodedEvent` using an `EventRegistry`
defined by `EventSpec` + (topic|data) field specs.

Outcomes of `decode_event`:
- topic0 not in the registry → ``None`` (expected, every contract emits
  events nobody asked for)
- topic0 known but topics/data do not fit the schema → `MalformedLog`
- otherwise → `DecodedEvent` with arguments keyed by ABI name
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from adrind.core.errors import MalformedLog
from adrind.core.models import Meta
from adrind.decoding.specs import EventRegistry, EventSpec
from adrind.decoding.utils import decode_data_fields, parse_topic_field

# ---------- decoded event ----------


@dataclass(slots=True)
class DecodedEvent:
    """Decoded event: name, log metadata and typed arguments."""

    name: str
    meta: Meta
    args: dict[str, Any]

    @property
    def tx_hash(self) -> str:
        return self.meta.tx_hash

    @property
    def log_index(self) -> int:
        return self.meta.log_index

    @property
    def block_number(self) -> int:
        return self.meta.block_number

    @property
    def position(self) -> tuple[int, int]:
        return (self.meta.block_number, self.meta.log_index)

    def __getitem__(self, key: str) -> Any:
        return self.args[key]


# ---------- helper functions ----------


def _get_spec(topics: Sequence[str], registry: EventRegistry) -> EventSpec | None:
    """Return the spec for topic0, or None when topics are empty or unknown."""
    if not topics:
        return None
    return registry.get(topics[0].lower())


# ---------- main decoder ----------


def decode_event(
    *,
    topics: Sequence[str],
    data: bytes,
    meta: Meta,
    registry: EventRegistry,
) -> DecodedEvent | None:
    """Decode raw log (topics + data) into a `DecodedEvent` or return None if unknown."""
    spec = _get_spec(topics, registry)
    if spec is None:
        return None

    if len(topics) != spec.topic_count:
        raise MalformedLog(
            f"{spec.name}: expected {spec.topic_count} topics, got {len(topics)} "
            f"(tx={meta.tx_hash} log_index={meta.log_index})"
        )

    try:
        topic_vals = {tf.name: parse_topic_field(topics[tf.index], tf) for tf in spec.topic_fields}
        data_vals = decode_data_fields(data, spec.data_fields)
    except Exception as e:
        raise MalformedLog(
            f"{spec.name}: cannot decode log (tx={meta.tx_hash} log_index={meta.log_index}): {e}"
        ) from e

    merged = {**topic_vals, **data_vals}
    order = spec.field_order or tuple(merged)
    return DecodedEvent(
        name=spec.name,
        meta=meta,
        args={k: merged[k] for k in order},
    )
