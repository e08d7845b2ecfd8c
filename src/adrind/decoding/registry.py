"""Event registry helpers.

This module exposes:
- `make_registry()` → empty EventRegistry
- `add_event_spec(registry, spec)` → insert one spec (lowercases key)
- `add_many(registry, specs)` → insert multiple

Per-source registries are built from ABIs in `adrind.abi_events`.
"""

from __future__ import annotations

from collections.abc import Iterable

from adrind.decoding.specs import EventRegistry, EventSpec


def make_registry() -> EventRegistry:
    """Return an empty registry."""
    reg: EventRegistry = {}
    return reg


def add_event_spec(registry: EventRegistry, spec: EventSpec) -> None:
    """Insert one spec into the registry keyed by lowercased topic0.

    Two different events hashing to the same topic0 cannot coexist in one registry.
    """
    key = spec.topic0.lower()
    existing = registry.get(key)
    if existing is not None and existing != spec:
        raise ValueError(f"topic0 collision between {existing.name} and {spec.name}")
    registry[key] = spec


def add_many(registry: EventRegistry, specs: Iterable[EventSpec]) -> None:
    """Insert many specs into the registry."""
    for s in specs:
        add_event_spec(registry, s)


def merge_registries(*registries: EventRegistry) -> EventRegistry:
    """Combine registries (e.g. a token standard plus contract-specific events)."""
    reg = make_registry()
    for r in registries:
        add_many(reg, r.values())
    return reg
