"""Event decoding and routing.

This package provides:
- Event specification system (EventSpec, TopicFieldSpec, DataFieldSpec)
- Generic decoder that turns raw logs into DecodedEvent objects
- Registry management for event specs
- LogRouter: address-based routing of raw logs to their source
"""

from adrind.decoding.decoder import DecodedEvent, decode_event
from adrind.decoding.registry import add_event_spec, add_many, make_registry, merge_registries
from adrind.decoding.router import LogRouter, RoutedEvent
from adrind.decoding.specs import DataFieldSpec, EventRegistry, EventSpec, TopicFieldSpec

__all__ = [
    "DecodedEvent",
    "decode_event",
    "add_event_spec",
    "add_many",
    "make_registry",
    "merge_registries",
    "LogRouter",
    "RoutedEvent",
    "DataFieldSpec",
    "EventRegistry",
    "EventSpec",
    "TopicFieldSpec",
]
