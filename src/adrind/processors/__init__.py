"""Per-event handlers that turn decoded events into table rows."""

from adrind.processors.dispatch import DispatchStats, EventDispatcher

__all__ = ["DispatchStats", "EventDispatcher"]
