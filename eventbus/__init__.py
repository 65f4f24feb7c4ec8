"""
Event Bus - in-process publish/subscribe for application-wide events.

This package provides:
- EventBus: listener registry, pattern resolution, sync/async dispatch
- BusConfig: immutable per-bus options (env / JSON loadable)
- NamespacedBus: name-prefixing view over a shared bus
- StandardEvent: event names used by the bundled integrations
"""

from eventbus.bus import EventBus, create_event_bus, get_event_bus, set_event_bus
from eventbus.config import BusConfig
from eventbus.dispatch import DispatchResult
from eventbus.errors import (
    ConfigurationError,
    EventBusError,
    EventTimeoutError,
    InvalidListenerError,
    ListenerLimitExceeded,
)
from eventbus.events import ChangeKind, StandardEvent, entity_event
from eventbus.ledger import BusStats, HistoryEntry
from eventbus.namespace import NamespacedBus
from eventbus.registry import ListenerRecord

__all__ = [
    "EventBus",
    "create_event_bus",
    "get_event_bus",
    "set_event_bus",
    "BusConfig",
    "DispatchResult",
    "EventBusError",
    "InvalidListenerError",
    "ListenerLimitExceeded",
    "EventTimeoutError",
    "ConfigurationError",
    "StandardEvent",
    "ChangeKind",
    "entity_event",
    "BusStats",
    "HistoryEntry",
    "NamespacedBus",
    "ListenerRecord",
]
