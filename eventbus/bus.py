"""
EventBus - in-process publish/subscribe with priorities, wildcards and namespaces.

Enables:
- Priority-ordered listeners (stable among equal priorities)
- Wildcard patterns ("user:*", "*:deleted") and namespace ancestors
- Sync and async dispatch with per-listener error isolation
- Bounded event history and running statistics
- One-shot waiting with timeout

Usage:
    bus = EventBus(max_listeners_per_event=50)

    @bus.on("user:*", priority=10)
    def audit(payload, event_name):
        ...

    bus.emit("user:login", {"id": 42})
    payload = await bus.wait_for("user:logout", timeout=5.0)
"""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Tuple, Union

from eventbus.config import BusConfig
from eventbus.dispatch import DispatchExecutor, DispatchResult
from eventbus.events import EventKey, event_name as normalize
from eventbus.ledger import HistoryEntry, Ledger
from eventbus.namespace import NamespacedBus
from eventbus.registry import Condition, Listener, ListenerRecord, ListenerRegistry
from eventbus.resolver import PatternResolver
from eventbus.waiter import wait_for_event

logger = logging.getLogger(__name__)


async def _no_listeners() -> List[DispatchResult]:
    return []


class EventBus:
    """
    Central event bus.

    Owns the listener registry, the pattern resolver, the dispatch executor and
    the history/statistics ledger. All state lives on the instance.
    """

    def __init__(self, config: Optional[BusConfig] = None, **options: Any):
        """
        Initialize EventBus.

        Args:
            config: Base configuration (defaults if None)
            **options: BusConfig fields overriding ``config``
        """
        self.config = (config or BusConfig()).merged(**options)
        self._ledger = Ledger(capacity=self.config.history_size)
        self._registry = ListenerRegistry(self.config, self._ledger)
        self._resolver = PatternResolver(self._registry, self.config)
        self._dispatcher = DispatchExecutor(self._registry, self._ledger, self.config)

    def _trace(self, message: str) -> None:
        if self.config.debug:
            logger.debug(message)

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def on(
        self,
        event: EventKey,
        callback: Optional[Listener] = None,
        once: bool = False,
        priority: int = 0,
        context: Any = None,
        id: Optional[str] = None,
        condition: Optional[Condition] = None,
    ):
        """
        Subscribe ``callback`` to an event name or pattern.

        Returns an unsubscribe callable. Without ``callback`` it returns a
        decorator that registers the decorated function and returns it unchanged:

            @bus.on("order:created", priority=5)
            def handle(payload, event_name): ...
        """
        pattern = normalize(event)

        if callback is None:
            def decorator(func: Listener) -> Listener:
                self._registry.subscribe(
                    pattern, func, once=once, priority=priority,
                    context=context, id=id, condition=condition,
                )
                return func

            return decorator

        return self._registry.subscribe(
            pattern, callback, once=once, priority=priority,
            context=context, id=id, condition=condition,
        )

    subscribe = on

    def once(self, event: EventKey, callback: Optional[Listener] = None, **options: Any):
        """Subscribe for a single invocation."""
        options["once"] = True
        return self.on(event, callback, **options)

    def off(self, event: Optional[EventKey] = None, listener: Union[Listener, str, None] = None) -> bool:
        """
        Unsubscribe. Idempotent: returns False when nothing matched.

        ``off()`` removes every listener; ``off(event)`` every listener of that
        exact pattern; ``off(event, listener)`` one listener (callback or id).
        """
        pattern = normalize(event) if event is not None else None
        return self._registry.unsubscribe(pattern, listener)

    unsubscribe = off

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def _prepare(self, event: EventKey, payload: Any) -> Tuple[str, List[ListenerRecord]]:
        name = normalize(event)
        listeners = self._resolver.resolve(name)

        self._ledger.increment_emitted()
        self._ledger.record(HistoryEntry(
            event_name=name,
            payload=payload,
            timestamp=time.time(),
            listener_count=len(listeners),
        ))

        self._trace(f"Emitting {name} to {len(listeners)} listeners")
        return name, listeners

    def emit(
        self,
        event: EventKey,
        payload: Any = None,
        async_: bool = False,
        throw_on_error: bool = False,
    ):
        """
        Publish ``payload`` to every matching listener.

        Sync (default): returns the list of DispatchResult once every listener
        ran. With ``throw_on_error`` the first listener exception propagates and
        the remaining listeners are skipped.

        With ``async_=True`` the emission is recorded immediately and an
        awaitable of the results is returned (see ``emit_async``).
        """
        name, listeners = self._prepare(event, payload)

        if async_:
            if not listeners:
                return _no_listeners()
            return self._dispatcher.run_async(name, payload, listeners, throw_on_error)

        if not listeners:
            return []
        return self._dispatcher.run_sync(name, payload, listeners, throw_on_error)

    publish = emit

    async def emit_async(
        self,
        event: EventKey,
        payload: Any = None,
        throw_on_error: bool = False,
    ) -> List[DispatchResult]:
        """
        Publish concurrently: every listener runs as its own task and a failure
        never cancels its siblings. With ``throw_on_error`` the first failure is
        re-raised after all listeners have finished.
        """
        name, listeners = self._prepare(event, payload)
        if not listeners:
            return []
        return await self._dispatcher.run_async(name, payload, listeners, throw_on_error)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def has_listeners(self, event: EventKey) -> bool:
        return bool(self._resolver.resolve(normalize(event)))

    def listener_count(self, event: EventKey) -> int:
        """Number of distinct listeners an emission of ``event`` would reach."""
        return len(self._resolver.resolve(normalize(event)))

    def event_names(self) -> List[str]:
        """Registered names and patterns, in registration order."""
        return self._registry.patterns()

    def wait_for(self, event: EventKey, timeout: Optional[float] = None) -> "asyncio.Future[Any]":
        """
        Future of the next payload emitted on ``event``.

        The listener is registered immediately; the future fails with
        EventTimeoutError after ``timeout`` seconds. Must be called with a
        running event loop.
        """
        return wait_for_event(self._registry, normalize(event), timeout)

    def namespace(self, ns: str) -> NamespacedBus:
        return NamespacedBus(self, ns)

    # ------------------------------------------------------------------
    # History and stats
    # ------------------------------------------------------------------

    def get_history(self, event: Optional[EventKey] = None, limit: Optional[int] = None) -> List[HistoryEntry]:
        return self._ledger.query(normalize(event) if event is not None else None, limit)

    def clear_history(self) -> None:
        self._ledger.clear_history()

    def get_stats(self) -> Dict[str, Any]:
        """Get event bus statistics."""
        stats = self._ledger.stats()
        return {
            "emitted_count": stats.emitted_count,
            "active_listener_count": stats.active_listener_count,
            "error_count": stats.error_count,
            "total_patterns": len(self._registry.patterns()),
            "history_size": len(self._ledger),
            "listeners_by_pattern": {p: self._registry.count(p) for p in self._registry.patterns()},
        }

    def reset_stats(self) -> None:
        self._ledger.reset_stats(active_listeners=self._registry.total())

    def destroy(self) -> None:
        """Drop every listener, the history and the counters. Safe to call twice."""
        self._registry.unsubscribe_all()
        self._ledger.clear_history()
        self._ledger.reset_stats(active_listeners=0)
        self._trace("Event bus destroyed")


def create_event_bus(config: Optional[BusConfig] = None, **options: Any) -> EventBus:
    """Build an independent bus."""
    return EventBus(config, **options)


# Global EventBus instance
_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the global event bus, configured from EVENTBUS_* variables on first use."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus(BusConfig.from_env())
    return _event_bus


def set_event_bus(bus: Optional[EventBus]) -> None:
    """Replace (or with None, reset) the global EventBus instance."""
    global _event_bus
    _event_bus = bus
