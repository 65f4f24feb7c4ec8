"""Namespace facade: prefixes every event name before delegating to the bus."""

from typing import TYPE_CHECKING, Any, Awaitable, Callable, List, Optional, Union

from eventbus.events import EventKey, event_name as normalize

if TYPE_CHECKING:
    from eventbus.bus import EventBus
    from eventbus.dispatch import DispatchResult


class NamespacedBus:
    """
    View of a shared bus where ``name`` means ``"<namespace>:<name>"``.

    Usage:
        users = bus.namespace("user")
        users.on("login", handle_login)     # listens on "user:login"
        users.emit("login", {"id": 1})       # emits "user:login"
    """

    def __init__(self, bus: "EventBus", namespace: str):
        self.bus = bus
        self.name = namespace

    def _scoped(self, event: EventKey) -> str:
        return f"{self.name}{self.bus.config.delimiter}{normalize(event)}"

    def on(self, event: EventKey, callback: Optional[Callable] = None, **options: Any):
        return self.bus.on(self._scoped(event), callback, **options)

    subscribe = on

    def once(self, event: EventKey, callback: Optional[Callable] = None, **options: Any):
        return self.bus.once(self._scoped(event), callback, **options)

    def off(self, event: Optional[EventKey] = None, listener: Union[Callable, str, None] = None) -> bool:
        """Without an event name this targets ``"<namespace>:*"``, never the whole bus."""
        if event is None:
            return self.bus.off(self._scoped("*"), listener)
        return self.bus.off(self._scoped(event), listener)

    unsubscribe = off

    def emit(self, event: EventKey, payload: Any = None, **options: Any):
        return self.bus.emit(self._scoped(event), payload, **options)

    publish = emit

    def emit_async(self, event: EventKey, payload: Any = None, throw_on_error: bool = False) -> Awaitable[List["DispatchResult"]]:
        return self.bus.emit_async(self._scoped(event), payload, throw_on_error=throw_on_error)

    def has_listeners(self, event: EventKey) -> bool:
        return self.bus.has_listeners(self._scoped(event))

    def listener_count(self, event: EventKey) -> int:
        return self.bus.listener_count(self._scoped(event))

    def wait_for(self, event: EventKey, timeout: Optional[float] = None) -> Awaitable[Any]:
        return self.bus.wait_for(self._scoped(event), timeout)

    def namespace(self, child: str) -> "NamespacedBus":
        return NamespacedBus(self.bus, self._scoped(child))

    def __repr__(self) -> str:
        return f"NamespacedBus({self.name!r})"
