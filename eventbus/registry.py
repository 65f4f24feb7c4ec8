"""
Listener Registry - per-pattern ordered listener records.

Each pattern maps to a list kept in descending priority order, stable among
equal priorities. Patterns containing ``*`` get a compiled matcher at
registration time, dropped again when the pattern has no listeners left.
"""

import inspect
import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Pattern, Tuple, Union

from eventbus.config import BusConfig
from eventbus.errors import InvalidListenerError, ListenerLimitExceeded
from eventbus.ledger import Ledger

logger = logging.getLogger(__name__)

WILDCARD = "*"

Listener = Callable[..., Any]
Condition = Callable[[Any], bool]


def generate_listener_id() -> str:
    return f"listener_{uuid.uuid4().hex[:12]}"


def compile_pattern(pattern: str) -> Pattern:
    """``user:*`` -> regex for fullmatch where each ``*`` matches any substring."""
    escaped = ".*".join(re.escape(part) for part in pattern.split(WILDCARD))
    return re.compile(escaped, re.DOTALL)


def callback_key(callback: Listener) -> Tuple[int, ...]:
    """
    Hashable reference key for a callback.

    Plain callables compare by object identity. Bound methods are rebuilt on
    every attribute access, so they compare by (instance, function) identity.
    """
    if inspect.ismethod(callback):
        return (id(callback.__self__), id(callback.__func__))
    return (id(callback),)


def _accepts_event_name(callback: Listener, has_context: bool) -> bool:
    """True if the callback can take ``(payload, event_name)`` after its context arg."""
    try:
        signature = inspect.signature(callback)
    except (TypeError, ValueError):
        return True

    positional = 0
    for param in signature.parameters.values():
        if param.kind == param.VAR_POSITIONAL:
            return True
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            positional += 1

    if has_context:
        positional -= 1
    return positional >= 2


@dataclass(eq=False)
class ListenerRecord:
    """Registered listener."""
    id: str
    pattern: str
    callback: Listener
    once: bool = False
    priority: int = 0
    context: Any = None
    condition: Optional[Condition] = None
    subscribed_at: float = field(default_factory=time.time)
    explicit_id: bool = False
    pass_event_name: bool = True

    @property
    def identity(self) -> Tuple[Any, ...]:
        """Dedup key: the explicit id when one was given, else the callback reference."""
        if self.explicit_id:
            return ("id", self.id)
        return ("callback",) + callback_key(self.callback)

    def matches(self, listener: Union[Listener, str]) -> bool:
        if isinstance(listener, str):
            return self.id == listener
        return callback_key(self.callback) == callback_key(listener)

    def invoke(self, payload: Any, event_name: str) -> Any:
        args: Tuple[Any, ...] = (payload, event_name) if self.pass_event_name else (payload,)
        if self.context is not None:
            return self.callback(self.context, *args)
        return self.callback(*args)


class ListenerRegistry:
    """Owns every ListenerRecord of a bus."""

    def __init__(self, config: BusConfig, ledger: Optional[Ledger] = None):
        self.config = config
        self.ledger = ledger
        self._listeners: Dict[str, List[ListenerRecord]] = {}
        self._matchers: Dict[str, Pattern] = {}
        self._total = 0

    def _trace(self, message: str) -> None:
        if self.config.debug:
            logger.debug(message)

    def _changed(self) -> None:
        if self.ledger is not None:
            self.ledger.set_active_listeners(self._total)

    def subscribe(
        self,
        pattern: str,
        callback: Listener,
        once: bool = False,
        priority: int = 0,
        context: Any = None,
        id: Optional[str] = None,
        condition: Optional[Condition] = None,
    ) -> Callable[[], bool]:
        """
        Register ``callback`` under ``pattern``.

        Returns:
            A callable removing exactly this registration.

        Raises:
            InvalidListenerError: callback (or condition) is not callable
            ListenerLimitExceeded: pattern is at its cap and strict mode is on
        """
        if not callable(callback):
            raise InvalidListenerError("Callback must be callable", pattern)
        if condition is not None and not callable(condition):
            raise InvalidListenerError("Condition must be callable", pattern)

        limit = self.config.max_listeners_per_event
        if limit > 0 and self.count(pattern) >= limit:
            if self.config.throw_on_max_listeners:
                raise ListenerLimitExceeded(pattern, limit)
            logger.warning(f"Max listeners ({limit}) exceeded for event: {pattern}")

        record = ListenerRecord(
            id=id if id is not None else generate_listener_id(),
            pattern=pattern,
            callback=callback,
            once=once,
            priority=priority,
            context=context,
            condition=condition,
            explicit_id=id is not None,
            pass_event_name=_accepts_event_name(callback, context is not None),
        )

        records = self._listeners.get(pattern)
        if records is None:
            records = self._listeners[pattern] = []
            if WILDCARD in pattern:
                self._matchers[pattern] = compile_pattern(pattern)

        # after every entry of equal or higher priority
        index = len(records)
        for i, existing in enumerate(records):
            if existing.priority < priority:
                index = i
                break
        records.insert(index, record)

        self._total += 1
        self._changed()
        self._trace(f"Listener {record.id} added for {pattern} (priority={priority}, once={once})")

        return lambda: self.remove_record(record)

    def unsubscribe(
        self,
        pattern: Optional[str] = None,
        listener: Optional[Union[Listener, str]] = None,
    ) -> bool:
        """
        Remove listeners. Never raises for unknown patterns or listeners.

        - ``unsubscribe()`` clears the whole registry
        - ``unsubscribe(pattern)`` clears that exact pattern
        - ``unsubscribe(pattern, listener)`` removes the first record whose
          callback is ``listener`` (or whose id equals it, for strings)
        """
        if pattern is None:
            if listener is not None:
                return False
            return self.unsubscribe_all()

        if listener is None:
            return self.unsubscribe_all(pattern)

        records = self._listeners.get(pattern)
        if not records:
            return False

        for record in records:
            if record.matches(listener):
                return self.remove_record(record)
        return False

    def unsubscribe_all(self, pattern: Optional[str] = None) -> bool:
        if pattern is None:
            self._listeners.clear()
            self._matchers.clear()
            self._total = 0
            self._changed()
            self._trace("All listeners removed")
            return True

        records = self._listeners.pop(pattern, None)
        self._matchers.pop(pattern, None)
        if records:
            self._total -= len(records)
            self._changed()
        self._trace(f"All listeners removed for {pattern}")
        return True

    def remove_record(self, record: ListenerRecord) -> bool:
        """Remove this exact record; False if it is already gone."""
        records = self._listeners.get(record.pattern)
        if not records:
            return False

        for i, existing in enumerate(records):
            if existing is record:
                del records[i]
                break
        else:
            return False

        if not records:
            del self._listeners[record.pattern]
            self._matchers.pop(record.pattern, None)

        self._total -= 1
        self._changed()
        self._trace(f"Listener {record.id} removed for {record.pattern}")
        return True

    def exact(self, pattern: str) -> List[ListenerRecord]:
        """Copy of the records registered under the literal ``pattern``."""
        return list(self._listeners.get(pattern, ()))

    def wildcard_items(self) -> Iterator[Tuple[str, Pattern]]:
        """(pattern, matcher) pairs in registration order."""
        return iter(list(self._matchers.items()))

    def patterns(self) -> List[str]:
        return list(self._listeners)

    def count(self, pattern: str) -> int:
        return len(self._listeners.get(pattern, ()))

    def total(self) -> int:
        return self._total
