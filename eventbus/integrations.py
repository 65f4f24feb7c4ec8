"""
Collaborators that sit on top of the bus.

- ErrorReporter: publishes structured ``error:*`` events
- UndoRedoMonitor: tracks undo/redo availability from ``command:*`` events
- RealtimeChangeAdapter: turns backend row-change notifications into
  ``<entity>:created|updated|deleted`` emissions
"""

import logging
import traceback
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from eventbus.bus import EventBus
from eventbus.dispatch import DispatchResult
from eventbus.events import (
    ChangeKind,
    CommandEventPayload,
    ErrorEventPayload,
    StandardEvent,
    entity_event,
)
from eventbus.namespace import NamespacedBus

logger = logging.getLogger(__name__)

BusLike = Union[EventBus, NamespacedBus]


class ErrorReporter:
    """Publishes caught exceptions as ``error:boundary|manual|section`` events."""

    KINDS = {
        "boundary": StandardEvent.ERROR_BOUNDARY,
        "manual": StandardEvent.ERROR_MANUAL,
        "section": StandardEvent.ERROR_SECTION,
    }

    def __init__(self, bus: BusLike):
        self.bus = bus

    @staticmethod
    def build_payload(error: BaseException, context: Optional[Dict[str, Any]] = None) -> ErrorEventPayload:
        return ErrorEventPayload(
            error_id=f"err_{uuid.uuid4().hex[:12]}",
            message=str(error) or error.__class__.__name__,
            stack="".join(traceback.format_exception(type(error), error, error.__traceback__)),
            timestamp=datetime.now(timezone.utc).isoformat(),
            context=dict(context or {}),
        )

    def report(
        self,
        error: BaseException,
        kind: str = "manual",
        context: Optional[Dict[str, Any]] = None,
    ) -> ErrorEventPayload:
        """Emit ``error`` and return the payload that was published."""
        if kind not in self.KINDS:
            raise ValueError(f"Unknown error kind: {kind} (expected one of {sorted(self.KINDS)})")

        payload = self.build_payload(error, context)
        logger.info(f"Reporting {kind} error {payload['error_id']}: {payload['message']}")
        self.bus.emit(self.KINDS[kind], payload)
        return payload

    def report_boundary(self, error: BaseException, component: Optional[str] = None) -> ErrorEventPayload:
        return self.report(error, "boundary", {"component": component} if component else None)

    def report_section(self, error: BaseException, section: str) -> ErrorEventPayload:
        return self.report(error, "section", {"section": section})


class UndoRedoMonitor:
    """Keeps undo/redo button state in sync with command events."""

    def __init__(self, bus: BusLike, on_change: Optional[Callable[["UndoRedoMonitor"], None]] = None):
        self.can_undo = False
        self.can_redo = False
        self.last_command: Optional[str] = None
        self._on_change = on_change
        self._unsubscribers = [
            bus.on(StandardEvent.COMMAND_EXECUTED, self._on_executed),
            bus.on(StandardEvent.COMMAND_UNDONE, self._on_undone),
            bus.on(StandardEvent.COMMAND_REDONE, self._on_redone),
        ]

    def _apply(self, payload: Optional[CommandEventPayload], can_undo: bool, can_redo: bool) -> None:
        payload = payload or {}
        self.can_undo = payload.get("can_undo", can_undo)
        self.can_redo = payload.get("can_redo", can_redo)
        self.last_command = payload.get("command", self.last_command)
        if self._on_change is not None:
            self._on_change(self)

    def _on_executed(self, payload: Optional[CommandEventPayload]) -> None:
        # a new command clears the redo stack
        self._apply(payload, True, False)

    def _on_undone(self, payload: Optional[CommandEventPayload]) -> None:
        self._apply(payload, self.can_undo, True)

    def _on_redone(self, payload: Optional[CommandEventPayload]) -> None:
        self._apply(payload, True, self.can_redo)

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []


class RealtimeChangeAdapter:
    """
    Translates row-change notifications into entity events.

    A notification looks like::

        {"eventType": "INSERT", "table": "services", "new": {...}, "old": {}}

    and, with ``{"services": "service"}`` as the table map, becomes
    ``service:created`` carrying the new row. Deletes carry the old row.
    """

    CHANGE_KINDS = {
        "INSERT": ChangeKind.CREATED,
        "UPDATE": ChangeKind.UPDATED,
        "DELETE": ChangeKind.DELETED,
    }

    def __init__(self, bus: BusLike, table_to_entity: Mapping[str, str]):
        self.bus = bus
        self.table_to_entity = dict(table_to_entity)

    def handle_change(self, notification: Mapping[str, Any]) -> Optional[List[DispatchResult]]:
        """Emit the entity event for one notification; None when it is ignored."""
        table = notification.get("table")
        entity = self.table_to_entity.get(table)
        if entity is None:
            logger.debug(f"Ignoring change for unmapped table {table}")
            return None

        change_type = str(notification.get("eventType", "")).upper()
        kind = self.CHANGE_KINDS.get(change_type)
        if kind is None:
            logger.warning(f"Unknown change type {change_type!r} for table {table}")
            return None

        row = notification.get("old") if kind is ChangeKind.DELETED else notification.get("new")
        return self.bus.emit(entity_event(entity, kind), row)

    __call__ = handle_change
