"""
Standard event names and payload shapes.

Event names are plain strings segmented by ``:``. The names below are the ones
emitted or consumed by the bundled integrations; any other string works too.
"""

from enum import Enum
from typing import Any, Dict, Optional, Type, TypedDict, Union


class StandardEvent(Enum):
    """Predefined event names."""
    # Error reporting
    ERROR_BOUNDARY = "error:boundary"
    ERROR_BOUNDARY_RETRY = "error:boundary:retry"
    ERROR_MANUAL = "error:manual"
    ERROR_SECTION = "error:section"

    # Undo / redo
    COMMAND_EXECUTED = "command:executed"
    COMMAND_UNDONE = "command:undone"
    COMMAND_REDONE = "command:redone"


class ChangeKind(Enum):
    """Row-level change kinds emitted as ``<entity>:<kind>``."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


EventKey = Union[str, StandardEvent]


class ErrorEventPayload(TypedDict):
    error_id: str
    message: str
    stack: str
    timestamp: str
    context: Dict[str, Any]


class CommandEventPayload(TypedDict, total=False):
    command: str
    description: str
    can_undo: bool
    can_redo: bool


PAYLOAD_TYPES: Dict[str, Type] = {
    StandardEvent.ERROR_BOUNDARY.value: ErrorEventPayload,
    StandardEvent.ERROR_BOUNDARY_RETRY.value: ErrorEventPayload,
    StandardEvent.ERROR_MANUAL.value: ErrorEventPayload,
    StandardEvent.ERROR_SECTION.value: ErrorEventPayload,
    StandardEvent.COMMAND_EXECUTED.value: CommandEventPayload,
    StandardEvent.COMMAND_UNDONE.value: CommandEventPayload,
    StandardEvent.COMMAND_REDONE.value: CommandEventPayload,
}


def event_name(event: EventKey) -> str:
    """Normalize a StandardEvent or string to the wire name."""
    if isinstance(event, StandardEvent):
        return event.value
    return event


def entity_event(entity: str, kind: Union[str, ChangeKind]) -> str:
    """entity_event("service", ChangeKind.CREATED) -> "service:created"."""
    if isinstance(kind, ChangeKind):
        kind = kind.value
    return f"{entity}:{kind}"


def payload_type(event: EventKey) -> Optional[Type]:
    """Declared payload type for a standard event, None for free-form events."""
    return PAYLOAD_TYPES.get(event_name(event))
