"""Custom exception hierarchy."""
from typing import Any, Dict, Optional


class EventBusError(Exception):
    """Base exception for all event bus errors."""
    code: str = "BUS_001"

    def __init__(self, message: str, details: Dict[str, Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class InvalidListenerError(EventBusError, TypeError):
    """Listener or condition is not callable."""
    code = "BUS_002"

    def __init__(self, message: str, event_name: Optional[str] = None):
        super().__init__(message, {"event_name": event_name})
        self.event_name = event_name


class ListenerLimitExceeded(EventBusError):
    """Registration over the per-event cap in strict mode."""
    code = "BUS_003"

    def __init__(self, event_name: str, limit: int):
        super().__init__(
            f"Max listeners ({limit}) exceeded for event: {event_name}",
            {"event_name": event_name, "limit": limit},
        )
        self.event_name = event_name
        self.limit = limit


class EventTimeoutError(EventBusError, TimeoutError):
    """wait_for() gave up before the event arrived."""
    code = "BUS_004"

    def __init__(self, event_name: str, timeout: float):
        super().__init__(
            f"Timeout waiting for event: {event_name} ({timeout}s)",
            {"event_name": event_name, "timeout": timeout},
        )
        self.event_name = event_name
        self.timeout = timeout


class ConfigurationError(EventBusError, ValueError):
    """Bus configuration is invalid."""
    code = "CFG_001"
