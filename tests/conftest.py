"""
Event bus test configuration

Shared fixtures for all tests.
"""

import os
import sys
from typing import Any, List, Tuple

import pytest

# Add project root to path FIRST
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from eventbus import EventBus, set_event_bus


class Recorder:
    """Callable listener factory that records (label, payload, event_name)."""

    def __init__(self):
        self.calls: List[Tuple[str, Any, str]] = []

    def listener(self, label: str, result: Any = None):
        def handler(payload, event_name):
            self.calls.append((label, payload, event_name))
            return result

        handler.__name__ = f"handler_{label}"
        return handler

    def failing(self, label: str, error: Exception = None):
        def handler(payload, event_name):
            self.calls.append((label, payload, event_name))
            raise error or RuntimeError(f"{label} failed")

        handler.__name__ = f"failing_{label}"
        return handler

    @property
    def labels(self) -> List[str]:
        return [label for label, _, _ in self.calls]


@pytest.fixture
def bus():
    bus = EventBus()
    yield bus
    bus.destroy()


@pytest.fixture
def strict_bus():
    bus = EventBus(max_listeners_per_event=2, throw_on_max_listeners=True)
    yield bus
    bus.destroy()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture(autouse=True)
def reset_global_bus():
    set_event_bus(None)
    yield
    set_event_bus(None)
