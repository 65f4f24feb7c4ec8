"""
Unit tests for EventBus.

Tests:
- Subscription and emission
- Priority ordering
- Once semantics
- Idempotent removal
- History bound and statistics
- Default instance
"""

import pytest

from eventbus import (
    BusConfig,
    EventBus,
    InvalidListenerError,
    StandardEvent,
    create_event_bus,
    get_event_bus,
    set_event_bus,
)


def test_basic_event_emission(bus, recorder):
    """Listener receives payload and event name."""
    bus.on("user:login", recorder.listener("a", result="ok"))

    results = bus.emit("user:login", {"id": 1})

    assert recorder.calls == [("a", {"id": 1}, "user:login")]
    assert len(results) == 1
    assert results[0].success is True
    assert results[0].result == "ok"


def test_priority_ordering_is_stable(bus, recorder):
    """A(10), B(5), C(10) registered in order fire as A, C, B."""
    bus.on("job", recorder.listener("A"), priority=10)
    bus.on("job", recorder.listener("B"), priority=5)
    bus.on("job", recorder.listener("C"), priority=10)

    bus.emit("job")

    assert recorder.labels == ["A", "C", "B"]


def test_negative_priorities_run_last(bus, recorder):
    bus.on("job", recorder.listener("low"), priority=-1)
    bus.on("job", recorder.listener("default"))
    bus.on("job", recorder.listener("high"), priority=3)

    bus.emit("job")

    assert recorder.labels == ["high", "default", "low"]


def test_once_listener_fires_once(bus, recorder):
    bus.once("x", recorder.listener("once"))
    bus.on("x", recorder.listener("always"))
    assert bus.listener_count("x") == 2

    bus.emit("x")
    assert bus.listener_count("x") == 1

    bus.emit("x")
    assert recorder.labels == ["once", "always", "always"]


def test_off_is_idempotent(bus, recorder):
    handler = recorder.listener("a")
    bus.on("x", handler)

    assert bus.off("x", handler) is True
    assert bus.off("x", handler) is False
    assert bus.off("never-registered", handler) is False

    bus.emit("x")
    assert recorder.calls == []


def test_unsubscribe_callable_removes_registration(bus, recorder):
    unsubscribe = bus.on("x", recorder.listener("a"))

    assert unsubscribe() is True
    assert unsubscribe() is False
    assert not bus.has_listeners("x")


def test_off_by_explicit_id(bus, recorder):
    bus.on("x", recorder.listener("a"), id="audit")

    assert bus.off("x", "audit") is True
    assert bus.listener_count("x") == 0


def test_off_without_listener_clears_pattern(bus, recorder):
    bus.on("x", recorder.listener("a"))
    bus.on("x", recorder.listener("b"))
    bus.on("y", recorder.listener("c"))

    assert bus.off("x") is True

    assert bus.event_names() == ["y"]
    assert bus.get_stats()["active_listener_count"] == 1


def test_off_without_arguments_clears_everything(bus, recorder):
    bus.on("x", recorder.listener("a"))
    bus.on("user:*", recorder.listener("b"))

    assert bus.off() is True

    assert bus.event_names() == []
    assert bus.get_stats()["active_listener_count"] == 0


def test_non_callable_listener_rejected(bus):
    with pytest.raises(InvalidListenerError):
        bus.on("x", "not a function")

    # also a TypeError for callers that catch builtins
    with pytest.raises(TypeError):
        bus.on("x", 42)


def test_decorator_registration(bus):
    seen = []

    @bus.on("order:created", priority=5)
    def handle(payload, event_name):
        seen.append(payload)

    bus.emit("order:created", {"order": 7})

    assert seen == [{"order": 7}]
    assert callable(handle)


def test_aliases(bus, recorder):
    handler = recorder.listener("a")
    bus.subscribe("x", handler)
    bus.publish("x", 1)
    assert bus.unsubscribe("x", handler) is True
    assert recorder.labels == ["a"]


def test_single_argument_listener_gets_payload_only(bus):
    seen = []
    bus.on("x", lambda payload: seen.append(payload))

    bus.emit("x", "data")

    assert seen == ["data"]


def test_context_is_passed_first(bus):
    class Panel:
        def __init__(self):
            self.refreshed = []

    def refresh(panel, payload, event_name):
        panel.refreshed.append((payload, event_name))

    panel = Panel()
    bus.on("service:updated", refresh, context=panel)

    bus.emit("service:updated", {"id": 3})

    assert panel.refreshed == [({"id": 3}, "service:updated")]


def test_condition_filters_delivery(bus, recorder):
    bus.on("price", recorder.listener("big"), condition=lambda p: p > 100)

    results = bus.emit("price", 50)
    assert results == []

    bus.emit("price", 150)
    assert recorder.calls == [("big", 150, "price")]


def test_once_with_condition_waits_for_match(bus, recorder):
    bus.once("price", recorder.listener("big"), condition=lambda p: p > 100)

    bus.emit("price", 50)
    assert bus.listener_count("price") == 1

    bus.emit("price", 150)
    assert bus.listener_count("price") == 0


def test_emit_to_nobody_is_not_an_error(bus):
    assert bus.emit("nobody:home", 1) == []
    assert bus.get_stats()["emitted_count"] == 1


def test_standard_event_enum_accepted(bus, recorder):
    bus.on(StandardEvent.COMMAND_EXECUTED, recorder.listener("a"))

    bus.emit("command:executed", {"command": "bold"})

    assert recorder.calls == [("a", {"command": "bold"}, "command:executed")]


def test_history_fifo_bound(recorder):
    bus = EventBus(history_size=3)
    for i in range(5):
        bus.emit(f"event:{i}", i)

    history = bus.get_history()

    assert [e.event_name for e in history] == ["event:2", "event:3", "event:4"]


def test_history_filter_and_copy(bus, recorder):
    bus.on("a", recorder.listener("x"))
    bus.emit("a", 1)
    bus.emit("b", 2)
    bus.emit("a", 3)

    only_a = bus.get_history("a")
    assert [e.payload for e in only_a] == [1, 3]
    assert only_a[0].listener_count == 1
    assert bus.get_history("a", limit=1)[0].payload == 3

    only_a.clear()
    assert len(bus.get_history()) == 3


def test_clear_history_keeps_stats(bus):
    bus.emit("a")
    bus.clear_history()

    assert bus.get_history() == []
    assert bus.get_stats()["emitted_count"] == 1


def test_stats_track_emissions_listeners_errors(bus, recorder):
    bus.on("a", recorder.listener("ok"))
    bus.on("a", recorder.failing("bad"))
    bus.emit("a")
    bus.emit("b")

    stats = bus.get_stats()

    assert stats["emitted_count"] == 2
    assert stats["active_listener_count"] == 2
    assert stats["error_count"] == 1
    assert stats["total_patterns"] == 1
    assert stats["history_size"] == 2


def test_stats_break_down_listeners_by_pattern(bus, recorder):
    bus.on("a", recorder.listener("1"))
    bus.on("a", recorder.listener("2"))
    bus.on("user:*", recorder.listener("3"))

    assert bus.get_stats()["listeners_by_pattern"] == {"a": 2, "user:*": 1}


def test_reset_stats_keeps_history_and_listener_gauge(bus, recorder):
    bus.on("a", recorder.failing("bad"))
    bus.emit("a")

    bus.reset_stats()
    stats = bus.get_stats()

    assert stats["emitted_count"] == 0
    assert stats["error_count"] == 0
    assert stats["active_listener_count"] == 1
    assert len(bus.get_history()) == 1


def test_destroy_is_idempotent(bus, recorder):
    bus.on("a", recorder.listener("x"))
    bus.emit("a")

    bus.destroy()
    bus.destroy()

    assert bus.event_names() == []
    assert bus.get_history() == []
    assert bus.get_stats() == {
        "emitted_count": 0,
        "active_listener_count": 0,
        "error_count": 0,
        "total_patterns": 0,
        "history_size": 0,
        "listeners_by_pattern": {},
    }


def test_event_names_in_registration_order(bus, recorder):
    bus.on("b", recorder.listener("1"))
    bus.on("a", recorder.listener("2"))
    bus.on("user:*", recorder.listener("3"))

    assert bus.event_names() == ["b", "a", "user:*"]


def test_create_event_bus_is_independent():
    first = create_event_bus(debug=True)
    second = create_event_bus()
    first.on("x", lambda p: None)

    assert first.config.debug is True
    assert second.listener_count("x") == 0


def test_global_bus_configured_from_env(monkeypatch):
    monkeypatch.setenv("EVENTBUS_MAX_LISTENERS_PER_EVENT", "7")

    bus = get_event_bus()

    assert bus is get_event_bus()
    assert bus.config.max_listeners_per_event == 7


def test_set_event_bus_replaces_global():
    custom = EventBus(BusConfig(debug=True))
    set_event_bus(custom)

    assert get_event_bus() is custom


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
