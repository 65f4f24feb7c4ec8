"""Tests for the error reporter, undo/redo monitor and realtime adapter."""

import pytest

from eventbus import StandardEvent
from eventbus.events import ChangeKind, entity_event, payload_type
from eventbus.integrations import ErrorReporter, RealtimeChangeAdapter, UndoRedoMonitor


class TestErrorReporter:

    def test_report_manual_error(self, bus):
        received = []
        bus.on("error:*", lambda payload, name: received.append((name, payload)))

        try:
            raise ValueError("save failed")
        except ValueError as e:
            payload = ErrorReporter(bus).report(e, context={"article": 3})

        name, sent = received[0]
        assert name == "error:manual"
        assert sent is payload
        assert sent["message"] == "save failed"
        assert sent["error_id"].startswith("err_")
        assert "ValueError: save failed" in sent["stack"]
        assert sent["context"] == {"article": 3}

    def test_boundary_and_section_names(self, bus, recorder):
        bus.on(StandardEvent.ERROR_BOUNDARY, recorder.listener("boundary"))
        bus.on(StandardEvent.ERROR_SECTION, recorder.listener("section"))
        reporter = ErrorReporter(bus)

        reporter.report_boundary(RuntimeError("render"), component="Table")
        reporter.report_section(KeyError("x"), section="sidebar")

        assert recorder.labels == ["boundary", "section"]
        assert recorder.calls[0][1]["context"] == {"component": "Table"}
        assert recorder.calls[1][1]["context"] == {"section": "sidebar"}

    def test_unknown_kind_rejected(self, bus):
        with pytest.raises(ValueError):
            ErrorReporter(bus).report(RuntimeError("x"), kind="fatal")

    def test_message_falls_back_to_class_name(self):
        payload = ErrorReporter.build_payload(RuntimeError())

        assert payload["message"] == "RuntimeError"


class TestUndoRedoMonitor:

    def test_tracks_command_events(self, bus):
        monitor = UndoRedoMonitor(bus)

        bus.emit(StandardEvent.COMMAND_EXECUTED, {"command": "bold"})
        assert (monitor.can_undo, monitor.can_redo) == (True, False)

        bus.emit(StandardEvent.COMMAND_UNDONE, {"command": "bold", "can_undo": False})
        assert (monitor.can_undo, monitor.can_redo) == (False, True)

        bus.emit(StandardEvent.COMMAND_REDONE, {"command": "bold"})
        assert (monitor.can_undo, monitor.can_redo) == (True, True)
        assert monitor.last_command == "bold"

    def test_on_change_callback_and_close(self, bus):
        changes = []
        monitor = UndoRedoMonitor(bus, on_change=lambda m: changes.append(m.can_undo))

        bus.emit("command:executed")
        monitor.close()
        bus.emit("command:undone")

        assert changes == [True]
        assert not bus.has_listeners("command:executed")


class TestRealtimeChangeAdapter:

    def test_translates_row_changes(self, bus, recorder):
        bus.on("service:*", recorder.listener("services"))
        adapter = RealtimeChangeAdapter(bus, {"services": "service", "service_zones": "zone"})

        adapter.handle_change({"eventType": "INSERT", "table": "services", "new": {"id": 1}, "old": {}})
        adapter.handle_change({"eventType": "UPDATE", "table": "services", "new": {"id": 1, "v": 2}})
        adapter({"eventType": "DELETE", "table": "services", "new": {}, "old": {"id": 1}})

        assert recorder.calls == [
            ("services", {"id": 1}, "service:created"),
            ("services", {"id": 1, "v": 2}, "service:updated"),
            ("services", {"id": 1}, "service:deleted"),
        ]

    def test_unmapped_table_and_unknown_type_ignored(self, bus):
        adapter = RealtimeChangeAdapter(bus, {"services": "service"})

        assert adapter.handle_change({"eventType": "INSERT", "table": "users", "new": {}}) is None
        assert adapter.handle_change({"eventType": "TRUNCATE", "table": "services"}) is None
        assert bus.get_stats()["emitted_count"] == 0

    def test_works_through_namespace(self, bus, recorder):
        bus.on("admin:zone:created", recorder.listener("zones"))
        adapter = RealtimeChangeAdapter(bus.namespace("admin"), {"service_zones": "zone"})

        adapter.handle_change({"eventType": "insert", "table": "service_zones", "new": {"id": 4}})

        assert recorder.calls == [("zones", {"id": 4}, "admin:zone:created")]


def test_entity_event_helpers():
    assert entity_event("profile", ChangeKind.DELETED) == "profile:deleted"
    assert entity_event("profile", "role_changed") == "profile:role_changed"
    assert payload_type("error:manual") is not None
    assert payload_type("custom:thing") is None
