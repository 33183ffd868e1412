"""Tests for monitor.events."""

import json

import pytest

from monitor.events import FE_FILE_CHANGED, SESSION_END, MonitorEvent, make_event


def test_wire_form_is_flat():
    event = MonitorEvent(type=FE_FILE_CHANGED, session_id="s1", timestamp=123,
                         data={"filePath": "a.txt", "action": "write"})
    assert event.to_wire() == {
        "type": "fe_file_changed", "sessionId": "s1", "timestamp": 123,
        "filePath": "a.txt", "action": "write",
    }
    assert json.loads(event.to_json()) == event.to_wire()


def test_process_wide_event_has_no_session_id():
    event = MonitorEvent(type=SESSION_END, session_id=None, timestamp=1, data={"exitCode": 0})
    assert "sessionId" not in event.to_wire()


def test_make_event_stamps_time():
    event = make_event(SESSION_END, "s1", exitCode=0)
    assert event.timestamp > 1_600_000_000_000
    assert event.data["exitCode"] == 0


def test_events_are_immutable():
    event = make_event(SESSION_END, "s1", exitCode=0)
    with pytest.raises(Exception):
        event.type = "other"
    with pytest.raises(TypeError):
        event.data["exitCode"] = 1


def test_unknown_type_rejected():
    with pytest.raises(ValueError):
        make_event("not_a_type", "s1")
