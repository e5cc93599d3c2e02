"""Tests for the outward progress events and sinks."""

import json
from dataclasses import FrozenInstanceError

import pytest

from autopilot.logging import set_run_id
from autopilot.orchestrator.events import PhaseEvent, ProgressEvent, ToolEvent, fanout, log_event


class TestWireFormat:
    def test_phase_event(self):
        event = PhaseEvent("f1", "planning", "Planning implementation for: Login")
        assert event.to_dict() == {
            "type": "auto_mode_phase",
            "featureId": "f1",
            "phase": "planning",
            "message": "Planning implementation for: Login",
        }

    def test_progress_event(self):
        assert ProgressEvent("f1", "hello").to_dict() == {
            "type": "auto_mode_progress",
            "featureId": "f1",
            "content": "hello",
        }

    def test_tool_event_defaults_to_empty_input(self):
        data = ToolEvent("f1", "Read").to_dict()
        assert data["type"] == "auto_mode_tool"
        assert data["input"] == {}

    def test_events_are_frozen(self):
        event = ProgressEvent("f1", "x")
        with pytest.raises(FrozenInstanceError):
            event.content = "y"


class TestSinks:
    def test_fanout_preserves_order_and_skips_none(self):
        first, second = [], []
        sink = fanout(first.append, None, second.append)

        sink(ProgressEvent("f1", "a"))
        sink(ToolEvent("f1", "Bash", {"command": "ls"}))

        assert first == second
        assert [type(e) for e in first] == [ProgressEvent, ToolEvent]

    def test_log_event_writes_jsonl(self, isolated_logs):
        set_run_id("run-events")
        log_event(ToolEvent("f1", "Bash", {"command": "pytest"}))

        line = isolated_logs.event_log_path.read_text().splitlines()[-1]
        data = json.loads(line)
        assert data["type"] == "auto_mode_tool"
        assert data["feature_id"] == "f1"
        assert data["run_id"] == "run-events"
        assert data["payload"] == {"tool": "Bash", "input": {"command": "pytest"}}
