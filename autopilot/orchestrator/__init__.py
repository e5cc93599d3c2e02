"""Attempt orchestration: execution handles, the controller and auto mode."""

from autopilot.orchestrator.auto_mode import AutoModeService
from autopilot.orchestrator.controller import (
    CODING_TOOLS,
    COMMIT_TOOLS,
    MAX_MESSAGE_CHARS,
    AttemptResult,
    ExecutionController,
)
from autopilot.orchestrator.events import (
    AttemptEvent,
    PhaseEvent,
    ProgressEvent,
    ProgressSink,
    ToolEvent,
    fanout,
    log_event,
)
from autopilot.orchestrator.execution import Execution

__all__ = [
    "AutoModeService",
    "AttemptResult",
    "ExecutionController",
    "Execution",
    "AttemptEvent",
    "PhaseEvent",
    "ProgressEvent",
    "ToolEvent",
    "ProgressSink",
    "fanout",
    "log_event",
    "CODING_TOOLS",
    "COMMIT_TOOLS",
    "MAX_MESSAGE_CHARS",
]
