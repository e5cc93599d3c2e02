"""
Progress Events - the outward channel

Typed events emitted by the controller in the exact order the agent session
produced the underlying output. Sinks are plain callables; subscribers are
passive and never reply.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from autopilot.logging import EventLogEntry, event_logger, get_run_id, now_iso


@dataclass(frozen=True)
class PhaseEvent:
    """The attempt entered a new phase (planning, action, verification)."""

    type: ClassVar[str] = "auto_mode_phase"

    feature_id: str
    phase: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "featureId": self.feature_id,
            "phase": self.phase,
            "message": self.message,
        }


@dataclass(frozen=True)
class ProgressEvent:
    """A text fragment or engine status line."""

    type: ClassVar[str] = "auto_mode_progress"

    feature_id: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "featureId": self.feature_id, "content": self.content}


@dataclass(frozen=True)
class ToolEvent:
    """The agent invoked a tool."""

    type: ClassVar[str] = "auto_mode_tool"

    feature_id: str
    tool: str
    input: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "featureId": self.feature_id,
            "tool": self.tool,
            "input": self.input,
        }


AttemptEvent = Union[PhaseEvent, ProgressEvent, ToolEvent]
ProgressSink = Callable[[AttemptEvent], None]


def log_event(event: AttemptEvent) -> None:
    """Sink that mirrors events into events.jsonl (recorded at DEBUG)."""
    payload = event.to_dict()
    payload.pop("type")
    payload.pop("featureId")
    event_logger.debug(
        EventLogEntry(
            timestamp=now_iso(),
            run_id=get_run_id(),
            type=event.type,
            feature_id=event.feature_id,
            payload=payload,
        ).to_json()
    )


def fanout(*sinks: ProgressSink | None) -> ProgressSink:
    """Combine sinks; each event goes to every sink in argument order."""
    targets = [sink for sink in sinks if sink is not None]

    def emit(event: AttemptEvent) -> None:
        for sink in targets:
            sink(event)

    return emit
