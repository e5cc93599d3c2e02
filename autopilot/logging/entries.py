"""
Log Entry Data Structures for Autopilot.

Structured entries for finished attempts, feature status changes and
mirrored progress events.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


def now_iso() -> str:
    """Current local time as ISO 8601."""
    return datetime.now().isoformat()


class _JsonEntry:
    """Shared (de)serialization for the entry dataclasses."""

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class AttemptLogEntry(_JsonEntry):
    """Log entry for one implement / resume / commit attempt."""

    # Identity
    timestamp: str  # ISO 8601
    attempt_id: str  # UUID
    run_id: str
    feature_id: str
    kind: str  # implement, resume, commit

    # Input
    model: str = ""
    max_turns: int = 0
    allowed_tools: list[str] = field(default_factory=list)
    prompt: str = ""
    project_path: str = ""

    # Output
    passed: bool = False
    aborted: bool = False
    final_status: str | None = None
    message: str = ""
    error: str | None = None
    error_type: str | None = None

    # Tool usage
    tool_calls: list[dict[str, Any]] = field(default_factory=list)

    # Metrics
    duration_ms: int = 0
    num_events: int = 0
    num_turns: int = 0
    cost_usd: float = 0.0


@dataclass
class StatusChangeLogEntry(_JsonEntry):
    """Log entry for a feature status rewrite."""

    timestamp: str
    run_id: str
    feature_id: str
    old_status: str
    new_status: str
    summary: str | None = None
    store_path: str = ""


@dataclass
class EventLogEntry(_JsonEntry):
    """Mirror of one outward progress event."""

    timestamp: str
    run_id: str
    type: str
    feature_id: str
    payload: dict[str, Any] = field(default_factory=dict)
