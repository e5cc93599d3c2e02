"""
Execution - handle for one in-flight attempt

Created by the caller right before an attempt starts and discarded when it
concludes. Never persisted; only the feature's status and summary outlive it.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from autopilot.state import AttemptKind

if TYPE_CHECKING:
    from autopilot.agent.session import AgentSession, CancelToken


class Execution:
    """
    Session and cancellation state for one attempt on one feature.

    ``session`` and ``cancel`` are set by the controller while an agent
    session is open and cleared on every exit path.
    """

    def __init__(self, feature_id: str, kind: AttemptKind = AttemptKind.IMPLEMENT):
        self.feature_id = feature_id
        self.kind = kind
        self.session: AgentSession | None = None
        self.cancel: CancelToken | None = None
        self.created_at = datetime.now()
        self._active = True

    def is_active(self) -> bool:
        """True until the execution is stopped or superseded."""
        return self._active

    def stop(self) -> None:
        """Mark inactive and fire the current session's cancel token, if any."""
        self._active = False
        if self.cancel is not None:
            self.cancel.cancel()

    def clear_handles(self) -> None:
        self.session = None
        self.cancel = None

    def __repr__(self) -> str:
        state = "active" if self._active else "stopped"
        return f"Execution({self.feature_id!r}, {self.kind.value}, {state})"
