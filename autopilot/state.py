"""
Autopilot - Attempt State Machine

Tracks the phase of a single feature attempt so the controller cannot, for
example, verify an attempt that never acted.

Phase transitions:
PENDING -> PLANNING (implement)
PENDING -> ACTING (resume)
PENDING -> COMMITTING (commit)
PLANNING -> ACTING
ACTING -> VERIFYING
VERIFYING -> PASSED | FAILED
COMMITTING -> PASSED
Any non-terminal -> ABORTED (cancellation) or FAILED (fault)
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto


class AttemptKind(str, Enum):
    """The three attempt flows the controller knows how to run."""

    IMPLEMENT = "implement"
    RESUME = "resume"
    COMMIT = "commit"

    @property
    def label(self) -> str:
        """Human label used in abort messages."""
        return {
            AttemptKind.IMPLEMENT: "Implementation",
            AttemptKind.RESUME: "Resume",
            AttemptKind.COMMIT: "Commit",
        }[self]


class AttemptPhase(Enum):
    """Possible phases of a feature attempt."""

    PENDING = auto()
    PLANNING = auto()
    ACTING = auto()
    VERIFYING = auto()
    COMMITTING = auto()
    PASSED = auto()
    FAILED = auto()
    ABORTED = auto()


TERMINAL_PHASES = frozenset({AttemptPhase.PASSED, AttemptPhase.FAILED, AttemptPhase.ABORTED})

_EXITS = {AttemptPhase.FAILED, AttemptPhase.ABORTED}

VALID_TRANSITIONS: dict[AttemptPhase, set[AttemptPhase]] = {
    AttemptPhase.PENDING: {
        AttemptPhase.PLANNING,
        AttemptPhase.ACTING,
        AttemptPhase.COMMITTING,
        *_EXITS,
    },
    AttemptPhase.PLANNING: {AttemptPhase.ACTING, *_EXITS},
    AttemptPhase.ACTING: {AttemptPhase.VERIFYING, *_EXITS},
    AttemptPhase.VERIFYING: {AttemptPhase.PASSED, *_EXITS},
    AttemptPhase.COMMITTING: {AttemptPhase.PASSED, *_EXITS},
    AttemptPhase.PASSED: set(),
    AttemptPhase.FAILED: set(),
    AttemptPhase.ABORTED: set(),
}

# First working phase for each attempt kind
ENTRY_PHASE: dict[AttemptKind, AttemptPhase] = {
    AttemptKind.IMPLEMENT: AttemptPhase.PLANNING,
    AttemptKind.RESUME: AttemptPhase.ACTING,
    AttemptKind.COMMIT: AttemptPhase.COMMITTING,
}


@dataclass
class AttemptContext:
    """Bookkeeping for one attempt: phase, streamed text and tool usage."""

    kind: AttemptKind
    feature_id: str
    phase: AttemptPhase = AttemptPhase.PENDING
    response_text: str = ""
    tool_calls: list[dict] = field(default_factory=list)
    event_count: int = 0

    # Session configuration, kept for the attempt log
    prompt: str = ""
    model: str = ""
    max_turns: int = 0
    allowed_tools: list[str] = field(default_factory=list)

    # Filled from the session's final result event, when it sends one
    num_turns: int = 0
    cost_usd: float = 0.0

    started_at: datetime = field(default_factory=datetime.now)
    last_activity: datetime = field(default_factory=datetime.now)

    @property
    def is_finished(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def has_used_tools(self) -> bool:
        return bool(self.tool_calls)

    def transition_to(self, new_state: AttemptPhase) -> bool:
        """
        Attempt to transition to a new phase.

        Returns:
            True if transition was valid and performed, False otherwise
        """
        if new_state in VALID_TRANSITIONS.get(self.phase, set()):
            self.phase = new_state
            self.last_activity = datetime.now()
            return True
        return False

    def require_transition(self, new_state: AttemptPhase) -> None:
        """
        Transition to a new phase, raising if invalid.

        Raises:
            StateTransitionError: If the transition is not valid
        """
        from autopilot.exceptions import StateTransitionError

        if not self.transition_to(new_state):
            valid_targets = VALID_TRANSITIONS.get(self.phase, set())
            valid_names = ", ".join(sorted(s.name for s in valid_targets)) or "none"
            raise StateTransitionError(
                f"Invalid attempt transition: {self.phase.name} -> {new_state.name}. "
                f"Valid transitions from {self.phase.name}: {valid_names}",
                from_state=self.phase.name,
                to_state=new_state.name,
            )

    def can_transition_to(self, new_state: AttemptPhase) -> bool:
        """Check if transition to new_state is valid from current phase."""
        return new_state in VALID_TRANSITIONS.get(self.phase, set())

    def finish(self, outcome: AttemptPhase) -> None:
        """Move to a terminal phase if not already in one."""
        if not self.is_finished:
            self.require_transition(outcome)

    def record_text(self, text: str) -> None:
        self.response_text += text
        self.event_count += 1
        self.last_activity = datetime.now()

    def record_tool(self, name: str, tool_input: dict) -> None:
        self.tool_calls.append(
            {"name": name, "input": tool_input, "timestamp": datetime.now().isoformat()}
        )
        self.event_count += 1
        self.last_activity = datetime.now()

    def elapsed_ms(self) -> int:
        return int((datetime.now() - self.started_at).total_seconds() * 1000)
