"""
Autopilot - Exception Hierarchy

All Autopilot-specific exceptions inherit from AutopilotError.

Cancellation of an attempt is NOT an error from the caller's point of view:
SessionCancelledError never escapes the execution controller, which turns it
into a `passed=False` result. Everything else raised by an agent session is a
fault and propagates.
"""

from typing import Any


class AutopilotError(Exception):
    """Base exception for all Autopilot errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# Configuration Errors
class ConfigError(AutopilotError):
    """Raised when configuration is invalid or missing."""

    pass


class ProjectNotFoundError(ConfigError):
    """Raised when a project is not found in the registry."""

    pass


# Feature Errors
class FeatureError(AutopilotError):
    """Base exception for feature lookup and scheduling errors."""

    pass


class FeatureNotFoundError(FeatureError):
    """Raised when a command targets a feature id that is not in the store."""

    def __init__(self, feature_id: str):
        super().__init__(f"Feature '{feature_id}' not found", {"feature_id": feature_id})
        self.feature_id = feature_id


class ExecutionBusyError(FeatureError):
    """Raised when an attempt is started for a feature that already has one running."""

    def __init__(self, feature_id: str, kind: str):
        super().__init__(
            f"Feature '{feature_id}' already has a running attempt",
            {"feature_id": feature_id, "running_kind": kind},
        )
        self.feature_id = feature_id
        self.kind = kind


# Context Log Errors
class ContextLogError(AutopilotError):
    """Raised when a transcript append cannot be completed."""

    pass


# Agent Session Errors
class SessionError(AutopilotError):
    """Base exception for agent session errors."""

    pass


class SessionCancelledError(SessionError):
    """Raised by a session when its cancel token was triggered."""

    pass


class SessionTimeoutError(SessionError):
    """Raised when a session exceeds the configured wall-clock timeout."""

    def __init__(self, message: str, timeout_seconds: float):
        super().__init__(message, {"timeout_seconds": timeout_seconds})
        self.timeout_seconds = timeout_seconds


# State Errors
class StateTransitionError(AutopilotError):
    """Raised when an invalid attempt phase transition is attempted.

    Includes the current state and the attempted target state for debugging.
    """

    def __init__(self, message: str, from_state: str, to_state: str):
        super().__init__(message, {"from_state": from_state, "to_state": to_state})
        self.from_state = from_state
        self.to_state = to_state
