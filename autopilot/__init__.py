"""
Autopilot - autonomous feature execution engine.

Takes a project's feature list, drives each feature through
plan / act / verify with a Claude agent session, and records the outcome
back into the list.
"""

__version__ = "0.1.0"

from autopilot.exceptions import (
    AutopilotError,
    ConfigError,
    ContextLogError,
    ExecutionBusyError,
    FeatureError,
    FeatureNotFoundError,
    SessionCancelledError,
    SessionError,
    SessionTimeoutError,
)

__all__ = [
    "__version__",
    "AutopilotError",
    "ConfigError",
    "ContextLogError",
    "ExecutionBusyError",
    "FeatureError",
    "FeatureNotFoundError",
    "SessionCancelledError",
    "SessionError",
    "SessionTimeoutError",
]
