"""
Autopilot Logging System.

Structured JSONL logs alongside the usual per-module ``logging`` diagnostics:
- attempts.jsonl: one entry per implement / resume / commit attempt
- store.jsonl: one entry per feature status change
- events.jsonl: mirror of the outward progress channel (off below WARNING)

Usage:
    from autopilot.logging import AttemptLogEntry, attempt_logger, now_iso

    attempt_logger.info(entry.to_json())

Logs are written to ~/.autopilot/logs/ unless AUTOPILOT_LOG_DIR is set.
"""

import threading
import uuid
from typing import Any

from .config import LogConfig, get_config
from .config import set_config as _set_config
from .entries import AttemptLogEntry, EventLogEntry, StatusChangeLogEntry, now_iso
from .handlers import create_jsonl_logger

# Thread-local run id for correlating entries of one CLI invocation
_context = threading.local()


def set_run_id(run_id: str) -> None:
    """Set the current run ID for log correlation."""
    _context.run_id = run_id


def get_run_id() -> str:
    """Get the current run ID, or 'unknown' if not set."""
    return getattr(_context, "run_id", "unknown")


def new_run_id() -> str:
    """Generate, install and return a fresh run ID."""
    run_id = f"run-{uuid.uuid4().hex[:12]}"
    set_run_id(run_id)
    return run_id


_loggers: dict[str, Any] = {}
_init_lock = threading.Lock()


def _ensure_loggers() -> None:
    """Initialize loggers on first use."""
    if _loggers:
        return

    with _init_lock:
        if _loggers:
            return

        config = get_config()
        for name, path, level in (
            ("attempt", config.attempt_log_path, config.attempt_level),
            ("store", config.store_log_path, config.store_level),
            ("event", config.event_log_path, config.event_level),
        ):
            _loggers[name] = create_jsonl_logger(
                f"autopilot.{name}",
                path,
                level=level,
                max_bytes=config.max_file_size_bytes,
                backup_count=config.backup_count,
            )


def set_config(config: LogConfig) -> None:
    """Install a log config and rebuild the structured loggers on next use."""
    with _init_lock:
        _set_config(config)
        _loggers.clear()


class _LazyLogger:
    """Lazy wrapper that initializes the actual logger on first use."""

    def __init__(self, name: str):
        self._name = name

    def _get_logger(self) -> Any:
        _ensure_loggers()
        return _loggers[self._name]

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._get_logger().error(msg, *args, **kwargs)


attempt_logger = _LazyLogger("attempt")
store_logger = _LazyLogger("store")
event_logger = _LazyLogger("event")


__all__ = [
    # Loggers
    "attempt_logger",
    "store_logger",
    "event_logger",
    # Log entries
    "AttemptLogEntry",
    "StatusChangeLogEntry",
    "EventLogEntry",
    # Utilities
    "now_iso",
    "get_run_id",
    "set_run_id",
    "new_run_id",
    # Config
    "LogConfig",
    "get_config",
    "set_config",
]
