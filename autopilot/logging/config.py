"""
Logging Configuration for Autopilot.

Defines paths, rotation settings and log levels.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class LogConfig:
    """Configuration for the Autopilot structured logs."""

    log_dir: Path = field(default_factory=lambda: Path.home() / ".autopilot" / "logs")

    max_file_size_bytes: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5

    # DEBUG, INFO, WARNING, ERROR
    attempt_level: str = "INFO"
    store_level: str = "INFO"
    # Progress events are chatty; only recorded when explicitly enabled
    event_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Load config from environment variables with defaults."""
        config = cls()

        if level := os.environ.get("AUTOPILOT_LOG_LEVEL"):
            config.attempt_level = level
            config.store_level = level
            config.event_level = level

        if log_dir := os.environ.get("AUTOPILOT_LOG_DIR"):
            config.log_dir = Path(log_dir)

        if max_size := os.environ.get("AUTOPILOT_LOG_MAX_SIZE_MB"):
            try:
                config.max_file_size_bytes = int(max_size) * 1024 * 1024
            except ValueError:
                pass

        return config

    def ensure_log_dir(self) -> None:
        """Create log directory if it doesn't exist."""
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def attempt_log_path(self) -> Path:
        """One line per finished attempt."""
        return self.log_dir / "attempts.jsonl"

    @property
    def store_log_path(self) -> Path:
        """One line per feature status change."""
        return self.log_dir / "store.jsonl"

    @property
    def event_log_path(self) -> Path:
        """Mirror of the outward progress channel."""
        return self.log_dir / "events.jsonl"


_config: LogConfig | None = None


def get_config() -> LogConfig:
    """Get the global log config, initializing from env if needed."""
    global _config
    if _config is None:
        _config = LogConfig.from_env()
        _config.ensure_log_dir()
    return _config


def set_config(config: LogConfig) -> None:
    """Set a custom log config (useful for testing)."""
    global _config
    _config = config
    _config.ensure_log_dir()
