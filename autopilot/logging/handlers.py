"""
Custom Log Handlers for Autopilot.

JSONL rotating file handler for structured log output.
"""

import json
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path


class JSONLRotatingHandler(RotatingFileHandler):
    """
    Rotating file handler that writes one JSON object per line.

    Messages produced by an entry's ``to_json()`` are written as-is, tagged
    with the record level. Plain-text messages are wrapped so every line of
    the file stays parseable.
    """

    def __init__(
        self,
        filename: str | Path,
        max_bytes: int = 10_000_000,
        backup_count: int = 5,
    ):
        filepath = Path(filename)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        super().__init__(
            str(filepath),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            try:
                data = json.loads(msg)
                if not isinstance(data, dict):
                    raise ValueError("not an object")
            except ValueError:
                data = {
                    "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                    "message": msg,
                    "logger": record.name,
                }
            data.setdefault("level", record.levelname)

            # RotatingFileHandler.emit does the rollover check, so do it here too
            if self.shouldRollover(record):
                self.doRollover()
            if self.stream is None:
                self.stream = self._open()
            self.stream.write(json.dumps(data, default=str) + "\n")
            self.flush()

        except Exception:
            self.handleError(record)


class MessageOnlyFormatter(logging.Formatter):
    """Return the message untouched; entries are already JSON."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def create_jsonl_logger(
    name: str,
    filepath: Path,
    level: str = "INFO",
    max_bytes: int = 10_000_000,
    backup_count: int = 5,
) -> logging.Logger:
    """
    Create a logger that writes JSONL to ``filepath``.

    The logger does not propagate, so structured entries never show up in
    console diagnostics.
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handler = JSONLRotatingHandler(
        filepath,
        max_bytes=max_bytes,
        backup_count=backup_count,
    )
    handler.setFormatter(MessageOnlyFormatter())
    logger.addHandler(handler)
    logger.propagate = False

    return logger
