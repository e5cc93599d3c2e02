"""
Context Log - per-feature agent transcripts

Append-only text files under <project>/.automaker/context/. The controller
mirrors every streamed fragment and phase marker here; the transcript is read
back only to rebuild context when an attempt is resumed.
"""

import logging
import os
import re
from pathlib import Path

from autopilot.config import DEFAULT_DATA_DIR
from autopilot.exceptions import ContextLogError

logger = logging.getLogger(__name__)

CONTEXT_DIR = "context"

# Feature ids come from a user-editable file; keep them inside the context dir
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class ContextLog:
    """Transcript files for one project's features."""

    def __init__(self, project_path: str | Path, data_dir: str = DEFAULT_DATA_DIR):
        self.project_path = Path(project_path)
        self.directory = self.project_path / data_dir / CONTEXT_DIR

    def path_for(self, feature_id: str) -> Path:
        safe_name = _UNSAFE_CHARS.sub("_", feature_id).lstrip(".") or "feature"
        return self.directory / f"{safe_name}.md"

    def append(self, feature_id: str, text: str) -> None:
        """
        Append text to the feature's transcript.

        The data is flushed and synced before returning.

        Raises:
            ContextLogError: If the transcript cannot be written
        """
        path = self.path_for(feature_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(text)
                f.flush()
                os.fsync(f.fileno())
        except (OSError, ValueError) as e:
            raise ContextLogError(
                f"Could not append to context log for {feature_id}",
                {"path": str(path), "error": str(e)},
            ) from e

    def read(self, feature_id: str) -> str:
        """Return the transcript, or an empty string if there is none."""
        path = self.path_for(feature_id)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except OSError as e:
            logger.warning(f"Could not read context log {path}: {e}")
            return ""

    def clear(self, feature_id: str) -> bool:
        """Delete the transcript. Returns True if one existed."""
        path = self.path_for(feature_id)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
