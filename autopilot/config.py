"""
Autopilot - Configuration Management

Handles loading projects.json, environment variables, and engine settings.
Projects are stored in ~/.config/autopilot/projects.json
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from autopilot.exceptions import ConfigError, ProjectNotFoundError


# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "autopilot"
PROJECTS_FILE = CONFIG_DIR / "projects.json"

# Per-project data directory shared with the dashboard front end
DEFAULT_DATA_DIR = ".automaker"
FEATURE_LIST_FILE = "feature_list.json"

DEFAULT_MODEL = "claude-opus-4-5-20251101"
DEFAULT_COMMIT_MODEL = "claude-sonnet-4-20250514"

# Large but finite so a looping agent still terminates
DEFAULT_MAX_TURNS = 1000
DEFAULT_COMMIT_MAX_TURNS = 15


@dataclass
class Project:
    """A registered project whose feature backlog Autopilot drives."""

    name: str
    path: str
    data_dir: str = DEFAULT_DATA_DIR
    model: str | None = None
    description: str = ""

    def __post_init__(self) -> None:
        # Expand ~ in path
        self.path = str(Path(self.path).expanduser())

    @property
    def full_path(self) -> Path:
        """Get the full path as a Path object."""
        return Path(self.path)

    @property
    def feature_list_path(self) -> Path:
        """Get full path to the feature list."""
        return self.full_path / self.data_dir / FEATURE_LIST_FILE

    def exists(self) -> bool:
        """Check if project directory exists."""
        return self.full_path.exists()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "name": self.name,
            "path": self.path,
            "data_dir": self.data_dir,
            "description": self.description,
        }
        if self.model:
            data["model"] = self.model
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Project":
        """Create Project from dictionary."""
        return cls(
            name=data["name"],
            path=data["path"],
            data_dir=data.get("data_dir", DEFAULT_DATA_DIR),
            model=data.get("model"),
            description=data.get("description", ""),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer", {"value": raw})
    if value <= 0:
        raise ConfigError(f"{name} must be positive", {"value": value})
    return value


def _env_float(name: str) -> float | None:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number of seconds", {"value": raw})
    return value if value > 0 else None


@dataclass
class EngineSettings:
    """Settings applied to every agent session the controller opens."""

    model: str = DEFAULT_MODEL
    commit_model: str = DEFAULT_COMMIT_MODEL
    max_turns: int = DEFAULT_MAX_TURNS
    commit_max_turns: int = DEFAULT_COMMIT_MAX_TURNS
    permission_mode: str = "acceptEdits"
    # Wall-clock guard on a single session; None keeps the turn ceiling as the only bound
    session_timeout: float | None = None

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """
        Load settings from environment variables with defaults.

        Raises:
            ConfigError: If a numeric variable cannot be parsed
        """
        return cls(
            model=os.environ.get("AUTOPILOT_MODEL") or DEFAULT_MODEL,
            commit_model=os.environ.get("AUTOPILOT_COMMIT_MODEL") or DEFAULT_COMMIT_MODEL,
            max_turns=_env_int("AUTOPILOT_MAX_TURNS", DEFAULT_MAX_TURNS),
            commit_max_turns=_env_int("AUTOPILOT_COMMIT_MAX_TURNS", DEFAULT_COMMIT_MAX_TURNS),
            session_timeout=_env_float("AUTOPILOT_SESSION_TIMEOUT"),
        )


@dataclass
class AutopilotConfig:
    """Main configuration container for Autopilot."""

    projects: list[Project] = field(default_factory=list)
    settings: EngineSettings = field(default_factory=EngineSettings)

    def get_project(self, name_or_index: str | int) -> Project:
        """
        Get a project by name or index.

        Args:
            name_or_index: Project name (str) or 1-based index (int)

        Returns:
            The matching Project

        Raises:
            ProjectNotFoundError: If project not found
        """
        if isinstance(name_or_index, int):
            idx = name_or_index - 1
            if 0 <= idx < len(self.projects):
                return self.projects[idx]
            raise ProjectNotFoundError(
                f"Project index {name_or_index} out of range",
                {"available": len(self.projects)},
            )

        for project in self.projects:
            if project.name.lower() == name_or_index.lower():
                return project

        raise ProjectNotFoundError(
            f"Project '{name_or_index}' not found",
            {"available": [p.name for p in self.projects]},
        )

    def resolve_project(self, ref: str) -> Project:
        """
        Resolve a CLI project reference.

        Accepts a registered name, a 1-based index, or a directory path.
        A path that is not registered yields an ad-hoc Project named after
        the directory.
        """
        if ref.isdigit():
            return self.get_project(int(ref))
        try:
            return self.get_project(ref)
        except ProjectNotFoundError:
            candidate = Path(ref).expanduser()
            if candidate.is_dir():
                return Project(name=candidate.resolve().name, path=str(candidate.resolve()))
            raise

    def add_project(self, project: Project) -> None:
        """Add a new project to the configuration."""
        for existing in self.projects:
            if existing.name.lower() == project.name.lower():
                raise ConfigError(
                    f"Project '{project.name}' already exists",
                    {"existing_path": existing.path},
                )
        self.projects.append(project)

    def remove_project(self, name: str) -> Project:
        """Remove a project by name and return it."""
        for i, project in enumerate(self.projects):
            if project.name.lower() == name.lower():
                return self.projects.pop(i)
        raise ProjectNotFoundError(f"Project '{name}' not found")


def ensure_config_dir() -> None:
    """Ensure configuration directory exists."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def load_config(projects_file: Path | None = None) -> AutopilotConfig:
    """
    Load configuration from files and environment.

    Returns:
        AutopilotConfig with all settings loaded

    Raises:
        ConfigError: If configuration is invalid
    """
    projects_file = projects_file or PROJECTS_FILE
    config = AutopilotConfig(settings=EngineSettings.from_env())

    if projects_file.exists():
        try:
            with open(projects_file) as f:
                data = json.load(f)

            for project_data in data.get("projects", []):
                config.projects.append(Project.from_dict(project_data))

        except json.JSONDecodeError as e:
            raise ConfigError(
                f"Invalid JSON in {projects_file}",
                {"error": str(e)},
            )
        except KeyError as e:
            raise ConfigError(
                "Missing required field in project config",
                {"field": str(e)},
            )

    return config


def save_config(config: AutopilotConfig, projects_file: Path | None = None) -> None:
    """
    Save the project registry.

    Args:
        config: AutopilotConfig to save
        projects_file: Override target (defaults to ~/.config/autopilot/projects.json)
    """
    if projects_file is None:
        ensure_config_dir()
        projects_file = PROJECTS_FILE
    else:
        projects_file.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "projects": [p.to_dict() for p in config.projects],
    }

    with open(projects_file, "w") as f:
        json.dump(data, f, indent=2)
