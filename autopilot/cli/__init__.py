"""
Autopilot CLI components.

- render.py: rich output and the console progress sink
- typer_commands.py: CLI entry points (run, implement, status, add, ...)
"""

from autopilot.cli.render import ConsoleRenderer
from autopilot.cli.typer_commands import (
    add,
    add_feature,
    app,
    commit,
    implement,
    list_projects,
    main,
    next_feature,
    remove,
    resume,
    run,
    status,
)

__all__ = [
    "app",
    "main",
    "ConsoleRenderer",
    "add",
    "add_feature",
    "commit",
    "implement",
    "list_projects",
    "next_feature",
    "remove",
    "resume",
    "run",
    "status",
]
