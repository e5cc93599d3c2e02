"""
Autopilot CLI - Typer Commands

Project registry commands (add, remove, list), feature list commands
(status, next, add-feature) and the attempt commands (implement, resume,
commit, run) that drive the execution controller.
"""

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from dotenv import load_dotenv
from rich.logging import RichHandler

from autopilot.agent.claude_sdk import claude_session_factory
from autopilot.cli.render import (
    ConsoleRenderer,
    console,
    show_feature,
    show_feature_table,
    show_project_list,
    show_result,
)
from autopilot.config import EngineSettings, Project, load_config, save_config
from autopilot.context_log import ContextLog
from autopilot.exceptions import AutopilotError, ConfigError
from autopilot.features import FeatureStore, select_next
from autopilot.logging import new_run_id
from autopilot.orchestrator import (
    AttemptResult,
    AutoModeService,
    ExecutionController,
    fanout,
    log_event,
)
from autopilot.state import AttemptKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

app = typer.Typer(
    name="autopilot",
    help="Autonomous feature execution: plan, act and verify a project's feature list with Claude",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show diagnostic logging"),
) -> None:
    """Autonomous feature execution with Claude."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _resolve(project_ref: str) -> Project:
    try:
        project = load_config().resolve_project(project_ref)
    except ConfigError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not project.exists():
        console.print(f"[bold red]Project directory does not exist:[/bold red] {project.path}")
        raise typer.Exit(1)
    return project


def _open_store(project: Project) -> FeatureStore:
    store = FeatureStore(project.full_path, project.data_dir)
    assigned = store.ensure_ids()
    if assigned:
        console.print(f"[dim]Assigned ids to {assigned} feature(s) without one[/dim]")
    return store


def _build_service(project: Project, show_tool_input: bool) -> AutoModeService:
    try:
        settings = EngineSettings.from_env()
    except ConfigError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e}")
        raise typer.Exit(1)
    if project.model:
        settings.model = project.model

    store = _open_store(project)
    context_log = ContextLog(project.full_path, project.data_dir)
    controller = ExecutionController(
        store,
        context_log,
        claude_session_factory,
        sink=fanout(ConsoleRenderer(show_tool_input=show_tool_input), log_event),
        settings=settings,
    )
    return AutoModeService(controller, store, context_log)


def _run_async(service: AutoModeService, work: Callable[[], Awaitable[T]]) -> T:
    """Run ``work`` on a fresh loop; Ctrl+C cancels running attempts cooperatively."""

    async def main() -> T:
        loop = asyncio.get_running_loop()

        def interrupt() -> None:
            console.print("\n[yellow]Cancelling running attempt...[/yellow]")
            service.stop()

        try:
            loop.add_signal_handler(signal.SIGINT, interrupt)
        except NotImplementedError:
            logger.debug("Signal handlers not supported on this platform")
        try:
            return await work()
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except NotImplementedError:
                pass

    new_run_id()
    try:
        return asyncio.run(main())
    except AutopilotError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _exit_for(result: AttemptResult) -> None:
    show_result(result)
    if not result.passed:
        raise typer.Exit(1)


# =============================================================================
# Attempt commands
# =============================================================================


@app.command()
def implement(
    project: str = typer.Argument(..., help="Project name, index or path"),
    feature_id: str = typer.Argument(None, help="Feature id (default: next selectable feature)"),
    show_tool_input: bool = typer.Option(False, "--tool-input", help="Show tool call inputs"),
    fresh: bool = typer.Option(False, "--fresh", help="Discard the recorded context first"),
) -> None:
    """Plan, implement and verify one feature."""
    proj = _resolve(project)
    service = _build_service(proj, show_tool_input)

    if feature_id is None:
        feature = select_next(service.store.load())
        if feature is None:
            console.print("[green]No features left to implement.[/green]")
            return
        feature_id = feature.id

    result = _run_async(
        service, lambda: service.start(feature_id, AttemptKind.IMPLEMENT, fresh=fresh)
    )
    _exit_for(result)


@app.command()
def resume(
    project: str = typer.Argument(..., help="Project name, index or path"),
    feature_id: str = typer.Argument(..., help="Feature id to resume"),
    show_tool_input: bool = typer.Option(False, "--tool-input", help="Show tool call inputs"),
) -> None:
    """Continue a feature from its recorded context."""
    proj = _resolve(project)
    service = _build_service(proj, show_tool_input)
    result = _run_async(service, lambda: service.start(feature_id, AttemptKind.RESUME))
    _exit_for(result)


@app.command()
def commit(
    project: str = typer.Argument(..., help="Project name, index or path"),
    feature_id: str = typer.Argument(..., help="Feature whose changes to commit"),
) -> None:
    """Have the agent commit the pending changes for a feature."""
    proj = _resolve(project)
    service = _build_service(proj, show_tool_input=False)
    result = _run_async(service, lambda: service.start(feature_id, AttemptKind.COMMIT))
    _exit_for(result)


@app.command()
def run(
    project: str = typer.Argument(..., help="Project name, index or path"),
    max_features: int = typer.Option(
        None, "--max", "-n", min=1, help="Stop after this many features"
    ),
    show_tool_input: bool = typer.Option(False, "--tool-input", help="Show tool call inputs"),
) -> None:
    """Auto mode: implement features one after another until the backlog is done."""
    proj = _resolve(project)
    service = _build_service(proj, show_tool_input)
    results = _run_async(service, lambda: service.run(max_features=max_features))

    for result in results:
        show_result(result)

    passed = sum(1 for r in results if r.passed)
    console.print(f"\n[bold]{passed}/{len(results)} features passed[/bold]")
    if any(r.aborted for r in results):
        raise typer.Exit(130)


# =============================================================================
# Feature list commands
# =============================================================================


@app.command()
def status(project: str = typer.Argument(..., help="Project name, index or path")) -> None:
    """Show the project's feature list."""
    proj = _resolve(project)
    features = _open_store(proj).load()
    show_feature_table(proj, features)


@app.command(name="next")
def next_feature(project: str = typer.Argument(..., help="Project name, index or path")) -> None:
    """Show the feature auto mode would pick next."""
    proj = _resolve(project)
    feature = select_next(_open_store(proj).load())
    if feature is None:
        console.print("[green]No features left to implement.[/green]")
        return
    show_feature(feature)


@app.command(name="add-feature")
def add_feature(
    project: str = typer.Argument(..., help="Project name, index or path"),
    description: str = typer.Argument(..., help="What the feature should do"),
    category: str = typer.Option("", "--category", "-c", help="Feature category"),
    steps: list[str] = typer.Option(None, "--step", "-s", help="Verification step (repeatable)"),
    skip_tests: bool = typer.Option(
        False, "--skip-tests", help="Pass at the human approval gate instead of verified"
    ),
) -> None:
    """Append a feature to the project's backlog."""
    proj = _resolve(project)
    store = FeatureStore(proj.full_path, proj.data_dir)
    feature = store.add_feature(
        description, category=category, steps=steps or [], skip_tests=skip_tests
    )
    console.print(f"[green]Added feature {feature.id}[/green]")


# =============================================================================
# Project registry
# =============================================================================


@app.command()
def add(
    name: str = typer.Argument(..., help="Project name"),
    path: str = typer.Argument(..., help="Path to project directory"),
    description: str = typer.Option("", help="Project description"),
    model: str = typer.Option(None, "--model", help="Default model for this project"),
) -> None:
    """Register a project."""
    try:
        config = load_config()
        project = Project(name=name, path=path, description=description, model=model)

        if not project.exists():
            console.print(f"[yellow]Warning: Directory does not exist: {project.path}[/yellow]")

        config.add_project(project)
        save_config(config)
        console.print(f"[green]Added project '{name}'[/green]")

    except ConfigError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def remove(name: str = typer.Argument(..., help="Project name to remove")) -> None:
    """Unregister a project."""
    try:
        config = load_config()
        project = config.remove_project(name)
        save_config(config)
        console.print(f"[green]Removed project '{project.name}'[/green]")

    except ConfigError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command(name="list")
def list_projects() -> None:
    """List all registered projects."""
    try:
        config = load_config()
        show_project_list(config)
    except ConfigError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def main() -> None:
    """Entry point wrapper that invokes the Typer app."""
    app()


if __name__ == "__main__":
    main()
