"""
Autopilot CLI - Rendering

Rich output for projects, features, live attempt progress and results.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from autopilot.config import AutopilotConfig, Project
from autopilot.features import Feature, FeatureStatus
from autopilot.orchestrator import AttemptEvent, AttemptResult, PhaseEvent, ProgressEvent, ToolEvent

console = Console()

STATUS_STYLES = {
    FeatureStatus.BACKLOG.value: "yellow",
    FeatureStatus.IN_PROGRESS.value: "blue",
    FeatureStatus.WAITING_APPROVAL.value: "magenta",
    FeatureStatus.VERIFIED.value: "green",
}

PHASE_STYLES = {"planning": "cyan", "action": "blue", "verification": "yellow"}


class ConsoleRenderer:
    """
    Progress sink that streams attempt events to the terminal.

    Agent text is printed as it arrives, without markup parsing. Tool calls
    are shown one per line; with ``show_tool_input`` their input is included.
    """

    def __init__(self, out: Console | None = None, show_tool_input: bool = False):
        self.console = out or console
        self.show_tool_input = show_tool_input

    def __call__(self, event: AttemptEvent) -> None:
        if isinstance(event, PhaseEvent):
            style = PHASE_STYLES.get(event.phase, "white")
            self.console.print()
            self.console.rule(f"[bold {style}]{event.phase.upper()}[/bold {style}]", style=style)
            self.console.print(f"[{style}]{event.message}[/{style}]")
        elif isinstance(event, ProgressEvent):
            self.console.print(event.content, end="", markup=False, highlight=False)
        elif isinstance(event, ToolEvent):
            line = f"    [dim]→ {event.tool}[/dim]"
            if self.show_tool_input and event.input:
                preview = str(event.input).replace("[", "\\[")
                line += f" [dim]{preview[:120]}[/dim]"
            self.console.print(line)


def show_project_list(config: AutopilotConfig) -> None:
    """Display registered projects."""
    console.print(Panel.fit("[bold]Your Projects[/bold]", border_style="blue"))
    console.print()

    if not config.projects:
        console.print("  [dim]No projects registered yet.[/dim]")
        console.print("  Use [cyan]autopilot add[/cyan] to register a project.")
        console.print()
        return

    for i, project in enumerate(config.projects, 1):
        exists = "[green]✓[/green]" if project.exists() else "[red]✗[/red]"
        console.print(f"  {exists} [{i}] [bold]{project.name}[/bold]")
        console.print(f"      [dim]{project.path}[/dim]")
        if project.description:
            console.print(f"      [dim]{project.description}[/dim]")
    console.print()


def show_feature_table(project: Project, features: list[Feature]) -> None:
    """Display the feature list with status counts."""
    if not features:
        console.print(f"[dim]No features in {project.feature_list_path}[/dim]")
        return

    table = Table(title=f"{project.name} features", show_header=True, header_style="bold")
    table.add_column("#", style="dim", width=3)
    table.add_column("ID", style="cyan")
    table.add_column("Status", width=16)
    table.add_column("Category", style="dim")
    table.add_column("Description")

    for i, feature in enumerate(features, 1):
        style = STATUS_STYLES.get(str(feature.status), "white")
        table.add_row(
            str(i),
            feature.id,
            f"[{style}]{feature.status}[/{style}]",
            feature.category or "-",
            feature.title[:70],
        )

    console.print(table)

    counts: dict[str, int] = {}
    for feature in features:
        counts[str(feature.status)] = counts.get(str(feature.status), 0) + 1
    summary = ", ".join(f"{count} {status}" for status, count in counts.items())
    console.print(f"[dim]{len(features)} features: {summary}[/dim]")


def show_feature(feature: Feature) -> None:
    lines = [
        f"[bold]ID:[/bold] {feature.id}",
        f"[bold]Status:[/bold] {feature.status or '-'}",
        f"[bold]Category:[/bold] {feature.category or '-'}",
        f"[bold]Skip tests:[/bold] {'yes' if feature.skip_tests else 'no'}",
        "",
        str(feature.description or "(no description)"),
    ]
    steps = feature.steps if isinstance(feature.steps, list) else []
    if steps:
        lines.append("")
        lines.extend(f"  {i}. {step}" for i, step in enumerate(steps, 1))
    console.print(Panel("\n".join(lines), title="[bold cyan]Next Feature[/bold cyan]"))


def show_result(result: AttemptResult) -> None:
    """Display the outcome of one attempt."""
    console.print()
    if result.aborted:
        console.print(Panel(f"[bold yellow]{result.message}[/bold yellow]", border_style="yellow"))
        return

    label = result.kind.label if result.kind else "Attempt"
    if result.passed:
        title, style = f"[bold green]{label} PASSED[/bold green]", "green"
    else:
        title, style = f"[bold red]{label} NOT PASSED[/bold red]", "red"

    body = f"[bold]Feature:[/bold] {result.feature_id}"
    if result.final_status:
        body += f"\n[bold]Status:[/bold] {result.final_status}"
    console.print(Panel(body, title=title, border_style=style))
