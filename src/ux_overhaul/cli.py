"""Typer CLI entrypoint for ux-overhaul."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, NoReturn

import typer
from filelock import Timeout
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ux_overhaul import pipeline
from ux_overhaul.anchoring.engine import AnchoringProgress
from ux_overhaul.anchoring.gates import GateType, format_gate_prompt, parse_user_input
from ux_overhaul.anchoring.slots import estimate_anchoring_cost
from ux_overhaul.coherence.flows import format_flow_summary
from ux_overhaul.coherence.report import (
    coherence_status_line,
    format_coherence_summary,
    outlier_status_line,
    read_coherence_report,
)
from ux_overhaul.config.settings import ConfigError, OverhaulConfig, resolve_config
from ux_overhaul.design.models import Viewport
from ux_overhaul.design.style import (
    available_style_directions,
    default_palette,
    palette_preview,
)
from ux_overhaul.kernel.errors import GateError, PipelineError
from ux_overhaul.kernel.manifest import (
    PHASE_ORDER,
    PhaseName,
    current_phase,
    progress_percentage,
    read_manifest,
)
from ux_overhaul.kernel.paths import (
    get_coherence_report_path,
    get_propagation_report_path,
    get_states_report_path,
)
from ux_overhaul.propagation.report import (
    estimate_propagation_cost,
    format_cost_summary,
    format_propagation_summary,
    propagation_status_line,
    read_propagation_report,
)
from ux_overhaul.states.report import (
    format_states_summary,
    read_states_report,
    states_status_line,
)

app = typer.Typer(help="UX overhaul pipeline CLI")
_CONSOLE = Console()
_LOGGING_CONFIGURED = False

ProjectArg = Annotated[
    Path,
    typer.Argument(file_okay=False, dir_okay=True, help="Project directory."),
]
ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        file_okay=True,
        dir_okay=False,
        help="Pipeline config YAML/JSON (default: <project>/ux-overhaul.yaml).",
    ),
]

_STATUS_STYLES = {
    "pending": "dim",
    "in_progress": "yellow",
    "complete": "green",
    "skipped": "cyan",
    "failed": "bold red",
}


def _configure_logging(verbose: bool = False) -> None:
    """Configure Rich-backed logging once for CLI commands."""
    global _LOGGING_CONFIGURED  # noqa: PLW0603
    if _LOGGING_CONFIGURED:
        return
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
    )
    _LOGGING_CONFIGURED = True


# Errors every command reports as a coded one-liner instead of a traceback.
_CLI_ERRORS = (PipelineError, ConfigError, OSError, ValueError)


def _error_code(exc: Exception) -> str:
    if isinstance(exc, PipelineError):
        return exc.code.value
    if isinstance(exc, ConfigError):
        return "config_error"
    if isinstance(exc, Timeout):
        return "project_locked"
    if isinstance(exc, FileNotFoundError | FileExistsError):
        return "project_error"
    if isinstance(exc, ValueError):
        return "invalid_input"
    return "io_error"


def _exit_with_error(exc: Exception) -> NoReturn:
    """Print a one-line error and exit with status 1.

    Args:
        exc: Error to report.

    Raises:
        typer.Exit: Always.
    """
    message = exc.message if isinstance(exc, PipelineError) else str(exc)
    _CONSOLE.print(f"[bold red]Error ({_error_code(exc)}):[/bold red] {message}")
    raise typer.Exit(code=1) from exc


def _load_config(project_dir: Path, config_file: Path | None) -> OverhaulConfig:
    return resolve_config(project_dir, config_file)


def _render_progress(progress: AnchoringProgress) -> None:
    """Render anchoring progress, including the gate prompt when suspended."""
    if progress.status == "awaiting_gate" and progress.gate is not None:
        _CONSOLE.print(
            Panel(
                format_gate_prompt(progress.gate),
                title=f"Gate {progress.gate.gate_id}",
                border_style="yellow",
                expand=True,
            )
        )
        return
    style = "green" if progress.status == "complete" else "cyan"
    _CONSOLE.print(
        f"[{style}]Anchoring {progress.status}: "
        f"{progress.validated}/{progress.total} anchors validated[/{style}]"
    )


def _report_status_lines(project_dir: Path) -> list[str]:
    """Status lines for every phase report present in the project."""
    lines: list[str] = []
    if get_propagation_report_path(project_dir).exists():
        propagation = read_propagation_report(project_dir)
        lines.append(f"Propagation: {propagation_status_line(propagation.summary)}")
    if get_states_report_path(project_dir).exists():
        states = read_states_report(project_dir)
        lines.append(f"States: {states_status_line(states.summary)}")
    if get_coherence_report_path(project_dir).exists():
        coherence = read_coherence_report(project_dir)
        lines.append(f"Coherence: {coherence_status_line(coherence.summary)}")
    return lines


@app.callback()
def main(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging.")
    ] = False,
) -> None:
    """Redesign captured app screens through checkpointed phases."""
    _configure_logging(verbose)


@app.command("init")
def init_command(
    project_dir: ProjectArg,
    project_id: Annotated[str, typer.Option("--id", help="Project identifier.")],
    app_url: Annotated[str, typer.Option("--url", help="Application URL.")] = "",
    viewport: Annotated[
        Viewport, typer.Option(help="Target viewport.")
    ] = Viewport.MOBILE,
) -> None:
    """Create a new project manifest."""
    try:
        store = pipeline.init_project(
            project_dir, project_id, app_url=app_url, viewport=viewport
        )
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    _CONSOLE.print(
        Panel(
            f"Project: {store.manifest.project_id}\nDirectory: {project_dir}\n"
            f"Viewport: {store.manifest.viewport}",
            title="Initialized",
            border_style="green",
            expand=True,
        )
    )


@app.command("import-capture")
def import_capture_command(
    project_dir: ProjectArg,
    source: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, help="Capture JSON file.")
    ],
) -> None:
    """Import capture output and complete the capture phase."""
    try:
        understanding = pipeline.import_capture(project_dir, source)
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    _CONSOLE.print(
        f"[green]Imported {len(understanding.screens)} screens "
        f"and {len(understanding.flows)} flows[/green]"
    )
    _CONSOLE.print(
        f"Estimated cost: anchoring ${estimate_anchoring_cost():.2f}, "
        f"propagation ${estimate_propagation_cost(len(understanding.screens)):.2f}"
    )


@app.command("import-audit")
def import_audit_command(
    project_dir: ProjectArg,
    source: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, help="Improvement plan JSON.")
    ],
) -> None:
    """Import the audit improvement plan and complete the audit phase."""
    try:
        plan = pipeline.import_audit(project_dir, source)
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    _CONSOLE.print(
        f"[green]Imported {len(plan.global_improvements)} global and "
        f"{len(plan.screen_improvements)} per-screen improvement sets[/green]"
    )


@app.command("skip")
def skip_command(
    project_dir: ProjectArg,
    phase: Annotated[PhaseName, typer.Argument(help="Phase to skip.")],
) -> None:
    """Mark a phase skipped."""
    try:
        pipeline.skip_phase(project_dir, phase)
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    _CONSOLE.print(f"[cyan]Phase {phase.value} skipped[/cyan]")


@app.command("status")
def status_command(project_dir: ProjectArg) -> None:
    """Show phase statuses and progress."""
    try:
        manifest = read_manifest(project_dir)
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    table = Table(
        title=f"Project {manifest.project_id}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Phase", style="bold")
    table.add_column("Status")
    table.add_column("Batch", justify="right")
    table.add_column("Items", justify="right")
    table.add_column("Error")
    for name in PHASE_ORDER:
        state = manifest.phase(name)
        style = _STATUS_STYLES.get(state.status.value, "")
        table.add_row(
            name.value,
            f"[{style}]{state.status.value}[/{style}]",
            str(state.current_batch or ""),
            str(state.items_completed or ""),
            state.error or "",
        )
    _CONSOLE.print(table)
    phase = current_phase(manifest)
    _CONSOLE.print(
        f"Progress: {progress_percentage(manifest)}%  "
        f"Next: {phase.value if phase is not None else 'done'}"
    )
    if manifest.pending_gate is not None:
        _CONSOLE.print(
            f"[yellow]Awaiting gate {manifest.pending_gate.gate_id} "
            f"({manifest.pending_gate.gate_type})[/yellow]"
        )
    for line in _report_status_lines(project_dir):
        _CONSOLE.print(line)


@app.command("anchor")
def anchor_command(
    project_dir: ProjectArg, config_file: ConfigOption = None
) -> None:
    """Generate anchors until a gate opens, or complete anchoring."""
    try:
        progress = pipeline.run_anchoring(
            project_dir, config=_load_config(project_dir, config_file)
        )
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    _render_progress(progress)


@app.command("gate")
def gate_command(
    project_dir: ProjectArg,
    answer: Annotated[str, typer.Argument(help="Response text, e.g. 1, y, n, r.")],
    resume: Annotated[
        bool, typer.Option("--resume/--no-resume", help="Continue generating.")
    ] = True,
    config_file: ConfigOption = None,
) -> None:
    """Answer the pending anchoring gate."""
    try:
        manifest = read_manifest(project_dir)
        pending = manifest.pending_gate
        if pending is None:
            raise GateError("No gate is pending")
        response = parse_user_input(answer, GateType(pending.gate_type))
        decision, progress = pipeline.resolve_anchor_gate(
            project_dir,
            pending.gate_id,
            response,
            config=_load_config(project_dir, config_file),
            resume=resume,
        )
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    verdict = "approved" if decision.proceed else "sent back"
    if decision.regenerate or decision.proceed:
        _CONSOLE.print(f"Gate {pending.gate_id} {verdict}")
    else:
        _CONSOLE.print(f"Gate {pending.gate_id} still pending")
    if progress is not None:
        _render_progress(progress)


@app.command("propagate")
def propagate_command(
    project_dir: ProjectArg, config_file: ConfigOption = None
) -> None:
    """Run (or resume) propagation."""
    try:
        report = pipeline.run_propagation(
            project_dir, config=_load_config(project_dir, config_file)
        )
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    _CONSOLE.print(format_propagation_summary(report))
    _CONSOLE.print(format_cost_summary(report.screens))


@app.command("states")
def states_command(
    project_dir: ProjectArg, config_file: ConfigOption = None
) -> None:
    """Run (or resume) state-variant generation."""
    try:
        report = pipeline.run_states(
            project_dir, config=_load_config(project_dir, config_file)
        )
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    _CONSOLE.print(format_states_summary(report))


@app.command("coherence")
def coherence_command(
    project_dir: ProjectArg, config_file: ConfigOption = None
) -> None:
    """Run the coherence convergence loop."""
    try:
        report = pipeline.run_coherence(
            project_dir, config=_load_config(project_dir, config_file)
        )
    except _CLI_ERRORS as exc:
        _exit_with_error(exc)
    _CONSOLE.print(format_coherence_summary(report))
    if report.outliers:
        _CONSOLE.print(
            outlier_status_line(
                report.outliers,
                report.summary.total_screens,
                report.summary.overall_coherence_score,
            )
        )
    if report.flows is not None:
        _CONSOLE.print(format_flow_summary(report.flows))


@app.command("styles")
def styles_command() -> None:
    """List the built-in style directions and their palettes."""
    for direction in available_style_directions():
        _CONSOLE.print(
            Panel(
                palette_preview(default_palette(direction)),
                title=direction,
                border_style="cyan",
                expand=False,
            )
        )
