"""State-variant records, checkpoint file, report and summaries."""

from __future__ import annotations

import math
from collections import defaultdict
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ux_overhaul.design.models import StateType
from ux_overhaul.kernel.atomic_write import atomic_write_json_at, read_json_file
from ux_overhaul.kernel.paths import get_states_progress_path, get_states_report_path
from ux_overhaul.propagation.report import TypeStats


class GeneratedState(BaseModel):
    """One state variant of one propagated screen."""

    screen_id: str
    screen_name: str
    state_type: StateType
    original_propagated_path: str
    state_path: str = ""
    success: bool
    attempts: int
    cost: float
    strength_used: float
    error: str | None = None


class ScreenStates(BaseModel):
    """All state variants of one screen."""

    screen_id: str
    screen_name: str
    states: list[GeneratedState] = Field(default_factory=list)
    total_cost: float = 0.0
    success_count: int = 0


class StatesSummary(BaseModel):
    """Aggregate numbers over all generated states."""

    total_screens: int
    total_states: int
    success_count: int
    failure_count: int
    total_cost: float
    average_attempts: float
    by_state_type: dict[str, TypeStats] = Field(default_factory=dict)


class StatesReport(BaseModel):
    """states_report.json."""

    generated_at: str
    app_name: str
    viewport: str
    batch_size: int
    screens: list[ScreenStates]
    summary: StatesSummary

    def all_states(self) -> list[GeneratedState]:
        """Flattened state records."""
        return [state for screen in self.screens for state in screen.states]

    def to_file_dict(self) -> dict[str, Any]:
        """Serialize for JSON file."""
        return self.model_dump(mode="json")

    @classmethod
    def from_file_dict(cls, d: dict[str, Any]) -> StatesReport:
        """Deserialize from JSON file."""
        return cls.model_validate(d)


class StatesProgress(BaseModel):
    """Records of every committed batch (states_progress.json)."""

    screens: list[ScreenStates] = Field(default_factory=list)


def group_states(
    screen_id: str, screen_name: str, states: list[GeneratedState]
) -> ScreenStates:
    """Bundle one screen's variants with its totals."""
    return ScreenStates(
        screen_id=screen_id,
        screen_name=screen_name,
        states=states,
        total_cost=round(sum(s.cost for s in states), 4),
        success_count=sum(1 for s in states if s.success),
    )


def summarize_states(screens: list[ScreenStates]) -> StatesSummary:
    """Totals, cost, mean attempts and per-state success rates."""
    states = [state for screen in screens for state in screen.states]
    success = sum(1 for s in states if s.success)
    by_type: dict[str, list[GeneratedState]] = defaultdict(list)
    for state in states:
        by_type[state.state_type.value].append(state)
    return StatesSummary(
        total_screens=len(screens),
        total_states=len(states),
        success_count=success,
        failure_count=len(states) - success,
        total_cost=round(sum(s.cost for s in states), 4),
        average_attempts=(
            round(sum(s.attempts for s in states) / len(states), 2) if states else 0.0
        ),
        by_state_type={
            name: TypeStats(
                count=len(group),
                success_rate=math.floor(
                    sum(1 for s in group if s.success) / len(group) * 100 + 0.5
                ),
            )
            for name, group in by_type.items()
        },
    )


def read_states_progress(project_root: Path) -> StatesProgress:
    """Committed batch records (empty when none)."""
    path = get_states_progress_path(project_root)
    if not path.exists():
        return StatesProgress()
    return StatesProgress.model_validate(read_json_file(path))


def write_states_progress(project_root: Path, progress: StatesProgress) -> None:
    """Persist committed batch records atomically."""
    atomic_write_json_at(
        get_states_progress_path(project_root),
        progress.model_dump(mode="json"),
        "states_progress",
    )


def read_states_report(project_root: Path) -> StatesReport:
    """Load states_report.json."""
    return StatesReport.from_file_dict(read_json_file(get_states_report_path(project_root)))


def write_states_report(project_root: Path, report: StatesReport) -> None:
    """Persist states_report.json atomically."""
    atomic_write_json_at(
        get_states_report_path(project_root), report.to_file_dict(), "states_report"
    )


def format_states_summary(report: StatesReport) -> str:
    """Multi-line human summary."""
    summary = report.summary
    lines = [
        "State Generation Complete:",
        f"  Screens: {summary.total_screens}",
        f"  States: {summary.success_count}/{summary.total_states} succeeded",
        f"  Total cost: ${summary.total_cost:.2f}",
        f"  Average attempts: {summary.average_attempts:.1f}",
    ]
    for name, stats in sorted(summary.by_state_type.items()):
        lines.append(f"    {name}: {stats.count} states, {stats.success_rate}% success")
    return "\n".join(lines)


def states_status_line(summary: StatesSummary) -> str:
    """One-line status."""
    return (
        f"{summary.success_count}/{summary.total_states} states generated, "
        f"${summary.total_cost:.2f} cost"
    )
