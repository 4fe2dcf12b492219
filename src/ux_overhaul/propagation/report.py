"""Propagation records, checkpoint file, report and summaries."""

from __future__ import annotations

import math
from collections import defaultdict
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ux_overhaul.design.models import ScreenType
from ux_overhaul.generation.client import COST_PER_IMAGE
from ux_overhaul.kernel.atomic_write import atomic_write_json_at, read_json_file
from ux_overhaul.kernel.paths import (
    get_propagation_progress_path,
    get_propagation_report_path,
)


class PropagatedScreen(BaseModel):
    """Outcome of propagating the anchor style to one captured screen."""

    screen_id: str
    screen_name: str
    screen_type: ScreenType
    original_path: str
    propagated_path: str = ""
    success: bool
    attempts: int
    cost: float
    strength_used: float
    improvements_applied: list[str] = Field(default_factory=list)
    error: str | None = None


class TypeStats(BaseModel):
    """Count and success rate for one category."""

    count: int
    success_rate: int


class PropagationSummary(BaseModel):
    """Aggregate numbers over all propagated screens."""

    total_screens: int
    success_count: int
    failure_count: int
    total_cost: float
    average_attempts: float
    by_screen_type: dict[str, TypeStats] = Field(default_factory=dict)


class PropagationReport(BaseModel):
    """propagation_report.json."""

    propagated_at: str
    app_name: str
    viewport: str
    batch_size: int
    screens: list[PropagatedScreen]
    summary: PropagationSummary

    def to_file_dict(self) -> dict[str, Any]:
        """Serialize for JSON file."""
        return self.model_dump(mode="json")

    @classmethod
    def from_file_dict(cls, d: dict[str, Any]) -> PropagationReport:
        """Deserialize from JSON file."""
        return cls.model_validate(d)


class PropagationProgress(BaseModel):
    """Records of every committed batch (propagation_progress.json)."""

    screens: list[PropagatedScreen] = Field(default_factory=list)


def _percent(part: int, whole: int) -> int:
    return math.floor(part / whole * 100 + 0.5) if whole else 0


def summarize_propagation(screens: list[PropagatedScreen]) -> PropagationSummary:
    """Totals, cost, mean attempts and per-type success rates."""
    success = sum(1 for s in screens if s.success)
    by_type: dict[str, list[PropagatedScreen]] = defaultdict(list)
    for screen in screens:
        by_type[screen.screen_type.value].append(screen)
    return PropagationSummary(
        total_screens=len(screens),
        success_count=success,
        failure_count=len(screens) - success,
        total_cost=round(sum(s.cost for s in screens), 4),
        average_attempts=(
            round(sum(s.attempts for s in screens) / len(screens), 2) if screens else 0.0
        ),
        by_screen_type={
            name: TypeStats(
                count=len(group),
                success_rate=_percent(sum(1 for s in group if s.success), len(group)),
            )
            for name, group in by_type.items()
        },
    )


def read_progress(project_root: Path) -> PropagationProgress:
    """Committed batch records (empty when none)."""
    path = get_propagation_progress_path(project_root)
    if not path.exists():
        return PropagationProgress()
    return PropagationProgress.model_validate(read_json_file(path))


def write_progress(project_root: Path, progress: PropagationProgress) -> None:
    """Persist committed batch records atomically."""
    atomic_write_json_at(
        get_propagation_progress_path(project_root),
        progress.model_dump(mode="json"),
        "propagation_progress",
    )


def read_propagation_report(project_root: Path) -> PropagationReport:
    """Load propagation_report.json."""
    path = get_propagation_report_path(project_root)
    return PropagationReport.from_file_dict(read_json_file(path))


def write_propagation_report(project_root: Path, report: PropagationReport) -> None:
    """Persist propagation_report.json atomically."""
    atomic_write_json_at(
        get_propagation_report_path(project_root),
        report.to_file_dict(),
        "propagation_report",
    )


def estimate_propagation_cost(screen_count: int, resolution: str = "1K") -> float:
    """Expected spend including typical retries (30% overhead)."""
    multiplier = 2 if resolution == "4K" else 1
    return math.ceil(screen_count * 1.3) * COST_PER_IMAGE * multiplier


def format_propagation_summary(report: PropagationReport) -> str:
    """Multi-line human summary."""
    summary = report.summary
    lines = [
        "Propagation Complete:",
        f"  Screens: {summary.success_count}/{summary.total_screens} succeeded",
        f"  Failed: {summary.failure_count}",
        f"  Total cost: ${summary.total_cost:.2f}",
        f"  Average attempts: {summary.average_attempts:.1f}",
    ]
    if summary.by_screen_type:
        lines.append("  By screen type:")
        for name, stats in sorted(summary.by_screen_type.items()):
            lines.append(
                f"    {name}: {stats.count} screens, {stats.success_rate}% success"
            )
    failed = [s for s in report.screens if not s.success]
    if failed:
        lines.append("  Failures:")
        lines.extend(f"    {s.screen_id}: {s.error}" for s in failed)
    return "\n".join(lines)


def propagation_status_line(summary: PropagationSummary) -> str:
    """One-line status."""
    return (
        f"{summary.success_count}/{summary.total_screens} screens propagated, "
        f"${summary.total_cost:.2f} cost"
    )


def format_cost_summary(screens: list[PropagatedScreen]) -> str:
    """Spend split between first-attempt and retry work."""
    total = sum(s.cost for s in screens)
    retried = [s for s in screens if s.attempts > 1]
    return (
        f"Total: ${total:.2f} across {len(screens)} screens; "
        f"{len(retried)} needed retries"
    )
