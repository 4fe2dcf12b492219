"""Coherence report models, persistence and formatting."""

from __future__ import annotations

import math
from collections import defaultdict
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ux_overhaul.coherence.flows import FlowSummary
from ux_overhaul.coherence.scoring import REGENERATION_THRESHOLD, OutlierInfo
from ux_overhaul.generation.client import COST_PER_IMAGE
from ux_overhaul.kernel.atomic_write import atomic_write_json_at, read_json_file
from ux_overhaul.kernel.paths import get_coherence_report_path

SCREEN_PASS_SCORE = 70


class RegenerationRecord(BaseModel):
    """One regeneration of one outlier in one pass (append-only log)."""

    subject_id: str
    pass_number: int
    reason: str
    success: bool
    attempts: int
    cost: float
    backup_path: str | None = None


class ScreenCoherence(BaseModel):
    """Final per-subject coherence."""

    subject_id: str
    name: str
    kind: str
    coherence_score: int
    passed: bool
    reasons: list[str] = Field(default_factory=list)


class CoherenceSummary(BaseModel):
    """Aggregate coherence numbers."""

    total_screens: int
    coherent_count: int
    outlier_count: int
    regenerated_count: int
    overall_coherence_score: int
    pass_number: int
    total_passes: int
    total_regeneration_cost: float


class CoherenceReport(BaseModel):
    """coherence_report.json."""

    validated_at: str
    app_name: str
    viewport: str
    pass_number: int
    max_passes: int
    converged: bool
    screens: list[ScreenCoherence]
    outliers: list[OutlierInfo]
    regenerations: list[RegenerationRecord]
    flows: FlowSummary | None = None
    summary: CoherenceSummary

    def to_file_dict(self) -> dict[str, Any]:
        """Serialize for JSON file."""
        return self.model_dump(mode="json")

    @classmethod
    def from_file_dict(cls, d: dict[str, Any]) -> CoherenceReport:
        """Deserialize from JSON file."""
        return cls.model_validate(d)


def read_coherence_report(project_root: Path) -> CoherenceReport:
    """Load coherence_report.json."""
    return CoherenceReport.from_file_dict(
        read_json_file(get_coherence_report_path(project_root))
    )


def write_coherence_report(project_root: Path, report: CoherenceReport) -> None:
    """Persist coherence_report.json atomically."""
    atomic_write_json_at(
        get_coherence_report_path(project_root), report.to_file_dict(), "coherence_report"
    )


def outliers_by_severity(outliers: list[OutlierInfo]) -> dict[str, list[OutlierInfo]]:
    """Split into must-regenerate ("high") and watch-list ("medium")."""
    groups: dict[str, list[OutlierInfo]] = {"high": [], "medium": []}
    for outlier in outliers:
        key = "high" if outlier.outlier_score >= REGENERATION_THRESHOLD else "medium"
        groups[key].append(outlier)
    return groups


def outliers_by_reason(outliers: list[OutlierInfo]) -> dict[str, list[OutlierInfo]]:
    """Group outliers under each of their reasons."""
    groups: dict[str, list[OutlierInfo]] = defaultdict(list)
    for outlier in outliers:
        for reason in outlier.reasons:
            groups[reason].append(outlier)
    return dict(groups)


def estimate_regeneration_cost(count: int, retry_multiplier: float = 1.5) -> float:
    """Expected spend for regenerating count outliers."""
    return math.ceil(count * retry_multiplier) * COST_PER_IMAGE


def outlier_status_line(outliers: list[OutlierInfo], total: int, score: int) -> str:
    """One-line outlier status."""
    regenerate = sum(1 for o in outliers if o.should_regenerate)
    return f"{len(outliers)}/{total} outliers, {regenerate} need regeneration, {score}% coherent"


def format_outlier_report(outliers: list[OutlierInfo]) -> str:
    """Multi-line outlier listing."""
    if not outliers:
        return "No outliers detected"
    lines = [f"Outliers ({len(outliers)}):"]
    for outlier in outliers:
        flag = " [regenerate]" if outlier.should_regenerate else ""
        lines.append(f"  {outlier.name} ({outlier.outlier_score}){flag}")
        if outlier.reasons:
            lines.append(f"    Reasons: {', '.join(outlier.reasons)}")
        lines.extend(f"    - {r}" for r in outlier.recommendations)
    return "\n".join(lines)


def coherence_status_line(summary: CoherenceSummary) -> str:
    """One-line coherence status."""
    return (
        f"{summary.coherent_count}/{summary.total_screens} coherent "
        f"({summary.overall_coherence_score}%), {summary.regenerated_count} regenerated, "
        f"${summary.total_regeneration_cost:.2f} cost"
    )


def format_coherence_summary(report: CoherenceReport) -> str:
    """Multi-line human summary."""
    summary = report.summary
    status = "converged" if report.converged else "not converged"
    lines = [
        f"Coherence: {summary.overall_coherence_score}% ({status})",
        f"  Passes: {summary.pass_number}/{summary.total_passes}",
        f"  Coherent: {summary.coherent_count}/{summary.total_screens}",
        f"  Regenerations: {len(report.regenerations)} "
        f"(${summary.total_regeneration_cost:.2f})",
    ]
    if report.outliers:
        lines.append(format_outlier_report(report.outliers))
    return "\n".join(lines)
