"""Deviation scoring and outlier detection.

Scoring is behind the DeviationScorer protocol. The default heuristic uses
generation metadata and a file-size similarity proxy; it never compares
pixels.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Protocol

from pydantic import BaseModel, Field

from ux_overhaul.design.models import ScreenType, StateType

OUTLIER_THRESHOLD = 30
REGENERATION_THRESHOLD = 50
MAX_RECOMMENDATIONS = 5
REFERENCE_STRENGTH = 0.55

SCREEN_TYPE_SENSITIVITY: dict[ScreenType, float] = {
    ScreenType.LANDING: 1.2,
    ScreenType.AUTH: 1.1,
    ScreenType.DASHBOARD: 1.0,
    ScreenType.LIST: 0.9,
    ScreenType.DETAIL: 1.0,
    ScreenType.FORM: 1.0,
    ScreenType.SETTINGS: 0.8,
    ScreenType.MODAL: 0.9,
    ScreenType.GENERIC: 1.0,
}

REASON_RECOMMENDATIONS: dict[str, tuple[str, str]] = {
    "color_drift": (
        "Enforce exact color palette from style config",
        "Add CRITICAL color constraints to prompt",
    ),
    "style_inconsistency": (
        "Increase reference image weight in prompt",
        "Use hero anchor as primary style reference",
    ),
    "layout_deviation": (
        "Reduce strength to preserve original layout",
        "Add layout preservation instruction to prompt",
    ),
    "component_mismatch": (
        "Reference component anchors explicitly",
        "Ensure component consistency across screens",
    ),
    "spacing_variance": (
        "Maintain consistent spacing from references",
        "Add whitespace/padding preservation instruction",
    ),
    "typography_inconsistency": (
        "Reference typography anchor for text styles",
        "Enforce consistent font sizes and weights",
    ),
}


@dataclass
class CoherenceSubject:
    """A scored image: a propagated screen or one of its state variants.

    attempts and strength_used describe the image currently on disk, not the
    lifetime totals kept in the phase reports.
    """

    subject_id: str
    name: str
    kind: Literal["screen", "state"]
    screen_id: str
    screen_type: ScreenType
    image: Path
    source: Path
    success: bool
    attempts: int
    strength_used: float
    state_type: StateType | None = None
    regenerated_in: list[int] = field(default_factory=list)


class DeviationScore(BaseModel):
    """Outlier score 0-100 (higher is worse) with reasons."""

    score: int = Field(ge=0, le=100)
    reasons: list[str] = Field(default_factory=list)


class DeviationScorer(Protocol):
    """Pluggable scorer; swap in a vision-based implementation as needed."""

    def score(self, subject: CoherenceSubject, anchor_paths: list[Path]) -> DeviationScore:
        """Score how far subject deviates from the anchor style."""
        ...


class OutlierInfo(BaseModel):
    """A subject at or above the outlier threshold in one pass."""

    subject_id: str
    name: str
    kind: str
    path: str
    outlier_score: int
    reasons: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    should_regenerate: bool


def _dedupe(items: Sequence[str]) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def compare_to_anchors(image: Path, anchor_paths: list[Path]) -> bool:
    """File-size similarity proxy: within 0.5x-2.0x of the mean anchor size."""
    if not image.is_file():
        return False
    sizes = [p.stat().st_size for p in anchor_paths if p.is_file()]
    if not sizes:
        return False
    average = sum(sizes) / len(sizes)
    ratio = image.stat().st_size / average if average else 0.0
    return 0.5 <= ratio <= 2.0


class HeuristicDeviationScorer:
    """Metadata heuristic: retries, strength drift, size proxy, type sensitivity."""

    def score(self, subject: CoherenceSubject, anchor_paths: list[Path]) -> DeviationScore:
        """Score subject against anchors."""
        raw = 0.0
        reasons: list[str] = []
        if subject.attempts > 1:
            raw += (subject.attempts - 1) * 10
            if subject.attempts >= 3:
                reasons.append("style_inconsistency")
        variance = abs(subject.strength_used - REFERENCE_STRENGTH)
        if variance > 0.10:
            raw += variance * 30
            reasons.append("layout_deviation")
        exists = subject.image.is_file()
        if exists and not compare_to_anchors(subject.image, anchor_paths):
            raw += 15
            reasons.append("color_drift")
        sensitivity = SCREEN_TYPE_SENSITIVITY.get(subject.screen_type, 1.0)
        total = math.floor(raw * sensitivity + 0.5)
        if not exists:
            total += 30
            reasons.append("style_inconsistency")
        return DeviationScore(score=max(0, min(100, total)), reasons=_dedupe(reasons))


def score_subject(
    scorer: DeviationScorer, subject: CoherenceSubject, anchor_paths: list[Path]
) -> DeviationScore:
    """Failed subjects score 100 without consulting the scorer."""
    if not subject.success:
        return DeviationScore(score=100, reasons=["style_inconsistency"])
    result = scorer.score(subject, anchor_paths)
    return DeviationScore(
        score=max(0, min(100, result.score)), reasons=_dedupe(result.reasons)
    )


def recommendations_for(reasons: Sequence[str], *, failed: bool = False) -> list[str]:
    """Deduplicated fix recommendations for reasons, at most five."""
    items: list[str] = []
    if failed:
        items.append("Regenerate screen - propagation failed")
    for reason in reasons:
        items.extend(REASON_RECOMMENDATIONS.get(reason, ()))
    return _dedupe(items)[:MAX_RECOMMENDATIONS]


def detect_outliers(
    scored: list[tuple[CoherenceSubject, DeviationScore]], project_root: Path
) -> list[OutlierInfo]:
    """Subjects scoring >= 30, worst first."""
    outliers: list[OutlierInfo] = []
    for subject, result in scored:
        if result.score < OUTLIER_THRESHOLD:
            continue
        try:
            path = subject.image.relative_to(project_root).as_posix()
        except ValueError:
            path = str(subject.image)
        outliers.append(
            OutlierInfo(
                subject_id=subject.subject_id,
                name=subject.name,
                kind=subject.kind,
                path=path,
                outlier_score=result.score,
                reasons=result.reasons,
                recommendations=recommendations_for(
                    result.reasons, failed=not subject.success
                ),
                should_regenerate=result.score >= REGENERATION_THRESHOLD,
            )
        )
    return sorted(outliers, key=lambda o: o.outlier_score, reverse=True)


def overall_coherence(scores: Sequence[int]) -> int:
    """100 minus the mean outlier score, rounded (100 for no subjects)."""
    if not scores:
        return 100
    return math.floor(100 - sum(scores) / len(scores) + 0.5)
