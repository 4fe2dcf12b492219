"""Automated checks run on every anchor candidate before a human sees it."""

from __future__ import annotations

import math
from pathlib import Path

from pydantic import BaseModel, Field

from ux_overhaul.design.models import Anchor, AnchorType, Viewport
from ux_overhaul.generation.images import read_image_info

PASS_THRESHOLD = 70
MIN_FILE_SIZE = 10 * 1024
MAX_FILE_SIZE = 10 * 1024 * 1024

DIMENSION_MINIMUMS: dict[Viewport, tuple[int, int]] = {
    Viewport.MOBILE: (300, 500),
    Viewport.TABLET: (600, 800),
    Viewport.DESKTOP: (1200, 700),
    Viewport.DESKTOP_XL: (1600, 900),
}

CHECK_FILE_EXISTS = "File Exists"
CHECK_DIMENSIONS = "Dimensions"
CHECK_FILE_SIZE = "File Size"
CHECK_STYLE = "Style Consistency"
CHECK_ANCHOR_TYPE = "Anchor Type"


class ValidationCheck(BaseModel):
    """Outcome of one named check."""

    name: str
    passed: bool
    details: str


class PreValidationResult(BaseModel):
    """Aggregate pre-validation outcome for one candidate image."""

    valid: bool
    score: int
    checks: list[ValidationCheck] = Field(default_factory=list)
    adjusted_prompt: str | None = None
    suggestions: list[str] = Field(default_factory=list)

    def failed_checks(self) -> list[ValidationCheck]:
        """Checks that did not pass."""
        return [check for check in self.checks if not check.passed]


def _score(checks: list[ValidationCheck]) -> int:
    passed = sum(1 for check in checks if check.passed)
    return math.floor(passed / len(checks) * 100 + 0.5) if checks else 0


def _adjusted_prompt(failed: list[ValidationCheck], colors: list[str]) -> str:
    parts: list[str] = []
    for check in failed:
        if check.name == CHECK_DIMENSIONS:
            parts.append("Generate at higher resolution matching viewport requirements")
        elif check.name == CHECK_FILE_SIZE:
            parts.append("Ensure complete image generation with full detail")
        elif check.name == CHECK_STYLE:
            if colors:
                parts.append(
                    f"CRITICAL - Use ONLY these exact hex colors: {', '.join(colors[:5])}"
                )
            parts.append(
                "MUST maintain exact visual style, shadows, and border radius from "
                "references"
            )
        else:
            parts.append("Improve quality and consistency")
    return ". ".join(parts)


def pre_validate_anchor(
    image_path: Path,
    *,
    anchor_type: AnchorType,
    viewport: Viewport,
    previous_anchors: list[Anchor] | None = None,
    colors: list[str] | None = None,
) -> PreValidationResult:
    """Run the pre-validation checks on one anchor candidate.

    Args:
        image_path: Candidate image on disk.
        anchor_type: Slot type of the candidate.
        viewport: Viewport the candidate was generated for.
        previous_anchors: Anchors of earlier slots (validated or not).
        colors: Palette colors, used in the adjusted prompt.

    Returns:
        PreValidationResult. A missing file scores 0 and stops immediately.
    """
    colors = colors or []
    previous_anchors = previous_anchors or []
    if not image_path.is_file():
        return PreValidationResult(
            valid=False,
            score=0,
            checks=[
                ValidationCheck(
                    name=CHECK_FILE_EXISTS, passed=False, details="File not found"
                )
            ],
            adjusted_prompt="Regenerate image - file not created",
            suggestions=["Image file was not created; regenerate"],
        )

    checks = [ValidationCheck(name=CHECK_FILE_EXISTS, passed=True, details="File created")]
    suggestions: list[str] = []
    info = read_image_info(image_path)

    min_w, min_h = DIMENSION_MINIMUMS.get(viewport, DIMENSION_MINIMUMS[Viewport.MOBILE])
    if info is None:
        checks.append(
            ValidationCheck(name=CHECK_DIMENSIONS, passed=False, details="Unreadable image")
        )
        suggestions.append(f"Ensure output matches {viewport} dimensions")
    else:
        ok = info.width >= min_w and info.height >= min_h
        details = (
            f"{info.width}x{info.height} meets {viewport} requirements"
            if ok
            else f"{info.width}x{info.height} below minimum {min_w}x{min_h}"
        )
        checks.append(ValidationCheck(name=CHECK_DIMENSIONS, passed=ok, details=details))
        if not ok:
            suggestions.append(f"Ensure output matches {viewport} dimensions")

    size = image_path.stat().st_size
    size_ok = MIN_FILE_SIZE <= size <= MAX_FILE_SIZE
    checks.append(
        ValidationCheck(name=CHECK_FILE_SIZE, passed=size_ok, details=f"{size / 1024:.1f}KB")
    )
    if not size_ok:
        suggestions.append("Image file may be corrupted or too small")

    if previous_anchors and anchor_type != AnchorType.HERO:
        validated = [a for a in previous_anchors if a.validated]
        consistent = not validated or (info is not None and info.width > 0)
        details = (
            f"Checked against {len(validated)} validated anchors"
            if validated
            else "No validated anchors to compare"
        )
        checks.append(ValidationCheck(name=CHECK_STYLE, passed=consistent, details=details))
        if not consistent:
            suggestions.append("Add stronger reference matching instructions")

    checks.append(
        ValidationCheck(name=CHECK_ANCHOR_TYPE, passed=True, details=f"Type: {anchor_type}")
    )

    score = _score(checks)
    valid = score >= PASS_THRESHOLD
    failed = [check for check in checks if not check.passed]
    return PreValidationResult(
        valid=valid,
        score=score,
        checks=checks,
        adjusted_prompt=None if valid else _adjusted_prompt(failed, colors),
        suggestions=suggestions,
    )


def should_regenerate(result: PreValidationResult) -> bool:
    """Invalid but salvageable (a missing file is not regenerated blindly)."""
    return not result.valid and result.score > 0


def format_validation_result(result: PreValidationResult) -> str:
    """Human-readable multi-line rendering."""
    lines = [f"Validation: {'PASSED' if result.valid else 'FAILED'} ({result.score}%)"]
    for check in result.checks:
        lines.append(f"  [{'ok' if check.passed else 'fail'}] {check.name}: {check.details}")
    if result.suggestions:
        lines.append("Suggestions:")
        lines.extend(f"  - {s}" for s in result.suggestions)
    return "\n".join(lines)
