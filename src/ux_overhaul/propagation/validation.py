"""Output validation for generated screens and state variants."""

from __future__ import annotations

import math
from pathlib import Path

from pydantic import BaseModel, Field

from ux_overhaul.anchoring.pre_validation import ValidationCheck
from ux_overhaul.generation.images import has_png_signature, read_image_info

OUTPUT_PASS_THRESHOLD = 80
MIN_OUTPUT_BYTES = 10 * 1024
MAX_OUTPUT_BYTES = 10_000 * 1024


class OutputValidation(BaseModel):
    """Validation result for one generated file."""

    path: str
    valid: bool
    score: int
    checks: list[ValidationCheck] = Field(default_factory=list)


class BatchValidation(BaseModel):
    """Validation results across many outputs."""

    total: int
    valid_count: int
    average_score: int
    invalid_paths: list[str] = Field(default_factory=list)
    results: list[OutputValidation] = Field(default_factory=list)


def validate_output(
    path: Path,
    *,
    check_colors: bool = False,
    anchor_paths: list[Path] | None = None,
) -> OutputValidation:
    """Check integrity, size and format of one generated image.

    Args:
        path: Generated image.
        check_colors: Add the color-adherence check.
        anchor_paths: When given, add the style-consistency check, which
            passes if the image exists and at least one anchor file exists.

    Returns:
        OutputValidation; valid at score >= 80.
    """
    exists = path.is_file()
    info = read_image_info(path) if exists else None
    checks = [
        ValidationCheck(
            name="file_integrity",
            passed=info is not None,
            details="readable image" if info is not None else "missing or unreadable",
        )
    ]
    size = path.stat().st_size if exists else 0
    checks.append(
        ValidationCheck(
            name="file_size",
            passed=MIN_OUTPUT_BYTES <= size <= MAX_OUTPUT_BYTES,
            details=f"{size / 1024:.1f}KB",
        )
    )
    is_png = has_png_signature(path)
    checks.append(
        ValidationCheck(
            name="file_format", passed=is_png, details="PNG" if is_png else "not PNG"
        )
    )
    if check_colors:
        checks.append(
            ValidationCheck(
                name="color_adherence",
                passed=exists,
                details="palette enforced in prompt" if exists else "no image",
            )
        )
    if anchor_paths is not None:
        anchors_present = any(p.is_file() for p in anchor_paths)
        checks.append(
            ValidationCheck(
                name="style_consistency",
                passed=exists and anchors_present,
                details=f"{sum(1 for p in anchor_paths if p.is_file())} anchors available",
            )
        )
    passed = sum(1 for c in checks if c.passed)
    score = math.floor(passed / len(checks) * 100 + 0.5)
    return OutputValidation(
        path=str(path),
        valid=score >= OUTPUT_PASS_THRESHOLD,
        score=score,
        checks=checks,
    )


def validate_outputs(
    paths: list[Path],
    *,
    check_colors: bool = False,
    anchor_paths: list[Path] | None = None,
) -> BatchValidation:
    """Validate many outputs and summarize."""
    results = [
        validate_output(p, check_colors=check_colors, anchor_paths=anchor_paths)
        for p in paths
    ]
    valid = [r for r in results if r.valid]
    average = (
        math.floor(sum(r.score for r in results) / len(results) + 0.5) if results else 0
    )
    return BatchValidation(
        total=len(results),
        valid_count=len(valid),
        average_score=average,
        invalid_paths=[r.path for r in results if not r.valid],
        results=results,
    )
