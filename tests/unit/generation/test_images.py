"""Unit tests for Pillow-backed image helpers and output validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from ux_overhaul.generation.images import (
    aspect_ratio_for_viewport,
    has_png_signature,
    read_image_info,
    to_data_url,
)
from ux_overhaul.propagation.validation import validate_output, validate_outputs
from tests.unit.helpers import data_url, make_png_bytes, tiny_png_bytes, write_png


def test_read_image_info(tmp_path: Path) -> None:
    """Dimensions and format come from the image header."""
    path = write_png(tmp_path / "screen.png", seed=1, width=900, height=1600)

    info = read_image_info(path)

    assert info is not None
    assert (info.width, info.height, info.format) == (900, 1600, "png")
    assert info.size_bytes == path.stat().st_size
    assert info.aspect_ratio == pytest.approx(0.5625)


def test_unreadable_files_have_no_info(tmp_path: Path) -> None:
    """Missing and garbage files yield None rather than raising."""
    garbage = tmp_path / "garbage.png"
    garbage.write_bytes(b"not an image")

    assert read_image_info(tmp_path / "missing.png") is None
    assert read_image_info(garbage) is None
    assert has_png_signature(garbage) is False


@pytest.mark.parametrize(
    ("viewport", "ratio"),
    [("mobile", "9:16"), ("tablet", "3:4"), ("desktop-xl", "16:9"), ("watch", "9:16")],
)
def test_aspect_ratio_for_viewport(viewport: str, ratio: str) -> None:
    """Unknown viewports fall back to portrait."""
    assert aspect_ratio_for_viewport(viewport) == ratio


def test_to_data_url_round_trips_file_bytes(tmp_path: Path) -> None:
    """Data URLs carry the PNG mime type and the exact bytes."""
    path = write_png(tmp_path / "anchor.png", seed=4)

    assert to_data_url(path) == data_url(make_png_bytes(4))


def test_valid_output_scores_100(tmp_path: Path) -> None:
    """A readable PNG within the size limits passes every check."""
    path = write_png(tmp_path / "out.png", seed=2)

    result = validate_output(path, check_colors=True)

    assert result.valid is True
    assert result.score == 100
    assert [c.name for c in result.checks] == [
        "file_integrity",
        "file_size",
        "file_format",
        "color_adherence",
    ]


def test_undersized_output_is_invalid(tmp_path: Path) -> None:
    """Tiny files fail the size floor and drop below the pass threshold."""
    path = tmp_path / "tiny.png"
    path.write_bytes(tiny_png_bytes())

    result = validate_output(path)

    assert result.valid is False
    assert result.score == 67


def test_style_check_requires_an_anchor_file(tmp_path: Path) -> None:
    """The style-consistency check counts anchors present on disk."""
    path = write_png(tmp_path / "out.png", seed=2)
    anchor = write_png(tmp_path / "anchor.png", seed=3)

    with_anchor = validate_output(path, anchor_paths=[anchor])
    without = validate_output(path, anchor_paths=[tmp_path / "gone.png"])

    assert with_anchor.score == 100
    assert without.score == 75
    assert without.valid is False
    assert without.checks[-1].details == "0 anchors available"


def test_validate_outputs_summarizes(tmp_path: Path) -> None:
    """Batch validation averages scores and lists invalid paths."""
    good = write_png(tmp_path / "good.png", seed=2)
    missing = tmp_path / "missing.png"

    batch = validate_outputs([good, missing])

    assert batch.total == 2
    assert batch.valid_count == 1
    assert batch.average_score == 50
    assert batch.invalid_paths == [str(missing)]
