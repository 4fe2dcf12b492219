"""Unit tests for palette resolution and style inference."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ux_overhaul.design.models import (
    BorderRadius,
    ColorPalette,
    ShadowStyle,
    SpacingDensity,
    Viewport,
)
from ux_overhaul.design.style import (
    DEFAULT_PALETTES,
    build_color_palette,
    compile_style_config,
    contrasting_text,
    default_palette,
    infer_style_characteristics,
    lighten,
    merge_color_palette,
    palette_to_list,
    resolve_palette,
    validate_color_palette,
)


@pytest.mark.parametrize(
    ("direction", "expected"),
    [
        ("modern minimal", "modern minimal"),
        ("Dark Professional", "dark professional"),
        ("super bold vibrant look", "bold vibrant"),
        ("dark and moody", "dark professional"),
        ("warm and friendly", "soft organic"),
        ("business app", "corporate clean"),
        ("something else", "modern minimal"),
    ],
)
def test_default_palette_resolution(direction: str, expected: str) -> None:
    """Exact, substring and keyword matches fall back to modern minimal."""
    assert default_palette(direction) == DEFAULT_PALETTES[expected]


def test_merge_color_palette_overrides_in_slot_order() -> None:
    """User colors replace primary, secondary, accent in that order."""
    base = DEFAULT_PALETTES["modern minimal"]

    merged = merge_color_palette(base, ["#000001", "not-a-color", "#000003"])

    assert merged.primary == "#000001"
    assert merged.secondary == base.secondary
    assert merged.accent == "#000003"
    assert base.primary == "#3B82F6"


def test_resolve_palette_without_user_colors_is_default() -> None:
    """No user colors keeps the direction's palette."""
    assert resolve_palette("soft organic", []) == DEFAULT_PALETTES["soft organic"]


def test_build_color_palette_derives_missing_slots() -> None:
    """A single color yields a complete palette with derived slots."""
    palette = build_color_palette(user_colors=["#112233"])

    assert palette.primary == "#112233"
    assert palette.secondary != "#112233"
    assert palette.background == "#FFFFFF"
    assert palette.surface == "#FFFFFF"
    assert palette.text == "#111827"


def test_lighten_clamps_and_contrast_picks_text() -> None:
    """Channels clamp at 255; dark backgrounds get light text."""
    assert lighten("#FAFAFA", 0.1) == "#FFFFFF"
    assert contrasting_text("#0F172A") == "#F9FAFB"
    assert contrasting_text("#FFFFFF") == "#111827"


def test_palette_to_list_skips_empty_slots() -> None:
    """Optional slots left unset are omitted."""
    palette = ColorPalette(primary="#111111", background="#FFFFFF", text="#000000")

    assert palette_to_list(palette) == ["#111111", "#FFFFFF", "#000000"]


def test_palette_rejects_invalid_hex() -> None:
    """Non #RRGGBB values fail model validation."""
    with pytest.raises(ValidationError):
        ColorPalette(primary="blue", background="#FFFFFF", text="#000000")


def test_validate_color_palette_reports_problems() -> None:
    """Missing required slots and bad hex values are both listed."""
    errors = validate_color_palette({"primary": "#12345", "background": "#FFFFFF"})

    assert "Missing required color: text" in errors
    assert "Invalid hex color for primary: #12345" in errors


@pytest.mark.parametrize(
    ("direction", "expected"),
    [
        (
            "sharp flat compact",
            (BorderRadius.NONE, ShadowStyle.NONE, SpacingDensity.COMPACT),
        ),
        (
            "subtle",
            (BorderRadius.SUBTLE, ShadowStyle.SUBTLE, SpacingDensity.COMFORTABLE),
        ),
        (
            "playful bold spacious",
            (BorderRadius.PILL, ShadowStyle.DRAMATIC, SpacingDensity.SPACIOUS),
        ),
        (
            "corporate",
            (BorderRadius.ROUNDED, ShadowStyle.MEDIUM, SpacingDensity.COMFORTABLE),
        ),
    ],
)
def test_infer_style_characteristics(
    direction: str, expected: tuple[BorderRadius, ShadowStyle, SpacingDensity]
) -> None:
    """Keywords drive radius, shadow and density."""
    assert infer_style_characteristics(direction) == expected


def test_compile_style_config_uses_inferred_traits() -> None:
    """Compiled config carries the viewport, palette and inferred traits."""
    palette = DEFAULT_PALETTES["modern minimal"]

    config = compile_style_config(
        style_direction="modern minimal",
        viewport=Viewport.TABLET,
        palette=palette,
        anchors=[],
    )

    assert config.viewport == Viewport.TABLET
    assert config.shadow_style == ShadowStyle.NONE
    assert config.typography.font_family.startswith("Inter")
    assert config.to_file_dict()["viewport"] == "tablet"
