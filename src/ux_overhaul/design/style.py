"""Style extraction: default palettes, derived colors, inferred style traits."""

from __future__ import annotations

import math
from datetime import UTC, datetime

from ux_overhaul.design.models import (
    HEX_COLOR_PATTERN,
    Anchor,
    BorderRadius,
    ColorPalette,
    ShadowStyle,
    Spacing,
    SpacingDensity,
    StyleConfig,
    Typography,
    Viewport,
)

DEFAULT_STYLE_DIRECTION = "modern minimal"

DEFAULT_PALETTES: dict[str, ColorPalette] = {
    "modern minimal": ColorPalette(
        primary="#3B82F6",
        secondary="#6366F1",
        accent="#10B981",
        background="#FFFFFF",
        surface="#F9FAFB",
        text="#111827",
        text_muted="#6B7280",
        border="#E5E7EB",
        error="#EF4444",
        success="#10B981",
        warning="#F59E0B",
    ),
    "bold vibrant": ColorPalette(
        primary="#7C3AED",
        secondary="#EC4899",
        accent="#F59E0B",
        background="#FFFFFF",
        surface="#F5F3FF",
        text="#1F2937",
        text_muted="#6B7280",
        border="#DDD6FE",
        error="#DC2626",
        success="#059669",
        warning="#D97706",
    ),
    "dark professional": ColorPalette(
        primary="#3B82F6",
        secondary="#8B5CF6",
        accent="#22D3EE",
        background="#0F172A",
        surface="#1E293B",
        text="#F1F5F9",
        text_muted="#94A3B8",
        border="#334155",
        error="#F87171",
        success="#4ADE80",
        warning="#FBBF24",
    ),
    "soft organic": ColorPalette(
        primary="#059669",
        secondary="#0891B2",
        accent="#F97316",
        background="#FFFBEB",
        surface="#FEF3C7",
        text="#292524",
        text_muted="#78716C",
        border="#D6D3D1",
        error="#DC2626",
        success="#16A34A",
        warning="#CA8A04",
    ),
    "corporate clean": ColorPalette(
        primary="#2563EB",
        secondary="#4F46E5",
        accent="#0EA5E9",
        background="#FFFFFF",
        surface="#F8FAFC",
        text="#0F172A",
        text_muted="#64748B",
        border="#CBD5E1",
        error="#DC2626",
        success="#16A34A",
        warning="#EAB308",
    ),
}

DEFAULT_TYPOGRAPHY: dict[str, Typography] = {
    "modern minimal": Typography(font_family="Inter, system-ui, sans-serif"),
    "bold vibrant": Typography(
        font_family="Poppins, system-ui, sans-serif", heading_weight=700
    ),
    "dark professional": Typography(font_family="Inter, system-ui, sans-serif"),
    "soft organic": Typography(font_family="Nunito, system-ui, sans-serif"),
    "corporate clean": Typography(font_family="Source Sans Pro, system-ui, sans-serif"),
}

# Palette fields in prompt order; used whenever a palette becomes a color list.
PALETTE_ORDER = (
    "primary",
    "secondary",
    "accent",
    "background",
    "surface",
    "text",
    "text_muted",
    "border",
    "error",
    "success",
    "warning",
)

_USER_COLOR_SLOTS = ("primary", "secondary", "accent", "background", "text")

_KEYWORD_FALLBACKS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("dark",), "dark professional"),
    (("bold", "vibrant"), "bold vibrant"),
    (("organic", "soft", "warm"), "soft organic"),
    (("corporate", "business"), "corporate clean"),
)


def is_valid_hex_color(color: str) -> bool:
    """True for #RRGGBB."""
    return bool(HEX_COLOR_PATTERN.match(color))


def palette_to_list(palette: ColorPalette) -> list[str]:
    """Flatten the palette in PALETTE_ORDER, skipping empty slots."""
    colors: list[str] = []
    for field in PALETTE_ORDER:
        value = getattr(palette, field)
        if value:
            colors.append(value)
    return colors


def default_palette(style_direction: str) -> ColorPalette:
    """Resolve a default palette for a free-text style direction.

    Resolution order: exact key, substring either way, keyword fallback,
    then modern minimal.
    """
    direction = style_direction.lower().strip()
    if direction in DEFAULT_PALETTES:
        return DEFAULT_PALETTES[direction].model_copy()
    for key, palette in DEFAULT_PALETTES.items():
        if key in direction or (direction and direction in key):
            return palette.model_copy()
    for keywords, key in _KEYWORD_FALLBACKS:
        if any(keyword in direction for keyword in keywords):
            return DEFAULT_PALETTES[key].model_copy()
    return DEFAULT_PALETTES[DEFAULT_STYLE_DIRECTION].model_copy()


def default_typography(style_direction: str) -> Typography:
    """Typography for an exact palette key, else modern minimal's."""
    direction = style_direction.lower().strip()
    typography = DEFAULT_TYPOGRAPHY.get(
        direction, DEFAULT_TYPOGRAPHY[DEFAULT_STYLE_DIRECTION]
    )
    return typography.model_copy()


def _hex_to_int(color: str) -> int:
    return int(color.lstrip("#"), 16)


def _int_to_hex(value: int) -> str:
    return f"#{value:06X}"


def shift_hue(color: str, degrees: int) -> str:
    """Cheap hue rotation: offset the packed RGB value proportionally."""
    shifted = (_hex_to_int(color) + math.floor(degrees / 360 * 0xFFFFFF)) % 0xFFFFFF
    return _int_to_hex(shifted)


def lighten(color: str, amount: float) -> str:
    """Add floor(255 * amount) to every channel, clamped at 255."""
    value = _hex_to_int(color)
    delta = math.floor(255 * amount)
    r = min(255, ((value >> 16) & 0xFF) + delta)
    g = min(255, ((value >> 8) & 0xFF) + delta)
    b = min(255, (value & 0xFF) + delta)
    return _int_to_hex((r << 16) | (g << 8) | b)


def luminance(color: str) -> float:
    """Relative luminance in 0..1 (perceptual channel weights)."""
    value = _hex_to_int(color)
    r = ((value >> 16) & 0xFF) / 255
    g = ((value >> 8) & 0xFF) / 255
    b = (value & 0xFF) / 255
    return 0.299 * r + 0.587 * g + 0.114 * b


def contrasting_text(background: str) -> str:
    """Dark text on light backgrounds, light text on dark ones."""
    return "#111827" if luminance(background) > 0.5 else "#F9FAFB"


def build_color_palette(
    extracted: list[str] | None = None,
    user_colors: list[str] | None = None,
) -> ColorPalette:
    """Build a full palette from an ordered color list.

    User-supplied colors win over extracted ones. Missing slots are derived:
    secondary by hue shift, surface by lightening, text by contrast.

    Args:
        extracted: Colors pulled from imagery, most prominent first.
        user_colors: Explicit colors from the user, same ordering.

    Returns:
        Complete palette.
    """
    colors = [c for c in (user_colors or extracted or []) if is_valid_hex_color(c)]
    primary = colors[0] if len(colors) > 0 else "#3B82F6"
    secondary = colors[1] if len(colors) > 1 else shift_hue(primary, 30)
    accent = colors[2] if len(colors) > 2 else "#10B981"
    background = colors[3] if len(colors) > 3 else "#FFFFFF"
    return ColorPalette(
        primary=primary,
        secondary=secondary,
        accent=accent,
        background=background,
        surface=lighten(background, 0.02),
        text=contrasting_text(background),
        text_muted="#6B7280",
        border="#E5E7EB",
        error="#EF4444",
        success="#10B981",
        warning="#F59E0B",
    )


def merge_color_palette(base: ColorPalette, user_colors: list[str]) -> ColorPalette:
    """Override primary, secondary, accent, background, text in that order."""
    updates = {
        slot: color
        for slot, color in zip(_USER_COLOR_SLOTS, user_colors, strict=False)
        if is_valid_hex_color(color)
    }
    return base.model_copy(update=updates)


def infer_style_characteristics(
    style_direction: str,
) -> tuple[BorderRadius, ShadowStyle, SpacingDensity]:
    """Infer radius, shadow and spacing density from direction keywords."""
    direction = style_direction.lower()

    if "sharp" in direction or "angular" in direction:
        radius = BorderRadius.NONE
    elif "subtle" in direction:
        radius = BorderRadius.SUBTLE
    elif "pill" in direction or "playful" in direction:
        radius = BorderRadius.PILL
    else:
        radius = BorderRadius.ROUNDED

    if "flat" in direction or "minimal" in direction:
        shadow = ShadowStyle.NONE
    elif "dramatic" in direction or "bold" in direction:
        shadow = ShadowStyle.DRAMATIC
    elif "subtle" in direction:
        shadow = ShadowStyle.SUBTLE
    else:
        shadow = ShadowStyle.MEDIUM

    if "compact" in direction or "dense" in direction:
        density = SpacingDensity.COMPACT
    elif "spacious" in direction or "airy" in direction:
        density = SpacingDensity.SPACIOUS
    else:
        density = SpacingDensity.COMFORTABLE

    return radius, shadow, density


def validate_color_palette(palette: dict[str, str | None]) -> list[str]:
    """Return a list of problems in a raw palette mapping (empty when valid)."""
    errors: list[str] = []
    for required in ("primary", "background", "text"):
        if not palette.get(required):
            errors.append(f"Missing required color: {required}")
    for key, value in palette.items():
        if value and not is_valid_hex_color(value):
            errors.append(f"Invalid hex color for {key}: {value}")
    return errors


def resolve_palette(style_direction: str, user_colors: list[str]) -> ColorPalette:
    """Default palette for the direction with user colors merged over it."""
    base = default_palette(style_direction)
    if user_colors:
        return merge_color_palette(base, user_colors)
    return base


def compile_style_config(
    *,
    style_direction: str,
    viewport: Viewport,
    palette: ColorPalette,
    anchors: list[Anchor],
) -> StyleConfig:
    """Assemble the style configuration written once anchoring completes."""
    radius, shadow, density = infer_style_characteristics(style_direction)
    return StyleConfig(
        generated_at=datetime.now(UTC).isoformat(),
        viewport=viewport,
        style_direction=style_direction,
        color_palette=palette,
        typography=default_typography(style_direction),
        spacing=Spacing(),
        border_radius=radius,
        shadow_style=shadow,
        spacing_density=density,
        anchors=anchors,
    )


def available_style_directions() -> list[str]:
    """Names of the built-in palettes."""
    return list(DEFAULT_PALETTES)


def palette_preview(palette: ColorPalette) -> str:
    """One line per palette slot for terminal display."""
    return "\n".join(
        f"{field.ljust(12)} {getattr(palette, field)}"
        for field in PALETTE_ORDER
        if getattr(palette, field)
    )
