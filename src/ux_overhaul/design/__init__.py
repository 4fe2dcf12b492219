"""Design domain: models and style extraction."""

from ux_overhaul.design.models import (
    Anchor,
    AnchorType,
    AppUnderstanding,
    BorderRadius,
    CapturedScreen,
    ColorPalette,
    ImprovementPlan,
    ScreenType,
    ShadowStyle,
    Spacing,
    SpacingDensity,
    StateType,
    StyleConfig,
    Typography,
    UserFlow,
    Viewport,
)
from ux_overhaul.design.style import (
    DEFAULT_PALETTES,
    build_color_palette,
    compile_style_config,
    default_palette,
    infer_style_characteristics,
    is_valid_hex_color,
    merge_color_palette,
    palette_to_list,
    resolve_palette,
    validate_color_palette,
)

__all__ = [
    "DEFAULT_PALETTES",
    "Anchor",
    "AnchorType",
    "AppUnderstanding",
    "BorderRadius",
    "CapturedScreen",
    "ColorPalette",
    "ImprovementPlan",
    "ScreenType",
    "ShadowStyle",
    "Spacing",
    "SpacingDensity",
    "StateType",
    "StyleConfig",
    "Typography",
    "UserFlow",
    "Viewport",
    "build_color_palette",
    "compile_style_config",
    "default_palette",
    "infer_style_characteristics",
    "is_valid_hex_color",
    "merge_color_palette",
    "palette_to_list",
    "resolve_palette",
    "validate_color_palette",
]
