"""Design-domain models: anchors, palette, style configuration, capture/audit inputs."""

from __future__ import annotations

import re
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEX_COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")


class Viewport(StrEnum):
    """Target device classes."""

    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"
    DESKTOP_XL = "desktop-xl"


class AnchorType(StrEnum):
    """Anchor slot categories."""

    HERO = "hero"
    SCREEN = "screen"
    COMPONENT = "component"
    TYPOGRAPHY = "typography"
    STATE = "state"
    ICONOGRAPHY = "iconography"


class ScreenType(StrEnum):
    """Screen classes used for prompts, strengths and coherence sensitivity."""

    DASHBOARD = "dashboard"
    LIST = "list"
    DETAIL = "detail"
    FORM = "form"
    SETTINGS = "settings"
    AUTH = "auth"
    LANDING = "landing"
    MODAL = "modal"
    EMPTY = "empty"
    ERROR = "error"
    GENERIC = "generic"


class StateType(StrEnum):
    """State variants generated per screen."""

    LOADING = "loading"
    EMPTY = "empty"
    ERROR = "error"
    SUCCESS = "success"


class BorderRadius(StrEnum):
    """Corner treatment inferred from the style direction."""

    NONE = "none"
    SUBTLE = "subtle"
    ROUNDED = "rounded"
    PILL = "pill"


class ShadowStyle(StrEnum):
    """Elevation treatment inferred from the style direction."""

    NONE = "none"
    SUBTLE = "subtle"
    MEDIUM = "medium"
    DRAMATIC = "dramatic"


class SpacingDensity(StrEnum):
    """Whitespace density inferred from the style direction."""

    COMPACT = "compact"
    COMFORTABLE = "comfortable"
    SPACIOUS = "spacious"


class Anchor(BaseModel):
    """One of the 14 fixed reference slots."""

    slot: int = Field(ge=1, le=14)
    type: AnchorType
    name: str
    description: str
    image_path: str = ""
    validated: bool = False
    validated_at: str | None = None
    prompt_used: str = ""


class ColorPalette(BaseModel):
    """Named color slots; primary, background and text are mandatory."""

    primary: str
    secondary: str | None = None
    accent: str | None = None
    background: str
    surface: str | None = None
    text: str
    text_muted: str | None = None
    border: str | None = None
    error: str | None = None
    success: str | None = None
    warning: str | None = None

    @field_validator("*")
    @classmethod
    def _hex_only(cls, value: str | None) -> str | None:
        if value is not None and not HEX_COLOR_PATTERN.match(value):
            raise ValueError(f"invalid hex color: {value!r}")
        return value


class Typography(BaseModel):
    """Font family and weights."""

    font_family: str
    heading_weight: int = 600
    body_weight: int = 400


class Spacing(BaseModel):
    """Spacing scale in pixels."""

    base: int = 4
    scale: list[int] = Field(default_factory=lambda: [4, 8, 12, 16, 24, 32, 48, 64])


class StyleConfig(BaseModel):
    """Compiled visual style written once anchoring completes."""

    generated_at: str
    viewport: Viewport
    style_direction: str
    color_palette: ColorPalette
    typography: Typography
    spacing: Spacing = Field(default_factory=Spacing)
    border_radius: BorderRadius = BorderRadius.ROUNDED
    shadow_style: ShadowStyle = ShadowStyle.MEDIUM
    spacing_density: SpacingDensity = SpacingDensity.COMFORTABLE
    anchors: list[Anchor] = Field(default_factory=list)

    def to_file_dict(self) -> dict[str, Any]:
        """Serialize for JSON file."""
        return self.model_dump(mode="json")

    @classmethod
    def from_file_dict(cls, d: dict[str, Any]) -> StyleConfig:
        """Deserialize from JSON file."""
        return cls.model_validate(d)


class CapturedScreen(BaseModel):
    """One screen produced by the capture phase."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    flow: str = ""
    screenshot_path: str
    screen_type: str | None = None


class UserFlow(BaseModel):
    """Named, ordered sequence of screen ids."""

    model_config = ConfigDict(extra="ignore")

    name: str
    screens: list[str] = Field(default_factory=list)


class AppUnderstanding(BaseModel):
    """Capture-phase output imported into the project."""

    model_config = ConfigDict(extra="ignore")

    app_name: str
    app_url: str = ""
    screens: list[CapturedScreen] = Field(default_factory=list)
    flows: list[UserFlow] = Field(default_factory=list)

    def to_file_dict(self) -> dict[str, Any]:
        """Serialize for JSON file."""
        return self.model_dump(mode="json")

    @classmethod
    def from_file_dict(cls, d: dict[str, Any]) -> AppUnderstanding:
        """Deserialize from JSON file."""
        return cls.model_validate(d)


class ImprovementPlan(BaseModel):
    """Audit-phase output: prompt injections, global and per screen."""

    model_config = ConfigDict(extra="ignore")

    global_improvements: list[str] = Field(default_factory=list)
    screen_improvements: dict[str, list[str]] = Field(default_factory=dict)

    def for_screen(self, screen_id: str) -> list[str]:
        """Prioritized injections for one screen."""
        return self.screen_improvements.get(screen_id, [])

    def to_file_dict(self) -> dict[str, Any]:
        """Serialize for JSON file."""
        return self.model_dump(mode="json")

    @classmethod
    def from_file_dict(cls, d: dict[str, Any]) -> ImprovementPlan:
        """Deserialize from JSON file."""
        return cls.model_validate(d)
