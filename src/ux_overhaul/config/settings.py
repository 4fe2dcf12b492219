"""Pipeline config models and loading helpers."""

from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ux_overhaul.design.models import StateType
from ux_overhaul.kernel.paths import get_project_config_path


class GenerationSettings(BaseModel):
    """Image-generation service configuration."""

    model_config = ConfigDict(extra="forbid")

    api_key_env: str = "FAL_KEY"
    base_url: str = "https://fal.run/fal-ai"
    max_retries: int = Field(default=3, ge=1, le=10)
    retry_delay_s: float = Field(default=1.0, ge=0.0)
    timeout_s: float = Field(default=120.0, gt=0.0)
    resolution: str = "1K"
    output_format: str = "png"


class AnchoringSettings(BaseModel):
    """Anchor-phase configuration."""

    model_config = ConfigDict(extra="forbid")

    style_direction: str = "modern minimal with subtle shadows"
    color_palette: list[str] = Field(default_factory=list)
    hero_variants: int = Field(default=4, ge=1, le=4)
    max_attempts: int = Field(default=3, ge=1)
    max_regenerations: int = Field(default=3, ge=0)
    auto_approve: bool = False


class PropagationSettings(BaseModel):
    """Propagation-phase configuration."""

    model_config = ConfigDict(extra="forbid")

    batch_size: int = Field(default=5, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    strength_override: float | None = Field(default=None, ge=0.0, le=1.0)
    max_workers: int = Field(default=1, ge=1)


class StatesSettings(BaseModel):
    """State-variant phase configuration."""

    model_config = ConfigDict(extra="forbid")

    state_types: list[StateType] = Field(default_factory=lambda: list(StateType))
    batch_size: int = Field(default=5, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    max_workers: int = Field(default=1, ge=1)


class CoherenceSettings(BaseModel):
    """Coherence-loop configuration."""

    model_config = ConfigDict(extra="forbid")

    max_passes: int = Field(default=2, ge=0)
    threshold: int = Field(default=85, ge=0, le=100)
    max_regeneration_attempts: int = Field(default=2, ge=1)
    include_states: bool = True


class OverhaulConfig(BaseModel):
    """Root pipeline configuration model."""

    model_config = ConfigDict(extra="forbid")

    generation: GenerationSettings = GenerationSettings()
    anchoring: AnchoringSettings = AnchoringSettings()
    propagation: PropagationSettings = PropagationSettings()
    states: StatesSettings = StatesSettings()
    coherence: CoherenceSettings = CoherenceSettings()


class ConfigError(RuntimeError):
    """Raised when config cannot be decoded or validated."""


def _decode_config_payload(path: Path) -> dict[str, object]:
    """Decode config payload from JSON or YAML.

    Args:
        path: Config file path.

    Returns:
        Parsed mapping payload.

    Raises:
        ConfigError: If decode fails or payload is not an object.
    """
    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            payload = json.loads(raw) if raw.strip() else None
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid config JSON: {exc}") from exc
    else:
        try:
            payload = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid config YAML: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError("Invalid config payload: root must be an object")
    return payload


def load_config(path: Path) -> OverhaulConfig:
    """Load pipeline config from disk, defaulting when missing.

    Args:
        path: Config file path.

    Returns:
        Validated config model.

    Raises:
        ConfigError: If the file is invalid.
    """
    if not path.exists():
        return OverhaulConfig()
    payload = _decode_config_payload(path)
    try:
        return OverhaulConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config: {exc}") from exc


def resolve_config(project_root: Path, explicit: Path | None = None) -> OverhaulConfig:
    """Explicit file, else <project>/ux-overhaul.yaml when present, else defaults.

    Raises:
        ConfigError: If an explicit path is missing or any file is invalid.
    """
    if explicit is not None:
        if not explicit.exists():
            raise ConfigError(f"Config file not found: {explicit}")
        return load_config(explicit)
    return load_config(get_project_config_path(project_root))
