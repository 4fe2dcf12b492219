"""Pipeline configuration."""

from ux_overhaul.config.settings import (
    AnchoringSettings,
    CoherenceSettings,
    ConfigError,
    GenerationSettings,
    OverhaulConfig,
    PropagationSettings,
    StatesSettings,
    load_config,
    resolve_config,
)

__all__ = [
    "AnchoringSettings",
    "CoherenceSettings",
    "ConfigError",
    "GenerationSettings",
    "OverhaulConfig",
    "PropagationSettings",
    "StatesSettings",
    "load_config",
    "resolve_config",
]
