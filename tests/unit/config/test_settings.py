"""Unit tests for pipeline config loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from ux_overhaul.config.settings import (
    ConfigError,
    OverhaulConfig,
    load_config,
    resolve_config,
)
from ux_overhaul.design.models import StateType


@pytest.mark.unit
def test_load_config_defaults_when_missing(tmp_path: Path) -> None:
    """Missing config file should yield deterministic defaults."""
    config = load_config(tmp_path / "missing.yaml")

    assert config.generation.api_key_env == "FAL_KEY"
    assert config.generation.max_retries == 3
    assert config.anchoring.hero_variants == 4
    assert config.anchoring.auto_approve is False
    assert config.propagation.batch_size == 5
    assert config.states.state_types == list(StateType)
    assert config.coherence.max_passes == 2
    assert config.coherence.threshold == 85
    assert config.coherence.max_regeneration_attempts == 2
    assert config.coherence.include_states is True


@pytest.mark.unit
def test_load_config_reads_yaml_sections(tmp_path: Path) -> None:
    """YAML values override defaults per section."""
    path = tmp_path / "ux-overhaul.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "anchoring": {"style_direction": "dark professional", "hero_variants": 2},
                "propagation": {"batch_size": 3, "max_workers": 2},
                "coherence": {"threshold": 90},
            }
        ),
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.anchoring.style_direction == "dark professional"
    assert config.anchoring.hero_variants == 2
    assert config.propagation.batch_size == 3
    assert config.propagation.max_workers == 2
    assert config.coherence.threshold == 90
    assert config.coherence.max_passes == 2


@pytest.mark.unit
def test_load_config_reads_json(tmp_path: Path) -> None:
    """JSON payloads are accepted by suffix."""
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"states": {"state_types": ["loading"]}}), encoding="utf-8")

    assert load_config(path).states.state_types == [StateType.LOADING]


@pytest.mark.unit
def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    """An empty YAML file decodes to defaults."""
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path) == OverhaulConfig()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("- just\n- a list\n", "root must be an object"),
        ("anchoring: [unclosed\n", "Invalid config YAML"),
        ("unknown_section: {}\n", "Invalid config"),
        ("anchoring:\n  hero_variants: 9\n", "Invalid config"),
    ],
)
def test_invalid_config_raises(tmp_path: Path, content: str, message: str) -> None:
    """Decode and validation failures surface as ConfigError."""
    path = tmp_path / "bad.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError, match=message):
        load_config(path)


@pytest.mark.unit
def test_resolve_config_prefers_project_file(tmp_path: Path) -> None:
    """Project-level ux-overhaul.yaml is used when no explicit path is given."""
    (tmp_path / "ux-overhaul.yaml").write_text(
        "propagation:\n  batch_size: 2\n", encoding="utf-8"
    )

    assert resolve_config(tmp_path).propagation.batch_size == 2


@pytest.mark.unit
def test_resolve_config_missing_explicit_path_raises(tmp_path: Path) -> None:
    """An explicit config path must exist."""
    with pytest.raises(ConfigError, match="not found"):
        resolve_config(tmp_path, tmp_path / "nope.yaml")
