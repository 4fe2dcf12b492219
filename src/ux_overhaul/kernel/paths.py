"""Project directory layout. Layer 0."""

from __future__ import annotations

from pathlib import Path

MANIFEST_FILENAME = "manifest.json"
LOCK_FILENAME = ".lock"
APP_UNDERSTANDING_FILENAME = "app_understanding.json"
IMPROVEMENT_PLAN_FILENAME = "improvement_plan.json"
ANCHORING_STATE_FILENAME = "anchoring_state.json"
STYLE_CONFIG_FILENAME = "style_config.json"
PROPAGATION_PROGRESS_FILENAME = "propagation_progress.json"
PROPAGATION_REPORT_FILENAME = "propagation_report.json"
STATES_PROGRESS_FILENAME = "states_progress.json"
STATES_REPORT_FILENAME = "states_report.json"
COHERENCE_REPORT_FILENAME = "coherence_report.json"
PROJECT_CONFIG_FILENAME = "ux-overhaul.yaml"
GENERATED_DIR = "generated"


def get_manifest_path(project_root: Path) -> Path:
    """Path to manifest.json."""
    return project_root / MANIFEST_FILENAME


def get_lock_path(project_root: Path) -> Path:
    """Path to the project lock file."""
    return project_root / LOCK_FILENAME


def get_app_understanding_path(project_root: Path) -> Path:
    """Path to imported capture data."""
    return project_root / APP_UNDERSTANDING_FILENAME


def get_improvement_plan_path(project_root: Path) -> Path:
    """Path to imported audit data."""
    return project_root / IMPROVEMENT_PLAN_FILENAME


def get_anchoring_state_path(project_root: Path) -> Path:
    """Path to the persisted anchoring session."""
    return project_root / ANCHORING_STATE_FILENAME


def get_style_config_path(project_root: Path) -> Path:
    """Path to style_config.json."""
    return project_root / STYLE_CONFIG_FILENAME


def get_propagation_progress_path(project_root: Path) -> Path:
    """Path to per-batch propagation checkpoint records."""
    return project_root / PROPAGATION_PROGRESS_FILENAME


def get_propagation_report_path(project_root: Path) -> Path:
    """Path to propagation_report.json."""
    return project_root / PROPAGATION_REPORT_FILENAME


def get_states_progress_path(project_root: Path) -> Path:
    """Path to per-batch state-variant checkpoint records."""
    return project_root / STATES_PROGRESS_FILENAME


def get_states_report_path(project_root: Path) -> Path:
    """Path to states_report.json."""
    return project_root / STATES_REPORT_FILENAME


def get_coherence_report_path(project_root: Path) -> Path:
    """Path to coherence_report.json."""
    return project_root / COHERENCE_REPORT_FILENAME


def get_project_config_path(project_root: Path) -> Path:
    """Path to the optional per-project config file."""
    return project_root / PROJECT_CONFIG_FILENAME


def get_anchors_dir(project_root: Path) -> Path:
    """Directory holding the 14 anchor images."""
    return project_root / GENERATED_DIR / "anchors"


def get_hero_variants_dir(project_root: Path) -> Path:
    """Directory holding hero candidates awaiting selection."""
    return get_anchors_dir(project_root) / "hero-variants"


def get_screens_dir(project_root: Path) -> Path:
    """Directory holding propagated screens and their backups."""
    return project_root / GENERATED_DIR / "screens"


def get_states_dir(project_root: Path) -> Path:
    """Directory holding state-variant images."""
    return project_root / GENERATED_DIR / "states"


def get_anchor_image_path(project_root: Path, slot: int, anchor_type: str) -> Path:
    """Deterministic anchor image path: anchor-{slot:02d}-{type}.png."""
    return get_anchors_dir(project_root) / f"anchor-{slot:02d}-{anchor_type}.png"


def get_hero_variant_path(project_root: Path, index: int) -> Path:
    """Hero variant path; index is 1-based."""
    return get_hero_variants_dir(project_root) / f"hero-variant-{index}.png"


def get_propagated_screen_path(project_root: Path, screen_id: str) -> Path:
    """Propagated screen path: {id}-propagated.png."""
    return get_screens_dir(project_root) / f"{screen_id}-propagated.png"


def get_screen_backup_path(project_root: Path, screen_id: str, pass_number: int) -> Path:
    """Backup path for a screen overwritten during coherence pass N."""
    return get_screens_dir(project_root) / f"{screen_id}-backup-pass{pass_number}.png"


def get_state_image_path(project_root: Path, screen_id: str, state_type: str) -> Path:
    """State variant path: {screen_id}-{state}.png."""
    return get_states_dir(project_root) / f"{screen_id}-{state_type}.png"


def get_state_backup_path(
    project_root: Path, screen_id: str, state_type: str, pass_number: int
) -> Path:
    """Backup path for a state image overwritten during coherence pass N."""
    return (
        get_states_dir(project_root)
        / f"{screen_id}-{state_type}-backup-pass{pass_number}.png"
    )


def resolve_project_path(project_root: Path, value: str) -> Path:
    """Absolute path for a stored path (stored paths are project-relative)."""
    path = Path(value)
    return path if path.is_absolute() else project_root / path


def to_project_relative(project_root: Path, path: Path) -> str:
    """POSIX path relative to project_root when inside it, else absolute."""
    try:
        return path.relative_to(project_root).as_posix()
    except ValueError:
        return str(path)
