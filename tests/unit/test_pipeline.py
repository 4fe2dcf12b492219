"""Unit tests for project setup, imports and input loading."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ux_overhaul.design.models import ImprovementPlan
from ux_overhaul.kernel.errors import MissingInputError, PhasePreconditionError
from ux_overhaul.kernel.manifest import PhaseName, PhaseStatus, read_manifest
from ux_overhaul.kernel.paths import resolve_project_path
from ux_overhaul.pipeline import (
    import_audit,
    import_capture,
    init_project,
    load_app_understanding,
    load_improvement_plan,
    load_states_report,
    load_style_config,
    skip_phase,
)
from tests.unit.helpers import create_project, make_png_bytes, write_png


def _capture_export(directory: Path) -> Path:
    """Capture JSON with screenshots relative to its own directory."""
    write_png(directory / "shots" / "home.png", seed=1)
    write_png(directory / "shots" / "login.png", seed=2)
    source = directory / "capture.json"
    source.write_text(
        json.dumps(
            {
                "app_name": "Shop",
                "screens": [
                    {"id": "home", "name": "Home", "screenshot_path": "shots/home.png"},
                    {
                        "id": "login",
                        "name": "Login",
                        "screenshot_path": "shots/login.png",
                    },
                ],
                "flows": [{"name": "Sign in", "screens": ["home", "login"]}],
                "captured_by": "crawler",
            }
        ),
        encoding="utf-8",
    )
    return source


@pytest.mark.unit
def test_init_project_writes_pending_manifest(project_root: Path) -> None:
    """A new project has every phase pending and the chosen viewport."""
    store = init_project(
        project_root, "shop", app_url="https://shop.test", viewport="desktop"
    )

    manifest = read_manifest(project_root)
    assert manifest == store.manifest
    assert manifest.viewport == "desktop"
    assert manifest.app_url == "https://shop.test"
    assert all(
        state.status == PhaseStatus.PENDING for state in manifest.phases.values()
    )


def test_init_project_refuses_existing_project(project_root: Path) -> None:
    """Initializing twice raises FileExistsError."""
    init_project(project_root, "shop")

    with pytest.raises(FileExistsError, match="already initialized"):
        init_project(project_root, "shop")


@pytest.mark.unit
def test_import_capture_rebases_screenshot_paths(
    project_root: Path, tmp_path: Path
) -> None:
    """Screenshots resolve against the export's directory and land project-relative."""
    # Arrange - export lives outside the project directory
    init_project(project_root, "shop")
    source = _capture_export(tmp_path / "export")

    # Act
    app = import_capture(project_root, source)

    # Assert - paths point at the export's files and counters are set
    assert [s.id for s in app.screens] == ["home", "login"]
    home = resolve_project_path(project_root, app.screens[0].screenshot_path)
    assert home == (tmp_path / "export" / "shots" / "home.png").resolve()
    assert home.read_bytes() == make_png_bytes(1)
    manifest = read_manifest(project_root)
    assert manifest.total_screens == 2
    capture = manifest.phase(PhaseName.CAPTURE)
    assert capture.status == PhaseStatus.COMPLETE
    assert capture.items_completed == 2
    assert load_app_understanding(project_root) == app


def test_import_audit_completes_audit(project_root: Path, tmp_path: Path) -> None:
    """The plan is stored and the audit phase completes."""
    create_project(project_root, done=(PhaseName.CAPTURE,))
    source = tmp_path / "plan.json"
    source.write_text(
        json.dumps(
            {
                "global_improvements": ["Raise contrast"],
                "screen_improvements": {"home": ["Bigger search box"]},
            }
        ),
        encoding="utf-8",
    )

    plan = import_audit(project_root, source)

    assert plan.for_screen("home") == ["Bigger search box"]
    assert load_improvement_plan(project_root) == plan
    assert read_manifest(project_root).phase(PhaseName.AUDIT).status == (
        PhaseStatus.COMPLETE
    )


def test_import_audit_requires_capture(project_root: Path, tmp_path: Path) -> None:
    """Audit cannot start before capture is done."""
    init_project(project_root, "shop")
    source = tmp_path / "plan.json"
    source.write_text("{}", encoding="utf-8")

    with pytest.raises(PhasePreconditionError, match='"capture" must be completed'):
        import_audit(project_root, source)


def test_skip_phase_marks_skipped(project_root: Path) -> None:
    """A startable phase can be skipped; a blocked one cannot."""
    create_project(project_root, done=(PhaseName.CAPTURE,))

    skip_phase(project_root, "audit")

    assert read_manifest(project_root).phase(PhaseName.AUDIT).status == (
        PhaseStatus.SKIPPED
    )
    with pytest.raises(PhasePreconditionError):
        skip_phase(project_root, PhaseName.STATES)


def test_loaders_report_missing_inputs(project_root: Path) -> None:
    """Required inputs raise MissingInputError; optional ones fall back."""
    create_project(project_root)

    with pytest.raises(MissingInputError, match="import-capture"):
        load_app_understanding(project_root)
    with pytest.raises(MissingInputError, match="complete anchoring"):
        load_style_config(project_root)
    assert load_improvement_plan(project_root) == ImprovementPlan()
    assert load_states_report(project_root) is None
