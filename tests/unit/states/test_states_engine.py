"""Unit tests for the state-variant engine."""

from __future__ import annotations

from pathlib import Path

import pytest

from ux_overhaul.config.settings import StatesSettings
from ux_overhaul.design.models import StateType, StyleConfig
from ux_overhaul.kernel.errors import MissingInputError
from ux_overhaul.kernel.manifest import PhaseName, PhaseStatus
from ux_overhaul.kernel.paths import get_states_report_path, resolve_project_path
from ux_overhaul.kernel.store import ManifestStore
from ux_overhaul.propagation.engine import PropagationEngine
from ux_overhaul.propagation.report import PropagationReport
from ux_overhaul.states.engine import STATE_STRENGTHS, StateEngine, build_state_prompt
from ux_overhaul.states.report import (
    format_states_summary,
    read_states_report,
    states_status_line,
)
from tests.unit.helpers import (
    ClientCall,
    CursorCrashStore,
    ScriptedClient,
    create_project,
    data_url,
    make_png_bytes,
    write_captures,
    write_validated_style,
)


def _propagated(
    project_root: Path, count: int, client: ScriptedClient | None = None
) -> tuple[PropagationReport, StyleConfig]:
    store = create_project(
        project_root, done=(PhaseName.CAPTURE, PhaseName.AUDIT, PhaseName.ANCHORING)
    )
    app = write_captures(project_root, count)
    style = write_validated_style(project_root)
    report = PropagationEngine(
        project_root, store, client or ScriptedClient(), app=app, style=style
    ).run()
    return report, style


def _engine(
    project_root: Path,
    client: ScriptedClient,
    propagation: PropagationReport,
    style: StyleConfig,
    **settings: object,
) -> StateEngine:
    return StateEngine(
        project_root,
        ManifestStore.load(project_root),
        client,
        propagation=propagation,
        style=style,
        settings=StatesSettings.model_validate(settings),
    )


def test_generates_every_state_for_every_screen(project_root: Path) -> None:
    """Three screens with two state types give six variants in batches of two."""
    propagation, style = _propagated(project_root, 3)
    client = ScriptedClient()

    report = _engine(
        project_root,
        client,
        propagation,
        style,
        state_types=["loading", "error"],
        batch_size=2,
    ).run()

    assert report.summary.total_screens == 3
    assert report.summary.total_states == 6
    assert report.summary.success_count == 6
    assert sorted(report.summary.by_state_type) == ["error", "loading"]
    for state in report.all_states():
        assert resolve_project_path(project_root, state.state_path).is_file()
        assert state.strength_used == STATE_STRENGTHS[state.state_type]
    assert all(call.kind == "edit" for call in client.calls)
    assert all(len(call.reference_images) == 14 for call in client.calls)
    state = ManifestStore.load(project_root).manifest.phase(PhaseName.STATES)
    assert state.status == PhaseStatus.COMPLETE
    assert state.items_completed == 6
    assert get_states_report_path(project_root).is_file()
    assert states_status_line(report.summary) == "6/6 states generated, $0.90 cost"


def test_crash_mid_run_resumes_without_redoing_committed_screens(
    project_root: Path,
) -> None:
    """A crash in batch 2 keeps batch 1; the rerun only edits screen 3."""
    # Arrange - 3 screens in batches of 2, four state types, crashing on screen 3
    propagation, style = _propagated(project_root, 3)
    crashing = ScriptedClient(crash_when=lambda call: "Screen 3 screen" in call.prompt)

    # Act - first run dies inside batch 2
    with pytest.raises(RuntimeError, match="simulated crash"):
        _engine(project_root, crashing, propagation, style, batch_size=2).run()

    # Assert - batch 1 committed with screens x state types items
    state = ManifestStore.load(project_root).manifest.phase(PhaseName.STATES)
    assert state.status == PhaseStatus.IN_PROGRESS
    assert state.current_batch == 2
    assert state.items_completed == 2 * len(StateType)

    # Act - rerun with a healthy client
    healthy = ScriptedClient()
    report = _engine(project_root, healthy, propagation, style, batch_size=2).run()

    # Assert - committed screens were not edited again
    assert len(healthy.calls) == len(StateType)
    assert all("Screen 3 screen" in call.prompt for call in healthy.calls)
    assert [s.screen_id for s in report.screens] == [
        "screen-01",
        "screen-02",
        "screen-03",
    ]
    assert report.summary.total_states == 3 * len(StateType)
    final = ManifestStore.load(project_root).manifest.phase(PhaseName.STATES)
    assert final.status == PhaseStatus.COMPLETE
    assert final.items_completed == 3 * len(StateType)


def test_crash_before_cursor_advance_discards_uncommitted_screens(
    project_root: Path,
) -> None:
    """Batch 2 records written without a cursor advance are not doubled."""
    propagation, style = _propagated(project_root, 3)
    crashing = StateEngine(
        project_root,
        CursorCrashStore.load(project_root),
        ScriptedClient(),
        propagation=propagation,
        style=style,
        settings=StatesSettings(batch_size=2),
    )
    with pytest.raises(RuntimeError, match="simulated crash"):
        crashing.run()

    healthy = ScriptedClient()
    report = _engine(project_root, healthy, propagation, style, batch_size=2).run()

    assert len(healthy.calls) == len(StateType)
    assert [s.screen_id for s in report.screens] == [
        "screen-01",
        "screen-02",
        "screen-03",
    ]
    assert report.summary.total_screens == 3
    assert report.summary.total_cost == pytest.approx(12 * 0.15)


def test_failed_propagations_are_excluded(project_root: Path) -> None:
    """Only successfully propagated screens get state variants."""
    failing = data_url(make_png_bytes(2))
    propagation, style = _propagated(
        project_root,
        3,
        ScriptedClient(fail_when=lambda call: call.base_image == failing),
    )

    report = _engine(
        project_root, ScriptedClient(), propagation, style, state_types=["empty"]
    ).run()

    assert [s.screen_id for s in report.screens] == ["screen-01", "screen-03"]


def test_failing_state_is_recorded_with_attempts_and_cost(project_root: Path) -> None:
    """An always-failing error state costs three attempts; loading still succeeds."""
    propagation, style = _propagated(project_root, 1)

    def is_error_state(call: ClientCall) -> bool:
        return "error state with clear error message" in call.prompt

    report = _engine(
        project_root,
        ScriptedClient(fail_when=is_error_state),
        propagation,
        style,
        state_types=["loading", "error"],
    ).run()

    screen = report.screens[0]
    error = next(s for s in screen.states if s.state_type == StateType.ERROR)
    assert error.success is False
    assert error.attempts == 3
    assert error.cost == pytest.approx(0.45)
    assert screen.success_count == 1
    assert read_states_report(project_root).summary.failure_count == 1
    assert "loading: 1 states, 100% success" in format_states_summary(report)


def test_no_successful_screens_is_missing_input(project_root: Path) -> None:
    """Without any successful propagation there is nothing to vary."""
    propagation, style = _propagated(
        project_root, 1, ScriptedClient(fail_when=lambda call: True)
    )

    with pytest.raises(MissingInputError, match="No successfully propagated"):
        _engine(project_root, ScriptedClient(), propagation, style).run()


def test_build_state_prompt() -> None:
    """State prompts name the screen, the state and the references."""
    prompt = build_state_prompt(
        "Inbox",
        StateType.LOADING,
        style="modern",
        colors=["#111111"],
        reference_count=20,
    )

    assert prompt.startswith("modern Inbox screen, showing loading skeleton state")
    assert "reference images 1-14" in prompt
    assert prompt.endswith("Use colors: #111111")
