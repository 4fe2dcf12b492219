"""Project-level entry points shared by the CLI and embedding callers.

Each run_* function loads the project's inputs, builds the phase engine and
runs it. A client may be injected; otherwise a FalClient is built from the
environment and closed when the phase returns.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ux_overhaul.anchoring.engine import AnchorEngine, AnchoringProgress
from ux_overhaul.anchoring.gates import GateResponse, ProcessedResponse
from ux_overhaul.coherence.engine import CoherenceEngine
from ux_overhaul.coherence.report import CoherenceReport
from ux_overhaul.coherence.scoring import DeviationScorer
from ux_overhaul.config.settings import OverhaulConfig, resolve_config
from ux_overhaul.design.models import (
    AppUnderstanding,
    ImprovementPlan,
    StyleConfig,
    Viewport,
)
from ux_overhaul.generation.client import FalClient, GenerationClient
from ux_overhaul.kernel.atomic_write import atomic_write_json_at, read_json_file
from ux_overhaul.kernel.errors import MissingInputError
from ux_overhaul.kernel.manifest import (
    PhaseName,
    PhaseStatus,
    create_manifest,
    manifest_exists,
    set_total_screens,
)
from ux_overhaul.kernel.paths import (
    get_app_understanding_path,
    get_improvement_plan_path,
    get_propagation_report_path,
    get_states_report_path,
    get_style_config_path,
    resolve_project_path,
    to_project_relative,
)
from ux_overhaul.kernel.store import ManifestStore
from ux_overhaul.propagation.engine import PropagationEngine
from ux_overhaul.propagation.report import PropagationReport, read_propagation_report
from ux_overhaul.states.engine import StateEngine
from ux_overhaul.states.report import StatesReport, read_states_report

_LOGGER = logging.getLogger(__name__)


def init_project(
    project_root: Path,
    project_id: str,
    *,
    app_url: str = "",
    viewport: Viewport | str = Viewport.MOBILE,
) -> ManifestStore:
    """Create manifest.json for a new project.

    Raises:
        FileExistsError: If the project already has a manifest.
    """
    if manifest_exists(project_root):
        raise FileExistsError(f"Project already initialized: {project_root}")
    manifest = create_manifest(project_id, app_url, Viewport(viewport).value)
    _LOGGER.info("Initialized project %s at %s", project_id, project_root)
    return ManifestStore.create(project_root, manifest)


def import_capture(project_root: Path, source: Path) -> AppUnderstanding:
    """Import capture output and complete the capture phase.

    Relative screenshot paths are resolved against the source file's
    directory and stored relative to the project.
    """
    store = ManifestStore.load(project_root)
    store.begin(PhaseName.CAPTURE)
    app = AppUnderstanding.from_file_dict(read_json_file(source))
    screens = [
        screen.model_copy(
            update={
                "screenshot_path": to_project_relative(
                    project_root,
                    resolve_project_path(source.parent.resolve(), screen.screenshot_path),
                )
            }
        )
        for screen in app.screens
    ]
    app = app.model_copy(update={"screens": screens})
    atomic_write_json_at(
        get_app_understanding_path(project_root), app.to_file_dict(), "app_understanding"
    )
    store.update(set_total_screens(store.manifest, len(app.screens)))
    store.complete(PhaseName.CAPTURE, items_completed=len(app.screens))
    return app


def import_audit(project_root: Path, source: Path) -> ImprovementPlan:
    """Import the audit improvement plan and complete the audit phase."""
    store = ManifestStore.load(project_root)
    store.begin(PhaseName.AUDIT)
    plan = ImprovementPlan.from_file_dict(read_json_file(source))
    atomic_write_json_at(
        get_improvement_plan_path(project_root), plan.to_file_dict(), "improvement_plan"
    )
    store.complete(PhaseName.AUDIT)
    return plan


def skip_phase(project_root: Path, phase: PhaseName | str) -> ManifestStore:
    """Mark a phase skipped once its predecessors are done."""
    store = ManifestStore.load(project_root)
    name = PhaseName(phase)
    store.require_can_start(name)
    store.skip(name)
    return store


def load_app_understanding(project_root: Path) -> AppUnderstanding:
    """Imported capture data.

    Raises:
        MissingInputError: Capture has not been imported.
    """
    path = get_app_understanding_path(project_root)
    if not path.exists():
        raise MissingInputError("No capture data; run import-capture first")
    return AppUnderstanding.from_file_dict(read_json_file(path))


def load_improvement_plan(project_root: Path) -> ImprovementPlan:
    """Audit plan, empty when the audit was skipped."""
    path = get_improvement_plan_path(project_root)
    if not path.exists():
        return ImprovementPlan()
    return ImprovementPlan.from_file_dict(read_json_file(path))


def load_style_config(project_root: Path) -> StyleConfig:
    """Compiled style configuration.

    Raises:
        MissingInputError: Anchoring has not completed.
    """
    path = get_style_config_path(project_root)
    if not path.exists():
        raise MissingInputError("No style configuration; complete anchoring first")
    return StyleConfig.from_file_dict(read_json_file(path))


def load_propagation_report(project_root: Path) -> PropagationReport:
    """Propagation report.

    Raises:
        MissingInputError: Propagation has not completed.
    """
    if not get_propagation_report_path(project_root).exists():
        raise MissingInputError("No propagation report; run propagate first")
    return read_propagation_report(project_root)


def load_states_report(project_root: Path) -> StatesReport | None:
    """States report, or None when the states phase produced none."""
    if not get_states_report_path(project_root).exists():
        return None
    return read_states_report(project_root)


@contextmanager
def _client_scope(
    client: GenerationClient | None, config: OverhaulConfig
) -> Iterator[GenerationClient]:
    if client is not None:
        yield client
        return
    with FalClient.from_env(config.generation) as owned:
        yield owned


def _anchor_engine(
    project_root: Path,
    client: GenerationClient,
    config: OverhaulConfig,
) -> AnchorEngine:
    app_path = get_app_understanding_path(project_root)
    app = (
        AppUnderstanding.from_file_dict(read_json_file(app_path))
        if app_path.exists()
        else None
    )
    return AnchorEngine(
        project_root,
        ManifestStore.load(project_root),
        client,
        settings=config.anchoring,
        generation=config.generation,
        app=app,
    )


def run_anchoring(
    project_root: Path,
    *,
    client: GenerationClient | None = None,
    config: OverhaulConfig | None = None,
) -> AnchoringProgress:
    """Advance anchoring until a gate opens, or complete it."""
    config = config or resolve_config(project_root)
    with _client_scope(client, config) as active:
        return _anchor_engine(project_root, active, config).run()


def resolve_anchor_gate(
    project_root: Path,
    gate_id: str,
    response: GateResponse,
    *,
    client: GenerationClient | None = None,
    config: OverhaulConfig | None = None,
    resume: bool = True,
) -> tuple[ProcessedResponse, AnchoringProgress | None]:
    """Answer the pending anchoring gate and optionally continue generating."""
    config = config or resolve_config(project_root)
    with _client_scope(client, config) as active:
        engine = _anchor_engine(project_root, active, config)
        decision = engine.resolve_gate(gate_id, response)
        progress = engine.run() if resume else None
    return decision, progress


def run_propagation(
    project_root: Path,
    *,
    client: GenerationClient | None = None,
    config: OverhaulConfig | None = None,
) -> PropagationReport:
    """Run (or resume) the propagation phase."""
    config = config or resolve_config(project_root)
    store = ManifestStore.load(project_root)
    store.require_can_start(PhaseName.PROPAGATION)
    app = load_app_understanding(project_root)
    style = load_style_config(project_root)
    plan = load_improvement_plan(project_root)
    with _client_scope(client, config) as active:
        return PropagationEngine(
            project_root,
            store,
            active,
            app=app,
            style=style,
            plan=plan,
            settings=config.propagation,
            generation=config.generation,
        ).run()


def run_states(
    project_root: Path,
    *,
    client: GenerationClient | None = None,
    config: OverhaulConfig | None = None,
) -> StatesReport:
    """Run (or resume) the state-variant phase."""
    config = config or resolve_config(project_root)
    store = ManifestStore.load(project_root)
    store.require_can_start(PhaseName.STATES)
    propagation = load_propagation_report(project_root)
    style = load_style_config(project_root)
    with _client_scope(client, config) as active:
        return StateEngine(
            project_root,
            store,
            active,
            propagation=propagation,
            style=style,
            settings=config.states,
            generation=config.generation,
        ).run()


def run_coherence(
    project_root: Path,
    *,
    client: GenerationClient | None = None,
    config: OverhaulConfig | None = None,
    scorer: DeviationScorer | None = None,
) -> CoherenceReport:
    """Run the coherence convergence loop."""
    config = config or resolve_config(project_root)
    store = ManifestStore.load(project_root)
    store.require_can_start(PhaseName.COHERENCE)
    propagation = load_propagation_report(project_root)
    style = load_style_config(project_root)
    states = (
        load_states_report(project_root)
        if store.manifest.phase(PhaseName.STATES).status == PhaseStatus.COMPLETE
        else None
    )
    app_path = get_app_understanding_path(project_root)
    app = (
        AppUnderstanding.from_file_dict(read_json_file(app_path))
        if app_path.exists()
        else None
    )
    with _client_scope(client, config) as active:
        return CoherenceEngine(
            project_root,
            store,
            active,
            propagation=propagation,
            style=style,
            app=app,
            states=states,
            settings=config.coherence,
            generation=config.generation,
            scorer=scorer,
        ).run()
