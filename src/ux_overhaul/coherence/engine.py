"""Coherence engine: score, detect outliers, regenerate, re-score.

The loop is bounded by ``max_passes``. Every pass ends with a re-score, so
the final report always reflects the files currently on disk.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ux_overhaul.anchoring.slots import anchor_reference_urls, validated_anchors
from ux_overhaul.coherence.flows import analyze_flows
from ux_overhaul.coherence.report import (
    SCREEN_PASS_SCORE,
    CoherenceReport,
    CoherenceSummary,
    RegenerationRecord,
    ScreenCoherence,
    write_coherence_report,
)
from ux_overhaul.coherence.scoring import (
    CoherenceSubject,
    DeviationScore,
    DeviationScorer,
    HeuristicDeviationScorer,
    OutlierInfo,
    detect_outliers,
    overall_coherence,
    score_subject,
)
from ux_overhaul.config.settings import CoherenceSettings, GenerationSettings
from ux_overhaul.design.models import (
    AppUnderstanding,
    ScreenType,
    StateType,
    StyleConfig,
)
from ux_overhaul.design.style import palette_to_list
from ux_overhaul.generation.client import (
    GenerationClient,
    GenerationOptions,
    GenerationResult,
    fetch_first_image,
)
from ux_overhaul.generation.escalation import run_attempts
from ux_overhaul.generation.images import to_data_url
from ux_overhaul.kernel.atomic_write import atomic_write_bytes_at
from ux_overhaul.kernel.errors import GenerationError, MissingInputError
from ux_overhaul.kernel.manifest import PhaseName
from ux_overhaul.kernel.paths import (
    get_propagated_screen_path,
    get_screen_backup_path,
    get_state_backup_path,
    get_state_image_path,
    resolve_project_path,
    to_project_relative,
)
from ux_overhaul.kernel.store import ManifestStore
from ux_overhaul.prompting.adjustments import (
    build_coherence_regeneration_prompt,
    coherence_escalation,
)
from ux_overhaul.propagation.report import (
    PropagatedScreen,
    PropagationReport,
    summarize_propagation,
    write_propagation_report,
)
from ux_overhaul.propagation.validation import validate_output
from ux_overhaul.states.report import (
    GeneratedState,
    StatesReport,
    group_states,
    summarize_states,
    write_states_report,
)

_LOGGER = logging.getLogger(__name__)

REGENERATION_STRENGTH = 0.50

Scored = list[tuple[CoherenceSubject, DeviationScore]]


def state_subject_id(screen_id: str, state: StateType | str) -> str:
    """Subject id for a state variant."""
    return f"{screen_id}-{StateType(state).value}"


class CoherenceEngine:
    """Runs the coherence phase for one project."""

    def __init__(
        self,
        project_root: Path,
        store: ManifestStore,
        client: GenerationClient,
        *,
        propagation: PropagationReport,
        style: StyleConfig,
        app: AppUnderstanding | None = None,
        states: StatesReport | None = None,
        settings: CoherenceSettings | None = None,
        generation: GenerationSettings | None = None,
        scorer: DeviationScorer | None = None,
    ) -> None:
        """Create engine.

        Args:
            project_root: Project directory.
            store: Manifest store (single writer).
            client: Image generation backend used for regeneration.
            propagation: Propagation report; records are updated in place.
            style: Compiled style configuration with validated anchors.
            app: Captured app, used for named flows.
            states: States report, scored when include_states is set.
            settings: Pass bound, threshold, regeneration attempts.
            generation: Output resolution/format settings.
            scorer: Deviation scorer; defaults to the metadata heuristic.
        """
        self.project_root = project_root
        self.store = store
        self.client = client
        self.propagation = propagation
        self.style = style
        self.app = app
        self.states = states
        self.settings = settings or CoherenceSettings()
        self.generation = generation or GenerationSettings()
        self.scorer: DeviationScorer = scorer or HeuristicDeviationScorer()
        self._screens: dict[str, PropagatedScreen] = {}
        self._states: dict[str, GeneratedState] = {}
        self._references: list[str] = []
        self._anchor_paths: list[Path] = []
        self.regenerations: list[RegenerationRecord] = []

    def run(self) -> CoherenceReport:
        """Run the bounded convergence loop and write the coherence report.

        Raises:
            MissingInputError: No validated anchors or no propagated screens.
            PhasePreconditionError: Earlier phases are not done.
        """
        anchors = validated_anchors(self.style.anchors)
        if not anchors:
            raise MissingInputError("No validated anchors available for coherence")
        if not self.propagation.screens:
            raise MissingInputError("No propagated screens to validate")

        self.store.begin(PhaseName.COHERENCE)
        self._references = anchor_reference_urls(self.project_root, anchors)
        self._anchor_paths = [
            resolve_project_path(self.project_root, a.image_path) for a in anchors
        ]
        self._screens = {s.screen_id: s for s in self.propagation.screens}
        self._states = (
            {
                state_subject_id(s.screen_id, s.state_type): s
                for s in self.states.all_states()
            }
            if self.states is not None and self.settings.include_states
            else {}
        )
        subjects = self.build_subjects()
        _LOGGER.info(
            "Coherence check over %d subjects (threshold %d, max %d passes)",
            len(subjects),
            self.settings.threshold,
            self.settings.max_passes,
        )

        passes_run = 0
        converged = False
        while True:
            scored = self.score_all(subjects)
            overall = overall_coherence([result.score for _, result in scored])
            _LOGGER.info("Coherence after %d passes: %d%%", passes_run, overall)
            if overall >= self.settings.threshold:
                converged = True
                break
            if passes_run >= self.settings.max_passes:
                break
            must_regenerate = [
                o for o in detect_outliers(scored, self.project_root) if o.should_regenerate
            ]
            if not must_regenerate:
                break
            passes_run += 1
            by_id = {s.subject_id: s for s in subjects}
            for outlier in must_regenerate:
                self.regenerate(by_id[outlier.subject_id], outlier, passes_run)

        outliers = [] if converged else detect_outliers(scored, self.project_root)
        report = self._build_report(
            scored,
            outliers,
            overall=overall,
            passes_run=passes_run,
            converged=converged,
        )
        self._write_phase_reports()
        write_coherence_report(self.project_root, report)
        self.store.complete(PhaseName.COHERENCE)
        return report

    def build_subjects(self) -> list[CoherenceSubject]:
        """Screens in report order, then their state variants."""
        subjects = [self._screen_subject(record) for record in self._screens.values()]
        subjects.extend(
            self._state_subject(subject_id, record)
            for subject_id, record in self._states.items()
        )
        return subjects

    def score_all(self, subjects: list[CoherenceSubject]) -> Scored:
        """Score every subject against the anchors."""
        return [
            (subject, score_subject(self.scorer, subject, self._anchor_paths))
            for subject in subjects
        ]

    def regenerate(
        self, subject: CoherenceSubject, outlier: OutlierInfo, pass_number: int
    ) -> RegenerationRecord:
        """Regenerate one outlier with bounded attempts.

        The new image is produced next to the current one and only replaces it
        (after a backup) once it passes output validation.
        """
        reason = ", ".join(outlier.reasons) or "outlier"
        if not subject.source.is_file():
            _LOGGER.warning(
                "%s: regeneration source missing at %s", subject.subject_id, subject.source
            )
            return self._record(
                RegenerationRecord(
                    subject_id=subject.subject_id,
                    pass_number=pass_number,
                    reason=reason,
                    success=False,
                    attempts=0,
                    cost=0.0,
                )
            )

        description = (
            f"{subject.name} screen"
            if subject.state_type is None
            else f"{subject.name} screen in {subject.state_type.value} state"
        )
        prompt = build_coherence_regeneration_prompt(
            screen_description=description,
            style=self.style.style_direction,
            colors=palette_to_list(self.style.color_palette),
            recommendations=outlier.recommendations,
        )
        dest = subject.image
        candidate = dest.with_name(f"{dest.stem}-candidate{dest.suffix}")
        base_url = to_data_url(subject.source)
        options = GenerationOptions(
            resolution=self.generation.resolution,
            output_format=self.generation.output_format,
        )

        def call(text: str) -> GenerationResult:
            result = self.client.edit(
                text, base_url, self._references, REGENERATION_STRENGTH, options
            )
            atomic_write_bytes_at(
                candidate, fetch_first_image(self.client, result), "regenerate"
            )
            check = validate_output(candidate)
            if not check.valid:
                raise GenerationError(
                    f"Output failed validation ({check.score}%)",
                    retryable=True,
                    cost=result.cost,
                )
            return result

        outcome = run_attempts(
            call,
            prompt,
            max_attempts=self.settings.max_regeneration_attempts,
            escalate=coherence_escalation(outlier.reasons),
            label=f"regenerate {subject.subject_id}",
        )
        backup_path: str | None = None
        if outcome.success:
            backup_path = self._replace_image(subject, candidate, pass_number)
            self._apply_success(subject, outcome.attempts, outcome.cost, pass_number)
        else:
            _LOGGER.warning(
                "%s: regeneration failed after %d attempts: %s",
                subject.subject_id,
                outcome.attempts,
                outcome.error,
            )
        candidate.unlink(missing_ok=True)
        return self._record(
            RegenerationRecord(
                subject_id=subject.subject_id,
                pass_number=pass_number,
                reason=reason,
                success=outcome.success,
                attempts=outcome.attempts,
                cost=outcome.cost,
                backup_path=backup_path,
            )
        )

    def _record(self, record: RegenerationRecord) -> RegenerationRecord:
        self.regenerations.append(record)
        return record

    def _screen_subject(self, record: PropagatedScreen) -> CoherenceSubject:
        image = (
            resolve_project_path(self.project_root, record.propagated_path)
            if record.propagated_path
            else get_propagated_screen_path(self.project_root, record.screen_id)
        )
        return CoherenceSubject(
            subject_id=record.screen_id,
            name=record.screen_name,
            kind="screen",
            screen_id=record.screen_id,
            screen_type=record.screen_type,
            image=image,
            source=resolve_project_path(self.project_root, record.original_path),
            success=record.success,
            attempts=record.attempts,
            strength_used=record.strength_used,
        )

    def _state_subject(self, subject_id: str, record: GeneratedState) -> CoherenceSubject:
        parent = self._screens.get(record.screen_id)
        screen_type = parent.screen_type if parent is not None else ScreenType.GENERIC
        image = (
            resolve_project_path(self.project_root, record.state_path)
            if record.state_path
            else get_state_image_path(self.project_root, record.screen_id, record.state_type)
        )
        return CoherenceSubject(
            subject_id=subject_id,
            name=record.screen_name,
            kind="state",
            screen_id=record.screen_id,
            screen_type=screen_type,
            image=image,
            source=resolve_project_path(self.project_root, record.original_propagated_path),
            success=record.success,
            attempts=record.attempts,
            strength_used=record.strength_used,
            state_type=record.state_type,
        )

    def _replace_image(
        self, subject: CoherenceSubject, candidate: Path, pass_number: int
    ) -> str | None:
        backup_path: str | None = None
        if subject.image.is_file():
            backup = (
                get_screen_backup_path(self.project_root, subject.screen_id, pass_number)
                if subject.state_type is None
                else get_state_backup_path(
                    self.project_root, subject.screen_id, subject.state_type, pass_number
                )
            )
            atomic_write_bytes_at(backup, subject.image.read_bytes(), "backup")
            backup_path = to_project_relative(self.project_root, backup)
        atomic_write_bytes_at(subject.image, candidate.read_bytes(), "regenerated")
        return backup_path

    def _apply_success(
        self, subject: CoherenceSubject, attempts: int, cost: float, pass_number: int
    ) -> None:
        relative = to_project_relative(self.project_root, subject.image)
        if subject.state_type is None:
            record = self._screens[subject.subject_id]
            self._screens[subject.subject_id] = record.model_copy(
                update={
                    "success": True,
                    "propagated_path": relative,
                    "attempts": record.attempts + attempts,
                    "cost": round(record.cost + cost, 4),
                    "error": None,
                }
            )
        else:
            state = self._states[subject.subject_id]
            self._states[subject.subject_id] = state.model_copy(
                update={
                    "success": True,
                    "state_path": relative,
                    "attempts": state.attempts + attempts,
                    "cost": round(state.cost + cost, 4),
                    "error": None,
                }
            )
        # scoring describes the new image, not lifetime totals
        subject.success = True
        subject.attempts = attempts
        subject.strength_used = REGENERATION_STRENGTH
        subject.regenerated_in.append(pass_number)
        _LOGGER.info("%s regenerated in pass %d", subject.subject_id, pass_number)

    def _write_phase_reports(self) -> None:
        screens = list(self._screens.values())
        self.propagation = self.propagation.model_copy(
            update={"screens": screens, "summary": summarize_propagation(screens)}
        )
        write_propagation_report(self.project_root, self.propagation)
        if self.states is None or not self._states:
            return
        grouped = []
        for screen in self.states.screens:
            states = [
                self._states.get(state_subject_id(s.screen_id, s.state_type), s)
                for s in screen.states
            ]
            grouped.append(group_states(screen.screen_id, screen.screen_name, states))
        self.states = self.states.model_copy(
            update={"screens": grouped, "summary": summarize_states(grouped)}
        )
        write_states_report(self.project_root, self.states)

    def _build_report(
        self,
        scored: Scored,
        outliers: list[OutlierInfo],
        *,
        overall: int,
        passes_run: int,
        converged: bool,
    ) -> CoherenceReport:
        screens = [
            ScreenCoherence(
                subject_id=subject.subject_id,
                name=subject.name,
                kind=subject.kind,
                coherence_score=100 - result.score,
                passed=100 - result.score >= SCREEN_PASS_SCORE,
                reasons=result.reasons,
            )
            for subject, result in scored
        ]
        flows = analyze_flows(
            self.app.flows if self.app is not None else [],
            list(self._screens.values()),
        )
        regenerated = {r.subject_id for r in self.regenerations if r.success}
        summary = CoherenceSummary(
            total_screens=len(screens),
            coherent_count=sum(1 for s in screens if s.passed),
            outlier_count=len(outliers),
            regenerated_count=len(regenerated),
            overall_coherence_score=overall,
            pass_number=passes_run,
            total_passes=self.settings.max_passes,
            total_regeneration_cost=round(sum(r.cost for r in self.regenerations), 4),
        )
        return CoherenceReport(
            validated_at=datetime.now(UTC).isoformat(),
            app_name=self.propagation.app_name,
            viewport=self.style.viewport.value,
            pass_number=passes_run,
            max_passes=self.settings.max_passes,
            converged=converged,
            screens=screens,
            outliers=outliers,
            regenerations=list(self.regenerations),
            flows=flows,
            summary=summary,
        )
