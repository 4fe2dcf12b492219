"""Propagation engine: apply the anchor style to every captured screen.

Screens are processed in fixed-size batches. After each batch the records
are written to the progress file and then the manifest batch cursor is
advanced, so a restart resumes at the first uncommitted batch. Records
written for a batch whose cursor advance never landed are dropped on resume.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ux_overhaul.anchoring.slots import anchor_reference_urls, validated_anchors
from ux_overhaul.config.settings import GenerationSettings, PropagationSettings
from ux_overhaul.design.models import (
    AppUnderstanding,
    CapturedScreen,
    ImprovementPlan,
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
from ux_overhaul.kernel.batches import committed_items, run_checkpointed_batches
from ux_overhaul.kernel.errors import GenerationError, MissingInputError
from ux_overhaul.kernel.manifest import PhaseName, set_total_screens
from ux_overhaul.kernel.paths import (
    get_propagated_screen_path,
    resolve_project_path,
    to_project_relative,
)
from ux_overhaul.kernel.store import ManifestStore
from ux_overhaul.prompting.adjustments import propagation_escalation
from ux_overhaul.prompting.builders import (
    build_screen_prompt_with_audit,
    combine_improvements,
    reference_instructions,
)
from ux_overhaul.propagation.classifier import classify_screen, strength_for
from ux_overhaul.propagation.report import (
    PropagatedScreen,
    PropagationProgress,
    PropagationReport,
    read_progress,
    summarize_propagation,
    write_progress,
    write_propagation_report,
)
from ux_overhaul.propagation.validation import validate_output

_LOGGER = logging.getLogger(__name__)


def build_propagation_prompt(
    screen: CapturedScreen,
    *,
    style: StyleConfig,
    plan: ImprovementPlan,
    reference_count: int,
) -> str:
    """Audit-injected redesign prompt for one screen."""
    screen_type = classify_screen(screen.name, screen.screen_type)
    improvements = combine_improvements(
        plan.global_improvements, plan.for_screen(screen.id)
    )
    prompt = build_screen_prompt_with_audit(
        viewport=style.viewport,
        screen_type=screen_type,
        style=style.style_direction,
        colors=palette_to_list(style.color_palette),
        improvements=improvements,
        severity_focus="high",
    )
    return prompt + reference_instructions(reference_count)


class PropagationEngine:
    """Runs the propagation phase for one project."""

    def __init__(
        self,
        project_root: Path,
        store: ManifestStore,
        client: GenerationClient,
        *,
        app: AppUnderstanding,
        style: StyleConfig,
        plan: ImprovementPlan | None = None,
        settings: PropagationSettings | None = None,
        generation: GenerationSettings | None = None,
    ) -> None:
        """Create engine.

        Args:
            project_root: Project directory.
            store: Manifest store (single writer).
            client: Image generation backend.
            app: Captured screens.
            style: Compiled style configuration with validated anchors.
            plan: Audit improvement plan (empty when audit was skipped).
            settings: Batch size, attempts, strength override, workers.
            generation: Output resolution/format settings.
        """
        self.project_root = project_root
        self.store = store
        self.client = client
        self.app = app
        self.style = style
        self.plan = plan or ImprovementPlan()
        self.settings = settings or PropagationSettings()
        self.generation = generation or GenerationSettings()
        self._references: list[str] = []

    def run(self) -> PropagationReport:
        """Propagate all screens, resuming from the manifest batch cursor.

        Raises:
            MissingInputError: No validated anchors or no captured screens.
            PhasePreconditionError: Earlier phases are not done.
        """
        anchors = validated_anchors(self.style.anchors)
        if not anchors:
            raise MissingInputError("No validated anchors available for propagation")
        if not self.app.screens:
            raise MissingInputError("No captured screens to propagate")

        self.store.begin(PhaseName.PROPAGATION)
        if self.store.manifest.total_screens != len(self.app.screens):
            self.store.update(
                set_total_screens(self.store.manifest, len(self.app.screens))
            )
        self._references = anchor_reference_urls(self.project_root, anchors)

        start_batch = self.store.batch_cursor(PhaseName.PROPAGATION)
        progress = self._committed_progress(start_batch)
        _LOGGER.info(
            "Propagating %d screens from batch %d (batch size %d)",
            len(self.app.screens),
            start_batch,
            self.settings.batch_size,
        )

        def checkpoint(
            batch_number: int,
            batch: list[CapturedScreen],
            results: list[PropagatedScreen],
        ) -> None:
            progress.screens.extend(results)
            write_progress(self.project_root, progress)
            self.store.advance_batch(PhaseName.PROPAGATION, len(batch))
            _LOGGER.info(
                "Batch %d committed: %d/%d succeeded",
                batch_number,
                sum(1 for r in results if r.success),
                len(results),
            )

        run_checkpointed_batches(
            self.app.screens,
            batch_size=self.settings.batch_size,
            start_batch=start_batch,
            process_item=self.propagate_screen,
            on_batch_done=checkpoint,
            max_workers=self.settings.max_workers,
            thread_name_prefix="ux-propagate",
        )

        report = PropagationReport(
            propagated_at=datetime.now(UTC).isoformat(),
            app_name=self.app.app_name,
            viewport=self.style.viewport.value,
            batch_size=self.settings.batch_size,
            screens=progress.screens,
            summary=summarize_propagation(progress.screens),
        )
        write_propagation_report(self.project_root, report)
        self.store.complete(PhaseName.PROPAGATION)
        return report

    def _committed_progress(self, start_batch: int) -> PropagationProgress:
        """Records of committed batches only; uncommitted leftovers are dropped."""
        committed = {
            s.id
            for s in committed_items(
                self.app.screens,
                batch_size=self.settings.batch_size,
                start_batch=start_batch,
            )
        }
        if not committed:
            return PropagationProgress()
        stored = read_progress(self.project_root).screens
        kept = [r for r in stored if r.screen_id in committed]
        if len(kept) != len(stored):
            _LOGGER.warning(
                "Discarding %d records from uncommitted batch %d",
                len(stored) - len(kept),
                start_batch,
            )
        return PropagationProgress(screens=kept)

    def propagate_screen(self, screen: CapturedScreen) -> PropagatedScreen:
        """Propagate one screen with bounded retries; failures are recorded."""
        screen_type = classify_screen(screen.name, screen.screen_type)
        strength = strength_for(screen_type, self.settings.strength_override)
        improvements = combine_improvements(
            self.plan.global_improvements, self.plan.for_screen(screen.id)
        )
        record = PropagatedScreen(
            screen_id=screen.id,
            screen_name=screen.name,
            screen_type=screen_type,
            original_path=screen.screenshot_path,
            success=False,
            attempts=0,
            cost=0.0,
            strength_used=strength,
            improvements_applied=improvements,
        )
        original = resolve_project_path(self.project_root, screen.screenshot_path)
        if not original.is_file():
            _LOGGER.warning("Screen %s: screenshot missing at %s", screen.id, original)
            return record.model_copy(update={"error": f"Screenshot not found: {original}"})

        prompt = build_propagation_prompt(
            screen,
            style=self.style,
            plan=self.plan,
            reference_count=len(self._references),
        )
        dest = get_propagated_screen_path(self.project_root, screen.id)
        base_url = to_data_url(original)
        options = GenerationOptions(
            resolution=self.generation.resolution,
            output_format=self.generation.output_format,
        )

        def call(text: str) -> GenerationResult:
            result = self.client.edit(text, base_url, self._references, strength, options)
            atomic_write_bytes_at(dest, fetch_first_image(self.client, result), "screen")
            check = validate_output(dest)
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
            max_attempts=self.settings.max_attempts,
            escalate=propagation_escalation,
            label=f"screen {screen.id}",
        )
        return record.model_copy(
            update={
                "success": outcome.success,
                "attempts": outcome.attempts,
                "cost": outcome.cost,
                "propagated_path": (
                    to_project_relative(self.project_root, dest) if outcome.success else ""
                ),
                "error": outcome.error if not outcome.success else None,
            }
        )
