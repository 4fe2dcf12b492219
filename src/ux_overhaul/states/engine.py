"""State-variant engine: loading/empty/error/success versions of each screen."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

from ux_overhaul.anchoring.slots import anchor_reference_urls, validated_anchors
from ux_overhaul.config.settings import GenerationSettings, StatesSettings
from ux_overhaul.design.models import StateType, StyleConfig
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
from ux_overhaul.kernel.manifest import PhaseName
from ux_overhaul.kernel.paths import (
    get_state_image_path,
    resolve_project_path,
    to_project_relative,
)
from ux_overhaul.kernel.store import ManifestStore
from ux_overhaul.prompting.adjustments import state_escalation
from ux_overhaul.prompting.builders import state_prompt
from ux_overhaul.propagation.report import PropagatedScreen, PropagationReport
from ux_overhaul.propagation.validation import validate_output
from ux_overhaul.states.report import (
    GeneratedState,
    ScreenStates,
    StatesProgress,
    StatesReport,
    group_states,
    read_states_progress,
    summarize_states,
    write_states_progress,
    write_states_report,
)

_LOGGER = logging.getLogger(__name__)

STATE_STRENGTHS: dict[StateType, float] = {
    StateType.LOADING: 0.50,
    StateType.EMPTY: 0.52,
    StateType.ERROR: 0.52,
    StateType.SUCCESS: 0.55,
}


def build_state_prompt(
    screen_name: str,
    state: StateType,
    *,
    style: str,
    colors: list[str],
    reference_count: int,
) -> str:
    """Prompt for one state variant of one screen."""
    prompt = state_prompt(f"{style} {screen_name} screen", state)
    if reference_count > 0:
        prompt += f". Match style exactly from reference images 1-{min(reference_count, 14)}"
    if colors:
        prompt += f". Use colors: {', '.join(colors[:5])}"
    return prompt


class StateEngine:
    """Runs the state-variant phase for one project."""

    def __init__(
        self,
        project_root: Path,
        store: ManifestStore,
        client: GenerationClient,
        *,
        propagation: PropagationReport,
        style: StyleConfig,
        settings: StatesSettings | None = None,
        generation: GenerationSettings | None = None,
    ) -> None:
        """Create engine.

        Args:
            project_root: Project directory.
            store: Manifest store (single writer).
            client: Image generation backend.
            propagation: Propagation report; only successful screens are used.
            style: Compiled style configuration with validated anchors.
            settings: State types, batch size, attempts, workers.
            generation: Output resolution/format settings.
        """
        self.project_root = project_root
        self.store = store
        self.client = client
        self.propagation = propagation
        self.style = style
        self.settings = settings or StatesSettings()
        self.generation = generation or GenerationSettings()
        self._references: list[str] = []

    def run(self) -> StatesReport:
        """Generate all state variants, resuming from the batch cursor.

        Raises:
            MissingInputError: No successful screens or no validated anchors.
        """
        screens = [s for s in self.propagation.screens if s.success]
        if not screens:
            raise MissingInputError("No successfully propagated screens")
        anchors = validated_anchors(self.style.anchors)
        if not anchors:
            raise MissingInputError("No validated anchors available for state variants")

        self.store.begin(PhaseName.STATES)
        self._references = anchor_reference_urls(self.project_root, anchors)
        start_batch = self.store.batch_cursor(PhaseName.STATES)
        progress = self._committed_progress(screens, start_batch)
        state_types = list(self.settings.state_types)
        _LOGGER.info(
            "Generating %d state types for %d screens from batch %d",
            len(state_types),
            len(screens),
            start_batch,
        )

        def checkpoint(
            batch_number: int,
            batch: list[PropagatedScreen],
            results: list[ScreenStates],
        ) -> None:
            progress.screens.extend(results)
            write_states_progress(self.project_root, progress)
            self.store.advance_batch(PhaseName.STATES, len(batch) * len(state_types))
            _LOGGER.info("States batch %d committed", batch_number)

        run_checkpointed_batches(
            screens,
            batch_size=self.settings.batch_size,
            start_batch=start_batch,
            process_item=self.generate_screen_states,
            on_batch_done=checkpoint,
            max_workers=self.settings.max_workers,
            thread_name_prefix="ux-states",
        )

        report = StatesReport(
            generated_at=datetime.now(UTC).isoformat(),
            app_name=self.propagation.app_name,
            viewport=self.style.viewport.value,
            batch_size=self.settings.batch_size,
            screens=progress.screens,
            summary=summarize_states(progress.screens),
        )
        write_states_report(self.project_root, report)
        self.store.complete(PhaseName.STATES)
        return report

    def _committed_progress(
        self, screens: list[PropagatedScreen], start_batch: int
    ) -> StatesProgress:
        """Records of committed batches only; uncommitted leftovers are dropped."""
        committed = {
            s.screen_id
            for s in committed_items(
                screens, batch_size=self.settings.batch_size, start_batch=start_batch
            )
        }
        if not committed:
            return StatesProgress()
        stored = read_states_progress(self.project_root).screens
        kept = [r for r in stored if r.screen_id in committed]
        if len(kept) != len(stored):
            _LOGGER.warning(
                "Discarding %d screens from uncommitted states batch %d",
                len(stored) - len(kept),
                start_batch,
            )
        return StatesProgress(screens=kept)

    def generate_screen_states(self, screen: PropagatedScreen) -> ScreenStates:
        """Every configured state variant for one screen."""
        states = [
            self.generate_state(screen, StateType(state))
            for state in self.settings.state_types
        ]
        return group_states(screen.screen_id, screen.screen_name, states)

    def generate_state(self, screen: PropagatedScreen, state: StateType) -> GeneratedState:
        """One state variant with bounded retries; failures are recorded."""
        strength = STATE_STRENGTHS[state]
        record = GeneratedState(
            screen_id=screen.screen_id,
            screen_name=screen.screen_name,
            state_type=state,
            original_propagated_path=screen.propagated_path,
            success=False,
            attempts=0,
            cost=0.0,
            strength_used=strength,
        )
        source = resolve_project_path(self.project_root, screen.propagated_path)
        if not source.is_file():
            return record.model_copy(
                update={"error": f"Propagated screen not found: {source}"}
            )
        prompt = build_state_prompt(
            screen.screen_name,
            state,
            style=self.style.style_direction,
            colors=palette_to_list(self.style.color_palette),
            reference_count=len(self._references),
        )
        dest = get_state_image_path(self.project_root, screen.screen_id, state)
        base_url = to_data_url(source)
        options = GenerationOptions(
            resolution=self.generation.resolution,
            output_format=self.generation.output_format,
        )

        def call(text: str) -> GenerationResult:
            result = self.client.edit(text, base_url, self._references, strength, options)
            atomic_write_bytes_at(dest, fetch_first_image(self.client, result), "state")
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
            escalate=state_escalation(state),
            label=f"{screen.screen_id}/{state}",
        )
        return record.model_copy(
            update={
                "success": outcome.success,
                "attempts": outcome.attempts,
                "cost": outcome.cost,
                "state_path": (
                    to_project_relative(self.project_root, dest) if outcome.success else ""
                ),
                "error": outcome.error if not outcome.success else None,
            }
        )
