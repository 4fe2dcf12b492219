"""Anchor engine: progressive-reference generation of the 14 anchor slots.

Each slot is generated with every validated earlier slot as a reference,
pre-validated automatically, then held at a human gate. The engine returns
to its caller whenever a gate opens; resolve_gate resumes it.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from ux_overhaul.anchoring.gates import (
    GateOption,
    GateRequest,
    GateResponse,
    GateStatus,
    GateType,
    ProcessedResponse,
    create_anchor_approval_gate,
    create_hero_selection_gate,
    process_user_response,
    resolve_request,
)
from ux_overhaul.anchoring.pre_validation import (
    PreValidationResult,
    pre_validate_anchor,
    should_regenerate,
)
from ux_overhaul.anchoring.session import (
    AnchoringSession,
    new_session,
    read_session,
    write_session,
)
from ux_overhaul.anchoring.slots import (
    STRENGTH_SETTINGS,
    TOTAL_SLOTS,
    AnchorSlot,
    generation_viewport,
    next_unvalidated_slot,
    reference_set,
    slot_definition,
    validated_count,
)
from ux_overhaul.config.settings import AnchoringSettings, GenerationSettings
from ux_overhaul.design.models import (
    AnchorType,
    AppUnderstanding,
    StyleConfig,
    Viewport,
)
from ux_overhaul.design.style import (
    compile_style_config,
    default_typography,
    merge_color_palette,
    palette_to_list,
    resolve_palette,
)
from ux_overhaul.generation.client import (
    GenerationClient,
    GenerationOptions,
    GenerationResult,
    fetch_first_image,
)
from ux_overhaul.generation.escalation import AttemptOutcome, PromptTransform, run_attempts
from ux_overhaul.generation.images import aspect_ratio_for_viewport, to_data_url
from ux_overhaul.kernel.atomic_write import atomic_write_bytes_at, atomic_write_json_at
from ux_overhaul.kernel.errors import (
    AnchoringIncompleteError,
    AnchorValidationError,
    GateError,
    GenerationError,
    MissingInputError,
)
from ux_overhaul.kernel.manifest import PendingGate, PhaseName, set_style_config
from ux_overhaul.kernel.paths import (
    get_hero_variant_path,
    get_style_config_path,
    resolve_project_path,
    to_project_relative,
)
from ux_overhaul.kernel.store import ManifestStore
from ux_overhaul.prompting.adjustments import anchor_escalation
from ux_overhaul.prompting.builders import (
    hero_prompt,
    iconography_prompt,
    reference_instructions,
    state_prompt,
    typography_prompt,
)

_LOGGER = logging.getLogger(__name__)


class AnchoringProgress(BaseModel):
    """Where anchoring stands after advance/run."""

    status: Literal["awaiting_gate", "ready", "complete"]
    validated: int
    total: int = TOTAL_SLOTS
    gate: GateRequest | None = None


def build_anchor_prompt(
    definition: AnchorSlot,
    *,
    style: str,
    viewport: Viewport,
    app_type: str,
    colors: list[str],
    reference_count: int,
    feedback: list[str] | None = None,
) -> str:
    """Prompt for one anchor slot.

    Args:
        definition: Slot being generated.
        style: Style direction.
        viewport: Project viewport.
        app_type: Short application description for the hero.
        colors: Palette colors in prompt order.
        reference_count: Number of reference images attached.
        feedback: Accumulated reviewer feedback for this slot.

    Returns:
        Prompt text.
    """
    refs = reference_instructions(reference_count)
    if definition.type == AnchorType.HERO:
        prompt = hero_prompt(app_type, style, viewport) + refs
    elif definition.type == AnchorType.SCREEN:
        prompt = f"{style} {definition.description}{refs}. High fidelity UI design"
    elif definition.type == AnchorType.TYPOGRAPHY:
        font = default_typography(style).font_family
        prompt = typography_prompt(font, style) + refs
    elif definition.type == AnchorType.STATE and definition.state is not None:
        prompt = state_prompt(definition.description, definition.state) + refs
    else:
        prompt = iconography_prompt(style, colors) + refs
    if colors:
        prompt += f". Use exact colors: {', '.join(colors[:5])}"
    for item in feedback or []:
        prompt += f" User feedback: {item}."
    return prompt


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AnchorEngine:
    """Drives the anchoring phase for one project."""

    def __init__(
        self,
        project_root: Path,
        store: ManifestStore,
        client: GenerationClient,
        *,
        settings: AnchoringSettings | None = None,
        generation: GenerationSettings | None = None,
        app: AppUnderstanding | None = None,
    ) -> None:
        """Create engine.

        Args:
            project_root: Project directory.
            store: Manifest store (single writer).
            client: Image generation backend.
            settings: Anchoring settings.
            generation: Output resolution/format settings.
            app: Imported capture data; supplies base images for slots 1-6.
        """
        self.project_root = project_root
        self.store = store
        self.client = client
        self.settings = settings or AnchoringSettings()
        self.generation = generation or GenerationSettings()
        self.app = app
        self._session: AnchoringSession | None = None

    @property
    def viewport(self) -> Viewport:
        """Project viewport."""
        return Viewport(self.store.manifest.viewport)

    @property
    def session(self) -> AnchoringSession:
        """Current session (loaded lazily)."""
        if self._session is None:
            self._session = read_session(self.project_root)
        if self._session is None:
            raise MissingInputError("anchoring has not been started")
        return self._session

    def start(self) -> AnchoringSession:
        """Enter the anchoring phase and load or create the session."""
        self.store.begin(PhaseName.ANCHORING)
        session = read_session(self.project_root)
        if session is None:
            style = self.settings.style_direction
            session = new_session(
                self.project_root,
                style,
                resolve_palette(style, self.settings.color_palette),
            )
            write_session(self.project_root, session)
        self._session = session
        return session

    def advance(self) -> AnchoringProgress:
        """Generate until a gate opens or every slot is validated."""
        session = self.start()
        while True:
            gate = session.pending_gate
            if gate is not None:
                if not self.settings.auto_approve:
                    return AnchoringProgress(
                        status="awaiting_gate",
                        validated=validated_count(session.anchors),
                        gate=gate,
                    )
                self.resolve_gate(gate.gate_id, self._auto_response(gate))
                continue
            slot = next_unvalidated_slot(session.anchors)
            if slot is None:
                return AnchoringProgress(
                    status="ready", validated=validated_count(session.anchors)
                )
            if slot == 1:
                self._open_gate(
                    create_hero_selection_gate(
                        self._generate_hero_variants(), session.style_direction
                    )
                )
            else:
                result = self._generate_slot(slot)
                anchor = session.anchor(slot)
                self._open_gate(
                    create_anchor_approval_gate(anchor, anchor.image_path, result.score)
                )

    def run(self) -> AnchoringProgress:
        """Advance and, once all slots are validated, complete the phase."""
        progress = self.advance()
        if progress.status == "ready":
            self.complete()
            return AnchoringProgress(status="complete", validated=TOTAL_SLOTS)
        return progress

    def resolve_gate(self, gate_id: str, response: GateResponse) -> ProcessedResponse:
        """Resume from a pending gate with the user's response.

        Raises:
            GateError: If gate_id is not the pending gate, or the selected
                hero option does not exist.
        """
        session = self.session
        gate = session.pending_gate
        if gate is None or gate.gate_id != gate_id:
            raise GateError(f"No pending gate with id {gate_id}", gate_id=gate_id)
        decision = process_user_response(gate, response)
        resolved = resolve_request(gate, response, decision)
        if resolved.status == GateStatus.PENDING:
            if response.selected_index is not None:
                raise GateError(
                    f"No option {response.selected_index + 1} at gate {gate_id}",
                    gate_id=gate_id,
                )
            return decision

        slot = gate.slot or 1
        if response.custom_color_palette:
            session.palette = merge_color_palette(
                session.palette, response.custom_color_palette
            )
        if decision.proceed:
            anchor = session.anchor(slot)
            target = resolve_project_path(self.project_root, anchor.image_path)
            if gate.gate_type == GateType.HERO_SELECTION and decision.selected_path:
                chosen = resolve_project_path(self.project_root, decision.selected_path)
                atomic_write_bytes_at(target, chosen.read_bytes(), "anchor")
            session.replace_anchor(
                anchor.model_copy(update={"validated": True, "validated_at": _now_iso()})
            )
            session.feedback.pop(slot, None)
            _LOGGER.info("Anchor slot %d validated", slot)
        else:
            session.feedback.setdefault(slot, []).extend(decision.adjustments)
            _LOGGER.info("Anchor slot %d sent back for regeneration", slot)

        session.gate_history.append(resolved)
        session.pending_gate = None
        write_session(self.project_root, session)
        self.store.clear_pending_gate()
        self.store.set_fields(
            PhaseName.ANCHORING, anchors_generated=validated_count(session.anchors)
        )
        return decision

    def regenerate_anchor(self, slot: int, feedback: str | None = None) -> None:
        """Reset a slot so the next advance regenerates it."""
        session = self.session
        anchor = session.anchor(slot)
        session.replace_anchor(
            anchor.model_copy(update={"validated": False, "validated_at": None})
        )
        if feedback:
            session.feedback.setdefault(slot, []).append(feedback)
        write_session(self.project_root, session)
        self.store.set_fields(
            PhaseName.ANCHORING, anchors_generated=validated_count(session.anchors)
        )
        _LOGGER.info("Anchor slot %d reset for regeneration", slot)

    def complete(self) -> StyleConfig:
        """Write style_config.json and mark anchoring complete.

        Raises:
            AnchoringIncompleteError: Fewer than 14 anchors are validated.
                Nothing is written in that case.
        """
        session = self.session
        count = validated_count(session.anchors)
        if count < TOTAL_SLOTS:
            raise AnchoringIncompleteError(count, TOTAL_SLOTS)
        style_config = compile_style_config(
            style_direction=session.style_direction,
            viewport=self.viewport,
            palette=session.palette,
            anchors=sorted(session.anchors, key=lambda a: a.slot),
        )
        atomic_write_json_at(
            get_style_config_path(self.project_root),
            style_config.to_file_dict(),
            "style_config",
        )
        self.store.update(
            set_style_config(self.store.manifest, style_config.to_file_dict())
        )
        self.store.complete(PhaseName.ANCHORING, anchors_generated=TOTAL_SLOTS)
        return style_config

    def status_line(self) -> str:
        """One-line progress."""
        session = self.session
        return (
            f"{validated_count(session.anchors)}/{TOTAL_SLOTS} anchors validated, "
            f"style: {session.style_direction}"
        )

    def summary(self) -> str:
        """Multi-line per-slot listing."""
        session = self.session
        lines = [
            f"Anchoring: {self.status_line()}",
            f"Cost so far: ${session.total_cost:.2f}",
        ]
        for anchor in sorted(session.anchors, key=lambda a: a.slot):
            mark = "[ok]" if anchor.validated else "[ ]"
            lines.append(f"  {mark} {anchor.slot:2d}. {anchor.name} ({anchor.type})")
        if session.pending_gate is not None:
            lines.append(f"Awaiting gate: {session.pending_gate.gate_id}")
        return "\n".join(lines)

    def _auto_response(self, gate: GateRequest) -> GateResponse:
        if gate.gate_type == GateType.HERO_SELECTION:
            return GateResponse(selected_index=gate.options[0].index, accepted=True)
        return GateResponse(accepted=True)

    def _open_gate(self, gate: GateRequest) -> None:
        session = self.session
        session.pending_gate = gate
        write_session(self.project_root, session)
        self.store.set_pending_gate(
            PendingGate(
                gate_id=gate.gate_id,
                gate_type=gate.gate_type,
                slot=gate.slot,
                created_at=gate.created_at,
            )
        )
        _LOGGER.info("Gate %s opened: %s", gate.gate_id, gate.prompt)

    def _app_type(self) -> str:
        return self.app.app_name if self.app and self.app.app_name else "web"

    def _capture_path(self, index: int) -> Path | None:
        if self.app is None or index >= len(self.app.screens):
            return None
        path = resolve_project_path(
            self.project_root, self.app.screens[index].screenshot_path
        )
        return path if path.is_file() else None

    def _base_image(self, definition: AnchorSlot) -> Path | None:
        hero = resolve_project_path(
            self.project_root, self.session.anchor(1).image_path
        )
        if definition.type == AnchorType.SCREEN:
            return self._capture_path(definition.slot - 1) or hero
        if definition.type == AnchorType.STATE:
            return hero
        return None

    def _attempt(
        self,
        prompt: str,
        dest: Path,
        *,
        base_image: Path | None,
        references: list[str],
        strength: float,
        viewport: Viewport,
        label: str,
        escalate: PromptTransform | None = None,
    ) -> AttemptOutcome:
        options = GenerationOptions(
            aspect_ratio=aspect_ratio_for_viewport(viewport),
            resolution=self.generation.resolution,
            output_format=self.generation.output_format,
        )
        base_url = to_data_url(base_image) if base_image is not None else None

        def call(text: str) -> GenerationResult:
            if base_url is not None:
                result = self.client.edit(text, base_url, references, strength, options)
            else:
                result = self.client.generate(
                    text, options, reference_images=references
                )
            atomic_write_bytes_at(dest, fetch_first_image(self.client, result), "anchor")
            return result

        outcome = run_attempts(
            call,
            prompt,
            max_attempts=self.settings.max_attempts,
            escalate=escalate or anchor_escalation(),
            label=label,
        )
        self.session.total_cost += outcome.cost
        return outcome

    def _generate_hero_variants(self) -> list[GateOption]:
        session = self.session
        definition = slot_definition(1)
        colors = palette_to_list(session.palette)
        base = self._capture_path(0)
        for round_number in range(self.settings.max_regenerations + 1):
            options: list[GateOption] = []
            for i in range(1, self.settings.hero_variants + 1):
                dest = get_hero_variant_path(self.project_root, i)
                prompt = build_anchor_prompt(
                    definition,
                    style=session.style_direction,
                    viewport=self.viewport,
                    app_type=self._app_type(),
                    colors=[],
                    reference_count=0,
                )
                prompt += (
                    f". Variant {i} with unique interpretation of "
                    f"{session.style_direction}."
                )
                if colors:
                    prompt += f" Use exact colors: {', '.join(colors[:5])}"
                for item in session.feedback.get(1, []):
                    prompt += f" User feedback: {item}."
                outcome = self._attempt(
                    prompt,
                    dest,
                    base_image=base,
                    references=[],
                    strength=STRENGTH_SETTINGS[AnchorType.HERO],
                    viewport=self.viewport,
                    label=f"hero variant {i}",
                )
                if not outcome.success:
                    continue
                result = pre_validate_anchor(
                    dest, anchor_type=AnchorType.HERO, viewport=self.viewport
                )
                if result.valid:
                    options.append(
                        GateOption(
                            index=len(options),
                            image_path=to_project_relative(self.project_root, dest),
                            label=f"Variant {i}",
                            score=result.score,
                        )
                    )
            write_session(self.project_root, session)
            if options:
                return options
            _LOGGER.warning(
                "No hero variant passed pre-validation (round %d)", round_number + 1
            )
        raise AnchorValidationError(1, "No hero variant passed pre-validation")

    def _generate_slot(self, slot: int) -> PreValidationResult:
        session = self.session
        definition = slot_definition(slot)
        references = reference_set(session.anchors, slot)
        reference_urls = [
            to_data_url(resolve_project_path(self.project_root, a.image_path))
            for a in references
        ]
        colors = palette_to_list(session.palette)
        viewport = generation_viewport(definition.type, self.viewport)
        base_prompt = build_anchor_prompt(
            definition,
            style=session.style_direction,
            viewport=self.viewport,
            app_type=self._app_type(),
            colors=colors,
            reference_count=len(references),
            feedback=session.feedback.get(slot, []),
        )
        anchor = session.anchor(slot)
        dest = resolve_project_path(self.project_root, anchor.image_path)
        base_image = self._base_image(definition)
        prompt = base_prompt
        result: PreValidationResult | None = None
        failed_checks: list[str] = []
        for _ in range(self.settings.max_regenerations + 1):
            outcome = self._attempt(
                prompt,
                dest,
                base_image=base_image,
                references=reference_urls,
                strength=STRENGTH_SETTINGS[definition.type],
                viewport=viewport,
                label=f"anchor slot {slot}",
                escalate=anchor_escalation(failed_checks),
            )
            if not outcome.success:
                write_session(self.project_root, session)
                raise GenerationError(
                    f"Anchor slot {slot} generation failed after "
                    f"{outcome.attempts} attempts: {outcome.error}",
                    retryable=False,
                    cost=outcome.cost,
                )
            result = pre_validate_anchor(
                dest,
                anchor_type=definition.type,
                viewport=viewport,
                previous_anchors=[a for a in session.anchors if a.slot < slot],
                colors=colors,
            )
            if result.valid:
                session.replace_anchor(
                    anchor.model_copy(update={"prompt_used": outcome.prompt_used})
                )
                write_session(self.project_root, session)
                return result
            if not should_regenerate(result):
                break
            session.regenerations[slot] = session.regenerations.get(slot, 0) + 1
            failed_checks = [c.name for c in result.failed_checks()]
            prompt = f"{base_prompt}. {result.adjusted_prompt}"
            _LOGGER.info(
                "Anchor slot %d failed pre-validation (%d%%), regenerating",
                slot,
                result.score,
            )
        write_session(self.project_root, session)
        raise AnchorValidationError(
            slot,
            f"Anchor slot {slot} failed pre-validation"
            + (f" ({result.score}%)" if result is not None else ""),
            checks=[c.model_dump() for c in result.checks] if result else None,
            adjusted_prompt=result.adjusted_prompt if result else None,
        )
