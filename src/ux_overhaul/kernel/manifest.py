"""Project manifest schema, phase state machine and read/write. Layer 0.

All transition helpers are pure: they return an updated copy and never touch
disk. Persistence goes through write_manifest_atomic (or ManifestStore).
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ux_overhaul.kernel.atomic_write import atomic_write_json_at, read_json_file
from ux_overhaul.kernel.paths import get_manifest_path

TOTAL_ANCHOR_SLOTS = 14


class PhaseName(StrEnum):
    """Pipeline phases in their fixed execution order."""

    CAPTURE = "capture"
    AUDIT = "audit"
    ANCHORING = "anchoring"
    PROPAGATION = "propagation"
    STATES = "states"
    COHERENCE = "coherence"
    SPECS = "specs"


PHASE_ORDER: tuple[PhaseName, ...] = tuple(PhaseName)


class PhaseStatus(StrEnum):
    """Per-phase status values."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    SKIPPED = "skipped"
    FAILED = "failed"


DONE_STATUSES = frozenset({PhaseStatus.COMPLETE, PhaseStatus.SKIPPED})


class PhaseState(BaseModel):
    """Status, timestamps and progress counters for one phase."""

    status: PhaseStatus = PhaseStatus.PENDING
    started_at: str | None = None
    completed_at: str | None = None
    current_batch: int | None = None
    items_completed: int | None = None
    anchors_generated: int | None = None
    error: str | None = None


class PendingGate(BaseModel):
    """Human gate the pipeline is suspended on."""

    gate_id: str
    gate_type: str
    slot: int | None = None
    created_at: str


class PhaseCheck(BaseModel):
    """Result of can_start_phase."""

    can_start: bool
    reason: str | None = None


class ProjectManifest(BaseModel):
    """Authoritative project record. Written atomically under project lock."""

    project_id: str
    created_at: str  # ISO 8601
    updated_at: str
    app_url: str = ""
    viewport: str = "mobile"
    phases: dict[PhaseName, PhaseState] = Field(default_factory=dict)
    total_screens: int | None = None
    style_config: dict[str, Any] | None = None
    pending_gate: PendingGate | None = None

    def phase(self, name: PhaseName) -> PhaseState:
        """Return the state for phase name (pending when absent)."""
        return self.phases.get(name) or PhaseState()

    def to_file_dict(self) -> dict[str, Any]:
        """Serialize for JSON file."""
        return self.model_dump(mode="json")

    @classmethod
    def from_file_dict(cls, d: dict[str, Any]) -> ProjectManifest:
        """Deserialize from JSON file."""
        return cls.model_validate(d)


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def create_manifest(
    project_id: str,
    app_url: str = "",
    viewport: str = "mobile",
) -> ProjectManifest:
    """Build manifest for a new project (all phases pending)."""
    now = _now_iso()
    return ProjectManifest(
        project_id=project_id,
        created_at=now,
        updated_at=now,
        app_url=app_url,
        viewport=viewport,
        phases={name: PhaseState() for name in PHASE_ORDER},
    )


def can_start_phase(manifest: ProjectManifest, phase: PhaseName) -> PhaseCheck:
    """Check that every strictly earlier phase is complete or skipped.

    Args:
        manifest: Current manifest.
        phase: Phase that is about to start.

    Returns:
        PhaseCheck naming the first blocking predecessor when not startable.
    """
    index = PHASE_ORDER.index(PhaseName(phase))
    for previous in PHASE_ORDER[:index]:
        if manifest.phase(previous).status not in DONE_STATUSES:
            return PhaseCheck(
                can_start=False,
                reason=f'Phase "{previous}" must be completed first',
            )
    return PhaseCheck(can_start=True)


def transition_phase(
    manifest: ProjectManifest,
    phase: PhaseName,
    status: PhaseStatus,
    **extra: Any,
) -> ProjectManifest:
    """Return a copy with phase moved to status.

    started_at is stamped on the first entry into in_progress only;
    completed_at is stamped on complete and failed. Extra keyword fields
    (current_batch, items_completed, anchors_generated, error) are merged in.
    """
    updated = manifest.model_copy(deep=True)
    now = _now_iso()
    state = updated.phase(phase).model_copy(update=extra)
    state.status = status
    if status == PhaseStatus.IN_PROGRESS and state.started_at is None:
        state.started_at = now
    if status in (PhaseStatus.COMPLETE, PhaseStatus.FAILED):
        state.completed_at = now
    updated.phases[PhaseName(phase)] = state
    updated.updated_at = now
    return updated


def current_phase(manifest: ProjectManifest) -> PhaseName | None:
    """First phase not complete or skipped, or None when the project is done."""
    for name in PHASE_ORDER:
        if manifest.phase(name).status not in DONE_STATUSES:
            return name
    return None


def batch_cursor(manifest: ProjectManifest, phase: PhaseName) -> int:
    """1-based index of the next batch to run for phase."""
    return manifest.phase(phase).current_batch or 1


def advance_batch(
    manifest: ProjectManifest, phase: PhaseName, items: int
) -> ProjectManifest:
    """Return a copy with the batch cursor advanced and items counted."""
    state = manifest.phase(phase)
    return transition_phase(
        manifest,
        phase,
        state.status,
        current_batch=batch_cursor(manifest, phase) + 1,
        items_completed=(state.items_completed or 0) + items,
    )


def set_total_screens(manifest: ProjectManifest, total: int) -> ProjectManifest:
    """Return a copy recording the number of captured screens."""
    return manifest.model_copy(update={"total_screens": total, "updated_at": _now_iso()})


def set_style_config(
    manifest: ProjectManifest, style_config: dict[str, Any]
) -> ProjectManifest:
    """Return a copy holding a snapshot of the compiled style configuration."""
    return manifest.model_copy(
        update={"style_config": style_config, "updated_at": _now_iso()}
    )


def set_anchor_count(manifest: ProjectManifest, count: int) -> ProjectManifest:
    """Return a copy with anchoring.anchors_generated set to count."""
    state = manifest.phase(PhaseName.ANCHORING)
    return transition_phase(
        manifest, PhaseName.ANCHORING, state.status, anchors_generated=count
    )


def is_anchoring_complete(manifest: ProjectManifest) -> bool:
    """True when all 14 anchors have been generated."""
    count = manifest.phase(PhaseName.ANCHORING).anchors_generated or 0
    return count >= TOTAL_ANCHOR_SLOTS


def is_project_complete(manifest: ProjectManifest) -> bool:
    """True when every phase is complete or skipped."""
    return all(manifest.phase(name).status in DONE_STATUSES for name in PHASE_ORDER)


def progress_percentage(manifest: ProjectManifest) -> int:
    """Share of phases done, rounded half up to a whole percent."""
    done = sum(
        1 for name in PHASE_ORDER if manifest.phase(name).status in DONE_STATUSES
    )
    return math.floor(done / len(PHASE_ORDER) * 100 + 0.5)


_STATUS_ICONS = {
    PhaseStatus.PENDING: "[ ]",
    PhaseStatus.IN_PROGRESS: "[~]",
    PhaseStatus.COMPLETE: "[ok]",
    PhaseStatus.SKIPPED: "[-]",
    PhaseStatus.FAILED: "[x]",
}


def manifest_summary(manifest: ProjectManifest) -> str:
    """Multi-line human summary of the manifest."""
    lines = [
        f"Project: {manifest.project_id}",
        f"URL: {manifest.app_url or '-'}",
        f"Viewport: {manifest.viewport}",
        f"Progress: {progress_percentage(manifest)}%",
        "",
        "Phases:",
    ]
    for name in PHASE_ORDER:
        state = manifest.phase(name)
        line = f"  {_STATUS_ICONS[state.status]} {name.value.ljust(12)} {state.status}"
        if state.items_completed:
            line += f" ({state.items_completed} items)"
        if state.error:
            line += f" - {state.error}"
        lines.append(line)
    if manifest.pending_gate is not None:
        lines.append("")
        lines.append(f"Awaiting gate: {manifest.pending_gate.gate_id}")
    return "\n".join(lines)


def manifest_exists(project_root: Path) -> bool:
    """True if manifest.json exists under project_root."""
    return get_manifest_path(project_root).exists()


def read_manifest(project_root: Path) -> ProjectManifest:
    """Load and parse manifest.json. For resume/status."""
    path = get_manifest_path(project_root)
    if not path.exists():
        raise FileNotFoundError(f"Manifest not found: {path}")
    return ProjectManifest.from_file_dict(read_json_file(path))


def write_manifest_atomic(project_root: Path, manifest: ProjectManifest) -> None:
    """Write manifest atomically. Caller must hold the project lock."""
    atomic_write_json_at(
        get_manifest_path(project_root), manifest.to_file_dict(), "manifest"
    )
