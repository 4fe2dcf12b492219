"""Kernel Layer 0: project store (manifest, phase machine, lock, atomic writes)."""

from ux_overhaul.kernel.atomic_write import (
    atomic_write_bytes_at,
    atomic_write_json_at,
    read_json_file,
)
from ux_overhaul.kernel.errors import (
    AnchoringIncompleteError,
    AnchorValidationError,
    GateError,
    GenerationError,
    MissingInputError,
    PhasePreconditionError,
    PipelineError,
    PipelineErrorCode,
)
from ux_overhaul.kernel.manifest import (
    PHASE_ORDER,
    PendingGate,
    PhaseCheck,
    PhaseName,
    PhaseState,
    PhaseStatus,
    ProjectManifest,
    advance_batch,
    can_start_phase,
    create_manifest,
    current_phase,
    is_project_complete,
    manifest_summary,
    progress_percentage,
    read_manifest,
    transition_phase,
    write_manifest_atomic,
)
from ux_overhaul.kernel.project_lock import project_lock
from ux_overhaul.kernel.store import ManifestStore

__all__ = [
    "PHASE_ORDER",
    "AnchorValidationError",
    "AnchoringIncompleteError",
    "GateError",
    "GenerationError",
    "ManifestStore",
    "MissingInputError",
    "PendingGate",
    "PhaseCheck",
    "PhaseName",
    "PhasePreconditionError",
    "PhaseState",
    "PhaseStatus",
    "PipelineError",
    "PipelineErrorCode",
    "ProjectManifest",
    "advance_batch",
    "atomic_write_bytes_at",
    "atomic_write_json_at",
    "can_start_phase",
    "create_manifest",
    "current_phase",
    "is_project_complete",
    "manifest_summary",
    "progress_percentage",
    "project_lock",
    "read_json_file",
    "read_manifest",
    "transition_phase",
    "write_manifest_atomic",
]
