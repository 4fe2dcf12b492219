"""Single-writer manifest store. Every mutation is persisted before returning."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ux_overhaul.kernel.errors import PhasePreconditionError
from ux_overhaul.kernel.manifest import (
    PendingGate,
    PhaseName,
    PhaseStatus,
    ProjectManifest,
    advance_batch,
    batch_cursor,
    can_start_phase,
    read_manifest,
    transition_phase,
    write_manifest_atomic,
)
from ux_overhaul.kernel.project_lock import project_lock

_LOGGER = logging.getLogger(__name__)


class ManifestStore:
    """Owns the in-memory manifest for one project and persists each change.

    Engines receive the store by reference; nothing else writes manifest.json
    while a phase runs.
    """

    def __init__(self, project_root: Path, manifest: ProjectManifest) -> None:
        """Wrap an already-loaded manifest.

        Args:
            project_root: Project directory.
            manifest: Current manifest contents.
        """
        self.project_root = project_root
        self._manifest = manifest

    @classmethod
    def load(cls, project_root: Path) -> ManifestStore:
        """Open the store for an existing project."""
        return cls(project_root, read_manifest(project_root))

    @classmethod
    def create(cls, project_root: Path, manifest: ProjectManifest) -> ManifestStore:
        """Persist a brand-new manifest and return its store."""
        project_root.mkdir(parents=True, exist_ok=True)
        store = cls(project_root, manifest)
        store._persist(manifest)
        return store

    @property
    def manifest(self) -> ProjectManifest:
        """Current manifest (treat as read-only)."""
        return self._manifest

    def _persist(self, manifest: ProjectManifest) -> ProjectManifest:
        with project_lock(self.project_root):
            write_manifest_atomic(self.project_root, manifest)
        self._manifest = manifest
        return manifest

    def update(self, manifest: ProjectManifest) -> ProjectManifest:
        """Replace and persist the whole manifest."""
        return self._persist(manifest)

    def require_can_start(self, phase: PhaseName) -> None:
        """Raise PhasePreconditionError if phase may not start yet."""
        check = can_start_phase(self._manifest, phase)
        if not check.can_start:
            raise PhasePreconditionError(str(phase), check.reason or "blocked")

    def begin(self, phase: PhaseName) -> ProjectManifest:
        """Mark phase in_progress after checking predecessors.

        Idempotent for a phase already in progress (resume keeps the cursor).
        """
        self.require_can_start(phase)
        if self._manifest.phase(phase).status == PhaseStatus.IN_PROGRESS:
            return self._manifest
        _LOGGER.info("Phase %s started", phase)
        return self._persist(
            transition_phase(self._manifest, phase, PhaseStatus.IN_PROGRESS, error=None)
        )

    def complete(self, phase: PhaseName, **extra: Any) -> ProjectManifest:
        """Mark phase complete."""
        _LOGGER.info("Phase %s complete", phase)
        return self._persist(
            transition_phase(self._manifest, phase, PhaseStatus.COMPLETE, **extra)
        )

    def fail(self, phase: PhaseName, error: str) -> ProjectManifest:
        """Mark phase failed with error text."""
        _LOGGER.warning("Phase %s failed: %s", phase, error)
        return self._persist(
            transition_phase(self._manifest, phase, PhaseStatus.FAILED, error=error)
        )

    def skip(self, phase: PhaseName) -> ProjectManifest:
        """Mark phase skipped."""
        _LOGGER.info("Phase %s skipped", phase)
        return self._persist(
            transition_phase(self._manifest, phase, PhaseStatus.SKIPPED)
        )

    def set_fields(self, phase: PhaseName, **extra: Any) -> ProjectManifest:
        """Merge progress fields into phase without changing its status."""
        status = self._manifest.phase(phase).status
        return self._persist(transition_phase(self._manifest, phase, status, **extra))

    def batch_cursor(self, phase: PhaseName) -> int:
        """1-based index of the next batch to run."""
        return batch_cursor(self._manifest, phase)

    def advance_batch(self, phase: PhaseName, items: int) -> ProjectManifest:
        """Checkpoint: advance the batch cursor and count items."""
        return self._persist(advance_batch(self._manifest, phase, items))

    def set_pending_gate(self, gate: PendingGate) -> ProjectManifest:
        """Record the human gate the pipeline is suspended on."""
        return self._persist(self._manifest.model_copy(update={"pending_gate": gate}))

    def clear_pending_gate(self) -> ProjectManifest:
        """Clear the suspension marker."""
        return self._persist(self._manifest.model_copy(update={"pending_gate": None}))
