"""Persisted anchoring state (anchoring_state.json)."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from ux_overhaul.anchoring.gates import GateRequest
from ux_overhaul.anchoring.slots import initial_anchors
from ux_overhaul.design.models import Anchor, ColorPalette
from ux_overhaul.kernel.atomic_write import atomic_write_json_at, read_json_file
from ux_overhaul.kernel.paths import get_anchoring_state_path


class AnchoringSession(BaseModel):
    """Everything needed to resume anchoring after a gate or a crash."""

    style_direction: str
    palette: ColorPalette
    anchors: list[Anchor]
    pending_gate: GateRequest | None = None
    gate_history: list[GateRequest] = Field(default_factory=list)
    feedback: dict[int, list[str]] = Field(default_factory=dict)
    regenerations: dict[int, int] = Field(default_factory=dict)
    total_cost: float = 0.0

    def anchor(self, slot: int) -> Anchor:
        """Anchor for slot."""
        return next(a for a in self.anchors if a.slot == slot)

    def replace_anchor(self, anchor: Anchor) -> None:
        """Swap in an updated anchor for the same slot."""
        self.anchors = [anchor if a.slot == anchor.slot else a for a in self.anchors]

    def to_file_dict(self) -> dict[str, Any]:
        """Serialize for JSON file."""
        return self.model_dump(mode="json")

    @classmethod
    def from_file_dict(cls, d: dict[str, Any]) -> AnchoringSession:
        """Deserialize from JSON file."""
        return cls.model_validate(d)


def new_session(
    project_root: Path, style_direction: str, palette: ColorPalette
) -> AnchoringSession:
    """Session with 14 fresh slots."""
    return AnchoringSession(
        style_direction=style_direction,
        palette=palette,
        anchors=initial_anchors(project_root),
    )


def read_session(project_root: Path) -> AnchoringSession | None:
    """Load the session, or None when anchoring has not started."""
    path = get_anchoring_state_path(project_root)
    if not path.exists():
        return None
    return AnchoringSession.from_file_dict(read_json_file(path))


def write_session(project_root: Path, session: AnchoringSession) -> None:
    """Persist the session atomically."""
    atomic_write_json_at(
        get_anchoring_state_path(project_root), session.to_file_dict(), "anchoring_state"
    )
