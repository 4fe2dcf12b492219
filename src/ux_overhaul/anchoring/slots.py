"""The fixed 14-slot anchor layout and the progressive reference rule."""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path

from ux_overhaul.design.models import Anchor, AnchorType, StateType, Viewport
from ux_overhaul.generation.client import COST_PER_IMAGE
from ux_overhaul.generation.images import to_data_url
from ux_overhaul.kernel.paths import (
    get_anchor_image_path,
    resolve_project_path,
    to_project_relative,
)

TOTAL_SLOTS = 14
MAX_REFERENCES = 14


@dataclass(frozen=True)
class AnchorSlot:
    """Static definition of one anchor slot."""

    slot: int
    type: AnchorType
    name: str
    description: str
    state: StateType | None = None


_FLOW_ORDINALS = ("Second", "Third", "Fourth", "Fifth", "Sixth")

_TYPOGRAPHY_SLOTS = (
    ("Heading Specimens", "Typography specimen for H1-H6 headings"),
    ("Body Specimens", "Typography specimen for body text"),
    ("UI Text Specimens", "Typography specimen for labels, buttons, captions"),
)

_STATE_SLOTS = (
    ("Loading State", "Loading/skeleton state indicator", StateType.LOADING),
    ("Empty State", "Empty state with guidance", StateType.EMPTY),
    ("Error State", "Error state with recovery options", StateType.ERROR),
    ("Success State", "Success/confirmation state", StateType.SUCCESS),
)

ANCHOR_SLOTS: tuple[AnchorSlot, ...] = (
    AnchorSlot(
        1, AnchorType.HERO, "Hero Screen", "Entry screen establishing visual direction"
    ),
    *(
        AnchorSlot(
            n,
            AnchorType.SCREEN,
            f"Flow Screen {n}",
            f"{_FLOW_ORDINALS[n - 2]} screen in user flow",
        )
        for n in range(2, 7)
    ),
    *(
        AnchorSlot(7 + i, AnchorType.TYPOGRAPHY, name, description)
        for i, (name, description) in enumerate(_TYPOGRAPHY_SLOTS)
    ),
    *(
        AnchorSlot(10 + i, AnchorType.STATE, name, description, state)
        for i, (name, description, state) in enumerate(_STATE_SLOTS)
    ),
    AnchorSlot(14, AnchorType.ICONOGRAPHY, "Icon Set", "Icon set specimen sheet"),
)

STRENGTH_SETTINGS: dict[AnchorType, float] = {
    AnchorType.HERO: 0.70,
    AnchorType.SCREEN: 0.65,
    AnchorType.COMPONENT: 0.60,
    AnchorType.TYPOGRAPHY: 0.55,
    AnchorType.STATE: 0.55,
    AnchorType.ICONOGRAPHY: 0.50,
}


def slot_definition(slot: int) -> AnchorSlot:
    """Static definition for slot (1-14)."""
    if not 1 <= slot <= TOTAL_SLOTS:
        raise ValueError(f"anchor slot out of range: {slot}")
    return ANCHOR_SLOTS[slot - 1]


def initial_anchors(project_root: Path) -> list[Anchor]:
    """Fresh, unvalidated anchors with their deterministic image paths."""
    return [
        Anchor(
            slot=definition.slot,
            type=definition.type,
            name=definition.name,
            description=definition.description,
            image_path=to_project_relative(
                project_root,
                get_anchor_image_path(project_root, definition.slot, definition.type),
            ),
        )
        for definition in ANCHOR_SLOTS
    ]


def reference_set(anchors: list[Anchor], slot: int) -> list[Anchor]:
    """Validated anchors with slot < slot, in slot order, capped at 14.

    Slot 1 therefore never has references, and an unvalidated earlier slot
    is never used as a reference.
    """
    earlier = sorted(
        (a for a in anchors if a.validated and a.slot < slot), key=lambda a: a.slot
    )
    return earlier[:MAX_REFERENCES]


def generation_viewport(anchor_type: AnchorType, viewport: Viewport) -> Viewport:
    """Specimen sheets are always generated landscape."""
    if anchor_type in (AnchorType.TYPOGRAPHY, AnchorType.ICONOGRAPHY):
        return Viewport.DESKTOP
    return viewport


def next_unvalidated_slot(anchors: list[Anchor]) -> int | None:
    """Lowest slot not yet validated, or None when all 14 are."""
    for anchor in sorted(anchors, key=lambda a: a.slot):
        if not anchor.validated:
            return anchor.slot
    return None


def validated_count(anchors: list[Anchor]) -> int:
    """Number of validated anchors."""
    return sum(1 for a in anchors if a.validated)


def estimate_anchoring_cost(hero_variants: int = 4) -> float:
    """Expected spend for a full anchoring run including typical retries."""
    expected_calls = math.ceil((hero_variants + TOTAL_SLOTS - 1) * 1.5)
    return expected_calls * COST_PER_IMAGE


def validated_anchors(anchors: list[Anchor]) -> list[Anchor]:
    """Validated anchors in slot order, capped at the reference limit."""
    return sorted((a for a in anchors if a.validated), key=lambda a: a.slot)[
        :MAX_REFERENCES
    ]


def anchor_reference_urls(project_root: Path, anchors: list[Anchor]) -> list[str]:
    """Data URLs for anchors whose image files exist, in the given order."""
    urls: list[str] = []
    for anchor in anchors:
        path = resolve_project_path(project_root, anchor.image_path)
        if path.is_file():
            urls.append(to_data_url(path))
    return urls
