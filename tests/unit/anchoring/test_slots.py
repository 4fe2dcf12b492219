"""Unit tests for the fixed anchor slot table and reference sets."""

from __future__ import annotations

from pathlib import Path

import pytest

from ux_overhaul.anchoring.slots import (
    ANCHOR_SLOTS,
    anchor_reference_urls,
    estimate_anchoring_cost,
    generation_viewport,
    initial_anchors,
    next_unvalidated_slot,
    reference_set,
    slot_definition,
    validated_count,
)
from ux_overhaul.design.models import Anchor, AnchorType, StateType, Viewport
from tests.unit.helpers import write_png


def _validated(anchors: list[Anchor], *slots: int) -> list[Anchor]:
    return [
        a.model_copy(update={"validated": True}) if a.slot in slots else a
        for a in anchors
    ]


def test_slot_table_layout() -> None:
    """One hero, five screens, three typography, four states, one icon set."""
    types = [s.type for s in ANCHOR_SLOTS]

    assert [s.slot for s in ANCHOR_SLOTS] == list(range(1, 15))
    assert types.count(AnchorType.HERO) == 1
    assert types.count(AnchorType.SCREEN) == 5
    assert types.count(AnchorType.TYPOGRAPHY) == 3
    assert [s.state for s in ANCHOR_SLOTS[9:13]] == [
        StateType.LOADING,
        StateType.EMPTY,
        StateType.ERROR,
        StateType.SUCCESS,
    ]
    assert slot_definition(14).type == AnchorType.ICONOGRAPHY


@pytest.mark.parametrize("slot", [0, 15])
def test_slot_definition_rejects_out_of_range(slot: int) -> None:
    """Only slots 1-14 exist."""
    with pytest.raises(ValueError, match="out of range"):
        slot_definition(slot)


def test_initial_anchors_have_deterministic_paths(project_root: Path) -> None:
    """Image paths are project-relative and encode slot and type."""
    anchors = initial_anchors(project_root)

    assert anchors[0].image_path == "generated/anchors/anchor-01-hero.png"
    assert anchors[13].image_path == "generated/anchors/anchor-14-iconography.png"
    assert not any(a.validated for a in anchors)


def test_reference_set_uses_only_earlier_validated_slots(project_root: Path) -> None:
    """Slot 1 has no references; unvalidated gaps are skipped."""
    anchors = _validated(initial_anchors(project_root), 1, 2, 4, 6)

    assert reference_set(anchors, 1) == []
    assert [a.slot for a in reference_set(anchors, 5)] == [1, 2, 4]
    assert next_unvalidated_slot(anchors) == 3
    assert validated_count(anchors) == 4


def test_next_unvalidated_slot_is_none_when_done(project_root: Path) -> None:
    """All fourteen validated means nothing is left to generate."""
    anchors = _validated(initial_anchors(project_root), *range(1, 15))

    assert next_unvalidated_slot(anchors) is None


def test_specimens_generate_landscape() -> None:
    """Typography and icon sheets ignore the project viewport."""
    assert generation_viewport(AnchorType.TYPOGRAPHY, Viewport.MOBILE) == (
        Viewport.DESKTOP
    )
    assert generation_viewport(AnchorType.ICONOGRAPHY, Viewport.TABLET) == (
        Viewport.DESKTOP
    )
    assert generation_viewport(AnchorType.SCREEN, Viewport.MOBILE) == Viewport.MOBILE


def test_reference_urls_skip_missing_files(project_root: Path) -> None:
    """Only anchors with image files on disk become data URLs."""
    anchors = initial_anchors(project_root)[:3]
    write_png(project_root / anchors[1].image_path, seed=3)

    urls = anchor_reference_urls(project_root, anchors)

    assert len(urls) == 1
    assert urls[0].startswith("data:image/png;base64,")


def test_estimate_anchoring_cost() -> None:
    """Four hero variants plus thirteen slots with a 1.5 retry factor."""
    assert estimate_anchoring_cost(4) == pytest.approx(26 * 0.15)
