"""Unit tests for human gate parsing and decisions."""

from __future__ import annotations

import pytest

from ux_overhaul.anchoring.gates import (
    GateOption,
    GateResponse,
    GateStatus,
    GateType,
    create_anchor_approval_gate,
    create_batch_approval_gate,
    create_hero_selection_gate,
    format_gate_prompt,
    format_gate_status,
    parse_user_input,
    process_user_response,
    resolve_request,
)
from ux_overhaul.design.models import Anchor, AnchorType


def _options(count: int) -> list[GateOption]:
    return [
        GateOption(index=i, image_path=f"generated/hero-v{i + 1}.png", label=f"V{i + 1}")
        for i in range(count)
    ]


def _anchor() -> Anchor:
    return Anchor(slot=3, type=AnchorType.SCREEN, name="Flow Screen 3", description="d")


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("r", GateResponse(request_regeneration=True)),
        ("q", GateResponse(accepted=False)),
        (" 2 ", GateResponse(selected_index=1, accepted=True)),
        ("warmer", GateResponse(feedback="warmer", request_regeneration=True)),
    ],
)
def test_parse_hero_input(text: str, expected: GateResponse) -> None:
    """Hero input maps to regenerate, quit, select or feedback."""
    assert parse_user_input(text, GateType.HERO_SELECTION) == expected


def test_parse_approval_and_batch_input() -> None:
    """Approval feedback regenerates; batch feedback does not accept."""
    assert parse_user_input("YES", GateType.ANCHOR_APPROVAL).accepted is True
    assert parse_user_input("n", GateType.ANCHOR_APPROVAL).request_regeneration
    rework = parse_user_input("more contrast", GateType.ANCHOR_APPROVAL)
    assert rework.feedback == "more contrast"
    assert rework.request_regeneration is True
    assert parse_user_input("y", GateType.BATCH_APPROVAL).accepted is True
    assert parse_user_input("2, 4", GateType.BATCH_APPROVAL).feedback == "2, 4"


def test_hero_selection_picks_option_path() -> None:
    """Selecting variant 3 proceeds with its image."""
    request = create_hero_selection_gate(_options(4), "modern minimal")

    decision = process_user_response(request, GateResponse(selected_index=2))

    assert request.gate_id.startswith("gate-hero-")
    assert decision.proceed is True
    assert decision.selected_path == "generated/hero-v3.png"


def test_hero_regeneration_carries_feedback() -> None:
    """Feedback becomes an adjustment for the next round."""
    request = create_hero_selection_gate(_options(2), "modern")
    response = parse_user_input("less blue", GateType.HERO_SELECTION)

    decision = process_user_response(request, response)
    resolved = resolve_request(request, response, decision)

    assert decision.regenerate is True
    assert decision.adjustments == ["less blue"]
    assert resolved.status == GateStatus.REGENERATE
    assert resolved.resolved_at is not None


def test_hero_quit_stays_pending() -> None:
    """Quitting neither proceeds nor regenerates."""
    request = create_hero_selection_gate(_options(2), "modern")
    response = GateResponse(accepted=False)

    resolved = resolve_request(
        request, response, process_user_response(request, response)
    )

    assert resolved.status == GateStatus.PENDING
    assert resolved.resolved_at is None


def test_anchor_approval_accept_and_reject() -> None:
    """Accepting proceeds with the candidate; rejecting regenerates."""
    request = create_anchor_approval_gate(_anchor(), "generated/anchors/03.png", 90)

    accepted = process_user_response(request, GateResponse(accepted=True))
    rejected = process_user_response(request, GateResponse(accepted=False))

    assert request.gate_id.startswith("gate-anchor-3-")
    assert accepted.selected_path == "generated/anchors/03.png"
    assert rejected.proceed is False
    assert rejected.regenerate is True


def test_batch_rejection_lists_screen_numbers() -> None:
    """Numbers in batch feedback become zero-based rejected indices."""
    request = create_batch_approval_gate(_options(4), "batch 1")
    response = parse_user_input("redo 2 and 4", GateType.BATCH_APPROVAL)

    decision = process_user_response(request, response)

    assert decision.regenerate is True
    assert decision.rejected_indices == [1, 3]


def test_batch_rejection_without_numbers_is_rejected() -> None:
    """Plain negative feedback on a batch marks the gate rejected."""
    request = create_batch_approval_gate(_options(2), "batch 1")
    response = parse_user_input("no", GateType.BATCH_APPROVAL)

    resolved = resolve_request(
        request, response, process_user_response(request, response)
    )

    assert resolved.status == GateStatus.REJECTED


def test_format_gate_prompt_and_status() -> None:
    """Prompt text lists options with scores and ends with the input hint."""
    request = create_anchor_approval_gate(_anchor(), "generated/anchors/03.png", 85)

    text = format_gate_prompt(request)

    assert text.startswith("Review Flow Screen 3 (Slot 3)")
    assert "1. Flow Screen 3 (85%): generated/anchors/03.png" in text
    assert text.endswith("Approve? (y/n, or type feedback to regenerate): ")
    assert format_gate_status(request).startswith("[?] gate-anchor-3-")
