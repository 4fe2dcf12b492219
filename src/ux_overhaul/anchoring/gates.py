"""Human validation gates: request/response models, parsing and formatting.

A gate is a persisted suspension point. Opening one returns control to the
caller; resolving it is a separate call carrying a GateResponse.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from ux_overhaul.design.models import Anchor


class GateType(StrEnum):
    """Kinds of human gates."""

    HERO_SELECTION = "hero_selection"
    ANCHOR_APPROVAL = "anchor_approval"
    BATCH_APPROVAL = "batch_approval"


class GateStatus(StrEnum):
    """Gate lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REGENERATE = "regenerate"


class GateOption(BaseModel):
    """One image offered at a gate."""

    index: int
    image_path: str
    label: str
    score: int | None = None


class GateResponse(BaseModel):
    """What the user answered."""

    selected_index: int | None = None
    accepted: bool | None = None
    feedback: str | None = None
    request_regeneration: bool = False
    custom_color_palette: list[str] | None = None


class GateRequest(BaseModel):
    """A gate awaiting (or having received) a human answer."""

    gate_id: str
    gate_type: GateType
    slot: int | None = None
    prompt: str
    description: str = ""
    options: list[GateOption] = Field(default_factory=list)
    status: GateStatus = GateStatus.PENDING
    created_at: str
    resolved_at: str | None = None
    response: GateResponse | None = None


class ProcessedResponse(BaseModel):
    """Decision derived from a GateResponse."""

    proceed: bool
    selected_path: str | None = None
    regenerate: bool = False
    adjustments: list[str] = Field(default_factory=list)
    rejected_indices: list[int] = Field(default_factory=list)


def _now() -> datetime:
    return datetime.now(UTC)


def _timestamp_ms() -> int:
    return int(_now().timestamp() * 1000)


def create_hero_selection_gate(options: list[GateOption], style: str) -> GateRequest:
    """Gate asking the user to pick one of the hero variants."""
    return GateRequest(
        gate_id=f"gate-hero-{_timestamp_ms()}",
        gate_type=GateType.HERO_SELECTION,
        slot=1,
        prompt=f'Select the hero design that best represents your vision for "{style}"',
        description=(
            "Hero screen establishes the visual foundation for all subsequent screens"
        ),
        options=options,
        created_at=_now().isoformat(),
    )


def create_anchor_approval_gate(
    anchor: Anchor, image_path: str, score: int | None = None
) -> GateRequest:
    """Gate asking the user to approve one anchor candidate."""
    return GateRequest(
        gate_id=f"gate-anchor-{anchor.slot}-{_timestamp_ms()}",
        gate_type=GateType.ANCHOR_APPROVAL,
        slot=anchor.slot,
        prompt=f"Review {anchor.name} (Slot {anchor.slot})",
        description=anchor.description,
        options=[GateOption(index=0, image_path=image_path, label=anchor.name, score=score)],
        created_at=_now().isoformat(),
    )


def create_batch_approval_gate(options: list[GateOption], description: str) -> GateRequest:
    """Gate asking the user to approve a batch of generated screens."""
    return GateRequest(
        gate_id=f"gate-batch-{_timestamp_ms()}",
        gate_type=GateType.BATCH_APPROVAL,
        prompt=f"Review batch of {len(options)} screens",
        description=description,
        options=options,
        created_at=_now().isoformat(),
    )


def parse_user_input(text: str, gate_type: GateType) -> GateResponse:
    """Turn raw terminal input into a GateResponse.

    Hero: ``r`` regenerate, ``q`` quit, ``1``-``4`` select, other text is
    feedback. Approval: ``y``/``yes`` accept, ``n``/``no`` regenerate, other
    text is regenerate with feedback. Batch: ``y``/``yes`` accept, other text
    is feedback.
    """
    raw = text.strip()
    lowered = raw.lower()
    if gate_type == GateType.HERO_SELECTION:
        if lowered == "r":
            return GateResponse(request_regeneration=True)
        if lowered == "q":
            return GateResponse(accepted=False)
        if lowered in {"1", "2", "3", "4"}:
            return GateResponse(selected_index=int(lowered) - 1, accepted=True)
        return GateResponse(feedback=raw, request_regeneration=True)
    if gate_type == GateType.ANCHOR_APPROVAL:
        if lowered in {"y", "yes"}:
            return GateResponse(accepted=True)
        if lowered in {"n", "no"}:
            return GateResponse(accepted=False, request_regeneration=True)
        return GateResponse(accepted=False, request_regeneration=True, feedback=raw)
    if lowered in {"y", "yes"}:
        return GateResponse(accepted=True)
    return GateResponse(accepted=False, feedback=raw)


def _feedback_list(response: GateResponse) -> list[str]:
    return [response.feedback] if response.feedback else []


def process_user_response(request: GateRequest, response: GateResponse) -> ProcessedResponse:
    """Map an answer to a decision for the owning engine."""
    if request.gate_type == GateType.HERO_SELECTION:
        if response.selected_index is not None:
            option = next(
                (o for o in request.options if o.index == response.selected_index), None
            )
            if option is not None:
                return ProcessedResponse(proceed=True, selected_path=option.image_path)
        if response.request_regeneration:
            return ProcessedResponse(
                proceed=False, regenerate=True, adjustments=_feedback_list(response)
            )
        return ProcessedResponse(proceed=False)

    if request.gate_type == GateType.ANCHOR_APPROVAL:
        if response.accepted:
            path = request.options[0].image_path if request.options else None
            return ProcessedResponse(proceed=True, selected_path=path)
        return ProcessedResponse(
            proceed=False, regenerate=True, adjustments=_feedback_list(response)
        )

    if response.accepted:
        return ProcessedResponse(proceed=True)
    rejected = [int(d) - 1 for d in re.findall(r"\d+", response.feedback or "")]
    return ProcessedResponse(
        proceed=False,
        regenerate=bool(rejected),
        adjustments=_feedback_list(response),
        rejected_indices=[i for i in rejected if i >= 0],
    )


def resolve_request(
    request: GateRequest, response: GateResponse, decision: ProcessedResponse
) -> GateRequest:
    """Copy of request stamped with the answer and resulting status."""
    if decision.proceed:
        status = GateStatus.APPROVED
    elif decision.regenerate:
        status = GateStatus.REGENERATE
    elif request.gate_type == GateType.BATCH_APPROVAL and response.accepted is False:
        status = GateStatus.REJECTED
    else:
        status = GateStatus.PENDING
    return request.model_copy(
        update={
            "status": status,
            "response": response,
            "resolved_at": None if status == GateStatus.PENDING else _now().isoformat(),
        }
    )


_REVIEW_INSTRUCTIONS: dict[GateType, list[str]] = {
    GateType.HERO_SELECTION: [
        "Compare overall aesthetic, color use and hierarchy across variants",
        "Pick the variant closest to the intended direction",
        "Every later anchor and screen will follow this choice",
    ],
    GateType.ANCHOR_APPROVAL: [
        "Check colors against the palette",
        "Check shadows, radius and spacing against earlier anchors",
        "Reject with feedback to regenerate this slot",
    ],
    GateType.BATCH_APPROVAL: [
        "Scan the batch for screens that break the established style",
        "List the numbers of screens to regenerate",
    ],
}


def review_instructions(gate_type: GateType) -> list[str]:
    """Checklist shown to the reviewer for a gate type."""
    return list(_REVIEW_INSTRUCTIONS[gate_type])


def user_prompt(gate_type: GateType) -> str:
    """Input hint for the gate type."""
    if gate_type == GateType.HERO_SELECTION:
        return "Enter 1-4 to select, 'r' to regenerate, 'q' to quit, or type feedback: "
    if gate_type == GateType.ANCHOR_APPROVAL:
        return "Approve? (y/n, or type feedback to regenerate): "
    return "Approve batch? (y, or list screen numbers to regenerate): "


def format_gate_prompt(request: GateRequest) -> str:
    """Full text shown when a gate opens."""
    lines = [request.prompt]
    if request.description:
        lines.append(request.description)
    lines.append("")
    for option in request.options:
        score = f" ({option.score}%)" if option.score is not None else ""
        lines.append(f"  {option.index + 1}. {option.label}{score}: {option.image_path}")
    lines.append("")
    lines.extend(f"- {item}" for item in review_instructions(request.gate_type))
    lines.append("")
    lines.append(user_prompt(request.gate_type))
    return "\n".join(lines)


_STATUS_ICONS = {
    GateStatus.PENDING: "[?]",
    GateStatus.APPROVED: "[ok]",
    GateStatus.REJECTED: "[x]",
    GateStatus.REGENERATE: "[~]",
}


def format_gate_status(request: GateRequest) -> str:
    """One-line gate status."""
    return f"{_STATUS_ICONS[request.status]} {request.gate_id} {request.status}"
