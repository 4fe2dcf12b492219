"""Anchoring phase: 14-slot progressive reference generation with human gates."""

from ux_overhaul.anchoring.engine import AnchorEngine, AnchoringProgress, build_anchor_prompt
from ux_overhaul.anchoring.gates import (
    GateOption,
    GateRequest,
    GateResponse,
    GateStatus,
    GateType,
    ProcessedResponse,
    format_gate_prompt,
    format_gate_status,
    parse_user_input,
    process_user_response,
)
from ux_overhaul.anchoring.pre_validation import (
    PreValidationResult,
    ValidationCheck,
    format_validation_result,
    pre_validate_anchor,
    should_regenerate,
)
from ux_overhaul.anchoring.session import AnchoringSession, read_session
from ux_overhaul.anchoring.slots import (
    ANCHOR_SLOTS,
    STRENGTH_SETTINGS,
    estimate_anchoring_cost,
    reference_set,
)

__all__ = [
    "ANCHOR_SLOTS",
    "STRENGTH_SETTINGS",
    "AnchorEngine",
    "AnchoringProgress",
    "AnchoringSession",
    "GateOption",
    "GateRequest",
    "GateResponse",
    "GateStatus",
    "GateType",
    "PreValidationResult",
    "ProcessedResponse",
    "ValidationCheck",
    "build_anchor_prompt",
    "estimate_anchoring_cost",
    "format_gate_prompt",
    "format_gate_status",
    "format_validation_result",
    "parse_user_input",
    "pre_validate_anchor",
    "process_user_response",
    "read_session",
    "reference_set",
    "should_regenerate",
]
