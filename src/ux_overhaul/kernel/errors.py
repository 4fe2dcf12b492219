"""Deterministic pipeline error contracts."""

from __future__ import annotations

from enum import StrEnum


class PipelineErrorCode(StrEnum):
    """Stable pipeline error codes."""

    PHASE_BLOCKED = "phase_blocked"
    MISSING_INPUT = "missing_input"
    GENERATION_TRANSIENT = "generation_transient"
    GENERATION_TERMINAL = "generation_terminal"
    ANCHOR_VALIDATION_FAILED = "anchor_validation_failed"
    ANCHORING_INCOMPLETE = "anchoring_incomplete"
    GATE_INVALID = "gate_invalid"


class PipelineError(RuntimeError):
    """Pipeline failure with stable deterministic code."""

    def __init__(
        self,
        code: PipelineErrorCode,
        message: str,
        *,
        data: dict[str, object] | None = None,
    ) -> None:
        """Create pipeline failure.

        Args:
            code: Stable pipeline error code.
            message: Human-readable error message.
            data: Optional structured payload for diagnostics.
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data or {}


class PhasePreconditionError(PipelineError):
    """Raised when a phase is started before its predecessors are done."""

    def __init__(self, phase: str, reason: str) -> None:
        """Create precondition failure for phase with the blocking reason."""
        super().__init__(
            PipelineErrorCode.PHASE_BLOCKED,
            reason,
            data={"phase": phase},
        )
        self.phase = phase
        self.reason = reason


class MissingInputError(PipelineError):
    """Raised when a phase's required inputs are absent."""

    def __init__(self, message: str, *, data: dict[str, object] | None = None) -> None:
        """Create missing-input failure."""
        super().__init__(PipelineErrorCode.MISSING_INPUT, message, data=data)


class GenerationError(PipelineError):
    """Image-generation failure, classified as retryable or terminal.

    ``cost`` is the amount charged for the failed call (0.0 when the request
    never reached the service).
    """

    def __init__(
        self,
        message: str,
        *,
        retryable: bool,
        status_code: int | None = None,
        cost: float = 0.0,
    ) -> None:
        """Create generation failure.

        Args:
            message: Human-readable error message.
            retryable: True for transient failures (5xx, transport errors).
            status_code: HTTP status when the service answered.
            cost: Amount charged for the failed call.
        """
        code = (
            PipelineErrorCode.GENERATION_TRANSIENT
            if retryable
            else PipelineErrorCode.GENERATION_TERMINAL
        )
        super().__init__(
            code,
            message,
            data={"status_code": status_code, "cost": cost},
        )
        self.retryable = retryable
        self.status_code = status_code
        self.cost = cost


class AnchorValidationError(PipelineError):
    """Raised when an anchor keeps failing pre-validation after regeneration."""

    def __init__(
        self,
        slot: int,
        message: str,
        *,
        checks: list[dict[str, object]] | None = None,
        adjusted_prompt: str | None = None,
    ) -> None:
        """Create anchor validation failure for slot."""
        super().__init__(
            PipelineErrorCode.ANCHOR_VALIDATION_FAILED,
            message,
            data={
                "slot": slot,
                "checks": checks or [],
                "adjusted_prompt": adjusted_prompt,
            },
        )
        self.slot = slot
        self.checks = checks or []
        self.adjusted_prompt = adjusted_prompt


class AnchoringIncompleteError(PipelineError):
    """Raised when anchoring completion is requested before all slots validate."""

    def __init__(self, validated: int, expected: int = 14) -> None:
        """Create incomplete-anchoring failure."""
        super().__init__(
            PipelineErrorCode.ANCHORING_INCOMPLETE,
            f"expected {expected} validated anchors, got {validated}",
            data={"validated": validated, "expected": expected},
        )
        self.validated = validated
        self.expected = expected


class GateError(PipelineError):
    """Raised for an unknown, mismatched, or unresolvable human gate."""

    def __init__(self, message: str, *, gate_id: str | None = None) -> None:
        """Create gate failure."""
        super().__init__(
            PipelineErrorCode.GATE_INVALID,
            message,
            data={"gate_id": gate_id},
        )
        self.gate_id = gate_id
