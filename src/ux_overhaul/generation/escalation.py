"""Bounded attempt loop with prompt escalation keyed by attempt number.

Attempt 1 always uses the base prompt. Each later attempt runs the base
prompt through the caller's transform, so the escalation rules live next
to the phase that owns them and stay pure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from ux_overhaul.generation.client import GenerationResult
from ux_overhaul.kernel.errors import GenerationError

_LOGGER = logging.getLogger(__name__)

PromptTransform = Callable[[str, int], str]
AttemptCall = Callable[[str], GenerationResult]


def no_escalation(prompt: str, attempt: int) -> str:
    """Identity transform."""
    return prompt


@dataclass
class AttemptOutcome:
    """Result of an attempt loop: last result or last error, plus totals."""

    success: bool
    attempts: int
    cost: float
    prompt_used: str
    result: GenerationResult | None = None
    error: str | None = None
    errors: list[str] = field(default_factory=list)


def run_attempts(
    call: AttemptCall,
    base_prompt: str,
    *,
    max_attempts: int,
    escalate: PromptTransform = no_escalation,
    label: str = "",
) -> AttemptOutcome:
    """Run call until it succeeds, a terminal error occurs, or attempts run out.

    Cost is summed across every attempt, successful or not.

    Args:
        call: Performs one attempt with the given prompt. Returns on success,
            raises GenerationError on failure.
        base_prompt: Prompt for attempt 1.
        max_attempts: Attempt cap (at least 1 attempt is always made).
        escalate: Prompt transform applied for attempts 2..max_attempts.
        label: Item name for log lines.

    Returns:
        AttemptOutcome with success flag, attempts made and total cost.
    """
    cap = max(1, max_attempts)
    total_cost = 0.0
    errors: list[str] = []
    prompt = base_prompt
    for attempt in range(1, cap + 1):
        prompt = base_prompt if attempt == 1 else escalate(base_prompt, attempt)
        _LOGGER.debug("%s: attempt %d/%d", label or "generation", attempt, cap)
        try:
            result = call(prompt)
        except GenerationError as exc:
            total_cost += exc.cost
            errors.append(str(exc))
            if not exc.retryable:
                _LOGGER.warning("%s: terminal error: %s", label or "generation", exc)
                return AttemptOutcome(
                    success=False,
                    attempts=attempt,
                    cost=total_cost,
                    prompt_used=prompt,
                    error=str(exc),
                    errors=errors,
                )
            continue
        total_cost += result.cost
        return AttemptOutcome(
            success=True,
            attempts=attempt,
            cost=total_cost,
            prompt_used=prompt,
            result=result,
            errors=errors,
        )
    _LOGGER.warning(
        "%s: failed after %d attempts: %s",
        label or "generation",
        cap,
        errors[-1] if errors else "unknown error",
    )
    return AttemptOutcome(
        success=False,
        attempts=cap,
        cost=total_cost,
        prompt_used=prompt,
        error=errors[-1] if errors else None,
        errors=errors,
    )
