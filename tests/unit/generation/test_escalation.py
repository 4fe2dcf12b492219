"""Unit tests for the bounded attempt loop."""

from __future__ import annotations

import pytest

from ux_overhaul.generation.client import GenerationResult
from ux_overhaul.generation.escalation import no_escalation, run_attempts
from ux_overhaul.kernel.errors import GenerationError


def _escalate(prompt: str, attempt: int) -> str:
    return f"{prompt} [attempt {attempt}]"


def test_success_on_second_attempt_sums_cost() -> None:
    """A charged failure followed by success reports both costs."""
    prompts: list[str] = []

    def call(prompt: str) -> GenerationResult:
        prompts.append(prompt)
        if len(prompts) == 1:
            raise GenerationError("HTTP 503: busy", retryable=True, cost=0.15)
        return GenerationResult(cost=0.15)

    outcome = run_attempts(call, "base", max_attempts=3, escalate=_escalate)

    assert outcome.success is True
    assert outcome.attempts == 2
    assert outcome.cost == pytest.approx(0.30)
    assert prompts == ["base", "base [attempt 2]"]
    assert outcome.prompt_used == "base [attempt 2]"
    assert outcome.result is not None


def test_terminal_error_stops_early() -> None:
    """A non-retryable error ends the loop on that attempt."""
    calls: list[str] = []

    def call(prompt: str) -> GenerationResult:
        calls.append(prompt)
        raise GenerationError("HTTP 400: bad", retryable=False, cost=0.15)

    outcome = run_attempts(call, "base", max_attempts=3)

    assert outcome.success is False
    assert outcome.attempts == 1
    assert len(calls) == 1
    assert outcome.error == "HTTP 400: bad"


def test_exhausted_attempts_report_cap_and_total_cost() -> None:
    """Three retryable failures give attempts 3 and three charges."""

    def call(prompt: str) -> GenerationResult:
        raise GenerationError("HTTP 503: busy", retryable=True, cost=0.15)

    outcome = run_attempts(call, "base", max_attempts=3, escalate=_escalate)

    assert outcome.success is False
    assert outcome.attempts == 3
    assert outcome.cost == pytest.approx(0.45)
    assert len(outcome.errors) == 3
    assert outcome.prompt_used == "base [attempt 3]"


def test_zero_cap_still_makes_one_attempt() -> None:
    """max_attempts below one is treated as one."""
    outcome = run_attempts(lambda prompt: GenerationResult(), "base", max_attempts=0)

    assert outcome.success is True
    assert outcome.attempts == 1


def test_no_escalation_is_identity() -> None:
    """The default transform leaves the prompt unchanged."""
    assert no_escalation("prompt", 3) == "prompt"
