"""Prompt escalation for retries and coherence regeneration.

Each escalation is a PromptTransform (base prompt, attempt number) -> prompt,
or a factory building one from failure reasons. Attempt 2 adds hard constraints; attempt 3 and later
reframe them as mandatory.
"""

from __future__ import annotations

from collections.abc import Iterable

from ux_overhaul.design.models import StateType
from ux_overhaul.generation.escalation import PromptTransform

STYLE_LOCK = " MUST maintain exact visual style, shadows, and border radius from references."
LAYOUT_LOCK = " Preserve original layout structure completely."

OUTLIER_REASONS = (
    "color_drift",
    "style_inconsistency",
    "layout_deviation",
    "component_mismatch",
    "spacing_variance",
    "typography_inconsistency",
)

FIX_INSTRUCTIONS: dict[str, str] = {
    "color_drift": "Enforce exact color palette from style config",
    "style_inconsistency": "Increase reference image weight in styling",
    "layout_deviation": "Preserve original layout structure",
    "component_mismatch": "Match component styling from anchors",
    "spacing_variance": "Maintain consistent spacing",
    "typography_inconsistency": "Use typography from reference anchors",
}

RETRY_REASON_INSTRUCTIONS: dict[str, str] = {
    "color_drift": "Match color palette EXACTLY - no deviations",
    "style_inconsistency": "Copy style from reference 1 precisely",
    "layout_deviation": "Preserve original layout 100%",
    "component_mismatch": "Match component styling from reference images",
    "spacing_variance": "Maintain consistent spacing throughout",
    "typography_inconsistency": "Use exact typography from references",
}

STATE_RETRY_ADJUSTMENTS: dict[StateType, str] = {
    StateType.LOADING: (
        "CRITICAL: Show clear skeleton/shimmer placeholders. Preserve layout."
    ),
    StateType.EMPTY: "CRITICAL: Show friendly illustration with guidance message.",
    StateType.ERROR: "CRITICAL: Show clear error indicator with recovery action.",
    StateType.SUCCESS: "CRITICAL: Show confirmation checkmark with next steps.",
}


def adjust_prompt_for_regeneration(prompt: str, failed_checks: Iterable[str]) -> str:
    """Strengthen a prompt according to the names of failed checks."""
    adjusted = prompt
    for check in failed_checks:
        name = check.lower()
        if "color" in name:
            adjusted = adjusted.replace(
                "Use exact colors:", "CRITICAL - Use ONLY these exact hex colors:"
            )
        if "style" in name or "consistency" in name:
            if STYLE_LOCK not in adjusted:
                adjusted += STYLE_LOCK
        if "structure" in name or "layout" in name:
            if LAYOUT_LOCK not in adjusted:
                adjusted += LAYOUT_LOCK
        if "dimension" in name or "size" in name:
            adjusted += " Generate at full resolution matching viewport requirements."
    return adjusted


DEFAULT_ANCHOR_REASONS = ("color_drift", "style_inconsistency")


def reasons_for_failed_checks(failed_checks: Iterable[str]) -> list[str]:
    """Outlier reasons matching the names of failed pre-validation checks."""
    reasons: list[str] = []
    for check in failed_checks:
        name = check.lower()
        if "style" in name or "consistency" in name:
            reasons += ["color_drift", "style_inconsistency"]
        if "dimension" in name or "layout" in name or "structure" in name:
            reasons.append("layout_deviation")
        if "size" in name:
            reasons.append("component_mismatch")
    return list(dict.fromkeys(reasons))


def anchor_escalation(failed_checks: Iterable[str] = ()) -> PromptTransform:
    """Anchor retries: hard color/style lock, then mandatory framing.

    From attempt 3 the fix phrase for each reason behind failed_checks is
    appended; with no failed checks the color and style reasons are used.
    """
    reasons = reasons_for_failed_checks(failed_checks) or list(DEFAULT_ANCHOR_REASONS)

    def _escalate(prompt: str, attempt: int) -> str:
        if attempt < 2:
            return prompt
        adjusted = adjust_prompt_for_regeneration(prompt, ["color", "style"])
        if attempt >= 3:
            adjusted = adjusted.replace("CRITICAL", "MANDATORY")
            adjusted += LAYOUT_LOCK
            adjusted += " Generate at full resolution matching viewport requirements."
            instructions = [RETRY_REASON_INSTRUCTIONS[r] for r in reasons]
            adjusted += " " + ". ".join(instructions) + "."
        return adjusted

    return _escalate


def propagation_escalation(prompt: str, attempt: int) -> str:
    """Screen propagation retries."""
    if attempt < 2:
        return prompt
    if attempt == 2:
        return (
            prompt
            + " CRITICAL: Maintain exact visual style, shadows, and border radius "
            "from references."
        )
    return (
        prompt.replace("Match style exactly", "MUST match style precisely")
        + LAYOUT_LOCK
    )


def state_escalation(state: StateType) -> PromptTransform:
    """Retry transform for one state type."""
    adjustment = STATE_RETRY_ADJUSTMENTS[StateType(state)]

    def _escalate(prompt: str, attempt: int) -> str:
        if attempt < 2:
            return prompt
        if attempt == 2:
            return f"{prompt} {adjustment}"
        return (
            prompt.replace("Match style exactly", "MUST match style precisely")
            + f" {adjustment} Maintain visual consistency."
        )

    return _escalate


def fix_instructions_for_reasons(reasons: Iterable[str]) -> list[str]:
    """Instruction per outlier reason, in reason order."""
    return [FIX_INSTRUCTIONS[r] for r in reasons if r in FIX_INSTRUCTIONS]


def build_coherence_regeneration_prompt(
    *,
    screen_description: str,
    style: str,
    colors: list[str],
    recommendations: list[str],
) -> str:
    """Prompt for regenerating a coherence outlier.

    Args:
        screen_description: Screen type or "<name> screen" text.
        style: Style direction.
        colors: Palette colors (first five used).
        recommendations: Outlier recommendations (first three used).

    Returns:
        Regeneration prompt.
    """
    parts = [f"{style} {screen_description} redesign."]
    if colors:
        parts.append(f"CRITICAL: Use ONLY these exact colors: {', '.join(colors[:5])}.")
    if recommendations:
        parts.append(f"FIX THESE ISSUES: {'; '.join(recommendations[:3])}.")
    parts.append(
        "Match style EXACTLY from reference images (use reference 1 for overall "
        "aesthetic)."
    )
    parts.append("High fidelity, pixel-perfect, production-ready UI design.")
    return " ".join(parts)


def coherence_escalation(reasons: list[str]) -> PromptTransform:
    """Retry transform for coherence regeneration of one outlier."""

    def _escalate(prompt: str, attempt: int) -> str:
        if attempt < 2:
            return prompt
        if attempt == 2:
            return prompt + STYLE_LOCK + LAYOUT_LOCK
        instructions = [
            RETRY_REASON_INSTRUCTIONS[r] for r in reasons if r in RETRY_REASON_INSTRUCTIONS
        ]
        adjusted = prompt.replace("CRITICAL", "MANDATORY")
        if instructions:
            adjusted += " " + ". ".join(instructions) + "."
        return adjusted

    return _escalate
