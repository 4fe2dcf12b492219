"""Prompt library: templates and retry escalation."""

from ux_overhaul.prompting.adjustments import (
    adjust_prompt_for_regeneration,
    anchor_escalation,
    build_coherence_regeneration_prompt,
    coherence_escalation,
    fix_instructions_for_reasons,
    propagation_escalation,
    reasons_for_failed_checks,
    state_escalation,
)
from ux_overhaul.prompting.builders import (
    base_prompt,
    build_screen_prompt_with_audit,
    color_constraints,
    combine_improvements,
    hero_prompt,
    iconography_prompt,
    reference_instructions,
    screen_type_prompt,
    state_prompt,
    typography_prompt,
)

__all__ = [
    "adjust_prompt_for_regeneration",
    "anchor_escalation",
    "base_prompt",
    "build_coherence_regeneration_prompt",
    "build_screen_prompt_with_audit",
    "coherence_escalation",
    "color_constraints",
    "combine_improvements",
    "fix_instructions_for_reasons",
    "hero_prompt",
    "iconography_prompt",
    "propagation_escalation",
    "reasons_for_failed_checks",
    "reference_instructions",
    "screen_type_prompt",
    "state_escalation",
    "state_prompt",
    "typography_prompt",
]
