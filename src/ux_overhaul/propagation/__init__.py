"""Propagation phase: batched, checkpointed style transfer to captured screens."""

from ux_overhaul.propagation.classifier import (
    SCREEN_TYPE_STRENGTHS,
    classify_screen,
    display_name,
    strength_for,
)
from ux_overhaul.propagation.engine import PropagationEngine, build_propagation_prompt
from ux_overhaul.propagation.report import (
    PropagatedScreen,
    PropagationReport,
    PropagationSummary,
    estimate_propagation_cost,
    format_cost_summary,
    format_propagation_summary,
    propagation_status_line,
    read_propagation_report,
    summarize_propagation,
    write_propagation_report,
)
from ux_overhaul.propagation.validation import (
    BatchValidation,
    OutputValidation,
    validate_output,
    validate_outputs,
)

__all__ = [
    "SCREEN_TYPE_STRENGTHS",
    "BatchValidation",
    "OutputValidation",
    "PropagatedScreen",
    "PropagationEngine",
    "PropagationReport",
    "PropagationSummary",
    "build_propagation_prompt",
    "classify_screen",
    "display_name",
    "estimate_propagation_cost",
    "format_cost_summary",
    "format_propagation_summary",
    "propagation_status_line",
    "read_propagation_report",
    "strength_for",
    "summarize_propagation",
    "validate_output",
    "validate_outputs",
    "write_propagation_report",
]
