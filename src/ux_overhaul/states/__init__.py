"""State-variant phase."""

from ux_overhaul.states.engine import STATE_STRENGTHS, StateEngine, build_state_prompt
from ux_overhaul.states.report import (
    GeneratedState,
    ScreenStates,
    StatesReport,
    StatesSummary,
    format_states_summary,
    read_states_report,
    states_status_line,
    summarize_states,
    write_states_report,
)

__all__ = [
    "STATE_STRENGTHS",
    "GeneratedState",
    "ScreenStates",
    "StateEngine",
    "StatesReport",
    "StatesSummary",
    "build_state_prompt",
    "format_states_summary",
    "read_states_report",
    "states_status_line",
    "summarize_states",
    "write_states_report",
]
