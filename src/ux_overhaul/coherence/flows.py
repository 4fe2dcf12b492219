"""Flow-transition analysis: does consecutive screen styling hang together?"""

from __future__ import annotations

import math

from pydantic import BaseModel, Field

from ux_overhaul.design.models import ScreenType, UserFlow
from ux_overhaul.propagation.report import PropagatedScreen

TRANSITION_THRESHOLD = 70
FLOW_THRESHOLD = 75
DEFAULT_TYPE_SCORE = 70
MAIN_FLOW_NAME = "Main Flow"

SCREEN_TYPE_COMPATIBILITY: dict[str, dict[str, int]] = {
    "auth": {"auth": 90, "landing": 95, "dashboard": 85, "form": 80, "list": 70, "detail": 60},
    "landing": {
        "landing": 85,
        "auth": 90,
        "dashboard": 85,
        "form": 75,
        "list": 80,
        "detail": 70,
    },
    "dashboard": {"dashboard": 90, "list": 90, "detail": 85, "form": 80, "settings": 85},
    "list": {"list": 85, "detail": 95, "form": 80, "dashboard": 85, "modal": 75},
    "detail": {"detail": 80, "list": 90, "form": 85, "modal": 85, "dashboard": 75},
    "form": {"form": 75, "detail": 85, "list": 80, "dashboard": 75, "modal": 80},
    "settings": {"settings": 85, "dashboard": 85, "detail": 75, "modal": 80},
    "modal": {"modal": 70, "detail": 85, "list": 80, "form": 85},
    "empty": {"empty": 60, "list": 95, "dashboard": 90},
    "error": {"error": 50, "dashboard": 80, "list": 75},
    "loading": {"loading": 50, "dashboard": 95, "list": 95, "detail": 95},
    "generic": {"generic": 75},
}


class FlowTransition(BaseModel):
    """Score for moving from one screen to the next."""

    from_screen: str
    to_screen: str
    score: int
    coherent: bool
    issues: list[str] = Field(default_factory=list)


class FlowAnalysis(BaseModel):
    """All transitions of one named flow."""

    name: str
    screens: list[str]
    transitions: list[FlowTransition] = Field(default_factory=list)
    flow_score: int
    coherent: bool


class FlowSummary(BaseModel):
    """Aggregate over every analyzed flow."""

    total_flows: int
    coherent_flows: int
    problematic_transitions: int
    average_flow_score: int
    flows: list[FlowAnalysis] = Field(default_factory=list)


def _round(value: float) -> int:
    return math.floor(value + 0.5)


def transition_score(
    current: PropagatedScreen, following: PropagatedScreen
) -> FlowTransition:
    """Blend a base quality score (30%) with type compatibility (70%)."""
    issues: list[str] = []
    base = 75
    if not current.success or not following.success:
        base -= 20
        issues.append("One or both screens failed propagation")
    if abs(current.strength_used - following.strength_used) > 0.15:
        base -= 10
        issues.append("Large strength variance between screens")
    from_type = ScreenType(current.screen_type).value
    to_type = ScreenType(following.screen_type).value
    type_score = SCREEN_TYPE_COMPATIBILITY.get(from_type, {}).get(
        to_type, DEFAULT_TYPE_SCORE
    )
    if type_score < TRANSITION_THRESHOLD:
        issues.append(f"Unusual transition: {from_type} → {to_type}")
    score = _round(base * 0.3 + type_score * 0.7)
    return FlowTransition(
        from_screen=current.screen_id,
        to_screen=following.screen_id,
        score=score,
        coherent=score >= TRANSITION_THRESHOLD,
        issues=issues,
    )


def analyze_flow(flow: UserFlow, screens: dict[str, PropagatedScreen]) -> FlowAnalysis:
    """Score every consecutive pair of screens in flow."""
    transitions: list[FlowTransition] = []
    for current_id, next_id in zip(flow.screens, flow.screens[1:], strict=False):
        current = screens.get(current_id)
        following = screens.get(next_id)
        if current is None or following is None:
            transitions.append(
                FlowTransition(
                    from_screen=current_id,
                    to_screen=next_id,
                    score=0,
                    coherent=False,
                    issues=["Missing screen in flow sequence"],
                )
            )
            continue
        transitions.append(transition_score(current, following))
    flow_score = (
        _round(sum(t.score for t in transitions) / len(transitions)) if transitions else 100
    )
    return FlowAnalysis(
        name=flow.name,
        screens=list(flow.screens),
        transitions=transitions,
        flow_score=flow_score,
        coherent=flow_score >= FLOW_THRESHOLD,
    )


def analyze_flows(
    flows: list[UserFlow], screens: list[PropagatedScreen]
) -> FlowSummary:
    """Analyze named flows, or one sequential main flow when none are defined."""
    by_id = {s.screen_id: s for s in screens}
    if not flows:
        flows = [
            UserFlow(
                name=MAIN_FLOW_NAME, screens=[s.screen_id for s in screens if s.success]
            )
        ]
    analyses = [analyze_flow(flow, by_id) for flow in flows]
    return FlowSummary(
        total_flows=len(analyses),
        coherent_flows=sum(1 for a in analyses if a.coherent),
        problematic_transitions=sum(
            1 for a in analyses for t in a.transitions if not t.coherent
        ),
        average_flow_score=(
            _round(sum(a.flow_score for a in analyses) / len(analyses)) if analyses else 100
        ),
        flows=analyses,
    )


def format_flow_summary(summary: FlowSummary) -> str:
    """Multi-line human summary of flow analysis."""
    lines = [
        f"Flows: {summary.coherent_flows}/{summary.total_flows} coherent, "
        f"average score {summary.average_flow_score}%"
    ]
    for analysis in summary.flows:
        mark = "[ok]" if analysis.coherent else "[!]"
        lines.append(f"  {mark} {analysis.name}: {analysis.flow_score}%")
        for transition in analysis.transitions:
            if transition.issues:
                lines.append(
                    f"      {transition.from_screen} -> {transition.to_screen}: "
                    + "; ".join(transition.issues)
                )
    return "\n".join(lines)
