"""Coherence phase: outlier detection and bounded regeneration."""

from ux_overhaul.coherence.engine import CoherenceEngine, state_subject_id
from ux_overhaul.coherence.flows import (
    FlowAnalysis,
    FlowSummary,
    FlowTransition,
    analyze_flow,
    analyze_flows,
    format_flow_summary,
    transition_score,
)
from ux_overhaul.coherence.report import (
    CoherenceReport,
    CoherenceSummary,
    RegenerationRecord,
    ScreenCoherence,
    coherence_status_line,
    estimate_regeneration_cost,
    format_coherence_summary,
    format_outlier_report,
    outlier_status_line,
    outliers_by_reason,
    outliers_by_severity,
    read_coherence_report,
    write_coherence_report,
)
from ux_overhaul.coherence.scoring import (
    CoherenceSubject,
    DeviationScore,
    DeviationScorer,
    HeuristicDeviationScorer,
    OutlierInfo,
    detect_outliers,
    overall_coherence,
    recommendations_for,
    score_subject,
)

__all__ = [
    "CoherenceEngine",
    "CoherenceReport",
    "CoherenceSubject",
    "CoherenceSummary",
    "DeviationScore",
    "DeviationScorer",
    "FlowAnalysis",
    "FlowSummary",
    "FlowTransition",
    "HeuristicDeviationScorer",
    "OutlierInfo",
    "RegenerationRecord",
    "ScreenCoherence",
    "analyze_flow",
    "analyze_flows",
    "coherence_status_line",
    "detect_outliers",
    "estimate_regeneration_cost",
    "format_coherence_summary",
    "format_flow_summary",
    "format_outlier_report",
    "outlier_status_line",
    "outliers_by_reason",
    "outliers_by_severity",
    "overall_coherence",
    "read_coherence_report",
    "recommendations_for",
    "score_subject",
    "state_subject_id",
    "transition_score",
    "write_coherence_report",
]
