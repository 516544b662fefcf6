"""
Analysis Engine Adapter

Prompt building, Gemini client and response-document schemas for the
external causal-analysis engine.
"""

from .schemas import (
    AnalysisRequest,
    AnalysisResponse,
    TimelineEvent,
    Anomaly,
    ClockIssue,
    CausalityAnalysis,
    AttentionPriority,
    Confidence,
    Severity,
    validate_analysis_response,
)

__all__ = [
    "AnalysisRequest",
    "AnalysisResponse",
    "TimelineEvent",
    "Anomaly",
    "ClockIssue",
    "CausalityAnalysis",
    "AttentionPriority",
    "Confidence",
    "Severity",
    "validate_analysis_response",
]
