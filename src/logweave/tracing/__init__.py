"""
Trace Reconstruction

Span forests built from correlated events, and their text rendering.
"""

from .span_tree import (
    Span,
    SpanForest,
    TraceInfo,
    build_span_forest,
    events_from_log_lines,
    parse_clock_seconds,
    resolve_trace_info,
)
from .render import render_span_forest, summarize_event_text

__all__ = [
    "Span",
    "SpanForest",
    "TraceInfo",
    "build_span_forest",
    "events_from_log_lines",
    "parse_clock_seconds",
    "resolve_trace_info",
    "render_span_forest",
    "summarize_event_text",
]
