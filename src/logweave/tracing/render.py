"""
Text rendering of a span forest.
"""

import re
from typing import Optional

from anytree import RenderTree

from ..config_loader import config
from .span_tree import ORPHAN_PROMOTE, Span, SpanForest

ID_TOKEN_PATTERN = re.compile(r'\b(?:parent_span_id|span_id|trace_id)=\S+')
WHITESPACE_PATTERN = re.compile(r'\s+')


def summarize_event_text(text: str) -> str:
    """Drop trace/span ID tokens from event text and tidy whitespace."""
    return WHITESPACE_PATTERN.sub(' ', ID_TOKEN_PATTERN.sub('', text)).strip()


def span_status(span: Span) -> str:
    # error wins over warning
    if span.has_error:
        return "ERROR"
    if span.has_warning:
        return "WARN"
    return "OK"


def format_span(span: Span, slow_ms: Optional[int] = None) -> str:
    count = len(span.events)
    label = f"{span.service} [{span.span_id}] {span.duration_ms}ms"
    if span.is_slow(slow_ms):
        label += " (slow)"
    if span.clock_ambiguous:
        label += " (clock?)"
    return f"{label} {span_status(span)} - {count} event{'s' if count != 1 else ''}"


def render_span_forest(
    forest: SpanForest,
    events_per_span: Optional[int] = None,
    slow_ms: Optional[int] = None
) -> str:
    """
    Render the forest as an indented text tree.

    Args:
        forest: Result of build_span_forest
        events_per_span: Event summaries shown under each span
        slow_ms: Duration above which a span is marked slow

    Returns:
        Multi-line string
    """
    if not forest.available:
        return (
            f"{forest.reason}\n"
            "Logs need trace_id, span_id and parent_span_id fields to show request flow."
        )

    if events_per_span is None:
        events_per_span = config.get('tracing.events_per_span', 2)

    lines = []
    for root in forest.roots:
        for pre, fill, node in RenderTree(root):
            span = node.span
            lines.append(f"{pre}{format_span(span, slow_ms)}")

            for event in span.events[:events_per_span]:
                lines.append(f"{fill}    * {summarize_event_text(event.event)}")
            if len(span.events) > events_per_span:
                lines.append(f"{fill}    +{len(span.events) - events_per_span} more")

    if forest.orphans and forest.orphan_policy != ORPHAN_PROMOTE:
        lines.append(
            f"({len(forest.orphans)} span(s) with unknown parent not shown: "
            f"{', '.join(s.span_id for s in forest.orphans)})"
        )

    return "\n".join(lines)
