"""
Span-Tree Reconstructor

Builds a forest of call hierarchies from correlated timeline events that
carry trace/span identifiers, with per-span time bounds, duration and
error/warning flags.

Everything is recomputed from scratch per call; there is no span state
kept between analyses.

Time arithmetic is same-day only: each event time is read as seconds of
day from an HH:MM:SS.mmm fragment. Events without that fragment count as
0 and mark their span clock_ambiguous.
"""

import math
import re
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from anytree import Node, PreOrderIter

from ..analysis.schemas import Anomaly, Confidence, Severity, TimelineEvent
from ..config_loader import config
from ..ingest.extractors import extract_trace_id, extract_span_id, extract_parent_span_id
from ..models import LogLine

logger = logging.getLogger(__name__)

NO_SPAN_DATA_REASON = "No trace IDs detected in logs"

ORPHAN_DROP = "drop"
ORPHAN_PROMOTE = "promote"
ORPHAN_POLICIES = (ORPHAN_DROP, ORPHAN_PROMOTE)

CLOCK_PATTERN = re.compile(r'(\d{2}):(\d{2}):(\d{2})\.(\d{3})')


# ============================================================
# DATA STRUCTURES
# ============================================================

@dataclass(frozen=True)
class TraceInfo:
    """Identifiers resolved for one timeline event."""
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    parent_span_id: Optional[str] = None


@dataclass
class Span:
    """
    One unit of work, grouped by span_id.

    start_time / end_time are seconds of day; duration_ms is their
    difference rounded to whole milliseconds.
    """
    span_id: str
    service: str
    parent_span_id: Optional[str] = None
    trace_id: Optional[str] = None
    events: List[TimelineEvent] = field(default_factory=list)
    start_time: float = math.inf
    end_time: float = 0.0
    has_error: bool = False
    has_warning: bool = False
    clock_ambiguous: bool = False

    @property
    def duration_ms(self) -> int:
        if not self.events:
            return 0
        # half-up rounding, not banker's rounding
        return int(math.floor((self.end_time - self.start_time) * 1000 + 0.5))

    def is_slow(self, threshold_ms: Optional[int] = None) -> bool:
        if threshold_ms is None:
            threshold_ms = config.get('tracing.slow_span_ms', 1000)
        return self.duration_ms > threshold_ms

    def add_event(self, event: TimelineEvent) -> None:
        self.events.append(event)

        seconds = parse_clock_seconds(event.timestamp)
        if seconds is None:
            self.clock_ambiguous = True
            seconds = 0.0

        self.start_time = min(self.start_time, seconds)
        self.end_time = max(self.end_time, seconds)


@dataclass
class SpanForest:
    """
    Result of span reconstruction.

    Attributes:
        spans: All spans by span_id, in first-discovery order
        roots: anytree nodes of the forest roots (node.span is the Span)
        children: parent span_id -> child spans, in discovery order
        orphans: Spans whose parent_span_id names no known span
        unreachable: Spans with a known parent that no root leads to
            (descendants of dropped orphans, parent cycles)
        reason: Why no forest is available, or None
    """
    spans: Dict[str, Span] = field(default_factory=dict)
    roots: List[Node] = field(default_factory=list)
    children: Dict[str, List[Span]] = field(default_factory=dict)
    orphans: List[Span] = field(default_factory=list)
    unreachable: List[Span] = field(default_factory=list)
    orphan_policy: str = ORPHAN_DROP
    reason: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.reason is None

    @property
    def root_spans(self) -> List[Span]:
        return [node.span for node in self.roots]

    def iter_spans(self) -> Iterator[Span]:
        """Depth-first walk over every rendered span."""
        for root in self.roots:
            for node in PreOrderIter(root):
                yield node.span

    def children_of(self, span_id: str) -> List[Span]:
        return self.children.get(span_id, [])


# ============================================================
# EVENT HELPERS
# ============================================================

def parse_clock_seconds(timestamp: Optional[str]) -> Optional[float]:
    """
    Read HH:MM:SS.mmm out of a timestamp as seconds of day.

    Returns:
        hours*3600 + minutes*60 + seconds + millis/1000, or None
    """
    if not timestamp:
        return None

    match = CLOCK_PATTERN.search(timestamp)
    if not match:
        return None

    hours, minutes, seconds, millis = (int(g) for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds + millis / 1000


def resolve_trace_info(event: TimelineEvent, logs: Optional[Sequence[LogLine]] = None) -> TraceInfo:
    """
    Find trace/span identifiers for a timeline event.

    Prefers the first parsed line with the same service whose timestamp
    contains the event's time fragment (characters 11-23, i.e. the
    HH:MM:SS.mmm part of an ISO timestamp). Falls back to reading the
    identifiers out of the event text.
    """
    if logs:
        fragment = (event.timestamp or '')[11:23]
        if fragment:
            matching = next(
                (
                    log for log in logs
                    if log.service == event.service
                    and log.timestamp is not None
                    and fragment in log.timestamp
                ),
                None
            )
            if matching is not None and matching.trace_id:
                return TraceInfo(
                    trace_id=matching.trace_id,
                    span_id=matching.span_id,
                    parent_span_id=matching.parent_span_id,
                )

    return TraceInfo(
        trace_id=extract_trace_id(event.event),
        span_id=extract_span_id(event.event),
        parent_span_id=extract_parent_span_id(event.event),
    )


def events_from_log_lines(logs: Iterable[LogLine]) -> List[TimelineEvent]:
    """Use parsed lines directly as timeline events (no analysis engine)."""
    return [
        TimelineEvent(
            timestamp=log.timestamp or '',
            service=log.service,
            event=log.raw,
            confidence=Confidence.HIGH,
        )
        for log in logs
    ]


def _flag_span(span: Span, event: TimelineEvent, anomalies: Sequence[Anomaly]) -> None:
    critical = any(a.service == event.service and a.severity == Severity.CRITICAL for a in anomalies)
    warning = any(a.service == event.service and a.severity == Severity.WARNING for a in anomalies)
    text = event.event.lower()

    if critical or 'error' in text:
        span.has_error = True
    if warning or 'warn' in text:
        span.has_warning = True


# ============================================================
# RECONSTRUCTION
# ============================================================

def build_span_forest(
    events: Sequence[TimelineEvent],
    logs: Optional[Sequence[LogLine]] = None,
    anomalies: Optional[Sequence[Anomaly]] = None,
    orphan_policy: Optional[str] = None
) -> SpanForest:
    """
    Reconstruct the span forest for a set of correlated events.

    Args:
        events: Timeline events (from the analysis engine or parsed lines)
        logs: Parsed lines used to resolve identifiers by service + time
        anomalies: Engine anomalies used for error/warning flags
        orphan_policy: 'drop' (default) excludes spans whose parent is
            unknown; 'promote' turns them into roots

    Returns:
        SpanForest; forest.available is False when no event has a span ID
    """
    if orphan_policy is None:
        orphan_policy = config.get('tracing.orphan_policy', ORPHAN_DROP)
    if orphan_policy not in ORPHAN_POLICIES:
        raise ValueError(f"Unknown orphan policy: {orphan_policy} (expected one of {ORPHAN_POLICIES})")

    anomalies = anomalies or []
    forest = SpanForest(orphan_policy=orphan_policy)

    # Step 1-3: group events into spans
    for event in events:
        info = resolve_trace_info(event, logs)
        if not info.span_id:
            continue

        span = forest.spans.get(info.span_id)
        if span is None:
            span = Span(
                span_id=info.span_id,
                service=event.service,
                parent_span_id=info.parent_span_id,
                trace_id=info.trace_id,
            )
            forest.spans[info.span_id] = span

        span.add_event(event)
        _flag_span(span, event, anomalies)

    if not forest.spans:
        forest.reason = NO_SPAN_DATA_REASON
        return forest

    # Step 4: roots and adjacency
    root_spans = []
    for span in forest.spans.values():
        if not span.parent_span_id:
            root_spans.append(span)
        elif span.parent_span_id not in forest.spans:
            forest.orphans.append(span)
            if orphan_policy == ORPHAN_PROMOTE:
                root_spans.append(span)
        else:
            forest.children.setdefault(span.parent_span_id, []).append(span)

    if forest.orphans:
        action = "promoted to roots" if orphan_policy == ORPHAN_PROMOTE else "dropped"
        logger.warning(
            f"{len(forest.orphans)} span(s) reference an unknown parent and were {action}: "
            f"{[s.span_id for s in forest.orphans]}"
        )

    visited = set()
    for span in root_spans:
        forest.roots.append(_attach(span, None, forest.children, visited))

    orphan_ids = {span.span_id for span in forest.orphans}
    forest.unreachable = [
        span for span in forest.spans.values()
        if span.span_id not in visited and span.span_id not in orphan_ids
    ]
    if forest.unreachable:
        logger.warning(
            f"{len(forest.unreachable)} span(s) not reachable from any root: "
            f"{[s.span_id for s in forest.unreachable]}"
        )

    logger.debug(f"Built span forest: {len(forest.spans)} span(s), {len(forest.roots)} root(s)")
    return forest


def _attach(span: Span, parent: Optional[Node], children: Dict[str, List[Span]], visited: set) -> Node:
    """Create the anytree node for `span` and, recursively, its children."""
    visited.add(span.span_id)
    node = Node(span.span_id, parent=parent, span=span)

    for child in children.get(span.span_id, []):
        if child.span_id not in visited:
            _attach(child, node, children, visited)

    return node
