"""
Grouping & Filtering

Partition parsed lines by service and restrict them to one correlation ID.
Both operations keep the original relative order and never reorder across
services.
"""

from collections import Counter, defaultdict
from typing import Dict, Iterable, List

from ..models import LogLine


def group_by_service(logs: Iterable[LogLine]) -> Dict[str, List[str]]:
    """
    Group raw line text by service.

    Buckets appear in first-seen service order; lines keep their input
    order within each bucket.

    Returns:
        Dictionary mapping service -> list of raw lines
    """
    grouped = defaultdict(list)

    for log in logs:
        grouped[log.service].append(log.raw)

    return dict(grouped)


def filter_by_request_id(logs: Iterable[LogLine], request_id: str) -> List[LogLine]:
    """
    Keep only lines whose request_id equals `request_id` exactly.

    An empty list means nothing matched. Callers must report that, not
    fall back to the unfiltered logs.
    """
    return [log for log in logs if log.request_id is not None and log.request_id == request_id]


def get_request_ids(logs: Iterable[LogLine]) -> List[str]:
    """Distinct request IDs in first-seen order."""
    seen = {}
    for log in logs:
        if log.request_id:
            seen.setdefault(log.request_id, None)
    return list(seen)


def count_by_level(logs: Iterable[LogLine]) -> Dict[str, int]:
    """Line counts per level; lines without a level are counted under 'NONE'."""
    counts = Counter(log.level.value if log.level else 'NONE' for log in logs)
    return dict(counts)
