"""
Log Ingestion

Turns interleaved multi-service log text into structured, correlated records:
- Extractors: timestamp, level and correlation-ID fields
- Detector: per-stream service-pattern selection
- Parser: line and stream parsing
- Grouping: per-service buckets and request-ID filtering
"""

from .detector import ServicePattern, detect_service_pattern
from .parser import ParseResult, parse_line, parse_stream
from .grouping import group_by_service, filter_by_request_id, get_request_ids, count_by_level

__all__ = [
    "ServicePattern",
    "detect_service_pattern",
    "ParseResult",
    "parse_line",
    "parse_stream",
    "group_by_service",
    "filter_by_request_id",
    "get_request_ids",
    "count_by_level",
]
