"""
Line and Stream Parser

Turns an interleaved multi-service log blob into structured LogLine records.

Blank lines are dropped before numbering, so line_number follows the
filtered sequence. Nothing in this module raises on odd input: absent
fields are None and an empty blob simply yields no records.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set

from ..config_loader import config
from ..models import LogLine, UNKNOWN_LINE_SERVICE
from .detector import DEFAULT_SAMPLE_SIZE, ServicePattern, detect_service_pattern
from .extractors import (
    extract_timestamp,
    extract_log_level,
    extract_request_id,
    extract_trace_id,
    extract_span_id,
    extract_parent_span_id,
)

logger = logging.getLogger(__name__)


@dataclass
class ParseResult:
    """
    Output of parse_stream.

    Attributes:
        logs: One LogLine per non-blank input line, in input order
        pattern: Service pattern chosen for the whole stream
        services: Distinct service labels (exact string equality)
        service_order: The same services in first-seen order
    """
    logs: List[LogLine]
    pattern: ServicePattern
    services: Set[str] = field(default_factory=set)
    service_order: List[str] = field(default_factory=list)


def split_lines(content: str) -> List[str]:
    """Split on newlines and drop lines that are empty once trimmed."""
    return [line for line in content.split('\n') if line.strip()]


def parse_line(raw: str, line_number: int, pattern: ServicePattern) -> LogLine:
    """
    Build one LogLine from one raw line.

    Args:
        raw: Line text, kept verbatim
        line_number: 1-based position in the filtered stream
        pattern: Service pattern bound for this stream

    Returns:
        Structured LogLine
    """
    service = pattern.extract(raw) or UNKNOWN_LINE_SERVICE

    return LogLine(
        raw=raw,
        line_number=line_number,
        timestamp=extract_timestamp(raw),
        service=service,
        level=extract_log_level(raw),
        request_id=extract_request_id(raw),
        trace_id=extract_trace_id(raw),
        span_id=extract_span_id(raw),
        parent_span_id=extract_parent_span_id(raw),
    )


def parse_stream(content: str, sample_size: Optional[int] = None) -> ParseResult:
    """
    Parse an interleaved log file into structured records.

    The service pattern is detected once from the first `sample_size`
    lines and then applied uniformly to every line.

    Args:
        content: Newline-delimited log text
        sample_size: Lines used for detection (defaults to ingest.sample_size)

    Returns:
        ParseResult with logs, detected pattern and service set
    """
    if sample_size is None:
        sample_size = config.get('ingest.sample_size', DEFAULT_SAMPLE_SIZE)

    lines = split_lines(content)
    pattern = detect_service_pattern(lines[:max(sample_size, 0)])

    result = ParseResult(logs=[], pattern=pattern)

    for index, raw in enumerate(lines, start=1):
        log = parse_line(raw, index, pattern)
        result.logs.append(log)

        if log.service not in result.services:
            result.services.add(log.service)
            result.service_order.append(log.service)

    logger.debug(
        f"Parsed {len(result.logs)} line(s), pattern={pattern.type.value}, "
        f"services={result.service_order}"
    )
    return result
