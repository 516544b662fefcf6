"""
Field Extractors

Pure functions that pull a single field out of one raw log line.
Each extractor is independent of the others and total over its input:
a missing field is returned as None, never raised.
"""

import re
from datetime import datetime, timezone
from typing import Optional


# ============================================================
# PATTERNS
# ============================================================

# 2024-02-07T14:23:00.891 / 2024-02-07 14:23:00,891
ISO_TIMESTAMP_PATTERN = re.compile(r'\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}[.,]\d{3}')

# Feb 07 14:23:00
SYSLOG_TIMESTAMP_PATTERN = re.compile(r'\w{3}\s+\d{1,2}\s+\d{2}:\d{2}:\d{2}')

# 1707315780 (seconds) / 1707315780891 (milliseconds)
EPOCH_TIMESTAMP_PATTERN = re.compile(r'\b(\d{13}|\d{10})\b')

LOG_LEVEL_PATTERN = re.compile(r'\b(INFO|WARN|ERROR|DEBUG|FATAL|TRACE|CRITICAL)\b', re.IGNORECASE)

_ID_VALUE = r'([a-zA-Z0-9_-]+)'

REQUEST_ID_PATTERNS = (
    re.compile(r'\breq_id=' + _ID_VALUE),
    re.compile(r'\brequest_id=' + _ID_VALUE),
    re.compile(r'\bcorrelation_id=' + _ID_VALUE),
    re.compile(r'\btrace_id=' + _ID_VALUE),
    re.compile(r'"request_id":\s*"([^"]+)"'),
    re.compile(r'"correlation_id":\s*"([^"]+)"'),
    re.compile(r'"trace_id":\s*"([^"]+)"'),
)

# \b keeps span_id= from matching inside parent_span_id=
TRACE_ID_PATTERN = re.compile(r'\btrace_id=' + _ID_VALUE)
SPAN_ID_PATTERN = re.compile(r'\bspan_id=' + _ID_VALUE)
PARENT_SPAN_ID_PATTERN = re.compile(r'\bparent_span_id=' + _ID_VALUE)


# ============================================================
# EXTRACTORS
# ============================================================

def extract_timestamp(line: str) -> Optional[str]:
    """
    Extract a timestamp from a log line.

    Tried in order, first match wins:
        1. ISO-8601 date+time with milliseconds (returned as written)
        2. Syslog "Mon DD HH:MM:SS" (returned as written)
        3. Bare epoch, 10 digits = seconds, 13 digits = milliseconds,
           rendered as UTC "YYYY-MM-DDTHH:MM:SS.mmmZ"

    Args:
        line: Raw log line

    Returns:
        Timestamp string, or None if no supported format is present
    """
    iso = ISO_TIMESTAMP_PATTERN.search(line)
    if iso:
        return iso.group(0)

    syslog = SYSLOG_TIMESTAMP_PATTERN.search(line)
    if syslog:
        return syslog.group(0)

    epoch = EPOCH_TIMESTAMP_PATTERN.search(line)
    if epoch:
        return _render_epoch(epoch.group(1))

    return None


def _render_epoch(digits: str) -> Optional[str]:
    """Convert epoch digits to a normalized UTC ISO string."""
    value = int(digits)
    millis = value * 1000 if len(digits) == 10 else value

    try:
        instant = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None

    return instant.strftime('%Y-%m-%dT%H:%M:%S.') + f"{millis % 1000:03d}Z"


def extract_log_level(line: str) -> Optional[str]:
    """
    Extract the log level (INFO, WARN, ERROR, DEBUG, ...).

    Whole-word, case-insensitive; the first level in the line wins.

    Returns:
        Uppercased level name, or None
    """
    match = LOG_LEVEL_PATTERN.search(line)
    return match.group(1).upper() if match else None


def extract_request_id(line: str) -> Optional[str]:
    """
    Extract a request/correlation ID.

    Note that trace_id is accepted as a correlation key too, so a line's
    request ID may equal its trace ID. That is a side effect of the key
    list, not a cross-service guarantee.
    """
    for pattern in REQUEST_ID_PATTERNS:
        match = pattern.search(line)
        if match:
            return match.group(1)

    return None


def extract_trace_id(line: str) -> Optional[str]:
    """Extract trace_id=VALUE."""
    match = TRACE_ID_PATTERN.search(line)
    return match.group(1) if match else None


def extract_span_id(line: str) -> Optional[str]:
    """Extract span_id=VALUE."""
    match = SPAN_ID_PATTERN.search(line)
    return match.group(1) if match else None


def extract_parent_span_id(line: str) -> Optional[str]:
    """Extract parent_span_id=VALUE. Not checked against known span IDs."""
    match = PARENT_SPAN_ID_PATTERN.search(line)
    return match.group(1) if match else None
