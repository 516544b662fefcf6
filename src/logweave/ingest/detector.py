"""
Service-Pattern Detector

Works out how a log source encodes "which service emitted this line".

The strategies form an ordered catalog of (trigger, extractor) records.
Detection runs once per stream over a small sample: the first strategy
whose trigger matches ANY sampled line is bound for the whole stream, and
its extractor is then applied to every line, including lines that would
not have triggered it on their own.

Priority order prefers explicit, structured signals (service= keys, JSON)
over loose token matching (deployment/pod names).
"""

import json
import re
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Sequence

from ..models import PatternType, UNKNOWN_STREAM_SERVICE

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_SIZE = 20

ServiceExtractor = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class ServicePattern:
    """Detected strategy tag plus the per-line service extractor bound to it."""
    type: PatternType
    extract: ServiceExtractor


@dataclass(frozen=True)
class ServiceStrategy:
    """One catalog entry: when it applies and how it extracts."""
    type: PatternType
    trigger: Callable[[str], bool]
    extract: ServiceExtractor

    def matches(self, sample_lines: Iterable[str]) -> bool:
        return any(self.trigger(line) for line in sample_lines)

    def bind(self) -> ServicePattern:
        return ServicePattern(type=self.type, extract=self.extract)


# ============================================================
# STRATEGY 1: service=NAME
# ============================================================

KEY_VALUE_PATTERN = re.compile(r'\bservice=([\w-]+)')


def _extract_key_value(line: str) -> Optional[str]:
    match = KEY_VALUE_PATTERN.search(line)
    return match.group(1) if match else None


# ============================================================
# STRATEGY 2: JSON lines
# ============================================================

JSON_SERVICE_KEYS = ('service', 'service_name', 'app')


def _looks_like_json(line: str) -> bool:
    return line.strip().startswith('{')


def _extract_json(line: str) -> Optional[str]:
    """Parse the line as JSON and read service, service_name, then app."""
    try:
        obj = json.loads(line)
    except (json.JSONDecodeError, TypeError, ValueError, RecursionError):
        return None

    if not isinstance(obj, dict):
        return None

    for key in JSON_SERVICE_KEYS:
        value = obj.get(key)
        if value not in (None, '', False):
            return str(value)

    return None


# ============================================================
# STRATEGY 3: [name] prefix
# ============================================================

BRACKETED_PATTERN = re.compile(r'^\[([\w-]+)\]')


def _extract_bracketed(line: str) -> Optional[str]:
    match = BRACKETED_PATTERN.match(line)
    return match.group(1) if match else None


# ============================================================
# STRATEGY 4: orchestration names (name-deployment-xyz, name-pod-xyz)
# ============================================================

ORCHESTRATION_TRIGGERS = (
    re.compile(r'[\w-]+-deployment-\w+'),
    re.compile(r'[\w-]+-pod-\w+'),
)
DEPLOYMENT_NAME_PATTERN = re.compile(r'([\w-]+)-deployment')
POD_NAME_PATTERN = re.compile(r'([\w-]+)-pod')


def _looks_orchestrated(line: str) -> bool:
    return any(pattern.search(line) for pattern in ORCHESTRATION_TRIGGERS)


def _extract_orchestration(line: str) -> Optional[str]:
    """Strip the -deployment / -pod suffix to recover the logical service."""
    for pattern in (DEPLOYMENT_NAME_PATTERN, POD_NAME_PATTERN):
        match = pattern.search(line)
        if match:
            return match.group(1)

    return None


# ============================================================
# CATALOG
# ============================================================

SERVICE_STRATEGIES: Sequence[ServiceStrategy] = (
    ServiceStrategy(
        type=PatternType.KEY_VALUE,
        trigger=lambda line: KEY_VALUE_PATTERN.search(line) is not None,
        extract=_extract_key_value,
    ),
    ServiceStrategy(
        type=PatternType.JSON,
        trigger=_looks_like_json,
        extract=_extract_json,
    ),
    ServiceStrategy(
        type=PatternType.BRACKETED,
        trigger=lambda line: BRACKETED_PATTERN.match(line) is not None,
        extract=_extract_bracketed,
    ),
    ServiceStrategy(
        type=PatternType.ORCHESTRATION,
        trigger=_looks_orchestrated,
        extract=_extract_orchestration,
    ),
)

UNKNOWN_PATTERN = ServicePattern(
    type=PatternType.UNKNOWN,
    extract=lambda line: UNKNOWN_STREAM_SERVICE,
)


def detect_service_pattern(
    sample_lines: Sequence[str],
    strategies: Sequence[ServiceStrategy] = SERVICE_STRATEGIES
) -> ServicePattern:
    """
    Select the service-identification strategy for a stream.

    Args:
        sample_lines: Lines from the start of the stream (usually up to 20)
        strategies: Ordered catalog to evaluate (defaults to the built-in one)

    Returns:
        Bound ServicePattern; the unknown fallback labels every line
        "unknown-service"
    """
    for strategy in strategies:
        if strategy.matches(sample_lines):
            logger.debug(f"Service pattern detected: {strategy.type.value}")
            return strategy.bind()

    logger.debug("No service pattern matched the sample, using fallback")
    return UNKNOWN_PATTERN
