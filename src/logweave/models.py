"""
LogWeave Data Models

Structured records produced by the ingestion stage.
LogLine instances are immutable once the stream parser has built them.
"""

from typing import Optional
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# ENUMS
# ============================================================

class LogLevel(str, Enum):
    """Severity vocabulary recognised by the level extractor."""
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"
    CRITICAL = "CRITICAL"


class PatternType(str, Enum):
    """How a log source encodes the emitting service."""
    KEY_VALUE = "key_value"  # service=NAME
    JSON = "json"  # {"service": ...}
    BRACKETED = "bracketed"  # [name] message
    ORCHESTRATION = "orchestration"  # name-deployment-xyz / name-pod-xyz
    UNKNOWN = "unknown"


UNKNOWN_LINE_SERVICE = "unknown"
UNKNOWN_STREAM_SERVICE = "unknown-service"


# ============================================================
# CORE MODEL
# ============================================================

class LogLine(BaseModel):
    """
    One structured record per non-blank input line.

    `raw` is the original text, verbatim. `line_number` is the 1-based
    position after blank lines are removed and is the only ordering key
    that can be trusted when timestamps are missing or skewed.
    """
    model_config = ConfigDict(frozen=True)

    raw: str
    line_number: int = Field(ge=1)
    timestamp: Optional[str] = None
    service: str = Field(min_length=1)
    level: Optional[LogLevel] = None
    request_id: Optional[str] = None
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    parent_span_id: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"LogLine(#{self.line_number}, service={self.service}, "
            f"level={self.level.value if self.level else None}, "
            f"request_id={self.request_id})"
        )
