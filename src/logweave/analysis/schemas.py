"""
Pydantic Schemas for the Analysis Engine

Defines the request sent to the causal-analysis engine and the document it
must return. Validation here is structural only (presence and type of each
field); the content of the analysis is not judged.
"""

from typing import Any, Dict, List, Optional
from enum import Enum

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from ..exceptions import InvalidAnalysisResponseError


# ============================================================
# ENUMS
# ============================================================

class Confidence(str, Enum):
    """How sure the engine is about a timeline event's position."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Severity(str, Enum):
    """Anomaly severity."""
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


def _lowercase(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


# ============================================================
# REQUEST
# ============================================================

class AnalysisRequest(BaseModel):
    """Grouped logs plus optional free-text context for the engine."""

    grouped_logs: Dict[str, List[str]] = Field(
        ...,
        description="Service name -> ordered raw log lines"
    )

    architecture: Optional[str] = Field(
        default=None,
        description="Description of the system architecture"
    )

    user_context: Optional[str] = Field(
        default=None,
        description="What the user knows about the incident"
    )

    expected_behavior: Optional[str] = Field(
        default=None,
        description="What should have happened"
    )

    time_window: Optional[str] = Field(
        default=None,
        description="Time window of interest, free text"
    )


# ============================================================
# RESPONSE DOCUMENT
# ============================================================

class TimelineEvent(BaseModel):
    """One event of the reconstructed timeline."""

    timestamp: str
    service: str
    event: str
    confidence: Confidence
    ambiguity_note: Optional[str] = None

    @field_validator('confidence', mode='before')
    @classmethod
    def normalize_confidence(cls, v):
        """Accept "High", " LOW " and similar spellings."""
        return _lowercase(v)


class Anomaly(BaseModel):
    """An error, slow operation or unusual pattern flagged by the engine."""

    service: str
    issue: str
    severity: Severity
    evidence: Optional[str] = None
    timestamp: Optional[str] = None

    @field_validator('severity', mode='before')
    @classmethod
    def normalize_severity(cls, v):
        return _lowercase(v)


class ClockIssue(BaseModel):
    """A clock-skew or timezone finding for one service."""

    service: str
    issue: str
    evidence: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('evidence', 'correction')
    )


class CausalityAnalysis(BaseModel):
    """Root cause versus symptoms."""

    probable_root_cause: str
    dependency_chain: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices('dependency_chain', 'causal_chain')
    )
    misleading_evidence: Optional[str] = None


class AttentionPriority(BaseModel):
    """Where an engineer should look, ranked."""

    priority: int = Field(ge=1)
    focus_area: str
    reasoning: str


class AnalysisResponse(BaseModel):
    """Complete analysis document returned by the engine."""

    timeline: List[TimelineEvent]
    anomalies: List[Anomaly]
    clock_issues: List[ClockIssue]
    causality_analysis: CausalityAnalysis
    attention_priority: List[AttentionPriority]
    summary: str


def validate_analysis_response(data: Any) -> AnalysisResponse:
    """
    Validate an engine response before it is used for span reconstruction.

    Args:
        data: Decoded JSON document

    Returns:
        Validated AnalysisResponse

    Raises:
        InvalidAnalysisResponseError: if any required field is missing or
            has the wrong type
    """
    if not isinstance(data, dict):
        raise InvalidAnalysisResponseError(
            f"Invalid analysis response: expected an object, got {type(data).__name__}"
        )

    try:
        return AnalysisResponse.model_validate(data)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise InvalidAnalysisResponseError(
            f"Invalid analysis response: bad or missing fields {fields}",
            errors=e.errors()
        ) from e
