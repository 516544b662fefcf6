"""
LogWeave Pipeline

Coordinates one analysis request:
1. Validate and parse the interleaved log content
2. Filter by request ID (optional)
3. Group lines by service
4. Ask the analysis engine for a causal analysis
5. Rebuild the span forest from the analysis timeline

Each call is independent; the pipeline keeps no state between requests
other than its analyzer.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .exceptions import EmptyLogContentError, NoMatchingLogsError
from .ingest.grouping import filter_by_request_id, group_by_service
from .ingest.parser import ParseResult, parse_stream
from .models import LogLine
from .analysis.schemas import AnalysisRequest, AnalysisResponse, validate_analysis_response
from .tracing.span_tree import SpanForest, build_span_forest, events_from_log_lines

logger = logging.getLogger(__name__)


@dataclass
class PreparedLogs:
    """
    Parsed, filtered and grouped logs, ready for analysis.

    Attributes:
        parsed: Full parse of the input
        analyzed_logs: Lines selected for analysis (filtered or all)
        grouped_logs: analyzed_logs grouped by service
        request_id: Filter that was applied, or None
    """
    parsed: ParseResult
    analyzed_logs: List[LogLine]
    grouped_logs: Dict[str, List[str]]
    request_id: Optional[str] = None

    def metadata(self) -> Dict[str, Any]:
        return {
            "total_logs": len(self.parsed.logs),
            "analyzed_logs": len(self.analyzed_logs),
            "services": list(self.parsed.service_order),
            "pattern_type": self.parsed.pattern.type.value,
            "request_id": self.request_id,
        }


@dataclass
class AnalysisResult:
    """Everything returned for one analysis request."""
    metadata: Dict[str, Any]
    parsed_logs: List[LogLine]
    analysis: Optional[AnalysisResponse]
    span_forest: SpanForest

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "metadata": self.metadata,
            "parsedLogs": [log.model_dump(mode="json") for log in self.parsed_logs],
            "analysis": self.analysis.model_dump(mode="json") if self.analysis else None,
            "spanForest": {
                "available": self.span_forest.available,
                "reason": self.span_forest.reason,
                "roots": [span.span_id for span in self.span_forest.root_spans],
                "orphans": [span.span_id for span in self.span_forest.orphans],
                "spans": [
                    {
                        "span_id": span.span_id,
                        "service": span.service,
                        "parent_span_id": span.parent_span_id,
                        "events": len(span.events),
                        "duration_ms": span.duration_ms,
                        "has_error": span.has_error,
                        "has_warning": span.has_warning,
                    }
                    for span in self.span_forest.iter_spans()
                ],
            },
        }


class LogWeavePipeline:
    """
    End-to-end log analysis orchestrator.
    """

    def __init__(self, analyzer=None, orphan_policy: Optional[str] = None):
        """
        Initialize pipeline.

        Args:
            analyzer: LogAnalyzer (or anything with .analyze(AnalysisRequest)).
                Created lazily when an engine call is first needed.
            orphan_policy: Span orphan policy override ('drop' / 'promote')
        """
        self._analyzer = analyzer
        self.orphan_policy = orphan_policy

    @property
    def analyzer(self):
        if self._analyzer is None:
            from .analysis.analyzer import LogAnalyzer
            self._analyzer = LogAnalyzer()
        return self._analyzer

    def prepare(self, log_content: Any, request_id: Optional[str] = None) -> PreparedLogs:
        """
        Parse, filter and group log content.

        Raises:
            EmptyLogContentError: content missing, not a string, or blank
            NoMatchingLogsError: request_id given but nothing matched
        """
        if not isinstance(log_content, str) or not log_content.strip():
            raise EmptyLogContentError()

        parsed = parse_stream(log_content)
        logger.info(f"Parsed {len(parsed.logs)} log lines")
        logger.info(f"Detected pattern: {parsed.pattern.type.value}")
        logger.info(f"Found {len(parsed.services)} services: {', '.join(parsed.service_order)}")

        analyzed_logs = parsed.logs
        if request_id:
            analyzed_logs = filter_by_request_id(parsed.logs, request_id)
            logger.info(f"Filtered to {len(analyzed_logs)} logs for request_id={request_id}")

            if not analyzed_logs:
                raise NoMatchingLogsError(request_id)

        return PreparedLogs(
            parsed=parsed,
            analyzed_logs=analyzed_logs,
            grouped_logs=group_by_service(analyzed_logs),
            request_id=request_id or None,
        )

    def trace(self, log_content: Any, request_id: Optional[str] = None) -> AnalysisResult:
        """
        Offline run: build the span forest straight from parsed lines,
        without calling the analysis engine.
        """
        prepared = self.prepare(log_content, request_id)
        forest = build_span_forest(
            events_from_log_lines(prepared.analyzed_logs),
            orphan_policy=self.orphan_policy,
        )

        return AnalysisResult(
            metadata=prepared.metadata(),
            parsed_logs=prepared.analyzed_logs,
            analysis=None,
            span_forest=forest,
        )

    def analyze(
        self,
        log_content: Any,
        request_id: Optional[str] = None,
        architecture: Optional[str] = None,
        user_context: Optional[str] = None,
        expected_behavior: Optional[str] = None,
        time_window: Optional[str] = None
    ) -> AnalysisResult:
        """
        Run the complete analysis.

        Raises:
            EmptyLogContentError, NoMatchingLogsError: user input errors
            AnalysisEngineError: the engine call failed
            InvalidAnalysisResponseError: the engine reply had the wrong shape
        """
        logger.info("=== Step 1: Parsing logs ===")
        prepared = self.prepare(log_content, request_id)

        logger.info("=== Step 2: Requesting analysis ===")
        request = AnalysisRequest(
            grouped_logs=prepared.grouped_logs,
            architecture=architecture,
            user_context=user_context,
            expected_behavior=expected_behavior,
            time_window=time_window,
        )
        analysis = self.analyzer.analyze(request)
        if not isinstance(analysis, AnalysisResponse):
            analysis = validate_analysis_response(analysis)

        logger.info("=== Step 3: Reconstructing spans ===")
        forest = build_span_forest(
            analysis.timeline,
            logs=prepared.analyzed_logs,
            anomalies=analysis.anomalies,
            orphan_policy=self.orphan_policy,
        )
        if not forest.available:
            logger.info(forest.reason)

        return AnalysisResult(
            metadata=prepared.metadata(),
            parsed_logs=prepared.analyzed_logs,
            analysis=analysis,
            span_forest=forest,
        )
