"""
Log Analyzer

Sends grouped logs to the causal-analysis engine and turns its reply into a
validated AnalysisResponse. The engine is treated as an opaque
request/response collaborator; this module only builds the prompt, strips
the reply down to JSON and checks its shape.
"""

import json
import re
import logging
from typing import Any, Optional

from ..config_loader import config
from ..exceptions import AnalysisEngineError, InvalidAnalysisResponseError
from .llm_client import LLMClient, get_llm_client
from .schemas import AnalysisRequest, AnalysisResponse, validate_analysis_response

logger = logging.getLogger(__name__)

DEFAULT_ARCHITECTURE = (
    "Microservices architecture with multiple services communicating via APIs "
    "and shared database"
)

CODE_FENCE_PATTERN = re.compile(r'```(?:json)?\s*\n?')

OUTPUT_FORMAT = """{
  "timeline": [
    {
      "timestamp": "normalized timestamp (one timezone)",
      "service": "service name",
      "event": "what happened",
      "confidence": "high|medium|low",
      "ambiguity_note": "why the ordering is uncertain (optional)"
    }
  ],
  "anomalies": [
    {
      "service": "service name",
      "issue": "description",
      "severity": "critical|warning|info",
      "timestamp": "when it occurred"
    }
  ],
  "clock_issues": [
    {
      "service": "service name",
      "issue": "clock skew or timezone mismatch",
      "evidence": "log timestamps that show it"
    }
  ],
  "causality_analysis": {
    "probable_root_cause": "what actually broke first",
    "misleading_evidence": "errors that look like the cause but are symptoms",
    "dependency_chain": "how the failure cascaded through services"
  },
  "attention_priority": [
    {
      "priority": 1,
      "focus_area": "what to investigate",
      "reasoning": "why first"
    }
  ],
  "summary": "2-3 sentence summary for the engineer fixing this"
}"""


def format_grouped_logs(grouped_logs: dict) -> str:
    """Render service buckets as '=== service ===' sections."""
    sections = []
    for service, lines in grouped_logs.items():
        sections.append(f"=== {service} ===\n" + "\n".join(lines))
    return "\n\n".join(sections)


def build_analysis_prompt(request: AnalysisRequest) -> str:
    """
    Build the analysis prompt for one request.

    Optional context blocks are included only when provided.
    """
    architecture = (
        request.architecture
        or config.get('analysis.default_architecture')
        or DEFAULT_ARCHITECTURE
    )

    parts = [
        "You are an expert distributed systems debugger analyzing logs from a failed transaction.",
        f"**CONTEXT:**\n{architecture}",
    ]

    if request.user_context:
        parts.append(f"**USER CONTEXT:**\n{request.user_context}")

    if request.expected_behavior:
        parts.append(
            f"**EXPECTED BEHAVIOR:**\n{request.expected_behavior}\n"
            "This did NOT happen. Work out why."
        )

    if request.time_window:
        parts.append(
            f"**TIME WINDOW OF INTEREST:**\n{request.time_window}\n"
            "Focus on events inside this window."
        )

    parts.append(
        "**YOUR TASK:**\n"
        "1. Reconstruct the timeline of events in order.\n"
        "2. Flag places where ordering is uncertain (events milliseconds apart, "
        "logging delays, timestamps that contradict the logical flow).\n"
        "3. Flag errors, slow operations and unusual patterns.\n"
        "4. Detect clock skew or timezone differences between services.\n"
        "5. Explain what caused what across services.\n"
        "6. Separate the root cause from its symptoms.\n"
        "7. Say what an engineer should investigate first."
    )

    parts.append(
        "**ANALYSIS PRINCIPLES:**\n"
        "- A slow operation that eats the available time budget usually causes the timeout that follows it.\n"
        "- Order by logical causality, not by raw timestamp, when clocks disagree.\n"
        "- An error message is often a symptom. Look for what produced it."
    )

    parts.append(f"**LOGS:**\n{format_grouped_logs(request.grouped_logs)}")

    parts.append(
        "**OUTPUT FORMAT:**\nReturn a JSON object with exactly this structure:\n"
        f"{OUTPUT_FORMAT}\n\n"
        "Return ONLY valid JSON. No markdown, no code fences, no preamble."
    )

    return "\n\n".join(parts)


def extract_json_text(text: str) -> str:
    """Strip markdown code fences the model sometimes wraps around JSON."""
    return CODE_FENCE_PATTERN.sub('', text).replace('```', '').strip()


def _message_text(content: Any) -> str:
    """Flatten AIMessage content (plain string or list of content blocks)."""
    if isinstance(content, str):
        return content

    if isinstance(content, list):
        pieces = []
        for block in content:
            if isinstance(block, str):
                pieces.append(block)
            elif isinstance(block, dict) and block.get('type') == 'text':
                pieces.append(block.get('text', ''))
        return ''.join(pieces)

    return str(content)


def parse_analysis_text(text: str) -> AnalysisResponse:
    """
    Decode and validate a raw engine reply.

    Raises:
        InvalidAnalysisResponseError: if the reply is not JSON or has the
            wrong shape
    """
    json_text = extract_json_text(text)

    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise InvalidAnalysisResponseError(f"Analysis response is not valid JSON: {e}") from e

    return validate_analysis_response(data)


class LogAnalyzer:
    """
    Runs analysis requests against the LLM.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None):
        """
        Initialize analyzer.

        Args:
            llm_client: Client to use. Created from config on first use if omitted.
        """
        self._llm_client = llm_client

    @property
    def llm_client(self) -> LLMClient:
        if self._llm_client is None:
            self._llm_client = get_llm_client()
        return self._llm_client

    def analyze(self, request: AnalysisRequest) -> AnalysisResponse:
        """
        Analyze grouped logs.

        Args:
            request: Grouped logs and optional context

        Returns:
            Validated AnalysisResponse

        Raises:
            AnalysisEngineError: if the engine call fails
            InvalidAnalysisResponseError: if the reply has the wrong shape
        """
        prompt = build_analysis_prompt(request)
        logger.info(
            f"Requesting analysis for {len(request.grouped_logs)} service(s), "
            f"{sum(len(v) for v in request.grouped_logs.values())} line(s)"
        )

        try:
            response = self.llm_client.invoke(prompt)
        except Exception as e:
            raise AnalysisEngineError(f"Analysis engine call failed: {e}") from e

        analysis = parse_analysis_text(_message_text(response.content))

        logger.info(
            f"Analysis received: {len(analysis.timeline)} timeline event(s), "
            f"{len(analysis.anomalies)} anomaly(ies)"
        )
        return analysis
