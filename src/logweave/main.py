"""
LogWeave CLI

Analyze an interleaved multi-service log file:
    logweave incident.log                         # full analysis (needs GEMINI_API_KEY)
    logweave incident.log --request-id abc123     # only lines for one request
    logweave incident.log --offline               # parse + span tree, no engine call
    logweave incident.log --json                  # machine-readable output
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .exceptions import (
    AnalysisEngineError,
    EmptyLogContentError,
    InvalidAnalysisResponseError,
    NoMatchingLogsError,
)
from .ingest.grouping import count_by_level, get_request_ids
from .logging_config import setup_logging
from .pipeline import AnalysisResult, LogWeavePipeline
from .tracing.render import render_span_forest

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_ANALYSIS_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logweave",
        description="Correlate interleaved multi-service logs and explain what went wrong",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("log_file", help="Log file to analyze ('-' for stdin)")
    parser.add_argument("--request-id", help="Only analyze lines with this request/correlation ID")
    parser.add_argument("--architecture", help="Short description of the system architecture")
    parser.add_argument("--context", dest="user_context", help="What you already know about the incident")
    parser.add_argument("--expected", dest="expected_behavior", help="What should have happened")
    parser.add_argument("--time-window", help="Time window of interest")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip the analysis engine; show parse summary and span tree only"
    )
    parser.add_argument(
        "--orphans",
        choices=["drop", "promote"],
        help="How to show spans whose parent span is unknown (default from config)"
    )
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...)")

    return parser


def read_log_content(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8", errors="replace")


def format_report(result: AnalysisResult) -> str:
    """Human-readable report."""
    meta = result.metadata
    lines = [
        "=" * 60,
        "LogWeave Report",
        "=" * 60,
        f"Lines: {meta['analyzed_logs']} analyzed / {meta['total_logs']} total",
        f"Pattern: {meta['pattern_type']}",
        f"Services: {', '.join(meta['services'])}",
        f"Levels: {count_by_level(result.parsed_logs)}",
    ]

    if meta.get("request_id"):
        lines.append(f"Request ID: {meta['request_id']}")
    else:
        request_ids = get_request_ids(result.parsed_logs)
        if request_ids:
            lines.append(f"Request IDs: {', '.join(request_ids)}")

    analysis = result.analysis
    if analysis is not None:
        lines += ["", "--- Summary ---", analysis.summary]
        lines += ["", "--- Root Cause ---", analysis.causality_analysis.probable_root_cause]
        if analysis.causality_analysis.misleading_evidence:
            lines.append(f"Misleading: {analysis.causality_analysis.misleading_evidence}")

        if analysis.anomalies:
            lines += ["", "--- Anomalies ---"]
            for anomaly in analysis.anomalies:
                lines.append(f"[{anomaly.severity.value}] {anomaly.service}: {anomaly.issue}")

        if analysis.clock_issues:
            lines += ["", "--- Clock Issues ---"]
            for issue in analysis.clock_issues:
                lines.append(f"{issue.service}: {issue.issue}")

        if analysis.attention_priority:
            lines += ["", "--- Investigate First ---"]
            for item in sorted(analysis.attention_priority, key=lambda p: p.priority):
                lines.append(f"{item.priority}. {item.focus_area} - {item.reasoning}")

    lines += ["", "--- Request Flow ---", render_span_forest(result.span_forest)]
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the LogWeave CLI.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    setup_logging(log_level=args.log_level)

    try:
        content = read_log_content(args.log_file)
    except OSError as e:
        print(f"Error: cannot read {args.log_file}: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR

    pipeline = LogWeavePipeline(orphan_policy=args.orphans)

    try:
        if args.offline:
            result = pipeline.trace(content, request_id=args.request_id)
        else:
            result = pipeline.analyze(
                content,
                request_id=args.request_id,
                architecture=args.architecture,
                user_context=args.user_context,
                expected_behavior=args.expected_behavior,
                time_window=args.time_window,
            )
    except (EmptyLogContentError, NoMatchingLogsError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INPUT_ERROR
    except (InvalidAnalysisResponseError, AnalysisEngineError, ValueError) as e:
        logger.error(f"Analysis failed: {e}")
        print(f"Error: analysis failed: {e}", file=sys.stderr)
        return EXIT_ANALYSIS_ERROR

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(format_report(result))

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
