"""
Pipeline & CLI Tests

End-to-end runs over the fixtures with a fake analyzer, the offline trace
path, error mapping and the command-line entry point.
"""

import sys
import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent))

import analyze
from logweave.config_loader import config
from logweave.exceptions import (
    AnalysisEngineError,
    EmptyLogContentError,
    InvalidAnalysisResponseError,
    NoMatchingLogsError,
)
from logweave.analysis.schemas import AnalysisRequest
from logweave.main import main
from logweave.pipeline import LogWeavePipeline
from logweave.tracing.span_tree import NO_SPAN_DATA_REASON

DATA_DIR = Path(__file__).parent / "data"
CHECKOUT_LOG = DATA_DIR / "checkout.log"
TRACED_LOG = DATA_DIR / "traced.log"


def traced_analysis():
    """Engine document for traced.log; events carry no IDs of their own."""
    return {
        "timeline": [
            {"timestamp": "2024-02-07T09:15:22.103Z", "service": "api-gateway",
             "event": "Order request received", "confidence": "high"},
            {"timestamp": "2024-02-07T09:15:22.110Z", "service": "order-service",
             "event": "Order creation started", "confidence": "high"},
            {"timestamp": "2024-02-07T09:15:22.900Z", "service": "payment-service",
             "event": "Card declined by issuer", "confidence": "medium"},
            {"timestamp": "2024-02-07T09:15:24.010Z", "service": "api-gateway",
             "event": "Responded 502 to client", "confidence": "high"},
        ],
        "anomalies": [
            {"service": "payment-service", "issue": "Card declined", "severity": "critical"},
        ],
        "clock_issues": [],
        "causality_analysis": {"probable_root_cause": "Issuer declined the card"},
        "attention_priority": [
            {"priority": 1, "focus_area": "payment-service", "reasoning": "first failure"},
        ],
        "summary": "Payment was declined and the order failed.",
    }


def run_cli(argv):
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestConfig(unittest.TestCase):

    def test_defaults(self):
        self.assertEqual(config.get('ingest.sample_size'), 20)
        self.assertEqual(config.get('tracing.orphan_policy'), "drop")
        self.assertEqual(config.get('tracing.missing.key', 'fallback'), 'fallback')
        self.assertEqual(config.get_section('no_such_section'), {})


class TestPrepare(unittest.TestCase):

    def setUp(self):
        self.pipeline = LogWeavePipeline(analyzer=MagicMock())

    def test_rejects_missing_content(self):
        for content in (None, "", "   \n\n", 42):
            with self.assertRaises(EmptyLogContentError):
                self.pipeline.prepare(content)

    def test_empty_content_is_a_value_error(self):
        with self.assertRaises(ValueError):
            self.pipeline.prepare("")

    def test_no_matching_request_id(self):
        with self.assertRaises(NoMatchingLogsError) as ctx:
            self.pipeline.prepare(CHECKOUT_LOG.read_text(), request_id="nope")
        self.assertEqual(ctx.exception.request_id, "nope")
        self.assertEqual(str(ctx.exception), "No logs found for request_id=nope")

    def test_metadata(self):
        prepared = self.pipeline.prepare(CHECKOUT_LOG.read_text(), request_id="abc123")
        self.assertEqual(prepared.metadata(), {
            "total_logs": 15,
            "analyzed_logs": 13,
            "services": ["database", "api-gateway", "payment-service", "inventory-service"],
            "pattern_type": "key_value",
            "request_id": "abc123",
        })
        self.assertNotIn("zzz999", json.dumps(prepared.grouped_logs))

    def test_without_filter(self):
        prepared = self.pipeline.prepare(CHECKOUT_LOG.read_text())
        self.assertEqual(len(prepared.analyzed_logs), 15)
        self.assertIsNone(prepared.request_id)


class TestAnalyze(unittest.TestCase):

    def test_full_run(self):
        analyzer = MagicMock()
        analyzer.analyze.return_value = traced_analysis()
        pipeline = LogWeavePipeline(analyzer=analyzer, orphan_policy="drop")

        result = pipeline.analyze(
            TRACED_LOG.read_text(),
            request_id="ord-77",
            user_context="Card payments started failing",
        )

        request = analyzer.analyze.call_args[0][0]
        self.assertIsInstance(request, AnalysisRequest)
        self.assertEqual(request.user_context, "Card payments started failing")
        self.assertEqual(list(request.grouped_logs)[0], "api-gateway")

        forest = result.span_forest
        self.assertEqual([s.span_id for s in forest.iter_spans()], ["span-001", "span-002", "span-004"])
        self.assertEqual(forest.spans["span-001"].duration_ms, 1907)
        self.assertTrue(forest.spans["span-004"].has_error)
        self.assertFalse(forest.spans["span-001"].has_error)

        data = result.to_dict()
        json.dumps(data)
        self.assertTrue(data["success"])
        self.assertEqual(data["metadata"]["request_id"], "ord-77")
        self.assertEqual(len(data["parsedLogs"]), 9)
        self.assertEqual(data["analysis"]["summary"], "Payment was declined and the order failed.")
        self.assertEqual(data["spanForest"]["roots"], ["span-001"])

    def test_no_span_data(self):
        analyzer = MagicMock()
        analyzer.analyze.return_value = traced_analysis()
        result = LogWeavePipeline(analyzer=analyzer).analyze(CHECKOUT_LOG.read_text())
        self.assertFalse(result.span_forest.available)
        self.assertEqual(result.to_dict()["spanForest"]["reason"], NO_SPAN_DATA_REASON)

    def test_invalid_document(self):
        analyzer = MagicMock()
        analyzer.analyze.return_value = {"summary": "incomplete"}
        with self.assertRaises(InvalidAnalysisResponseError):
            LogWeavePipeline(analyzer=analyzer).analyze(CHECKOUT_LOG.read_text())

    def test_engine_error_propagates(self):
        analyzer = MagicMock()
        analyzer.analyze.side_effect = AnalysisEngineError("engine down")
        with self.assertRaises(AnalysisEngineError):
            LogWeavePipeline(analyzer=analyzer).analyze(CHECKOUT_LOG.read_text())

    def test_input_errors_skip_the_engine(self):
        analyzer = MagicMock()
        with self.assertRaises(NoMatchingLogsError):
            LogWeavePipeline(analyzer=analyzer).analyze(CHECKOUT_LOG.read_text(), request_id="nope")
        analyzer.analyze.assert_not_called()


class TestTrace(unittest.TestCase):

    def test_offline_trace(self):
        result = LogWeavePipeline(orphan_policy="promote").trace(TRACED_LOG.read_text())
        self.assertIsNone(result.analysis)
        self.assertEqual([s.span_id for s in result.span_forest.root_spans], ["span-001", "span-009"])

        data = result.to_dict()
        self.assertIsNone(data["analysis"])
        self.assertEqual(data["spanForest"]["orphans"], ["span-009"])
        self.assertEqual(len(data["spanForest"]["spans"]), 5)


class TestCLI(unittest.TestCase):

    def test_offline_report(self):
        code, out, _ = run_cli([str(TRACED_LOG), "--offline", "--log-level", "ERROR"])
        self.assertEqual(code, 0)
        self.assertIn("--- Request Flow ---", out)
        self.assertIn("api-gateway [span-001] 1907ms", out)
        self.assertIn("span-009", out)
        self.assertIn("Request IDs: ord-77", out)

    def test_offline_without_spans(self):
        code, out, _ = run_cli([str(CHECKOUT_LOG), "--offline", "--request-id", "abc123", "--log-level", "ERROR"])
        self.assertEqual(code, 0)
        self.assertIn("Request ID: abc123", out)
        self.assertIn(NO_SPAN_DATA_REASON, out)

    def test_offline_json(self):
        code, out, _ = run_cli([str(TRACED_LOG), "--offline", "--json", "--orphans", "promote",
                                "--log-level", "ERROR"])
        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["spanForest"]["roots"], ["span-001", "span-009"])
        self.assertEqual(data["metadata"]["total_logs"], 9)

    def test_empty_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "empty.log"
            path.write_text("\n\n")
            code, out, err = run_cli([str(path), "--offline", "--log-level", "ERROR"])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("Missing or invalid log content", err)

    def test_unknown_request_id(self):
        code, _, err = run_cli([str(CHECKOUT_LOG), "--offline", "--request-id", "nope", "--log-level", "ERROR"])
        self.assertEqual(code, 1)
        self.assertIn("No logs found for request_id=nope", err)

    def test_missing_file(self):
        code, _, err = run_cli([str(DATA_DIR / "does-not-exist.log"), "--offline", "--log-level", "ERROR"])
        self.assertEqual(code, 1)
        self.assertIn("cannot read", err)

    def test_engine_failure_exit_code(self):
        llm = MagicMock()
        llm.invoke.side_effect = RuntimeError("quota exceeded")
        with patch("logweave.analysis.analyzer.get_llm_client", return_value=llm):
            code, _, err = run_cli([str(CHECKOUT_LOG), "--log-level", "CRITICAL"])
        self.assertEqual(code, 2)
        self.assertIn("quota exceeded", err)

    def test_full_report(self):
        llm = MagicMock()
        llm.invoke.return_value = MagicMock(content=json.dumps(traced_analysis()))
        with patch("logweave.analysis.analyzer.get_llm_client", return_value=llm):
            code, out, _ = run_cli([str(TRACED_LOG), "--log-level", "CRITICAL"])
        self.assertEqual(code, 0)
        self.assertIn("--- Root Cause ---\nIssuer declined the card", out)
        self.assertIn("[critical] payment-service: Card declined", out)
        self.assertIn("1. payment-service - first failure", out)
        self.assertIn("payment-service [span-004] 0ms ERROR - 1 event", out)



class TestLauncher(unittest.TestCase):
    """Root analyze.py reads the API key variable name from config."""

    @staticmethod
    def renamed_key(key, default=None):
        if key == 'analysis.llm.api_key_env':
            return "LOGWEAVE_TEST_API_KEY"
        return default

    def run_launcher(self, env):
        argv = ["analyze.py", str(CHECKOUT_LOG)]
        with patch.object(config, "get", side_effect=self.renamed_key), \
                patch.dict("os.environ", env, clear=True), \
                patch.object(sys, "argv", argv), \
                patch("dotenv.load_dotenv"), \
                patch("logweave.main.main", return_value=0) as run_cli, \
                redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                analyze.main()
        return ctx.exception.code, run_cli

    def test_configured_variable_is_used(self):
        code, run_cli = self.run_launcher({"LOGWEAVE_TEST_API_KEY": "secret"})
        self.assertEqual(code, 0)
        run_cli.assert_called_once_with([str(CHECKOUT_LOG)])

    def test_default_variable_alone_is_not_enough(self):
        code, run_cli = self.run_launcher({"GEMINI_API_KEY": "secret"})
        self.assertEqual(code, 1)
        run_cli.assert_not_called()


if __name__ == "__main__":
    unittest.main()
