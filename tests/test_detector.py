"""
Service-Pattern Detector Tests

Strategy priority, per-line extraction and the unknown fallback.
"""

import sys
import unittest
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from logweave.ingest.detector import (
    SERVICE_STRATEGIES,
    ServiceStrategy,
    detect_service_pattern,
)
from logweave.models import PatternType


class TestStrategyCatalog(unittest.TestCase):

    def test_catalog_order(self):
        self.assertEqual(
            [s.type for s in SERVICE_STRATEGIES],
            [PatternType.KEY_VALUE, PatternType.JSON, PatternType.BRACKETED, PatternType.ORCHESTRATION],
        )

    def test_custom_catalog(self):
        always = ServiceStrategy(
            type=PatternType.BRACKETED,
            trigger=lambda line: True,
            extract=lambda line: "fixed",
        )
        pattern = detect_service_pattern(["service=api hello"], strategies=[always])
        self.assertEqual(pattern.type, PatternType.BRACKETED)
        self.assertEqual(pattern.extract("anything"), "fixed")


class TestDetection(unittest.TestCase):

    def test_key_value(self):
        pattern = detect_service_pattern(["2024-02-07 09:15:22.103 service=api-gateway hi"])
        self.assertEqual(pattern.type, PatternType.KEY_VALUE)
        self.assertEqual(pattern.extract("service=order-service level=INFO"), "order-service")
        self.assertIsNone(pattern.extract("no service key here"))

    def test_any_sampled_line_triggers(self):
        sample = ['{"service": "cart"}', "[auth] login", "service=api hello"]
        self.assertEqual(detect_service_pattern(sample).type, PatternType.KEY_VALUE)

    def test_key_value_does_not_read_json_keys(self):
        pattern = detect_service_pattern(['{"service": "cart"}', "service=api hello"])
        self.assertIsNone(pattern.extract('{"service": "cart"}'))

    def test_json(self):
        pattern = detect_service_pattern(['  {"service": "cart", "msg": "ok"}', "plain"])
        self.assertEqual(pattern.type, PatternType.JSON)
        self.assertEqual(pattern.extract('{"service": "cart"}'), "cart")
        self.assertEqual(pattern.extract('{"service_name": "billing"}'), "billing")
        self.assertEqual(pattern.extract('{"app": "web"}'), "web")
        self.assertEqual(pattern.extract('{"service": "", "app": "web"}'), "web")

    def test_json_extraction_is_total(self):
        pattern = detect_service_pattern(['{"service": "cart"}'])
        self.assertIsNone(pattern.extract("not json at all"))
        self.assertIsNone(pattern.extract('{"service": "cart"'))
        self.assertIsNone(pattern.extract('["service", "cart"]'))
        self.assertIsNone(pattern.extract('{"level": "INFO"}'))
        self.assertIsNone(pattern.extract('{"a": ' + "[" * 200000))

    def test_bracketed(self):
        pattern = detect_service_pattern(["[auth-service] token issued", "[cart] added item"])
        self.assertEqual(pattern.type, PatternType.BRACKETED)
        self.assertEqual(pattern.extract("[cart] added item"), "cart")
        self.assertIsNone(pattern.extract("  [cart] indented"))

    def test_bracketed_beats_orchestration(self):
        sample = ["payment-deployment-7f9c ready", "[auth] login"]
        self.assertEqual(detect_service_pattern(sample).type, PatternType.BRACKETED)

    def test_orchestration(self):
        pattern = detect_service_pattern(["payment-deployment-7f9c ready"])
        self.assertEqual(pattern.type, PatternType.ORCHESTRATION)
        self.assertEqual(pattern.extract("payment-deployment-7f9c ready"), "payment")
        self.assertEqual(pattern.extract("pod checkout-api-pod-x1 started"), "checkout-api")
        self.assertIsNone(pattern.extract("no orchestration name"))

    def test_unknown_fallback(self):
        pattern = detect_service_pattern(["just some text", "more text"])
        self.assertEqual(pattern.type, PatternType.UNKNOWN)
        self.assertEqual(pattern.extract("anything"), "unknown-service")

    def test_empty_sample(self):
        self.assertEqual(detect_service_pattern([]).type, PatternType.UNKNOWN)


if __name__ == "__main__":
    unittest.main()
