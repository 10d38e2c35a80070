from __future__ import annotations

import json
import logging
import unittest

from webhook_trader.common.logging import log_event, sanitize_text, sanitize_value
from webhook_trader.runtime.logging import JsonFormatter


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class SanitizeTests(unittest.TestCase):
    def test_url_query_is_stripped(self) -> None:
        text = "request to https://rpc.example.com/v1?api-key=abc123 failed."
        self.assertEqual(sanitize_text(text), "request to https://rpc.example.com/v1 failed.")

    def test_api_key_assignment_is_masked(self) -> None:
        self.assertEqual(sanitize_text("api_key=abc123 rejected"), "api_key=*** rejected")

    def test_secret_fields_are_masked(self) -> None:
        payload = {"secret_key": "[1,2,3]", "nested": {"jupiter_api_key": "abc"}, "amount": 5}
        self.assertEqual(
            sanitize_value(payload),
            {"secret_key": "***", "nested": {"jupiter_api_key": "***"}, "amount": 5},
        )


class JsonFormatterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = logging.getLogger("test.logging")
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self.handler = _CaptureHandler()
        self.logger.addHandler(self.handler)

    def tearDown(self) -> None:
        self.logger.removeHandler(self.handler)

    def test_event_fields_are_rendered(self) -> None:
        log_event(
            self.logger,
            level="info",
            event="swap_confirmed",
            message="Swap executed successfully",
            tx_signature="sig-1",
            in_amount=1_000_000_000,
        )

        payload = json.loads(JsonFormatter().format(self.handler.records[0]))

        self.assertEqual(payload["level"], "INFO")
        self.assertEqual(payload["event"], "swap_confirmed")
        self.assertEqual(payload["message"], "Swap executed successfully")
        self.assertEqual(payload["tx_signature"], "sig-1")
        self.assertEqual(payload["in_amount"], 1_000_000_000)
        self.assertIn("timestamp", payload)

    def test_exception_level_attaches_traceback(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            log_event(self.logger, level="exception", event="swap_failed", message="Error executing swap")

        payload = json.loads(JsonFormatter().format(self.handler.records[0]))

        self.assertEqual(payload["level"], "ERROR")
        self.assertIn("RuntimeError: boom", payload["exception"])


if __name__ == "__main__":
    unittest.main()
