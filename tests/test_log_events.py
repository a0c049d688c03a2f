"""
Unit tests for log_events.py event helper functions.

Tests the evt() function, URL masking and the StageTimer context manager for:
- Consistent event emission
- Exception handling
- Field naming compliance
"""

import json
import logging
import time
import unittest
from io import StringIO

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import log_events
from logging_setup import JsonFormatter, clear_request_ctx, set_request_ctx


class CapturingTestCase(unittest.TestCase):
    """Routes root logging into a buffer formatted with JsonFormatter."""

    def setUp(self):
        self.log_buffer = StringIO()
        self.handler = logging.StreamHandler(self.log_buffer)
        self.handler.setFormatter(JsonFormatter())

        self.logger = logging.getLogger()
        self.saved_handlers = self.logger.handlers[:]
        self.saved_level = self.logger.level
        for handler in self.saved_handlers:
            self.logger.removeHandler(handler)
        self.logger.addHandler(self.handler)
        self.logger.setLevel(logging.INFO)
        clear_request_ctx()

    def tearDown(self):
        self.logger.removeHandler(self.handler)
        self.handler.close()
        for handler in self.saved_handlers:
            self.logger.addHandler(handler)
        self.logger.setLevel(self.saved_level)
        clear_request_ctx()

    def events(self):
        return [json.loads(line) for line in self.log_buffer.getvalue().splitlines() if line.strip()]


class TestEvtFunction(CapturingTestCase):
    """Test the evt() function for consistent event emission."""

    def test_evt_basic_event_emission(self):
        log_events.evt("consent_wall_detected", video_id="abc123", has_token=True)

        events = self.events()
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["event"], "consent_wall_detected")
        self.assertEqual(events[0]["video_id"], "abc123")
        self.assertTrue(events[0]["has_token"])

    def test_evt_uses_request_context(self):
        set_request_ctx(video_id="ctx-video", request_id="r-1")
        log_events.evt("page_fetch_start", attempt=1)

        event = self.events()[0]
        self.assertEqual(event["video_id"], "ctx-video")
        self.assertEqual(event["request_id"], "r-1")
        self.assertEqual(event["attempt"], 1)

    def test_evt_respects_level(self):
        self.logger.setLevel(logging.WARNING)
        log_events.evt("quiet_event")
        log_events.evt("loud_event", level=logging.WARNING)

        names = [e["event"] for e in self.events()]
        self.assertEqual(names, ["loud_event"])
        self.assertEqual(self.events()[0]["lvl"], "WARNING")


class TestMaskUrl(unittest.TestCase):

    def test_masks_sensitive_params(self):
        masked = log_events.mask_url("https://www.youtube.com/api/timedtext?v=abc&sig=SECRET&lang=en")
        self.assertNotIn("SECRET", masked)
        self.assertIn("v=abc", masked)
        self.assertIn("lang=en", masked)

    def test_url_without_query_unchanged(self):
        url = "https://www.youtube.com/watch"
        self.assertEqual(log_events.mask_url(url), url)


class TestStageTimer(CapturingTestCase):
    """Test the StageTimer context manager."""

    def test_stage_timer_success_case(self):
        with log_events.StageTimer("timedtext", language_code="en"):
            time.sleep(0.01)

        events = self.events()
        self.assertEqual([e["event"] for e in events], ["stage_start", "stage_result"])
        result = events[1]
        self.assertEqual(result["stage"], "timedtext")
        self.assertEqual(result["outcome"], "success")
        self.assertEqual(result["language_code"], "en")
        self.assertIsInstance(result["dur_ms"], int)
        self.assertGreaterEqual(result["dur_ms"], 0)

    def test_stage_timer_exception_handling(self):
        with self.assertRaises(ValueError):
            with log_events.StageTimer("player_response", attempt=2):
                raise ValueError("Test error message")

        result = self.events()[-1]
        self.assertEqual(result["event"], "stage_result")
        self.assertEqual(result["outcome"], "error")
        self.assertEqual(result["detail"], "ValueError: Test error message")
        self.assertEqual(result["attempt"], 2)

    def test_stage_timer_different_exception_types(self):
        with self.assertRaises(ConnectionError):
            with log_events.StageTimer("connection_test"):
                raise ConnectionError("Connection failed")

        with self.assertRaises(TimeoutError):
            with log_events.StageTimer("timeout_test"):
                raise TimeoutError("Request timed out")

        log_output = self.log_buffer.getvalue()
        self.assertIn("ConnectionError", log_output)
        self.assertIn("Connection failed", log_output)
        self.assertIn("TimeoutError", log_output)
        self.assertIn("Request timed out", log_output)


if __name__ == '__main__':
    unittest.main()
