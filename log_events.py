"""
Event helper functions for structured JSON logging.

This module provides consistent event emission and stage timing utilities
for the transcript pipeline (page fetch, player response, catalog, timed text).
"""

import logging
import time
from typing import Optional
from urllib.parse import urlencode, urlparse, urlunparse, parse_qs

# Dedicated channel for pipeline events; propagates to whatever the host app configured
logger = logging.getLogger('transcript.events')

SENSITIVE_QUERY_PARAMS = {'key', 'token', 'auth', 'session', 'sig', 'signature', 'pot'}


def evt(event: str, level: int = logging.INFO, **fields) -> None:
    """
    Emit a structured event with consistent field naming.

    Args:
        event: The event type/name
        level: Logging level for the event (INFO unless stated)
        **fields: Additional fields to include in the event

    Example:
        evt("consent_wall_detected", video_id="abc123", attempt=1)
        evt("stage_result", stage="page_fetch", outcome="success", dur_ms=1250)
    """
    event_data = {"event": event}
    event_data.update(fields)

    logger.log(level, "", extra=event_data)


def mask_url(url: str) -> str:
    """Mask sensitive query parameters in URLs for logging."""
    try:
        parsed = urlparse(url)
        if not parsed.query:
            return url
        params = parse_qs(parsed.query, keep_blank_values=True)
        masked_params = {
            key: ['***MASKED***'] * len(values) if key.lower() in SENSITIVE_QUERY_PARAMS else values
            for key, values in params.items()
        }
        return urlunparse(parsed._replace(query=urlencode(masked_params, doseq=True)))
    except ValueError:
        return f"{url.split('?')[0]}?***MASKED_QUERY***" if '?' in url else url


class StageTimer:
    """
    Context manager for automatic stage timing with structured logging.

    Emits stage_start event on entry and stage_result event on exit,
    with automatic duration calculation. Exceptions always propagate.

    Example:
        with StageTimer("timedtext", video_id="abc123", language_code="en"):
            fetch_timed_text()
    """

    def __init__(self, stage: str, **context_fields):
        """
        Initialize the stage timer.

        Args:
            stage: The name of the stage being timed
            **context_fields: Additional context fields (video_id, language_code, ...)
        """
        self.stage = stage
        self.context_fields = context_fields
        self.start_time: Optional[float] = None

    def __enter__(self):
        self.start_time = time.time()
        evt("stage_start", stage=self.stage, **self.context_fields)
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if self.start_time is None:
            duration_ms = 0
        else:
            duration_ms = int((time.time() - self.start_time) * 1000)

        event_fields = {
            "stage": self.stage,
            "outcome": "success" if exc_type is None else "error",
            "dur_ms": duration_ms,
            **self.context_fields
        }

        if exc_type is not None:
            event_fields["detail"] = f"{exc_type.__name__}: {exc_value}"

        evt("stage_result", **event_fields)

        # Don't suppress the exception - let it propagate
        return False

