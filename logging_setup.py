"""
Core logging infrastructure for the transcript client.

Provides minimal JSON logging with thread-safe request context,
rate limiting, and third-party library noise suppression.
"""

import json
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Set
from collections import defaultdict


# Thread-local storage for request context
_local = threading.local()

_CONTEXT_FIELDS = ('video_id', 'request_id')
_RECORD_FIELDS = ('stage', 'event', 'outcome', 'dur_ms', 'detail')
_OPTIONAL_FIELDS = ('attempt', 'status_code', 'language_code', 'use_proxy')

_STANDARD_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'taskName', 'exc_info',
    'exc_text', 'stack_info', 'message', 'asctime',
}


def set_request_ctx(video_id: Optional[str] = None, request_id: Optional[str] = None):
    """
    Set thread-local context for log correlation.

    Args:
        video_id: Video identifier being processed
        request_id: Caller supplied correlation id
    """
    if not hasattr(_local, 'context'):
        _local.context = {}

    if video_id is not None:
        _local.context['video_id'] = video_id
    if request_id is not None:
        _local.context['request_id'] = request_id


def clear_request_ctx():
    """Clear thread-local context."""
    if hasattr(_local, 'context'):
        _local.context.clear()


def get_request_ctx() -> Dict[str, str]:
    """Get current thread-local context."""
    if not hasattr(_local, 'context'):
        return {}
    return _local.context.copy()


class JsonFormatter(logging.Formatter):
    """
    JSON formatter with standardized field order and context injection.

    Produces single-line JSON with stable schema:
    ts, lvl, video_id, request_id, stage, event, outcome, dur_ms, detail
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as single-line JSON."""
        try:
            dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
            timestamp = dt.strftime('%Y-%m-%dT%H:%M:%S') + f'.{int(dt.microsecond / 1000):03d}Z'

            log_data = {
                'ts': timestamp,
                'lvl': record.levelname
            }

            context = get_request_ctx()
            for field in _CONTEXT_FIELDS:
                # Explicit extra= values win over the thread-local context
                value = getattr(record, field, None) or context.get(field)
                if value is not None:
                    log_data[field] = value

            for field in _RECORD_FIELDS + _OPTIONAL_FIELDS:
                value = getattr(record, field, None)
                if value is not None:
                    log_data[field] = value

            # Any other extra fields passed via logger.info(extra=...)
            known = _STANDARD_ATTRS | set(_CONTEXT_FIELDS) | set(_RECORD_FIELDS) | set(_OPTIONAL_FIELDS)
            for attr_name, attr_value in record.__dict__.items():
                if attr_name.startswith('_') or attr_name in known or attr_value is None:
                    continue
                log_data[attr_name] = attr_value

            if 'detail' not in log_data and record.getMessage():
                log_data['detail'] = record.getMessage()

            if record.exc_info:
                log_data['exc_info'] = self.formatException(record.exc_info)

            return json.dumps(log_data, separators=(',', ':'), ensure_ascii=False, default=str)

        except Exception:
            # A formatting failure must never take the caller down with it
            return json.dumps({
                'ts': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
                'lvl': record.levelname,
                'detail': str(record.msg),
            })


class RateLimitFilter(logging.Filter):
    """
    Rate limiting filter to prevent log spam.

    Limits messages to `per_key` per key per `window_sec` sliding window.
    Emits a single suppression marker when the limit is exceeded.
    """

    def __init__(self, per_key: int = 5, window_sec: int = 60):
        super().__init__()
        self.per_key = per_key
        self.window_sec = window_sec
        self.counts: Dict[str, list] = defaultdict(list)
        self.suppressed: Set[str] = set()
        self._lock = threading.Lock()

    def _get_message_key(self, record: logging.LogRecord) -> str:
        """Key on level, event name and the first 100 chars of the message."""
        event = getattr(record, 'event', '') or ''
        message = record.getMessage()[:100]
        return f"{record.levelname}:{event}:{message}"

    def _cleanup_old_entries(self, key: str, now: float):
        cutoff = now - self.window_sec
        self.counts[key] = [ts for ts in self.counts[key] if ts > cutoff]

    def filter(self, record: logging.LogRecord) -> bool:
        key = self._get_message_key(record)
        now = time.time()

        with self._lock:
            self._cleanup_old_entries(key, now)

            if len(self.counts[key]) < self.per_key:
                self.counts[key].append(now)
                self.suppressed.discard(key)
                return True

            if key not in self.suppressed:
                self.suppressed.add(key)
                record.msg = f"{record.getMessage()} [suppressed]"
                record.args = ()
                return True

            return False


def configure_logging(log_level: str = "INFO", use_json: bool = True) -> logging.Logger:
    """
    Configure root logging with JSON formatting and noise suppression.

    Library modules never call this; it is meant for entry points such as the CLI.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        use_json: Whether to use JSON formatting (True) or basic formatting (False)

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    handler = logging.StreamHandler()

    if use_json:
        formatter = JsonFormatter()
        handler.addFilter(RateLimitFilter())
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    _suppress_library_noise()

    return root_logger


def _suppress_library_noise():
    """Suppress verbose logging from third-party libraries."""
    library_levels = {
        'urllib3': logging.WARNING,
        'requests': logging.WARNING,
        'charset_normalizer': logging.WARNING,
    }

    for library, level in library_levels.items():
        logging.getLogger(library).setLevel(level)


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (defaults to the root logger)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
