"""
HTTP session factory.

Builds the single `requests.Session` that every transcript call shares. The
session carries identity headers, the cookie jar, proxies and connection-level
retries; the transcript core only ever consumes it.
"""

from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from logging_setup import get_logger
from proxy_config import ProxyConfig

logger = get_logger(__name__)


def make_http_session(config, proxy_config: Optional[ProxyConfig] = None, cookie_jar=None) -> requests.Session:
    """Create the shared HTTP session.

    Retries cover connection failures only. HTTP statuses (429, 5xx) always
    reach the caller so they can be mapped onto transcript errors.

    Args:
        config: TranscriptConfig with headers and retry counts
        proxy_config: Optional proxy to route every request through
        cookie_jar: Optional cookie jar loaded from a cookies.txt file

    Returns:
        A configured requests.Session
    """
    session = requests.Session()

    retry_strategy = Retry(
        total=config.connect_retries,
        connect=config.connect_retries,
        read=0,
        status=0,
        allowed_methods=["GET", "POST"],
        backoff_factor=0.5,
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        "User-Agent": config.user_agent,
        "Accept-Language": config.accept_language,
    })

    if proxy_config is not None:
        session.proxies.update(proxy_config.to_requests_dict())
        if proxy_config.prevent_keeping_connections_alive:
            session.headers.update({"Connection": "close"})
        logger.info(f"HTTP session using proxy: {proxy_config.to_dict()}")

    if cookie_jar is not None:
        session.cookies.update(cookie_jar)
        logger.info(f"HTTP session loaded {len(cookie_jar)} cookies")

    return session
