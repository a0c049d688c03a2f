"""
Watch-page and player-data fetching.

PageClient owns the consent-retry protocol: a consent wall on the first
attempt sets the consent cookie on the shared session and retries once; a
consent wall on the retry is terminal.
"""

from enum import Enum
from typing import Any, Dict, Optional

import requests

from consent_resolver import ConsentResolver, PageShape
from log_events import evt, mask_url
from logging_setup import get_logger
from transcript_errors import (
    ConsentCookieError,
    NetworkError,
    RequestBlocked,
    TooManyRequests,
    YouTubeDataUnparsable,
    YouTubeRequestFailed,
)

logger = get_logger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
INNERTUBE_PLAYER_URL = "https://www.youtube.com/youtubei/v1/player"
INNERTUBE_CLIENT_NAME = "WEB"
INNERTUBE_CLIENT_VERSION = "2.20231219.04.00"

DEFAULT_TIMEOUT = 15


class FetchState(Enum):
    FIRST_ATTEMPT = "first_attempt"
    RETRIED_ONCE = "retried_once"


def check_response(video_id: str, response, proxy_config=None) -> None:
    """Map a non-success HTTP response onto the error taxonomy."""
    status = response.status_code
    if status == 200:
        return
    if status == 429:
        raise TooManyRequests(video_id)
    if status == 403:
        raise RequestBlocked(video_id, proxy_config=proxy_config)
    raise YouTubeRequestFailed(video_id, status, url=mask_url(getattr(response, "url", "") or ""))


class PageClient:
    """Fetches the raw watch page (or player JSON) for a video id over a shared session."""

    def __init__(self, session, timeout: int = DEFAULT_TIMEOUT, proxy_config=None,
                 resolver: Optional[ConsentResolver] = None):
        self.session = session
        self.timeout = timeout
        self.proxy_config = proxy_config
        self.resolver = resolver or ConsentResolver()

    def fetch(self, video_id: str) -> str:
        """
        Fetch the watch page HTML, resolving a consent wall at most once.

        Args:
            video_id: Video to fetch

        Returns:
            The watch page HTML containing the player response

        Raises:
            ConsentCookieError: consent wall served again after the retry
            RequestBlocked: bot check page, HTTP 403, or an unrecognizable wall
            TooManyRequests: HTTP 429
            YouTubeRequestFailed: other non-success status
            NetworkError: connection-level failure
            YouTubeDataUnparsable: page is neither a player page nor a known wall
        """
        state = FetchState.FIRST_ATTEMPT
        while True:
            attempt = 1 if state is FetchState.FIRST_ATTEMPT else 2
            evt("page_fetch_start", video_id=video_id, attempt=attempt)
            body = self._get_watch_page(video_id)
            shape = self.resolver.classify(body)

            if shape is PageShape.PLAYER:
                return body

            if shape is PageShape.CONSENT_WALL:
                if state is FetchState.RETRIED_ONCE:
                    evt("consent_retry_failed", video_id=video_id, attempt=attempt)
                    raise ConsentCookieError(video_id, proxy_config=self.proxy_config)
                cookie = self.resolver.resolve(video_id, body)
                cookie.attach(self.session.cookies)
                evt("consent_cookie_set", video_id=video_id, cookie_domain=cookie.domain)
                state = FetchState.RETRIED_ONCE
                continue

            if shape is PageShape.AMBIGUOUS:
                raise YouTubeDataUnparsable(
                    video_id, "page carries both a consent form and a player response", excerpt=body
                )
            if shape is PageShape.BLOCKED:
                logger.warning(f"Bot check page served for {video_id} on attempt {attempt}")
                raise RequestBlocked(video_id, proxy_config=self.proxy_config)
            raise YouTubeDataUnparsable(video_id, "unrecognized watch page", excerpt=body)

    def fetch_player_data(self, video_id: str) -> Dict[str, Any]:
        """Fetch the player response from the internal player API as a decoded JSON object."""
        payload = {
            "context": {
                "client": {
                    "clientName": INNERTUBE_CLIENT_NAME,
                    "clientVersion": INNERTUBE_CLIENT_VERSION,
                    "hl": "en",
                    "gl": "US",
                }
            },
            "videoId": video_id,
        }
        evt("page_fetch_start", video_id=video_id, attempt=1, source="innertube")
        try:
            response = self.session.post(INNERTUBE_PLAYER_URL, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(video_id, e) from e
        check_response(video_id, response, self.proxy_config)

        try:
            data = response.json()
        except ValueError as e:
            raise YouTubeDataUnparsable(
                video_id, "player API response is not valid JSON", excerpt=response.text
            ) from e
        if not isinstance(data, dict):
            raise YouTubeDataUnparsable(video_id, "player API response is not a JSON object", excerpt=response.text)
        return data

    def _get_watch_page(self, video_id: str) -> str:
        url = WATCH_URL.format(video_id=video_id)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(video_id, e) from e
        check_response(video_id, response, self.proxy_config)
        return response.text
