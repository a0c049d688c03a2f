"""
Consent-wall detection and consent cookie derivation.

Some regions are served an interstitial consent form instead of the watch
page. Posting the form is not needed: setting the CONSENT cookie to the value
the form would have produced is enough for the next request to go through.
"""

import random
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from log_events import evt
from player_response import PLAYER_RESPONSE_MARKERS
from transcript_errors import RequestBlocked

CONSENT_FORM_MARKER = 'action="https://consent.youtube.com/s"'
CONSENT_TOKEN_RE = re.compile(r'name="v" value="([^"]+)"')
CONSENT_COOKIE_NAME = "CONSENT"
CONSENT_COOKIE_DOMAIN = ".youtube.com"

# Pages served instead of content when the client is flagged as a bot
BLOCKED_SIGNATURES = ("unusual traffic", "recaptcha", "/sorry/")


class PageShape(Enum):
    PLAYER = "player"
    CONSENT_WALL = "consent_wall"
    AMBIGUOUS = "ambiguous"
    BLOCKED = "blocked"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ConsentCookie:
    value: str
    name: str = CONSENT_COOKIE_NAME
    domain: str = CONSENT_COOKIE_DOMAIN

    def attach(self, cookie_jar) -> None:
        """Set the cookie on a requests cookie jar. Re-applying the same value is a no-op."""
        cookie_jar.set(self.name, self.value, domain=self.domain)


class ConsentResolver:
    """Classifies fetched pages and derives the consent cookie from a consent wall."""

    def __init__(self, player_markers=PLAYER_RESPONSE_MARKERS):
        self.player_markers = tuple(player_markers)

    def is_consent_wall(self, body: str) -> bool:
        return CONSENT_FORM_MARKER in body

    def has_player_marker(self, body: str) -> bool:
        return any(marker in body for marker in self.player_markers)

    def classify(self, body: str) -> PageShape:
        """Decide what kind of page a watch-page body is."""
        consent = self.is_consent_wall(body)
        player = self.has_player_marker(body)

        if consent and player:
            return PageShape.AMBIGUOUS
        if consent:
            return PageShape.CONSENT_WALL
        if player:
            return PageShape.PLAYER

        lowered = body.lower()
        if any(signature in lowered for signature in BLOCKED_SIGNATURES):
            return PageShape.BLOCKED
        return PageShape.UNKNOWN

    def resolve(self, video_id: str, body: str) -> ConsentCookie:
        """
        Derive the consent cookie for a consent-wall body.

        Args:
            video_id: Video the page was fetched for (used for errors/logging)
            body: The consent-wall HTML

        Returns:
            ConsentCookie to attach before retrying

        Raises:
            RequestBlocked: body is not a recognizable consent wall
        """
        if not self.is_consent_wall(body):
            raise RequestBlocked(video_id)

        token = self.extract_token(body)
        if token is not None:
            value = f"YES+{token}"
        else:
            value = self.synthesize_value()

        evt("consent_wall_detected", video_id=video_id, has_token=token is not None)
        return ConsentCookie(value=value)

    @staticmethod
    def extract_token(body: str) -> Optional[str]:
        match = CONSENT_TOKEN_RE.search(body)
        return match.group(1) if match else None

    @staticmethod
    def synthesize_value(now: Optional[datetime] = None) -> str:
        """Build the conventional accept value: YES+cb.<date>-17-p0.en+FX+<3 digits>."""
        now = now or datetime.now(timezone.utc)
        return f"YES+cb.{now.strftime('%Y%m%d')}-17-p0.en+FX+{random.randint(100, 999)}"
