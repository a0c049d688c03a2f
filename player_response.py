"""
Locate, decode and validate the player configuration embedded in a watch page.

The watch page assigns the player response to a JavaScript variable. The
variable name has changed over the years, so the candidates live in one
ordered table and the first one present in the page wins.
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from log_events import evt
from transcript_errors import (
    AgeRestricted,
    VideoPrivate,
    VideoUnavailable,
    VideoUnplayable,
    YouTubeDataUnparsable,
)

# Priority order matters: the bare name is a substring of the others
PLAYER_RESPONSE_MARKERS = (
    "var ytInitialPlayerResponse",
    'window["ytInitialPlayerResponse"]',
    "ytInitialPlayerResponse",
)

AGE_REASON_RE = re.compile(r"\bage\b|inappropriate", re.IGNORECASE)
PRIVATE_REASON_RE = re.compile(r"\bprivate\b", re.IGNORECASE)
UNAVAILABLE_REASON = "Video unavailable"


class PlayabilityStatus(Enum):
    OK = "OK"
    ERROR = "ERROR"
    LOGIN_REQUIRED = "LOGIN_REQUIRED"
    UNPLAYABLE = "UNPLAYABLE"
    AGE_RESTRICTED = "AGE_RESTRICTED"
    UNAVAILABLE = "UNAVAILABLE"

    @classmethod
    def from_upstream(cls, value: Optional[str]) -> 'PlayabilityStatus':
        """Map the upstream status string; anything unrecognized counts as unavailable."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNAVAILABLE


@dataclass(frozen=True)
class PlayerResponse:
    """
    Decoded player configuration.

    Every accessor returns None when upstream left the field out; nothing is
    assumed present.
    """

    video_id: str
    data: Dict[str, Any]

    def _section(self, key: str) -> Optional[Dict[str, Any]]:
        value = self.data.get(key)
        return value if isinstance(value, dict) else None

    @property
    def playability(self) -> Optional[Dict[str, Any]]:
        return self._section("playabilityStatus")

    @property
    def status(self) -> Optional[PlayabilityStatus]:
        playability = self.playability
        if playability is None or "status" not in playability:
            return None
        return PlayabilityStatus.from_upstream(playability.get("status"))

    @property
    def reason(self) -> Optional[str]:
        playability = self.playability or {}
        reason = playability.get("reason")
        return reason if isinstance(reason, str) else None

    @property
    def sub_reasons(self) -> List[str]:
        runs = (
            ((self.playability or {}).get("errorScreen") or {})
            .get("playerErrorMessageRenderer", {})
            .get("subreason", {})
            .get("runs", [])
        )
        if not isinstance(runs, list):
            return []
        return [run["text"] for run in runs if isinstance(run, dict) and isinstance(run.get("text"), str)]

    @property
    def captions_renderer(self) -> Optional[Dict[str, Any]]:
        captions = self._section("captions") or {}
        renderer = captions.get("playerCaptionsTracklistRenderer")
        return renderer if isinstance(renderer, dict) else None

    @property
    def video_details(self) -> Optional[Dict[str, Any]]:
        return self._section("videoDetails")

    @property
    def microformat(self) -> Optional[Dict[str, Any]]:
        microformat = self._section("microformat") or {}
        renderer = microformat.get("playerMicroformatRenderer")
        return renderer if isinstance(renderer, dict) else None

    @property
    def streaming_data(self) -> Optional[Dict[str, Any]]:
        return self._section("streamingData")


class PlayerResponseParser:
    """Extracts the player response from a watch page and checks playability."""

    def __init__(self, markers=PLAYER_RESPONSE_MARKERS):
        self.markers = tuple(markers)

    def parse(self, video_id: str, document: str) -> PlayerResponse:
        """
        Decode the embedded player response and reject unplayable videos.

        Raises:
            YouTubeDataUnparsable: no marker found, or the object does not decode
            AgeRestricted, VideoPrivate, VideoUnplayable, VideoUnavailable:
                playability status is not OK
        """
        player_response = self.decode(video_id, document)
        self.assert_playable(player_response)
        return player_response

    def from_player_data(self, video_id: str, data: Any) -> PlayerResponse:
        """Wrap an already-decoded player object (internal API response) and validate it."""
        if not isinstance(data, dict):
            raise YouTubeDataUnparsable(video_id, "player data is not a JSON object", excerpt=repr(data))
        player_response = PlayerResponse(video_id=video_id, data=data)
        self.assert_playable(player_response)
        return player_response

    def decode(self, video_id: str, document: str) -> PlayerResponse:
        marker, span = self.locate(video_id, document)
        try:
            data = json.loads(span)
        except ValueError as e:
            raise YouTubeDataUnparsable(
                video_id, f"player response after {marker!r} is not valid JSON ({e})", excerpt=span
            ) from e

        if not isinstance(data, dict):
            raise YouTubeDataUnparsable(video_id, "player response is not a JSON object", excerpt=span)

        evt("player_response_located", video_id=video_id, marker=marker, size=len(span))
        return PlayerResponse(video_id=video_id, data=data)

    def locate(self, video_id: str, document: str):
        """Return (marker, json_text) for the first marker present in the document."""
        for marker in self.markers:
            index = document.find(marker)
            if index == -1:
                continue
            start = document.find("{", index + len(marker))
            if start == -1:
                continue
            span = extract_object(document, start)
            if span is None:
                raise YouTubeDataUnparsable(
                    video_id, f"unbalanced braces after {marker!r}", excerpt=document[start:]
                )
            return marker, span

        raise YouTubeDataUnparsable(video_id, "player response marker not found", excerpt=document)

    def assert_playable(self, player_response: PlayerResponse) -> None:
        video_id = player_response.video_id
        status = player_response.status
        if status is None:
            raise YouTubeDataUnparsable(video_id, "playabilityStatus missing from player response")
        if status is PlayabilityStatus.OK:
            return

        reason = player_response.reason
        evt("playability_rejected", video_id=video_id, status=status.value, reason=reason)
        raise self._error_for(video_id, status, reason, player_response.sub_reasons)

    @staticmethod
    def _error_for(video_id: str, status: PlayabilityStatus, reason: Optional[str], sub_reasons: List[str]):
        text = reason or ""
        if status in (PlayabilityStatus.LOGIN_REQUIRED, PlayabilityStatus.AGE_RESTRICTED):
            if status is PlayabilityStatus.AGE_RESTRICTED or AGE_REASON_RE.search(text):
                return AgeRestricted(video_id)
            if PRIVATE_REASON_RE.search(text):
                return VideoPrivate(video_id)
            if reason:
                return VideoUnplayable(video_id, reason, sub_reasons)
            return VideoUnavailable(video_id)

        if PRIVATE_REASON_RE.search(text):
            return VideoPrivate(video_id)
        if not reason or UNAVAILABLE_REASON in reason:
            return VideoUnavailable(video_id)
        return VideoUnplayable(video_id, reason, sub_reasons)


def extract_object(document: str, start: int) -> Optional[str]:
    """
    Return the balanced `{...}` text starting at `start`, or None if it never closes.

    Braces inside JSON strings (including escaped quotes) do not count.
    """
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(document)):
        char = document[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return document[start:index + 1]
    return None
