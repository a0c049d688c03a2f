"""
Transcript catalog and per-track transcript handles.

A TranscriptList is built once from the player response's caption renderer
and never changes afterwards. Transcript handles are thin views over one
CaptionTrack; fetching or translating one never touches the catalog.
"""

from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
from urllib.parse import quote, urlparse, urlunparse

import requests

from log_events import StageTimer, evt, mask_url
from page_client import DEFAULT_TIMEOUT, check_response
from timedtext_parser import TimedTextParser
from transcript_errors import (
    NetworkError,
    NoTranscriptFound,
    NotTranslatable,
    TranslationLanguageNotAvailable,
    YouTubeDataUnparsable,
)
from transcript_models import CaptionTrack, FetchedTranscript, TranslationLanguage, first_text


class Transcript:
    """
    A fetchable handle for one caption track of a video.

    The session is optional so that handles rebuilt from serialized data can be
    fetched later with an explicitly supplied session.
    """

    def __init__(self, video_id: str, track: CaptionTrack, session=None, timeout: int = DEFAULT_TIMEOUT,
                 proxy_config=None):
        self.video_id = video_id
        self.track = track
        self._session = session
        self._timeout = timeout
        self._proxy_config = proxy_config

    @property
    def language(self) -> str:
        return self.track.language

    @property
    def language_code(self) -> str:
        return self.track.language_code

    @property
    def is_generated(self) -> bool:
        return self.track.is_generated

    @property
    def is_translatable(self) -> bool:
        return self.track.is_translatable

    @property
    def translation_languages(self) -> Tuple[TranslationLanguage, ...]:
        return self.track.translation_languages

    @property
    def base_url(self) -> str:
        return self.track.base_url

    def fetch(self, session=None, preserve_formatting: bool = False,
              link_template: Optional[str] = None) -> FetchedTranscript:
        """
        Download and parse the timed-text document for this track.

        Args:
            session: Session to use instead of the one the handle was built with
            preserve_formatting: Keep allow-listed inline markup and line breaks
            link_template: LINK_TEMPLATES name or template for rendering anchors

        Returns:
            FetchedTranscript with snippets in document order

        Raises:
            ValueError: no session available, or the link template is invalid
            TooManyRequests, RequestBlocked, YouTubeRequestFailed, NetworkError,
            YouTubeDataUnparsable
        """
        session = session or self._session
        if session is None:
            raise ValueError("Transcript has no HTTP session; pass one to fetch()")
        parser = TimedTextParser(preserve_formatting=preserve_formatting, link_template=link_template)

        with StageTimer("timedtext", video_id=self.video_id, language_code=self.language_code):
            evt("timedtext_fetch", video_id=self.video_id, language_code=self.language_code,
                url=mask_url(self.base_url))
            try:
                response = session.get(self.base_url, timeout=self._timeout)
            except requests.RequestException as e:
                raise NetworkError(self.video_id, e) from e
            check_response(self.video_id, response, self._proxy_config)

            body = response.text
            if not body:
                raise YouTubeDataUnparsable(self.video_id, "timed-text response body is empty")
            snippets = parser.parse(self.video_id, body)

        evt("transcript_fetched", video_id=self.video_id, language_code=self.language_code,
            snippet_count=len(snippets), is_generated=self.is_generated)
        return FetchedTranscript(
            video_id=self.video_id,
            language=self.language,
            language_code=self.language_code,
            is_generated=self.is_generated,
            snippets=snippets,
        )

    def translate(self, language_code: str) -> 'Transcript':
        """
        Return a handle whose fetch yields this track machine-translated.

        Raises:
            NotTranslatable: this track cannot be translated at all
            TranslationLanguageNotAvailable: language_code is not offered for it
        """
        if not self.is_translatable:
            raise NotTranslatable(self.video_id)

        target = next(
            (lang for lang in self.translation_languages if lang.language_code == language_code), None
        )
        if target is None:
            raise TranslationLanguageNotAvailable(
                self.video_id, language_code, self.track.translation_language_codes
            )

        translated = CaptionTrack(
            language=target.language,
            language_code=target.language_code,
            base_url=_with_query_param(self.base_url, "tlang", language_code),
            is_generated=True,
            is_translatable=False,
            translation_languages=(),
        )
        return Transcript(self.video_id, translated, session=self._session, timeout=self._timeout,
                          proxy_config=self._proxy_config)

    def translate_and_fetch(self, language_code: str, session=None, preserve_formatting: bool = False,
                            link_template: Optional[str] = None) -> FetchedTranscript:
        return self.translate(language_code).fetch(
            session=session, preserve_formatting=preserve_formatting, link_template=link_template
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"video_id": self.video_id, **self.track.to_dict()}

    def __str__(self) -> str:
        translation_description = "[TRANSLATABLE]" if self.is_translatable else ""
        return f'{self.language_code} ("{self.language}"){translation_description}'

    def __repr__(self) -> str:
        return f"Transcript(video_id={self.video_id!r}, language_code={self.language_code!r}, " \
               f"is_generated={self.is_generated!r})"


class TranscriptList:
    """
    All caption tracks of one video.

    Enumeration follows upstream order. Lookups walk the caller's language
    codes in order; for a given code a manually created track beats a
    generated one.
    """

    def __init__(self, video_id: str, transcripts: Sequence[Transcript],
                 translation_languages: Sequence[TranslationLanguage] = ()):
        self.video_id = video_id
        self._transcripts: Tuple[Transcript, ...] = tuple(transcripts)
        self._manually_created: Dict[str, Transcript] = {}
        self._generated: Dict[str, Transcript] = {}
        for transcript in self._transcripts:
            index = self._generated if transcript.is_generated else self._manually_created
            index.setdefault(transcript.language_code, transcript)
        self.translation_languages: Tuple[TranslationLanguage, ...] = tuple(translation_languages)

    @classmethod
    def build(cls, video_id: str, captions_renderer: Optional[Dict[str, Any]], session=None,
              timeout: int = DEFAULT_TIMEOUT, proxy_config=None) -> 'TranscriptList':
        """
        Build the catalog from `captions.playerCaptionsTracklistRenderer`.

        A missing renderer yields an empty catalog, not an error.
        """
        renderer = captions_renderer or {}
        translation_languages = tuple(
            TranslationLanguage(language=first_text(lang.get("languageName")) or lang["languageCode"],
                                language_code=lang["languageCode"])
            for lang in renderer.get("translationLanguages", []) or []
            if isinstance(lang, dict) and lang.get("languageCode")
        )

        transcripts: List[Transcript] = []
        for caption in renderer.get("captionTracks", []) or []:
            if not isinstance(caption, dict) or not caption.get("baseUrl") or not caption.get("languageCode"):
                continue
            is_translatable = bool(caption.get("isTranslatable", False))
            track = CaptionTrack(
                language=first_text(caption.get("name")) or caption["languageCode"],
                language_code=caption["languageCode"],
                base_url=caption["baseUrl"].replace("&fmt=srv3", ""),
                is_generated=caption.get("kind") == "asr",
                is_translatable=is_translatable,
                translation_languages=translation_languages if is_translatable else (),
            )
            transcripts.append(Transcript(video_id, track, session=session, timeout=timeout,
                                          proxy_config=proxy_config))

        catalog = cls(video_id, transcripts, translation_languages)
        evt("transcript_catalog_built", video_id=video_id, track_count=len(catalog),
            language_codes=catalog.language_codes)
        return catalog

    def __iter__(self) -> Iterator[Transcript]:
        return iter(self._transcripts)

    def __len__(self) -> int:
        return len(self._transcripts)

    def transcripts(self) -> Iterator[Transcript]:
        """Iterate tracks in upstream order; every call starts over."""
        return iter(self._transcripts)

    @property
    def language_codes(self) -> List[str]:
        return [transcript.language_code for transcript in self._transcripts]

    def find_transcript(self, language_codes: Iterable[str]) -> Transcript:
        """
        Return the track for the earliest code in language_codes that exists.

        Raises:
            NoTranscriptFound: none of the codes has a track
        """
        return self._find(language_codes, [self._manually_created, self._generated])

    def find_manually_created_transcript(self, language_codes: Iterable[str]) -> Transcript:
        return self._find(language_codes, [self._manually_created])

    def find_generated_transcript(self, language_codes: Iterable[str]) -> Transcript:
        return self._find(language_codes, [self._generated])

    def find_translatable(self, language_codes: Iterable[str]) -> Transcript:
        """Like find_transcript, restricted to tracks that can be translated."""
        translatable = [
            {code: t for code, t in index.items() if t.is_translatable}
            for index in (self._manually_created, self._generated)
        ]
        return self._find(language_codes, translatable)

    def _find(self, language_codes: Iterable[str], indexes: List[Dict[str, Transcript]]) -> Transcript:
        codes = list(language_codes)
        for code in codes:
            for index in indexes:
                if code in index:
                    return index[code]
        raise NoTranscriptFound(self.video_id, codes, self.language_codes, str(self))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "video_id": self.video_id,
            "transcripts": [transcript.track.to_dict() for transcript in self._transcripts],
            "translation_languages": [lang.to_dict() for lang in self.translation_languages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TranscriptList':
        """Rebuild a catalog; its handles have no session until one is passed to fetch()."""
        video_id = data["video_id"]
        return cls(
            video_id,
            [Transcript(video_id, CaptionTrack.from_dict(track)) for track in data.get("transcripts", [])],
            [TranslationLanguage.from_dict(lang) for lang in data.get("translation_languages", [])],
        )

    def __str__(self) -> str:
        return (
            "For this video ({video_id}) transcripts are available in the following languages:\n\n"
            "(MANUALLY CREATED)\n{manual}\n\n"
            "(GENERATED)\n{generated}\n\n"
            "(TRANSLATION LANGUAGES)\n{translation}"
        ).format(
            video_id=self.video_id,
            manual=_bullet_list(self._manually_created.values()),
            generated=_bullet_list(self._generated.values()),
            translation=_bullet_list(
                f'{lang.language_code} ("{lang.language}")' for lang in self.translation_languages
            ),
        )


TranscriptCatalog = TranscriptList


def _bullet_list(items: Iterable[Any]) -> str:
    lines = [f" - {item}" for item in items]
    return "\n".join(lines) if lines else "None"


def _with_query_param(url: str, key: str, value: str) -> str:
    """Set one query parameter, leaving the rest of the signed query byte-for-byte intact."""
    parsed = urlparse(url)
    pairs = [pair for pair in parsed.query.split("&") if pair and pair.split("=", 1)[0] != key]
    pairs.append(f"{key}={quote(value, safe='')}")
    return urlunparse(parsed._replace(query="&".join(pairs)))
