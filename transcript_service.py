"""
TranscriptService: the public entry point.

Wires the shared HTTP session (proxies, imported cookies) to the page client,
player response parser and catalog builder. One page fetch per call; no
caching and no retries beyond the single consent retry.
"""

import uuid
from typing import Iterable, Optional

from cookie_utils import load_cookie_jar
from http_session import make_http_session
from log_events import StageTimer, evt
from logging_setup import clear_request_ctx, set_request_ctx
from page_client import PageClient
from player_response import PlayerResponse, PlayerResponseParser
from proxy_config import ProxyConfig
from transcript_config import TranscriptConfig, get_config
from transcript_errors import InvalidVideoId
from transcript_list import TranscriptList
from transcript_models import FetchedTranscript
from video_metadata import (
    MicroformatData,
    StreamingData,
    VideoDetails,
    VideoInfos,
    extract_microformat,
    extract_streaming_data,
    extract_video_details,
)


class TranscriptService:
    """
    Lists and fetches transcripts and video metadata.

    Args:
        config: Defaults to the process-wide config from the environment
        session: A ready requests.Session; built from config when omitted
        proxy_config: Overrides the proxy derived from config
        cookie_path: Netscape cookies.txt to import; overrides config.cookies_path
    """

    def __init__(self, config: Optional[TranscriptConfig] = None, session=None,
                 proxy_config: Optional[ProxyConfig] = None, cookie_path: Optional[str] = None):
        self.config = config or get_config()
        self.proxy_config = proxy_config if proxy_config is not None else self.config.proxy_config()

        if session is None:
            cookie_path = cookie_path or self.config.cookies_path
            cookie_jar = load_cookie_jar(cookie_path) if cookie_path else None
            session = make_http_session(self.config, proxy_config=self.proxy_config, cookie_jar=cookie_jar)
        self.session = session

        self.page_client = PageClient(
            self.session, timeout=self.config.request_timeout, proxy_config=self.proxy_config
        )
        self.parser = PlayerResponseParser()

        evt("transcript_service_init", player_source=self.config.player_source,
            use_proxy=self.proxy_config is not None)

    def list_transcripts(self, video_id: str) -> TranscriptList:
        """Fetch the video page once and return its caption catalog."""
        return self._with_ctx(video_id, self._list_transcripts, video_id)

    def fetch_transcript(self, video_id: str, languages: Optional[Iterable[str]] = None,
                         preserve_formatting: Optional[bool] = None,
                         link_template: Optional[str] = None,
                         translate_to: Optional[str] = None) -> FetchedTranscript:
        """
        Fetch the transcript in the first available of the preferred languages.

        Args:
            video_id: Video to fetch
            languages: Preferred language codes, most preferred first (config default)
            preserve_formatting: Keep inline formatting tags (config default)
            link_template: Anchor rendering template or LINK_TEMPLATES name (config default)
            translate_to: Machine-translate the chosen transcript into this language

        Returns:
            FetchedTranscript

        Raises:
            NoTranscriptFound: none of the languages has a track
            NotTranslatable, TranslationLanguageNotAvailable: translate_to can't be honoured
            Any other TranscriptError from page, player or timed-text handling
        """
        languages = list(languages) if languages else list(self.config.languages)
        if preserve_formatting is None:
            preserve_formatting = self.config.preserve_formatting
        link_template = link_template or self.config.link_template

        def run():
            transcript = self._list_transcripts(video_id).find_transcript(languages)
            if translate_to:
                transcript = transcript.translate(translate_to)
            return transcript.fetch(preserve_formatting=preserve_formatting, link_template=link_template)

        return self._with_ctx(video_id, run)

    def fetch_video_details(self, video_id: str) -> VideoDetails:
        return self._with_ctx(video_id, lambda: extract_video_details(self._player_response(video_id)))

    def fetch_microformat(self, video_id: str) -> MicroformatData:
        return self._with_ctx(video_id, lambda: extract_microformat(self._player_response(video_id)))

    def fetch_streaming_data(self, video_id: str) -> StreamingData:
        return self._with_ctx(video_id, lambda: extract_streaming_data(self._player_response(video_id)))

    def fetch_video_infos(self, video_id: str) -> VideoInfos:
        """Details, microformat, streaming data and captions from a single page fetch."""
        def run():
            player_response = self._player_response(video_id)
            return VideoInfos(
                video_details=extract_video_details(player_response),
                microformat=extract_microformat(player_response),
                streaming_data=extract_streaming_data(player_response),
                transcript_list=self._build_catalog(player_response),
            )

        return self._with_ctx(video_id, run)

    def _list_transcripts(self, video_id: str) -> TranscriptList:
        return self._build_catalog(self._player_response(video_id))

    def _build_catalog(self, player_response: PlayerResponse) -> TranscriptList:
        return TranscriptList.build(
            player_response.video_id,
            player_response.captions_renderer,
            session=self.session,
            timeout=self.config.request_timeout,
            proxy_config=self.proxy_config,
        )

    def _player_response(self, video_id: str) -> PlayerResponse:
        if not video_id:
            raise InvalidVideoId(video_id)

        with StageTimer("player_response", video_id=video_id, source=self.config.player_source):
            if self.config.player_source == "innertube":
                data = self.page_client.fetch_player_data(video_id)
                return self.parser.from_player_data(video_id, data)
            document = self.page_client.fetch(video_id)
            return self.parser.parse(video_id, document)

    @staticmethod
    def _with_ctx(video_id: str, func, *args):
        set_request_ctx(video_id=video_id, request_id=uuid.uuid4().hex[:12])
        try:
            return func(*args)
        finally:
            clear_request_ctx()
