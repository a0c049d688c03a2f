"""
Error taxonomy for transcript retrieval.

Every failure the platform can produce is mapped onto exactly one exception
class below. All of them carry the video id; lookups also carry the language
codes that were requested and the ones that exist, so callers can render an
actionable message without re-deriving context.

Subclasses always remain instances of their parent kind (a `VideoUnplayable`
is a `VideoUnavailable`, a `ConsentCookieError` is a `RequestBlocked`), which
lets callers match coarsely or precisely.
"""

from typing import Optional, Sequence

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

EXCERPT_LIMIT = 200


class TranscriptError(Exception):
    """Base class for every transcript retrieval failure."""

    ERROR_MESSAGE = "\nCould not retrieve a transcript for the video {video_url}!"
    CAUSE_MESSAGE_INTRO = " This is most likely caused by:\n\n{cause}"
    CAUSE_MESSAGE = ""

    def __init__(self, video_id: str):
        self.video_id = video_id
        super().__init__(self._build_error_message())

    @property
    def cause(self) -> str:
        return self.CAUSE_MESSAGE

    def _build_error_message(self) -> str:
        message = self.ERROR_MESSAGE.format(video_url=WATCH_URL.format(video_id=self.video_id))
        cause = self.cause
        if cause:
            message += self.CAUSE_MESSAGE_INTRO.format(cause=cause)
        return message

    def __str__(self) -> str:
        return self._build_error_message()


class InvalidVideoId(TranscriptError):
    CAUSE_MESSAGE = "You provided an empty video id. Pass the video id (not the url) of the video."


class VideoUnavailable(TranscriptError):
    CAUSE_MESSAGE = "The video is no longer available"


class VideoUnplayable(VideoUnavailable):
    """The player reported a non-OK status together with an explanation."""

    SUBREASON_MESSAGE = "\n\nAdditional Details:\n{sub_reasons}"

    def __init__(self, video_id: str, reason: Optional[str], sub_reasons: Sequence[str] = ()):
        self.reason = reason
        self.sub_reasons = list(sub_reasons)
        super().__init__(video_id)

    @property
    def cause(self) -> str:
        reason = self.reason or "No reason specified!"
        message = f"The video is unplayable for the following reason: {reason}"
        if self.sub_reasons:
            message += self.SUBREASON_MESSAGE.format(
                sub_reasons="\n".join(f" - {sub_reason}" for sub_reason in self.sub_reasons)
            )
        return message


class VideoPrivate(TranscriptError):
    CAUSE_MESSAGE = "The video is private. Only the owner, or accounts the owner shared it with, can access it"


class AgeRestricted(TranscriptError):
    CAUSE_MESSAGE = (
        "This video is age-restricted. Therefore, you are unable to retrieve "
        "transcripts for it without authenticating yourself.\n\n"
        "Provide a cookie file of a logged-in account to authenticate"
    )


class NoTranscriptFound(TranscriptError):
    CAUSE_MESSAGE = (
        "No transcripts were found for any of the requested language codes: {requested_language_codes}\n\n"
        "{transcript_data}"
    )

    def __init__(
        self,
        video_id: str,
        requested_language_codes: Sequence[str],
        available_language_codes: Sequence[str] = (),
        transcript_data: Optional[str] = None,
    ):
        self.requested_language_codes = list(requested_language_codes)
        self.available_language_codes = list(available_language_codes)
        self._transcript_data = transcript_data
        super().__init__(video_id)

    @property
    def cause(self) -> str:
        transcript_data = self._transcript_data
        if transcript_data is None:
            available = ", ".join(self.available_language_codes) or "none"
            transcript_data = f"Available language codes: {available}"
        return self.CAUSE_MESSAGE.format(
            requested_language_codes=self.requested_language_codes,
            transcript_data=transcript_data,
        )


class NotTranslatable(TranscriptError):
    CAUSE_MESSAGE = "The requested language is not translatable"


class TranslationLanguageNotAvailable(TranscriptError):
    CAUSE_MESSAGE = (
        "The requested translation language {requested_language_code!r} is not available. "
        "Available translation languages: {available}"
    )

    def __init__(
        self,
        video_id: str,
        requested_language_code: str,
        available_language_codes: Sequence[str] = (),
    ):
        self.requested_language_code = requested_language_code
        self.available_language_codes = list(available_language_codes)
        super().__init__(video_id)

    @property
    def cause(self) -> str:
        return self.CAUSE_MESSAGE.format(
            requested_language_code=self.requested_language_code,
            available=", ".join(self.available_language_codes) or "none",
        )


class RequestBlocked(TranscriptError):
    """The platform refuses to serve this client (bot check, IP block, consent)."""

    BASE_CAUSE_MESSAGE = (
        "YouTube is blocking requests from your IP. This usually is due to one of the "
        "following reasons:\n"
        "- You have done too many requests and your IP has been blocked by YouTube\n"
        "- You are doing requests from an IP belonging to a cloud provider (like AWS, "
        "Google Cloud Platform, Azure, etc.). Unfortunately, most IPs from cloud "
        "providers are blocked by YouTube.\n\n"
    )
    CAUSE_MESSAGE = BASE_CAUSE_MESSAGE + "Request blocked."
    WITH_GENERIC_PROXY_CAUSE_MESSAGE = (
        "YouTube is blocking your requests, despite you using proxies. Keep in mind "
        "a proxy is just a way to hide your real IP behind the IP of that proxy, but "
        "there is no guarantee that the IP of that proxy won't be blocked as well."
    )
    WITH_ROTATING_PROXY_CAUSE_MESSAGE = (
        "YouTube is blocking your requests, despite you using rotating residential "
        "proxies. Make sure the proxy plan rotates through residential IPs and not a "
        "fixed pool of datacenter addresses."
    )

    def __init__(self, video_id: str, proxy_config=None):
        self.proxy_config = proxy_config
        super().__init__(video_id)

    @property
    def cause(self) -> str:
        if self.proxy_config is None:
            return self.CAUSE_MESSAGE
        if getattr(self.proxy_config, 'rotating', False):
            return self.BASE_CAUSE_MESSAGE + self.WITH_ROTATING_PROXY_CAUSE_MESSAGE
        return self.BASE_CAUSE_MESSAGE + self.WITH_GENERIC_PROXY_CAUSE_MESSAGE


class ConsentCookieError(RequestBlocked):
    """The consent wall was still served after one retry with a consent cookie."""

    @property
    def cause(self) -> str:
        return "Failed to automatically give consent to saving cookies"


class TooManyRequests(TranscriptError):
    CAUSE_MESSAGE = (
        "YouTube is receiving too many requests from this IP and now requires solving "
        "a captcha to continue. Retry later or reduce the request rate"
    )


class YouTubeDataUnparsable(TranscriptError):
    CAUSE_MESSAGE = (
        "The data required to fetch the transcript is not parsable: {detail}. "
        "This should not happen, please open an issue (make sure to include the video ID)!"
    )

    def __init__(self, video_id: str, detail: str, excerpt: Optional[str] = None):
        self.detail = detail
        self.excerpt = excerpt[:EXCERPT_LIMIT] if excerpt else None
        super().__init__(video_id)

    @property
    def cause(self) -> str:
        return self.CAUSE_MESSAGE.format(detail=self.detail)


class NetworkError(TranscriptError):
    """Transport-level failure. The original exception is kept on `original`."""

    CAUSE_MESSAGE = "Failed to make a request to YouTube. Error: {error}"

    def __init__(self, video_id: str, original: Optional[BaseException] = None):
        self.original = original
        super().__init__(video_id)

    @property
    def cause(self) -> str:
        return self.CAUSE_MESSAGE.format(error=self.original)


class YouTubeRequestFailed(NetworkError):
    """YouTube answered with a non-success HTTP status that has no dedicated kind."""

    def __init__(self, video_id: str, status_code: int, url: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        super().__init__(video_id)

    @property
    def cause(self) -> str:
        return self.CAUSE_MESSAGE.format(error=f"YouTube returned status code: {self.status_code}")


# --- Configuration errors, raised at construction time rather than per video ---

class CookieError(Exception):
    pass


class CookiePathInvalid(CookieError):
    def __init__(self, cookie_path):
        self.cookie_path = cookie_path
        super().__init__(f"Can't load the provided cookie file: {cookie_path}")


class CookieInvalid(CookieError):
    def __init__(self, cookie_path):
        self.cookie_path = cookie_path
        super().__init__(f"The cookies provided are not valid (may have expired): {cookie_path}")


class InvalidProxyConfig(Exception):
    pass
