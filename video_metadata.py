"""
Secondary metadata read from the same player response as the captions:
video details, microformat data and streaming formats.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from player_response import PlayerResponse
from transcript_errors import VideoUnavailable, YouTubeDataUnparsable
from transcript_list import TranscriptList
from transcript_models import first_text


@dataclass(frozen=True)
class Thumbnail:
    url: str
    width: int
    height: int


@dataclass(frozen=True)
class VideoDetails:
    video_id: str
    title: str = "Unknown Title"
    length_seconds: int = 0
    keywords: Optional[List[str]] = None
    channel_id: str = ""
    short_description: str = ""
    view_count: str = "0"
    author: str = "Unknown"
    thumbnails: List[Thumbnail] = field(default_factory=list)
    is_live_content: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MicroformatData:
    """Every field is optional; upstream fills in a different subset per video."""

    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    external_channel_id: Optional[str] = None
    external_video_id: Optional[str] = None
    owner_channel_name: Optional[str] = None
    owner_profile_url: Optional[str] = None
    length_seconds: Optional[str] = None
    view_count: Optional[str] = None
    like_count: Optional[str] = None
    upload_date: Optional[str] = None
    publish_date: Optional[str] = None
    is_family_safe: Optional[bool] = None
    is_unlisted: Optional[bool] = None
    is_shorts_eligible: Optional[bool] = None
    has_ypc_metadata: Optional[bool] = None
    available_countries: Optional[List[str]] = None
    embed: Optional[Dict[str, Any]] = None
    thumbnails: Optional[List[Thumbnail]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class StreamingFormat:
    itag: int
    mime_type: str
    bitrate: Optional[int] = None
    quality: Optional[str] = None
    quality_label: Optional[str] = None
    url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    fps: Optional[int] = None
    audio_quality: Optional[str] = None
    audio_sample_rate: Optional[str] = None
    content_length: Optional[str] = None
    approx_duration_ms: Optional[str] = None


@dataclass(frozen=True)
class StreamingData:
    expires_in_seconds: str
    formats: List[StreamingFormat] = field(default_factory=list)
    adaptive_formats: List[StreamingFormat] = field(default_factory=list)
    server_abr_streaming_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VideoInfos:
    """Everything one page fetch yields about a video."""

    video_details: VideoDetails
    microformat: MicroformatData
    streaming_data: StreamingData
    transcript_list: TranscriptList

    def to_dict(self) -> Dict[str, Any]:
        return {
            "video_details": self.video_details.to_dict(),
            "microformat": self.microformat.to_dict(),
            "streaming_data": self.streaming_data.to_dict(),
            "transcript_list": self.transcript_list.to_dict(),
        }


def _thumbnails(node: Any) -> List[Thumbnail]:
    thumbs = (node or {}).get("thumbnails") if isinstance(node, dict) else None
    result = []
    for thumb in thumbs or []:
        if not isinstance(thumb, dict) or not thumb.get("url"):
            continue
        result.append(Thumbnail(url=thumb["url"], width=int(thumb.get("width", 0)), height=int(thumb.get("height", 0))))
    return result


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def extract_video_details(player_response: PlayerResponse) -> VideoDetails:
    details = player_response.video_details
    if details is None:
        raise YouTubeDataUnparsable(player_response.video_id, "videoDetails missing from player response")

    keywords = details.get("keywords")
    return VideoDetails(
        video_id=details.get("videoId", player_response.video_id),
        title=details.get("title", "Unknown Title"),
        length_seconds=_int(details.get("lengthSeconds")),
        keywords=list(keywords) if isinstance(keywords, list) else None,
        channel_id=details.get("channelId", ""),
        short_description=details.get("shortDescription", ""),
        view_count=details.get("viewCount", "0"),
        author=details.get("author", "Unknown"),
        thumbnails=_thumbnails(details.get("thumbnail")),
        is_live_content=bool(details.get("isLiveContent", False)),
    )


def extract_microformat(player_response: PlayerResponse) -> MicroformatData:
    renderer = player_response.microformat
    if renderer is None:
        raise VideoUnavailable(player_response.video_id)

    countries = renderer.get("availableCountries")
    embed = renderer.get("embed")
    thumbnails = _thumbnails(renderer.get("thumbnail")) if "thumbnail" in renderer else None
    return MicroformatData(
        title=first_text(renderer.get("title")),
        description=first_text(renderer.get("description")),
        category=renderer.get("category"),
        external_channel_id=renderer.get("externalChannelId"),
        external_video_id=renderer.get("externalVideoId"),
        owner_channel_name=renderer.get("ownerChannelName"),
        owner_profile_url=renderer.get("ownerProfileUrl"),
        length_seconds=renderer.get("lengthSeconds"),
        view_count=renderer.get("viewCount"),
        like_count=renderer.get("likeCount"),
        upload_date=renderer.get("uploadDate"),
        publish_date=renderer.get("publishDate"),
        is_family_safe=renderer.get("isFamilySafe"),
        is_unlisted=renderer.get("isUnlisted"),
        is_shorts_eligible=renderer.get("isShortsEligible"),
        has_ypc_metadata=renderer.get("hasYpcMetadata"),
        available_countries=list(countries) if isinstance(countries, list) else None,
        embed={
            "iframe_url": embed.get("iframeUrl"),
            "width": embed.get("width"),
            "height": embed.get("height"),
        } if isinstance(embed, dict) else None,
        thumbnails=thumbnails,
    )


def _formats(raw: Any) -> List[StreamingFormat]:
    formats = []
    for fmt in raw or []:
        if not isinstance(fmt, dict) or "itag" not in fmt or "mimeType" not in fmt:
            continue
        formats.append(StreamingFormat(
            itag=_int(fmt["itag"]),
            mime_type=fmt["mimeType"],
            bitrate=fmt.get("bitrate"),
            quality=fmt.get("quality"),
            quality_label=fmt.get("qualityLabel"),
            url=fmt.get("url"),
            width=fmt.get("width"),
            height=fmt.get("height"),
            fps=fmt.get("fps"),
            audio_quality=fmt.get("audioQuality"),
            audio_sample_rate=fmt.get("audioSampleRate"),
            content_length=fmt.get("contentLength"),
            approx_duration_ms=fmt.get("approxDurationMs"),
        ))
    return formats


def extract_streaming_data(player_response: PlayerResponse) -> StreamingData:
    data = player_response.streaming_data
    if data is None:
        raise VideoUnavailable(player_response.video_id)

    return StreamingData(
        expires_in_seconds=str(data.get("expiresInSeconds", "0")),
        formats=_formats(data.get("formats")),
        adaptive_formats=_formats(data.get("adaptiveFormats")),
        server_abr_streaming_url=data.get("serverAbrStreamingUrl"),
    )
