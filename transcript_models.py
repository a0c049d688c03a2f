"""
Shared value types for the transcript pipeline.

Every type here is immutable once built and round-trips through
to_dict()/from_dict().
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class TranslationLanguage:
    language: str
    language_code: str

    def to_dict(self) -> Dict[str, str]:
        return {"language": self.language, "language_code": self.language_code}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TranslationLanguage':
        return cls(language=data["language"], language_code=data["language_code"])


@dataclass(frozen=True)
class CaptionTrack:
    """One caption stream as advertised by the player response."""

    language: str
    language_code: str
    base_url: str
    is_generated: bool
    is_translatable: bool
    translation_languages: Tuple[TranslationLanguage, ...] = ()

    @property
    def translation_language_codes(self) -> List[str]:
        return [lang.language_code for lang in self.translation_languages]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "language": self.language,
            "language_code": self.language_code,
            "base_url": self.base_url,
            "is_generated": self.is_generated,
            "is_translatable": self.is_translatable,
            "translation_languages": [lang.to_dict() for lang in self.translation_languages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CaptionTrack':
        return cls(
            language=data["language"],
            language_code=data["language_code"],
            base_url=data["base_url"],
            is_generated=bool(data.get("is_generated", False)),
            is_translatable=bool(data.get("is_translatable", False)),
            translation_languages=tuple(
                TranslationLanguage.from_dict(lang) for lang in data.get("translation_languages", [])
            ),
        )


@dataclass(frozen=True)
class Snippet:
    """One timed caption segment. Times are in seconds."""

    text: str
    start: float
    duration: float

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "start": self.start, "duration": self.duration}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Snippet':
        return cls(text=data["text"], start=float(data["start"]), duration=float(data["duration"]))


@dataclass(frozen=True)
class FetchedTranscript:
    """
    The complete result of fetching one caption track.

    Snippets keep the order the timed-text document used; nothing re-sorts them.
    """

    video_id: str
    language: str
    language_code: str
    is_generated: bool
    snippets: Tuple[Snippet, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[Snippet]:
        return iter(self.snippets)

    def __len__(self) -> int:
        return len(self.snippets)

    def __getitem__(self, index):
        return self.snippets[index]

    def text(self, separator: str = "\n") -> str:
        """Join snippet texts into a single string."""
        return separator.join(snippet.text for snippet in self.snippets)

    def to_raw_data(self) -> List[Dict[str, Any]]:
        return [snippet.to_dict() for snippet in self.snippets]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "video_id": self.video_id,
            "language": self.language,
            "language_code": self.language_code,
            "is_generated": self.is_generated,
            "snippets": self.to_raw_data(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FetchedTranscript':
        return cls(
            video_id=data["video_id"],
            language=data["language"],
            language_code=data["language_code"],
            is_generated=bool(data.get("is_generated", False)),
            snippets=tuple(Snippet.from_dict(s) for s in data.get("snippets", [])),
        )


def first_text(node: Optional[Dict[str, Any]]) -> Optional[str]:
    """Read display text from a `{simpleText}` or `{runs: [{text}]}` node."""
    if not isinstance(node, dict):
        return None
    if "simpleText" in node:
        return node["simpleText"]
    runs = node.get("runs")
    if isinstance(runs, list) and runs and isinstance(runs[0], dict):
        return runs[0].get("text")
    return None
