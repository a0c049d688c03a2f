"""
Timed-text XML parsing.

A timed-text document is a flat list of `<text start=".." dur="..">` elements
whose content is entity-escaped caption markup. Parsing yields snippets in
document order; malformed cues are dropped one by one rather than failing
the whole document.
"""

import html
import math
import re
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple

from log_events import evt
from transcript_errors import YouTubeDataUnparsable
from transcript_models import Snippet

LINK_TEMPLATES = {
    "html": '<a href="{url}">{text}</a>',
    "markdown": "[{text}]({url})",
    "text": "{text} ({url})",
}
DEFAULT_LINK_TEMPLATE = LINK_TEMPLATES["html"]

# Inline tags kept when formatting is preserved; everything else is stripped
FORMATTING_TAGS = frozenset({
    "strong", "em", "b", "i", "u", "mark", "small", "del", "ins", "sub", "sup",
})

ANCHOR_RE = re.compile(
    r"""<a\b[^>]*?\bhref\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s>]+))[^>]*>(.*?)</a\s*>""",
    re.IGNORECASE | re.DOTALL,
)
BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
TAG_RE = re.compile(r"<(/?)([a-zA-Z][a-zA-Z0-9]*)\b[^>]*>")
ANY_TAG_RE = re.compile(r"<[^>]*>")
SPACES_RE = re.compile(r"[ \t]+")
SPACES_AROUND_NEWLINE_RE = re.compile(r" *\n *")
PLACEHOLDER_RE = re.compile("\x00(\\d+)\x00")


def validate_link_template(template: str) -> str:
    """Return the template if it renders with {text} and {url}, else raise ValueError."""
    if "{text}" not in template or "{url}" not in template:
        raise ValueError(f"Link template must contain {{text}} and {{url}}: {template!r}")
    try:
        template.format(text="text", url="url")
    except (KeyError, IndexError, ValueError) as e:
        raise ValueError(f"Invalid link template {template!r}: {e}") from e
    return template


def resolve_link_template(name_or_template: Optional[str]) -> str:
    """Accept a LINK_TEMPLATES name ("html", "markdown", "text") or a literal template."""
    if name_or_template is None:
        return DEFAULT_LINK_TEMPLATE
    template = LINK_TEMPLATES.get(name_or_template, name_or_template)
    return validate_link_template(template)


class TimedTextParser:
    """
    Parses timed-text XML into snippets.

    Args:
        preserve_formatting: keep allow-listed inline tags and line breaks
        link_template: LINK_TEMPLATES name or a template with {text} and {url};
            only used when preserve_formatting is set
    """

    def __init__(self, preserve_formatting: bool = False, link_template: Optional[str] = None):
        self.preserve_formatting = preserve_formatting
        self.link_template = resolve_link_template(link_template)

    def parse(self, video_id: str, document: str) -> Tuple[Snippet, ...]:
        if not document or not document.strip():
            raise YouTubeDataUnparsable(video_id, "timed-text document is empty")
        root = _parse_xml(video_id, document)

        snippets: List[Snippet] = []
        for index, element in enumerate(root.iter("text")):
            timing = _parse_timing(element)
            if timing is None:
                evt(
                    "timedtext_snippet_dropped",
                    video_id=video_id,
                    index=index,
                    start=element.get("start"),
                    dur=element.get("dur"),
                )
                continue
            start, duration = timing
            snippets.append(Snippet(text=self.clean_text(_inner_markup(element)), start=start, duration=duration))

        return tuple(snippets)

    def clean_text(self, raw: str) -> str:
        """Decode entities and apply the formatting policy to one cue's markup."""
        text = html.unescape(raw)
        if self.preserve_formatting:
            return self._keep_formatting(text)
        return self._strip_formatting(text)

    def _strip_formatting(self, text: str) -> str:
        text = ANCHOR_RE.sub(lambda m: m.group(4), text)
        text = BR_RE.sub(" ", text)
        text = ANY_TAG_RE.sub("", text)
        return SPACES_RE.sub(" ", text).strip()

    def _keep_formatting(self, text: str) -> str:
        # Rendered links are parked behind placeholders so tag stripping can't touch them
        links: List[str] = []

        def render_link(match) -> str:
            url = next(group for group in match.groups()[:3] if group is not None)
            label = SPACES_RE.sub(" ", ANY_TAG_RE.sub("", match.group(4))).strip()
            links.append(self.link_template.format(text=label, url=url))
            return f"\x00{len(links) - 1}\x00"

        text = ANCHOR_RE.sub(render_link, text)
        text = BR_RE.sub("\n", text)
        text = ANY_TAG_RE.sub(_canonical_tag, text)
        text = SPACES_RE.sub(" ", text)
        text = SPACES_AROUND_NEWLINE_RE.sub("\n", text).strip()
        return PLACEHOLDER_RE.sub(lambda m: links[int(m.group(1))], text)


def _canonical_tag(match) -> str:
    """Allow-listed tags lose their attributes and case; any other tag is dropped."""
    tag = TAG_RE.fullmatch(match.group(0))
    if tag is None:
        return ""
    closing, name = tag.group(1), tag.group(2).lower()
    if name in FORMATTING_TAGS:
        return f"<{closing}{name}>"
    return ""


def _parse_timing(element) -> Optional[Tuple[float, float]]:
    """Return (start, duration) or None when the cue's timing is unusable."""
    raw_start = element.get("start")
    if raw_start is None:
        return None
    try:
        start = float(raw_start)
        duration = float(element.get("dur", "0.0"))
    except ValueError:
        return None
    if not math.isfinite(start) or not math.isfinite(duration):
        return None
    return start, duration


def _inner_markup(element) -> str:
    """Text of an element including any unescaped child markup."""
    parts = [element.text or ""]
    for child in element:
        parts.append(ET.tostring(child, encoding="unicode"))
    return "".join(parts)


def _parse_xml(video_id: str, document: str):
    """Parse the document; a bare sequence of <text> elements is wrapped in a root first."""
    try:
        return ET.fromstring(document)
    except ET.ParseError as e:
        error = e
    try:
        return ET.fromstring(f"<transcript>{document}</transcript>")
    except ET.ParseError:
        raise YouTubeDataUnparsable(
            video_id, f"timed-text document is not valid XML ({error})", excerpt=document
        ) from error
