"""
Tests for timedtext_parser.py: timing, entity decoding, formatting policy and link templates.
"""

import os
import unittest

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from timedtext_parser import LINK_TEMPLATES, TimedTextParser, resolve_link_template, validate_link_template
from transcript_errors import YouTubeDataUnparsable
from transcript_models import Snippet


def doc(*cues):
    return "<transcript>" + "".join(cues) + "</transcript>"


class TestTiming(unittest.TestCase):

    def setUp(self):
        self.parser = TimedTextParser()

    def test_scenario_fragment(self):
        body = '<text start="1.0" dur="2.5">Hello &amp; world</text><text start="3.5" dur="1.0">&lt;b&gt;bye&lt;/b&gt;</text>'
        self.assertEqual(
            self.parser.parse("abc123", body),
            (Snippet("Hello & world", 1.0, 2.5), Snippet("bye", 3.5, 1.0)),
        )

    def test_order_is_preserved_not_sorted(self):
        body = doc('<text start="5" dur="1">five</text>', '<text start="1" dur="1">one</text>',
                   '<text start="3" dur="1">three</text>')
        starts = [s.start for s in self.parser.parse("abc123", body)]
        self.assertEqual(starts, [5.0, 1.0, 3.0])

    def test_malformed_cues_are_dropped(self):
        body = doc(
            '<text start="1" dur="1">ok</text>',
            '<text start="abc" dur="1">bad start</text>',
            '<text dur="1">no start</text>',
            '<text start="2" dur="nan">nan duration</text>',
            '<text start="inf" dur="1">infinite</text>',
            '<text start="3" dur="oops">bad dur</text>',
            '<text start="4" dur="1">also ok</text>',
        )
        self.assertEqual([s.text for s in self.parser.parse("abc123", body)], ["ok", "also ok"])

    def test_missing_duration_defaults_to_zero(self):
        snippets = self.parser.parse("abc123", doc('<text start="2.5">no dur</text>'))
        self.assertEqual(snippets, (Snippet("no dur", 2.5, 0.0),))

    def test_empty_document(self):
        self.assertEqual(self.parser.parse("abc123", '<?xml version="1.0" ?><transcript></transcript>'), ())

    def test_zero_byte_body(self):
        with self.assertRaises(YouTubeDataUnparsable):
            self.parser.parse("abc123", "")

    def test_invalid_xml(self):
        with self.assertRaises(YouTubeDataUnparsable) as ctx:
            self.parser.parse("abc123", "<transcript><text start='1'>unclosed</transcript>")
        self.assertEqual(ctx.exception.video_id, "abc123")

    def test_empty_cue_text(self):
        self.assertEqual(self.parser.parse("abc123", doc('<text start="1" dur="1"></text>'))[0].text, "")


class TestEntityDecoding(unittest.TestCase):

    def setUp(self):
        self.parser = TimedTextParser()

    def test_named_and_numeric_entities(self):
        body = doc('<text start="0" dur="1">it&amp;#39;s &amp;quot;quoted&amp;quot; &#233;t&#xE9;</text>')
        self.assertEqual(self.parser.parse("abc123", body)[0].text, 'it\'s "quoted" été')

    def test_decoding_is_idempotent_on_plain_text(self):
        for plain in ("Hello world", "it's \"fine\"", "café", "a; b", "100% sure"):
            with self.subTest(plain=plain):
                once = self.parser.clean_text(plain)
                self.assertEqual(once, plain)
                self.assertEqual(self.parser.clean_text(once), once)


class TestStripFormatting(unittest.TestCase):

    def setUp(self):
        self.parser = TimedTextParser(preserve_formatting=False)

    def test_tags_removed_and_whitespace_collapsed(self):
        self.assertEqual(self.parser.clean_text("<i>very</i>   <b>bold</b>\tmove"), "very bold move")

    def test_br_becomes_space(self):
        self.assertEqual(self.parser.clean_text("first<br>second<br/>third"), "first second third")

    def test_anchor_keeps_text_only(self):
        self.assertEqual(self.parser.clean_text('see <a href="https://x.y">the docs</a>'), "see the docs")

    def test_unescaped_child_markup(self):
        body = doc('<text start="0" dur="1">a <font color="#fff">white</font> word</text>')
        self.assertEqual(self.parser.parse("abc123", body)[0].text, "a white word")


class TestPreserveFormatting(unittest.TestCase):

    def setUp(self):
        self.parser = TimedTextParser(preserve_formatting=True)

    def test_allow_listed_tags_kept_canonically(self):
        self.assertEqual(
            self.parser.clean_text('<B class="x">bold</B> <em>em</em> <font>gone</font>'),
            "<b>bold</b> <em>em</em> gone",
        )

    def test_br_becomes_newline(self):
        self.assertEqual(self.parser.clean_text("first <br/> second"), "first\nsecond")

    def test_default_link_template_is_html(self):
        self.assertEqual(
            self.parser.clean_text('see <a href="https://x.y">docs</a>'),
            'see <a href="https://x.y">docs</a>',
        )

    def test_markdown_and_text_templates(self):
        markup = 'see <a href="https://x.y"><b>docs</b></a> now'
        markdown = TimedTextParser(preserve_formatting=True, link_template="markdown")
        text = TimedTextParser(preserve_formatting=True, link_template="text")
        self.assertEqual(markdown.clean_text(markup), "see [docs](https://x.y) now")
        self.assertEqual(text.clean_text(markup), "see docs (https://x.y) now")

    def test_custom_template(self):
        parser = TimedTextParser(preserve_formatting=True, link_template="{text}<{url}>")
        self.assertEqual(parser.clean_text("<a href='u'>t</a>"), "t<u>")

    def test_escaped_markup_in_document(self):
        body = doc('<text start="0" dur="1">&lt;i&gt;soft&lt;/i&gt; &amp;amp; loud</text>')
        self.assertEqual(self.parser.parse("abc123", body)[0].text, "<i>soft</i> & loud")

    def test_escaped_inline_tags_survive_parse(self):
        body = doc('<text start="0" dur="1">&lt;b&gt;bold&lt;/b&gt; &lt;i&gt;it&lt;/i&gt; &lt;span&gt;plain&lt;/span&gt;</text>')
        self.assertEqual(self.parser.parse("abc123", body)[0].text, "<b>bold</b> <i>it</i> plain")


class TestLinkTemplates(unittest.TestCase):

    def test_named_templates(self):
        for name, template in LINK_TEMPLATES.items():
            self.assertEqual(resolve_link_template(name), template)

    def test_default(self):
        self.assertEqual(resolve_link_template(None), LINK_TEMPLATES["html"])

    def test_invalid_templates(self):
        for template in ("{text}", "{url}", "{text} {url} {other}", "{text {url}"):
            with self.subTest(template=template), self.assertRaises(ValueError):
                validate_link_template(template)

    def test_parser_rejects_invalid_template(self):
        with self.assertRaises(ValueError):
            TimedTextParser(preserve_formatting=True, link_template="no placeholders")


if __name__ == '__main__':
    unittest.main()
