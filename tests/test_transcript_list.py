"""
Tests for the transcript catalog and transcript handles, including the abc123
two-track scenario (manual English, generated translatable Spanish).
"""

import os
import unittest
from urllib.parse import parse_qs, urlparse

import requests

import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from transcript_errors import (
    NetworkError,
    NoTranscriptFound,
    NotTranslatable,
    RequestBlocked,
    TooManyRequests,
    TranslationLanguageNotAvailable,
    YouTubeDataUnparsable,
)
from transcript_list import Transcript, TranscriptCatalog, TranscriptList
from transcript_models import CaptionTrack, Snippet, TranslationLanguage
from youtube_fixtures import (
    CAPTIONS_ABC123,
    EN_URL,
    ES_URL,
    TIMEDTEXT_XML,
    fake_response,
    fake_session,
)


def build_catalog(session=None, renderer=None):
    if renderer is None:
        renderer = CAPTIONS_ABC123["playerCaptionsTracklistRenderer"]
    return TranscriptList.build("abc123", renderer, session=session)


def make_track(code, is_generated=False, is_translatable=False):
    return CaptionTrack(
        language=code.upper(),
        language_code=code,
        base_url=f"https://www.youtube.com/api/timedtext?lang={code}",
        is_generated=is_generated,
        is_translatable=is_translatable,
    )


class TestCatalogScenario(unittest.TestCase):
    """The abc123 video: manual `en`, generated translatable `es` with targets en and fr."""

    def setUp(self):
        self.catalog = build_catalog(session=fake_session())

    def test_catalog_size_and_upstream_order(self):
        self.assertEqual(len(self.catalog), 2)
        self.assertEqual([t.language_code for t in self.catalog.transcripts()], ["en", "es"])
        # restartable
        self.assertEqual([t.language_code for t in self.catalog.transcripts()], ["en", "es"])
        self.assertEqual([t.language_code for t in self.catalog], ["en", "es"])

    def test_track_fields(self):
        en, es = list(self.catalog)
        self.assertEqual(en.language, "English")
        self.assertEqual(en.base_url, EN_URL)
        self.assertFalse(en.is_generated)
        self.assertFalse(en.is_translatable)
        self.assertEqual(en.translation_languages, ())

        self.assertEqual(es.language, "Spanish (auto-generated)")
        self.assertEqual(es.base_url, ES_URL)
        self.assertTrue(es.is_generated)
        self.assertTrue(es.is_translatable)
        self.assertEqual([lang.language_code for lang in es.translation_languages], ["en", "fr"])
        self.assertEqual([lang.language for lang in es.translation_languages], ["English", "French"])

    def test_find_transcript_skips_missing_preferences(self):
        self.assertEqual(self.catalog.find_transcript(["de", "es"]).language_code, "es")

    def test_translate_and_fetch(self):
        es = self.catalog.find_transcript(["es"])
        translated = es.translate("en")

        self.assertEqual(translated.language_code, "en")
        self.assertEqual(translated.language, "English")
        self.assertTrue(translated.is_generated)
        query = parse_qs(urlparse(translated.base_url).query)
        self.assertEqual(query["tlang"], ["en"])
        self.assertEqual(query["lang"], ["es"])
        # the original handle is untouched
        self.assertNotIn("tlang", es.base_url)

        session = fake_session([fake_response(TIMEDTEXT_XML)])
        fetched = translated.fetch(session=session)
        self.assertEqual(len(fetched), 2)
        self.assertEqual(fetched.language_code, "en")
        self.assertEqual(session.get.call_args[0][0], translated.base_url)

    def test_translate_unknown_target(self):
        es = self.catalog.find_transcript(["es"])
        with self.assertRaises(TranslationLanguageNotAvailable) as ctx:
            es.translate("pt")
        self.assertEqual(ctx.exception.requested_language_code, "pt")
        self.assertEqual(ctx.exception.available_language_codes, ["en", "fr"])

    def test_translate_keeps_signed_query_intact(self):
        base_url = ("https://www.youtube.com/api/timedtext?v=abc123&sparams=ip,ipbits"
                    "&signature=A%2FB.C&lang=es&tlang=de")
        track = CaptionTrack(
            language="Spanish",
            language_code="es",
            base_url=base_url,
            is_generated=True,
            is_translatable=True,
            translation_languages=(TranslationLanguage("French", "fr"),),
        )
        translated = Transcript("abc123", track).translate("fr")
        self.assertEqual(
            translated.base_url,
            "https://www.youtube.com/api/timedtext?v=abc123&sparams=ip,ipbits&signature=A%2FB.C&lang=es&tlang=fr",
        )

    def test_translate_non_translatable(self):
        en = self.catalog.find_transcript(["en"])
        with self.assertRaises(NotTranslatable):
            en.translate("es")

    def test_translate_non_translatable_for_any_target(self):
        en = self.catalog.find_transcript(["en"])
        for code in ("en", "fr", "pt", ""):
            with self.subTest(code=code), self.assertRaises(NotTranslatable):
                en.translate(code)

    def test_no_transcript_found_names_codes(self):
        with self.assertRaises(NoTranscriptFound) as ctx:
            self.catalog.find_transcript(["de", "it"])
        self.assertEqual(ctx.exception.requested_language_codes, ["de", "it"])
        self.assertEqual(ctx.exception.available_language_codes, ["en", "es"])
        self.assertIn("(MANUALLY CREATED)", str(ctx.exception))

    def test_alias(self):
        self.assertIs(TranscriptCatalog, TranscriptList)


class TestCatalogLookups(unittest.TestCase):

    def catalog(self, *tracks):
        return TranscriptList("vid", [Transcript("vid", track) for track in tracks])

    def test_singleton_lookup_matches_membership(self):
        catalog = self.catalog(make_track("en"), make_track("de", is_generated=True), make_track("ja"))
        for code in ("en", "de", "ja"):
            self.assertEqual(catalog.find_transcript([code]).language_code, code)
        for code in ("fr", "EN", ""):
            with self.subTest(code=code), self.assertRaises(NoTranscriptFound):
                catalog.find_transcript([code])

    def test_precedence_follows_caller_order(self):
        catalog = self.catalog(make_track("en"), make_track("de"), make_track("fr"))
        self.assertEqual(catalog.find_transcript(["fr", "en"]).language_code, "fr")
        self.assertEqual(catalog.find_transcript(["xx", "de", "en"]).language_code, "de")
        self.assertEqual(catalog.find_transcript(iter(["en", "fr"])).language_code, "en")

    def test_manual_beats_generated_for_same_code(self):
        generated = make_track("en", is_generated=True)
        manual = make_track("en")
        catalog = self.catalog(generated, manual)

        self.assertIs(catalog.find_transcript(["en"]).track, manual)
        self.assertIs(catalog.find_generated_transcript(["en"]).track, generated)
        self.assertIs(catalog.find_manually_created_transcript(["en"]).track, manual)
        # enumeration still follows upstream order
        self.assertEqual([t.track for t in catalog], [generated, manual])

    def test_kind_restricted_lookups(self):
        catalog = self.catalog(make_track("en"), make_track("de", is_generated=True))
        with self.assertRaises(NoTranscriptFound):
            catalog.find_manually_created_transcript(["de"])
        with self.assertRaises(NoTranscriptFound):
            catalog.find_generated_transcript(["en"])

    def test_find_translatable(self):
        catalog = self.catalog(make_track("en"), make_track("de", is_translatable=True),
                               make_track("fr", is_translatable=True))
        self.assertEqual(catalog.find_translatable(["en", "fr", "de"]).language_code, "fr")
        with self.assertRaises(NoTranscriptFound):
            catalog.find_translatable(["en"])

    def test_missing_renderer_gives_empty_catalog(self):
        catalog = TranscriptList.build("abc123", None)
        self.assertEqual(len(catalog), 0)
        self.assertEqual(list(catalog.transcripts()), [])
        with self.assertRaises(NoTranscriptFound):
            catalog.find_transcript(["en"])

    def test_malformed_tracks_are_skipped(self):
        renderer = {"captionTracks": [{"languageCode": "en"}, "junk", {"baseUrl": "https://x", "languageCode": "de"}]}
        catalog = TranscriptList.build("abc123", renderer)
        self.assertEqual(catalog.language_codes, ["de"])
        self.assertEqual(catalog.find_transcript(["de"]).language, "de")


class TestTranscriptFetch(unittest.TestCase):

    def setUp(self):
        self.transcript = Transcript("abc123", make_track("en"), session=fake_session())

    def fetch_with(self, *responses):
        return self.transcript.fetch(session=fake_session(list(responses)))

    def test_fetch_parses_snippets(self):
        fetched = self.fetch_with(fake_response(TIMEDTEXT_XML))
        self.assertEqual(list(fetched), [Snippet("Hello & world", 1.0, 2.5), Snippet("bye", 3.5, 1.0)])
        self.assertEqual(fetched.video_id, "abc123")
        self.assertFalse(fetched.is_generated)

    def test_fetch_uses_bound_session(self):
        session = fake_session([fake_response(TIMEDTEXT_XML)])
        transcript = Transcript("abc123", make_track("en"), session=session)
        transcript.fetch()
        self.assertEqual(session.get.call_count, 1)

    def test_fetch_without_session(self):
        with self.assertRaises(ValueError):
            Transcript("abc123", make_track("en")).fetch()

    def test_fetch_status_mapping(self):
        with self.assertRaises(TooManyRequests):
            self.fetch_with(fake_response("", status_code=429))
        with self.assertRaises(RequestBlocked):
            self.fetch_with(fake_response("", status_code=403))
        with self.assertRaises(NetworkError):
            self.fetch_with(fake_response("", status_code=500))
        with self.assertRaises(NetworkError):
            self.fetch_with(requests.Timeout("read timed out"))

    def test_empty_body(self):
        with self.assertRaises(YouTubeDataUnparsable):
            self.fetch_with(fake_response(""))

    def test_empty_document_gives_no_snippets(self):
        fetched = self.fetch_with(fake_response("<transcript></transcript>"))
        self.assertEqual(len(fetched), 0)

    def test_preserve_formatting_passthrough(self):
        fetched = self.fetch_with(fake_response(TIMEDTEXT_XML))
        preserved = self.transcript.fetch(
            session=fake_session([fake_response(TIMEDTEXT_XML)]), preserve_formatting=True
        )
        self.assertEqual(fetched[1].text, "bye")
        self.assertEqual(preserved[1].text, "<b>bye</b>")


class TestCatalogSerialization(unittest.TestCase):

    def test_round_trip_drops_session(self):
        catalog = build_catalog(session=fake_session())
        restored = TranscriptList.from_dict(catalog.to_dict())

        self.assertEqual(restored.to_dict(), catalog.to_dict())
        self.assertEqual([t.track for t in restored], [t.track for t in catalog])
        with self.assertRaises(ValueError):
            restored.find_transcript(["en"]).fetch()

        session = fake_session([fake_response(TIMEDTEXT_XML)])
        self.assertEqual(len(restored.find_transcript(["en"]).fetch(session=session)), 2)

    def test_str_lists_languages(self):
        text = str(build_catalog())
        self.assertIn('en ("English")', text)
        self.assertIn('es ("Spanish (auto-generated)")[TRANSLATABLE]', text)
        self.assertIn('fr ("French")', text)


if __name__ == '__main__':
    unittest.main()
