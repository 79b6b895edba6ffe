"""
Unit Tests for Entry Normalizer
===============================

Tests for publish date, link, image, language and hash derivation.
"""

import hashlib
import pytest
from datetime import datetime, timezone, timedelta

from dailypal.ingestion.feed_parser import (
    FeedDocument,
    FeedEntry,
    Guid,
    MediaObject,
    Enclosure,
)
from dailypal.ingestion.normalizer import (
    EntryNormalizer,
    parse_pub_date,
    resolve_link,
    resolve_image_url,
    resolve_language,
    generate_content_hash,
)
from dailypal.processing.dispatcher import FeedJob
from dailypal.utils.exceptions import EntryDroppedError, ErrorCode


NOW = datetime(2024, 9, 7, 10, 30, tzinfo=timezone.utc)


class TestParsePubDate:
    """Test publish date parsing and fallback."""

    @pytest.mark.parametrize("raw,expected", [
        ("Mon, 02 Jan 2006 15:04:05 GMT", datetime(2006, 1, 2, 15, 4, 5, tzinfo=timezone.utc)),
        ("Mon, 02 Jan 2006 15:04:05 MST", datetime(2006, 1, 2, 15, 4, 5, tzinfo=timezone.utc)),
        ("Mon, 02 Jan 2006 15:04:05 -0700", datetime(2006, 1, 2, 22, 4, 5, tzinfo=timezone.utc)),
        ("Mon, 02 Jan 2006 15:04:05 +0300", datetime(2006, 1, 2, 12, 4, 5, tzinfo=timezone.utc)),
        ("2006-01-02T15:04:05Z", datetime(2006, 1, 2, 15, 4, 5, tzinfo=timezone.utc)),
        ("2006-01-02T15:04:05+03:00", datetime(2006, 1, 2, 12, 4, 5, tzinfo=timezone.utc)),
        ("Mon, 2 Jan 2006", datetime(2006, 1, 2, tzinfo=timezone.utc)),
        ("  Thu, 05 Sep 2024 12:00:00 GMT  ", datetime(2024, 9, 5, 12, tzinfo=timezone.utc)),
    ])
    def test_accepted_formats(self, raw, expected):
        assert parse_pub_date(raw, NOW) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "yesterday", "2006-01-02", "2006-01-02T15:04:05"])
    def test_fallback_to_processing_time(self, raw):
        assert parse_pub_date(raw, NOW) == NOW

    def test_result_is_utc(self):
        parsed = parse_pub_date("Mon, 02 Jan 2006 15:04:05 +0530", NOW)

        assert parsed.utcoffset() == timedelta(0)


class TestResolveLink:
    """Test canonical link selection."""

    def test_link_first(self):
        entry = FeedEntry(
            link="http://example.com/link",
            atom_link_href="http://example.com/href",
            guid=Guid("http://example.com/guid"),
        )

        assert resolve_link(entry) == "http://example.com/link"

    def test_atom_href_when_link_invalid(self):
        entry = FeedEntry(link="/relative/path", atom_link_href="https://example.com/href")

        assert resolve_link(entry) == "https://example.com/href"

    def test_guid_when_not_permalink(self):
        entry = FeedEntry(link="", guid=Guid("http://example.com/b", is_permalink=False))

        assert resolve_link(entry) == "http://example.com/b"

    def test_permalink_guid_is_skipped(self):
        entry = FeedEntry(
            guid=Guid("http://example.com/permalink", is_permalink=True),
            atom_link="http://example.com/atom",
        )

        assert resolve_link(entry) == "http://example.com/atom"

    def test_candidates_are_stripped(self):
        entry = FeedEntry(link="  http://example.com/padded \n")

        assert resolve_link(entry) == "http://example.com/padded"

    def test_no_valid_candidate_drops_entry(self):
        entry = FeedEntry(
            title="Orphan",
            link="ftp://example.com/file",
            guid=Guid("http://example.com/permalink", is_permalink=True),
        )

        with pytest.raises(EntryDroppedError) as exc_info:
            resolve_link(entry)

        assert exc_info.value.error_code == ErrorCode.ENTRY_MISSING_LINK
        assert exc_info.value.context["title"] == "Orphan"


class TestResolveImageUrl:
    """Test image carrier precedence."""

    def test_no_carriers(self):
        assert resolve_image_url(FeedEntry()) == ""

    def test_primary_media_content(self):
        entry = FeedEntry(
            media_content=MediaObject(url="http://cdn/content.jpg"),
            media_thumbnail=MediaObject(url="http://cdn/thumb.jpg"),
        )

        assert resolve_image_url(entry) == "http://cdn/content.jpg"

    def test_primary_thumbnail_when_content_missing(self):
        entry = FeedEntry(media_thumbnail=MediaObject(url="http://cdn/thumb.jpg"))

        assert resolve_image_url(entry) == "http://cdn/thumb.jpg"

    def test_secondary_media_content_beats_thumbnail(self):
        entry = FeedEntry(
            media_thumbnail=MediaObject(url="http://cdn/thumb.jpg"),
            media_content_ns=MediaObject(url="http://cdn/secondary.jpg"),
        )

        assert resolve_image_url(entry) == "http://cdn/secondary.jpg"

    def test_secondary_media_content_overrides_primary_content(self):
        entry = FeedEntry(
            media_content=MediaObject(url="http://cdn/primary.jpg"),
            media_content_ns=MediaObject(url="http://cdn/secondary.jpg"),
        )

        assert resolve_image_url(entry) == "http://cdn/secondary.jpg"

    def test_secondary_thumbnail_does_not_override(self):
        entry = FeedEntry(
            media_thumbnail=MediaObject(url="http://cdn/thumb.jpg"),
            media_thumbnail_ns=MediaObject(url="http://cdn/secondary-thumb.jpg"),
        )

        assert resolve_image_url(entry) == "http://cdn/thumb.jpg"

    def test_inline_image_requires_http(self):
        assert resolve_image_url(FeedEntry(image="http://cdn/inline.png")) == "http://cdn/inline.png"
        assert resolve_image_url(FeedEntry(image="inline.png")) == ""

    def test_media_content_character_data_fallback(self):
        entry = FeedEntry(media_content=MediaObject(url="", text="cdn/relative.jpg"))

        assert resolve_image_url(entry) == "cdn/relative.jpg"

    def test_unvalidated_media_content_url_fallback(self):
        entry = FeedEntry(
            media_content=MediaObject(url="//cdn/protocol-relative.jpg"),
            figure_image="http://cdn/figure.jpg",
        )

        assert resolve_image_url(entry) == "//cdn/protocol-relative.jpg"

    def test_figure_image(self):
        assert resolve_image_url(FeedEntry(figure_image="/img/figure.jpg")) == "/img/figure.jpg"

    def test_description_scrape_before_enclosure(self):
        entry = FeedEntry(
            description='<p><img src="http://cdn/desc.jpg"></p>',
            enclosure=Enclosure(url="http://cdn/enclosure.jpg"),
        )

        assert resolve_image_url(entry) == "http://cdn/desc.jpg"

    def test_enclosure_then_ip_image(self):
        assert resolve_image_url(FeedEntry(enclosure=Enclosure(url="http://cdn/enc.jpg"))) == "http://cdn/enc.jpg"
        assert resolve_image_url(FeedEntry(ip_image="cdn/ip.jpg")) == "cdn/ip.jpg"


class TestResolveLanguage:
    """Test language inference."""

    def test_channel_language_wins(self):
        assert resolve_language("en-us", "http://example.com/feed.tr", "tr") == "en-us"

    def test_url_suffix(self):
        assert resolve_language(None, "http://example.com/feed.de", "tr") == "de"

    def test_url_suffix_is_not_validated(self):
        assert resolve_language("", "http://example.com/news/rss.xml", "tr") == "xml"

    def test_default_when_no_suffix(self):
        assert resolve_language(None, "http://example.com/rss", "tr") == "tr"
        assert resolve_language(None, "http://example.com/feed/", "tr") == "tr"


class TestContentHash:
    """Test content fingerprint."""

    def test_hash_is_sha256_of_title_and_link(self):
        expected = hashlib.sha256("Storm warninghttp://example.com/a".encode("utf-8")).hexdigest()

        assert generate_content_hash("Storm warning", "http://example.com/a") == expected

    def test_hash_depends_only_on_title_and_link(self):
        assert generate_content_hash("Başlık", "http://example.com/x") == generate_content_hash(
            "Başlık", "http://example.com/x"
        )
        assert generate_content_hash("A", "http://example.com/x") != generate_content_hash(
            "B", "http://example.com/x"
        )


class TestEntryNormalizer:
    """Test full entry normalization."""

    def setup_method(self):
        self.normalizer = EntryNormalizer(default_language="tr")
        self.job = FeedJob(url="http://example.com/feed", category="Gündem", topic="Son Dakika")

    def test_storm_warning_scenario(self):
        entry = FeedEntry(
            title="Storm warning",
            link="http://example.com/a",
            description="<p>Rain expected</p>",
        )

        record = self.normalizer.normalize(entry, FeedDocument(), self.job, now=NOW)

        assert record.link == "http://example.com/a"
        assert record.description == "Rain expected"
        assert record.image_url == ""
        assert record.pub_date == NOW
        assert record.content_hash == hashlib.sha256(
            b"Storm warninghttp://example.com/a"
        ).hexdigest()

    def test_record_carries_job_labels(self):
        entry = FeedEntry(title="T", link="http://example.com/t", creator="Jane")

        record = self.normalizer.normalize(entry, FeedDocument(language="en"), self.job, now=NOW)

        assert record.category == ["Gündem"]
        assert record.sub_category == "Son Dakika"
        assert record.source == "http://example.com/feed"
        assert record.creator == "Jane"
        assert record.language == "en"
        assert record.last_build_date == NOW

    def test_default_language(self):
        entry = FeedEntry(title="T", link="http://example.com/t")

        record = self.normalizer.normalize(entry, FeedDocument(), self.job, now=NOW)

        assert record.language == "tr"

    def test_content_encoded_used_when_description_empty(self):
        entry = FeedEntry(
            title="T",
            link="http://example.com/t",
            content_encoded='<p>Body <img src="http://cdn/body.jpg"></p>',
        )

        record = self.normalizer.normalize(entry, FeedDocument(), self.job, now=NOW)

        assert record.description == "Body"
        assert record.image_url == "http://cdn/body.jpg"

    def test_unresolvable_link_raises(self):
        with pytest.raises(EntryDroppedError):
            self.normalizer.normalize(FeedEntry(title="No link"), FeedDocument(), self.job, now=NOW)

    def test_now_defaults_to_current_time(self):
        entry = FeedEntry(title="T", link="http://example.com/t", pub_date="not a date")

        before = datetime.now(timezone.utc)
        record = self.normalizer.normalize(entry, FeedDocument(), self.job)
        after = datetime.now(timezone.utc)

        assert before <= record.pub_date <= after
        assert record.pub_date.year > 1970
