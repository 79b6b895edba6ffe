"""
Entry Normalizer
================

Derives the fields of a NewsRecord from one raw FeedEntry.

Each derivation is a total function with a defined fallback:
- publish date falls back to the processing time
- link is mandatory; an entry without one is dropped
- image URL falls back to an empty string
- language falls back to the URL suffix, then to a fixed default
"""

import hashlib
import re
from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from dailypal.config.settings import get_settings
from dailypal.database.models import NewsRecord
from dailypal.utils.exceptions import EntryDroppedError
from dailypal.utils.validators import is_valid_url
from .content_cleaner import ContentCleaner
from .feed_parser import FeedDocument, FeedEntry

if TYPE_CHECKING:
    from dailypal.processing.dispatcher import FeedJob


LANGUAGE_SUFFIX_PATTERN = re.compile(r"\.(\w+)$", re.ASCII)

# RFC1123 with a zone abbreviation; abbreviations carry no offset here
RFC1123_PATTERN = re.compile(r"^(.*\d{2}:\d{2}:\d{2})\s+([A-Za-z]{1,5})$")

RFC1123_FORMAT = "%a, %d %b %Y %H:%M:%S"
RFC1123Z_FORMAT = "%a, %d %b %Y %H:%M:%S %z"
DATE_ONLY_FORMAT = "%a, %d %b %Y"


def _parse_rfc1123(value: str) -> datetime:
    match = RFC1123_PATTERN.match(value)
    if not match:
        raise ValueError(f"not an RFC1123 date: {value!r}")
    parsed = datetime.strptime(match.group(1), RFC1123_FORMAT)
    return parsed.replace(tzinfo=timezone.utc)


def _parse_rfc1123z(value: str) -> datetime:
    return datetime.strptime(value, RFC1123Z_FORMAT)


def _parse_rfc3339(value: str) -> datetime:
    if "T" not in value.upper():
        raise ValueError(f"not an RFC3339 timestamp: {value!r}")
    if value[-1] in "zZ":
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"RFC3339 timestamp without offset: {value!r}")
    return parsed


def _parse_date_only(value: str) -> datetime:
    return datetime.strptime(value, DATE_ONLY_FORMAT).replace(tzinfo=timezone.utc)


DATE_PARSERS = (_parse_rfc1123, _parse_rfc1123z, _parse_rfc3339, _parse_date_only)


def parse_pub_date(raw: Optional[str], now: datetime) -> datetime:
    """
    Parse a feed publish date; the first accepted format wins.

    Args:
        raw: Raw date string from the feed
        now: Processing time, returned when raw is empty or unparseable

    Returns:
        Timezone-aware datetime in UTC
    """
    value = (raw or "").strip()
    if not value:
        return now

    for parser in DATE_PARSERS:
        try:
            return parser(value).astimezone(timezone.utc)
        except ValueError:
            continue

    return now


def resolve_link(entry: FeedEntry) -> str:
    """Pick the canonical link, raising EntryDroppedError when none is valid."""
    candidates = [entry.link, entry.atom_link_href]
    if entry.guid is not None and not entry.guid.is_permalink:
        candidates.append(entry.guid.value)
    candidates.append(entry.atom_link)

    for candidate in candidates:
        if candidate and is_valid_url(candidate.strip()):
            return candidate.strip()

    raise EntryDroppedError("Entry has no valid link", title=entry.title)


def body_html(entry: FeedEntry) -> str:
    """Description markup, or content:encoded when the description is empty."""
    return entry.description or entry.content_encoded or ""


def resolve_image_url(entry: FeedEntry, cleaner: Optional[ContentCleaner] = None) -> str:
    """
    Pick the entry image URL.

    The first five carriers must look like URLs. Secondary media:content
    replaces whatever the primary carriers set. The remaining carriers are
    only consulted while nothing has been found and only need to be
    non-empty.

    Args:
        entry: Raw feed entry
        cleaner: ContentCleaner used to scrape the description HTML

    Returns:
        Image URL, or empty string when no carrier yields one
    """
    image_url = ""

    if entry.media_content and is_valid_url(entry.media_content.url):
        image_url = entry.media_content.url

    if not image_url and entry.media_thumbnail and is_valid_url(entry.media_thumbnail.url):
        image_url = entry.media_thumbnail.url

    if entry.media_content_ns and is_valid_url(entry.media_content_ns.url):
        image_url = entry.media_content_ns.url

    if not image_url and entry.media_thumbnail_ns and is_valid_url(entry.media_thumbnail_ns.url):
        image_url = entry.media_thumbnail_ns.url

    if not image_url and is_valid_url(entry.image):
        image_url = entry.image

    if not image_url and entry.media_content:
        image_url = entry.media_content.url or entry.media_content.text

    if not image_url and entry.figure_image:
        image_url = entry.figure_image

    html = body_html(entry)
    if not image_url and html:
        image_url = (cleaner or ContentCleaner()).extract_image_url(html)

    if not image_url and entry.enclosure and entry.enclosure.url:
        image_url = entry.enclosure.url

    if not image_url and entry.ip_image:
        image_url = entry.ip_image

    return image_url


def resolve_language(channel_language: Optional[str], source_url: str, default: str) -> str:
    """Channel language, else the source URL's dot suffix, else default."""
    if channel_language:
        return channel_language

    match = LANGUAGE_SUFFIX_PATTERN.search(source_url or "")
    if match:
        return match.group(1)

    return default


def generate_content_hash(title: str, link: str) -> str:
    """sha256 hex digest of title + link; the dedup key."""
    return hashlib.sha256(f"{title}{link}".encode("utf-8")).hexdigest()


class EntryNormalizer:
    """Turns raw feed entries into NewsRecord instances."""

    def __init__(
        self,
        content_cleaner: Optional[ContentCleaner] = None,
        default_language: Optional[str] = None,
    ):
        self.content_cleaner = content_cleaner or ContentCleaner()
        self.default_language = default_language or get_settings().ingestion.default_language

    def normalize(
        self,
        entry: FeedEntry,
        document: FeedDocument,
        job: "FeedJob",
        now: Optional[datetime] = None,
    ) -> NewsRecord:
        """
        Normalize one entry.

        Args:
            entry: Raw feed entry
            document: Parsed document the entry belongs to
            job: Work item the document was fetched for
            now: Processing time; defaults to the current UTC time

        Returns:
            NewsRecord ready for insert

        Raises:
            EntryDroppedError: If no link candidate is valid
        """
        now = now or datetime.now(timezone.utc)
        link = resolve_link(entry)
        title = entry.title

        return NewsRecord(
            title=title,
            link=link,
            description=self.content_cleaner.html_to_text(body_html(entry)),
            pub_date=parse_pub_date(entry.pub_date, now),
            category=[job.category],
            source=job.url,
            creator=entry.creator or "",
            language=resolve_language(document.language, job.url, self.default_language),
            last_build_date=now,
            image_url=resolve_image_url(entry, self.content_cleaner),
            sub_category=job.topic,
            content_hash=generate_content_hash(title, link),
        )
