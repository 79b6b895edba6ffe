"""
Feed Parser
===========

Decodes feed documents (RSS 2.0, RSS 1.0/RDF, Atom) into a channel record
plus a list of raw entries.

Real-world feeds spell the same logical field in several ways: plain RSS
``<link>``, Atom ``<atom:link href>``, Dublin Core ``<dc:creator>``, Media
RSS ``<media:content>`` bound to one of several namespace URIs, bare
``<enclosure>``. Every spelling is captured in its own optional field on
``FeedEntry``; choosing between them is the normalizer's job.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup, Tag

from dailypal.utils.logging import get_logger_for_component
from dailypal.utils.exceptions import FeedParseError


MEDIA_RSS_NS = "http://search.yahoo.com/mrss/"
ATOM_NS = "http://www.w3.org/2005/Atom"
DC_NS = "http://purl.org/dc/elements/1.1/"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"

TRUE_VALUES = {"1", "t", "true"}


@dataclass
class Guid:
    value: str
    is_permalink: bool = False


@dataclass
class MediaObject:
    """A media:content or media:thumbnail element."""

    url: str = ""
    text: str = ""
    type: Optional[str] = None


@dataclass
class Enclosure:
    url: str = ""
    type: Optional[str] = None
    length: Optional[int] = None


@dataclass
class FeedImage:
    title: str = ""
    link: str = ""
    url: str = ""


@dataclass
class FeedEntry:
    """One raw feed item. Every carrier is optional."""

    title: str = ""
    description: str = ""
    link: Optional[str] = None
    atom_link_href: Optional[str] = None
    atom_link: Optional[str] = None
    guid: Optional[Guid] = None
    pub_date: Optional[str] = None
    creator: Optional[str] = None
    # media:* elements under a legacy or unbound "media" prefix
    media_content: Optional[MediaObject] = None
    media_thumbnail: Optional[MediaObject] = None
    # media:* elements bound to the canonical Media RSS namespace
    media_content_ns: Optional[MediaObject] = None
    media_thumbnail_ns: Optional[MediaObject] = None
    image: Optional[str] = None
    figure_image: Optional[str] = None
    enclosure: Optional[Enclosure] = None
    ip_image: Optional[str] = None
    content_encoded: Optional[str] = None


@dataclass
class FeedDocument:
    """Channel-level data and its entries in document order."""

    title: str = ""
    link: str = ""
    description: str = ""
    language: Optional[str] = None
    managing_editor: Optional[str] = None
    category: Optional[str] = None
    image: Optional[FeedImage] = None
    items: List[FeedEntry] = field(default_factory=list)


def _split_name(tag: Tag) -> Tuple[Optional[str], str]:
    """Return (prefix, local name); unbound prefixes stay in tag.name."""
    name = tag.name
    prefix = tag.prefix or None
    if ":" in name:
        prefix, name = name.split(":", 1)
    return prefix, name


def _text(tag: Tag) -> str:
    return tag.get_text().strip()


def _inner_markup(tag: Tag) -> str:
    """Element content as a string, keeping any embedded (unescaped) markup."""
    if any(isinstance(child, Tag) for child in tag.children):
        return "".join(str(child) for child in tag.contents).strip()
    return _text(tag)


def _children(tag: Tag) -> List[Tag]:
    return [child for child in tag.children if isinstance(child, Tag)]


def _parse_bool(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in TRUE_VALUES


def _parse_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


class FeedParser:
    """
    Namespace-tolerant feed decoder.

    ``parse`` only fails when no document root can be found. An item that
    cannot be decoded is logged and skipped.
    """

    def __init__(self):
        self.logger = get_logger_for_component("feed_parser")

    def parse(self, content: bytes, feed_url: Optional[str] = None) -> FeedDocument:
        """
        Decode a feed document.

        Args:
            content: Raw document bytes as fetched
            feed_url: Origin URL, used for error context only

        Returns:
            FeedDocument with channel fields and entries

        Raises:
            FeedParseError: If the document root cannot be decoded
        """
        if not content or not content.strip():
            raise FeedParseError("Empty feed document", feed_url=feed_url)

        try:
            soup = BeautifulSoup(content, "xml")
        except Exception as e:
            raise FeedParseError(f"Feed document is not XML: {e}", feed_url=feed_url) from e

        channel = soup.find("channel")
        if channel is not None:
            return self._parse_rss(channel)

        feed = soup.find("feed")
        if feed is not None:
            return self._parse_atom(feed)

        raise FeedParseError("No rss channel or atom feed element found", feed_url=feed_url)

    # RSS 2.0 / RSS 1.0

    def _parse_rss(self, channel: Tag) -> FeedDocument:
        document = FeedDocument()

        for child in _children(channel):
            prefix, local = _split_name(child)
            if prefix is not None:
                continue
            if local == "title":
                document.title = _text(child)
            elif local == "link" and child.get("href") is None:
                document.link = document.link or _text(child)
            elif local == "description":
                document.description = _text(child)
            elif local == "language":
                document.language = _text(child) or None
            elif local == "managingEditor":
                document.managing_editor = _text(child) or None
            elif local == "category" and document.category is None:
                document.category = _text(child) or None
            elif local == "image":
                document.image = self._parse_channel_image(child)

        items = channel.find_all("item", recursive=False)
        if not items and channel.parent is not None:
            # RSS 1.0 keeps items beside the channel element
            items = channel.parent.find_all("item", recursive=False)

        document.items = self._parse_items(items, self._parse_item)
        return document

    def _parse_channel_image(self, tag: Tag) -> FeedImage:
        image = FeedImage()
        for child in _children(tag):
            _, local = _split_name(child)
            if local in ("title", "link", "url"):
                setattr(image, local, _text(child))
        return image

    def _parse_items(self, items: List[Tag], parse_one) -> List[FeedEntry]:
        entries = []
        for position, item in enumerate(items):
            try:
                entries.append(parse_one(item))
            except Exception as e:
                self.logger.warning(f"Skipping malformed item #{position}: {e}")
        return entries

    def _parse_item(self, item: Tag) -> FeedEntry:
        entry = FeedEntry()

        for key, value in item.attrs.items():
            namespace = getattr(key, "namespace", None)
            prefix, _, local = str(key).rpartition(":")
            if local == "link" and (namespace == ATOM_NS or prefix == "atom"):
                entry.atom_link = value.strip()

        for child in _children(item):
            prefix, local = _split_name(child)
            namespace = child.namespace

            if local == "link":
                href = child.get("href")
                if href is not None:
                    if entry.atom_link_href is None:
                        entry.atom_link_href = href.strip()
                elif prefix == "atom" or namespace == ATOM_NS:
                    if entry.atom_link is None:
                        entry.atom_link = _text(child)
                elif entry.link is None:
                    entry.link = _text(child)

            elif local == "guid" and entry.guid is None:
                entry.guid = Guid(_text(child), _parse_bool(child.get("isPermaLink")))

            elif local == "title" and prefix is None and not entry.title:
                entry.title = _text(child)

            elif local == "description" and prefix is None and not entry.description:
                entry.description = _inner_markup(child)

            elif local == "pubDate":
                entry.pub_date = _text(child)

            elif local == "date" and (prefix == "dc" or namespace == DC_NS):
                entry.pub_date = entry.pub_date or _text(child)

            elif local == "creator":
                entry.creator = _text(child)

            elif local == "author" and prefix is None:
                entry.creator = entry.creator or _text(child)

            elif local == "encoded" and (prefix == "content" or namespace == CONTENT_NS):
                entry.content_encoded = _inner_markup(child)

            elif local == "image" and prefix is None:
                url = child.find("url")
                entry.image = _text(url) if url is not None else _text(child)

            elif local == "figure":
                img = child.find("img")
                if img is not None and entry.figure_image is None:
                    entry.figure_image = (img.get("src") or _text(img)).strip()

            elif local == "enclosure" and entry.enclosure is None:
                entry.enclosure = Enclosure(
                    url=(child.get("url") or "").strip(),
                    type=child.get("type"),
                    length=_parse_int(child.get("length")),
                )

            elif local == "ipimage":
                entry.ip_image = _text(child)

            else:
                self._apply_media(entry, child, prefix, local)

        return entry

    def _apply_media(self, entry: FeedEntry, tag: Tag, prefix: Optional[str], local: str) -> None:
        """Record media:content / media:thumbnail, descending into media:group."""
        namespace = tag.namespace
        canonical = namespace == MEDIA_RSS_NS
        # lxml drops an undeclared media: prefix and leaves a bare element
        unbound = prefix is None and namespace is None and (
            local == "group" or (local in ("content", "thumbnail") and tag.get("url") is not None)
        )
        if not canonical and prefix != "media" and not unbound:
            return

        if local == "group":
            for child in _children(tag):
                child_prefix, child_local = _split_name(child)
                self._apply_media(entry, child, child_prefix, child_local)
            return

        if local not in ("content", "thumbnail"):
            return

        media = MediaObject(
            url=(tag.get("url") or "").strip(),
            text=_text(tag),
            type=tag.get("type"),
        )
        slot = f"media_{local}_ns" if canonical else f"media_{local}"
        if getattr(entry, slot) is None:
            setattr(entry, slot, media)

    # Atom

    def _parse_atom(self, feed: Tag) -> FeedDocument:
        document = FeedDocument(language=feed.get("xml:lang") or None)

        for child in _children(feed):
            prefix, local = _split_name(child)
            if prefix is not None:
                continue
            if local == "title":
                document.title = _text(child)
            elif local == "subtitle":
                document.description = _text(child)
            elif local == "link" and child.get("rel", "alternate") == "alternate":
                document.link = document.link or (child.get("href") or "").strip()
            elif local == "author" and document.managing_editor is None:
                name = child.find("name")
                document.managing_editor = _text(name) if name is not None else None
            elif local == "category" and document.category is None:
                document.category = child.get("term") or None
            elif local in ("logo", "icon") and document.image is None:
                document.image = FeedImage(title=document.title, link=document.link, url=_text(child))

        document.items = self._parse_items(
            feed.find_all("entry", recursive=False), self._parse_atom_entry
        )
        return document

    def _parse_atom_entry(self, tag: Tag) -> FeedEntry:
        entry = FeedEntry()
        updated = None

        for child in _children(tag):
            prefix, local = _split_name(child)

            if prefix is not None:
                if local == "creator":
                    entry.creator = _text(child)
                else:
                    self._apply_media(entry, child, prefix, local)
                continue

            if local == "title":
                entry.title = _text(child)
            elif local == "link":
                rel = child.get("rel", "alternate")
                href = (child.get("href") or "").strip()
                if rel == "alternate" and entry.atom_link_href is None:
                    entry.atom_link_href = href
                elif rel == "enclosure" and entry.enclosure is None:
                    entry.enclosure = Enclosure(
                        url=href,
                        type=child.get("type"),
                        length=_parse_int(child.get("length")),
                    )
            elif local == "id":
                entry.guid = Guid(_text(child), False)
            elif local == "published":
                entry.pub_date = _text(child)
            elif local == "updated":
                updated = _text(child)
            elif local == "summary":
                entry.description = _inner_markup(child)
            elif local == "content":
                entry.content_encoded = _inner_markup(child)
            elif local == "author":
                name = child.find("name")
                entry.creator = entry.creator or (_text(name) if name is not None else _text(child))
            else:
                self._apply_media(entry, child, prefix, local)

        if not entry.pub_date:
            entry.pub_date = updated
        if not entry.description and entry.content_encoded:
            entry.description = entry.content_encoded

        return entry
