"""
Content Cleaner
===============

HTML helpers for feed entry descriptions.

This module provides:
- Plain-text extraction from description HTML
- Image URL discovery inside description HTML
"""

import re
from typing import Iterable, Optional

from bs4 import BeautifulSoup, NavigableString, Tag

from dailypal.utils.logging import get_logger_for_component


def extract_url_from_text(text: str) -> str:
    """Cut the first http URL out of free text, up to the next space."""
    start = text.find("http")
    if start == -1:
        return ""
    end = text.find(" ", start)
    if end == -1:
        end = len(text)
    return text[start:end]


class ContentCleaner:
    """
    HTML content cleaner for feed descriptions.

    Both operations are lossy-tolerant: a description that cannot be
    parsed is returned unchanged by ``html_to_text`` and yields no image
    from ``extract_image_url``.
    """

    WHITESPACE_PATTERN = re.compile(r"\s+", re.MULTILINE)

    # Elements whose first text child may carry a bare image URL
    TEXT_URL_ELEMENTS = {"description", "content:encoded"}

    def __init__(self):
        self.logger = get_logger_for_component("content_cleaner")
        self.parser = "html.parser"

    def html_to_text(self, html_content: str) -> str:
        """
        Strip all markup from an HTML fragment and return its text.

        Args:
            html_content: HTML content to process

        Returns:
            Plain text with whitespace collapsed, or the raw input when
            the fragment cannot be parsed
        """
        if not html_content or not html_content.strip():
            return ""

        try:
            soup = BeautifulSoup(html_content, self.parser)
            text = soup.get_text(separator=" ", strip=True)
            return self.WHITESPACE_PATTERN.sub(" ", text).strip()

        except Exception as e:
            self.logger.warning(f"HTML parse error, keeping raw description: {e}")
            return html_content

    def extract_image_url(self, html_content: str) -> str:
        """
        Find an image URL inside an HTML fragment.

        The fragment is searched depth-first. A node's own markup is checked
        first, then its children left to right; every non-empty result from
        a child replaces what was found so far, so the last match wins.

        Args:
            html_content: HTML content to search

        Returns:
            Image URL or empty string
        """
        if not html_content:
            return ""

        try:
            soup = BeautifulSoup(html_content, self.parser)
        except Exception as e:
            self.logger.debug(f"Description is not parseable HTML: {e}")
            return ""

        try:
            return self._find_image_url(soup)
        except RecursionError:
            self.logger.warning("Description HTML nested too deeply for image search")
            return ""

    def _find_image_url(self, node) -> str:
        if not isinstance(node, Tag):
            return ""

        image_url = ""
        name = node.name

        if name == "img":
            image_url = self._last_attribute(node, ("src",), image_url)

        elif name in ("media:content", "media:thumbnail"):
            image_url = self._last_attribute(node, ("url", "img", "image"), image_url)

        elif name == "image":
            url_tags = [c for c in node.children if isinstance(c, Tag) and c.name == "url"]
            if not url_tags:
                # html.parser treats <image> as void, so its <url> follows as a sibling
                sibling = node.find_next_sibling()
                if sibling is not None and sibling.name == "url":
                    url_tags = [sibling]
            for child in url_tags:
                if child.contents:
                    first = child.contents[0]
                    image_url = str(first) if isinstance(first, NavigableString) else first.name
            image_url = self._last_attribute(node, ("url", "img", "image"), image_url)

        elif name == "enclosure":
            url = node.get("url")
            if url is not None:
                return url
            image_url = self._last_attribute(node, ("img", "image"), image_url)

        elif name in self.TEXT_URL_ELEMENTS and node.contents:
            first = node.contents[0]
            if isinstance(first, NavigableString) and "http" in first:
                image_url = extract_url_from_text(str(first))

        for child in node.children:
            child_url = self._find_image_url(child)
            if child_url:
                image_url = child_url

        return image_url

    @staticmethod
    def _last_attribute(node: Tag, keys: Iterable[str], current: str) -> str:
        """Value of the last attribute (document order) named in keys."""
        found: Optional[str] = None
        for key, value in node.attrs.items():
            if key in keys:
                found = value if isinstance(value, str) else " ".join(value)
        return current if found is None else found
