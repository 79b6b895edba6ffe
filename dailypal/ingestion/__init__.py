"""
DailyPal Ingestion Module
=========================

Feed retrieval and entry normalization components.

This module handles:
- HTTP retrieval of feed documents
- Namespace-tolerant feed parsing
- Field normalization (link, date, image, language, body text)
"""

from .fetcher import FeedFetcher
from .feed_parser import FeedParser, FeedDocument, FeedEntry
from .content_cleaner import ContentCleaner
from .normalizer import EntryNormalizer, generate_content_hash

__all__ = [
    "FeedFetcher",
    "FeedParser",
    "FeedDocument",
    "FeedEntry",
    "ContentCleaner",
    "EntryNormalizer",
    "generate_content_hash",
]
