"""
DailyPal Storage Layer
======================

Repository pattern implementations for data access abstraction.

This module provides:
- News repository with insert-if-absent writes keyed by content hash
- Feed source repository for category -> topic -> URL lists
"""

from .news_repository import NewsRepository
from .source_repository import FeedSourceRepository

__all__ = [
    "NewsRepository",
    "FeedSourceRepository",
]
