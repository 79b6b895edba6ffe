"""
DailyPal Processing Module
==========================

Concurrent dispatch of feed jobs through fetch, parse, normalize and store.
"""

from .dispatcher import FeedDispatcher, FeedJob, RunStats

__all__ = [
    'FeedDispatcher',
    'FeedJob',
    'RunStats',
]
