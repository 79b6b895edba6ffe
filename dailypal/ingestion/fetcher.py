"""
Feed Fetcher
============

Retrieves the raw bytes of one feed URL. Network failures are reported as
FeedFetchError so the caller can tell them apart from parse failures.
"""

import time
from typing import Optional

import requests

from dailypal.config.settings import DailyPalSettings, get_settings
from dailypal.utils.logging import get_logger_for_component
from dailypal.utils.exceptions import FeedFetchError, ErrorCode
from dailypal.utils.validators import validate_url


class FeedFetcher:
    """
    Single-shot HTTP GET for feed documents.

    There is no retry adapter and no custom headers; redirects follow the
    requests defaults. The timeout comes from ``limits.request_timeout``.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        settings: Optional[DailyPalSettings] = None,
    ):
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("fetcher")
        self.session = session or requests.Session()
        self.timeout = self.settings.limits.request_timeout

    def fetch(self, feed_url: str) -> bytes:
        """
        Fetch a feed document.

        Args:
            feed_url: Feed URL to fetch

        Returns:
            Response body bytes

        Raises:
            FeedFetchError: On invalid URL, non-2xx status, network error,
                timeout or read error
        """
        if not validate_url(feed_url):
            raise FeedFetchError(
                f"Invalid feed URL: {feed_url}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_INVALID_URL,
                recoverable=False,
            )

        self.logger.debug(f"Fetching feed: {feed_url}")
        start_time = time.time()

        try:
            response = self.session.get(feed_url, timeout=self.timeout)
            response.raise_for_status()
            content = response.content

        except requests.Timeout as e:
            raise FeedFetchError(
                f"Timed out fetching {feed_url}: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except requests.HTTPError as e:
            raise FeedFetchError(
                f"HTTP error fetching {feed_url}: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_HTTP_STATUS,
            ) from e
        except requests.RequestException as e:
            raise FeedFetchError(
                f"Failed to fetch feed {feed_url}: {e}",
                feed_url=feed_url,
            ) from e

        fetch_time = time.time() - start_time
        self.logger.debug(f"Feed fetched in {fetch_time:.2f}s, size: {len(content)} bytes")
        return content

    def close(self) -> None:
        self.session.close()
