"""
Feed Dispatcher
===============

Fans configured feed URLs out to a fixed pool of worker threads through a
bounded queue, then waits for every worker to drain it.

Each job runs fetch -> parse -> normalize -> insert for one URL. Failures
are contained at the narrowest scope: a failed fetch or parse loses one
URL, a dropped entry or failed write loses one record.
"""

import queue
import threading
from contextlib import closing
from dataclasses import dataclass, fields, asdict
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config.settings import get_settings
from ..database.models import FeedSource, WriteResult
from ..ingestion.fetcher import FeedFetcher
from ..ingestion.feed_parser import FeedParser
from ..ingestion.normalizer import EntryNormalizer
from ..storage.news_repository import NewsRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import (
    FeedFetchError,
    FeedParseError,
    EntryDroppedError,
    WriteError,
)


@dataclass(frozen=True)
class FeedJob:
    """One feed URL to process, with the labels it was configured under."""

    url: str
    category: str
    topic: str


@dataclass
class RunStats:
    """Counters for one job, one worker or a whole run."""

    feeds_processed: int = 0
    fetch_errors: int = 0
    parse_errors: int = 0
    entries_seen: int = 0
    entries_dropped: int = 0
    inserted: int = 0
    already_present: int = 0
    write_errors: int = 0

    def merge(self, other: "RunStats") -> "RunStats":
        """Add another instance's counters into this one."""
        for stat in fields(self):
            setattr(self, stat.name, getattr(self, stat.name) + getattr(other, stat.name))
        return self

    @property
    def feeds_failed(self) -> int:
        return self.fetch_errors + self.parse_errors

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    def __str__(self) -> str:
        return (
            f"{self.feeds_processed} feeds ok, {self.feeds_failed} failed, "
            f"{self.entries_seen} entries, {self.inserted} inserted, "
            f"{self.already_present} already present, {self.entries_dropped} dropped, "
            f"{self.write_errors} write errors"
        )


class FeedDispatcher:
    """Bounded-queue thread pool for feed ingestion."""

    def __init__(
        self,
        news_repository: NewsRepository,
        fetcher: Optional[FeedFetcher] = None,
        parser: Optional[FeedParser] = None,
        normalizer: Optional[EntryNormalizer] = None,
        worker_count: Optional[int] = None,
        queue_size: Optional[int] = None,
    ):
        """Initialize dispatcher.

        Args:
            news_repository: Store writer shared by all workers
            fetcher: Feed fetcher shared by all workers; by default each
                worker builds its own so no requests.Session crosses threads
            parser: Feed parser
            normalizer: Entry normalizer (default from config)
            worker_count: Number of worker threads (default from config)
            queue_size: Work queue capacity (default from config)
        """
        settings = get_settings()
        self.settings = settings
        self.news_repository = news_repository
        self.fetcher = fetcher
        self.parser = parser or FeedParser()
        self.normalizer = normalizer or EntryNormalizer(
            default_language=settings.ingestion.default_language
        )
        self.worker_count = worker_count or settings.ingestion.worker_count
        self.queue_size = queue_size or settings.ingestion.queue_size
        self.logger = get_logger_for_component("dispatcher")

    def enumerate_jobs(self, sources: Iterable[Any]) -> Iterator[FeedJob]:
        """Flatten sources into one job per configured URL.

        Sources that fail validation are logged and skipped, as are blank URLs.

        Args:
            sources: FeedSource objects or raw ``{category, topics}`` mappings

        Yields:
            FeedJob per URL across all topics of all sources
        """
        for source in sources:
            try:
                if not isinstance(source, FeedSource):
                    source = FeedSource.model_validate(source)
                pairs = source.iter_urls()
            except (PydanticValidationError, AttributeError, TypeError, ValueError) as e:
                self.logger.warning(f"Skipping malformed feed source {source!r}: {e}")
                continue

            for topic, url in pairs:
                url = url.strip()
                if not url:
                    self.logger.warning(f"Skipping blank URL in {source.category}/{topic}")
                    continue
                yield FeedJob(url=url, category=source.category, topic=topic)

    def run(self, sources: Iterable[Any]) -> RunStats:
        """Process every configured URL and block until all workers finish.

        All workers are started before the first job is queued. Producing
        blocks while the queue is full. The queue is closed with one
        sentinel per worker.

        Args:
            sources: Feed sources to enumerate

        Returns:
            Merged statistics of all workers
        """
        job_queue: queue.Queue = queue.Queue(maxsize=self.queue_size)
        worker_stats = [RunStats() for _ in range(self.worker_count)]

        workers = [
            threading.Thread(
                target=self._worker_loop,
                args=(job_queue, worker_stats[index]),
                name=f"feed-worker-{index + 1}",
                daemon=True,
            )
            for index in range(self.worker_count)
        ]
        for worker in workers:
            worker.start()

        job_count = 0
        try:
            for job in self.enumerate_jobs(sources):
                job_queue.put(job)
                job_count += 1
        finally:
            for _ in workers:
                job_queue.put(None)
            for worker in workers:
                worker.join()

        totals = RunStats()
        for stats in worker_stats:
            totals.merge(stats)

        self.logger.info(f"Dispatched {job_count} feed jobs to {self.worker_count} workers: {totals}")
        return totals

    def _create_fetcher(self) -> FeedFetcher:
        return FeedFetcher(settings=self.settings)

    def _worker_loop(self, job_queue: queue.Queue, stats: RunStats) -> None:
        fetcher = self.fetcher or self._create_fetcher()
        try:
            while True:
                job = job_queue.get()
                try:
                    if job is None:
                        return
                    stats.merge(self.process_job(job, fetcher=fetcher))
                except Exception:
                    self.logger.exception(f"Unexpected error processing feed {job.url}")
                finally:
                    job_queue.task_done()
        finally:
            if fetcher is not self.fetcher:
                fetcher.close()

    def process_job(
        self,
        job: FeedJob,
        now: Optional[datetime] = None,
        fetcher: Optional[FeedFetcher] = None,
    ) -> RunStats:
        """Fetch, parse, normalize and write one feed URL.

        Entries are written in feed order. Fetch, parse, drop and write
        failures are counted, never raised.

        Args:
            job: Feed job
            now: Processing time override
            fetcher: Fetcher owned by the calling worker; a short-lived one
                is created when neither this nor a shared fetcher is set

        Returns:
            Statistics for this job
        """
        stats = RunStats()
        logger = get_logger_for_component("dispatcher", feed_url=job.url, category=job.category)

        fetcher = fetcher or self.fetcher

        try:
            if fetcher is None:
                with closing(self._create_fetcher()) as own_fetcher:
                    content = own_fetcher.fetch(job.url)
            else:
                content = fetcher.fetch(job.url)
        except FeedFetchError as e:
            stats.fetch_errors += 1
            logger.warning(f"Feed fetch failed: {e}")
            return stats

        try:
            document = self.parser.parse(content, feed_url=job.url)
        except FeedParseError as e:
            stats.parse_errors += 1
            logger.warning(f"Feed parse failed: {e}")
            return stats

        stats.feeds_processed += 1

        for entry in document.items:
            stats.entries_seen += 1

            try:
                record = self.normalizer.normalize(entry, document, job, now=now)
            except EntryDroppedError:
                stats.entries_dropped += 1
                logger.debug(f"Dropped entry without a valid link: {entry.title[:80]!r}")
                continue

            try:
                result = self.news_repository.insert_if_absent(record)
            except WriteError as e:
                stats.write_errors += 1
                logger.error(f"Failed to write entry: {e}")
                continue

            if result is WriteResult.INSERTED:
                stats.inserted += 1
            else:
                stats.already_present += 1

        logger.info(
            f"Processed {job.url}: {stats.inserted} new, "
            f"{stats.already_present} already present, {stats.entries_dropped} dropped"
        )
        return stats

    def close(self) -> None:
        if self.fetcher is not None:
            self.fetcher.close()
