"""
Ingestion Service
=================

Shared service behind the CLI: run one ingestion pass and load the feed
source list from a JSON document.
"""

import json
import sqlite3
from pathlib import Path
from typing import Optional, Union

from ..database.connection import DatabaseConnection
from ..database.models import FeedSource
from ..processing.dispatcher import FeedDispatcher, RunStats
from ..storage.news_repository import NewsRepository
from ..storage.source_repository import FeedSourceRepository
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import DatabaseError, SourceListError, ValidationError, ErrorCode
from ..utils.validators import validate_source_document


class IngestionService:
    """Trigger surface for ingestion runs and source list imports."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        dispatcher: Optional[FeedDispatcher] = None,
    ):
        """Initialize the ingestion service.

        Args:
            db_connection: Database connection manager
            dispatcher: Feed dispatcher (built on the shared store by default)
        """
        self.db = db_connection
        self.news_repository = NewsRepository(db_connection)
        self.source_repository = FeedSourceRepository(db_connection)
        self.dispatcher = dispatcher or FeedDispatcher(self.news_repository)
        self.logger = get_logger_for_component("ingestion_service")

    def run_ingestion(self) -> RunStats:
        """Run one ingestion pass over every configured source.

        Returns after all workers have finished.

        Returns:
            Statistics for the whole run

        Raises:
            DatabaseError: If the store is unreachable before the run starts
        """
        try:
            self.db.ping()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Store unreachable, ingestion run aborted: {e}",
                error_code=ErrorCode.DATABASE_CONNECTION,
                recoverable=False,
            ) from e

        sources = self.source_repository.list_sources()
        self.logger.info(f"Starting ingestion run over {len(sources)} source categories")

        with PerformanceLogger(self.logger, "ingestion run", sources=len(sources)):
            stats = self.dispatcher.run(sources)

        self.logger.info(f"Ingestion run finished: {stats}")
        return stats

    def import_sources(self, path: Union[str, Path]) -> int:
        """Load or replace feed sources from a JSON document.

        The document maps category -> topic -> list of feed URLs. Each
        category replaces the stored topics of the same category.

        Args:
            path: Path of the JSON document

        Returns:
            Number of categories upserted

        Raises:
            SourceListError: If the document cannot be read or is malformed
        """
        path = Path(path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise SourceListError(f"Cannot read source list {path}: {e}", path=str(path)) from e
        except json.JSONDecodeError as e:
            raise SourceListError(f"Source list {path} is not valid JSON: {e}", path=str(path)) from e

        try:
            cleaned = validate_source_document(document)
            sources = [
                FeedSource(category=category, topics=topics)
                for category, topics in cleaned.items()
            ]
        except (ValidationError, ValueError) as e:
            raise SourceListError(f"Source list {path} is malformed: {e}", path=str(path)) from e

        for source in sources:
            self.source_repository.upsert_source(source)

        self.logger.info(f"Imported {len(sources)} source categories from {path}")
        return len(sources)
