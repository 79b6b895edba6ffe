"""
Feed Source Repository
======================

Read and upsert access to configured feed sources. Each row holds one
category and its topic -> feed URL lists as JSON.
"""

import json
import sqlite3
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..database.connection import DatabaseConnection
from ..database.models import FeedSource
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class FeedSourceRepository:
    """Repository for feed source records keyed by category."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("source_repository")

    def list_sources(self) -> List[FeedSource]:
        """Get all feed sources.

        Rows whose topics cannot be decoded are logged and skipped.

        Returns:
            List of FeedSource objects ordered by category

        Raises:
            DatabaseError: If the table cannot be read
        """
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    "SELECT category, topics FROM feed_sources ORDER BY category"
                ).fetchall()

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to list feed sources: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

        sources = []
        for row in rows:
            try:
                sources.append(FeedSource.from_db_row(row))
            except (json.JSONDecodeError, PydanticValidationError, TypeError) as e:
                self.logger.warning(f"Skipping malformed feed source '{row['category']}': {e}")

        return sources

    def get_source(self, category: str) -> Optional[FeedSource]:
        """Get one feed source by category, None if absent."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT category, topics FROM feed_sources WHERE category = ?",
                    (category,),
                ).fetchone()

                return FeedSource.from_db_row(row) if row else None

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get feed source {category}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def upsert_source(self, source: FeedSource) -> None:
        """Create or replace the topics of a category.

        Args:
            source: Feed source to store

        Raises:
            DatabaseError: If the write fails
        """
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO feed_sources (category, topics, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(category) DO UPDATE SET
                        topics = excluded.topics,
                        updated_at = CURRENT_TIMESTAMP
                """,
                    (source.category, source.topics_json()),
                )

            self.logger.info(f"Upserted feed source {source}")

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to upsert feed source {source.category}: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e
