"""
News Repository
===============

Insert-if-absent persistence for normalized news records.

The dedup check and the insert are a single ``INSERT OR IGNORE`` against
the UNIQUE ``content_hash`` column, so concurrent workers writing the same
record cannot both insert it.
"""

import sqlite3
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import NewsRecord, WriteResult
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, WriteError, ErrorCode


INSERT_NEWS_SQL = """
    INSERT OR IGNORE INTO news (
        content_hash, title, link, description, pub_date, category,
        source, creator, language, last_build_date, image_url, sub_category
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


class NewsRepository:
    """Repository for news records keyed by content hash."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize news repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("news_repository")

    def insert_if_absent(self, record: NewsRecord) -> WriteResult:
        """Insert a record unless one with the same content hash exists.

        An existing row is never modified.

        Args:
            record: Normalized news record

        Returns:
            WriteResult.INSERTED or WriteResult.ALREADY_PRESENT

        Raises:
            WriteError: If the store rejects or cannot perform the write
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(INSERT_NEWS_SQL, record.to_db_params())
                conn.commit()

        except sqlite3.Error as e:
            raise WriteError(
                f"Failed to write news record '{record.title[:50]}': {e}",
                content_hash=record.content_hash,
            ) from e

        if cursor.rowcount == 1:
            self.logger.debug(f"Inserted news {record.content_hash[:12]}: {record.link}")
            return WriteResult.INSERTED

        return WriteResult.ALREADY_PRESENT

    def find_by_content_hash(self, content_hash: str) -> Optional[NewsRecord]:
        """Get a stored record by its content hash.

        Args:
            content_hash: sha256 hex digest

        Returns:
            NewsRecord if found, None otherwise
        """
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM news WHERE content_hash = ?", (content_hash,)
                ).fetchone()

                return NewsRecord.from_db_row(row) if row else None

        except sqlite3.Error as e:
            self.logger.error(f"Failed to get news {content_hash}: {e}")
            raise DatabaseError(
                f"Failed to get news by content hash: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def count_news(self, source: Optional[str] = None) -> int:
        """Count stored records, optionally for one source URL."""
        try:
            with self.db.get_connection() as conn:
                if source:
                    row = conn.execute(
                        "SELECT COUNT(*) FROM news WHERE source = ?", (source,)
                    ).fetchone()
                else:
                    row = conn.execute("SELECT COUNT(*) FROM news").fetchone()
                return row[0]

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to count news: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e

    def get_recent_news(self, limit: int = 10) -> List[NewsRecord]:
        """Get the most recently published records.

        Args:
            limit: Maximum number of records

        Returns:
            Records ordered by publish date, newest first
        """
        try:
            rows = self.db.execute_query(
                "SELECT * FROM news ORDER BY pub_date DESC, id DESC LIMIT ?", (limit,)
            )
            return [NewsRecord.from_db_row(row) for row in rows]

        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get recent news: {e}", error_code=ErrorCode.DATABASE_ERROR
            ) from e
