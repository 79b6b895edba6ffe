"""
DailyPal Database Schema
========================

SQLite schema for the ingestion store:
- feed_sources: configured source categories and their topic -> URL lists
- news: normalized news records, unique by content hash
"""

import sqlite3
import logging
from contextlib import closing
from pathlib import Path

logger = logging.getLogger(__name__)


class DatabaseSchema:
    """Database schema manager for the DailyPal SQLite database."""

    EXPECTED_TABLES = {"feed_sources", "news"}

    def __init__(self, db_path: str = "data/dailypal.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables with proper schema."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            self._create_feed_sources_table(conn)
            self._create_news_table(conn)
            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_feed_sources_table(self, conn: sqlite3.Connection) -> None:
        """Create feed_sources table, one row per category."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS feed_sources (
                category TEXT PRIMARY KEY,
                topics TEXT NOT NULL DEFAULT '{}',  -- JSON object: topic -> [url, ...]
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_news_table(self, conn: sqlite3.Connection) -> None:
        """Create news table; content_hash is the dedup key."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS news (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                content_hash TEXT UNIQUE NOT NULL,
                title TEXT NOT NULL,
                link TEXT NOT NULL,
                description TEXT,
                pub_date TIMESTAMP NOT NULL,
                category TEXT NOT NULL DEFAULT '[]',  -- JSON array of labels
                source TEXT NOT NULL,
                creator TEXT,
                language TEXT,
                last_build_date TIMESTAMP NOT NULL,
                image_url TEXT,
                sub_category TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        """Create database indexes for common queries."""
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_news_pub_date ON news(pub_date)",
            "CREATE INDEX IF NOT EXISTS idx_news_source ON news(source)",
            "CREATE INDEX IF NOT EXISTS idx_news_sub_category ON news(sub_category)",
        ]

        for index_sql in indexes:
            conn.execute(index_sql)

    def drop_tables(self) -> None:
        """Drop all tables (for testing/reset purposes)."""
        with closing(sqlite3.connect(self.db_path)) as conn:
            for table in ("news", "feed_sources"):
                conn.execute(f"DROP TABLE IF EXISTS {table}")

            conn.commit()
            logger.info("All database tables dropped")

    def verify_schema(self) -> bool:
        """Verify database schema is correctly created."""
        try:
            with closing(sqlite3.connect(self.db_path)) as conn:
                cursor = conn.execute(
                    """
                    SELECT name FROM sqlite_master
                    WHERE type='table' AND name NOT LIKE 'sqlite_%'
                """
                )
                tables = {row[0] for row in cursor.fetchall()}

            missing = self.EXPECTED_TABLES - tables
            if missing:
                logger.error(f"Missing tables: {sorted(missing)}")
                return False

            logger.info("Database schema verification passed")
            return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False


def create_tables(db_path: str = "data/dailypal.db") -> None:
    """Convenience function to create database tables."""
    schema = DatabaseSchema(db_path)
    schema.create_tables()
