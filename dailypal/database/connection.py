"""
DailyPal Database Connection Management
=======================================

Thread-safe SQLite connection pool shared by the ingestion workers.
"""

import sqlite3
import threading
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Generator, Any, List, Dict
from queue import Queue, Empty, Full

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Thread-safe SQLite database connection manager with pooling."""

    def __init__(self, db_path: str = "data/dailypal.db", pool_size: int = 5):
        """Initialize database connection manager.

        Args:
            db_path: Path to SQLite database file
            pool_size: Maximum number of connections in pool
        """
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.pool: Queue = Queue(maxsize=pool_size)
        self.lock = threading.Lock()
        self._total_connections = 0

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._initialize_pool()

    def _initialize_pool(self) -> None:
        """Initialize the connection pool with optimized connections."""
        for _ in range(self.pool_size):
            conn = self._create_connection()
            self.pool.put(conn)

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new optimized SQLite connection."""
        conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,  # Connections move between worker threads
            timeout=30.0  # Busy timeout for concurrent writers
        )

        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        conn.execute("PRAGMA temp_store = MEMORY")

        conn.row_factory = sqlite3.Row

        with self.lock:
            self._total_connections += 1

        logger.debug(f"Created database connection #{self._total_connections}")
        return conn

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection from the pool with automatic return.

        Usage:
            with db_manager.get_connection() as conn:
                cursor = conn.execute("SELECT * FROM news")
                results = cursor.fetchall()
        """
        start_time = time.time()
        conn = None

        try:
            try:
                conn = self.pool.get(timeout=10.0)
            except Empty:
                logger.warning("Connection pool exhausted, creating new connection")
                conn = self._create_connection()

            # Test connection validity
            conn.execute("SELECT 1").fetchone()

            acquisition_time = time.time() - start_time
            if acquisition_time > 1.0:
                logger.warning(f"Database connection acquisition took {acquisition_time:.2f}s")

            yield conn

        except sqlite3.Error as e:
            logger.error(f"Database connection error: {e}")
            if conn:
                try:
                    conn.rollback()
                except sqlite3.Error:
                    pass
            raise
        finally:
            if conn:
                self._release(conn)

    def _release(self, conn: sqlite3.Connection) -> None:
        """Return a connection to the pool, closing it when the pool is full."""
        try:
            self.pool.put_nowait(conn)
        except Full:
            conn.close()
            with self.lock:
                self._total_connections -= 1

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Execute operations within a database transaction.

        Usage:
            with db_manager.transaction() as conn:
                conn.execute("INSERT INTO feed_sources ...")
                # Automatic commit on success, rollback on exception
        """
        with self.get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Transaction rolled back due to error: {e}")
                raise

    def execute_query(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Execute a SELECT query and return results."""
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            return cursor.fetchall()

    def execute_one(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        """Execute a query and return single result."""
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            return cursor.fetchone()

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an INSERT/UPDATE/DELETE query.

        Args:
            query: SQL statement
            params: Query parameters

        Returns:
            Number of affected rows
        """
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor.rowcount

    def ping(self) -> None:
        """Verify the store is reachable; raises sqlite3.Error otherwise."""
        with self.get_connection() as conn:
            conn.execute("SELECT 1").fetchone()

    def get_database_info(self) -> Dict[str, Any]:
        """Get database information and statistics."""
        with self.get_connection() as conn:
            page_count = conn.execute("PRAGMA page_count").fetchone()[0]
            page_size = conn.execute("PRAGMA page_size").fetchone()[0]

            table_counts = {}
            for table in ['feed_sources', 'news']:
                try:
                    cursor = conn.execute(f"SELECT COUNT(*) FROM {table}")
                    table_counts[table] = cursor.fetchone()[0]
                except sqlite3.Error:
                    table_counts[table] = 0

            return {
                'database_size_mb': page_count * page_size / (1024 * 1024),
                'table_counts': table_counts,
                'connection_pool_size': self.pool.qsize(),
                'total_connections': self._total_connections
            }

    def close_all_connections(self) -> None:
        """Close all connections in the pool."""
        logger.info("Closing all database connections")

        while not self.pool.empty():
            try:
                conn = self.pool.get_nowait()
                conn.close()
            except (Empty, sqlite3.Error):
                break

        with self.lock:
            self._total_connections = 0


# Global database manager instance
_db_manager: Optional[DatabaseConnection] = None


def get_db_manager(db_path: str = "data/dailypal.db", pool_size: int = 5) -> DatabaseConnection:
    """Get global database manager instance (singleton pattern).

    Args:
        db_path: Path to database file
        pool_size: Connection pool size used on first creation

    Returns:
        Database connection manager instance
    """
    global _db_manager

    if _db_manager is None:
        _db_manager = DatabaseConnection(db_path, pool_size=pool_size)

    return _db_manager


def close_db_manager() -> None:
    """Tear down the global database manager."""
    global _db_manager

    if _db_manager is not None:
        _db_manager.close_all_connections()
        _db_manager = None
