"""
DailyPal - News Feed Ingestion
==============================

Concurrent RSS/Atom ingestion with normalization and content-hash dedup.

Main Components:
- Database: SQLite with connection pooling and schema management
- Configuration: environment variables with Pydantic validation
- Ingestion: feed fetching, namespace-tolerant parsing, field normalization
- Processing: bounded-queue worker pool feeding an insert-if-absent store
"""

__version__ = "1.0.0"
__author__ = "DailyPal Development Team"
__description__ = "News feed ingestion and deduplication"

# Core imports for easy access
from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import DailyPalError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "DailyPalError",
]
