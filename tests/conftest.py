"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for DailyPal tests.

- Environment variables are set before any dailypal import
- Each test gets its own SQLite file under tmp_path
- Sample feed documents are built by the rss_feed fixture
"""

import pytest
import tempfile
import os
import sys
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
_TEST_DIR = Path(tempfile.mkdtemp(prefix="dailypal_tests_"))
os.environ["DAILYPAL_DATABASE__PATH"] = str(_TEST_DIR / "dailypal_test.db")
os.environ["DAILYPAL_LOGGING__FILE_PATH"] = str(_TEST_DIR / "dailypal_test.log")
os.environ["DAILYPAL_LOGGING__CONSOLE_LOGGING"] = "false"
os.environ["DAILYPAL_DEBUG"] = "true"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def test_database(tmp_path):
    """Fresh database file with schema, isolated per test."""
    from dailypal.database.schema import DatabaseSchema

    db_path = tmp_path / "dailypal_test.db"
    schema = DatabaseSchema(str(db_path))
    schema.create_tables()

    return str(db_path)


@pytest.fixture
def db_connection(test_database):
    """Create a database connection manager for testing."""
    from dailypal.database.connection import DatabaseConnection

    connection = DatabaseConnection(test_database, pool_size=5)
    yield connection

    # Cleanup connections
    connection.close_all_connections()


@pytest.fixture
def news_repository(db_connection):
    from dailypal.storage.news_repository import NewsRepository

    return NewsRepository(db_connection)


@pytest.fixture
def source_repository(db_connection):
    from dailypal.storage.source_repository import FeedSourceRepository

    return FeedSourceRepository(db_connection)


# ============================================================================
# Sample Data Fixtures
# ============================================================================


RSS_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:atom="http://www.w3.org/2005/Atom"
     xmlns:dc="http://purl.org/dc/elements/1.1/"
     xmlns:media="http://search.yahoo.com/mrss/">
    <channel>
        <title>{title}</title>
        <link>http://example.com</link>
        <description>Test feed</description>
        {language}
        {items}
    </channel>
</rss>"""

ITEM_TEMPLATE = """
        <item>
            <title>{title}</title>
            <link>{link}</link>
            <description>{description}</description>
            {extra}
        </item>"""


def build_rss(items, title="Test Feed", language=None) -> bytes:
    """Render an RSS 2.0 document from (title, link, description, extra) tuples."""
    rendered = "".join(
        ITEM_TEMPLATE.format(
            title=item[0],
            link=item[1],
            description=item[2] if len(item) > 2 else "",
            extra=item[3] if len(item) > 3 else "",
        )
        for item in items
    )
    language_tag = f"<language>{language}</language>" if language else ""
    return RSS_TEMPLATE.format(title=title, language=language_tag, items=rendered).encode("utf-8")


@pytest.fixture
def rss_feed():
    """Factory building RSS 2.0 documents as bytes."""
    return build_rss


@pytest.fixture
def sample_sources():
    """Generate sample feed sources for testing."""
    from dailypal.database.models import FeedSource

    return [
        FeedSource(
            category="Gündem",
            topics={
                "Son Dakika": ["http://feeds.example.com/breaking.rss"],
                "Türkiye": ["http://feeds.example.com/turkey.rss"],
            },
        ),
        FeedSource(
            category="Dünya",
            topics={"World": ["http://feeds.example.org/world.rss"]},
        ),
    ]
