"""
Foundation Tests for DailyPal
=============================

Test suite for core foundation components including database,
configuration, logging, and validation systems.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError as PydanticValidationError

from dailypal.database.schema import DatabaseSchema
from dailypal.database.connection import DatabaseConnection, get_db_manager, close_db_manager
from dailypal.database.models import FeedSource, NewsRecord
from dailypal.config.settings import (
    DailyPalSettings, DatabaseSettings, IngestionSettings, LimitsSettings,
)
from dailypal.utils.logging import setup_logger, get_logger_for_component, PerformanceLogger
from dailypal.utils.exceptions import (
    DailyPalError, ConfigurationError, DatabaseError, FeedFetchError, FeedParseError,
    EntryDroppedError, SourceListError, ValidationError, WriteError, ErrorCode,
    handle_exception, get_user_friendly_message,
)
from dailypal.utils.validators import (
    URLValidator, is_valid_url, validate_url, validate_source_document,
)


class TestDatabaseSchema:
    """Test database schema creation and validation."""

    def test_create_tables(self, tmp_path):
        db_path = tmp_path / "test.db"
        DatabaseSchema(str(db_path)).create_tables()

        with sqlite3.connect(db_path) as conn:
            tables = {
                row[0] for row in conn.execute(
                    "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
                )
            }

        assert tables == {"feed_sources", "news"}

    def test_verify_schema(self, tmp_path):
        schema = DatabaseSchema(str(tmp_path / "test.db"))

        assert not schema.verify_schema()

        schema.create_tables()
        assert schema.verify_schema()

    def test_create_tables_is_idempotent(self, tmp_path):
        schema = DatabaseSchema(str(tmp_path / "test.db"))
        schema.create_tables()
        schema.create_tables()

        assert schema.verify_schema()

    def test_drop_tables(self, test_database):
        schema = DatabaseSchema(test_database)
        schema.drop_tables()

        assert not schema.verify_schema()


class TestDatabaseConnection:
    """Test database connection management and pooling."""

    def test_connection_creation(self, tmp_path):
        db_manager = DatabaseConnection(str(tmp_path / "test.db"), pool_size=2)

        with db_manager.get_connection() as conn:
            assert conn.execute("SELECT 1").fetchone()[0] == 1

    def test_wal_mode(self, tmp_path):
        db_manager = DatabaseConnection(str(tmp_path / "test.db"), pool_size=1)

        with db_manager.get_connection() as conn:
            assert conn.execute("PRAGMA journal_mode").fetchone()[0].lower() == "wal"

    def test_connection_pooling(self, tmp_path):
        db_manager = DatabaseConnection(str(tmp_path / "test.db"), pool_size=2)

        contexts = [db_manager.get_connection() for _ in range(3)]
        for context in contexts:
            with context as conn:
                assert conn.execute("SELECT 1").fetchone()[0] == 1

    def test_transaction_management(self, test_database):
        db_manager = DatabaseConnection(test_database)

        with db_manager.transaction() as conn:
            conn.execute("INSERT INTO feed_sources (category, topics) VALUES (?, ?)", ("Spor", "{}"))

        row = db_manager.execute_one("SELECT topics FROM feed_sources WHERE category = ?", ("Spor",))
        assert row["topics"] == "{}"

        with pytest.raises(ValueError):
            with db_manager.transaction() as conn:
                conn.execute("INSERT INTO feed_sources (category, topics) VALUES (?, ?)", ("Dünya", "{}"))
                raise ValueError("Test error")

        assert db_manager.execute_one("SELECT 1 FROM feed_sources WHERE category = ?", ("Dünya",)) is None

    def test_database_info(self, db_connection):
        info = db_connection.get_database_info()

        assert info["table_counts"] == {"feed_sources": 0, "news": 0}
        assert info["database_size_mb"] > 0

    def test_ping(self, db_connection):
        db_connection.ping()

    def test_global_manager(self, test_database):
        try:
            first = get_db_manager(test_database, pool_size=3)
            assert get_db_manager(test_database) is first
        finally:
            close_db_manager()


class TestDataModels:
    """Test Pydantic data models."""

    def test_feed_source_iter_urls(self):
        source = FeedSource(category=" Gündem ", topics={"A": ["http://a/1", "http://a/2"], "B": ["http://b/1"]})

        assert source.category == "Gündem"
        assert source.iter_urls() == [("A", "http://a/1"), ("A", "http://a/2"), ("B", "http://b/1")]

    def test_feed_source_rejects_blank_category(self):
        with pytest.raises(PydanticValidationError):
            FeedSource(category="   ", topics={})

    def test_feed_source_from_db_row(self):
        source = FeedSource.from_db_row(
            {"category": "Dünya", "topics": '{"World": ["http://x/1"]}', "updated_at": "2024-01-01"}
        )

        assert source.topics == {"World": ["http://x/1"]}

    def test_news_record_category_is_set_like(self):
        record = NewsRecord(
            link="http://example.com/a",
            pub_date=datetime(2024, 9, 5, tzinfo=timezone.utc),
            category=["Gündem", "Dünya", "Gündem", ""],
            source="http://example.com/feed",
            content_hash="a" * 64,
        )

        assert record.category == ["Gündem", "Dünya"]
        assert record.image_url == ""

    def test_news_record_requires_link(self):
        with pytest.raises(PydanticValidationError):
            NewsRecord(
                link="",
                pub_date=datetime(2024, 9, 5, tzinfo=timezone.utc),
                source="http://example.com/feed",
                content_hash="a" * 64,
            )


class TestConfiguration:
    """Test configuration system."""

    def test_defaults(self):
        settings = DailyPalSettings()

        assert settings.ingestion.worker_count == 5
        assert settings.ingestion.default_language == "tr"
        assert settings.limits.request_timeout == 30

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DAILYPAL_INGESTION__WORKER_COUNT", "8")
        monkeypatch.setenv("DAILYPAL_DATABASE__POOL_SIZE", "8")
        monkeypatch.setenv("DAILYPAL_INGESTION__DEFAULT_LANGUAGE", "en")

        settings = DailyPalSettings()

        assert settings.ingestion.worker_count == 8
        assert settings.database.pool_size == 8
        assert settings.ingestion.default_language == "en"

    def test_pool_smaller_than_workers_is_rejected(self, tmp_path):
        settings = DailyPalSettings(
            ingestion=IngestionSettings(worker_count=10),
            database=DatabaseSettings(path=str(tmp_path / "db" / "test.db"), pool_size=2),
        )

        with pytest.raises(ConfigurationError) as exc_info:
            settings.validate_configuration()

        assert "pool_size" in str(exc_info.value)

    def test_invalid_field_values(self):
        with pytest.raises(PydanticValidationError):
            IngestionSettings(worker_count=0)
        with pytest.raises(PydanticValidationError):
            LimitsSettings(request_timeout=-1)

    def test_effective_log_level_in_debug(self):
        assert DailyPalSettings(debug=True).get_effective_log_level() == "DEBUG"


class TestLogging:
    """Test logging system."""

    def test_logger_setup(self, tmp_path):
        log_file = tmp_path / "test.log"
        logger = setup_logger(name="test_logger", level="INFO", log_file=str(log_file), console=False)

        logger.info("Test message")
        logger.error("Test error message")

        log_content = log_file.read_text(encoding="utf-8")
        assert "Test message" in log_content
        assert "Test error message" in log_content

    def test_component_logger_context(self, caplog):
        caplog.set_level(logging.INFO, logger="dailypal.fetcher")
        logger = get_logger_for_component("fetcher", feed_url="http://example.com/feed", category="Gündem")

        logger.info("Component test message")

        record = caplog.records[-1]
        assert record.name == "dailypal.fetcher"
        assert record.feed_url == "http://example.com/feed"
        assert record.category == "Gündem"

    def test_performance_logger(self, caplog):
        caplog.set_level(logging.INFO)
        logger = logging.getLogger("test")

        with PerformanceLogger(logger, "test_operation", param1="value1"):
            pass

        assert "Completed test_operation" in caplog.text

    def test_performance_logger_failure(self, caplog):
        caplog.set_level(logging.INFO)
        logger = logging.getLogger("test")

        with pytest.raises(RuntimeError):
            with PerformanceLogger(logger, "failing_operation"):
                raise RuntimeError("boom")

        assert "Failed failing_operation" in caplog.text


class TestExceptions:
    """Test exception handling system."""

    def test_dailypal_error(self):
        error = DailyPalError("Test error", error_code=ErrorCode.CONFIG_INVALID, context={"key": "value"})

        assert str(error) == "[C001] Test error"
        data = error.to_dict()
        assert data["error_type"] == "DailyPalError"
        assert data["error_code"] == "C001"
        assert data["context"] == {"key": "value"}

    def test_specific_errors(self):
        assert FeedFetchError("x", feed_url="http://a").context["feed_url"] == "http://a"
        assert FeedParseError("x").error_code == ErrorCode.FEED_PARSE_ERROR
        assert EntryDroppedError("x", title="T").error_code == ErrorCode.ENTRY_MISSING_LINK
        assert SourceListError("x", path="f.json").error_code == ErrorCode.SOURCE_LIST_INVALID
        assert isinstance(SourceListError("x"), ConfigurationError)
        assert isinstance(WriteError("x"), DatabaseError)
        assert WriteError("x", content_hash="abc").context["content_hash"] == "abc"

    def test_handle_exception(self):
        logger = MagicMock()

        converted = handle_exception(FileNotFoundError("rss_feeds.json"), logger, "import")

        assert isinstance(converted, ConfigurationError)
        assert converted.context["operation"] == "import"
        logger.error.assert_called_once()

    def test_handle_exception_passes_through_own_errors(self):
        error = DatabaseError("locked")

        assert handle_exception(error, MagicMock(), "run") is error

    def test_user_friendly_message(self):
        assert get_user_friendly_message(SourceListError("bad")) == "RSS feed list could not be read"
        assert get_user_friendly_message(KeyError("x")).startswith("An unexpected error")


class TestValidators:
    """Test input validation utilities."""

    def test_url_validator(self):
        assert URLValidator.validate_feed_url(" https://example.com/feed ") == "https://example.com/feed"

        for invalid in ["", "ftp://example.com", "https://"]:
            with pytest.raises(ValidationError):
                URLValidator.validate_feed_url(invalid)

        assert validate_url("http://example.com/rss")
        assert not validate_url("example.com/rss")

    def test_is_valid_url_is_prefix_check(self):
        assert is_valid_url("http://example.com")
        assert is_valid_url("https://example.com")
        assert is_valid_url("httpfoo")
        assert not is_valid_url("/relative")
        assert not is_valid_url("")
        assert not is_valid_url(None)

    def test_validate_source_document(self):
        cleaned = validate_source_document({"Gündem": {"A": [" http://a/1 ", "", "http://a/2"]}})

        assert cleaned == {"Gündem": {"A": ["http://a/1", "http://a/2"]}}

    @pytest.mark.parametrize("document", [
        [],
        {"Gündem": []},
        {"Gündem": {"A": "http://a/1"}},
        {"Gündem": {"A": [None]}},
    ])
    def test_validate_source_document_rejects_bad_shapes(self, document):
        with pytest.raises(ValidationError):
            validate_source_document(document)
