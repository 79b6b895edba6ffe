"""
DailyPal Custom Exceptions
==========================

Exception hierarchy for the ingestion pipeline with error codes, context
information and user-friendly messages.

Every failure inside a run is local (one URL, one entry, one write) and is
caught by the dispatcher; only configuration, source-list and store
connectivity errors reach the caller.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"
    CONFIG_PARSE_ERROR = "C003"
    SOURCE_LIST_INVALID = "C004"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Feed ingestion errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"
    FEED_HTTP_STATUS = "F005"

    # Content processing errors (P001-P099)
    CONTENT_INVALID = "P001"
    ENTRY_MISSING_LINK = "P002"

    # Validation errors (V001-V099)
    VALIDATION_REQUIRED_FIELD = "V001"
    VALIDATION_INVALID_FORMAT = "V002"


class DailyPalError(Exception):
    """Base exception for all DailyPal errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize DailyPal error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether a later run may succeed
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


class ConfigurationError(DailyPalError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message"]
            },
        )


class SourceListError(ConfigurationError):
    """Source list document could not be read or decoded."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if path:
            context["path"] = path

        super().__init__(
            message,
            error_code=kwargs.pop("error_code", ErrorCode.SOURCE_LIST_INVALID),
            context=context,
            user_message=kwargs.pop("user_message", "RSS feed list could not be read"),
            **kwargs,
        )


class DatabaseError(DailyPalError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize database error.

        Args:
            message: Error message
            query: SQL query that caused the error
            **kwargs: Additional arguments for DailyPalError
        """
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message", "recoverable"]
            },
        )


class WriteError(DatabaseError):
    """A single news record could not be written."""

    def __init__(self, message: str, content_hash: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if content_hash:
            context["content_hash"] = content_hash

        super().__init__(
            message,
            error_code=kwargs.pop("error_code", ErrorCode.DATABASE_ERROR),
            context=context,
            user_message=kwargs.pop("user_message", "News record could not be saved"),
            **kwargs,
        )


class FeedError(DailyPalError):
    """Feed ingestion and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for DailyPalError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message", "recoverable"]
            },
        )


class FeedFetchError(FeedError):
    """RSS feed fetching errors."""

    pass


class FeedParseError(FeedError):
    """Feed document root could not be decoded."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_PARSE_ERROR)
        super().__init__(message, feed_url=feed_url, **kwargs)


class ProcessingError(DailyPalError):
    """Content processing errors."""

    def __init__(self, message: str, title: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if title:
            context["title"] = title

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONTENT_INVALID),
            context=context,
            user_message=kwargs.get("user_message", "Entry processing failed"),
            recoverable=kwargs.get("recoverable", True),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message", "recoverable"]
            },
        )


class EntryDroppedError(ProcessingError):
    """Entry has no usable link and is excluded from the run."""

    def __init__(self, message: str, title: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.ENTRY_MISSING_LINK)
        kwargs.setdefault("recoverable", False)
        super().__init__(message, title=title, **kwargs)


class ValidationError(DailyPalError):
    """Data validation errors."""

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if field_name:
            context["field_name"] = field_name

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.VALIDATION_INVALID_FORMAT),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Invalid {field_name or 'input'}: {message}"
            ),
            recoverable=kwargs.get("recoverable", False),
            **{
                k: v
                for k, v in kwargs.items()
                if k not in ["context", "error_code", "user_message", "recoverable"]
            },
        )


# Exception handling utilities


def handle_exception(
    exception: Exception,
    logger,
    operation: str,
    context: Optional[Dict[str, Any]] = None,
) -> DailyPalError:
    """Convert generic exceptions to DailyPal exceptions with proper logging.

    Args:
        exception: Original exception
        logger: Logger instance for error logging
        operation: Operation that was being performed
        context: Additional context information

    Returns:
        DailyPal exception with proper categorization
    """
    context = context or {}
    context["operation"] = operation
    context["original_exception_type"] = type(exception).__name__

    if isinstance(exception, DailyPalError):
        logger.error(f"Operation '{operation}' failed", extra=exception.to_dict())
        return exception

    elif isinstance(exception, (ConnectionError, TimeoutError)):
        error = DailyPalError(
            message=f"Network error during {operation}: {str(exception)}",
            error_code=ErrorCode.FEED_NETWORK_ERROR,
            context=context,
            user_message="Network connection failed",
            recoverable=True,
        )

    elif isinstance(exception, FileNotFoundError):
        error = ConfigurationError(
            message=f"Required file not found during {operation}: {str(exception)}",
            error_code=ErrorCode.CONFIG_MISSING,
            context=context,
            user_message="Configuration file missing",
        )

    else:
        error = DailyPalError(
            message=f"Unexpected error during {operation}: {str(exception)}",
            context=context,
            user_message="An unexpected error occurred",
            recoverable=True,
        )

    logger.error(f"Operation '{operation}' failed", extra=error.to_dict())
    return error


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception."""
    if isinstance(exception, DailyPalError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
