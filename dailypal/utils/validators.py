"""
DailyPal Input Validators
=========================

URL checks used by the normalizer and structural validation of the
source list document.
"""

from typing import Any, Dict, List
from urllib.parse import urlparse

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation utilities."""

    # Allowed schemes for RSS feeds
    ALLOWED_SCHEMES = {"http", "https"}

    @classmethod
    def validate_feed_url(cls, url: str) -> str:
        """Validate and normalize RSS feed URL.

        Args:
            url: URL to validate

        Returns:
            Normalized URL

        Raises:
            ValidationError: If URL is invalid
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url",
            )

        url = url.strip()
        parsed = urlparse(url)

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        return url


def is_valid_url(url: Any) -> bool:
    """Cheap link/image candidate check: a non-empty string starting with http.

    This is a prefix check only, not URL-grammar validation.
    """
    return isinstance(url, str) and url.startswith("http")


def validate_url(url: str) -> bool:
    """
    Quick validation function for feed URLs.

    Args:
        url: URL to validate

    Returns:
        True if URL is valid, False otherwise
    """
    try:
        URLValidator.validate_feed_url(url)
        return True
    except ValidationError:
        return False


def validate_source_document(document: Any) -> Dict[str, Dict[str, List[str]]]:
    """Validate the shape of a source list document.

    Expected shape: ``{category: {topic: [url, ...]}}``.

    Args:
        document: Decoded JSON document

    Returns:
        The document with URL lists stripped of blanks

    Raises:
        ValidationError: If the document does not have the expected shape
    """
    if not isinstance(document, dict):
        raise ValidationError(
            "Source document must be an object keyed by category",
            field_name="document",
        )

    cleaned: Dict[str, Dict[str, List[str]]] = {}
    for category, topics in document.items():
        if not isinstance(topics, dict):
            raise ValidationError(
                f"Topics of category '{category}' must be an object",
                field_name="topics",
            )

        cleaned_topics = {}
        for topic, urls in topics.items():
            if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
                raise ValidationError(
                    f"URLs of topic '{category}/{topic}' must be a list of strings",
                    field_name="urls",
                )
            cleaned_topics[topic] = [u.strip() for u in urls if u.strip()]

        cleaned[category] = cleaned_topics

    return cleaned
