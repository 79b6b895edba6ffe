"""
DailyPal Data Models
====================

Pydantic data models for the persisted entities: configured feed sources
and normalized news records.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Dict, Any, Tuple
import json

from pydantic import BaseModel, Field, field_validator


class WriteResult(str, Enum):
    """Outcome of an insert-if-absent write."""
    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"


class FeedSource(BaseModel):
    """A source category with its topic -> feed URL lists."""
    category: str = Field(..., min_length=1, description="Source category label")
    topics: Dict[str, List[str]] = Field(default_factory=dict, description="Topic label -> ordered feed URLs")

    @field_validator('category')
    @classmethod
    def validate_category(cls, v):
        """Category is the upsert key and must not be blank."""
        v = v.strip()
        if not v:
            raise ValueError("Category cannot be empty")
        return v

    def topics_json(self) -> str:
        """Get topics as JSON string for database storage."""
        return json.dumps(self.topics, ensure_ascii=False)

    def iter_urls(self) -> List[Tuple[str, str]]:
        """Flatten topics into (topic, url) pairs in declaration order."""
        return [(topic, url) for topic, urls in self.topics.items() for url in urls]

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "FeedSource":
        """Create FeedSource from database row with JSON parsing."""
        data = dict(row)
        if isinstance(data.get('topics'), str):
            data['topics'] = json.loads(data['topics'])
        data.pop('updated_at', None)
        return cls(**data)

    def __str__(self) -> str:
        return f"FeedSource({self.category}: {len(self.topics)} topics)"


class NewsRecord(BaseModel):
    """Normalized news record, the unit persisted by the store."""
    title: str = Field(default="", description="Entry title")
    link: str = Field(..., min_length=1, description="Canonical entry link")
    description: str = Field(default="", description="Plain-text body")
    pub_date: datetime = Field(..., description="Publish time in UTC")
    category: List[str] = Field(default_factory=list, description="Category labels")
    source: str = Field(..., description="Origin feed URL")
    creator: str = Field(default="", description="Entry author")
    language: str = Field(default="", description="Language tag")
    last_build_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Processing time")
    image_url: str = Field(default="", description="Resolved image URL, empty when none")
    sub_category: str = Field(default="", description="Topic label the feed URL was listed under")
    content_hash: str = Field(..., min_length=64, max_length=64, description="sha256(title + link)")

    @field_validator('category')
    @classmethod
    def dedupe_category(cls, v):
        """Category labels behave as a set; keep first occurrence order."""
        return list(dict.fromkeys(label for label in v if label))

    def to_db_params(self) -> Tuple[Any, ...]:
        """Column values in the order used by the news INSERT statement."""
        return (
            self.content_hash,
            self.title,
            self.link,
            self.description,
            self.pub_date.isoformat(),
            json.dumps(self.category, ensure_ascii=False),
            self.source,
            self.creator,
            self.language,
            self.last_build_date.isoformat(),
            self.image_url,
            self.sub_category,
        )

    @classmethod
    def from_db_row(cls, row: Dict[str, Any]) -> "NewsRecord":
        """Create NewsRecord from database row with JSON parsing."""
        data = dict(row)
        if isinstance(data.get('category'), str):
            data['category'] = json.loads(data['category'])
        for column in ('id', 'created_at'):
            data.pop(column, None)
        for column in ('description', 'creator', 'language', 'image_url', 'sub_category'):
            if data.get(column) is None:
                data[column] = ""
        return cls(**data)

    def __str__(self) -> str:
        return f"NewsRecord({self.title[:50]})"
