"""Data models for memories and conversation history."""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from memory_lane.config import settings


class Category(StrEnum):
    GIFTS = "gifts"
    TRAVEL = "travel"
    FOOD = "food"
    ACTIVITIES = "activities"
    FAVORITES = "favorites"
    MEMORIES = "memories"
    OTHER = "other"


def parse_category(value: Any) -> Category:
    """Map a raw category value onto ``Category``, defaulting to ``other``."""
    try:
        return Category(value)
    except ValueError:
        return Category.OTHER


def make_memory_id() -> str:
    """Generate a new memory ID."""
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


def is_valid_date(value: Any) -> bool:
    """True for a non-empty string or a finite, non-zero epoch-milliseconds number."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int | float):
        return math.isfinite(value) and value != 0
    return isinstance(value, str) and bool(value)


def parse_timestamp(value: Any) -> float:
    """Epoch seconds for an ISO 8601 string or epoch milliseconds.

    Returns 0.0 when unparseable.
    """
    if not is_valid_date(value):
        return 0.0
    if not isinstance(value, str):
        return value / 1000
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.timestamp()


def unique_tags(raw: Iterable[Any]) -> list[str]:
    """String tags with duplicates removed, first occurrence kept."""
    return list(dict.fromkeys(t for t in raw if isinstance(t, str)))


def valid_vector(value: Any, dimensions: int | None = None) -> bool:
    """True if *value* is a list of exactly *dimensions* finite numbers."""
    size = dimensions or settings.embedding_dimensions
    if not isinstance(value, list) or len(value) != size:
        return False
    return all(
        isinstance(v, int | float) and not isinstance(v, bool) and math.isfinite(v)
        for v in value
    )


class MemoryRecord(BaseModel):
    """A single saved memory.

    Field aliases are the persisted JSON names (``date``, ``embeddingModel``)
    so exported collections load back unchanged.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str | int
    category: Category = Category.OTHER
    text: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: str | int | float = Field(default_factory=now_iso, alias="date")
    embedding: list[float] | None = None
    embedding_model: str | None = Field(default=None, alias="embeddingModel")

    @property
    def created_timestamp(self) -> float:
        return parse_timestamp(self.created_at)

    @property
    def has_embedding(self) -> bool:
        return valid_vector(self.embedding)

    def searchable_text(self) -> str:
        """Lower-cased text, category and tags joined for keyword matching."""
        return " ".join([self.text, self.category.value, *self.tags]).lower()

    def clear_embedding(self) -> None:
        self.embedding = None
        self.embedding_model = None

    def to_json(self) -> dict[str, Any]:
        """Serialize with persisted field names, omitting absent vectors."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def normalize(cls, raw: Any) -> MemoryRecord:
        """Build a well-formed record from arbitrary input. Never raises."""
        data = raw if isinstance(raw, dict) else {}

        record_id = data.get("id")
        if not isinstance(record_id, str | int) or isinstance(record_id, bool) or not record_id:
            record_id = make_memory_id()

        raw_tags = data.get("tags")
        tags = unique_tags(raw_tags) if isinstance(raw_tags, list) else []

        text = data.get("text")
        created_at = data.get("date")

        embedding = data.get("embedding")
        embedding_model = data.get("embeddingModel")
        if valid_vector(embedding):
            embedding = [float(v) for v in embedding]
            if not isinstance(embedding_model, str):
                embedding_model = None
        else:
            embedding = None
            embedding_model = None

        return cls(
            id=record_id,
            category=parse_category(data.get("category")),
            text=text if isinstance(text, str) else "",
            tags=tags,
            created_at=created_at if is_valid_date(created_at) else now_iso(),
            embedding=embedding,
            embedding_model=embedding_model,
        )


class ChatMessage(BaseModel):
    """A single conversation turn."""

    role: Literal["user", "assistant", "system"]
    content: str


def is_valid_history_entry(raw: Any) -> bool:
    """True for persisted entries with a known role and string content."""
    return (
        isinstance(raw, dict)
        and raw.get("role") in ("user", "assistant", "system")
        and isinstance(raw.get("content"), str)
    )


class ChatHistory:
    """Append-only conversation history, kept in full."""

    def __init__(self, messages: list[ChatMessage] | None = None) -> None:
        self.messages: list[ChatMessage] = list(messages or [])

    def __len__(self) -> int:
        return len(self.messages)

    def add(self, role: str, content: str) -> ChatMessage:
        message = ChatMessage(role=role, content=content)
        self.messages.append(message)
        return message

    def clear(self) -> int:
        """Clear all messages. Returns the count of cleared messages."""
        count = len(self.messages)
        self.messages.clear()
        return count

    def to_json(self) -> list[dict[str, str]]:
        return [m.model_dump() for m in self.messages]

    @classmethod
    def from_raw(cls, raw: list[Any]) -> ChatHistory:
        """Build from persisted entries, dropping invalid ones."""
        return cls([ChatMessage(**entry) for entry in raw if is_valid_history_entry(entry)])
