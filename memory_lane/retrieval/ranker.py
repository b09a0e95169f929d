"""Pure ranking functions.

Nothing here mutates its inputs or performs I/O; every function returns a
newly built list of ``RankedCandidate``.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from memory_lane.config import settings
from memory_lane.memory.models import MemoryRecord

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
MIN_TOKEN_LENGTH = 3


class RankMode(StrEnum):
    KEYWORD = "keyword"
    SEMANTIC = "semantic"


@dataclass(frozen=True)
class RankedCandidate:
    memory: MemoryRecord
    score: float


def tokenize(text: str) -> list[str]:
    """Lower-case, strip punctuation, drop tokens shorter than 3 chars."""
    cleaned = _NON_ALNUM_RE.sub(" ", text.lower())
    return [token for token in cleaned.split() if len(token) >= MIN_TOKEN_LENGTH]


def _retrievable(memories: Sequence[MemoryRecord]) -> list[MemoryRecord]:
    return [m for m in memories if m.text.strip()]


def recent_first(memories: Sequence[MemoryRecord]) -> list[RankedCandidate]:
    """All retrievable memories, newest first, scored 0."""
    ordered = sorted(_retrievable(memories), key=lambda m: m.created_timestamp, reverse=True)
    return [RankedCandidate(memory=m, score=0.0) for m in ordered]


def rank_keyword(
    query: str,
    memories: Sequence[MemoryRecord],
    limit: int | None = None,
) -> list[RankedCandidate]:
    """Score memories by distinct query tokens found in their searchable text.

    Only memories scoring above zero are kept. When nothing matches, the
    most recent ``min(limit, fallback_recent_limit)`` memories are returned
    instead.
    """
    limit = settings.retrieval_limit if limit is None else limit
    terms = set(tokenize(query))

    scored = [
        RankedCandidate(
            memory=m,
            score=float(sum(1 for term in terms if term in m.searchable_text())),
        )
        for m in _retrievable(memories)
    ]
    scored.sort(key=lambda c: (c.score, c.memory.created_timestamp), reverse=True)

    matched = [c for c in scored if c.score > 0]
    if matched:
        return matched[:limit]
    return scored[: min(limit, settings.fallback_recent_limit)]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity, 0.0 for empty, mismatched or zero-magnitude vectors."""
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    # Clamp float drift so the result stays within [-1, 1]
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


def rank_semantic(
    query_vector: Sequence[float],
    memories: Sequence[MemoryRecord],
) -> list[RankedCandidate]:
    """Order memories by cosine similarity to *query_vector*.

    No threshold is applied; memories without an embedding score 0.
    """
    scored = [
        RankedCandidate(memory=m, score=cosine_similarity(query_vector, m.embedding or []))
        for m in _retrievable(memories)
    ]
    scored.sort(key=lambda c: c.score, reverse=True)
    return scored


def filter_by_substring(query: str, memories: Sequence[MemoryRecord]) -> list[RankedCandidate]:
    """Memories whose text, tags or category contain *query*, newest first.

    This is the browse-list filter: the raw search term is matched as one
    substring, it is not tokenized.
    """
    term = query.strip().lower()
    matches = [
        m
        for m in memories
        if term in m.text.lower()
        or any(term in tag.lower() for tag in m.tags)
        or term in m.category.value
    ]
    ordered = sorted(matches, key=lambda m: m.created_timestamp, reverse=True)
    return [RankedCandidate(memory=m, score=1.0) for m in ordered]


def rank(
    query: str,
    mode: RankMode,
    memories: Sequence[MemoryRecord],
    query_vector: Sequence[float] | None = None,
    limit: int | None = None,
) -> list[RankedCandidate]:
    """Rank *memories* for *query* under *mode*.

    An empty query always yields reverse-chronological order. Semantic mode
    without a query vector ranks by keyword.
    """
    if not query.strip():
        return recent_first(memories)
    if mode == RankMode.SEMANTIC and query_vector:
        return rank_semantic(query_vector, memories)
    return rank_keyword(query, memories, limit=limit)
