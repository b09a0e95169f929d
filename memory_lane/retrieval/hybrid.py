"""Semantic retrieval with keyword fallback."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from memory_lane.errors import EmbeddingError
from memory_lane.memory.embeddings import validate_batch
from memory_lane.result import Degraded, Ok, Result
from memory_lane.retrieval.ranker import (
    RankedCandidate,
    RankMode,
    filter_by_substring,
    rank,
    recent_first,
)

if TYPE_CHECKING:
    from memory_lane.memory.models import MemoryRecord
    from memory_lane.memory.store import MemoryStore

logger = logging.getLogger(__name__)

SEMANTIC_UNAVAILABLE = "Semantic search is unavailable right now; showing keyword matches."


class HybridRetriever:
    """Runs semantic ranking when asked and falls back to keyword ranking.

    Each call is independent: a failure degrades only that call, and the
    next semantic call tries the embedder again.
    """

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def query_vector(self, query: str) -> list[float]:
        """Fetch one vector for *query*. Raises ``EmbeddingError``."""
        embedder = self._store.embedder
        if embedder is None:
            msg = "No embedder configured"
            raise EmbeddingError(msg)
        try:
            batch = await embedder.embed([query])
        except EmbeddingError:
            raise
        except Exception as exc:
            msg = f"Query embedding failed: {exc}"
            raise EmbeddingError(msg) from exc
        return validate_batch([query], batch).vectors[0]

    async def _semantic_vector(
        self,
        query: str,
        candidates: Sequence[MemoryRecord],
    ) -> list[float]:
        await self._store.ensure_embeddings(candidates)
        return await self.query_vector(query)

    async def retrieve(
        self,
        query: str,
        semantic: bool = False,
        limit: int | None = None,
    ) -> Result[list[RankedCandidate]]:
        """Rank the whole collection for *query*.

        Semantic results are cut to *limit* when one is given;
        keyword results follow ``rank_keyword``'s own filtering.
        """
        memories = self._store.records
        if not semantic:
            return Ok(rank(query, RankMode.KEYWORD, memories, limit=limit))
        if not query.strip():
            return Ok(recent_first(memories))

        try:
            vector = await self._semantic_vector(query, memories)
        except EmbeddingError as exc:
            logger.warning("Semantic retrieval degraded to keyword: %s", exc)
            return Degraded(rank(query, RankMode.KEYWORD, memories, limit=limit), str(exc))

        ranked = rank(query, RankMode.SEMANTIC, memories, query_vector=vector)
        return Ok(ranked if limit is None else ranked[:limit])

    async def browse(
        self,
        query: str,
        category: str = "all",
        semantic: bool = False,
    ) -> Result[list[RankedCandidate]]:
        """The browse list: category filter, then search ordering.

        An empty query is always newest first. A failed semantic attempt
        falls back to substring filtering for both filtering and ordering.
        """
        memories = [
            m for m in self._store.records if category == "all" or m.category.value == category
        ]
        if not query.strip():
            return Ok(recent_first(memories))
        if not semantic:
            return Ok(filter_by_substring(query, memories))

        try:
            vector = await self._semantic_vector(query, memories)
        except EmbeddingError as exc:
            logger.warning("Semantic browse degraded to keyword: %s", exc)
            return Degraded(filter_by_substring(query, memories), str(exc))

        return Ok(rank(query, RankMode.SEMANTIC, memories, query_vector=vector))
