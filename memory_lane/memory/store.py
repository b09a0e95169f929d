"""In-memory collection of memory records with a lazy embedding cache.

The store exclusively owns its records. Ranking code receives the read-only
``records`` tuple and builds new sequences; it never mutates records.

Embeddings are resolved on demand by ``ensure_embeddings``. Concurrent calls
that touch the same record share a single in-flight request for it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from memory_lane.config import settings
from memory_lane.errors import EmbeddingError, MalformedInputError
from memory_lane.memory.embeddings import embedding_input, validate_batch
from memory_lane.memory.models import MemoryRecord, now_iso, parse_category, unique_tags

if TYPE_CHECKING:
    from memory_lane.memory.embeddings import Embedder

logger = logging.getLogger(__name__)


class MemoryStore:
    """Owns the memory collection and its embedding cache.

    Construct one per user/session and pass it to whatever needs it; there is
    no shared global instance.
    """

    def __init__(
        self,
        records: Iterable[MemoryRecord] = (),
        embedder: Embedder | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._records: list[MemoryRecord] = list(records)
        self._embedder = embedder
        self._batch_size = batch_size or settings.embedding_batch_size
        self._inflight: dict[str | int, asyncio.Future[None]] = {}

    @classmethod
    def from_raw(cls, raw_items: Any, embedder: Embedder | None = None) -> MemoryStore:
        """Build a store from persisted JSON data."""
        store = cls(embedder=embedder)
        store.replace_all(raw_items)
        return store

    @property
    def records(self) -> tuple[MemoryRecord, ...]:
        return tuple(self._records)

    @property
    def embedder(self) -> Embedder | None:
        return self._embedder

    def __len__(self) -> int:
        return len(self._records)

    @staticmethod
    def normalize(raw: Any) -> MemoryRecord:
        return MemoryRecord.normalize(raw)

    # -- Write ---------------------------------------------------------------

    def add(self, text: str, category: str = "other", tags: Iterable[str] = ()) -> MemoryRecord:
        """Save a new memory. Its embedding is computed lazily on first use."""
        record = MemoryRecord.normalize(
            {"category": category, "text": text, "tags": list(tags), "date": now_iso()}
        )
        self._records.append(record)
        logger.debug("Added memory %s [%s]", record.id, record.category)
        return record

    def update(
        self,
        memory_id: str | int,
        text: str,
        category: str,
        tags: Iterable[str] = (),
    ) -> MemoryRecord:
        """Edit a memory in place.

        The date is refreshed and the embedding invalidated, so the next
        semantic search re-embeds the edited text.

        Raises ``KeyError`` if the memory does not exist.
        """
        record = self.get(memory_id)
        if record is None:
            raise KeyError(memory_id)
        record.text = text
        record.category = parse_category(category)
        record.tags = unique_tags(tags)
        record.created_at = now_iso()
        record.clear_embedding()
        logger.debug("Updated memory %s", memory_id)
        return record

    def delete(self, memory_id: str | int) -> bool:
        """Delete a memory by ID. Returns True if one was removed."""
        before = len(self._records)
        self._records = [r for r in self._records if r.id != memory_id]
        removed = len(self._records) < before
        if removed:
            logger.info("Deleted memory: %s", memory_id)
        return removed

    def replace_all(self, raw_items: Any) -> int:
        """Replace the whole collection (bulk import).

        The payload is validated and normalized before the swap, so a bad
        payload leaves the store unchanged.
        """
        if not isinstance(raw_items, list):
            msg = "Expected a JSON array of memories"
            raise MalformedInputError(msg)
        records = [MemoryRecord.normalize(item) for item in raw_items]
        self._records = records
        logger.info("Replaced collection with %d memories", len(records))
        return len(records)

    # -- Read ----------------------------------------------------------------

    def get(self, memory_id: str | int) -> MemoryRecord | None:
        for record in self._records:
            if record.id == memory_id:
                return record
        return None

    # -- Import / export -----------------------------------------------------

    def export_json(self) -> str:
        return json.dumps([r.to_json() for r in self._records], indent=2, ensure_ascii=False)

    def import_json(self, text: str) -> int:
        """Replace the collection from an exported JSON document."""
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as exc:
            msg = f"Invalid JSON: {exc}"
            raise MalformedInputError(msg) from exc
        return self.replace_all(data)

    # -- Embeddings ----------------------------------------------------------

    async def ensure_embeddings(self, subset: Iterable[MemoryRecord]) -> None:
        """Make sure every record in *subset* carries a valid embedding.

        Missing vectors are requested in batches of at most ``batch_size``
        texts. Records already being embedded by a concurrent call are
        awaited rather than requested again. Any batch failure raises
        ``EmbeddingError``; records from that batch stay without a vector.
        """
        owned: list[tuple[MemoryRecord, asyncio.Future[None]]] = []
        joined: list[asyncio.Future[None]] = []
        seen: set[str | int] = set()
        loop = asyncio.get_running_loop()

        for record in subset:
            if record.id in seen or record.has_embedding or not record.text.strip():
                continue
            seen.add(record.id)
            existing = self._inflight.get(record.id)
            if existing is not None:
                joined.append(existing)
                continue
            future: asyncio.Future[None] = loop.create_future()
            self._inflight[record.id] = future
            owned.append((record, future))

        if owned:
            if self._embedder is None:
                self._resolve(owned, EmbeddingError("No embedder configured"))
                msg = "No embedder configured"
                raise EmbeddingError(msg)
            await self._embed_owned(owned)

        for future in joined:
            await asyncio.shield(future)

    async def _embed_owned(self, owned: list[tuple[MemoryRecord, asyncio.Future[None]]]) -> None:
        index = 0
        try:
            while index < len(owned):
                chunk = owned[index : index + self._batch_size]
                texts = [embedding_input(record) for record, _ in chunk]
                try:
                    batch = validate_batch(texts, await self._embedder.embed(texts))
                except EmbeddingError:
                    raise
                except Exception as exc:
                    msg = f"Embedding request failed: {exc}"
                    raise EmbeddingError(msg) from exc

                for (record, _), text, vector in zip(chunk, texts, batch.vectors, strict=True):
                    # Skip records edited while the request was in flight
                    if embedding_input(record) != text:
                        continue
                    record.embedding = vector
                    record.embedding_model = batch.model
                self._resolve(chunk)
                index += len(chunk)
                logger.debug("Embedded %d memories (%s)", len(chunk), batch.model)
        except EmbeddingError as exc:
            logger.warning("Embedding batch failed: %s", exc)
            self._resolve(owned[index:], exc)
            raise
        except BaseException:
            self._resolve(owned[index:], EmbeddingError("Embedding request cancelled"))
            raise

    def _resolve(
        self,
        entries: list[tuple[MemoryRecord, asyncio.Future[None]]],
        error: Exception | None = None,
    ) -> None:
        for record, future in entries:
            if self._inflight.get(record.id) is future:
                del self._inflight[record.id]
            if future.done():
                continue
            if error is None:
                future.set_result(None)
            else:
                future.set_exception(error)
                # Mark retrieved; joined callers re-raise it when awaiting
                future.exception()
