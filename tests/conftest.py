"""Shared test fixtures."""

from __future__ import annotations

import asyncio

import pytest

from memory_lane.errors import EmbeddingError
from memory_lane.memory.embeddings import EmbeddingBatch
from memory_lane.memory.models import MemoryRecord
from memory_lane.memory.store import MemoryStore

DIMS = 128


def unit(index: int, scale: float = 1.0) -> list[float]:
    """A 128-d vector with *scale* at *index* and zeros elsewhere."""
    vector = [0.0] * DIMS
    vector[index] = scale
    return vector


def make_record(
    record_id: str,
    text: str,
    category: str = "other",
    tags: list[str] | None = None,
    date: str = "2024-01-01T00:00:00+00:00",
    embedding: list[float] | None = None,
) -> MemoryRecord:
    raw = {"id": record_id, "category": category, "text": text, "tags": tags or [], "date": date}
    if embedding is not None:
        raw["embedding"] = embedding
        raw["embeddingModel"] = "test-model"
    return MemoryRecord.normalize(raw)


class FakeEmbedder:
    """Records calls; returns mapped vectors (default ``unit(0)``)."""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        fail: bool = False,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.vectors = vectors or {}
        self.fail = fail
        self.gate = gate
        self.calls: list[list[str]] = []

    async def embed(self, inputs: list[str]) -> EmbeddingBatch:
        self.calls.append(list(inputs))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            msg = "embedding service down"
            raise EmbeddingError(msg)
        return EmbeddingBatch(
            vectors=[self.vectors.get(text, unit(0)) for text in inputs],
            model="fake-embed",
        )


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def records() -> list[MemoryRecord]:
    return [
        make_record("1", "loves sushi downtown", "food", ["food"], "2024-03-01T00:00:00Z"),
        make_record("2", "hiking gear", "activities", [], "2024-02-01T00:00:00Z"),
        make_record("3", "wants to visit Kyoto in spring", "travel", ["japan"], "2024-01-01T00:00:00Z"),
    ]


@pytest.fixture
def store(records: list[MemoryRecord], embedder: FakeEmbedder) -> MemoryStore:
    return MemoryStore(records, embedder=embedder)
