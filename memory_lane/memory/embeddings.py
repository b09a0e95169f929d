"""Embedding contracts shared by the store, the gateway client and server."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from memory_lane.config import settings
from memory_lane.errors import EmbeddingError
from memory_lane.memory.models import valid_vector

if TYPE_CHECKING:
    from memory_lane.memory.models import MemoryRecord


@dataclass
class EmbeddingBatch:
    """Vectors for one embed call, one per input and in input order."""

    vectors: list[list[float]]
    model: str


class Embedder(Protocol):
    async def embed(self, inputs: list[str]) -> EmbeddingBatch: ...


def embedding_input(record: MemoryRecord) -> str:
    """Text fed to the embedding call for *record*."""
    return f"{record.category.value} | {', '.join(record.tags)} | {record.text}"


def validate_batch(
    inputs: list[str],
    batch: EmbeddingBatch,
    dimensions: int | None = None,
) -> EmbeddingBatch:
    """Reject a batch whose arity or any vector is wrong.

    Raises ``EmbeddingError``; a bad batch is never partially applied.
    """
    size = dimensions or settings.embedding_dimensions
    if len(batch.vectors) != len(inputs):
        msg = f"Expected {len(inputs)} vectors, got {len(batch.vectors)}"
        raise EmbeddingError(msg)
    for index, vector in enumerate(batch.vectors):
        if not valid_vector(vector, size):
            msg = f"Vector {index} is not {size} finite numbers"
            raise EmbeddingError(msg)
    return EmbeddingBatch(vectors=[[float(v) for v in vec] for vec in batch.vectors], model=batch.model)


def coerce_vector(raw: Any, dimensions: int | None = None) -> list[float] | None:
    """Coerce model output into a fixed-size vector.

    Values are converted to floats; short vectors are zero-padded and long
    ones truncated. Returns None for non-lists or any non-finite value.
    """
    size = dimensions or settings.embedding_dimensions
    if not isinstance(raw, list):
        return None
    values: list[float] = []
    for item in raw:
        if isinstance(item, bool):
            return None
        try:
            value = float(item)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(value):
            return None
        values.append(value)
    if len(values) >= size:
        return values[:size]
    return values + [0.0] * (size - len(values))
