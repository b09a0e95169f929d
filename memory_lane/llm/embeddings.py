"""Semantic vectors generated by Claude.

There is no dedicated embedding endpoint behind the gateway: a small model
is asked to emit fixed-size vectors as strict JSON.
"""

from __future__ import annotations

import json
import logging

from memory_lane.config import settings
from memory_lane.errors import EmbeddingError
from memory_lane.llm.client import CompleteFn, complete_text, extract_json_object
from memory_lane.memory.embeddings import EmbeddingBatch, coerce_vector

logger = logging.getLogger(__name__)


def _system_prompt(label: str, dimensions: int) -> str:
    return "\n".join([
        "You convert text inputs into semantic vectors.",
        "Return STRICT JSON only with this shape:",
        f'{{"model":"{label}","vectors":[[number,...],[number,...]]}}',
        "Rules:",
        "- Return exactly one vector per input, same order.",
        f"- Each vector MUST contain exactly {dimensions} numeric values.",
        "- Values should be floats typically in range [-1, 1].",
        "- No markdown, no commentary.",
    ])


class ClaudeEmbedder:
    """``Embedder`` backed by a Claude completion."""

    def __init__(
        self,
        complete: CompleteFn | None = None,
        model: str | None = None,
        label: str | None = None,
        dimensions: int | None = None,
    ) -> None:
        self._complete = complete or complete_text
        self._model = model or settings.embedding_model
        self._label = label or settings.embedding_label
        self._dimensions = dimensions or settings.embedding_dimensions

    async def embed(self, inputs: list[str]) -> EmbeddingBatch:
        if not inputs:
            msg = "inputs must be a non-empty list of strings"
            raise EmbeddingError(msg)

        try:
            text = await self._complete(
                [{"role": "user", "content": json.dumps({"inputs": inputs})}],
                system=_system_prompt(self._label, self._dimensions),
                model=self._model,
                max_tokens=settings.embed_max_tokens,
                temperature=0,
            )
            parsed = extract_json_object(text)
        except Exception as exc:
            msg = f"Embedding generation failed: {exc}"
            raise EmbeddingError(msg) from exc

        raw_vectors = parsed.get("vectors")
        vectors = (
            [coerce_vector(v, self._dimensions) for v in raw_vectors]
            if isinstance(raw_vectors, list)
            else []
        )
        if len(vectors) != len(inputs) or any(v is None for v in vectors):
            msg = "Invalid vector output from model"
            raise EmbeddingError(msg)

        logger.debug("Generated %d vectors", len(vectors))
        return EmbeddingBatch(vectors=vectors, model=self._label)
