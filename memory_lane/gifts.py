"""Gift-idea candidate selection and generation."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from memory_lane.config import settings
from memory_lane.errors import GenerationError
from memory_lane.llm.client import CompleteFn, complete_text, extract_json_object
from memory_lane.memory.models import Category, MemoryRecord, is_valid_date

logger = logging.getLogger(__name__)

PRIORITY_CATEGORIES = frozenset({Category.GIFTS, Category.FAVORITES, Category.ACTIVITIES})

GIFT_SYSTEM_PROMPT = "\n".join([
    "You generate gift ideas from a user memory list.",
    "ONLY use provided memories. Never invent facts.",
    "Prefer recurring tags/themes when picking ideas.",
    "Return 5-8 ideas with a mix of budget and effort.",
    "Return STRICT JSON only and exactly this top-level schema:",
    '{"ideas":[{"title":"","why":"","priceRange":"","effort":"low|medium|high",'
    '"relatedMemories":["memoryIdOrSnippet"]}],"followUps":[""]}',
])


class GiftCandidate(BaseModel):
    """Memory projection sent to the gift-idea call. Carries no vector data."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | int
    category: str
    text: str
    tags: list[str] = Field(default_factory=list)
    created_at: str | int | float | None = Field(default=None, alias="createdAt")

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class GiftIdea(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    why: str = ""
    price_range: str = Field(default="", alias="priceRange")
    effort: Literal["low", "medium", "high"]
    related_memories: list[str] = Field(default_factory=list, alias="relatedMemories")


class GiftIdeas(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ideas: list[GiftIdea] = Field(default_factory=list)
    follow_ups: list[str] = Field(default_factory=list, alias="followUps")

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def select_candidates(
    memories: Sequence[MemoryRecord],
    limit: int | None = None,
) -> list[GiftCandidate]:
    """Priority categories first, then newest first, cut to *limit*."""
    limit = settings.gift_candidate_limit if limit is None else limit
    ordered = sorted(
        memories,
        key=lambda m: (1 if m.category in PRIORITY_CATEGORIES else 0, m.created_timestamp),
        reverse=True,
    )
    return [
        GiftCandidate(
            id=m.id,
            category=m.category.value,
            text=m.text,
            tags=list(m.tags),
            created_at=m.created_at,
        )
        for m in ordered[:limit]
    ]


def build_gift_question(occasion: str, budget: str = "", timeframe: str = "") -> str:
    budget = budget.strip() or "flexible"
    timeframe = timeframe.strip() or "no strict deadline"
    return f"Suggest gift ideas for {occasion}, budget {budget}, timeframe {timeframe}."


def _candidate_id(raw_id: Any, category: Any, created_at: Any) -> str | int:
    if isinstance(raw_id, str | int) and not isinstance(raw_id, bool) and raw_id:
        return raw_id
    return f"{category}-{created_at or ''}"


def sanitize_candidates(raw: Any) -> list[GiftCandidate]:
    """Coerce request-body memories into candidates, dropping textless ones."""
    if not isinstance(raw, list):
        return []
    candidates = []
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get("text"), str):
            continue
        category = item.get("category") or "other"
        created_at = item.get("createdAt")
        tags = item.get("tags")
        candidates.append(
            GiftCandidate(
                id=_candidate_id(item.get("id"), category, created_at),
                category=str(category),
                text=item["text"],
                tags=[t for t in tags if isinstance(t, str)] if isinstance(tags, list) else [],
                created_at=created_at if is_valid_date(created_at) else None,
            )
        )
    return candidates


def parse_gift_ideas(data: dict[str, Any]) -> GiftIdeas:
    """Validate ideas one by one, skipping any that do not fit the schema."""
    ideas: list[GiftIdea] = []
    raw_ideas = data.get("ideas")
    for raw in raw_ideas if isinstance(raw_ideas, list) else []:
        try:
            ideas.append(GiftIdea.model_validate(raw))
        except ValidationError:
            logger.warning("Skipping malformed gift idea: %r", raw)
    raw_follow_ups = data.get("followUps")
    follow_ups = (
        [f for f in raw_follow_ups if isinstance(f, str)]
        if isinstance(raw_follow_ups, list)
        else []
    )
    return GiftIdeas(ideas=ideas, follow_ups=follow_ups)


async def generate_gift_ideas(
    question: str,
    candidates: Sequence[GiftCandidate],
    complete: CompleteFn | None = None,
) -> GiftIdeas:
    """Ask Claude for gift ideas grounded in *candidates*.

    Raises ``GenerationError`` when the call fails or returns no JSON object.
    """
    complete = complete or complete_text
    payload = {"question": question, "memories": [c.to_json() for c in candidates]}
    try:
        text = await complete(
            [{"role": "user", "content": json.dumps(payload)}],
            system=GIFT_SYSTEM_PROMPT,
            model=settings.chat_model,
            max_tokens=settings.gift_max_tokens,
            temperature=0.2,
        )
        data = extract_json_object(text)
    except Exception as exc:
        logger.exception("Gift idea generation failed")
        msg = f"Gift idea generation failed: {exc}"
        raise GenerationError(msg) from exc

    result = parse_gift_ideas(data)
    logger.info("Generated %d gift ideas", len(result.ideas))
    return result
