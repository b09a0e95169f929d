"""Prompt assembly for routing, sufficiency checks and chat replies."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from memory_lane.memory.models import MemoryRecord
    from memory_lane.routing import Intent, Mode, Sufficiency

INTENT_SYSTEM_PROMPT = "\n".join([
    "Classify the user request into one label:",
    "- MEMORY: asks for known personal details/preferences already in saved memories",
    "- WORLD: asks for general world knowledge, local businesses, or info outside saved memories",
    "- HYBRID: asks for ideas/plans/recommendations that should combine saved preferences "
    "with world knowledge",
    "Respond with exactly one token: MEMORY or WORLD or HYBRID.",
])

SUFFICIENCY_SYSTEM_PROMPT = "\n".join([
    "You evaluate whether retrieved memories are enough to answer a user question.",
    "Respond ONLY with ENOUGH or NOT_ENOUGH.",
])

_WORLD_INSTRUCTION = (
    "For this answer, prioritize general world knowledge and practical recommendations. "
    "Mention memory limitations only if directly helpful."
)
_HYBRID_INSTRUCTION = (
    "For this answer, incorporate relevant memory details naturally, then supplement "
    "with useful general knowledge where helpful."
)


def build_memory_digest(memories: Sequence[MemoryRecord], size: int) -> str:
    """Numbered ``[category] text`` lines for the first *size* memories."""
    return "\n".join(
        f"{index}. [{memory.category.value}] {memory.text}"
        for index, memory in enumerate(memories[:size], start=1)
    )


def build_sufficiency_prompt(message: str, digest: str) -> str:
    return (
        f"Question:\n{message}\n\n"
        f"Retrieved memories:\n{digest}\n\n"
        "Do these memories contain enough info to answer the question?"
    )


def build_system_prompt(
    mode: Mode,
    memory_context: str,
    intent: Intent,
    sufficiency: Sufficiency,
) -> str:
    """System prompt for the chat reply, framed by the resolved mode."""
    return "\n".join([
        "You are a helpful assistant with access to a personal memory database "
        "about someone the user cares about.",
        "",
        "Core behavior:",
        "- Use memories when relevant.",
        "- If memories are insufficient, provide helpful general suggestions.",
        "- Do not repeatedly restate memory entries when they do not answer the question.",
        "- Never pretend a business recommendation came from memory unless explicitly stored.",
        "- Be conversational, practical, and warm.",
        "",
        f"Routing mode: {mode.value}",
        f"Original intent: {intent.value}",
        f"Memory sufficiency: {sufficiency.value}",
        "",
        _WORLD_INSTRUCTION if mode == "WORLD" else _HYBRID_INSTRUCTION,
        "",
        memory_context,
    ])


def build_conversation(chat_history: Sequence[Any], latest_message: str) -> list[dict[str, str]]:
    """Valid user/assistant history turns followed by the new user message.

    Entries may be ``ChatMessage`` objects or raw dicts from a request body;
    anything without a user/assistant role and non-blank string content is
    dropped.
    """
    conversation: list[dict[str, str]] = []
    for entry in chat_history:
        if isinstance(entry, dict):
            role, content = entry.get("role"), entry.get("content")
        else:
            role, content = getattr(entry, "role", None), getattr(entry, "content", None)
        if role in ("user", "assistant") and isinstance(content, str) and content.strip():
            conversation.append({"role": role, "content": content})
    conversation.append({"role": "user", "content": latest_message})
    return conversation
