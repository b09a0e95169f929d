"""Render retrieved memories into the context block for the chat prompt."""

from __future__ import annotations

from collections.abc import Sequence

from memory_lane.memory.models import MemoryRecord

NO_MEMORIES_CONTEXT = "Memory Database: (no relevant memories retrieved)"


def build_context(memories: Sequence[MemoryRecord]) -> str:
    """Group memories by category (first-appearance order) as numbered lists.

    Output depends only on the input order, so identical input always
    renders identical text.
    """
    if not memories:
        return NO_MEMORIES_CONTEXT

    grouped: dict[str, list[MemoryRecord]] = {}
    for memory in memories:
        grouped.setdefault(memory.category.value, []).append(memory)

    lines = ["Memory Database:", ""]
    for category, items in grouped.items():
        lines.append(f"{category.upper()}:")
        for index, item in enumerate(items, start=1):
            line = f"{index}. {item.text}"
            if item.tags:
                line += f" [Tags: {', '.join(item.tags)}]"
            lines.append(line)
        lines.append("")

    return "\n".join(lines) + "\n"
