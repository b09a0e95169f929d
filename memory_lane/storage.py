"""File-backed key/value store for client state.

Holds the memory collection and chat history as JSON values under stable
keys, the same shape a browser keeps in local storage.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from memory_lane.config import settings
from memory_lane.errors import MalformedInputError
from memory_lane.memory.models import ChatHistory, MemoryRecord

logger = logging.getLogger(__name__)

MEMORIES_KEY = "memoryLaneData"
CHAT_HISTORY_KEY = "memoryLaneChatHistory"


class JsonKeyValueStore:
    """JSON document of ``key -> value`` on disk.

    Pass an explicit *path* for test isolation (e.g. ``tmp_path / "state.json"``).
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or settings.data_path

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except ValueError as exc:
            msg = f"State file {self._path} is not valid JSON: {exc}"
            raise MalformedInputError(msg) from exc
        if not isinstance(data, dict):
            msg = f"State file {self._path} does not hold a JSON object"
            raise MalformedInputError(msg)
        return data

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Write *value* under *key*; the file is replaced atomically."""
        data = self._read()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp.replace(self._path)
        logger.debug("Saved %s to %s", key, self._path)


def load_memories(kv: JsonKeyValueStore) -> list[MemoryRecord]:
    raw = kv.get(MEMORIES_KEY, [])
    if not isinstance(raw, list):
        msg = f"{MEMORIES_KEY} is not a JSON array"
        raise MalformedInputError(msg)
    return [MemoryRecord.normalize(item) for item in raw]


def save_memories(kv: JsonKeyValueStore, memories: list[MemoryRecord] | tuple[MemoryRecord, ...]) -> None:
    kv.set(MEMORIES_KEY, [m.to_json() for m in memories])


def load_chat_history(kv: JsonKeyValueStore) -> ChatHistory:
    raw = kv.get(CHAT_HISTORY_KEY, [])
    if not isinstance(raw, list):
        msg = f"{CHAT_HISTORY_KEY} is not a JSON array"
        raise MalformedInputError(msg)
    return ChatHistory.from_raw(raw)


def save_chat_history(kv: JsonKeyValueStore, history: ChatHistory) -> None:
    kv.set(CHAT_HISTORY_KEY, history.to_json())
