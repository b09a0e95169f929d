"""Tests for the JSON key/value store and state loaders."""

import json

import pytest
from conftest import make_record

from memory_lane.errors import MalformedInputError
from memory_lane.memory.models import ChatHistory
from memory_lane.storage import (
    CHAT_HISTORY_KEY,
    MEMORIES_KEY,
    JsonKeyValueStore,
    load_chat_history,
    load_memories,
    save_chat_history,
    save_memories,
)


@pytest.fixture
def kv(tmp_path) -> JsonKeyValueStore:
    return JsonKeyValueStore(tmp_path / "state" / "memory_lane.json")


def test_missing_file_is_empty(kv: JsonKeyValueStore) -> None:
    assert kv.get("anything") is None
    assert load_memories(kv) == []
    assert len(load_chat_history(kv)) == 0


def test_set_then_get(kv: JsonKeyValueStore) -> None:
    kv.set("a", [1, 2])
    kv.set("b", {"x": 1})
    assert kv.get("a") == [1, 2]
    assert kv.get("b") == {"x": 1}
    assert not kv.path.with_suffix(".json.tmp").exists()


def test_memories_round_trip(kv: JsonKeyValueStore) -> None:
    records = [make_record("1", "a", "food", ["t"]), make_record("2", "b")]
    save_memories(kv, records)
    assert [r.to_json() for r in load_memories(kv)] == [r.to_json() for r in records]


def test_load_memories_normalizes(kv: JsonKeyValueStore) -> None:
    kv.set(MEMORIES_KEY, [{"text": "x", "tags": [1, "ok"]}])
    [record] = load_memories(kv)
    assert record.tags == ["ok"]
    assert record.id


def test_load_memories_non_array_raises(kv: JsonKeyValueStore) -> None:
    kv.set(MEMORIES_KEY, {"oops": True})
    with pytest.raises(MalformedInputError):
        load_memories(kv)


def test_corrupt_file_raises(kv: JsonKeyValueStore) -> None:
    kv.path.parent.mkdir(parents=True, exist_ok=True)
    kv.path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MalformedInputError):
        kv.get(MEMORIES_KEY)


def test_chat_history_round_trip_filters(kv: JsonKeyValueStore) -> None:
    history = ChatHistory()
    history.add("user", "hi")
    history.add("system", "notice")
    save_chat_history(kv, history)

    raw = json.loads(kv.path.read_text(encoding="utf-8"))[CHAT_HISTORY_KEY]
    raw.append({"role": "bot", "content": "dropped"})
    kv.set(CHAT_HISTORY_KEY, raw)

    loaded = load_chat_history(kv)
    assert [(m.role, m.content) for m in loaded.messages] == [("user", "hi"), ("system", "notice")]


def test_long_chat_history_is_not_truncated(kv: JsonKeyValueStore) -> None:
    kv.set(CHAT_HISTORY_KEY, [{"role": "user", "content": f"m{i}"} for i in range(60)])

    loaded = load_chat_history(kv)
    save_chat_history(kv, loaded)

    assert len(loaded) == 60
    assert len(kv.get(CHAT_HISTORY_KEY)) == 60
