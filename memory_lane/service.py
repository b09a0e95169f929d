"""Client-side application service.

Holds one user's memory store and chat history and exposes the operations
the UI shell calls. Construct it explicitly and hand it to request
handlers; nothing here is global.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from memory_lane.concurrency import LatestOnly
from memory_lane.errors import MemoryLaneError
from memory_lane.gifts import GiftIdeas, build_gift_question, select_candidates
from memory_lane.memory.models import ChatHistory, ChatMessage, MemoryRecord
from memory_lane.memory.store import MemoryStore
from memory_lane.result import Degraded, Failed, Ok, Result
from memory_lane.retrieval.hybrid import SEMANTIC_UNAVAILABLE, HybridRetriever
from memory_lane.retrieval.ranker import RankedCandidate
from memory_lane.storage import (
    load_chat_history,
    load_memories,
    save_chat_history,
    save_memories,
)

if TYPE_CHECKING:
    from memory_lane.gateway import GatewayClient
    from memory_lane.storage import JsonKeyValueStore

logger = logging.getLogger(__name__)

CHAT_ERROR_MESSAGE = "Sorry, I encountered an error. Please check that the gateway is running."
NO_REPLY_MESSAGE = "I could not generate a response."
GIFT_ERROR_MESSAGE = "I couldn't generate gift ideas right now. Please try again in a moment."


class MemoryLaneService:
    def __init__(
        self,
        store: MemoryStore,
        history: ChatHistory,
        gateway: GatewayClient,
        kv: JsonKeyValueStore | None = None,
    ) -> None:
        self.store = store
        self.history = history
        self.gateway = gateway
        self._kv = kv
        self._retriever = HybridRetriever(store)
        self._search = LatestOnly[Result[list[RankedCandidate]]]()

    @classmethod
    def load(cls, kv: JsonKeyValueStore, gateway: GatewayClient) -> MemoryLaneService:
        """Restore persisted state; raises ``MalformedInputError`` on corrupt data."""
        store = MemoryStore(load_memories(kv), embedder=gateway)
        return cls(store, load_chat_history(kv), gateway, kv=kv)

    # -- Persistence -----------------------------------------------------------

    def _save_memories(self) -> None:
        if self._kv is not None:
            save_memories(self._kv, self.store.records)

    def _save_history(self) -> None:
        if self._kv is not None:
            save_chat_history(self._kv, self.history)

    # -- Memories --------------------------------------------------------------

    def add_memory(self, text: str, category: str, tags: Iterable[str] = ()) -> MemoryRecord:
        record = self.store.add(text, category, tags)
        self._save_memories()
        return record

    def edit_memory(
        self,
        memory_id: str | int,
        text: str,
        category: str,
        tags: Iterable[str] = (),
    ) -> MemoryRecord:
        record = self.store.update(memory_id, text, category, tags)
        self._save_memories()
        return record

    def delete_memory(self, memory_id: str | int) -> bool:
        removed = self.store.delete(memory_id)
        if removed:
            self._save_memories()
        return removed

    def export_memories(self) -> str:
        return self.store.export_json()

    def import_memories(self, text: str) -> int:
        """Replace all memories from an export.

        Raises ``MalformedInputError`` and leaves the collection untouched
        when *text* is not a JSON array.
        """
        count = self.store.import_json(text)
        self._save_memories()
        logger.info("Imported %d memories", count)
        return count

    async def search(
        self,
        query: str,
        category: str = "all",
        semantic: bool = False,
    ) -> Result[list[RankedCandidate]] | None:
        """Browse-list search. Returns None if a newer search superseded this one."""
        result = await self._search.run(self._retriever.browse(query, category, semantic))
        if result is not None and semantic and query.strip():
            # Vectors computed during the search are worth keeping
            self._save_memories()
        return result

    @staticmethod
    def advisory(result: Result[list[RankedCandidate]]) -> str | None:
        """User-facing notice for a degraded search, or None."""
        if isinstance(result, Degraded):
            return SEMANTIC_UNAVAILABLE
        return None

    # -- Chat ------------------------------------------------------------------

    async def ask(self, message: str, semantic: bool = False) -> ChatMessage | None:
        """Send *message* and record the reply.

        *semantic* asks the gateway to rank memories by embedding
        similarity. Gateway failures never raise: a system-role notice is
        appended to the conversation instead.
        """
        message = message.strip()
        if not message:
            return None

        prior = list(self.history.messages)
        self.history.add("user", message)
        self._save_history()

        try:
            reply = await self.gateway.chat(
                message, self.store.records, prior, semantic=semantic
            )
        except MemoryLaneError as exc:
            logger.warning("Chat request failed: %s", exc)
            entry = self.history.add("system", CHAT_ERROR_MESSAGE)
        else:
            entry = self.history.add("assistant", reply or NO_REPLY_MESSAGE)
        self._save_history()
        return entry

    def new_conversation(self) -> int:
        cleared = self.history.clear()
        self._save_history()
        return cleared

    # -- Gift ideas ------------------------------------------------------------

    async def suggest_gifts(
        self,
        occasion: str,
        budget: str = "",
        timeframe: str = "",
    ) -> Result[GiftIdeas]:
        """Gift ideas from the priority-ordered candidate set.

        A failed request is returned as ``Failed`` after a system notice is
        appended to the conversation.
        """
        question = build_gift_question(occasion, budget, timeframe)
        candidates = select_candidates(self.store.records)
        try:
            ideas = await self.gateway.gift_ideas(question, candidates)
        except MemoryLaneError as exc:
            logger.warning("Gift ideas request failed: %s", exc)
            self.history.add("system", GIFT_ERROR_MESSAGE)
            self._save_history()
            return Failed(str(exc))
        return Ok(ideas)
