"""
Typed repositories over the raw key-value stores.

Key layout:
    bot:{bot_id}                      -> BotRecord
    chunk:{bot_id}:{chunk_index}      -> ChunkRecord
    conv:{bot_id}:{session_id}        -> List[ChatMessage]
    lexical:{bot_id}:{term}           -> List[Posting]     (see rag.lexical)
    embcache:{hash}                   -> EmbeddingCacheEntry (see rag.embeddings)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Iterable, List, Optional, Sequence, Tuple

from ..errors import CorruptRecordError
from .kv import InMemoryKeyValueStore, KeyValueStore
from .records import (
    BotRecord,
    ChatMessage,
    ChunkRecord,
    decode,
    decode_messages,
    encode_messages,
)

logger = logging.getLogger(__name__)


async def settle(ops: Iterable[Awaitable[object]]) -> Tuple[int, int]:
    """
    Run independent store operations concurrently and count outcomes.

    A failing operation never cancels the others. Returns (succeeded, failed).
    """
    results = await asyncio.gather(*ops, return_exceptions=True)
    failed = [r for r in results if isinstance(r, BaseException)]
    for err in failed[:5]:
        logger.warning("Store operation failed: %s", err)
    return len(results) - len(failed), len(failed)


def bot_key(bot_id: str) -> str:
    return f"bot:{bot_id}"


def chunk_key(bot_id: str, chunk_index: int) -> str:
    return f"chunk:{bot_id}:{chunk_index}"


def conversation_key(bot_id: str, session_id: str) -> str:
    return f"conv:{bot_id}:{session_id}"


class BotStore:
    """Bot metadata records."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def get(self, bot_id: str) -> Optional[BotRecord]:
        key = bot_key(bot_id)
        raw = await self.kv.get(key)
        if raw is None:
            return None
        return decode(BotRecord, key, raw)

    async def put(self, bot: BotRecord) -> None:
        await self.kv.put(bot_key(bot.id), bot.model_dump_json())

    async def delete(self, bot_id: str) -> None:
        await self.kv.delete(bot_key(bot_id))

    async def list_all(self) -> List[BotRecord]:
        """All readable bot records; corrupt ones are logged and skipped."""
        bots: List[BotRecord] = []
        for key in await self.kv.list_keys("bot:"):
            raw = await self.kv.get(key)
            if raw is None:
                continue
            try:
                bots.append(decode(BotRecord, key, raw))
            except CorruptRecordError as e:
                logger.warning("Skipping bot record: %s", e)
        return bots


class ChunkStore:
    """Chunk text and metadata, addressed by (bot_id, chunk_index)."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def get(self, bot_id: str, chunk_index: int) -> Optional[ChunkRecord]:
        key = chunk_key(bot_id, chunk_index)
        raw = await self.kv.get(key)
        if raw is None:
            return None
        try:
            return decode(ChunkRecord, key, raw)
        except CorruptRecordError as e:
            logger.warning("Ignoring chunk: %s", e)
            return None

    async def get_many(self, bot_id: str, indices: Sequence[int]) -> List[ChunkRecord]:
        """Fetch chunks in the given order, silently skipping missing ones."""
        found = await asyncio.gather(*(self.get(bot_id, i) for i in indices))
        return [c for c in found if c is not None]

    async def load_all(self, bot_id: str, total_chunks: int) -> List[ChunkRecord]:
        """Load the contiguous range 0..total_chunks-1."""
        return await self.get_many(bot_id, range(total_chunks))

    async def put_many(self, chunks: Sequence[ChunkRecord]) -> Tuple[int, int]:
        return await settle(
            self.kv.put(chunk_key(c.bot_id, c.chunk_index), c.model_dump_json()) for c in chunks
        )

    def delete_ops(self, bot_id: str, total_chunks: int) -> List[Awaitable[None]]:
        return [self.kv.delete(chunk_key(bot_id, i)) for i in range(total_chunks)]


class ConversationStore:
    """Per-session conversation histories."""

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    async def get(self, bot_id: str, session_id: str) -> List[ChatMessage]:
        """History for a session; unreadable histories restart empty."""
        key = conversation_key(bot_id, session_id)
        raw = await self.kv.get(key)
        if raw is None:
            return []
        try:
            return decode_messages(key, raw)
        except CorruptRecordError as e:
            logger.warning("Discarding conversation: %s", e)
            return []

    async def save(self, bot_id: str, session_id: str, messages: List[ChatMessage]) -> None:
        await self.kv.put(conversation_key(bot_id, session_id), encode_messages(messages))

    async def session_keys(self, bot_id: str) -> List[str]:
        return await self.kv.list_keys(f"conv:{bot_id}:")


@dataclass
class Stores:
    """All persistence collaborators for one deployment."""

    bots: BotStore
    chunks: ChunkStore
    conversations: ConversationStore
    lexical_kv: KeyValueStore
    cache_kv: KeyValueStore

    @classmethod
    def from_kv(
        cls,
        bots_kv: KeyValueStore,
        chunks_kv: KeyValueStore,
        convs_kv: KeyValueStore,
    ) -> "Stores":
        """Lexical postings and the embedding cache share the chunk namespace."""
        return cls(
            bots=BotStore(bots_kv),
            chunks=ChunkStore(chunks_kv),
            conversations=ConversationStore(convs_kv),
            lexical_kv=chunks_kv,
            cache_kv=chunks_kv,
        )

    @classmethod
    def in_memory(cls) -> "Stores":
        return cls.from_kv(
            InMemoryKeyValueStore(),
            InMemoryKeyValueStore(),
            InMemoryKeyValueStore(),
        )
