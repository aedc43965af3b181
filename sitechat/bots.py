"""
Bot lifecycle: create (ingest), list and delete.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Optional

from .errors import BotNotFoundError
from .ingest.pipeline import IngestionPipeline, IngestResult
from .rag.lexical import LexicalIndex
from .storage.records import BotRecord
from .storage.stores import Stores, settle
from .storage.vectors import NAMESPACE_FIELD, VectorIndex
from .utils import generate_bot_id

logger = logging.getLogger(__name__)

VECTOR_DELETE_BATCH = 1000


class BotLocks:
    """Per-bot asyncio locks; create and delete of one bot never interleave."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, bot_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(bot_id, asyncio.Lock())
        self._waiters[bot_id] = self._waiters.get(bot_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[bot_id] -= 1
            if not self._waiters[bot_id]:
                del self._waiters[bot_id]
                del self._locks[bot_id]

    def __len__(self) -> int:
        return len(self._locks)


@dataclass
class DeletionReport:
    """What a delete removed (counts are attempted deletions)."""

    vectors_deleted: int
    chunks_deleted: int
    conversations_deleted: int
    failed_operations: int = 0


class BotService:
    """Entry point for the create/list/delete operations."""

    def __init__(
        self,
        stores: Stores,
        vectors: VectorIndex,
        pipeline: IngestionPipeline,
        lexical: Optional[LexicalIndex] = None,
        locks: Optional[BotLocks] = None,
    ):
        self.stores = stores
        self.vectors = vectors
        self.pipeline = pipeline
        self.lexical = lexical
        self.locks = locks or BotLocks()

    async def create(
        self,
        url: str,
        max_pages: Optional[int] = None,
        max_depth: Optional[int] = None,
    ) -> IngestResult:
        bot_id = generate_bot_id()
        async with self.locks.hold(bot_id):
            return await self.pipeline.run(url, bot_id, max_pages=max_pages, max_depth=max_depth)

    async def get(self, bot_id: str) -> BotRecord:
        bot = await self.stores.bots.get(bot_id)
        if bot is None:
            raise BotNotFoundError(bot_id)
        return bot

    async def list(self) -> List[BotRecord]:
        """All bots, newest first."""
        bots = await self.stores.bots.list_all()
        return sorted(bots, key=lambda b: b.created_at, reverse=True)

    async def delete(self, bot_id: str) -> DeletionReport:
        """
        Remove a bot and everything derived from it.

        Vector, chunk, conversation and lexical deletions run as one
        best-effort batch; failures are counted and logged. The bot record
        is removed last so a partial failure can be retried.

        Raises:
            BotNotFoundError: no such bot (including a second delete).
        """
        async with self.locks.hold(bot_id):
            bot = await self.get(bot_id)
            # Records written before vector ids were persisted map 1:1 onto chunk indices.
            vector_ids = bot.vector_ids or [str(i) for i in range(bot.total_chunks)]
            logger.info(
                "Deleting bot %s: %s chunks, %s vectors", bot_id, bot.total_chunks, len(vector_ids)
            )

            ops = [
                self.vectors.delete_by_ids(
                    vector_ids[i : i + VECTOR_DELETE_BATCH],
                    filter={NAMESPACE_FIELD: bot_id},
                )
                for i in range(0, len(vector_ids), VECTOR_DELETE_BATCH)
            ]
            ops.extend(self.stores.chunks.delete_ops(bot_id, bot.total_chunks))

            conversation_keys: List[str] = []
            try:
                conversation_keys = await self.stores.conversations.session_keys(bot_id)
            except Exception as e:
                logger.error("Conversation cleanup error for %s: %s", bot_id, e)
            ops.extend(self.stores.conversations.kv.delete(k) for k in conversation_keys)

            if self.lexical is not None:
                ops.append(self.lexical.delete(bot_id))

            ok, failed = await settle(ops)
            logger.info("Deletion of %s: %s successful, %s failed", bot_id, ok, failed)

            await self.stores.bots.delete(bot_id)
            return DeletionReport(
                vectors_deleted=len(vector_ids),
                chunks_deleted=bot.total_chunks,
                conversations_deleted=len(conversation_keys),
                failed_operations=failed,
            )
