"""
Tests for bot lifecycle: create, list, delete and per-bot locking.
"""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeEmbedder, html_page, mock_site
from sitechat.bots import BotLocks, BotService
from sitechat.config import Settings
from sitechat.errors import BotNotFoundError
from sitechat.ingest import Crawler, IngestionPipeline
from sitechat.rag import BatchEmbedder, LexicalIndex
from sitechat.retry import NO_RETRY
from sitechat.storage import BotRecord, ChatMessage, InMemoryVectorIndex, Stores, VectorRecord

ROOT = "https://example.com/"
PAGE = html_page(
    "Acme",
    "<h1>Acme products</h1><p>"
    + "Acme sells sturdy garden tools and ships them across the country every week. " * 2
    + "</p>",
)


def _service(client):
    stores = Stores.in_memory()
    vectors = InMemoryVectorIndex()
    lexical = LexicalIndex(stores.lexical_kv)
    pipeline = IngestionPipeline(
        stores=stores,
        vectors=vectors,
        embedder=BatchEmbedder(FakeEmbedder(), stores.cache_kv, retry=NO_RETRY),
        lexical=lexical,
        crawler=Crawler(client, retry=NO_RETRY),
        settings=Settings(),
        retry=NO_RETRY,
    )
    return BotService(stores, vectors, pipeline, lexical=lexical), stores, vectors


@pytest.mark.anyio
async def test_create_then_delete_removes_everything():
    async with mock_site({ROOT: PAGE}) as client:
        service, stores, vectors = _service(client)
        result = await service.create(ROOT)
    bot = result.bot
    await stores.conversations.save(bot.id, "s1", [ChatMessage(role="user", content="hi")])
    await stores.conversations.save(bot.id, "s2", [ChatMessage(role="user", content="hey")])

    report = await service.delete(bot.id)

    assert report.vectors_deleted == bot.total_chunks
    assert report.chunks_deleted == bot.total_chunks
    assert report.conversations_deleted == 2
    assert report.failed_operations == 0
    assert len(vectors) == 0
    assert await stores.chunks.load_all(bot.id, bot.total_chunks) == []
    assert await stores.conversations.session_keys(bot.id) == []
    assert await stores.lexical_kv.list_keys(f"lexical:{bot.id}:") == []
    assert await stores.bots.get(bot.id) is None
    assert len(service.locks) == 0

    with pytest.raises(BotNotFoundError):
        await service.delete(bot.id)


@pytest.mark.anyio
async def test_delete_record_without_vector_ids_uses_chunk_indices():
    async with mock_site({}) as client:
        service, stores, vectors = _service(client)
    await stores.bots.put(BotRecord(id="old", url=ROOT, title="Old", total_chunks=2))
    await vectors.upsert(
        [VectorRecord(id=str(i), values=[1.0, float(i)], metadata={"bot_id": "old"}) for i in range(2)]
        + [VectorRecord(id="0", values=[1.0, 0.0], metadata={"bot_id": "keep"})]
    )
    report = await service.delete("old")
    assert report.vectors_deleted == 2
    assert len(vectors) == 1


@pytest.mark.anyio
async def test_delete_empty_bot_reports_zero():
    async with mock_site({}) as client:
        service, stores, _ = _service(client)
    await stores.bots.put(BotRecord(id="empty", url=ROOT, title="Empty"))
    report = await service.delete("empty")
    assert (report.vectors_deleted, report.chunks_deleted, report.conversations_deleted) == (0, 0, 0)


@pytest.mark.anyio
async def test_list_newest_first_and_get():
    async with mock_site({}) as client:
        service, stores, _ = _service(client)
    for i, created in enumerate((100, 300, 200)):
        await stores.bots.put(BotRecord(id=f"b{i}", url=ROOT, title=f"B{i}", created_at=created))
    assert [b.id for b in await service.list()] == ["b1", "b2", "b0"]
    assert (await service.get("b2")).title == "B2"
    with pytest.raises(BotNotFoundError):
        await service.get("missing")


@pytest.mark.anyio
async def test_locks_serialize_one_bot():
    locks = BotLocks()
    order = []

    async def worker(name):
        async with locks.hold("same"):
            order.append(f"{name}-in")
            await asyncio.sleep(0)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert len(locks) == 0
