"""
Tests for the ingestion pipeline: crawl, chunk, index and record a bot.
"""

from __future__ import annotations

import pytest

from conftest import FailingEmbedder, FakeEmbedder, html_page, mock_site
from sitechat.config import Settings
from sitechat.errors import InvalidURLError, NoContentError
from sitechat.ingest import Crawler, IngestionPipeline
from sitechat.ingest.chunking import PageChunk
from sitechat.ingest.crawler import CrawledPage
from sitechat.ingest.pipeline import url_hash_key
from sitechat.rag import BatchEmbedder, LexicalIndex
from sitechat.retry import NO_RETRY
from sitechat.storage import InMemoryVectorIndex, Stores
from sitechat.utils import rolling_hash

ROOT = "https://example.com/"
FILLER = (
    "Acme widgets are assembled by hand in our workshop and shipped worldwide "
    "within five business days of ordering."
)
SITE = {
    ROOT: html_page(
        "Acme Widgets",
        f'<h1>Welcome to Acme</h1><p>{FILLER}</p><a href="/products/widget">Widget</a>',
    ),
    "https://example.com/products/widget": html_page(
        "Widget",
        f"<h2>Blue widget details</h2><p>{FILLER} The blue widget weighs 2 kg.</p>",
    ),
}


def _pipeline(client, embedder=None, **settings):
    stores = Stores.in_memory()
    vectors = InMemoryVectorIndex()
    pipeline = IngestionPipeline(
        stores=stores,
        vectors=vectors,
        embedder=BatchEmbedder(embedder or FakeEmbedder(), stores.cache_kv, retry=NO_RETRY),
        lexical=LexicalIndex(stores.lexical_kv),
        crawler=Crawler(client, retry=NO_RETRY),
        settings=Settings(**settings),
        retry=NO_RETRY,
    )
    return pipeline, stores, vectors


@pytest.mark.anyio
async def test_run_indexes_every_chunk():
    async with mock_site(SITE) as client:
        pipeline, stores, vectors = _pipeline(client, batch_embed_size=1)
        result = await pipeline.run(ROOT, "bot1")

    bot = result.bot
    assert result.pages_processed == 2
    assert result.chunks_processed == bot.total_chunks == 2
    assert result.failed_batches == 0
    assert bot.title == "Acme Widgets"
    assert bot.vector_ids == ["0", "1"]
    assert len(vectors) == 2
    assert await stores.bots.get("bot1") == bot

    chunks = await stores.chunks.load_all("bot1", bot.total_chunks)
    assert [c.chunk_index for c in chunks] == [0, 1]
    assert chunks[0].header_path == "Welcome to Acme"
    assert chunks[1].url == "https://example.com/products/widget"
    assert chunks[1].category == "products"

    assert await stores.cache_kv.get(url_hash_key(ROOT)) == bot.content_hash
    assert bot.content_hash != rolling_hash("")
    assert await stores.lexical_kv.list_keys("lexical:bot1:widget")


@pytest.mark.anyio
async def test_sitemap_seeds_the_crawl():
    site = dict(SITE)
    site["https://example.com/sitemap.xml"] = (
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'
        "<url><loc>https://example.com/products/widget</loc></url></urlset>"
    )
    async with mock_site(site) as client:
        pipeline, _, _ = _pipeline(client)
        result = await pipeline.run(ROOT, "bot1", max_depth=1)
    assert result.pages_processed == 1
    assert result.bot.title == "Acme Widgets"


@pytest.mark.anyio
async def test_failed_batches_are_counted():
    async with mock_site(SITE) as client:
        pipeline, stores, vectors = _pipeline(client, embedder=FailingEmbedder(), batch_embed_size=1)
        result = await pipeline.run(ROOT, "bot1")
    assert result.failed_batches == 2
    assert result.bot.vector_ids == []
    assert len(vectors) == 0
    assert await stores.bots.get("bot1") is not None


@pytest.mark.anyio
async def test_empty_site_raises_no_content():
    async with mock_site({}) as client:
        pipeline, stores, _ = _pipeline(client)
        with pytest.raises(NoContentError):
            await pipeline.run(ROOT, "bot1")
    assert await stores.bots.get("bot1") is None


@pytest.mark.anyio
async def test_local_url_is_rejected_before_fetching():
    async with mock_site(SITE) as client:
        pipeline, _, _ = _pipeline(client)
        with pytest.raises(InvalidURLError):
            await pipeline.run("http://localhost:3000", "bot1")


@pytest.mark.anyio
async def test_page_chunks_come_from_the_crawler_chunks():
    async with mock_site({}) as client:
        pipeline, _, _ = _pipeline(client)
    url = "https://example.com/products/widget"
    page = CrawledPage(
        url=url,
        text=f"Widget Specs {FILLER}",
        title="Widget",
        headings=["Specs"],
        category="products",
        chunks=[
            PageChunk(text="[Widget - Specs] Weighs 2 kg.", title="Widget", heading="Specs", url=url),
            PageChunk(text="[Widget - Specs] Ships in 5 days.", title="Widget", heading="Specs", url=url),
        ],
    )

    records = pipeline.page_chunks(page, "bot1", start_index=4)
    assert [r.chunk_index for r in records] == [4, 5]
    assert [r.text for r in records] == [c.text for c in page.chunks]
    assert all(r.header_path == "Specs" and r.category == "products" for r in records)

    page.chunks = []
    assert pipeline.page_chunks(page, "bot1", start_index=0) == []
