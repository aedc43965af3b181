"""
Ingestion: crawl a site and index it as a new bot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..config import Settings
from ..errors import NoContentError
from ..retry import RetryPolicy
from ..storage.records import BotRecord, ChunkRecord
from ..storage.stores import Stores
from ..storage.vectors import NAMESPACE_FIELD, VectorIndex, VectorRecord
from ..rag.embeddings import BatchEmbedder
from ..rag.lexical import LexicalIndex
from ..utils import rolling_hash
from .crawler import CrawledPage, Crawler, validate_url

logger = logging.getLogger(__name__)

URL_HASH_TTL = 7 * 24 * 3600


@dataclass
class IngestResult:
    """Outcome of one successful ingestion."""

    bot: BotRecord
    pages_processed: int
    chunks_processed: int
    failed_batches: int = 0


def url_hash_key(url: str) -> str:
    return f"urlhash:{rolling_hash(url)}"


@dataclass
class IngestionPipeline:
    """Crawler -> chunks -> lexical index + embeddings -> vectors + chunk records -> bot record."""

    stores: Stores
    vectors: VectorIndex
    embedder: BatchEmbedder
    lexical: LexicalIndex
    crawler: Crawler
    settings: Settings = field(default_factory=Settings)
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def page_chunks(self, page: CrawledPage, bot_id: str, start_index: int) -> List[ChunkRecord]:
        """Chunk records for a page, numbered from ``start_index``."""
        return [
            ChunkRecord(
                text=chunk.text,
                url=page.url,
                page_title=page.title,
                header_path=chunk.heading,
                headings=list(page.headings),
                category=page.category,
                chunk_index=start_index + i,
                bot_id=bot_id,
            )
            for i, chunk in enumerate(page.chunks)
        ]

    async def run(
        self,
        url: str,
        bot_id: str,
        max_pages: Optional[int] = None,
        max_depth: Optional[int] = None,
    ) -> IngestResult:
        """
        Crawl ``url`` and persist everything needed to answer questions about it.

        Raises:
            InvalidURLError: the URL is rejected before any fetch.
            NoContentError: the crawl yielded no usable page.
        """
        validate_url(url)
        max_pages = max_pages or self.settings.default_max_pages
        max_depth = max_depth or self.settings.default_max_depth

        seeds = await self.crawler.fetch_sitemap(url)
        if not seeds:
            seeds = [url]
        title = await self.crawler.fetch_site_title(url)

        pages = await self.crawler.crawl(seeds, max_pages, max_depth)
        if not pages:
            raise NoContentError("No content could be extracted from the website")
        logger.info("Creating bot %s with %s pages", bot_id, len(pages))

        chunks: List[ChunkRecord] = []
        for page in pages:
            page_chunks = self.page_chunks(page, bot_id, len(chunks))
            logger.debug("Processing %s chunks for page: %s", len(page_chunks), page.url)
            chunks.extend(page_chunks)

        await self.lexical.build(chunks, bot_id)

        vector_ids: List[str] = []
        failed_batches = 0
        size = max(1, self.settings.batch_embed_size)
        for start in range(0, len(chunks), size):
            batch = chunks[start : start + size]
            try:
                vector_ids.extend(await self._index_batch(batch, bot_id))
            except Exception as e:
                failed_batches += 1
                logger.error("Error processing batch at chunk %s for %s: %s", start, bot_id, e)

        content_hash = rolling_hash("".join(p.text for p in pages))
        await self.stores.cache_kv.put(url_hash_key(url), content_hash, ttl=URL_HASH_TTL)

        bot = BotRecord(
            id=bot_id,
            url=url,
            title=title,
            total_pages=len(pages),
            total_chunks=len(chunks),
            content_hash=content_hash,
            vector_ids=vector_ids,
        )
        await self.stores.bots.put(bot)
        logger.info("Bot %s created with %s total chunks", bot_id, len(chunks))
        return IngestResult(
            bot=bot,
            pages_processed=len(pages),
            chunks_processed=len(chunks),
            failed_batches=failed_batches,
        )

    async def _index_batch(self, batch: List[ChunkRecord], bot_id: str) -> List[str]:
        embeddings = await self.embedder.embed([c.text for c in batch])
        _, failed = await self.stores.chunks.put_many(batch)
        if failed:
            logger.warning("%s chunk writes failed for %s", failed, bot_id)

        records = [
            VectorRecord(
                id=str(chunk.chunk_index),
                values=vector,
                metadata={
                    NAMESPACE_FIELD: bot_id,
                    "url": chunk.url,
                    "page_title": chunk.page_title,
                    "category": chunk.category,
                    "chunk_index": chunk.chunk_index,
                },
            )
            for chunk, vector in zip(batch, embeddings)
        ]
        await self.retry.run(self.vectors.upsert, records, description="vector upsert")
        return [r.id for r in records]
