"""
Build the service graph for the API (used in lifespan).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from ..bots import BotService
from ..config import Settings
from ..db import create_engine_and_sessions, init_models
from ..generation import AnswerGenerator, GenerationConfig
from ..ingest import Crawler, IngestionPipeline, PageChunker
from ..llm import ChatModel, create_client
from ..orchestrator import QueryAnalyzer, RAGAgent
from ..rag import (
    BatchEmbedder,
    CrossEncoderReranker,
    EmbeddingModel,
    HybridSearcher,
    LexicalIndex,
    RAGConfig,
    RerankModel,
    SentenceTransformerEmbedder,
)
from ..retry import RetryPolicy
from ..storage import InMemoryVectorIndex, KeyValueVectorIndex, Stores, VectorIndex
from ..storage.sql import SqlKeyValueStore

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 20.0


@dataclass
class Container:
    """Everything the routes need, stored on ``app.state.container``."""

    settings: Settings
    stores: Stores
    vectors: VectorIndex
    bots: BotService
    agent: RAGAgent
    http_client: httpx.AsyncClient
    engine: Optional[AsyncEngine] = None

    async def aclose(self) -> None:
        await self.http_client.aclose()
        if self.engine is not None:
            await self.engine.dispose()


def _default_chat_client(retry: RetryPolicy) -> Optional[ChatModel]:
    try:
        return create_client(retry=retry)
    except ValueError as e:
        logger.warning("LLM disabled (%s); answers will use canned replies", e)
        return None


async def build_container(
    settings: Optional[Settings] = None,
    *,
    stores: Optional[Stores] = None,
    vectors: Optional[VectorIndex] = None,
    embedder: Optional[EmbeddingModel] = None,
    reranker: Optional[RerankModel] = None,
    chat: Optional[ChatModel] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    retry: Optional[RetryPolicy] = None,
    rag_config: Optional[RAGConfig] = None,
) -> Container:
    """
    Wire stores, models, crawler, pipeline, bot service and chat agent.

    Explicit collaborators win; otherwise SQL stores are used when
    ``settings.database_url`` is set and in-memory stores when it is not.
    With no ``chat`` given, an OpenAI-compatible client is built from LLM_*
    variables when an API key is configured.
    """
    settings = settings or Settings.from_env()
    retry = retry or RetryPolicy(
        max_attempts=settings.retry_attempts, base_delay=settings.retry_base_delay
    )
    rag_config = rag_config or RAGConfig(score_threshold=settings.vector_score_threshold)

    engine: Optional[AsyncEngine] = None
    if stores is None and settings.database_url:
        engine, sessions = create_engine_and_sessions(settings.database_url)
        await init_models(engine)
        chunks_kv = SqlKeyValueStore(sessions, "chunks")
        stores = Stores.from_kv(
            SqlKeyValueStore(sessions, "bots"),
            chunks_kv,
            SqlKeyValueStore(sessions, "convs"),
        )
        if vectors is None:
            vectors = KeyValueVectorIndex(SqlKeyValueStore(sessions, "vectors"))
        logger.info("Using SQL storage")
    stores = stores or Stores.in_memory()
    vectors = vectors if vectors is not None else InMemoryVectorIndex()

    embedder = embedder or SentenceTransformerEmbedder(settings.embedding_model)
    if reranker is None and rag_config.use_reranker:
        reranker = CrossEncoderReranker(settings.reranker_model)
    if chat is None:
        chat = _default_chat_client(retry)

    http_client = http_client or httpx.AsyncClient(timeout=HTTP_TIMEOUT)
    lexical = LexicalIndex(stores.lexical_kv, min_term_length=settings.lexical_min_term_length)
    batch_embedder = BatchEmbedder(
        embedder, stores.cache_kv, ttl=settings.embedding_cache_ttl, retry=retry
    )
    crawler = Crawler(
        http_client,
        retry=retry,
        chunker=PageChunker.from_sizes(
            settings.semantic_chunk_min_size, settings.semantic_chunk_max_size
        ),
    )
    pipeline = IngestionPipeline(
        stores=stores,
        vectors=vectors,
        embedder=batch_embedder,
        lexical=lexical,
        crawler=crawler,
        settings=settings,
        retry=retry,
    )
    searcher = HybridSearcher(
        embedder=embedder,
        vectors=vectors,
        lexical=lexical,
        chunks=stores.chunks,
        config=rag_config,
        reranker=reranker,
        retry=retry,
    )
    gen_config = GenerationConfig(max_context_chunks=settings.max_prompt_chunks)
    agent = RAGAgent(
        searcher=searcher,
        generator=AnswerGenerator(chat, gen_config),
        conversations=stores.conversations,
        chunks=stores.chunks,
        query_analyzer=QueryAnalyzer(chat, gen_config),
        rag_config=rag_config,
    )
    bots = BotService(stores, vectors, pipeline, lexical=lexical)
    return Container(
        settings=settings,
        stores=stores,
        vectors=vectors,
        bots=bots,
        agent=agent,
        http_client=http_client,
        engine=engine,
    )


def get_container(request: Request) -> Container:
    return request.app.state.container
