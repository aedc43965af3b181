"""
Hybrid searcher combining vector and lexical retrieval with score fusion.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..retry import RetryPolicy
from ..storage.records import ChunkRecord
from ..storage.stores import ChunkStore
from ..storage.vectors import NAMESPACE_FIELD, VectorIndex
from .config import RAGConfig
from .embeddings import EmbeddingModel
from .fusion import fuse_scores
from .lexical import LexicalIndex
from .reranker import RerankModel, apply_model_scores, heuristic_rerank
from .retriever import RetrievalResult

logger = logging.getLogger(__name__)


@dataclass
class HybridSearcher:
    """Per-bot hybrid search over the vector index and the lexical index."""

    embedder: EmbeddingModel
    vectors: VectorIndex
    lexical: LexicalIndex
    chunks: ChunkStore
    config: RAGConfig = field(default_factory=RAGConfig)
    reranker: Optional[RerankModel] = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    async def semantic_search(self, query: str, bot_id: str) -> List[RetrievalResult]:
        """Vector search filtered to ``bot_id``; matches at or below the threshold are dropped."""
        vectors = await self.retry.run(self.embedder.embed, [query], description="embed query")
        matches = await self.retry.run(
            self.vectors.query,
            vectors[0],
            top_k=self.config.semantic_top_k,
            filter={NAMESPACE_FIELD: bot_id},
            description="vector query",
        )
        kept = [m for m in matches if m.score > self.config.score_threshold]
        hydrated = await self._hydrate(bot_id, [int(m.id) for m in kept])

        results: List[RetrievalResult] = []
        for m in kept:
            chunk = hydrated.get(int(m.id))
            if chunk is None:
                continue
            results.append(
                RetrievalResult(chunk=chunk, score=m.score, source="semantic", semantic_score=m.score)
            )
        return results

    async def search(self, query: str, bot_id: str) -> List[RetrievalResult]:
        """
        Fused semantic + lexical search.

        Returns the top ``fused_top_k`` chunks ordered by hybrid score. A
        semantic failure leaves the lexical results to be fused alone; a
        lexical failure raises.
        """
        semantic, lexical = await asyncio.gather(
            self._semantic_or_empty(query, bot_id),
            self.lexical.search(query, bot_id),
        )
        logger.debug(
            "Semantic search: %s results, lexical search: %s results", len(semantic), len(lexical)
        )

        fused = fuse_scores(
            [(r.chunk.chunk_index, r.score) for r in semantic],
            lexical,
            epsilon=self.config.score_epsilon,
            rank_bonus=self.config.rank_bonus,
            top_k=self.config.fused_top_k,
        )

        known: Dict[int, ChunkRecord] = {r.chunk.chunk_index: r.chunk for r in semantic}
        missing = [f.chunk_index for f in fused if f.chunk_index not in known]
        known.update(await self._hydrate(bot_id, missing))

        results: List[RetrievalResult] = []
        for f in fused:
            chunk = known.get(f.chunk_index)
            if chunk is None:
                continue
            results.append(
                RetrievalResult(
                    chunk=chunk,
                    score=f.hybrid,
                    source="hybrid",
                    semantic_score=f.semantic,
                    lexical_score=f.lexical,
                    hybrid_score=f.hybrid,
                )
            )
        return results

    async def _semantic_or_empty(self, query: str, bot_id: str) -> List[RetrievalResult]:
        try:
            return await self.semantic_search(query, bot_id)
        except Exception as e:
            logger.warning("Semantic search failed, using lexical results only: %s", e)
            return []

    async def search_with_fallback(self, query: str, bot_id: str) -> List[RetrievalResult]:
        """Hybrid search, degrading to semantic-only and then to no results."""
        try:
            return await self.search(query, bot_id)
        except Exception as e:
            logger.warning("Hybrid search failed, falling back to semantic search: %s", e)
        try:
            return await self.semantic_search(query, bot_id)
        except Exception as e:
            logger.warning("Semantic fallback also failed: %s", e)
            return []

    async def rerank(self, query: str, results: List[RetrievalResult]) -> List[RetrievalResult]:
        """Rescore with the rerank model; on failure use the lexical heuristic."""
        if not results:
            return results
        if self.reranker is not None and self.config.use_reranker:
            try:
                scores = await self.retry.run(
                    self.reranker.score,
                    query,
                    [r.chunk.text for r in results],
                    description="rerank",
                )
                return apply_model_scores(results, scores)
            except Exception as e:
                logger.warning("Reranking failed, using heuristic: %s", e)
        return heuristic_rerank(
            results,
            query,
            exact_match_bonus=self.config.exact_match_bonus,
            numeric_bonus=self.config.numeric_bonus,
        )

    async def _hydrate(self, bot_id: str, indices: List[int]) -> Dict[int, ChunkRecord]:
        chunks = await self.chunks.get_many(bot_id, indices)
        return {c.chunk_index: c for c in chunks}
