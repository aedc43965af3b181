"""
Second-stage reranking: a cross-encoder model and a lexical heuristic fallback.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import replace
from typing import List, Optional, Protocol, Sequence

from sentence_transformers import CrossEncoder

from .retriever import RetrievalResult
from .utils import has_digit

logger = logging.getLogger(__name__)

DEFAULT_RERANKER_MODEL = "cross-encoder/ms-marco-MiniLM-L-6-v2"


class RerankModel(Protocol):
    """Scores (query, passage) pairs; one score per passage, in input order."""

    async def score(self, query: str, passages: Sequence[str]) -> List[float]:
        ...


class CrossEncoderReranker:
    """Cross-encoder reranker for improving retrieval quality."""

    def __init__(self, model_name: str = DEFAULT_RERANKER_MODEL, max_chars: int = 512):
        self.model_name = model_name
        self.max_chars = max_chars
        self._model: Optional[CrossEncoder] = None

    @property
    def model(self) -> CrossEncoder:
        if self._model is None:
            logger.info("Loading reranker model %s", self.model_name)
            self._model = CrossEncoder(self.model_name)
        return self._model

    def _predict(self, query: str, passages: List[str]) -> List[float]:
        pairs = [(query, p[: self.max_chars].replace("\n", " ")) for p in passages]
        scores = self.model.predict(pairs, batch_size=16)
        return [float(s) for s in scores]

    async def score(self, query: str, passages: Sequence[str]) -> List[float]:
        if not passages:
            return []
        return await asyncio.to_thread(self._predict, query, list(passages))


def apply_model_scores(
    results: Sequence[RetrievalResult],
    scores: Sequence[float],
) -> List[RetrievalResult]:
    """Replace scores with model outputs and re-sort."""
    if len(scores) != len(results):
        raise ValueError(f"Reranker returned {len(scores)} scores for {len(results)} passages")
    rescored = [
        replace(r, score=float(s), source="reranked") for r, s in zip(results, scores)
    ]
    rescored.sort(key=lambda r: r.score, reverse=True)
    return rescored


def heuristic_rerank(
    results: Sequence[RetrievalResult],
    query: str,
    *,
    exact_match_bonus: float = 0.1,
    numeric_bonus: float = 0.05,
) -> List[RetrievalResult]:
    """
    Boost by literal query-token occurrences.

    Adds ``exact_match_bonus`` per occurrence of each whitespace-separated
    query token in the chunk text (case-insensitive), plus ``numeric_bonus``
    when both query and chunk contain a digit.
    """
    tokens = [t for t in query.lower().split() if t]
    query_has_digit = has_digit(query)
    rescored: List[RetrievalResult] = []
    for r in results:
        text = r.chunk.text.lower()
        score = r.score
        for token in tokens:
            score += len(re.findall(re.escape(token), text)) * exact_match_bonus
        if query_has_digit and has_digit(text):
            score += numeric_bonus
        rescored.append(replace(r, score=score, source="heuristic"))
    rescored.sort(key=lambda r: r.score, reverse=True)
    return rescored
