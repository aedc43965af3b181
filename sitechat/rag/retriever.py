"""
Retrieval result type shared by the RAG pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..storage.records import ChunkRecord


@dataclass
class RetrievalResult:
    """Result from a retrieval operation."""

    chunk: ChunkRecord
    score: float
    source: str
    semantic_score: float = 0.0
    lexical_score: float = 0.0
    hybrid_score: Optional[float] = None

    @property
    def link_score(self) -> float:
        """Fused score when available, raw score otherwise."""
        return self.hybrid_score if self.hybrid_score is not None else self.score

