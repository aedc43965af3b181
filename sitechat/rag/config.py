"""
Configuration for the hybrid retrieval pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class RAGConfig:
    """Configuration for RAG retrieval."""

    semantic_top_k: int = 20
    lexical_top_k: int = 15
    fused_top_k: int = 15
    score_threshold: float = 0.3
    score_epsilon: float = 0.0001
    rank_bonus: bool = True
    use_reranker: bool = True
    exact_match_bonus: float = 0.1
    numeric_bonus: float = 0.05
    link_score_threshold: float = 0.4
    max_links: int = 3
