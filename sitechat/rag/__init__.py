"""
RAG (Retrieval-Augmented Generation) module.

Provides retrieval components for hybrid search over crawled site chunks:
- Term-frequency lexical index
- Cached batch embeddings
- Semantic + lexical score fusion
- Cross-encoder and heuristic reranking
"""

from .config import RAGConfig
from .embeddings import BatchEmbedder, EmbeddingModel, SentenceTransformerEmbedder
from .fusion import FusedScore, fuse_scores
from .hybrid import HybridSearcher
from .lexical import LexicalIndex
from .reranker import CrossEncoderReranker, RerankModel, heuristic_rerank
from .retriever import RetrievalResult

__all__ = [
    "BatchEmbedder",
    "CrossEncoderReranker",
    "EmbeddingModel",
    "FusedScore",
    "HybridSearcher",
    "LexicalIndex",
    "RAGConfig",
    "RerankModel",
    "RetrievalResult",
    "SentenceTransformerEmbedder",
    "fuse_scores",
    "heuristic_rerank",
]
