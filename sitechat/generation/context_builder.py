"""
Context builder for RAG answer generation.

Formats retrieved chunks into numbered ``[Context n]`` blocks and renders
conversation history as ``role: content`` lines.
"""

from __future__ import annotations

from typing import List, Sequence

from ..rag.retriever import RetrievalResult
from ..storage.records import ChatMessage


def build_context(results: Sequence[RetrievalResult], max_chunks: int = 8) -> str:
    """
    Number the first ``max_chunks`` results as ``[Context 1]: ...``.

    Order is preserved, so block n is ``results[n - 1]``.
    """
    parts: List[str] = []
    for i, r in enumerate(results[:max_chunks], 1):
        parts.append(f"[Context {i}]: {r.chunk.text}")
    return "\n\n".join(parts)


def format_history(messages: Sequence[ChatMessage], last_n: int = 6) -> str:
    """Last ``last_n`` messages as ``role: content`` lines, or "" when empty."""
    if not messages or last_n <= 0:
        return ""
    return "\n".join(f"{m.role}: {m.content}" for m in messages[-last_n:])
