"""
Source links shown under an answer.
"""

from __future__ import annotations

from typing import List, Sequence, Set

from ..rag.retriever import RetrievalResult


def select_source_links(
    results: Sequence[RetrievalResult],
    *,
    threshold: float = 0.4,
    max_links: int = 3,
) -> List[str]:
    """
    URLs of results scoring above ``threshold``, first occurrence wins.

    The fused score is used when present, the raw retrieval score otherwise.
    """
    links: List[str] = []
    seen: Set[str] = set()
    for r in results:
        url = r.chunk.url
        if r.link_score > threshold and url and url not in seen:
            seen.add(url)
            links.append(url)
            if len(links) >= max_links:
                break
    return links
