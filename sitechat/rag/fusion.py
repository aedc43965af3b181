"""
Score fusion for combining semantic and lexical result lists.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

DEFAULT_EPSILON = 0.0001


@dataclass
class FusedScore:
    """Combined score of one chunk across both retrievers."""

    chunk_index: int
    hybrid: float = 0.0
    semantic: float = 0.0
    lexical: float = 0.0


def fuse_scores(
    semantic: Sequence[Tuple[int, float]],
    lexical: Sequence[Tuple[int, float]],
    *,
    epsilon: float = DEFAULT_EPSILON,
    rank_bonus: bool = True,
    top_k: int = 15,
) -> List[FusedScore]:
    """
    Merge two ranked lists of (chunk_index, score).

    Each list is normalized by its own maximum (never below ``epsilon``).
    Every entry contributes ``normalized + 1 / (1 + rank)`` (the rank term
    only when ``rank_bonus`` is on) to its chunk's hybrid score; a chunk
    found by both retrievers gets both contributions.

    Returns:
        Up to ``top_k`` FusedScore entries sorted by hybrid score.
    """
    max_sem = max([s for _, s in semantic] + [epsilon])
    max_lex = max([s for _, s in lexical] + [epsilon])
    merged: Dict[int, FusedScore] = {}

    for rank, (idx, score) in enumerate(semantic):
        entry = merged.setdefault(idx, FusedScore(chunk_index=idx))
        entry.semantic = score / max_sem
        entry.hybrid += entry.semantic + (1.0 / (1 + rank) if rank_bonus else 0.0)

    for rank, (idx, score) in enumerate(lexical):
        entry = merged.setdefault(idx, FusedScore(chunk_index=idx))
        entry.lexical = score / max_lex
        entry.hybrid += entry.lexical + (1.0 / (1 + rank) if rank_bonus else 0.0)

    fused = sorted(merged.values(), key=lambda f: f.hybrid, reverse=True)
    return fused[:top_k]
