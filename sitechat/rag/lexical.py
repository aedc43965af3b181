"""
Term-frequency lexical index persisted as per-term posting lists.

Each distinct term of a bot's chunks gets one key, ``lexical:{bot_id}:{term}``,
holding ``[{chunk_index, frequency}, ...]``. The index is written once at
ingestion time and never updated incrementally.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Sequence, Tuple

from ..errors import CorruptRecordError
from ..storage.kv import KeyValueStore
from ..storage.records import ChunkRecord, Posting, decode_postings, encode_postings
from ..storage.stores import settle
from .utils import DEFAULT_MIN_TERM_LENGTH, tokenize

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 15


def lexical_key(bot_id: str, term: str) -> str:
    return f"lexical:{bot_id}:{term}"


class LexicalIndex:
    """Posting-list index over a key-value store."""

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        min_term_length: int = DEFAULT_MIN_TERM_LENGTH,
        top_k: int = DEFAULT_TOP_K,
    ):
        self.kv = kv
        self.min_term_length = min_term_length
        self.top_k = top_k

    def build_postings(self, chunks: Sequence[ChunkRecord]) -> Dict[str, List[Posting]]:
        """Per-term postings for ``chunks``, in chunk order."""
        postings: Dict[str, List[Posting]] = defaultdict(list)
        for chunk in chunks:
            counts = Counter(tokenize(chunk.text, self.min_term_length))
            for term, frequency in counts.items():
                postings[term].append(Posting(chunk_index=chunk.chunk_index, frequency=frequency))
        return dict(postings)

    async def build(self, chunks: Sequence[ChunkRecord], bot_id: str) -> int:
        """Write one posting list per distinct term. Returns the term count."""
        postings = self.build_postings(chunks)
        ok, failed = await settle(
            self.kv.put(lexical_key(bot_id, term), encode_postings(plist))
            for term, plist in postings.items()
        )
        if failed:
            logger.warning("Lexical index for %s: %s of %s terms not written", bot_id, failed, ok + failed)
        logger.info("Built lexical index for %s with %s terms", bot_id, len(postings))
        return len(postings)

    async def _postings(self, bot_id: str, term: str) -> List[Posting]:
        key = lexical_key(bot_id, term)
        raw = await self.kv.get(key)
        if raw is None:
            return []
        try:
            return decode_postings(key, raw)
        except CorruptRecordError as e:
            logger.warning("Ignoring postings: %s", e)
            return []

    async def search(self, query: str, bot_id: str) -> List[Tuple[int, float]]:
        """
        Score chunks by summed term frequency over the query terms.

        Score is the summed frequency divided by the number of query terms.
        Returns up to ``top_k`` (chunk_index, score) pairs, best first.
        """
        terms = tokenize(query, self.min_term_length)
        if not terms:
            return []

        scores: Dict[int, float] = defaultdict(float)
        for term in terms:
            for posting in await self._postings(bot_id, term):
                scores[posting.chunk_index] += posting.frequency

        ranked = sorted(
            ((idx, total / len(terms)) for idx, total in scores.items()),
            key=lambda x: x[1],
            reverse=True,
        )
        return ranked[: self.top_k]

    async def delete(self, bot_id: str) -> Tuple[int, int]:
        """Remove every posting list of ``bot_id``."""
        keys = await self.kv.list_keys(f"lexical:{bot_id}:")
        return await settle(self.kv.delete(k) for k in keys)
