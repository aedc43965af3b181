"""
Text embeddings: the sentence-transformers model and a caching batch embedder.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

from sentence_transformers import SentenceTransformer

from ..errors import CorruptRecordError
from ..retry import RetryPolicy
from ..storage.kv import KeyValueStore
from ..storage.records import EmbeddingCacheEntry, decode
from ..storage.stores import settle
from ..utils import rolling_hash

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_MODEL = "all-MiniLM-L6-v2"
DEFAULT_CACHE_TTL = 7 * 24 * 3600


class EmbeddingModel(Protocol):
    """Anything that turns a batch of texts into vectors."""

    model_id: str

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        ...


class SentenceTransformerEmbedder:
    """Local sentence-transformers model; encoding runs in a worker thread."""

    def __init__(self, model_name: str = DEFAULT_EMBEDDING_MODEL, batch_size: int = 64):
        self.model_id = model_name
        self.batch_size = batch_size
        self._model: Optional[SentenceTransformer] = None

    @property
    def model(self) -> SentenceTransformer:
        if self._model is None:
            logger.info("Loading embedding model %s", self.model_id)
            self._model = SentenceTransformer(self.model_id)
        return self._model

    def _encode(self, texts: List[str]) -> List[List[float]]:
        emb = self.model.encode(
            texts,
            batch_size=self.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )
        return emb.tolist()

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        return await asyncio.to_thread(self._encode, list(texts))


def cache_key(text: str) -> str:
    return f"embcache:{rolling_hash(text)}"


@dataclass
class BatchEmbedder:
    """
    Embeds texts through a TTL-bounded cache.

    Cache hits count only when the stored model id equals the active model's.
    All misses go to the model in a single call and are written back; the
    result keeps input order and length.
    """

    model: EmbeddingModel
    kv: KeyValueStore
    ttl: int = DEFAULT_CACHE_TTL
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    async def _lookup(self, key: str) -> Optional[List[float]]:
        raw = await self.kv.get(key)
        if raw is None:
            return None
        try:
            entry = decode(EmbeddingCacheEntry, key, raw)
        except CorruptRecordError as e:
            logger.debug("Embedding cache miss: %s", e)
            return None
        if entry.model != self.model.model_id:
            return None
        return entry.embedding

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        keys = [cache_key(t) for t in texts]
        lookups = await asyncio.gather(*(self._lookup(k) for k in keys), return_exceptions=True)

        embeddings: List[Optional[List[float]]] = []
        misses: List[int] = []
        for i, hit in enumerate(lookups):
            if isinstance(hit, BaseException) or hit is None:
                embeddings.append(None)
                misses.append(i)
            else:
                embeddings.append(hit)

        if misses:
            fresh = await self.retry.run(
                self.model.embed,
                [texts[i] for i in misses],
                description="embed batch",
            )
            if len(fresh) != len(misses):
                raise ValueError(
                    f"Embedding model returned {len(fresh)} vectors for {len(misses)} texts"
                )
            writes = []
            for i, vector in zip(misses, fresh):
                vector = [float(x) for x in vector]
                embeddings[i] = vector
                entry = EmbeddingCacheEntry(embedding=vector, model=self.model.model_id)
                writes.append(self.kv.put(keys[i], entry.model_dump_json(), ttl=self.ttl))
            _, failed = await settle(writes)
            if failed:
                logger.warning("Embedding cache: %s of %s writes failed", failed, len(writes))

        logger.debug("Embedded %s texts (%s cache hits)", len(texts), len(texts) - len(misses))
        return [e for e in embeddings if e is not None]
