"""
Vector index protocol with in-process and key-value backed cosine search.

Entries are partitioned per bot through the ``bot_id`` metadata field, so the
same vector id (a stringified chunk index) can exist once per bot.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

import numpy as np

from .kv import KeyValueStore

NAMESPACE_FIELD = "bot_id"


@dataclass
class VectorRecord:
    """Vector plus metadata, as upserted into the index."""

    id: str
    values: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class VectorMatch:
    """Single nearest-neighbour hit."""

    id: str
    score: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class VectorIndex(Protocol):
    """Approximate nearest-neighbour index with metadata filtering."""

    async def upsert(self, vectors: Sequence[VectorRecord]) -> None:
        ...

    async def query(
        self,
        vector: Sequence[float],
        *,
        top_k: int,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> List[VectorMatch]:
        ...

    async def delete_by_ids(
        self,
        ids: Sequence[str],
        *,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> int:
        ...


def _matches(metadata: Mapping[str, Any], filter: Optional[Mapping[str, Any]]) -> bool:
    if not filter:
        return True
    return all(metadata.get(k) == v for k, v in filter.items())


class InMemoryVectorIndex:
    """Exact cosine search over normalized vectors held in memory."""

    def __init__(self) -> None:
        self._entries: Dict[Tuple[Any, str], Tuple[np.ndarray, Dict[str, Any]]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def upsert(self, vectors: Sequence[VectorRecord]) -> None:
        for v in vectors:
            arr = np.asarray(v.values, dtype=np.float32)
            norm = float(np.linalg.norm(arr))
            if norm > 0:
                arr = arr / norm
            ns = v.metadata.get(NAMESPACE_FIELD)
            self._entries[(ns, v.id)] = (arr, dict(v.metadata))

    async def query(
        self,
        vector: Sequence[float],
        *,
        top_k: int,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> List[VectorMatch]:
        candidates = [
            (key, arr, meta)
            for key, (arr, meta) in self._entries.items()
            if _matches(meta, filter)
        ]
        if not candidates:
            return []
        q = np.asarray(vector, dtype=np.float32)
        norm = float(np.linalg.norm(q))
        if norm > 0:
            q = q / norm
        matrix = np.stack([arr for _, arr, _ in candidates])
        sims = matrix @ q
        order = np.argsort(-sims)[:top_k]
        return [
            VectorMatch(
                id=candidates[int(i)][0][1],
                score=float(sims[int(i)]),
                metadata=dict(candidates[int(i)][2]),
            )
            for i in order
        ]

    async def delete_by_ids(
        self,
        ids: Sequence[str],
        *,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> int:
        wanted = set(ids)
        doomed = [
            key
            for key, (_, meta) in self._entries.items()
            if key[1] in wanted and _matches(meta, filter)
        ]
        for key in doomed:
            del self._entries[key]
        return len(doomed)


class KeyValueVectorIndex:
    """
    Vectors persisted in a key-value store, searched by brute force.

    Keys are ``vec:{bot_id}:{id}``; queries are expected to carry the
    ``bot_id`` filter so only one bot's vectors are loaded.
    """

    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    @staticmethod
    def _key(namespace: Any, vector_id: str) -> str:
        return f"vec:{namespace}:{vector_id}"

    @staticmethod
    def _prefix(filter: Optional[Mapping[str, Any]]) -> str:
        if filter and NAMESPACE_FIELD in filter:
            return f"vec:{filter[NAMESPACE_FIELD]}:"
        return "vec:"

    async def upsert(self, vectors: Sequence[VectorRecord]) -> None:
        for v in vectors:
            payload = {"values": [float(x) for x in v.values], "metadata": v.metadata}
            await self.kv.put(self._key(v.metadata.get(NAMESPACE_FIELD), v.id), json.dumps(payload))

    async def _load(self, filter: Optional[Mapping[str, Any]]) -> List[Tuple[str, np.ndarray, Dict[str, Any]]]:
        loaded = []
        for key in await self.kv.list_keys(self._prefix(filter)):
            raw = await self.kv.get(key)
            if raw is None:
                continue
            payload = json.loads(raw)
            meta = payload.get("metadata") or {}
            if _matches(meta, filter):
                loaded.append((key.rsplit(":", 1)[-1], np.asarray(payload["values"], dtype=np.float32), meta))
        return loaded

    async def query(
        self,
        vector: Sequence[float],
        *,
        top_k: int,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> List[VectorMatch]:
        loaded = await self._load(filter)
        if not loaded:
            return []
        matrix = np.stack([arr for _, arr, _ in loaded])
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0] = 1.0
        q = np.asarray(vector, dtype=np.float32)
        q_norm = float(np.linalg.norm(q)) or 1.0
        sims = (matrix @ q) / (norms * q_norm)
        order = np.argsort(-sims)[:top_k]
        return [
            VectorMatch(id=loaded[int(i)][0], score=float(sims[int(i)]), metadata=dict(loaded[int(i)][2]))
            for i in order
        ]

    async def delete_by_ids(
        self,
        ids: Sequence[str],
        *,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> int:
        wanted = set(ids)
        deleted = 0
        for key in await self.kv.list_keys(self._prefix(filter)):
            if key.rsplit(":", 1)[-1] in wanted:
                await self.kv.delete(key)
                deleted += 1
        return deleted
