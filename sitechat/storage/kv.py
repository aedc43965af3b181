"""
Key-value store protocol and an in-process implementation.

Values are JSON strings; keys are namespaced by prefix (``bot:``, ``chunk:``,
``lexical:``, ``embcache:``, ``conv:``).
"""

from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional, Protocol, Tuple


class KeyValueStore(Protocol):
    """Eventually consistent string store with optional per-key TTL."""

    async def get(self, key: str) -> Optional[str]:
        ...

    async def put(self, key: str, value: str, *, ttl: Optional[int] = None) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def list_keys(self, prefix: str = "") -> List[str]:
        ...


class InMemoryKeyValueStore:
    """Dict-backed store; expired keys are dropped lazily on access."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._clock = clock

    def _alive(self, key: str) -> bool:
        item = self._data.get(key)
        if item is None:
            return False
        _, expires_at = item
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return False
        return True

    async def get(self, key: str) -> Optional[str]:
        if not self._alive(key):
            return None
        return self._data[key][0]

    async def put(self, key: str, value: str, *, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        self._data[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list_keys(self, prefix: str = "") -> List[str]:
        return sorted(k for k in list(self._data) if k.startswith(prefix) and self._alive(k))

    def __len__(self) -> int:
        return sum(1 for k in list(self._data) if self._alive(k))
