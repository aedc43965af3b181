"""
SQL-backed key-value store (PostgreSQL in production, SQLite in tests).
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.models import KVEntry


class SqlKeyValueStore:
    """KeyValueStore over the ``kv_entries`` table, scoped to one namespace."""

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        namespace: str,
        clock: Callable[[], float] = time.time,
    ):
        self._sessions = sessions
        self.namespace = namespace
        self._clock = clock

    def _live(self):
        return or_(KVEntry.expires_at.is_(None), KVEntry.expires_at > self._clock())

    async def get(self, key: str) -> Optional[str]:
        async with self._sessions() as session:
            result = await session.execute(
                select(KVEntry.value).where(
                    KVEntry.namespace == self.namespace,
                    KVEntry.key == key,
                    self._live(),
                )
            )
            return result.scalar_one_or_none()

    async def put(self, key: str, value: str, *, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        async with self._sessions() as session:
            await session.merge(
                KVEntry(namespace=self.namespace, key=key, value=value, expires_at=expires_at)
            )
            await session.commit()

    async def delete(self, key: str) -> None:
        async with self._sessions() as session:
            await session.execute(
                delete(KVEntry).where(KVEntry.namespace == self.namespace, KVEntry.key == key)
            )
            await session.commit()

    async def list_keys(self, prefix: str = "") -> List[str]:
        async with self._sessions() as session:
            result = await session.execute(
                select(KVEntry.key)
                .where(
                    KVEntry.namespace == self.namespace,
                    KVEntry.key.startswith(prefix, autoescape=True),
                    self._live(),
                )
                .order_by(KVEntry.key)
            )
            return list(result.scalars().all())
