from __future__ import annotations

from typing import Optional

from sqlalchemy import Float, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""


class KVEntry(Base):
    __tablename__ = "kv_entries"

    # bots, chunks, convs or vectors
    namespace: Mapped[str] = mapped_column(String(32), primary_key=True)
    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    # epoch seconds; NULL means no expiry
    expires_at: Mapped[Optional[float]] = mapped_column(Float, nullable=True, index=True)
