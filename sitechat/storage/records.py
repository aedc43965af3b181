"""
Typed records persisted in the key-value stores.

Every record is validated when read back; malformed payloads raise
CorruptRecordError instead of leaking half-parsed dicts to callers.
"""

from __future__ import annotations

import time
from typing import List, Literal, Type, TypeVar

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from ..errors import CorruptRecordError


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class BotRecord(BaseModel):
    """Metadata for one ingested website."""

    id: str
    url: str
    title: str
    created_at: int = Field(default_factory=now_ms)
    total_pages: int = 0
    total_chunks: int = 0
    content_hash: str = ""
    vector_ids: List[str] = Field(default_factory=list)


class ChunkRecord(BaseModel):
    """A bounded passage of page text; the atomic retrieval unit."""

    text: str
    url: str
    page_title: str = ""
    header_path: str = ""
    headings: List[str] = Field(default_factory=list)
    category: str = "general"
    chunk_index: int
    bot_id: str
    created_at: int = Field(default_factory=now_ms)


class ChatMessage(BaseModel):
    """One entry of a conversation history."""

    role: Literal["user", "assistant"]
    content: str


class Posting(BaseModel):
    """Occurrences of one term inside one chunk."""

    chunk_index: int
    frequency: int


class EmbeddingCacheEntry(BaseModel):
    """Cached embedding for a text, tagged with the model that produced it."""

    embedding: List[float]
    model: str
    timestamp: int = Field(default_factory=now_ms)


M = TypeVar("M", bound=BaseModel)

_MESSAGES = TypeAdapter(List[ChatMessage])
_POSTINGS = TypeAdapter(List[Posting])


def decode(model: Type[M], key: str, raw: str) -> M:
    """Parse ``raw`` as ``model``; raise CorruptRecordError on any mismatch."""
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise CorruptRecordError(key, str(e.errors()[:1])) from e


def decode_messages(key: str, raw: str) -> List[ChatMessage]:
    try:
        return _MESSAGES.validate_json(raw)
    except ValidationError as e:
        raise CorruptRecordError(key, str(e.errors()[:1])) from e


def encode_messages(messages: List[ChatMessage]) -> str:
    return _MESSAGES.dump_json(messages).decode("utf-8")


def decode_postings(key: str, raw: str) -> List[Posting]:
    try:
        return _POSTINGS.validate_json(raw)
    except ValidationError as e:
        raise CorruptRecordError(key, str(e.errors()[:1])) from e


def encode_postings(postings: List[Posting]) -> str:
    return _POSTINGS.dump_json(postings).decode("utf-8")
