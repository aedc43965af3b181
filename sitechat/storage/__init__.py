"""
Persistence collaborators: key-value stores, typed records, vector index.
"""

from .kv import InMemoryKeyValueStore, KeyValueStore
from .records import BotRecord, ChatMessage, ChunkRecord, EmbeddingCacheEntry, Posting
from .stores import BotStore, ChunkStore, ConversationStore, Stores, settle
from .vectors import (
    InMemoryVectorIndex,
    KeyValueVectorIndex,
    VectorIndex,
    VectorMatch,
    VectorRecord,
)

__all__ = [
    "BotRecord",
    "BotStore",
    "ChatMessage",
    "ChunkRecord",
    "ChunkStore",
    "ConversationStore",
    "EmbeddingCacheEntry",
    "InMemoryKeyValueStore",
    "InMemoryVectorIndex",
    "KeyValueStore",
    "KeyValueVectorIndex",
    "Posting",
    "Stores",
    "VectorIndex",
    "VectorMatch",
    "VectorRecord",
    "settle",
]
