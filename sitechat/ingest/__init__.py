"""
Site ingestion: crawling, chunking, categorization and indexing.
"""

from .categorizer import CATEGORIES, infer_category
from .chunking import (
    ChunkingStrategy,
    HeadingSectionChunker,
    PageChunk,
    PageChunker,
    PageContent,
    SentenceWindowChunker,
)
from .crawler import CrawledPage, Crawler, ExtractedPage, validate_url
from .pipeline import IngestionPipeline, IngestResult

__all__ = [
    "CATEGORIES",
    "ChunkingStrategy",
    "CrawledPage",
    "Crawler",
    "ExtractedPage",
    "HeadingSectionChunker",
    "IngestResult",
    "IngestionPipeline",
    "PageChunk",
    "PageChunker",
    "PageContent",
    "SentenceWindowChunker",
    "infer_category",
    "validate_url",
]
