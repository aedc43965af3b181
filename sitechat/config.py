"""
Service-wide settings loaded from the environment (and an optional .env file).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if it exists
project_root = Path(__file__).resolve().parents[1]
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)

ENV_PREFIX = "SITECHAT_"


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Tunable options for crawling, indexing and answering."""

    default_max_pages: int = 20
    default_max_depth: int = 2
    max_prompt_chunks: int = 8
    batch_embed_size: int = 20
    vector_score_threshold: float = 0.3
    embedding_cache_ttl: int = 7 * 24 * 3600
    lexical_min_term_length: int = 3
    semantic_chunk_min_size: int = 50
    semantic_chunk_max_size: int = 1200
    debug_logging: bool = False
    embedding_model: str = "all-MiniLM-L6-v2"
    reranker_model: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"
    database_url: Optional[str] = None
    retry_attempts: int = 3
    retry_base_delay: float = 1.0

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from SITECHAT_* variables, falling back to defaults."""
        d = cls()
        p = ENV_PREFIX
        return cls(
            default_max_pages=_get_env_int(p + "DEFAULT_MAX_PAGES", d.default_max_pages),
            default_max_depth=_get_env_int(p + "DEFAULT_MAX_DEPTH", d.default_max_depth),
            max_prompt_chunks=_get_env_int(p + "MAX_PROMPT_CHUNKS", d.max_prompt_chunks),
            batch_embed_size=_get_env_int(p + "BATCH_EMBED_SIZE", d.batch_embed_size),
            vector_score_threshold=_get_env_float(
                p + "VECTOR_SCORE_THRESHOLD", d.vector_score_threshold
            ),
            embedding_cache_ttl=_get_env_int(p + "EMBEDDING_CACHE_TTL", d.embedding_cache_ttl),
            lexical_min_term_length=_get_env_int(
                p + "LEXICAL_MIN_TERM_LENGTH", d.lexical_min_term_length
            ),
            semantic_chunk_min_size=_get_env_int(
                p + "SEMANTIC_CHUNK_MIN_SIZE", d.semantic_chunk_min_size
            ),
            semantic_chunk_max_size=_get_env_int(
                p + "SEMANTIC_CHUNK_MAX_SIZE", d.semantic_chunk_max_size
            ),
            debug_logging=_get_env_bool(p + "DEBUG_LOGGING", d.debug_logging),
            embedding_model=os.getenv("EMBEDDING_MODEL", d.embedding_model),
            reranker_model=os.getenv("RERANKER_MODEL", d.reranker_model),
            database_url=os.getenv("DATABASE_URL") or None,
            retry_attempts=_get_env_int(p + "RETRY_ATTEMPTS", d.retry_attempts),
            retry_base_delay=_get_env_float(p + "RETRY_BASE_DELAY", d.retry_base_delay),
        )


def configure_logging(settings: Settings) -> None:
    """Route sitechat loggers to stderr; DEBUG when debug_logging is on."""
    level = logging.DEBUG if settings.debug_logging else logging.INFO
    logger = logging.getLogger("sitechat")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
