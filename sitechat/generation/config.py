"""Configuration for answer and greeting generation."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class GenerationConfig:
    """Settings for RAG answer generation."""

    max_tokens: int = 1500
    temperature: float = 0.3
    max_context_chunks: int = 8
    history_turns: int = 6
    greeting_max_tokens: int = 150
    greeting_temperature: float = 0.4
    greeting_sample_chunks: int = 5
    greeting_sample_chars: int = 2000
    analysis_max_tokens: int = 300
    analysis_temperature: float = 0.2
