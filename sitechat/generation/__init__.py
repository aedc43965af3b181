"""
Answer generation module for site chat.

- Numbered context blocks from retrieved chunks
- Answer and greeting generation
- Source link selection
"""

from .config import GenerationConfig
from .context_builder import build_context, format_history
from .generator import AnswerGenerator, sanitize_response
from .links import select_source_links
from .prompts import APOLOGY_MESSAGES, NO_INFO_MESSAGES, SYSTEM_PROMPT, localized

__all__ = [
    "APOLOGY_MESSAGES",
    "AnswerGenerator",
    "GenerationConfig",
    "NO_INFO_MESSAGES",
    "SYSTEM_PROMPT",
    "build_context",
    "format_history",
    "localized",
    "sanitize_response",
    "select_source_links",
]
