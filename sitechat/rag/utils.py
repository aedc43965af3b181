"""
Utility functions for RAG module.
"""

from __future__ import annotations

import re
from typing import List

NON_WORD_RE = re.compile(r"[^\w\s]")
DIGIT_RE = re.compile(r"\d")

DEFAULT_MIN_TERM_LENGTH = 3


def tokenize(text: str, min_length: int = DEFAULT_MIN_TERM_LENGTH) -> List[str]:
    """Lowercase, replace punctuation with spaces and keep terms of ``min_length``+ chars."""
    cleaned = NON_WORD_RE.sub(" ", text.lower())
    return [tok for tok in cleaned.split() if len(tok) >= min_length]


def has_digit(text: str) -> bool:
    return DIGIT_RE.search(text) is not None
