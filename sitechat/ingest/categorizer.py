"""
Coarse topical label for a page, stored as chunk metadata.
"""

from __future__ import annotations

from typing import Dict, Sequence, Tuple

GENERAL = "general"

CATEGORY_PATTERNS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("products", ("product", "shop", "store", "catalog", "item", "buy", "price", "cart")),
    ("services", ("service", "solution", "offering", "consulting", "support")),
    ("documentation", ("doc", "guide", "tutorial", "manual", "help", "api", "reference")),
    ("about", ("about", "company", "team", "mission", "history", "who we are")),
    ("blog", ("blog", "article", "post", "news", "update", "insight")),
    ("contact", ("contact", "reach", "location", "phone", "email", "address")),
    ("pricing", ("pric", "cost", "plan", "subscription", "fee", "rate")),
    ("faq", ("faq", "question", "answer", "help", "support")),
)

CATEGORIES = tuple(name for name, _ in CATEGORY_PATTERNS) + (GENERAL,)


def category_scores(
    url: str,
    title: str,
    headings: Sequence[str],
    breadcrumbs: Sequence[str],
) -> Dict[str, int]:
    """Occurrence count of each category's keywords across all page signals."""
    content = " ".join(
        [url.lower(), title.lower(), " ".join(headings).lower(), " ".join(breadcrumbs).lower()]
    )
    return {
        name: sum(content.count(pattern) for pattern in patterns)
        for name, patterns in CATEGORY_PATTERNS
    }


def infer_category(
    url: str,
    title: str,
    headings: Sequence[str] = (),
    breadcrumbs: Sequence[str] = (),
) -> str:
    """
    Pick the category with the strictly highest keyword score.

    A tie for first place, or no keyword hit at all, yields ``general``.
    """
    scores = category_scores(url, title, headings, breadcrumbs)
    best = max(scores.values())
    if best == 0:
        return GENERAL
    leaders = [name for name, score in scores.items() if score == best]
    if len(leaders) > 1:
        return GENERAL
    return leaders[0]
