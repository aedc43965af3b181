"""
Tests for the content categorizer.
"""

from __future__ import annotations

from sitechat.ingest.categorizer import CATEGORIES, category_scores, infer_category


def test_products_page():
    assert (
        infer_category("https://shop.example.com/products/item-1", "Buy our product")
        == "products"
    )


def test_headings_and_breadcrumbs_count():
    category = infer_category(
        "https://example.com/x",
        "Welcome",
        headings=["Getting started guide", "Tutorial"],
        breadcrumbs=["Docs > Manual"],
    )
    assert category == "documentation"


def test_tie_resolves_to_general():
    scores = category_scores("https://x.io/", "Blog pricing", [], [])
    assert scores["blog"] == scores["pricing"] == 1
    assert infer_category("https://x.io/", "Blog pricing") == "general"


def test_no_signal_resolves_to_general():
    assert infer_category("https://x.io/", "Welcome") == "general"


def test_total_and_deterministic():
    inputs = [
        ("https://example.com/blog/news", "Latest news", ["Update"], []),
        ("https://example.com/", "", [], []),
        ("https://example.com/faq", "Questions", ["Help"], ["Support"]),
    ]
    for args in inputs:
        first = infer_category(*args)
        assert first in CATEGORIES
        assert infer_category(*args) == first
