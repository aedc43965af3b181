"""
Tests for page chunking: heading sections, paragraph fallback, sentence windows.
"""

from __future__ import annotations

from sitechat.ingest.chunking import (
    HeadingSectionChunker,
    PageChunker,
    PageContent,
    SentenceWindowChunker,
    html_to_text,
    scrub_text,
    split_sentences,
)


def _page(raw_html: str = "", text: str = "", title: str = "Guide", headings=None) -> PageContent:
    return PageContent(
        url="https://example.com/guide",
        title=title,
        headings=headings or [],
        raw_html=raw_html,
        text=text,
    )


def test_heading_sections_are_labelled_and_boilerplate_dropped():
    """Each h1-h6 section becomes one **heading** chunk; nav and short sections are dropped."""
    body = "We ship worldwide within five business days. " * 2
    markup = (
        "<nav>Menu Home Products</nav>"
        f"<h2>Shipping</h2><p>{body}</p>"
        "<h2>Tiny</h2><p>short</p>"
    )
    chunks = HeadingSectionChunker().chunk(_page(markup))
    assert len(chunks) == 1
    chunk = chunks[0]
    assert chunk.text.startswith("**Shipping**\n\n")
    assert "We ship worldwide" in chunk.text
    assert "Menu" not in chunk.text
    assert chunk.heading == "Shipping"
    assert chunk.level == 2
    assert chunk.url == "https://example.com/guide"
    assert chunk.title == "Guide"


def test_long_section_splits_on_sentences_within_max():
    """Oversized sections split into chunks no larger than max; continuations are marked."""
    sentences = "".join(
        f"Sentence number {i:02d} talks about reliable widget delivery. " for i in range(40)
    )
    chunker = HeadingSectionChunker(min_size=50, max_size=300)
    chunks = chunker.chunk(_page(f"<h3>Long</h3><p>{sentences}</p>"))
    assert len(chunks) >= 2
    assert all(len(c.text) <= 300 for c in chunks)
    assert chunks[0].text.startswith("**Long**\n\n")
    assert "(continued)" not in chunks[0].text
    assert all(c.text.startswith("**Long** (continued)\n\n") for c in chunks[1:])
    joined = " ".join(c.text for c in chunks)
    assert "Sentence number 00" in joined
    assert "Sentence number 39" in joined


def test_single_oversized_sentence_is_kept_whole():
    """A sentence longer than max is emitted as its own chunk, never truncated."""
    sentence = "This sentence " + "keeps going " * 40 + "until it ends."
    chunks = HeadingSectionChunker(min_size=50, max_size=200).chunk(
        _page(f"<h2>Run-on</h2><p>{sentence}</p>")
    )
    assert len(chunks) == 1
    assert len(chunks[0].text) > 200
    assert html_to_text(sentence) in chunks[0].text


def test_paragraph_fallback_without_headings():
    """Pages without headings are packed paragraph by paragraph; short paragraphs are dropped."""
    first = "Our store opens every weekday at nine and closes at six in the evening."
    second = "Returns are accepted for thirty days with the original receipt attached."
    markup = f"<div><p>{first}</p><p>{second}</p><p>tiny</p></div>"
    chunks = HeadingSectionChunker().chunk(_page(markup))
    assert len(chunks) == 1
    assert chunks[0].text == f"{first}\n\n{second}"
    assert chunks[0].heading == ""
    assert chunks[0].level == 0


def test_paragraph_fallback_respects_max():
    paragraph = "Each paragraph here describes one more opening hour detail for visitors."
    markup = "".join(f"<p>{paragraph}</p>" for _ in range(6))
    chunks = HeadingSectionChunker(min_size=50, max_size=160).chunk(_page(markup))
    assert len(chunks) >= 3
    assert all(len(c.text) <= 160 for c in chunks)


def test_empty_input_yields_no_chunks():
    assert PageChunker().chunk(_page()) == []
    assert HeadingSectionChunker().chunk(_page("<html></html>")) == []
    assert SentenceWindowChunker().chunk_text("") == []


def test_split_sentences_keeps_trailing_fragment():
    assert split_sentences("One. Two! Three") == ["One.", " Two!", " Three"]


def test_scrub_text_removes_markup_and_css_noise():
    raw = "<style>.a{color:red}</style><p>Hello <b>world</b></p><script>var x = 1;</script>"
    cleaned = scrub_text(raw)
    assert "<" not in cleaned
    assert "color" not in cleaned
    assert "Hello" in cleaned
    assert "world" in cleaned


def test_sentence_window_prefix_and_overlap():
    """Windows carry the [Title - Heading] prefix and a two-sentence overlap."""
    text = ". ".join(
        f"Sentence {i} explains a useful product feature in good detail" for i in range(30)
    ) + "."
    chunker = SentenceWindowChunker(max_size=200)
    chunks = chunker.chunk_text(text, "Guide", "Intro")
    prefix = "[Guide - Intro] "
    assert len(chunks) > 2
    assert all(c.startswith(prefix) for c in chunks)
    assert all(len(c) - len(prefix) <= 200 for c in chunks)
    assert "Sentence 0 explains" in chunks[0]
    assert "Sentence 1 explains" in chunks[1]
    assert "Sentence 2 explains" in chunks[1]


def test_sentence_window_prefix_without_heading():
    text = "A fairly long sentence about the company history and goals. " * 3
    chunks = SentenceWindowChunker().chunk_text(text, "About", "")
    assert chunks
    assert chunks[0].startswith("[About] ")


def test_page_chunker_falls_back_to_sentence_window():
    """Without raw HTML the flattened text is chunked by the sentence window strategy."""
    text = ". ".join(
        f"Sentence {i} explains a useful product feature in good detail" for i in range(5)
    ) + "."
    chunks = PageChunker.from_sizes(50, 1200).chunk(_page(text=text, headings=["Intro"]))
    assert len(chunks) == 1
    assert chunks[0].text.startswith("[Guide - Intro] ")
    assert chunks[0].heading == "Intro"


def test_page_chunker_prefers_structured_chunks():
    body = "Detailed notes about configuring the widget for production use. " * 2
    page = _page(raw_html=f"<h1>Setup</h1><p>{body}</p>", text=body, headings=["Setup"])
    chunks = PageChunker().chunk(page)
    assert len(chunks) == 1
    assert chunks[0].text.startswith("**Setup**")
