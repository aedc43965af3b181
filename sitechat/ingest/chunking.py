"""
Page chunking strategies.

Two strategies share one interface and are tried in order by PageChunker:

- HeadingSectionChunker works on raw HTML. It drops boilerplate containers,
  cuts the page into h1-h6 sections and emits one labelled chunk per section,
  splitting long sections on sentence boundaries. Pages without headings are
  packed paragraph by paragraph.
- SentenceWindowChunker works on flattened text only. It scrubs markup and
  CSS/JS residue, packs sentences into windows with a two-sentence overlap
  and tags every chunk with ``[Page Title - Heading]``.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence

DEFAULT_MIN_SIZE = 50
DEFAULT_MAX_SIZE = 1200


@dataclass
class PageContent:
    """What the chunkers see of a fetched page."""

    url: str
    title: str = ""
    headings: List[str] = field(default_factory=list)
    raw_html: str = ""
    text: str = ""


@dataclass
class PageChunk:
    """A chunk of page text plus the section it came from."""

    text: str
    title: str
    heading: str
    url: str
    level: int = 0


class ChunkingStrategy(Protocol):
    """Turns one page into chunks; returns [] when it has nothing to offer."""

    name: str

    def accepts(self, page: PageContent) -> bool:
        ...

    def chunk(self, page: PageContent) -> List[PageChunk]:
        ...


_BOILERPLATE_PATTERNS = [
    re.compile(p, re.I | re.S)
    for p in (
        r"<nav[^>]*>.*?</nav>",
        r"<footer[^>]*>.*?</footer>",
        r"<header[^>]*>.*?</header>",
        r"<aside[^>]*>.*?</aside>",
        r"<div[^>]*class=\"[^\"]*sidebar[^\"]*\"[^>]*>.*?</div>",
        r"<div[^>]*class=\"[^\"]*advertisement[^\"]*\"[^>]*>.*?</div>",
        r"<script[^>]*>.*?</script>",
        r"<style[^>]*>.*?</style>",
        r"<noscript[^>]*>.*?</noscript>",
        r"<!--.*?-->",
    )
]
_SECTION_RE = re.compile(
    r"<(h[1-6])[^>]*>(.*?)</\1>(.*?)(?=<h[1-6][^>]*>|\Z)",
    re.I | re.S,
)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)")
_PARAGRAPH_OPEN_RE = re.compile(r"<p(?:\s[^>]*)?>", re.I)
_PARAGRAPH_CLOSE_RE = re.compile(r"</p>", re.I)
_PARAGRAPH_MARK = "\x00"


def strip_boilerplate(markup: str) -> str:
    """Remove navigation, header/footer, sidebars, ads and script/style blocks."""
    for pattern in _BOILERPLATE_PATTERNS:
        markup = pattern.sub("", markup)
    return markup


def html_to_text(markup: str) -> str:
    """Drop tags, decode entities and collapse whitespace."""
    text = _TAG_RE.sub(" ", markup)
    return _WS_RE.sub(" ", html.unescape(text)).strip()


def split_sentences(text: str) -> List[str]:
    """Sentences ending in . ! or ? (a trailing fragment counts as one)."""
    return [s for s in _SENTENCE_RE.findall(text) if s.strip()] or [text]


class HeadingSectionChunker:
    """Structured chunker over raw HTML, one section per heading."""

    name = "structured"

    def __init__(self, min_size: int = DEFAULT_MIN_SIZE, max_size: int = DEFAULT_MAX_SIZE):
        self.min_size = min_size
        self.max_size = max_size

    def accepts(self, page: PageContent) -> bool:
        return bool(page.raw_html.strip())

    def chunk(self, page: PageContent) -> List[PageChunk]:
        cleaned = strip_boilerplate(page.raw_html)
        chunks: List[PageChunk] = []

        for m in _SECTION_RE.finditer(cleaned):
            tag, heading_markup, body = m.group(1), m.group(2), m.group(3)
            section_text = html_to_text(body)
            if len(section_text) < self.min_size:
                continue
            heading = html_to_text(heading_markup)
            level = int(tag[1])
            label = f"**{heading}**\n\n"
            if len(label + section_text) <= self.max_size:
                chunks.append(self._make(label + section_text, page, heading, level))
                continue
            for text in self._pack_sentences(
                split_sentences(section_text),
                label,
                f"**{heading}** (continued)\n\n",
            ):
                chunks.append(self._make(text, page, heading, level))

        if not chunks:
            chunks = self._chunk_paragraphs(cleaned, page)
        return chunks

    def _pack_sentences(
        self,
        sentences: Sequence[str],
        label: str,
        continued_label: str,
    ) -> List[str]:
        """Greedy sentence packing; a lone oversized sentence stays whole."""
        out: List[str] = []
        body = ""
        for sentence in sentences:
            if body and len(label + body + sentence) > self.max_size:
                out.append((label + body).strip())
                label = continued_label
                body = sentence.lstrip()
            else:
                body += sentence if body else sentence.lstrip()
        if body:
            out.append((label + body).strip())
        return [t for t in out if len(t) >= self.min_size]

    def _chunk_paragraphs(self, cleaned: str, page: PageContent) -> List[PageChunk]:
        marked = _PARAGRAPH_OPEN_RE.sub(_PARAGRAPH_MARK, cleaned)
        marked = _PARAGRAPH_CLOSE_RE.sub("", marked)
        paragraphs = [html_to_text(p) for p in marked.split(_PARAGRAPH_MARK)]
        paragraphs = [p for p in paragraphs if len(p) > 50]

        texts: List[str] = []
        current = ""
        for paragraph in paragraphs:
            if len(paragraph) > self.max_size:
                if current:
                    texts.append(current)
                    current = ""
                texts.extend(self._pack_sentences(split_sentences(paragraph), "", ""))
                continue
            if current and len(current + "\n\n" + paragraph) > self.max_size:
                texts.append(current)
                current = paragraph
            else:
                current = f"{current}\n\n{paragraph}" if current else paragraph
        if current:
            texts.append(current)

        return [
            self._make(t.strip(), page, "", 0) for t in texts if len(t.strip()) >= self.min_size
        ]

    @staticmethod
    def _make(text: str, page: PageContent, heading: str, level: int) -> PageChunk:
        return PageChunk(text=text, title=page.title, heading=heading, url=page.url, level=level)


_STRUCTURE_REPLACEMENTS = [
    (re.compile(p, re.I), r)
    for p, r in (
        (r"<li[^>]*>", "\n• "),
        (r"</li>", ""),
        (r"</?[uo]l[^>]*>", "\n"),
        (r"<h[1-6][^>]*>", "\n\n**"),
        (r"</h[1-6]>", "**\n"),
        (r"</?p(?:\s[^>]*)?>", "\n"),
        (r"<br[^>]*>", "\n"),
        (r"</?(?:strong|b)(?:\s[^>]*)?>", "**"),
        (r"</?(?:em|i)(?:\s[^>]*)?>", "*"),
    )
]
_NOISE_PATTERNS = [
    (re.compile(p, re.I | re.S), " ")
    for p in (
        r"<script[^>]*>.*?</script>",
        r"<style[^>]*>.*?</style>",
        r"<noscript[^>]*>.*?</noscript>",
        r"<!--.*?-->",
        r"<[^>]+>",
        r"\{[^}]+\}",
        r"\$\w+[^;]*;",
        r"window\.\w+[^;]*;",
        r"document\.\w+[^;]*;",
        r"\w+:\s*[^;]*;",
        r"\b(?:important|px|rem|rgba|deg|var|media|function|return|const|let|"
        r"getElementById|addEventListener|onclick|onload|margin|padding|border|width|height)\b",
        r"[{}();]",
    )
]
_ATTRIBUTE_WORD_RE = re.compile(
    r"^(class|id|style|href|src|alt|title|width|height|border|margin|padding)$", re.I
)
_NAV_WORD_RE = re.compile(
    r"^(click|here|more|info|read|see|view|go|back|next|prev|home|menu|nav|footer|header|"
    r"login|register|sign|up|in)$",
    re.I,
)
_NUMBER_RE = re.compile(r"^\d+$")


def preserve_structure(text: str) -> str:
    """Turn list, heading and emphasis tags into plain-text markers."""
    for pattern, repl in _STRUCTURE_REPLACEMENTS:
        text = pattern.sub(repl, text)
    return text


def scrub_text(text: str) -> str:
    """Remove markup, script remnants and CSS-looking tokens."""
    text = preserve_structure(text)
    for pattern, repl in _NOISE_PATTERNS:
        text = pattern.sub(repl, text)
    return _WS_RE.sub(" ", text).strip()


def _is_content_sentence(sentence: str) -> bool:
    s = sentence.strip()
    if len(s) <= 20:
        return False
    return not (
        _ATTRIBUTE_WORD_RE.match(s) or _NUMBER_RE.match(s) or _NAV_WORD_RE.match(s)
    )


class SentenceWindowChunker:
    """Fallback chunker for flattened page text."""

    name = "sentence_window"

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, overlap: int = 2):
        self.max_size = max_size
        self.overlap = overlap

    def accepts(self, page: PageContent) -> bool:
        return bool(page.text.strip())

    def chunk(self, page: PageContent) -> List[PageChunk]:
        heading = page.headings[0] if page.headings else ""
        texts = self.chunk_text(page.text, page.title, heading)
        return [PageChunk(text=t, title=page.title, heading=heading, url=page.url) for t in texts]

    def chunk_text(self, text: str, page_title: str = "", heading: str = "") -> List[str]:
        sentences = [s.strip() for s in re.split(r"[.!?]+", scrub_text(text))]
        sentences = [s for s in sentences if _is_content_sentence(s)]

        prefix = ""
        if page_title:
            prefix = f"[{page_title} - {heading}] " if heading else f"[{page_title}] "

        chunks: List[str] = []
        current = ""
        for i, sentence in enumerate(sentences):
            candidate = f"{current}. {sentence}" if current else sentence
            if current and len(candidate) > self.max_size:
                if len(current) > 50:
                    chunks.append(prefix + current.strip())
                current = self._with_overlap(sentences[max(0, i - self.overlap) : i], sentence)
            else:
                current = candidate
        if current.strip() and len(current) > 50:
            chunks.append(prefix + current.strip())
        return [c for c in chunks if len(c) > 30]

    def _with_overlap(self, previous: List[str], sentence: str) -> str:
        """Start a window with up to ``overlap`` earlier sentences that still fit."""
        carried = list(previous)
        while carried and len(". ".join(carried + [sentence])) > self.max_size:
            carried.pop(0)
        return ". ".join(carried + [sentence])


class PageChunker:
    """Runs strategies in order and keeps the first non-empty result."""

    def __init__(self, strategies: Optional[Sequence[ChunkingStrategy]] = None):
        self.strategies: List[ChunkingStrategy] = list(
            strategies or (HeadingSectionChunker(), SentenceWindowChunker())
        )

    @classmethod
    def from_sizes(cls, min_size: int, max_size: int) -> "PageChunker":
        return cls([HeadingSectionChunker(min_size, max_size), SentenceWindowChunker(max_size)])

    def chunk(self, page: PageContent) -> List[PageChunk]:
        for strategy in self.strategies:
            if not strategy.accepts(page):
                continue
            chunks = strategy.chunk(page)
            if chunks:
                return chunks
        return []
