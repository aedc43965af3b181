"""
Shared fakes for sitechat tests: deterministic models and a mock website.
"""

from __future__ import annotations

import re
import zlib
from typing import Callable, Dict, List, Optional, Sequence

import httpx
import pytest

from sitechat.retry import NO_RETRY

EMBED_DIM = 4096


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def no_retry():
    return NO_RETRY


class FakeEmbedder:
    """Hashed bag-of-words vectors: texts sharing words are similar, others orthogonal."""

    def __init__(self, model_id: str = "fake-embedder"):
        self.model_id = model_id
        self.calls: List[List[str]] = []

    def vector(self, text: str) -> List[float]:
        vec = [0.0] * EMBED_DIM
        for word in re.findall(r"\w+", text.lower()):
            vec[zlib.crc32(word.encode("utf-8")) % EMBED_DIM] += 1.0
        return vec

    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [self.vector(t) for t in texts]


class FailingEmbedder(FakeEmbedder):
    async def embed(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        raise RuntimeError("embedding service down")


class FakeReranker:
    """Scores passages by how many query words they contain."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    async def score(self, query: str, passages: Sequence[str]) -> List[float]:
        self.calls += 1
        if self.fail:
            raise RuntimeError("reranker down")
        words = set(query.lower().split())
        return [float(sum(1 for w in words if w in p.lower())) for p in passages]


class FakeChat:
    """Chat model whose reply is produced by ``responder(messages)``."""

    def __init__(self, responder: Optional[Callable[[List[Dict[str, str]]], str]] = None):
        self.responder = responder or (lambda messages: "")
        self.calls: List[List[Dict[str, str]]] = []

    async def complete(self, messages, *, max_tokens: int = 1500, temperature: float = 0.3) -> str:
        self.calls.append(list(messages))
        return self.responder(list(messages))


def html_page(title: str, body: str) -> str:
    return f"<html><head><title>{title}</title></head><body>{body}</body></html>"


def mock_site(pages: Dict[str, str], redirects: Optional[Dict[str, str]] = None) -> httpx.AsyncClient:
    """
    AsyncClient answering from ``pages`` (url -> HTML or XML); unknown URLs 404.

    ``redirects`` maps a url to a Location header for a 302.
    """
    redirects = redirects or {}

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if url in redirects:
            return httpx.Response(302, headers={"Location": redirects[url]})
        if url not in pages:
            return httpx.Response(404, text="not found")
        content = pages[url]
        ctype = "application/xml" if url.endswith(".xml") else "text/html; charset=utf-8"
        return httpx.Response(200, text=content, headers={"Content-Type": ctype})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()
