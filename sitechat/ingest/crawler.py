"""
Breadth-first site crawler with sitemap seeding and same-origin enforcement.
"""

from __future__ import annotations

import dataclasses
import logging
import re
import xml.etree.ElementTree as ET
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Sequence, Set, Tuple
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup

from ..errors import InvalidURLError
from ..retry import RetryPolicy
from .categorizer import GENERAL, infer_category
from .chunking import PageChunk, PageChunker, PageContent

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; SitechatBot/1.0)"
SITEMAP_LIMIT = 30
MAX_LINKS_PER_PAGE = 8
MIN_PAGE_TEXT = 100

_IPV4_RE = re.compile(r"^(\d+\.){3}\d+$")
_EXCLUDED_PATH_RE = re.compile(
    r"/(contact|about|privacy|terms|sitemap|robots|admin|login|wp-admin|wp-login|register|sign)"
)
_EXCLUDED_EXTENSIONS = (".pdf", ".jpg", ".png", ".gif", ".svg")
_PRIORITY_PATH_RE = re.compile(r"(product|service|about|feature|solution|offer|blog|news|article)")
_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.I)

_BREADCRUMB_SELECTOR = '.breadcrumb, .breadcrumbs, nav[aria-label="breadcrumb"], .nav-breadcrumb'
_REMOVED_SELECTOR = (
    'script, style, noscript, nav, footer, header[class*="nav"], .menu, .navigation'
)
_TEXT_SELECTOR = (
    'p, li, td, th, div[class*="content"], div[class*="text"], article, section, main, '
    ".description, .summary"
)


def validate_url(url: str) -> str:
    """
    Accept only public HTTP(S) URLs.

    Rejects other schemes, localhost, ``*.local`` hosts, raw IPv4 addresses
    and bracketed IPv6 literals. Returns the URL unchanged when valid.
    """
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidURLError(str(e)) from e
    if parts.scheme not in ("http", "https"):
        raise InvalidURLError("Only HTTP/HTTPS protocols allowed")
    hostname = (parts.hostname or "").lower()
    if not hostname:
        raise InvalidURLError("Missing hostname")
    if (
        hostname == "localhost"
        or hostname.endswith(".local")
        or _IPV4_RE.match(hostname)
        or parts.netloc.split("@")[-1].startswith("[")
    ):
        raise InvalidURLError("Local/private addresses not allowed")
    return url


def origin_of(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}"


def _seed_rank(url: str) -> int:
    return len(url.split("/")) + (-1 if "index" in url else 0)


def _link_rank(url: str) -> int:
    return 1 if _PRIORITY_PATH_RE.search(urlsplit(url).path.lower()) else 2


@dataclass
class ExtractedPage:
    """Everything pulled out of one fetched page."""

    text: str = ""
    links: List[str] = field(default_factory=list)
    title: str = ""
    headings: List[str] = field(default_factory=list)
    breadcrumbs: List[str] = field(default_factory=list)
    raw_html: str = ""
    chunks: List[PageChunk] = field(default_factory=list)
    category: str = GENERAL


@dataclass
class CrawledPage:
    """A page kept by the crawl."""

    url: str
    text: str
    title: str
    headings: List[str]
    category: str
    chunks: List[PageChunk]


def _is_transport_error(exc: BaseException) -> bool:
    return isinstance(exc, httpx.TransportError)


class Crawler:
    """Fetches, extracts and chunks pages of one site."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        retry: Optional[RetryPolicy] = None,
        chunker: Optional[PageChunker] = None,
        max_links_per_page: int = MAX_LINKS_PER_PAGE,
    ):
        self.client = client
        self.retry = dataclasses.replace(retry or RetryPolicy(), retryable=_is_transport_error)
        self.chunker = chunker or PageChunker()
        self.max_links_per_page = max_links_per_page

    async def _get(self, url: str) -> httpx.Response:
        return await self.retry.run(
            self.client.get,
            url,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            description=f"GET {url}",
        )

    async def fetch_sitemap(self, url: str) -> Optional[List[str]]:
        """Same-site <loc> entries from /sitemap.xml, or None if unavailable."""
        try:
            validate_url(url)
            res = await self._get(urljoin(url, "/sitemap.xml"))
            if res.status_code != 200:
                return None
            root = ET.fromstring(res.text)
        except Exception as e:
            logger.debug("No usable sitemap for %s: %s", url, e)
            return None
        base = url.rstrip("/")
        locs = [
            (el.text or "").strip()
            for el in root.iter()
            if el.tag.rsplit("}", 1)[-1] == "loc"
        ]
        return [u for u in locs if u.startswith(base)][:SITEMAP_LIMIT]

    async def fetch_site_title(self, url: str) -> str:
        """<title> of the landing page, falling back to the hostname."""
        hostname = urlsplit(url).hostname
        try:
            res = await self._get(url)
            if res.url.host != hostname:
                raise ValueError(f"Redirected to external domain: {res.url.host}")
            m = _TITLE_RE.search(res.text)
            if m and m.group(1).strip():
                return m.group(1).strip()
        except Exception as e:
            logger.debug("Title fetch failed for %s: %s", url, e)
        return hostname or url

    async def fetch_and_parse(self, page_url: str, origin: str) -> ExtractedPage:
        """
        Fetch one page and extract text, links and chunks.

        Any failure (invalid URL, network error, non-2xx status, redirect off
        the origin host) yields an empty ExtractedPage.
        """
        try:
            validate_url(page_url)
            res = await self._get(page_url)
            res.raise_for_status()
            final_host = res.url.host
            origin_host = urlsplit(origin).hostname
            if final_host != origin_host:
                raise ValueError(f"Redirected to external domain: {final_host}")
            if "text/html" not in res.headers.get("content-type", ""):
                return ExtractedPage()
            return self._extract(res.text, page_url, origin)
        except Exception as e:
            logger.info("Error fetching %s: %s", page_url, e)
            return ExtractedPage()

    def _extract(self, html_content: str, page_url: str, origin: str) -> ExtractedPage:
        soup = BeautifulSoup(html_content, "html.parser")

        title = soup.title.get_text().strip() if soup.title else ""
        headings = [
            h.get_text(" ", strip=True)
            for h in soup.find_all(["h1", "h2", "h3", "h4", "h5", "h6"])
        ]
        headings = [h for h in headings if len(h) > 3]
        breadcrumbs = [
            b.get_text(" ", strip=True) for b in soup.select(_BREADCRUMB_SELECTOR)
        ]
        breadcrumbs = [b for b in breadcrumbs if len(b) > 3]
        links = self._extract_links(soup, page_url, origin)

        for el in soup.select(_REMOVED_SELECTOR):
            el.decompose()
        matched = soup.select(_TEXT_SELECTOR)
        matched_ids = {id(el) for el in matched}
        pieces = []
        for el in matched:
            if any(id(parent) in matched_ids for parent in el.parents):
                continue
            piece = el.get_text(" ", strip=True)
            if len(piece) > 5:
                pieces.append(piece)
        text = re.sub(r"\s+", " ", " ".join(pieces)).strip()

        content = PageContent(
            url=page_url,
            title=title,
            headings=headings,
            raw_html=html_content,
            text=f"{title} {' '.join(headings)} {text}",
        )
        return ExtractedPage(
            text=text,
            links=links,
            title=title,
            headings=headings,
            breadcrumbs=breadcrumbs,
            raw_html=html_content,
            chunks=self.chunker.chunk(content),
            category=infer_category(page_url, title, headings, breadcrumbs),
        )

    def _extract_links(self, soup: BeautifulSoup, page_url: str, origin: str) -> List[str]:
        origin_host = urlsplit(origin).hostname
        links: List[str] = []
        seen: Set[str] = set()
        for a in soup.find_all("a", href=True):
            href = a["href"]
            if not href or "/cdn-cgi/l/email-protection" in href or href.startswith("#"):
                continue
            try:
                absolute = urljoin(page_url, href)
                parts = urlsplit(absolute)
            except ValueError:
                continue
            if origin_of(absolute) != origin or parts.hostname != origin_host:
                continue
            path = parts.path.lower()
            if _EXCLUDED_PATH_RE.search(path) or path.endswith(_EXCLUDED_EXTENSIONS):
                continue
            clean = absolute.split("#")[0]
            if clean != page_url and clean not in seen:
                seen.add(clean)
                links.append(clean)
        return links

    async def crawl(
        self,
        seeds: Sequence[str],
        max_pages: int,
        max_depth: int = 2,
    ) -> List[CrawledPage]:
        """
        Breadth-first crawl from ``seeds``.

        Seeds are ordered shallow-first; discovered links are ordered
        content-first and capped per page. Stops at ``max_pages`` kept pages
        or when the queue runs dry.
        """
        if not seeds:
            return []
        origin = origin_of(seeds[0])
        visited: Set[str] = set()
        queue: Deque[Tuple[str, int]] = deque(
            (u, 1) for u in sorted(seeds, key=_seed_rank)
        )
        pages: List[CrawledPage] = []

        while queue and len(pages) < max_pages:
            url, depth = queue.popleft()
            if url in visited or depth > max_depth:
                continue
            visited.add(url)

            page = await self.fetch_and_parse(url, origin)
            if len(page.text) > MIN_PAGE_TEXT:
                pages.append(
                    CrawledPage(
                        url=url,
                        text=f"{page.title} {' '.join(page.headings)} {page.text}",
                        title=page.title or urlsplit(url).path.rstrip("/").split("/")[-1] or "Page",
                        headings=page.headings,
                        category=page.category,
                        chunks=page.chunks,
                    )
                )
                logger.debug("Crawled %s (%d chunks)", url, len(page.chunks))

            if depth < max_depth:
                fresh = [href for href in page.links if href not in visited]
                fresh.sort(key=_link_rank)
                for href in fresh[: self.max_links_per_page]:
                    queue.append((href, depth + 1))

        return pages
