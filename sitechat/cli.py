"""
Command line entry point.

    sitechat serve --port 8000
    sitechat crawl https://example.com --max-pages 5
"""

from __future__ import annotations

import argparse
import asyncio
from typing import List

import httpx
import uvicorn

from .config import Settings, configure_logging
from .ingest import Crawler, PageChunker, validate_url
from .retry import RetryPolicy


async def crawl_preview(url: str, max_pages: int, max_depth: int, settings: Settings) -> None:
    """Crawl without indexing and print what would be ingested."""
    validate_url(url)
    async with httpx.AsyncClient(timeout=20.0) as client:
        crawler = Crawler(
            client,
            retry=RetryPolicy(max_attempts=settings.retry_attempts, base_delay=settings.retry_base_delay),
            chunker=PageChunker.from_sizes(
                settings.semantic_chunk_min_size, settings.semantic_chunk_max_size
            ),
        )
        seeds = await crawler.fetch_sitemap(url) or [url]
        print(f"Seeds: {len(seeds)}")
        pages = await crawler.crawl(seeds, max_pages, max_depth)

    total = 0
    for page in pages:
        total += len(page.chunks)
        print(f"[{page.category}] {page.url}  title={page.title!r}  chunks={len(page.chunks)}")
    print(f"\n{len(pages)} pages, {total} chunks")


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Site-specific RAG chatbots.")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes")

    crawl = sub.add_parser("crawl", help="Crawl a site and print pages/chunks without indexing")
    crawl.add_argument("url")
    crawl.add_argument("--max-pages", type=int, default=None)
    crawl.add_argument("--max-depth", type=int, default=None)

    args = parser.parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings)

    if args.command == "serve":
        uvicorn.run("sitechat.api.main:app", host=args.host, port=args.port, reload=args.reload)
        return

    asyncio.run(
        crawl_preview(
            args.url,
            args.max_pages or settings.default_max_pages,
            args.max_depth or settings.default_max_depth,
            settings,
        )
    )


if __name__ == "__main__":
    main()
