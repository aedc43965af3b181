"""
Exception types shared across ingestion, retrieval and the API layer.
"""

from __future__ import annotations


class SitechatError(Exception):
    """Base class for sitechat errors."""


class InvalidURLError(SitechatError, ValueError):
    """URL is malformed, uses a non-HTTP(S) scheme, or points at a local host."""

    def __init__(self, reason: str):
        super().__init__(f"Invalid URL: {reason}")
        self.reason = reason


class NoContentError(SitechatError):
    """Crawl finished without extracting any usable page."""


class BotNotFoundError(SitechatError, LookupError):
    """No bot record exists for the given id."""

    def __init__(self, bot_id: str):
        super().__init__(f"Bot not found: {bot_id}")
        self.bot_id = bot_id


class CorruptRecordError(SitechatError):
    """A stored record exists but does not match its schema."""

    def __init__(self, key: str, detail: str = ""):
        msg = f"Corrupt record at {key!r}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
        self.key = key


class UpstreamError(SitechatError):
    """An external model, index or fetch call failed after all retries."""
