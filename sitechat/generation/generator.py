"""
Answer and greeting generation on top of the chat model.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Sequence

from ..errors import UpstreamError
from ..llm.client import ChatModel
from ..rag.retriever import RetrievalResult
from ..storage.records import BotRecord, ChatMessage
from .config import GenerationConfig
from .context_builder import build_context, format_history
from .prompts import (
    APOLOGY_MESSAGES,
    DEFAULT_SITE_NAMES,
    GENERIC_GREETINGS,
    GREETING_PROMPT,
    LANGUAGE_NAMES,
    NO_HISTORY,
    SITE_GREETINGS,
    SYSTEM_PROMPT,
    localized,
)

logger = logging.getLogger(__name__)

_THINK_RE = re.compile(r"<think>.*?</think>", re.I | re.S)
_TAG_RE = re.compile(r"<[^>]+>")

MIN_GREETING_LENGTH = 20


def sanitize_response(text: str) -> str:
    """Drop ``<think>`` blocks and any HTML tags from model output."""
    return _TAG_RE.sub("", _THINK_RE.sub("", text)).strip()


class AnswerGenerator:
    """Generate answers and greetings from retrieved site content using the LLM."""

    def __init__(self, client: Optional[ChatModel], config: Optional[GenerationConfig] = None):
        self.client = client
        self.config = config or GenerationConfig()

    def build_system_prompt(
        self,
        question: str,
        search_query: str,
        results: Sequence[RetrievalResult],
        history: Sequence[ChatMessage],
        site_url: str,
    ) -> str:
        return SYSTEM_PROMPT.format(
            site_url=site_url,
            history=format_history(history, self.config.history_turns) or NO_HISTORY,
            context=build_context(results, self.config.max_context_chunks),
            question=question,
            search_query=search_query,
        )

    async def generate(
        self,
        question: str,
        search_query: str,
        results: Sequence[RetrievalResult],
        history: Sequence[ChatMessage],
        site_url: str,
        language: str = "en",
    ) -> str:
        """
        Answer ``question`` from ``results``.

        An empty model reply becomes the apology in ``language``; model
        failures propagate.
        """
        if self.client is None:
            raise UpstreamError("No language model configured")
        system = self.build_system_prompt(question, search_query, results, history, site_url)
        reply = await self.client.complete(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": question},
            ],
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        answer = sanitize_response(reply or "")
        return answer or localized(APOLOGY_MESSAGES, language)

    async def greeting(self, bot: BotRecord, language: str, samples: Sequence[str]) -> str:
        """
        Greeting that names a few topics found in ``samples``.

        No samples gives the generic greeting; a failed or too-short
        generation gives the site greeting.
        """
        if not samples:
            return localized(GENERIC_GREETINGS, language)

        site_name = bot.title or bot.url
        if self.client is not None:
            prompt = GREETING_PROMPT.format(
                site_name=site_name,
                content=" ".join(samples)[: self.config.greeting_sample_chars],
                language_name=localized(LANGUAGE_NAMES, language),
            )
            try:
                reply = await self.client.complete(
                    [{"role": "user", "content": prompt}],
                    max_tokens=self.config.greeting_max_tokens,
                    temperature=self.config.greeting_temperature,
                )
                greeting = sanitize_response(reply or "")
                if len(greeting) > MIN_GREETING_LENGTH:
                    return greeting
            except Exception as e:
                logger.warning("Greeting generation failed: %s", e)

        name = bot.title or localized(DEFAULT_SITE_NAMES, language)
        return localized(SITE_GREETINGS, language).format(site_name=name)
