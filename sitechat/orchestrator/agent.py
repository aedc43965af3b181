"""
Chat agent: query analysis, retrieval, reranking and answer generation for one bot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..generation import AnswerGenerator, select_source_links
from ..generation.prompts import APOLOGY_MESSAGES, NO_INFO_MESSAGES, localized
from ..rag.config import RAGConfig
from ..rag.hybrid import HybridSearcher
from ..storage.records import BotRecord
from ..storage.stores import ChunkStore, ConversationStore
from .memory import ConversationMemory
from .query_analyzer import QueryAnalysis, QueryAnalyzer

logger = logging.getLogger(__name__)


@dataclass
class AgentResponse:
    """Response from the chat agent."""

    answer: str
    links: List[str] = field(default_factory=list)
    analysis: Optional[QueryAnalysis] = None


class RAGAgent:
    """Answers one chat turn against a bot's indexed site."""

    def __init__(
        self,
        searcher: HybridSearcher,
        generator: AnswerGenerator,
        conversations: ConversationStore,
        chunks: ChunkStore,
        query_analyzer: Optional[QueryAnalyzer] = None,
        rag_config: Optional[RAGConfig] = None,
    ):
        self.searcher = searcher
        self.generator = generator
        self.conversations = conversations
        self.chunks = chunks
        self.query_analyzer = query_analyzer or QueryAnalyzer()
        self.rag_config = rag_config or RAGConfig()

    async def answer(self, bot: BotRecord, message: str, session_id: str) -> AgentResponse:
        """Analyze, retrieve, generate, then persist the exchange in the session history."""
        memory = ConversationMemory(await self.conversations.get(bot.id, session_id))
        history = memory.get_history(self.generator.config.history_turns)
        analysis = await self.query_analyzer.analyze(message, history)
        logger.debug("Message analysis for %s: %s", bot.id, analysis)

        if analysis.is_greeting:
            samples = await self.chunks.get_many(
                bot.id, range(self.generator.config.greeting_sample_chunks)
            )
            greeting = await self.generator.greeting(bot, analysis.language, [c.text for c in samples])
            return await self._reply(bot, session_id, memory, message, greeting, [], analysis)

        query = analysis.search_query
        results = await self.searcher.search_with_fallback(query, bot.id)
        logger.debug("Search for %r returned %s results", query, len(results))
        links = select_source_links(
            results,
            threshold=self.rag_config.link_score_threshold,
            max_links=self.rag_config.max_links,
        )
        results = await self.searcher.rerank(query, results)

        if not results:
            no_info = localized(NO_INFO_MESSAGES, analysis.language)
            return await self._reply(bot, session_id, memory, message, no_info, [], analysis)

        try:
            text = await self.generator.generate(
                message, query, results, history, bot.url, analysis.language
            )
        except Exception as e:
            logger.error("Answer generation failed for %s: %s", bot.id, e)
            text = localized(APOLOGY_MESSAGES, analysis.language)
        return await self._reply(bot, session_id, memory, message, text, links, analysis)

    async def _reply(
        self,
        bot: BotRecord,
        session_id: str,
        memory: ConversationMemory,
        message: str,
        text: str,
        links: List[str],
        analysis: QueryAnalysis,
    ) -> AgentResponse:
        memory.add_exchange(message, text)
        await self.conversations.save(bot.id, session_id, memory.messages)
        return AgentResponse(answer=text, links=links, analysis=analysis)
