"""
Query analyzer: language, greeting detection and standalone search-query rewriting.

The LLM is asked first; when it fails or returns no JSON, regex heuristics
take over.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence

from ..generation.config import GenerationConfig
from ..generation.context_builder import format_history
from ..generation.prompts import EXPANSION_PROMPT
from ..llm.client import ChatModel
from ..storage.records import ChatMessage

logger = logging.getLogger(__name__)


@dataclass
class QueryAnalysis:
    """Result of query analysis for the chat agent."""

    language: str
    is_greeting: bool
    search_query: str
    original_query: str


_JSON_OBJECT = re.compile(r"\{.*?\}", re.S)
_SPANISH_CHARS = re.compile(r"[ñáéíóúü]")
_SPANISH_WORDS = re.compile(
    r"\b(hola|que|como|donde|cuando|por|para|con|sin|sobre|entre|hasta|desde|hacia|según|"
    r"durante|mediante|tras|ante|bajo|contra|quiero|necesito|tengo|estoy|soy|hay|está|son|"
    r"tienen|puede|debe|hacer|decir|ver|dar|saber|estar|tener|información|disponible|servicio|"
    r"gracias|bueno|muy|todo|empresa|producto|precio|contacto|apartamento|personas|alquiler)\b"
)
_GREETING = re.compile(
    r"^(hola|hello|hi|hey|buenos días|good morning|buenas tardes|good afternoon|buenas noches|"
    r"good evening|saludos|greetings|qué tal|how are you)[\s\W]*$",
    re.I,
)
_ANAPHORA = re.compile(r"\b(it|that|this|they|those|others|more|another|same|similar)\b", re.I)

CONTEXT_WORDS = 10


def detect_language(message: str) -> str:
    if _SPANISH_CHARS.search(message) or _SPANISH_WORDS.search(message.lower()):
        return "es"
    return "en"


def is_greeting_message(message: str) -> bool:
    return _GREETING.match(message.strip()) is not None


def parse_analysis(
    reply: str,
    message: str,
    history: Sequence[ChatMessage],
) -> Optional[QueryAnalysis]:
    """Read the first JSON object in an LLM reply; None when there is none."""
    m = _JSON_OBJECT.search(reply or "")
    if not m:
        return None
    data = json.loads(m.group(0))
    if not isinstance(data, dict):
        return None
    language = "es" if str(data.get("language", "en")).lower() == "es" else "en"
    search_query = data.get("expandedQuery") or data.get("originalQuery") or message
    return QueryAnalysis(
        language=language,
        is_greeting=bool(data.get("isGreeting")) and not history,
        search_query=str(search_query),
        original_query=message,
    )


class QueryAnalyzer:
    """Analyzes a chat message in the context of its recent history."""

    def __init__(
        self,
        client: Optional[ChatModel] = None,
        config: Optional[GenerationConfig] = None,
    ):
        self.client = client
        self.config = config or GenerationConfig()

    async def analyze(self, message: str, history: Sequence[ChatMessage] = ()) -> QueryAnalysis:
        history = list(history)[-self.config.history_turns :] if history else []
        if self.client is not None:
            prompt = EXPANSION_PROMPT.format(
                history=format_history(history, self.config.history_turns)
                or "No previous conversation",
                message=message,
            )
            try:
                reply = await self.client.complete(
                    [{"role": "user", "content": prompt}],
                    max_tokens=self.config.analysis_max_tokens,
                    temperature=self.config.analysis_temperature,
                )
                analysis = parse_analysis(reply, message, history)
                if analysis is not None:
                    return analysis
                logger.info("Query expansion reply had no JSON; using heuristics")
            except Exception as e:
                logger.warning("Query expansion error: %s", e)
        return self.heuristic(message, history)

    def heuristic(self, message: str, history: Sequence[ChatMessage] = ()) -> QueryAnalysis:
        """
        Regex fallback.

        A follow-up that leans on an earlier answer ("tell me more about
        that") gets the first words of the latest assistant message appended.
        """
        search_query = message
        if history and _ANAPHORA.search(message):
            last_assistant = next(
                (m for m in list(history)[-2:] if m.role == "assistant"),
                None,
            )
            if last_assistant is not None:
                context = " ".join(last_assistant.content.split(" ")[:CONTEXT_WORDS])
                search_query = f"{message} {context}"
        return QueryAnalysis(
            language=detect_language(message),
            is_greeting=is_greeting_message(message) and not history,
            search_query=search_query,
            original_query=message,
        )
