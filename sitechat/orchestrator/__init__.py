"""
Orchestrator: query analysis, conversation memory and the chat answer flow.
"""

from .agent import AgentResponse, RAGAgent
from .memory import ConversationMemory
from .query_analyzer import QueryAnalysis, QueryAnalyzer

__all__ = [
    "AgentResponse",
    "ConversationMemory",
    "QueryAnalysis",
    "QueryAnalyzer",
    "RAGAgent",
]
