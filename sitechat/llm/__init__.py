"""
LLM client module for OpenAI-compatible chat APIs.
"""

from .client import ChatClient, ChatModel, create_client

__all__ = ["ChatClient", "ChatModel", "create_client"]
