"""
Async chat client for OpenAI-compatible APIs (OpenAI, Z.AI/GLM, DeepSeek, vLLM, etc.).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from dotenv import load_dotenv
from openai import AsyncOpenAI

from ..retry import RetryPolicy

# Load .env file if it exists
project_root = Path(__file__).resolve().parents[2]
env_file = project_root / ".env"
if env_file.exists():
    load_dotenv(env_file)

LLM_BASE_URL = os.getenv("LLM_BASE_URL")
LLM_API_KEY = os.getenv("LLM_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")

logger = logging.getLogger(__name__)

Message = Dict[str, str]


class ChatModel(Protocol):
    """Anything that completes a chat transcript into one reply."""

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        max_tokens: int = 1500,
        temperature: float = 0.3,
    ) -> str:
        ...


class ChatClient:
    """OpenAI-compatible chat client with bounded retries."""

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        retry: Optional[RetryPolicy] = None,
    ):
        self.model_name = model_name or LLM_MODEL
        key = api_key or LLM_API_KEY
        if not key:
            raise ValueError("API key required. Set LLM_API_KEY.")
        self.base_url = base_url or LLM_BASE_URL
        self.client = AsyncOpenAI(base_url=self.base_url, api_key=key)
        self.retry = retry or RetryPolicy()

    async def _create(self, messages: List[Message], max_tokens: int, temperature: float) -> str:
        create_kw: dict = {
            "model": self.model_name,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        # Z.AI: disable thinking so the model returns directly in content
        if self.base_url and "z.ai" in self.base_url.lower():
            create_kw["extra_body"] = {"thinking": {"type": "disabled"}}

        response = await self.client.chat.completions.create(**create_kw)
        if not response.choices:
            logger.warning("Empty response from API")
            return ""
        msg = response.choices[0].message
        text = msg.content or ""
        if not text.strip() and getattr(msg, "reasoning_content", None):
            text = msg.reasoning_content or ""
        if not text.strip():
            logger.warning(
                "Empty content in response (finish_reason=%s)",
                getattr(response.choices[0], "finish_reason", "?"),
            )
        return text.strip()

    async def complete(
        self,
        messages: Sequence[Message],
        *,
        max_tokens: int = 1500,
        temperature: float = 0.3,
    ) -> str:
        """Run one chat completion and return the reply text."""
        return await self.retry.run(
            self._create,
            list(messages),
            max_tokens,
            temperature,
            description="chat completion",
        )


def create_client(
    model_name: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    retry: Optional[RetryPolicy] = None,
) -> ChatClient:
    """Create an OpenAI-compatible client from arguments or LLM_* env vars."""
    return ChatClient(model_name=model_name, api_key=api_key, base_url=base_url, retry=retry)
