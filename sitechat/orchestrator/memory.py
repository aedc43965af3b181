"""
Sliding-window conversation memory for one chat session.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from ..storage.records import ChatMessage

MAX_MESSAGES = 20


class ConversationMemory:
    """Ordered user/assistant messages; only the most recent ``max_messages`` are kept."""

    def __init__(
        self,
        messages: Optional[Iterable[ChatMessage]] = None,
        max_messages: int = MAX_MESSAGES,
    ):
        self.max_messages = max_messages
        self._messages: List[ChatMessage] = []
        for m in messages or ():
            self._append(m)

    def __len__(self) -> int:
        return len(self._messages)

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)
        if len(self._messages) > self.max_messages:
            self._messages = self._messages[-self.max_messages :]

    def add_exchange(self, user: str, assistant: str) -> None:
        self._append(ChatMessage(role="user", content=user))
        self._append(ChatMessage(role="assistant", content=assistant))

    def get_history(self, last_n: int = 6) -> List[ChatMessage]:
        """Return the last N messages for query analysis and prompting."""
        if not self._messages or last_n <= 0:
            return []
        return self._messages[-last_n:]
