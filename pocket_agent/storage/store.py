"""
Conversation storage collaborator.

The agent only needs append and full-read; delete supports session
teardown. Persisting reminders and notes is the tool backends' concern.
"""

import logging
import threading
from typing import Protocol

from ..models.conversation import Turn

logger = logging.getLogger(__name__)


class ConversationStore(Protocol):
    def append(self, conversation_id: str, turn: Turn) -> None:
        ...

    def read(self, conversation_id: str) -> list[Turn]:
        ...

    def delete(self, conversation_id: str) -> None:
        ...


class InMemoryConversationStore:
    """Thread-safe in-process store."""

    def __init__(self):
        self._conversations: dict[str, list[Turn]] = {}
        self._lock = threading.Lock()

    def append(self, conversation_id: str, turn: Turn) -> None:
        with self._lock:
            self._conversations.setdefault(conversation_id, []).append(turn)

    def read(self, conversation_id: str) -> list[Turn]:
        with self._lock:
            return list(self._conversations.get(conversation_id, []))

    def delete(self, conversation_id: str) -> None:
        with self._lock:
            self._conversations.pop(conversation_id, None)

    def conversation_ids(self) -> list[str]:
        with self._lock:
            return list(self._conversations)
