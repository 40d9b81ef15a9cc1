"""
Conversation session.

A session owns one conversation and serialises the messages submitted to
it: concurrent submits queue on a lock rather than interleave. The
in-flight run can be cancelled; newly appended turns are persisted to the
storage collaborator after every submit, whatever the outcome.
"""

import asyncio
import logging
from typing import Optional

from ..errors import Cancelled
from ..models.conversation import Conversation, Role, Turn
from ..storage.store import ConversationStore
from ..tracing import TracingContext
from . import protocol
from .loop import ConversationLoop, LoopOutcome, LoopState

logger = logging.getLogger(__name__)


class ConversationSession:
    """Single-flight driver for one conversation."""

    def __init__(
        self,
        loop: ConversationLoop,
        conversation: Optional[Conversation] = None,
        store: Optional[ConversationStore] = None,
        system_prompt: Optional[str] = None,
        user_id: Optional[str] = None,
    ):
        self.loop = loop
        self.store = store
        self.user_id = user_id
        self.conversation = conversation or Conversation()
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._persisted = len(self.conversation)
        if system_prompt and self.conversation.system_turn is None:
            self.conversation.append(Turn.system(system_prompt))
        self.last_outcome: Optional[LoopOutcome] = None

    @classmethod
    def resume(
        cls,
        loop: ConversationLoop,
        conversation_id: str,
        store: ConversationStore,
        user_id: Optional[str] = None,
    ) -> "ConversationSession":
        """Rebuild a session from persisted turns."""
        turns = store.read(conversation_id)
        if not turns:
            raise KeyError(conversation_id)
        # Every parsed call consumed an id, whether or not its response landed.
        issued = sum(
            protocol.count_tool_calls(turn.content)
            for turn in turns
            if turn.role is Role.ASSISTANT
        )
        conversation = Conversation.from_turns(conversation_id, turns, issued_calls=issued)
        logger.info("Resumed conversation %s (%d turns)", conversation_id, len(turns))
        return cls(loop, conversation=conversation, store=store, user_id=user_id)

    @property
    def conversation_id(self) -> str:
        return self.conversation.conversation_id

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def submit(self, user_text: str) -> LoopOutcome:
        """Submit one user message and await its outcome."""
        async with self._lock:
            tracing = TracingContext(
                conversation_id=self.conversation_id, user_id=self.user_id
            )
            task = asyncio.create_task(
                self.loop.run(self.conversation, user_text, tracing)
            )
            self._task = task
            try:
                outcome = await task
            except asyncio.CancelledError:
                # Cancelled before the loop started running; a loop that
                # started reports cancellation as its own outcome.
                if not task.cancelled() or asyncio.current_task().cancelling():
                    raise
                outcome = LoopOutcome(
                    state=LoopState.FAILED,
                    failure_reason=Cancelled.kind,
                    error="Request cancelled",
                    transitions=[LoopState.FAILED],
                )
            finally:
                self._task = None
                self._persist()
            self.last_outcome = outcome
            return outcome

    def cancel(self) -> bool:
        """Cancel the in-flight run. Returns False if nothing is running."""
        task = self._task
        if task is None or task.done():
            return False
        logger.info("Cancelling in-flight request for %s", self.conversation_id)
        return task.cancel()

    def _persist(self) -> None:
        if self.store is None:
            self._persisted = len(self.conversation)
            return
        new_turns = self.conversation.turns[self._persisted:]
        for turn in new_turns:
            self.store.append(self.conversation_id, turn)
        self._persisted = len(self.conversation)
        logger.debug("Persisted %d turn(s) for %s", len(new_turns), self.conversation_id)
