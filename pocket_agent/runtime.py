"""
Agent runtime.

Owns the collaborators shared by every conversation (tool registry,
dispatcher, privacy router, prompt formatter, inference engine, store)
and the table of live sessions. Built explicitly by ``build_runtime`` and
passed to the API and CLI; there is no module-level runtime.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from .inference import InferenceEngine, OpenAICompletionEngine
from .models import AppConfig, Conversation, ModelProfile, Turn
from .orchestration import ConversationLoop, ConversationSession, LoopOutcome
from .privacy import PrivacyClassifier, PrivacyPreferences, PrivacyRouter
from .prompts import PromptFormatter, SystemPromptBuilder, get_template
from .storage import ConversationStore, InMemoryConversationStore
from .tools import (
    InMemoryMediaPlayer,
    InMemoryMessenger,
    InMemoryNoteStore,
    InMemoryReminderStore,
    IntentMapper,
    ToolDispatcher,
    ToolRegistry,
    register_media_tools,
    register_messaging_tools,
    register_note_tools,
    register_query_tool,
    register_reminder_tools,
    register_system_tools,
)

logger = logging.getLogger(__name__)


@dataclass
class Backends:
    """Backend collaborators behind the built-in tools."""

    media: InMemoryMediaPlayer = field(default_factory=InMemoryMediaPlayer)
    messenger: InMemoryMessenger = field(default_factory=InMemoryMessenger)
    reminders: InMemoryReminderStore = field(default_factory=InMemoryReminderStore)
    notes: InMemoryNoteStore = field(default_factory=InMemoryNoteStore)


class AgentRuntime:
    """Shared collaborators plus the live session table."""

    def __init__(
        self,
        config: AppConfig,
        engine: InferenceEngine,
        registry: ToolRegistry,
        dispatcher: ToolDispatcher,
        router: PrivacyRouter,
        profile: ModelProfile,
        backends: Backends,
        store: ConversationStore,
        prompt_builder: SystemPromptBuilder,
        formatter: Optional[PromptFormatter] = None,
    ):
        self.config = config
        self.engine = engine
        self.registry = registry
        self.dispatcher = dispatcher
        self.router = router
        self.profile = profile
        self.backends = backends
        self.store = store
        self.prompt_builder = prompt_builder
        self.formatter = formatter or PromptFormatter()
        self.loop = ConversationLoop(
            engine=engine,
            registry=registry,
            dispatcher=dispatcher,
            router=router,
            profile=profile,
            formatter=self.formatter,
            max_iterations=config.agent.max_iterations,
            concurrent_dispatch=config.agent.concurrent_dispatch,
        )
        self._sessions: dict[str, ConversationSession] = {}

    def create_session(self, user_id: Optional[str] = None) -> ConversationSession:
        session = ConversationSession(
            self.loop,
            conversation=Conversation(),
            store=self.store,
            system_prompt=self.prompt_builder.build(),
            user_id=user_id,
        )
        self._sessions[session.conversation_id] = session
        logger.info("Created conversation %s", session.conversation_id)
        return session

    def get_session(self, conversation_id: str) -> ConversationSession:
        """
        Get a live session, resuming it from the store if needed.

        Raises:
            KeyError: Unknown conversation.
        """
        session = self._sessions.get(conversation_id)
        if session is None:
            session = ConversationSession.resume(self.loop, conversation_id, self.store)
            self._sessions[conversation_id] = session
        return session

    async def submit(self, conversation_id: str, text: str) -> LoopOutcome:
        return await self.get_session(conversation_id).submit(text)

    def cancel(self, conversation_id: str) -> bool:
        return self.get_session(conversation_id).cancel()

    def delete_session(self, conversation_id: str) -> bool:
        session = self._sessions.pop(conversation_id, None)
        persisted = bool(self.store.read(conversation_id))
        if session is not None:
            session.cancel()
        self.store.delete(conversation_id)
        return session is not None or persisted

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    async def answer_general_query(self, query: str) -> str:
        """Tool-less completion used by the general_query tool."""
        conversation = Conversation()
        conversation.append(Turn.system("Answer the question accurately and concisely."))
        conversation.append(Turn.user(query))
        rendered = self.formatter.render(conversation, [], self.profile)
        return await self.engine.generate(rendered.text)

    async def close(self) -> None:
        for session in self._sessions.values():
            session.cancel()
        close = getattr(self.engine, "close", None)
        if close is not None:
            await close()


def build_runtime(
    config: Optional[AppConfig] = None,
    engine: Optional[InferenceEngine] = None,
    backends: Optional[Backends] = None,
    store: Optional[ConversationStore] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> AgentRuntime:
    """
    Wire a runtime from configuration.

    Args:
        config: Application configuration (defaults if None).
        engine: Inference engine; defaults to an OpenAI-compatible
            completion engine using the model family's stop sequences.
        backends: Tool backends; in-memory if None.
        store: Conversation store; in-memory if None.
        clock: Time source for the system prompt and get_time.
    """
    config = config or AppConfig()
    profile = config.model.to_profile()
    backends = backends or Backends()
    store = store or InMemoryConversationStore()
    if engine is None:
        engine = OpenAICompletionEngine(
            config.inference, stop=get_template(profile.prompt_format).stop
        )

    registry = ToolRegistry()
    classifier = PrivacyClassifier()
    dispatcher = ToolDispatcher(
        registry,
        intent_mapper=IntentMapper(config.agent.route_unmapped_as_general_query),
        classifier=classifier,
        tool_timeout=config.agent.tool_timeout,
    )
    router = PrivacyRouter(
        registry,
        preferences=PrivacyPreferences.from_config(config.privacy),
        classifier=classifier,
        classify_requests=config.privacy.classify_requests,
    )
    prompt_builder = SystemPromptBuilder(
        assistant_name=config.agent.assistant_name,
        clock=clock,
        memory=backends.notes.memory_block,
    )
    runtime = AgentRuntime(
        config=config,
        engine=engine,
        registry=registry,
        dispatcher=dispatcher,
        router=router,
        profile=profile,
        backends=backends,
        store=store,
        prompt_builder=prompt_builder,
    )

    register_media_tools(registry, backends.media)
    register_messaging_tools(registry, backends.messenger)
    register_reminder_tools(registry, backends.reminders)
    register_note_tools(registry, backends.notes)
    register_query_tool(
        registry, runtime.answer_general_query, min_privacy_tier=config.privacy.query_tool_tier
    )
    register_system_tools(registry, clock=clock)

    logger.info(
        "Runtime ready: %s (%s, %d tokens), %d tools",
        profile.family.display_name,
        profile.prompt_format.value,
        profile.context_length,
        len(registry),
    )
    return runtime
