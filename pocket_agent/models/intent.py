"""
Agent intents: the closed set of normalised request shapes a tool call is
mapped onto before execution.

Every subclass of ``AgentIntent`` must appear in the mapping table in
``pocket_agent.tools.intents``; importing that module fails otherwise.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MessageSource(str, Enum):
    WHATSAPP = "whatsapp"
    TEAMS = "teams"


class MediaSource(str, Enum):
    SPOTIFY = "spotify"
    YOUTUBE = "youtube"
    AUDIBLE = "audible"


@dataclass(frozen=True)
class AgentIntent:
    """Base class for intent variants."""


@dataclass(frozen=True)
class SendMessage(AgentIntent):
    recipient: str
    content: str
    source: MessageSource


@dataclass(frozen=True)
class PlayMedia(AgentIntent):
    query: str
    source: Optional[MediaSource] = None


@dataclass(frozen=True)
class QueueMedia(AgentIntent):
    query: str
    source: Optional[MediaSource] = None


@dataclass(frozen=True)
class SetReminder(AgentIntent):
    description: str
    time_description: str


@dataclass(frozen=True)
class Summarize(AgentIntent):
    context: str


@dataclass(frozen=True)
class GeneralQuery(AgentIntent):
    query: str
