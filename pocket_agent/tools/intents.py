"""
Tool call to AgentIntent mapping.

Each intent variant is produced by exactly one tool name. The table is
checked against the ``AgentIntent`` subclasses at import time, so adding
an intent without a mapping fails as soon as the package loads.
"""

import json
import logging
from typing import Callable

from ..errors import InvalidArguments, UnknownTool
from ..models.intent import (
    AgentIntent,
    GeneralQuery,
    MediaSource,
    MessageSource,
    PlayMedia,
    QueueMedia,
    SendMessage,
    SetReminder,
    Summarize,
)
from ..models.tool import ToolCall

logger = logging.getLogger(__name__)

IntentBuilder = Callable[[dict], AgentIntent]


def _media_source(args: dict, name: str):
    value = args.get("source")
    if value is None:
        return None
    try:
        return MediaSource(value)
    except ValueError:
        raise InvalidArguments(name, ["source"]) from None


def _send_message(args: dict) -> AgentIntent:
    platform = args.get("platform") or MessageSource.WHATSAPP.value
    try:
        source = MessageSource(platform)
    except ValueError:
        raise InvalidArguments("send_message", ["platform"]) from None
    return SendMessage(recipient=args["recipient"], content=args["content"], source=source)


def _play_media(args: dict) -> AgentIntent:
    return PlayMedia(query=args["query"], source=_media_source(args, "play_media"))


def _queue_media(args: dict) -> AgentIntent:
    return QueueMedia(query=args["query"], source=_media_source(args, "queue_media"))


def _set_reminder(args: dict) -> AgentIntent:
    return SetReminder(description=args["description"], time_description=args["time"])


def _summarize(args: dict) -> AgentIntent:
    return Summarize(context=args.get("conversation") or "all")


def _general_query(args: dict) -> AgentIntent:
    return GeneralQuery(query=args["query"])


# tool name -> (intent variant, builder)
INTENT_TABLE: dict[str, tuple[type[AgentIntent], IntentBuilder]] = {
    "send_message": (SendMessage, _send_message),
    "play_media": (PlayMedia, _play_media),
    "queue_media": (QueueMedia, _queue_media),
    "set_reminder": (SetReminder, _set_reminder),
    "summarize_messages": (Summarize, _summarize),
    "general_query": (GeneralQuery, _general_query),
}


def _check_exhaustive() -> None:
    mapped = [variant for variant, _ in INTENT_TABLE.values()]
    missing = set(AgentIntent.__subclasses__()) - set(mapped)
    if missing:
        names = ", ".join(sorted(cls.__name__ for cls in missing))
        raise RuntimeError(f"AgentIntent variants without a tool mapping: {names}")
    if len(mapped) != len(set(mapped)):
        raise RuntimeError("AgentIntent mapping is not injective")


_check_exhaustive()


def tool_name_for(intent_type: type[AgentIntent]) -> str:
    """Inverse lookup: the tool name that produces ``intent_type``."""
    for name, (variant, _) in INTENT_TABLE.items():
        if variant is intent_type:
            return name
    raise KeyError(intent_type.__name__)


class IntentMapper:
    """
    Maps validated tool calls onto intents.

    Args:
        route_unmapped_as_general_query: When set, a tool with no intent
            mapping is treated as a ``GeneralQuery``; otherwise mapping it
            raises ``UnknownTool``.
    """

    def __init__(self, route_unmapped_as_general_query: bool = False):
        self.route_unmapped_as_general_query = route_unmapped_as_general_query

    def is_mapped(self, name: str) -> bool:
        return name in INTENT_TABLE

    def routes(self, name: str) -> bool:
        """Whether a call to ``name`` can become an intent at all."""
        return self.route_unmapped_as_general_query or self.is_mapped(name)

    def to_intent(self, call: ToolCall) -> AgentIntent:
        entry = INTENT_TABLE.get(call.name)
        if entry is not None:
            _, builder = entry
            try:
                return builder(call.arguments)
            except KeyError as e:
                raise InvalidArguments(call.name, [str(e.args[0])]) from None

        if not self.route_unmapped_as_general_query:
            raise UnknownTool(call.name, f"Tool '{call.name}' has no intent mapping")

        query = call.arguments.get("query")
        if not isinstance(query, str) or not query:
            query = call.name
            if call.arguments:
                query += " " + json.dumps(call.arguments, sort_keys=True, ensure_ascii=False)
        logger.debug("Routing unmapped tool '%s' as GeneralQuery", call.name)
        return GeneralQuery(query=query)
