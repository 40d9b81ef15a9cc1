"""
Pocket Agent Tools Package

Built-in tools:
- media: play_media, queue_media, pause_media, skip_track, previous_track, now_playing
- messaging: send_message, summarize_messages
- reminders: set_reminder, list_reminders, complete_reminder
- notes: save_note, search_notes
- query: general_query
- system: get_time
"""

from .backends import (
    InMemoryMediaPlayer,
    InMemoryMessenger,
    InMemoryNoteStore,
    InMemoryReminderStore,
)
from .dispatcher import ToolDispatcher
from .intents import INTENT_TABLE, IntentMapper, tool_name_for
from .media import register_media_tools
from .messaging import register_messaging_tools
from .notes import register_note_tools
from .query import register_query_tool
from .registry import ToolRegistry
from .reminders import register_reminder_tools
from .system import register_system_tools

__all__ = [
    "INTENT_TABLE",
    "InMemoryMediaPlayer",
    "InMemoryMessenger",
    "InMemoryNoteStore",
    "InMemoryReminderStore",
    "IntentMapper",
    "ToolDispatcher",
    "ToolRegistry",
    "register_media_tools",
    "register_messaging_tools",
    "register_note_tools",
    "register_query_tool",
    "register_reminder_tools",
    "register_system_tools",
    "tool_name_for",
]
