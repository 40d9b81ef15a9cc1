"""
In-memory backend collaborators for the built-in tools.

Real deployments swap these for adapters to a media app, a messaging
bridge or a reminder database. Handlers may run in worker threads, so
every backend guards its state with a lock.
"""

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class MediaState:
    now_playing: Optional[str] = None
    source: Optional[str] = None
    paused: bool = False
    queue: list[str] = field(default_factory=list)
    history: list[str] = field(default_factory=list)


class InMemoryMediaPlayer:
    """Media playback state machine."""

    def __init__(self):
        self._state = MediaState()
        self._lock = threading.Lock()

    def play(self, query: str, source: Optional[str] = None) -> str:
        with self._lock:
            if self._state.now_playing:
                self._state.history.append(self._state.now_playing)
            self._state.now_playing = query
            self._state.source = source
            self._state.paused = False
        if source:
            return f"Now playing {query} on {source.capitalize()}"
        return f"Now playing {query}"

    def enqueue(self, query: str, source: Optional[str] = None) -> str:
        with self._lock:
            self._state.queue.append(query)
            position = len(self._state.queue)
        suffix = f" from {source.capitalize()}" if source else ""
        return f"Queued {query}{suffix} at position {position}"

    def pause(self) -> str:
        with self._lock:
            if not self._state.now_playing:
                return "Nothing is playing"
            self._state.paused = True
            return f"Paused {self._state.now_playing}"

    def skip(self) -> str:
        with self._lock:
            if not self._state.queue:
                return "The queue is empty"
            if self._state.now_playing:
                self._state.history.append(self._state.now_playing)
            self._state.now_playing = self._state.queue.pop(0)
            self._state.paused = False
            return f"Skipped to {self._state.now_playing}"

    def previous(self) -> str:
        with self._lock:
            if not self._state.history:
                return "No previous track"
            if self._state.now_playing:
                self._state.queue.insert(0, self._state.now_playing)
            self._state.now_playing = self._state.history.pop()
            self._state.paused = False
            return f"Back to {self._state.now_playing}"

    def status(self) -> str:
        with self._lock:
            if not self._state.now_playing:
                return "Nothing is playing"
            state = "Paused" if self._state.paused else "Playing"
            return f"{state}: {self._state.now_playing}"


@dataclass(frozen=True)
class OutgoingMessage:
    recipient: str
    content: str
    platform: str


class InMemoryMessenger:
    """Outbox plus a per-contact inbox of received messages."""

    def __init__(self, inbox: Optional[dict[str, list[str]]] = None):
        self.sent: list[OutgoingMessage] = []
        self._inbox = {k: list(v) for k, v in (inbox or {}).items()}
        self._lock = threading.Lock()

    def send(self, recipient: str, content: str, platform: str) -> str:
        with self._lock:
            self.sent.append(OutgoingMessage(recipient, content, platform))
        logger.info("Message drafted to %s via %s", recipient, platform)
        return f"Message to {recipient} sent via {platform.capitalize()}"

    def receive(self, sender: str, content: str) -> None:
        with self._lock:
            self._inbox.setdefault(sender, []).append(content)

    def summarize(self, conversation: str = "all") -> str:
        with self._lock:
            if conversation.lower() == "all":
                threads = dict(self._inbox)
            else:
                threads = {
                    sender: msgs
                    for sender, msgs in self._inbox.items()
                    if sender.lower() == conversation.lower()
                }
        if not any(threads.values()):
            return "No new messages"
        lines = []
        for sender, msgs in threads.items():
            if msgs:
                lines.append(f"{sender}: {len(msgs)} message(s), latest: {msgs[-1]}")
        return "\n".join(lines)


@dataclass
class Reminder:
    id: str
    description: str
    time: str
    recurring: Optional[str] = None
    completed: bool = False


class InMemoryReminderStore:
    def __init__(self):
        self._reminders: dict[str, Reminder] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, description: str, time: str, recurring: Optional[str] = None) -> Reminder:
        with self._lock:
            reminder = Reminder(
                id=f"r{next(self._ids)}",
                description=description,
                time=time,
                recurring=recurring if recurring and recurring.lower() != "no" else None,
            )
            self._reminders[reminder.id] = reminder
        return reminder

    def list(self, include_completed: bool = False) -> list[Reminder]:
        with self._lock:
            return [r for r in self._reminders.values() if include_completed or not r.completed]

    def complete(self, reminder_id: str) -> Optional[Reminder]:
        with self._lock:
            reminder = self._reminders.get(reminder_id)
            if reminder is not None:
                reminder.completed = True
            return reminder


class InMemoryNoteStore:
    """Key/value notes grouped by category."""

    def __init__(self):
        self._notes: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def save(self, key: str, value: str, category: str = "user_profile") -> None:
        with self._lock:
            self._notes[(category, key)] = value

    def search(self, term: Optional[str] = None, category: Optional[str] = None) -> list[tuple[str, str, str]]:
        """Return ``(category, key, value)`` rows, optionally filtered."""
        with self._lock:
            rows = [(c, k, v) for (c, k), v in self._notes.items()]
        if category:
            rows = [row for row in rows if row[0] == category]
        if term:
            needle = term.lower()
            rows = [row for row in rows if needle in row[1].lower() or needle in row[2].lower()]
        return rows

    def memory_block(self) -> str:
        """Notes rendered for the system prompt's memory layer."""
        return "\n".join(f"- {key}: {value}" for _, key, value in self.search())
