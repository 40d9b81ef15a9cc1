"""
Note tools: facts and preferences remembered across sessions.
"""

from ..models.tool import ArgumentSpec, ToolDescriptor, ToolResult
from .backends import InMemoryNoteStore
from .registry import ToolRegistry

NOTE_CATEGORIES = ("user_profile", "agent_note")


def register_note_tools(registry: ToolRegistry, notes: InMemoryNoteStore) -> None:
    def save_note(args: dict) -> ToolResult:
        category = args.get("category") or "user_profile"
        notes.save(args["key"], args["value"], category)
        return ToolResult.ok(f"Saved {args['key']}")

    def search_notes(args: dict) -> ToolResult:
        rows = notes.search(args.get("search"), args.get("category"))
        if not rows:
            return ToolResult.ok("No matching notes")
        return ToolResult.ok("\n".join(f"[{c}] {k}: {v}" for c, k, v in rows))

    registry.register(ToolDescriptor(
        name="save_note",
        description=(
            "Save a fact or preference for recall in future sessions. Use when you "
            "learn something important about the user."
        ),
        parameters={
            "key": ArgumentSpec(description="A short key (e.g. 'favorite_music')"),
            "value": ArgumentSpec(description="The value to remember"),
            "category": ArgumentSpec(
                required=False, description="Note category", enum=NOTE_CATEGORIES
            ),
        },
        handler=save_note,
        toolset="notes",
    ))
    registry.register(ToolDescriptor(
        name="search_notes",
        description="Look up previously saved notes about the user or past sessions.",
        parameters={
            "search": ArgumentSpec(required=False, description="Optional search term"),
            "category": ArgumentSpec(
                required=False, description="Category to search in", enum=NOTE_CATEGORIES
            ),
        },
        handler=search_notes,
        toolset="notes",
    ))
