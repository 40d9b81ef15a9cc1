"""
Reminder tools.
"""

from ..models.tool import ArgumentSpec, ToolDescriptor, ToolResult
from .backends import InMemoryReminderStore
from .registry import ToolRegistry


def register_reminder_tools(registry: ToolRegistry, store: InMemoryReminderStore) -> None:
    def set_reminder(args: dict) -> ToolResult:
        reminder = store.add(args["description"], args["time"], args.get("recurring"))
        repeat = f" ({reminder.recurring})" if reminder.recurring else ""
        return ToolResult.ok(
            f"Reminder {reminder.id} set: {reminder.description} at {reminder.time}{repeat}"
        )

    def list_reminders(args: dict) -> ToolResult:
        # "today" and "this_week" need a calendar backend; the in-memory
        # store keeps free-text times, so every filter lists pending items.
        reminders = store.list()
        if not reminders:
            return ToolResult.ok("No pending reminders")
        return ToolResult.ok(
            "\n".join(f"{r.id}: {r.description} at {r.time}" for r in reminders)
        )

    def complete_reminder(args: dict) -> ToolResult:
        reminder = store.complete(args["id"])
        if reminder is None:
            return ToolResult.failure(f"No reminder with id '{args['id']}'")
        return ToolResult.ok(f"Completed reminder: {reminder.description}")

    registry.register(ToolDescriptor(
        name="set_reminder",
        description="Set a new reminder. Use when the user wants to be reminded about something.",
        parameters={
            "description": ArgumentSpec(description="What to be reminded about"),
            "time": ArgumentSpec(
                description="When the reminder should fire (e.g. '5pm tomorrow', 'in 30 minutes')"
            ),
            "recurring": ArgumentSpec(
                required=False,
                description="Whether the reminder repeats (e.g. 'daily', 'every Monday', or 'no')",
            ),
        },
        handler=set_reminder,
        toolset="reminders",
    ))
    registry.register(ToolDescriptor(
        name="list_reminders",
        description="List the user's reminders. Use when the user asks about upcoming reminders.",
        parameters={
            "filter": ArgumentSpec(
                required=False, description="Time filter", enum=("today", "this_week", "all")
            ),
        },
        handler=list_reminders,
        toolset="reminders",
    ))
    registry.register(ToolDescriptor(
        name="complete_reminder",
        description="Mark a reminder as completed.",
        parameters={"id": ArgumentSpec(description="The ID of the reminder to complete")},
        handler=complete_reminder,
        toolset="reminders",
    ))
