"""
Messaging tools.
"""

from ..models.tool import ArgumentSpec, ToolDescriptor, ToolResult
from .backends import InMemoryMessenger
from .registry import ToolRegistry

MESSAGE_PLATFORMS = ("whatsapp", "teams")


def register_messaging_tools(registry: ToolRegistry, messenger: InMemoryMessenger) -> None:
    def send_message(args: dict) -> ToolResult:
        content = args["content"].strip()
        if not content:
            return ToolResult.failure("Message content is empty")
        platform = args.get("platform") or "whatsapp"
        return ToolResult.ok(messenger.send(args["recipient"], content, platform))

    def summarize_messages(args: dict) -> ToolResult:
        return ToolResult.ok(messenger.summarize(args.get("conversation") or "all"))

    registry.register(ToolDescriptor(
        name="send_message",
        description=(
            "Compose and draft a message to a contact. Use when the user wants to "
            "text, reply to, or message someone."
        ),
        parameters={
            "recipient": ArgumentSpec(description="The name of the person to message"),
            "content": ArgumentSpec(description="What the user wants to say"),
            "platform": ArgumentSpec(
                required=False, description="Messaging platform", enum=MESSAGE_PLATFORMS
            ),
        },
        handler=send_message,
        toolset="messaging",
    ))
    registry.register(ToolDescriptor(
        name="summarize_messages",
        description=(
            "Summarize recent messages or a conversation. Use when the user asks "
            "what they missed or wants a recap."
        ),
        parameters={
            "conversation": ArgumentSpec(
                required=False,
                description="Which conversation or contact to summarize (or 'all' for all recent)",
            ),
        },
        handler=summarize_messages,
        toolset="messaging",
    ))
