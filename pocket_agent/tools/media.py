"""
Media playback tools.
"""

from ..models.tool import ArgumentSpec, ToolDescriptor, ToolResult
from .backends import InMemoryMediaPlayer
from .registry import ToolRegistry

MEDIA_SOURCES = ("spotify", "youtube", "audible")


def register_media_tools(registry: ToolRegistry, player: InMemoryMediaPlayer) -> None:
    """Register play/queue/pause/skip/previous/now-playing tools."""

    def play_media(args: dict) -> ToolResult:
        return ToolResult.ok(player.play(args["query"], args.get("source")))

    def queue_media(args: dict) -> ToolResult:
        return ToolResult.ok(player.enqueue(args["query"], args.get("source")))

    def pause_media(args: dict) -> ToolResult:
        return ToolResult.ok(player.pause())

    def skip_track(args: dict) -> ToolResult:
        return ToolResult.ok(player.skip())

    def previous_track(args: dict) -> ToolResult:
        return ToolResult.ok(player.previous())

    def now_playing(args: dict) -> ToolResult:
        return ToolResult.ok(player.status())

    source = ArgumentSpec(
        type="string", required=False, description="Media source to use", enum=MEDIA_SOURCES
    )
    registry.register(ToolDescriptor(
        name="play_media",
        description=(
            "Play music, a podcast, an audiobook, or a video. Use this when the "
            "user wants to listen to or watch something."
        ),
        parameters={
            "query": ArgumentSpec(description="What to play (song name, artist, genre, or description)"),
            "source": source,
        },
        handler=play_media,
        toolset="media",
    ))
    registry.register(ToolDescriptor(
        name="queue_media",
        description="Add media to the playback queue without playing it immediately.",
        parameters={
            "query": ArgumentSpec(description="What to add to the queue"),
            "source": source,
        },
        handler=queue_media,
        toolset="media",
    ))
    registry.register(ToolDescriptor(
        name="pause_media",
        description="Pause the currently playing media.",
        parameters={},
        handler=pause_media,
        toolset="media",
    ))
    registry.register(ToolDescriptor(
        name="skip_track",
        description="Skip to the next track in the current playlist or queue.",
        parameters={},
        handler=skip_track,
        toolset="media",
    ))
    registry.register(ToolDescriptor(
        name="previous_track",
        description="Go back to the previous track.",
        parameters={},
        handler=previous_track,
        toolset="media",
    ))
    registry.register(ToolDescriptor(
        name="now_playing",
        description="Check what is currently playing.",
        parameters={},
        handler=now_playing,
        toolset="media",
    ))
