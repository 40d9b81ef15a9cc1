#!/usr/bin/env python3
"""
Pocket Agent Interactive CLI

A command-line interface for talking to the agent against a local
OpenAI-compatible model server.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .config import get_config
from .config_loader import load_app_config
from .models import AppConfig
from .orchestration import ConversationSession, LoopOutcome
from .runtime import AgentRuntime, build_runtime

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def print_banner() -> None:
    """Print the welcome banner."""
    banner = """
╔════════════════════════════════════════════════════════════════╗
║                     Pocket Agent Interactive                    ║
║                                                                 ║
║  Tool calling and privacy routing for small on-device models   ║
╚════════════════════════════════════════════════════════════════╝

Available commands:
  /help     - Show this help message
  /trace    - Show the tool calls of the last message
  /tools    - List available tools
  /turns    - Show the conversation so far
  /clear    - Start a new conversation
  /quit     - Exit the CLI

Type your messages below.
"""
    print(banner)


def print_tools(runtime: AgentRuntime) -> None:
    """Print registered tools grouped by toolset."""
    print("\nAvailable Tools:")
    toolsets = sorted({tool.toolset for tool in runtime.registry.all_tools()})
    for toolset in toolsets:
        print(f"\n[{toolset}]")
        print("─" * 64)
        for tool in runtime.registry.by_toolset(toolset):
            marker = "" if tool.available() else "  (unavailable)"
            print(f"  {tool.name.ljust(20)} {tool.min_privacy_tier.name.ljust(10)}{marker}")
    print()


def print_trace(outcome: Optional[LoopOutcome]) -> None:
    """Print the tool calls of the last message."""
    if outcome is None or not outcome.steps:
        print("\nNo trace available. Send a message first.\n")
        return

    print("\n" + "═" * 70)
    print("CONVERSATION TRACE")
    print("═" * 70)

    for step in outcome.get_trace():
        is_final = not step["tool_calls"]
        print(f"\n┌─ Iteration {step['iteration']}" + ("  [FINAL]" if is_final else ""))
        print("│")
        if step["plain_text"]:
            print(f"│  Text: {step['plain_text']}")
        for call in step["tool_calls"]:
            status = "ok" if call["success"] else call["error_kind"]
            print(f"│  Call: {call['name']} [{call['tier']}] -> {status}")
            print(f"│  Arguments: {json.dumps(call['arguments'])}")
            output = call["output"]
            if len(output) > 200:
                output = output[:200] + "..."
            print(f"│  Output: {output}")
        print("└" + "─" * 68)

    print()


def print_turns(session: ConversationSession) -> None:
    print()
    for turn in session.conversation.turns:
        content = turn.content if len(turn.content) <= 200 else turn.content[:200] + "..."
        label = turn.role.value if not turn.name else f"{turn.role.value}:{turn.name}"
        print(f"[{label}] {content}")
    print()


class InteractiveCLI:
    """Interactive CLI for the pocket agent."""

    def __init__(self, runtime: AgentRuntime):
        self.runtime = runtime
        self.session = runtime.create_session()
        self.last_outcome: Optional[LoopOutcome] = None

    def clear_history(self) -> None:
        """Start a fresh conversation."""
        self.runtime.delete_session(self.session.conversation_id)
        self.session = self.runtime.create_session()
        self.last_outcome = None
        print("\nConversation history cleared.\n")

    async def process_message(self, text: str) -> None:
        print("\n" + "─" * 70)
        print("Thinking...")
        print("─" * 70 + "\n")

        outcome = await self.session.submit(text)
        self.last_outcome = outcome

        print("\n" + "═" * 70)
        print("ANSWER" if outcome.succeeded else f"FAILED ({outcome.failure_reason})")
        print("═" * 70)
        print(outcome.answer or "(no answer)")
        if outcome.error:
            print(f"\nError: {outcome.error}")
        print("═" * 70 + "\n")

        count = outcome.iterations
        print(f"(Completed in {count} iteration{'s' if count != 1 else ''})")
        print("Use /trace to see the tool calls.\n")

    async def run(self) -> None:
        """Run the interactive CLI loop."""
        print_banner()

        while True:
            try:
                user_input = (await asyncio.to_thread(input, ">>> ")).strip()
            except EOFError:
                print("\nGoodbye!\n")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                command = user_input.lower()
                if command in ("/quit", "/exit", "/q"):
                    print("\nGoodbye!\n")
                    break
                elif command in ("/help", "/h", "/?"):
                    print_banner()
                elif command == "/trace":
                    print_trace(self.last_outcome)
                elif command == "/tools":
                    print_tools(self.runtime)
                elif command == "/turns":
                    print_turns(self.session)
                elif command == "/clear":
                    self.clear_history()
                else:
                    print(f"\nUnknown command: {user_input}")
                    print("Type /help for available commands.\n")
            else:
                await self.process_message(user_input)


def _load_config(path: Optional[str]) -> AppConfig:
    if path:
        return load_app_config(Path(path), reload=True)
    return get_config()


async def _run_single(runtime: AgentRuntime, query: str, as_json: bool) -> int:
    session = runtime.create_session()
    outcome = await session.submit(query)
    if as_json:
        output = {
            "query": query,
            "state": outcome.state.value,
            "answer": outcome.answer,
            "failure_reason": outcome.failure_reason,
            "error": outcome.error,
            "trace": outcome.get_trace(),
        }
        print(json.dumps(output, indent=2))
    else:
        print(outcome.answer)
        if outcome.error:
            print(f"Error: {outcome.error}", file=sys.stderr)
    return 0 if outcome.succeeded else 1


async def _main(args: argparse.Namespace) -> int:
    app_config = _load_config(args.config)
    if args.base_url:
        app_config.inference.base_url = args.base_url
    runtime = build_runtime(app_config)
    try:
        if args.query:
            return await _run_single(runtime, args.query, args.json)
        await InteractiveCLI(runtime).run()
        return 0
    finally:
        await runtime.close()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Pocket Agent Interactive CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Start interactive mode
  %(prog)s -v                       # Start with verbose logging
  %(prog)s -q "Play some jazz"      # Send a single message and exit

Use /tools in interactive mode to see available tools.
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("-q", "--query", type=str, help="Send a single message and exit")
    parser.add_argument(
        "-c", "--config", type=str, default=None, help="Path to a YAML configuration file"
    )
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help="Model server endpoint URL (default: from configuration)",
    )
    parser.add_argument(
        "--json", action="store_true", help="Output results as JSON (for scripting)"
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        sys.exit(asyncio.run(_main(args)))
    except KeyboardInterrupt:
        print("\n\nInterrupted, shutting down.\n")
        sys.exit(130)


if __name__ == "__main__":
    main()
