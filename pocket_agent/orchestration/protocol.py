"""
Tool-call protocol.

The model emits function-call requests as delimited blocks in its text
output::

    <tool_call>
    {"name": "play_media", "arguments": {"query": "jazz"}}
    </tool_call>

and receives results back as::

    <tool_response>
    {"name": "play_media", "content": "Now playing jazz"}
    </tool_response>

Parsing is best-effort per block: a malformed block is logged and skipped
without discarding the rest of the response.
"""

import itertools
import json
import logging
import re
from typing import Callable, Optional

from ..models.tool import ToolCall, ToolResult

logger = logging.getLogger(__name__)

TOOL_CALL_OPEN = "<tool_call>"
TOOL_CALL_CLOSE = "</tool_call>"

# A block body never spans another opening tag, so a block left unclosed
# cannot swallow the well-formed block after it.
_TOOL_CALL_RE = re.compile(r"<tool_call>\s*((?:(?!<tool_call>).)*?)\s*</tool_call>", re.DOTALL)
_TOOL_RESPONSE_RE = re.compile(
    r"<tool_response>\s*((?:(?!<tool_response>).)*?)\s*</tool_response>", re.DOTALL
)

# Removal patterns, applied in order: complete blocks, then a block left
# unclosed by a truncated generation, then orphaned closing tags.
_STRIP_PATTERNS = (
    re.compile(r"<tool_call>.*?</tool_call>", re.DOTALL),
    re.compile(r"<tool_call>.*$", re.DOTALL),
    re.compile(re.escape(TOOL_CALL_CLOSE)),
)

IdFactory = Callable[[], str]


def _default_ids() -> IdFactory:
    counter = itertools.count(1)
    return lambda: f"call_{next(counter)}"


def _decode_block(body: str) -> Optional[tuple[str, dict]]:
    """
    Decode the JSON body of one ``<tool_call>`` block.

    Returns:
        ``(name, arguments)``, or None if the block is unusable.
    """
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        logger.warning("Skipping malformed <tool_call> block (%s): %s", e.msg, body[:200])
        return None

    if not isinstance(data, dict):
        logger.warning("Skipping <tool_call> block that is not a JSON object: %s", body[:200])
        return None

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        logger.warning("Skipping <tool_call> block without a name: %s", body[:200])
        return None

    args = data.get("arguments")
    if args is None:
        args = {}
    elif isinstance(args, str):
        # Some models double-encode the arguments object.
        try:
            args = json.loads(args) if args.strip() else {}
        except json.JSONDecodeError:
            logger.warning("Skipping <tool_call> '%s': arguments string is not JSON", name)
            return None

    if not isinstance(args, dict):
        logger.warning("Skipping <tool_call> '%s': arguments is not an object", name)
        return None

    return name.strip(), args


def parse(raw_output: str, next_id: Optional[IdFactory] = None) -> list[ToolCall]:
    """
    Extract every well-formed tool call from ``raw_output``, in order.

    Args:
        raw_output: Raw text produced by the model.
        next_id: Identifier factory, normally ``Conversation.next_call_id``.
            Called once per successfully parsed block.

    Returns:
        Parsed tool calls (possibly empty).
    """
    ids = next_id or _default_ids()
    calls: list[ToolCall] = []
    for match in _TOOL_CALL_RE.finditer(raw_output):
        decoded = _decode_block(match.group(1))
        if decoded is None:
            continue
        name, args = decoded
        calls.append(ToolCall(call_id=ids(), name=name, arguments=args))
    return calls


def has_tool_calls(raw_output: str) -> bool:
    """Whether ``raw_output`` holds at least one well-formed tool call."""
    return any(
        _decode_block(match.group(1)) is not None
        for match in _TOOL_CALL_RE.finditer(raw_output)
    )


def count_tool_calls(raw_output: str) -> int:
    """Number of well-formed tool calls ``parse`` would return."""
    return sum(
        1 for match in _TOOL_CALL_RE.finditer(raw_output) if _decode_block(match.group(1))
    )


def strip_tool_calls(raw_output: str) -> str:
    """
    Remove every tool-call block, parsed or not, and trim whitespace.

    Handles complete blocks as well as blocks truncated before their
    closing tag. Removal repeats until no delimiter remains, so the result
    never contains ``<tool_call>``.
    """
    result = raw_output
    while True:
        previous = result
        for pattern in _STRIP_PATTERNS:
            result = pattern.sub("", result)
        if result == previous:
            break
    return result.strip()


def format_tool_response(call: ToolCall, result: ToolResult) -> str:
    """
    Render a tool result as a ``<tool_response>`` block.

    The content is JSON-encoded so quotes, newlines and control characters
    survive the next prompt render exactly. ``</`` is written as ``<\\/``
    (the same string to a JSON decoder) so tool output cannot close the
    block early.
    """
    payload = json.dumps({"name": call.name, "content": result.content}, ensure_ascii=False)
    payload = payload.replace("</", "<\\/")
    return f"<tool_response>\n{payload}\n</tool_response>"


def parse_tool_responses(text: str) -> list[tuple[str, str]]:
    """Recover ``(name, content)`` pairs from ``<tool_response>`` blocks."""
    responses: list[tuple[str, str]] = []
    for match in _TOOL_RESPONSE_RE.finditer(text):
        try:
            data = json.loads(match.group(1))
        except json.JSONDecodeError:
            logger.warning("Skipping malformed <tool_response> block: %s", match.group(1)[:200])
            continue
        if isinstance(data, dict) and isinstance(data.get("name"), str):
            responses.append((data["name"], str(data.get("content", ""))))
    return responses
