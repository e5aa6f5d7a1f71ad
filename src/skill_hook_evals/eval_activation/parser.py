"""Detect Skill tool invocations in claude stream-json output.

The captured output is one JSON event per line, possibly cut off mid-line
when the monitor kills claude. The envelope shape of a tool_use event varies
between CLI versions, so every event is run through a set of envelope
extractors that each yield candidate blocks, and one rule pulls the skill
name out of any matching block.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Iterator

SKILL_TOOL_NAME = "Skill"

Event = dict[str, Any]


def _content_blocks(content: Any) -> Iterator[Any]:
    if isinstance(content, list):
        yield from content


def _block_start(event: Event) -> Iterator[Any]:
    """{"type": "content_block_start", "content_block": {...}}"""
    if event.get("type") == "content_block_start":
        yield event.get("content_block")


def _assistant_message(event: Event) -> Iterator[Any]:
    """{"type": "assistant", "message": {"content": [...]}} or a bare role-tagged message."""
    if event.get("type") == "assistant" or event.get("role") == "assistant":
        message = event.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if content is None:
            content = event.get("content")
        yield from _content_blocks(content)


def _bare_tool_use(event: Event) -> Iterator[Any]:
    """{"type": "tool_use", "name": ..., "input": {...}}"""
    if event.get("type") == "tool_use":
        yield event


def _message_wrapper(event: Event) -> Iterator[Any]:
    """{"type": "message", "message": {"content": [...]}}"""
    message = event.get("message")
    if event.get("type") == "message" and isinstance(message, dict):
        yield from _content_blocks(message.get("content"))


# Checked independently; one event may match more than one shape.
ENVELOPE_EXTRACTORS: tuple[Callable[[Event], Iterator[Any]], ...] = (
    _block_start,
    _assistant_message,
    _bare_tool_use,
    _message_wrapper,
)


def iter_tool_uses(event: Event, tool_name: str = SKILL_TOOL_NAME) -> Iterator[dict[str, Any]]:
    """Yield the input payload of every tool_use block for tool_name in an event."""
    for extract in ENVELOPE_EXTRACTORS:
        for block in extract(event):
            if (
                isinstance(block, dict)
                and block.get("type") == "tool_use"
                and block.get("name") == tool_name
                and isinstance(block.get("input"), dict)
            ):
                yield block["input"]


def extract_skill_name(tool_input: dict[str, Any]) -> str | None:
    """Skill name from a Skill tool input; claude uses either 'skill' or 'args'."""
    for key in ("skill", "args"):
        value = tool_input.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def iter_events(stdout: str) -> Iterator[Event]:
    """Parse each line as JSON, skipping blanks, truncated lines and non-objects."""
    for line in stdout.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            parsed = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            yield parsed


def parse_skill_activations(stdout: str, tool_name: str = SKILL_TOOL_NAME) -> set[str]:
    """Return the set of skill names invoked anywhere in the captured output."""
    skills: set[str] = set()
    for event in iter_events(stdout):
        for tool_input in iter_tool_uses(event, tool_name):
            name = extract_skill_name(tool_input)
            if name:
                skills.add(name)
    return skills
