"""Cursor context extraction for completion and hover.

This is a best-effort heuristic over the text of the cursor line, not a
parser: a handful of ordered patterns classify what the user is typing.

Positions follow the editor protocol: zero-based line, and a character
offset counted in UTF-16 code units.
"""

from __future__ import annotations

import re

from polyqueue_lsp.models import CursorContext, TriggerKind

# Checked in order, first match wins
TRIGGER_PATTERNS: tuple[tuple[re.Pattern[str], TriggerKind], ...] = (
    (re.compile(r"XADD\s+\w*$"), "stream_append_key"),
    (re.compile(r"XREAD\s+\w*$"), "stream_read_options"),
    (re.compile(r"exchange\s*:\s*$"), "exchange_type"),
    (re.compile(r"type\s*:\s*$"), "binding_type"),
    (re.compile(r"subject\s*:\s*$"), "subject"),
)

WORD_BEFORE = re.compile(r"[A-Za-z0-9_-]*$")
WORD_AFTER = re.compile(r"^[A-Za-z0-9_-]*")


def get_line(text: str, line: int) -> str:
    """Return one line of a document, or "" when the index is out of range."""
    lines = text.split("\n")
    if line < 0 or line >= len(lines):
        return ""
    return lines[line].rstrip("\r")


def utf16_offset_to_index(line_text: str, offset: int) -> int:
    """Convert a UTF-16 code unit offset into a string index, clamped to the line."""
    units = 0
    for index, char in enumerate(line_text):
        if units >= offset:
            return index
        units += 2 if ord(char) > 0xFFFF else 1
    return len(line_text)


def classify_trigger(before_cursor: str) -> TriggerKind:
    for pattern, trigger in TRIGGER_PATTERNS:
        if pattern.search(before_cursor):
            return trigger
    return "none"


def extract_cursor_context(text: str, line: int, character: int) -> CursorContext:
    """Build the cursor context for a completion request.

    Args:
        text: Full document text.
        line: Zero-based line index.
        character: Offset within the line in UTF-16 code units.

    Returns:
        The cursor line, the text before the cursor and its trigger kind.
    """
    current_line = get_line(text, line)
    before = current_line[: utf16_offset_to_index(current_line, max(character, 0))]
    return CursorContext(
        line=current_line,
        before_cursor=before,
        trigger=classify_trigger(before),
    )


def word_at_position(text: str, line: int, character: int) -> str | None:
    """Return the word under the cursor, or None.

    Words are runs of letters, digits, hyphens and underscores, so
    configuration keys such as `x-message-ttl` are returned whole.
    """
    current_line = get_line(text, line)
    index = utf16_offset_to_index(current_line, max(character, 0))

    start = WORD_BEFORE.search(current_line[:index])
    end = WORD_AFTER.match(current_line[index:])
    word = (start.group(0) if start else "") + (end.group(0) if end else "")
    return word or None
