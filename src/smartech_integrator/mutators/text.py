"""Language-neutral helpers: line geometry, indentation and bracket matching."""
from __future__ import annotations

import re
from typing import Iterable, Optional

INDENT_UNIT = "    "

_LEADING_WS = re.compile(r"[ \t]*")


def line_start(text: str, index: int) -> int:
    return text.rfind("\n", 0, index) + 1


def line_end(text: str, index: int) -> int:
    """Index of the newline ending the line that holds ``index`` (or len(text))."""
    end = text.find("\n", index)
    return len(text) if end == -1 else end


def line_indent(text: str, index: int) -> str:
    start = line_start(text, index)
    return _LEADING_WS.match(text, start).group(0)


def indent_unit_for(indent: str) -> str:
    return "\t" if indent.startswith("\t") else INDENT_UNIT


def indent_block(lines: Iterable[str], indent: str) -> str:
    """Join ``lines`` with newlines, prefixing non-blank lines with ``indent``."""
    return "\n".join(indent + line if line.strip() else "" for line in lines)


def ensure_trailing_newline(text: str) -> str:
    if text and not text.endswith("\n"):
        return text + "\n"
    return text


def append_block(text: str, block: str) -> str:
    """Append ``block`` at the end of ``text`` separated by a blank line."""
    if not text.strip():
        return ensure_trailing_newline(block)
    body = ensure_trailing_newline(text)
    if not body.endswith("\n\n"):
        body += "\n"
    return body + ensure_trailing_newline(block)


def find_matching(
    text: str,
    open_index: int,
    open_char: str = "{",
    close_char: str = "}",
) -> Optional[int]:
    """Return the index of the bracket closing the one at ``open_index``.

    String literals and comments are skipped so braces inside them do not
    count. Returns None when the text ends before depth returns to zero.
    """
    if open_index >= len(text) or text[open_index] != open_char:
        return None
    depth = 0
    index = open_index
    size = len(text)
    while index < size:
        char = text[index]
        if char in ("'", '"'):
            index = _skip_string(text, index)
            continue
        if char == "/" and index + 1 < size and text[index + 1] == "/":
            index = line_end(text, index)
            continue
        if char == "/" and index + 1 < size and text[index + 1] == "*":
            closing = text.find("*/", index + 2)
            index = size if closing == -1 else closing + 2
            continue
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return index
        index += 1
    return None


def brace_depth_at(text: str, index: int) -> int:
    """Count unclosed ``{`` before ``index``, ignoring strings and comments."""
    depth = 0
    position = 0
    while position < index:
        char = text[position]
        if char in ("'", '"'):
            position = _skip_string(text, position)
            continue
        if char == "/" and text.startswith("//", position):
            position = line_end(text, position)
            continue
        if char == "/" and text.startswith("/*", position):
            closing = text.find("*/", position + 2)
            position = len(text) if closing == -1 else closing + 2
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth = max(depth - 1, 0)
        position += 1
    return depth


def _skip_string(text: str, index: int) -> int:
    quote = text[index]
    if text.startswith(quote * 3, index):
        closing = text.find(quote * 3, index + 3)
        return len(text) if closing == -1 else closing + 3
    position = index + 1
    while position < len(text):
        char = text[position]
        if char == "\\":
            position += 2
            continue
        if char == quote or char == "\n":
            return position + 1
        position += 1
    return len(text)


def collapse_blank_runs(text: str) -> str:
    return re.sub(r"\n{3,}", "\n\n", text)
