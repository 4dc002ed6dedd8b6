"""
Unified diff synthesis and strict application.

Diffs are produced with ``difflib.SequenceMatcher`` and rendered in the
standard unified format. Hunks that only add lines keep their leading
context and drop the trailing context, so two insertions computed against
the same anchor still apply one after the other within a single batch.

Application is strict: every context and removal line must match the
target text exactly (no fuzz). A hunk may still be found at an offset from
its recorded line number.
"""
from __future__ import annotations

import difflib
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

HUNK_HEADER_PATTERN = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
NO_NEWLINE_MARKER = "\\ No newline at end of file"
DEFAULT_CONTEXT_LINES = 3

Opcode = Tuple[str, int, int, int, int]

_LINE_BREAK = re.compile(r"(?<=\n)")


class PatchApplyError(ValueError):
    """Raised when a patch is malformed or does not match the target text."""


@dataclass
class Hunk:
    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def old_lines(self) -> List[str]:
        return [text for op, text in self.lines if op != "+"]

    @property
    def new_lines(self) -> List[str]:
        return [text for op, text in self.lines if op != "-"]


def split_lines(text: str) -> List[str]:
    """Split on ``\\n`` only, keeping line endings; other separators stay inside a line."""
    return [piece for piece in _LINE_BREAK.split(text) if piece]


def create_unified_diff(
    file_path: str,
    original: str,
    updated: str,
    context: int = DEFAULT_CONTEXT_LINES,
) -> str:
    """Return a unified diff from ``original`` to ``updated``.

    The file header is always emitted, so identical inputs yield a valid
    diff with zero hunks.
    """
    old_lines = split_lines(original)
    new_lines = split_lines(updated)
    output = [f"--- {file_path}\toriginal\n", f"+++ {file_path}\tupdated\n"]
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    for group in matcher.get_grouped_opcodes(context):
        output.extend(_render_hunk(_trim_insert_context(group), old_lines, new_lines))
    return "".join(output)


def parse_unified_diff(patch: str) -> List[Hunk]:
    hunks: List[Hunk] = []
    current: Optional[Hunk] = None
    old_left = new_left = 0

    for raw in split_lines(patch):
        if raw.startswith("\\"):
            if current is not None and current.lines:
                op, text = current.lines[-1]
                if text.endswith("\n"):
                    current.lines[-1] = (op, text[:-1])
            continue

        if current is not None and (old_left > 0 or new_left > 0):
            op = raw[:1]
            text = raw[1:]
            if raw in ("\n", "\r\n"):
                op, text = " ", raw
            if op == " ":
                old_left -= 1
                new_left -= 1
            elif op == "-":
                old_left -= 1
            elif op == "+":
                new_left -= 1
            else:
                raise PatchApplyError(f"Unexpected line inside hunk: {raw.rstrip()!r}")
            if old_left < 0 or new_left < 0:
                raise PatchApplyError("Hunk body does not match its header counts")
            current.lines.append((op, text))
            continue

        if raw.startswith("@@"):
            match = HUNK_HEADER_PATTERN.match(raw)
            if not match:
                raise PatchApplyError(f"Malformed hunk header: {raw.rstrip()!r}")
            old_start, old_count, new_start, new_count = match.groups()
            current = Hunk(
                old_start=int(old_start),
                old_count=int(old_count) if old_count is not None else 1,
                new_start=int(new_start),
                new_count=int(new_count) if new_count is not None else 1,
            )
            old_left, new_left = current.old_count, current.new_count
            hunks.append(current)

    if old_left > 0 or new_left > 0:
        raise PatchApplyError("Patch ended in the middle of a hunk")
    return hunks


def apply_unified_diff(source: str, patch: str) -> str:
    """Apply ``patch`` to ``source`` with zero fuzz.

    Raises ``PatchApplyError`` when any hunk cannot be matched exactly.
    """
    hunks = parse_unified_diff(patch)
    lines = split_lines(source)
    result: List[str] = []
    cursor = 0
    offset = 0

    for hunk in hunks:
        expected = hunk.old_lines
        anchor = hunk.old_start if hunk.old_count == 0 else hunk.old_start - 1
        position = _locate(lines, expected, anchor + offset, cursor)
        if position is None:
            raise PatchApplyError(
                f"Hunk @@ -{hunk.old_start},{hunk.old_count} does not match the current content"
            )
        result.extend(lines[cursor:position])
        result.extend(hunk.new_lines)
        cursor = position + len(expected)
        offset = position - anchor

    result.extend(lines[cursor:])
    return "".join(result)


def _locate(
    lines: Sequence[str], expected: Sequence[str], start: int, lower: int
) -> Optional[int]:
    size = len(expected)
    upper = len(lines) - size
    if upper < lower:
        return None
    if not expected:
        return start if lower <= start <= len(lines) else None

    def fits(position: int) -> bool:
        return list(lines[position:position + size]) == list(expected)

    start = min(max(start, lower), upper)
    if fits(start):
        return start
    distance = 1
    while start - distance >= lower or start + distance <= upper:
        if start + distance <= upper and fits(start + distance):
            return start + distance
        if start - distance >= lower and fits(start - distance):
            return start - distance
        distance += 1
    return None


def _trim_insert_context(group: List[Opcode]) -> List[Opcode]:
    changes = [code for code in group if code[0] != "equal"]
    if not changes or any(code[0] != "insert" for code in changes):
        return group
    if len(group) > 1 and group[0][0] == "equal" and group[-1][0] == "equal":
        return group[:-1]
    return group


def _format_range(start: int, stop: int) -> str:
    beginning = start + 1
    length = stop - start
    if length == 1:
        return str(beginning)
    if not length:
        beginning -= 1
    return f"{beginning},{length}"


def _render_line(prefix: str, text: str) -> List[str]:
    if text.endswith("\n"):
        return [prefix + text]
    return [prefix + text + "\n", NO_NEWLINE_MARKER + "\n"]


def _render_hunk(
    group: List[Opcode], old_lines: Sequence[str], new_lines: Sequence[str]
) -> List[str]:
    first, last = group[0], group[-1]
    old_range = _format_range(first[1], last[2])
    new_range = _format_range(first[3], last[4])
    output = [f"@@ -{old_range} +{new_range} @@\n"]
    for tag, i1, i2, j1, j2 in group:
        if tag == "equal":
            for line in old_lines[i1:i2]:
                output.extend(_render_line(" ", line))
            continue
        if tag in ("replace", "delete"):
            for line in old_lines[i1:i2]:
                output.extend(_render_line("-", line))
        if tag in ("replace", "insert"):
            for line in new_lines[j1:j2]:
                output.extend(_render_line("+", line))
    return output
