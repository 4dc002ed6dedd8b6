"""
Java and Kotlin source mutators.

Method bodies are located by a signature regex followed by a brace-balanced
scan; statements are compared with whitespace removed so reformatted code
still counts as present.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Pattern, Sequence, Tuple

from ..constants import CLASS_HEADER_PATTERN, PACKAGE_DECLARATION_PATTERN, SOURCE_PACKAGE_PATTERN
from .text import (
    find_matching,
    indent_block,
    indent_unit_for,
    line_end,
    line_indent,
    line_start,
)

_ANNOTATION = re.compile(r"@\w+(?:\([^)]*\))?")
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class MethodSpan:
    name: str
    start: int
    open_brace: int
    close_brace: int
    params: str

    def body(self, source: str) -> str:
        return source[self.open_brace + 1:self.close_brace]


def is_kotlin_path(path: Path) -> bool:
    return path.suffix == ".kt"


def source_package(source: str) -> Optional[str]:
    match = SOURCE_PACKAGE_PATTERN.search(source)
    return match.group(1) if match else None


def render_import(name: str, kotlin: bool) -> str:
    return f"import {name}" if kotlin else f"import {name};"


def has_import(source: str, name: str) -> bool:
    pattern = re.compile(rf"^[ \t]*import[ \t]+{re.escape(name)}[ \t]*;?[ \t]*$", re.MULTILINE)
    return bool(pattern.search(source))


def ensure_imports(source: str, names: Sequence[str], kotlin: bool) -> str:
    """Insert the missing imports as one block right after the package line."""
    missing = [name for name in names if not has_import(source, name)]
    if not missing:
        return source
    block = "\n".join(render_import(name, kotlin) for name in missing)
    package = PACKAGE_DECLARATION_PATTERN.search(source)
    if package:
        position = package.end()
        return source[:position] + "\n" + block + "\n" + source[position:]
    separator = "\n" if source.lstrip().startswith("import") else "\n\n"
    return block + separator + source


def class_extending(source: str, bases: Sequence[str]) -> Optional[str]:
    """Name of the first class declared as a subclass of one of ``bases``."""
    alternatives = "|".join(re.escape(base) for base in bases)
    java = re.compile(rf"\bclass\s+(\w+)[^{{;]*?\bextends\s+(?:[\w.]+\.)?(?:{alternatives})\b")
    kotlin = re.compile(rf"\bclass\s+(\w+)[^{{:;]*:\s*(?:[\w.]+\.)?(?:{alternatives})\s*\(")
    for pattern in (java, kotlin):
        match = pattern.search(source)
        if match:
            return match.group(1)
    return None


def find_method(source: str, name: str) -> Optional[MethodSpan]:
    pattern = re.compile(rf"(?<![.\w]){re.escape(name)}\s*\(([^)]*)\)[^{{;\n]*\s*\{{")
    for match in pattern.finditer(source):
        open_brace = match.end() - 1
        close_brace = find_matching(source, open_brace)
        if close_brace is None:
            continue
        return MethodSpan(
            name=name,
            start=match.start(),
            open_brace=open_brace,
            close_brace=close_brace,
            params=match.group(1),
        )
    return None


def find_super_call(source: str, span: MethodSpan) -> Optional[re.Match]:
    pattern = re.compile(rf"super\.{re.escape(span.name)}\s*\([^)]*\)[ \t]*;?")
    return pattern.search(source, span.open_brace, span.close_brace)


def body_indent(source: str, span: MethodSpan) -> str:
    """Indentation of the first statement in the body, or signature + one unit."""
    for line in span.body(source).split("\n")[1:]:
        if line.strip() and line.strip() != "}":
            return re.match(r"[ \t]*", line).group(0)
    signature = line_indent(source, span.start)
    return signature + indent_unit_for(signature)


def body_contains(body: str, lines: Sequence[str]) -> bool:
    statements = "".join(_WHITESPACE.sub("", line) for line in lines)
    return bool(statements) and statements in _WHITESPACE.sub("", body)


def insert_lines_after(source: str, index: int, lines: Sequence[str], indent: str) -> str:
    """Insert ``lines`` on new lines after the line holding ``index``."""
    position = line_end(source, index)
    return source[:position] + "\n" + indent_block(lines, indent) + source[position:]


def insert_in_method(
    source: str,
    span: MethodSpan,
    lines: Sequence[str],
    anchors: Sequence[Pattern[str]] = (),
) -> str:
    """Insert ``lines`` after the first matching anchor, the super call, or the opening brace.

    Returns ``source`` unchanged when the body already holds ``lines``.
    """
    if body_contains(span.body(source), lines):
        return source
    for anchor in anchors:
        match = anchor.search(source, span.open_brace, span.close_brace)
        if match:
            return insert_lines_after(source, match.end() - 1, lines, line_indent(source, match.start()))
    super_call = find_super_call(source, span)
    if super_call:
        return insert_lines_after(source, super_call.end() - 1, lines, line_indent(source, super_call.start()))
    indent = body_indent(source, span)
    if line_end(source, span.open_brace) > span.close_brace:
        existing = span.body(source).strip()
        statements = list(lines) + ([existing] if existing else [])
        return (
            source[:span.open_brace + 1]
            + "\n"
            + indent_block(statements, indent)
            + "\n"
            + line_indent(source, span.start)
            + source[span.close_brace:]
        )
    return insert_lines_after(source, span.open_brace, lines, indent)


def class_body(source: str) -> Optional[Tuple[int, int]]:
    """(open, close) brace indices of the first class body in the file."""
    header = CLASS_HEADER_PATTERN.search(source)
    if header:
        open_brace = header.end() - 1
        close_brace = find_matching(source, open_brace)
        if close_brace is not None:
            return open_brace, close_brace
    return None


def member_indent(source: str, open_brace: int, close_brace: int) -> str:
    for line in source[open_brace + 1:close_brace].split("\n")[1:]:
        if line.strip():
            return re.match(r"[ \t]*", line).group(0)
    header = line_indent(source, open_brace)
    return header + indent_unit_for(header)


def add_member(source: str, member_lines: Sequence[str]) -> str:
    """Append a member (method) before the end of the first class body."""
    body = class_body(source)
    if body is None:
        close = source.rfind("}")
        if close == -1:
            return source
        open_brace = source.find("{")
        body = (open_brace, close)
    open_brace, close_brace = body
    indent = member_indent(source, open_brace, close_brace)
    block = indent_block(member_lines, indent)
    start = line_start(source, close_brace)
    if source[start:close_brace].strip():
        return source[:close_brace] + "\n" + block + "\n" + source[close_brace:]
    before = source[:start]
    spacer = "" if before.endswith("\n\n") or before.rstrip().endswith("{") else "\n"
    return before + spacer + block + "\n" + source[start:]


def ensure_class_body(source: str) -> str:
    """Give a body-less Kotlin class declaration an empty ``{}`` body."""
    if class_body(source) is not None:
        return source
    match = re.search(r"\bclass\s+\w+[^\n{]*", source)
    if not match:
        return source
    end = match.end()
    return source[:end].rstrip() + " {\n}" + source[end:]


def extract_param_name(params: str, default: str) -> str:
    """First parameter name for Java (``Type name``) or Kotlin (``name: Type``)."""
    first = params.split(",")[0]
    first = _ANNOTATION.sub("", first).strip()
    if not first:
        return default
    if ":" in first:
        name = first.split(":", 1)[0].split()
        name = [token for token in name if token not in ("val", "var")]
        return name[-1] if name else default
    tokens = [token for token in first.split() if token != "final"]
    return tokens[-1] if len(tokens) > 1 else default


def on_create_method(kotlin: bool, activity: bool, lines: Sequence[str]) -> List[str]:
    """A complete ``onCreate`` override holding ``lines`` after the super call."""
    if kotlin:
        signature = (
            "override fun onCreate(savedInstanceState: Bundle?) {"
            if activity
            else "override fun onCreate() {"
        )
        super_call = "super.onCreate(savedInstanceState)" if activity else "super.onCreate()"
        head = [signature]
    else:
        signature = (
            "protected void onCreate(Bundle savedInstanceState) {"
            if activity
            else "public void onCreate() {"
        )
        super_call = "super.onCreate(savedInstanceState);" if activity else "super.onCreate();"
        head = ["@Override", signature]
    return head + ["    " + super_call] + ["    " + line if line else "" for line in lines] + ["}"]
