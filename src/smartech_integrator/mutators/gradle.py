"""Gradle build script and ``gradle.properties`` mutators (Groovy and Kotlin DSL)."""
from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from ..constants import (
    GRADLE_DEPENDENCIES_PATTERN,
    GRADLE_REPOSITORIES_PATTERN,
    GRADLE_REPOSITORY_SCOPES,
    TARGET_SDK_PATTERNS,
)
from .text import (
    append_block,
    brace_depth_at,
    collapse_blank_runs,
    ensure_trailing_newline,
    find_matching,
    indent_unit_for,
    line_end,
    line_indent,
    line_start,
)


def _property_pattern(key: str) -> re.Pattern:
    return re.compile(rf"^([ \t]*{re.escape(key)}[ \t]*=[ \t]*)(.*?)[ \t]*$", re.MULTILINE)


def property_value(text: str, key: str) -> Optional[str]:
    match = _property_pattern(key).search(text)
    return match.group(2) if match else None


def ensure_property(text: str, key: str, value: str) -> str:
    """Set ``key`` in a properties file, touching only that line."""
    match = _property_pattern(key).search(text)
    if match:
        if match.group(2) == value:
            return text
        return text[:match.start(2)] + value + text[match.end(2):]
    return ensure_trailing_newline(text) + f"{key}={value}\n"


def dependency_declaration(configuration: str, artifact: str, version: str, kts: bool) -> str:
    coordinate = f"{artifact}:{version}"
    if kts:
        return f'{configuration}("{coordinate}")'
    if "$" in version:
        return f'{configuration} "{coordinate}"'
    return f"{configuration} '{coordinate}'"


def property_dependency_declaration(configuration: str, artifact: str, key: str, kts: bool) -> str:
    """A declaration whose version comes from the ``key`` Gradle property."""
    if kts:
        return f'{configuration}("{artifact}:" + project.property("{key}"))'
    return f'{configuration} "{artifact}:${{{key}}}"'


def _dependency_line_pattern(artifact_pattern: str) -> re.Pattern:
    return re.compile(rf"^([ \t]*)(?!//)\S[^\n]*?['\"]{artifact_pattern}:[^\n]*$", re.MULTILINE)


def has_dependency(text: str, artifact_pattern: str) -> bool:
    return bool(_dependency_line_pattern(artifact_pattern).search(text))


def _dependencies_block(text: str) -> Optional[Tuple[int, int]]:
    """(open, close) of the top-level ``dependencies {`` block, else the last one."""
    candidates: List[Tuple[int, int]] = []
    for match in GRADLE_DEPENDENCIES_PATTERN.finditer(text):
        open_brace = match.end() - 1
        close_brace = find_matching(text, open_brace)
        if close_brace is None:
            continue
        if brace_depth_at(text, match.start()) == 0:
            return open_brace, close_brace
        candidates.append((open_brace, close_brace))
    return candidates[-1] if candidates else None


def _insert_before_close(text: str, open_brace: int, close_brace: int, line: str) -> str:
    header_indent = line_indent(text, open_brace)
    inner = _first_child_indent(text, open_brace, close_brace) or header_indent + indent_unit_for(header_indent)
    start = line_start(text, close_brace)
    if text[start:close_brace].strip():
        return text[:close_brace] + "\n" + inner + line + "\n" + header_indent + text[close_brace:]
    return text[:start] + inner + line + "\n" + text[start:]


def _first_child_indent(text: str, open_brace: int, close_brace: int) -> Optional[str]:
    for line in text[open_brace + 1:close_brace].split("\n")[1:]:
        if line.strip():
            return re.match(r"[ \t]*", line).group(0)
    return None


def ensure_dependency(text: str, artifact_pattern: str, declaration: str) -> str:
    """Ensure one dependency line for the artifact, replacing a different version in place."""
    match = _dependency_line_pattern(artifact_pattern).search(text)
    if match:
        current = text[match.end(1):match.end()].rstrip()
        if current == declaration:
            return text
        return text[:match.end(1)] + declaration + text[match.end():]
    block = _dependencies_block(text)
    if block is None:
        return append_block(text, "dependencies {\n    " + declaration + "\n}")
    return _insert_before_close(text, block[0], block[1], declaration)


def ensure_single_dependency(text: str, artifact_pattern: str, declaration: str) -> str:
    """Like ``ensure_dependency`` but removes every other declaration matching the pattern."""
    pattern = _dependency_line_pattern(artifact_pattern)
    matches = list(pattern.finditer(text))
    if len(matches) <= 1:
        return ensure_dependency(text, artifact_pattern, declaration)
    keep = next((m for m in matches if text[m.end(1):m.end()].rstrip() == declaration), matches[0])
    pieces: List[str] = []
    cursor = 0
    for match in matches:
        if match is keep:
            continue
        end = line_end(text, match.start())
        pieces.append(text[cursor:match.start()])
        cursor = end + 1 if end < len(text) else end
    pieces.append(text[cursor:])
    trimmed = collapse_blank_runs("".join(pieces))
    return ensure_dependency(trimmed, artifact_pattern, declaration)


def maven_repository_line(url: str, kts: bool) -> str:
    if kts:
        return f'maven {{ url = uri("{url}") }}'
    return f"maven {{ url '{url}' }}"


def _scoped_repositories(text: str, scopes: Sequence[str]) -> Optional[Tuple[int, int]]:
    for scope in scopes:
        for match in re.finditer(rf"\b{re.escape(scope)}\s*\{{", text):
            scope_open = match.end() - 1
            scope_close = find_matching(text, scope_open)
            if scope_close is None:
                continue
            repositories = GRADLE_REPOSITORIES_PATTERN.search(text, scope_open, scope_close)
            if repositories:
                open_brace = repositories.end() - 1
                close_brace = find_matching(text, open_brace)
                if close_brace is not None:
                    return open_brace, close_brace
    return None


def _buildscript_range(text: str) -> Optional[Tuple[int, int]]:
    match = re.search(r"\bbuildscript\s*\{", text)
    if not match:
        return None
    close = find_matching(text, match.end() - 1)
    return (match.start(), close) if close is not None else None


def ensure_maven_repository(text: str, url: str, kts: bool, fallback_scope: str = "allprojects") -> str:
    """Add the maven repository to the dependency-resolution repositories block."""
    if url in text:
        return text
    line = maven_repository_line(url, kts)
    block = _scoped_repositories(text, GRADLE_REPOSITORY_SCOPES)
    if block is None:
        buildscript = _buildscript_range(text)
        for match in GRADLE_REPOSITORIES_PATTERN.finditer(text):
            if buildscript and buildscript[0] <= match.start() <= buildscript[1]:
                continue
            close_brace = find_matching(text, match.end() - 1)
            if close_brace is not None:
                block = (match.end() - 1, close_brace)
                break
    if block is None:
        return append_block(
            text,
            f"{fallback_scope} {{\n    repositories {{\n        {line}\n    }}\n}}",
        )
    return _insert_before_close(text, block[0], block[1], line)


def detect_target_sdk(text: str) -> Optional[int]:
    for pattern in TARGET_SDK_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))
    return None
