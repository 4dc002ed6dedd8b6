"""Flutter mutators: ``pubspec.yaml`` dependencies and Dart entry-point wiring."""
from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from ..constants import (
    DART_APP_WIDGET_PATTERN,
    DART_GO_ROUTER_PATTERN,
    DART_IMPORT_PATTERN,
    DART_MAIN_PATTERN,
    DART_STATE_CLASS_PATTERN,
    PUBSPEC_DEPENDENCIES_PATTERN,
)
from .text import find_matching, indent_block, line_end, line_indent, line_start


def _dependencies_section(text: str) -> Optional[Tuple[int, int]]:
    """(header end, section end) of the top-level ``dependencies:`` mapping."""
    header = PUBSPEC_DEPENDENCIES_PATTERN.search(text)
    if not header:
        return None
    end = len(text)
    for match in re.finditer(r"^\S[^\n]*$", text[header.end():], re.MULTILINE):
        if match.group(0).lstrip().startswith("#"):
            continue
        end = header.end() + match.start()
        break
    return header.end(), end


def pubspec_dependency_version(text: str, name: str) -> Optional[str]:
    section = _dependencies_section(text)
    if section is None:
        return None
    match = re.search(rf"^[ \t]+{re.escape(name)}:[ \t]*([^\n#]*?)[ \t]*$", text[section[0]:section[1]], re.MULTILINE)
    return match.group(1) if match else None


def ensure_pubspec_dependency(text: str, name: str, version: str) -> str:
    section = _dependencies_section(text)
    if section is None:
        body = text if text.endswith("\n") or not text else text + "\n"
        return body + f"\ndependencies:\n  {name}: {version}\n"
    start, end = section
    pattern = re.compile(rf"^([ \t]+{re.escape(name)}:[ \t]*)([^\n#]*?)([ \t]*)$", re.MULTILINE)
    match = pattern.search(text, start, end)
    if match:
        if match.group(2) == version:
            return text
        return text[:match.start(2)] + version + text[match.end(2):]
    child = re.search(r"^([ \t]+)\S", text[start:end], re.MULTILINE)
    indent = child.group(1) if child else "  "
    return text[:start] + f"\n{indent}{name}: {version}" + text[start:]


def has_dart_import(source: str, uri: str) -> bool:
    return bool(re.search(rf"import\s+['\"]{re.escape(uri)}['\"]", source))


def _last_import_end(source: str) -> Optional[int]:
    last = None
    for match in DART_IMPORT_PATTERN.finditer(source):
        last = match.end()
    return last


def ensure_dart_imports(source: str, uris: Sequence[str]) -> str:
    missing = [uri for uri in uris if not has_dart_import(source, uri)]
    if not missing:
        return source
    block = "".join(f"import '{uri}';\n" for uri in missing)
    end = _last_import_end(source)
    if end is None:
        return block + "\n" + source
    return source[:end] + block + source[end:]


def insert_after_imports(source: str, block: str) -> str:
    """Insert a top-level declaration after the import section."""
    end = _last_import_end(source)
    if end is None:
        return block + source
    return source[:end] + "\n" + block.rstrip("\n") + "\n" + source[end:]


def find_main_body(source: str) -> Optional[Tuple[int, int]]:
    match = DART_MAIN_PATTERN.search(source)
    if not match:
        return None
    close = find_matching(source, match.end() - 1)
    if close is None:
        return None
    return match.end() - 1, close


def find_state_class(source: str) -> Optional[Tuple[int, int]]:
    match = DART_STATE_CLASS_PATTERN.search(source)
    if not match:
        return None
    close = find_matching(source, match.end() - 1)
    if close is None:
        return None
    return match.end() - 1, close


def insert_at_block_start(source: str, open_brace: int, lines: Sequence[str], indent: str) -> str:
    position = line_end(source, open_brace)
    return source[:position] + "\n" + indent_block(lines, indent) + source[position:]


def insert_before_block_end(source: str, close_brace: int, block: str) -> str:
    start = line_start(source, close_brace)
    if source[start:close_brace].strip():
        return source[:close_brace] + block + source[close_brace:]
    return source[:start] + block + source[start:]


def _call_end(source: str, open_paren: int) -> Optional[int]:
    return find_matching(source, open_paren, "(", ")")


def wrap_app_widget(source: str, wrapper: str) -> str:
    """Wrap the first returned app widget: ``return Wrapper(child: App(...));``."""
    if re.search(rf"\b{re.escape(wrapper)}\s*\(", source):
        return source
    pattern = re.compile(r"return\s+(?=(?:MaterialApp|CupertinoApp|WidgetsApp)(?:\.router)?\s*\()")
    match = pattern.search(source)
    if not match:
        return source
    widget = DART_APP_WIDGET_PATTERN.match(source, match.end())
    open_paren = widget.end() - 1
    close_paren = _call_end(source, open_paren)
    if close_paren is None:
        return source
    indent = line_indent(source, match.start())
    call = source[match.end():close_paren + 1]
    call_lines = call.split("\n")
    shifted = [call_lines[0]] + ["  " + line if line.strip() else line for line in call_lines[1:]]
    wrapped = (
        f"return {wrapper}(\n"
        f"{indent}  child: " + "\n".join(shifted) + ",\n"
        f"{indent})"
    )
    return source[:match.start()] + wrapped + source[close_paren + 1:]


def ensure_navigator_observer(source: str) -> str:
    """Register the PX navigation observer on GoRouter or the app widget."""
    if "PxNavigationObserver" in source:
        return source
    router = DART_GO_ROUTER_PATTERN.search(source)
    if router:
        return _insert_first_argument(source, router.end() - 1, "observers: [PxNavigationObserver.instance],")
    widget = DART_APP_WIDGET_PATTERN.search(source)
    if widget:
        return _insert_first_argument(source, widget.end() - 1, "navigatorObservers: [PxNavigationObserver()],")
    return source


def _insert_first_argument(source: str, open_paren: int, argument: str) -> str:
    close_paren = _call_end(source, open_paren)
    following = source[open_paren + 1:close_paren] if close_paren is not None else ""
    child = re.search(r"\n([ \t]+)\S", following)
    if child is None:
        separator = " " if following.strip() else ""
        return source[:open_paren + 1] + argument + separator + source[open_paren + 1:]
    return source[:open_paren + 1] + "\n" + child.group(1) + argument + source[open_paren + 1:]


def statements_missing(body: str, candidates: Sequence[Tuple[re.Pattern, Sequence[str]]]) -> List[str]:
    lines: List[str] = []
    for marker, block in candidates:
        if not marker.search(body):
            lines.extend(block)
    return lines
