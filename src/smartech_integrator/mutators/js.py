"""React Native mutators: ``package.json`` dependencies and App component wiring."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from ..constants import JSX_RETURN_PATTERN, REACT_IMPORT_PATTERN, REACT_NAMED_IMPORT_PATTERN
from .text import append_block, indent_block

logger = logging.getLogger(__name__)

_IMPORT_LINE = re.compile(r"^import\b[^\n]*$", re.MULTILINE)

Behaviour = Tuple[Pattern[str], Sequence[str]]

_DEPENDENCY_SECTIONS = ("dependencies", "devDependencies")


def _json_indent(raw: str) -> int:
    match = re.search(r"\n([ ]+)\"", raw)
    return len(match.group(1)) if match else 2


def package_dependency_version(raw: str, name: str) -> Optional[str]:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    for section in _DEPENDENCY_SECTIONS:
        value = (data.get(section) or {}).get(name)
        if value is not None:
            return value
    return None


def ensure_package_dependency(raw: str, name: str, version: str) -> Optional[str]:
    """Pin ``name`` at ``version``.

    A differing version is replaced in the map that already lists ``name``;
    otherwise the entry goes under ``dependencies``. Returns the text unchanged
    when either map already pins that version, and None when the document
    cannot be parsed.
    """
    try:
        data: Dict[str, Any] = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.debug("package.json is not valid JSON: %s", exc)
        return None
    if not isinstance(data, dict):
        return None
    sections = [section for section in _DEPENDENCY_SECTIONS if isinstance(data.get(section), dict)]
    if any(data[section].get(name) == version for section in sections):
        return raw
    target = next((section for section in sections if name in data[section]), "dependencies")
    entries = data.get(target)
    if not isinstance(entries, dict):
        entries = {}
    entries[name] = version
    data[target] = entries
    rendered = json.dumps(data, indent=_json_indent(raw), ensure_ascii=False)
    return rendered + "\n" if raw.endswith("\n") or not raw else rendered


def ensure_js_import(source: str, line: str) -> str:
    if line in source:
        return source
    imports = list(_IMPORT_LINE.finditer(source))
    if not imports:
        return line + "\n" + source
    last = imports[-1]
    end = _statement_end(source, last.start())
    return source[:end] + "\n" + line + source[end:]


def _statement_end(source: str, start: int) -> int:
    """End of a (possibly multi-line) import statement starting at ``start``."""
    semicolon = re.compile(r"from\s+['\"][^'\"]+['\"];?|^import\s+['\"][^'\"]+['\"];?", re.MULTILINE)
    match = semicolon.search(source, start)
    if match:
        return match.end()
    newline = source.find("\n", start)
    return len(source) if newline == -1 else newline


def ensure_react_hook_import(source: str, hook: str) -> str:
    """Make sure ``hook`` is imported from ``react``."""
    named = REACT_NAMED_IMPORT_PATTERN.search(source)
    if named and hook in [item.strip() for item in named.group(1).split(",")]:
        return source
    default = REACT_IMPORT_PATTERN.search(source)
    if default:
        statement = default.group(0)
        if default.group(1):
            names = [item.strip() for item in default.group(1).strip(", {}").split(",") if item.strip()]
            if hook in names:
                return source
            names.append(hook)
            updated = re.sub(r"\{[^}]*\}", "{ " + ", ".join(names) + " }", statement, count=1)
        else:
            updated = re.sub(r"React\s*", "React, { " + hook + " } ", statement, count=1)
        return source[:default.start()] + updated + source[default.end():]
    if named:
        names = [item.strip() for item in named.group(1).split(",") if item.strip()]
        names.append(hook)
        statement = named.group(0)
        updated = re.sub(r"\{[^}]*\}", "{ " + ", ".join(names) + " }", statement, count=1)
        return source[:named.start()] + updated + source[named.end():]
    return f"import {{ {hook} }} from 'react';\n" + source


def missing_behaviours(source: str, behaviours: Sequence[Behaviour]) -> List[Sequence[str]]:
    return [lines for marker, lines in behaviours if not marker.search(source)]


def ensure_effect_block(source: str, behaviours: Sequence[Behaviour]) -> str:
    """Emit one ``useEffect`` holding every behaviour whose marker is missing."""
    missing = missing_behaviours(source, behaviours)
    if not missing:
        return source
    body: List[str] = []
    for index, lines in enumerate(missing):
        if index:
            body.append("")
        body.extend("  " + line for line in lines)
    block = ["useEffect(() => {"] + body + ["}, []);"]
    anchor = JSX_RETURN_PATTERN.search(source)
    if anchor:
        indent = anchor.group(1)
        rendered = indent_block(block, indent) + "\n\n"
        return source[:anchor.start()] + rendered + source[anchor.start():]
    return append_block(source, "\n".join(block))
