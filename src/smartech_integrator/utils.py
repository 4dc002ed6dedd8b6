from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

logger = logging.getLogger(__name__)

SKIPPED_DIRECTORIES = {"build", ".gradle", ".idea", "node_modules", ".git", ".dart_tool"}
SOURCE_ERRORS = "surrogateescape"


def is_present(value: Any) -> bool:
    """True for non-None values that are not blank strings."""
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def read_text(path: Path) -> str:
    """Read a text file without newline translation.

    Bytes that are not valid UTF-8 decode to surrogate escapes, so legacy
    Latin-1 sources can still be scanned and are written back byte for byte.
    """
    with path.open("r", encoding="utf-8", errors=SOURCE_ERRORS, newline="") as fp:
        return fp.read()


def read_text_if_exists(path: Path) -> Optional[str]:
    if not path.is_file():
        return None
    return read_text(path)


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", errors=SOURCE_ERRORS, newline="") as fp:
        fp.write(content)


def read_json_if_exists(path: Path) -> Optional[Any]:
    """Return parsed JSON, or None when the file is missing or malformed."""
    raw = read_text_if_exists(path)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Ignoring malformed JSON in %s", path)
        return None


def first_existing(paths: Sequence[Path]) -> Optional[Path]:
    for candidate in paths:
        if candidate.exists():
            return candidate
    return None


def walk_files(root: Path, suffixes: Sequence[str]) -> Iterator[Path]:
    """Yield files under ``root`` with one of ``suffixes``, in a stable order."""
    if not root.is_dir():
        return
    for current, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(name for name in dirnames if name not in SKIPPED_DIRECTORIES)
        for name in sorted(filenames):
            if name.endswith(tuple(suffixes)):
                yield Path(current) / name


def list_source_files(roots: Sequence[Path]) -> List[Path]:
    files: List[Path] = []
    for root in roots:
        files.extend(walk_files(root, (".java", ".kt")))
    return files


def resolve_input_path(root: Path, value: Optional[str]) -> Optional[Path]:
    """Resolve a user-supplied path against the project root."""
    if value is None or not value.strip():
        return None
    candidate = Path(value.strip()).expanduser()
    if candidate.is_absolute():
        return candidate
    return root / candidate
