"""
Smartech Integrator - Patcher.

Applies a batch of planned changes. Every touched file is read once into a
buffer, patched in change order, and written once after the whole batch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Sequence

from .diff import PatchApplyError, apply_unified_diff
from .models import ApplyResult, Change
from .utils import read_text_if_exists, write_text

logger = logging.getLogger(__name__)

MESSAGE_DRY_RUN = "Dry run: no changes applied."
MESSAGE_NO_PATCH = "No patch available for this change."
MESSAGE_FAILED = "Failed to apply patch."
MESSAGE_APPLIED = "Applied change."
MESSAGE_FALLBACK = "Applied change with fallback content."


@dataclass
class _FileBuffer:
    path: Path
    original: str
    current: str
    exists: bool
    dirty: bool = False

    @property
    def pristine(self) -> bool:
        return self.current == self.original


def _load(buffers: Dict[str, _FileBuffer], file_path: str) -> _FileBuffer:
    buffer = buffers.get(file_path)
    if buffer is None:
        path = Path(file_path)
        content = read_text_if_exists(path)
        buffer = _FileBuffer(path=path, original=content or "", current=content or "", exists=content is not None)
        buffers[file_path] = buffer
    return buffer


def apply_changes(changes: Sequence[Change], dry_run: bool = True) -> List[ApplyResult]:
    """Apply ``changes`` in order and return one result per change.

    A patch that no longer matches falls back to the change's full new
    content only while its file is still untouched in this batch. Failures
    never abort the batch; I/O errors propagate.
    """
    if dry_run:
        return [ApplyResult(change.id, False, MESSAGE_DRY_RUN) for change in changes]

    buffers: Dict[str, _FileBuffer] = {}
    results: List[ApplyResult] = []
    for change in changes:
        if not change.patch:
            results.append(ApplyResult(change.id, False, MESSAGE_NO_PATCH))
            continue

        buffer = _load(buffers, change.file_path)
        try:
            buffer.current = apply_unified_diff(buffer.current, change.patch)
        except PatchApplyError as error:
            logger.warning("Patch for %s did not apply to %s: %s", change.id, change.file_path, error)
            if buffer.pristine and change.new_content:
                buffer.current = change.new_content
                buffer.dirty = True
                results.append(ApplyResult(change.id, True, MESSAGE_FALLBACK))
            else:
                results.append(ApplyResult(change.id, False, MESSAGE_FAILED))
            continue
        buffer.dirty = True
        results.append(ApplyResult(change.id, True, MESSAGE_APPLIED))

    for buffer in buffers.values():
        if not buffer.dirty:
            continue
        logger.debug("%s %s", "Writing" if buffer.exists else "Creating", buffer.path)
        write_text(buffer.path, buffer.current)
    return results
