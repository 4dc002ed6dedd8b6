"""Shared state handed to every rule module, and the change collector they fill."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional

from ..diff import create_unified_diff
from ..models import Change, ProjectScan

logger = logging.getLogger(__name__)

CONFIDENCE_HIGH = 0.9
CONFIDENCE_MEDIUM = 0.7
CONFIDENCE_LOW = 0.4
CONFIDENCE_NONE = 0.0


@dataclass(frozen=True)
class RuleContext:
    scan: ProjectScan
    root: Path
    inputs: Any


class ChangeSet:
    """Collects the changes of one rule module run, in step order.

    ``edit`` records a change only when the mutator actually altered the
    text; ``advisory`` records a manual step with an empty patch.
    """

    def __init__(self, module: str):
        self.module = module
        self.changes: List[Change] = []

    def edit(
        self,
        change_id: str,
        title: str,
        summary: str,
        path: Path,
        original: Optional[str],
        updated: str,
        kind: Optional[str] = None,
        confidence: float = CONFIDENCE_HIGH,
    ) -> bool:
        if original is not None and original == updated:
            return False
        if kind is None:
            kind = "create" if original is None else "update"
        before = original or ""
        self.changes.append(
            Change(
                id=change_id,
                title=title,
                summary=summary,
                file_path=str(path),
                kind=kind,
                patch=create_unified_diff(str(path), before, updated),
                confidence=confidence,
                module=self.module,
                original_content=before,
                new_content=updated,
            )
        )
        return True

    def advisory(
        self,
        change_id: str,
        title: str,
        summary: str,
        path: Path,
        snippet: Optional[str] = None,
        confidence: float = CONFIDENCE_NONE,
        kind: str = "update",
    ) -> None:
        logger.debug("Manual step %s: %s", change_id, summary)
        self.changes.append(
            Change(
                id=change_id,
                title=title,
                summary=summary,
                file_path=str(path),
                kind=kind,
                patch="",
                confidence=confidence,
                module=self.module,
                manual_snippet=snippet,
            )
        )
