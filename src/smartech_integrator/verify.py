"""
Smartech Integrator - Verify-retry loop.

After applying, re-plan and re-apply whatever selected changes the new plan
still proposes, up to a fixed attempt budget. Changes that never converge
surface in ``remaining`` instead of looping.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .models import Change, IntegrationOptions, VerifyResult
from .patcher import apply_changes
from .planner import plan_integration

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 2


def _pending(changes: Sequence[Change], selected_ids: Optional[Sequence[str]]) -> List[Change]:
    if selected_ids is None:
        return list(changes)
    wanted = set(selected_ids)
    return [change for change in changes if change.id in wanted]


def apply_and_verify(
    changes: Sequence[Change],
    options: IntegrationOptions,
    selected_ids: Optional[Sequence[str]] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> VerifyResult:
    result = VerifyResult(results=apply_changes(changes, options.dry_run))
    if options.dry_run:
        return result

    while result.attempts < max_attempts:
        pending = _pending(plan_integration(options).changes, selected_ids)
        if not pending:
            break
        result.attempts += 1
        logger.info("Retry %d: %d changes still planned", result.attempts, len(pending))
        result.retry_results.extend(apply_changes(pending, False))

    remaining = _pending(plan_integration(options).changes, selected_ids)
    result.remaining = [change.id for change in remaining]
    result.remaining_changes = remaining
    if remaining:
        logger.info("%d changes remain after %d retries", len(remaining), result.attempts)
    return result
