"""
Smartech Integrator - Planner.

Scans the project and runs the rule module of every requested part, in
``base, push, px`` order. Changes are concatenated as produced; an id that
two modules both emit stays duplicated.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from .config import normalize_options, resolve_module_inputs
from .models import Change, IntegrationOptions, IntegrationPlan
from .rules import RULE_MODULES, RuleContext
from .scanner import scan_project

logger = logging.getLogger(__name__)


def plan_integration(options: IntegrationOptions) -> IntegrationPlan:
    """Compute every change the requested integration needs. Never writes."""
    options = normalize_options(options)
    root = Path(options.root_path)
    scan = scan_project(options.root_path)
    logger.info("Planning %s for %s (platforms: %s)", "+".join(options.parts), options.app_platform,
                ", ".join(scan.platforms) or "none")

    changes: List[Change] = []
    for part in options.parts:
        module = RULE_MODULES.get((options.app_platform, part))
        if module is None:
            logger.warning("No rules for %s/%s", options.app_platform, part)
            continue
        inputs = resolve_module_inputs(options.app_platform, part, options.inputs, root)
        produced = module.run(RuleContext(scan=scan, root=root, inputs=inputs))
        advisories = sum(1 for change in produced if change.is_advisory)
        logger.info("%s/%s: %d changes (%d manual)", options.app_platform, part, len(produced), advisories)
        changes.extend(produced)

    return IntegrationPlan(scan=scan, parts=list(options.parts), changes=changes)
