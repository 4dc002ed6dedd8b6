"""Native Android PX (Hansel nudges) rules."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..android import resolve_layout
from ..config import NativePxInputs
from ..constants import (
    HANSEL_APPLICATION_IMPORTS,
    HANSEL_DEBUG_JAVA,
    HANSEL_DEBUG_KOTLIN,
    HANSEL_DEBUG_PATTERN,
    HANSEL_DEEPLINK_JAVA,
    HANSEL_DEEPLINK_KOTLIN,
    HANSEL_DEEPLINK_LISTENER_PATTERN,
    HANSEL_INTERNAL_EVENT_JAVA,
    HANSEL_INTERNAL_EVENT_KOTLIN,
    HANSEL_LISTENER_PATTERN,
    META_HANSEL_APP_ID,
    META_HANSEL_APP_KEY,
    META_USE_ENCRYPTION,
    PX_ARTIFACT,
    PX_ARTIFACT_PATTERN,
    PX_COMPOSE_ARTIFACT,
    PX_INTENT_SNIPPET,
    SMARTECH_INIT_CALL_PATTERN,
    SMARTECH_TRACK_CALL_PATTERN,
)
from ..models import Change
from ..mutators import jvm
from ..mutators.gradle import dependency_declaration
from ..utils import read_text
from .common import gradle_dependency, is_kts, manifest_meta, px_intent, source_edit
from .context import ChangeSet, RuleContext
from .react_native_px import pair_test_device

logger = logging.getLogger(__name__)

HOOK_ANCHORS = (SMARTECH_TRACK_CALL_PATTERN, SMARTECH_INIT_CALL_PATTERN)


def px_artifact(ui_type: str) -> str:
    """Compose (or mixed) UIs need the compose flavour of the nudges SDK."""
    return PX_ARTIFACT if ui_type == "xml" else PX_COMPOSE_ARTIFACT


def run(context: RuleContext) -> List[Change]:
    inputs: NativePxInputs = context.inputs
    layout = resolve_layout(context.root)
    changes = ChangeSet("px")

    app_gradle = layout.app_gradle()
    if app_gradle is not None:
        artifact = px_artifact(inputs.native_px_ui_type)
        gradle_dependency(
            changes,
            "native-px-dependency",
            app_gradle,
            PX_ARTIFACT_PATTERN,
            dependency_declaration("implementation", artifact, inputs.px_sdk_version, is_kts(app_gradle)),
            f"Add {artifact.split(':')[1]} dependency",
            single=True,
        )
    manifest_meta(changes, "native-px-meta-hansel_app_id", layout.manifest, META_HANSEL_APP_ID, inputs.hansel_app_id)
    manifest_meta(
        changes, "native-px-meta-hansel_app_key", layout.manifest, META_HANSEL_APP_KEY, inputs.hansel_app_key
    )
    manifest_meta(
        changes,
        "native-px-meta-smt_use_encryption",
        layout.manifest,
        META_USE_ENCRYPTION,
        "true" if inputs.use_sdk_encryption else "false",
    )

    located = px_intent(
        changes, "native-px-manifest-intent-filter", layout.manifest, inputs.main_activity_path, inputs.px_scheme
    )
    if inputs.px_scheme and not located:
        changes.advisory(
            "native-px-intent-filter-manual",
            "PX intent-filter not injected",
            "Could not locate the launcher or MainActivity in AndroidManifest.xml; add the PX scheme "
            "intent-filter manually.",
            layout.manifest,
            snippet=PX_INTENT_SNIPPET,
        )

    _main_activity_pairing(changes, context.root, inputs.main_activity_path)
    _application_hooks(changes, context.root, inputs.application_class_path)
    return changes.changes


def _main_activity_pairing(changes: ChangeSet, root: Path, activity_path: Optional[Path]) -> None:
    if activity_path is None:
        changes.advisory(
            "native-px-mainactivity-path-missing",
            "MainActivity path missing for PX pairing",
            "Provide mainActivityPath to call Hansel.pairTestDevice.",
            root,
        )
        return
    if not activity_path.is_file():
        changes.advisory(
            "native-px-mainactivity-not-found",
            "MainActivity not found for PX pairing",
            f"mainActivityPath {activity_path} does not exist.",
            activity_path,
        )
        return
    pair_test_device(changes, "native-px-mainactivity-pairing", activity_path)


def hansel_blocks(source: str, kotlin: bool) -> List[str]:
    """The Hansel hook statements missing from ``source``, blank-line separated."""
    candidates = (
        (HANSEL_LISTENER_PATTERN, HANSEL_INTERNAL_EVENT_KOTLIN if kotlin else HANSEL_INTERNAL_EVENT_JAVA),
        (HANSEL_DEEPLINK_LISTENER_PATTERN, HANSEL_DEEPLINK_KOTLIN if kotlin else HANSEL_DEEPLINK_JAVA),
        (HANSEL_DEBUG_PATTERN, HANSEL_DEBUG_KOTLIN if kotlin else HANSEL_DEBUG_JAVA),
    )
    lines: List[str] = []
    for pattern, block in candidates:
        if pattern.search(source):
            continue
        if lines:
            lines.append("")
        lines.extend(block)
    return lines


def ensure_application_hooks(source: str, kotlin: bool) -> str:
    lines = hansel_blocks(source, kotlin)
    if not lines:
        return source
    span = jvm.find_method(source, "onCreate")
    if span is None:
        method = jvm.on_create_method(kotlin, False, lines)
        return jvm.add_member(jvm.ensure_class_body(source), method)
    return jvm.insert_in_method(source, span, [""] + lines, HOOK_ANCHORS)


def _application_hooks(changes: ChangeSet, root: Path, app_path: Optional[Path]) -> None:
    if app_path is None:
        changes.advisory(
            "native-px-application-path-missing",
            "Application class path missing for PX listeners",
            "Provide applicationClassPath to register the Hansel listeners and debug logs.",
            root,
        )
        return
    if not app_path.is_file():
        changes.advisory(
            "native-px-application-not-found",
            "Application class not found for PX hooks",
            f"applicationClassPath {app_path} does not exist.",
            app_path,
        )
        return
    source = read_text(app_path)
    kotlin = jvm.is_kotlin_path(app_path)
    updated = ensure_application_hooks(source, kotlin)
    if updated != source:
        updated = jvm.ensure_imports(updated, HANSEL_APPLICATION_IMPORTS, kotlin)
    source_edit(
        changes,
        "native-px-application-hooks",
        "Register Hansel listeners in Application",
        f"Forwards Hansel events to Smartech, registers the Hansel deeplink listener and enables "
        f"debug logs in {app_path.name}.onCreate.",
        app_path,
        source,
        updated,
    )
