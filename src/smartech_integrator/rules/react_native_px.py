"""React Native PX (Hansel nudges) rules."""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional

from ..android import LAYOUT_NESTED, AndroidLayout, build_layout, find_launcher_source, locate_class_source
from ..config import ReactNativePxInputs
from ..constants import (
    APP_ENTRY_CANDIDATES,
    FALLBACK_PACKAGE,
    HANSEL_IMPORT,
    META_HANSEL_APP_ID,
    META_HANSEL_APP_KEY,
    PACKAGE_JSON,
    PAIR_TEST_DEVICE_JAVA,
    PAIR_TEST_DEVICE_KOTLIN,
    PAIR_TEST_DEVICE_PATTERN,
    PX_ARTIFACT,
    PX_VERSION_PROPERTY,
    RN_PX_EFFECT_BEHAVIOURS,
    RN_PX_IMPORT,
    RN_PX_PACKAGE,
)
from ..models import Change
from ..mutators import js, jvm, manifest
from ..mutators.gradle import property_dependency_declaration
from ..utils import first_existing, read_text, read_text_if_exists
from .common import ensure_activity_lines, gradle_dependency, gradle_property, is_kts, package_dependency, px_intent
from .context import CONFIDENCE_MEDIUM, ChangeSet, RuleContext

logger = logging.getLogger(__name__)


def run(context: RuleContext) -> List[Change]:
    inputs: ReactNativePxInputs = context.inputs
    layout = build_layout(context.root, LAYOUT_NESTED)
    changes = ChangeSet("px")

    gradle_property(
        changes,
        "android-gradle-properties-smartech-px",
        layout.gradle_properties,
        PX_VERSION_PROPERTY,
        inputs.px_sdk_version,
    )
    app_gradle = layout.app_gradle()
    if app_gradle is not None:
        gradle_dependency(
            changes,
            "android-add-smartech-px-dependency",
            app_gradle,
            re.escape(PX_ARTIFACT),
            property_dependency_declaration("implementation", PX_ARTIFACT, PX_VERSION_PROPERTY, is_kts(app_gradle)),
            "Add Smartech PX SDK dependency",
        )
    package_dependency(changes, "rn-add-smartech-px", context.root / PACKAGE_JSON, RN_PX_PACKAGE, inputs.rn_px_version)
    hansel_meta(changes, "android-manifest-hansel-meta", layout.manifest, inputs.hansel_app_id, inputs.hansel_app_key)

    main_activity = _main_activity(layout)
    px_intent(changes, "android-manifest-px-intent", layout.manifest, main_activity, inputs.px_scheme)
    _app_px_logic(changes, context.root)
    if main_activity is not None:
        pair_test_device(changes, "android-mainactivity-hansel", main_activity)
    return changes.changes


def hansel_meta(
    changes: ChangeSet,
    change_id: str,
    manifest_path: Path,
    app_id: Optional[str],
    app_key: Optional[str],
) -> bool:
    """One change carrying whichever of the Hansel id/key were given."""
    original = read_text_if_exists(manifest_path)
    if original is None:
        return False
    updated = original
    if app_id:
        updated = manifest.ensure_meta_data(updated, META_HANSEL_APP_ID, app_id)
    if app_key:
        updated = manifest.ensure_meta_data(updated, META_HANSEL_APP_KEY, app_key)
    return changes.edit(
        change_id,
        "Add Hansel app id and key",
        "Sets HANSEL_APP_ID and HANSEL_APP_KEY meta-data in AndroidManifest.xml.",
        manifest_path,
        original,
        updated,
        kind="insert",
    )


def _main_activity(layout: AndroidLayout) -> Optional[Path]:
    launcher = find_launcher_source(layout)
    if launcher is not None:
        return launcher
    package = manifest.manifest_package(read_text_if_exists(layout.manifest) or "") or FALLBACK_PACKAGE
    return locate_class_source(layout.source_roots(), f"{package}.MainActivity")


def pair_test_device(changes: ChangeSet, change_id: str, activity: Path) -> bool:
    source = read_text(activity)
    kotlin = jvm.is_kotlin_path(activity)
    line = PAIR_TEST_DEVICE_KOTLIN if kotlin else PAIR_TEST_DEVICE_JAVA
    updated = ensure_activity_lines(source, [line], PAIR_TEST_DEVICE_PATTERN, kotlin)
    if updated != source:
        updated = jvm.ensure_imports(updated, [HANSEL_IMPORT], kotlin)
    return changes.edit(
        change_id,
        "Pair PX test devices",
        f"Calls Hansel.pairTestDevice with the launch intent data in {activity.name}.",
        activity,
        source,
        updated,
        kind="insert",
        confidence=CONFIDENCE_MEDIUM,
    )


def _app_px_logic(changes: ChangeSet, root: Path) -> None:
    entry = first_existing([root / name for name in APP_ENTRY_CANDIDATES])
    if entry is None:
        logger.debug("Skipping Hansel listeners: no App entry file under %s", root)
        return
    source = read_text(entry)
    if not js.missing_behaviours(source, RN_PX_EFFECT_BEHAVIOURS):
        return
    updated = js.ensure_js_import(source, RN_PX_IMPORT)
    updated = js.ensure_react_hook_import(updated, "useEffect")
    updated = js.ensure_effect_block(updated, RN_PX_EFFECT_BEHAVIOURS)
    changes.edit(
        "rn-app-px-logic",
        "Register Hansel listeners in App",
        f"Adds the Hansel event and deeplink listeners to {entry.name}.",
        entry,
        source,
        updated,
        kind="insert",
        confidence=CONFIDENCE_MEDIUM,
    )
