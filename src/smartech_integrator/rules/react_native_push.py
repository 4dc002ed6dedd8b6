"""React Native push rules: push SDK, Firebase messaging and the App-level listeners."""
from __future__ import annotations

import logging
import re
from typing import List

from ..android import LAYOUT_NESTED, build_layout
from ..config import ReactNativePushInputs
from ..constants import (
    APP_ENTRY_CANDIDATES,
    META_AUTO_ASK_PERMISSION,
    PACKAGE_JSON,
    PUSH_ARTIFACT,
    PUSH_VERSION_PROPERTY,
    RN_FIREBASE_MESSAGING_PACKAGE,
    RN_PUSH_EFFECT_BEHAVIOURS,
    RN_PUSH_EFFECT_SNIPPET,
    RN_PUSH_IMPORTS,
    RN_PUSH_PACKAGE,
)
from ..models import Change
from ..mutators import js
from ..mutators.gradle import property_dependency_declaration
from ..utils import first_existing, read_text
from .common import flag_value, gradle_dependency, gradle_property, is_kts, manifest_meta, package_dependency
from .context import CONFIDENCE_MEDIUM, ChangeSet, RuleContext
from .native_push import firebase_service

logger = logging.getLogger(__name__)


def run(context: RuleContext) -> List[Change]:
    inputs: ReactNativePushInputs = context.inputs
    layout = build_layout(context.root, LAYOUT_NESTED)
    changes = ChangeSet("push")

    gradle_property(
        changes,
        "android-gradle-properties-smartech-push",
        layout.gradle_properties,
        PUSH_VERSION_PROPERTY,
        inputs.push_sdk_version,
    )
    app_gradle = layout.app_gradle()
    if app_gradle is not None:
        gradle_dependency(
            changes,
            "android-add-smartech-push-dependency",
            app_gradle,
            re.escape(PUSH_ARTIFACT),
            property_dependency_declaration("implementation", PUSH_ARTIFACT, PUSH_VERSION_PROPERTY, is_kts(app_gradle)),
            "Add Smartech push SDK dependency",
        )
    package_json = context.root / PACKAGE_JSON
    package_dependency(changes, "rn-add-smartech-push", package_json, RN_PUSH_PACKAGE, inputs.rn_push_version)
    package_dependency(
        changes, "rn-add-firebase-messaging", package_json, RN_FIREBASE_MESSAGING_PACKAGE, inputs.firebase_version
    )
    manifest_meta(
        changes,
        "android-manifest-metadata-smt_is_auto_ask_notification_permission",
        layout.manifest,
        META_AUTO_ASK_PERMISSION,
        flag_value(inputs.auto_ask_notification_permission),
    )
    _app_push_logic(changes, context)
    if inputs.firebase_messaging_service_path is not None:
        firebase_service(changes, "android", layout, inputs.firebase_messaging_service_path)
    return changes.changes


def _app_push_logic(changes: ChangeSet, context: RuleContext) -> None:
    entry = first_existing([context.root / name for name in APP_ENTRY_CANDIDATES])
    if entry is None:
        changes.advisory(
            "rn-app-push-logic",
            "Wire push listeners in App",
            "No App.tsx, App.jsx or App.js found at the project root; register the push token and "
            "listeners in your root component.",
            context.root,
            snippet=RN_PUSH_EFFECT_SNIPPET,
        )
        return
    source = read_text(entry)
    if not js.missing_behaviours(source, RN_PUSH_EFFECT_BEHAVIOURS):
        return
    updated = source
    for line in RN_PUSH_IMPORTS:
        updated = js.ensure_js_import(updated, line)
    updated = js.ensure_react_hook_import(updated, "useEffect")
    updated = js.ensure_effect_block(updated, RN_PUSH_EFFECT_BEHAVIOURS)
    changes.edit(
        "rn-app-push-logic",
        "Wire push listeners in App",
        f"Registers the FCM token, the Smartech deeplink listener and foreground handling in {entry.name}.",
        entry,
        source,
        updated,
        kind="insert",
        confidence=CONFIDENCE_MEDIUM,
    )
