"""
Native Android base SDK rules.

Unlike the cross-platform modules the Application and MainActivity files
are given explicitly. Besides the SDK initialization the Application class
registers a ``DeeplinkReceiver`` for notification-inbox clicks; the
registration variant depends on the app's targetSdk.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional

from ..android import AndroidLayout, resolve_layout
from ..config import NativeBaseInputs
from ..constants import (
    BASE_ARTIFACT,
    BASE_DEEPLINK_SNIPPET,
    BUILD_IMPORT,
    CONTEXT_IMPORT,
    DEBUG_LEVEL_PATTERN,
    DEEPLINK_BRANCH_PATTERN,
    DEEPLINK_CHECK_PATTERN,
    FALLBACK_PACKAGE,
    INIT_SDK_PATTERN,
    INTENT_FILTER_IMPORT,
    LEGACY_RECEIVER_MAX_SDK,
    META_APP_ID,
    META_AUTO_FETCH_LOCATION,
    NATIVE_DEEPLINK_LINES_JAVA,
    NATIVE_DEEPLINK_LINES_KOTLIN,
    NATIVE_INIT_LINES_JAVA,
    NATIVE_INIT_LINES_KOTLIN,
    RECEIVER_ACTION,
    RECEIVER_CLASS_JAVA,
    RECEIVER_CLASS_KOTLIN,
    RECEIVER_CLASS_MARKERS,
    RECEIVER_PLAIN_JAVA_PATTERN,
    RECEIVER_PLAIN_KOTLIN_PATTERN,
    RECEIVER_REGISTRATION_PATTERN,
    RECEIVER_VERSION_GUARD_PATTERN,
    SMARTECH_IMPORT,
    SMARTECH_INIT_CALL_PATTERN,
    SMARTECH_TRACK_CALL_PATTERN,
    TRACK_INSTALL_PATTERN,
    WEAK_REFERENCE_IMPORT,
)
from ..models import Change
from ..mutators import jvm
from ..mutators.gradle import dependency_declaration, detect_target_sdk
from ..mutators.text import indent_block, line_indent
from ..utils import first_existing, read_text, read_text_if_exists
from .common import (
    backup_configuration,
    deeplink_intent,
    ensure_on_create_statements,
    flag_value,
    gradle_dependency,
    group_statements,
    is_kts,
    manifest_meta,
    maven_repository,
    source_edit,
)
from .context import CONFIDENCE_LOW, CONFIDENCE_MEDIUM, ChangeSet, RuleContext

logger = logging.getLogger(__name__)

INIT_MARKERS = (INIT_SDK_PATTERN, DEBUG_LEVEL_PATTERN, TRACK_INSTALL_PATTERN)
APPLICATION_IMPORTS = (WEAK_REFERENCE_IMPORT, CONTEXT_IMPORT, INTENT_FILTER_IMPORT, BUILD_IMPORT, SMARTECH_IMPORT)
RECEIVER_ANCHORS = (SMARTECH_TRACK_CALL_PATTERN, SMARTECH_INIT_CALL_PATTERN)


def run(context: RuleContext) -> List[Change]:
    inputs: NativeBaseInputs = context.inputs
    layout = resolve_layout(context.root)
    changes = ChangeSet("base")

    if inputs.application_class_path is None or inputs.main_activity_path is None:
        changes.advisory(
            "native-input-paths-missing",
            "Application/MainActivity paths missing",
            "Provide both applicationClassPath and mainActivityPath for the native Android base "
            "integration.",
            context.root,
        )
        return changes.changes

    _maven_repository(changes, layout)
    app_gradle = layout.app_gradle()
    if app_gradle is not None:
        gradle_dependency(
            changes,
            "native-base-dependency",
            app_gradle,
            re.escape(BASE_ARTIFACT),
            dependency_declaration("implementation", BASE_ARTIFACT, inputs.base_sdk_version, is_kts(app_gradle)),
            "Add Smartech base SDK dependency",
        )
    manifest_meta(changes, "native-manifest-meta-smt_app_id", layout.manifest, META_APP_ID, inputs.smartech_app_id)
    manifest_meta(
        changes,
        "native-manifest-meta-smt_is_auto_fetched_location",
        layout.manifest,
        META_AUTO_FETCH_LOCATION,
        flag_value(inputs.auto_fetch_location),
    )
    backup_configuration(changes, "native", layout)

    legacy = _uses_legacy_receiver(layout)
    _application_init(changes, inputs.application_class_path, legacy)
    _deeplink_receiver(changes, inputs.application_class_path)
    _main_activity_deeplink(changes, inputs.main_activity_path)
    if not deeplink_intent(
        changes, "native-manifest-deeplink-intent", layout.manifest, inputs.main_activity_path, inputs.deeplink_scheme
    ):
        logger.debug("Skipping deeplink intent-filter: no matching activity in %s", layout.manifest)
    return changes.changes


def _maven_repository(changes: ChangeSet, layout: AndroidLayout) -> None:
    path = first_existing(
        [
            layout.root_build_gradle,
            layout.app_build_gradle,
            layout.settings_gradle,
            layout.root_build_gradle_kts,
            layout.app_build_gradle_kts,
            layout.settings_gradle_kts,
        ]
    )
    if path is not None:
        maven_repository(changes, "native-maven-repo", path)


def _uses_legacy_receiver(layout: AndroidLayout) -> bool:
    for path in (layout.app_build_gradle_kts, layout.app_build_gradle):
        text = read_text_if_exists(path)
        if text is None:
            continue
        target = detect_target_sdk(text)
        if target is not None:
            logger.debug("Detected targetSdk %d in %s", target, path)
            return target <= LEGACY_RECEIVER_MAX_SDK
    return False


# =============================================================================
# APPLICATION CLASS
# =============================================================================

def receiver_registration(kotlin: bool, legacy: bool) -> List[str]:
    """The ``registerReceiver`` call; API 34+ needs the exported flag."""
    end = "" if kotlin else ";"
    plain = f"registerReceiver(deeplinkReceiver, filter){end}"
    if legacy:
        return [plain]
    return [
        "if (Build.VERSION.SDK_INT >= Build.VERSION_CODES.UPSIDE_DOWN_CAKE) {",
        f"    registerReceiver(deeplinkReceiver, filter, Context.RECEIVER_EXPORTED){end}",
        "} else {",
        f"    {plain}",
        "}",
    ]


def receiver_block(kotlin: bool, legacy: bool) -> List[str]:
    if kotlin:
        head = ["val deeplinkReceiver = DeeplinkReceiver()", f'val filter = IntentFilter("{RECEIVER_ACTION}")']
    else:
        head = [
            "DeeplinkReceiver deeplinkReceiver = new DeeplinkReceiver();",
            f'IntentFilter filter = new IntentFilter("{RECEIVER_ACTION}");',
        ]
    return head + receiver_registration(kotlin, legacy)


def has_receiver_registration(source: str) -> bool:
    return RECEIVER_ACTION in source and bool(RECEIVER_REGISTRATION_PATTERN.search(source))


def normalize_receiver_registration(source: str, kotlin: bool, legacy: bool) -> str:
    """Rewrite an existing registration into the variant matching the targetSdk."""
    if legacy:
        match = RECEIVER_VERSION_GUARD_PATTERN.search(source)
        if match is None:
            return source
        return source[:match.start()] + receiver_registration(kotlin, True)[0] + source[match.end():]
    if "RECEIVER_EXPORTED" in source:
        return source
    pattern = RECEIVER_PLAIN_KOTLIN_PATTERN if kotlin else RECEIVER_PLAIN_JAVA_PATTERN
    match = pattern.search(source)
    if match is None:
        return source
    indent = line_indent(source, match.start())
    guarded = indent_block(receiver_registration(kotlin, False), indent).lstrip()
    return source[:match.start()] + guarded + source[match.end():]


def ensure_application_init(source: str, kotlin: bool, legacy: bool) -> str:
    init_lines = NATIVE_INIT_LINES_KOTLIN if kotlin else NATIVE_INIT_LINES_JAVA
    if jvm.find_method(source, "onCreate") is None:
        lines = list(init_lines) + receiver_block(kotlin, legacy)
        return jvm.add_member(jvm.ensure_class_body(source), jvm.on_create_method(kotlin, False, lines))

    updated = ensure_on_create_statements(source, group_statements(init_lines, INIT_MARKERS), kotlin)
    updated = normalize_receiver_registration(updated, kotlin, legacy)
    if has_receiver_registration(updated):
        return updated
    span = jvm.find_method(updated, "onCreate")
    return jvm.insert_in_method(updated, span, receiver_block(kotlin, legacy), RECEIVER_ANCHORS)


def _application_init(changes: ChangeSet, app_path: Path, legacy: bool) -> None:
    if not app_path.is_file():
        changes.advisory(
            "native-application-path-not-found",
            "Application class not found",
            f"applicationClassPath {app_path} does not exist.",
            app_path,
            snippet="\n".join(NATIVE_INIT_LINES_KOTLIN + tuple(receiver_block(True, legacy))),
        )
        return
    source = read_text(app_path)
    kotlin = jvm.is_kotlin_path(app_path)
    updated = ensure_application_init(source, kotlin, legacy)
    if updated != source:
        updated = jvm.ensure_imports(updated, APPLICATION_IMPORTS, kotlin)
    source_edit(
        changes,
        "native-application-init-receiver",
        "Initialize Smartech and register the deeplink receiver",
        f"Ensures the SDK init calls and the DeeplinkReceiver registration in {app_path.name}.onCreate.",
        app_path,
        source,
        updated,
    )


def _deeplink_receiver(changes: ChangeSet, app_path: Path) -> None:
    if not app_path.is_file():
        return
    kotlin = jvm.is_kotlin_path(app_path)
    receiver_path = app_path.parent / ("DeeplinkReceiver.kt" if kotlin else "DeeplinkReceiver.java")
    package = jvm.source_package(read_text(app_path)) or FALLBACK_PACKAGE
    content = (RECEIVER_CLASS_KOTLIN if kotlin else RECEIVER_CLASS_JAVA).format(package=package)

    original = read_text_if_exists(receiver_path)
    if original is None:
        changes.edit(
            "native-deeplink-receiver-create",
            "Create DeeplinkReceiver",
            "Creates the receiver for Smartech deeplink and custom payload callbacks.",
            receiver_path,
            None,
            content,
            kind="create",
            confidence=CONFIDENCE_MEDIUM,
        )
        return
    if all(marker in original for marker in RECEIVER_CLASS_MARKERS):
        return
    changes.edit(
        "native-deeplink-receiver-update",
        "Update DeeplinkReceiver",
        f"{receiver_path.name} lacks the Smartech bundle handling; replaces it with the reference receiver.",
        receiver_path,
        original,
        content,
        kind="update",
        confidence=CONFIDENCE_LOW,
    )


# =============================================================================
# MAIN ACTIVITY
# =============================================================================

def missing_deeplink_lines(source: str, kotlin: bool) -> List[str]:
    template = NATIVE_DEEPLINK_LINES_KOTLIN if kotlin else NATIVE_DEEPLINK_LINES_JAVA
    lines: List[str] = []
    if not DEEPLINK_CHECK_PATTERN.search(source):
        lines.extend(template[:4])
    if not DEEPLINK_BRANCH_PATTERN.search(source):
        lines.extend(template[4:])
    return lines


def _main_activity_deeplink(changes: ChangeSet, activity_path: Optional[Path]) -> None:
    if activity_path is None or not activity_path.is_file():
        changes.advisory(
            "native-mainactivity-path-not-found",
            "MainActivity not found",
            f"mainActivityPath {activity_path} does not exist.",
            activity_path or Path("MainActivity"),
            snippet=BASE_DEEPLINK_SNIPPET,
        )
        return
    source = read_text(activity_path)
    kotlin = jvm.is_kotlin_path(activity_path)
    lines = missing_deeplink_lines(source, kotlin)
    updated = source
    if lines:
        span = jvm.find_method(source, "onCreate")
        if span is None:
            method = jvm.on_create_method(kotlin, True, lines)
            updated = jvm.add_member(jvm.ensure_class_body(source), method)
            updated = jvm.ensure_imports(updated, ["android.os.Bundle"], kotlin)
        else:
            updated = jvm.insert_in_method(source, span, lines)
        updated = jvm.ensure_imports(updated, (WEAK_REFERENCE_IMPORT, SMARTECH_IMPORT), kotlin)
    source_edit(
        changes,
        "native-mainactivity-deeplink",
        "Handle Smartech deeplinks in MainActivity",
        f"Checks isDeepLinkFromSmartech right after super.onCreate in {activity_path.name}.",
        activity_path,
        source,
        updated,
    )
