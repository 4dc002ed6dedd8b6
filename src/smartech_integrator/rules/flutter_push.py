"""
Flutter push rules.

Adds the push SDK and pub package, initializes ``SmartechPushPlugin`` right
after the base plugin, and wires Firebase messaging into ``main.dart``.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Pattern, Sequence, Tuple

from ..android import LAYOUT_NESTED, AndroidLayout, build_layout, find_application_class
from ..config import FlutterPushInputs
from ..constants import (
    DART_BACKGROUND_HANDLER,
    DART_BACKGROUND_REGISTRATION,
    DART_DEEPLINK_LINES,
    DART_INIT_STATE_PATTERN,
    DART_ON_MESSAGE_LINES,
    DART_PUSH_IMPORTS,
    DART_REGISTER_TOKEN_CALL,
    DART_REGISTER_TOKEN_METHOD,
    DART_SUPER_INIT_STATE_PATTERN,
    FLUTTER_APPLICATION_BASES,
    FLUTTER_BASE_PLUGIN_CALL_PATTERN,
    FLUTTER_PUSH_INIT_SNIPPET,
    FLUTTER_PUSH_PLUGIN_IMPORT,
    FLUTTER_PUSH_PLUGIN_INIT_JAVA,
    FLUTTER_PUSH_PLUGIN_INIT_KOTLIN,
    FLUTTER_PUSH_PLUGIN_PATTERN,
    FLUTTER_PUSH_PUB,
    FLUTTER_PUSH_STATE_SNIPPET,
    META_AUTO_ASK_PERMISSION,
    PUBSPEC_YAML,
    PUSH_ARTIFACT,
    PUSH_VERSION_PROPERTY,
)
from ..models import Change
from ..mutators import dart, jvm
from ..mutators.gradle import property_dependency_declaration
from ..mutators.text import find_matching, indent_block, line_end, line_indent
from ..utils import read_text
from .common import flag_value, gradle_dependency, gradle_property, is_kts, manifest_meta, pubspec_dependency
from .context import CONFIDENCE_LOW, CONFIDENCE_MEDIUM, ChangeSet, RuleContext

logger = logging.getLogger(__name__)

INIT_STATE_STATEMENTS: Sequence[Tuple[Pattern[str], Sequence[str]]] = (
    (re.compile(r"_registerPushToken\(\)\s*;"), (DART_REGISTER_TOKEN_CALL,)),
    (re.compile(r"FirebaseMessaging\.onMessage\.listen"), DART_ON_MESSAGE_LINES),
    (re.compile(r"\.onHandleDeeplink\("), DART_DEEPLINK_LINES),
)
BACKGROUND_HANDLER_PATTERN = re.compile(r"firebaseMessagingBackgroundHandler\s*\(\s*RemoteMessage")
REGISTER_METHOD_PATTERN = re.compile(r"_registerPushToken\s*\(\s*\)\s*async")


def run(context: RuleContext) -> List[Change]:
    inputs: FlutterPushInputs = context.inputs
    layout = build_layout(context.root, LAYOUT_NESTED)
    changes = ChangeSet("push")

    gradle_property(
        changes,
        "flutter-gradle-properties-smartech-push",
        layout.gradle_properties,
        PUSH_VERSION_PROPERTY,
        inputs.push_sdk_version,
    )
    app_gradle = layout.app_gradle()
    if app_gradle is not None:
        gradle_dependency(
            changes,
            "flutter-add-smartech-push-dependency",
            app_gradle,
            re.escape(PUSH_ARTIFACT),
            property_dependency_declaration("api", PUSH_ARTIFACT, PUSH_VERSION_PROPERTY, is_kts(app_gradle)),
            "Add Smartech push SDK dependency",
        )
    pubspec_dependency(
        changes,
        "flutter-pubspec-smartech-push",
        context.root / PUBSPEC_YAML,
        FLUTTER_PUSH_PUB,
        inputs.flutter_push_sdk_version,
    )

    if layout.source_roots():
        _application_push_init(changes, layout)
    else:
        changes.advisory(
            "flutter-push-android-no-src",
            "Android sources not found",
            "Initialize SmartechPushPlugin in your Application class after the base plugin.",
            layout.main_dir,
            snippet=FLUTTER_PUSH_INIT_SNIPPET,
        )

    manifest_meta(
        changes,
        "flutter-manifest-metadata-smt_is_auto_ask_notification_permission",
        layout.manifest,
        META_AUTO_ASK_PERMISSION,
        flag_value(inputs.auto_ask_notification_permission),
    )
    _main_dart(changes, inputs.main_dart_path)
    return changes.changes


def _application_push_init(changes: ChangeSet, layout: AndroidLayout) -> None:
    app_path = find_application_class(layout.source_roots(), FLUTTER_APPLICATION_BASES)
    if app_path is None:
        changes.advisory(
            "flutter-push-app-missing",
            "Application class not found",
            "No Application subclass exists yet; apply the base changes first, then re-run the plan.",
            layout.main_dir,
            snippet=FLUTTER_PUSH_INIT_SNIPPET,
        )
        return
    source = read_text(app_path)
    if FLUTTER_PUSH_PLUGIN_PATTERN.search(source):
        return
    base_call = FLUTTER_BASE_PLUGIN_CALL_PATTERN.search(source)
    if base_call is None:
        changes.advisory(
            "flutter-push-app-base-missing",
            "Base plugin initialization not found",
            f"{app_path.name} does not call SmartechBasePlugin.initializePlugin; add it, then the push "
            "plugin initialization right after it.",
            app_path,
            snippet=FLUTTER_PUSH_INIT_SNIPPET,
        )
        return
    kotlin = jvm.is_kotlin_path(app_path)
    line = FLUTTER_PUSH_PLUGIN_INIT_KOTLIN if kotlin else FLUTTER_PUSH_PLUGIN_INIT_JAVA
    updated = jvm.insert_lines_after(source, base_call.end() - 1, [line], line_indent(source, base_call.start()))
    updated = jvm.ensure_imports(updated, [FLUTTER_PUSH_PLUGIN_IMPORT], kotlin)
    changes.edit(
        "flutter-application-push-init",
        "Initialize the Flutter push plugin",
        f"Calls SmartechPushPlugin.initializePlugin after the base plugin in {app_path.name}.",
        app_path,
        source,
        updated,
        kind="insert",
        confidence=CONFIDENCE_MEDIUM,
    )


def _main_dart(changes: ChangeSet, main_dart: Optional[Path]) -> None:
    if main_dart is None or not main_dart.is_file():
        changes.advisory(
            "flutter-main-dart-missing",
            "main.dart not found",
            "Set mainDartPath to your Dart entry point to wire Firebase messaging automatically.",
            main_dart or Path("lib/main.dart"),
            snippet=DART_BACKGROUND_HANDLER + FLUTTER_PUSH_STATE_SNIPPET,
        )
        return
    source = read_text(main_dart)
    updated = dart.ensure_dart_imports(source, DART_PUSH_IMPORTS)
    if not BACKGROUND_HANDLER_PATTERN.search(updated):
        updated = dart.insert_after_imports(updated, DART_BACKGROUND_HANDLER)
    updated = _register_background_handler(updated)

    state = dart.find_state_class(updated)
    if state is None:
        changes.advisory(
            "flutter-main-dart-stateful-missing",
            "No State class in main.dart",
            "Register the push token and listeners in the initState of your root State class.",
            main_dart,
            snippet=FLUTTER_PUSH_STATE_SNIPPET,
            confidence=CONFIDENCE_LOW,
        )
    else:
        updated = ensure_init_state(updated)
        updated = _ensure_register_method(updated)

    changes.edit(
        "flutter-main-dart-push",
        "Wire Firebase messaging in main.dart",
        "Adds the background handler, foreground handling, token registration and the Smartech "
        "deeplink callback.",
        main_dart,
        source,
        updated,
        kind="insert",
        confidence=CONFIDENCE_MEDIUM,
    )


def _register_background_handler(source: str) -> str:
    if DART_BACKGROUND_REGISTRATION in source:
        return source
    body = dart.find_main_body(source)
    if body is None:
        return source
    indent = line_indent(source, body[0]) + "  "
    return dart.insert_at_block_start(source, body[0], [DART_BACKGROUND_REGISTRATION], indent)


def ensure_init_state(source: str) -> str:
    """Add the missing push statements to ``initState`` of the first State class."""
    state = dart.find_state_class(source)
    if state is None:
        return source
    class_open, class_close = state
    class_text = source[class_open:class_close]
    pending = dart.statements_missing(class_text, INIT_STATE_STATEMENTS)
    if not pending:
        return source

    signature = DART_INIT_STATE_PATTERN.search(source, class_open, class_close)
    if signature is None:
        member_indent = line_indent(source, class_open) + "  "
        method = ["@override", "void initState() {", "  super.initState();"]
        method += ["  " + line if line else "" for line in pending] + ["}"]
        position = line_end(source, class_open)
        return source[:position] + "\n" + indent_block(method, member_indent) + "\n" + source[position:]

    open_brace = source.find("{", signature.end())
    close_brace = find_matching(source, open_brace) if open_brace != -1 else None
    if close_brace is None:
        return source
    statement_indent = line_indent(source, signature.start()) + "  "
    anchor = DART_SUPER_INIT_STATE_PATTERN.search(source, open_brace, close_brace)
    position = line_end(source, anchor.end() - 1 if anchor else open_brace)
    return source[:position] + "\n" + indent_block(pending, statement_indent) + source[position:]


def _ensure_register_method(source: str) -> str:
    if REGISTER_METHOD_PATTERN.search(source):
        return source
    state = dart.find_state_class(source)
    if state is None:
        return source
    return dart.insert_before_block_end(source, state[1], DART_REGISTER_TOKEN_METHOD)
