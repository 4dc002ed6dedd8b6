"""
Flutter PX (Hansel nudges) rules.

Adds ``smartech_nudges`` to the pubspec, generates the PX listener classes
when the app has none, wraps the root app widget in ``SmartechPxWidget`` and
pairs test devices from the launcher activity.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..android import LAYOUT_NESTED, build_layout, find_launcher_source
from ..config import FlutterPxInputs
from ..constants import (
    DART_GENERATED_LISTENER_PATTERNS,
    DART_PX_IMPORTS,
    DART_PX_LISTENER_SUBCLASS_PATTERN,
    DART_PX_LISTENERS,
    DART_PX_REGISTRATIONS,
    FLUTTER_PX_PUB,
    FLUTTER_PX_REGISTRATION_SNIPPET,
    FLUTTER_PX_WIDGET_SNIPPET,
    PUBSPEC_YAML,
    PX_LISTENERS_DART,
    PX_VERSION_PROPERTY,
)
from ..models import Change
from ..mutators import dart
from ..mutators.text import line_indent
from ..utils import read_text, read_text_if_exists, walk_files
from .common import gradle_property, pubspec_dependency, px_intent
from .context import CONFIDENCE_LOW, ChangeSet, RuleContext
from .react_native_px import hansel_meta, pair_test_device

logger = logging.getLogger(__name__)

PX_WIRING_MARKERS = (
    "SmartechPxWidget",
    "PxNavigationObserver",
    "registerPxDeeplinkListener",
    "registerPxInternalEventsListener",
)


def run(context: RuleContext) -> List[Change]:
    inputs: FlutterPxInputs = context.inputs
    layout = build_layout(context.root, LAYOUT_NESTED)
    changes = ChangeSet("px")

    if not layout.source_roots():
        changes.advisory(
            "flutter-px-android-no-src",
            "Android sources not found",
            "Expected android/app/src/main/java or android/app/src/main/kotlin; PX integration needs "
            "the Android sources.",
            layout.main_dir,
        )
        return changes.changes

    gradle_property(
        changes,
        "flutter-gradle-properties-smartech-px",
        layout.gradle_properties,
        PX_VERSION_PROPERTY,
        inputs.px_sdk_version,
    )
    pubspec_dependency(
        changes,
        "flutter-pubspec-smartech-nudges",
        context.root / PUBSPEC_YAML,
        FLUTTER_PX_PUB,
        inputs.flutter_px_sdk_version,
    )
    if inputs.hansel_app_id and inputs.hansel_app_key:
        hansel_meta(
            changes, "flutter-manifest-hansel-meta", layout.manifest, inputs.hansel_app_id, inputs.hansel_app_key
        )

    lib_dir = context.root / "lib"
    create_listeners = not has_px_listeners(lib_dir)
    if create_listeners:
        _listeners_file(changes, lib_dir / PX_LISTENERS_DART)
    register_listeners = create_listeners or has_generated_listeners(lib_dir / PX_LISTENERS_DART)
    _main_dart(changes, inputs.main_dart_path, register_listeners)

    launcher = find_launcher_source(layout, flutter=True)
    if launcher is None:
        logger.debug("Skipping PX intent-filter and pairing: no launcher activity under %s", layout.main_dir)
        return changes.changes
    px_intent(changes, "flutter-manifest-px-intent", layout.manifest, launcher, inputs.px_scheme)
    pair_test_device(changes, "flutter-mainactivity-hansel", launcher)
    return changes.changes


def has_px_listeners(lib_dir: Path) -> bool:
    if not lib_dir.is_dir():
        return False
    for path in walk_files(lib_dir, (".dart",)):
        if DART_PX_LISTENER_SUBCLASS_PATTERN.search(read_text(path)):
            return True
    return False


def has_generated_listeners(path: Path) -> bool:
    """True when ``path`` holds the listener classes this module generates."""
    text = read_text_if_exists(path)
    if text is None:
        return False
    return all(pattern.search(text) for pattern in DART_GENERATED_LISTENER_PATTERNS)


def _listeners_file(changes: ChangeSet, path: Path) -> None:
    original = read_text_if_exists(path)
    if original is None:
        changes.edit(
            "flutter-px-listeners",
            "Add PX listener implementations",
            "Creates the PX deeplink and internal-events listener classes.",
            path,
            None,
            DART_PX_LISTENERS,
            kind="create",
            confidence=CONFIDENCE_LOW,
        )
        return
    imports = [line.split("'")[1] for line in DART_PX_LISTENERS.splitlines() if line.startswith("import ")]
    classes = DART_PX_LISTENERS.split("\n\n", 1)[1]
    updated = dart.ensure_dart_imports(original, imports)
    updated = updated.rstrip("\n") + "\n\n" + classes
    changes.edit(
        "flutter-px-listeners-append",
        "Append PX listener implementations",
        f"Appends the PX deeplink and internal-events listener classes to {path.name}.",
        path,
        original,
        updated,
        kind="insert",
        confidence=CONFIDENCE_LOW,
    )


def _main_dart(changes: ChangeSet, main_dart: Optional[Path], register_listeners: bool) -> None:
    if main_dart is None or not main_dart.is_file():
        changes.advisory(
            "flutter-main-dart-missing",
            "main.dart not found",
            "Set mainDartPath to your Dart entry point to wrap the app in SmartechPxWidget.",
            main_dart or Path("lib/main.dart"),
            snippet=FLUTTER_PX_WIDGET_SNIPPET,
        )
        return
    source = read_text(main_dart)
    imports = list(DART_PX_IMPORTS)
    if register_listeners:
        imports.append(PX_LISTENERS_DART)
    updated = dart.ensure_dart_imports(source, imports)
    updated = dart.wrap_app_widget(updated, "SmartechPxWidget")
    updated = dart.ensure_navigator_observer(updated)
    if register_listeners:
        updated = ensure_px_registrations(updated)

    if updated == source:
        markers = PX_WIRING_MARKERS if register_listeners else PX_WIRING_MARKERS[:2]
        if any(marker not in source for marker in markers):
            changes.advisory(
                "flutter-main-dart-px-missing",
                "PX hooks not injected",
                "Could not find the top-level app widget to wrap; add SmartechPxWidget and the "
                "navigation observer manually.",
                main_dart,
                snippet=FLUTTER_PX_WIDGET_SNIPPET,
            )
    else:
        changes.edit(
            "flutter-main-dart-px",
            "Add Smartech PX setup in main.dart",
            "Wraps the app with SmartechPxWidget, registers the PX navigation observer and the PX listeners.",
            main_dart,
            source,
            updated,
            kind="insert",
            confidence=CONFIDENCE_LOW,
        )

    if not register_listeners:
        if not all(pattern.search(source) for pattern, _ in DART_PX_REGISTRATIONS):
            changes.advisory(
                "flutter-px-listener-registration-missing",
                "PX listener registration missing",
                "PX listener classes exist but are not registered; register them in main().",
                main_dart,
                snippet=FLUTTER_PX_REGISTRATION_SNIPPET,
            )


def ensure_px_registrations(source: str) -> str:
    """Register the generated listeners at the top of ``main()``."""
    body = dart.find_main_body(source)
    if body is None:
        return source
    lines = [line for pattern, line in DART_PX_REGISTRATIONS if not pattern.search(source)]
    if not lines:
        return source
    indent = line_indent(source, body[0]) + "  "
    return dart.insert_at_block_start(source, body[0], lines, indent)
