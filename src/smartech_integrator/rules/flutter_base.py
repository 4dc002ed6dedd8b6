"""
Flutter base SDK rules.

Same Android wiring as React Native, with ``api`` dependencies, the
``smartech_base`` pub package and ``SmartechBasePlugin.initializePlugin``.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

from ..android import LAYOUT_NESTED, AndroidLayout, build_layout, find_application_class, find_launcher_source
from ..config import FlutterBaseInputs
from ..constants import (
    BASE_ARTIFACT,
    BASE_DEEPLINK_SNIPPET,
    BASE_VERSION_PROPERTY,
    DEBUG_LEVEL_PATTERN,
    DEEPLINK_CHECK_PATTERN,
    DEEPLINK_LINES_JAVA,
    DEEPLINK_LINES_KOTLIN,
    FALLBACK_PACKAGE,
    FLUTTER_APPLICATION_BASES,
    FLUTTER_BASE_PLUGIN_CALL_PATTERN,
    FLUTTER_BASE_PLUGIN_IMPORT,
    FLUTTER_BASE_PLUGIN_INIT_JAVA,
    FLUTTER_BASE_PLUGIN_PATTERN,
    FLUTTER_BASE_PUB,
    FLUTTER_INIT_LINES_JAVA,
    FLUTTER_INIT_LINES_KOTLIN,
    INIT_SDK_PATTERN,
    META_APP_ID,
    META_AUTO_FETCH_LOCATION,
    PUBSPEC_YAML,
    SMARTECH_IMPORT,
    TRACK_INSTALL_PATTERN,
    WEAK_REFERENCE_IMPORT,
)
from ..models import Change
from ..mutators import jvm
from ..mutators.gradle import property_dependency_declaration
from ..mutators.manifest import manifest_package
from ..utils import first_existing, read_text, read_text_if_exists
from .common import (
    application_name,
    backup_configuration,
    deeplink_intent,
    ensure_activity_lines,
    ensure_on_create_statements,
    flag_value,
    gradle_dependency,
    gradle_property,
    group_statements,
    is_kts,
    manifest_meta,
    maven_repository,
    pubspec_dependency,
    source_edit,
)
from .context import ChangeSet, RuleContext

logger = logging.getLogger(__name__)

INIT_MARKERS = (INIT_SDK_PATTERN, DEBUG_LEVEL_PATTERN, TRACK_INSTALL_PATTERN, FLUTTER_BASE_PLUGIN_PATTERN)
APPLICATION_IMPORTS = (WEAK_REFERENCE_IMPORT, SMARTECH_IMPORT, FLUTTER_BASE_PLUGIN_IMPORT)


def run(context: RuleContext) -> List[Change]:
    inputs: FlutterBaseInputs = context.inputs
    layout = build_layout(context.root, LAYOUT_NESTED)
    changes = ChangeSet("base")

    _maven_repository(changes, layout)
    gradle_property(
        changes,
        "flutter-gradle-properties-smartech",
        layout.gradle_properties,
        BASE_VERSION_PROPERTY,
        inputs.base_sdk_version,
    )
    app_gradle = layout.app_gradle()
    if app_gradle is not None:
        gradle_dependency(
            changes,
            "flutter-add-smartech-dependency",
            app_gradle,
            re.escape(BASE_ARTIFACT),
            property_dependency_declaration("api", BASE_ARTIFACT, BASE_VERSION_PROPERTY, is_kts(app_gradle)),
            "Add Smartech base SDK dependency",
        )
    pubspec_dependency(
        changes,
        "flutter-pubspec-smartech-base",
        context.root / PUBSPEC_YAML,
        FLUTTER_BASE_PUB,
        inputs.flutter_base_sdk_version,
    )

    if layout.source_roots():
        _application_init(changes, layout)
    else:
        changes.advisory(
            "flutter-android-no-java-root",
            "Android sources not found",
            "Neither android/app/src/main/java nor android/app/src/main/kotlin exists; initialize "
            "Smartech in your Application class manually.",
            layout.main_dir,
            snippet="\n".join(FLUTTER_INIT_LINES_KOTLIN),
        )

    manifest_meta(changes, "flutter-manifest-metadata-appid", layout.manifest, META_APP_ID, inputs.smartech_app_id)
    manifest_meta(
        changes,
        "flutter-manifest-metadata-smt_is_auto_fetched_location",
        layout.manifest,
        META_AUTO_FETCH_LOCATION,
        flag_value(inputs.auto_fetch_location),
    )
    backup_configuration(changes, "flutter", layout)
    _deeplink(changes, layout, inputs.deeplink_scheme)
    return changes.changes


def _maven_repository(changes: ChangeSet, layout: AndroidLayout) -> None:
    settings = first_existing([layout.settings_gradle_kts, layout.settings_gradle])
    if settings is not None:
        maven_repository(changes, "flutter-add-maven-repo", settings)
        return
    build_script = first_existing([layout.root_build_gradle, layout.root_build_gradle_kts])
    if build_script is not None:
        maven_repository(changes, "flutter-add-maven-repo-build", build_script)


def normalize_plugin_call(source: str, kotlin: bool) -> str:
    """Java callers need the ``Companion`` accessor for the Kotlin plugin object."""
    if kotlin:
        return source
    return FLUTTER_BASE_PLUGIN_CALL_PATTERN.sub(lambda _: FLUTTER_BASE_PLUGIN_INIT_JAVA, source)


def _application_init(changes: ChangeSet, layout: AndroidLayout) -> None:
    app_path = find_application_class(layout.source_roots(), FLUTTER_APPLICATION_BASES)
    if app_path is None:
        _create_application(changes, layout)
        return
    source = read_text(app_path)
    kotlin = jvm.is_kotlin_path(app_path)
    groups = group_statements(FLUTTER_INIT_LINES_KOTLIN if kotlin else FLUTTER_INIT_LINES_JAVA, INIT_MARKERS)
    updated = normalize_plugin_call(ensure_on_create_statements(source, groups, kotlin), kotlin)
    if updated != source:
        updated = jvm.ensure_imports(updated, APPLICATION_IMPORTS, kotlin)
    source_edit(
        changes,
        "flutter-application-init",
        "Initialize Smartech in Application.onCreate",
        f"Initializes the SDK, enables debug logs, tracks installs and initializes the Flutter "
        f"plugin in {app_path.name}.",
        app_path,
        source,
        updated,
    )


def application_template(package: str, kotlin: bool) -> str:
    lines = FLUTTER_INIT_LINES_KOTLIN if kotlin else FLUTTER_INIT_LINES_JAVA
    if kotlin:
        imports = "\n".join(f"import {name}" for name in ("android.app.Application",) + APPLICATION_IMPORTS)
        body = "\n".join("        " + line for line in lines)
        return (
            f"package {package}\n\n"
            f"{imports}\n\n"
            "class MyApplication : Application() {\n"
            "    override fun onCreate() {\n"
            "        super.onCreate()\n"
            f"{body}\n"
            "    }\n"
            "}\n"
        )
    imports = "\n".join(f"import {name};" for name in ("android.app.Application",) + APPLICATION_IMPORTS)
    body = "\n".join("        " + line for line in lines)
    return (
        f"package {package};\n\n"
        f"{imports}\n\n"
        "public class MyApplication extends Application {\n"
        "    @Override\n"
        "    public void onCreate() {\n"
        "        super.onCreate();\n"
        f"{body}\n"
        "    }\n"
        "}\n"
    )


def _create_application(changes: ChangeSet, layout: AndroidLayout) -> None:
    package = manifest_package(read_text_if_exists(layout.manifest) or "") or FALLBACK_PACKAGE
    kotlin = layout.kotlin_root.is_dir() and not layout.java_root.is_dir()
    root = layout.kotlin_root if kotlin else layout.java_root
    path = root.joinpath(*package.split(".")) / ("MyApplication.kt" if kotlin else "MyApplication.java")
    changes.edit(
        "flutter-create-application",
        "Create MyApplication",
        "No Application subclass was found; creates one that initializes Smartech.",
        path,
        None,
        application_template(package, kotlin),
        kind="create",
    )
    application_name(changes, "flutter-manifest-application-name", layout.manifest, f"{package}.MyApplication")


def _deeplink(changes: ChangeSet, layout: AndroidLayout, scheme: str) -> None:
    launcher = find_launcher_source(layout, flutter=True)
    if launcher is None:
        changes.advisory(
            "flutter-launcher-activity-missing",
            "Launcher activity not found",
            "Could not locate MainActivity; add the deeplink check and intent-filter manually.",
            layout.manifest,
            snippet=BASE_DEEPLINK_SNIPPET,
        )
        return
    _activity_deeplink(changes, launcher)
    deeplink_intent(changes, "flutter-manifest-deeplink-intent", layout.manifest, launcher, scheme)


def _activity_deeplink(changes: ChangeSet, launcher: Path) -> None:
    source = read_text(launcher)
    kotlin = jvm.is_kotlin_path(launcher)
    lines = DEEPLINK_LINES_KOTLIN if kotlin else DEEPLINK_LINES_JAVA
    updated = ensure_activity_lines(source, lines, DEEPLINK_CHECK_PATTERN, kotlin)
    if updated != source:
        updated = jvm.ensure_imports(updated, (WEAK_REFERENCE_IMPORT, SMARTECH_IMPORT), kotlin)
    source_edit(
        changes,
        "flutter-mainactivity-deeplink",
        "Handle Smartech deeplinks in MainActivity",
        f"Checks isDeepLinkFromSmartech in {launcher.name}.onCreate.",
        launcher,
        source,
        updated,
    )
