"""
React Native base SDK rules.

Wires ``com.netcore.android:smartech-sdk`` and ``smartech-base-react-native``
into the ``android/`` project: Gradle setup, Application initialization,
manifest meta-data, backup rules and the Smartech deeplink.
"""
from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

from ..android import LAYOUT_NESTED, AndroidLayout, build_layout, find_application_class, find_launcher_source
from ..config import ReactNativeBaseInputs
from ..constants import (
    APPLICATION_BASES,
    BASE_ARTIFACT,
    BASE_DEEPLINK_SNIPPET,
    BASE_VERSION_PROPERTY,
    CONTEXT_IMPORT,
    DEBUG_LEVEL_PATTERN,
    DEEPLINK_CHECK_PATTERN,
    DEEPLINK_LINES_JAVA,
    DEEPLINK_LINES_KOTLIN,
    FALLBACK_PACKAGE,
    INIT_SDK_PATTERN,
    META_APP_ID,
    META_AUTO_FETCH_LOCATION,
    PACKAGE_JSON,
    RN_BASE_PACKAGE,
    RN_BASE_PLUGIN_IMPORT,
    RN_BASE_PLUGIN_PATTERN,
    RN_INIT_LINES_JAVA,
    RN_INIT_LINES_KOTLIN,
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
    package_dependency,
    source_edit,
)
from .context import ChangeSet, RuleContext

logger = logging.getLogger(__name__)

INIT_MARKERS = (INIT_SDK_PATTERN, DEBUG_LEVEL_PATTERN, TRACK_INSTALL_PATTERN, RN_BASE_PLUGIN_PATTERN)
APPLICATION_IMPORTS = (WEAK_REFERENCE_IMPORT, SMARTECH_IMPORT, RN_BASE_PLUGIN_IMPORT, CONTEXT_IMPORT)


def run(context: RuleContext) -> List[Change]:
    inputs: ReactNativeBaseInputs = context.inputs
    layout = build_layout(context.root, LAYOUT_NESTED)
    changes = ChangeSet("base")

    ensure_maven_repository(changes, layout)
    gradle_property(
        changes,
        "android-gradle-properties-smartech",
        layout.gradle_properties,
        BASE_VERSION_PROPERTY,
        inputs.base_sdk_version,
    )
    app_gradle = layout.app_gradle()
    if app_gradle is not None:
        gradle_dependency(
            changes,
            "android-add-smartech-dependency",
            app_gradle,
            re.escape(BASE_ARTIFACT),
            property_dependency_declaration("implementation", BASE_ARTIFACT, BASE_VERSION_PROPERTY, is_kts(app_gradle)),
            "Add Smartech base SDK dependency",
        )
    package_dependency(
        changes, "rn-add-smartech-base", context.root / PACKAGE_JSON, RN_BASE_PACKAGE, inputs.rn_base_version
    )

    if layout.java_root.is_dir():
        _application_init(changes, layout)
    else:
        changes.advisory(
            "android-no-java-root",
            "Android sources not found",
            "android/app/src/main/java does not exist; add the Smartech initialization to your "
            "Application class manually.",
            layout.main_dir,
            snippet="\n".join(RN_INIT_LINES_JAVA),
        )

    manifest_meta(changes, "android-manifest-metadata-appid", layout.manifest, META_APP_ID, inputs.smartech_app_id)
    manifest_meta(
        changes,
        "android-manifest-metadata-smt_is_auto_fetched_location",
        layout.manifest,
        META_AUTO_FETCH_LOCATION,
        flag_value(inputs.auto_fetch_location),
    )
    backup_configuration(changes, "android", layout)
    _deeplink(changes, layout, inputs.deeplink_scheme)
    return changes.changes


def ensure_maven_repository(changes: ChangeSet, layout: AndroidLayout) -> None:
    if layout.settings_gradle_kts.is_file():
        maven_repository(changes, "android-add-maven-repo", layout.settings_gradle_kts)
        return
    build_script = first_existing([layout.root_build_gradle, layout.root_build_gradle_kts])
    if build_script is not None:
        maven_repository(changes, "android-add-maven-repo-build-gradle", build_script)
    elif layout.settings_gradle.is_file():
        maven_repository(changes, "android-add-maven-repo", layout.settings_gradle)


def _application_init(changes: ChangeSet, layout: AndroidLayout) -> None:
    app_path = find_application_class(layout.source_roots(), APPLICATION_BASES)
    if app_path is None:
        _create_application(changes, layout)
        return
    source = read_text(app_path)
    kotlin = jvm.is_kotlin_path(app_path)
    groups = group_statements(RN_INIT_LINES_KOTLIN if kotlin else RN_INIT_LINES_JAVA, INIT_MARKERS)
    updated = ensure_on_create_statements(source, groups, kotlin)
    if updated != source:
        updated = jvm.ensure_imports(updated, APPLICATION_IMPORTS, kotlin)
    source_edit(
        changes,
        "android-inject-oncreate",
        "Initialize Smartech in Application.onCreate",
        f"Initializes the SDK, enables debug logs, tracks installs and registers the React Native "
        f"plugin in {app_path.name}.",
        app_path,
        source,
        updated,
    )


def _create_application(changes: ChangeSet, layout: AndroidLayout) -> None:
    package = manifest_package(read_text_if_exists(layout.manifest) or "") or FALLBACK_PACKAGE
    path = layout.java_root.joinpath(*package.split(".")) / "SmartechApplication.java"
    body = "\n".join("        " + line for line in RN_INIT_LINES_JAVA)
    imports = "\n".join(f"import {name};" for name in ("android.app.Application",) + APPLICATION_IMPORTS)
    content = (
        f"package {package};\n\n"
        f"{imports}\n\n"
        "public class SmartechApplication extends Application {\n"
        "    @Override\n"
        "    public void onCreate() {\n"
        "        super.onCreate();\n"
        f"{body}\n"
        "    }\n"
        "}\n"
    )
    changes.edit(
        "android-create-application",
        "Create SmartechApplication",
        "No Application subclass was found; creates one that initializes Smartech.",
        path,
        None,
        content,
        kind="create",
    )
    application_name(changes, "android-manifest-application-name", layout.manifest, f"{package}.SmartechApplication")


def _deeplink(changes: ChangeSet, layout: AndroidLayout, scheme: str) -> None:
    launcher = find_launcher_source(layout)
    if launcher is None:
        changes.advisory(
            "android-launcher-activity-missing",
            "Launcher activity not found",
            "Could not locate the MAIN/LAUNCHER activity source; add the deeplink check and "
            "intent-filter manually.",
            layout.manifest,
            snippet=BASE_DEEPLINK_SNIPPET,
        )
        return
    _activity_deeplink(changes, launcher)
    deeplink_intent(changes, "android-manifest-deeplink-intent", layout.manifest, launcher, scheme)


def _activity_deeplink(changes: ChangeSet, launcher: Path) -> None:
    source = read_text(launcher)
    if DEEPLINK_CHECK_PATTERN.search(source):
        return
    kotlin = jvm.is_kotlin_path(launcher)
    lines = DEEPLINK_LINES_KOTLIN if kotlin else DEEPLINK_LINES_JAVA
    updated = ensure_activity_lines(source, lines, DEEPLINK_CHECK_PATTERN, kotlin)
    if updated != source:
        updated = jvm.ensure_imports(updated, (WEAK_REFERENCE_IMPORT, SMARTECH_IMPORT), kotlin)
    source_edit(
        changes,
        "android-mainactivity-deeplink",
        "Handle Smartech deeplinks in MainActivity",
        f"Checks isDeepLinkFromSmartech in {launcher.name}.onCreate.",
        launcher,
        source,
        updated,
    )
