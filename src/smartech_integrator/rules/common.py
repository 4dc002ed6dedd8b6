"""
Rule steps shared by the platform modules.

Each step reads its target file from disk, runs one mutator, and records a
change (or an advisory) on the given ``ChangeSet``. Steps never see each
other's output; the patcher composes their diffs at apply time.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Pattern, Sequence

from ..android import AndroidLayout
from ..constants import (
    BACKUP_31_FILE_NAME,
    BACKUP_31_XML,
    BACKUP_ATTRIBUTES,
    BACKUP_FILE_NAME,
    BACKUP_XML,
    SMARTECH_DEEPLINK_HOST,
    SMARTECH_MAVEN_URL,
)
from ..mutators import dart, gradle, js, jvm, manifest
from ..mutators.manifest import ActivityBlock
from ..utils import read_text_if_exists
from .context import CONFIDENCE_LOW, CONFIDENCE_MEDIUM, ChangeSet

logger = logging.getLogger(__name__)


def flag_value(flag: Optional[bool]) -> Optional[str]:
    if flag is None:
        return None
    return "1" if flag else "0"


def is_kts(path: Path) -> bool:
    return path.suffix == ".kts"


# =============================================================================
# GRADLE
# =============================================================================

def maven_repository(changes: ChangeSet, change_id: str, path: Path) -> bool:
    original = read_text_if_exists(path)
    if original is None:
        logger.debug("Skipping maven repository: %s not found", path)
        return False
    scope = "dependencyResolutionManagement" if path.name.startswith("settings") else "allprojects"
    updated = gradle.ensure_maven_repository(original, SMARTECH_MAVEN_URL, is_kts(path), scope)
    return changes.edit(
        change_id,
        "Add Smartech maven repository",
        f"Adds {SMARTECH_MAVEN_URL} to the Gradle repositories in {path.name}.",
        path,
        original,
        updated,
        kind="insert",
    )


def gradle_property(changes: ChangeSet, change_id: str, path: Path, key: str, value: str) -> bool:
    original = read_text_if_exists(path)
    current = gradle.property_value(original, key) if original is not None else None
    updated = gradle.ensure_property(original or "", key, value)
    if original is None:
        kind = "create"
    else:
        kind = "update" if current is not None else "insert"
    return changes.edit(
        change_id,
        f"Set {key}",
        f"Sets {key}={value} in gradle.properties.",
        path,
        original,
        updated,
        kind=kind,
    )


def gradle_dependency(
    changes: ChangeSet,
    change_id: str,
    path: Optional[Path],
    artifact_pattern: str,
    declaration: str,
    title: str,
    single: bool = False,
) -> bool:
    if path is None:
        return False
    original = read_text_if_exists(path)
    if original is None:
        return False
    existed = gradle.has_dependency(original, artifact_pattern)
    if single:
        updated = gradle.ensure_single_dependency(original, artifact_pattern, declaration)
    else:
        updated = gradle.ensure_dependency(original, artifact_pattern, declaration)
    return changes.edit(
        change_id,
        title,
        f"Declares `{declaration}` in {path.parent.name}/{path.name}.",
        path,
        original,
        updated,
        kind="update" if existed else "insert",
    )


# =============================================================================
# PACKAGE MANIFESTS (package.json / pubspec.yaml)
# =============================================================================

def package_dependency(changes: ChangeSet, change_id: str, path: Path, name: str, version: str) -> bool:
    original = read_text_if_exists(path)
    if original is None:
        logger.debug("Skipping %s: %s not found", name, path)
        return False
    updated = js.ensure_package_dependency(original, name, version)
    if updated is None:
        logger.warning("Skipping %s: %s is not valid JSON", name, path)
        return False
    existed = js.package_dependency_version(original, name) is not None
    return changes.edit(
        change_id,
        f"Add {name}",
        f"Adds {name}@{version} to package.json dependencies.",
        path,
        original,
        updated,
        kind="update" if existed else "insert",
    )


def pubspec_dependency(changes: ChangeSet, change_id: str, path: Path, name: str, version: str) -> bool:
    original = read_text_if_exists(path)
    if original is None:
        logger.debug("Skipping %s: %s not found", name, path)
        return False
    existed = dart.pubspec_dependency_version(original, name) is not None
    updated = dart.ensure_pubspec_dependency(original, name, version)
    return changes.edit(
        change_id,
        f"Add {name}",
        f"Adds {name}: {version} to pubspec.yaml dependencies.",
        path,
        original,
        updated,
        kind="update" if existed else "insert",
    )


# =============================================================================
# ANDROID MANIFEST
# =============================================================================

def manifest_meta(
    changes: ChangeSet,
    change_id: str,
    manifest_path: Path,
    name: str,
    value: Optional[str],
) -> bool:
    if value is None:
        return False
    original = read_text_if_exists(manifest_path)
    if original is None:
        return False
    existed = manifest.meta_data_value(original, name) is not None
    updated = manifest.ensure_meta_data(original, name, value)
    return changes.edit(
        change_id,
        f"Add {name} meta-data",
        f'Sets <meta-data android:name="{name}" android:value="{value}" /> in AndroidManifest.xml.',
        manifest_path,
        original,
        updated,
        kind="update" if existed else "insert",
    )


def application_name(changes: ChangeSet, change_id: str, manifest_path: Path, class_name: str) -> bool:
    original = read_text_if_exists(manifest_path)
    if original is None:
        return False
    current = manifest.application_attribute(original, "android:name")
    if current is not None:
        if current != class_name:
            changes.advisory(
                change_id,
                "Register Application class",
                f"<application> already names {current}; point it at {class_name} or call the "
                "Smartech initialization from that class.",
                manifest_path,
                snippet=f'<application android:name="{class_name}" ...>',
            )
        return False
    updated = manifest.ensure_application_attributes(original, [("android:name", class_name)])
    return changes.edit(
        change_id,
        "Register Application class",
        f"Sets android:name={class_name} on <application>.",
        manifest_path,
        original,
        updated,
    )


def backup_configuration(changes: ChangeSet, prefix: str, layout: AndroidLayout) -> None:
    """Backup rule files, the <application> attributes, and warnings for conflicting values."""
    manifest_text = read_text_if_exists(layout.manifest)
    if manifest_text is not None:
        allow = manifest.application_attribute(manifest_text, "android:allowBackup")
        if allow is not None and allow.lower() == "false":
            changes.advisory(
                f"{prefix}-manifest-allowbackup-warning",
                "Backup is disabled",
                'android:allowBackup is "false"; Smartech needs backup enabled to keep the device GUID '
                "across reinstalls. It will be set to true.",
                layout.manifest,
                confidence=CONFIDENCE_LOW,
            )
        for attribute, expected, suffix in (
            ("android:fullBackupContent", BACKUP_ATTRIBUTES[1][1], "backupcontent"),
            ("android:dataExtractionRules", BACKUP_ATTRIBUTES[2][1], "datarules"),
        ):
            current = manifest.application_attribute(manifest_text, attribute)
            if current is not None and current != expected:
                changes.advisory(
                    f"{prefix}-manifest-{suffix}-warning",
                    f"Existing {attribute}",
                    f"{attribute} points to {current}; merge its rules into {expected} "
                    "before applying, it will be replaced.",
                    layout.manifest,
                    confidence=CONFIDENCE_LOW,
                )

    for change_id, file_name, content, marker in (
        (f"{prefix}-backup-xml", BACKUP_FILE_NAME, BACKUP_XML, "</full-backup-content>"),
        (f"{prefix}-backup-xml-31", BACKUP_31_FILE_NAME, BACKUP_31_XML, "</cloud-backup>"),
    ):
        path = layout.res_xml_dir / file_name
        original = read_text_if_exists(path)
        if original is None:
            updated = content
        else:
            updated = _ensure_backup_includes(original, marker)
        changes.edit(
            change_id,
            f"Backup rules {file_name}",
            f"Keeps the Smartech GUID preferences in {file_name}.",
            path,
            original,
            updated,
        )

    if manifest_text is not None:
        updated = manifest.ensure_application_attributes(manifest_text, BACKUP_ATTRIBUTES)
        changes.edit(
            f"{prefix}-manifest-backup-attrs",
            "Enable backup rules",
            "Sets allowBackup, fullBackupContent and dataExtractionRules on <application>.",
            layout.manifest,
            manifest_text,
            updated,
            kind="update",
        )


def _ensure_backup_includes(text: str, closing_tag: str) -> str:
    position = text.find(closing_tag)
    if position == -1:
        return text
    indent = re.match(r"[ \t]*", text[text.rfind("\n", 0, position) + 1:]).group(0) + "    "
    additions = [
        f'{indent}<include domain="sharedpref" path="{name}" />\n'
        for name in ("smt_guid_preferences.xml", "smt_preferences_guid.xml")
        if name not in text
    ]
    if not additions:
        return text
    line_start = text.rfind("\n", 0, position) + 1
    return text[:line_start] + "".join(additions) + text[line_start:]


def manifest_activity_for_source(manifest_text: str, source_path: Optional[Path]) -> Optional[ActivityBlock]:
    """Activity element matching the class in ``source_path``, else the launcher."""
    if source_path is not None and source_path.is_file():
        source = read_text_if_exists(source_path) or ""
        class_name = source_path.stem
        class_package = jvm.source_package(source)
        manifest_package = manifest.manifest_package(manifest_text)
        candidates = [class_name, f".{class_name}"]
        if class_package:
            candidates.append(f"{class_package}.{class_name}")
        if manifest_package:
            candidates.append(f"{manifest_package}.{class_name}")
        block = manifest.find_activity(manifest_text, candidates)
        if block is not None:
            return block
    return manifest.find_launcher_activity(manifest_text)


def deeplink_intent(
    changes: ChangeSet,
    change_id: str,
    manifest_path: Path,
    activity_source: Optional[Path],
    scheme: Optional[str],
) -> bool:
    """Returns False when no activity could be matched."""
    original = read_text_if_exists(manifest_path)
    if original is None:
        return False
    block = manifest_activity_for_source(original, activity_source)
    if block is None:
        return False
    if not scheme:
        return True
    updated = manifest.ensure_deeplink_filter(original, block, scheme, SMARTECH_DEEPLINK_HOST)
    changes.edit(
        change_id,
        "Add deeplink intent-filter",
        f"Handles {scheme}://{SMARTECH_DEEPLINK_HOST} links on the launcher activity.",
        manifest_path,
        original,
        updated,
        kind="insert",
    )
    return True


def px_intent(
    changes: ChangeSet,
    change_id: str,
    manifest_path: Path,
    activity_source: Optional[Path],
    scheme: Optional[str],
) -> bool:
    original = read_text_if_exists(manifest_path)
    if original is None:
        return False
    block = manifest_activity_for_source(original, activity_source)
    if block is None:
        return False
    if not scheme:
        return True
    updated = manifest.ensure_px_filter(original, block, scheme)
    changes.edit(
        change_id,
        "Add PX intent-filter",
        f"Lets the PX dashboard open the app through {scheme}:// for test-device pairing.",
        manifest_path,
        original,
        updated,
        kind="insert",
        confidence=CONFIDENCE_MEDIUM,
    )
    return True


# =============================================================================
# JAVA / KOTLIN STATEMENTS
# =============================================================================

@dataclass(frozen=True)
class StatementGroup:
    marker: Pattern[str]
    lines: Sequence[str]


def group_statements(lines: Sequence[str], markers: Sequence[Pattern[str]]) -> List[StatementGroup]:
    """Group template lines by the marker detecting them; comments ride with the next statement."""
    groups: List[StatementGroup] = []
    comments: List[str] = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("//"):
            comments.append(line)
            continue
        marker = next((pattern for pattern in markers if pattern.search(line)), None)
        if marker is None:
            marker = re.compile(re.escape(stripped))
        if groups and groups[-1].marker is marker and not comments:
            groups[-1] = StatementGroup(marker, list(groups[-1].lines) + [line])
        else:
            groups.append(StatementGroup(marker, comments + [line]))
        comments = []
    return groups


def missing_statements(body: str, groups: Sequence[StatementGroup]) -> List[str]:
    lines: List[str] = []
    for group in groups:
        if not group.marker.search(body):
            lines.extend(group.lines)
    return lines


def ensure_on_create_statements(
    source: str,
    groups: Sequence[StatementGroup],
    kotlin: bool,
    anchors: Sequence[Pattern[str]] = (),
    activity: bool = False,
) -> str:
    """Add the missing statement groups to ``onCreate``, creating the override if needed."""
    span = jvm.find_method(source, "onCreate")
    if span is None:
        all_lines = [line for group in groups for line in group.lines]
        updated = jvm.add_member(jvm.ensure_class_body(source), jvm.on_create_method(kotlin, activity, all_lines))
        if activity and updated != source:
            updated = jvm.ensure_imports(updated, ["android.os.Bundle"], kotlin)
        return updated
    pending = missing_statements(span.body(source), groups)
    if not pending:
        return source
    return jvm.insert_in_method(source, span, pending, anchors)


def ensure_activity_lines(
    source: str,
    lines: Sequence[str],
    marker: Pattern[str],
    kotlin: bool,
) -> str:
    """Add ``lines`` to an activity's ``onCreate`` unless ``marker`` is already in the file."""
    if marker.search(source):
        return source
    span = jvm.find_method(source, "onCreate")
    if span is None:
        updated = jvm.add_member(jvm.ensure_class_body(source), jvm.on_create_method(kotlin, True, lines))
        if updated != source:
            updated = jvm.ensure_imports(updated, ["android.os.Bundle"], kotlin)
        return updated
    return jvm.insert_in_method(source, span, list(lines))


def source_edit(
    changes: ChangeSet,
    change_id: str,
    title: str,
    summary: str,
    path: Path,
    original: str,
    updated: str,
    confidence: float = CONFIDENCE_MEDIUM,
) -> bool:
    return changes.edit(change_id, title, summary, path, original, updated, kind="insert", confidence=confidence)

