"""
Smartech Integrator - Android project layout detection.

Locates the Gradle and manifest files of an Android project, whether it is
nested under ``android/`` (React Native, Flutter) or sits at the project
root (native Android), and finds the Application and launcher classes the
rule modules edit.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from .constants import (
    APP_BUILD_GRADLE,
    APP_BUILD_GRADLE_KTS,
    GRADLE_PROPERTIES,
    MANIFEST_FILE,
    SETTINGS_GRADLE,
    SETTINGS_GRADLE_KTS,
)
from .mutators.jvm import class_extending
from .mutators.manifest import find_launcher_activity, manifest_package, resolve_class_name
from .utils import first_existing, list_source_files, read_text, read_text_if_exists

logger = logging.getLogger(__name__)

LAYOUT_NESTED = "nested"
LAYOUT_NATIVE = "native"

_FLUTTER_ACTIVITY_PATTERN = re.compile(r"\bextends\s+FlutterActivity\b|:\s*FlutterActivity\s*\(")


@dataclass(frozen=True)
class AndroidLayout:
    style: str
    android_dir: Path
    app_dir: Path

    @property
    def app_build_gradle(self) -> Path:
        return self.app_dir / APP_BUILD_GRADLE

    @property
    def app_build_gradle_kts(self) -> Path:
        return self.app_dir / APP_BUILD_GRADLE_KTS

    @property
    def root_build_gradle(self) -> Path:
        return self.android_dir / APP_BUILD_GRADLE

    @property
    def root_build_gradle_kts(self) -> Path:
        return self.android_dir / APP_BUILD_GRADLE_KTS

    @property
    def settings_gradle(self) -> Path:
        return self.android_dir / SETTINGS_GRADLE

    @property
    def settings_gradle_kts(self) -> Path:
        return self.android_dir / SETTINGS_GRADLE_KTS

    @property
    def gradle_properties(self) -> Path:
        return self.android_dir / GRADLE_PROPERTIES

    @property
    def main_dir(self) -> Path:
        return self.app_dir / "src" / "main"

    @property
    def manifest(self) -> Path:
        return self.main_dir / MANIFEST_FILE

    @property
    def res_xml_dir(self) -> Path:
        return self.main_dir / "res" / "xml"

    @property
    def java_root(self) -> Path:
        return self.main_dir / "java"

    @property
    def kotlin_root(self) -> Path:
        return self.main_dir / "kotlin"

    def source_roots(self) -> List[Path]:
        return [root for root in (self.java_root, self.kotlin_root) if root.is_dir()]

    def app_gradle(self) -> Optional[Path]:
        """The app module build script, Groovy first."""
        return first_existing([self.app_build_gradle, self.app_build_gradle_kts])


def build_layout(root: Path, style: str) -> AndroidLayout:
    if style == LAYOUT_NATIVE:
        return AndroidLayout(style=style, android_dir=root, app_dir=root / "app")
    android_dir = root / "android"
    return AndroidLayout(style=style, android_dir=android_dir, app_dir=android_dir / "app")


def _layout_score(layout: AndroidLayout) -> int:
    score = 0
    if layout.android_dir.is_dir():
        score += 1
    if layout.app_dir.is_dir():
        score += 1
    if layout.manifest.is_file():
        score += 4
    if layout.app_gradle() is not None:
        score += 3
    if first_existing(
        [
            layout.settings_gradle,
            layout.settings_gradle_kts,
            layout.root_build_gradle,
            layout.root_build_gradle_kts,
        ]
    ):
        score += 2
    return score


def resolve_layout(root: Path, preferred: str = LAYOUT_NATIVE) -> AndroidLayout:
    """Pick the layout whose files exist; ties go to ``preferred``."""
    styles = [preferred] + [style for style in (LAYOUT_NATIVE, LAYOUT_NESTED) if style != preferred]
    best = build_layout(root, styles[0])
    best_score = _layout_score(best)
    for style in styles[1:]:
        candidate = build_layout(root, style)
        score = _layout_score(candidate)
        if score > best_score:
            best, best_score = candidate, score
    logger.debug("Resolved %s Android layout under %s (score %d)", best.style, root, best_score)
    return best


def is_native_android_root(root: Path) -> bool:
    layout = build_layout(root, LAYOUT_NATIVE)
    has_root_gradle = first_existing(
        [
            layout.root_build_gradle,
            layout.root_build_gradle_kts,
            layout.settings_gradle,
            layout.settings_gradle_kts,
        ]
    )
    return layout.app_dir.is_dir() and layout.manifest.is_file() and has_root_gradle is not None


def find_application_class(roots: Sequence[Path], bases: Sequence[str]) -> Optional[Path]:
    for path in list_source_files(roots):
        if class_extending(read_text(path), bases):
            return path
    return None


def locate_class_source(roots: Sequence[Path], class_name: str) -> Optional[Path]:
    """Find the file declaring ``class_name``: package path first, then file name."""
    relative = class_name.replace(".", "/")
    for root in roots:
        for suffix in (".java", ".kt"):
            candidate = root / (relative + suffix)
            if candidate.is_file():
                return candidate
    simple = class_name.rsplit(".", 1)[-1]
    for path in list_source_files(roots):
        if path.stem == simple:
            return path
    return None


def launcher_class_name(manifest_text: str) -> Optional[str]:
    activity = find_launcher_activity(manifest_text)
    if activity is None or not activity.name:
        return None
    return resolve_class_name(activity.name, manifest_package(manifest_text))


def find_launcher_source(
    layout: AndroidLayout,
    explicit: Optional[Path] = None,
    flutter: bool = False,
) -> Optional[Path]:
    """Explicit path, then the manifest launcher, then (flutter) any FlutterActivity."""
    if explicit is not None:
        return explicit if explicit.is_file() else None
    roots = layout.source_roots()
    manifest_text = read_text_if_exists(layout.manifest)
    if manifest_text:
        class_name = launcher_class_name(manifest_text)
        if class_name:
            located = locate_class_source(roots, class_name)
            if located:
                return located
    if flutter:
        for path in list_source_files(roots):
            if _FLUTTER_ACTIVITY_PATTERN.search(read_text(path)):
                return path
    return None
