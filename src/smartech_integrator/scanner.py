"""
Smartech Integrator - Project scanner.

Produces the ``ProjectScan`` every plan starts from and detects the app
platform when the request does not declare one.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from .android import is_native_android_root
from .constants import APP_BUILD_GRADLE, APP_BUILD_GRADLE_KTS, MANIFEST_FILE, PACKAGE_JSON, PUBSPEC_YAML
from .models import ProjectScan
from .utils import read_json_if_exists

logger = logging.getLogger(__name__)

NOTE_NO_REACT_NATIVE = "react-native dependency not found in package.json"
NOTE_NO_PLATFORMS = (
    "No Android/iOS project structure detected. Ensure rootPath points to project root "
    "(React Native root or Native Android root)."
)


def _react_native_version(root: Path) -> Optional[str]:
    data = read_json_if_exists(root / PACKAGE_JSON)
    if not isinstance(data, dict):
        return None
    for section in ("dependencies", "devDependencies"):
        version = (data.get(section) or {}).get("react-native")
        if version:
            return str(version)
    return None


def _is_android_module(root: Path) -> bool:
    manifest = root / "src" / "main" / MANIFEST_FILE
    return manifest.is_file() and (
        (root / APP_BUILD_GRADLE).is_file() or (root / APP_BUILD_GRADLE_KTS).is_file()
    )


def scan_project(root_path: str) -> ProjectScan:
    root = Path(root_path)
    platforms: List[str] = []
    notes: List[str] = []

    if (root / "android").is_dir() or is_native_android_root(root) or _is_android_module(root):
        platforms.append("android")
    if (root / "ios").is_dir():
        platforms.append("ios")

    react_native_version = _react_native_version(root)
    if (root / PACKAGE_JSON).is_file() and react_native_version is None:
        notes.append(NOTE_NO_REACT_NATIVE)
    if not platforms:
        notes.append(NOTE_NO_PLATFORMS)

    logger.debug("Scanned %s: platforms=%s", root, platforms)
    return ProjectScan(
        root_path=str(root),
        platforms=platforms,
        react_native_version=react_native_version,
        notes=notes,
    )


def detect_app_platform(root: Path) -> str:
    if (root / PUBSPEC_YAML).is_file():
        return "flutter"
    if (root / PACKAGE_JSON).is_file():
        return "react-native"
    if is_native_android_root(root):
        return "native-android"
    return "react-native"
