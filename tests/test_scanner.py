"""
Tests for scanner.py - Platform detection and project notes.
"""

import json
import shutil
import tempfile
from pathlib import Path

from smartech_integrator.scanner import (
    NOTE_NO_PLATFORMS,
    NOTE_NO_REACT_NATIVE,
    detect_app_platform,
    scan_project,
)

from fixture_projects import flutter_project, native_project, react_native_project, write


class TestScanProject:
    """Tests for scan_project function."""

    def test_react_native_project(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            (tmp / "ios").mkdir()
            scan = scan_project(str(tmp))
            assert scan.platforms == ["android", "ios"]
            assert scan.react_native_version == "0.72.0"
            assert scan.notes == []
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_package_json_without_react_native(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            write(tmp / "package.json", json.dumps({"dependencies": {"react": "18.2.0"}}))
            (tmp / "android").mkdir()
            scan = scan_project(str(tmp))
            assert scan.react_native_version is None
            assert scan.notes == [NOTE_NO_REACT_NATIVE]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_dev_dependency_version(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            write(tmp / "package.json", json.dumps({"devDependencies": {"react-native": "0.71.3"}}))
            assert scan_project(str(tmp)).react_native_version == "0.71.3"
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_native_root_counts_as_android(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            assert scan_project(str(tmp)).platforms == ["android"]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_android_module_root(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            write(tmp / "build.gradle", "android {}\n")
            write(tmp / "src" / "main" / "AndroidManifest.xml", "<manifest />\n")
            assert scan_project(str(tmp)).platforms == ["android"]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_empty_directory(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            scan = scan_project(str(tmp))
            assert scan.platforms == []
            assert scan.notes == [NOTE_NO_PLATFORMS]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_malformed_package_json(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            write(tmp / "package.json", "{not json")
            scan = scan_project(str(tmp))
            assert scan.react_native_version is None
            assert NOTE_NO_REACT_NATIVE in scan.notes
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class TestDetectAppPlatform:
    """Tests for detect_app_platform function."""

    def test_flutter(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            assert detect_app_platform(tmp) == "flutter"
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_react_native(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            assert detect_app_platform(tmp) == "react-native"
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_native_android(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            assert detect_app_platform(tmp) == "native-android"
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_default(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            assert detect_app_platform(tmp) == "react-native"
        finally:
            shutil.rmtree(tmp, ignore_errors=True)
