"""
Tests for config.py - Option normalization, validation and typed module inputs.
"""

import json
import shutil
import tempfile
from pathlib import Path

import pytest

from smartech_integrator.config import (
    FlutterPushInputs,
    InvalidOptionsError,
    NativePxInputs,
    ReactNativeBaseInputs,
    build_options,
    load_inputs_file,
    normalize_options,
    normalize_parts,
    normalize_platform,
    parse_assignments,
    resolve_module_inputs,
    validate_options,
)
from smartech_integrator.constants import DEFAULT_BASE_SDK_VERSION
from smartech_integrator.models import IntegrationInputs, IntegrationOptions

from fixture_projects import flutter_project


# =============================================================================
# NORMALIZATION TESTS
# =============================================================================


class TestNormalizePlatform:
    """Tests for normalize_platform function."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("android", "native-android"),
            ("android-native", "native-android"),
            ("RN", "react-native"),
            (" Flutter ", "flutter"),
            ("native-android", "native-android"),
            ("", None),
            (None, None),
        ],
    )
    def test_aliases(self, value, expected):
        assert normalize_platform(value) == expected


class TestNormalizeParts:
    """Tests for normalize_parts function."""

    def test_base_always_included_and_ordered(self):
        assert normalize_parts(["px", "push", "push"], IntegrationInputs()) == ["base", "push", "px"]

    def test_px_inputs_imply_px(self):
        assert normalize_parts(["base"], IntegrationInputs(hansel_app_id="H")) == ["base", "px"]

    def test_unknown_parts_dropped(self):
        assert normalize_parts(["inbox", "Push"], IntegrationInputs()) == ["base", "push"]


class TestNormalizeOptions:
    """Tests for normalize_options function."""

    def test_detects_platform(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            options = normalize_options(IntegrationOptions(root_path=str(tmp), parts=[]))
            assert options.app_platform == "flutter"
            assert options.parts == ["base"]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_declared_platform_wins(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            options = normalize_options(IntegrationOptions(root_path=str(tmp), app_platform="rn"))
            assert options.app_platform == "react-native"
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


# =============================================================================
# VALIDATION TESTS
# =============================================================================


class TestValidateOptions:
    """Tests for validate_options function."""

    def test_missing_root(self):
        messages = validate_options(IntegrationOptions(root_path="", app_platform="react-native"))
        assert "rootPath is required" in messages

    def test_required_base_inputs(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            messages = validate_options(IntegrationOptions(root_path=str(tmp), app_platform="react-native"))
            assert messages == ["smartechAppId is required", "deeplinkScheme is required"]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_px_requires_hansel_inputs(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            options = IntegrationOptions(
                root_path=str(tmp),
                parts=["base", "px"],
                app_platform="flutter",
                inputs=IntegrationInputs(smartech_app_id="APP", deeplink_scheme="demo"),
            )
            assert validate_options(options) == [
                "hanselAppId is required",
                "hanselAppKey is required",
                "pxScheme is required",
            ]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_native_requires_paths(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            options = IntegrationOptions(
                root_path=str(tmp),
                app_platform="native-android",
                inputs=IntegrationInputs(smartech_app_id="APP", deeplink_scheme="demo"),
            )
            assert validate_options(options) == [
                "applicationClassPath is required",
                "mainActivityPath is required",
            ]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_unknown_platform(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            options = IntegrationOptions(
                root_path=str(tmp),
                app_platform="ios",
                inputs=IntegrationInputs(smartech_app_id="APP", deeplink_scheme="demo"),
            )
            messages = validate_options(options)
            assert len(messages) == 1
            assert messages[0].startswith("appPlatform must be one of")
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_valid(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            options = IntegrationOptions(
                root_path=str(tmp),
                app_platform="react-native",
                inputs=IntegrationInputs(smartech_app_id="APP", deeplink_scheme="demo"),
            )
            assert validate_options(options) == []
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


# =============================================================================
# MODULE INPUT TESTS
# =============================================================================


class TestResolveModuleInputs:
    """Tests for resolve_module_inputs function."""

    def test_blank_values_use_defaults(self):
        inputs = IntegrationInputs(smartech_app_id="APP", base_sdk_version="  ")
        record = resolve_module_inputs("react-native", "base", inputs, Path("/app"))
        assert record == ReactNativeBaseInputs(smartech_app_id="APP", base_sdk_version=DEFAULT_BASE_SDK_VERSION)

    def test_main_dart_defaults_under_root(self):
        record = resolve_module_inputs("flutter", "push", IntegrationInputs(), Path("/app"))
        assert isinstance(record, FlutterPushInputs)
        assert record.main_dart_path == Path("/app") / "lib" / "main.dart"

    def test_relative_paths_resolve_against_root(self):
        inputs = IntegrationInputs(main_dart_path="lib/app.dart")
        record = resolve_module_inputs("flutter", "px", inputs, Path("/app"))
        assert record.main_dart_path == Path("/app") / "lib" / "app.dart"

    def test_ui_type_is_normalized(self):
        record = resolve_module_inputs("native-android", "px", IntegrationInputs(native_px_ui_type="Compose"), Path("/a"))
        assert isinstance(record, NativePxInputs)
        assert record.native_px_ui_type == "compose"
        unknown = resolve_module_inputs("native-android", "px", IntegrationInputs(native_px_ui_type="swing"), Path("/a"))
        assert unknown.native_px_ui_type == "xml"

    def test_string_booleans_are_coerced(self):
        inputs = IntegrationInputs(use_sdk_encryption="yes")
        record = resolve_module_inputs("native-android", "px", inputs, Path("/a"))
        assert record.use_sdk_encryption is True


# =============================================================================
# COMMAND-LINE INPUT TESTS
# =============================================================================


class TestParseAssignments:
    """Tests for parse_assignments function."""

    def test_values_and_booleans(self):
        values = parse_assignments(["smartechAppId=APP", "autoFetchLocation=true", "use_sdk_encryption=0"])
        assert values == {"smartechAppId": "APP", "autoFetchLocation": True, "use_sdk_encryption": False}

    def test_value_may_contain_equals(self):
        assert parse_assignments(["hanselAppKey=a=b"]) == {"hanselAppKey": "a=b"}

    def test_bad_boolean(self):
        with pytest.raises(InvalidOptionsError) as error:
            parse_assignments(["autoFetchLocation=maybe"])
        assert error.value.messages == ["autoFetchLocation expects a boolean, got 'maybe'"]

    def test_missing_separator(self):
        with pytest.raises(InvalidOptionsError):
            parse_assignments(["smartechAppId"])


class TestLoadInputsFile:
    """Tests for load_inputs_file function."""

    def test_flat_document(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            path = tmp / "inputs.json"
            path.write_text(json.dumps({"smartechAppId": "APP"}))
            assert load_inputs_file(path) == {"smartechAppId": "APP"}
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_request_document(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            path = tmp / "request.json"
            path.write_text(json.dumps({"rootPath": "/x", "inputs": {"pxScheme": "px"}}))
            assert load_inputs_file(path) == {"pxScheme": "px"}
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_not_an_object(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            path = tmp / "inputs.json"
            path.write_text("[]")
            with pytest.raises(InvalidOptionsError):
                load_inputs_file(path)
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class TestBuildOptions:
    """Tests for build_options function."""

    def test_assignments_override_file(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            inputs_file = tmp / "inputs.json"
            inputs_file.write_text(json.dumps({"smartechAppId": "FROM_FILE", "deeplinkScheme": "demo"}))

            options = build_options(str(tmp), inputs_file=inputs_file, assignments=["smartechAppId=FROM_CLI"])

            assert options.inputs.smartech_app_id == "FROM_CLI"
            assert options.inputs.deeplink_scheme == "demo"
            assert options.app_platform == "flutter"
            assert options.parts == ["base"]
            assert options.root_path == str(tmp.resolve())
        finally:
            shutil.rmtree(tmp, ignore_errors=True)
