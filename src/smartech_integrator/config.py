"""
Smartech Integrator - Request configuration.

Turns the flat request bag into the typed, per-module input records the
rule modules read, normalizes request options the way the desktop and HTTP
adapters do, and validates the fields each (platform, part) pair needs.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from .constants import (
    DEFAULT_BASE_SDK_VERSION,
    DEFAULT_FIREBASE_MESSAGING_VERSION,
    DEFAULT_FLUTTER_BASE_VERSION,
    DEFAULT_FLUTTER_PUSH_VERSION,
    DEFAULT_FLUTTER_PX_VERSION,
    DEFAULT_MAIN_DART,
    DEFAULT_NATIVE_PX_SDK_VERSION,
    DEFAULT_PUSH_SDK_VERSION,
    DEFAULT_PX_SDK_VERSION,
    DEFAULT_RN_BASE_VERSION,
    DEFAULT_RN_PUSH_VERSION,
    DEFAULT_RN_PX_VERSION,
    NATIVE_PX_UI_TYPES,
)
from .models import APP_PLATFORMS, PARTS, IntegrationInputs, IntegrationOptions, _camel_case
from .scanner import detect_app_platform
from .utils import is_present, read_text, resolve_input_path

logger = logging.getLogger(__name__)

PLATFORM_ALIASES = {"android-native": "native-android", "android": "native-android", "rn": "react-native"}

_TRUE_VALUES = {"1", "true", "yes", "y", "on"}
_FALSE_VALUES = {"0", "false", "no", "n", "off"}


class InvalidOptionsError(ValueError):
    """Raised by callers when ``validate_options`` reports problems."""

    def __init__(self, messages: Sequence[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


# =============================================================================
# TYPED MODULE INPUTS
# =============================================================================

@dataclass(frozen=True)
class ReactNativeBaseInputs:
    smartech_app_id: Optional[str] = None
    deeplink_scheme: Optional[str] = None
    base_sdk_version: str = DEFAULT_BASE_SDK_VERSION
    rn_base_version: str = DEFAULT_RN_BASE_VERSION
    auto_fetch_location: Optional[bool] = None


@dataclass(frozen=True)
class FlutterBaseInputs:
    smartech_app_id: Optional[str] = None
    deeplink_scheme: Optional[str] = None
    base_sdk_version: str = DEFAULT_BASE_SDK_VERSION
    flutter_base_sdk_version: str = DEFAULT_FLUTTER_BASE_VERSION
    auto_fetch_location: Optional[bool] = None


@dataclass(frozen=True)
class NativeBaseInputs:
    smartech_app_id: Optional[str] = None
    deeplink_scheme: Optional[str] = None
    base_sdk_version: str = DEFAULT_BASE_SDK_VERSION
    application_class_path: Optional[Path] = None
    main_activity_path: Optional[Path] = None
    auto_fetch_location: Optional[bool] = None


@dataclass(frozen=True)
class ReactNativePushInputs:
    push_sdk_version: str = DEFAULT_PUSH_SDK_VERSION
    rn_push_version: str = DEFAULT_RN_PUSH_VERSION
    firebase_version: str = DEFAULT_FIREBASE_MESSAGING_VERSION
    auto_ask_notification_permission: Optional[bool] = None
    firebase_messaging_service_path: Optional[Path] = None


@dataclass(frozen=True)
class FlutterPushInputs:
    push_sdk_version: str = DEFAULT_PUSH_SDK_VERSION
    flutter_push_sdk_version: str = DEFAULT_FLUTTER_PUSH_VERSION
    main_dart_path: Optional[Path] = None
    auto_ask_notification_permission: Optional[bool] = None


@dataclass(frozen=True)
class NativePushInputs:
    push_sdk_version: str = DEFAULT_PUSH_SDK_VERSION
    firebase_messaging_service_path: Optional[Path] = None
    auto_ask_notification_permission: Optional[bool] = None


@dataclass(frozen=True)
class ReactNativePxInputs:
    px_sdk_version: str = DEFAULT_PX_SDK_VERSION
    rn_px_version: str = DEFAULT_RN_PX_VERSION
    hansel_app_id: Optional[str] = None
    hansel_app_key: Optional[str] = None
    px_scheme: Optional[str] = None


@dataclass(frozen=True)
class FlutterPxInputs:
    px_sdk_version: str = DEFAULT_PX_SDK_VERSION
    flutter_px_sdk_version: str = DEFAULT_FLUTTER_PX_VERSION
    hansel_app_id: Optional[str] = None
    hansel_app_key: Optional[str] = None
    px_scheme: Optional[str] = None
    main_dart_path: Optional[Path] = None


@dataclass(frozen=True)
class NativePxInputs:
    px_sdk_version: str = DEFAULT_NATIVE_PX_SDK_VERSION
    native_px_ui_type: str = "xml"
    use_sdk_encryption: bool = False
    hansel_app_id: Optional[str] = None
    hansel_app_key: Optional[str] = None
    px_scheme: Optional[str] = None
    application_class_path: Optional[Path] = None
    main_activity_path: Optional[Path] = None


MODULE_INPUTS: Dict[Tuple[str, str], Type[Any]] = {
    ("react-native", "base"): ReactNativeBaseInputs,
    ("react-native", "push"): ReactNativePushInputs,
    ("react-native", "px"): ReactNativePxInputs,
    ("flutter", "base"): FlutterBaseInputs,
    ("flutter", "push"): FlutterPushInputs,
    ("flutter", "px"): FlutterPxInputs,
    ("native-android", "base"): NativeBaseInputs,
    ("native-android", "push"): NativePushInputs,
    ("native-android", "px"): NativePxInputs,
}

BOOLEAN_INPUTS = {
    item.name for item in fields(IntegrationInputs) if item.type in ("Optional[bool]", Optional[bool])
}


def coerce_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    return None


def resolve_module_inputs(app_platform: str, part: str, inputs: IntegrationInputs, root: Path) -> Any:
    """Project the flat ``inputs`` onto the record for ``(app_platform, part)``.

    Blank values fall back to the record defaults; ``*_path`` values resolve
    against ``root``.
    """
    record_type = MODULE_INPUTS[(app_platform, part)]
    values: Dict[str, Any] = {}
    for item in fields(record_type):
        raw = getattr(inputs, item.name, None)
        if not is_present(raw):
            continue
        if item.name.endswith("_path"):
            values[item.name] = resolve_input_path(root, str(raw))
        elif item.name in BOOLEAN_INPUTS:
            flag = coerce_bool(raw)
            if flag is not None:
                values[item.name] = flag
        else:
            values[item.name] = str(raw).strip()

    if "main_dart_path" in {item.name for item in fields(record_type)} and "main_dart_path" not in values:
        values["main_dart_path"] = root / DEFAULT_MAIN_DART
    if "native_px_ui_type" in values:
        ui_type = values["native_px_ui_type"].lower()
        if ui_type not in NATIVE_PX_UI_TYPES:
            logger.warning("Unknown PX UI type %r, using xml", ui_type)
            ui_type = "xml"
        values["native_px_ui_type"] = ui_type
    return record_type(**values)


# =============================================================================
# OPTIONS
# =============================================================================

def normalize_platform(value: Optional[str]) -> Optional[str]:
    if not is_present(value):
        return None
    platform = str(value).strip().lower()
    return PLATFORM_ALIASES.get(platform, platform)


def normalize_parts(parts: Iterable[str], inputs: IntegrationInputs) -> List[str]:
    """Dedupe and order parts; ``base`` is always included, PX inputs imply ``px``."""
    requested = {str(part).strip().lower() for part in parts if is_present(part)}
    unknown = requested - set(PARTS)
    if unknown:
        logger.warning("Ignoring unknown parts: %s", ", ".join(sorted(unknown)))
    requested.add("base")
    if inputs.has_px_inputs():
        requested.add("px")
    return [part for part in PARTS if part in requested]


def normalize_options(options: IntegrationOptions) -> IntegrationOptions:
    platform = normalize_platform(options.app_platform)
    if platform is None and options.root_path:
        platform = detect_app_platform(Path(options.root_path))
        logger.info("Detected app platform: %s", platform)
    return replace(
        options,
        app_platform=platform,
        parts=normalize_parts(options.parts, options.inputs),
    )


def validate_options(options: IntegrationOptions) -> List[str]:
    """Every problem with a normalized request, as human-readable messages."""
    messages: List[str] = []
    inputs = options.inputs
    if not is_present(options.root_path):
        messages.append("rootPath is required")
    elif not Path(options.root_path).is_dir():
        messages.append(f"rootPath does not exist or is not a directory: {options.root_path}")
    if options.app_platform not in APP_PLATFORMS:
        messages.append(
            f"appPlatform must be one of {', '.join(APP_PLATFORMS)} (got {options.app_platform!r})"
        )

    required = ["smartech_app_id", "deeplink_scheme"]
    if "px" in options.parts:
        required.extend(["hansel_app_id", "hansel_app_key", "px_scheme"])
    if options.app_platform == "native-android":
        required.extend(["application_class_path", "main_activity_path"])
    for name in required:
        if not is_present(getattr(inputs, name)):
            messages.append(f"{_camel_case(name)} is required")
    return messages


def load_inputs_file(path: Path) -> Dict[str, Any]:
    """Load a JSON inputs document; a full request with an ``inputs`` key is accepted too."""
    data = json.loads(read_text(path))
    if not isinstance(data, dict):
        raise InvalidOptionsError([f"{path} must contain a JSON object"])
    if isinstance(data.get("inputs"), dict):
        return dict(data["inputs"])
    return data


def parse_assignments(assignments: Sequence[str]) -> Dict[str, Any]:
    """Parse ``KEY=VALUE`` pairs; boolean inputs accept true/false/1/0."""
    camel_booleans = {_camel_case(name) for name in BOOLEAN_INPUTS}
    values: Dict[str, Any] = {}
    problems: List[str] = []
    for assignment in assignments:
        key, separator, value = assignment.partition("=")
        key = key.strip()
        if not separator or not key:
            problems.append(f"Expected KEY=VALUE, got {assignment!r}")
            continue
        if key in BOOLEAN_INPUTS or key in camel_booleans:
            flag = coerce_bool(value)
            if flag is None:
                problems.append(f"{key} expects a boolean, got {value!r}")
                continue
            values[key] = flag
        else:
            values[key] = value.strip()
    if problems:
        raise InvalidOptionsError(problems)
    return values


def build_options(
    root_path: str,
    parts: Sequence[str] = (),
    app_platform: Optional[str] = None,
    inputs_file: Optional[Path] = None,
    assignments: Sequence[str] = (),
    dry_run: bool = False,
) -> IntegrationOptions:
    """Assemble and normalize options from command-line style arguments."""
    raw: Dict[str, Any] = {}
    if inputs_file is not None:
        raw.update(load_inputs_file(inputs_file))
    raw.update(parse_assignments(assignments))
    options = IntegrationOptions(
        root_path=str(Path(root_path).expanduser().resolve()),
        parts=list(parts) or ["base"],
        app_platform=app_platform,
        dry_run=dry_run,
        inputs=IntegrationInputs.from_dict(raw),
    )
    return normalize_options(options)
