"""
Smartech Integrator - Core data model.

Plain dataclasses shared by the scanner, rule modules, planner and patcher.
Everything here is recomputed on every call; nothing is cached between runs.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from .utils import is_present

PARTS = ("base", "push", "px")
APP_PLATFORMS = ("react-native", "flutter", "native-android")


@dataclass
class Change:
    id: str
    title: str
    summary: str
    file_path: str
    kind: str
    patch: str
    confidence: float
    module: str = "base"
    original_content: Optional[str] = None
    new_content: Optional[str] = None
    manual_snippet: Optional[str] = None

    @property
    def is_advisory(self) -> bool:
        return not self.patch

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "file_path": self.file_path,
            "kind": self.kind,
            "patch": self.patch,
            "confidence": self.confidence,
            "module": self.module,
            "original_content": self.original_content,
            "new_content": self.new_content,
            "manual_snippet": self.manual_snippet,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Change":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            summary=data.get("summary", ""),
            file_path=data.get("file_path") or data.get("filePath", ""),
            kind=data.get("kind", "update"),
            patch=data.get("patch") or "",
            confidence=float(data.get("confidence", 0.0)),
            module=data.get("module") or "base",
            original_content=data.get("original_content", data.get("originalContent")),
            new_content=data.get("new_content", data.get("newContent")),
            manual_snippet=data.get("manual_snippet", data.get("manualSnippet")),
        )


@dataclass(frozen=True)
class ProjectScan:
    root_path: str
    platforms: List[str] = field(default_factory=list)
    react_native_version: Optional[str] = None
    notes: List[str] = field(default_factory=list)

    @property
    def has_android(self) -> bool:
        return "android" in self.platforms

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root_path": self.root_path,
            "platforms": list(self.platforms),
            "react_native_version": self.react_native_version,
            "notes": list(self.notes),
        }


@dataclass
class IntegrationInputs:
    """Flat bag of request values, as sent by the desktop and HTTP adapters.

    Rule modules never read this directly; they receive the typed record
    resolved for their (app platform, part) pair, see ``config.resolve_module_inputs``.
    """

    smartech_app_id: Optional[str] = None
    deeplink_scheme: Optional[str] = None
    base_sdk_version: Optional[str] = None
    rn_base_version: Optional[str] = None
    flutter_base_sdk_version: Optional[str] = None
    push_sdk_version: Optional[str] = None
    rn_push_version: Optional[str] = None
    firebase_version: Optional[str] = None
    flutter_push_sdk_version: Optional[str] = None
    firebase_messaging_service_path: Optional[str] = None
    main_dart_path: Optional[str] = None
    auto_ask_notification_permission: Optional[bool] = None
    auto_fetch_location: Optional[bool] = None
    px_sdk_version: Optional[str] = None
    rn_px_version: Optional[str] = None
    flutter_px_sdk_version: Optional[str] = None
    hansel_app_id: Optional[str] = None
    hansel_app_key: Optional[str] = None
    px_scheme: Optional[str] = None
    native_px_ui_type: Optional[str] = None
    use_sdk_encryption: Optional[bool] = None
    application_class_path: Optional[str] = None
    main_activity_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "IntegrationInputs":
        """Build from snake_case or camelCase keys; unknown keys are ignored."""
        if not data:
            return cls()
        values: Dict[str, Any] = {}
        for item in fields(cls):
            camel = _camel_case(item.name)
            if item.name in data:
                values[item.name] = data[item.name]
            elif camel in data:
                values[item.name] = data[camel]
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            _camel_case(item.name): getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not None
        }

    def has_px_inputs(self) -> bool:
        return any(
            is_present(value)
            for value in (self.hansel_app_id, self.hansel_app_key, self.px_scheme)
        )


@dataclass
class IntegrationOptions:
    root_path: str
    parts: List[str] = field(default_factory=lambda: ["base"])
    app_platform: Optional[str] = None
    dry_run: bool = False
    inputs: IntegrationInputs = field(default_factory=IntegrationInputs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IntegrationOptions":
        parts = data.get("parts") or ["base"]
        dry_run = data.get("dry_run", data.get("dryRun", False))
        return cls(
            root_path=data.get("root_path") or data.get("rootPath") or "",
            parts=list(parts),
            app_platform=data.get("app_platform") or data.get("appPlatform"),
            dry_run=bool(dry_run),
            inputs=IntegrationInputs.from_dict(data.get("inputs")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rootPath": self.root_path,
            "parts": list(self.parts),
            "appPlatform": self.app_platform,
            "dryRun": self.dry_run,
            "inputs": self.inputs.to_dict(),
        }


@dataclass
class IntegrationPlan:
    scan: ProjectScan
    parts: List[str]
    changes: List[Change] = field(default_factory=list)

    def change_ids(self) -> List[str]:
        return [change.id for change in self.changes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scan": self.scan.to_dict(),
            "parts": list(self.parts),
            "changes": [change.to_dict() for change in self.changes],
        }


@dataclass(frozen=True)
class ApplyResult:
    change_id: str
    applied: bool
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "change_id": self.change_id,
            "applied": self.applied,
            "message": self.message,
        }


@dataclass
class VerifyResult:
    results: List[ApplyResult] = field(default_factory=list)
    retry_results: List[ApplyResult] = field(default_factory=list)
    remaining: List[str] = field(default_factory=list)
    remaining_changes: List[Change] = field(default_factory=list)
    attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [result.to_dict() for result in self.results],
            "retry_results": [result.to_dict() for result in self.retry_results],
            "remaining": list(self.remaining),
            "remaining_changes": [
                {
                    "id": change.id,
                    "title": change.title,
                    "summary": change.summary,
                    "file_path": change.file_path,
                    "manual_snippet": change.manual_snippet,
                    "module": change.module,
                }
                for change in self.remaining_changes
            ],
            "attempts": self.attempts,
        }


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)

