"""
Native Android push rules.

Adds ``com.netcore.android:smartech-push`` and hooks the app's
FirebaseMessagingService: token forwarding in ``onNewToken`` and a Smartech
check wrapping the existing ``onMessageReceived`` body. The service wiring
is shared with the React Native push module.
"""
from __future__ import annotations

import logging
import re
import textwrap
from pathlib import Path
from typing import List, Optional

from ..android import AndroidLayout, resolve_layout
from ..config import NativePushInputs
from ..constants import (
    CONTEXT_IMPORT,
    FIREBASE_SERVICE_SNIPPET,
    HANDLE_PUSH_PATTERN,
    META_AUTO_ASK_PERMISSION,
    PUSH_ARTIFACT,
    REMOTE_MESSAGE_IMPORT,
    SET_PUSH_TOKEN_PATTERN,
    SMART_PUSH_IMPORT,
    WEAK_REFERENCE_IMPORT,
)
from ..models import Change
from ..mutators import jvm, manifest
from ..mutators.gradle import dependency_declaration
from ..mutators.text import indent_block, line_indent
from ..utils import read_text, read_text_if_exists
from .common import flag_value, gradle_dependency, is_kts, manifest_meta
from .context import CONFIDENCE_LOW, CONFIDENCE_MEDIUM, ChangeSet, RuleContext

logger = logging.getLogger(__name__)

SERVICE_IMPORTS = (WEAK_REFERENCE_IMPORT, CONTEXT_IMPORT, SMART_PUSH_IMPORT, REMOTE_MESSAGE_IMPORT)
EMPTY_HANDLER_COMMENT = "// Notification from other sources, handle yourself"


def run(context: RuleContext) -> List[Change]:
    inputs: NativePushInputs = context.inputs
    layout = resolve_layout(context.root)
    changes = ChangeSet("push")

    app_gradle = layout.app_gradle()
    if app_gradle is not None:
        gradle_dependency(
            changes,
            "native-push-dependency",
            app_gradle,
            re.escape(PUSH_ARTIFACT),
            dependency_declaration("implementation", PUSH_ARTIFACT, inputs.push_sdk_version, is_kts(app_gradle)),
            "Add Smartech push SDK dependency",
        )
    manifest_meta(
        changes,
        "native-push-meta-smt_is_auto_ask_notification_permission",
        layout.manifest,
        META_AUTO_ASK_PERMISSION,
        flag_value(inputs.auto_ask_notification_permission),
    )
    firebase_service(changes, "native", layout, inputs.firebase_messaging_service_path)
    return changes.changes


def firebase_service(
    changes: ChangeSet,
    prefix: str,
    layout: AndroidLayout,
    service_path: Optional[Path],
) -> None:
    """Augment the messaging service source and register it in the manifest."""
    if service_path is None or not service_path.is_file():
        changes.advisory(
            f"{prefix}-push-firebase-service-missing",
            "Firebase messaging service not found",
            "Set firebaseMessagingServicePath to your FirebaseMessagingService subclass, or add the "
            "Smartech calls manually.",
            service_path or layout.main_dir,
            snippet=FIREBASE_SERVICE_SNIPPET,
        )
        return

    source = read_text(service_path)
    kotlin = jvm.is_kotlin_path(service_path)
    updated = augment_messaging_service(source, kotlin)
    changes.edit(
        f"{prefix}-push-firebase-service",
        "Forward tokens and notifications to Smartech",
        f"Calls setDevicePushToken in onNewToken and handleRemotePushNotification in "
        f"onMessageReceived of {service_path.name}.",
        service_path,
        source,
        updated,
        kind="update",
        confidence=CONFIDENCE_MEDIUM,
    )

    manifest_text = read_text_if_exists(layout.manifest)
    if manifest_text is None:
        return
    names = service_names(source, service_path, manifest.manifest_package(manifest_text))
    registered = manifest.ensure_messaging_service(manifest_text, names)
    changes.edit(
        f"{prefix}-push-manifest-service",
        "Register the messaging service",
        f"Declares {names[0]} with the MESSAGING_EVENT intent-filter.",
        layout.manifest,
        manifest_text,
        registered,
        kind="insert",
    )
    if manifest.count_messaging_services(registered) > 1:
        changes.advisory(
            f"{prefix}-push-messaging-service-warning",
            "Multiple messaging services",
            "More than one service handles com.google.firebase.MESSAGING_EVENT; only one receives "
            "messages. Keep a single service and forward to the others from it.",
            layout.manifest,
            confidence=CONFIDENCE_LOW,
        )


def service_names(source: str, service_path: Path, manifest_package: Optional[str]) -> List[str]:
    """Manifest spellings of the service, preferred spelling first."""
    class_name = service_path.stem
    package = jvm.source_package(source)
    qualified = f"{package}.{class_name}" if package else class_name
    if package and package == manifest_package:
        return [f".{class_name}", qualified, class_name]
    return [qualified, f".{class_name}", class_name]


def augment_messaging_service(source: str, kotlin: bool) -> str:
    updated = _ensure_token_forwarding(source, kotlin)
    updated = _ensure_message_handling(updated, kotlin)
    if updated != source:
        updated = jvm.ensure_imports(updated, SERVICE_IMPORTS, kotlin)
    return updated


def _token_lines(param: str, kotlin: bool) -> List[str]:
    if kotlin:
        return [
            "SmartPush.getInstance(WeakReference<Context>(this))",
            f"    .setDevicePushToken({param})",
        ]
    return [
        "SmartPush.getInstance(new WeakReference<Context>(this))",
        f"        .setDevicePushToken({param});",
    ]


def _ensure_token_forwarding(source: str, kotlin: bool) -> str:
    span = jvm.find_method(source, "onNewToken")
    if span is None:
        if kotlin:
            method = ["override fun onNewToken(token: String) {", "    super.onNewToken(token)"]
        else:
            method = ["@Override", "public void onNewToken(String token) {", "    super.onNewToken(token);"]
        method += ["    " + line for line in _token_lines("token", kotlin)] + ["}"]
        return jvm.add_member(source, method)
    if SET_PUSH_TOKEN_PATTERN.search(span.body(source)):
        return source
    param = jvm.extract_param_name(span.params, "token")
    return jvm.insert_in_method(source, span, _token_lines(param, kotlin))


def _handler_lines(param: str, kotlin: bool, inner: List[str]) -> List[str]:
    if kotlin:
        head = [
            "val isPnHandledBySmartech =",
            "    SmartPush.getInstance(WeakReference<Context>(this))",
            f"        .handleRemotePushNotification({param})",
        ]
    else:
        head = [
            "boolean isPnHandledBySmartech =",
            "        SmartPush.getInstance(new WeakReference<Context>(this))",
            f"                .handleRemotePushNotification({param});",
        ]
    return head + ["", "if (!isPnHandledBySmartech) {"] + ["    " + line if line else "" for line in inner] + ["}"]


def normalize_inner_code(body: str, super_call: Optional[str]) -> List[str]:
    """Existing handler statements, dedented, without the super call."""
    text = body
    if super_call:
        text = text.replace(super_call, "", 1)
    lines = textwrap.dedent(text.strip("\n")).split("\n")
    lines = [line.rstrip() for line in lines]
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return lines or [EMPTY_HANDLER_COMMENT]


def _ensure_message_handling(source: str, kotlin: bool) -> str:
    span = jvm.find_method(source, "onMessageReceived")
    if span is None:
        if kotlin:
            method = [
                "override fun onMessageReceived(remoteMessage: RemoteMessage) {",
                "    super.onMessageReceived(remoteMessage)",
            ]
        else:
            method = [
                "@Override",
                "public void onMessageReceived(RemoteMessage remoteMessage) {",
                "    super.onMessageReceived(remoteMessage);",
            ]
        method += ["    " + line if line else "" for line in _handler_lines("remoteMessage", kotlin, [EMPTY_HANDLER_COMMENT])]
        method.append("}")
        return jvm.add_member(source, method)

    body = span.body(source)
    if HANDLE_PUSH_PATTERN.search(body):
        return source
    param = jvm.extract_param_name(span.params, "remoteMessage")
    super_match = jvm.find_super_call(source, span)
    super_call = super_match.group(0) if super_match else None
    inner = normalize_inner_code(body, super_call)
    indent = jvm.body_indent(source, span)
    statements = ([super_call.strip()] if super_call else []) + _handler_lines(param, kotlin, inner)
    rebuilt = "\n" + indent_block(statements, indent) + "\n" + line_indent(source, span.start)
    return source[:span.open_brace + 1] + rebuilt + source[span.close_brace:]
