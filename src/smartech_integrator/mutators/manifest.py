"""
AndroidManifest.xml mutators.

The manifest is treated as text: tags are located with regexes, and new
elements are inserted with the indentation of their surroundings so diffs
stay small.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from ..constants import (
    ACTIVITY_BLOCK_PATTERN,
    ACTIVITY_OPEN_TAG_PATTERN,
    ANDROID_NAME_PATTERN,
    APPLICATION_TAG_PATTERN,
    BROWSABLE_CATEGORY,
    DATA_TAG_PATTERN,
    DEFAULT_CATEGORY,
    HOST_ATTRIBUTE_PATTERN,
    INTENT_FILTER_PATTERN,
    LAUNCHER_ACTION,
    LAUNCHER_CATEGORY,
    MANIFEST_PACKAGE_PATTERN,
    MESSAGING_EVENT_ACTION,
    MESSAGING_EVENT_PATTERN,
    SCHEME_ATTRIBUTE_PATTERN,
    VIEW_ACTION,
)
from .text import indent_block, indent_unit_for, line_indent


@dataclass(frozen=True)
class ActivityBlock:
    start: int
    end: int
    text: str
    name: Optional[str]

    @property
    def self_closing(self) -> bool:
        return not self.text.rstrip().endswith("</activity>")

    @property
    def is_launcher(self) -> bool:
        return LAUNCHER_ACTION in self.text and LAUNCHER_CATEGORY in self.text


def manifest_package(text: str) -> Optional[str]:
    match = MANIFEST_PACKAGE_PATTERN.search(text)
    return match.group(1) if match else None


def resolve_class_name(name: str, package: Optional[str]) -> str:
    """Expand a manifest ``android:name`` (``.Main`` or ``Main``) into a FQCN."""
    if name.startswith("."):
        return f"{package}{name}" if package else name[1:]
    if "." not in name and package:
        return f"{package}.{name}"
    return name


def _attribute(tag: str, attribute: str) -> Optional[str]:
    match = re.search(rf'{re.escape(attribute)}\s*=\s*"([^"]*)"', tag)
    return match.group(1) if match else None


def _set_attribute(tag: str, attribute: str, value: str) -> str:
    """Set ``attribute`` on an opening tag, replacing or appending it."""
    pattern = re.compile(rf'{re.escape(attribute)}\s*=\s*"[^"]*"')
    rendered = f'{attribute}="{value}"'
    if pattern.search(tag):
        return pattern.sub(lambda _: rendered, tag, count=1)
    closing = "/>" if tag.rstrip().endswith("/>") else ">"
    head = tag.rstrip()[: -len(closing)].rstrip()
    if "\n" in tag:
        last_line = head.split("\n")[-1]
        indent = re.match(r"[ \t]*", last_line).group(0)
        if not last_line.strip().startswith("<"):
            return f"{head}\n{indent}{rendered}{' ' if closing == '/>' else ''}{closing}"
    return f"{head} {rendered}{' ' if closing == '/>' else ''}{closing}"


# -----------------------------------------------------------------------------
# <application>
# -----------------------------------------------------------------------------

def application_attribute(text: str, attribute: str) -> Optional[str]:
    match = APPLICATION_TAG_PATTERN.search(text)
    return _attribute(match.group(0), attribute) if match else None


def ensure_application_attributes(text: str, attributes: Iterable[Tuple[str, str]]) -> str:
    match = APPLICATION_TAG_PATTERN.search(text)
    if not match:
        return text
    tag = match.group(0)
    updated = tag
    for attribute, value in attributes:
        if _attribute(updated, attribute) != value:
            updated = _set_attribute(updated, attribute, value)
    if updated == tag:
        return text
    return text[:match.start()] + updated + text[match.end():]


def _child_indent(text: str, index: int) -> str:
    indent = line_indent(text, index)
    return indent + indent_unit_for(indent)


def insert_in_application(text: str, lines: Sequence[str]) -> str:
    """Insert ``lines`` as the first children of ``<application>``."""
    match = APPLICATION_TAG_PATTERN.search(text)
    if not match:
        return text
    indent = _child_indent(text, match.start())
    return text[:match.end()] + "\n" + indent_block(lines, indent) + text[match.end():]


# -----------------------------------------------------------------------------
# <meta-data>
# -----------------------------------------------------------------------------

def _meta_data_pattern(name: str) -> re.Pattern:
    return re.compile(rf'<meta-data\b[^>]*?android:name\s*=\s*"{re.escape(name)}"[^>]*?/?>')


def meta_data_value(text: str, name: str) -> Optional[str]:
    match = _meta_data_pattern(name).search(text)
    return _attribute(match.group(0), "android:value") if match else None


def ensure_meta_data(text: str, name: str, value: str) -> str:
    """Ensure ``<meta-data android:name=name android:value=value />`` inside ``<application>``."""
    match = _meta_data_pattern(name).search(text)
    if match:
        tag = match.group(0)
        if _attribute(tag, "android:value") == value:
            return text
        return text[:match.start()] + _set_attribute(tag, "android:value", value) + text[match.end():]
    return insert_in_application(
        text, [f'<meta-data android:name="{name}" android:value="{value}" />']
    )


# -----------------------------------------------------------------------------
# <activity>
# -----------------------------------------------------------------------------

def list_activities(text: str) -> List[ActivityBlock]:
    blocks = []
    for match in ACTIVITY_BLOCK_PATTERN.finditer(text):
        opening = ACTIVITY_OPEN_TAG_PATTERN.match(match.group(0))
        name_match = ANDROID_NAME_PATTERN.search(opening.group(0)) if opening else None
        blocks.append(
            ActivityBlock(
                start=match.start(),
                end=match.end(),
                text=match.group(0),
                name=name_match.group(1) if name_match else None,
            )
        )
    return blocks


def find_launcher_activity(text: str) -> Optional[ActivityBlock]:
    for block in list_activities(text):
        if block.is_launcher:
            return block
    return None


def find_activity(text: str, names: Sequence[str]) -> Optional[ActivityBlock]:
    """First activity whose ``android:name`` equals one of ``names``, in ``names`` order."""
    blocks = list_activities(text)
    for name in names:
        for block in blocks:
            if block.name == name:
                return block
    return None


def _add_to_activity(text: str, block: ActivityBlock, element: Sequence[str]) -> str:
    indent = _child_indent(text, block.start)
    rendered = indent_block(element, indent)
    closing_indent = line_indent(text, block.start)
    if block.self_closing:
        opening = block.text.rstrip()[:-2].rstrip() + ">"
        replacement = f"{opening}\n{rendered}\n{closing_indent}</activity>"
    else:
        close = block.text.rfind("</activity>")
        head = block.text[:close].rstrip(" \t")
        if not head.endswith("\n"):
            head += "\n"
        replacement = f"{head}{rendered}\n{closing_indent}{block.text[close:]}"
    return text[:block.start] + replacement + text[block.end:]


def _replace_in_block(text: str, block: ActivityBlock, old: str, new: str, offset: int) -> str:
    start = block.start + offset
    return text[:start] + new + text[start + len(old):]


def deeplink_filter_lines(scheme: str, host: str) -> List[str]:
    return [
        "<intent-filter>",
        f'    <action android:name="{VIEW_ACTION}" />',
        f'    <category android:name="{DEFAULT_CATEGORY}" />',
        f'    <category android:name="{BROWSABLE_CATEGORY}" />',
        "    <data",
        f'        android:host="{host}"',
        f'        android:scheme="{scheme}" />',
        "</intent-filter>",
    ]


def px_filter_lines(scheme: str) -> List[str]:
    return [
        "<intent-filter>",
        f'    <action android:name="{VIEW_ACTION}" />',
        f'    <category android:name="{DEFAULT_CATEGORY}" />',
        f'    <category android:name="{BROWSABLE_CATEGORY}" />',
        f'    <data android:scheme="{scheme}" />',
        "</intent-filter>",
    ]


def _update_scheme(tag: str, scheme: str) -> str:
    if SCHEME_ATTRIBUTE_PATTERN.search(tag):
        return SCHEME_ATTRIBUTE_PATTERN.sub(lambda _: f'android:scheme="{scheme}"', tag, count=1)
    return _set_attribute(tag, "android:scheme", scheme)


def ensure_deeplink_filter(text: str, block: ActivityBlock, scheme: str, host: str) -> str:
    """Ensure the activity has a VIEW filter for ``scheme://host``.

    A filter that already carries the host only gets its scheme updated.
    """
    host_pattern = re.compile(rf'android:host\s*=\s*"{re.escape(host)}"')
    for intent_filter in INTENT_FILTER_PATTERN.finditer(block.text):
        for data in DATA_TAG_PATTERN.finditer(intent_filter.group(0)):
            tag = data.group(0)
            if not host_pattern.search(tag):
                continue
            if _attribute(tag, "android:scheme") == scheme:
                return text
            offset = intent_filter.start() + data.start()
            return _replace_in_block(text, block, tag, _update_scheme(tag, scheme), offset)
    return _add_to_activity(text, block, deeplink_filter_lines(scheme, host))


def _is_view_filter(intent_filter: str) -> bool:
    return all(marker in intent_filter for marker in (VIEW_ACTION, DEFAULT_CATEGORY, BROWSABLE_CATEGORY))


def ensure_px_filter(text: str, block: ActivityBlock, scheme: str) -> str:
    """Ensure a host-less VIEW filter for ``scheme`` on the activity."""
    candidate: Optional[Tuple[int, str]] = None
    for intent_filter in INTENT_FILTER_PATTERN.finditer(block.text):
        body = intent_filter.group(0)
        if not _is_view_filter(body):
            continue
        for data in DATA_TAG_PATTERN.finditer(body):
            tag = data.group(0)
            if HOST_ATTRIBUTE_PATTERN.search(tag):
                continue
            if _attribute(tag, "android:scheme") == scheme:
                return text
            if candidate is None:
                candidate = (intent_filter.start() + data.start(), tag)
    if candidate is not None:
        offset, tag = candidate
        return _replace_in_block(text, block, tag, _update_scheme(tag, scheme), offset)
    return _add_to_activity(text, block, px_filter_lines(scheme))


# -----------------------------------------------------------------------------
# <service>
# -----------------------------------------------------------------------------

_SERVICE_PATTERN = re.compile(r"<service(?=[\s>/])[^>]*?/>|<service(?=[\s>/])[^>]*>[\s\S]*?</service>")


def messaging_filter_lines() -> List[str]:
    return [
        "<intent-filter>",
        f'    <action android:name="{MESSAGING_EVENT_ACTION}" />',
        "</intent-filter>",
    ]


def count_messaging_services(text: str) -> int:
    return len(MESSAGING_EVENT_PATTERN.findall(text))


def ensure_messaging_service(text: str, names: Sequence[str]) -> str:
    """Register the service (first of ``names`` when new) with the MESSAGING_EVENT filter."""
    for match in _SERVICE_PATTERN.finditer(text):
        service = match.group(0)
        name = _attribute(service, "android:name")
        if name not in names:
            continue
        if MESSAGING_EVENT_PATTERN.search(service):
            return text
        indent = _child_indent(text, match.start())
        rendered = indent_block(messaging_filter_lines(), indent)
        closing_indent = line_indent(text, match.start())
        if service.rstrip().endswith("/>"):
            opening = service.rstrip()[:-2].rstrip() + ">"
            replacement = f"{opening}\n{rendered}\n{closing_indent}</service>"
        else:
            close = service.rfind("</service>")
            head = service[:close].rstrip(" \t")
            if not head.endswith("\n"):
                head += "\n"
            replacement = f"{head}{rendered}\n{closing_indent}</service>"
        return text[:match.start()] + replacement + text[match.end():]
    lines = [
        "<service",
        '    android:exported="false"',
        f'    android:name="{names[0]}">',
    ]
    lines.extend("    " + line for line in messaging_filter_lines())
    lines.append("</service>")
    return insert_in_application(text, lines)

