"""Rule modules, one per (app platform, integration part)."""
from __future__ import annotations

from types import ModuleType
from typing import Dict, Tuple

from . import (
    flutter_base,
    flutter_push,
    flutter_px,
    native_base,
    native_push,
    native_px,
    react_native_base,
    react_native_push,
    react_native_px,
)
from .context import RuleContext

RULE_MODULES: Dict[Tuple[str, str], ModuleType] = {
    ("react-native", "base"): react_native_base,
    ("react-native", "push"): react_native_push,
    ("react-native", "px"): react_native_px,
    ("flutter", "base"): flutter_base,
    ("flutter", "push"): flutter_push,
    ("flutter", "px"): flutter_px,
    ("native-android", "base"): native_base,
    ("native-android", "push"): native_push,
    ("native-android", "px"): native_px,
}

__all__ = ["RULE_MODULES", "RuleContext"]
