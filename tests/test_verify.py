"""
Tests for verify.py - The apply, re-plan and retry loop.

The loop tests replace planning and patching with fakes so each test controls
what the re-plan proposes after every round. The end-to-end tests run the real
planner and patcher against fixture projects.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from smartech_integrator import verify
from smartech_integrator.models import (
    ApplyResult,
    Change,
    IntegrationInputs,
    IntegrationOptions,
    IntegrationPlan,
    ProjectScan,
)
from smartech_integrator.planner import plan_integration
from smartech_integrator.verify import DEFAULT_MAX_ATTEMPTS, apply_and_verify

from fixture_projects import (
    RN_APPLICATION,
    flutter_project,
    native_project,
    native_sources,
    react_native_project,
)


def _change(change_id: str) -> Change:
    return Change(
        id=change_id,
        title=change_id,
        summary="",
        file_path=f"/project/{change_id}.txt",
        kind="update",
        patch="--- f\n+++ f\n@@ -1 +1 @@\n-a\n+b\n",
        confidence=0.9,
    )


class _FakePlanner:
    def __init__(self, rounds):
        self.rounds = list(rounds)
        self.calls = 0

    def __call__(self, options):
        ids = self.rounds[min(self.calls, len(self.rounds) - 1)]
        self.calls += 1
        return IntegrationPlan(
            scan=ProjectScan(root_path=options.root_path),
            parts=list(options.parts),
            changes=[_change(change_id) for change_id in ids],
        )


class _FakeApplier:
    def __init__(self):
        self.calls = []

    def __call__(self, changes, dry_run=True):
        self.calls.append([change.id for change in changes])
        if dry_run:
            return [ApplyResult(change.id, False, "Dry run: no changes applied.") for change in changes]
        return [ApplyResult(change.id, True, "Applied change.") for change in changes]


def _install(monkeypatch, rounds):
    planner = _FakePlanner(rounds)
    applier = _FakeApplier()
    monkeypatch.setattr(verify, "plan_integration", planner)
    monkeypatch.setattr(verify, "apply_changes", applier)
    return planner, applier


# =============================================================================
# VERIFY LOOP TESTS
# =============================================================================


class TestApplyAndVerify:
    """Tests for apply_and_verify function."""

    def test_stuck_change_is_bounded(self, monkeypatch):
        tmp = Path(tempfile.mkdtemp())
        try:
            planner, applier = _install(monkeypatch, [["stuck"]])
            options = IntegrationOptions(root_path=str(tmp), dry_run=False)

            result = apply_and_verify([_change("stuck")], options)

            assert result.remaining == ["stuck"]
            assert [change.id for change in result.remaining_changes] == ["stuck"]
            assert result.attempts == 2
            assert len(applier.calls) == 3
            assert planner.calls == 3
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_converges_after_one_retry(self, monkeypatch):
        tmp = Path(tempfile.mkdtemp())
        try:
            planner, applier = _install(monkeypatch, [["late"], [], []])
            options = IntegrationOptions(root_path=str(tmp), dry_run=False)

            result = apply_and_verify([_change("early"), _change("late")], options)

            assert result.attempts == 1
            assert result.remaining == []
            assert applier.calls == [["early", "late"], ["late"]]
            assert [item.change_id for item in result.retry_results] == ["late"]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_already_converged_skips_retries(self, monkeypatch):
        tmp = Path(tempfile.mkdtemp())
        try:
            planner, applier = _install(monkeypatch, [[]])
            options = IntegrationOptions(root_path=str(tmp), dry_run=False)

            result = apply_and_verify([_change("one")], options)

            assert result.attempts == 0
            assert result.remaining == []
            assert len(applier.calls) == 1
            assert [item.change_id for item in result.results] == ["one"]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_only_selected_changes_are_retried(self, monkeypatch):
        tmp = Path(tempfile.mkdtemp())
        try:
            planner, applier = _install(monkeypatch, [["chosen", "ignored"], ["ignored"]])
            options = IntegrationOptions(root_path=str(tmp), dry_run=False)

            result = apply_and_verify([_change("chosen")], options, selected_ids=["chosen"])

            assert applier.calls == [["chosen"], ["chosen"]]
            assert result.attempts == 1
            assert result.remaining == []
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_dry_run_returns_without_planning(self, monkeypatch):
        tmp = Path(tempfile.mkdtemp())
        try:
            planner, applier = _install(monkeypatch, [["never"]])
            options = IntegrationOptions(root_path=str(tmp), dry_run=True)

            result = apply_and_verify([_change("one")], options)

            assert planner.calls == 0
            assert result.attempts == 0
            assert result.remaining == []
            assert result.results[0].applied is False
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_custom_attempt_budget(self, monkeypatch):
        tmp = Path(tempfile.mkdtemp())
        try:
            planner, applier = _install(monkeypatch, [["stuck"]])
            options = IntegrationOptions(root_path=str(tmp), dry_run=False)

            result = apply_and_verify([_change("stuck")], options, max_attempts=0)

            assert result.attempts == 0
            assert result.remaining == ["stuck"]
            assert len(applier.calls) == 1
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_result_serializes(self, monkeypatch):
        tmp = Path(tempfile.mkdtemp())
        try:
            _install(monkeypatch, [["stuck"]])
            options = IntegrationOptions(root_path=str(tmp), dry_run=False)

            data = apply_and_verify([_change("stuck")], options).to_dict()

            assert data["remaining"] == ["stuck"]
            assert data["remaining_changes"][0]["id"] == "stuck"
            assert data["attempts"] == 2
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


# =============================================================================
# END-TO-END TESTS
# =============================================================================


FULL_INPUTS = {
    "smartechAppId": "APP123",
    "deeplinkScheme": "demoapp",
    "hanselAppId": "HID",
    "hanselAppKey": "HKEY",
    "pxScheme": "pxdemo",
}


def _build_project(platform: str, root: Path) -> IntegrationOptions:
    inputs = dict(FULL_INPUTS)
    if platform == "react-native":
        react_native_project(root)
    elif platform == "flutter":
        flutter_project(root)
    else:
        native_project(root)
        sources = native_sources(root)
        inputs["applicationClassPath"] = str(sources / "DemoApp.java")
        inputs["mainActivityPath"] = str(sources / "MainActivity.java")
    return IntegrationOptions(
        root_path=str(root),
        parts=["base", "push", "px"],
        app_platform=platform,
        inputs=IntegrationInputs.from_dict(inputs),
    )


class TestApplyAndVerifyEndToEnd:
    """Tests running the real planner and patcher on fixture projects."""

    @pytest.mark.parametrize("platform", ["react-native", "flutter", "native-android"])
    def test_converges_to_advisories(self, platform):
        tmp = Path(tempfile.mkdtemp())
        try:
            options = _build_project(platform, tmp)
            plan = plan_integration(options)
            assert any(not change.is_advisory for change in plan.changes)

            outcome = apply_and_verify(plan.changes, options)

            assert all(change.is_advisory for change in outcome.remaining_changes)
            assert outcome.attempts <= DEFAULT_MAX_ATTEMPTS
            replanned = plan_integration(options).changes
            assert all(change.is_advisory for change in replanned)
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_flutter_px_listeners_registered(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            options = _build_project("flutter", tmp)
            outcome = apply_and_verify(plan_integration(options).changes, options)

            assert "flutter-px-listener-registration-missing" not in outcome.remaining
            assert (tmp / "lib" / "smartech_px_listeners.dart").is_file()
            main_dart = (tmp / "lib" / "main.dart").read_text()
            assert "import 'smartech_px_listeners.dart';" in main_dart
            assert "registerPxDeeplinkListener(SmartechPxDeeplinkListener());" in main_dart
            assert "registerPxInternalEventsListener(SmartechPxEventsListener());" in main_dart
            assert "SmartechPxWidget(" in main_dart
            assert "FirebaseMessaging.onBackgroundMessage" in main_dart
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_latin1_sources_are_planned_and_preserved(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            sources = tmp / "android" / "app" / "src" / "main" / "java" / "com" / "demo"
            (sources / "Legacy.java").write_bytes(b"package com.demo;\n\n// r\xe9sum\xe9\nclass Legacy {}\n")
            application = RN_APPLICATION.replace("import android.app.Application;", "// caf\xe9\nimport android.app.Application;")
            (sources / "MainApplication.java").write_bytes(application.encode("latin-1"))
            options = IntegrationOptions(
                root_path=str(tmp),
                app_platform="react-native",
                inputs=IntegrationInputs(smartech_app_id="APP123", deeplink_scheme="demoapp"),
            )

            plan = plan_integration(options)
            assert "android-inject-oncreate" in plan.change_ids()
            outcome = apply_and_verify(plan.changes, options)

            assert "android-inject-oncreate" not in outcome.remaining
            data = (sources / "MainApplication.java").read_bytes()
            assert b"// caf\xe9\n" in data
            assert b"initializeSdk" in data
            assert (sources / "Legacy.java").read_bytes() == b"package com.demo;\n\n// r\xe9sum\xe9\nclass Legacy {}\n"
        finally:
            shutil.rmtree(tmp, ignore_errors=True)
