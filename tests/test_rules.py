"""
Tests for the rule modules - Planned changes per (app platform, part).

Each test builds a synthetic project, runs one rule module against it and
checks the proposed change ids, their order and the key content they carry.
"""

import shutil
import tempfile
from pathlib import Path
from typing import List

from smartech_integrator.config import (
    FlutterBaseInputs,
    FlutterPushInputs,
    FlutterPxInputs,
    NativeBaseInputs,
    NativePushInputs,
    NativePxInputs,
    ReactNativeBaseInputs,
    ReactNativePushInputs,
    ReactNativePxInputs,
)
from smartech_integrator.constants import DART_PX_LISTENERS
from smartech_integrator.models import Change
from smartech_integrator.rules import (
    RULE_MODULES,
    RuleContext,
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
from smartech_integrator.scanner import scan_project

from fixture_projects import (
    GRADLE_PROPERTIES,
    MESSAGING_SERVICE_KT,
    NATIVE_APP_BUILD_GRADLE,
    flutter_project,
    native_project,
    native_sources,
    react_native_project,
    write,
)


RN_BASE_ORDER = [
    "android-add-maven-repo-build-gradle",
    "android-gradle-properties-smartech",
    "android-add-smartech-dependency",
    "rn-add-smartech-base",
    "android-inject-oncreate",
    "android-manifest-metadata-appid",
    "android-backup-xml",
    "android-backup-xml-31",
    "android-manifest-backup-attrs",
    "android-mainactivity-deeplink",
    "android-manifest-deeplink-intent",
]


def _run(module, root: Path, inputs) -> List[Change]:
    return module.run(RuleContext(scan=scan_project(str(root)), root=root, inputs=inputs))


def _ids(changes: List[Change]) -> List[str]:
    return [change.id for change in changes]


def _by_id(changes: List[Change], change_id: str) -> Change:
    return next(change for change in changes if change.id == change_id)


def _manifest(root: Path) -> Path:
    return root / "android" / "app" / "src" / "main" / "AndroidManifest.xml"


# =============================================================================
# REGISTRY TESTS
# =============================================================================


class TestRuleRegistry:
    """Tests for the (platform, part) registry."""

    def test_every_pair_has_a_module(self):
        for platform in ("react-native", "flutter", "native-android"):
            for part in ("base", "push", "px"):
                assert hasattr(RULE_MODULES[(platform, part)], "run")

    def test_registry_size(self):
        assert len(RULE_MODULES) == 9


# =============================================================================
# REACT NATIVE TESTS
# =============================================================================


class TestReactNativeBase:
    """Tests for the React Native base module."""

    def test_full_step_order(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            changes = _run(
                react_native_base, tmp, ReactNativeBaseInputs(smartech_app_id="APP123", deeplink_scheme="demoapp")
            )
            assert _ids(changes) == RN_BASE_ORDER
            assert {change.module for change in changes} == {"base"}
            assert all(change.patch for change in changes)
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_location_flag_adds_meta(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            changes = _run(
                react_native_base,
                tmp,
                ReactNativeBaseInputs(smartech_app_id="APP123", deeplink_scheme="demoapp", auto_fetch_location=True),
            )
            location = _by_id(changes, "android-manifest-metadata-smt_is_auto_fetched_location")
            assert 'android:name="SMT_IS_AUTO_FETCHED_LOCATION" android:value="1"' in location.new_content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_applied_meta_is_not_proposed_again(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            inputs = ReactNativeBaseInputs(smartech_app_id="APP123", deeplink_scheme="demoapp")
            first = _by_id(_run(react_native_base, tmp, inputs), "android-manifest-metadata-appid")
            _manifest(tmp).write_text(first.new_content)

            again = _run(react_native_base, tmp, inputs)

            assert "android-manifest-metadata-appid" not in _ids(again)
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_outdated_property_is_updated(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            properties = tmp / "android" / "gradle.properties"
            properties.write_text(GRADLE_PROPERTIES + "SMARTECH_BASE_SDK_VERSION=3.7.0\n")

            changes = _run(react_native_base, tmp, ReactNativeBaseInputs(base_sdk_version="3.7.6"))
            change = _by_id(changes, "android-gradle-properties-smartech")

            assert change.kind == "update"
            assert change.new_content == GRADLE_PROPERTIES + "SMARTECH_BASE_SDK_VERSION=3.7.6\n"
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_missing_init_lines_follow_super_call(self):
        application = (
            "package com.demo;\n"
            "\n"
            "import android.app.Application;\n"
            "import java.lang.ref.WeakReference;\n"
            "import com.netcore.android.Smartech;\n"
            "\n"
            "public class MainApplication extends Application {\n"
            "    @Override\n"
            "    public void onCreate() {\n"
            "        super.onCreate();\n"
            "        Smartech.getInstance(new WeakReference<>(getApplicationContext())).initializeSdk(this);\n"
            "    }\n"
            "}\n"
        )
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp, application=application)
            changes = _run(react_native_base, tmp, ReactNativeBaseInputs())
            content = _by_id(changes, "android-inject-oncreate").new_content

            assert content.count("initializeSdk(") == 1
            assert (
                "        super.onCreate();\n"
                "        // Add the below line for debugging logs\n"
                "        Smartech.getInstance(new WeakReference<>(getApplicationContext())).setDebugLevel(9);\n"
                "        // Add the below line to track app install and update by smartech\n"
                "        Smartech.getInstance(new WeakReference<>(getApplicationContext()))"
                ".trackAppInstallUpdateBySmartech();\n"
                "        SmartechBasePlugin smartechBasePlugin = SmartechBasePlugin.getInstance();\n"
                "        smartechBasePlugin.init(this);\n"
            ) in content
            assert "import com.smartechbasereactnative.SmartechBasePlugin;" in content
            assert content.count("import java.lang.ref.WeakReference;") == 1
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_missing_application_is_created(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp, application=None)
            changes = _run(react_native_base, tmp, ReactNativeBaseInputs())
            ids = _ids(changes)

            assert "android-create-application" in ids
            created = _by_id(changes, "android-create-application")
            assert created.kind == "create"
            assert created.file_path.endswith("SmartechApplication.java")
            assert "public class SmartechApplication extends Application" in created.new_content
            registered = _by_id(changes, "android-manifest-application-name")
            assert 'android:name="com.demo.SmartechApplication"' in registered.new_content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_without_java_sources(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            shutil.rmtree(tmp / "android" / "app" / "src" / "main" / "java")

            changes = _run(react_native_base, tmp, ReactNativeBaseInputs(deeplink_scheme="demoapp"))

            no_root = _by_id(changes, "android-no-java-root")
            assert no_root.is_advisory
            assert "initializeSdk" in no_root.manual_snippet
            assert _by_id(changes, "android-launcher-activity-missing").is_advisory
            assert "android-inject-oncreate" not in _ids(changes)
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_deeplink_activity_gets_on_create(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            changes = _run(react_native_base, tmp, ReactNativeBaseInputs(deeplink_scheme="demoapp"))

            activity = _by_id(changes, "android-mainactivity-deeplink").new_content
            assert "protected void onCreate(Bundle savedInstanceState) {" in activity
            assert "isDeepLinkFromSmartech(getIntent())" in activity
            assert "import android.os.Bundle;" in activity
            intent = _by_id(changes, "android-manifest-deeplink-intent").new_content
            assert 'android:host="smartech_sdk_td"' in intent
            assert 'android:scheme="demoapp"' in intent
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class TestReactNativePush:
    """Tests for the React Native push module."""

    def test_step_order(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            changes = _run(react_native_push, tmp, ReactNativePushInputs())
            assert _ids(changes) == [
                "android-gradle-properties-smartech-push",
                "android-add-smartech-push-dependency",
                "rn-add-smartech-push",
                "rn-add-firebase-messaging",
                "rn-app-push-logic",
            ]
            assert {change.module for change in changes} == {"push"}
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_permission_flag_adds_meta(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            changes = _run(react_native_push, tmp, ReactNativePushInputs(auto_ask_notification_permission=False))
            meta = _by_id(changes, "android-manifest-metadata-smt_is_auto_ask_notification_permission")
            assert 'android:value="0"' in meta.new_content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_app_entry_gets_listeners(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            changes = _run(react_native_push, tmp, ReactNativePushInputs())
            app = _by_id(changes, "rn-app-push-logic").new_content
            assert "import React, { useEffect } from 'react';" in app
            assert "SmartechPushReact.setDevicePushToken(token);" in app
            assert "messaging().onMessage(" in app
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_firebase_service_is_wired(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            service = write(
                tmp / "android" / "app" / "src" / "main" / "java" / "com" / "demo" / "DemoMessagingService.kt",
                MESSAGING_SERVICE_KT,
            )
            changes = _run(react_native_push, tmp, ReactNativePushInputs(firebase_messaging_service_path=service))

            assert _ids(changes)[-2:] == ["android-push-firebase-service", "android-push-manifest-service"]
            registered = _by_id(changes, "android-push-manifest-service").new_content
            assert 'android:name=".DemoMessagingService"' in registered
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_missing_firebase_service_is_advisory(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            changes = _run(
                react_native_push, tmp, ReactNativePushInputs(firebase_messaging_service_path=tmp / "Missing.kt")
            )
            advisory = _by_id(changes, "android-push-firebase-service-missing")
            assert advisory.patch == ""
            assert advisory.manual_snippet
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class TestReactNativePx:
    """Tests for the React Native PX module."""

    def test_step_order(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            inputs = ReactNativePxInputs(hansel_app_id="HID", hansel_app_key="HKEY", px_scheme="pxdemo")
            changes = _run(react_native_px, tmp, inputs)
            assert _ids(changes) == [
                "android-gradle-properties-smartech-px",
                "android-add-smartech-px-dependency",
                "rn-add-smartech-px",
                "android-manifest-hansel-meta",
                "android-manifest-px-intent",
                "rn-app-px-logic",
                "android-mainactivity-hansel",
            ]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_hansel_meta_and_pairing(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            react_native_project(tmp)
            inputs = ReactNativePxInputs(hansel_app_id="HID", hansel_app_key="HKEY", px_scheme="pxdemo")
            changes = _run(react_native_px, tmp, inputs)

            meta = _by_id(changes, "android-manifest-hansel-meta").new_content
            assert 'android:name="HANSEL_APP_ID" android:value="HID"' in meta
            assert 'android:name="HANSEL_APP_KEY" android:value="HKEY"' in meta
            activity = _by_id(changes, "android-mainactivity-hansel").new_content
            assert "Hansel.pairTestDevice(getIntent().getDataString());" in activity
            assert "import io.hansel.hanselsdk.Hansel;" in activity
            intent = _by_id(changes, "android-manifest-px-intent").new_content
            assert '<data android:scheme="pxdemo" />' in intent
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


# =============================================================================
# FLUTTER TESTS
# =============================================================================


class TestFlutterBase:
    """Tests for the Flutter base module."""

    def test_full_step_order(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            changes = _run(flutter_base, tmp, FlutterBaseInputs(smartech_app_id="APP123", deeplink_scheme="demoapp"))
            assert _ids(changes) == [
                "flutter-add-maven-repo",
                "flutter-gradle-properties-smartech",
                "flutter-add-smartech-dependency",
                "flutter-pubspec-smartech-base",
                "flutter-create-application",
                "flutter-manifest-application-name",
                "flutter-manifest-metadata-appid",
                "flutter-backup-xml",
                "flutter-backup-xml-31",
                "flutter-manifest-backup-attrs",
                "flutter-mainactivity-deeplink",
                "flutter-manifest-deeplink-intent",
            ]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_dependency_uses_api_configuration(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            changes = _run(flutter_base, tmp, FlutterBaseInputs())
            gradle = _by_id(changes, "flutter-add-smartech-dependency").new_content
            assert 'api "com.netcore.android:smartech-sdk:${SMARTECH_BASE_SDK_VERSION}"' in gradle
            pubspec = _by_id(changes, "flutter-pubspec-smartech-base").new_content
            assert "  smartech_base: ^3.5.0\n" in pubspec
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_kotlin_only_project_gets_kotlin_application(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            changes = _run(flutter_base, tmp, FlutterBaseInputs())
            created = _by_id(changes, "flutter-create-application")
            assert created.file_path.endswith("MyApplication.kt")
            assert "class MyApplication : Application() {" in created.new_content
            assert "SmartechBasePlugin.initializePlugin(this)" in created.new_content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_existing_application_is_initialized(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            write(
                tmp / "android" / "app" / "src" / "main" / "kotlin" / "com" / "demo" / "App.kt",
                "package com.demo\n\nimport android.app.Application\n\nclass App : Application() {\n}\n",
            )
            changes = _run(flutter_base, tmp, FlutterBaseInputs())
            ids = _ids(changes)

            assert "flutter-application-init" in ids
            assert "flutter-create-application" not in ids
            content = _by_id(changes, "flutter-application-init").new_content
            assert "override fun onCreate() {" in content
            assert "SmartechBasePlugin.initializePlugin(this)" in content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class TestFlutterPush:
    """Tests for the Flutter push module."""

    def test_step_order_without_application(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            changes = _run(flutter_push, tmp, FlutterPushInputs(main_dart_path=tmp / "lib" / "main.dart"))
            assert _ids(changes) == [
                "flutter-gradle-properties-smartech-push",
                "flutter-add-smartech-push-dependency",
                "flutter-pubspec-smartech-push",
                "flutter-push-app-missing",
                "flutter-main-dart-push",
            ]
            assert _by_id(changes, "flutter-push-app-missing").is_advisory
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_main_dart_is_wired(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            changes = _run(flutter_push, tmp, FlutterPushInputs(main_dart_path=tmp / "lib" / "main.dart"))
            content = _by_id(changes, "flutter-main-dart-push").new_content

            assert "Future<void> firebaseMessagingBackgroundHandler(RemoteMessage message)" in content
            assert "FirebaseMessaging.onBackgroundMessage(firebaseMessagingBackgroundHandler);" in content
            assert "_registerPushToken();" in content
            assert "Future<void> _registerPushToken()" in content
            assert "import 'package:firebase_messaging/firebase_messaging.dart';" in content
            assert content.index("super.initState();") < content.index("_registerPushToken();")
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_push_plugin_follows_base_plugin(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            write(
                tmp / "android" / "app" / "src" / "main" / "kotlin" / "com" / "demo" / "MyApplication.kt",
                flutter_base.application_template("com.demo", True),
            )
            changes = _run(flutter_push, tmp, FlutterPushInputs(main_dart_path=tmp / "lib" / "main.dart"))
            content = _by_id(changes, "flutter-application-push-init").new_content

            assert (
                "        SmartechBasePlugin.initializePlugin(this)\n"
                "        SmartechPushPlugin.initializePlugin(this)\n"
            ) in content
            assert "import com.netcore.android.smartech_push.SmartechPushPlugin" in content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_missing_main_dart_is_advisory(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            changes = _run(flutter_push, tmp, FlutterPushInputs(main_dart_path=tmp / "lib" / "absent.dart"))
            advisory = _by_id(changes, "flutter-main-dart-missing")
            assert advisory.is_advisory
            assert "firebaseMessagingBackgroundHandler" in advisory.manual_snippet
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class TestFlutterPx:
    """Tests for the Flutter PX module."""

    def _inputs(self, root: Path) -> FlutterPxInputs:
        return FlutterPxInputs(
            hansel_app_id="HID",
            hansel_app_key="HKEY",
            px_scheme="pxdemo",
            main_dart_path=root / "lib" / "main.dart",
        )

    def test_step_order(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            changes = _run(flutter_px, tmp, self._inputs(tmp))
            assert _ids(changes) == [
                "flutter-gradle-properties-smartech-px",
                "flutter-pubspec-smartech-nudges",
                "flutter-manifest-hansel-meta",
                "flutter-px-listeners",
                "flutter-main-dart-px",
                "flutter-manifest-px-intent",
                "flutter-mainactivity-hansel",
            ]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_main_dart_is_wrapped_and_registered(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            changes = _run(flutter_px, tmp, self._inputs(tmp))

            listeners = _by_id(changes, "flutter-px-listeners")
            assert listeners.file_path.endswith("smartech_px_listeners.dart")
            assert listeners.kind == "create"
            content = _by_id(changes, "flutter-main-dart-px").new_content
            assert "SmartechPxWidget(" in content
            assert "PxNavigationObserver()" in content
            assert "registerPxDeeplinkListener(SmartechPxDeeplinkListener());" in content
            assert "import 'smartech_px_listeners.dart';" in content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_hansel_meta_needs_id_and_key(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            changes = _run(flutter_px, tmp, FlutterPxInputs(hansel_app_id="HID", main_dart_path=tmp / "lib" / "main.dart"))
            assert "flutter-manifest-hansel-meta" not in _ids(changes)
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_without_android_sources(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            shutil.rmtree(tmp / "android" / "app" / "src" / "main" / "kotlin")
            changes = _run(flutter_px, tmp, self._inputs(tmp))
            assert _ids(changes) == ["flutter-px-android-no-src"]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_generated_listeners_still_registered(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            write(tmp / "lib" / "smartech_px_listeners.dart", DART_PX_LISTENERS)
            changes = _run(flutter_px, tmp, self._inputs(tmp))

            ids = _ids(changes)
            assert "flutter-px-listeners" not in ids
            assert "flutter-px-listener-registration-missing" not in ids
            content = _by_id(changes, "flutter-main-dart-px").new_content
            assert "import 'smartech_px_listeners.dart';" in content
            assert "registerPxDeeplinkListener(SmartechPxDeeplinkListener());" in content
            assert "registerPxInternalEventsListener(SmartechPxEventsListener());" in content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_app_listeners_need_manual_registration(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            flutter_project(tmp)
            write(
                tmp / "lib" / "px.dart",
                "class AppLinks extends PxDeeplinkListener {\n  void onLaunchUrl(String url) {}\n}\n",
            )
            changes = _run(flutter_px, tmp, self._inputs(tmp))

            assert _by_id(changes, "flutter-px-listener-registration-missing").is_advisory
            content = _by_id(changes, "flutter-main-dart-px").new_content
            assert "registerPxDeeplinkListener" not in content
            assert "smartech_px_listeners.dart" not in content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


# =============================================================================
# NATIVE ANDROID TESTS
# =============================================================================


def _native_base_inputs(root: Path, **overrides) -> NativeBaseInputs:
    sources = native_sources(root)
    values = dict(
        smartech_app_id="APP123",
        deeplink_scheme="demoapp",
        application_class_path=sources / "DemoApp.java",
        main_activity_path=sources / "MainActivity.java",
    )
    values.update(overrides)
    return NativeBaseInputs(**values)


class TestNativeBase:
    """Tests for the native Android base module."""

    def test_full_step_order(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            changes = _run(native_base, tmp, _native_base_inputs(tmp))
            assert _ids(changes) == [
                "native-maven-repo",
                "native-base-dependency",
                "native-manifest-meta-smt_app_id",
                "native-backup-xml",
                "native-backup-xml-31",
                "native-manifest-backup-attrs",
                "native-application-init-receiver",
                "native-deeplink-receiver-create",
                "native-mainactivity-deeplink",
                "native-manifest-deeplink-intent",
            ]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_paths_missing(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            changes = _run(native_base, tmp, NativeBaseInputs(smartech_app_id="APP123"))
            assert _ids(changes) == ["native-input-paths-missing"]
            assert changes[0].is_advisory
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_receiver_uses_exported_flag_on_new_sdks(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp, target_sdk=34)
            changes = _run(native_base, tmp, _native_base_inputs(tmp))
            content = _by_id(changes, "native-application-init-receiver").new_content

            assert "registerReceiver(deeplinkReceiver, filter, Context.RECEIVER_EXPORTED);" in content
            assert "Build.VERSION_CODES.UPSIDE_DOWN_CAKE" in content
            assert content.index("trackAppInstallUpdateBySmartech();") < content.index(
                "DeeplinkReceiver deeplinkReceiver = new DeeplinkReceiver();"
            )
            assert "import android.content.IntentFilter;" in content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_receiver_is_plain_on_legacy_sdks(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp, target_sdk=33)
            changes = _run(native_base, tmp, _native_base_inputs(tmp))
            content = _by_id(changes, "native-application-init-receiver").new_content

            assert "        registerReceiver(deeplinkReceiver, filter);" in content
            assert "RECEIVER_EXPORTED" not in content
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_receiver_class_created_beside_application(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            changes = _run(native_base, tmp, _native_base_inputs(tmp))
            receiver = _by_id(changes, "native-deeplink-receiver-create")
            assert receiver.file_path == str(native_sources(tmp) / "DeeplinkReceiver.java")
            assert receiver.new_content.startswith("package com.demo;")
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_dependency_pins_version(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            changes = _run(native_base, tmp, _native_base_inputs(tmp, base_sdk_version="3.7.6"))
            gradle = _by_id(changes, "native-base-dependency").new_content
            assert "    implementation 'com.netcore.android:smartech-sdk:3.7.6'\n" in gradle
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_missing_activity_is_advisory(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            inputs = _native_base_inputs(tmp, main_activity_path=tmp / "Nowhere.java")
            changes = _run(native_base, tmp, inputs)
            assert _by_id(changes, "native-mainactivity-path-not-found").is_advisory
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class TestNativePush:
    """Tests for the native Android push module."""

    def test_service_is_augmented_and_registered(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            service = write(native_sources(tmp) / "DemoMessagingService.kt", MESSAGING_SERVICE_KT)
            changes = _run(
                native_push,
                tmp,
                NativePushInputs(firebase_messaging_service_path=service, auto_ask_notification_permission=True),
            )
            assert _ids(changes) == [
                "native-push-dependency",
                "native-push-meta-smt_is_auto_ask_notification_permission",
                "native-push-firebase-service",
                "native-push-manifest-service",
            ]

            content = _by_id(changes, "native-push-firebase-service").new_content
            assert "override fun onNewToken(token: String) {" in content
            assert ".setDevicePushToken(token)" in content
            assert ".handleRemotePushNotification(message)" in content
            assert (
                "        if (!isPnHandledBySmartech) {\n"
                '            Log.d("FCM", "received")\n'
                "        }\n"
            ) in content
            assert content.count("super.onMessageReceived(message)") == 1
            registered = _by_id(changes, "native-push-manifest-service").new_content
            assert 'android:name=".DemoMessagingService"' in registered
            assert "com.google.firebase.MESSAGING_EVENT" in registered
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_missing_service_is_advisory(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            changes = _run(native_push, tmp, NativePushInputs())
            assert _ids(changes) == ["native-push-dependency", "native-push-firebase-service-missing"]
            assert _by_id(changes, "native-push-firebase-service-missing").manual_snippet
        finally:
            shutil.rmtree(tmp, ignore_errors=True)


class TestNativePx:
    """Tests for the native Android PX module."""

    def _inputs(self, root: Path, **overrides) -> NativePxInputs:
        sources = native_sources(root)
        values = dict(
            hansel_app_id="HID",
            hansel_app_key="HKEY",
            px_scheme="pxdemo",
            application_class_path=sources / "DemoApp.java",
            main_activity_path=sources / "MainActivity.java",
        )
        values.update(overrides)
        return NativePxInputs(**values)

    def test_step_order(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            changes = _run(native_px, tmp, self._inputs(tmp))
            assert _ids(changes) == [
                "native-px-dependency",
                "native-px-meta-hansel_app_id",
                "native-px-meta-hansel_app_key",
                "native-px-meta-smt_use_encryption",
                "native-px-manifest-intent-filter",
                "native-px-mainactivity-pairing",
                "native-px-application-hooks",
            ]
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_compose_ui_selects_compose_flavour(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            gradle = tmp / "app" / "build.gradle"
            gradle.write_text(
                NATIVE_APP_BUILD_GRADLE.replace("{target_sdk}", "34").replace(
                    "    implementation 'androidx.appcompat:appcompat:1.6.1'\n",
                    "    implementation 'androidx.appcompat:appcompat:1.6.1'\n"
                    "    implementation 'com.netcore.android:smartech-nudges:10.2.12'\n",
                )
            )
            changes = _run(native_px, tmp, self._inputs(tmp, native_px_ui_type="compose"))
            content = _by_id(changes, "native-px-dependency").new_content

            assert "implementation 'com.netcore.android:smartech-nudges-compose:10.2.17'" in content
            assert content.count("smartech-nudges") == 1
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_encryption_flag(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            changes = _run(native_px, tmp, self._inputs(tmp, use_sdk_encryption=True))
            meta = _by_id(changes, "native-px-meta-smt_use_encryption").new_content
            assert 'android:name="SMT_USE_ENCRYPTION" android:value="true"' in meta
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_application_hooks(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            changes = _run(native_px, tmp, self._inputs(tmp))
            content = _by_id(changes, "native-px-application-hooks").new_content
            assert "HanselTracker.registerListener(hanselInternalEventsListener);" in content
            pairing = _by_id(changes, "native-px-mainactivity-pairing").new_content
            assert "Hansel.pairTestDevice(getIntent().getDataString());" in pairing
        finally:
            shutil.rmtree(tmp, ignore_errors=True)

    def test_missing_paths_are_advisories(self):
        tmp = Path(tempfile.mkdtemp())
        try:
            native_project(tmp)
            changes = _run(
                native_px, tmp, self._inputs(tmp, application_class_path=None, main_activity_path=None)
            )
            ids = _ids(changes)
            assert "native-px-mainactivity-path-missing" in ids
            assert "native-px-application-path-missing" in ids
        finally:
            shutil.rmtree(tmp, ignore_errors=True)
