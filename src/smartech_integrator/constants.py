"""
Smartech SDK integration patterns and constants.

This module contains the file layout conventions, default SDK versions,
detection patterns and code templates used by the rule modules when they
propose edits to customer projects.

Reference: https://cedocs.netcore.co.in/docs/android-sdk-integration

Covered SDK parts:
- Base: com.netcore.android:smartech-sdk (Android), smartech-base-react-native, smartech_base
- Push: com.netcore.android:smartech-push, smartech-push-react-native, smartech_push
- PX (Hansel nudges): com.netcore.android:smartech-nudges(-compose),
  smartech-reactnative-nudges, smartech_nudges
"""
from __future__ import annotations

import re

# =============================================================================
# PROJECT LAYOUT
# =============================================================================
SMARTECH_MAVEN_URL = "https://artifacts.netcore.co.in/artifactory/android"

GRADLE_PROPERTIES = "gradle.properties"
APP_BUILD_GRADLE = "build.gradle"
APP_BUILD_GRADLE_KTS = "build.gradle.kts"
SETTINGS_GRADLE = "settings.gradle"
SETTINGS_GRADLE_KTS = "settings.gradle.kts"
MANIFEST_FILE = "AndroidManifest.xml"

PACKAGE_JSON = "package.json"
PUBSPEC_YAML = "pubspec.yaml"
DEFAULT_MAIN_DART = "lib/main.dart"
PX_LISTENERS_DART = "smartech_px_listeners.dart"
APP_ENTRY_CANDIDATES = ("App.tsx", "App.jsx", "App.js")

BACKUP_FILE_NAME = "my_backup_file.xml"
BACKUP_31_FILE_NAME = "my_backup_file_31.xml"

FALLBACK_PACKAGE = "com.smartech.app"

# =============================================================================
# DEFAULT VERSIONS
# =============================================================================
DEFAULT_BASE_SDK_VERSION = "3.7.6"
DEFAULT_RN_BASE_VERSION = "^3.7.3"
DEFAULT_FLUTTER_BASE_VERSION = "^3.5.0"

DEFAULT_PUSH_SDK_VERSION = "3.5.13"
DEFAULT_RN_PUSH_VERSION = "^3.7.0"
DEFAULT_FIREBASE_MESSAGING_VERSION = "^18.6.1"
DEFAULT_FLUTTER_PUSH_VERSION = "^3.5.0"

DEFAULT_PX_SDK_VERSION = "10.2.12"
DEFAULT_NATIVE_PX_SDK_VERSION = "10.2.17"
DEFAULT_RN_PX_VERSION = "^3.7.0"
DEFAULT_FLUTTER_PX_VERSION = "^1.1.0"

NATIVE_PX_UI_TYPES = ("xml", "compose", "mixed")

# =============================================================================
# GRADLE
# =============================================================================
BASE_VERSION_PROPERTY = "SMARTECH_BASE_SDK_VERSION"
PUSH_VERSION_PROPERTY = "SMARTECH_PUSH_SDK_VERSION"
PX_VERSION_PROPERTY = "SMARTECH_PX_SDK_VERSION"

BASE_ARTIFACT = "com.netcore.android:smartech-sdk"
PUSH_ARTIFACT = "com.netcore.android:smartech-push"
PX_ARTIFACT = "com.netcore.android:smartech-nudges"
PX_COMPOSE_ARTIFACT = "com.netcore.android:smartech-nudges-compose"

# Matches both nudges artifacts so only one declaration survives a UI switch
PX_ARTIFACT_PATTERN = r"com\.netcore\.android:smartech-nudges(?:-compose)?"

GRADLE_REPOSITORIES_PATTERN = re.compile(r"repositories\s*\{")
GRADLE_DEPENDENCIES_PATTERN = re.compile(r"dependencies\s*\{")
GRADLE_REPOSITORY_SCOPES = ("dependencyResolutionManagement", "allprojects")

TARGET_SDK_PATTERNS = (
    re.compile(r"targetSdkVersion\s+([0-9]+)"),
    re.compile(r"targetSdkVersion\s*=\s*([0-9]+)"),
    re.compile(r"targetSdk\s*=\s*([0-9]+)"),
)
# Apps targeting this level or lower register receivers without the exported flag
LEGACY_RECEIVER_MAX_SDK = 33

# =============================================================================
# ANDROID MANIFEST
# =============================================================================
MANIFEST_PACKAGE_PATTERN = re.compile(r'package\s*=\s*"([^"]+)"')
APPLICATION_TAG_PATTERN = re.compile(r"<application\b[^>]*>")
ACTIVITY_BLOCK_PATTERN = re.compile(
    r"<activity(?=[\s>/])[^>]*?/>|<activity(?=[\s>/])[^>]*>[\s\S]*?</activity>"
)
ACTIVITY_OPEN_TAG_PATTERN = re.compile(r"<activity(?=[\s>/])[^>]*>")
ANDROID_NAME_PATTERN = re.compile(r'android:name\s*=\s*"([^"]+)"')
INTENT_FILTER_PATTERN = re.compile(r"<intent-filter[\s\S]*?</intent-filter>")
DATA_TAG_PATTERN = re.compile(r"<data\b[^>]*?/?>")
SCHEME_ATTRIBUTE_PATTERN = re.compile(r'android:scheme\s*=\s*"[^"]*"')
HOST_ATTRIBUTE_PATTERN = re.compile(r"android:host\s*=")

LAUNCHER_ACTION = "android.intent.action.MAIN"
LAUNCHER_CATEGORY = "android.intent.category.LAUNCHER"
VIEW_ACTION = "android.intent.action.VIEW"
DEFAULT_CATEGORY = "android.intent.category.DEFAULT"
BROWSABLE_CATEGORY = "android.intent.category.BROWSABLE"

SMARTECH_DEEPLINK_HOST = "smartech_sdk_td"
MESSAGING_EVENT_ACTION = "com.google.firebase.MESSAGING_EVENT"
MESSAGING_EVENT_PATTERN = re.compile(r"com\.google\.firebase\.MESSAGING_EVENT")

META_APP_ID = "SMT_APP_ID"
META_AUTO_FETCH_LOCATION = "SMT_IS_AUTO_FETCHED_LOCATION"
META_AUTO_ASK_PERMISSION = "SMT_IS_AUTO_ASK_NOTIFICATION_PERMISSION"
META_HANSEL_APP_ID = "HANSEL_APP_ID"
META_HANSEL_APP_KEY = "HANSEL_APP_KEY"
META_USE_ENCRYPTION = "SMT_USE_ENCRYPTION"

# (attribute, required value) pairs written on <application>
BACKUP_ATTRIBUTES = (
    ("android:allowBackup", "true"),
    ("android:fullBackupContent", "@xml/my_backup_file"),
    ("android:dataExtractionRules", "@xml/my_backup_file_31"),
)

BACKUP_XML = """<?xml version="1.0" encoding="utf-8"?>
<full-backup-content>
    <include domain="sharedpref" path="smt_guid_preferences.xml"/>
    <include domain="sharedpref" path="smt_preferences_guid.xml"/>
</full-backup-content>
"""

BACKUP_31_XML = """<?xml version="1.0" encoding="utf-8"?>
<data-extraction-rules>
    <cloud-backup disableIfNoEncryptionCapabilities="false">
        <include domain="sharedpref" path="smt_guid_preferences.xml" />
        <include domain="sharedpref" path="smt_preferences_guid.xml" />
    </cloud-backup>
</data-extraction-rules>
"""

# =============================================================================
# JAVA / KOTLIN SOURCES
# =============================================================================
PACKAGE_DECLARATION_PATTERN = re.compile(r"^[ \t]*package[ \t]+([\w.]+)[ \t]*;?[ \t]*\r?\n", re.MULTILINE)
SOURCE_PACKAGE_PATTERN = re.compile(r"package\s+([^\s;]+)")
CLASS_HEADER_PATTERN = re.compile(r"\bclass\s+\w+[^{;]*\{")

APPLICATION_BASES = ("Application", "ReactApplication")
FLUTTER_APPLICATION_BASES = ("Application", "FlutterApplication")

WEAK_REFERENCE_IMPORT = "java.lang.ref.WeakReference"
SMARTECH_IMPORT = "com.netcore.android.Smartech"
CONTEXT_IMPORT = "android.content.Context"
INTENT_FILTER_IMPORT = "android.content.IntentFilter"
BUILD_IMPORT = "android.os.Build"
RN_BASE_PLUGIN_IMPORT = "com.smartechbasereactnative.SmartechBasePlugin"
FLUTTER_BASE_PLUGIN_IMPORT = "com.netcore.android.smartech_base.SmartechBasePlugin"
FLUTTER_PUSH_PLUGIN_IMPORT = "com.netcore.android.smartech_push.SmartechPushPlugin"
SMART_PUSH_IMPORT = "com.netcore.android.smartechpush.SmartPush"
REMOTE_MESSAGE_IMPORT = "com.google.firebase.messaging.RemoteMessage"
HANSEL_IMPORT = "io.hansel.hanselsdk.Hansel"

HANSEL_APPLICATION_IMPORTS = (
    WEAK_REFERENCE_IMPORT,
    "java.util.HashMap",
    SMARTECH_IMPORT,
    "io.hansel.core.logger.HSLLogLevel",
    HANSEL_IMPORT,
    "io.hansel.hanselsdk.HanselDeepLinkListener",
    "io.hansel.ujmtracker.HanselInternalEventsListener",
    "io.hansel.ujmtracker.HanselTracker",
)

INIT_SDK_PATTERN = re.compile(r"initializeSdk\(")
DEBUG_LEVEL_PATTERN = re.compile(r"setDebugLevel\(")
TRACK_INSTALL_PATTERN = re.compile(r"trackAppInstallUpdateBySmartech\(")
RN_BASE_PLUGIN_PATTERN = re.compile(r"SmartechBasePlugin\.(?:getInstance|instance)|smartechBasePlugin\.init\(")
FLUTTER_BASE_PLUGIN_PATTERN = re.compile(r"SmartechBasePlugin(?:\.Companion)?\.initializePlugin\(")
FLUTTER_BASE_PLUGIN_CALL_PATTERN = re.compile(
    r"SmartechBasePlugin(?:\s*\.\s*Companion)?\s*\.\s*initializePlugin\s*\(\s*this\s*\)[ \t]*;?"
)
FLUTTER_PUSH_PLUGIN_PATTERN = re.compile(r"SmartechPushPlugin(?:\.Companion)?\.initializePlugin\(")
DEEPLINK_CHECK_PATTERN = re.compile(r"isDeepLinkFromSmartech\s*\(")
DEEPLINK_BRANCH_PATTERN = re.compile(r"if\s*\(\s*!\s*isSmartechHandledDeeplink\s*\)")
PAIR_TEST_DEVICE_PATTERN = re.compile(r"Hansel\.pairTestDevice\s*\(")
SET_PUSH_TOKEN_PATTERN = re.compile(r"setDevicePushToken\s*\(")
HANDLE_PUSH_PATTERN = re.compile(r"handleRemotePushNotification\s*\(")

# Application.onCreate anchors for Hansel hooks, most specific first
SMARTECH_TRACK_CALL_PATTERN = re.compile(
    r"Smartech\.getInstance\([^\n]+\)\.trackAppInstallUpdateBySmartech\([^\n]*\)[ \t]*;?"
)
SMARTECH_INIT_CALL_PATTERN = re.compile(r"Smartech\.getInstance\([^\n]+\)\.initializeSdk\([^\n]*\)[ \t]*;?")

RECEIVER_ACTION = "com.smartech.EVENT_PN_INBOX_CLICK"
RECEIVER_REGISTRATION_PATTERN = re.compile(r"registerReceiver\s*\(\s*deeplinkReceiver\s*,\s*filter")
RECEIVER_VERSION_GUARD_PATTERN = re.compile(
    r"if\s*\(\s*Build\.VERSION\.SDK_INT\s*>=\s*Build\.VERSION_CODES\.UPSIDE_DOWN_CAKE\s*\)\s*\{[\s\S]*?\}\s*else\s*\{[\s\S]*?\}"
)
RECEIVER_PLAIN_JAVA_PATTERN = re.compile(r"registerReceiver\(deeplinkReceiver,\s*filter\);")
RECEIVER_PLAIN_KOTLIN_PATTERN = re.compile(r"registerReceiver\(deeplinkReceiver,\s*filter\)(?!\s*;)")
RECEIVER_CLASS_MARKERS = ("SMT_KEY_DEEPLINK", "SMT_KEY_CUSTOM_PAYLOAD", "onReceive")

# Base init lines; "comment" entries ride along with the call that follows them
RN_INIT_LINES_JAVA = (
    "Smartech.getInstance(new WeakReference<>(getApplicationContext())).initializeSdk(this);",
    "// Add the below line for debugging logs",
    "Smartech.getInstance(new WeakReference<>(getApplicationContext())).setDebugLevel(9);",
    "// Add the below line to track app install and update by smartech",
    "Smartech.getInstance(new WeakReference<>(getApplicationContext())).trackAppInstallUpdateBySmartech();",
    "SmartechBasePlugin smartechBasePlugin = SmartechBasePlugin.getInstance();",
    "smartechBasePlugin.init(this);",
)
RN_INIT_LINES_KOTLIN = (
    "Smartech.getInstance(WeakReference(applicationContext)).initializeSdk(this)",
    "// Add the below line for debugging logs",
    "Smartech.getInstance(WeakReference(applicationContext)).setDebugLevel(9)",
    "// Add the below line to track app install and update by smartech",
    "Smartech.getInstance(WeakReference(applicationContext)).trackAppInstallUpdateBySmartech()",
    "val smartechBasePlugin = SmartechBasePlugin.getInstance()",
    "smartechBasePlugin.init(this)",
)

FLUTTER_BASE_PLUGIN_INIT_JAVA = "SmartechBasePlugin.Companion.initializePlugin(this);"
FLUTTER_BASE_PLUGIN_INIT_KOTLIN = "SmartechBasePlugin.initializePlugin(this)"
FLUTTER_PUSH_PLUGIN_INIT_JAVA = "SmartechPushPlugin.Companion.initializePlugin(this);"
FLUTTER_PUSH_PLUGIN_INIT_KOTLIN = "SmartechPushPlugin.initializePlugin(this)"

FLUTTER_INIT_LINES_JAVA = (
    "Smartech.getInstance(new WeakReference<>(getApplicationContext())).initializeSdk(this);",
    "// Debug logs",
    "Smartech.getInstance(new WeakReference<>(getApplicationContext())).setDebugLevel(9);",
    "// Track install/update",
    "Smartech.getInstance(new WeakReference<>(getApplicationContext())).trackAppInstallUpdateBySmartech();",
    FLUTTER_BASE_PLUGIN_INIT_JAVA,
)
FLUTTER_INIT_LINES_KOTLIN = (
    "Smartech.getInstance(WeakReference(applicationContext)).initializeSdk(this)",
    "// Debug logs",
    "Smartech.getInstance(WeakReference(applicationContext)).setDebugLevel(9)",
    "// Track install/update",
    "Smartech.getInstance(WeakReference(applicationContext)).trackAppInstallUpdateBySmartech()",
    FLUTTER_BASE_PLUGIN_INIT_KOTLIN,
)

NATIVE_INIT_LINES_JAVA = (
    "Smartech.getInstance(new WeakReference<>(getApplicationContext())).initializeSdk(this);",
    "Smartech.getInstance(new WeakReference<>(getApplicationContext())).setDebugLevel(9);",
    "Smartech.getInstance(new WeakReference<>(getApplicationContext())).trackAppInstallUpdateBySmartech();",
)
NATIVE_INIT_LINES_KOTLIN = (
    "Smartech.getInstance(WeakReference(applicationContext)).initializeSdk(this)",
    "Smartech.getInstance(WeakReference(applicationContext)).setDebugLevel(9)",
    "Smartech.getInstance(WeakReference(applicationContext)).trackAppInstallUpdateBySmartech()",
)

DEEPLINK_LINES_JAVA = (
    "boolean isSmartechHandledDeeplink = Smartech.getInstance(new WeakReference<>(this)).isDeepLinkFromSmartech(getIntent());",
    "if (!isSmartechHandledDeeplink) {",
    "    // Handle deeplink on app side",
    "}",
)
DEEPLINK_LINES_KOTLIN = (
    "val isSmartechHandledDeeplink = Smartech.getInstance(WeakReference(this)).isDeepLinkFromSmartech(intent)",
    "if (!isSmartechHandledDeeplink) {",
    "    // Handle deeplink on app side",
    "}",
)
NATIVE_DEEPLINK_LINES_JAVA = (
    "boolean isSmartechHandledDeeplink =",
    "        Smartech.getInstance(new WeakReference<>(this))",
    "                .isDeepLinkFromSmartech(getIntent());",
    "",
    "if (!isSmartechHandledDeeplink) {",
    "    // Handle deeplink",
    "}",
)
NATIVE_DEEPLINK_LINES_KOTLIN = (
    "val isSmartechHandledDeeplink =",
    "    Smartech.getInstance(WeakReference(this))",
    "        .isDeepLinkFromSmartech(intent)",
    "",
    "if (!isSmartechHandledDeeplink) {",
    "    // Handle deeplink",
    "}",
)

PAIR_TEST_DEVICE_JAVA = "Hansel.pairTestDevice(getIntent().getDataString());"
PAIR_TEST_DEVICE_KOTLIN = "Hansel.pairTestDevice(intent?.dataString)"

RECEIVER_CLASS_JAVA = """package {package};

import android.content.BroadcastReceiver;
import android.content.Context;
import android.content.Intent;
import android.os.Bundle;
import android.util.Log;
import com.netcore.android.SMTBundleKeys;

public class DeeplinkReceiver extends BroadcastReceiver {{

    @Override
    public void onReceive(Context context, Intent intent) {{
        try {{
            Bundle bundleExtra = intent.getExtras();
            if (bundleExtra != null) {{
                String deepLinkSource = bundleExtra.getString(SMTBundleKeys.SMT_KEY_DEEPLINK_SOURCE);
                String deepLink = bundleExtra.getString(SMTBundleKeys.SMT_KEY_DEEPLINK);
                String customPayload = bundleExtra.getString(SMTBundleKeys.SMT_KEY_CUSTOM_PAYLOAD);

                if (deepLink != null && !deepLink.isEmpty()) {{
                    // handle deepLink
                }}

                if (customPayload != null && !customPayload.isEmpty()) {{
                    // handle custom payload
                }}
            }}
        }} catch (Throwable t) {{
            Log.e("DeeplinkReceiver", "Error occurred in deeplink:" + t.getLocalizedMessage());
        }}
    }}
}}
"""

RECEIVER_CLASS_KOTLIN = """package {package}

import android.content.BroadcastReceiver
import android.content.Context
import android.content.Intent
import android.util.Log
import com.netcore.android.SMTBundleKeys

class DeeplinkReceiver : BroadcastReceiver() {{

    override fun onReceive(context: Context, intent: Intent) {{
        try {{
            val bundleExtra = intent.extras
            bundleExtra?.let {{
                val deepLinkSource =
                    it.getString(SMTBundleKeys.SMT_KEY_DEEPLINK_SOURCE)
                val deepLink =
                    it.getString(SMTBundleKeys.SMT_KEY_DEEPLINK)
                val customPayload =
                    it.getString(SMTBundleKeys.SMT_KEY_CUSTOM_PAYLOAD)

                if (!deepLink.isNullOrEmpty()) {{
                    // handle deepLink
                }}

                if (!customPayload.isNullOrEmpty()) {{
                    // handle custom payload
                }}
            }}
        }} catch (t: Throwable) {{
            Log.e("DeeplinkReceiver", "Error occurred in deeplink:${{t.localizedMessage}}")
        }}
    }}
}}
"""

HANSEL_INTERNAL_EVENT_JAVA = (
    "HanselInternalEventsListener hanselInternalEventsListener =",
    "        (eventName, dataFromHansel) -> {",
    "            Smartech.getInstance(new WeakReference<>(getApplicationContext()))",
    "                    .trackEvent(eventName, (HashMap<String, Object>) dataFromHansel);",
    "            // Add other analytics platform if needed",
    "        };",
    "",
    "HanselTracker.registerListener(hanselInternalEventsListener);",
)
HANSEL_INTERNAL_EVENT_KOTLIN = (
    "val hanselInternalEventsListener =",
    "    HanselInternalEventsListener { eventName, dataFromHansel ->",
    "        Smartech.getInstance(WeakReference(applicationContext))",
    "            .trackEvent(eventName, dataFromHansel as HashMap<String, Any>)",
    "        // Add other analytics platform if needed",
    "    }",
    "",
    "HanselTracker.registerListener(hanselInternalEventsListener)",
)
HANSEL_DEEPLINK_JAVA = (
    "HanselDeepLinkListener hanselDeepLinkListener = (url) -> {",
    "    // deeplink redirection for hansel",
    "};",
    "",
    "Hansel.registerHanselDeeplinkListener(hanselDeepLinkListener);",
)
HANSEL_DEEPLINK_KOTLIN = (
    "val hanselDeepLinkListener = HanselDeepLinkListener { url ->",
    "    // deeplink redirection for hansel",
    "}",
    "",
    "Hansel.registerHanselDeeplinkListener(hanselDeepLinkListener)",
)
HANSEL_DEBUG_JAVA = (
    "HSLLogLevel.all.setEnabled(true);",
    "HSLLogLevel.mid.setEnabled(true);",
    "HSLLogLevel.debug.setEnabled(true);",
    "Hansel.enableDebugLogs();",
)
HANSEL_DEBUG_KOTLIN = (
    "HSLLogLevel.all.setEnabled(true)",
    "HSLLogLevel.mid.setEnabled(true)",
    "HSLLogLevel.debug.setEnabled(true)",
    "Hansel.enableDebugLogs()",
)
HANSEL_LISTENER_PATTERN = re.compile(r"HanselTracker\.registerListener\s*\(")
HANSEL_DEEPLINK_LISTENER_PATTERN = re.compile(r"registerHanselDeeplinkListener\s*\(")
HANSEL_DEBUG_PATTERN = re.compile(r"Hansel\.enableDebugLogs\s*\(\s*\)")

# =============================================================================
# REACT NATIVE
# =============================================================================
RN_BASE_PACKAGE = "smartech-base-react-native"
RN_PUSH_PACKAGE = "smartech-push-react-native"
RN_FIREBASE_MESSAGING_PACKAGE = "@react-native-firebase/messaging"
RN_PX_PACKAGE = "smartech-reactnative-nudges"

REACT_IMPORT_PATTERN = re.compile(r"import\s+React\s*(,\s*\{[^}]*\})?\s*from\s+['\"]react['\"];?")
REACT_NAMED_IMPORT_PATTERN = re.compile(r"import\s*\{([^}]*)\}\s*from\s+['\"]react['\"];?")
JSX_RETURN_PATTERN = re.compile(r"^([ \t]*)return\s*\(", re.MULTILINE)

RN_PX_IMPORT = "import { HanselTrackerRn } from 'smartech-reactnative-nudges';"
RN_PUSH_IMPORTS = (
    "import messaging from '@react-native-firebase/messaging';",
    "import SmartechPushReact from 'smartech-push-react-native';",
    "import SmartechReact from 'smartech-base-react-native';",
)

# (marker pattern, block lines) per behaviour; lines are relative to the effect body
RN_PX_EFFECT_BEHAVIOURS = (
    (
        re.compile(r"HanselInternalEvent"),
        (
            "HanselTrackerRn.addListener('HanselInternalEvent', (e) => {",
            "  console.log('Event Detail:', e);",
            "});",
        ),
    ),
    (
        re.compile(r"HanselDeepLinkListener"),
        (
            "HanselTrackerRn.addListener('HanselDeepLinkListener', (e) => {",
            "  console.log('DeepLink Listener URL:', e.deeplink);",
            "});",
        ),
    ),
    (re.compile(r"registerHanselTrackerListener"), ("HanselTrackerRn.registerHanselTrackerListener();",)),
    (re.compile(r"registerHanselDeeplinkListener"), ("HanselTrackerRn.registerHanselDeeplinkListener();",)),
)

RN_PUSH_EFFECT_BEHAVIOURS = (
    (
        re.compile(r"SmartechPushReact\.setDevicePushToken"),
        (
            "messaging()",
            "  .getToken()",
            "  .then((token) => {",
            "    SmartechPushReact.setDevicePushToken(token);",
            "  });",
        ),
    ),
    (
        re.compile(r"SmartechReact\.addListener\(\s*SmartechReact\.SmartechDeeplink"),
        (
            "SmartechReact.addListener(SmartechReact.SmartechDeeplink, (data) => {",
            "  // Handle deeplink and custom payload from Smartech",
            "  console.log('Smartech Deeplink:', data.smtDeeplink, data.smtCustomPayload);",
            "});",
        ),
    ),
    (
        re.compile(r"messaging\(\)\s*\.onMessage\("),
        (
            "messaging().onMessage(async (remoteMessage) => {",
            "  SmartechPushReact.handlePushNotification(remoteMessage.data, (isSmartech) => {",
            "    if (!isSmartech) {",
            "      // Handle non-Smartech notification",
            "    }",
            "  });",
            "});",
        ),
    ),
)

# =============================================================================
# FLUTTER / DART
# =============================================================================
FLUTTER_BASE_PUB = "smartech_base"
FLUTTER_PUSH_PUB = "smartech_push"
FLUTTER_PX_PUB = "smartech_nudges"

PUBSPEC_DEPENDENCIES_PATTERN = re.compile(r"^dependencies:[ \t]*$", re.MULTILINE)
DART_IMPORT_PATTERN = re.compile(r"import\s+['\"][^'\"]+['\"];[^\n]*\n")
DART_MAIN_PATTERN = re.compile(r"(?:Future<void>\s+|void\s+)main\(\)\s*(?:async\s*)?\{")
DART_STATE_CLASS_PATTERN = re.compile(r"class\s+\w+\s+extends\s+State<[^>]+>\s*\{")
DART_INIT_STATE_PATTERN = re.compile(r"initState\s*\(\s*\)")
DART_SUPER_INIT_STATE_PATTERN = re.compile(r"super\.initState\s*\(\s*\)\s*;")
DART_GO_ROUTER_PATTERN = re.compile(r"GoRouter\s*\(")
DART_APP_WIDGET_PATTERN = re.compile(r"\b(?:MaterialApp|CupertinoApp|WidgetsApp)(?:\.router)?\s*\(")

DART_PUSH_IMPORTS = (
    "package:firebase_core/firebase_core.dart",
    "package:firebase_messaging/firebase_messaging.dart",
    "package:smartech_push/smartech_push.dart",
    "package:smartech_base/smartech_base.dart",
)
DART_PX_IMPORTS = (
    "package:smartech_nudges/smartech_nudges.dart",
    "package:flutter/foundation.dart",
)

DART_BACKGROUND_HANDLER = """@pragma('vm:entry-point')
Future<void> firebaseMessagingBackgroundHandler(RemoteMessage message) async {
  await Firebase.initializeApp();

  bool isFromSmt =
      await SmartechPush().isNotificationFromSmartech(message.data.toString());

  if (isFromSmt) {
    SmartechPush().handlePushNotification(message.data.toString());
    return;
  }

  // Handle non-Smartech notification
}

"""
DART_BACKGROUND_REGISTRATION = "FirebaseMessaging.onBackgroundMessage(firebaseMessagingBackgroundHandler);"

DART_REGISTER_TOKEN_CALL = "_registerPushToken();"
DART_ON_MESSAGE_LINES = (
    "FirebaseMessaging.onMessage.listen((RemoteMessage message) async {",
    "  bool isFromSmt =",
    "      await SmartechPush().isNotificationFromSmartech(message.data.toString());",
    "",
    "  if (isFromSmt) {",
    "    SmartechPush().handlePushNotification(message.data.toString());",
    "    return;",
    "  }",
    "",
    "  // Handle non-Smartech notification",
    "});",
)
DART_DEEPLINK_LINES = (
    "Smartech().onHandleDeeplink((",
    "  String? smtDeeplinkSource,",
    "  String? smtDeeplink,",
    "  Map<dynamic, dynamic>? smtPayload,",
    "  Map<dynamic, dynamic>? smtCustomPayload,",
    ") async {",
    "  // Perform action on notification click",
    "});",
)
DART_REGISTER_TOKEN_METHOD = """
  Future<void> _registerPushToken() async {
    final androidToken = await FirebaseMessaging.instance.getToken();
    if (androidToken != null) {
      SmartechPush().setDevicePushToken(androidToken);
    }
  }
"""

DART_PX_REGISTRATIONS = (
    (
        re.compile(r"registerPxDeeplinkListener"),
        "NetcorePX.instance.registerPxDeeplinkListener(SmartechPxDeeplinkListener());",
    ),
    (
        re.compile(r"registerPxInternalEventsListener"),
        "NetcorePX.instance.registerPxInternalEventsListener(SmartechPxEventsListener());",
    ),
)
DART_PX_LISTENER_SUBCLASS_PATTERN = re.compile(r"extends\s+Px(?:DeeplinkListener|InternalEventsListener)")
DART_GENERATED_LISTENER_PATTERNS = (
    re.compile(r"class\s+SmartechPxDeeplinkListener\s+extends\s+PxDeeplinkListener\b"),
    re.compile(r"class\s+SmartechPxEventsListener\s+extends\s+PxInternalEventsListener\b"),
)

DART_PX_LISTENERS = """import 'package:flutter/foundation.dart';
import 'package:smartech_nudges/smartech_nudges.dart';

class SmartechPxDeeplinkListener extends PxDeeplinkListener {
  @override
  void onLaunchUrl(String url) {
    debugPrint('PXDeeplink: $url');
  }
}

class SmartechPxEventsListener extends PxInternalEventsListener {
  @override
  void onEvent(String eventName, Map dataFromHansel) {
    debugPrint('PXEvent: $eventName eventData : $dataFromHansel');
  }
}
"""

# =============================================================================
# MANUAL SNIPPETS
# =============================================================================
BASE_DEEPLINK_SNIPPET = """// MainActivity onCreate (Kotlin)
override fun onCreate(savedInstanceState: Bundle?) {
  super.onCreate(savedInstanceState)
  val isSmartechHandledDeeplink =
      Smartech.getInstance(WeakReference(this)).isDeepLinkFromSmartech(intent)
  if (!isSmartechHandledDeeplink) {
    // Handle deeplink on app side
  }
}

// AndroidManifest.xml (launcher activity)
<intent-filter>
  <action android:name="android.intent.action.VIEW" />
  <category android:name="android.intent.category.DEFAULT" />
  <category android:name="android.intent.category.BROWSABLE" />
  <data
      android:scheme="YOUR_CUSTOM_SCHEME"
      android:host="smartech_sdk_td" />
</intent-filter>
"""

PX_INTENT_SNIPPET = """<intent-filter>
    <action android:name="android.intent.action.VIEW" />
    <category android:name="android.intent.category.DEFAULT" />
    <category android:name="android.intent.category.BROWSABLE" />
    <data android:scheme="YOUR_CUSTOM_SCHEME" />
</intent-filter>
"""

FIREBASE_SERVICE_SNIPPET = """// Kotlin FirebaseMessagingService
override fun onNewToken(token: String) {
    super.onNewToken(token)
    SmartPush.getInstance(WeakReference<Context>(this)).setDevicePushToken(token)
}

override fun onMessageReceived(remoteMessage: RemoteMessage) {
    super.onMessageReceived(remoteMessage)
    val isPnHandledBySmartech = SmartPush.getInstance(WeakReference<Context>(this))
        .handleRemotePushNotification(remoteMessage)
    if (!isPnHandledBySmartech) {
        // Notification from other sources, handle yourself
    }
}
"""

FLUTTER_PUSH_INIT_SNIPPET = """// Application.onCreate, after the base plugin init
SmartechBasePlugin.initializePlugin(this)
SmartechPushPlugin.initializePlugin(this)
"""

FLUTTER_PUSH_STATE_SNIPPET = """// In your State<...> class
@override
void initState() {
  super.initState();
  _registerPushToken();
  FirebaseMessaging.onMessage.listen((RemoteMessage message) async {
    // SmartechPush().handlePushNotification(...)
  });
  Smartech().onHandleDeeplink((smtDeeplinkSource, smtDeeplink, smtPayload, smtCustomPayload) async {
    // Perform action on notification click
  });
}
"""

FLUTTER_PX_REGISTRATION_SNIPPET = """// In main(), after initialization:
NetcorePX.instance.registerPxDeeplinkListener(SmartechPxDeeplinkListener());
NetcorePX.instance.registerPxInternalEventsListener(SmartechPxEventsListener());
"""

FLUTTER_PX_WIDGET_SNIPPET = """// Wrap your top-level app widget
return SmartechPxWidget(
  child: MaterialApp(
    navigatorObservers: [PxNavigationObserver()],
    home: const MyHomePage(),
  ),
);
"""

RN_PUSH_EFFECT_SNIPPET = """useEffect(() => {
  messaging()
    .getToken()
    .then((token) => {
      SmartechPushReact.setDevicePushToken(token);
    });
}, []);
"""
