"""Pytest configuration and shared fixtures."""

import os
import tempfile
from pathlib import Path

import pytest

# Progress bars would write escape codes into captured output
os.environ.setdefault("EXTERNALIZER_DISABLE_PROGRESS", "1")

STRINGS_XML = """<?xml version="1.0" encoding="utf-8"?>
<resources>
    <string name="app_name">Demo</string>
</resources>
"""

MANIFEST_XML = """<?xml version="1.0" encoding="utf-8"?>
<manifest xmlns:android="http://schemas.android.com/apk/res/android"
    package="com.example.app">
    <application android:label="@string/app_name" />
</manifest>
"""

BUILD_GRADLE = """plugins {
    id 'com.android.application'
}

android {
    namespace 'com.example.app'
    defaultConfig {
        applicationId "com.example.app"
    }
}
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def android_project(temp_dir: Path) -> Path:
    """Create a minimal single-module Android project.

    Layout::

        settings.gradle
        app/build.gradle                          (namespace com.example.app)
        app/src/main/AndroidManifest.xml
        app/src/main/res/values/strings.xml       (app_name = Demo)
    """
    (temp_dir / "settings.gradle").write_text("include ':app'\n")
    app = temp_dir / "app"
    (app / "src" / "main" / "res" / "values").mkdir(parents=True)
    (app / "src" / "main" / "java" / "com" / "example" / "app").mkdir(parents=True)
    (app / "src" / "main" / "res" / "layout").mkdir(parents=True)
    (app / "build.gradle").write_text(BUILD_GRADLE)
    (app / "src" / "main" / "AndroidManifest.xml").write_text(MANIFEST_XML)
    (app / "src" / "main" / "res" / "values" / "strings.xml").write_text(STRINGS_XML)
    return temp_dir


@pytest.fixture
def source_dir(android_project: Path) -> Path:
    """Java/Kotlin source directory of the app module's main package."""
    return android_project / "app" / "src" / "main" / "java" / "com" / "example" / "app"


@pytest.fixture
def layout_dir(android_project: Path) -> Path:
    return android_project / "app" / "src" / "main" / "res" / "layout"
