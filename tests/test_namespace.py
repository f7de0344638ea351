"""Tests for resource namespace resolution."""

from pathlib import Path

import pytest

from externalizer.analyzers.namespace import (
    NamespaceResolver,
    SourceTreeOracle,
    candidate_packages,
    find_module_dir,
    gradle_namespace,
    manifest_package,
)


class FakeModuleSystem:
    def __init__(self, namespace: str | None):
        self.namespace = namespace
        self.calls = 0

    def resource_namespace(self, path: Path) -> str | None:
        self.calls += 1
        return self.namespace


class FakeApplicationModel:
    def __init__(self, application_id: str | None):
        self.application_id_value = application_id

    def application_id(self, path: Path) -> str | None:
        return self.application_id_value


class FakeOracle:
    def __init__(self, namespaces: list[str]):
        self.namespaces = namespaces

    def verify(self, namespace: str) -> bool:
        return namespace in self.namespaces

    def all_namespaces(self) -> list[str]:
        return list(self.namespaces)


class TestModuleDescriptors:
    """Tests for reading manifests and Gradle build files."""

    def test_manifest_package(self, android_project: Path) -> None:
        """The manifest package attribute is read."""
        assert manifest_package(android_project / "app") == "com.example.app"

    def test_find_module_dir(self, android_project: Path, source_dir: Path) -> None:
        """The module directory is the nearest one with a build file."""
        assert find_module_dir(source_dir / "Main.java", android_project) == android_project / "app"

    @pytest.mark.parametrize(
        "content",
        [
            'android {\n    namespace = "com.acme.kts"\n}\n',
            "android {\n    namespace 'com.acme.kts'\n}\n",
            'android {\n    namespace("com.acme.kts")\n}\n',
        ],
    )
    def test_gradle_namespace_spellings(self, temp_dir: Path, content: str) -> None:
        """All Gradle namespace spellings are recognized."""
        (temp_dir / "build.gradle.kts").write_text(content)
        assert gradle_namespace(temp_dir) == "com.acme.kts"

    def test_gradle_application_id_fallback(self, temp_dir: Path) -> None:
        """applicationId is used when no namespace is declared."""
        (temp_dir / "build.gradle").write_text('defaultConfig {\n    applicationId "com.acme.id"\n}\n')
        assert gradle_namespace(temp_dir) == "com.acme.id"

    def test_candidate_packages(self) -> None:
        """Candidates run from the full package to two segments."""
        assert candidate_packages("com.example.app.ui") == [
            "com.example.app.ui",
            "com.example.app",
            "com.example",
        ]
        assert candidate_packages("single") == []


class TestSourceTreeOracle:
    def test_discovers_modules_with_strings(self, android_project: Path) -> None:
        """Only modules with a strings table are known namespaces."""
        library = android_project / "lib"
        library.mkdir()
        (library / "build.gradle").write_text("android { namespace 'com.example.lib' }\n")

        oracle = SourceTreeOracle(android_project)

        assert oracle.verify("com.example.app") is True
        assert oracle.verify("com.example.lib") is False
        assert oracle.verify("DISABLED") is False
        assert oracle.all_namespaces() == ["com.example.app"]


class TestNamespaceResolver:
    """Tests for the resolution chain and its cache."""

    def test_manifest_namespace(self, android_project: Path, source_dir: Path) -> None:
        """A module's manifest namespace resolves its sources."""
        java = source_dir / "Main.java"
        java.write_text("package com.example.app.ui;\n\nclass Main {}\n")
        assert NamespaceResolver(android_project).resolve(java) == "com.example.app"

    def test_module_system_wins(self, android_project: Path, source_dir: Path) -> None:
        """The host module system is asked first."""
        resolver = NamespaceResolver(android_project, module_system=FakeModuleSystem("com.host.ns"))
        assert resolver.resolve(source_dir / "Main.java", "class Main {}") == "com.host.ns"

    def test_disabled_module_namespace_falls_through(
        self, android_project: Path, source_dir: Path
    ) -> None:
        """A disabled namespace falls through to the next step."""
        resolver = NamespaceResolver(android_project, module_system=FakeModuleSystem("DISABLED"))
        assert resolver.resolve(source_dir / "Main.java", "class Main {}") == "com.example.app"

    def test_application_model(self, temp_dir: Path) -> None:
        """A verified application id is used."""
        resolver = NamespaceResolver(
            temp_dir,
            application_model=FakeApplicationModel("com.example.id"),
            oracle=FakeOracle(["com.example.id"]),
        )
        assert resolver.resolve(temp_dir / "Main.kt", "fun main() {}") == "com.example.id"

    def test_unverified_application_model_is_ignored(self, temp_dir: Path) -> None:
        """An application id the oracle does not know is ignored."""
        resolver = NamespaceResolver(
            temp_dir,
            application_model=FakeApplicationModel("com.example.id"),
            oracle=FakeOracle([]),
        )
        assert resolver.resolve(temp_dir / "Main.kt", "fun main() {}") is None

    def test_truncated_file_package(self, temp_dir: Path) -> None:
        """The longest known prefix of the file package wins."""
        resolver = NamespaceResolver(temp_dir, oracle=FakeOracle(["com.acme", "com.acme.shop"]))
        text = "package com.acme.shop.cart.ui\n\nclass Cart\n"
        assert resolver.resolve(temp_dir / "Cart.kt", text) == "com.acme.shop"

    def test_shortest_known_namespace(self, temp_dir: Path) -> None:
        """The shortest known namespace is the last resort."""
        resolver = NamespaceResolver(temp_dir, oracle=FakeOracle(["com.acme.shop", "com.acme"]))
        assert resolver.resolve(temp_dir / "Main.kt", "fun main() {}") == "com.acme"

    def test_unresolvable(self, temp_dir: Path) -> None:
        """No source of namespace gives None."""
        resolver = NamespaceResolver(temp_dir)
        assert resolver.resolve(temp_dir / "Main.kt", "package com.x\n") is None

    def test_results_are_cached(self, android_project: Path, source_dir: Path) -> None:
        """Each path is resolved once until the cache is cleared."""
        modules = FakeModuleSystem("com.host.ns")
        resolver = NamespaceResolver(android_project, module_system=modules)
        path = source_dir / "Main.java"

        assert resolver.resolve(path, "") == "com.host.ns"
        modules.namespace = "com.host.changed"
        assert resolver.resolve(path, "") == "com.host.ns"
        assert modules.calls == 1

        resolver.clear_cache()
        assert resolver.resolve(path, "") == "com.host.changed"
        assert modules.calls == 2

    def test_misses_are_cached(self, temp_dir: Path) -> None:
        """A failed lookup is cached until cleared."""
        oracle = FakeOracle([])
        resolver = NamespaceResolver(temp_dir, oracle=oracle)
        assert resolver.resolve(temp_dir / "Main.kt", "") is None
        oracle.namespaces.append("com.late")
        assert resolver.resolve(temp_dir / "Main.kt", "") is None
