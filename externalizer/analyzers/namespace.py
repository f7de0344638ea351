"""Resource namespace resolution.

Finds, for a source file, the package under which its module's generated
``R`` class lives. Resolution order (first hit wins):

1. The module system's declared namespace (host collaborator).
2. The ``package`` attribute of the module's ``AndroidManifest.xml``.
3. ``namespace`` then ``applicationId`` assignments in the module's Gradle
   build file (regex, several spellings).
4. The application model's application id (host collaborator).
5. The file's own package, truncated component by component, checked with
   the namespace oracle.
6. The shortest namespace anywhere in the project the oracle knows about.

Steps 2 to 4 are also confirmed by the oracle. Results, including misses,
are cached per file until ``clear_cache``.
"""

import re
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from lxml import etree

from externalizer.config import DISABLED_NAMESPACE, ExtractorConfig
from externalizer.logging import logger
from externalizer.rewrite.imports import parse_header
from externalizer.utils.documents import SKIP_DIRS

MANIFEST_PATHS = ("src/main/AndroidManifest.xml", "AndroidManifest.xml")
BUILD_FILES = ("build.gradle", "build.gradle.kts")


def _assignment_patterns(name: str) -> list[re.Pattern[str]]:
    return [
        re.compile(rf"""\b{name}\s*=\s*["']([^"']+)["']"""),
        re.compile(rf"""\b{name}\s+["']([^"']+)["']"""),
        re.compile(rf"""\b{name}\s*\(\s*["']([^"']+)["']\s*\)"""),
    ]


NAMESPACE_PATTERNS = _assignment_patterns("namespace")
APPLICATION_ID_PATTERNS = _assignment_patterns("applicationId")


def _usable(namespace: str | None) -> bool:
    return bool(namespace) and namespace != DISABLED_NAMESPACE


# =============================================================================
# Host collaborators
# =============================================================================


@runtime_checkable
class ModuleSystem(Protocol):
    """Build system view of the module owning a file."""

    def resource_namespace(self, path: Path) -> str | None: ...


@runtime_checkable
class ApplicationModel(Protocol):
    """Platform application model for the module owning a file."""

    def application_id(self, path: Path) -> str | None: ...


@runtime_checkable
class NamespaceOracle(Protocol):
    """Confirms that ``<namespace>.R`` exists and has a strings member."""

    def verify(self, namespace: str) -> bool: ...

    def all_namespaces(self) -> list[str]: ...


# =============================================================================
# Module descriptors
# =============================================================================


def find_module_dir(path: Path, project_root: Path) -> Path | None:
    """Nearest directory at or above ``path`` holding a Gradle build file."""
    current = path if path.is_dir() else path.parent
    root = project_root.resolve()
    while True:
        if any((current / name).is_file() for name in BUILD_FILES):
            return current
        if current == root or current.parent == current:
            return None
        current = current.parent


def manifest_package(module_dir: Path) -> str | None:
    """``package`` attribute of the module manifest's root element."""
    for relative in MANIFEST_PATHS:
        manifest = module_dir / relative
        if not manifest.is_file():
            continue
        try:
            root = etree.parse(str(manifest)).getroot()
        except (OSError, etree.XMLSyntaxError) as e:
            logger.warning("  Cannot read manifest %s: %s", manifest, e)
            continue
        if root.tag == "manifest":
            package = root.get("package")
            if _usable(package):
                return package
    return None


def gradle_namespace(module_dir: Path) -> str | None:
    """``namespace``, else ``applicationId``, declared in the module build file."""
    for name in BUILD_FILES:
        build_file = module_dir / name
        if not build_file.is_file():
            continue
        try:
            content = build_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("  Cannot read build file %s: %s", build_file, e)
            continue
        for patterns in (NAMESPACE_PATTERNS, APPLICATION_ID_PATTERNS):
            for pattern in patterns:
                match = pattern.search(content)
                if match and _usable(match.group(1)):
                    return match.group(1)
    return None


def candidate_packages(file_package: str) -> list[str]:
    """Truncations of a package from most to least specific (at least 2 parts)."""
    parts = file_package.split(".")
    return [
        ".".join(parts[:size])
        for size in range(len(parts), 1, -1)
        if _usable(".".join(parts[:size]))
    ]


class SourceTreeOracle:
    """Namespace oracle backed by the project's own module descriptors.

    A namespace is verified when some module declares it (manifest or Gradle)
    and that module owns a strings table.
    """

    def __init__(self, project_root: Path | str, config: ExtractorConfig | None = None):
        self.project_root = Path(project_root).resolve()
        self.config = config or ExtractorConfig()
        self._namespaces: dict[str, Path] | None = None
        self._lock = threading.Lock()

    def _modules(self) -> dict[str, Path]:
        with self._lock:
            if self._namespaces is None:
                self._namespaces = self._discover()
            return self._namespaces

    def _discover(self) -> dict[str, Path]:
        namespaces: dict[str, Path] = {}
        for name in BUILD_FILES:
            for build_file in sorted(self.project_root.rglob(name)):
                if any(part in SKIP_DIRS for part in build_file.relative_to(self.project_root).parts):
                    continue
                module_dir = build_file.parent
                if not self._has_strings(module_dir):
                    continue
                for namespace in (gradle_namespace(module_dir), manifest_package(module_dir)):
                    if namespace and namespace not in namespaces:
                        namespaces[namespace] = module_dir
        return namespaces

    def _has_strings(self, module_dir: Path) -> bool:
        values_dir = module_dir / "src" / "main" / "res" / "values"
        if values_dir.is_dir() and any(values_dir.glob("strings*.xml")):
            return True
        for relative in self.config.table_paths:
            table = (self.project_root / relative).resolve()
            if table.is_file() and table.is_relative_to(module_dir.resolve()):
                return True
        return False

    def verify(self, namespace: str) -> bool:
        return _usable(namespace) and namespace in self._modules()

    def all_namespaces(self) -> list[str]:
        return list(self._modules())


# =============================================================================
# Resolver
# =============================================================================


class NamespaceResolver:
    """Per-session, per-file cache of resource namespaces.

    Safe for concurrent use: each path is resolved at most once until
    ``clear_cache``.
    """

    def __init__(
        self,
        project_root: Path | str,
        module_system: ModuleSystem | None = None,
        application_model: ApplicationModel | None = None,
        oracle: NamespaceOracle | None = None,
        config: ExtractorConfig | None = None,
    ):
        self.project_root = Path(project_root).resolve()
        self.module_system = module_system
        self.application_model = application_model
        self.oracle = oracle or SourceTreeOracle(self.project_root, config)
        self._cache: dict[str, str | None] = {}
        self._lock = threading.Lock()
        self._path_locks: dict[str, threading.Lock] = {}

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self._path_locks.clear()

    def resolve(self, path: Path | str, text: str | None = None) -> str | None:
        """Resource namespace for a file, or None if it cannot be determined.

        Args:
            path: Source file.
            text: Current file text, used to read its package declaration.
                Read from disk when omitted.
        """
        key = str(Path(path).resolve())
        with self._lock:
            if key in self._cache:
                return self._cache[key]
            path_lock = self._path_locks.setdefault(key, threading.Lock())

        with path_lock:
            with self._lock:
                if key in self._cache:
                    return self._cache[key]
            result = self._resolve_uncached(Path(key), text)
            if not _usable(result):
                result = None
            with self._lock:
                self._cache[key] = result
            if result is None:
                logger.warning("  Cannot resolve resource namespace for %s", key)
            return result

    def _resolve_uncached(self, path: Path, text: str | None) -> str | None:
        if self.module_system is not None:
            namespace = self.module_system.resource_namespace(path)
            if _usable(namespace):
                return namespace

        module_dir = find_module_dir(path, self.project_root)
        if module_dir is not None:
            for lookup in (manifest_package, gradle_namespace):
                namespace = lookup(module_dir)
                if _usable(namespace) and self.oracle.verify(namespace):
                    return namespace

        if self.application_model is not None:
            namespace = self.application_model.application_id(path)
            if _usable(namespace) and self.oracle.verify(namespace):
                return namespace

        file_package = self._file_package(path, text)
        if file_package:
            for candidate in candidate_packages(file_package):
                if self.oracle.verify(candidate):
                    return candidate

        known = [ns for ns in self.oracle.all_namespaces() if _usable(ns)]
        if known:
            return min(known, key=len)
        return None

    @staticmethod
    def _file_package(path: Path, text: str | None) -> str | None:
        if text is None:
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                return None
        return parse_header(text).package
