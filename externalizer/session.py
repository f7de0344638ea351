"""Scan/commit session over one project.

An ``ExtractionSession`` owns everything with a lifetime of one cycle: the
document workspace, the strings table, the namespace resolver cache and the
key generator. Nothing is retained across sessions.

Example:
    session = ExtractionSession("/path/to/android/project")
    groups = session.scan(["app/src/main"])
    for group in groups:
        group.selected = group.text != "Debug"
    report = session.commit(groups)
    session.close()
"""

from pathlib import Path
from typing import Any

from externalizer.analyzers.grouping import KeyGenerator, group_occurrences
from externalizer.analyzers.literal_scanner import scan_files
from externalizer.analyzers.namespace import (
    ApplicationModel,
    ModuleSystem,
    NamespaceOracle,
    NamespaceResolver,
)
from externalizer.config import ExtractorConfig
from externalizer.dialects import DIALECTS
from externalizer.logging import log_operation
from externalizer.models.records import Group, ReplacementReport
from externalizer.rewrite.replacer import ProgressSink, Replacer
from externalizer.utils.documents import Workspace
from externalizer.utils.resource_table import ResourceTable


class ExtractionSession:
    """One scan/commit cycle for a project root."""

    def __init__(
        self,
        project_root: Path | str,
        config: ExtractorConfig | None = None,
        module_system: ModuleSystem | None = None,
        application_model: ApplicationModel | None = None,
        oracle: NamespaceOracle | None = None,
    ):
        self.project_root = Path(project_root).resolve()
        if not self.project_root.is_dir():
            raise ValueError(f"Project root is not a directory: {self.project_root}")
        self.config = config or ExtractorConfig.from_env()
        self.workspace = Workspace(self.project_root)
        self.table = ResourceTable(self.project_root, self.config)
        self.resolver = NamespaceResolver(
            self.project_root,
            module_system=module_system,
            application_model=application_model,
            oracle=oracle,
            config=self.config,
        )
        self.keys = KeyGenerator(self.table.key_exists)
        self.dialects = dict(DIALECTS)
        self.scan_errors: list[dict[str, Any]] = []

    def __enter__(self) -> "ExtractionSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def scan(self, paths: list[Path | str] | None = None) -> list[Group]:
        """Find externalizable text and group it.

        Args:
            paths: Files or directories to scan, absolute or relative to the
                project root. Defaults to the whole project.

        Returns:
            Groups in order of first appearance; all selected.
        """
        with log_operation("scan", {"root": self.project_root}):
            result = scan_files(self.workspace, paths, self.config)
            self.scan_errors = result.errors
            return group_occurrences(
                result.occurrences, self.table.find_key_by_value, self.keys
            )

    def commit(
        self,
        groups: list[Group],
        progress: ProgressSink | None = None,
    ) -> ReplacementReport:
        """Apply the selected groups to the table and the sources.

        Raises:
            ResourceTableError: If the strings table cannot be written.
        """
        replacer = Replacer(
            self.workspace, self.table, self.resolver, self.config, self.dialects
        )
        selected = sum(1 for group in groups if group.selected)
        with log_operation("commit", {"groups": selected}):
            return replacer.commit(groups, progress)

    def close(self) -> None:
        self.resolver.clear_cache()
