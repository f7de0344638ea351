"""Commit phase: table sync, then per-occurrence source rewriting.

A commit is one serialized transaction. The table is written first because
rewritten sources reference its keys. Each occurrence is then rewritten on
its own: a stale handle, an unresolved namespace or a synthesis failure is
recorded and the run continues. Only a table failure aborts the commit.
"""

import threading
from typing import Protocol

from externalizer.analyzers.namespace import NamespaceResolver
from externalizer.config import ExtractorConfig
from externalizer.dialects import DIALECTS, LiteralDialect
from externalizer.errors import ExternalizerError, ResourceTableError
from externalizer.logging import logger
from externalizer.models.records import (
    Dialect,
    Group,
    Occurrence,
    ReplacementOutcome,
    ReplacementReport,
)
from externalizer.utils.documents import Workspace
from externalizer.utils.resource_table import ResourceTable

PHASE_TABLE = "writing table"
PHASE_SOURCE = "rewriting source"

STALE_ELEMENT = "invalid or stale element"
UNRESOLVED_NAMESPACE = "cannot resolve namespace"

# One mutation phase at a time, process-wide
_COMMIT_LOCK = threading.Lock()


class ProgressSink(Protocol):
    """Receives commit progress (a UI progress bar, ``ProgressBar``...)."""

    def on_phase(self, label: str) -> None: ...

    def on_progress(self, current: int, total: int, label: str) -> None: ...


class NullProgress:
    def on_phase(self, label: str) -> None:
        pass

    def on_progress(self, current: int, total: int, label: str) -> None:
        pass


def format_diagnostic(occurrence: Occurrence, reason: str) -> str:
    return f"{occurrence.file_name}:{occurrence.line} - {reason}"


class Replacer:
    """Applies selected groups to the resource table and the sources."""

    def __init__(
        self,
        workspace: Workspace,
        table: ResourceTable,
        resolver: NamespaceResolver,
        config: ExtractorConfig | None = None,
        dialects: dict[Dialect, LiteralDialect] | None = None,
    ):
        self.workspace = workspace
        self.table = table
        self.resolver = resolver
        self.config = config or ExtractorConfig()
        self.dialects = dialects or DIALECTS

    def replace_occurrence(self, occurrence: Occurrence, key: str) -> ReplacementOutcome:
        """Rewrite one occurrence to reference ``key``.

        Never raises for per-item problems; the outcome carries the reason.
        """
        dialect = self.dialects[occurrence.dialect]
        try:
            doc = self.workspace.document(occurrence.path)
        except (OSError, UnicodeDecodeError) as e:
            return ReplacementOutcome(occurrence, error=str(e))

        with doc.lock:
            node = doc.node_at(occurrence.handle)
            if node is None:
                return ReplacementOutcome(occurrence, error=STALE_ELEMENT)

            qualifier: str | None = None
            if dialect.requires_qualifier:
                qualifier = self.resolver.resolve(doc.path, doc.text)
                if qualifier is None:
                    return ReplacementOutcome(occurrence, error=UNRESOLVED_NAMESPACE)

            try:
                expression = dialect.build_expression(
                    doc, node, occurrence, qualifier, key, self.config
                )
                handle = dialect.apply(doc, occurrence.handle, expression, qualifier, self.config)
            except ExternalizerError as e:
                return ReplacementOutcome(occurrence, error=str(e))
            except Exception as e:
                logger.debug("  Replacement failed", exc_info=True)
                return ReplacementOutcome(occurrence, error=f"{type(e).__name__}: {e}")

        return ReplacementOutcome(occurrence, handle=handle)

    def commit(
        self,
        groups: list[Group],
        progress: ProgressSink | None = None,
    ) -> ReplacementReport:
        """Write the table, rewrite every selected occurrence, save documents.

        Args:
            groups: Groups from a scan; unselected groups are ignored.
            progress: Optional sink for phase labels and per-item progress.

        Returns:
            Counts and per-item diagnostics.

        Raises:
            ResourceTableError: If the table cannot be located, created,
                read or written. No source is rewritten in that case.
        """
        sink = progress or NullProgress()
        selected = [group for group in groups if group.selected]
        total = sum(len(group.occurrences) for group in selected)
        success = 0
        errors: list[str] = []

        with _COMMIT_LOCK:
            sink.on_phase(PHASE_TABLE)
            try:
                self.table.sync_groups(selected, self.workspace)
            except ResourceTableError as e:
                logger.error("  String table update failed: %s", e)
                raise

            sink.on_phase(PHASE_SOURCE)
            index = 0
            for group in selected:
                key = group.effective_key
                for occurrence in group.occurrences:
                    index += 1
                    sink.on_progress(index, total, occurrence.file_name)
                    outcome = self.replace_occurrence(occurrence, key)
                    if outcome.ok:
                        success += 1
                    else:
                        diagnostic = format_diagnostic(occurrence, outcome.error or "")
                        logger.warning("  %s", diagnostic)
                        errors.append(diagnostic)

            self.workspace.save_all()

        return ReplacementReport(
            total_locations=total,
            success_count=success,
            failed_count=total - success,
            errors=errors,
        )
