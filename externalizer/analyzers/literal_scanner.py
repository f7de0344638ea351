"""Literal scanning across a project.

Each file is scanned by the dialect registered for its extension. Files are
independent, so a thread pool scans them in parallel; results are merged
back in file order so output is deterministic.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from externalizer.config import ExtractorConfig
from externalizer.dialects import dialect_for_file
from externalizer.logging import ProgressBar, logger
from externalizer.models.records import Occurrence
from externalizer.utils.documents import Workspace

# Below this many files the pool costs more than it saves
PARALLEL_THRESHOLD = 8


@dataclass
class ScanResult:
    """Occurrences from a scan plus per-file failures."""

    occurrences: list[Occurrence] = field(default_factory=list)
    errors: list[dict[str, Any]] = field(default_factory=list)
    file_count: int = 0


def scan_file(
    workspace: Workspace,
    filepath: Path | str,
    config: ExtractorConfig,
) -> list[Occurrence]:
    """Scan one file for externalizable literals.

    Args:
        workspace: Workspace owning the file's document.
        filepath: File to scan (absolute or project-relative).
        config: Extractor settings.

    Returns:
        Occurrences in source order; empty for unsupported files.

    Raises:
        OSError, UnicodeDecodeError: If the file cannot be read.
    """
    dialect = dialect_for_file(filepath)
    if dialect is None:
        return []
    doc = workspace.document(filepath)
    return dialect.detect(doc, config, workspace.relative(filepath))


def _scan_one(
    workspace: Workspace, filepath: Path, config: ExtractorConfig
) -> list[Occurrence] | dict[str, Any]:
    try:
        return scan_file(workspace, filepath, config)
    except (OSError, UnicodeDecodeError, ValueError) as e:
        return {"file": workspace.relative(filepath), "error": str(e)}


def scan_files(
    workspace: Workspace,
    paths: list[Path | str] | None,
    config: ExtractorConfig,
) -> ScanResult:
    """Scan every supported file under the given paths.

    Unreadable or unparsable files are reported in ``errors`` and do not
    stop the scan.
    """
    files = list(workspace.iter_source_files(paths))
    result = ScanResult(file_count=len(files))
    per_file: list[list[Occurrence] | dict[str, Any]] = [[] for _ in files]

    workers = config.max_workers
    if workers > 1 and len(files) >= PARALLEL_THRESHOLD:
        logger.info("  Scanning %d files in parallel (%d workers)", len(files), workers)
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_index = {
                executor.submit(_scan_one, workspace, filepath, config): index
                for index, filepath in enumerate(files)
            }
            with ProgressBar(total=len(files), desc="Scanning files", unit="files") as pbar:
                for future in as_completed(future_to_index):
                    pbar.update()
                    per_file[future_to_index[future]] = future.result()
    else:
        logger.info("  Scanning %d files sequentially", len(files))
        for index, filepath in enumerate(files):
            per_file[index] = _scan_one(workspace, filepath, config)

    for outcome in per_file:
        if isinstance(outcome, dict):
            logger.warning("  Skipped %s: %s", outcome["file"], outcome["error"])
            result.errors.append(outcome)
        else:
            result.occurrences.extend(outcome)

    logger.info(
        "  Found %d occurrence(s) in %d file(s)", len(result.occurrences), result.file_count
    )
    return result
