"""In-memory source documents with relocatable node handles.

A ``SourceDocument`` holds the current text of one file, a version counter
bumped by every edit, and the log of those edits. A ``NodeHandle`` remembers
a character range at the version it was created; ``SourceDocument.resolve``
maps it through later edits the way editor range markers do. An edit that
overlaps the range, or text that no longer matches, makes the handle stale.

``Workspace`` loads documents on demand and persists the dirty ones.
"""

import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from tree_sitter import Node, Tree

from externalizer.logging import logger
from externalizer.models.records import Dialect
from externalizer.utils.syntax import EXTENSION_TO_DIALECT, dialect_for_path, parse_source

# Directories never scanned
SKIP_DIRS = frozenset({
    ".git", ".svn", ".hg",
    ".gradle", ".idea", ".vscode", ".cxx", ".externalNativeBuild",
    "build", "out", "generated", "intermediates",
    "node_modules", "__pycache__", ".venv", "venv",
})


@dataclass(frozen=True)
class NodeHandle:
    """Relocatable reference to a syntax node."""

    path: str
    start: int  # Character offsets at `version`
    end: int
    version: int
    expected_text: str
    node_type: str = ""


@dataclass(frozen=True)
class TextEdit:
    """One applied edit: characters [start, end) replaced by new_length chars."""

    start: int
    end: int
    new_length: int


class SourceDocument:
    """Mutable text of one file plus its lazily parsed syntax tree."""

    def __init__(self, path: Path, text: str, dialect: Dialect | None = None):
        self.path = Path(path)
        self.dialect = dialect if dialect is not None else dialect_for_path(path)
        self.lock = threading.RLock()
        self.dirty = False
        self._text = text
        self._edits: list[TextEdit] = []
        self._tree: Tree | None = None
        self._tree_version = -1
        self._source: bytes = b""

    @property
    def text(self) -> str:
        return self._text

    @property
    def version(self) -> int:
        """Number of edits applied since the document was loaded."""
        return len(self._edits)

    # -------------------------------------------------------------------------
    # Syntax tree access
    # -------------------------------------------------------------------------

    def tree(self) -> Tree:
        """Return the syntax tree for the current text, re-parsing if stale."""
        with self.lock:
            if self.dialect is None:
                raise ValueError(f"No dialect for {self.path}")
            if self._tree is None or self._tree_version != self.version:
                self._source = self._text.encode("utf-8")
                self._tree = parse_source(self.dialect, self._source)
                self._tree_version = self.version
            return self._tree

    def _char_offset(self, byte_offset: int) -> int:
        if len(self._source) == len(self._text):
            return byte_offset
        return len(self._source[:byte_offset].decode("utf-8", errors="replace"))

    def _byte_offset(self, char_offset: int) -> int:
        if len(self._source) == len(self._text):
            return char_offset
        return len(self._text[:char_offset].encode("utf-8"))

    def node_range(self, node: Node) -> tuple[int, int]:
        """Character range of a node from the current tree."""
        return self._char_offset(node.start_byte), self._char_offset(node.end_byte)

    def create_handle(self, node: Node) -> NodeHandle:
        """Create a handle for a node of the current tree."""
        start, end = self.node_range(node)
        return self.handle_for_range(start, end, node.type)

    def handle_for_range(self, start: int, end: int, node_type: str = "") -> NodeHandle:
        return NodeHandle(
            path=str(self.path),
            start=start,
            end=end,
            version=self.version,
            expected_text=self._text[start:end],
            node_type=node_type,
        )

    # -------------------------------------------------------------------------
    # Handle resolution
    # -------------------------------------------------------------------------

    def resolve(self, handle: NodeHandle) -> tuple[int, int] | None:
        """Map a handle to its current character range, or None if stale."""
        with self.lock:
            if handle.version > self.version:
                return None
            start, end = handle.start, handle.end
            for edit in self._edits[handle.version:]:
                if edit.end <= start and not (edit.start == edit.end == start == end):
                    delta = edit.new_length - (edit.end - edit.start)
                    start += delta
                    end += delta
                elif edit.start >= end:
                    continue
                else:
                    return None
            if self._text[start:end] != handle.expected_text:
                return None
            return start, end

    def is_valid(self, handle: NodeHandle) -> bool:
        return self.resolve(handle) is not None

    def node_at(self, handle: NodeHandle) -> Node | None:
        """Find the live syntax node a handle points at."""
        with self.lock:
            span = self.resolve(handle)
            if span is None:
                return None
            tree = self.tree()
            start_byte = self._byte_offset(span[0])
            end_byte = self._byte_offset(span[1])
            node = tree.root_node.descendant_for_byte_range(start_byte, end_byte)
            while node is not None and node.start_byte == start_byte and node.end_byte == end_byte:
                if not handle.node_type or node.type == handle.node_type:
                    return node
                node = node.parent
            return None

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def replace(self, start: int, end: int, new_text: str) -> NodeHandle:
        """Replace characters [start, end) and return a handle to the new text."""
        with self.lock:
            if not 0 <= start <= end <= len(self._text):
                raise ValueError(f"Edit range {start}:{end} outside {self.path}")
            self._text = self._text[:start] + new_text + self._text[end:]
            self._edits.append(TextEdit(start, end, len(new_text)))
            self.dirty = True
            return self.handle_for_range(start, start + len(new_text))

    def insert(self, offset: int, text: str) -> NodeHandle:
        return self.replace(offset, offset, text)

    def save(self) -> None:
        """Write the current text back to disk."""
        with self.lock:
            self.path.write_text(self._text, encoding="utf-8")
            self.dirty = False


class Workspace:
    """Documents of one project, loaded on demand and shared across a session."""

    def __init__(self, root: Path | str, skip_dirs: frozenset[str] = SKIP_DIRS):
        self.root = Path(root).resolve()
        self.skip_dirs = skip_dirs
        self._documents: dict[Path, SourceDocument] = {}
        self._lock = threading.Lock()

    def document(self, path: Path | str) -> SourceDocument:
        """Return the shared document for a file, loading it on first use.

        Raises:
            OSError, UnicodeDecodeError: If the file cannot be read.
        """
        resolved = self._absolute(path)
        with self._lock:
            doc = self._documents.get(resolved)
            if doc is None:
                text = resolved.read_text(encoding="utf-8")
                doc = SourceDocument(resolved, text)
                self._documents[resolved] = doc
            return doc

    def _absolute(self, path: Path | str) -> Path:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return candidate.resolve()

    def relative(self, path: Path | str) -> str:
        """Project-relative path string, or the absolute path outside the root."""
        resolved = self._absolute(path)
        try:
            return str(resolved.relative_to(self.root))
        except ValueError:
            return str(resolved)

    def open_documents(self) -> list[SourceDocument]:
        with self._lock:
            return list(self._documents.values())

    def save_all(self) -> list[Path]:
        """Persist every dirty document; returns the paths written."""
        written: list[Path] = []
        for doc in self.open_documents():
            if doc.dirty:
                doc.save()
                written.append(doc.path)
        if written:
            logger.info("  Saved %d modified file(s)", len(written))
        return written

    def should_skip(self, path: Path) -> bool:
        try:
            parts = path.resolve().relative_to(self.root).parts
        except ValueError:
            parts = path.parts
        return any(part in self.skip_dirs for part in parts[:-1])

    def iter_source_files(self, paths: Iterable[Path | str] | None = None) -> Iterator[Path]:
        """Yield supported files under the given paths (default: the root).

        Explicitly named files are yielded even inside skipped directories.
        """
        seen: set[Path] = set()
        for entry in paths or [self.root]:
            candidate = self._absolute(entry)
            if candidate.is_file():
                if candidate.suffix.lower() in EXTENSION_TO_DIALECT and candidate not in seen:
                    seen.add(candidate)
                    yield candidate
                continue
            for filepath in sorted(candidate.rglob("*")):
                if not filepath.is_file():
                    continue
                if filepath.suffix.lower() not in EXTENSION_TO_DIALECT:
                    continue
                if self.should_skip(filepath) or filepath in seen:
                    continue
                seen.add(filepath)
                yield filepath
