"""Import management and reference shortening for code documents.

Header parsing is line-based: ``package`` and ``import`` directives start a
line in both Java and Kotlin, so a regex over the text finds them without a
full parse (and without depending on grammar node names).
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field

from externalizer.utils.documents import NodeHandle, SourceDocument

_PACKAGE_PATTERN = re.compile(r"^[ \t]*package[ \t]+([\w.`]+)[ \t]*;?[ \t]*$", re.MULTILINE)
_IMPORT_PATTERN = re.compile(
    r"^[ \t]*import[ \t]+(static[ \t]+)?([\w.`]+(?:\.\*)?)(?:[ \t]+as[ \t]+(\w+))?[ \t]*;?[ \t]*$",
    re.MULTILINE,
)
_FILE_ANNOTATION_PATTERN = re.compile(r"^[ \t]*@file:[^\n]*$", re.MULTILINE)


@dataclass(frozen=True)
class ImportDirective:
    path: str
    alias: str | None
    is_static: bool
    end: int  # Offset just past the directive's line


@dataclass
class FileHeader:
    """Package declaration and imports of one code file."""

    package: str | None = None
    package_end: int = -1
    annotations_end: int = -1  # Offset past the last `@file:` annotation
    imports: list[ImportDirective] = field(default_factory=list)

    def binds(self, fqn: str) -> bool:
        """True if the simple name of ``fqn`` refers to it in this file."""
        owner, _, simple = fqn.rpartition(".")
        if owner and owner == self.package:
            return True
        for directive in self.imports:
            if directive.is_static:
                continue
            if directive.alias is None and directive.path in (fqn, f"{owner}.*"):
                return True
            if directive.alias == simple and directive.path == fqn:
                return True
        return False

    def conflicts(self, fqn: str) -> bool:
        """True if another import already claims the simple name of ``fqn``."""
        simple = fqn.rpartition(".")[2]
        for directive in self.imports:
            if directive.is_static or directive.path == fqn:
                continue
            bound = directive.alias or directive.path.rpartition(".")[2]
            if bound == simple:
                return True
        return False


def parse_header(text: str) -> FileHeader:
    header = FileHeader()
    for annotation in _FILE_ANNOTATION_PATTERN.finditer(text):
        header.annotations_end = annotation.end()
    package = _PACKAGE_PATTERN.search(text)
    if package:
        header.package = package.group(1).replace("`", "")
        header.package_end = package.end()
    for match in _IMPORT_PATTERN.finditer(text):
        header.imports.append(
            ImportDirective(
                path=match.group(2).replace("`", ""),
                alias=match.group(3),
                is_static=bool(match.group(1)),
                end=match.end(),
            )
        )
    return header


def ensure_import(doc: SourceDocument, fqn: str, terminator: str = "") -> bool:
    """Make the simple name of ``fqn`` usable in a document.

    Skipped when an exact or wildcard import exists or the file lives in the
    same package. Otherwise the import goes after the last import, else
    after the package declaration, else after any file annotations, else at
    the top of the file.

    Args:
        doc: Code document to edit.
        fqn: Fully-qualified name to import.
        terminator: Statement terminator (``";"`` for Java).

    Returns:
        True if the simple name now refers to ``fqn``, False when another
        import already binds that name.
    """
    with doc.lock:
        header = parse_header(doc.text)
        if header.binds(fqn):
            return True
        if header.conflicts(fqn):
            return False

        statement = f"import {fqn}{terminator}"
        if header.imports:
            doc.insert(header.imports[-1].end, "\n" + statement)
        elif header.package_end >= 0:
            doc.insert(header.package_end, "\n\n" + statement)
        elif header.annotations_end >= 0:
            doc.insert(header.annotations_end, "\n\n" + statement)
        else:
            doc.insert(0, statement + "\n\n")
        return True


class ReferenceShortener:
    """Collapses fully-qualified names inside a replaced range.

    Only names the file's header binds are shortened, so the result always
    compiles to the same reference.
    """

    def __init__(self, doc: SourceDocument):
        self.doc = doc

    def shorten(self, handle: NodeHandle, names: Iterable[str]) -> NodeHandle:
        with self.doc.lock:
            span = self.doc.resolve(handle)
            if span is None:
                return handle
            header = parse_header(self.doc.text)
            original = self.doc.text[span[0]:span[1]]
            shortened = original
            for fqn in sorted(set(names), key=len, reverse=True):
                if not header.binds(fqn):
                    continue
                simple = fqn.rpartition(".")[2]
                pattern = re.compile(rf"(?<![\w.]){re.escape(fqn)}(?!\w)")
                shortened = pattern.sub(simple, shortened)
            if shortened == original:
                return handle
            return self.doc.replace(span[0], span[1], shortened)
