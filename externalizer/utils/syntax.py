"""Tree-sitter language loading and node helpers.

Shared by the documents layer (parsing) and the dialect implementations
(tree walking).
"""

from collections.abc import Iterator
from pathlib import Path

from tree_sitter import Language, Node, Parser, Tree

from externalizer.models.records import Dialect

# Lazy imports for tree-sitter language bindings
_LANGUAGES: dict[str, Language] = {}

# File extension to dialect mapping
EXTENSION_TO_DIALECT: dict[str, Dialect] = {
    ".java": Dialect.JAVA,
    ".kt": Dialect.KOTLIN,
    ".kts": Dialect.KOTLIN,
    ".xml": Dialect.MARKUP,
}


def _get_language(name: str) -> Language:
    """Lazily load tree-sitter language bindings."""
    if name in _LANGUAGES:
        return _LANGUAGES[name]

    if name == "java":
        import tree_sitter_java as ts_java

        _LANGUAGES[name] = Language(ts_java.language())
    elif name == "kotlin":
        import tree_sitter_kotlin as ts_kotlin

        _LANGUAGES[name] = Language(ts_kotlin.language())
    elif name == "xml":
        import tree_sitter_xml as ts_xml

        _LANGUAGES[name] = Language(ts_xml.language_xml())
    else:
        raise ValueError(f"No tree-sitter grammar for: {name}")

    return _LANGUAGES[name]


def dialect_for_path(path: Path | str) -> Dialect | None:
    """Return the dialect handling a file, or None for unsupported files."""
    return EXTENSION_TO_DIALECT.get(Path(path).suffix.lower())


def parse_source(dialect: Dialect, source: bytes) -> Tree:
    """Parse source bytes with the grammar for a dialect.

    A fresh Parser per call keeps parsing safe from scanner worker threads.
    """
    parser = Parser(_get_language(dialect.value))
    return parser.parse(source)


# =============================================================================
# Tree-sitter Helper Functions
# =============================================================================


def _find_nodes(node: Node, types: set[str]) -> list[Node]:
    """Recursively find all nodes of given types."""
    results = []
    if node.type in types:
        results.append(node)
    for child in node.children:
        results.extend(_find_nodes(child, types))
    return results


def _get_child_by_field(node: Node, field_name: str) -> Node | None:
    """Get child by field name."""
    return node.child_by_field_name(field_name)


def _get_child_by_type(node: Node, type_name: str) -> Node | None:
    """Get first child of a specific type."""
    for child in node.children:
        if child.type == type_name:
            return child
    return None


def _ancestors(node: Node) -> Iterator[Node]:
    """Yield the parents of a node, innermost first."""
    current = node.parent
    while current is not None:
        yield current
        current = current.parent


def _node_text(node: Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _line_number(node: Node) -> int:
    """1-based line of a node's first character."""
    return node.start_point[0] + 1
