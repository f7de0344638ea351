"""Android XML dialect: text-bearing attributes of layouts, menus and manifests."""

from xml.sax.saxutils import unescape

from tree_sitter import Node

from externalizer.analyzers.skip_policy import SyntacticContext, should_skip
from externalizer.config import ExtractorConfig
from externalizer.dialects.base import LiteralDialect
from externalizer.errors import StaleHandleError
from externalizer.models.records import Dialect, Occurrence
from externalizer.utils.documents import NodeHandle, SourceDocument
from externalizer.utils.syntax import _find_nodes, _get_child_by_type, _node_text

# Attribute values that already point at a resource or theme attribute
REFERENCE_PREFIXES = ("@", "?")

_XML_ENTITIES = {"&quot;": '"', "&apos;": "'"}


def attribute_name(attribute: Node) -> str:
    name = _get_child_by_type(attribute, "Name")
    if name is not None:
        return _node_text(name)
    return _node_text(attribute).split("=", 1)[0].strip()


def attribute_value_node(attribute: Node) -> Node | None:
    return _get_child_by_type(attribute, "AttValue")


def decode_attribute_value(raw: str) -> str:
    """Strip the quotes of an attribute value and resolve entity references."""
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in "\"'":
        raw = raw[1:-1]
    return unescape(raw, _XML_ENTITIES)


class MarkupDialect(LiteralDialect):
    """Scans text attributes and swaps their values for ``@string/key``."""

    dialect = Dialect.MARKUP
    requires_qualifier = False

    def detect(
        self,
        doc: SourceDocument,
        config: ExtractorConfig,
        relative_path: str = "",
    ) -> list[Occurrence]:
        attributes = set(config.text_attributes)
        test_dirs = frozenset(config.test_dirs)
        context = SyntacticContext(path=relative_path)
        results: list[Occurrence] = []

        with doc.lock:
            tree = doc.tree()
            for attribute in _find_nodes(tree.root_node, {"Attribute"}):
                if attribute_name(attribute) not in attributes:
                    continue
                value_node = attribute_value_node(attribute)
                if value_node is None:
                    continue
                value = decode_attribute_value(_node_text(value_node))
                if not value.strip() or value.startswith(REFERENCE_PREFIXES):
                    continue
                if should_skip(value, context, test_dirs):
                    continue
                results.append(self._occurrence(doc, value_node, value))
        return results

    def build_expression(
        self,
        doc: SourceDocument,
        node: Node,
        occurrence: Occurrence,
        qualifier: str | None,
        key: str,
        config: ExtractorConfig,
    ) -> str:
        return f"@{config.table_name}/{key}"

    def apply(
        self,
        doc: SourceDocument,
        handle: NodeHandle,
        expression: str,
        qualifier: str | None,
        config: ExtractorConfig,
    ) -> NodeHandle:
        with doc.lock:
            span = doc.resolve(handle)
            if span is None:
                raise StaleHandleError("invalid or stale element")
            quote = doc.text[span[0]] if span[1] > span[0] else '"'
            if quote not in "\"'":
                quote = '"'
            return doc.replace(span[0], span[1], f"{quote}{expression}{quote}")
